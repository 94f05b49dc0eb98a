from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from api import endpoints
from api.errors import PortalError
from api.models import Order, OrderStatus, Product
from state.errors import SessionError
from state.permissions import is_admin
from utils.downloads import new_users_filename, save_download
from utils.logger import get_logger
from utils.pure import format_currency, generate_markdown_table
from utils.reports import (
    average_items_per_order,
    inventory_value,
    revenue,
    status_counts,
    top_items,
)
from views.base_screen import BaseScreen, gather_or_cancel

_logger = get_logger(__name__)


def report_markdown(orders: List[Order], products: List[Product]) -> str:
    counts = status_counts(orders)
    summary = (
        "### Order Summary\n\n"
        f"- Orders: {len(orders)}\n"
        f"- Revenue (approved onwards): {format_currency(revenue(orders))}\n"
        f"- Avg items per order: {average_items_per_order(orders):.1f}\n"
        f"- Inventory value: {format_currency(inventory_value(products))}\n\n"
    )
    by_status = generate_markdown_table(
        ["Status", "Orders"],
        [[s.label, str(counts[s])] for s in OrderStatus],
        ["l", "r"],
    )

    top = top_items(orders, k=3)
    if top:
        top_md = generate_markdown_table(
            ["Product", "Quantity", "Revenue"],
            [[t.name, str(t.quantity), format_currency(t.revenue)] for t in top],
            ["l", "r", "r"],
        )
    else:
        top_md = "No orders yet."

    return (
        summary
        + "#### By Status\n\n"
        + by_status
        + "\n\n### Top Products\n\n"
        + top_md
        + "\n"
    )


class ReportsScreen(BaseScreen):
    """
    Order and inventory insights computed from the order list and catalog.
    Admins can also export the new-user spreadsheet.
    """

    def __init__(self, session, cart, client, download_dir: str = ".") -> None:
        super().__init__(session, cart, client, header_sub_title="Reports")
        self.download_dir = download_dir

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-reports-toolbar"):
                yield Button("Refresh", id="btn-refresh")
                yield Button("Export new users", id="btn-export", variant="primary")
            yield MarkdownViewer(id="md-top", show_table_of_contents=False)

    @on(ScreenResume)
    def handle_resume(self) -> None:
        user = self.session.user
        self.query_one("#btn-export", Button).display = bool(
            user and is_admin(user.role)
        )
        self.handle_reload()

    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True, group="reports")
    async def handle_reload(self) -> None:
        if not self.session.is_authenticated:
            return
        try:
            token, _ = await self.session.require_auth()
            orders, products = await gather_or_cancel(
                endpoints.list_orders(self.client, token),
                endpoints.list_products(self.client, token),
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load reports right now")
            return

        await self.query_one("#md-top", MarkdownViewer).document.update(
            report_markdown(orders, products)
        )

    @on(Button.Pressed, "#btn-export")
    @work(exclusive=True, group="reports-export")
    async def handle_export(self) -> None:
        try:
            token, _ = await self.session.require_auth()
            data = await endpoints.download_onboarding_report(self.client, token)
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to export new users right now")
            return
        try:
            path = await save_download(self.download_dir, new_users_filename(), data)
        except OSError as e:
            _logger.warning(f"Writing export failed: {e}")
            self.notify(f"Unable to save the export: {e.strerror}", severity="error")
            return
        self.notify(f"Saved {path}")
