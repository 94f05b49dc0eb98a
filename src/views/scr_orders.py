from datetime import datetime
from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume, ScreenSuspend
from textual.timer import Timer
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

from api import endpoints
from api.client import PortalClient
from api.errors import PortalError
from api.models import Order, OrderStatus
from state.cart import CartStore
from state.errors import SessionError
from state.permissions import (
    ACTION_ACCEPT,
    ACTION_APPROVE,
    ACTION_COURIER,
    ACTION_REJECT,
    can_create_orders,
    order_actions,
)
from state.session import SessionStore
from utils.forms import ValidationError, validate_comments, validate_delivery_address
from utils.logger import get_logger
from utils.pure import format_currency, format_datetime, generate_markdown_table
from views.base_screen import BaseScreen
from views.modal_dialog import TextPromptModal
from views.modal_order import CourierModal, NewOrderModal

_logger = get_logger(__name__)

FILTER_ALL = "ALL"

ACTION_BUTTONS = {
    ACTION_APPROVE: "#btn-approve",
    ACTION_REJECT: "#btn-reject",
    ACTION_ACCEPT: "#btn-accept",
    ACTION_COURIER: "#btn-courier",
}


class OrdersScreen(BaseScreen):
    """
    Order list with a status filter, detail pane and the lifecycle actions
    the signed-in role may take.

    Layout:
    - filter / refresh / new order bar with the last sync time
    - orders table on the left, markdown detail on the right
    - action buttons for the highlighted order

    The list reloads every ``refresh_interval`` seconds while the screen is
    active. Failed reloads are reported and the timer keeps running.
    """

    BINDINGS = [
        Binding("r", "reload", "Refresh", show=True),
    ]

    def __init__(
        self,
        session: SessionStore,
        cart: CartStore,
        client: PortalClient,
        refresh_interval: float = 60,
    ) -> None:
        super().__init__(session, cart, client, header_sub_title="Orders")
        self.refresh_interval = refresh_interval
        self._orders: Dict[str, Order] = {}
        self._selected: Optional[Order] = None
        self._poll: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-orders-toolbar"):
            yield Select(
                [("All", FILTER_ALL)] + [(s.label, s.value) for s in OrderStatus],
                value=FILTER_ALL,
                allow_blank=False,
                id="select-status",
            )
            yield Button("Refresh", id="btn-refresh")
            yield Button("New order", id="btn-new-order", variant="primary")
            yield Label("", id="label-synced")
        with Horizontal(id="hort-orders-body"):
            yield DataTable(id="table-orders")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
        with Horizontal(id="hort-order-actions"):
            yield Button("Approve", id="btn-approve", variant="success")
            yield Button("Reject", id="btn-reject", variant="error")
            yield Button("Accept", id="btn-accept", variant="primary")
            yield Button("Add courier", id="btn-courier")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order", "Created", "Status", "Items", "Total")

        self._poll = self.set_interval(self.refresh_interval, self.load_orders)
        self._select(None)

    def on_unmount(self) -> None:
        if self._poll is not None:
            self._poll.stop()
            self._poll = None

    @on(ScreenSuspend)
    def handle_suspend(self) -> None:
        if self._poll is not None:
            self._poll.pause()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        user = self.session.user
        self.query_one("#btn-new-order", Button).display = bool(
            user and can_create_orders(user.role)
        )
        if self._poll is not None:
            self._poll.resume()
        self.load_orders()

    @on(Select.Changed, "#select-status")
    @on(Button.Pressed, "#btn-refresh")
    def action_reload(self) -> None:
        self.load_orders()

    @property
    def status_filter(self) -> Optional[OrderStatus]:
        value = self.query_one("#select-status", Select).value
        if value == FILTER_ALL or not isinstance(value, str):
            return None
        return OrderStatus(value)

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        # a newer call cancels this worker, so only the latest result lands
        if not self.session.is_authenticated:
            return
        try:
            token, _ = await self.session.require_auth()
            orders = await endpoints.list_orders(
                self.client, token, status=self.status_filter
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load orders right now")
            return

        self._orders = {o.id: o for o in orders}
        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.id,
                format_datetime(o.created_at),
                o.status.label,
                o.item_count,
                format_currency(o.total_amount),
                key=o.id,
            )
        self.query_one("#label-synced", Label).update(
            f"Updated {format_datetime(datetime.now())}"
        )

        if self._selected is not None and self._selected.id in self._orders:
            table.move_cursor(row=table.get_row_index(self._selected.id))
            self._select(self._orders[self._selected.id])
        elif orders:
            table.move_cursor(row=0)
            self._select(orders[0])
        else:
            self._select(None)

    @on(DataTable.RowHighlighted, "#table-orders")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        self._select(self._orders.get(event.row_key.value))

    def _select(self, order: Optional[Order]) -> None:
        self._selected = order
        self._render_detail(order)
        user = self.session.user
        allowed: List[str] = (
            order_actions(order, user.role) if order and user else []
        )
        for action, selector in ACTION_BUTTONS.items():
            self.query_one(selector, Button).display = action in allowed

    def _render_detail(self, order: Optional[Order]) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if order is None:
            viewer.document.update("### Select an order to view its details.")
            return

        header = (
            f"### Order {order.id}\n"
            f"Status: **{order.status.label}**  \n"
            f"Created: {format_datetime(order.created_at)}  \n"
            f"Ship to: {order.shipping_address}  \n"
        )
        if order.delivery_address:
            header += f"Deliver to: {order.delivery_address}  \n"
        if order.customer_gst:
            header += f"GST: {order.customer_gst}  \n"

        items = generate_markdown_table(
            ["Product", "Qty", "Unit price", "Line total"],
            [
                [
                    i.product_name,
                    str(i.quantity),
                    format_currency(i.unit_price),
                    format_currency(i.line_total),
                ]
                for i in order.items
            ],
            ["l", "r", "r", "r"],
        )
        footer = f"\n\n**Total:** {format_currency(order.total_amount)}"

        courier = order.courier_info
        if courier is not None:
            footer += (
                "\n\n#### Courier\n"
                f"{courier.courier_name}, tracking {courier.tracking_number}  \n"
                f"Dispatched: {format_datetime(courier.dispatch_date)}"
            )
        viewer.document.update(header + "\n" + items + footer)

    # ---------------------------
    # Actions
    # ---------------------------

    @on(Button.Pressed, "#btn-approve")
    @on(Button.Pressed, "#btn-reject")
    @work(exclusive=True, group="order-action")
    async def handle_review(self, event: Button.Pressed) -> None:
        order = self._selected
        if order is None:
            return
        approve = event.button.id == "btn-approve"
        verb = "approve" if approve else "reject"
        gerund = "approving" if approve else "rejecting"
        comments = await self.app.push_screen_wait(
            TextPromptModal(
                f"Comments for {gerund} order {order.id}",
                placeholder="Required",
                submit_text=verb.capitalize(),
                tone="positive" if approve else "error",
            )
        )
        if comments is None:
            return
        try:
            comments = validate_comments(comments)
            token, _ = await self.session.require_auth()
            call = endpoints.approve_order if approve else endpoints.reject_order
            await call(self.client, token, order.id, comments)
        except (PortalError, SessionError, ValidationError) as err:
            await self.report_failure(err, f"Unable to {verb} the order right now")
            return
        self.notify("Order approved" if approve else "Order rejected")
        self.load_orders()

    @on(Button.Pressed, "#btn-accept")
    @work(exclusive=True, group="order-action")
    async def handle_accept(self) -> None:
        order = self._selected
        if order is None:
            return
        address = await self.app.push_screen_wait(
            TextPromptModal(
                f"Delivery address for order {order.id}",
                submit_text="Accept",
                tone="positive",
                value=order.shipping_address,
            )
        )
        if address is None:
            return
        try:
            address = validate_delivery_address(address)
            token, _ = await self.session.require_auth()
            await endpoints.accept_order(self.client, token, order.id, address)
        except (PortalError, SessionError, ValidationError) as err:
            await self.report_failure(err, "Unable to accept the order right now")
            return
        self.notify("Order accepted")
        self.load_orders()

    @on(Button.Pressed, "#btn-courier")
    @work(exclusive=True, group="order-action")
    async def handle_courier(self) -> None:
        order = self._selected
        if order is None:
            return
        details = await self.app.push_screen_wait(CourierModal(order.id))
        if details is None:
            return
        courier_name, tracking_number, dispatch_date = details
        try:
            token, _ = await self.session.require_auth()
            await endpoints.add_courier_info(
                self.client,
                token,
                order.id,
                courier_name,
                tracking_number,
                dispatch_date,
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to save courier details right now")
            return
        self.notify("Courier details captured")
        self.load_orders()

    @on(Button.Pressed, "#btn-new-order")
    @work(exclusive=True, group="order-action")
    async def handle_new_order(self) -> None:
        try:
            token, _ = await self.session.require_auth()
            products = await endpoints.list_products(self.client, token)
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load products right now")
            return
        if not any(p.active for p in products):
            self.notify("No active products to order.", severity="warning")
            return

        draft = await self.app.push_screen_wait(NewOrderModal(products))
        if draft is None:
            return
        shipping_address, lines, customer_gst = draft
        try:
            token, _ = await self.session.require_auth()
            order = await endpoints.create_order(
                self.client, token, shipping_address, lines, customer_gst
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to create the order right now")
            return
        _logger.info(f"Created order {order.id} with {order.item_count} item(s)")
        self.notify("Order created successfully")
        self.load_orders()
