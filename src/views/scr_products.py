from typing import Dict, List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Select

from api import endpoints
from api.errors import PortalError
from api.models import Product
from state.errors import SessionError
from state.permissions import can_create_orders, is_admin
from utils.logger import get_logger
from utils.pure import format_currency
from views.base_screen import BaseScreen
from views.modal_product import NewProductModal, ProdDetailModal

_logger = get_logger(__name__)

FILTERS = [("All", "all"), ("Active", "active"), ("Inactive", "inactive")]


class ProductsScreen(BaseScreen):
    """
    Catalog browser. Every load also refreshes the cart's copy of each product.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
        Binding("r", "reload", "Refresh", show=True),
    ]

    def __init__(self, session, cart, client) -> None:
        super().__init__(session, cart, client, header_sub_title="Products")
        self._products: List[Product] = []
        self._by_id: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-products-toolbar"):
                yield Select(
                    FILTERS, value="all", allow_blank=False, id="select-active"
                )
                yield Button("Refresh", id="btn-refresh")
                yield Button("New product", id="btn-new-product", variant="primary")
                yield Label("", id="label-product-counts")
            yield DataTable(id="table-products")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("SKU", "Name", "Price", "Stock", "Status")

    @on(ScreenResume)
    def handle_resume(self) -> None:
        user = self.session.user
        self.query_one("#btn-new-product", Button).display = bool(
            user and is_admin(user.role)
        )
        self.load_products()

    @on(Button.Pressed, "#btn-refresh")
    def action_reload(self) -> None:
        self.load_products()

    def action_noop(self) -> None:
        pass

    @work(exclusive=True, group="products")
    async def load_products(self) -> None:
        if not self.session.is_authenticated:
            return
        try:
            token, _ = await self.session.require_auth()
            products = await endpoints.list_products(self.client, token)
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load products right now")
            return

        self._products = products
        self._by_id = {p.id: p for p in products}
        self.cart.sync_product_details(products)
        self._render_table()

    @on(Select.Changed, "#select-active")
    def _render_table(self) -> None:
        selected = self.query_one("#select-active", Select).value
        active = sum(1 for p in self._products if p.active)
        self.query_one("#label-product-counts", Label).update(
            f"{len(self._products)} SKUs: {active} active, "
            f"{len(self._products) - active} inactive"
        )

        table = self.query_one(DataTable)
        table.clear()
        for p in self._products:
            if selected == "active" and not p.active:
                continue
            if selected == "inactive" and p.active:
                continue
            table.add_row(
                p.sku,
                p.name,
                format_currency(p.price),
                p.stock_quantity,
                "Active" if p.active else "Inactive",
                key=p.id,
            )

    @on(DataTable.RowSelected, "#table-products")
    @work()
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        prod: Optional[Product] = self._by_id.get(event.row_key.value)
        user = self.session.user
        if prod is None or user is None:
            return
        quantity = await self.app.push_screen_wait(
            ProdDetailModal(
                prod,
                in_cart=self.cart.quantity_of(prod.id),
                can_order=can_create_orders(user.role),
            )
        )
        if quantity is None:
            return
        before = self.cart.quantity_of(prod.id)
        self.cart.add_item(prod, quantity)
        added = self.cart.quantity_of(prod.id) - before
        if added:
            self.notify(f"Added {added} x {prod.name} to cart.")
        else:
            self.notify(f"{prod.name} cannot be added right now.", severity="warning")

    @on(Button.Pressed, "#btn-new-product")
    @work(exclusive=True, group="product-create")
    async def handle_new_product(self) -> None:
        new_product = await self.app.push_screen_wait(NewProductModal())
        if new_product is None:
            return
        try:
            token, _ = await self.session.require_auth()
            created = await endpoints.create_product(self.client, token, new_product)
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to create the product right now")
            return
        _logger.info(f"Created product {created.sku}")
        self.notify(f"Product {created.name} created.")
        self.load_products()
