from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Checkbox, Input, Label, MarkdownViewer, TextArea

from api.models import NewProduct, Product
from utils.forms import ValidationError, validate_new_product
from utils.pure import format_currency, format_datetime, generate_markdown_table


def product_markdown(prod: Product) -> str:
    rows = [
        ["SKU", prod.sku],
        ["Price", format_currency(prod.price)],
        ["In stock", str(prod.stock_quantity)],
        ["Active", "Yes" if prod.active else "No"],
        ["Added", format_datetime(prod.created_at, with_time=False)],
    ]
    md = f"### {prod.name}\n\n{prod.description}\n\n"
    md += generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
    if prod.specifications:
        md += "\n\n#### Specifications\n\n"
        md += generate_markdown_table(
            ["Key", "Value"],
            [[k, v] for k, v in prod.specifications.items()],
            ["l", "l"],
        )
    return md


class ProdDetailModal(ModalScreen[Optional[int]]):
    """
    Product detail plus a quantity picker.
    Dismissed with the quantity to add to the cart, or None.
    """

    order_qty = reactive(1)

    def __init__(
        self, prod: Product, in_cart: int = 0, can_order: bool = True
    ) -> None:
        super().__init__()
        self._prod = prod
        self._in_cart = in_cart
        self._can_order = can_order

    @property
    def max_qty(self) -> int:
        return max(self._prod.stock_quantity - self._in_cart, 0)

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer(
                product_markdown(self._prod), show_table_of_contents=False
            )
            with Vertical(id="vert-prod-order"):
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                yield Label("", id="label-stock-hint")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    def on_mount(self) -> None:
        order_btn = self.query_one("#btn-addcart", Button)
        if not self._can_order:
            order_btn.display = False
        elif not self._prod.available or self.max_qty < 1:
            order_btn.label = (
                "Out of Stock" if not self._prod.available else "Max in Cart"
            )
            order_btn.disabled = True
            order_btn.variant = "warning"

        if self._in_cart:
            self.query_one("#label-stock-hint", Label).update(
                f"{self._in_cart} already in cart"
            )
        self.query_one("#input-order-qty", Input).validators = [
            Number(minimum=1, maximum=max(self.max_qty, 1))
        ]
        self.query_one("#input-order-qty").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int) -> None:
        self.query_one("#btn-sub-qty", Button).disabled = qty <= 1
        self.query_one("#btn-add-qty", Button).disabled = qty >= self.max_qty
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self) -> None:
        if self.order_qty < self.max_qty:
            self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self) -> None:
        if self.order_qty > 1:
            self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self) -> None:
        if not self.query_one("#input-order-qty", Input).is_valid:
            self.notify(f"Choose between 1 and {self.max_qty}.", severity="error")
            return
        self.dismiss(self.order_qty)


class NewProductModal(ModalScreen[Optional[NewProduct]]):
    """
    Catalog entry form. Dismissed with a validated NewProduct, or None.
    """

    def compose(self) -> ComposeResult:
        with Vertical(id="div-form-modal"):
            yield Label("New product", id="caption")
            with Horizontal():
                with Vertical():
                    yield Label("SKU")
                    yield Input(placeholder="PP-BANNER-01", id="input-sku")
                    yield Label("Name")
                    yield Input(placeholder="Vinyl banner", id="input-name")
                    yield Label("Price (₹)")
                    yield Input(placeholder="499.00", type="number", id="input-price")
                    yield Label("Stock")
                    yield Input("0", type="integer", id="input-stock")
                    yield Checkbox("Active", value=True, id="chk-active")
                with Vertical():
                    yield Label("Description")
                    yield TextArea(id="text-description")
                    yield Label("Specifications (key=value per line)")
                    yield TextArea(id="text-specs")
            yield Label("", id="label-form-error", classes="form-error")
            with Horizontal(id="dialog"):
                yield Button("Cancel", id="btn-secondary")
                yield Button("Create", id="btn-primary", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-sku").focus()

    @on(Button.Pressed, "#btn-secondary")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-primary")
    def handle_submit(self) -> None:
        try:
            product = validate_new_product(
                sku=self.query_one("#input-sku", Input).value,
                name=self.query_one("#input-name", Input).value,
                description=self.query_one("#text-description", TextArea).text,
                price=self.query_one("#input-price", Input).value,
                stock_quantity=self.query_one("#input-stock", Input).value,
                specifications=self.query_one("#text-specs", TextArea).text,
                active=self.query_one("#chk-active", Checkbox).value,
            )
        except ValidationError as err:
            self.query_one("#label-form-error", Label).update(err.message)
            return
        self.dismiss(product)
