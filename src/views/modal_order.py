from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, HorizontalGroup, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from api.models import OrderLineRequest, Product
from utils.forms import (
    MAX_ORDER_ITEMS,
    ValidationError,
    validate_courier,
    validate_order_form,
)
from utils.pure import format_currency, generate_tracking_number

COURIER_OPTIONS = ["Delhivery", "Blue Dart", "Ecom Express", "Shadowfax", "DTDC"]

CourierDetails = Tuple[str, str, datetime]
OrderDraft = Tuple[str, List[OrderLineRequest], Optional[str]]


class CourierModal(ModalScreen[Optional[CourierDetails]]):
    """
    Capture courier name, tracking number and dispatch time for an order.
    Dismissed with the validated details, or None on cancel.
    """

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id

    def compose(self) -> ComposeResult:
        with Vertical(id="div-form-modal"):
            yield Label(f"Courier details for order {self.order_id}", id="caption")
            yield Label("Courier")
            yield Select(
                [(name, name) for name in COURIER_OPTIONS],
                value=COURIER_OPTIONS[0],
                allow_blank=False,
                id="select-courier",
            )
            yield Label("Tracking number")
            yield Input(generate_tracking_number(), id="input-tracking")
            yield Label("Dispatch date (YYYY-MM-DD HH:MM)")
            yield Input(
                datetime.now().strftime("%Y-%m-%d %H:%M"), id="input-dispatch"
            )
            yield Label("", id="label-form-error", classes="form-error")
            with Horizontal(id="dialog"):
                yield Button("Cancel", id="btn-secondary")
                yield Button("Save", id="btn-primary", variant="primary")

    @on(Button.Pressed, "#btn-secondary")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-primary")
    def handle_submit(self) -> None:
        courier = self.query_one("#select-courier", Select).value
        try:
            details = validate_courier(
                courier if isinstance(courier, str) else "",
                self.query_one("#input-tracking", Input).value,
                self.query_one("#input-dispatch", Input).value,
            )
        except ValidationError as err:
            self.query_one("#label-form-error", Label).update(err.message)
            return
        self.dismiss(details)


class OrderLineWidget(HorizontalGroup):
    def __init__(self, products: Sequence[Product], idx: int) -> None:
        super().__init__(classes="order-line")
        self.products = products
        self.idx = idx

    def compose(self) -> ComposeResult:
        yield Select(
            [
                (f"{p.name} ({p.sku}) {format_currency(p.price)}", p.id)
                for p in self.products
            ],
            prompt=f"Product {self.idx + 1}",
            id=f"select-line-{self.idx}",
        )
        yield Input("1", type="integer", id=f"input-line-qty-{self.idx}")

    @property
    def line(self) -> Tuple[Optional[str], int]:
        product_id = self.query_one(Select).value
        raw_qty = self.query_one(Input).value
        quantity = int(raw_qty) if raw_qty.lstrip("-").isdigit() else 1
        return (product_id if isinstance(product_id, str) else None, quantity)


class NewOrderModal(ModalScreen[Optional[OrderDraft]]):
    """
    Order form with up to MAX_ORDER_ITEMS lines picked from active products.
    Dismissed with (shipping_address, lines, customer_gst), or None.
    """

    def __init__(self, products: Sequence[Product]) -> None:
        super().__init__()
        self.products = [p for p in products if p.active]

    def compose(self) -> ComposeResult:
        with Vertical(id="div-form-modal"):
            yield Label("New order", id="caption")
            with VerticalScroll(id="vertscroll-lines"):
                yield OrderLineWidget(self.products, 0)
            yield Button("Add line", id="btn-add-line")
            yield Label("Shipping address")
            yield Input(placeholder="Store 12, MG Road, Pune", id="input-shipping")
            yield Label("Customer GST (optional)")
            yield Input(placeholder="27ABCDE1234F1Z5", id="input-gst")
            yield Label("", id="label-form-error", classes="form-error")
            with Horizontal(id="dialog"):
                yield Button("Cancel", id="btn-secondary")
                yield Button("Place order", id="btn-primary", variant="primary")

    @on(Button.Pressed, "#btn-add-line")
    async def handle_add_line(self) -> None:
        lines = self.query_one("#vertscroll-lines", VerticalScroll)
        count = len(lines.children)
        if count >= MAX_ORDER_ITEMS:
            self.notify(
                f"An order can hold at most {MAX_ORDER_ITEMS} lines",
                severity="warning",
            )
            return
        await lines.mount(OrderLineWidget(self.products, count))

    @on(Button.Pressed, "#btn-secondary")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-primary")
    def handle_submit(self) -> None:
        try:
            shipping, lines = validate_order_form(
                self.query_one("#input-shipping", Input).value,
                [w.line for w in self.query(OrderLineWidget)],
            )
        except ValidationError as err:
            self.query_one("#label-form-error", Label).update(err.message)
            return
        gst = self.query_one("#input-gst", Input).value.strip() or None
        self.dismiss((shipping, lines, gst))
