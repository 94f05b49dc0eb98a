from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from api.client import PortalClient
from api.errors import PortalError, UnauthorizedError
from api.models import Order
from state.cart import CartStore
from state.checkout import place_order
from state.errors import SessionError
from state.session import SessionStore
from utils.forms import ValidationError
from utils.pure import format_currency, generate_markdown_table
from views.base_screen import report_failure
from views.modal_dialog import DialogModal


class CheckoutModal(ModalScreen[Optional[Order]]):
    """
    Order summary of the cart plus shipping address and optional GST.
    Dismissed with the created order, or None when nothing was placed.
    """

    def __init__(
        self, session: SessionStore, cart: CartStore, client: PortalClient
    ) -> None:
        super().__init__()
        self.session = session
        self.cart = cart
        self.client = client

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Shipping Address")
            yield Input(
                placeholder="Store 12, MG Road, Pune 411001",
                id="input-address-line",
            )
            yield Label("Customer GST (optional)")
            yield Input(placeholder="27ABCDE1234F1Z5", id="input-gst")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self) -> None:
        headers = ["Product", "Unit Price", "Quantity", "Total Price"]
        rows = [
            [
                item.product.name,
                format_currency(item.product.price),
                str(item.quantity),
                format_currency((item.product.price or 0.0) * item.quantity),
            ]
            for item in self.cart.items
        ]
        subtotal = sum((i.product.price or 0.0) * i.quantity for i in self.cart.items)
        md = "### Order Summary\n\n"
        md += generate_markdown_table(headers, rows, ["l", "r", "c", "r"])
        md += f"\n\n**Estimated subtotal:** {format_currency(subtotal)}"
        warnings = self.cart.availability_messages()
        if warnings:
            md += "\n\n" + "\n".join(f"- {w}" for w in warnings)
        await self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#input-address-line").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        address_input = self.query_one("#input-address-line", Input)
        if not address_input.value.strip():
            address_input.focus()
            address_input.add_class("-invalid")
            self.notify("Shipping address is required.", severity="error")
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            order = await place_order(
                self.client,
                self.session,
                self.cart,
                address_input.value,
                self.query_one("#input-gst", Input).value,
            )
        except (PortalError, SessionError, ValidationError) as err:
            if isinstance(err, (UnauthorizedError, SessionError)):
                # leave before the login screen is pushed over us
                self.dismiss(None)
            await report_failure(
                self.app, self.session, err, "Unable to place the order right now"
            )
            return

        self.notify(f"Order placed. Your order number is {order.id}.")
        self.dismiss(order)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(None)
