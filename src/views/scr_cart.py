from typing import Callable, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume, ScreenSuspend
from textual.message import Message
from textual.widgets import Button, Input, Label, Rule

from api import endpoints
from api.errors import PortalError
from state.cart import CartItem, CartStore
from state.errors import SessionError
from utils.forms import ValidationError, parse_quantity
from utils.messages import CartChangedMessage
from utils.pure import format_currency
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal

LOW_STOCK_THRESHOLD = 3


class CartItemActionRemoveMessage(Message):
    bubble = True

    def __init__(self, item: CartItem) -> None:
        super().__init__()
        self.item = item


class CartItemActionLabel(Label):
    def __init__(self, item: CartItem, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.item = item

    def action_remove(self):
        self.post_message(CartItemActionRemoveMessage(self.item))


def stock_hint(item: CartItem) -> str:
    prod = item.product
    if not prod.active:
        return "No longer available"
    if prod.stock_quantity <= 0:
        return "Out of stock"
    if prod.stock_quantity <= LOW_STOCK_THRESHOLD:
        return f"Only {prod.stock_quantity} left"
    return ""


class CartItemWidget(HorizontalGroup):
    def __init__(self, cart: CartStore, item: CartItem):
        super().__init__()
        self.cart = cart
        self.item = item

    def compose(self) -> ComposeResult:
        prod = self.item.product
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(prod.name, id="label-item-name")
                yield Label(format_currency(prod.price), id="label-item-price")
                yield Label(stock_hint(self.item), id="label-item-hint")
            with Horizontal(id="div-stepper"):
                yield Button("-", id="btn-sub-qty")
                yield Input(str(self.item.quantity), type="integer", id="input-qty")
                yield Button("+", id="btn-add-qty")
            with Container(id="div-actions"):
                yield CartItemActionLabel(
                    self.item, "[@click=remove()]Remove[/]", id="link-item-remove"
                )

    def on_mount(self) -> None:
        self.query_one("#btn-add-qty", Button).disabled = (
            self.item.quantity >= self.item.product.stock_quantity
        )

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self) -> None:
        self.cart.increment_item(self.item.product.id)

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self) -> None:
        self.cart.decrement_item(self.item.product.id)

    @on(Input.Submitted, "#input-qty")
    def handle_qty_input(self, event: Input.Submitted) -> None:
        try:
            qty = parse_quantity(event.value, self.item.product.stock_quantity)
        except ValidationError as err:
            event.input.value = str(self.item.quantity)
            self.notify(err.message, severity="error")
            return
        self.cart.set_item_quantity(self.item.product.id, qty)


class CartScreen(BaseScreen):
    """
    Cart contents with steppers, availability warnings and checkout.
    Re-rendered whenever the cart store notifies.
    """

    def __init__(self, session, cart, client) -> None:
        super().__init__(session, cart, client, header_sub_title="Cart")
        self._unsubscribe: Optional[Callable[[], None]] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("", id="label-cart-warnings")
        yield Label("Estimated total: ₹0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self) -> None:
        self._unsubscribe = self.cart.subscribe(
            lambda: self.post_message(CartChangedMessage())
        )

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self.cart.open()
        self.handle_cart_change()
        self.refresh_availability()

    @on(ScreenSuspend)
    def handle_suspend(self) -> None:
        self.cart.close()

    @on(CartChangedMessage)
    @work(exclusive=True, group="cart-render")
    async def handle_cart_change(self) -> None:
        items = self.cart.items

        content = self.query_one("#vertscroll-content")
        shown = tuple(c.item for c in content.children if isinstance(c, CartItemWidget))
        if shown != items:
            await content.remove_children()
            await content.mount_all([CartItemWidget(self.cart, item) for item in items])

        content.set_class(not items, "no-items")
        self.query_one("#label-cart-warnings", Label).update(
            "\n".join(self.cart.availability_messages())
        )
        total = sum((i.product.price or 0.0) * i.quantity for i in items)
        self.query_one("#label-cart-total", Label).update(
            f"{self.cart.total_quantity} item(s), estimated total: "
            f"{format_currency(total)}"
        )
        self.query_one("#btn-checkout", Button).disabled = not items

    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True, group="cart-sync")
    async def refresh_availability(self) -> None:
        """Re-read the catalog so stock and active flags in the cart are current."""
        if not self.session.is_authenticated or not len(self.cart):
            return
        try:
            token, _ = await self.session.require_auth()
            products = await endpoints.list_products(self.client, token)
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to refresh availability right now")
            return
        self.cart.sync_product_details(products)

    @on(CartItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self, event: CartItemActionRemoveMessage) -> None:
        if await self.app.push_screen_wait(
            DialogModal(
                f"Remove {event.item.product.name} from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            self.cart.remove_item(event.item.product.id)
            self.notify("Item removed from cart.", severity="information")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not len(self.cart):
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            self.cart.clear_cart()

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if not len(self.cart):
            self.notify("Cart is empty.", severity="warning")
            return
        order = await self.app.push_screen_wait(
            CheckoutModal(self.session, self.cart, self.client)
        )
        if order is not None:
            await self.app.switch_mode("orders")
