from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Tuple

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Resize, ScreenResume
from textual.screen import Screen
from textual.widget import Widget
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from api.client import PortalClient
from api.errors import ApiError, NetworkError, UnauthorizedError
from state.cart import CartStore
from state.errors import SessionError
from state.permissions import can_create_orders, can_view_notifications, is_admin
from state.session import SessionStore
from utils.forms import ValidationError
from utils.logger import get_logger
from utils.messages import LogoutRequestedMessage
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal, ResizeScreenPromptModal

_logger = get_logger(__name__)

APP_TITLE = "Puma Printables Portal"

MODE_TITLES = {
    "orders": "Orders",
    "products": "Products",
    "cart": "Cart",
    "reports": "Reports",
    "notifications": "Notifications",
    "admin_users": "User Management",
}


def menu_for(session: SessionStore) -> List[Tuple[str, str]]:
    """(mode, title) pairs the signed-in role may open, in menu order."""
    user = session.user
    if user is None:
        return []
    modes = ["orders", "products"]
    if can_create_orders(user.role):
        modes.append("cart")
    modes.append("reports")
    if can_view_notifications(user.role):
        modes.append("notifications")
    if is_admin(user.role):
        modes.append("admin_users")
    return [(m, MODE_TITLES[m]) for m in modes]


class Sidebar(Container):
    def __init__(self, session: SessionStore, cart: CartStore) -> None:
        super().__init__()
        self.session = session
        self.cart = cart
        self._unsubscribe: Optional[Callable[[], None]] = None

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Label("", id="label-cart-count")
        yield Button("Sign out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self) -> None:
        self._unsubscribe = self.cart.subscribe(self.update_cart_count)
        await self.rebuild()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()

    async def rebuild(self) -> None:
        """Refill user info and menu; the signed-in user may have changed."""
        user = self.session.user
        list_menu = self.query_one("#list-menu", ListView)
        await list_menu.clear()
        if user is None:
            await self.query_one(Markdown).update("")
            return

        table_rows = [
            ["User", user.username],
            ["Name", user.display_name or "-"],
            ["Role", user.role.label],
        ]
        await self.query_one(Markdown).update(
            generate_markdown_table(None, table_rows, ["l", "l"])
        )
        await list_menu.extend(
            [
                ListItem(Label(title), id="list-menu-item-" + mode)
                for mode, title in menu_for(self.session)
            ]
        )
        self.highlight_item(self.app.current_mode)
        self.update_cart_count()

    def update_cart_count(self) -> None:
        label = self.query_one("#label-cart-count", Label)
        user = self.session.user
        if user is None or not can_create_orders(user.role):
            label.update("")
        else:
            label.update(f"Cart: {self.cart.total_quantity} item(s)")

    async def on_list_view_selected(self, event: ListView.Selected) -> None:
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.app.current_mode)
        if self.app.current_mode != selected_mode:
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self) -> None:
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to sign out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(LogoutRequestedMessage())

    def highlight_item(self, mode_str: str) -> None:
        list_menu = self.query_one("#list-menu", ListView)
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all page screens: header, footer, sidebar, keybindings,
    and the shared handling of request failures.

    The session store, cart store and API client are injected, never looked
    up on the app.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(
        self,
        session: SessionStore,
        cart: CartStore,
        client: PortalClient,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        super().__init__()
        self.session = session
        self.cart = cart
        self.client = client
        self.sub_title = header_sub_title
        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar(self.session, self.cart)
        yield Header()
        yield Footer(show_command_palette=False)

    def on_mount(self) -> None:
        self.app.title = APP_TITLE

    @on(ScreenResume)
    async def handle_sidebar_resume(self) -> None:
        for sidebar in self.query(Sidebar):
            await sidebar.rebuild()

    async def on_resize(self, event: Resize) -> None:
        min_width = 80
        min_height = 24
        too_small = event.size.width < min_width or event.size.height < min_height
        if too_small and not isinstance(self.app.screen, ResizeScreenPromptModal):
            self.app.push_screen(ResizeScreenPromptModal(min_width, min_height))

    async def report_failure(self, err: Exception, fallback: str) -> None:
        await report_failure(self, self.session, err, fallback)

    @work()
    async def action_quit(self) -> None:
        await self.app.push_screen_wait(QuitDialogModal())


async def report_failure(
    node: App | Widget, session: SessionStore, err: Exception, fallback: str
) -> None:
    """
    Turn a failed action into a notification on ``node``.

    401 and dead sessions sign the user out (the app then shows the
    login screen); transport errors get ``fallback``; API and validation
    errors show their own message.
    """
    if isinstance(err, UnauthorizedError) or isinstance(err, SessionError):
        _logger.info(f"Session no longer valid: {err}")
        if session.is_authenticated:
            await session.logout()
        node.notify("Your session has expired. Please sign in again.", severity="error")
    elif isinstance(err, NetworkError):
        node.notify(fallback, severity="error")
    elif isinstance(err, (ApiError, ValidationError)):
        node.notify(err.message, severity="error")
    else:
        raise err


async def gather_or_cancel(*aws):
    """asyncio.gather that cancels the siblings when one fails."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise
