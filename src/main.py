from typing import Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.events import AppFocus
from textual.timer import Timer
from textual.widgets import LoadingIndicator

from api.client import PortalClient
from state.cart import CartStore
from state.session import SessionStore
from state.storage import LocalStorage
from utils.config import Settings
from utils.logger import get_logger
from utils.messages import (
    LogoutRequestedMessage,
    QuitRequestedMessage,
    SessionChangedMessage,
)
from views.base_screen import MODE_TITLES, Sidebar, menu_for
from views.scr_admin_users import AdminUsersScreen
from views.scr_cart import CartScreen
from views.scr_login import LoginScreen
from views.scr_notifications import NotificationsScreen
from views.scr_orders import OrdersScreen
from views.scr_products import ProductsScreen
from views.scr_reports import ReportsScreen

_logger = get_logger("portal")

HOME_MODE = "orders"


class PortalApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/orders.tcss",
        "styles/products.tcss",
        "styles/cart.tcss",
        "styles/reports.tcss",
        "styles/admin.tcss",
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[PortalClient] = None,
    ):
        super().__init__()
        self.settings = settings or Settings.from_env()
        self.client = client or PortalClient(
            self.settings.api_base_url, timeout=self.settings.api_timeout
        )
        self.session = SessionStore(
            LocalStorage(self.settings.storage_path), self.client
        )
        self.cart = CartStore()

        self._login_active = False
        self._session_refresh: Optional[Timer] = None

        # screens get the stores injected, never reach for the app
        session, cart, api, cfg = self.session, self.cart, self.client, self.settings
        self.add_mode(
            "orders",
            lambda: OrdersScreen(session, cart, api, cfg.orders_refresh_interval),
        )
        self.add_mode("products", lambda: ProductsScreen(session, cart, api))
        self.add_mode("cart", lambda: CartScreen(session, cart, api))
        self.add_mode(
            "reports", lambda: ReportsScreen(session, cart, api, cfg.download_dir)
        )
        self.add_mode("notifications", lambda: NotificationsScreen(session, cart, api))
        self.add_mode(
            "admin_users",
            lambda: AdminUsersScreen(session, cart, api, cfg.download_dir),
        )

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        _logger.info(f"Portal API at {self.settings.api_base_url}")
        self.session.subscribe(self.cart.handle_token_change)
        self.session.subscribe(
            lambda token: self.post_message(SessionChangedMessage(token))
        )
        self._session_refresh = self.set_interval(
            self.settings.session_refresh_interval, self.refresh_session, pause=True
        )
        self.main_flow(restore=True)

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @work(exclusive=True, group="session-refresh")
    async def refresh_session(self) -> None:
        await self.session.refresh_session()

    def on_app_focus(self, event: AppFocus) -> None:
        if self.session.is_authenticated:
            self.refresh_session()

    @on(SessionChangedMessage)
    async def handle_session_changed(self, message: SessionChangedMessage) -> None:
        if message.token is None:
            if self._session_refresh is not None:
                self._session_refresh.pause()
            if not self._login_active:
                self.main_flow()
            return

        if self._session_refresh is not None:
            self._session_refresh.resume()
        for sidebar in self.screen.query(Sidebar):
            await sidebar.rebuild()
        # the role may have changed under the current page
        allowed = [mode for mode, _ in menu_for(self.session)]
        if self.current_mode in MODE_TITLES and self.current_mode not in allowed:
            await self.switch_mode(HOME_MODE)

    @on(LogoutRequestedMessage)
    @work
    async def handle_user_logout(self):
        await self.session.logout()
        self.notify("Logout successful.")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        self.session.close()
        await self.client.aclose()
        self.exit()

    @work(exclusive=True, group="main-flow")
    async def main_flow(self, restore: bool = False):
        if restore and await self.session.restore():
            self.notify(f"Welcome back {self.session.user.label}!")

        if not self.session.is_authenticated:
            self._login_active = True
            try:
                # land on a page every role may see before asking for credentials
                if self.current_mode in MODE_TITLES:
                    await self.switch_mode(HOME_MODE)
                await self.push_screen_wait(
                    LoginScreen(
                        self.session,
                        self.cart,
                        self.client,
                        google_enabled=self.settings.google_enabled,
                    )
                )
            finally:
                self._login_active = False

        if self.current_mode != HOME_MODE:
            await self.switch_mode(HOME_MODE)


def main() -> None:
    PortalApp().run()


if __name__ == "__main__":
    main()
