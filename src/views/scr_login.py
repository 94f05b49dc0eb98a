from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from api import endpoints
from api.client import PortalClient
from api.errors import NetworkError, PortalError
from state.cart import CartStore
from state.errors import SessionError
from state.session import SessionStore
from utils.forms import (
    ValidationError,
    validate_google_credential,
    validate_login,
    validate_registration,
)
from utils.logger import get_logger
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Dismissed once a session has been established.
    """

    def __init__(
        self,
        session: SessionStore,
        cart: CartStore,
        client: PortalClient,
        google_enabled: bool = False,
    ):
        super().__init__(
            session, cart, client, header_sub_title="Sign in", show_sidebar=False
        )
        self.google_enabled = google_enabled

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Username")
                    yield Input(placeholder="store.manager", id="input-login-uid")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    yield Label("", id="label-login-error", classes="form-error")
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Full name (optional)")
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label("Username")
                    yield Input(placeholder="jane.doe", id="input-reg-uid")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd"
                    )
                    yield Label("Confirm password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd2"
                    )
                    yield Label("", id="label-reg-error", classes="form-error")
                    with Container(id="div-reg-btns"):
                        yield Button("Register", id="btn-reg", variant="primary")

            if self.google_enabled:
                with TabPane("Google", id="tab-google"):
                    with Vertical(id="div-google"):
                        yield Label("Paste the ID token issued by Google sign-in")
                        yield Input(
                            placeholder="eyJhbGciOi...", id="input-google-credential"
                        )
                        yield Label("", id="label-google-error", classes="form-error")
                        with Container(id="div-google-btns"):
                            yield Button(
                                "Sign in with Google",
                                id="btn-google",
                                variant="primary",
                            )

    def on_mount(self):
        self.query_one("#input-login-uid").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-reg-pwd2"):
            self.handle_registration_submit()

    def show_error(self, label_id: str, message: str) -> None:
        self.query_one(label_id, Label).update(message)

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        self.show_error("#label-login-error", "")
        input_login_pwd = self.query_one("#input-login-pwd", Input)
        try:
            username, password = validate_login(
                self.query_one("#input-login-uid", Input).value,
                input_login_pwd.value,
            )
            token = await endpoints.login(self.client, username, password)
            user = await self.session.login(token)
        except NetworkError:
            self.show_error("#label-login-error", "Unable to sign in right now")
            return
        except (PortalError, SessionError, ValidationError) as err:
            self.show_error("#label-login-error", str(err))
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")
            return

        self.notify(f"Hello {user.label}!")
        self.dismiss()

    @on(Button.Pressed, "#btn-google")
    @work(exclusive=True)
    async def handle_google_submit(self) -> None:
        self.show_error("#label-google-error", "")
        try:
            credential = validate_google_credential(
                self.query_one("#input-google-credential", Input).value
            )
            token = await endpoints.login_with_google(self.client, credential)
            user = await self.session.login(token)
        except NetworkError:
            self.show_error(
                "#label-google-error", "Unable to sign in with Google right now"
            )
            return
        except (PortalError, SessionError, ValidationError) as err:
            self.show_error("#label-google-error", str(err))
            return

        self.notify(f"Hello {user.label}!")
        self.dismiss()

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        self.show_error("#label-reg-error", "")
        try:
            reg = validate_registration(
                self.query_one("#input-reg-uid", Input).value,
                self.query_one("#input-reg-email", Input).value,
                self.query_one("#input-reg-pwd", Input).value,
                self.query_one("#input-reg-pwd2", Input).value,
                self.query_one("#input-reg-name", Input).value,
            )
            account = await endpoints.register(
                self.client, reg.username, reg.password, reg.email, reg.full_name
            )
            _logger.info(f"Registered {account.username} as {account.role.value}")
            token = await endpoints.login(self.client, reg.username, reg.password)
            user = await self.session.login(token)
        except NetworkError:
            self.show_error("#label-reg-error", "Unable to register right now")
            return
        except (PortalError, SessionError, ValidationError) as err:
            self.show_error("#label-reg-error", str(err))
            return

        self.notify(f"Registration successful. Welcome {user.label}!")
        self.dismiss()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
