from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Markdown, Select

from api import endpoints
from api.errors import PortalError
from api.models import ManagedUser, UserMetrics, UserRole
from state.errors import SessionError
from state.permissions import is_admin
from state.users import UserDirectory
from utils.downloads import onboarding_filename, save_download
from utils.logger import get_logger
from utils.pure import format_datetime, generate_markdown_table
from views.base_screen import BaseScreen, gather_or_cancel

_logger = get_logger(__name__)

LOOKBACK_OPTIONS = [7, 30, 90]
DEFAULT_LOOKBACK = 30


def lookback_select(select_id: str) -> Select:
    return Select(
        [(f"Last {d} days", d) for d in LOOKBACK_OPTIONS],
        value=DEFAULT_LOOKBACK,
        allow_blank=False,
        id=select_id,
    )


def metrics_markdown(metrics: UserMetrics) -> str:
    rows = [
        ["Total users", str(metrics.total_users)],
        [f"Active in last {metrics.lookback_days} days", str(metrics.active_users)],
        [UserRole.STORE_USER.label, str(metrics.store_users)],
        [UserRole.APPROVER.label, str(metrics.approvers)],
        [UserRole.FULFILLMENT_AGENT.label, str(metrics.fulfillment_agents)],
        [UserRole.ADMIN.label, str(metrics.admins)],
    ]
    return generate_markdown_table(["Metric", "Users"], rows, ["l", "r"])


class AdminUsersScreen(BaseScreen):
    """
    Admin console: user metrics, the user directory with role changes,
    and the onboarding spreadsheet export.

    Role changes show immediately and are rolled back when the server refuses.
    """

    def __init__(self, session, cart, client, download_dir: str = ".") -> None:
        super().__init__(session, cart, client, header_sub_title="User Management")
        self.download_dir = download_dir
        self.directory = UserDirectory(on_change=self._render_users)
        self._selected_id: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-admin-toolbar"):
                yield lookback_select("select-metrics-days")
                yield Button("Refresh", id="btn-refresh")
            yield Markdown("", id="md-metrics")
            yield DataTable(id="table-users")
            with Horizontal(id="hort-role"):
                yield Label("", id="label-selected-user")
                yield Select(
                    [(r.label, r.value) for r in UserRole],
                    allow_blank=True,
                    prompt="Role",
                    id="select-role",
                )
                yield Button("Update role", id="btn-role", variant="warning")
            with Horizontal(id="hort-export"):
                yield lookback_select("select-export-days")
                yield Button("Export onboarding", id="btn-export", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns(
            "Username", "Name", "Email", "Role", "Provider", "Last login", "Logins"
        )

    @staticmethod
    def _days(select: Select) -> int:
        return select.value if isinstance(select.value, int) else DEFAULT_LOOKBACK

    @on(ScreenResume)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True, group="admin-users")
    async def load_all(self) -> None:
        user = self.session.user
        if user is None or not is_admin(user.role):
            return
        try:
            token, _ = await self.session.require_auth()
            users, metrics = await gather_or_cancel(
                endpoints.list_managed_users(self.client, token),
                endpoints.get_user_metrics(
                    self.client,
                    token,
                    days=self._days(self.query_one("#select-metrics-days", Select)),
                ),
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load users right now")
            return
        self.directory.replace_all(users)
        await self.query_one("#md-metrics", Markdown).update(metrics_markdown(metrics))

    @on(Select.Changed, "#select-metrics-days")
    @work(exclusive=True, group="admin-metrics")
    async def load_metrics(self) -> None:
        if not self.session.is_authenticated:
            return
        try:
            token, _ = await self.session.require_auth()
            metrics = await endpoints.get_user_metrics(
                self.client,
                token,
                days=self._days(self.query_one("#select-metrics-days", Select)),
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load user metrics right now")
            return
        await self.query_one("#md-metrics", Markdown).update(metrics_markdown(metrics))

    def _render_users(self) -> None:
        table = self.query_one("#table-users", DataTable)
        table.clear()
        for u in self.directory.users:
            table.add_row(
                u.username,
                u.full_name or "-",
                u.email or "-",
                u.role.label,
                u.auth_provider.value,
                format_datetime(u.last_login_at),
                u.login_count if u.login_count is not None else "-",
                key=u.id,
            )
        if self._selected_id is not None and self.directory.get(self._selected_id):
            table.move_cursor(row=table.get_row_index(self._selected_id))

    @on(DataTable.RowHighlighted, "#table-users")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        managed: Optional[ManagedUser] = self.directory.get(event.row_key.value)
        if managed is None:
            return
        self._selected_id = managed.id
        self.query_one("#label-selected-user", Label).update(managed.username)
        self.query_one("#select-role", Select).value = managed.role.value

    @on(Button.Pressed, "#btn-role")
    @work(exclusive=True, group="admin-role")
    async def handle_role_change(self) -> None:
        value = self.query_one("#select-role", Select).value
        if self._selected_id is None or not isinstance(value, str):
            self.notify("Select a user and a role first.", severity="warning")
            return
        role = UserRole(value)
        try:
            token, me = await self.session.require_auth()
            updated = await self.directory.change_role(
                self.client, token, self._selected_id, role
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to update the role right now")
            return
        if updated is None:
            self.notify("No change to apply.", severity="information")
            return

        self.notify(f"Role updated to {updated.role.label}")
        if updated.id == me.id or updated.username == me.username:
            await self.session.refresh_session()
        self.load_metrics()

    @on(Button.Pressed, "#btn-export")
    @work(exclusive=True, group="admin-export")
    async def handle_export(self) -> None:
        days = self._days(self.query_one("#select-export-days", Select))
        try:
            token, _ = await self.session.require_auth()
            data = await endpoints.download_onboarding_report(
                self.client, token, days=days
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(
                err, "Unable to export the onboarding report right now"
            )
            return
        try:
            path = await save_download(
                self.download_dir, onboarding_filename(days), data
            )
        except OSError as e:
            _logger.warning(f"Writing export failed: {e}")
            self.notify(f"Unable to save the export: {e.strerror}", severity="error")
            return
        self.notify(f"Saved {path}")
