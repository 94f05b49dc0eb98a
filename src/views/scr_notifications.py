from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

from api import endpoints
from api.errors import PortalError
from api.models import NotificationEntry
from state.errors import SessionError
from utils.pure import format_datetime
from views.base_screen import BaseScreen

LIMIT_OPTIONS = [20, 30, 40, 50, 100]
DEFAULT_LIMIT = 30


class NotificationsScreen(BaseScreen):
    """
    Recent notification emails sent by the portal, newest first.
    """

    def __init__(self, session, cart, client) -> None:
        super().__init__(session, cart, client, header_sub_title="Notifications")
        self._entries: Dict[str, NotificationEntry] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-notifications-toolbar"):
                yield Select(
                    [(f"Last {n}", n) for n in LIMIT_OPTIONS],
                    value=DEFAULT_LIMIT,
                    allow_blank=False,
                    id="select-limit",
                )
                yield Button("Refresh", id="btn-refresh")
                yield Label("", id="label-latest")
            yield DataTable(id="table-notifications")
            yield MarkdownViewer(id="md-notification", show_table_of_contents=False)

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Sent", "Subject", "Recipients")

    @property
    def limit(self) -> int:
        value = self.query_one("#select-limit", Select).value
        return value if isinstance(value, int) else DEFAULT_LIMIT

    @on(ScreenResume)
    @on(Select.Changed, "#select-limit")
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True, group="notifications")
    async def load_notifications(self) -> None:
        if not self.session.is_authenticated:
            return
        try:
            token, _ = await self.session.require_auth()
            entries = await endpoints.list_notifications(
                self.client, token, limit=self.limit
            )
        except (PortalError, SessionError) as err:
            await self.report_failure(err, "Unable to load notifications right now")
            return

        self._entries = {e.id: e for e in entries}
        table = self.query_one(DataTable)
        table.clear()
        for e in entries:
            table.add_row(
                format_datetime(e.created_at), e.subject, e.recipients, key=e.id
            )

        stamps = [e.created_at for e in entries if e.created_at is not None]
        self.query_one("#label-latest", Label).update(
            f"Latest: {format_datetime(max(stamps))}" if stamps else "No notifications"
        )
        self._render_detail(entries[0] if entries else None)

    @on(DataTable.RowHighlighted, "#table-notifications")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None:
            self._render_detail(self._entries.get(event.row_key.value))

    def _render_detail(self, entry: Optional[NotificationEntry]) -> None:
        viewer = self.query_one("#md-notification", MarkdownViewer)
        if entry is None:
            viewer.document.update("")
            return
        viewer.document.update(
            f"### {entry.subject}\n\n"
            f"To: {entry.recipients}  \n"
            f"Sent: {format_datetime(entry.created_at)}\n\n"
            f"```\n{entry.body}\n```"
        )
