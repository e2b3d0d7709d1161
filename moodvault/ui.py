# -*- coding: utf-8 -*-
"""Textual UI for MoodVault.

This file contains ONLY the UI: screens, modals, and the App wrapper. It
expects the backend (moodvault.logic) to expose:
    - load_config(), configure_logging()
    - init_db(), add_entry(), list_entries(), delete_entry()
    - export_backup(), import_backup(), clear_all_data()

Backup failures are shown with the error's ``user_message`` so a wrong
passcode and a corrupted file always read the same.
"""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen, Screen
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    Static,
)

from moodvault.errors import BackupError
from moodvault.snapshot import SnapshotStatistics
from moodvault.logic import (
    add_entry,
    clear_all_data,
    configure_logging,
    delete_entry,
    export_backup,
    import_backup,
    init_db,
    list_entries,
)

APP_CSS = """
#modal-card {
    width: 72;
    height: auto;
    padding: 1 2;
    border: round $accent;
}
.title {
    text-style: bold;
    content-align: center middle;
}
.hint {
    color: $text-muted;
}
"""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fmt_ms(ms: int) -> str:
    """Render an epoch-millisecond UTC time as local 'YYYY-mm-dd HH:MM'."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc).astimezone()
    return dt.strftime("%Y-%m-%d %H:%M")


def _describe(stats: SnapshotStatistics) -> str:
    """One-line summary such as '3 entries, 2 tags (2023-11-14 .. 2023-11-15)'."""
    text = f"{stats.record_count} entries, {stats.category_count} tags"
    if stats.first_timestamp is not None and stats.last_timestamp is not None:
        first = _fmt_ms(stats.first_timestamp)[:10]
        last = _fmt_ms(stats.last_timestamp)[:10]
        text += f" ({first} .. {last})"
    return text


def _backup_error_text(exc: Exception) -> str:
    if isinstance(exc, BackupError):
        return exc.user_message
    return str(exc)


# ---------------------------------------------------------------------------
# Modals
# ---------------------------------------------------------------------------

class AddEntryModal(ModalScreen[None]):
    """Capture a mood score with an optional note and tags."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("NEW ENTRY", classes="title"),
            Input(placeholder="mood score (1-10)", id="score"),
            Input(placeholder="note (optional)", id="note"),
            Input(placeholder="tags, comma separated", id="tags"),
            Horizontal(Button("Save", id="save", classes="-primary"), Button("Close", id="close")),
            id="modal-card",
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id or ""
        if bid == "save":
            raw_score = self.query_one("#score", Input).value.strip()
            note = self.query_one("#note", Input).value.strip()
            tags = self.query_one("#tags", Input).value.split(",")
            try:
                score = int(raw_score)
            except ValueError:
                self.app.notify("Mood score must be a number")
                return
            try:
                await add_entry(score, note or None, tags)
            except ValueError as exc:
                self.app.notify(str(exc))
                return
            self.app.notify("Entry saved")
            self.dismiss(None)
        elif bid == "close":
            self.dismiss(None)


class ExportModal(ModalScreen[None]):
    """Ask for a passcode (twice) and write an encrypted backup file."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("EXPORT BACKUP", classes="title"),
            Static("Keep this passcode safe: it cannot be recovered.", classes="hint"),
            Input(placeholder="passcode", password=True, id="p1"),
            Input(placeholder="confirm passcode", password=True, id="p2"),
            Input(placeholder="folder (blank = configured default)", id="dir"),
            Horizontal(Button("Export", id="export", classes="-primary"), Button("Close", id="close")),
            id="modal-card",
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id or ""
        if bid == "export":
            p1 = self.query_one("#p1", Input).value
            p2 = self.query_one("#p2", Input).value
            folder = self.query_one("#dir", Input).value.strip()
            if not p1 or p1 != p2:
                self.app.notify("Passcodes are empty or do not match")
                return
            if len(p1) < 8:
                self.app.notify("Short passcodes are easy to guess", severity="warning")
            try:
                result = await export_backup(p1, Path(folder) if folder else None)
            except (BackupError, OSError) as exc:
                self.app.notify(_backup_error_text(exc), severity="error")
                return
            self.app.notify(f"Backed up {_describe(result.statistics)} to {result.path}")
            self.dismiss(None)
        elif bid == "close":
            self.dismiss(None)


class ImportModal(ModalScreen[None]):
    """Restore entries from an encrypted backup file."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("IMPORT BACKUP", classes="title"),
            Input(placeholder="path to .bak file", id="path"),
            Input(placeholder="passcode", password=True, id="p"),
            Horizontal(Button("Import", id="import", classes="-primary"), Button("Close", id="close")),
            id="modal-card",
        )

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id or ""
        if bid == "import":
            path = self.query_one("#path", Input).value.strip()
            passcode = self.query_one("#p", Input).value
            if not path or not passcode:
                self.app.notify("Path and passcode required")
                return
            try:
                result = await import_backup(Path(path), passcode)
            except (BackupError, OSError) as exc:
                self.app.notify(_backup_error_text(exc), severity="error")
                return
            msg = f"Imported {result.imported_count} entries from a backup of {_describe(result.snapshot.statistics())}"
            if result.dropped_associations:
                msg += f" ({len(result.dropped_associations)} broken tag links skipped)"
            self.app.notify(msg)
            self.dismiss(None)
        elif bid == "close":
            self.dismiss(None)


class ConfirmModal(ModalScreen[bool]):
    """Yes/no confirmation for destructive actions."""

    def __init__(self, question: str) -> None:
        super().__init__()
        self.question = question

    def compose(self) -> ComposeResult:
        yield Container(
            Static(self.question, classes="title"),
            Static("This cannot be undone."),
            Horizontal(Button("Delete", id="yes", classes="-primary"), Button("Cancel", id="no")),
            id="modal-card",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss((event.button.id or "") == "yes")


# ---------------------------------------------------------------------------
# Screens
# ---------------------------------------------------------------------------

class JournalHomeScreen(Screen):
    """Entry list plus backup actions."""

    BINDINGS = [
        Binding("n", "add_entry", "New"),
        Binding("e", "export", "Export"),
        Binding("i", "import", "Import"),
        Binding("x", "clear_all", "Clear all"),
        Binding("escape", "app.quit", "Quit"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        self.list_view = ListView()
        yield self.list_view
        yield Horizontal(
            Button("New Entry", id="new", classes="-primary"),
            Button("Export", id="export"),
            Button("Import", id="import"),
            Button("Clear All", id="clear"),
        )
        yield Footer()

    async def on_mount(self) -> None:
        await self.refresh_list()

    async def refresh_list(self) -> None:
        await self.list_view.clear()
        for eid, ts, score, note, tag_names in await list_entries():
            text = f"{_fmt_ms(ts)}  {score:>2}/10  {note or ''}"
            if tag_names:
                text += f"  [{tag_names}]"
            item = ListItem(Label(text, markup=False))
            item.data = eid
            self.list_view.append(item)

    async def _refresh_after(self, _result: object = None) -> None:
        await self.refresh_list()

    def action_add_entry(self) -> None:
        self.app.push_screen(AddEntryModal(), self._refresh_after)

    def action_export(self) -> None:
        self.app.push_screen(ExportModal())

    def action_import(self) -> None:
        self.app.push_screen(ImportModal(), self._refresh_after)

    async def on_list_view_selected(self, message: ListView.Selected) -> None:
        entry_id = message.item.data

        async def _maybe_delete(confirmed: bool) -> None:
            if confirmed:
                await delete_entry(entry_id)
                self.app.notify("Entry deleted")
                await self.refresh_list()

        self.app.push_screen(ConfirmModal("DELETE ENTRY?"), _maybe_delete)

    def action_clear_all(self) -> None:
        async def _maybe_clear(confirmed: bool) -> None:
            if confirmed:
                copy = await clear_all_data()
                self.app.notify(f"All entries deleted (copy kept at {copy})" if copy else "All entries deleted")
                await self.refresh_list()

        self.app.push_screen(ConfirmModal("DELETE ALL ENTRIES AND TAGS?"), _maybe_clear)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = event.button.id or ""
        if bid == "new":
            self.action_add_entry()
        elif bid == "export":
            self.action_export()
        elif bid == "import":
            self.action_import()
        elif bid == "clear":
            self.action_clear_all()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

class MoodVaultApp(App):
    """Textual App wrapper. Sets up logging and the DB, then shows the journal."""

    TITLE = "MoodVault"
    CSS = APP_CSS

    async def on_mount(self) -> None:
        configure_logging()
        await init_db()
        await self.push_screen(JournalHomeScreen())
