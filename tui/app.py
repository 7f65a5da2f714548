"""
Main Textual application for Copy Sweeper.
"""
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, ScrollableContainer
from textual.widgets import Header, Footer, Button, Static, Input, Label, ListView, ListItem, Checkbox
from textual.binding import Binding
from textual.message import Message
from textual.screen import Screen
import os
import logging
from typing import List, Optional, Set, Tuple

from core.models import AppConfig, CopyCandidate, HashState, ScanProgress, ScanSnapshot
from core.session import SweepSession
from core.file_ops import FileOperations
from core.errors import WatchError

logger = logging.getLogger(__name__)


class SnapshotUpdated(Message):
    """A fresh scan snapshot was published by the session."""

    def __init__(self, snapshot: ScanSnapshot):
        super().__init__()
        self.snapshot = snapshot


class WatchFailed(Message):
    """The running watch stopped with an error."""

    def __init__(self, error: WatchError):
        super().__init__()
        self.error = error


class RootInputScreen(Screen):
    """Asks for the directory tree to sweep; dismisses with the path or None."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("📁 Copy Sweeper", classes="header"),
            Label(""),
            Label("Folder to search for copies:"),
            Input(placeholder="Enter directory path...", id="dir-input"),
            Horizontal(
                Button("Open", id="open-btn", variant="primary"),
                Button("Cancel", id="cancel-btn"),
            ),
        )

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._submit(event.value)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "open-btn":
            self._submit(self.query_one("#dir-input", Input).value)
        elif event.button.id == "cancel-btn":
            self.dismiss(None)

    def _submit(self, value: str) -> None:
        path = value.strip()
        if path and os.path.isdir(path):
            self.dismiss(os.path.abspath(path))
        else:
            self.app.push_screen(MessageScreen("Error", "Invalid or non-existent directory path."))


class SnapshotScreen(Screen):
    """Base for screens that redraw on every published snapshot."""

    def __init__(self, session: SweepSession):
        super().__init__()
        self.session = session
        self.ready = False

    async def on_mount(self) -> None:
        self.ready = True
        if self.session.snapshot is not None:
            await self.show_snapshot(self.session.snapshot)

    async def show_snapshot(self, snapshot: ScanSnapshot) -> None:
        raise NotImplementedError


class BrowserScreen(SnapshotScreen):
    """Lists copy candidates and deletes the selected ones."""

    BINDINGS = [
        Binding("space", "toggle_selection", "Toggle Selection"),
        Binding("a", "select_all", "Select Deletable"),
        Binding("n", "deselect_all", "Deselect All"),
        Binding("h", "check_hash", "Check Hash"),
        Binding("d", "delete_selected", "Delete Selected"),
        Binding("f", "folders", "Folders"),
        Binding("q", "app.quit", "Quit"),
    ]

    def __init__(self, session: SweepSession):
        super().__init__(session)
        self.selected_paths: Set[str] = set()
        self.shown: List[CopyCandidate] = []
        self.search_text = ""

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Static("🔍 Copies", classes="header"),
            Label("", id="root-label", markup=False),
            Label("", id="stats-label"),
            Label("", id="selected-label"),
            Input(placeholder="Filter by name or path...", id="search-input"),
            Checkbox("Strict: only delete identical content", value=self.session.config.strict, id="strict-chk"),
            ScrollableContainer(
                ListView(id="candidate-list"),
                id="candidate-scroll"
            ),
            Horizontal(
                Button("📂 Change Folder", id="root-btn"),
                Button("🗂  Folders", id="folders-btn"),
                Button("#  Check Hash", id="hash-btn"),
                Button("🗑  Delete Selected", id="delete-btn", variant="error", disabled=True),
            ),
        )
        yield Footer()

    async def show_snapshot(self, snapshot: ScanSnapshot) -> None:
        """Replace the list; selections survive only for paths still present."""
        present = set(snapshot.paths())
        self.selected_paths &= present
        self.query_one("#root-label", Label).update(snapshot.root)
        await self._rebuild_list()

    async def _rebuild_list(self) -> None:
        snapshot = self.session.snapshot
        self.shown = snapshot.search(self.search_text) if snapshot else []
        list_view = self.query_one("#candidate-list", ListView)
        await list_view.clear()
        await list_view.extend([ListItem(Label(self._describe(c), markup=False)) for c in self.shown])
        self._update_stats()

    def _describe(self, candidate: CopyCandidate) -> str:
        mark = "☑" if candidate.path in self.selected_paths else "☐"
        original = "found" if candidate.original_exists else "missing"
        relative = os.path.relpath(candidate.path, self.session.snapshot.root)
        return (f"{mark} {relative}  {FileOperations.format_size(candidate.size)}  "
                f"Original: {original}  Hash: {candidate.hash_state.value}")

    def _update_stats(self) -> None:
        snapshot = self.session.snapshot
        if snapshot and len(snapshot):
            self.query_one("#stats-label", Label).update(
                f"{len(snapshot)} copies · Potential save: {FileOperations.format_size(snapshot.total_reclaimable)}"
            )
        else:
            self.query_one("#stats-label", Label).update("No copies found")

        selected = [snapshot.get(p) for p in self.selected_paths] if snapshot else []
        selected_bytes = sum(c.size for c in selected if c is not None)
        self.query_one("#selected-label", Label).update(
            f"{len(self.selected_paths)} selected · {FileOperations.format_size(selected_bytes)}"
            if self.selected_paths else ""
        )
        self.query_one("#delete-btn", Button).disabled = not self.selected_paths

    def _highlighted(self) -> Optional[CopyCandidate]:
        index = self.query_one("#candidate-list", ListView).index
        if index is None or index >= len(self.shown):
            return None
        return self.shown[index]

    def _refresh_item(self, candidate: CopyCandidate) -> None:
        list_view = self.query_one("#candidate-list", ListView)
        index = self.shown.index(candidate)
        list_view.children[index].query_one(Label).update(self._describe(candidate))

    async def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            self.search_text = event.value
            await self._rebuild_list()

    def on_checkbox_changed(self, event: Checkbox.Changed) -> None:
        if event.checkbox.id == "strict-chk":
            self.session.config.strict = event.value

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        self.action_toggle_selection()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "root-btn":
            self.app.action_choose_root()
        elif event.button.id == "folders-btn":
            self.action_folders()
        elif event.button.id == "hash-btn":
            self.action_check_hash()
        elif event.button.id == "delete-btn":
            self.action_delete_selected()

    def action_toggle_selection(self) -> None:
        candidate = self._highlighted()
        if candidate is None:
            return
        if candidate.path in self.selected_paths:
            self.selected_paths.discard(candidate.path)
        else:
            self.selected_paths.add(candidate.path)
        self._refresh_item(candidate)
        self._update_stats()

    async def action_select_all(self) -> None:
        self.selected_paths = {c.path for c in self.shown if c.deletable}
        await self._rebuild_list()

    async def action_deselect_all(self) -> None:
        self.selected_paths.clear()
        await self._rebuild_list()

    def action_folders(self) -> None:
        self.app.push_screen(FoldersScreen(self.session))

    def action_check_hash(self) -> None:
        candidate = self._highlighted()
        if candidate is None or not candidate.deletable:
            return
        candidate.hash_state = HashState.COMPUTING
        self._refresh_item(candidate)
        self.run_worker(self._check_hash(candidate))

    async def _check_hash(self, candidate: CopyCandidate) -> None:
        await self.session.check_hash(candidate)
        if candidate in self.shown:
            self._refresh_item(candidate)

    def action_delete_selected(self) -> None:
        if not self.selected_paths:
            return
        paths = sorted(self.selected_paths)

        def confirmed(proceed: bool) -> None:
            if proceed:
                self.run_worker(self._delete(paths))

        self.app.push_screen(
            ConfirmationScreen(self.session.config, len(paths), FileOperations.get_total_size(paths)),
            confirmed
        )

    async def _delete(self, paths: List[str]) -> None:
        result = await self.session.delete_selected(paths)
        self.selected_paths.clear()
        await self._rebuild_list()
        self.app.push_screen(MessageScreen("Complete", describe_result(result)))


class FoldersScreen(SnapshotScreen):
    """Per-folder totals of deletable copies."""

    BINDINGS = [
        Binding("escape", "back", "Back"),
        Binding("d", "delete_folder", "Delete Folder Copies"),
    ]

    def __init__(self, session: SweepSession):
        super().__init__(session)
        self.folders: List[str] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(
            Static("🗂  Folders", classes="header"),
            Label("Folders containing deletable copies"),
            ScrollableContainer(
                ListView(id="folder-list"),
                id="folder-scroll"
            ),
            Horizontal(
                Button("← Back", id="back-btn"),
                Button("🗑  Delete Folder Copies", id="delete-folder-btn", variant="error"),
            ),
        )
        yield Footer()

    async def show_snapshot(self, snapshot: ScanSnapshot) -> None:
        aggregates = snapshot.folder_aggregates()
        self.folders = list(aggregates)
        items = []
        for aggregate in aggregates.values():
            relative = os.path.relpath(aggregate.directory, snapshot.root)
            label = "(root)" if relative == os.curdir else relative
            items.append(ListItem(Label(
                f"{label}  {aggregate.count} · {FileOperations.format_size(aggregate.total_bytes)}",
                markup=False
            )))
        list_view = self.query_one("#folder-list", ListView)
        await list_view.clear()
        await list_view.extend(items)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "back-btn":
            self.action_back()
        elif event.button.id == "delete-folder-btn":
            self.action_delete_folder()

    def action_back(self) -> None:
        self.app.pop_screen()

    def action_delete_folder(self) -> None:
        index = self.query_one("#folder-list", ListView).index
        if index is None or index >= len(self.folders):
            self.app.push_screen(MessageScreen("No Selection", "No deletable copies in this folder."))
            return
        folder = self.folders[index]
        count, total_bytes = subtree_totals(self.session.snapshot, folder)

        def confirmed(proceed: bool) -> None:
            if proceed:
                self.run_worker(self._delete(folder))

        self.app.push_screen(
            ConfirmationScreen(self.session.config, count, total_bytes, folder=folder),
            confirmed
        )

    async def _delete(self, folder: str) -> None:
        result = await self.session.delete_folder_copies(folder)
        self.app.push_screen(MessageScreen("Complete", describe_result(result)))


class ConfirmationScreen(Screen):
    """Final confirmation before trashing; dismisses with True to proceed."""

    def __init__(self, config: AppConfig, file_count: int, total_size: int, folder: Optional[str] = None):
        super().__init__()
        self.config = config
        self.file_count = file_count
        self.total_size = total_size
        self.folder = folder

    def compose(self) -> ComposeResult:
        dry_run_str = " [DRY RUN - Nothing will be deleted]" if self.config.dry_run else ""
        check = "originals must exist and match byte for byte" if self.config.strict else "originals must exist"

        yield Container(
            Static(f"⚠️  Final Confirmation{dry_run_str}", classes="header", markup=False),
            Label(""),
            Label("Ready to move to trash:", classes="highlight-count"),
            Label(f"  • {self.file_count} files", classes="stat-value"),
            Label(f"  • Total size: {FileOperations.format_size(self.total_size)}", classes="highlight-size"),
            Label(f"  • In: {self.folder}" if self.folder else "", markup=False),
            Label(""),
            Label(f"Every file is checked again first: {check}."),
            Label(""),
            Horizontal(
                Button("← Back", id="back-btn"),
                Button("✓ Move To Trash", id="proceed-btn", variant="primary"),
            ),
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "proceed-btn")


class MessageScreen(Screen):
    """Simple message display screen."""

    def __init__(self, heading: str, message: str):
        super().__init__()
        self.heading = heading
        self.message = message

    def compose(self) -> ComposeResult:
        yield Container(
            Static(self.heading, classes="header"),
            Label(""),
            Label(self.message, markup=False),
            Label(""),
            Button("OK", id="ok-btn", variant="primary"),
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.app.pop_screen()


def subtree_totals(snapshot: ScanSnapshot, folder: str) -> Tuple[int, int]:
    """Count and bytes of deletable copies in `folder` and every folder below it."""
    copies = [c for c in snapshot.in_folder(folder) if c.deletable]
    return len(copies), sum(c.size for c in copies)


def describe_result(result) -> str:
    """Summary line for a DeletionResult."""
    message = f"{'[DRY RUN] Would delete' if result.dry_run else 'Deleted'} {result.deleted_count} files"
    if result.rejected:
        message += f"\n{len(result.rejected)} files kept: original missing or content differs"
    if result.failures:
        message += f"\n{result.failed_count} files failed"
    return message


class CopySweepApp(App):
    """Main application."""

    CSS_PATH = "styles.tcss"
    TITLE = "Copy Sweeper"

    def __init__(self, config: AppConfig, session: Optional[SweepSession] = None):
        super().__init__()
        self.config = config
        self.session = session or SweepSession(config)
        self.session.index.progress_callback = self._scan_progress
        self.browser: Optional[BrowserScreen] = None
        self.session.subscribe(lambda snapshot: self.post_message(SnapshotUpdated(snapshot)))
        self.session.subscribe_errors(lambda error: self.post_message(WatchFailed(error)))

    def on_mount(self) -> None:
        if self.config.root:
            self.run_worker(self.open_root(self.config.root))
        else:
            self.action_choose_root()

    def action_choose_root(self) -> None:
        self.push_screen(RootInputScreen(), self._root_chosen)

    def _root_chosen(self, root: Optional[str]) -> None:
        if root:
            self.run_worker(self.open_root(root), exclusive=True)
        elif self.browser is None:
            self.exit()

    def _scan_progress(self, progress: ScanProgress) -> None:
        """Scans run in a worker thread; hand progress to the UI thread."""
        self.call_from_thread(self._show_progress, progress.directories_scanned, progress.candidates_found)

    def _show_progress(self, directories: int, candidates: int) -> None:
        self.sub_title = f"{directories} folders scanned · {candidates} copies"

    async def open_root(self, root: str) -> None:
        """Start watching a root, scan it and show the browser."""
        error = None
        try:
            await self.session.open(root)
        except WatchError as e:
            logger.error(f"Watch failed: {e}")
            error = e

        if self.browser is None:
            self.browser = BrowserScreen(self.session)
            self.push_screen(self.browser)
        if error is not None:
            self._show_watch_error(error)

    def _show_watch_error(self, error: WatchError) -> None:
        self.push_screen(MessageScreen("Watch Unavailable", f"{error}\nThe list will not refresh on its own."))

    def on_watch_failed(self, message: WatchFailed) -> None:
        self._show_watch_error(message.error)

    async def on_snapshot_updated(self, message: SnapshotUpdated) -> None:
        for screen in self.screen_stack:
            if isinstance(screen, SnapshotScreen) and screen.ready:
                await screen.show_snapshot(message.snapshot)

    async def on_unmount(self) -> None:
        await self.session.close()
