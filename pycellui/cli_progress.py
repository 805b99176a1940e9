"""CLI progress display for sync operations.

This module provides a Rich-based display that renders the structured
events emitted by the sync engine through a SyncReporter.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

from .output import OutputFormatter
from .sync.progress import SyncEvent, SyncEventInfo, SyncReporter


class SyncProgressDisplay:
    """Rich-based progress display for add/update runs.

    A spinner shows the component currently being fetched, and one line
    is printed per finished component:

    - ``✓ Added button (button.tsx)``
    - ``- card: already installed (use --overwrite)``
    - ``✗ dialog: Component "dialog" not found in registry``

    Usage:
        >>> display = SyncProgressDisplay(out, verb="Added")
        >>> with display:
        ...     engine = SyncEngine(client, target, reporter=display.create_reporter())
        ...     engine.add(["button"])
    """

    def __init__(self, out: OutputFormatter, verb: str = "Added") -> None:
        """Initialize the progress display.

        Args:
            out: Output formatter
            verb: Past-tense verb for installed components ("Added", "Updated")
        """
        self.out = out
        self.verb = verb
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def create_reporter(self) -> SyncReporter:
        """Create a SyncReporter that updates this display."""
        return SyncReporter(callback=self._handle_event)

    def __enter__(self) -> "SyncProgressDisplay":
        if not self.out.silent:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=self.out.console,
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task("Resolving components...", total=None)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    @contextmanager
    def paused(self) -> Iterator[None]:
        """Hide the spinner temporarily, e.g. while prompting the user."""
        if self._progress is None:
            yield
            return
        self._progress.stop()
        try:
            yield
        finally:
            self._progress.start()

    def _set_description(self, description: str) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, description=description)

    def _handle_event(self, info: SyncEventInfo) -> None:
        """Handle an event from the reporter."""
        if info.event == SyncEvent.RESOLVED:
            if info.components:
                self._set_description(
                    f"Resolved {len(info.components)} component(s)..."
                )

        elif info.event == SyncEvent.FETCHING:
            self._set_description(f"Fetching {info.component}...")

        elif info.event == SyncEvent.INSTALLED:
            files = ", ".join(info.files)
            suffix = f" ({files})" if files else ""
            self.out.success(f"✓ {self.verb} {info.component}{suffix}")
            if info.message:
                self.out.print(f"    {info.message}", style="yellow")

        elif info.event == SyncEvent.SKIPPED:
            self.out.dim(f"- {info.component}: {info.message}")

        elif info.event == SyncEvent.FAILED:
            if self.out.silent:
                self.out.warning(f"✗ {info.component}: {info.message}")
            else:
                self.out.print(f"✗ {info.component}: {info.message}", style="red")

        elif info.event == SyncEvent.WARNING:
            self.out.warning(f"⚠ {info.message}")
