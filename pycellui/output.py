"""Terminal output formatting for the pycellui CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape


class OutputFormatter:
    """Renders user-facing messages with rich.

    In JSON mode, only ``output_json`` and errors are printed, so stdout
    stays machine-readable. In quiet mode informational messages are
    suppressed but warnings, errors and JSON still go through.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit JSON instead of human-readable text
            quiet: Suppress non-essential output
            console: Console for regular output (defaults to stdout)
            err_console: Console for warnings and errors (defaults to stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(soft_wrap=True, highlight=False)
        self.err_console = err_console or Console(
            stderr=True, soft_wrap=True, highlight=False
        )

    @property
    def silent(self) -> bool:
        """True when human-readable chatter should be suppressed."""
        return self.quiet or self.json_output

    def print(self, message: str = "", style: Optional[str] = None) -> None:
        """Print a plain message."""
        if self.silent:
            return
        self.console.print(escape(message), style=style)

    def info(self, message: str) -> None:
        """Print an informational message."""
        self.print(message)

    def dim(self, message: str) -> None:
        """Print a secondary message."""
        self.print(message, style="dim")

    def heading(self, message: str) -> None:
        """Print a bold heading."""
        self.print(message, style="bold")

    def success(self, message: str) -> None:
        """Print a success message."""
        self.print(message, style="green")

    def hint(self, message: str) -> None:
        """Print a command suggestion."""
        self.print(message, style="cyan")

    def warning(self, message: str) -> None:
        """Print a warning to stderr (suppressed in JSON mode)."""
        if self.json_output:
            return
        self.err_console.print(escape(message), style="yellow")

    def error(self, message: str, hint: Optional[str] = None) -> None:
        """Print an error and an optional remediation hint to stderr."""
        self.err_console.print(f"Error: {escape(message)}", style="red")
        if hint:
            self.err_console.print(escape(hint), style="dim")

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON to stdout."""
        self.console.print(
            json.dumps(data, indent=2), markup=False, highlight=False, soft_wrap=True
        )

    def print_diff(self, diff: str, indent: str = "    ") -> None:
        """Print a unified diff with colors, skipping the file headers."""
        if self.silent:
            return
        for line in diff.splitlines():
            if line.startswith(("+++", "---")):
                continue
            if line.startswith("+"):
                style: Optional[str] = "green"
            elif line.startswith("-"):
                style = "red"
            elif line.startswith("@@"):
                style = "cyan"
            elif line.strip():
                style = "dim"
            else:
                continue
            self.console.print(f"{indent}{escape(line)}", style=style)
