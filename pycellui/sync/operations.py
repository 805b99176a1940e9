"""Filesystem operations for writing component files into a project."""

import logging
import os
import stat
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import ComponentWriteError
from ..models import ComponentData
from .content import rewrite_imports

logger = logging.getLogger(__name__)


@dataclass
class WriteOutcome:
    """Result of writing one component's files."""

    written: list[str] = field(default_factory=list)
    """Basenames successfully written"""

    errors: list[ComponentWriteError] = field(default_factory=list)
    """Per-file write failures"""


class SyncOperations:
    """Writes fetched components into a components directory."""

    def __init__(self, aliases: Optional[Mapping[str, str]] = None):
        """Initialize sync operations.

        Args:
            aliases: Consumer import aliases applied to every written file
        """
        self.aliases = dict(aliases or {})

    def write_component(
        self,
        component: ComponentData,
        target_dir: Path,
        overwrite: bool = False,
    ) -> WriteOutcome:
        """Write all files of a component, best effort.

        Every file is rewritten with the consumer's aliases and written
        independently. A file that already exists is left untouched unless
        ``overwrite`` is set; that failure does not stop the component's
        remaining files.

        Args:
            component: Fetched component
            target_dir: Components directory
            overwrite: Replace existing files

        Returns:
            WriteOutcome listing written files and per-file errors
        """
        outcome = WriteOutcome()
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            outcome.errors.append(
                ComponentWriteError(
                    f"Cannot create directory {target_dir}: {e}", path=str(target_dir)
                )
            )
            return outcome

        for component_file in component.files:
            target_path = target_dir / component_file.name
            if target_path.exists() and not overwrite:
                outcome.errors.append(
                    ComponentWriteError(
                        f"{component_file.name} already exists", path=str(target_path)
                    )
                )
                continue

            content = rewrite_imports(component_file.content, self.aliases)
            try:
                self.write_file(target_path, content)
            except OSError as e:
                outcome.errors.append(
                    ComponentWriteError(
                        f"Failed to write {component_file.name}: {e}",
                        path=str(target_path),
                    )
                )
                continue
            outcome.written.append(component_file.name)

        return outcome

    def write_file(self, target_path: Path, content: str) -> None:
        """Write text through a temporary sibling and rename it into place.

        A crash leaves either the old file or the new one, never a
        truncated file. The result keeps the mode of the file it replaces,
        or gets the umask default for a new file.
        """
        mode = _target_mode(target_path)
        fd, tmp_name = tempfile.mkstemp(
            dir=target_path.parent, prefix=f".{target_path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, target_path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
        logger.debug("Wrote %s", target_path)


def _target_mode(target_path: Path) -> int:
    """Permission bits for a file written to target_path."""
    try:
        return stat.S_IMODE(target_path.stat().st_mode)
    except FileNotFoundError:
        pass
    # os.umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask
