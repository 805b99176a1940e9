"""Directory scanning utilities for installed components."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..utils import BARREL_FILE_NAMES, component_name_from_file, is_component_file

logger = logging.getLogger(__name__)


@dataclass
class LocalFile:
    """Represents an installed component file."""

    path: Path
    """Absolute path to the file"""

    file_name: str
    """Basename of the file"""

    @property
    def component_name(self) -> str:
        """File name without its source suffix."""
        return component_name_from_file(self.file_name)

    def read_text(self) -> str:
        """Read the file as UTF-8 text."""
        return self.path.read_text(encoding="utf-8")

    @classmethod
    def from_path(cls, file_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file

        Returns:
            LocalFile instance
        """
        return cls(path=file_path, file_name=file_path.name)


class DirectoryScanner:
    """Scans a project's component directory.

    Installed components are flat: every source file lives directly in
    the components directory under its registry basename. Generated
    barrel files (``index.ts``/``index.tsx``) are skipped.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> files = scanner.scan_components(Path("components/ui"))
        >>> names = scanner.installed_names(Path("components/ui"))
    """

    def __init__(self, exclude_names: Optional[set[str]] = None):
        """Initialize directory scanner.

        Args:
            exclude_names: Extra file names to skip besides the barrel files
        """
        self.exclude_names = set(BARREL_FILE_NAMES) | set(exclude_names or ())

    def should_ignore(self, path: Path) -> bool:
        """Check if a directory entry should be skipped."""
        if path.name in self.exclude_names:
            return True
        if path.name.startswith("."):
            return True
        return not is_component_file(path.name)

    def scan_components(self, directory: Path) -> list[LocalFile]:
        """List installed component files, sorted by file name.

        Args:
            directory: Components directory

        Returns:
            List of LocalFile objects (empty if the directory does not exist)
        """
        if not directory.is_dir():
            logger.debug("Components directory does not exist: %s", directory)
            return []

        files: list[LocalFile] = []
        for item in sorted(directory.iterdir(), key=lambda p: p.name):
            if self.should_ignore(item) or not item.is_file():
                continue
            files.append(LocalFile.from_path(item))

        logger.debug("Found %d component file(s) in %s", len(files), directory)
        return files

    def installed_names(self, directory: Path) -> set[str]:
        """Return names of installed components (file names without suffix)."""
        return {f.component_name for f in self.scan_components(directory)}
