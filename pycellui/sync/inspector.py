"""Classification of installed component files against the registry."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ..api import RegistryClient
from ..exceptions import CelluiError
from ..models import ComponentData, RegistryItem, build_file_index
from ..utils import COMPONENT_SUFFIXES
from .content import compute_diff, normalize_content, rewrite_imports
from .scanner import DirectoryScanner, LocalFile

logger = logging.getLogger(__name__)


class ComponentStatus(str, Enum):
    """Sync status of an installed file."""

    IDENTICAL = "identical"
    """Matches the registry after normalization"""

    MODIFIED = "modified"
    """Differs from the registry, or could not be verified"""

    LOCAL_ONLY = "local-only"
    """No registry item publishes this file"""


@dataclass
class InstalledComponent:
    """An installed file classified against the registry."""

    name: str
    """Owning registry component name (file stem for local-only files)"""

    file_name: str
    """Basename of the installed file"""

    local_path: Path
    """Absolute path to the installed file"""

    status: ComponentStatus
    """Classification"""

    error: Optional[str] = None
    """Why the file could not be verified (status is then MODIFIED)"""

    diff: Optional[str] = None
    """Unified diff registry -> local, when requested"""

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "fileName": self.file_name,
            "localPath": str(self.local_path),
            "status": self.status.value,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.diff:
            data["diff"] = self.diff
        return data


class InstalledStateInspector:
    """Compares a project's installed files with the registry.

    Each local file is matched to its registry item by basename. Matched
    files are compared after rewriting the registry source with the
    consumer's aliases and normalizing both sides. Files that cannot be
    verified are reported as modified with ``error`` set, never as
    identical.
    """

    def __init__(
        self,
        client: RegistryClient,
        aliases: Optional[Mapping[str, str]] = None,
        scanner: Optional[DirectoryScanner] = None,
    ):
        """Initialize inspector.

        Args:
            client: Registry client used to fetch canonical sources
            aliases: Consumer import aliases
            scanner: Directory scanner (defaults to DirectoryScanner())
        """
        self.client = client
        self.aliases = dict(aliases or {})
        self.scanner = scanner or DirectoryScanner()

    def inspect(
        self,
        directory: Path,
        catalog: list[RegistryItem],
        names: Optional[Iterable[str]] = None,
        include_diff: bool = False,
    ) -> list[InstalledComponent]:
        """Classify every installed file in a directory.

        Args:
            directory: Components directory
            catalog: Registry items
            names: Optional component names or file names to restrict to
            include_diff: Whether to compute unified diffs for modified files

        Returns:
            List of InstalledComponent, sorted by file name
        """
        file_index = build_file_index(catalog)
        local_files = self.scanner.scan_components(directory)
        if names is not None:
            local_files = self._filter_files(local_files, names)

        fetched: dict[str, Union[ComponentData, CelluiError]] = {}
        results: list[InstalledComponent] = []

        for local_file in local_files:
            item = file_index.get(local_file.file_name)
            if item is None:
                results.append(
                    InstalledComponent(
                        name=local_file.component_name,
                        file_name=local_file.file_name,
                        local_path=local_file.path,
                        status=ComponentStatus.LOCAL_ONLY,
                    )
                )
                continue

            if item.name not in fetched:
                fetched[item.name] = self._fetch(item.name)

            results.append(
                self._compare(local_file, item, fetched[item.name], include_diff)
            )

        logger.debug(
            "Inspected %d file(s) in %s: %s",
            len(results),
            directory,
            {s.value: sum(1 for r in results if r.status == s) for s in ComponentStatus},
        )
        return results

    def _filter_files(
        self, local_files: list[LocalFile], names: Iterable[str]
    ) -> list[LocalFile]:
        wanted = set()
        for name in names:
            if name.endswith(COMPONENT_SUFFIXES):
                wanted.add(name)
            else:
                wanted.update(f"{name}{suffix}" for suffix in COMPONENT_SUFFIXES)
        return [f for f in local_files if f.file_name in wanted]

    def _fetch(self, name: str) -> Union[ComponentData, CelluiError]:
        try:
            return self.client.fetch_component(name)
        except CelluiError as e:
            logger.info("Could not fetch %s for comparison: %s", name, e)
            return e

    def _compare(
        self,
        local_file: LocalFile,
        item: RegistryItem,
        component: Union[ComponentData, CelluiError],
        include_diff: bool,
    ) -> InstalledComponent:
        """Compare one local file with its registry counterpart."""

        def unverified(reason: str) -> InstalledComponent:
            return InstalledComponent(
                name=item.name,
                file_name=local_file.file_name,
                local_path=local_file.path,
                status=ComponentStatus.MODIFIED,
                error=reason,
            )

        if isinstance(component, CelluiError):
            return unverified(f"Failed to fetch from registry: {component.message}")

        registry_file = component.get_file(local_file.file_name)
        if registry_file is None:
            return unverified("File not found in registry")

        try:
            local_content = local_file.read_text()
        except (OSError, UnicodeDecodeError) as e:
            return unverified(f"Failed to read local file: {e}")

        expected = rewrite_imports(registry_file.content, self.aliases)
        if normalize_content(local_content) == normalize_content(expected):
            status = ComponentStatus.IDENTICAL
        else:
            status = ComponentStatus.MODIFIED

        diff = None
        if include_diff and status == ComponentStatus.MODIFIED:
            diff = compute_diff(expected, local_content, local_file.file_name)

        return InstalledComponent(
            name=item.name,
            file_name=local_file.file_name,
            local_path=local_file.path,
            status=status,
            diff=diff,
        )
