"""Core sync engine for add, update and diff operations."""

import logging
import time
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ..api import RegistryClient
from ..exceptions import (
    CircularDependencyError,
    ComponentNotFoundError,
    ComponentNotInstalledError,
    ComponentWriteError,
    UnresolvedDependencyError,
)
from ..models import ComponentData
from ..utils import component_name_from_file, dedupe
from .inspector import ComponentStatus, InstalledComponent, InstalledStateInspector
from .operations import SyncOperations
from .progress import ConfirmCallback, Confirmation, SyncReporter
from .resolver import UnresolvedDependency, resolve_dependencies
from .scanner import DirectoryScanner

logger = logging.getLogger(__name__)


class ComponentOutcome(str, Enum):
    """Final state of a component in a batch."""

    INSTALLED = "installed"
    SKIPPED = "skipped"
    FAILED = "failed"
    PLANNED = "planned"
    """Would be installed (dry run)"""


@dataclass
class ComponentResult:
    """Per-component result of an add or update."""

    name: str
    outcome: ComponentOutcome
    files: list[str] = field(default_factory=list)
    """Files written"""

    message: str = ""
    errors: list[str] = field(default_factory=list)
    """File-level problems (the component may still be INSTALLED)"""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "files": list(self.files),
            "message": self.message,
            "errors": list(self.errors),
        }


@dataclass
class SyncReport:
    """Aggregated result of an add or update run."""

    resolved: list[str] = field(default_factory=list)
    """Components selected for processing, in processing order"""

    results: list[ComponentResult] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    """Deduplicated external dependencies of installed components"""

    dev_dependencies: list[str] = field(default_factory=list)
    """Deduplicated external dev dependencies of installed components"""

    unresolved: list[UnresolvedDependency] = field(default_factory=list)
    cancelled: bool = False
    dry_run: bool = False

    def _with_outcome(self, outcome: ComponentOutcome) -> list[ComponentResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def installed(self) -> list[ComponentResult]:
        return self._with_outcome(ComponentOutcome.INSTALLED)

    @property
    def skipped(self) -> list[ComponentResult]:
        return self._with_outcome(ComponentOutcome.SKIPPED)

    @property
    def failed(self) -> list[ComponentResult]:
        return self._with_outcome(ComponentOutcome.FAILED)

    @property
    def planned(self) -> list[ComponentResult]:
        return self._with_outcome(ComponentOutcome.PLANNED)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def exit_code(self) -> int:
        """1 if any component failed, else 0."""
        return 1 if self.failed_count else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "resolved": list(self.resolved),
            "results": [r.to_dict() for r in self.results],
            "dependencies": list(self.dependencies),
            "devDependencies": list(self.dev_dependencies),
            "unresolved": [
                {"name": u.name, "requiredBy": u.required_by} for u in self.unresolved
            ],
            "cancelled": self.cancelled,
            "dryRun": self.dry_run,
            "failed": self.failed_count,
        }


@dataclass
class DiffReport:
    """Installed files grouped by sync status."""

    components: list[InstalledComponent] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    """Requested names with no installed file"""

    def _with_status(self, status: ComponentStatus) -> list[InstalledComponent]:
        return [c for c in self.components if c.status == status]

    @property
    def identical(self) -> list[InstalledComponent]:
        return self._with_status(ComponentStatus.IDENTICAL)

    @property
    def modified(self) -> list[InstalledComponent]:
        """Modified files, excluding those that could not be verified."""
        return [c for c in self._with_status(ComponentStatus.MODIFIED) if not c.error]

    @property
    def local_only(self) -> list[InstalledComponent]:
        return self._with_status(ComponentStatus.LOCAL_ONLY)

    @property
    def errors(self) -> list[InstalledComponent]:
        return [c for c in self.components if c.error]

    @property
    def has_drift(self) -> bool:
        return bool(self._with_status(ComponentStatus.MODIFIED))

    @property
    def exit_code(self) -> int:
        """1 on drift, verification errors or missing names, else 0."""
        return 1 if self.has_drift or self.missing else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "components": [c.to_dict() for c in self.components],
            "summary": {
                "identical": len(self.identical),
                "modified": len(self.modified),
                "localOnly": len(self.local_only),
                "errors": len(self.errors),
            },
            "missing": list(self.missing),
        }


class SyncEngine:
    """Orchestrates resolution, inspection, fetching and writing.

    Fatal errors (registry unavailable, circular dependencies, strict
    unresolved dependencies) propagate to the caller before anything is
    written. Per-component failures are caught, logged, reported and
    tallied in the returned SyncReport; the batch always continues.
    """

    def __init__(
        self,
        client: RegistryClient,
        target_dir: Path,
        aliases: Optional[Mapping[str, str]] = None,
        reporter: Optional[SyncReporter] = None,
        max_workers: int = 1,
    ):
        """Initialize sync engine.

        Args:
            client: Registry client
            target_dir: Components directory of the consuming project
            aliases: Consumer import aliases
            reporter: Event sink (defaults to a reporter without callback)
            max_workers: Number of parallel fetch workers (default: 1)
        """
        self.client = client
        self.target_dir = target_dir
        self.aliases = dict(aliases or {})
        self.reporter = reporter or SyncReporter()
        self.max_workers = max(1, max_workers)
        self.scanner = DirectoryScanner()
        self.inspector = InstalledStateInspector(client, self.aliases, self.scanner)
        self.operations = SyncOperations(self.aliases)

    # =========================
    # Operations
    # =========================

    def add(
        self,
        names: Iterable[str],
        overwrite: bool = False,
        strict: bool = False,
        dry_run: bool = False,
    ) -> SyncReport:
        """Install components and their registry dependencies.

        Args:
            names: Requested component names
            overwrite: Reinstall installed components and replace existing files
            strict: Treat unresolved registry dependencies as fatal
            dry_run: Resolve and plan without writing

        Returns:
            SyncReport

        Raises:
            RegistryFetchError: If the catalog cannot be loaded
            CircularDependencyError: If the requested closure has a cycle
            UnresolvedDependencyError: If strict and a dependency is missing

        Examples:
            >>> engine = SyncEngine(client, Path("components/ui"))
            >>> report = engine.add(["card"])
            >>> report.resolved
            ['text', 'card']
        """
        requested = dedupe(names)
        catalog = self.client.get_catalog()

        resolution = resolve_dependencies(requested, catalog)
        if resolution.cycle is not None:
            raise CircularDependencyError(resolution.cycle)

        missing = [u.name for u in resolution.unresolved if u.required_by is None]
        transitive = [u for u in resolution.unresolved if u.required_by is not None]
        if transitive and strict:
            raise UnresolvedDependencyError(transitive)
        for unresolved in transitive:
            self.reporter.warning(
                f"Unresolved registry dependency: {unresolved}",
                unresolved.required_by,
            )

        self.reporter.resolved(resolution.resolved)
        report = SyncReport(
            resolved=list(resolution.resolved),
            unresolved=list(resolution.unresolved),
            dry_run=dry_run,
        )

        for name in missing:
            self._fail(report, name, ComponentNotFoundError(name))

        installed_names = (
            set() if overwrite else self.scanner.installed_names(self.target_dir)
        )
        to_install: list[str] = []
        for name in resolution.resolved:
            if name in installed_names:
                message = "already installed (use --overwrite)"
                report.results.append(
                    ComponentResult(name, ComponentOutcome.SKIPPED, message=message)
                )
                self.reporter.skipped(name, message)
            else:
                to_install.append(name)

        if dry_run:
            self._plan(report, to_install)
            return report

        self._install(report, to_install, overwrite=overwrite)
        return report

    def update(
        self,
        names: Iterable[str] = (),
        update_all: bool = False,
        dry_run: bool = False,
        confirm: Optional[ConfirmCallback] = None,
    ) -> SyncReport:
        """Re-sync installed components from the registry.

        Targets are the explicitly named components, or every component with
        a modified file, or with ``update_all`` every installed registry
        component. Local-only files are never touched.

        Args:
            names: Explicit component names
            update_all: Re-sync every installed component
            dry_run: Plan without writing
            confirm: Called with the target names before writing

        Returns:
            SyncReport (``cancelled`` set when confirmation was declined)

        Raises:
            RegistryFetchError: If the catalog cannot be loaded
        """
        catalog = self.client.get_catalog()
        inspected = self.inspector.inspect(self.target_dir, catalog)

        for component in inspected:
            if component.error:
                self.reporter.warning(
                    f"{component.file_name}: {component.error}", component.name
                )

        tracked = dedupe(
            c.name for c in inspected if c.status != ComponentStatus.LOCAL_ONLY
        )
        outdated = dedupe(
            c.name for c in inspected if c.status == ComponentStatus.MODIFIED
        )

        report = SyncReport(dry_run=dry_run)
        explicit = dedupe(names)
        if explicit:
            targets = [name for name in explicit if name in tracked]
            for name in explicit:
                if name not in tracked:
                    self._fail(report, name, ComponentNotInstalledError(name))
        elif update_all:
            targets = tracked
        else:
            targets = outdated
            for name in tracked:
                if name not in outdated:
                    report.results.append(
                        ComponentResult(
                            name, ComponentOutcome.SKIPPED, message="up to date"
                        )
                    )
                    self.reporter.skipped(name, "up to date")

        report.resolved = list(targets)
        self.reporter.resolved(report.resolved)
        if not targets:
            return report

        if dry_run:
            self._plan(report, targets)
            return report

        if confirm is not None and confirm(list(targets)) == Confirmation.CANCELLED:
            logger.debug("Update cancelled by user")
            report.cancelled = True
            return report

        self._install(report, targets, overwrite=True)
        return report

    def diff(
        self,
        names: Optional[Iterable[str]] = None,
        include_diff: bool = True,
    ) -> DiffReport:
        """Compare installed components with the registry without writing.

        Args:
            names: Optional component names to restrict to
            include_diff: Whether to compute unified diffs for modified files

        Returns:
            DiffReport

        Raises:
            RegistryFetchError: If the catalog cannot be loaded
        """
        catalog = self.client.get_catalog()
        requested = dedupe(names) if names else None
        components = self.inspector.inspect(
            self.target_dir, catalog, names=requested, include_diff=include_diff
        )

        missing: list[str] = []
        if requested:
            found = {c.file_name for c in components}
            found.update(component_name_from_file(c.file_name) for c in components)
            missing = [name for name in requested if name not in found]
        return DiffReport(components=components, missing=missing)

    # =========================
    # Internals
    # =========================

    def _plan(self, report: SyncReport, names: list[str]) -> None:
        for name in names:
            report.results.append(
                ComponentResult(name, ComponentOutcome.PLANNED, message="dry run")
            )
            self.reporter.skipped(name, "dry run")

    def _fail(self, report: SyncReport, name: str, error: Exception) -> None:
        logger.info("Failed to process %s: %s", name, error)
        report.results.append(
            ComponentResult(
                name, ComponentOutcome.FAILED, message=str(error), errors=[str(error)]
            )
        )
        self.reporter.failed(name, error)

    def _install(self, report: SyncReport, names: list[str], overwrite: bool) -> None:
        """Fetch every component, then write them in order.

        A component's files are written only once all of them were fetched.
        """
        fetched = self._fetch_all(names)

        for name in names:
            component = fetched[name]
            if isinstance(component, Exception):
                self._fail(report, name, component)
                continue

            try:
                outcome = self.operations.write_component(
                    component, self.target_dir, overwrite=overwrite
                )
            except Exception as e:
                self._fail(report, name, e)
                continue

            error_messages = [e.message for e in outcome.errors]
            for message in error_messages:
                logger.info("%s: %s", name, message)

            if outcome.errors and not outcome.written:
                self._fail(
                    report,
                    name,
                    ComponentWriteError(
                        "; ".join(error_messages), path=outcome.errors[0].path
                    ),
                )
                continue

            report.results.append(
                ComponentResult(
                    name,
                    ComponentOutcome.INSTALLED,
                    files=list(outcome.written),
                    errors=error_messages,
                )
            )
            report.dependencies = dedupe([*report.dependencies, *component.dependencies])
            report.dev_dependencies = dedupe(
                [*report.dev_dependencies, *component.dev_dependencies]
            )
            self.reporter.installed(
                name, outcome.written, message="; ".join(error_messages)
            )

    def _fetch_all(
        self, names: list[str]
    ) -> dict[str, Union[ComponentData, Exception]]:
        """Fetch components, in parallel when max_workers > 1."""
        results: dict[str, Union[ComponentData, Exception]] = {}

        def fetch(name: str) -> Union[ComponentData, Exception]:
            start = time.time()
            try:
                component = self.client.fetch_component(name)
            except Exception as e:
                logger.debug("Fetch of %s failed: %s", name, e)
                return e
            logger.debug("Fetch of %s took %.2fs", name, time.time() - start)
            return component

        if self.max_workers > 1 and len(names) > 1:
            logger.debug(
                "Fetching %d component(s) with %d workers", len(names), self.max_workers
            )
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = {}
                for name in names:
                    self.reporter.fetching(name)
                    futures[executor.submit(fetch, name)] = name
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
        else:
            for name in names:
                self.reporter.fetching(name)
                results[name] = fetch(name)

        return results
