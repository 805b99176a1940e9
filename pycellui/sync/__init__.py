"""Sync engine for pycellui - resolve, inspect, add, update and diff."""

from .content import compute_diff, normalize_content, rewrite_imports
from .engine import (
    ComponentOutcome,
    ComponentResult,
    DiffReport,
    SyncEngine,
    SyncReport,
)
from .inspector import ComponentStatus, InstalledComponent, InstalledStateInspector
from .operations import SyncOperations, WriteOutcome
from .progress import Confirmation, SyncEvent, SyncEventInfo, SyncReporter
from .resolver import ResolutionResult, UnresolvedDependency, resolve_dependencies
from .scanner import DirectoryScanner, LocalFile

__all__ = [
    "SyncEngine",
    "SyncReport",
    "DiffReport",
    "ComponentOutcome",
    "ComponentResult",
    "InstalledStateInspector",
    "InstalledComponent",
    "ComponentStatus",
    "SyncOperations",
    "WriteOutcome",
    "SyncReporter",
    "SyncEvent",
    "SyncEventInfo",
    "Confirmation",
    "resolve_dependencies",
    "ResolutionResult",
    "UnresolvedDependency",
    "DirectoryScanner",
    "LocalFile",
    "normalize_content",
    "rewrite_imports",
    "compute_diff",
]
