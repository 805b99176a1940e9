"""Utility functions for pycellui."""

from collections.abc import Iterable
from pathlib import PurePosixPath

# =============================================================================
# Constants
# =============================================================================

# Source suffixes of installable component files
COMPONENT_SUFFIXES: tuple[str, ...] = (".tsx", ".ts")

# Generated barrel files, never treated as components
BARREL_FILE_NAMES: frozenset[str] = frozenset({"index.ts", "index.tsx"})

# Retry configuration for transient registry errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds
DEFAULT_TIMEOUT: float = 30.0  # seconds


# =============================================================================
# Name helpers
# =============================================================================


def basename(path: str) -> str:
    """Return the last component of a registry-relative path.

    Registry paths always use forward slashes.

    Examples:
        >>> basename("ui/button.tsx")
        'button.tsx'
        >>> basename("button.tsx")
        'button.tsx'
    """
    return PurePosixPath(path).name


def component_name_from_file(file_name: str) -> str:
    """Strip the source suffix from an installed file name.

    Examples:
        >>> component_name_from_file("button.tsx")
        'button'
        >>> component_name_from_file("use-toast.ts")
        'use-toast'
        >>> component_name_from_file("README.md")
        'README.md'
    """
    for suffix in COMPONENT_SUFFIXES:
        if file_name.endswith(suffix):
            return file_name[: -len(suffix)]
    return file_name


def is_component_file(file_name: str) -> bool:
    """Check whether a file name looks like an installed component source."""
    if file_name in BARREL_FILE_NAMES:
        return False
    return file_name.endswith(COMPONENT_SUFFIXES)


# =============================================================================
# Collection helpers
# =============================================================================


def dedupe(values: Iterable[str]) -> list[str]:
    """Remove duplicates while keeping first-seen order.

    Examples:
        >>> dedupe(["a", "b", "a", "c", "b"])
        ['a', 'b', 'c']
    """
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def format_cycle(chain: list[str]) -> str:
    """Format a circular dependency chain for display.

    Examples:
        >>> format_cycle(["a", "b", "a"])
        'a → b → a'
    """
    return " → ".join(chain)


def pluralize(count: int, word: str) -> str:
    """Return ``"<count> <word>"`` with a trailing s when needed.

    Examples:
        >>> pluralize(1, "component")
        '1 component'
        >>> pluralize(3, "component")
        '3 components'
    """
    return f"{count} {word}{'' if count == 1 else 's'}"
