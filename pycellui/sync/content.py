"""Content normalization and import rewriting for component sources."""

import difflib
import re
from collections.abc import Mapping
from typing import Optional

from ..config import DEFAULT_ALIASES

# Alias key -> import pattern matching the registry's default import path.
# The registry always ships files importing the default paths.
_IMPORT_PATTERNS: dict[str, re.Pattern[str]] = {
    "utils": re.compile(
        r"""from\s+(['"])""" + re.escape(DEFAULT_ALIASES["utils"]) + r"""\1"""
    ),
}


def normalize_content(text: str) -> str:
    """Canonicalize source text for comparison.

    Line endings become ``\\n``, trailing whitespace is stripped from
    every line, and leading and trailing blank lines are dropped.
    The result is a comparison key only and is never written to disk.

    Examples:
        >>> normalize_content("a  \\r\\nb\\t\\r\\n\\r\\n")
        'a\\nb'
        >>> normalize_content("\\n\\n  x\\n")
        '  x'
    """
    lines = [
        line.rstrip()
        for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    ]

    start = 0
    end = len(lines)
    while start < end and not lines[start]:
        start += 1
    while end > start and not lines[end - 1]:
        end -= 1

    return "\n".join(lines[start:end])


def rewrite_imports(source: str, aliases: Optional[Mapping[str, str]] = None) -> str:
    """Rewrite known default import paths to the consumer's aliases.

    Only aliases that differ from their default are applied; with default
    or missing aliases this is the identity function. Applying it twice
    with the same aliases gives the same result as applying it once.

    Args:
        source: Component source text as published in the registry
        aliases: Consumer alias configuration (e.g. ``{"utils": "~/utils"}``)

    Returns:
        Rewritten source text

    Examples:
        >>> rewrite_imports("import { cn } from '@/lib/utils';", {"utils": "~/lib/cn"})
        "import { cn } from '~/lib/cn';"
        >>> rewrite_imports("import { cn } from '@/lib/utils';")
        "import { cn } from '@/lib/utils';"
    """
    if not aliases:
        return source

    result = source
    for key, pattern in _IMPORT_PATTERNS.items():
        alias = aliases.get(key)
        if not alias or alias == DEFAULT_ALIASES[key]:
            continue
        replacement = f"from '{alias}'"
        result = pattern.sub(lambda _match: replacement, result)
    return result


def compute_diff(registry_content: str, local_content: str, file_name: str) -> str:
    """Generate a unified diff from the registry version to the local one.

    Both inputs are normalized first, so only meaningful differences show.

    Returns:
        Unified diff text, empty if the contents are equal after normalization
    """
    registry_lines = normalize_content(registry_content).splitlines()
    local_lines = normalize_content(local_content).splitlines()

    diff = difflib.unified_diff(
        registry_lines,
        local_lines,
        fromfile=f"{file_name} (registry)",
        tofile=f"{file_name} (local)",
        lineterm="",
    )
    return "\n".join(diff)
