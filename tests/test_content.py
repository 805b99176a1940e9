"""Tests for content normalization, import rewriting and diffs."""

import pytest

from pycellui.sync.content import compute_diff, normalize_content, rewrite_imports

SAMPLES = [
    "",
    "\n",
    "   \n\t\n",
    "const a = 1;",
    "const a = 1;   \r\nconst b = 2;\t\r\n",
    "\n\n\nimport x from 'y';\n\n",
    "a\rb\rc",
    "  indented\n    more  \n",
    "line\n\n\nafter blank lines\n",
]


class TestNormalizeContent:
    """Tests for normalize_content."""

    def test_crlf_and_cr_become_lf(self):
        """Test line endings are unified."""
        assert normalize_content("a\r\nb\rc\n") == "a\nb\nc"

    def test_trailing_whitespace_stripped(self):
        """Test trailing spaces and tabs are removed from every line."""
        assert normalize_content("a  \nb\t\nc") == "a\nb\nc"

    def test_leading_whitespace_kept(self):
        """Test indentation is significant."""
        assert normalize_content("  a\n    b") == "  a\n    b"

    def test_outer_blank_lines_trimmed(self):
        """Test leading and trailing blank lines are dropped."""
        assert normalize_content("\n\n  \na\n\nb\n\n\n") == "a\n\nb"

    def test_inner_blank_lines_kept(self):
        """Test blank lines between code are preserved."""
        assert normalize_content("a\n\n\nb") == "a\n\n\nb"

    def test_empty(self):
        """Test whitespace-only input normalizes to empty."""
        assert normalize_content(" \n\t\r\n") == ""

    @pytest.mark.parametrize("text", SAMPLES)
    def test_idempotent(self, text):
        """Test normalizing twice equals normalizing once."""
        once = normalize_content(text)
        assert normalize_content(once) == once


class TestRewriteImports:
    """Tests for rewrite_imports."""

    SOURCE = (
        "import React from 'react';\n"
        "import { cn } from '@/lib/utils';\n"
        'import { tokens } from "@/lib/utils";\n'
        "import { Text } from './text';\n"
    )

    def test_identity_without_aliases(self):
        """Test no aliases leaves the source untouched."""
        assert rewrite_imports(self.SOURCE) == self.SOURCE
        assert rewrite_imports(self.SOURCE, {}) == self.SOURCE

    def test_identity_with_default_alias(self):
        """Test an alias equal to the default is a no-op."""
        assert rewrite_imports(self.SOURCE, {"utils": "@/lib/utils"}) == self.SOURCE

    def test_custom_utils_alias(self):
        """Test utils imports are rewritten in both quote styles."""
        result = rewrite_imports(self.SOURCE, {"utils": "~/shared/cn"})

        assert "from '~/shared/cn';" in result
        assert "@/lib/utils" not in result
        assert result.count("~/shared/cn") == 2
        assert "import React from 'react';" in result
        assert "from './text'" in result

    def test_unrelated_paths_untouched(self):
        """Test paths that only start with the default are not rewritten."""
        source = "import { x } from '@/lib/utils/extra';\n"
        assert rewrite_imports(source, {"utils": "~/cn"}) == source

    def test_unknown_alias_keys_ignored(self):
        """Test aliases without a known import pattern change nothing."""
        assert rewrite_imports(self.SOURCE, {"hooks": "~/hooks"}) == self.SOURCE

    @pytest.mark.parametrize(
        "aliases",
        [
            None,
            {"utils": "@/lib/utils"},
            {"utils": "~/shared/cn"},
            {"utils": "@/lib/utils-v2"},
            {"components": "~/ui", "utils": "../utils"},
        ],
    )
    def test_idempotent(self, aliases):
        """Test rewriting twice equals rewriting once."""
        once = rewrite_imports(self.SOURCE, aliases)
        assert rewrite_imports(once, aliases) == once


class TestComputeDiff:
    """Tests for compute_diff."""

    def test_equal_after_normalization(self):
        """Test whitespace-only differences produce no diff."""
        assert compute_diff("a\nb\n", "a  \r\nb\r\n\n", "x.tsx") == ""

    def test_changed_line(self):
        """Test a changed line shows as removal and addition."""
        diff = compute_diff("a\nb\nc\n", "a\nB\nc\n", "button.tsx")

        lines = diff.splitlines()
        assert lines[0] == "--- button.tsx (registry)"
        assert lines[1] == "+++ button.tsx (local)"
        assert "-b" in lines
        assert "+B" in lines
