"""Tests for the sync engine."""

import json
from unittest.mock import Mock, patch

import pytest

from pycellui.api import LocalRegistryClient
from pycellui.exceptions import (
    CircularDependencyError,
    RegistryFetchError,
    UnresolvedDependencyError,
)
from pycellui.sync import (
    ComponentOutcome,
    ComponentStatus,
    Confirmation,
    SyncEngine,
    SyncEvent,
    SyncReporter,
)

COMPONENTS = {
    "text": ("ui/text.tsx", "export function Text() {}\n", []),
    "button": (
        "ui/button.tsx",
        "import { cn } from '@/lib/utils';\nimport { Text } from './text';\n"
        "export function Button() {}\n",
        ["text"],
    ),
    "card": ("ui/card.tsx", "export function Card() {}\n", ["text"]),
    "dialog": ("ui/dialog.tsx", "export function Dialog() {}\n", ["button", "card"]),
}


def write_registry(root, components, extra=None):
    """Write a local registry with {name: (path, source, registry deps)}."""
    entries = []
    for name, (path, source, deps) in components.items():
        (root / path).parent.mkdir(parents=True, exist_ok=True)
        (root / path).write_text(source)
        entries.append(
            {
                "name": name,
                "files": [path],
                "registryDependencies": deps,
                "dependencies": [f"dep-{name}"] if name != "text" else [],
            }
        )
    entries.extend(extra or [])
    (root / "registry.json").write_text(
        json.dumps({"name": "test", "version": "1.0.0", "components": entries})
    )


@pytest.fixture
def registry_dir(tmp_path):
    """Create a local registry."""
    root = tmp_path / "registry"
    root.mkdir()
    write_registry(root, COMPONENTS)
    return root


@pytest.fixture
def client(registry_dir):
    """Create a local registry client."""
    return LocalRegistryClient(registry_dir)


@pytest.fixture
def target_dir(tmp_path):
    """Components directory of the consuming project."""
    return tmp_path / "app" / "components" / "ui"


@pytest.fixture
def reporter():
    """Create a reporter that records events."""
    return SyncReporter()


@pytest.fixture
def engine(client, target_dir, reporter):
    """Create a sync engine instance."""
    return SyncEngine(client, target_dir, reporter=reporter)


def names(results):
    return [r.name for r in results]


class TestAdd:
    """Tests for SyncEngine.add."""

    def test_add_with_dependencies(self, engine, target_dir):
        """Test dependencies are installed before dependents."""
        report = engine.add(["button"])

        assert report.resolved == ["text", "button"]
        assert names(report.installed) == ["text", "button"]
        assert (target_dir / "text.tsx").read_text() == COMPONENTS["text"][1]
        assert (target_dir / "button.tsx").exists()
        assert report.exit_code == 0

    def test_add_collects_dependencies(self, engine):
        """Test external dependencies are deduplicated across components."""
        report = engine.add(["dialog"])

        assert report.resolved == ["text", "button", "card", "dialog"]
        assert report.dependencies == ["dep-button", "dep-card", "dep-dialog"]
        assert report.dev_dependencies == []

    def test_add_rewrites_imports(self, client, target_dir):
        """Test written files use the consumer's utils alias."""
        engine = SyncEngine(client, target_dir, aliases={"utils": "~/lib/cn"})

        engine.add(["button"])

        content = (target_dir / "button.tsx").read_text()
        assert "from '~/lib/cn'" in content
        assert "@/lib/utils" not in content

    def test_already_installed_is_skipped(self, engine, target_dir, reporter):
        """Test an installed component is not rewritten without overwrite."""
        target_dir.mkdir(parents=True)
        (target_dir / "text.tsx").write_text("// mine\n")

        report = engine.add(["text"])

        assert report.installed == []
        assert names(report.skipped) == ["text"]
        assert "already installed" in report.skipped[0].message
        assert (target_dir / "text.tsx").read_text() == "// mine\n"
        assert report.exit_code == 0
        assert [e.component for e in reporter.of_kind(SyncEvent.SKIPPED)] == ["text"]

    def test_overwrite_replaces_files(self, engine, target_dir):
        """Test overwrite reinstalls installed components."""
        target_dir.mkdir(parents=True)
        (target_dir / "text.tsx").write_text("// mine\n")

        report = engine.add(["text"], overwrite=True)

        assert names(report.installed) == ["text"]
        assert (target_dir / "text.tsx").read_text() == COMPONENTS["text"][1]

    def test_partial_batch_failure(self, engine, client, target_dir, reporter):
        """Test one failing fetch does not stop the rest of the batch."""
        original = client.fetch_component

        def fetch(name):
            if name == "card":
                raise RuntimeError("connection reset")
            return original(name)

        with patch.object(client, "fetch_component", side_effect=fetch):
            report = engine.add(["button", "card"])

        assert names(report.installed) == ["text", "button"]
        assert names(report.failed) == ["card"]
        assert "connection reset" in report.failed[0].message
        assert report.exit_code == 1
        assert (target_dir / "button.tsx").exists()
        assert not (target_dir / "card.tsx").exists()
        assert [e.component for e in reporter.of_kind(SyncEvent.FAILED)] == ["card"]

    def test_requested_name_not_in_registry(self, engine, target_dir):
        """Test an unknown requested name fails only that item."""
        report = engine.add(["nope", "text"])

        assert names(report.failed) == ["nope"]
        assert names(report.installed) == ["text"]
        assert report.exit_code == 1

    def test_cycle_is_fatal_before_writing(self, tmp_path, target_dir):
        """Test a circular dependency raises and writes nothing."""
        root = tmp_path / "cyclic"
        root.mkdir()
        write_registry(
            root,
            {
                "a": ("ui/a.tsx", "a\n", ["b"]),
                "b": ("ui/b.tsx", "b\n", ["a"]),
            },
        )
        engine = SyncEngine(LocalRegistryClient(root), target_dir)

        with pytest.raises(CircularDependencyError) as exc_info:
            engine.add(["a"])

        assert exc_info.value.chain == ["a", "b", "a"]
        assert "a → b → a" in exc_info.value.message
        assert not target_dir.exists()

    def test_unresolved_dependency_warns(self, tmp_path, target_dir):
        """Test a missing registry dependency is a warning by default."""
        root = tmp_path / "partial"
        root.mkdir()
        write_registry(root, {"card": ("ui/card.tsx", "card\n", ["ghost"])})
        reporter = SyncReporter()
        engine = SyncEngine(LocalRegistryClient(root), target_dir, reporter=reporter)

        report = engine.add(["card"])

        assert names(report.installed) == ["card"]
        assert [u.name for u in report.unresolved] == ["ghost"]
        warnings = reporter.of_kind(SyncEvent.WARNING)
        assert len(warnings) == 1
        assert "ghost (required by card)" in warnings[0].message

    def test_unresolved_dependency_strict(self, tmp_path, target_dir):
        """Test strict mode makes missing dependencies fatal."""
        root = tmp_path / "partial"
        root.mkdir()
        write_registry(root, {"card": ("ui/card.tsx", "card\n", ["ghost"])})
        engine = SyncEngine(LocalRegistryClient(root), target_dir)

        with pytest.raises(UnresolvedDependencyError):
            engine.add(["card"], strict=True)
        assert not target_dir.exists()

    def test_registry_unavailable_is_fatal(self, tmp_path, target_dir):
        """Test a missing registry raises RegistryFetchError."""
        engine = SyncEngine(LocalRegistryClient(tmp_path / "missing"), target_dir)

        with pytest.raises(RegistryFetchError):
            engine.add(["button"])

    def test_dry_run_writes_nothing(self, engine, target_dir):
        """Test dry run plans without touching the filesystem."""
        report = engine.add(["button"], dry_run=True)

        assert report.dry_run
        assert names(report.planned) == ["text", "button"]
        assert report.installed == []
        assert not target_dir.exists()

    def test_existing_file_of_uninstalled_component(self, tmp_path, target_dir):
        """Test a pre-existing file of a multi-file component is kept."""
        root = tmp_path / "multi"
        root.mkdir()
        (root / "ui").mkdir()
        (root / "hooks").mkdir()
        (root / "ui" / "toast.tsx").write_text("toast\n")
        (root / "hooks" / "use-toast.ts").write_text("hook\n")
        (root / "registry.json").write_text(
            json.dumps(
                {
                    "components": [
                        {
                            "name": "toast",
                            "files": ["ui/toast.tsx", "hooks/use-toast.ts"],
                        }
                    ]
                }
            )
        )
        target_dir.mkdir(parents=True)
        (target_dir / "use-toast.ts").write_text("// mine\n")
        engine = SyncEngine(LocalRegistryClient(root), target_dir)

        report = engine.add(["toast"])

        result = report.installed[0]
        assert result.files == ["toast.tsx"]
        assert result.errors == ["use-toast.ts already exists"]
        assert (target_dir / "use-toast.ts").read_text() == "// mine\n"

    def test_parallel_fetch_keeps_order(self, client, target_dir):
        """Test parallel workers still write in resolved order."""
        reporter = SyncReporter()
        engine = SyncEngine(client, target_dir, reporter=reporter, max_workers=4)

        report = engine.add(["dialog"])

        assert names(report.installed) == ["text", "button", "card", "dialog"]
        installed_events = reporter.of_kind(SyncEvent.INSTALLED)
        assert [e.component for e in installed_events] == report.resolved

    def test_reporter_callback(self, client, target_dir):
        """Test the callback receives every event in order."""
        callback = Mock()
        engine = SyncEngine(client, target_dir, reporter=SyncReporter(callback))

        engine.add(["text"])

        kinds = [call.args[0].event for call in callback.call_args_list]
        assert kinds == [SyncEvent.RESOLVED, SyncEvent.FETCHING, SyncEvent.INSTALLED]

    def test_report_to_dict(self, engine):
        """Test the JSON form of a report."""
        data = engine.add(["card"]).to_dict()

        assert data["resolved"] == ["text", "card"]
        assert data["failed"] == 0
        assert data["results"][1]["outcome"] == "installed"
        assert data["dependencies"] == ["dep-card"]


class TestUpdate:
    """Tests for SyncEngine.update."""

    @pytest.fixture
    def installed(self, engine, target_dir):
        """Install text, button and card, then modify button."""
        engine.add(["button", "card"])
        (target_dir / "button.tsx").write_text("// local edit\n")
        (target_dir / "custom.tsx").write_text("// my own component\n")
        return target_dir

    def test_updates_only_modified(self, engine, installed, reporter):
        """Test only drifted components are updated by default."""
        report = engine.update()

        assert report.resolved == ["button"]
        assert names(report.installed) == ["button"]
        assert sorted(names(report.skipped)) == ["card", "text"]
        assert (installed / "button.tsx").read_text() == COMPONENTS["button"][1]
        assert (installed / "custom.tsx").read_text() == "// my own component\n"

    def test_update_all(self, engine, installed):
        """Test update_all re-syncs every tracked component."""
        report = engine.update(update_all=True)

        assert sorted(report.resolved) == ["button", "card", "text"]
        assert "custom" not in names(report.results)

    def test_explicit_names(self, engine, installed):
        """Test explicit names are updated even when up to date."""
        report = engine.update(["card"])

        assert report.resolved == ["card"]
        assert names(report.installed) == ["card"]

    def test_explicit_name_not_installed(self, engine, installed):
        """Test naming an uninstalled component is a failure."""
        report = engine.update(["dialog", "card"])

        assert names(report.failed) == ["dialog"]
        assert "not installed" in report.failed[0].message
        assert names(report.installed) == ["card"]
        assert report.exit_code == 1

    def test_local_only_never_targeted(self, engine, installed):
        """Test a local-only file cannot be updated by name."""
        report = engine.update(["custom"])

        assert names(report.failed) == ["custom"]
        assert (installed / "custom.tsx").read_text() == "// my own component\n"

    def test_nothing_to_update(self, engine, target_dir):
        """Test an up-to-date project returns an empty plan."""
        engine.add(["text"])

        report = engine.update()

        assert report.resolved == []
        assert report.installed == []
        assert report.exit_code == 0

    def test_confirm_receives_targets(self, engine, installed):
        """Test the confirm callback sees the target list."""
        confirm = Mock(return_value=Confirmation.CONFIRMED)

        report = engine.update(confirm=confirm)

        confirm.assert_called_once_with(["button"])
        assert names(report.installed) == ["button"]

    def test_cancelled_writes_nothing(self, engine, installed):
        """Test a cancelled confirmation leaves files untouched."""
        report = engine.update(confirm=lambda targets: Confirmation.CANCELLED)

        assert report.cancelled
        assert report.installed == []
        assert report.exit_code == 0
        assert (installed / "button.tsx").read_text() == "// local edit\n"

    def test_dry_run(self, engine, installed):
        """Test dry run plans without confirming or writing."""
        confirm = Mock()

        report = engine.update(dry_run=True, confirm=confirm)

        assert names(report.planned) == ["button"]
        confirm.assert_not_called()
        assert (installed / "button.tsx").read_text() == "// local edit\n"


class TestDiff:
    """Tests for SyncEngine.diff."""

    def test_diff_report(self, engine, target_dir):
        """Test statuses and summary of a mixed project."""
        engine.add(["button", "card"])
        (target_dir / "card.tsx").write_text("export function Card() { return 1 }\n")
        (target_dir / "custom.tsx").write_text("x\n")

        report = engine.diff()

        by_file = {c.file_name: c.status for c in report.components}
        assert by_file == {
            "button.tsx": ComponentStatus.IDENTICAL,
            "card.tsx": ComponentStatus.MODIFIED,
            "custom.tsx": ComponentStatus.LOCAL_ONLY,
            "text.tsx": ComponentStatus.IDENTICAL,
        }
        assert report.has_drift
        assert report.exit_code == 1
        assert report.modified[0].diff
        assert report.to_dict()["summary"] == {
            "identical": 2,
            "modified": 1,
            "localOnly": 1,
            "errors": 0,
        }

    def test_clean_project(self, engine):
        """Test no drift exits 0."""
        engine.add(["text"])

        report = engine.diff()

        assert not report.has_drift
        assert report.exit_code == 0

    def test_names_and_missing(self, engine):
        """Test requested names not installed are reported as missing."""
        engine.add(["text"])

        report = engine.diff(["text", "dialog"])

        assert [c.file_name for c in report.components] == ["text.tsx"]
        assert report.missing == ["dialog"]
        assert report.exit_code == 1

    def test_diff_does_not_write(self, engine, target_dir):
        """Test diff leaves modified files alone."""
        engine.add(["text"])
        (target_dir / "text.tsx").write_text("edited\n")

        engine.diff()

        assert (target_dir / "text.tsx").read_text() == "edited\n"


class TestComponentOutcome:
    """Tests for outcome values."""

    def test_values(self):
        """Test outcome values used in JSON output."""
        assert ComponentOutcome.INSTALLED.value == "installed"
        assert ComponentOutcome.PLANNED.value == "planned"
