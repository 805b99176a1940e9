"""CLI interface for the pycellui component registry."""

import copy
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional

import click

from . import __version__
from .api import create_registry_client
from .cli_progress import SyncProgressDisplay
from .config import (
    Config,
    ProjectConfig,
    config,
    find_project_root,
    get_config_path,
    load_project_config,
    save_project_config,
)
from .doctor import CheckStatus, run_checks
from .exceptions import CelluiError
from .output import OutputFormatter
from .sync import (
    ComponentStatus,
    Confirmation,
    DiffReport,
    SyncEngine,
    SyncReport,
)
from .utils import pluralize

logger = logging.getLogger(__name__)

cwd_option = click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Working directory",
)
workers_option = click.option(
    "--workers",
    type=click.IntRange(1, 16),
    default=1,
    help="Number of parallel registry fetches (default: 1)",
)

_CHECK_STYLES = {
    CheckStatus.PASS: ("✓", "green"),
    CheckStatus.WARN: ("!", "yellow"),
    CheckStatus.FAIL: ("✗", "red"),
}


def _exit_with_error(ctx: Any, out: OutputFormatter, error: CelluiError) -> None:
    """Print a fatal error with its hint and exit with status 1."""
    logger.debug("Fatal error: %r", error)
    out.error(error.message, hint=error.hint)
    ctx.exit(1)


def _load_project(cwd: Path) -> tuple[Path, ProjectConfig]:
    project_root = find_project_root(cwd)
    return project_root, load_project_config(project_root)


def _print_dependency_hints(out: OutputFormatter, report: SyncReport) -> None:
    if not (report.dependencies or report.dev_dependencies):
        return
    out.print("")
    out.heading("Install dependencies:")
    if report.dependencies:
        out.hint(f"  npx expo install {' '.join(report.dependencies)}")
    if report.dev_dependencies:
        out.hint(f"  npm install -D {' '.join(report.dev_dependencies)}")


def _print_sync_summary(out: OutputFormatter, report: SyncReport, verb: str) -> None:
    """Print the summary of an add or update run."""
    out.print("")
    if report.dry_run:
        if report.planned:
            out.info(f"Would {verb}: {', '.join(r.name for r in report.planned)}")
        out.dim("Dry run mode - no changes made.")
    if report.installed:
        past = "Added" if verb == "add" else "Updated"
        out.success(f"✓ {past} {pluralize(len(report.installed), 'component')}")
    if report.skipped:
        out.dim(f"Skipped {pluralize(len(report.skipped), 'component')}")
    if report.failed:
        out.warning(
            f"✗ Failed to {verb} {pluralize(len(report.failed), 'component')}: "
            f"{', '.join(r.name for r in report.failed)}"
        )
    _print_dependency_hints(out, report)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--registry-url",
    envvar="PYCELLUI_REGISTRY_URL",
    help="Base URL of the remote registry",
)
@click.option(
    "--registry-path",
    envvar="PYCELLUI_REGISTRY_PATH",
    type=click.Path(file_okay=False, path_type=Path),
    help="Use a local registry directory instead of the remote registry",
)
@click.version_option(version=__version__, prog_name="pycellui")
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    registry_url: Optional[str],
    registry_path: Optional[Path],
) -> None:
    """pycellui - Copy-paste UI components into your React Native project."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    settings: Config = copy.copy(config)
    if registry_url:
        settings.registry_url = registry_url.rstrip("/")
    if registry_path:
        settings.registry_path = registry_path
    ctx.obj["settings"] = settings

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pycellui").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@cwd_option
@click.option(
    "--components-path",
    default=None,
    help="Directory to install components into (default: ./components/ui)",
)
@click.option(
    "--utils-alias",
    default=None,
    help="Import path of the utils module (default: @/lib/utils)",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing config")
@click.pass_context
def init(
    ctx: Any,
    cwd: Path,
    components_path: Optional[str],
    utils_alias: Optional[str],
    force: bool,
) -> None:
    """Initialize pycellui in the current project.

    Writes pycellui.json next to package.json.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        project_root = find_project_root(cwd)
    except CelluiError as e:
        _exit_with_error(ctx, out, e)

    config_path = get_config_path(project_root)
    if config_path.exists() and not force:
        out.warning(f"Already initialized: {config_path} (use --force to overwrite)")
        return

    project_config = ProjectConfig()
    if components_path:
        project_config.components_path = components_path
    if utils_alias:
        project_config.aliases["utils"] = utils_alias

    saved = save_project_config(project_root, project_config)
    if out.json_output:
        out.output_json({"config": str(saved), **project_config.to_dict()})
        return
    out.success(f"✓ Configuration saved to {saved}")
    out.dim("Add a component: pycellui add <component>")


@main.command(name="list")
@click.option("--category", "-c", default=None, help="Filter by category")
@click.option(
    "--installed",
    "-i",
    is_flag=True,
    help="Show installed components and their sync status",
)
@cwd_option
@click.pass_context
def list_components(
    ctx: Any, category: Optional[str], installed: bool, cwd: Path
) -> None:
    """List available or installed components."""
    out: OutputFormatter = ctx.obj["out"]
    settings: Config = ctx.obj["settings"]

    if installed:
        try:
            project_root, project_config = _load_project(cwd)
            with create_registry_client(settings) as client:
                engine = SyncEngine(
                    client,
                    project_config.components_dir(project_root),
                    project_config.aliases,
                )
                report = engine.diff(include_diff=False)
        except CelluiError as e:
            _exit_with_error(ctx, out, e)

        if out.json_output:
            out.output_json([c.to_dict() for c in report.components])
            return
        if not report.components:
            out.info("No components installed yet.")
            out.dim("Add components with: pycellui add <component>")
            return
        out.heading("Installed Components")
        for component in report.components:
            label = {
                ComponentStatus.IDENTICAL: "up to date",
                ComponentStatus.MODIFIED: "modified",
                ComponentStatus.LOCAL_ONLY: "custom",
            }[component.status]
            out.info(f"  {component.name}  ({label})")
        return

    try:
        with create_registry_client(settings) as client:
            catalog = client.get_catalog()
    except CelluiError as e:
        _exit_with_error(ctx, out, e)

    if category:
        catalog = [i for i in catalog if i.category.lower() == category.lower()]

    if out.json_output:
        out.output_json([item.to_dict() for item in catalog])
        return

    groups: dict[str, list] = defaultdict(list)
    for item in catalog:
        groups[item.category].append(item)

    out.heading("Available Components")
    out.print("")
    for group, items in groups.items():
        out.print(group, style="bold cyan")
        for item in items:
            status = "" if item.status == "stable" else f" [{item.status}]"
            out.info(f"  {item.name}{status}")
            if item.description:
                out.dim(f"    {item.description}")
        out.print("")
    out.dim("Add a component: pycellui add <component>")


@main.command()
@click.argument("components", nargs=-1, required=True)
@click.option("--overwrite", "-o", is_flag=True, help="Overwrite existing files")
@click.option(
    "--strict",
    is_flag=True,
    help="Fail if a registry dependency is missing from the registry",
)
@click.option("--dry-run", is_flag=True, help="Show what would be added")
@workers_option
@cwd_option
@click.pass_context
def add(
    ctx: Any,
    components: tuple[str, ...],
    overwrite: bool,
    strict: bool,
    dry_run: bool,
    workers: int,
    cwd: Path,
) -> None:
    """Add components and their dependencies to your project.

    Examples:
        pycellui add button
        pycellui add card dialog --overwrite
        pycellui add sheet --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    settings: Config = ctx.obj["settings"]

    try:
        project_root, project_config = _load_project(cwd)
        target_dir = project_config.components_dir(project_root)
        display = SyncProgressDisplay(out, verb="Added")
        with create_registry_client(settings) as client, display:
            engine = SyncEngine(
                client,
                target_dir,
                project_config.aliases,
                reporter=display.create_reporter(),
                max_workers=workers,
            )
            report = engine.add(
                components, overwrite=overwrite, strict=strict, dry_run=dry_run
            )
    except CelluiError as e:
        _exit_with_error(ctx, out, e)

    if out.json_output:
        out.output_json(report.to_dict())
    else:
        _print_sync_summary(out, report, "add")
    ctx.exit(report.exit_code)


@main.command()
@click.argument("components", nargs=-1)
@click.option("--list", "list_only", is_flag=True, help="Only list components")
@cwd_option
@click.pass_context
def diff(ctx: Any, components: tuple[str, ...], list_only: bool, cwd: Path) -> None:
    """Compare installed components against the registry source.

    Exits with status 1 if any component differs from the registry.
    """
    out: OutputFormatter = ctx.obj["out"]
    settings: Config = ctx.obj["settings"]

    try:
        project_root, project_config = _load_project(cwd)
        with create_registry_client(settings) as client:
            engine = SyncEngine(
                client,
                project_config.components_dir(project_root),
                project_config.aliases,
            )
            report = engine.diff(components or None, include_diff=not list_only)
    except CelluiError as e:
        _exit_with_error(ctx, out, e)

    if out.json_output:
        out.output_json(report.to_dict())
        ctx.exit(report.exit_code)

    if not report.components and not report.missing:
        out.info("No components installed yet.")
        out.dim("Add components with: pycellui add <component>")
        return

    _print_diff_report(out, report, list_only)
    ctx.exit(report.exit_code)


def _print_diff_report(out: OutputFormatter, report: DiffReport, list_only: bool) -> None:
    """Print per-file status lines, diffs and a summary."""
    out.heading("Comparing components...")
    out.print("")
    for component in report.components:
        if component.error:
            out.print(
                f"! {component.file_name}    (error: {component.error})", style="red"
            )
        elif component.status == ComponentStatus.IDENTICAL:
            out.success(f"✓ {component.file_name}    (identical)")
        elif component.status == ComponentStatus.MODIFIED:
            out.print(f"✗ {component.file_name}    (modified)", style="yellow")
            if not list_only and component.diff:
                out.print_diff(component.diff)
        else:
            out.dim(f"⚠ {component.file_name}    (not in registry)")

    for name in report.missing:
        out.warning(f"Not installed: {name}")

    parts = []
    if report.identical:
        parts.append(f"{len(report.identical)} identical")
    if report.modified:
        parts.append(f"{len(report.modified)} modified")
    if report.local_only:
        parts.append(f"{len(report.local_only)} custom")
    if report.errors:
        parts.append(f"{len(report.errors)} errors")
    out.print("")
    out.dim(f"Summary: {', '.join(parts) if parts else 'nothing to compare'}")

    outdated = sorted({c.name for c in report.modified})
    if outdated:
        out.print("")
        out.dim("Update modified components with:")
        out.hint(f"  pycellui update {' '.join(outdated)}")


@main.command()
@click.argument("components", nargs=-1)
@click.option(
    "--all", "update_all", is_flag=True, help="Update all components (even up to date)"
)
@click.option("--dry-run", is_flag=True, help="Show what would be updated")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@workers_option
@cwd_option
@click.pass_context
def update(
    ctx: Any,
    components: tuple[str, ...],
    update_all: bool,
    dry_run: bool,
    yes: bool,
    workers: int,
    cwd: Path,
) -> None:
    """Update installed components to the latest registry versions.

    Without arguments, updates every component whose files differ from
    the registry. Custom (local-only) files are never touched.
    """
    out: OutputFormatter = ctx.obj["out"]
    settings: Config = ctx.obj["settings"]
    display = SyncProgressDisplay(out, verb="Updated")

    def confirm(targets: list[str]) -> Confirmation:
        with display.paused():
            out.heading(f"Components to update ({len(targets)}):")
            for name in targets:
                out.info(f"  ● {name}")
            if yes:
                return Confirmation.CONFIRMED
            try:
                accepted = click.confirm(
                    f"Update {pluralize(len(targets), 'component')}?", default=True
                )
            except click.Abort:
                return Confirmation.CANCELLED
        return Confirmation.CONFIRMED if accepted else Confirmation.CANCELLED

    try:
        project_root, project_config = _load_project(cwd)
        with create_registry_client(settings) as client, display:
            engine = SyncEngine(
                client,
                project_config.components_dir(project_root),
                project_config.aliases,
                reporter=display.create_reporter(),
                max_workers=workers,
            )
            report = engine.update(
                components, update_all=update_all, dry_run=dry_run, confirm=confirm
            )
    except CelluiError as e:
        _exit_with_error(ctx, out, e)

    if out.json_output:
        out.output_json(report.to_dict())
        ctx.exit(report.exit_code)

    if report.cancelled:
        out.dim("Cancelled.")
        return
    if not report.resolved and not report.failed:
        out.success("✓ All components are up to date!")
        return

    _print_sync_summary(out, report, "update")
    ctx.exit(report.exit_code)


@main.command()
@cwd_option
@click.pass_context
def doctor(ctx: Any, cwd: Path) -> None:
    """Check the project setup for common issues.

    Exits with status 1 if any check fails. Warnings do not fail.
    """
    out: OutputFormatter = ctx.obj["out"]
    report = run_checks(cwd)

    if out.json_output:
        out.output_json(report.to_dict())
        ctx.exit(report.exit_code)

    out.heading("pycellui Doctor")
    out.dim("Checking your project setup...")
    out.print("")
    if report.project_root:
        out.dim(f"Project: {report.project_root}")
        out.dim(f"Type: {report.project_type}")
        out.dim(f"Package Manager: {report.package_manager}")
        out.print("")

    for check in report.checks:
        icon, style = _CHECK_STYLES[check.status]
        out.print(f"  {icon} {check.name}", style=style)
        out.print(f"    {check.message}", style=style)
        if check.fix and check.status != CheckStatus.PASS:
            out.dim(f"    Fix: {check.fix}")

    out.print("")
    out.info(
        f"Summary: {report.passed} passed, {report.warnings} warnings, "
        f"{report.failed} failed"
    )
    if report.failed:
        out.warning("Fix the failed checks above before adding components.")
    elif report.warnings:
        out.success("✓ Project is usable, consider addressing the warnings.")
    else:
        out.success("✓ Project is ready for pycellui components.")
    ctx.exit(report.exit_code)


if __name__ == "__main__":
    main()
