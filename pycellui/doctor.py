"""Project health checks for the ``doctor`` command.

Each check inspects one aspect of the consuming project (package.json,
pycellui.json, install directories, declared peer dependencies, Babel
and TypeScript setup) and yields a ``CheckResult``. Checks never raise
for problems they are meant to detect; those become FAIL or WARN
results with a suggested fix.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .config import (
    CONFIG_FILE_NAME,
    PROJECT_MARKER,
    ProjectConfig,
    find_project_root,
    load_project_config,
)
from .exceptions import ConfigurationError, NotInitializedError, ProjectNotFoundError

logger = logging.getLogger(__name__)

REQUIRED_PEER_DEPENDENCIES: dict[str, tuple[int, int, int]] = {
    "react-native-reanimated": (3, 0, 0),
    "react-native-gesture-handler": (2, 0, 0),
    "react-native-safe-area-context": (4, 0, 0),
}
RECOMMENDED_DEPENDENCIES: dict[str, str] = {
    "@metacells/mcellui-core": "Theme system and utilities",
}
EXPO_GO_INCOMPATIBLE = ("react-native-mmkv", "@shopify/flash-list")

BABEL_CONFIG_FILES = (
    "babel.config.js",
    "babel.config.cjs",
    "babel.config.mjs",
    ".babelrc",
    ".babelrc.js",
)
REANIMATED_BABEL_PLUGIN = "react-native-reanimated/plugin"

LOCKFILES = (
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
)
INSTALL_COMMANDS = {
    "npm": "npm install",
    "yarn": "yarn add",
    "pnpm": "pnpm add",
    "bun": "bun add",
}
MODULE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class CheckStatus(str, Enum):
    """Outcome of a single check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class CheckResult:
    """Result of one health check."""

    name: str
    status: CheckStatus
    message: str
    fix: Optional[str] = None
    """Suggested remediation (not shown for passing checks)"""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "fix": self.fix,
        }


@dataclass
class DoctorReport:
    """All check results for one project."""

    project_root: Optional[Path] = None
    """None when no package.json was found"""

    project_type: str = "unknown"
    package_manager: str = "npm"
    checks: list[CheckResult] = field(default_factory=list)

    def _count(self, status: CheckStatus) -> int:
        return sum(1 for c in self.checks if c.status == status)

    @property
    def passed(self) -> int:
        return self._count(CheckStatus.PASS)

    @property
    def warnings(self) -> int:
        return self._count(CheckStatus.WARN)

    @property
    def failed(self) -> int:
        return self._count(CheckStatus.FAIL)

    @property
    def exit_code(self) -> int:
        """1 if any check failed, else 0. Warnings do not fail."""
        return 1 if self.failed else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectRoot": str(self.project_root) if self.project_root else None,
            "projectType": self.project_type,
            "packageManager": self.package_manager,
            "checks": [c.to_dict() for c in self.checks],
            "summary": {
                "passed": self.passed,
                "warnings": self.warnings,
                "failed": self.failed,
            },
        }


def parse_version(spec: str) -> Optional[tuple[int, int, int]]:
    """Parse the version out of a package.json range like ``^3.6.2``.

    Returns:
        (major, minor, patch), or None for ranges that name no version
        (tags, URLs, ``*``)
    """
    cleaned = spec.strip().replace("workspace:", "").lstrip("^~>=< ")
    match = _VERSION_RE.match(cleaned)
    if not match:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    return major, minor, patch


def detect_package_manager(project_root: Path) -> str:
    """Guess the package manager from the lockfile in the project root."""
    for lockfile, manager in LOCKFILES:
        if (project_root / lockfile).is_file():
            return manager
    return "npm"


def install_command(package_manager: str, project_type: str, package: str) -> str:
    if project_type == "expo":
        return f"npx expo install {package}"
    return f"{INSTALL_COMMANDS.get(package_manager, 'npm install')} {package}"


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _declared_dependencies(package_json: dict[str, Any]) -> dict[str, str]:
    """Merge dependencies and devDependencies, ignoring malformed sections."""
    merged: dict[str, str] = {}
    for key in ("devDependencies", "dependencies"):
        section = package_json.get(key)
        if isinstance(section, dict):
            merged.update({k: str(v) for k, v in section.items()})
    return merged


def detect_project_type(dependencies: dict[str, str]) -> str:
    if "expo" in dependencies:
        return "expo"
    if "react-native" in dependencies:
        return "react-native"
    return "unknown"


def check_project_type(project_type: str) -> CheckResult:
    if project_type == "unknown":
        return CheckResult(
            "Project Type",
            CheckStatus.FAIL,
            "Not an Expo or React Native project",
            fix="Components require Expo or React Native",
        )
    label = "Expo" if project_type == "expo" else "React Native"
    return CheckResult("Project Type", CheckStatus.PASS, f"{label} project detected")


def check_config(project_root: Path) -> tuple[CheckResult, ProjectConfig]:
    """Check pycellui.json and return the config to use for later checks.

    Missing or invalid configuration falls back to the defaults so the
    path checks still run.
    """
    try:
        project_config = load_project_config(project_root)
    except NotInitializedError as e:
        return (
            CheckResult(
                "Config",
                CheckStatus.FAIL,
                f"{CONFIG_FILE_NAME} not found",
                fix=e.hint,
            ),
            ProjectConfig(),
        )
    except ConfigurationError as e:
        return (
            CheckResult("Config", CheckStatus.FAIL, e.message, fix=e.hint),
            ProjectConfig(),
        )
    return (
        CheckResult("Config", CheckStatus.PASS, f"Found {CONFIG_FILE_NAME}"),
        project_config,
    )


def _module_exists(path: Path) -> bool:
    """True if path is a directory or a source file with or without suffix."""
    if path.exists():
        return True
    return any(path.with_name(path.name + s).is_file() for s in MODULE_SUFFIXES)


def check_paths(project_root: Path, project_config: ProjectConfig) -> CheckResult:
    components_exist = project_config.components_dir(project_root).is_dir()
    utils_exist = _module_exists(project_root / project_config.utils_path)

    if not components_exist and not utils_exist:
        return CheckResult(
            "Component Paths",
            CheckStatus.WARN,
            "Component and utils directories not created yet",
            fix="Add a component: pycellui add button",
        )
    if not components_exist:
        return CheckResult(
            "Component Paths",
            CheckStatus.WARN,
            f"Components directory not found: {project_config.components_path}",
            fix="Add a component to create it: pycellui add button",
        )
    if not utils_exist:
        return CheckResult(
            "Component Paths",
            CheckStatus.WARN,
            f"Utils module not found: {project_config.utils_path}",
            fix=f"Create {project_config.utils_path} exporting cn()",
        )
    return CheckResult(
        "Component Paths",
        CheckStatus.PASS,
        f"Components: {project_config.components_path}",
    )


def check_peer_dependencies(
    dependencies: dict[str, str], package_manager: str, project_type: str
) -> list[CheckResult]:
    """Check required peer dependencies are declared in a recent enough version.

    A version range that cannot be parsed is accepted.
    """
    results = []
    for name, minimum in REQUIRED_PEER_DEPENDENCIES.items():
        check_name = f"Dependency: {name}"
        fix = f"Run: {install_command(package_manager, project_type, name)}"
        declared = dependencies.get(name)
        if declared is None:
            results.append(
                CheckResult(check_name, CheckStatus.FAIL, "Not installed", fix=fix)
            )
            continue
        version = parse_version(declared)
        if version is not None and version < minimum:
            wanted = ".".join(str(part) for part in minimum)
            results.append(
                CheckResult(
                    check_name,
                    CheckStatus.WARN,
                    f"Version {declared} may be outdated (recommended: >={wanted})",
                    fix=fix,
                )
            )
            continue
        results.append(
            CheckResult(check_name, CheckStatus.PASS, f"Installed ({declared})")
        )
    return results


def check_recommended_dependencies(
    dependencies: dict[str, str], package_manager: str
) -> list[CheckResult]:
    results = []
    for name, reason in RECOMMENDED_DEPENDENCIES.items():
        declared = dependencies.get(name)
        if declared is None:
            command = INSTALL_COMMANDS.get(package_manager, "npm install")
            results.append(
                CheckResult(
                    f"Dependency: {name}",
                    CheckStatus.WARN,
                    f"Not installed - {reason}",
                    fix=f"Run: {command} {name}",
                )
            )
        else:
            results.append(
                CheckResult(
                    f"Dependency: {name}", CheckStatus.PASS, f"Installed ({declared})"
                )
            )
    return results


def check_babel(project_root: Path) -> CheckResult:
    babel_path = next(
        (project_root / n for n in BABEL_CONFIG_FILES if (project_root / n).is_file()),
        None,
    )
    if babel_path is None:
        return CheckResult(
            "Babel Config",
            CheckStatus.WARN,
            "No babel.config.js found",
            fix="Create babel.config.js with the Reanimated plugin",
        )
    try:
        content = babel_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.info("Could not read %s: %s", babel_path, e)
        return CheckResult(
            "Babel Config", CheckStatus.WARN, f"Could not read {babel_path.name}"
        )
    if REANIMATED_BABEL_PLUGIN not in content:
        return CheckResult(
            "Babel Config",
            CheckStatus.FAIL,
            "Reanimated plugin not configured",
            fix=f"Add '{REANIMATED_BABEL_PLUGIN}' to plugins in {babel_path.name}",
        )
    return CheckResult("Babel Config", CheckStatus.PASS, "Reanimated plugin configured")


def check_typescript(project_root: Path) -> CheckResult:
    tsconfig_path = project_root / "tsconfig.json"
    if not tsconfig_path.is_file():
        return CheckResult(
            "TypeScript",
            CheckStatus.WARN,
            "No tsconfig.json found",
            fix="TypeScript is recommended but not required",
        )
    try:
        tsconfig = _read_json(tsconfig_path)
    except (OSError, ValueError) as e:
        logger.info("Could not parse %s: %s", tsconfig_path, e)
        return CheckResult(
            "TypeScript", CheckStatus.WARN, "Could not parse tsconfig.json"
        )

    paths = None
    if isinstance(tsconfig, dict) and isinstance(tsconfig.get("compilerOptions"), dict):
        paths = tsconfig["compilerOptions"].get("paths")
    if not isinstance(paths, dict) or not paths:
        return CheckResult(
            "TypeScript",
            CheckStatus.WARN,
            "No path aliases configured",
            fix="Consider adding a @/* path alias for cleaner imports",
        )
    if "@/components/*" not in paths and "@/components" not in paths:
        return CheckResult(
            "TypeScript",
            CheckStatus.WARN,
            "Missing @/components path alias",
            fix='Add "@/components/*": ["./components/*"] to tsconfig.json paths',
        )
    return CheckResult("TypeScript", CheckStatus.PASS, "Configured with path aliases")


def check_expo_go(dependencies: dict[str, str]) -> CheckResult:
    found = [name for name in EXPO_GO_INCOMPATIBLE if name in dependencies]
    if found:
        return CheckResult(
            "Expo Go Compatibility",
            CheckStatus.WARN,
            f"Packages may require a dev build: {', '.join(found)}",
            fix="Run: npx expo prebuild for native features",
        )
    return CheckResult(
        "Expo Go Compatibility", CheckStatus.PASS, "No known incompatibilities detected"
    )


def run_checks(cwd: Path) -> DoctorReport:
    """Run every health check for the project containing cwd.

    Args:
        cwd: Directory to start the project search from

    Returns:
        DoctorReport; checks after the project structure check are
        skipped when no readable package.json is found
    """
    report = DoctorReport()
    try:
        project_root = find_project_root(cwd)
    except ProjectNotFoundError as e:
        report.checks.append(
            CheckResult(
                "Project Structure",
                CheckStatus.FAIL,
                f"No {PROJECT_MARKER} found",
                fix=e.hint,
            )
        )
        return report

    report.project_root = project_root
    report.package_manager = detect_package_manager(project_root)

    try:
        package_json = _read_json(project_root / PROJECT_MARKER)
    except (OSError, ValueError) as e:
        logger.info("Could not read %s: %s", PROJECT_MARKER, e)
        package_json = None
    if not isinstance(package_json, dict):
        report.checks.append(
            CheckResult(
                "Project Structure",
                CheckStatus.FAIL,
                f"Invalid {PROJECT_MARKER}",
                fix=f"Check the JSON syntax of {PROJECT_MARKER}",
            )
        )
        return report
    report.checks.append(
        CheckResult(
            "Project Structure", CheckStatus.PASS, f"Valid {PROJECT_MARKER} found"
        )
    )

    dependencies = _declared_dependencies(package_json)
    report.project_type = detect_project_type(dependencies)
    report.checks.append(check_project_type(report.project_type))

    config_check, project_config = check_config(project_root)
    report.checks.append(config_check)
    report.checks.append(check_paths(project_root, project_config))
    report.checks.extend(
        check_peer_dependencies(
            dependencies, report.package_manager, report.project_type
        )
    )
    report.checks.extend(
        check_recommended_dependencies(dependencies, report.package_manager)
    )
    report.checks.append(check_babel(project_root))
    report.checks.append(check_typescript(project_root))
    if report.project_type == "expo":
        report.checks.append(check_expo_go(dependencies))

    logger.debug(
        "Doctor: %d passed, %d warnings, %d failed",
        report.passed,
        report.warnings,
        report.failed,
    )
    return report
