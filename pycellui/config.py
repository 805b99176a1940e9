"""Configuration for pycellui.

Two layers are kept apart here:

* ``Config`` holds process-wide settings read from the environment
  (registry location, timeouts). A module-level ``config`` instance is
  shared by the CLI and the registry clients.
* ``ProjectConfig`` holds the consuming project's settings, stored as
  ``pycellui.json`` in the project root.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigurationError, NotInitializedError, ProjectNotFoundError
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://mcellui.dev/r"
CONFIG_FILE_NAME = "pycellui.json"
PROJECT_MARKER = "package.json"

DEFAULT_COMPONENTS_PATH = "./components/ui"
DEFAULT_UTILS_PATH = "./lib/utils"
DEFAULT_STYLE = "default"
DEFAULT_ALIASES: dict[str, str] = {
    "components": "@/components",
    "utils": "@/lib/utils",
}
VALID_STYLES = ("default", "ios", "material")


class Config:
    """Settings loaded from environment variables."""

    def __init__(self) -> None:
        self.reload()

    def reload(self) -> None:
        """Re-read settings from the environment."""
        self.registry_url: str = os.environ.get(
            "PYCELLUI_REGISTRY_URL", DEFAULT_REGISTRY_URL
        ).rstrip("/")
        registry_path = os.environ.get("PYCELLUI_REGISTRY_PATH")
        self.registry_path: Optional[Path] = (
            Path(registry_path).expanduser() if registry_path else None
        )
        self.timeout: float = _env_float("PYCELLUI_TIMEOUT", DEFAULT_TIMEOUT)
        self.max_retries: int = int(
            _env_float("PYCELLUI_MAX_RETRIES", DEFAULT_MAX_RETRIES)
        )

    @property
    def uses_local_registry(self) -> bool:
        """True when a local registry override is configured."""
        return self.registry_path is not None


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, value)
        return default


config = Config()


@dataclass
class ProjectConfig:
    """Settings of a consuming project."""

    components_path: str = DEFAULT_COMPONENTS_PATH
    """Install directory, relative to the project root"""

    utils_path: str = DEFAULT_UTILS_PATH
    """Location of the utils module, relative to the project root"""

    style: str = DEFAULT_STYLE
    """Component style preset"""

    aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    """Import path aliases, merged over the defaults"""

    def components_dir(self, project_root: Path) -> Path:
        """Absolute install directory for a project root."""
        return (project_root / self.components_path).resolve()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectConfig":
        """Create ProjectConfig from pycellui.json content, applying defaults.

        Raises:
            ConfigurationError: If a field has the wrong type
        """
        aliases = data.get("aliases") or {}
        if not isinstance(aliases, dict):
            raise ConfigurationError(
                "Invalid configuration: 'aliases' must be an object",
                hint=f"Check {CONFIG_FILE_NAME}",
            )

        style = data.get("style", DEFAULT_STYLE)
        if style not in VALID_STYLES:
            raise ConfigurationError(
                f"Invalid configuration: unknown style {style!r}",
                hint=f"Use one of: {', '.join(VALID_STYLES)}",
            )

        return cls(
            components_path=str(data.get("componentsPath", DEFAULT_COMPONENTS_PATH)),
            utils_path=str(data.get("utilsPath", DEFAULT_UTILS_PATH)),
            style=style,
            aliases={**DEFAULT_ALIASES, **aliases},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the pycellui.json shape."""
        return {
            "componentsPath": self.components_path,
            "utilsPath": self.utils_path,
            "style": self.style,
            "aliases": dict(self.aliases),
        }


def find_project_root(cwd: Path) -> Path:
    """Find the nearest directory containing package.json.

    Args:
        cwd: Directory to start searching from

    Returns:
        Project root directory

    Raises:
        ProjectNotFoundError: If no ancestor contains package.json
    """
    start = cwd.resolve()
    for directory in (start, *start.parents):
        if (directory / PROJECT_MARKER).is_file():
            logger.debug("Project root: %s", directory)
            return directory
    raise ProjectNotFoundError(str(start))


def get_config_path(project_root: Path) -> Path:
    """Return the path of the project config file."""
    return project_root / CONFIG_FILE_NAME


def load_project_config(project_root: Path) -> ProjectConfig:
    """Load the project's pycellui.json.

    Raises:
        NotInitializedError: If the config file does not exist
        ConfigurationError: If the config file cannot be parsed
    """
    config_path = get_config_path(project_root)
    if not config_path.is_file():
        raise NotInitializedError(str(project_root))

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}", hint=f"Check {CONFIG_FILE_NAME}"
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Invalid configuration: expected a JSON object",
            hint=f"Check {CONFIG_FILE_NAME}",
        )

    logger.debug("Loaded project config from %s", config_path)
    return ProjectConfig.from_dict(data)


def save_project_config(project_root: Path, project_config: ProjectConfig) -> Path:
    """Write pycellui.json to the project root.

    Returns:
        Path of the written file
    """
    config_path = get_config_path(project_root)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(project_config.to_dict(), f, indent=2)
        f.write("\n")
    logger.debug("Saved project config to %s", config_path)
    return config_path
