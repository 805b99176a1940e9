"""Exception hierarchy for pycellui."""

from typing import Optional

from .utils import format_cycle


class CelluiError(Exception):
    """Base exception for all pycellui errors.

    Every error may carry a short remediation hint that the CLI prints
    below the error message.
    """

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigurationError(CelluiError):
    """Project is missing, not initialized or badly configured."""


class ProjectNotFoundError(ConfigurationError):
    """No package.json found in the working directory or its parents."""

    def __init__(self, cwd: str):
        super().__init__(
            f"Could not find a valid Expo/React Native project in {cwd}",
            hint="Run this command from a project directory containing package.json",
        )
        self.cwd = cwd


class NotInitializedError(ConfigurationError):
    """Project has no pycellui.json."""

    def __init__(self, project_root: str):
        super().__init__(
            "Project not initialized",
            hint="Run: pycellui init",
        )
        self.project_root = project_root


class RegistryFetchError(CelluiError):
    """Registry catalog or file could not be fetched or parsed."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(
            message,
            hint=hint or "Check your internet connection and try again",
        )


class RegistryIntegrityError(RegistryFetchError):
    """Registry snapshot violates an invariant (duplicate names or files)."""

    def __init__(self, message: str):
        super().__init__(
            message,
            hint="The registry is inconsistent; report this to its maintainers",
        )


class CircularDependencyError(CelluiError):
    """Registry dependencies of the requested components form a cycle."""

    def __init__(self, chain: list[str]):
        self.chain = list(chain)
        super().__init__(
            f"Circular dependency detected: {format_cycle(self.chain)}",
            hint="The registry is inconsistent; report this to its maintainers",
        )


class UnresolvedDependencyError(CelluiError):
    """Registry dependencies reference components missing from the registry."""

    def __init__(self, unresolved: list):
        self.unresolved = list(unresolved)
        names = ", ".join(str(u) for u in self.unresolved)
        super().__init__(
            f"Unresolved registry dependencies: {names}",
            hint="Run without --strict to install the remaining components",
        )


class ComponentNotFoundError(CelluiError):
    """Component does not exist in the registry."""

    def __init__(
        self,
        name: str,
        message: Optional[str] = None,
        hint: str = "Run: pycellui list",
    ):
        super().__init__(
            message or f'Component "{name}" not found in registry', hint=hint
        )
        self.name = name


class ComponentWriteError(CelluiError):
    """A component file could not be written to the project."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, hint="Use --overwrite to replace existing files")
        self.path = path


class ComponentNotInstalledError(ComponentNotFoundError):
    """Component exists in the registry but is not installed in the project."""

    def __init__(self, name: str):
        super().__init__(
            name,
            message=f'Component "{name}" is not installed',
            hint="Run: pycellui list --installed",
        )
