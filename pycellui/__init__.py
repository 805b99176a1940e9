"""pycellui - copy-paste UI component registry client."""

from .api import (
    LocalRegistryClient,
    RegistryClient,
    RemoteRegistryClient,
    create_registry_client,
)
from .exceptions import (
    CelluiError,
    CircularDependencyError,
    ComponentNotFoundError,
    ComponentNotInstalledError,
    ComponentWriteError,
    ConfigurationError,
    NotInitializedError,
    ProjectNotFoundError,
    RegistryFetchError,
    RegistryIntegrityError,
    UnresolvedDependencyError,
)
from .models import ComponentData, ComponentFile, Registry, RegistryItem

__version__ = "0.1.0"

__all__ = [
    "RegistryClient",
    "LocalRegistryClient",
    "RemoteRegistryClient",
    "create_registry_client",
    "CelluiError",
    "CircularDependencyError",
    "ComponentNotFoundError",
    "ComponentNotInstalledError",
    "ComponentWriteError",
    "ConfigurationError",
    "NotInitializedError",
    "ProjectNotFoundError",
    "RegistryFetchError",
    "RegistryIntegrityError",
    "UnresolvedDependencyError",
    "Registry",
    "RegistryItem",
    "ComponentData",
    "ComponentFile",
]
