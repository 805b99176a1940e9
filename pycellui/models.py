"""Data models for registry catalogs and component payloads."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .exceptions import RegistryIntegrityError
from .utils import basename

VALID_STATUSES = ("stable", "beta", "experimental")


def _string_list(data: dict[str, Any], key: str, owner: str) -> list[str]:
    """Return an optional list-of-strings field of a registry entry."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise RegistryIntegrityError(
            f'Component "{owner}" has an invalid "{key}" field: expected a list '
            f"of strings, got {value!r}"
        )
    return list(value)


@dataclass
class RegistryItem:
    """A component entry in the registry catalog."""

    name: str
    """Unique component name"""

    files: list[str] = field(default_factory=list)
    """Registry-relative source paths, in publishing order"""

    type: str = "registry:ui"
    """Registry item type"""

    description: str = ""
    """Human-readable summary"""

    category: str = "Other"
    """Catalog category used for grouping"""

    status: str = "stable"
    """Maturity: stable, beta or experimental"""

    dependencies: list[str] = field(default_factory=list)
    """External package names required at runtime"""

    dev_dependencies: list[str] = field(default_factory=list)
    """External package names required for development"""

    registry_dependencies: list[str] = field(default_factory=list)
    """Names of other registry items this one requires"""

    @property
    def file_names(self) -> list[str]:
        """Basenames of the item's files, as installed in a project."""
        return [basename(path) for path in self.files]

    @classmethod
    def from_dict(cls, data: Any) -> "RegistryItem":
        """Create RegistryItem from a registry.json component entry.

        Args:
            data: Component entry using the registry's camelCase keys

        Returns:
            RegistryItem instance

        Raises:
            RegistryIntegrityError: If the entry is not an object, has no name,
                or a list field is not a list of strings
        """
        if not isinstance(data, dict):
            raise RegistryIntegrityError(
                f"Registry entry must be a JSON object, got {data!r}"
            )

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise RegistryIntegrityError(f"Registry entry without a name: {data!r}")

        status = data.get("status", "stable")
        return cls(
            name=name,
            files=_string_list(data, "files", name),
            type=data.get("type", "registry:ui"),
            description=data.get("description", ""),
            category=data.get("category") or "Other",
            status=status if status in VALID_STATUSES else "stable",
            dependencies=_string_list(data, "dependencies", name),
            dev_dependencies=_string_list(data, "devDependencies", name),
            registry_dependencies=_string_list(data, "registryDependencies", name),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert item to the registry's JSON shape."""
        return {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "category": self.category,
            "status": self.status,
            "files": list(self.files),
            "dependencies": list(self.dependencies),
            "devDependencies": list(self.dev_dependencies),
            "registryDependencies": list(self.registry_dependencies),
        }


@dataclass
class Registry:
    """A registry snapshot: descriptor metadata plus its catalog."""

    name: str
    version: str
    components: list[RegistryItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Registry":
        """Parse and validate a registry.json descriptor.

        Raises:
            RegistryIntegrityError: If the descriptor is malformed, names are
                duplicated, or two items publish the same file basename
        """
        if not isinstance(data, dict):
            raise RegistryIntegrityError("Registry descriptor must be a JSON object")

        entries = data.get("components")
        if not isinstance(entries, list):
            raise RegistryIntegrityError(
                "Registry descriptor has no 'components' list"
            )

        components = [RegistryItem.from_dict(entry) for entry in entries]

        seen: set[str] = set()
        for item in components:
            if item.name in seen:
                raise RegistryIntegrityError(
                    f'Component "{item.name}" is listed more than once'
                )
            seen.add(item.name)

        # Fail early on basename collisions
        build_file_index(components)

        return cls(
            name=data.get("name", "registry"),
            version=str(data.get("version", "0.0.0")),
            components=components,
        )


def build_file_index(catalog: list[RegistryItem]) -> dict[str, RegistryItem]:
    """Map installed file basenames to the registry item that owns them.

    Installed components are flattened to basenames in the consumer's
    directory, so two items publishing the same basename would make the
    lookup ambiguous.

    Args:
        catalog: Registry items

    Returns:
        Dictionary mapping basename to RegistryItem

    Raises:
        RegistryIntegrityError: If two different items publish the same basename
    """
    index: dict[str, RegistryItem] = {}
    for item in catalog:
        for file_name in item.file_names:
            owner = index.get(file_name)
            if owner is not None and owner.name != item.name:
                raise RegistryIntegrityError(
                    f'File "{file_name}" is published by both '
                    f'"{owner.name}" and "{item.name}"'
                )
            index[file_name] = item
    return index


@dataclass
class ComponentFile:
    """A single materialized component source file."""

    name: str
    """Basename, as written into the project"""

    path: str
    """Registry-relative path"""

    content: str
    """Source text"""


@dataclass
class ComponentData:
    """A registry item with its file contents materialized."""

    item: RegistryItem
    files: list[ComponentFile] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def dependencies(self) -> list[str]:
        return self.item.dependencies

    @property
    def dev_dependencies(self) -> list[str]:
        return self.item.dev_dependencies

    @property
    def registry_dependencies(self) -> list[str]:
        return self.item.registry_dependencies

    def get_file(self, file_name: str) -> Optional[ComponentFile]:
        """Return the file with the given basename, if any."""
        for component_file in self.files:
            if component_file.name == file_name:
                return component_file
        return None
