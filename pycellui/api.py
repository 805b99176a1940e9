"""Registry clients for fetching the component catalog and sources."""

from __future__ import annotations

import json
import logging
import random
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from .exceptions import (
    ComponentNotFoundError,
    RegistryFetchError,
)
from .models import ComponentData, ComponentFile, Registry, RegistryItem
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT, basename

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

REGISTRY_FILE_NAME = "registry.json"


class RegistryClient:
    """Base class for registry backends.

    A client loads the catalog at most once and keeps it for its own
    lifetime, which is one command invocation. Subclasses only implement
    raw access to ``registry.json`` and to individual files.
    """

    def __init__(self) -> None:
        self._registry: Registry | None = None

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release any resources held by the backend."""

    @property
    def source(self) -> str:
        """Human-readable description of where the registry lives."""
        raise NotImplementedError

    def _load_descriptor(self) -> Any:
        """Return the parsed registry.json document."""
        raise NotImplementedError

    def _read_file(self, path: str) -> str:
        """Return the text of a registry-relative file."""
        raise NotImplementedError

    def get_registry(self) -> Registry:
        """Load and validate the registry snapshot.

        Raises:
            RegistryFetchError: If the descriptor cannot be fetched or parsed
        """
        if self._registry is None:
            start = time.time()
            self._registry = Registry.from_dict(self._load_descriptor())
            logger.debug(
                "Loaded %d component(s) from %s in %.2fs",
                len(self._registry.components),
                self.source,
                time.time() - start,
            )
        return self._registry

    def get_catalog(self) -> list[RegistryItem]:
        """Return all registry items."""
        return list(self.get_registry().components)

    def get_item(self, name: str) -> RegistryItem:
        """Return the catalog entry for a component.

        Raises:
            ComponentNotFoundError: If the name is not in the catalog
        """
        for item in self.get_registry().components:
            if item.name == name:
                return item
        raise ComponentNotFoundError(name)

    def fetch_component(self, name: str) -> ComponentData:
        """Fetch a component's metadata and file contents.

        Args:
            name: Component name

        Returns:
            ComponentData with every file materialized

        Raises:
            ComponentNotFoundError: If the component is not in the catalog
            RegistryFetchError: If a file cannot be fetched
        """
        item = self.get_item(name)
        files = [
            ComponentFile(name=basename(path), path=path, content=self._read_file(path))
            for path in item.files
        ]
        logger.debug("Fetched %s (%d file(s))", name, len(files))
        return ComponentData(item=item, files=files)


class LocalRegistryClient(RegistryClient):
    """Reads the registry from a local directory (development)."""

    def __init__(self, root: Path):
        """Initialize local registry client.

        Args:
            root: Directory containing registry.json and the component files
        """
        super().__init__()
        self.root = Path(root)

    @property
    def source(self) -> str:
        return str(self.root)

    def _load_descriptor(self) -> Any:
        descriptor_path = self.root / REGISTRY_FILE_NAME
        try:
            with open(descriptor_path, encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise RegistryFetchError(
                f"Registry descriptor not found: {descriptor_path}",
                hint="Check PYCELLUI_REGISTRY_PATH",
            ) from e
        except (OSError, ValueError) as e:
            raise RegistryFetchError(f"Failed to read {descriptor_path}: {e}") from e

    def _read_file(self, path: str) -> str:
        file_path = self.root / path
        try:
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RegistryFetchError(f"Failed to read {file_path}: {e}") from e


class RemoteRegistryClient(RegistryClient):
    """Fetches the registry over HTTP (production)."""

    def __init__(
        self,
        base_url: str,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize remote registry client.

        Args:
            base_url: Base URL; the catalog lives at {base_url}/registry.json
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def source(self) -> str:
        return self.base_url

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        self._client = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _should_retry_status(self, status_code: int) -> bool:
        return status_code == 429 or 500 <= status_code < 600

    def _get(self, path: str) -> httpx.Response:
        """GET a registry-relative path with retry logic.

        Args:
            path: Path relative to the base URL

        Returns:
            Successful response

        Raises:
            RegistryFetchError: If the request fails after all retries
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        client = self._get_client()
        last_error: RegistryFetchError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request("GET", url)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code == 404:
                    raise RegistryFetchError(f"Not found in registry: {url}") from e
                last_error = RegistryFetchError(
                    f"Registry request failed with status {status_code}: {url}"
                )
                if attempt < self.max_retries and self._should_retry_status(
                    status_code
                ):
                    retry_after = e.response.headers.get("Retry-After")
                    if status_code == 429 and retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "GET %s returned %d (attempt %d/%d), retrying in %.1fs",
                        url,
                        status_code,
                        attempt + 1,
                        self.max_retries + 1,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise last_error from e
            except httpx.RequestError as e:
                last_error = RegistryFetchError(f"Network error: {e}")
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug("Network error on %s, retrying in %.1fs", url, delay)
                    time.sleep(delay)
                    continue
                raise last_error from e

        # Exhausted retries
        if last_error:
            raise last_error
        raise RegistryFetchError(f"Request failed after all retry attempts: {url}")

    def _load_descriptor(self) -> Any:
        response = self._get(REGISTRY_FILE_NAME)
        try:
            return response.json()
        except ValueError as e:
            raise RegistryFetchError(
                "Invalid JSON in registry descriptor - "
                "check the registry URL and your network connection"
            ) from e

    def _read_file(self, path: str) -> str:
        return self._get(path).text


def create_registry_client(settings: Config) -> RegistryClient:
    """Create the registry client selected by configuration.

    A configured local registry path always wins over the remote URL;
    the two backends are never mixed.

    Args:
        settings: Process-wide settings

    Returns:
        LocalRegistryClient or RemoteRegistryClient
    """
    if settings.uses_local_registry:
        logger.debug("Using local registry at %s", settings.registry_path)
        return LocalRegistryClient(settings.registry_path)

    logger.debug("Using remote registry at %s", settings.registry_url)
    return RemoteRegistryClient(
        settings.registry_url,
        max_retries=settings.max_retries,
        timeout=settings.timeout,
    )
