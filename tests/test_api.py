"""Unit tests for the registry clients."""

import json
from pathlib import Path
from unittest.mock import Mock, patch

import httpx
import pytest

from pycellui.api import (
    LocalRegistryClient,
    RemoteRegistryClient,
    create_registry_client,
)
from pycellui.exceptions import (
    ComponentNotFoundError,
    RegistryFetchError,
    RegistryIntegrityError,
)

DESCRIPTOR = {
    "name": "mcellui",
    "version": "0.3.0",
    "components": [
        {
            "name": "button",
            "category": "Inputs",
            "files": ["ui/button.tsx"],
            "dependencies": ["react-native-reanimated"],
        },
        {
            "name": "toast",
            "category": "Feedback",
            "files": ["ui/toast.tsx", "hooks/use-toast.ts"],
            "registryDependencies": ["button"],
        },
    ],
}


@pytest.fixture
def registry_dir(tmp_path):
    """Create a local registry directory."""
    root = tmp_path / "registry"
    (root / "ui").mkdir(parents=True)
    (root / "hooks").mkdir()
    (root / "registry.json").write_text(json.dumps(DESCRIPTOR))
    (root / "ui" / "button.tsx").write_text("export function Button() {}\n")
    (root / "ui" / "toast.tsx").write_text("export function Toast() {}\n")
    (root / "hooks" / "use-toast.ts").write_text("export function useToast() {}\n")
    return root


def make_remote(handler, **kwargs):
    """Create a remote client whose HTTP traffic goes to a handler."""
    client = RemoteRegistryClient("https://registry.test/r/", **kwargs)
    client._client = httpx.Client(transport=httpx.MockTransport(handler))
    return client


def serve(files):
    """Build a MockTransport handler serving a {path: (status, body)} map."""
    requests = []

    def handler(request):
        requests.append(request)
        path = request.url.path.removeprefix("/r/")
        status, body = files.get(path, (404, ""))
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    handler.requests = requests
    return handler


class TestLocalRegistryClient:
    """Tests for the filesystem backend."""

    def test_get_catalog(self, registry_dir):
        """Test the catalog is parsed from registry.json."""
        client = LocalRegistryClient(registry_dir)

        catalog = client.get_catalog()

        assert [item.name for item in catalog] == ["button", "toast"]
        assert catalog[0].category == "Inputs"

    def test_registry_is_cached(self, registry_dir):
        """Test the descriptor is read once per client."""
        client = LocalRegistryClient(registry_dir)
        with patch.object(
            client, "_load_descriptor", wraps=client._load_descriptor
        ) as load:
            client.get_catalog()
            client.get_catalog()
            client.get_item("button")
        assert load.call_count == 1

    def test_fetch_component(self, registry_dir):
        """Test files are materialized under their basenames."""
        with LocalRegistryClient(registry_dir) as client:
            component = client.fetch_component("toast")

        assert component.name == "toast"
        assert [f.name for f in component.files] == ["toast.tsx", "use-toast.ts"]
        assert [f.path for f in component.files] == [
            "ui/toast.tsx",
            "hooks/use-toast.ts",
        ]
        assert component.get_file("use-toast.ts").content.startswith("export")

    def test_fetch_unknown_component(self, registry_dir):
        """Test unknown names raise ComponentNotFoundError."""
        client = LocalRegistryClient(registry_dir)
        with pytest.raises(ComponentNotFoundError) as exc_info:
            client.fetch_component("nope")
        assert exc_info.value.name == "nope"

    def test_missing_descriptor(self, tmp_path):
        """Test a directory without registry.json raises RegistryFetchError."""
        with pytest.raises(RegistryFetchError, match="not found"):
            LocalRegistryClient(tmp_path).get_catalog()

    def test_invalid_descriptor_json(self, registry_dir):
        """Test broken JSON raises RegistryFetchError."""
        (registry_dir / "registry.json").write_text("{oops")
        with pytest.raises(RegistryFetchError):
            LocalRegistryClient(registry_dir).get_catalog()

    def test_missing_component_file(self, registry_dir):
        """Test a listed file that does not exist raises RegistryFetchError."""
        (registry_dir / "ui" / "button.tsx").unlink()
        with pytest.raises(RegistryFetchError):
            LocalRegistryClient(registry_dir).fetch_component("button")

    def test_basename_collision_rejected(self, registry_dir):
        """Test an inconsistent registry fails at catalog load."""
        descriptor = dict(DESCRIPTOR)
        descriptor["components"] = DESCRIPTOR["components"] + [
            {"name": "button-v2", "files": ["v2/button.tsx"]}
        ]
        (registry_dir / "registry.json").write_text(json.dumps(descriptor))

        with pytest.raises(RegistryIntegrityError):
            LocalRegistryClient(registry_dir).get_catalog()


class TestRemoteRegistryClient:
    """Tests for the HTTP backend."""

    def test_base_url_trailing_slash(self):
        """Test the base URL is stored without a trailing slash."""
        assert RemoteRegistryClient("https://x.test/r/").base_url == "https://x.test/r"

    def test_get_catalog(self):
        """Test the catalog is fetched from {base}/registry.json."""
        handler = serve({"registry.json": (200, DESCRIPTOR)})
        client = make_remote(handler)

        catalog = client.get_catalog()

        assert [item.name for item in catalog] == ["button", "toast"]
        assert str(handler.requests[0].url) == "https://registry.test/r/registry.json"

    def test_fetch_component(self):
        """Test component files are fetched by registry path."""
        handler = serve(
            {
                "registry.json": (200, DESCRIPTOR),
                "ui/toast.tsx": (200, "toast source"),
                "hooks/use-toast.ts": (200, "hook source"),
            }
        )
        client = make_remote(handler)

        component = client.fetch_component("toast")

        assert component.get_file("toast.tsx").content == "toast source"
        assert component.get_file("use-toast.ts").content == "hook source"

    def test_not_found(self):
        """Test a 404 is not retried."""
        handler = serve({})
        client = make_remote(handler, max_retries=3)

        with pytest.raises(RegistryFetchError, match="Not found"):
            client.get_catalog()
        assert len(handler.requests) == 1

    def test_invalid_json(self):
        """Test a non-JSON descriptor raises RegistryFetchError."""
        client = make_remote(serve({"registry.json": (200, "<html>")}))

        with pytest.raises(RegistryFetchError, match="Invalid JSON"):
            client.get_catalog()

    @patch("pycellui.api.time.sleep")
    def test_retries_server_errors(self, mock_sleep):
        """Test 5xx responses are retried until success."""
        responses = [
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json=DESCRIPTOR),
        ]
        client = make_remote(lambda request: responses.pop(0), max_retries=3)

        assert len(client.get_catalog()) == 2
        assert mock_sleep.call_count == 2

    @patch("pycellui.api.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        """Test persistent 5xx raises after max_retries + 1 attempts."""
        handler = serve({"registry.json": (500, "")})
        client = make_remote(handler, max_retries=2)

        with pytest.raises(RegistryFetchError, match="status 500"):
            client.get_catalog()
        assert len(handler.requests) == 3
        assert mock_sleep.call_count == 2

    @patch("pycellui.api.time.sleep")
    def test_rate_limit_honours_retry_after(self, mock_sleep):
        """Test 429 waits for the Retry-After header."""
        responses = [
            httpx.Response(429, headers={"Retry-After": "7"}),
            httpx.Response(200, json=DESCRIPTOR),
        ]
        client = make_remote(lambda request: responses.pop(0))

        client.get_catalog()

        mock_sleep.assert_called_once_with(7.0)

    @patch("pycellui.api.time.sleep")
    def test_client_errors_not_retried(self, mock_sleep):
        """Test 4xx other than 404/429 fail immediately."""
        handler = serve({"registry.json": (403, "")})
        client = make_remote(handler)

        with pytest.raises(RegistryFetchError, match="status 403"):
            client.get_catalog()
        mock_sleep.assert_not_called()

    @patch("pycellui.api.time.sleep")
    def test_network_error_retried(self, mock_sleep):
        """Test connection errors are retried and then surfaced."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_remote(handler, max_retries=1)

        with pytest.raises(RegistryFetchError, match="Network error") as exc_info:
            client.get_catalog()
        assert mock_sleep.call_count == 1
        assert "internet connection" in exc_info.value.hint

    def test_retry_delay_backoff(self):
        """Test exponential backoff stays within the jitter band."""
        client = RemoteRegistryClient("https://x.test", retry_delay=1.0)
        for attempt in range(4):
            delay = client._calculate_retry_delay(attempt)
            base = 2**attempt
            assert base * 0.75 <= delay <= base * 1.25

    def test_close(self):
        """Test close releases the underlying client."""
        client = make_remote(serve({}))
        http_client = client._client

        client.close()

        assert http_client.is_closed
        assert client._client is None


class TestCreateRegistryClient:
    """Tests for backend selection."""

    def test_local_path_wins(self, tmp_path):
        """Test a registry path selects the local backend."""
        settings = Mock(registry_path=tmp_path, uses_local_registry=True)

        client = create_registry_client(settings)

        assert isinstance(client, LocalRegistryClient)
        assert client.root == Path(tmp_path)

    def test_remote_by_default(self):
        """Test the remote backend is used without a path."""
        settings = Mock(
            registry_path=None,
            uses_local_registry=False,
            registry_url="https://example.com/r",
            max_retries=5,
            timeout=2.0,
        )

        client = create_registry_client(settings)

        assert isinstance(client, RemoteRegistryClient)
        assert client.base_url == "https://example.com/r"
        assert client.max_retries == 5
        assert client.timeout == 2.0
