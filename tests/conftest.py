"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserve import HTTPServer, ServerConfig
from fileserve.http import HTTPRequest


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small site to serve:

        site/
        ├── a.txt             "hi"
        ├── logo.png          PNG header + NUL bytes
        ├── notes             no extension, text
        ├── .DS_Store
        ├── .git/HEAD
        ├── sub/              empty
        └── docs/
            ├── readme.md
            └── guide/
                └── page.md
    """
    root = tmp_path / "site"
    root.mkdir()

    (root / "a.txt").write_bytes(b"hi")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")
    (root / "notes").write_text("remember the milk\n")
    (root / ".DS_Store").write_bytes(b"\x00\x00\x00\x01Bud1")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "sub").mkdir()
    (root / "docs" / "guide").mkdir(parents=True)
    (root / "docs" / "readme.md").write_text("# Docs\n")
    (root / "docs" / "guide" / "page.md").write_text("# Page\n")

    return root


@pytest.fixture
def make_config(site: Path) -> Callable[..., ServerConfig]:
    """Factory for configs serving `site`; keyword arguments override."""
    def factory(**overrides) -> ServerConfig:
        values = dict(
            root_directory=str(site),
            host="127.0.0.1",
            port=3000,
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            log_level="WARNING",
        )
        values.update(overrides)
        return ServerConfig(**values)

    return factory


@pytest.fixture
def config(make_config) -> ServerConfig:
    """Default test configuration for `site`."""
    return make_config()


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory for parsed requests."""
    def factory(path: str, method: str = "GET", **headers: str) -> HTTPRequest:
        return HTTPRequest(
            method=method,
            path=path,
            headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
            client_address=("127.0.0.1", 50000),
        )

    return factory


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: HTTPServer):
        self.server = server
        self.port = server.config.port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def serve(make_config, free_port) -> Generator[Callable[..., TestServer], None, None]:
    """
    Start a server for `site` in the background; stopped after the test.

        server = serve(single_page=True)
        conn = http.client.HTTPConnection("127.0.0.1", server.port)
    """
    started = []

    def factory(handler=None, **overrides) -> TestServer:
        overrides.setdefault("port", free_port)
        test_srv = TestServer(HTTPServer(make_config(**overrides), handler=handler))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()
