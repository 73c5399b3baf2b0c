"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the file server.

=============================================================================
BUILT ONCE, READ EVERYWHERE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      CONFIGURATION LIFECYCLE                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   environment (PORT, FILESERVE_*)                                   │
    │           │                                                          │
    │           ▼                                                          │
    │   command line (--port, --single, ...)   overrides env              │
    │           │                                                          │
    │           ▼                                                          │
    │   ServerConfig(...)          frozen dataclass, asset namespace      │
    │           │                  generated here                          │
    │           ▼                                                          │
    │   validate()                 fail fast: bad port, missing root      │
    │           │                                                          │
    │           ▼                                                          │
    │   shared read-only by every worker thread                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Because the dataclass is frozen, worker threads can read it without locks.
To change a value (e.g. the port after a port clash) build a new config
with dataclasses.replace().

=============================================================================
THE ASSET NAMESPACE
=============================================================================

Directory listings need a stylesheet. We can't put it at `/styles.css`:
that could be one of the USER's files. Instead every process start picks a
random prefix:

    /k3j9x0q2mz/styles.css   ──►  <package>/assets/styles.css

The token is 10 characters of [a-z0-9], so a clash with a real top-level
directory is practically impossible. It is never persisted.

=============================================================================
"""

import os
import secrets
import string
from dataclasses import dataclass, field
from typing import FrozenSet, Optional


# Always ignored, whatever the user passes to --ignore. Directory names
# carry a trailing slash, matching how the listing displays them.
DEFAULT_IGNORED_NAMES: FrozenSet[str] = frozenset({".DS_Store", ".git/"})

ASSET_NAMESPACE_LENGTH = 10


class ConfigurationError(ValueError):
    """Raised when the configuration can't be used to start a server."""


def generate_asset_namespace(length: int = ASSET_NAMESPACE_LENGTH) -> str:
    """Random lowercase alphanumeric token used as the asset URL prefix."""
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def parse_ignore_list(value: Optional[str]) -> FrozenSet[str]:
    """
    Parse a comma-separated --ignore value.

        >>> sorted(parse_ignore_list("node_modules/, dist/,,.env"))
        ['.env', 'dist/', 'node_modules/']
    """
    if not value:
        return frozenset()
    return frozenset(name.strip() for name in value.split(",") if name.strip())


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SERVING
    - root_directory, cache_seconds, single_page, gzip_disabled,
      ignored_names, asset_namespace

    NETWORK
    - host, port, backlog, buffer_size, timeout

    HTTP
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING
    - min_workers, max_workers

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    root_directory: str = field(default_factory=os.getcwd)
    """Directory being served. Made absolute (symlinks resolved) in __post_init__."""

    cache_seconds: int = 3600
    """max-age for the Cache-Control header of served files."""

    single_page: bool = False
    """
    SPA mode: paths that don't exist serve the root index.html instead of
    a 404, so client-side routers can handle them.
    """

    gzip_disabled: bool = False
    """Disable gzip compression of responses (--unzipped)."""

    ignored_names: FrozenSet[str] = DEFAULT_IGNORED_NAMES
    """
    Names hidden from listings and answered with 404. Directory names end
    with "/". DEFAULT_IGNORED_NAMES are always added.
    """

    asset_namespace: str = field(default_factory=generate_asset_namespace)
    """Random URL prefix under which the server's own assets are served."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Bind address. All interfaces by default so phones on the LAN work."""

    port: int = 3000

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """recv() chunk size in bytes."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reading a request."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024
    """Requests are GETs, 1 MB of headers is plenty."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    server_name: str = "fileserve/1.0"

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "root_directory", os.path.realpath(self.root_directory))
        object.__setattr__(
            self,
            "ignored_names",
            frozenset(self.ignored_names) | DEFAULT_IGNORED_NAMES,
        )

    @property
    def asset_prefix(self) -> str:
        """URL prefix of the server's own assets, e.g. ``/k3j9x0q2mz``."""
        return f"/{self.asset_namespace}"

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        PORT                 Port to listen on (default: 3000)
        FILESERVE_HOST       Bind address (default: 0.0.0.0)
        FILESERVE_WORKERS    Max worker threads (default: 16)
        FILESERVE_TIMEOUT    Request read timeout in seconds (default: 30)
        FILESERVE_LOG_LEVEL  Logging level (default: INFO)

        Keyword arguments override the environment (the CLI passes its
        parsed flags here).

        =====================================================================
        """
        try:
            values = dict(
                host=os.getenv("FILESERVE_HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "3000")),
                max_workers=int(os.getenv("FILESERVE_WORKERS", "16")),
                timeout=float(os.getenv("FILESERVE_TIMEOUT", "30")),
                log_level=os.getenv("FILESERVE_LOG_LEVEL", "INFO"),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment value: {e}") from e

        values.update({k: v for k, v in overrides.items() if v is not None})
        values.setdefault("min_workers", min(cls.min_workers, values["max_workers"]))
        return cls(**values)

    def validate(self) -> None:
        """
        Validate configuration values. Fail fast, before any socket exists.

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        if not os.path.isdir(self.root_directory):
            raise ConfigurationError(
                f"Directory to serve does not exist: {self.root_directory}"
            )

        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.cache_seconds < 0:
            raise ConfigurationError("cache_seconds must be >= 0")

        if not self.asset_namespace.isalnum():
            raise ConfigurationError("asset_namespace must be alphanumeric")

        if self.min_workers < 1:
            raise ConfigurationError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigurationError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ConfigurationError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ConfigurationError(f"Unknown log format: {self.log_format}")
