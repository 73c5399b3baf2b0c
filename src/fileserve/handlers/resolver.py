"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a request path onto the filesystem. Called exactly once per request,
and nothing is cached: the filesystem is the source of truth.

=============================================================================
RESOLUTION FLOW
=============================================================================

    request path: "/docs/My%20Notes/"
           │
           ▼
    ┌─────────────────────────────┐
    │ split into segments         │   ["docs", "My%20Notes"]
    └─────────────┬───────────────┘
                  │
           parent segments contain the asset namespace?
           ├── yes ──► <package>/assets/<rest>           ──► ASSET
           │
           ▼ no
    ┌─────────────────────────────┐
    │ percent-decode each segment │   ["docs", "My Notes"]
    │ any segment ignored?        │   ".git", ".DS_Store"  ──► MISSING
    └─────────────┬───────────────┘
                  ▼
    ┌─────────────────────────────┐
    │ join with root, resolve()   │   /srv/site/docs/My Notes
    │ still inside root?          │   "/../../etc/passwd"  ──► MISSING
    └─────────────┬───────────────┘
                  ▼
           exists?
           ├── no,  SPA off ──► MISSING
           ├── no,  SPA on  ──► FILE (existence re-checked by the handler)
           ├── directory    ──► DIRECTORY
           └── regular file ──► FILE

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

resolve() collapses `..` segments AND follows symlinks, so both

    GET /../../etc/passwd
    GET /link-to-etc/passwd      (symlink inside root pointing outside)

end up outside the root and are answered with 404, exactly like a file
that doesn't exist. We don't say 403: that would confirm the path exists.

=============================================================================
"""

import errno
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional
from urllib.parse import unquote

from ..config import ServerConfig


logger = logging.getLogger(__name__)


# The server's own static files (listing stylesheet, icons)
ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"


class TargetKind(Enum):
    """What a request path turned out to point at."""
    FILE = "file"
    DIRECTORY = "directory"
    ASSET = "asset"
    MISSING = "missing"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    The outcome of resolving one request path.

    Exactly one kind per request. `path` is None only for MISSING.
    """

    kind: TargetKind
    path: Optional[Path] = None

    @property
    def is_missing(self) -> bool:
        return self.kind is TargetKind.MISSING

    @property
    def is_directory(self) -> bool:
        return self.kind is TargetKind.DIRECTORY

    @property
    def is_asset(self) -> bool:
        return self.kind is TargetKind.ASSET


MISSING = ResolvedTarget(TargetKind.MISSING)


# errno values that mean "there is nothing at this path" rather than a real
# I/O failure: a component is missing or is a file, a name is too long, or a
# symlink loops.
ABSENT_ERRNOS = frozenset({
    errno.ENOENT,
    errno.ENOTDIR,
    errno.ENAMETOOLONG,
    errno.EINVAL,
    errno.ELOOP,
})


def is_absent_error(error: OSError) -> bool:
    """True if `error` just says the path doesn't exist."""
    return error.errno in ABSENT_ERRNOS


def is_ignored(segments: list[str], ignored_names: FrozenSet[str]) -> bool:
    """
    Check decoded path segments against the ignored names.

    A segment matches either as-is (".DS_Store") or as a directory
    (".git" matches ".git/").
    """
    return any(
        segment in ignored_names or f"{segment}/" in ignored_names
        for segment in segments
    )


class PathResolver:
    """
    Resolves request paths against the served directory.

    Usage:
        resolver = PathResolver(config)
        target = resolver.resolve("/css/site.css")

        if target.is_missing:
            ...
    """

    def __init__(self, config: ServerConfig, assets_dir: Path = ASSETS_DIR):
        self.config = config
        self.root = Path(config.root_directory).resolve()
        self.assets_dir = assets_dir.resolve()

    def resolve(self, request_path: str) -> ResolvedTarget:
        """
        Resolve a (still percent-encoded) request path.

        Args:
            request_path: Path component of the request URL, e.g. "/a%20b/".

        Returns:
            A ResolvedTarget; MISSING for anything that doesn't exist (with
            SPA mode off), is ignored, or escapes the root.
        """
        segments = [segment for segment in request_path.split("/") if segment]

        # ─────────────────────────────────────────────────────────────────
        # VIRTUAL ASSET NAMESPACE
        # ─────────────────────────────────────────────────────────────────
        parents = segments[:-1]
        if self.config.asset_namespace in parents:
            after = parents.index(self.config.asset_namespace) + 1
            return self._resolve_asset(segments[after:])

        # ─────────────────────────────────────────────────────────────────
        # DECODE AND FILTER
        # ─────────────────────────────────────────────────────────────────
        decoded = [unquote(segment) for segment in segments]

        if any("\x00" in segment for segment in decoded):
            return MISSING

        if is_ignored(decoded, self.config.ignored_names):
            logger.debug(f"Ignored path requested: {request_path}")
            return MISSING

        # ─────────────────────────────────────────────────────────────────
        # CONTAINMENT CHECK
        # ─────────────────────────────────────────────────────────────────
        candidate = self.root.joinpath(*decoded).resolve()
        if not _is_within(candidate, self.root):
            logger.warning(f"Path traversal attempt: {request_path}")
            return MISSING

        # ─────────────────────────────────────────────────────────────────
        # CLASSIFY
        # ─────────────────────────────────────────────────────────────────
        try:
            if candidate.is_dir():
                return ResolvedTarget(TargetKind.DIRECTORY, candidate)

            if candidate.is_file():
                return ResolvedTarget(TargetKind.FILE, candidate)

            exists = candidate.exists()
        except OSError as e:
            if not is_absent_error(e):
                raise
            exists = False

        if not exists and self.config.single_page:
            return ResolvedTarget(TargetKind.FILE, candidate)

        # Nonexistent, or a socket/FIFO/device we refuse to read
        return MISSING

    def _resolve_asset(self, segments: list[str]) -> ResolvedTarget:
        """Map the part after the namespace onto the package assets dir."""
        decoded = [unquote(segment) for segment in segments]
        if not decoded or any("\x00" in segment for segment in decoded):
            return MISSING

        candidate = self.assets_dir.joinpath(*decoded).resolve()
        if not _is_within(candidate, self.assets_dir):
            return MISSING

        try:
            if not candidate.is_file():
                return MISSING
        except OSError as e:
            if not is_absent_error(e):
                raise
            return MISSING

        return ResolvedTarget(TargetKind.ASSET, candidate)


def _is_within(path: Path, root: Path) -> bool:
    """True if `path` is `root` itself or somewhere below it."""
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True
