"""
=============================================================================
DIRECTORY LISTINGS
=============================================================================

Renders the HTML page shown for a directory without an index.html.

    ┌──────────────────────────────────────────────────────────────────────┐
    │  site / docs / api                          ← breadcrumbs            │
    │  ──────────────────────────────────────────────────────────────────  │
    │  ..                                          ← parent (not at root)  │
    │  images/                                     ← directories: "/"      │
    │  index.md                          4 KB      ← files: size + ext     │
    │  notes                             12 B      ← no ext: "txt"         │
    │  ──────────────────────────────────────────────────────────────────  │
    │  Python 3.12.1 on port 3000                                          │
    └──────────────────────────────────────────────────────────────────────┘

=============================================================================
BREADCRUMBS
=============================================================================

The label of a listing is the root's basename followed by the path below
the root. Walking it left to right, each component links to the path
accumulated so far:

    label:   site  /  docs   /  api
    links:   /        /docs/    /docs/api/

The root component always links to "/", whatever its on-disk name.

=============================================================================
"""

import html
import logging
import platform
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote

from ..config import ServerConfig
from .resolver import is_ignored


logger = logging.getLogger(__name__)


SIZE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")

DEFAULT_EXTENSION = "txt"


@dataclass(frozen=True)
class DirectoryEntry:
    """
    One row of a listing.

    Attributes:
        name:         Display name; directories end with "/"
        relative:     URL of the entry from the server root, percent-encoded
        is_directory: True for directories and the ".." entry
        size:         Human formatted size, files only
        extension:    Lowercase extension without the dot, files only
    """

    name: str
    relative: str
    is_directory: bool = False
    size: Optional[str] = None
    extension: Optional[str] = None


@dataclass(frozen=True)
class Breadcrumb:
    name: str
    url: str


def format_size(num_bytes: int) -> str:
    """
    Human readable size in whole base-1024 units.

        >>> format_size(0), format_size(4200), format_size(3 * 1024 ** 2)
        ('0 B', '4 KB', '3 MB')
    """
    size = float(num_bytes)
    for unit in SIZE_UNITS:
        if size < 1024:
            return f"{size:.0f} {unit}"
        size /= 1024.0
    return f"{size:.0f} EB"


def file_extension(name: str) -> str:
    """Text after the last dot, "txt" when there is none."""
    stem, dot, extension = name.rpartition(".")
    if not dot or not stem or not extension:
        return DEFAULT_EXTENSION
    return extension.lower()


def url_for(relative: PurePosixPath, directory: bool = False) -> str:
    """Root-relative, percent-encoded URL for a path below the root."""
    parts = [part for part in relative.parts if part not in ("", ".")]
    if not parts:
        return "/"
    url = "/" + quote("/".join(parts))
    return url + "/" if directory else url


def build_breadcrumbs(root_name: str, sub_path: PurePosixPath) -> list[Breadcrumb]:
    """
    Breadcrumbs for a listing of `sub_path` (relative to the root).

        >>> [c.url for c in build_breadcrumbs("site", PurePosixPath("a/b"))]
        ['/', '/a/', '/a/b/']
    """
    crumbs = [Breadcrumb(root_name, "/")]

    accumulated = PurePosixPath()
    for part in sub_path.parts:
        if part in ("", "."):
            continue
        accumulated = accumulated / part
        crumbs.append(Breadcrumb(part, url_for(accumulated, directory=True)))

    return crumbs


class DirectoryRenderer:
    """
    Builds listing pages for directories below the served root.

    Usage:
        renderer = DirectoryRenderer(config)
        page = renderer.render(Path("/srv/site/docs"))

        if page is None:
            # directory went away, fall through to 404 / SPA
            ...
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self.root = Path(config.root_directory)

    def render(self, directory: Path) -> Optional[str]:
        """
        Render the listing of `directory`.

        Returns:
            The HTML page, or None when the directory no longer exists.
        """
        try:
            entries = self.list_entries(directory)
        except (FileNotFoundError, NotADirectoryError):
            logger.debug(f"Directory vanished before listing: {directory}")
            return None

        sub_path = PurePosixPath(directory.relative_to(self.root).as_posix())
        root_name = self.root.name or "/"
        crumbs = build_breadcrumbs(root_name, sub_path)

        if sub_path.parts:
            parent = url_for(sub_path.parent, directory=True)
            entries.insert(0, DirectoryEntry("..", parent, is_directory=True))

        label = root_name
        if sub_path.parts:
            label = f"{root_name}/{sub_path.as_posix()}"

        return self._render_page(label, entries, crumbs)

    def list_entries(self, directory: Path) -> list[DirectoryEntry]:
        """
        Immediate children of `directory`, sorted, ignored names removed.

        Raises:
            FileNotFoundError: The directory doesn't exist.
            NotADirectoryError: The path is no longer a directory.
        """
        sub_path = PurePosixPath(directory.relative_to(self.root).as_posix())
        entries = []

        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            # Same rule as request resolution, so nothing listed is a 404
            if is_ignored([child.name], self.config.ignored_names):
                continue

            relative = sub_path / child.name

            try:
                if child.is_dir():
                    entry = DirectoryEntry(
                        name=f"{child.name}/",
                        relative=url_for(relative, directory=True),
                        is_directory=True,
                    )
                else:
                    entry = DirectoryEntry(
                        name=child.name,
                        relative=url_for(relative),
                        size=format_size(child.stat().st_size),
                        extension=file_extension(child.name),
                    )
            except OSError as e:
                # Removed while listing, a dangling or looping symlink,
                # or no permission to stat: leave it out
                logger.debug(f"Skipping {child} in listing: {e}")
                continue

            entries.append(entry)

        return entries

    # =========================================================================
    # HTML
    # =========================================================================

    def _render_page(
        self,
        label: str,
        entries: list[DirectoryEntry],
        crumbs: list[Breadcrumb],
    ) -> str:
        esc = html.escape
        stylesheet = f"{self.config.asset_prefix}/styles.css"
        runtime = f"Python {platform.python_version()}"

        crumb_links = " / ".join(
            f'<a href="{esc(crumb.url)}">{esc(crumb.name)}</a>' for crumb in crumbs
        )

        rows = []
        for entry in entries:
            if entry.is_directory:
                css_class = "folder"
                meta = ""
            else:
                css_class = f"file ext-{esc(entry.extension)}"
                meta = f'<span class="size">{esc(entry.size)}</span>'
            rows.append(
                f'      <li><a href="{esc(entry.relative)}" class="{css_class}" '
                f'title="{esc(entry.name)}">{esc(entry.name)}</a>{meta}</li>'
            )

        return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>Files within {esc(label)}</title>
    <link rel="stylesheet" href="{esc(stylesheet)}">
  </head>
  <body>
    <main>
      <h1><i>Index of&nbsp;</i>{crumb_links}</h1>
      <ul id="files">
{chr(10).join(rows)}
      </ul>
    </main>
    <footer>{esc(runtime)} on port {self.config.port}</footer>
  </body>
</html>
"""
