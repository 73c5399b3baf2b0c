"""
Unit tests for directory listings.
"""

import os
import platform
from pathlib import Path, PurePosixPath

import pytest

from fileserve.handlers.listing import (
    DirectoryRenderer,
    build_breadcrumbs,
    file_extension,
    format_size,
    url_for,
)


@pytest.fixture
def renderer(config) -> DirectoryRenderer:
    return DirectoryRenderer(config)


@pytest.fixture
def root(config) -> Path:
    return Path(config.root_directory)


class TestFormatting:

    @pytest.mark.parametrize("num_bytes,expected", [
        (0, "0 B"),
        (2, "2 B"),
        (1023, "1023 B"),
        (1024, "1 KB"),
        (4200, "4 KB"),
        (3 * 1024 ** 2, "3 MB"),
        (5 * 1024 ** 3, "5 GB"),
    ])
    def test_format_size(self, num_bytes, expected):
        assert format_size(num_bytes) == expected

    @pytest.mark.parametrize("name,expected", [
        ("a.txt", "txt"),
        ("README.MD", "md"),
        ("bundle.min.js", "js"),
        ("Makefile", "txt"),
        (".env", "txt"),
        ("trailing.", "txt"),
    ])
    def test_file_extension(self, name, expected):
        assert file_extension(name) == expected

    def test_url_for(self):
        assert url_for(PurePosixPath("")) == "/"
        assert url_for(PurePosixPath("docs/readme.md")) == "/docs/readme.md"
        assert url_for(PurePosixPath("docs"), directory=True) == "/docs/"
        assert url_for(PurePosixPath("My Docs/a#1.txt")) == "/My%20Docs/a%231.txt"


class TestBreadcrumbs:

    def test_root_only(self):
        crumbs = build_breadcrumbs("site", PurePosixPath(""))

        assert [(c.name, c.url) for c in crumbs] == [("site", "/")]

    def test_nested(self):
        crumbs = build_breadcrumbs("site", PurePosixPath("docs/guide"))

        assert [(c.name, c.url) for c in crumbs] == [
            ("site", "/"),
            ("docs", "/docs/"),
            ("guide", "/docs/guide/"),
        ]

    def test_components_are_encoded_in_urls_only(self):
        crumbs = build_breadcrumbs("site", PurePosixPath("My Docs"))

        assert crumbs[1].name == "My Docs"
        assert crumbs[1].url == "/My%20Docs/"


class TestListEntries:

    def test_sorted_with_ignored_removed(self, renderer, root):
        names = [entry.name for entry in renderer.list_entries(root)]

        assert names == ["a.txt", "docs/", "logo.png", "notes", "sub/"]

    def test_file_entry(self, renderer, root):
        entry = next(e for e in renderer.list_entries(root) if e.name == "a.txt")

        assert entry.relative == "/a.txt"
        assert entry.is_directory is False
        assert entry.size == "2 B"
        assert entry.extension == "txt"

    def test_directory_entry(self, renderer, root):
        entry = next(e for e in renderer.list_entries(root) if e.name == "docs/")

        assert entry.relative == "/docs/"
        assert entry.is_directory is True
        assert entry.size is None

    def test_nested_relative_urls(self, renderer, root):
        entries = renderer.list_entries(root / "docs")

        assert [(e.name, e.relative) for e in entries] == [
            ("guide/", "/docs/guide/"),
            ("readme.md", "/docs/readme.md"),
        ]

    def test_extensionless_file_is_txt(self, renderer, root):
        entry = next(e for e in renderer.list_entries(root) if e.name == "notes")

        assert entry.extension == "txt"

    def test_configured_ignores(self, make_config, root):
        renderer = DirectoryRenderer(make_config(ignored_names=frozenset({"docs/", "notes"})))

        names = [entry.name for entry in renderer.list_entries(root)]

        assert names == ["a.txt", "logo.png", "sub/"]

    def test_bare_name_hides_directory(self, make_config, root):
        renderer = DirectoryRenderer(make_config(ignored_names=frozenset({"docs"})))

        names = [entry.name for entry in renderer.list_entries(root)]

        assert "docs/" not in names

    def test_slashed_name_hides_file(self, make_config, root):
        renderer = DirectoryRenderer(make_config(ignored_names=frozenset({"notes/"})))

        names = [entry.name for entry in renderer.list_entries(root)]

        assert "notes" not in names

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_loop_is_skipped(self, renderer, root):
        os.symlink("loop", root / "loop")

        names = [entry.name for entry in renderer.list_entries(root)]

        assert names == ["a.txt", "docs/", "logo.png", "notes", "sub/"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_dangling_symlink_is_skipped(self, renderer, root):
        os.symlink("nowhere", root / "broken")

        names = [entry.name for entry in renderer.list_entries(root)]

        assert "broken" not in names


class TestRender:

    def test_root_listing(self, renderer, root, config):
        page = renderer.render(root)

        assert "<title>Files within site</title>" in page
        assert f'href="{config.asset_prefix}/styles.css"' in page
        assert 'href="/a.txt" class="file ext-txt"' in page
        assert 'href="/docs/" class="folder"' in page
        assert ".DS_Store" not in page
        assert ".git" not in page

    def test_no_parent_entry_at_root(self, renderer, root):
        assert ">..</a>" not in renderer.render(root)

    def test_parent_entry_below_root(self, renderer, root):
        page = renderer.render(root / "docs" / "guide")

        assert '<a href="/docs/" class="folder" title="..">..</a>' in page

    def test_parent_of_top_level_directory_is_root(self, renderer, root):
        page = renderer.render(root / "sub")

        assert '<a href="/" class="folder" title="..">..</a>' in page

    def test_empty_directory_lists_only_parent(self, renderer, root):
        page = renderer.render(root / "sub")

        assert page.count("<li>") == 1

    def test_label_and_breadcrumbs(self, renderer, root):
        page = renderer.render(root / "docs" / "guide")

        assert "<title>Files within site/docs/guide</title>" in page
        assert ('<a href="/">site</a> / <a href="/docs/">docs</a> / '
                '<a href="/docs/guide/">guide</a>') in page

    def test_sizes_shown_for_files(self, renderer, root):
        assert '<span class="size">2 B</span>' in renderer.render(root)

    def test_footer(self, renderer, root):
        page = renderer.render(root)

        assert f"Python {platform.python_version()} on port 3000" in page

    def test_names_are_escaped(self, renderer, root):
        (root / "a<b>&.txt").write_text("x")

        page = renderer.render(root)

        assert 'title="a&lt;b&gt;&amp;.txt"' in page
        assert 'href="/a%3Cb%3E%26.txt"' in page
        assert "<b>" not in page

    def test_vanished_directory(self, renderer, root):
        assert renderer.render(root / "gone") is None

    def test_file_instead_of_directory(self, renderer, root):
        assert renderer.render(root / "a.txt") is None
