"""
End-to-end tests: a real server on a free port, talked to with http.client.
"""

import gzip
import http.client
import os
import socket

import pytest

from fileserve.http import HTTPStatus, ResponseBuilder


FIXED_MTIME = 1767268800
MATCHING_DATE = "Thu, 01 Jan 2026 12:00:00 GMT"


def fetch(server, path, method="GET", headers=None):
    """One request on a fresh connection; returns (response, body)."""
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        conn.request(method, path, headers=headers or {})
        response = conn.getresponse()
        return response, response.read()
    finally:
        conn.close()


def raw_exchange(server, data: bytes) -> bytes:
    """Send raw bytes and read until the server closes."""
    with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def server(serve):
    return serve()


class TestServingFiles:

    def test_text_file(self, server):
        response, body = fetch(server, "/a.txt")

        assert response.status == 200
        assert body == b"hi"
        assert response.getheader("Content-Type") == "text/plain; charset=utf-8"
        assert response.getheader("Content-Length") == "2"
        assert response.getheader("Pragma") == "public"
        assert response.getheader("Cache-Control") == "public, max-age=3600"

    def test_binary_file(self, server, site):
        response, body = fetch(server, "/logo.png")

        assert response.getheader("Content-Type") == "image/png"
        assert body == (site / "logo.png").read_bytes()

    def test_etag_is_idempotent(self, server):
        first, _ = fetch(server, "/a.txt")
        second, _ = fetch(server, "/a.txt")

        assert first.getheader("ETag") == second.getheader("ETag")

    def test_not_modified(self, server, site):
        os.utime(site / "a.txt", (FIXED_MTIME, FIXED_MTIME))

        response, body = fetch(server, "/a.txt",
                               headers={"If-Modified-Since": MATCHING_DATE})

        assert response.status == 304
        assert body == b""
        assert response.getheader("Last-Modified") == MATCHING_DATE

    def test_percent_encoded_name(self, server, site):
        (site / "My Notes.txt").write_text("spaces")

        _, body = fetch(server, "/My%20Notes.txt")

        assert body == b"spaces"

    def test_head_has_headers_but_no_body(self, server):
        response, body = fetch(server, "/a.txt", method="HEAD")

        assert response.status == 200
        assert response.getheader("Content-Length") == "2"
        assert body == b""

    def test_leading_double_slash(self, server):
        data = raw_exchange(server, b"GET //docs/readme.md HTTP/1.1\r\n"
                                    b"Connection: close\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 200 OK\r\n")
        assert data.endswith(b"# Docs\n")

    def test_any_method_reads(self, server):
        response, body = fetch(server, "/a.txt", method="POST")

        assert response.status == 200
        assert body == b"hi"

    def test_server_header(self, server):
        response, _ = fetch(server, "/a.txt")

        assert response.getheader("Server") == "fileserve/1.0"
        assert response.getheader("Date")


class TestDirectories:

    def test_root_listing(self, server):
        response, body = fetch(server, "/")

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/html; charset=utf-8"
        assert b'href="/a.txt"' in body
        assert b".git" not in body

    def test_nested_listing_breadcrumbs(self, server):
        _, body = fetch(server, "/docs/guide/")

        assert b'<a href="/docs/">docs</a>' in body
        assert b'title="..">..</a>' in body

    def test_stylesheet_is_served(self, server):
        _, body = fetch(server, "/")
        start = body.index(b'rel="stylesheet" href="') + len(b'rel="stylesheet" href="')
        href = body[start:body.index(b'"', start)].decode()

        response, css = fetch(server, href)

        assert response.status == 200
        assert response.getheader("Content-Type") == "text/css; charset=utf-8"
        assert b"#files" in css

    def test_index_html(self, server, site):
        (site / "sub" / "index.html").write_text("<h1>Sub</h1>")

        _, body = fetch(server, "/sub/")

        assert body == b"<h1>Sub</h1>"


class TestNotFound:

    def test_missing(self, server):
        response, body = fetch(server, "/missing")

        assert response.status == 404
        assert body == b"Not Found"

    def test_custom_404(self, server, site):
        (site / "404.html").write_text("<h1>Lost?</h1>")

        response, body = fetch(server, "/missing")

        assert response.status == 404
        assert body == b"<h1>Lost?</h1>"

    def test_ignored(self, server):
        assert fetch(server, "/.git/HEAD")[0].status == 404

    def test_traversal(self, server):
        data = raw_exchange(server, b"GET /../../../etc/passwd HTTP/1.1\r\n"
                                    b"Connection: close\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_encoded_traversal(self, server):
        assert fetch(server, "/%2e%2e/%2e%2e/etc/passwd")[0].status == 404

    def test_name_too_long(self, server):
        assert fetch(server, "/" + "a" * 300)[0].status == 404

    def test_ignored_directory_is_not_listed(self, serve):
        server = serve(ignored_names=frozenset({"docs"}))

        _, listing = fetch(server, "/")

        assert b"/docs/" not in listing
        assert fetch(server, "/docs/")[0].status == 404


class TestSinglePage:

    def test_fallback(self, serve, site):
        (site / "index.html").write_text("<div id=app></div>")
        server = serve(single_page=True)

        response, body = fetch(server, "/dashboard/settings")

        assert response.status == 200
        assert body == b"<div id=app></div>"

    def test_route_below_a_file(self, serve, site):
        (site / "index.html").write_text("<div id=app></div>")
        server = serve(single_page=True)

        response, body = fetch(server, "/a.txt/deep/route")

        assert response.status == 200
        assert body == b"<div id=app></div>"


class TestCompression:

    @pytest.fixture
    def big_css(self, site):
        contents = b"body { margin: 0; }\n" * 200
        (site / "site.css").write_bytes(contents)
        return contents

    def test_gzip(self, server, big_css):
        response, body = fetch(server, "/site.css", headers={"Accept-Encoding": "gzip"})

        assert response.getheader("Content-Encoding") == "gzip"
        assert response.getheader("Vary") == "Accept-Encoding"
        assert gzip.decompress(body) == big_css

    def test_no_gzip_without_accept_encoding(self, server, big_css):
        response, body = fetch(server, "/site.css", headers={"Accept-Encoding": "identity"})

        assert response.getheader("Content-Encoding") is None
        assert body == big_css

    def test_unzipped(self, serve, big_css):
        server = serve(gzip_disabled=True)

        response, body = fetch(server, "/site.css", headers={"Accept-Encoding": "gzip"})

        assert response.getheader("Content-Encoding") is None
        assert body == big_css


class TestConnections:

    def test_keep_alive(self, server):
        conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
        try:
            for _ in range(3):
                conn.request("GET", "/a.txt")
                response = conn.getresponse()
                assert response.read() == b"hi"
                assert response.getheader("Connection") == "keep-alive"
        finally:
            conn.close()

    def test_connection_close(self, server):
        response, _ = fetch(server, "/a.txt", headers={"Connection": "close"})

        assert response.getheader("Connection") == "close"

    def test_malformed_request(self, server):
        data = raw_exchange(server, b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")

    def test_unsupported_version(self, server):
        data = raw_exchange(server, b"GET / HTTP/3.0\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 ")


class TestFailures:

    def test_handler_error_is_500_and_server_survives(self, serve):
        calls = []

        def flaky(request):
            calls.append(request.path)
            if request.path == "/boom":
                raise PermissionError("denied")
            return ResponseBuilder().text("fine").build()

        server = serve(handler=flaky)

        response, body = fetch(server, "/boom")
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert body == b"Internal Server Error"

        response, body = fetch(server, "/after")
        assert response.status == 200
        assert body == b"fine"
        assert calls == ["/boom", "/after"]

    def test_file_vanishing_between_requests(self, server, site):
        assert fetch(server, "/notes")[0].status == 200

        (site / "notes").unlink()

        assert fetch(server, "/notes")[0].status == 404
