"""
The asyncio host: request parsing, error pages and a socket round trip.
"""

from __future__ import annotations

import asyncio
import errno
from unittest.mock import patch

from autoindex.server import AutoindexServer, parse_request_head


def test_parse_request_head() -> None:
    request = parse_request_head(b"GET /docs/a%20b.txt?x=1 HTTP/1.1\r\nHost: example\r\nX-Thing:  v ")
    assert request == {
        "method": "GET",
        "path": "/docs/a b.txt",
        "http_version": "HTTP/1.1",
        "headers": {"host": "example", "x-thing": "v"},
    }


def test_parse_request_head_rejects_malformed_lines() -> None:
    assert parse_request_head(b"GET /") is None
    assert parse_request_head(b"") is None


def test_surfaced_errors_become_error_pages(make_engine) -> None:
    server = AutoindexServer(make_engine(production=True))
    error = OSError(errno.EMFILE, "Too many open files")

    with patch("autoindex.engine.scan_directory", side_effect=error):
        response = asyncio.run(server.dispatch({"method": "GET", "path": "/"}))
    assert response.status_code == 500
    assert b"Too many open files" in response.body
    assert response.headers["Content-Type"] == "text/html; charset=utf-8"

    with patch("autoindex.engine.scan_directory", side_effect=error):
        head = asyncio.run(server.dispatch({"method": "HEAD", "path": "/"}))
    assert head.status_code == 500
    assert head.body == b""


def test_serialize_adds_connection_headers(make_engine) -> None:
    server = AutoindexServer(make_engine(), server_name="test/1")
    response = asyncio.run(server.dispatch({"method": "GET", "path": "/a.txt"}))
    raw = server.serialize(response)

    head, body = raw.split(b"\r\n\r\n", 1)
    assert head.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Server: test/1" in head
    assert b"Connection: close" in head
    assert body == b"hello"


def test_round_trip_over_a_socket(make_engine) -> None:
    server = AutoindexServer(make_engine(mount="/public"), host="127.0.0.1", port=0)

    async def exchange(request: bytes) -> bytes:
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(request)
        await writer.drain()
        data = await reader.read()
        writer.close()
        return data

    async def scenario() -> list:
        nonlocal port
        await server.start()
        port = server.server.sockets[0].getsockname()[1]
        try:
            return [
                await exchange(b"GET /public/ HTTP/1.1\r\nHost: x\r\n\r\n"),
                await exchange(b"GET /public HTTP/1.1\r\n\r\n"),
                await exchange(b"nonsense\r\n\r\n"),
            ]
        finally:
            await server.shutdown()

    port = 0
    listing, ambiguous, malformed = asyncio.run(scenario())

    assert listing.startswith(b"HTTP/1.1 200 OK")
    assert b'<a href="/public/b/">b/</a>' in listing
    assert ambiguous.startswith(b"HTTP/1.1 400 Bad Request")
    assert malformed.startswith(b"HTTP/1.1 400 Bad Request")

    stats = server.stats
    assert stats["total_requests"] == 3
    assert stats["status_2xx"] == 1
    assert stats["status_4xx"] == 2


def test_request_path_keeps_undecodable_bytes() -> None:
    request = parse_request_head(b"GET /docs/bad%FF.txt HTTP/1.1")
    assert request["path"] == "/docs/bad\udcff.txt"
    assert request["path"].encode("utf-8", "surrogateescape") == b"/docs/bad\xff.txt"
