#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Autoindex Server Module
-----------------------
A small asyncio HTTP/1.1 host that parses requests, hands them to the
IndexEngine and writes the responses back. One request per connection.
"""

import time
import asyncio
import logging
import urllib.parse
from datetime import datetime

from .engine import IndexEngine, Response
from .errors import HTTP_STATUS, ListingHTTPError
from .render import escape_html
from .utils import format_http_date

MAX_HEADER_SIZE = 65536

# Default error page template
ERROR_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{code} {status}</title>
    <style>
        body {{
            font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
            margin: 20px;
            color: #333;
        }}
        h1 {{
            color: #e74c3c;
        }}
        .server-info {{
            margin-top: 20px;
            font-size: 12px;
            color: #777;
        }}
    </style>
</head>
<body>
    <h1>{code} {status}</h1>
    <div class="message">{message}</div>
    <div class="server-info">{server} | {date}</div>
</body>
</html>"""


def parse_request_head(data):
    """
    Parse the request line and headers.

    Args:
        data: Raw request head, without the terminating blank line

    Returns:
        dict: method, path (percent-decoded, query dropped), http_version, headers;
            None if the request line is malformed
    """
    lines = data.decode('latin-1').split('\r\n')
    parts = lines[0].split()
    if len(parts) != 3:
        return None

    method, target, version = parts
    path = urllib.parse.urlsplit(target).path or '/'

    headers = {}
    for line in lines[1:]:
        if ':' not in line:
            continue
        key, value = line.split(':', 1)
        headers[key.strip().lower()] = value.strip()

    return {
        'method': method,
        'path': urllib.parse.unquote(path, errors='surrogateescape'),
        'http_version': version,
        'headers': headers
    }


class AutoindexServer:
    """
    Asyncio server exposing an IndexEngine over HTTP.
    """

    def __init__(self, engine, host='0.0.0.0', port=8000, server_name='autoindex/1.0'):
        """
        Initialize the server.

        Args:
            engine: IndexEngine answering the requests
            host: Host address to bind
            port: Port to listen on
            server_name: Value of the Server header
        """
        self.engine = engine
        self.host = host
        self.port = port
        self.server_name = server_name
        self.logger = logging.getLogger('AutoindexServer')
        self.server = None
        self.start_time = time.time()

        # Request statistics
        self.request_stats = {
            'status_2xx': 0,
            'status_3xx': 0,
            'status_4xx': 0,
            'status_5xx': 0,
            'total_requests': 0
        }

    @classmethod
    def from_config(cls, config):
        """Build the engine and the server from an AutoindexConfig."""
        engine = IndexEngine(config.mount_config(), config.render_options())
        return cls(engine, host=config.host, port=config.port, server_name=config.server_name)

    async def dispatch(self, request):
        """
        Run a parsed request through the engine.

        Surfaced engine errors are turned into an HTML error page.

        Returns:
            Response
        """
        try:
            return await self.engine.handle(request['method'], request['path'])
        except ListingHTTPError as e:
            return self.error_response(e.status_code, e.message, send_body=request['method'].upper() != 'HEAD')

    def error_response(self, status_code, message, send_body=True):
        status_message = HTTP_STATUS.get(status_code, 'Unknown')
        html = ERROR_PAGE_TEMPLATE.format(
            code=status_code,
            status=status_message,
            message=escape_html(message),
            server=self.server_name,
            date=datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        ).encode('utf-8')
        headers = {
            'Content-Type': 'text/html; charset=utf-8',
            'Content-Length': str(len(html))
        }
        return Response(status_code, headers, html if send_body else b'')

    def serialize(self, response):
        """Encode the status line, headers and body."""
        status_message = HTTP_STATUS.get(response.status_code, 'Unknown')
        headers = dict(response.headers)
        headers.setdefault('Content-Length', str(len(response.body)))
        headers.setdefault('Date', format_http_date())
        headers.setdefault('Server', self.server_name)
        headers['Connection'] = 'close'

        head = f"HTTP/1.1 {response.status_code} {status_message}\r\n"
        head += ''.join(f"{key}: {value}\r\n" for key, value in headers.items())
        return head.encode('latin-1') + b'\r\n' + response.body

    def record_status(self, status_code):
        self.request_stats['total_requests'] += 1
        bucket = f"status_{status_code // 100}xx"
        if bucket in self.request_stats:
            self.request_stats[bucket] += 1

    async def handle_connection(self, reader, writer):
        """
        Handle client connection.

        Args:
            reader: asyncio.StreamReader
            writer: asyncio.StreamWriter
        """
        peer = writer.get_extra_info('peername') or ('-', 0)
        try:
            try:
                head = await reader.readuntil(b'\r\n\r\n')
            except asyncio.LimitOverrunError:
                response = self.error_response(413, "Request head too large")
                request = None
            except asyncio.IncompleteReadError:
                return
            else:
                request = parse_request_head(head[:-4])
                if request is None:
                    response = self.error_response(400, "Malformed request line")
                else:
                    response = await self.dispatch(request)

            self.record_status(response.status_code)
            if request is not None:
                self.logger.info(f"{peer[0]}:{peer[1]} - {request['method']} {request['path']} {response.status_code}")
            else:
                self.logger.warning(f"{peer[0]}:{peer[1]} - invalid request {response.status_code}")

            writer.write(self.serialize(response))
            await writer.drain()
        except ConnectionError as e:
            self.logger.warning(f"Connection error: {e}")
        finally:
            writer.close()

    async def start(self):
        """Start listening."""
        self.server = await asyncio.start_server(
            self.handle_connection, self.host, self.port, limit=MAX_HEADER_SIZE
        )
        self.logger.info(f"Server started and bound to http://{self.host}:{self.port}")
        return self.server

    async def serve_forever(self):
        if self.server is None:
            await self.start()
        async with self.server:
            await self.server.serve_forever()

    async def shutdown(self):
        """
        Shut down the server gracefully.
        """
        if self.server is None:
            return
        self.logger.info("Shutting down server...")
        self.server.close()
        await self.server.wait_closed()
        self.server = None
        if self.engine.cache is not None:
            self.engine.cache.clear()
        self.logger.info("Server shutdown complete")

    @property
    def stats(self):
        """
        Get server statistics.

        Returns:
            dict: Server statistics
        """
        stats = dict(self.request_stats)
        stats['uptime'] = time.time() - self.start_time
        if self.engine.cache is not None:
            stats['cache_enabled'] = True
            stats.update({f"cache_{key}": value for key, value in self.engine.cache.stats().items()})
        else:
            stats['cache_enabled'] = False
        return stats
