#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Index Engine Module for Autoindex
---------------------------------
Answers a request path with either the file it names or a rendered listing
of the directory it names. Directory listings are cached per normalized
path for the configured lifetime.
"""

import os
import stat
import json
import errno
import asyncio
import logging

from .cache import RenderCache
from .dates import DateFormatter
from .errors import AmbiguousPathError, ErrorTranslator, ListingHTTPError, PathEscapeError
from .paths import PathResolver
from .render import Entry, ListingRenderer
from .utils import content_type_for, format_http_date, human_readable_size

ALLOWED_METHODS = ('GET', 'HEAD')


class Response:
    """
    Response handed back to the host server.

    Attributes:
        status_code: HTTP status
        headers: Header dict
        body: Body bytes, empty for HEAD requests and quiet errors
        payload: Rendered listing (str for HTML, list for JSON), None otherwise
    """

    def __init__(self, status_code=200, headers=None, body=b'', payload=None):
        self.status_code = status_code
        self.headers = headers if headers is not None else {}
        self.body = body
        self.payload = payload

    def __repr__(self):
        return f"<Response {self.status_code} {len(self.body)} bytes>"


def _not_found(path):
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


def scan_directory(path):
    """
    Enumerate a directory.

    Returns:
        list: (name, is_directory, is_file) in enumeration order
    """
    with os.scandir(path) as it:
        return [(entry.name, entry.is_dir(), entry.is_file()) for entry in it]


def read_file(path):
    with open(path, 'rb') as f:
        return f.read()


class IndexEngine:
    """
    Directory index engine.

    Built once at startup from a validated MountConfig and RenderOptions;
    ``handle`` is then called for every request.
    """

    def __init__(self, mount, options, cache=None, date_formatter=None):
        """
        Initialize the engine.

        Args:
            mount: MountConfig
            options: RenderOptions
            cache: RenderCache to use instead of building one from the options
            date_formatter: DateFormatter to use instead of building one
        """
        self.mount = mount
        self.options = options
        self.logger = logging.getLogger('IndexEngine')

        self.resolver = PathResolver(mount.root_dir, mount.mount_prefix)
        self.translator = ErrorTranslator(
            always_throw=options.always_throw_on_error,
            production=options.production
        )
        self.date_formatter = date_formatter or DateFormatter(
            template=options.date_format,
            max_entries=options.date_cache_size
        )
        self.renderer = ListingRenderer(options, self.date_formatter)

        if cache is not None:
            self.cache = cache
        elif options.cache_enabled:
            self.cache = RenderCache(ttl_ms=options.cache_ttl_ms, max_entries=options.cache_max_entries)
        else:
            self.cache = None

        cache_state = f"{options.cache_ttl_ms} ms" if self.cache is not None else "disabled"
        self.logger.info(f"Serving {mount.root_dir} under {mount.mount_prefix or '/'} (cache {cache_state})")

    async def handle(self, method, request_path):
        """
        Handle a request.

        Args:
            method: HTTP method
            request_path: Percent-decoded URL path without query string

        Returns:
            Response

        Raises:
            ListingHTTPError: When the failure must be surfaced to the caller
        """
        method = method.upper()
        if self.options.strict_methods and method not in ALLOWED_METHODS:
            return Response(405, {'Allow': ', '.join(ALLOWED_METHODS), 'Content-Length': '0'})

        try:
            resolved = self.resolver.resolve(request_path)
        except AmbiguousPathError:
            self.logger.debug(f"Ambiguous path under mount: {request_path}")
            return self.fail(400)
        except PathEscapeError:
            self.logger.warning(f"Rejected path outside the root: {request_path}")
            return self.fail(_not_found(request_path))

        try:
            file_stat = await asyncio.to_thread(os.stat, resolved.filesystem_path)
            if stat.S_ISREG(file_stat.st_mode):
                return await self.serve_file(resolved, file_stat, method)
            if stat.S_ISDIR(file_stat.st_mode):
                return await self.serve_directory(resolved, method)
            raise _not_found(resolved.filesystem_path)
        except OSError as e:
            return self.fail(e)
        except UnicodeError as e:
            self.logger.error(f"Cannot encode response for {resolved.normalized_path!a}: {e}")
            return self.fail(500)

    def fail(self, error):
        """
        Translate an error into a quiet response or a surfaced exception.

        Raises:
            ListingHTTPError: If the translation says the error must surface
        """
        translation = self.translator.translate(error)
        if translation.should_surface:
            self.logger.error(f"{translation.http_status} {translation.message}")
            raise ListingHTTPError(translation.http_status, translation.message)

        self.logger.warning(f"{translation.http_status} {translation.message}")
        return Response(translation.http_status, {'Content-Length': '0'})

    async def serve_file(self, resolved, file_stat, method):
        path = resolved.filesystem_path
        data = await asyncio.to_thread(read_file, path)

        headers = {
            'Content-Type': content_type_for(path, data, detect=self.options.detect_encoding),
            'Content-Length': str(len(data))
        }
        if self.options.last_modified:
            headers['Last-Modified'] = format_http_date(file_stat.st_mtime)

        self.logger.debug(f"Serving file {path} ({human_readable_size(len(data))})")
        return Response(200, headers, data if method != 'HEAD' else b'')

    async def serve_directory(self, resolved, method):
        if self.cache is not None:
            record = self.cache.get(resolved.normalized_path)
            if record is not None:
                return self.listing_response(record.payload, record.is_json, method)

        entries = await self.enumerate(resolved.filesystem_path)
        base_href = self.resolver.href_for(resolved.title, '')
        payload, is_json = self.renderer.render(
            resolved.title,
            entries,
            base_href,
            self.resolver.parent_href(resolved.segments)
        )

        if self.cache is not None:
            self.cache.put(self.cache.make_record(resolved.normalized_path, payload, is_json))

        return self.listing_response(payload, is_json, method)

    def is_listed(self, name, is_directory, is_file):
        if not is_directory and not is_file:
            return False
        if not self.options.display_dotfiles and name.startswith('.'):
            return False
        if self.options.exclude_pattern is not None and self.options.exclude_pattern.search(name):
            return False
        return True

    async def enumerate(self, directory):
        """
        List and stat the children of a directory.

        Children are stat'ed concurrently; the result keeps enumeration order.

        Returns:
            list: Entry per listed child
        """
        scanned = await asyncio.to_thread(scan_directory, directory)
        kept = [item for item in scanned if self.is_listed(*item)]

        stats = await asyncio.gather(*(
            asyncio.to_thread(os.stat, os.path.join(directory, name)) for name, _, _ in kept
        ))

        return [
            Entry(name, is_directory, is_file, child_stat.st_mtime, child_stat.st_size if is_file else None)
            for (name, is_directory, is_file), child_stat in zip(kept, stats)
        ]

    def listing_response(self, payload, is_json, method):
        if is_json:
            body = json.dumps(payload).encode('utf-8')
            content_type = 'application/json; charset=utf-8'
        else:
            body = payload.encode('utf-8')
            content_type = 'text/html; charset=utf-8'

        headers = {'Content-Type': content_type, 'Content-Length': str(len(body))}
        return Response(200, headers, body if method != 'HEAD' else b'', payload)
