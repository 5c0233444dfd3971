#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Error Translation Module for Autoindex
--------------------------------------
Maps operating system errors and literal HTTP status codes onto the HTTP
status and message a directory listing request should answer with, and
defines the exceptions raised across the package.
"""

import errno
import logging
from collections import namedtuple

# HTTP status codes with descriptions
HTTP_STATUS = {
    200: 'OK',
    304: 'Not Modified',
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    405: 'Method Not Allowed',
    408: 'Request Timeout',
    413: 'Payload Too Large',
    414: 'URI Too Long',
    500: 'Internal Server Error',
    501: 'Not Implemented',
    503: 'Service Unavailable'
}

# errno name -> (message, http status)
ERROR_MAP = {
    # stat(2) failures
    'EBADF': ('fd is not a valid open file descriptor', 500),
    'EFAULT': ('Bad address', 500),
    'EINVAL': ('Invalid flag specified in flag', 500),
    'ELOOP': ('Too many symbolic links encountered while traversing the path', 500),
    'ENOMEM': ('Out of memory', 500),
    'EOVERFLOW': ('File size, inode number or number of blocks cannot be represented', 500),
    # general failures
    'EACCES': ('Permission denied', 403),
    'EADDRINUSE': ('Address already in use', 500),
    'ECONNREFUSED': ('Connection refused', 500),
    'ECONNRESET': ('Connection reset by peer', 500),
    'EEXIST': ('File exists', 500),
    'EISDIR': ('Is a directory', 500),
    'EMFILE': ('Too many open files', 500),
    'ENFILE': ('Too many open files in system', 500),
    'ENAMETOOLONG': (HTTP_STATUS[414], 414),
    'ENOENT': ('No such file or directory', 404),
    'ENOTDIR': ('Not a directory', 404),
    'ENOTEMPTY': ('Directory not empty', 500),
    'EPERM': ('Operation not permitted', 403),
    'EPIPE': ('Broken pipe', 500),
    'ETIMEDOUT': (HTTP_STATUS[408], 408)
}

Translation = namedtuple('Translation', ['http_status', 'message', 'should_surface'])


class AutoindexError(Exception):
    """Base class for every error raised by the package."""


class ConfigurationError(AutoindexError):
    """Invalid root directory, mount prefix, template or option, raised at setup."""


class PathEscapeError(AutoindexError):
    """A request path tried to leave the root directory."""


class AmbiguousPathError(AutoindexError):
    """The request named the mount prefix itself without a trailing slash."""


class ListingHTTPError(AutoindexError):
    """
    Error surfaced to the caller of the engine.

    Carries the HTTP status the response must be sent with, alongside the
    message that was built for it.
    """

    def __init__(self, status_code, message):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __repr__(self):
        return f"ListingHTTPError({self.status_code!r}, {self.message!r})"


class ErrorTranslator:
    """
    Translates failures into HTTP statuses.

    Errors with a status of 500 or more are always surfaced to the caller;
    client errors only when ``always_throw`` is set. In production mode the
    raw error detail is left out of the message.
    """

    def __init__(self, always_throw=False, production=False, error_map=None):
        self.always_throw = always_throw
        self.production = production
        self.error_map = ERROR_MAP if error_map is None else error_map
        self.logger = logging.getLogger('ErrorTranslator')

    def should_surface(self, status):
        if self.always_throw:
            return True
        return status >= 500

    def _format_message(self, error, message):
        if self.production:
            return message
        detail = error.strerror if isinstance(error, OSError) and error.strerror else str(error)
        if not detail:
            return message
        return f"{message} ({detail})"

    def translate(self, error):
        """
        Translate an error into a status, a message and a surfacing decision.

        Args:
            error: An HTTP status code (int) or an exception, usually an OSError

        Returns:
            Translation: (http_status, message, should_surface)
        """
        if isinstance(error, int):
            message = HTTP_STATUS.get(error, f"System error code {error} not recognized")
            return Translation(error, message, self.should_surface(error))

        code = None
        if isinstance(error, OSError) and error.errno is not None:
            code = errno.errorcode.get(error.errno)

        mapped = self.error_map.get(code) if code else None
        if mapped is None:
            label = code or type(error).__name__
            self.logger.debug(f"Unmapped error {label}: {error}")
            message = self._format_message(error, f"System error code {label} not recognized")
            return Translation(500, message, self.should_surface(500))

        message, status = mapped
        return Translation(status, self._format_message(error, message), self.should_surface(status))
