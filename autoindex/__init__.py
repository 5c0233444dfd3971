#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Autoindex
---------
Directory listings in the manner of the Nginx and Apache autoindex modules.

This package provides:
- Sandboxed resolution of request paths below a root directory
- HTML and JSON listings with configurable date formatting
- A time-bounded cache of rendered listings
- Translation of filesystem errors into HTTP statuses
- A small asyncio HTTP server hosting the engine
"""

__version__ = '1.0.0'

from .cache import CacheRecord, RenderCache
from .config import AutoindexConfig, JsonFieldRemap, MountConfig, RenderOptions
from .dates import DateFormatter
from .engine import IndexEngine, Response
from .errors import (
    AmbiguousPathError,
    AutoindexError,
    ConfigurationError,
    ErrorTranslator,
    ListingHTTPError,
    PathEscapeError
)
from .paths import PathResolver, normalize_path
from .render import Entry, ListingRenderer, escape_html
from .server import AutoindexServer
from .utils import setup_logging

# Make these classes available at the package level
__all__ = [
    'AmbiguousPathError', 'AutoindexConfig', 'AutoindexError', 'AutoindexServer',
    'CacheRecord', 'ConfigurationError', 'DateFormatter', 'Entry', 'ErrorTranslator',
    'IndexEngine', 'JsonFieldRemap', 'ListingHTTPError', 'ListingRenderer', 'MountConfig',
    'PathEscapeError', 'PathResolver', 'RenderCache', 'RenderOptions', 'Response',
    'escape_html', 'normalize_path', 'setup_logging'
]
