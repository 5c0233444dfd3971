#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Utility Module for Autoindex
----------------------------
Contains helper functions used throughout the package:
- Logging setup functions
- MIME type detection
- Text encoding detection
- HTTP date formatting
"""

import os
import time
import logging
import mimetypes
from logging.handlers import RotatingFileHandler

import chardet
import colorama
from colorama import Fore, Style

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# MIME types whose body is text and gets a charset parameter
TEXTUAL_MIME_TYPES = {
    'application/json',
    'application/javascript',
    'application/xml',
    'image/svg+xml'
}


class ColoredFormatter(logging.Formatter):
    """Custom formatter for colored log output."""

    FORMATS = {
        logging.DEBUG: Fore.CYAN + LOG_FORMAT + Style.RESET_ALL,
        logging.INFO: Fore.GREEN + LOG_FORMAT + Style.RESET_ALL,
        logging.WARNING: Fore.YELLOW + LOG_FORMAT + Style.RESET_ALL,
        logging.ERROR: Fore.RED + LOG_FORMAT + Style.RESET_ALL,
        logging.CRITICAL: Fore.RED + Style.BRIGHT + LOG_FORMAT + Style.RESET_ALL
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt, datefmt=LOG_DATE_FORMAT)
        return formatter.format(record)


def setup_logging(log_level='INFO', log_file=None, max_size=10485760, backup_count=5, use_colored_logging=True):
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (default: INFO)
        log_file: Log file path (default: None, console only)
        max_size: Maximum log file size in bytes (default: 10MB)
        backup_count: Number of backup logs to keep (default: 5)
        use_colored_logging: Whether to use colored logging in console (default: True)

    Returns:
        logging.Logger: Root logger instance
    """
    log_level_value = getattr(logging, str(log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_value)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size,
            backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    if use_colored_logging:
        colorama.init(autoreset=True)
        console_handler.setFormatter(ColoredFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root_logger.addHandler(console_handler)
    return root_logger


def get_mime_type(filepath):
    """
    Get MIME type for a file from its extension.

    Args:
        filepath: Path to the file

    Returns:
        str: MIME type, application/octet-stream when unknown
    """
    mime_type, _ = mimetypes.guess_type(os.path.basename(filepath))
    return mime_type or 'application/octet-stream'


def is_textual(mime_type):
    return mime_type.startswith('text/') or mime_type in TEXTUAL_MIME_TYPES


def detect_encoding(data):
    """
    Detect the text encoding of a byte string.

    Args:
        data: File content

    Returns:
        str: Encoding name, or None if it cannot be told
    """
    if not data:
        return None
    return chardet.detect(data).get('encoding')


def content_type_for(filepath, data=None, detect=True):
    """
    Build the Content-Type header value for a file.

    Textual types get a charset parameter: the detected encoding, UTF-8 when
    detection is disabled or inconclusive.
    """
    mime_type = get_mime_type(filepath)
    if not is_textual(mime_type):
        return mime_type
    encoding = detect_encoding(data) if detect and data is not None else None
    return f"{mime_type}; charset={encoding or 'UTF-8'}"


def format_http_date(timestamp=None):
    """
    Format a timestamp as an HTTP date string.

    Args:
        timestamp: UNIX timestamp (default: current time)

    Returns:
        str: HTTP date string in RFC 7231 format
    """
    if timestamp is None:
        timestamp = time.time()
    return time.strftime('%a, %d %b %Y %H:%M:%S GMT', time.gmtime(timestamp))


def human_readable_size(size):
    """
    Convert size in bytes to human readable format.

    Args:
        size: Size in bytes

    Returns:
        str: Human readable size string
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024 or unit == 'TB':
            return f"{size:.1f} {unit}" if size % 1 else f"{int(size)} {unit}"
        size /= 1024


# Initialize mimetypes module
mimetypes.init()

# Add common MIME types that might be missing
mimetypes.add_type('text/javascript', '.js')
mimetypes.add_type('text/css', '.css')
mimetypes.add_type('image/x-icon', '.ico')
mimetypes.add_type('image/svg+xml', '.svg')
mimetypes.add_type('application/json', '.json')
mimetypes.add_type('text/markdown', '.md')
