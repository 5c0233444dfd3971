#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Autoindex Server
----------------
Serves a directory listing of a folder over HTTP.
This is the main entry point.
"""

import sys
import asyncio
import logging

from autoindex.config import AutoindexConfig
from autoindex.errors import ConfigurationError
from autoindex.server import AutoindexServer
from autoindex.utils import setup_logging


def main(argv=None):
    """
    Main entry point for the server.
    """
    config = AutoindexConfig()
    config.load_from_args(argv)

    setup_logging(
        log_level=config.log_level,
        log_file=config.log_file,
        max_size=config.log_max_size,
        backup_count=config.log_backup_count,
        use_colored_logging=config.colored_logging
    )

    try:
        server = AutoindexServer.from_config(config)
    except ConfigurationError as e:
        logging.getLogger('autoindex').error(f"Invalid configuration: {e}")
        return 2

    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")

    return 0


if __name__ == '__main__':
    sys.exit(main())
