#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Configuration Module for Autoindex
----------------------------------
Handles loading and managing configuration from various sources:
- Default configuration
- Configuration file (JSON)
- Command-line arguments

The loaded configuration is turned once, at startup, into the immutable
MountConfig and RenderOptions values the engine is built from.
"""

import os
import re
import json
import logging
import argparse
from collections import namedtuple

from .dates import DEFAULT_DATE_FORMAT
from .errors import ConfigurationError
from .render import has_placeholders

DEFAULT_CACHE_TTL_MS = 300000  # 5 minutes


class MountConfig(namedtuple('MountConfig', ['root_dir', 'mount_prefix'])):
    """Root directory and the URL prefix it is exposed under."""

    __slots__ = ()

    @classmethod
    def create(cls, root_dir, mount_prefix=None):
        """
        Validate and build a mount configuration.

        Args:
            root_dir: Directory to expose
            mount_prefix: URL prefix starting with "/", or None

        Raises:
            ConfigurationError: If the root is missing, unreadable or not a
                directory, or the prefix does not start with "/"
        """
        if not root_dir:
            raise ConfigurationError("root directory is required")
        root_dir = os.path.abspath(root_dir)
        if not os.path.exists(root_dir):
            raise ConfigurationError(f"root directory {root_dir} does not exist")
        if not os.path.isdir(root_dir):
            raise ConfigurationError(f"root {root_dir} is not a directory")
        if not os.access(root_dir, os.R_OK | os.X_OK):
            raise ConfigurationError(f"root directory {root_dir} is not readable")

        if mount_prefix:
            if not mount_prefix.startswith('/'):
                raise ConfigurationError(f"mount prefix '{mount_prefix}' does not start with /")
            mount_prefix = mount_prefix.rstrip('/') or None
        else:
            mount_prefix = None
        return cls(root_dir, mount_prefix)


JSON_FIELDS = ('isDir', 'name', 'path', 'time', 'size')


class JsonFieldRemap(namedtuple('JsonFieldRemap', ['is_dir', 'name', 'path', 'time', 'size'],
                                defaults=(None, None, None, None, None))):
    """
    Output key names for JSON listings.

    A field left as None is not emitted at all.
    """

    __slots__ = ()

    @classmethod
    def from_mapping(cls, mapping):
        """
        Build a remap from ``{"isDir": ..., "name": ..., ...}``.

        Raises:
            ConfigurationError: On unknown keys or non-string names
        """
        unknown = set(mapping) - set(JSON_FIELDS)
        if unknown:
            raise ConfigurationError(f"unknown JSON fields: {', '.join(sorted(unknown))}")
        for key, value in mapping.items():
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"JSON field {key} must be renamed to a non-empty string")
        return cls(
            is_dir=mapping.get('isDir'),
            name=mapping.get('name'),
            path=mapping.get('path'),
            time=mapping.get('time'),
            size=mapping.get('size')
        )

    def pairs(self):
        """(default key, output key) for every present field, in output order."""
        return [(default, renamed) for default, renamed in zip(JSON_FIELDS, self) if renamed is not None]


_RENDER_FIELDS = (
    ('cache_ttl_ms', DEFAULT_CACHE_TTL_MS),
    ('cache_max_entries', None),
    ('date_cache_size', 1024),
    ('dir_at_top', True),
    ('display_date', True),
    ('display_size', True),
    ('display_dotfiles', False),
    ('exclude_pattern', None),
    ('json_mode', False),
    ('strict_methods', True),
    ('always_throw_on_error', False),
    ('date_format', DEFAULT_DATE_FORMAT),
    ('json_field_remap', None),
    ('custom_template', None),
    ('production', False),
    ('detect_encoding', True),
    ('last_modified', True),
)


class RenderOptions(namedtuple('RenderOptions', [name for name, _ in _RENDER_FIELDS],
                               defaults=[default for _, default in _RENDER_FIELDS])):
    """Listing behaviour, fixed for the lifetime of an engine."""

    __slots__ = ()

    @property
    def cache_enabled(self):
        return self.cache_ttl_ms is not False and self.cache_ttl_ms is not None

    @classmethod
    def create(cls, exclude=None, json_field_remap=None, template_path=None, **kwargs):
        """
        Validate and build render options.

        Args:
            exclude: Regular expression (string or compiled) for names to hide
            json_field_remap: Mapping or JsonFieldRemap for JSON output keys
            template_path: HTML template file with {{title}} and {{content}}
            **kwargs: Any other RenderOptions field

        Raises:
            ConfigurationError: On an invalid option or an unreadable template
        """
        if exclude is not None and not hasattr(exclude, 'search'):
            try:
                exclude = re.compile(exclude)
            except re.error as e:
                raise ConfigurationError(f"invalid exclude pattern {exclude!r}: {e}") from e
        kwargs['exclude_pattern'] = exclude

        if json_field_remap is not None and not isinstance(json_field_remap, JsonFieldRemap):
            json_field_remap = JsonFieldRemap.from_mapping(json_field_remap)
        kwargs['json_field_remap'] = json_field_remap

        if template_path:
            kwargs['custom_template'] = load_template(template_path)

        ttl = kwargs.get('cache_ttl_ms', DEFAULT_CACHE_TTL_MS)
        if ttl is None or ttl is False:
            kwargs['cache_ttl_ms'] = False
        elif isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl < 0:
            raise ConfigurationError(f"cache TTL must be a non-negative number of milliseconds or false, got {ttl!r}")

        return cls(**kwargs)


def load_template(template_path):
    """
    Read a custom HTML template.

    Args:
        template_path: Path, relative paths are resolved from the working directory

    Returns:
        str: Raw template

    Raises:
        ConfigurationError: If the file cannot be read or lacks a placeholder
    """
    full_path = os.path.abspath(template_path)
    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            template = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"custom template path is incorrect: {full_path}") from e

    if not has_placeholders(template):
        raise ConfigurationError(f"custom template {full_path} must contain {{{{title}}}} and {{{{content}}}}")
    return template


class AutoindexConfig:
    """
    Configuration manager.

    Loads and provides access to configuration settings from various sources,
    with the following precedence (highest to lowest):
    1. Command-line arguments
    2. Keyword arguments
    3. Configuration file
    4. Default values
    """

    # Default configuration settings
    DEFAULT_CONFIG = {
        "host": "0.0.0.0",
        "port": 8000,
        "root_directory": ".",
        "mount_prefix": None,
        "cache_ttl_ms": DEFAULT_CACHE_TTL_MS,  # false disables the listing cache
        "cache_max_entries": None,
        "date_cache_size": 1024,
        "dir_at_top": True,
        "display_date": True,
        "display_size": True,
        "display_dotfiles": False,
        "exclude": None,
        "json": False,
        "json_field_remap": None,
        "strict": True,
        "always_throw_error": False,
        "date_format": DEFAULT_DATE_FORMAT,
        "custom_template": None,
        "production": False,
        "detect_encoding": True,
        "last_modified": True,
        "log_level": "INFO",
        "log_file": None,
        "log_max_size": 10485760,  # 10 MB
        "log_backup_count": 5,
        "colored_logging": True,
        "server_name": "autoindex/1.0"
    }

    def __init__(self, config_file=None, **kwargs):
        """
        Initialize the configuration with values from file and kwargs.

        Args:
            config_file: Path to the configuration file
            **kwargs: Additional configuration parameters that override file values
        """
        self._config = self.DEFAULT_CONFIG.copy()
        self.logger = logging.getLogger(__name__)

        if config_file:
            self.load_from_file(config_file)

        for key, value in kwargs.items():
            self._config[key] = value

    def load_from_file(self, config_path="autoindex.json"):
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file

        Returns:
            bool: True if loaded successfully, False if the file does not exist

        Raises:
            ConfigurationError: If the file exists but is not a JSON object
        """
        if not os.path.exists(config_path):
            self.logger.warning(f"Configuration file {config_path} not found. Using defaults.")
            return False

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Error loading configuration {config_path}: {e}") from e

        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Configuration {config_path} must be a JSON object")

        self._config.update(file_config)
        self.logger.info(f"Loaded configuration from {config_path}")
        return True

    def load_from_args(self, args=None):
        """
        Parse command line arguments and update configuration.

        Args:
            args: Command line arguments to parse (default: None, uses sys.argv)

        Returns:
            argparse.Namespace: Parsed arguments
        """
        parser = argparse.ArgumentParser(description='Serve a directory listing like Nginx or Apache autoindex')
        parser.add_argument('-c', '--config', help='Path to JSON configuration file')
        parser.add_argument('-d', '--directory', help='Root directory to expose')
        parser.add_argument('-m', '--mount', help='URL prefix the directory is exposed under, e.g. /files')
        parser.add_argument('-H', '--host', help='Host address to bind')
        parser.add_argument('-p', '--port', type=int, help='Port to listen on')
        parser.add_argument('--json', action='store_true', help='Render listings as JSON')
        parser.add_argument('--no-cache', action='store_true', help='Disable the listing cache')
        parser.add_argument('--cache-ttl', type=int, help='Listing cache lifetime in milliseconds')
        parser.add_argument('--show-dotfiles', action='store_true', help='List dotfiles')
        parser.add_argument('--exclude', help='Regular expression of names to hide')
        parser.add_argument('--date-format', help='Date template, e.g. "%%d-%%mo-%%y %%h:%%mi"')
        parser.add_argument('--template', help='HTML template with {{title}} and {{content}}')
        parser.add_argument('--production', action='store_true', help='Hide raw error details')
        parser.add_argument('-l', '--log-level',
                            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                            help='Logging level')
        parser.add_argument('--log-file', help='Path to log file')
        parser.add_argument('--no-color', action='store_true', help='Disable colored logging')

        parsed_args = parser.parse_args(args)

        # Configuration file first, command line overrides it
        if parsed_args.config:
            self.load_from_file(parsed_args.config)

        if parsed_args.directory:
            self._config['root_directory'] = os.path.abspath(parsed_args.directory)
        if parsed_args.mount:
            self._config['mount_prefix'] = parsed_args.mount
        if parsed_args.host:
            self._config['host'] = parsed_args.host
        if parsed_args.port:
            self._config['port'] = parsed_args.port
        if parsed_args.json:
            self._config['json'] = True
        if parsed_args.cache_ttl is not None:
            self._config['cache_ttl_ms'] = parsed_args.cache_ttl
        if parsed_args.no_cache:
            self._config['cache_ttl_ms'] = False
        if parsed_args.show_dotfiles:
            self._config['display_dotfiles'] = True
        if parsed_args.exclude:
            self._config['exclude'] = parsed_args.exclude
        if parsed_args.date_format:
            self._config['date_format'] = parsed_args.date_format
        if parsed_args.template:
            self._config['custom_template'] = parsed_args.template
        if parsed_args.production:
            self._config['production'] = True
        if parsed_args.log_level:
            self._config['log_level'] = parsed_args.log_level
        if parsed_args.log_file:
            self._config['log_file'] = parsed_args.log_file
        if parsed_args.no_color:
            self._config['colored_logging'] = False

        return parsed_args

    def get(self, key, default=None):
        """
        Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if key is not found

        Returns:
            Value for the key or default if not found
        """
        return self._config.get(key, default)

    def set(self, key, value):
        self._config[key] = value

    def get_all(self):
        return self._config.copy()

    def mount_config(self):
        """Build the validated MountConfig."""
        return MountConfig.create(self.root_directory, self.mount_prefix)

    def render_options(self):
        """Build the validated RenderOptions."""
        return RenderOptions.create(
            exclude=self.get('exclude'),
            json_field_remap=self.get('json_field_remap'),
            template_path=self.get('custom_template'),
            cache_ttl_ms=self.get('cache_ttl_ms'),
            cache_max_entries=self.get('cache_max_entries'),
            date_cache_size=self.get('date_cache_size'),
            dir_at_top=self.get('dir_at_top'),
            display_date=self.get('display_date'),
            display_size=self.get('display_size'),
            display_dotfiles=self.get('display_dotfiles'),
            json_mode=self.get('json'),
            strict_methods=self.get('strict'),
            always_throw_on_error=self.get('always_throw_error'),
            date_format=self.get('date_format'),
            production=self.get('production'),
            detect_encoding=self.get('detect_encoding'),
            last_modified=self.get('last_modified')
        )

    # Property accessors for common configuration values
    @property
    def host(self):
        return self.get('host')

    @property
    def port(self):
        return self.get('port')

    @property
    def root_directory(self):
        return self.get('root_directory')

    @property
    def mount_prefix(self):
        return self.get('mount_prefix')

    @property
    def log_level(self):
        return self.get('log_level')

    @property
    def log_file(self):
        return self.get('log_file')

    @property
    def log_max_size(self):
        return self.get('log_max_size')

    @property
    def log_backup_count(self):
        return self.get('log_backup_count')

    @property
    def colored_logging(self):
        return self.get('colored_logging')

    @property
    def server_name(self):
        return self.get('server_name', 'autoindex/1.0')
