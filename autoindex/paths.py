#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Path Resolution Module for Autoindex
------------------------------------
Turns an inbound request path into a filesystem path that is guaranteed to
live under the configured root directory, together with the normalized
request path used as cache key and the title shown on the listing.
"""

import os
import posixpath
from collections import namedtuple

from .errors import AmbiguousPathError, PathEscapeError

ResolvedPath = namedtuple('ResolvedPath', ['normalized_path', 'filesystem_path', 'title', 'segments'])


def normalize_path(path):
    """
    Normalize a URL path.

    Collapses duplicate slashes, resolves "." and ".." segments and strips a
    single trailing slash, except for the root.

    Args:
        path: URL path

    Returns:
        str: Normalized path, always starting with "/"
    """
    return posixpath.normpath('/' + path.lstrip('/'))


def split_segments(path):
    """
    Split a path into segments, resolving "." and "..".

    Raises:
        PathEscapeError: If a ".." segment climbs above the first segment
    """
    segments = []
    for segment in path.split('/'):
        if segment in ('', '.'):
            continue
        if segment == '..':
            if not segments:
                raise PathEscapeError(path)
            segments.pop()
            continue
        if '\x00' in segment or (os.sep != '/' and os.sep in segment):
            raise PathEscapeError(path)
        segments.append(segment)
    return segments


class PathResolver:
    """
    Resolves request paths against a root directory and a mount prefix.

    The root directory must already be validated; see
    ``autoindex.config.MountConfig``.
    """

    def __init__(self, root_dir, mount_prefix=None):
        self.root_dir = os.path.abspath(root_dir)
        self.mount_prefix = normalize_path(mount_prefix) if mount_prefix else None
        if self.mount_prefix == '/':
            self.mount_prefix = None
        self.mount_segments = split_segments(self.mount_prefix) if self.mount_prefix else []

    def strip_mount(self, segments, directory_form=True):
        """
        Return the segments below the mount prefix.

        Args:
            segments: Segments of the whole normalized request path
            directory_form: Whether the request path ended with "/"

        Raises:
            AmbiguousPathError: The request names the mount itself without a trailing slash
            PathEscapeError: The request lies outside the mount
        """
        count = len(self.mount_segments)
        if segments[:count] != self.mount_segments:
            raise PathEscapeError('/' + '/'.join(segments))
        if count and len(segments) == count and not directory_form:
            raise AmbiguousPathError(self.mount_prefix)
        return segments[count:]

    def is_inside_root(self, filesystem_path):
        try:
            return os.path.commonpath([self.root_dir, filesystem_path]) == self.root_dir
        except ValueError:
            return False

    def resolve(self, request_path):
        """
        Resolve a request path.

        The whole path is normalized first, so "//public/a" and
        "/public/../public/a" both land under a "/public" mount.

        Args:
            request_path: Percent-decoded URL path, including the mount prefix

        Returns:
            ResolvedPath: (normalized_path, filesystem_path, title, segments)

        Raises:
            AmbiguousPathError: The request names the mount prefix without a trailing slash
            PathEscapeError: The path lies outside the mount or escapes the root directory
        """
        segments = self.strip_mount(split_segments(request_path), request_path.endswith('/'))

        filesystem_path = os.path.normpath(os.path.join(self.root_dir, *segments))
        if not self.is_inside_root(filesystem_path):
            raise PathEscapeError(request_path)

        logical = '/' + '/'.join(segments)
        normalized = normalize_path((self.mount_prefix or '') + logical)
        title = logical + '/' if segments else '/'
        return ResolvedPath(normalized, filesystem_path, title, tuple(segments))

    def href_for(self, title, name):
        """URL path of ``name`` listed under ``title``, mount prefix included."""
        return (self.mount_prefix or '') + title + name

    def parent_href(self, segments):
        """URL path of the parent listing, or None for the logical root."""
        if not segments:
            return None
        parent = '/'.join(segments[:-1])
        return (self.mount_prefix or '') + ('/' + parent + '/' if parent else '/')
