#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Listing Rendering Module for Autoindex
--------------------------------------
Turns directory entries into an HTML page or a JSON-serializable list.
"""

import re
from collections import namedtuple
from urllib.parse import quote

Entry = namedtuple('Entry', ['name', 'is_directory', 'is_file', 'mtime', 'size'])

EntryView = namedtuple('EntryView', ['entry', 'href', 'display_name', 'formatted_time', 'formatted_size'])

DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{title}}</title>
    <style>
        html {
            font-family: Arial, Helvetica, sans-serif;
        }
        table {
            font-family: 'Courier New', Courier, monospace;
            font-size: 12px;
        }
        tr td:first-child {
            min-width: 20%;
        }
        td a {
            margin-right: 1em;
        }
        td.size {
            text-align: end;
        }
    </style>
</head>
<body>
    <h1>{{title}}</h1>
    <hr/>
    <table>{{content}}</table>
    <hr/>
</body>
</html>"""

PLACEHOLDER_RE = re.compile(r'{{\s*(title|content)\s*}}')

_UNSAFE_HTML_RE = re.compile('[&\n<>\'"]')


def escape_html(text):
    """Replace & newline < > ' and " with numeric character references."""
    return _UNSAFE_HTML_RE.sub(lambda m: f"&#{ord(m.group(0))};", text)


def printable_name(name):
    """
    Text form of a file name for display.

    Bytes that are not valid UTF-8 (kept as surrogates by ``os.scandir``)
    become U+FFFD.
    """
    return name.encode('utf-8', 'surrogateescape').decode('utf-8', 'replace')


def quote_href(path):
    """Percent-encode a URL path, undecodable file name bytes included."""
    return quote(path, safe='/', errors='surrogateescape')


def has_placeholders(template):
    """True if ``template`` contains both {{title}} and {{content}}."""
    found = {match.group(1) for match in PLACEHOLDER_RE.finditer(template)}
    return found == {'title', 'content'}


def fill_template(template, title, content):
    """Substitute every {{title}} and {{content}} in one pass."""
    values = {'title': title, 'content': content}
    return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)


class ListingRenderer:
    """
    Renders directory listings.

    Args:
        options: RenderOptions
        date_formatter: DateFormatter used for the time column
    """

    def __init__(self, options, date_formatter):
        self.options = options
        self.date_formatter = date_formatter
        self.template = options.custom_template or DEFAULT_TEMPLATE

    def build_views(self, entries, base_href):
        """
        Derive href, display name, time and size for each entry.

        Args:
            entries: Entries in enumeration order
            base_href: URL path of the listed directory, ending with "/"

        Returns:
            list: EntryView per entry, same order
        """
        views = []
        for entry in entries:
            suffix = '/' if entry.is_directory else ''
            views.append(EntryView(
                entry=entry,
                href=quote_href(base_href + entry.name + suffix),
                display_name=printable_name(entry.name) + suffix,
                formatted_time=self.date_formatter.format(entry.mtime, self.options.date_format),
                formatted_size=str(entry.size) if entry.is_file else '-'
            ))
        return views

    def render_row(self, view):
        row = f'<tr><td class="link"><a href="{escape_html(view.href)}">{escape_html(view.display_name)}</a></td>'
        if self.options.display_date:
            row += f'<td class="time">{escape_html(view.formatted_time)}</td>'
        if self.options.display_size:
            row += f'<td class="size">{view.formatted_size}</td>'
        return row + '</tr>'

    def render_html(self, title, views, parent_href=None):
        """
        Render the HTML page.

        Args:
            title: Logical path of the directory, e.g. "/docs/"
            views: EntryViews in enumeration order
            parent_href: URL of the parent listing, None at the root

        Returns:
            str: Complete page
        """
        rows = []
        if parent_href is not None:
            rows.append(f'<tr><td class="link"><a href="{escape_html(quote_href(parent_href))}">../</a></td></tr>')

        if self.options.dir_at_top:
            rows.extend(self.render_row(view) for view in views if view.entry.is_directory)
            rows.extend(self.render_row(view) for view in views if not view.entry.is_directory)
        else:
            rows.extend(self.render_row(view) for view in views)

        return fill_template(self.template, escape_html(f"Index of {printable_name(title)}"), ''.join(rows))

    def render_json(self, views):
        """
        Render the JSON listing.

        Each entry becomes {isDir, name, path, time, size}; with a field
        remap only the remapped keys are emitted, under their new names.

        Returns:
            list: JSON-serializable list of dicts
        """
        remap = self.options.json_field_remap
        listing = []
        for view in views:
            fields = {
                'isDir': view.entry.is_directory,
                'name': view.display_name,
                'path': view.href,
                'time': view.formatted_time,
                'size': view.entry.size if view.entry.is_file else 0
            }
            if remap is not None:
                fields = {renamed: fields[default] for default, renamed in remap.pairs()}
            listing.append(fields)
        return listing

    def render(self, title, entries, base_href, parent_href=None):
        """
        Render entries in the configured mode.

        Returns:
            tuple: (payload, is_json)
        """
        views = self.build_views(entries, base_href)
        if self.options.json_mode:
            return self.render_json(views), True
        return self.render_html(title, views, parent_href), False
