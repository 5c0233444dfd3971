#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Date Formatting Module for Autoindex
------------------------------------
Expands user supplied date templates such as ``%d-%mo-%y %h:%mi`` against a
file modification time. Output never depends on the process locale or time
zone: numeric fields are sliced out of the ISO-8601 UTC representation and
names come from fixed English tables.

Recognized tokens:
    %wd  weekday abbreviation (Mon..Sun)
    %d   day of month, two digits
    %mo  month abbreviation (Jan..Dec)
    %mm  month number, two digits
    %y   year
    %h   hour, two digits
    %mi  minute, two digits
    %s   second, two digits
    %ms  milliseconds, three digits, empty on a whole second

A token directly followed by "?" controls the literal character after the
marker: it is kept when the token expanded to something and dropped along
with the marker when the expansion is empty.
"""

import math
import logging
import threading
from collections import OrderedDict, namedtuple
from datetime import datetime, timedelta, timezone

WEEKDAYS = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')
MONTHS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

DEFAULT_DATE_FORMAT = '%d?-%mo-%y %h:%mi'
CONDITIONAL_MARKER = '?'

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

DateParts = namedtuple('DateParts', [
    'year', 'month', 'day', 'hour', 'minute', 'second', 'millisecond', 'weekday'
])

DATE_TOKENS = (
    ('%wd', lambda p: p.weekday),
    ('%d', lambda p: p.day),
    ('%mo', lambda p: MONTHS[int(p.month) - 1]),
    ('%mm', lambda p: p.month),
    ('%y', lambda p: p.year),
    ('%h', lambda p: p.hour),
    ('%mi', lambda p: p.minute),
    ('%s', lambda p: p.second),
    ('%ms', lambda p: '' if p.millisecond == '000' else p.millisecond),
)


def to_milliseconds(mtime):
    """Convert a timestamp in seconds (or an aware datetime) to whole milliseconds, truncating."""
    if isinstance(mtime, datetime):
        return (mtime - _EPOCH) // timedelta(milliseconds=1)
    # round away float noise below a microsecond, then drop the sub-millisecond part
    return math.floor(round(mtime * 1000, 3))


def decompose(milliseconds):
    """
    Split a millisecond timestamp into date fields.

    Args:
        milliseconds: Milliseconds since the epoch

    Returns:
        DateParts: String fields taken from ``YYYY-MM-DDTHH:MM:SS.mmm``
    """
    moment = _EPOCH + timedelta(milliseconds=milliseconds)
    iso = moment.isoformat(timespec='milliseconds')
    date_part, time_part = iso.split('T', 1)
    year, month, day = date_part.rsplit('-', 2)
    return DateParts(
        year=year,
        month=month,
        day=day,
        hour=time_part[0:2],
        minute=time_part[3:5],
        second=time_part[6:8],
        millisecond=time_part[9:12],
        weekday=WEEKDAYS[moment.weekday()]
    )


class DateFormatter:
    """
    Memoizing date template expander.

    Results are cached per (millisecond timestamp, template). The memo holds
    at most ``max_entries`` results; once full, the oldest one is dropped.
    """

    def __init__(self, template=DEFAULT_DATE_FORMAT, max_entries=1024, tokens=DATE_TOKENS):
        self.template = template
        self.max_entries = max_entries
        self.tokens = dict(tokens)
        self._lengths = sorted({len(token) for token in self.tokens}, reverse=True)
        self._memo = OrderedDict()
        self._lock = threading.Lock()
        self.logger = logging.getLogger('DateFormatter')

    def __len__(self):
        return len(self._memo)

    def _match_token(self, template, index):
        for length in self._lengths:
            candidate = template[index:index + length]
            if candidate in self.tokens:
                return candidate
        return None

    def expand(self, template, parts):
        """
        Expand ``template`` in a single left-to-right pass.

        Args:
            template: Date template
            parts: DateParts to read the fields from

        Returns:
            str: Expanded template, unknown tokens left verbatim
        """
        output = []
        index = 0
        end = len(template)

        while index < end:
            char = template[index]
            token = self._match_token(template, index) if char == '%' else None
            if token is None:
                output.append(char)
                index += 1
                continue

            value = self.tokens[token](parts)
            index += len(token)
            if index < end and template[index] == CONDITIONAL_MARKER:
                index += 1
                if not value:
                    index += 1
            output.append(value)

        return ''.join(output)

    def format(self, mtime, template=None):
        """
        Format a modification time.

        Args:
            mtime: Timestamp in seconds, or an aware datetime
            template: Date template (default: the formatter's template)

        Returns:
            str: Formatted date
        """
        template = self.template if template is None else template
        key = (to_milliseconds(mtime), template)

        with self._lock:
            cached = self._memo.get(key)
        if cached is not None:
            return cached

        result = self.expand(template, decompose(key[0]))

        with self._lock:
            if key not in self._memo and self.max_entries > 0:
                while len(self._memo) >= self.max_entries:
                    self._memo.popitem(last=False)
                self._memo[key] = result
        return result

    def clear(self):
        with self._lock:
            self._memo.clear()
        self.logger.debug("Date memo cleared")
