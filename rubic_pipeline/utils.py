# -*- coding: utf-8 -*-
"""Utility code"""

__author__ = "RUBIC developers"

import functools


def listify(gen):
    """Decorator that converts a generator into a function which returns a list

    Use it in the case where a generator is easier to write but you want
    to enforce returning a list::

        @listify
        def counter(max_no):
            i = 0
            while i <= max_no:
                yield i
    """

    @functools.wraps(gen)
    def patched(*args, **kwargs):
        """Wrapper function"""
        return list(gen(*args, **kwargs))

    return patched


def is_missing(value) -> bool:
    """Return whether ``value`` is ``None`` or a float NaN (an unset numeric option)"""
    return value is None or (isinstance(value, float) and value != value)
