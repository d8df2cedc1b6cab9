#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
pandas subclasses that survive slicing and arithmetic.

pandas builds new objects through `_constructor` and then calls
`__finalize__`; between them they decide whether the result is still one of
ours and what it remembers (`_metadata`).

"""
from pandas import DataFrame, Series


__all__ = ('DataFrameSubclass', 'SeriesSubclass', 'series_property')


class MetadataMixin:
    _metadata = []

    @property
    def _constructor(self):
        return self.__class__

    def __finalize__(self, other, method=None, **kwargs):
        for name in self._metadata:
            object.__setattr__(self, name, getattr(other, name, None))
        return self


class DataFrameSubclass(MetadataMixin, DataFrame):
    pass


class SeriesSubclass(MetadataMixin, Series):
    pass


class series_property:
    """Read-only attribute computed from a column, handed back as a plain
    `pandas.Series` so the result doesn't pretend to be the same kind of
    column (e.g. ascent from altitude)."""

    def __init__(self, fget):
        self.fget = fget
        self.__doc__ = fget.__doc__

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return Series(self.fget(obj), index=obj.index)
