#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import numpy as np

from fitio._types.base import SeriesSubclass, series_property


REGISTRY = {}    # grows at import-time via the below metaclass

METRES_PER_MILE = 1609.344


class SpecialRegistrar(type):
    def __init__(cls, name, bases, namespace):
        if 'colname' in namespace:
            REGISTRY[cls.colname] = cls
        super().__init__(name, bases, namespace)


class SpecialColumn(SeriesSubclass, metaclass=SpecialRegistrar):
    _metadata = ['colname', 'base_unit']

    def __init__(self, data, *args, **kwargs):
        super().__init__(data, *args, **kwargs)
        self.name = type(self).colname


class Altitude(SpecialColumn):
    colname = 'alt'
    base_unit = 'm'

    @property
    def ascent(self):
        deltas = self.diff()
        cls = type(self)
        return cls(np.where(deltas > 0, deltas, 0), index=self.index)

    @property
    def descent(self):
        deltas = self.diff()
        cls = type(self)
        return cls(np.where(deltas < 0, deltas, 0), index=self.index)

    @series_property
    def ft(self):
        """ metres --> feet """
        return self * 3.28084


class Cadence(SpecialColumn):
    colname = 'cad'
    base_unit = 'rpm'


class Distance(SpecialColumn):
    colname = 'dist'
    base_unit = 'm'

    @series_property
    def km(self):
        """ metres --> kilometres """
        return self / 1000

    @series_property
    def miles(self):
        """ metres --> miles """
        return self / METRES_PER_MILE


class HeartRate(SpecialColumn):
    colname = 'hr'
    base_unit = 'bpm'


class LapCounter(SpecialColumn):
    colname = 'lap'
    base_unit = '#'


class LonLat(SpecialColumn):
    base_unit = 'degrees'

    @series_property
    def radians(self):
        """ degrees --> radians """
        return np.radians(self)


class Longitude(LonLat):
    colname = 'lon'


class Latitude(LonLat):
    colname = 'lat'


class Power(SpecialColumn):
    colname = 'pwr'
    base_unit = 'watts'


class Speed(SpecialColumn):
    colname = 'speed'
    base_unit = 'm/s'

    @series_property
    def kph(self):
        """ metres/second --> kilometres/hour """
        return self * 60**2 / 1000

    @series_property
    def mph(self):
        """ metres/second --> miles/hour """
        return self * 60**2 / METRES_PER_MILE


class Temperature(SpecialColumn):
    colname = 'temp'
    base_unit = 'degrees_C'

    @series_property
    def fahrenheit(self):
        return self * 1.8 + 32
