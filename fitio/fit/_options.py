#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Decoding options and unit tables.

"""
from collections import namedtuple

from fitio.fit._profile import UnitFamily


class Unit(namedtuple('Unit', ('multiplier', 'offset'))):
    __slots__ = ()

    def __call__(self, value):
        return value * self.multiplier + self.offset


# Decoded values are always SI (m/s, m, degrees C) to begin with.
SPEED_UNITS = {
    'm/s': Unit(1, 0),
    'km/h': Unit(3.6, 0),
    'mph': Unit(3600 / 1609.344, 0),
}

LENGTH_UNITS = {
    'm': Unit(1, 0),
    'km': Unit(1 / 1000, 0),
    'mi': Unit(1 / 1609.344, 0),
}

TEMPERATURE_UNITS = {
    'celsius': Unit(1, 0),
    'kelvin': Unit(1, 273.15),
    'fahrenheit': Unit(1.8, 32),
}

MODES = ('list', 'cascade', 'both')


def check_choice(name, value, choices):
    if value not in choices:
        raise ValueError('{} must be one of {!r}, not {!r}'.format(
            name, tuple(choices), value))


_FitOptions = namedtuple('FitOptions', (
    'force', 'speed_unit', 'length_unit', 'temperature_unit',
    'elapsed_record_field', 'mode'))


class FitOptions(_FitOptions):
    """Everything that changes how a file is decoded.

    Attributes
    ----------
    force : bool
        Keep decoding after a header validation error.
    speed_unit : {'m/s', 'km/h', 'mph'}
    length_unit : {'m', 'km', 'mi'}
    temperature_unit : {'celsius', 'kelvin', 'fahrenheit'}
    elapsed_record_field : bool
        Add an ``elapsed_time`` (seconds) field to every record message.
    mode : {'list', 'cascade', 'both'}
        Flat lists of messages, a session -> lap -> record tree, or both.
    """
    __slots__ = ()

    def __new__(cls, force=True, speed_unit='m/s', length_unit='m',
                temperature_unit='celsius', elapsed_record_field=False,
                mode='list'):
        check_choice('speed_unit', speed_unit, SPEED_UNITS)
        check_choice('length_unit', length_unit, LENGTH_UNITS)
        check_choice('temperature_unit', temperature_unit, TEMPERATURE_UNITS)
        check_choice('mode', mode, MODES)
        return super().__new__(cls, bool(force), speed_unit, length_unit,
                               temperature_unit, bool(elapsed_record_field),
                               mode)

    @property
    def cascade(self):
        return self.mode in ('cascade', 'both')

    @property
    def flat(self):
        return self.mode in ('list', 'both')

    def unit_for(self, family):
        """The `Unit` to apply to fields of the given `UnitFamily`."""
        if family is UnitFamily.SPEED:
            return SPEED_UNITS[self.speed_unit]
        elif family is UnitFamily.DISTANCE:
            return LENGTH_UNITS[self.length_unit]
        elif family is UnitFamily.TEMPERATURE:
            return TEMPERATURE_UNITS[self.temperature_unit]
        return None


DEFAULT_OPTIONS = FitOptions()


def make_options(options=None, **kwargs):
    """Fold an optional `FitOptions` and keyword overrides into one."""
    if options is None:
        return FitOptions(**kwargs) if kwargs else DEFAULT_OPTIONS
    return FitOptions(**dict(options._asdict(), **kwargs)) if kwargs else options
