#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Reference data for the FIT protocol.

The message and type dictionary lives in `_profile.json`, which is loaded once
at import. Nothing in here should be mutated at runtime; the record decoder
only goes through `message_by_number`, `field_by_message_and_number` and
`enum_by_type`.

"""
from enum import Enum
import json
from math import isnan
from os import path
import struct


PROFILE_JSON_PATH = path.join(path.abspath(path.dirname(__file__)),
                              '_profile.json')


class UnitFamily(Enum):
    """Which user selected unit (if any) applies to a field."""
    NONE = 0
    SPEED = 1
    DISTANCE = 2
    TEMPERATURE = 3


UNIT_FAMILY_FIELDS = {
    UnitFamily.SPEED: frozenset((
        'speed', 'enhanced_speed', 'vertical_speed', 'avg_speed', 'max_speed',
        'speed_1s', 'ball_speed', 'enhanced_avg_speed', 'enhanced_max_speed',
        'avg_pos_vertical_speed', 'max_pos_vertical_speed',
        'avg_neg_vertical_speed', 'max_neg_vertical_speed')),
    UnitFamily.DISTANCE: frozenset((
        'distance', 'total_distance', 'enhanced_avg_altitude',
        'enhanced_min_altitude', 'enhanced_max_altitude', 'enhanced_altitude',
        'height', 'odometer', 'avg_stroke_distance', 'min_altitude',
        'avg_altitude', 'max_altitude', 'total_ascent', 'total_descent',
        'altitude', 'cycle_length', 'auto_wheelsize', 'custom_wheelsize',
        'gps_accuracy')),
    UnitFamily.TEMPERATURE: frozenset((
        'temperature', 'avg_temperature', 'max_temperature')),
}


def unit_family(field_name):
    for family, names in UNIT_FAMILY_FIELDS.items():
        if field_name in names:
            return family
    return UnitFamily.NONE


class BaseType:
    __slots__ = ('name', 'identifier', 'fmt', 'parse')

    def __init__(self, **kwargs):
        for name, value in kwargs.items():
            setattr(self, name, value)

    def __repr__(self):
        return 'BaseType(%s)' % self.name

    @property
    def size(self):
        return struct.calcsize(self.fmt)

    @property
    def type_num(self):
        return self.identifier & 0x1F

    @property
    def endian_ability(self):
        return bool(self.identifier & 0x80)

    @property
    def is_signed(self):
        return self.fmt in ('b', 'h', 'i', 'q')

    @property
    def is_integer(self):
        return self.fmt not in ('s', 'f', 'd')


BASE_TYPE_BYTE = BaseType(name='byte', identifier=0x0D, fmt='B',
                          parse=lambda x: None if x == 0xFF else x)

# `parse` maps invalid values to None.
BASE_TYPES = {bt.type_num: bt for bt in (
    BaseType(name='enum',    identifier=0x00, fmt='B', parse=lambda x: None if x == 0xFF else x),
    BaseType(name='sint8',   identifier=0x01, fmt='b', parse=lambda x: None if x == 0x7F else x),
    BaseType(name='uint8',   identifier=0x02, fmt='B', parse=lambda x: None if x == 0xFF else x),
    BaseType(name='sint16',  identifier=0x83, fmt='h', parse=lambda x: None if x == 0x7FFF else x),
    BaseType(name='uint16',  identifier=0x84, fmt='H', parse=lambda x: None if x == 0xFFFF else x),
    BaseType(name='sint32',  identifier=0x85, fmt='i', parse=lambda x: None if x == 0x7FFFFFFF else x),
    BaseType(name='uint32',  identifier=0x86, fmt='I', parse=lambda x: None if x == 0xFFFFFFFF else x),
    BaseType(name='string',  identifier=0x07, fmt='s', parse=lambda x: x or None),
    BaseType(name='float32', identifier=0x88, fmt='f', parse=lambda x: None if isnan(x) else x),
    BaseType(name='float64', identifier=0x89, fmt='d', parse=lambda x: None if isnan(x) else x),
    BaseType(name='uint8z',  identifier=0x0A, fmt='B', parse=lambda x: None if x == 0x0 else x),
    BaseType(name='uint16z', identifier=0x8B, fmt='H', parse=lambda x: None if x == 0x0 else x),
    BaseType(name='uint32z', identifier=0x8C, fmt='I', parse=lambda x: None if x == 0x0 else x),
    BASE_TYPE_BYTE,
    BaseType(name='sint64',  identifier=0x8E, fmt='q', parse=lambda x: None if x == 0x7FFFFFFFFFFFFFFF else x),
    BaseType(name='uint64',  identifier=0x8F, fmt='Q', parse=lambda x: None if x == 0xFFFFFFFFFFFFFFFF else x),
    BaseType(name='uint64z', identifier=0x90, fmt='Q', parse=lambda x: None if x == 0x0 else x),
)}

BASE_TYPES_BY_NAME = {bt.name: bt for bt in BASE_TYPES.values()}


class FieldInfo:
    """What the dictionary knows about one field of one message."""
    __slots__ = ('number', 'name', 'type', 'scale', 'offset', 'units',
                 'unit_family')

    def __init__(self, number, name, type, scale=None, offset=None,
                 units=''):
        self.number = number
        self.name = name
        self.type = type
        self.scale = scale
        self.offset = offset
        self.units = units
        self.unit_family = unit_family(name)

    def __repr__(self):
        return 'FieldInfo(%d, %r, %r)' % (self.number, self.name, self.type)


class MessageInfo:
    __slots__ = ('number', 'name', 'fields')

    def __init__(self, number, name, fields):
        self.number = number
        self.name = name
        self.fields = fields    # {field number: FieldInfo}

    def __repr__(self):
        return 'MessageInfo(%d, %r)' % (self.number, self.name)


def load_profile(file_path=PROFILE_JSON_PATH):
    """Read the reference dictionary.

    Returns
    -------
    (messages, types) : tuple of dict
        ``messages`` maps a global message number to a `MessageInfo`;
        ``types`` maps a type name to ``{raw value: symbolic name}``.
    """
    with open(file_path, 'rt', encoding='utf-8') as f:
        raw = json.load(f)

    messages = {}
    for mesg_num, mesg in raw['messages'].items():
        fields = {int(num): FieldInfo(int(num), **field)
                  for num, field in mesg['fields'].items()}
        messages[int(mesg_num)] = MessageInfo(int(mesg_num), mesg['name'],
                                              fields)

    types = {type_name: {int(value): name for value, name in values.items()}
             for type_name, values in raw['types'].items()}

    return messages, types


MESSAGE_TYPES, TYPES_INFO = load_profile()

GLOBAL_MESG_NUMS = {num: mesg.name for num, mesg in MESSAGE_TYPES.items()}


def message_by_number(mesg_num):
    """The `MessageInfo` for a global message number, or None."""
    return MESSAGE_TYPES.get(mesg_num)


def field_by_message_and_number(mesg_num, field_num):
    """The `FieldInfo` for a field of a global message, or None."""
    mesg = MESSAGE_TYPES.get(mesg_num)
    if mesg is None:
        return None
    return mesg.fields.get(field_num)


def enum_by_type(type_name):
    """Symbolic names for an enumerated type, or None if it isn't one."""
    return TYPES_INFO.get(type_name)
