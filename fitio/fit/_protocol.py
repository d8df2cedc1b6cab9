#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Implement the Flexible and Interoperable data Transfer (FIT) protocol.

Everything works on an in-memory buffer and an integer cursor. The only state
carried between records is the table of local message definitions
(`LocalMessageTypes`), which the caller owns.

TODO:
-----
    + apply compressed timestamp offsets

"""
from datetime import datetime, timedelta
import logging
from struct import unpack

import pytz

from fitio.fit._binary import add_endian, as_signed, take
from fitio.fit._options import DEFAULT_OPTIONS
from fitio.fit._profile import (
    BASE_TYPE_BYTE, BASE_TYPES, BASE_TYPES_BY_NAME, GLOBAL_MESG_NUMS,
    enum_by_type, field_by_message_and_number)
from fitio._util.exceptions import MessageHeaderError, TruncatedMessageError
from fitio._util.misc import semicircles_to_degrees


log = logging.getLogger(__name__)

UNKNOWN = 'unknown'

# 631065600 seconds after the unix epoch.
FIT_EPOCH = datetime(year=1989, month=12, day=31, tzinfo=pytz.utc)
LOCAL_FIT_EPOCH = FIT_EPOCH.replace(tzinfo=None)

NUMERIC_TYPES = frozenset(
    name for name, bt in BASE_TYPES_BY_NAME.items()
    if name not in ('enum', 'byte', 'string'))


class LocalMessageTypes:
    """The sixteen local message type slots of a single file.

    A definition message fills (or overwrites) a slot; data messages look
    their layout up by slot. Never share one of these between files.
    """
    __slots__ = ('_slots',)

    SIZE = 16

    def __init__(self):
        self._slots = [None] * self.SIZE

    def __setitem__(self, local_message_type, definition):
        self._slots[local_message_type] = definition

    def __getitem__(self, local_message_type):
        return self._slots[local_message_type]

    def __contains__(self, local_message_type):
        return self._slots[local_message_type] is not None

    def resolve(self, local_message_type):
        """Definition for a slot, falling back to slot 0 if it is empty."""
        definition = self._slots[local_message_type]
        if definition is not None:
            return definition

        fallback = self._slots[0]
        if fallback is None:
            raise MessageHeaderError(
                'invalid local message type (%d)' % local_message_type)

        log.warning('local message type %d was never defined, using 0',
                    local_message_type)
        return fallback


class FitMessageHeader:
    """From the FIT SDK release 20.03.00

    The record header is a one byte bit field. There are actually two types of
    record header: normal header and compressed timestamp header. The header
    type is indicated in the most significant bit (msb) of the record header.
    """
    __slots__ = ('is_definition', 'has_developer_data',
                 'local_message_type', 'time_offset')

    @property
    def is_compressed(self):
        return self.time_offset is not None


class NormalHeader(FitMessageHeader):
    """From the FIT SDK release 20.03.00

    Normal Header Bit Field Description
    -----------------------------------

    =====  =============  ========================
    Bit        Value      Description
    =====  =============  ========================
      7          0        Normal header
      6        0 or 1     Message type:
                            1: definition message
                            0: data message
      5     0 (default)   Message type specific
      4          0        Reserved
     0-3        0-15      Local message type
    =====  =============  ========================
    """
    __slots__ = tuple()

    def __init__(self, header_byte):
        self.is_definition = bool(header_byte & 0x40)
        # Only meaningful for definitions: developer field definitions follow
        # the regular ones.
        self.has_developer_data = self.is_definition and bool(
            header_byte & 0x20)
        self.local_message_type = header_byte & 0xF    # bits 0-3
        self.time_offset = None


class CompressedTimestampHeader(FitMessageHeader):
    """From the FIT SDK release 20.03.00

    =====  =============  ========================
    Bit        Value      Description
    =====  =============  ========================
      7          1        Compressed timestamp
     5-6        0-3       Local message type
     0-4        0-31      Time offset (seconds)
    =====  =============  ========================

    NOTE: this type of record header is used for a *data message only*. The
    time offset is kept here but never applied to the decoded message.
    """
    __slots__ = tuple()

    def __init__(self, header_byte):
        self.is_definition = False
        self.has_developer_data = False
        self.local_message_type = (header_byte >> 5) & 0x3   # bits 5-6
        self.time_offset = header_byte & 0x1F                # bits 0-4


def read_header(header_byte):
    # A value of 0 in bit 7 indicates that this is a normal header.
    if header_byte & 0x80:
        return CompressedTimestampHeader(header_byte)
    return NormalHeader(header_byte)


class FieldDefinition:
    """From the FIT SDK release 20.03.00

    Field Definition Contents
    -------------------------

    ======  =================  ===============================================
     Byte    Name               Description
    ======  =================  ===============================================
      0     Field definition   Defined in the global FIT profile for the
            number             specified FIT message.
      1     Size               Size (in bytes) of the specified FIT message's
                               field.
      2     Base type          Base type of the specified FIT message's field.
    ======  =================  ===============================================

    """
    __slots__ = ('number', 'size', 'base_type', 'endian_ability',
                 'little_endian', 'info')

    def __init__(self, number, size, type_byte, little_endian, info=None):
        self.number = number
        self.size = size
        self.base_type = BASE_TYPES.get(type_byte & 0x1F, BASE_TYPE_BYTE)
        self.endian_ability = bool(type_byte & 0x80)
        self.little_endian = little_endian
        self.info = info    # None if the dictionary doesn't know the field

    def __repr__(self):
        return 'FieldDefinition(%d, %r, size=%d)' % (
            self.number, self.name, self.size)

    @property
    def name(self):
        return self.info.name if self.info is not None else ''

    @property
    def n_values(self):
        return self.size // self.base_type.size

    @property
    def fmt(self):
        """Format for struct.unpacking."""
        endian = '<' if self.little_endian else '>'
        return '{}{}{}'.format(endian, self.n_values, self.base_type.fmt)

    def read(self, data, start):
        """Parse the value of this field found at ``data[start]``.

        Invalid values (see `BaseType.parse`) are returned as None. Arrays are
        returned as tuples.
        """
        if not self.size:
            return None

        raw = take(data, start, self.size)
        base_type = self.base_type

        if base_type.name == 'string':
            text = raw.split(b'\x00')[0].decode('utf-8', 'replace')
            return base_type.parse(text)

        if base_type.is_integer and self.size <= min(base_type.size, 4):
            if self.endian_ability:
                value = add_endian(self.little_endian, raw)
                n_bytes = self.size
            else:
                value, n_bytes = raw[0], 1
            if base_type.is_signed:
                value = as_signed(value, n_bytes)
            return base_type.parse(value)

        if self.size % base_type.size:
            # Doesn't agree with its own base type; hand the bytes back.
            return bytes(raw)

        values = tuple(base_type.parse(value)
                       for value in unpack(self.fmt, raw))
        if len(values) == 1:
            return values[0]
        return None if all(value is None for value in values) else values


class DefinitionMessage:
    """From the FIT SDK release 20.03.00

    The definition message is used to create an association between the local
    message type contained in the record header, and a Global Message Number
    that relates to the global FIT message.


    Definition Message Contents
    ---------------------------

    ======  =======================  =============  ===========================
    Byte    Description                 Length      Value
    (bytes)
    ======  =======================  =============  ===========================
      0     Reserved                       1         0
      1     Architecture                   1         0 or 1
                                                       0: little endian
                                                       1: big endian
     2-3    Global message number          2         Unique to each message
      4     Fields                         1         Number of fields in the
                                                     data message
      5     Field definition(s)            3         See table below
     ...                              (per field)
    ======  =======================  =============  ===========================

    """
    __slots__ = ('local_message_type', 'little_endian', 'global_mesg_num',
                 'name', 'field_defs', 'developer_sizes', 'size')

    def __init__(self, header, data, cursor):
        self.local_message_type = header.local_message_type

        # cursor + 1 is reserved
        architecture, = take(data, cursor + 2, 1)
        self.little_endian = architecture == 0

        self.global_mesg_num = add_endian(self.little_endian,
                                          take(data, cursor + 3, 2))
        self.name = GLOBAL_MESG_NUMS.get(self.global_mesg_num, UNKNOWN)
        if self.name == UNKNOWN:
            log.debug('unknown global message number %d',
                      self.global_mesg_num)

        field_count, = take(data, cursor + 5, 1)
        field_bytes = take(data, cursor + 6, 3 * field_count)

        self.field_defs = []
        for i in range(0, 3 * field_count, 3):
            number, size, type_byte = field_bytes[i:i + 3]
            info = field_by_message_and_number(self.global_mesg_num, number)
            self.field_defs.append(FieldDefinition(
                number, size, type_byte, self.little_endian, info))

        size = 6 + 3 * field_count    # header byte included

        # Developer fields: we only need their sizes to skip over them.
        self.developer_sizes = []
        if header.has_developer_data:
            dev_count, = take(data, cursor + size, 1)
            dev_bytes = take(data, cursor + size + 1, 3 * dev_count)
            self.developer_sizes = [dev_bytes[i + 1]
                                    for i in range(0, 3 * dev_count, 3)]
            size += 1 + 3 * dev_count

        self.size = size

    def __repr__(self):
        return 'DefinitionMessage(%d -> %r)' % (
            self.local_message_type, self.name)

    @property
    def data_size(self):
        """Bytes taken up by a data message using this definition."""
        return (sum(field_def.size for field_def in self.field_defs)
                + sum(self.developer_sizes))


class DataMessage:
    """The useful part of a *.fit file.

    The header identifies an associated definition message. We pull the
    field definitions from that message and use them to parse data from
    the buffer.
    """
    __slots__ = ('header', 'definition', 'name', 'fields', 'size')

    def __init__(self, header, definition, data, cursor, *,
                 options=DEFAULT_OPTIONS, start_time=None):
        self.header = header
        self.definition = definition
        self.name = definition.name
        self.size = 1 + definition.data_size

        fields = {}
        position = cursor + 1
        for field_def in definition.field_defs:
            value = field_def.read(data, position)
            position += field_def.size

            # Nameless fields and invalid values are dropped.
            if field_def.info is None or not field_def.name:
                continue
            if value is None:
                continue

            value = format_by_type(value, field_def.info)
            fields[field_def.name] = apply_options(
                value, field_def.info, options)

        # Developer data is skipped, but it still has to be inside the buffer.
        take(data, position, sum(definition.developer_sizes))

        if (self.name == 'record' and options.elapsed_record_field
                and start_time is not None and 'timestamp' in fields):
            fields['elapsed_time'] = (
                fields['timestamp'] - start_time).total_seconds()

        self.fields = fields

    def __repr__(self):
        return 'DataMessage(%r, %d fields)' % (self.name, len(self.fields))

    @property
    def fallback(self):
        """Was this decoded with slot 0 in place of an undefined slot?"""
        return (self.definition.local_message_type
                != self.header.local_message_type)


def read_record(data, local_types, cursor, *, options=DEFAULT_OPTIONS,
                start_time=None):
    """Parse one record (header byte + contents) starting at `cursor`.

    Parameters
    ----------
    data : bytes
        The whole file.
    local_types : LocalMessageTypes
        Updated in place by definition messages.
    cursor : int
        Offset of the record header byte.
    options : FitOptions, optional
    start_time : datetime, optional
        Timestamp of the first record message, for ``elapsed_time``.

    Returns
    -------
    (next_cursor, message) : tuple
        `message` is either a `DefinitionMessage` or a `DataMessage`.

    Raises
    ------
    MessageHeaderError
        A data message refers to an undefined local message type and there is
        no slot 0 definition to fall back on.
    TruncatedMessageError
        The record runs past the end of `data`.
    """
    try:
        header = read_header(take(data, cursor, 1)[0])

        if header.is_definition:
            message = DefinitionMessage(header, data, cursor)
            local_types[header.local_message_type] = message
        else:
            if header.is_compressed:
                log.debug('compressed timestamp header at %d, '
                          'time offset ignored', cursor)
            definition = local_types.resolve(header.local_message_type)
            message = DataMessage(header, definition, data, cursor,
                                  options=options, start_time=start_time)

    except IndexError as e:
        raise TruncatedMessageError(
            'record at byte %d runs past the end of the file' % cursor) from e

    return cursor + message.size, message


def format_by_type(value, info):
    """Turn a raw value into something meaningful, according to the
    dictionary type of the field."""
    if isinstance(value, tuple):
        return tuple(value if value is None else format_by_type(value, info)
                     for value in value)

    if isinstance(value, (str, bytes)):
        return value

    if info.type == 'date_time':
        return FIT_EPOCH + timedelta(seconds=value)
    elif info.type == 'local_date_time':
        return LOCAL_FIT_EPOCH + timedelta(seconds=value)
    elif info.units == 'semicircles':
        return semicircles_to_degrees(value)
    elif info.type in NUMERIC_TYPES:
        return apply_scale_offset(info, value)

    values = enum_by_type(info.type)
    if values is not None:
        return values.get(value, value)

    return value


def apply_scale_offset(info, value):
    """Apply the dictionary scale and offset to a binary (sint/uint) field.

    The result is ``value / scale + offset``. Offsets are stored with the sign
    that makes this come out right, e.g. altitude is scale 5, offset -500, so
    a raw 2500 is 0 m.
    """
    if not info.scale and not info.offset:
        return value
    return value / (info.scale or 1) + (info.offset or 0)


def apply_options(value, info, options):
    """Convert speeds, lengths and temperatures to the requested units."""
    unit = options.unit_for(info.unit_family)
    if unit is None:
        return value

    if isinstance(value, tuple):
        return tuple(value if value is None else unit(value)
                     for value in value)
    elif isinstance(value, (int, float)):
        return unit(value)
    return value
