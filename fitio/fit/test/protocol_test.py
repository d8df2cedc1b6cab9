#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from datetime import datetime, timezone
import struct

import pytest

from fitio.fit import FitOptions
from fitio.fit._protocol import (
    CompressedTimestampHeader, DataMessage, DefinitionMessage,
    LocalMessageTypes, NormalHeader, apply_scale_offset, read_header,
    read_record)
from fitio.fit._profile import FieldInfo, field_by_message_and_number
from fitio._util.exceptions import MessageHeaderError, TruncatedMessageError
from fitio._util.misc import semicircles_to_degrees

from builders import (
    FILE_ID, RECORD, RECORD_DEF, SESSION, SINT8, SINT32, STRING, UINT8,
    UINT16, UINT32, FIT_EPOCH_UNIX, data, definition, record)


def decode(*messages, options=FitOptions(), start_time=None):
    """Run every message through `read_record`, return the last one."""
    buffer = b''.join(messages)
    local_types = LocalMessageTypes()
    cursor = 0
    while cursor < len(buffer):
        cursor, message = read_record(buffer, local_types, cursor,
                                      options=options, start_time=start_time)
    assert cursor == len(buffer)
    return message


def test_headers():
    header = read_header(0x45)
    assert isinstance(header, NormalHeader)
    assert header.is_definition and header.local_message_type == 5
    assert not header.is_compressed

    header = read_header(0x0F)
    assert not header.is_definition and header.local_message_type == 15

    header = read_header(0xC7)   # compressed, local type 2, bit 6 set
    assert isinstance(header, CompressedTimestampHeader)
    assert not header.is_definition
    assert header.local_message_type == 2
    assert header.time_offset == 7


def test_definition_message():
    local_types = LocalMessageTypes()
    cursor, message = read_record(RECORD_DEF, local_types, 0)

    assert isinstance(message, DefinitionMessage)
    assert cursor == 6 + 3 * 3
    assert local_types[0] is message
    assert message.name == 'record'
    assert message.little_endian
    assert [f.name for f in message.field_defs] == [
        'timestamp', 'heart_rate', 'distance']
    assert [f.size for f in message.field_defs] == [4, 1, 4]
    assert message.field_defs[0].endian_ability
    assert not message.field_defs[1].endian_ability
    assert message.data_size == 9


def test_definition_overwrites_slot():
    local_types = LocalMessageTypes()
    read_record(RECORD_DEF, local_types, 0)
    read_record(definition(0, SESSION, [(5, 1, 0)]), local_types, 0)
    assert local_types[0].name == 'session'
    assert 1 not in local_types


def test_timestamp_round_trip():
    raw = 1000000000
    message = decode(RECORD_DEF, record(raw, 150, 0))

    assert isinstance(message, DataMessage)
    assert message.name == 'record'
    assert message.fields['timestamp'] == datetime.fromtimestamp(
        FIT_EPOCH_UNIX + raw, tz=timezone.utc)


def test_scale_offset():
    message = decode(RECORD_DEF, record(0, 150, 12345))
    assert message.fields['distance'] == 123.45
    assert message.fields['heart_rate'] == 150

    altitude = definition(0, RECORD, [(2, 2, UINT16)])   # scale 5, offset -500
    message = decode(altitude, data(0, 'H', 2600))
    assert message.fields['altitude'] == 20.0
    message = decode(altitude, data(0, 'H', 2500))
    assert message.fields['altitude'] == 0.0


def test_scale_then_add_offset():
    info = FieldInfo(0, 'level', 'uint16', scale=5, offset=1000)
    assert apply_scale_offset(info, 2500) == 1500.0

    crank_length = field_by_message_and_number(6, 19)   # bike_profile
    assert apply_scale_offset(crank_length, 130) == 175.0

    no_scale = FieldInfo(0, 'count', 'uint16', offset=0)
    assert apply_scale_offset(no_scale, 42) == 42


def test_big_endian():
    big = definition(0, RECORD, [(253, 4, UINT32), (5, 4, UINT32)],
                     big_endian=True)
    little = definition(0, RECORD, [(253, 4, UINT32), (5, 4, UINT32)])

    from_big = decode(big, data(0, 'II', 123456, 789, big_endian=True))
    from_little = decode(little, data(0, 'II', 123456, 789))
    assert from_big.fields == from_little.fields


def test_semicircles():
    position = definition(0, RECORD, [(0, 4, SINT32), (1, 4, SINT32)])
    message = decode(position, data(0, 'ii', 2**30, -2**30))
    assert message.fields['position_lat'] == pytest.approx(90.0)
    assert message.fields['position_long'] == pytest.approx(-90.0)

    edge = decode(position, data(0, 'ii', 2**31 - 1, -2**31))
    assert edge.fields['position_lat'] == pytest.approx(180.0)
    assert edge.fields['position_lat'] > 0
    assert edge.fields['position_long'] == -180.0
    assert semicircles_to_degrees(2**31) == 180.0


def test_signed_scaled():
    grade = definition(0, RECORD, [(9, 2, 0x83)])   # sint16, scale 100
    message = decode(grade, data(0, 'h', -250))
    assert message.fields['grade'] == pytest.approx(-2.5)


def test_enums_and_strings():
    file_id = definition(0, FILE_ID, [
        (0, 1, 0x00),       # type
        (1, 2, UINT16),     # manufacturer
        (8, 8, STRING),     # product_name
    ])
    message = decode(file_id, data(0, 'BH8s', 4, 1, b'Edge\x00\x00\x00\x00'))
    assert message.name == 'file_id'
    assert message.fields == {
        'type': 'activity', 'manufacturer': 'garmin', 'product_name': 'Edge'}


def test_unknown_enum_value_passes_through():
    session = definition(0, SESSION, [(5, 1, 0x00)])
    assert decode(session, data(0, 'B', 200)).fields['sport'] == 200


def test_unknown_and_invalid_fields_dropped():
    layout = definition(0, RECORD, [
        (200, 2, UINT16),   # not in the profile
        (3, 1, UINT8),      # heart_rate
        (4, 1, UINT8),      # cadence
    ])
    message = decode(layout, data(0, 'HBB', 7, 0xFF, 90))
    assert message.fields == {'cadence': 90}
    assert message.size == 5


def test_unknown_message():
    message = decode(definition(0, 9999, [(0, 1, UINT8)]), data(0, 'B', 1))
    assert message.name == 'unknown'
    assert message.fields == {}


def test_arrays():
    layout = definition(0, RECORD, [(3, 3, UINT8)])
    assert decode(layout, data(0, '3B', 1, 2, 0xFF)).fields == {
        'heart_rate': (1, 2, None)}


def test_compressed_timestamp_header():
    hr = definition(1, RECORD, [(3, 1, UINT8)])
    # local type 1 in bits 5-6, time offset 7
    compressed = data(1, 'B', 99, header=0x80 | (1 << 5) | 7)

    local_types = LocalMessageTypes()
    cursor, _ = read_record(hr, local_types, 0)
    buffer = hr + compressed
    next_cursor, message = read_record(buffer, local_types, cursor)

    assert next_cursor == len(buffer)
    assert message.fields == {'heart_rate': 99}
    assert message.header.time_offset == 7


def test_undefined_local_type_falls_back_to_zero():
    hr = definition(0, RECORD, [(3, 1, UINT8)])
    message = decode(hr, data(5, 'B', 80))
    assert message.fields == {'heart_rate': 80}
    assert message.fallback


def test_undefined_local_type_without_fallback():
    with pytest.raises(MessageHeaderError):
        read_record(data(3, 'B', 80), LocalMessageTypes(), 0)


def test_truncated():
    local_types = LocalMessageTypes()
    cursor, _ = read_record(RECORD_DEF, local_types, 0)
    buffer = RECORD_DEF + b'\x00\x01\x02'
    with pytest.raises(TruncatedMessageError):
        read_record(buffer, local_types, cursor)

    with pytest.raises(TruncatedMessageError):
        read_record(RECORD_DEF[:10], LocalMessageTypes(), 0)


def test_zero_size_fields():
    layout = definition(0, RECORD, [
        (3, 1, UINT8), (2, 0, UINT16), (4, 0, UINT8)])   # hr, alt, cad
    buffer = layout + data(0, 'B', 100) + data(0, 'B', 101)

    local_types = LocalMessageTypes()
    cursor, _ = read_record(buffer, local_types, 0)
    cursor, message = read_record(buffer, local_types, cursor)
    assert message.fields == {'heart_rate': 100}
    cursor, message = read_record(buffer, local_types, cursor)
    assert message.fields == {'heart_rate': 101}
    assert cursor == len(buffer)


def test_developer_fields_skipped():
    layout = definition(0, RECORD, [(3, 1, UINT8)],
                        developer_fields=[(0, 2, 0), (1, 4, 0)])
    local_types = LocalMessageTypes()
    cursor, message = read_record(layout, local_types, 0)
    assert cursor == len(layout) == 6 + 3 + 1 + 6
    assert message.data_size == 7

    buffer = layout + data(0, 'B6x', 70)
    next_cursor, message = read_record(buffer, local_types, cursor)
    assert next_cursor == len(buffer)
    assert message.fields == {'heart_rate': 70}


def test_units():
    layout = definition(0, RECORD, [
        (5, 4, UINT32),     # distance, scale 100
        (6, 2, UINT16),     # speed, scale 1000
        (13, 1, SINT8),     # temperature
        (3, 1, UINT8),      # heart_rate
    ])
    message = data(0, 'IHbB', 123400, 5000, -5, 140)

    metres = decode(layout, message).fields
    assert metres['distance'] == pytest.approx(1234.0)
    assert metres['speed'] == pytest.approx(5.0)
    assert metres['temperature'] == -5

    options = FitOptions(length_unit='km', speed_unit='km/h',
                         temperature_unit='kelvin')
    converted = decode(layout, message, options=options).fields
    assert converted['distance'] == pytest.approx(metres['distance'] / 1000)
    assert converted['speed'] == pytest.approx(18.0)
    assert converted['temperature'] == pytest.approx(268.15)
    assert converted['heart_rate'] == 140

    options = FitOptions(length_unit='mi', speed_unit='mph',
                         temperature_unit='fahrenheit')
    converted = decode(layout, message, options=options).fields
    assert converted['distance'] == pytest.approx(1234.0 / 1609.344)
    assert converted['speed'] == pytest.approx(5.0 * 3600 / 1609.344)
    assert converted['temperature'] == pytest.approx(23.0)


def test_elapsed_time():
    start = datetime.fromtimestamp(FIT_EPOCH_UNIX + 1000, tz=timezone.utc)
    options = FitOptions(elapsed_record_field=True)

    message = decode(RECORD_DEF, record(1090, 150, 0),
                     options=options, start_time=start)
    assert message.fields['elapsed_time'] == 90

    message = decode(RECORD_DEF, record(1090, 150, 0), start_time=start)
    assert 'elapsed_time' not in message.fields
