#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import itertools
import struct

import pytest

from fitio.fit._binary import add_endian, as_signed, calculate_crc, take


def test_add_endian_two_bytes():
    for lo, hi in itertools.product((0, 1, 0x7F, 0x80, 0xFF), repeat=2):
        assert add_endian(True, [lo, hi]) == lo + hi * 256
        assert add_endian(False, [hi, lo]) == lo + hi * 256


def test_add_endian_agrees_with_struct():
    raw = bytes([0x12, 0x34, 0x56, 0x78])
    assert add_endian(True, raw) == struct.unpack('<I', raw)[0]
    assert add_endian(False, raw) == struct.unpack('>I', raw)[0]
    assert add_endian(False, raw[:2]) == 0x1234


def test_add_endian_leaves_input_alone():
    raw = [1, 2, 3]
    add_endian(False, raw)
    assert raw == [1, 2, 3]


def test_add_endian_sizes():
    assert add_endian(True, [0xAB]) == 0xAB
    assert add_endian(True, [0xFF] * 4) == 0xFFFFFFFF
    with pytest.raises(ValueError):
        add_endian(True, [])
    with pytest.raises(ValueError):
        add_endian(True, [0] * 5)


def test_as_signed():
    assert as_signed(0xFFFFFFFF, 4) == -1
    assert as_signed(0x80000000, 4) == -2**31
    assert as_signed(0x7FFFFFFF, 4) == 2**31 - 1
    assert as_signed(0xFFFE, 2) == -2
    assert as_signed(0x80, 1) == -128
    assert as_signed(5, 1) == 5


def test_crc_check_value():
    # CRC-16/ARC, which is what the FIT table implements
    assert calculate_crc(b'123456789', 0, 9) == 0xBB3D


def test_crc_residue():
    data = b'some bytes of a fit file'
    crc = calculate_crc(data, 0, len(data))
    assert calculate_crc(data + struct.pack('<H', crc), 0, len(data) + 2) == 0


def test_crc_range():
    data = b'\xAA\x01\x02\x03\xBB'
    assert calculate_crc(data, 1, 4) == calculate_crc(b'\x01\x02\x03', 0, 3)
    assert calculate_crc(data, 2, 2) == 0


def test_crc_order_sensitive():
    assert calculate_crc(b'\x01\x02', 0, 2) != calculate_crc(b'\x02\x01', 0, 2)
    assert calculate_crc(bytes(8), 0, 8) == 0    # the fixed point


def test_take():
    data = b'\x00\x01\x02\x03'
    assert take(data, 1, 2) == b'\x01\x02'
    assert take(data, 4, 0) == b''
    with pytest.raises(IndexError):
        take(data, 3, 2)
