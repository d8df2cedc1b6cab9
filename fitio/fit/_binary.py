#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Low level byte handling: integer assembly and the FIT CRC.

"""

# From the FIT SDK: CRC-16 remainders for each 4-bit nibble.
CRC_TABLE = (
    0x0000, 0xCC01, 0xD801, 0x1400, 0xF001, 0x3C00, 0x2800, 0xE401,
    0xA001, 0x6C00, 0x7800, 0xB401, 0x5000, 0x9C01, 0x8801, 0x4400,
)


def add_endian(little_endian, data):
    """Assemble an unsigned integer from 1-4 bytes.

    Parameters
    ----------
    little_endian : bool
        Byte order of `data`. Big endian data is reversed first.
    data : sequence of int
        The raw bytes, in the order they appear in the file.

    Returns
    -------
    int
        Unsigned value, at most 32 bits wide.
    """
    n = len(data)
    if not 1 <= n <= 4:
        raise ValueError('can only assemble 1-4 bytes, got %d' % n)

    ordered = data if little_endian else reversed(data)

    result = 0
    for i, byte in enumerate(ordered):
        result += byte << (8 * i)
    return result


def as_signed(value, n_bytes):
    """Reinterpret an unsigned bit pattern as two's complement."""
    bits = 8 * n_bytes
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


def calculate_crc(data, start, end, crc=0):
    """FIT CRC-16 of ``data[start:end]``.

    Each byte is fed through the table a nibble at a time, low nibble first.
    """
    for byte in data[start:end]:
        tmp = CRC_TABLE[crc & 0xF]
        crc = (crc >> 4) & 0x0FFF
        crc = crc ^ tmp ^ CRC_TABLE[byte & 0xF]

        tmp = CRC_TABLE[crc & 0xF]
        crc = (crc >> 4) & 0x0FFF
        crc = crc ^ tmp ^ CRC_TABLE[(byte >> 4) & 0xF]

    return crc


def take(data, start, size):
    """Slice ``size`` bytes from ``start``, refusing to read past the end."""
    end = start + size
    if start < 0 or end > len(data):
        raise IndexError('cannot read bytes %d-%d of a %d byte buffer'
                         % (start, end, len(data)))
    return data[start:end]
