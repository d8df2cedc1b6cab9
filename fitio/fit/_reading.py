#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Drive the `_protocol` module across a whole file and fold the decoded
messages into something useful.

"""
import logging

import pytz

from fitio.fit._binary import add_endian, calculate_crc
from fitio.fit._options import make_options
from fitio.fit._protocol import (
    UNKNOWN, DefinitionMessage, LocalMessageTypes, read_record)
from fitio._types import ActivityData, special_columns
from fitio._util import exceptions


log = logging.getLogger(__name__)

MIN_HEADER_SIZE = 12
HEADER_SIZES = (12, 14)

FILE_TAG = b'.FIT'

FLAT_KEYS = ('sessions', 'laps', 'records', 'events')

COLUMN_SPEC = {     # field names from the profile
    'altitude': special_columns.Altitude,
    'cadence': special_columns.Cadence,
    'distance': special_columns.Distance,
    'heart_rate': special_columns.HeartRate,
    'lap': special_columns.LapCounter,
    'position_lat': special_columns.Latitude,
    'position_long': special_columns.Longitude,
    'power': special_columns.Power,
    'speed': special_columns.Speed,
    'temperature': special_columns.Temperature,
}


class FileHeader:
    """The 12 or 14 byte header at the start of every *.fit file.

    Attributes
    ----------
    header_size : int
    protocol_version, profile_version : float
    data_size : int
        Length of the message stream, excluding header and file CRC.
    data_type : bytes
        Should be ``b'.FIT'``.
    crc : int or None
        Header CRC; only present in 14 byte headers.
    """
    __slots__ = ('header_size', 'protocol_version', 'profile_version',
                 'data_size', 'data_type', 'crc')

    def __init__(self, data):
        self.header_size = data[0]
        self.set_version_info(data[1], add_endian(True, data[2:4]))
        self.data_size = add_endian(True, data[4:8])
        self.data_type = bytes(data[8:12])
        self.crc = (add_endian(True, data[12:14])
                    if self.header_size == 14 and len(data) >= 14 else None)

    def __repr__(self):
        return 'FileHeader(size=%d, data_size=%d)' % (self.header_size,
                                                      self.data_size)

    def set_version_info(self, prot, prof):
        """Decode version info the same way the FIT SDK does."""
        self.protocol_version = float(
            '{:.0f}.{:.0f}'.format(prot >> 4, prot & ((1 << 4) - 1)))
        self.profile_version = float(
            '{:.0f}.{:.0f}'.format(prof // 100, prof % 100))

    @property
    def crc_end(self):
        """Offset of the trailing file CRC."""
        return self.header_size + self.data_size


class FitActivity:
    """Everything decoded from a single file.

    Attributes
    ----------
    header : FileHeader or None
        None if the file was too small to have one.
    errors : list of FitIOError
        Problems found while decoding, in the order they were found.
    crc_errors : list of FitIOError
        CRC mismatches. Kept apart from `errors` as they never stop
        decoding.
    sessions, laps, records, events : list of dict or None
        Flat message lists. None in 'cascade' mode.
    messages : dict
        Every other kind of message, by name. A later message of the same
        kind replaces an earlier one. In 'cascade' and 'both' modes the
        'activity' message owns the session and event lists.
    """
    __slots__ = ('options', 'header', 'errors', 'crc_errors', 'messages',
                 'sessions', 'laps', 'records', 'events')

    def __init__(self, options):
        self.options = options
        self.header = None
        self.errors = []
        self.crc_errors = []
        self.messages = {}
        self.sessions, self.laps, self.records, self.events = (
            [] if options.flat else None for _ in FLAT_KEYS)

    def __repr__(self):
        return 'FitActivity(%s)' % ', '.join(
            '%s=%d' % (key, len(getattr(self, key) or ()))
            for key in FLAT_KEYS)

    def __getitem__(self, name):
        return self.messages[name]

    def __contains__(self, name):
        return name in self.messages

    @property
    def activity(self):
        return self.messages.get('activity')

    @property
    def ok(self):
        return not self.errors

    def to_dict(self):
        """Plain nested dict of everything decoded."""
        out = dict(self.messages)
        if self.options.flat:
            out.update((key, getattr(self, key)) for key in FLAT_KEYS)
        return out


class PendingGroup:
    """Messages buffered until their parent message comes along.

    Records are owned by the next lap, laps by the next session.
    """
    __slots__ = ('key', 'pending')

    def __init__(self, key):
        self.key = key
        self.pending = []

    def add(self, message):
        self.pending.append(message)

    def close(self, parent):
        parent[self.key] = self.pending
        self.pending = []


class ActivityBuilder:
    """Route decoded data messages into a `FitActivity`."""

    def __init__(self, activity):
        self.activity = activity
        self.cascade = activity.options.cascade
        self.records = PendingGroup('records')
        self.laps = PendingGroup('laps')
        # Flat lists are kept even in 'cascade' mode; the activity message
        # needs the full session and event lists at the end.
        self.sessions = []
        self.events = []

    def add(self, name, fields):
        activity = self.activity

        if name == 'lap':
            if self.cascade:
                self.records.close(fields)
                self.laps.add(fields)
            self._append('laps', fields)
        elif name == 'session':
            if self.cascade:
                self.laps.close(fields)
            self.sessions.append(fields)
        elif name == 'event':
            self.events.append(fields)
        elif name == 'record':
            if self.cascade:
                self.records.add(fields)
            self._append('records', fields)
        elif name != UNKNOWN:
            activity.messages[name] = fields

    def finish(self):
        activity = self.activity

        if self.cascade:
            if 'activity' not in activity.messages:
                log.warning('no activity message, creating an empty one')
            top = activity.messages.setdefault('activity', {})
            top['sessions'] = self.sessions
            top['events'] = self.events

        if activity.options.flat:
            activity.sessions = self.sessions
            activity.events = self.events

        return activity

    def _append(self, key, fields):
        flat = getattr(self.activity, key)
        if flat is not None:
            flat.append(fields)


class FitReader:
    """A single decoding pass over one file.

    Owns the local message type table and the first record timestamp, so a
    reader must never be shared between files.
    """

    def __init__(self, content, activity):
        self.data = bytes(content)
        self.activity = activity
        self.options = activity.options
        self.local_types = LocalMessageTypes()
        self.start_time = None

    def report(self, error):
        log.warning('%s: %s', type(error).__name__, error)
        self.activity.errors.append(error)

    def check_header(self):
        """Validate the file header.

        Returns
        -------
        bool
            Whether decoding should go on.
        """
        data = self.data

        if len(data) < MIN_HEADER_SIZE:
            self.report(exceptions.FileTooSmallError())
            return False   # nothing to go on, even if forced

        header = self.activity.header = FileHeader(data)

        for error in gen_header_errors(header):
            self.report(error)
            if not self.options.force:
                return False

        # TODO: fix the CRC checks, they don't agree with real device output
        for error in gen_crc_errors(data, header):
            log.debug('%s: %s (ignored)', type(error).__name__, error)
            self.activity.crc_errors.append(error)

        return True

    def __iter__(self):
        """Yield data messages, in file order."""
        if not self.check_header():
            return

        header = self.activity.header
        cursor, end = header.header_size, header.crc_end

        while cursor < end:
            try:
                cursor, message = read_record(
                    self.data, self.local_types, cursor,
                    options=self.options, start_time=self.start_time)
            except (exceptions.MessageHeaderError,
                    exceptions.TruncatedMessageError) as e:
                self.report(e)   # can't trust anything after this
                return

            if isinstance(message, DefinitionMessage):
                continue

            if message.fallback:
                self.report(exceptions.UndefinedLocalTypeError(
                    message.header.local_message_type))

            if message.name == 'record' and self.start_time is None:
                self.start_time = message.fields.get('timestamp')
                message.fields['elapsed_time'] = 0

            yield message


def gen_header_errors(header):
    if header.header_size not in HEADER_SIZES:
        yield exceptions.FileHeaderSizeError(header.header_size)

    if header.data_type != FILE_TAG:
        yield exceptions.MissingFileTagError()


def gen_crc_errors(data, header):
    if header.crc:  # zero means the header CRC wasn't computed
        if header.crc != calculate_crc(data, 0, 12):
            yield exceptions.HeaderCRCError()

    crc_end = header.crc_end
    if crc_end + 2 > len(data):
        yield exceptions.FileCRCError('file CRC is missing')
        return

    start = 0 if header.header_size == 12 else header.header_size
    if add_endian(True, data[crc_end:crc_end + 2]) != calculate_crc(
            data, start, crc_end):
        yield exceptions.FileCRCError()


def parse(content, options=None, **kwargs):
    """Decode the contents of a *.fit file.

    Parameters
    ----------
    content : bytes-like
        The whole file.
    options : FitOptions, optional
    **kwargs
        Any `FitOptions` field, overriding `options`.

    Returns
    -------
    FitActivity
        Check the `errors` attribute; with ``force=True`` (the default) the
        activity holds whatever could be decoded regardless.
    """
    activity = FitActivity(make_options(options, **kwargs))
    builder = ActivityBuilder(activity)

    for message in FitReader(content, activity):
        builder.add(message.name, message.fields)

    return builder.finish()


def gen_messages(content, options=None, **kwargs):
    """Generator function for iterating over decoded data messages.

    Yields
    ------
    (name, fields) : tuple
        Message name and a dict of decoded field values.

    Raises
    ------
    FitIOError
        The first problem found in the file, once the messages run out, if
        ``force=False``.
    """
    activity = FitActivity(make_options(options, **kwargs))

    for message in FitReader(content, activity):
        yield message.name, message.fields

    if activity.errors and not activity.options.force:
        raise activity.errors[0]


def gen_records(file_path, *, force=True):
    """Generator function for iterating over individual file records.

    "Records" are dictionary objects representing a single "sample" of data;
    i.e. a row in a tabular representation. Note this can be passed to
    the `from_records` constructor method of `pandas.DataFrame`s.
    """
    with open(file_path, 'rb') as f:
        content = f.read()

    lap = 1
    for name, message in gen_messages(content, force=force):
        if name == 'lap':
            lap += 1
        elif name == 'record':
            message = dict(message, lap=lap)
            message.pop('elapsed_time', None)
            yield message


def read_and_format(file_path, *, tz_str=None, force=True):
    data = ActivityData(list(gen_records(file_path, force=force)))

    if 'timestamp' in data:
        timestamps = data.pop('timestamp')  # UTC

        if tz_str is not None:
            timestamps = timestamps.dt.tz_convert(pytz.timezone(tz_str))
        tstart = timestamps.iloc[0]

        timeoffsets = timestamps - tstart
        data._finish_up(column_spec=COLUMN_SPEC,
                        start=tstart, timeoffsets=timeoffsets)
    else:
        data._finish_up(column_spec=COLUMN_SPEC)

    return data
