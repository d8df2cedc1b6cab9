#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exceptions for this package.

Errors found while validating a file are *collected* by the reader rather
than raised, so most of these are instantiated and handed back to the caller
as values (see `fitio.fit.FitActivity.errors`).

"""


class FitIOError(Exception):
    """Base exception."""
    _default_message = ''

    def __init__(self, message=None):
        super().__init__(message if message else self._default_message)


class InvalidFileError(FitIOError):
    _default_message = "this doesn't look like a fit file!"


# File header problems
# --------------------
class FileTooSmallError(InvalidFileError):
    _default_message = 'file too small to be a fit file'


class FileHeaderSizeError(InvalidFileError):
    _default_message = 'incorrect header size'

    def __init__(self, header_size=None):
        message = None
        if header_size is not None:
            message = 'incorrect header size (%d)' % header_size
        super().__init__(message)


class MissingFileTagError(InvalidFileError):
    _default_message = "missing '.FIT' in header"


class HeaderCRCError(InvalidFileError):
    _default_message = 'header CRC mismatch'


class FileCRCError(InvalidFileError):
    _default_message = 'file CRC mismatch'


# Message stream problems
# -----------------------
class MessageHeaderError(FitIOError):
    _default_message = 'invalid message header'


class TruncatedMessageError(FitIOError):
    _default_message = 'message runs past the end of the file'


class UndefinedLocalTypeError(MessageHeaderError):
    """Not fatal: the message was decoded with the slot 0 definition."""

    def __init__(self, local_message_type=None):
        message = None
        if local_message_type is not None:
            message = ('local message type %d was never defined, '
                       'decoded using local message type 0'
                       % local_message_type)
        super().__init__(message)
