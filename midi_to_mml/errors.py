"""Exceptions raised by the conversion pipeline."""


class MmlConversionError(Exception):
    """Base class for failures reported back to the caller as a failed result."""


class MidiParseError(MmlConversionError):
    pass


class UnsupportedTimingFormat(MmlConversionError):
    pass


class InvalidOptionsError(MmlConversionError):
    pass
