"""midi_to_mml - polyphonic MIDI to character-limited MML voices."""

__version__ = "0.1.0"

from .config import ConversionOptions, load_options
from .convert import ConversionResult, convert_midi, convert_midi_file
from .errors import (
    InvalidOptionsError,
    MidiParseError,
    MmlConversionError,
    UnsupportedTimingFormat,
)

__all__ = [
    "ConversionOptions",
    "ConversionResult",
    "convert_midi",
    "convert_midi_file",
    "load_options",
    "MmlConversionError",
    "MidiParseError",
    "UnsupportedTimingFormat",
    "InvalidOptionsError",
    "__version__",
]
