"""Request/result entry point for a whole MIDI -> MML conversion."""

import logging
from dataclasses import dataclass, field
from os import PathLike
from typing import Any, Mapping

from .budget import VoiceResult, convert_by_instrument, convert_by_pitch, convert_by_range
from .config import ConversionOptions
from .errors import InvalidOptionsError, MmlConversionError
from .extract import extract_midi_notes
from .model import ticks_to_seconds

logger = logging.getLogger(__name__)

_STRATEGIES = {
    "normal": convert_by_pitch,
    "instrument": convert_by_instrument,
    "chord": convert_by_range,
}


@dataclass
class ConversionResult:
    success: bool
    voices: list[VoiceResult] = field(default_factory=list)
    error: str | None = None
    bpm: int = 0
    total_notes: int = 0
    original_duration_seconds: float = 0.0

    @classmethod
    def failure(cls, message: str) -> "ConversionResult":
        return cls(success=False, error=message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "voices": [v.to_dict() for v in self.voices],
            "error": self.error,
            "bpm": self.bpm,
            "total_notes": self.total_notes,
            "original_duration_seconds": self.original_duration_seconds,
        }


def _coerce_options(options: ConversionOptions | Mapping[str, Any] | None) -> ConversionOptions:
    if options is None:
        return ConversionOptions()
    if isinstance(options, ConversionOptions):
        return options
    if not isinstance(options, Mapping):
        raise InvalidOptionsError(f"options must be a mapping, got {type(options).__name__}")
    return ConversionOptions.from_dict(options)


def _convert(midi_data: bytes | str | PathLike, options: ConversionOptions) -> ConversionResult:
    extracted = extract_midi_notes(midi_data)
    notes = extracted.notes
    max_end = max((n.end for n in notes), default=0)

    strategy = _STRATEGIES[options.mode]
    voices = strategy(
        notes,
        extracted.bpm,
        options.char_limit,
        options.compress_mode,
        extracted.tempo_changes,
        options.max_voices,
    )
    logger.debug("mode=%s produced %d voices from %d notes", options.mode, len(voices), len(notes))
    return ConversionResult(
        success=True,
        voices=voices,
        bpm=extracted.bpm,
        total_notes=len(notes),
        original_duration_seconds=ticks_to_seconds(max_end, extracted.bpm) if notes else 0.0,
    )


def convert_midi(
    midi_data: bytes,
    options: ConversionOptions | Mapping[str, Any] | None = None,
) -> ConversionResult:
    """Convert raw MIDI bytes into per-voice MML.

    Conversion failures (unreadable MIDI, SMPTE timing, bad options) come
    back as a result with success=False and an error message; no partial
    voice data is returned.
    """
    try:
        return _convert(midi_data, _coerce_options(options))
    except MmlConversionError as exc:
        logger.debug("conversion failed: %s", exc)
        return ConversionResult.failure(str(exc))


def convert_midi_file(
    path: str | PathLike,
    options: ConversionOptions | Mapping[str, Any] | None = None,
) -> ConversionResult:
    with open(path, "rb") as f:
        return convert_midi(f.read(), options)
