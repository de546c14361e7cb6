"""MML text encoding for a single voice."""

from collections import Counter

from .lengths import find_best_length
from .model import VOLUME, Note, TempoChange

NOTE_NAMES = ["C", "C+", "D", "D+", "E", "F", "F+", "G", "G+", "A", "A+", "B"]
PREFERRED_DEFAULTS = ("8", "16", "4")
REST_OCTAVE = 4


def note_name(pitch: int) -> tuple[str, int]:
    return NOTE_NAMES[pitch % 12], pitch // 12 - 1


def default_length(notes: list[Note], compress: bool) -> str:
    counts: Counter[str] = Counter()
    for note in notes:
        first, _ = find_best_length(note.duration, note.octave, compress)[0]
        counts[first.rstrip(".")] += 1
    for preferred in PREFERRED_DEFAULTS:
        if preferred in counts:
            return preferred
    if counts:
        return counts.most_common(1)[0][0]
    return PREFERRED_DEFAULTS[0]


def _token(symbol: str, length: str, default: str) -> str:
    return symbol if length == default else f"{symbol}{length}"


def _rests(gap: int, default: str, compress: bool) -> tuple[list[str], int]:
    out = []
    advanced = 0
    for length, ticks in find_best_length(gap, REST_OCTAVE, compress):
        out.append(_token("R", length, default))
        advanced += ticks
    return out, advanced


def generate_mml(
    notes: list[Note],
    bpm: int,
    start_octave: int,
    compress: bool,
    tempo_changes: list[TempoChange] | None = None,
) -> str:
    """Encode one voice as an MML string.

    `notes` must be start-ordered and non-overlapping. The first tempo change
    is the one already written in the header; later ones are interleaved at
    their tick, padded with rests.
    """
    if not notes:
        return ""
    tempo_changes = tempo_changes or []

    default = default_length(notes, compress)
    parts = [f"T{bpm}", f"V{VOLUME}", f"O{start_octave}", f"L{default}"]
    octave = start_octave
    tick = 0
    tempo_idx = 1

    for note in notes:
        while tempo_idx < len(tempo_changes) and tempo_changes[tempo_idx].tick <= note.start:
            change = tempo_changes[tempo_idx]
            # A change that fell inside a sounding note is written late.
            if change.tick > tick:
                rests, advanced = _rests(change.tick - tick, default, compress)
                parts.extend(rests)
                tick += advanced
            parts.append(f"T{change.bpm}")
            tempo_idx += 1

        if note.start > tick:
            rests, advanced = _rests(note.start - tick, default, compress)
            parts.extend(rests)
            tick += advanced

        name, note_octave = note_name(note.pitch)
        if note_octave != octave:
            parts.append(f"O{note_octave}")
            octave = note_octave

        for idx, (length, ticks) in enumerate(find_best_length(note.duration, note_octave, compress)):
            if idx:
                parts.append("&")
            parts.append(_token(name, length, default))
            tick += ticks

    return "".join(parts)
