"""MIDI parsing and note extraction.

Reads a Standard MIDI File with mido and turns its note and tempo events into
grid-snapped Note and TempoChange records at the canonical resolution (TPB).
"""

import io
import logging
import struct
from dataclasses import dataclass, field
from os import PathLike

import mido
import pretty_midi

from .errors import MidiParseError, UnsupportedTimingFormat
from .model import (
    DEFAULT_BPM,
    GRID_SIZE,
    PERCUSSION_CHANNEL,
    TPB,
    Note,
    TempoChange,
    snap_to_grid,
)

logger = logging.getLogger(__name__)

_PARSE_ERRORS = (OSError, EOFError, ValueError, KeyError, IndexError, struct.error)


@dataclass
class ExtractedMidi:
    notes: list[Note]
    bpm: int
    tempo_changes: list[TempoChange]
    stats: dict = field(default_factory=dict)


def load_midi(source: bytes | bytearray | str | PathLike) -> mido.MidiFile:
    """Parse raw bytes (or a file path) into a mido.MidiFile.

    Raises MidiParseError if the container cannot be read and
    UnsupportedTimingFormat if it uses SMPTE timing.
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        with open(source, "rb") as f:
            data = f.read()
    try:
        mid = mido.MidiFile(file=io.BytesIO(data))
    except _PARSE_ERRORS as exc:
        raise MidiParseError(f"MIDI parse error: {exc or type(exc).__name__}") from exc
    _check_timing(mid.ticks_per_beat)
    return mid


def _check_timing(tpb: int) -> None:
    # mido reads the division word as signed, so SMPTE shows up as negative.
    if tpb <= 0 or tpb & 0x8000:
        raise UnsupportedTimingFormat("SMPTE timing is not supported (metrical MIDI only)")


def program_label(program: int) -> str:
    return pretty_midi.program_to_instrument_name(int(program))


def _rescale(tick: int, ratio: float) -> int:
    return int(tick * ratio + 0.5)


def _make_note(
    pitch: int,
    start_tick: int,
    end_tick: int,
    velocity: int,
    program: int,
    ratio: float,
) -> Note:
    duration = max(0, end_tick - start_tick)
    start_c = _rescale(start_tick, ratio)
    end_c = start_c + _rescale(duration, ratio)
    start = snap_to_grid(start_c)
    length = max(snap_to_grid(end_c) - start, GRID_SIZE)
    return Note(
        pitch=pitch,
        start=start,
        end=start + length,
        velocity=velocity,
        instrument=program_label(program),
    )


def _extract_track_notes(
    track: mido.MidiTrack, ratio: float, stats: dict
) -> list[Note]:
    notes: list[Note] = []
    # (channel, note) -> (start_tick, velocity)
    active: dict[tuple[int, int], tuple[int, int]] = {}
    programs: dict[int, int] = {}
    abs_tick = 0

    for msg in track:
        abs_tick += msg.time
        if msg.type == "program_change":
            programs[msg.channel] = int(msg.program)
            stats["program_change_events"] += 1
            continue
        if msg.type not in ("note_on", "note_off"):
            continue

        key = (msg.channel, msg.note)
        if msg.type == "note_on" and msg.velocity > 0:
            if msg.channel == PERCUSSION_CHANNEL:
                stats["percussion_notes"] += 1
                continue
            # Re-triggering a sounding key restarts it.
            active[key] = (abs_tick, msg.velocity)
            continue

        if key not in active:
            continue
        start_tick, velocity = active.pop(key)
        notes.append(
            _make_note(
                msg.note,
                start_tick,
                abs_tick,
                velocity,
                programs.get(msg.channel, 0),
                ratio,
            )
        )

    stats["unterminated_notes"] += len(active)
    return notes


def _get_tempo_events(mid: mido.MidiFile) -> list[tuple[int, int]]:
    events: list[tuple[int, int]] = []
    for track in mid.tracks:
        tick = 0
        for msg in track:
            tick += msg.time
            if msg.type == "set_tempo" and msg.tempo > 0:
                events.append((tick, int(mido.tempo2bpm(msg.tempo) + 0.5)))
    events.sort(key=lambda x: x[0])
    return _dedup_by_tick(events)


def _dedup_by_tick(events: list[tuple[int, int]]) -> list[tuple[int, int]]:
    out: list[tuple[int, int]] = []
    for tick, bpm in events:
        if out and out[-1][0] == tick:
            continue
        out.append((tick, bpm))
    return out


def _dedup_notes(notes: list[Note]) -> list[Note]:
    """Collapse notes sharing (start, pitch), keeping the loudest one."""
    out: list[Note] = []
    i = 0
    while i < len(notes):
        j = i + 1
        while j < len(notes) and notes[j].start == notes[i].start and notes[j].pitch == notes[i].pitch:
            j += 1
        group = notes[i:j]
        # Later instance wins a velocity tie.
        out.append(max(reversed(group), key=lambda n: n.velocity))
        i = j
    return out


def extract_notes(mid: mido.MidiFile) -> ExtractedMidi:
    tpb = mid.ticks_per_beat
    _check_timing(tpb)
    ratio = TPB / tpb

    stats = {
        "ticks_per_beat": tpb,
        "midi_type": mid.type,
        "track_count": len(mid.tracks),
        "raw_note_count": 0,
        "duplicate_notes": 0,
        "percussion_notes": 0,
        "unterminated_notes": 0,
        "program_change_events": 0,
        "tempo_change_count": 0,
    }

    notes: list[Note] = []
    for track in mid.tracks:
        notes.extend(_extract_track_notes(track, ratio, stats))
    stats["raw_note_count"] = len(notes)

    notes.sort(key=lambda n: (n.start, -n.pitch))
    notes = _dedup_notes(notes)
    stats["duplicate_notes"] = stats["raw_note_count"] - len(notes)

    raw_tempo = _get_tempo_events(mid)
    bpm = raw_tempo[0][1] if raw_tempo else DEFAULT_BPM
    snapped = _dedup_by_tick([(snap_to_grid(_rescale(tick, ratio)), t_bpm) for tick, t_bpm in raw_tempo])
    if not snapped:
        snapped = [(0, DEFAULT_BPM)]
    tempo_changes = [TempoChange(tick=tick, bpm=t_bpm) for tick, t_bpm in snapped]
    stats["tempo_change_count"] = len(tempo_changes) - 1

    if stats["unterminated_notes"]:
        logger.warning("dropped %d notes with no note-off", stats["unterminated_notes"])
    logger.debug(
        "extracted %d notes (tpb=%d, bpm=%d, tempo changes=%d, duplicates=%d)",
        len(notes),
        tpb,
        bpm,
        stats["tempo_change_count"],
        stats["duplicate_notes"],
    )
    return ExtractedMidi(notes=notes, bpm=bpm, tempo_changes=tempo_changes, stats=stats)


def extract_midi_notes(source: bytes | bytearray | str | PathLike) -> ExtractedMidi:
    return extract_notes(load_midi(source))
