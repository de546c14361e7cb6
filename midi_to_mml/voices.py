"""Polyphonic -> monophonic voice allocation."""

import logging
from collections import defaultdict

from .model import Note

logger = logging.getLogger(__name__)

HIGH_REGISTER = 72  # C5
MELODY_WINDOW = 5  # semitones
BASS_CEILING = 60  # C4


def _is_free(voice: list[Note], note: Note) -> bool:
    return not voice or voice[-1].end <= note.start


def _near_melody(pitch: int, last_melody: int | None) -> bool:
    return last_melody is not None and abs(pitch - last_melody) <= MELODY_WINDOW


def _place_in_melody_lane(voices: list[list[Note]], note: Note) -> bool:
    """Try voice 0, cutting its sounding note short for a higher high note."""
    if not voices:
        voices.append([])
    lane = voices[0]
    if _is_free(lane, note):
        lane.append(note)
        return True
    if note.pitch >= HIGH_REGISTER and lane[-1].pitch < note.pitch:
        lane[-1].truncate(note.start)
        lane.append(note)
        return True
    return False


def _place_first_fit(voices: list[list[Note]], note: Note) -> int:
    for idx, voice in enumerate(voices):
        if _is_free(voice, note):
            voice.append(note)
            return idx
    voices.append([note])
    return len(voices) - 1


def _place(
    voices: list[list[Note]],
    note: Note,
    try_melody_lane: bool,
    last_melody: int | None,
) -> int | None:
    """Place one note and return the updated last melody pitch."""
    if try_melody_lane and _place_in_melody_lane(voices, note):
        return note.pitch
    if _place_first_fit(voices, note) == 0:
        return note.pitch
    return last_melody


def _pick_melody(chord: list[Note], last_melody: int | None) -> Note:
    # chord is sorted high -> low, so the first match is the highest.
    for note in chord:
        if _near_melody(note.pitch, last_melody):
            return note
    return chord[0]


def _chord_priority(chord: list[Note], last_melody: int | None) -> list[Note]:
    chord = sorted(chord, key=lambda n: n.pitch, reverse=True)
    melody = _pick_melody(chord, last_melody)
    bass = chord[-1]
    ordered = [melody]
    if bass.pitch != melody.pitch:
        ordered.append(bass)
    ordered.extend(n for n in chord if n.pitch not in (melody.pitch, bass.pitch))
    return ordered


def allocate_voices(notes: list[Note]) -> list[list[Note]]:
    """Greedy allocator with a preemptible melody lane.

    Notes are processed in groups sharing a start tick. Voice 0 is the melody
    lane: high notes (>= C5) and notes close to the previous melody pitch go
    there first, and a higher high note may cut the lane's sounding note
    short. Everything else goes to the first voice that is free, or to a new
    voice. For chords, the melody note is placed first, then the bass, then
    the inner voices from the top down.
    """
    by_start: dict[int, list[Note]] = defaultdict(list)
    for note in notes:
        by_start[note.start].append(note)

    voices: list[list[Note]] = []
    last_melody: int | None = None
    for start in sorted(by_start):
        group = by_start[start]
        if len(group) == 1:
            note = group[0]
            wants_lane = note.pitch >= HIGH_REGISTER or _near_melody(note.pitch, last_melody)
            last_melody = _place(voices, note, wants_lane, last_melody)
            continue

        for idx, note in enumerate(_chord_priority(group, last_melody)):
            wants_lane = idx == 0 and note.pitch >= HIGH_REGISTER
            last_melody = _place(voices, note, wants_lane, last_melody)

    logger.debug("allocated %d notes into %d voices", len(notes), len(voices))
    return voices


def allocate_voices_by_range(notes: list[Note]) -> list[list[Note]]:
    """Allocate melody (>= C5), mid (C4..B4) and bass (< C4) bands separately."""
    melody = [n for n in notes if n.pitch >= HIGH_REGISTER]
    mid = [n for n in notes if BASS_CEILING <= n.pitch < HIGH_REGISTER]
    bass = [n for n in notes if n.pitch < BASS_CEILING]

    voices: list[list[Note]] = []
    for band in (melody, mid, bass):
        if band:
            voices.extend(allocate_voices(band))
    return voices
