"""Character-budget search and per-voice results."""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass

from .mml import generate_mml
from .model import GRID_SIZE, Note, TempoChange, max_end_tick, ticks_to_seconds
from .voices import allocate_voices, allocate_voices_by_range

logger = logging.getLogger(__name__)

MIN_START_OCTAVE = 2
MAX_START_OCTAVE = 6


@dataclass
class VoiceResult:
    name: str
    content: str
    char_count: int
    note_count: int
    duration_seconds: float
    truncated: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _clamp_int(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


def start_octave_for(voice: list[Note]) -> int:
    return _clamp_int(voice[0].octave, MIN_START_OCTAVE, MAX_START_OCTAVE)


def crop_voice(voice: list[Note], end_tick: int) -> list[Note]:
    return [n for n in voice if n.start < end_tick]


def encode_voice(
    voice: list[Note],
    bpm: int,
    compress: bool,
    tempo_changes: list[TempoChange],
) -> str:
    if not voice:
        return ""
    return generate_mml(voice, bpm, start_octave_for(voice), compress, tempo_changes)


def _fits(
    voices: list[list[Note]],
    end_tick: int | None,
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
) -> bool:
    for voice in voices:
        cropped = voice if end_tick is None else crop_voice(voice, end_tick)
        if not cropped:
            continue
        if len(encode_voice(cropped, bpm, compress, tempo_changes)) > char_limit:
            return False
    return True


def find_best_end_tick(
    voices: list[list[Note]],
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
) -> int:
    """Largest grid tick T such that every voice cropped to start < T fits.

    Returns the overall end tick when nothing needs cropping, and 0 when not
    even the first grid step fits.
    """
    max_end = max_end_tick(voices)
    if _fits(voices, None, bpm, char_limit, compress, tempo_changes):
        return max_end

    # Search over grid steps so every candidate is grid aligned.
    left, right, best = 1, max_end // GRID_SIZE, 0
    while left <= right:
        mid = (left + right) // 2
        if _fits(voices, mid * GRID_SIZE, bpm, char_limit, compress, tempo_changes):
            best = mid * GRID_SIZE
            left = mid + 1
        else:
            right = mid - 1
    logger.debug("budget search: limit=%d max_end=%d best=%d", char_limit, max_end, best)
    return best


def _pitch_names(count: int) -> list[str]:
    return ["melody" if idx == 0 else f"harmony-{idx}" for idx in range(count)]


def build_results(
    voices: list[list[Note]],
    names: list[str],
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
    max_voices: int | None = None,
) -> list[VoiceResult]:
    """Crop all voices at the best end tick and encode them."""
    kept = [(voice, name) for voice, name in zip(voices, names) if voice]
    if max_voices is not None and len(kept) > max_voices:
        logger.warning("keeping %d of %d voices", max_voices, len(kept))
        kept = kept[:max_voices]
    voices = [voice for voice, _ in kept]
    if not voices or max_end_tick(voices) == 0:
        return []

    best = find_best_end_tick(voices, bpm, char_limit, compress, tempo_changes)
    truncated = best < max_end_tick(voices)
    duration = ticks_to_seconds(best, bpm)
    results = []
    for voice, name in kept:
        final = crop_voice(voice, best)
        if not final:
            continue
        content = encode_voice(final, bpm, compress, tempo_changes)
        results.append(
            VoiceResult(
                name=name,
                content=content,
                char_count=len(content),
                note_count=len(final),
                duration_seconds=duration,
                truncated=truncated,
            )
        )
    return results


def convert_by_pitch(
    notes: list[Note],
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
    max_voices: int | None = None,
) -> list[VoiceResult]:
    voices = [v for v in allocate_voices(notes) if v]
    return build_results(
        voices, _pitch_names(len(voices)), bpm, char_limit, compress, tempo_changes, max_voices
    )


def convert_by_range(
    notes: list[Note],
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
    max_voices: int | None = None,
) -> list[VoiceResult]:
    voices = [v for v in allocate_voices_by_range(notes) if v]
    return build_results(
        voices, _pitch_names(len(voices)), bpm, char_limit, compress, tempo_changes, max_voices
    )


def convert_by_instrument(
    notes: list[Note],
    bpm: int,
    char_limit: int,
    compress: bool,
    tempo_changes: list[TempoChange],
    max_voices: int | None = None,
) -> list[VoiceResult]:
    groups: dict[str, list[Note]] = defaultdict(list)
    for note in notes:
        groups[note.instrument].append(note)

    voices: list[list[Note]] = []
    names: list[str] = []
    for instrument in sorted(groups):
        inst_voices = [v for v in allocate_voices(groups[instrument]) if v]
        voices.extend(inst_voices)
        names.extend(f"{name} ({instrument})" for name in _pitch_names(len(inst_voices)))
    return build_results(voices, names, bpm, char_limit, compress, tempo_changes, max_voices)
