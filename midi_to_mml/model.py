"""Note and tempo records shared by every conversion stage."""

from dataclasses import dataclass

TPB = 384  # canonical ticks per quarter note
GRID_SIZE = 24  # 1/64 note at TPB
DEFAULT_BPM = 120
PERCUSSION_CHANNEL = 9
VOLUME = 15


@dataclass
class Note:
    pitch: int
    start: int
    end: int
    velocity: int = 100
    instrument: str = ""

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def octave(self) -> int:
        return self.pitch // 12 - 1

    def truncate(self, tick: int) -> None:
        # Only ever shortens.
        if self.start <= tick < self.end:
            self.end = tick


@dataclass(frozen=True)
class TempoChange:
    tick: int
    bpm: int


def snap_to_grid(tick: float, grid: int = GRID_SIZE) -> int:
    return int((tick + grid / 2) // grid) * grid


def ticks_to_seconds(ticks: int, bpm: int) -> float:
    return ticks / TPB / bpm * 60.0


def max_end_tick(voices: list[list[Note]]) -> int:
    return max((n.end for voice in voices for n in voice), default=0)
