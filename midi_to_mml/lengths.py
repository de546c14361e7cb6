"""Tick duration -> MML length tokens.

Two length tables exist: the accuracy table includes dotted lengths, the
compress table only plain ones. Which tokens a duration turns into depends on
the octave it is played in: tie chains keep the rhythm exact but sound choppy
in high registers, so ties are limited from octave 5 and dropped from
octave 6.
"""

ACCURACY_LENGTHS = {
    2304: "1.",
    1536: "1",
    1152: "2.",
    768: "2",
    576: "4.",
    384: "4",
    288: "8.",
    192: "8",
    144: "16.",
    96: "16",
    72: "32.",
    48: "32",
    36: "64.",
    24: "64",
}

COMPRESS_LENGTHS = {
    1536: "1",
    768: "2",
    384: "4",
    192: "8",
    96: "16",
    48: "32",
    24: "64",
}

FALLBACK_LENGTH = ("16", 96)
MAX_TIES_OCTAVE_5 = 2


def length_table(compress: bool) -> dict[int, str]:
    return COMPRESS_LENGTHS if compress else ACCURACY_LENGTHS


def closest_length(ticks: int, lengths: dict[int, str]) -> list[tuple[str, int]]:
    # Ties go to the shorter length; the encoder's rests catch up later.
    best = min(sorted(lengths), key=lambda t: abs(t - ticks))
    return [(lengths[best], best)]


def tie_combination(ticks: int, lengths: dict[int, str]) -> list[tuple[str, int]]:
    """Greedy decomposition into the largest lengths that fit."""
    out: list[tuple[str, int]] = []
    remaining = ticks
    for length in sorted(lengths, reverse=True):
        while remaining >= length:
            out.append((lengths[length], length))
            remaining -= length
    if not out:
        return [FALLBACK_LENGTH]
    return out


def find_best_length(ticks: int, octave: int, compress: bool) -> list[tuple[str, int]]:
    lengths = length_table(compress)
    if ticks in lengths:
        return [(lengths[ticks], ticks)]
    if compress:
        return closest_length(ticks, lengths)
    if octave <= 4:
        return tie_combination(ticks, lengths)
    if octave == 5:
        ties = tie_combination(ticks, lengths)
        if len(ties) <= MAX_TIES_OCTAVE_5:
            return ties
    return closest_length(ticks, lengths)
