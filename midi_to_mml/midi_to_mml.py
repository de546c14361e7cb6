#!/usr/bin/env python
"""MIDI -> MML converter (per-voice character budget).

Stage 1: MIDI parsing + note extraction on a 1/64 grid.
Stage 2: Voice allocation (melody lane + first-fit).
Stage 3: MML encoding, cropped to fit the character limit.
"""

import sys
import argparse
import json
import logging
import os

from .config import DEFAULT_CHAR_LIMIT, MODES, ConversionOptions, load_options
from .convert import ConversionResult, convert_midi_file
from .errors import InvalidOptionsError

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _init_logging(verbose: bool) -> None:
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MIDI -> MML with a per-voice character limit")
    parser.add_argument("input_mid")
    parser.add_argument("output", nargs="?", default=None, help="Output file (default: stdout)")
    parser.add_argument(
        "--options",
        type=str,
        default=None,
        help="JSON file with mode/char_limit/compress_mode/max_voices (flags override it)",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default=None,
        help="Voice grouping: normal (by pitch), instrument, chord (by pitch band)",
    )
    parser.add_argument(
        "--char-limit",
        type=int,
        default=None,
        help=f"Max characters per voice (default {DEFAULT_CHAR_LIMIT})",
    )
    parser.add_argument(
        "--compress",
        dest="compress_mode",
        action="store_true",
        default=None,
        help="Favor short output: no dotted lengths, no ties",
    )
    parser.add_argument(
        "--accurate",
        dest="compress_mode",
        action="store_false",
        help="Favor timing accuracy: dotted lengths and ties (default)",
    )
    parser.add_argument("--max-voices", type=int, default=None, help="Keep at most this many voices")
    parser.add_argument("--json", action="store_true", default=False, help="Emit the result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv[1:])


def _build_options(args: argparse.Namespace) -> ConversionOptions:
    base = load_options(args.options) if args.options else ConversionOptions()
    raw = base.to_dict()
    if args.mode is not None:
        raw["mode"] = args.mode
    if args.char_limit is not None:
        raw["char_limit"] = args.char_limit
    if args.compress_mode is not None:
        raw["compress_mode"] = args.compress_mode
    if args.max_voices is not None:
        raw["max_voices"] = args.max_voices
    return ConversionOptions.from_dict(raw)


def _format_summary(result: ConversionResult, options: ConversionOptions, comment: str) -> str:
    lines = [
        f"{comment} MML summary: mode={options.mode}, char_limit={options.char_limit}, "
        f"compress={options.compress_mode}",
        f"{comment} Tempo: {result.bpm} BPM, notes={result.total_notes}, "
        f"duration={result.original_duration_seconds:.3f}s",
    ]
    for voice in result.voices:
        lines.append(
            f"{comment} {voice.name}: chars={voice.char_count} notes={voice.note_count} "
            f"duration={voice.duration_seconds:.3f}s"
        )
    return "\n".join(lines) + "\n"


def _format_voices(result: ConversionResult) -> str:
    return "".join(f"[{voice.name}]\n{voice.content}\n" for voice in result.voices)


def _collect_warnings(result: ConversionResult) -> list[str]:
    warnings = []
    if not result.voices:
        warnings.append("no voices produced (no melodic notes, or char limit below the MML header)")
        return warnings
    cropped = [v for v in result.voices if v.truncated]
    if cropped:
        warnings.append(
            f"char limit reached: output cut at {cropped[0].duration_seconds:.3f}s "
            f"of {result.original_duration_seconds:.3f}s"
        )
    return warnings


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv if argv is None else argv)
    _init_logging(args.verbose)

    if not os.path.exists(args.input_mid):
        print(f"Error: MIDI file '{args.input_mid}' not found")
        return 2
    try:
        options = _build_options(args)
    except (InvalidOptionsError, OSError) as exc:
        print(f"Error: {exc}")
        return 2

    try:
        result = convert_midi_file(args.input_mid, options)
    except OSError as exc:
        print(f"Error: cannot read '{args.input_mid}': {exc}")
        return 2
    if not result.success:
        print(f"Error: {result.error}")
        return 2

    warnings = _collect_warnings(result)
    if args.json:
        output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n"
    else:
        comment = ";"
        summary = _format_summary(result, options, comment)
        if warnings:
            summary += f"{comment} Warnings:\n" + "\n".join(f"{comment} - {w}" for w in warnings) + "\n"
        output = summary + "\n" + _format_voices(result)

    for w in warnings:
        print(f"Warning: {w}", file=sys.stderr)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
    else:
        sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
