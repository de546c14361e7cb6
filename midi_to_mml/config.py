"""Conversion options and their JSON loader."""

import json
from dataclasses import dataclass, fields
from typing import Any, Mapping

from .errors import InvalidOptionsError

MODES = ("normal", "instrument", "chord")
DEFAULT_MODE = "normal"
DEFAULT_CHAR_LIMIT = 2400


@dataclass
class ConversionOptions:
    mode: str = DEFAULT_MODE
    char_limit: int = DEFAULT_CHAR_LIMIT
    compress_mode: bool = False
    max_voices: int | None = None

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise InvalidOptionsError(
                f"unknown mode {self.mode!r} (expected one of: {', '.join(MODES)})"
            )
        if isinstance(self.char_limit, bool) or not isinstance(self.char_limit, int):
            raise InvalidOptionsError(f"char_limit must be an integer, got {self.char_limit!r}")
        if self.char_limit <= 0:
            raise InvalidOptionsError("char_limit must be > 0")
        if self.max_voices is not None:
            if isinstance(self.max_voices, bool) or not isinstance(self.max_voices, int):
                raise InvalidOptionsError(f"max_voices must be an integer, got {self.max_voices!r}")
            if self.max_voices <= 0:
                raise InvalidOptionsError("max_voices must be > 0")
        if not isinstance(self.compress_mode, bool):
            raise InvalidOptionsError(f"compress_mode must be true or false, got {self.compress_mode!r}")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ConversionOptions":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known})

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "char_limit": self.char_limit,
            "compress_mode": self.compress_mode,
            "max_voices": self.max_voices,
        }


def load_options(path: str) -> ConversionOptions:
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidOptionsError(f"invalid options file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidOptionsError(f"options file {path} must hold a JSON object")
    return ConversionOptions.from_dict(data)
