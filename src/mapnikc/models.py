"""Value types shared across the binding modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .errors import ConfigError


class LogLevel(IntEnum):
    """Native engine log severity."""

    NONE = 0
    DEBUG = 1
    WARN = 2
    ERROR = 3

    @classmethod
    def parse(cls, value: Any) -> LogLevel:
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key == "WARNING":
                key = "WARN"
            if key in cls.__members__:
                return cls[key]
        raise ConfigError(
            f"Invalid log severity {value!r}; expected one of: "
            + ", ".join(name.lower() for name in cls.__members__)
        )


class AspectFixMode(IntEnum):
    """How the engine reconciles bbox aspect ratio with canvas aspect ratio.

    Read by the engine at zoom/resize time, so set it before those calls.
    """

    GROW_BBOX = 0
    GROW_CANVAS = 1
    SHRINK_BBOX = 2
    SHRINK_CANVAS = 3
    ADJUST_BBOX_WIDTH = 4
    ADJUST_BBOX_HEIGHT = 5
    ADJUST_CANVAS_WIDTH = 6
    ADJUST_CANVAS_HEIGHT = 7
    RESPECT = 8

    @classmethod
    def parse(cls, value: Any) -> AspectFixMode:
        if isinstance(value, AspectFixMode):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_")
            if key in cls.__members__:
                return cls[key]
        elif isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ConfigError(f"Invalid aspect fix mode: {value!r}")


@dataclass(frozen=True, slots=True)
class Version:
    """Version of the wrapped engine, e.g. numeric 300010 for 3.0.10."""

    numeric: int
    major: int
    minor: int
    patch: int
    string: str

    def __str__(self) -> str:
        return self.string


@dataclass(frozen=True, slots=True)
class Color:
    """Non-premultiplied 8-bit RGBA color."""

    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            channel = getattr(self, name)
            if not isinstance(channel, int) or isinstance(channel, bool) or not 0 <= channel <= 255:
                raise ConfigError(f"Color channel '{name}' must be an integer in 0..255, got {channel!r}")

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @classmethod
    def parse(cls, value: Any) -> Color:
        """Accept `#rrggbb`, `#rrggbbaa` or a 3/4 item sequence."""
        if isinstance(value, Color):
            return value
        if isinstance(value, str):
            text = value.strip().lstrip("#")
            if len(text) not in (6, 8):
                raise ConfigError(f"Invalid color string: {value!r}")
            try:
                channels = [int(text[i : i + 2], 16) for i in range(0, len(text), 2)]
            except ValueError as exc:
                raise ConfigError(f"Invalid color string: {value!r}") from exc
            return cls(*channels)
        if isinstance(value, (list, tuple)) and len(value) in (3, 4):
            return cls(*value)
        raise ConfigError(f"Invalid color value: {value!r}")


@dataclass(frozen=True, slots=True)
class BBox:
    minx: float
    miny: float
    maxx: float
    maxy: float

    @property
    def width(self) -> float:
        return self.maxx - self.minx

    @property
    def height(self) -> float:
        return self.maxy - self.miny
