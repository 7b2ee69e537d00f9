"""Typed configuration loader for `mapnikc.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, cast

import yaml

from .errors import ConfigError
from .models import AspectFixMode, Color, LogLevel
from .render import DEFAULT_FORMAT, RenderOptions

if TYPE_CHECKING:
    from .map import Map


DEFAULT_CONFIG_NAME = "mapnikc.yaml"


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    return None if value is None else _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    p = Path(_str(value, field_name))
    return p if p.is_absolute() else root_dir / p


def _wrap(field_name: str, exc: ConfigError) -> ValueError:
    return ValueError(f"Invalid value for '{field_name}': {exc}")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    library: Path | None = None
    plugins_dir: Path | None = None
    fonts_dir: Path | None = None
    log_severity: LogLevel = LogLevel.ERROR

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> EngineConfig:
        try:
            severity = LogLevel.parse(raw.get("log_severity", "error"))
        except ConfigError as exc:
            raise _wrap("engine.log_severity", exc) from exc
        return cls(
            library=_optional_path(raw.get("library"), "engine.library", root_dir),
            plugins_dir=_optional_path(raw.get("plugins_dir"), "engine.plugins_dir", root_dir),
            fonts_dir=_optional_path(raw.get("fonts_dir"), "engine.fonts_dir", root_dir),
            log_severity=severity,
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    width_px: int = 800
    height_px: int = 600
    srs: str | None = None
    aspect_fix_mode: AspectFixMode = AspectFixMode.GROW_BBOX
    buffer_size_px: int = 0
    background: Color | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        width_px = _int(raw.get("width_px", 800), "map.width_px")
        height_px = _int(raw.get("height_px", 600), "map.height_px")
        if width_px <= 0 or height_px <= 0:
            raise ValueError("map.width_px and map.height_px must be > 0")
        buffer_size_px = _int(raw.get("buffer_size_px", 0), "map.buffer_size_px")
        if buffer_size_px < 0:
            raise ValueError("map.buffer_size_px must be >= 0")
        try:
            aspect_fix_mode = AspectFixMode.parse(raw.get("aspect_fix_mode", "grow_bbox"))
        except ConfigError as exc:
            raise _wrap("map.aspect_fix_mode", exc) from exc
        background_raw = raw.get("background")
        try:
            background = None if background_raw is None else Color.parse(background_raw)
        except ConfigError as exc:
            raise _wrap("map.background", exc) from exc
        return cls(
            width_px=width_px,
            height_px=height_px,
            srs=_optional_str(raw.get("srs"), "map.srs"),
            aspect_fix_mode=aspect_fix_mode,
            buffer_size_px=buffer_size_px,
            background=background,
        )

    def apply(self, m: Map) -> None:
        """Push these settings onto a map; call after load() since styles set srs/background too."""
        m.aspect_fix_mode = self.aspect_fix_mode
        m.resize(self.width_px, self.height_px)
        if self.srs is not None:
            m.srs = self.srs
        if self.buffer_size_px:
            m.set_buffer_size(self.buffer_size_px)
        if self.background is not None:
            m.background_color = self.background


@dataclass(frozen=True, slots=True)
class RenderDefaultsConfig:
    format: str = DEFAULT_FORMAT
    scale: float = 0.0
    scale_factor: float = 1.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderDefaultsConfig:
        scale = _float(raw.get("scale", 0.0), "render.scale")
        scale_factor = _float(raw.get("scale_factor", 1.0), "render.scale_factor")
        if scale < 0:
            raise ValueError("render.scale must be >= 0")
        if scale_factor < 0:
            raise ValueError("render.scale_factor must be >= 0")
        return cls(
            format=_str(raw.get("format", DEFAULT_FORMAT), "render.format"),
            scale=scale,
            scale_factor=scale_factor,
        )

    def options(self) -> RenderOptions:
        return RenderOptions(scale=self.scale, scale_factor=self.scale_factor, format=self.format)


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    file: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> LoggingConfig:
        return cls(file=_optional_path(raw.get("file"), "logging.file", root_dir))


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path | None
    engine: EngineConfig
    map: MapConfig
    render: RenderDefaultsConfig
    logging: LoggingConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        return cls(
            source_path=source_path.resolve(),
            engine=EngineConfig.from_mapping(_mapping(raw.get("engine"), "engine"), root_dir),
            map=MapConfig.from_mapping(_mapping(raw.get("map"), "map")),
            render=RenderDefaultsConfig.from_mapping(_mapping(raw.get("render"), "render")),
            logging=LoggingConfig.from_mapping(_mapping(raw.get("logging"), "logging"), root_dir),
        )

    @classmethod
    def default(cls) -> AppConfig:
        return cls(
            source_path=None,
            engine=EngineConfig(),
            map=MapConfig(),
            render=RenderDefaultsConfig(),
            logging=LoggingConfig(),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
