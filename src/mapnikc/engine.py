"""Process-wide engine state: loaded library, version, plugin and font registration.

Nothing here runs implicitly. Top-level startup code calls `setup()` once (or
`use_engine()` with a prebuilt `Engine`), and every handle constructor then
picks the current engine up through `get_engine()`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from . import _native
from .errors import ConfigError, RegistrationError, native_message
from .models import LogLevel, Version
from .util import detect_mapnik_config

if TYPE_CHECKING:
    from .config import EngineConfig


PLUGINS_DIR_ENV = "MAPNIK_INPUT_PLUGINS_DIRECTORY"
FONTS_DIR_ENV = "MAPNIK_FONT_DIRECTORY"

_LOGGER = logging.getLogger("mapnikc.engine")

_CURRENT: Engine | None = None


class Engine:
    """A loaded C API library plus the registration state attached to it."""

    def __init__(self, lib: Any, *, version: Version | None = None) -> None:
        self.lib = lib
        self.version = version if version is not None else _native.read_version(lib)
        self._datasource_paths: set[str] = set()
        self._font_paths: set[str] = set()
        self.log_severity: LogLevel | None = None

    def last_register_error(self) -> str:
        return _native.decode_str(self.lib.mapnik_register_last_error())

    def register_datasources(self, path: str | Path) -> None:
        """Add `path` to the datasource plugin search path."""
        key = str(path)
        if key in self._datasource_paths:
            _LOGGER.debug("Datasource path already registered: %s", key)
            return
        if self.lib.mapnik_register_datasources(_native.encode_str(key)) != 0:
            diagnostic = self.last_register_error()
            raise RegistrationError(
                native_message(diagnostic, f"unable to register datasources from {key}"),
                diagnostic=diagnostic,
            )
        self._datasource_paths.add(key)
        _LOGGER.info("Registered datasource plugins from %s", key)

    def register_fonts(self, path: str | Path) -> None:
        """Add `path` to the font search path."""
        key = str(path)
        if key in self._font_paths:
            _LOGGER.debug("Font path already registered: %s", key)
            return
        if self.lib.mapnik_register_fonts(_native.encode_str(key)) != 0:
            diagnostic = self.last_register_error()
            raise RegistrationError(
                native_message(diagnostic, f"unable to register fonts from {key}"),
                diagnostic=diagnostic,
            )
        self._font_paths.add(key)
        _LOGGER.info("Registered fonts from %s", key)

    def set_log_severity(self, level: LogLevel | str) -> None:
        """Set the native log level. Needs an engine build with logging enabled."""
        parsed = LogLevel.parse(level)
        self.lib.mapnik_logging_set_severity(int(parsed))
        self.log_severity = parsed


def use_engine(engine: Engine | None) -> Engine | None:
    """Install `engine` as the current engine; returns the previous one."""
    global _CURRENT
    previous = _CURRENT
    _CURRENT = engine
    return previous


def get_engine() -> Engine:
    if _CURRENT is None:
        raise ConfigError("mapnik engine not initialized; call mapnikc.setup() at startup")
    return _CURRENT


def default_plugins_dir() -> Path | None:
    return _default_dir(PLUGINS_DIR_ENV, "--input-plugins")


def default_fonts_dir() -> Path | None:
    return _default_dir(FONTS_DIR_ENV, "--fonts")


def _default_dir(env_name: str, config_flag: str) -> Path | None:
    env_value = os.environ.get(env_name, "").strip()
    if env_value:
        return Path(env_value)
    detected = detect_mapnik_config(config_flag)
    return Path(detected) if detected else None


def setup(cfg: EngineConfig | None = None) -> Engine:
    """Load the library (once), register plugins and fonts, set log severity.

    Safe to call again: an already-installed engine is reused and repeated
    registrations of the same directories are skipped.
    """
    engine = _CURRENT
    if engine is None:
        lib = _native.load_library(cfg.library if cfg is not None else None)
        engine = Engine(lib)
        use_engine(engine)
        _LOGGER.info("mapnik %s loaded", engine.version)

    plugins_dir = cfg.plugins_dir if cfg is not None and cfg.plugins_dir else default_plugins_dir()
    if plugins_dir is None:
        _LOGGER.warning("No datasource plugin directory found; skipping plugin registration.")
    else:
        engine.register_datasources(plugins_dir)

    fonts_dir = cfg.fonts_dir if cfg is not None and cfg.fonts_dir else default_fonts_dir()
    if fonts_dir is None:
        _LOGGER.warning("No font directory found; skipping font registration.")
    else:
        engine.register_fonts(fonts_dir)

    if cfg is not None:
        engine.set_log_severity(cfg.log_severity)
    return engine
