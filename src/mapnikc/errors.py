"""Error types raised by the binding layer."""

from __future__ import annotations


class MapnikError(Exception):
    """Base error. `diagnostic` holds the native engine text verbatim when available."""

    def __init__(self, message: str, *, diagnostic: str | None = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic


class LoadError(MapnikError):
    """Style document could not be parsed or references missing resources."""


class ZoomError(MapnikError):
    """Extent computation failed."""


class ConfigError(MapnikError, ValueError):
    """A configuration value was rejected."""


class FormatError(MapnikError, ValueError):
    """Output format string not recognized by the codec registry."""


class InputError(MapnikError, ValueError):
    """Unsupported pixel buffer layout."""


class ConstructionError(MapnikError):
    """Native constructor produced no handle."""


class RenderError(MapnikError):
    """Native rasterization failed."""


class RegistrationError(MapnikError):
    """Datasource plugin or font registration failed."""


class HandleClosedError(MapnikError):
    """Operation attempted on a handle that was already freed."""


def native_message(diagnostic: str | None, fallback: str) -> str:
    text = (diagnostic or "").strip()
    return f"mapnik: {text}" if text else f"mapnik: {fallback}"
