"""Python bindings for the mapnik C API."""

from .engine import Engine, get_engine, setup, use_engine
from .errors import (
    ConfigError,
    ConstructionError,
    FormatError,
    HandleClosedError,
    InputError,
    LoadError,
    MapnikError,
    RegistrationError,
    RenderError,
    ZoomError,
)
from .handles import DEFAULT_SRS, Datasource, Layer, NativeImage
from .map import Map
from .models import AspectFixMode, BBox, Color, LogLevel, Version
from .render import RenderOptions, encode
from .selection import LayerSelector, Status

__all__ = [
    "AspectFixMode",
    "BBox",
    "Color",
    "ConfigError",
    "ConstructionError",
    "DEFAULT_SRS",
    "Datasource",
    "Engine",
    "FormatError",
    "HandleClosedError",
    "InputError",
    "Layer",
    "LayerSelector",
    "LoadError",
    "LogLevel",
    "Map",
    "MapnikError",
    "NativeImage",
    "RegistrationError",
    "RenderError",
    "RenderOptions",
    "Status",
    "Version",
    "ZoomError",
    "encode",
    "get_engine",
    "setup",
    "use_engine",
]
