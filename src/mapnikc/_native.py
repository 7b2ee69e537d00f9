"""ctypes declarations for the mapnik C API shared library."""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
from pathlib import Path
from typing import Any

from .errors import ConfigError
from .models import Version


LIBRARY_ENV = "MAPNIKC_LIBRARY"
_LIBRARY_NAMES = ("mapnik_c_api", "mapnik-c-api")

_LOGGER = logging.getLogger("mapnikc.native")


class ImageBlob(ctypes.Structure):
    _fields_ = [
        ("ptr", ctypes.POINTER(ctypes.c_char)),
        ("len", ctypes.c_uint),
    ]


_handle = ctypes.c_void_p
_uint8_p = ctypes.POINTER(ctypes.c_uint8)
_str = ctypes.c_char_p

# name -> (restype, argtypes)
PROTOTYPES: dict[str, tuple[Any, tuple[Any, ...]]] = {
    "mapnik_register_datasources": (ctypes.c_int, (_str,)),
    "mapnik_register_fonts": (ctypes.c_int, (_str,)),
    "mapnik_logging_set_severity": (None, (ctypes.c_int,)),
    "mapnik_register_last_error": (_str, ()),
    # bbox
    "mapnik_bbox": (_handle, (ctypes.c_double, ctypes.c_double, ctypes.c_double, ctypes.c_double)),
    "mapnik_bbox_free": (None, (_handle,)),
    # image
    "mapnik_image_free": (None, (_handle,)),
    "mapnik_image_last_error": (_str, (_handle,)),
    "mapnik_image_blob_free": (None, (ctypes.POINTER(ImageBlob),)),
    "mapnik_image_to_blob": (ctypes.POINTER(ImageBlob), (_handle, _str)),
    "mapnik_image_to_raw": (_uint8_p, (_handle, ctypes.POINTER(ctypes.c_size_t))),
    "mapnik_image_from_raw": (_handle, (_uint8_p, ctypes.c_int, ctypes.c_int)),
    # parameters
    "mapnik_parameters": (_handle, ()),
    "mapnik_parameters_free": (None, (_handle,)),
    "mapnik_parameters_set": (None, (_handle, _str, _str)),
    # datasource
    "mapnik_datasource": (_handle, (_handle,)),
    "mapnik_datasource_free": (None, (_handle,)),
    # layer
    "mapnik_layer": (_handle, (_str, _str)),
    "mapnik_layer_free": (None, (_handle,)),
    "mapnik_layer_add_style": (None, (_handle, _str)),
    "mapnik_layer_set_datasource": (None, (_handle, _handle)),
    # map
    "mapnik_map": (_handle, (ctypes.c_uint, ctypes.c_uint)),
    "mapnik_map_free": (None, (_handle,)),
    "mapnik_map_last_error": (_str, (_handle,)),
    "mapnik_map_load": (ctypes.c_int, (_handle, _str)),
    "mapnik_map_load_string": (ctypes.c_int, (_handle, _str, _str)),
    "mapnik_map_get_srs": (_str, (_handle,)),
    "mapnik_map_set_srs": (ctypes.c_int, (_handle, _str)),
    "mapnik_map_set_aspect_fix_mode": (ctypes.c_int, (_handle, ctypes.c_int)),
    "mapnik_map_get_aspect_fix_mode": (ctypes.c_int, (_handle,)),
    "mapnik_map_resize": (None, (_handle, ctypes.c_uint, ctypes.c_uint)),
    "mapnik_map_get_scale_denominator": (ctypes.c_double, (_handle,)),
    "mapnik_map_set_buffer_size": (None, (_handle, ctypes.c_int)),
    "mapnik_map_background": (ctypes.c_int, (_handle, _uint8_p, _uint8_p, _uint8_p, _uint8_p)),
    "mapnik_map_set_background": (
        None,
        (_handle, ctypes.c_uint8, ctypes.c_uint8, ctypes.c_uint8, ctypes.c_uint8),
    ),
    "mapnik_map_zoom_all": (ctypes.c_int, (_handle,)),
    "mapnik_map_zoom_to_box": (None, (_handle, _handle)),
    "mapnik_map_set_maximum_extent": (
        None,
        (_handle, ctypes.c_double, ctypes.c_double, ctypes.c_double, ctypes.c_double),
    ),
    "mapnik_map_reset_maximum_extent": (None, (_handle,)),
    "mapnik_map_render_to_image": (_handle, (_handle, ctypes.c_double, ctypes.c_double)),
    "mapnik_map_add_layer": (None, (_handle, _handle)),
    "mapnik_map_layer_count": (ctypes.c_int, (_handle,)),
    "mapnik_map_layer_name": (_str, (_handle, ctypes.c_size_t)),
    "mapnik_map_layer_is_active": (ctypes.c_int, (_handle, ctypes.c_size_t)),
    "mapnik_map_layer_set_active": (None, (_handle, ctypes.c_size_t, ctypes.c_int)),
}


def encode_str(value: str) -> bytes:
    return value.encode("utf-8")


def decode_str(value: bytes | None) -> str:
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace")


def find_library(path: str | Path | None = None) -> str:
    """Resolve the shared library: explicit path, then env var, then system lookup."""
    if path is not None:
        return str(path)
    env_path = os.environ.get(LIBRARY_ENV, "").strip()
    if env_path:
        return env_path
    for name in _LIBRARY_NAMES:
        found = ctypes.util.find_library(name)
        if found:
            return found
    raise ConfigError(
        f"Unable to locate the mapnik C API library; set {LIBRARY_ENV} or engine.library in config"
    )


def load_library(path: str | Path | None = None) -> ctypes.CDLL:
    """Load the C API library and declare every prototype on it."""
    resolved = find_library(path)
    try:
        lib = ctypes.CDLL(resolved)
    except OSError as exc:
        raise ConfigError(f"Unable to load mapnik C API library '{resolved}': {exc}") from exc
    bind_prototypes(lib)
    _LOGGER.debug("Loaded mapnik C API from %s", resolved)
    return lib


def bind_prototypes(lib: ctypes.CDLL) -> None:
    for name, (restype, argtypes) in PROTOTYPES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError as exc:
            raise ConfigError(f"mapnik C API library is missing symbol '{name}'") from exc
        fn.restype = restype
        fn.argtypes = list(argtypes)


def read_version(lib: ctypes.CDLL) -> Version:
    """Read the exported `mapnik_version*` data symbols."""

    def _int(name: str) -> int:
        return int(ctypes.c_int.in_dll(lib, name).value)

    return Version(
        numeric=_int("mapnik_version"),
        major=_int("mapnik_version_major"),
        minor=_int("mapnik_version_minor"),
        patch=_int("mapnik_version_patch"),
        string=decode_str(ctypes.c_char_p.in_dll(lib, "mapnik_version_string").value),
    )
