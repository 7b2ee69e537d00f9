"""Owning wrappers around opaque native handles."""

from __future__ import annotations

import ctypes
import logging
from typing import Any, Mapping

from . import _native
from .engine import Engine, get_engine
from .errors import (
    ConstructionError,
    FormatError,
    HandleClosedError,
    InputError,
    RenderError,
    native_message,
)
from .params import native_parameters


DEFAULT_SRS = "+proj=longlat +ellps=WGS84 +datum=WGS84 +no_defs"

_LOGGER = logging.getLogger("mapnikc.handles")


class NativeHandle:
    """One native pointer with exactly-once release.

    `free()` clears the pointer before calling into the engine, so a second
    call is a no-op and later accessors raise `HandleClosedError` instead of
    handing a dangling pointer to native code.
    """

    _free_symbol = ""

    def __init__(self, engine: Engine, ptr: Any) -> None:
        self._engine = engine
        self._ptr = ptr

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def freed(self) -> bool:
        return self._ptr is None

    @property
    def ptr(self) -> Any:
        if self._ptr is None:
            raise HandleClosedError(f"{type(self).__name__} has already been freed")
        return self._ptr

    def free(self) -> None:
        ptr, self._ptr = self._ptr, None
        if ptr is None:
            return
        getattr(self._engine.lib, self._free_symbol)(ptr)
        _LOGGER.debug("Freed %s", type(self).__name__)

    def __enter__(self) -> NativeHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.free()

    def __repr__(self) -> str:
        state = "freed" if self.freed else "live"
        return f"<{type(self).__name__} {state}>"


class Datasource(NativeHandle):
    """A datasource built from plugin parameters such as `type`, `file`, `layer`."""

    _free_symbol = "mapnik_datasource_free"

    def __init__(self, params: Mapping[str, Any], *, engine: Engine | None = None) -> None:
        engine = engine if engine is not None else get_engine()
        with native_parameters(engine, params) as native_params:
            ptr = engine.lib.mapnik_datasource(native_params)
        if not ptr:
            raise ConstructionError(
                "mapnik: datasource construction returned no handle "
                f"(type={params.get('type')!r})"
            )
        super().__init__(engine, ptr)
        self.params = dict(params)


class Layer(NativeHandle):
    _free_symbol = "mapnik_layer_free"

    def __init__(self, name: str, srs: str = DEFAULT_SRS, *, engine: Engine | None = None) -> None:
        engine = engine if engine is not None else get_engine()
        ptr = engine.lib.mapnik_layer(_native.encode_str(name), _native.encode_str(srs))
        if not ptr:
            raise ConstructionError(f"mapnik: layer construction returned no handle for '{name}'")
        super().__init__(engine, ptr)
        self.name = name
        self.srs = srs
        self.styles: list[str] = []
        self.datasource: Datasource | None = None

    def add_style(self, style_name: str) -> None:
        self._engine.lib.mapnik_layer_add_style(self.ptr, _native.encode_str(style_name))
        self.styles.append(style_name)

    def set_datasource(self, datasource: Datasource) -> None:
        # the engine shares ownership; freeing the Datasource later is still the caller's job
        self._engine.lib.mapnik_layer_set_datasource(self.ptr, datasource.ptr)
        self.datasource = datasource


class NativeImage(NativeHandle):
    """Decoded RGBA image owned by the engine."""

    _free_symbol = "mapnik_image_free"

    def __init__(self, engine: Engine, ptr: Any) -> None:
        super().__init__(engine, ptr)
        self._keepalive: Any = None

    @classmethod
    def from_raw(cls, engine: Engine, data: bytes, width: int, height: int) -> NativeImage:
        """Copy a non-premultiplied RGBA buffer (stride width*4) into a native image."""
        expected = width * height * 4
        if width < 0 or height < 0 or len(data) != expected:
            raise InputError(
                f"Raw buffer of {len(data)} bytes does not match {width}x{height} RGBA ({expected} bytes)"
            )
        buf = (ctypes.c_uint8 * expected).from_buffer_copy(data)
        ptr = engine.lib.mapnik_image_from_raw(buf, width, height)
        if not ptr:
            raise InputError("mapnik: unable to create image from raw")
        image = cls(engine, ptr)
        image._keepalive = buf
        return image

    def last_error(self) -> str:
        return _native.decode_str(self._engine.lib.mapnik_image_last_error(self.ptr))

    def to_blob(self, format: str) -> bytes:
        lib = self._engine.lib
        blob = lib.mapnik_image_to_blob(self.ptr, _native.encode_str(format))
        if not blob:
            diagnostic = self.last_error()
            raise FormatError(
                native_message(diagnostic, f"unable to encode image as '{format}'"),
                diagnostic=diagnostic,
            )
        try:
            return ctypes.string_at(blob.contents.ptr, blob.contents.len)
        finally:
            lib.mapnik_image_blob_free(blob)

    def to_raw(self) -> bytes:
        # the buffer belongs to the image and goes away with mapnik_image_free
        size = ctypes.c_size_t(0)
        raw = self._engine.lib.mapnik_image_to_raw(self.ptr, ctypes.pointer(size))
        if not raw:
            diagnostic = self.last_error()
            raise RenderError(
                native_message(diagnostic, "unable to read raw image data"),
                diagnostic=diagnostic,
            )
        return ctypes.string_at(raw, size.value)
