"""The root rendering context: style loading, view, layers, rendering."""

from __future__ import annotations

import ctypes
import io
import logging
from pathlib import Path

from PIL import Image

from . import _native
from .engine import Engine, get_engine
from .errors import (
    ConfigError,
    ConstructionError,
    LoadError,
    RenderError,
    ZoomError,
    native_message,
)
from .handles import NativeHandle, NativeImage, Layer
from .models import AspectFixMode, BBox, Color
from .render import RAW_FORMAT, RenderOptions, raw_to_image
from .selection import LayerActivation, Selector
from .util import write_bytes_atomic


DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600

_LOGGER = logging.getLogger("mapnikc.map")

# lossless codec used to recover the canvas size when the engine changed it
_SIZE_CHECK_FORMAT = "png32"


class _NativeLayerTable:
    """Layer access without bounds checks, for loops driven by layer_count()."""

    def __init__(self, m: Map) -> None:
        self._map = m

    def layer_count(self) -> int:
        return int(self._map.engine.lib.mapnik_map_layer_count(self._map.ptr))

    def layer_name(self, index: int) -> str:
        return _native.decode_str(self._map.engine.lib.mapnik_map_layer_name(self._map.ptr, index))

    def layer_is_active(self, index: int) -> bool:
        return self._map.engine.lib.mapnik_map_layer_is_active(self._map.ptr, index) == 1

    def set_layer_active(self, index: int, active: bool) -> None:
        self._map.engine.lib.mapnik_map_layer_set_active(self._map.ptr, index, 1 if active else 0)


class Map(NativeHandle):
    """A native map plus the Python-side state the C API cannot report back.

    Canvas size is tracked here because the C API has no getter for it.
    Canvas-adjusting aspect fix modes let the engine change it during zoom;
    `render_image()` then reads the real size back from the rendered image.
    """

    _free_symbol = "mapnik_map_free"

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        *,
        engine: Engine | None = None,
    ) -> None:
        engine = engine if engine is not None else get_engine()
        ptr = engine.lib.mapnik_map(width, height)
        if not ptr:
            raise ConstructionError("mapnik: map construction returned no handle")
        super().__init__(engine, ptr)
        self.width = width
        self.height = height
        self._layers = _NativeLayerTable(self)
        self._activation = LayerActivation(self._layers)

    def last_error(self) -> str:
        return _native.decode_str(self._engine.lib.mapnik_map_last_error(self.ptr))

    def _native_error(self, error_cls: type, fallback: str) -> Exception:
        diagnostic = self.last_error()
        return error_cls(native_message(diagnostic, fallback), diagnostic=diagnostic)

    # -- loading --------------------------------------------------------

    def load(self, path: str | Path) -> None:
        """Load a style document from the filesystem."""
        if self._engine.lib.mapnik_map_load(self.ptr, _native.encode_str(str(path))) != 0:
            raise self._native_error(LoadError, f"unable to load style '{path}'")
        _LOGGER.debug("Loaded style %s (%d layers)", path, self.layer_count())

    def load_string(self, xml: str, base_path: str | Path = "") -> None:
        """Load a style document from memory; `base_path` resolves relative file references."""
        status = self._engine.lib.mapnik_map_load_string(
            self.ptr,
            _native.encode_str(xml),
            _native.encode_str(str(base_path)),
        )
        if status != 0:
            raise self._native_error(LoadError, "unable to load style from string")

    # -- view -----------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        self._engine.lib.mapnik_map_resize(self.ptr, width, height)
        self.width = width
        self.height = height

    @property
    def srs(self) -> str:
        return _native.decode_str(self._engine.lib.mapnik_map_get_srs(self.ptr))

    @srs.setter
    def srs(self, value: str) -> None:
        if self._engine.lib.mapnik_map_set_srs(self.ptr, _native.encode_str(value)) != 0:
            raise self._native_error(ConfigError, f"unable to set srs '{value}'")

    @property
    def aspect_fix_mode(self) -> AspectFixMode:
        return AspectFixMode(self._engine.lib.mapnik_map_get_aspect_fix_mode(self.ptr))

    @aspect_fix_mode.setter
    def aspect_fix_mode(self, value: AspectFixMode | str | int) -> None:
        mode = AspectFixMode.parse(value)
        if self._engine.lib.mapnik_map_set_aspect_fix_mode(self.ptr, int(mode)) != 0:
            # engine builds differ on which error channel this call fills
            diagnostic = self.last_error() or self._engine.last_register_error()
            raise ConfigError(
                native_message(diagnostic, f"unable to set aspect fix mode {mode.name}"),
                diagnostic=diagnostic,
            )

    def scale_denominator(self) -> float:
        """Current scale; meaningful after both resize and a zoom call."""
        return float(self._engine.lib.mapnik_map_get_scale_denominator(self.ptr))

    def set_buffer_size(self, pixels: int) -> None:
        """Margin around the canvas where labels are still placed."""
        self._engine.lib.mapnik_map_set_buffer_size(self.ptr, pixels)

    @property
    def background_color(self) -> Color:
        channels = [ctypes.c_uint8(0) for _ in range(4)]
        self._engine.lib.mapnik_map_background(self.ptr, *(ctypes.pointer(c) for c in channels))
        # an unset background leaves the zeroed channels alone: transparent black
        return Color(*(c.value for c in channels))

    @background_color.setter
    def background_color(self, value: Color | str | tuple[int, ...]) -> None:
        color = Color.parse(value)
        self._engine.lib.mapnik_map_set_background(self.ptr, *color.as_tuple())

    def zoom_all(self) -> None:
        """Zoom to the union extent of all layers."""
        if self._engine.lib.mapnik_map_zoom_all(self.ptr) != 0:
            raise self._native_error(ZoomError, "unable to zoom to combined layer extents")

    def zoom_to_box(self, minx: float, miny: float, maxx: float, maxy: float) -> None:
        lib = self._engine.lib
        bbox = lib.mapnik_bbox(minx, miny, maxx, maxy)
        if not bbox:
            raise ConstructionError("mapnik: bbox construction returned no handle")
        try:
            lib.mapnik_map_zoom_to_box(self.ptr, bbox)
        finally:
            lib.mapnik_bbox_free(bbox)

    def zoom_to(self, bbox: BBox) -> None:
        self.zoom_to_box(bbox.minx, bbox.miny, bbox.maxx, bbox.maxy)

    def set_max_extent(self, minx: float, miny: float, maxx: float, maxy: float) -> None:
        self._engine.lib.mapnik_map_set_maximum_extent(self.ptr, minx, miny, maxx, maxy)

    def reset_max_extent(self) -> None:
        self._engine.lib.mapnik_map_reset_maximum_extent(self.ptr)

    # -- layers ---------------------------------------------------------

    def add_layer(self, layer: Layer) -> None:
        # the engine copies the layer; the Layer object stays owned by the caller
        self._engine.lib.mapnik_map_add_layer(self.ptr, layer.ptr)

    def layer_count(self) -> int:
        return self._layers.layer_count()

    def _check_index(self, index: int) -> int:
        count = self.layer_count()
        if not 0 <= index < count:
            raise IndexError(f"layer index {index} out of range for {count} layers")
        return index

    def layer_name(self, index: int) -> str:
        return self._layers.layer_name(self._check_index(index))

    def layer_is_active(self, index: int) -> bool:
        return self._layers.layer_is_active(self._check_index(index))

    def set_layer_active(self, index: int, active: bool) -> None:
        self._layers.set_layer_active(self._check_index(index), active)

    def layer_names(self) -> list[str]:
        return [self._layers.layer_name(idx) for idx in range(self.layer_count())]

    def current_layer_status(self) -> list[bool]:
        return self._activation.current()

    @property
    def saved_layer_status(self) -> tuple[bool, ...] | None:
        return self._activation.saved

    def store_layer_status(self) -> None:
        """Snapshot active flags unless a snapshot is already held."""
        self._activation.store()

    def select_layers(self, selector: Selector) -> None:
        """Enable/disable layers by name; `selector` is called once per layer.

        The first call after a reset stores the original flags, which
        `reset_layers()` restores.
        """
        self._activation.select(selector)

    def reset_layers(self) -> None:
        self._activation.reset()

    def log_layer_status(self) -> None:
        for idx in range(self.layer_count()):
            _LOGGER.debug(
                "layer %d %s active=%s",
                idx,
                self._layers.layer_name(idx),
                self._layers.layer_is_active(idx),
            )

    # -- rendering ------------------------------------------------------

    def _render_native(self, options: RenderOptions) -> NativeImage:
        ptr = self._engine.lib.mapnik_map_render_to_image(self.ptr, options.scale, options.scale_factor)
        if not ptr:
            raise self._native_error(RenderError, "rendering failed")
        return NativeImage(self._engine, ptr)

    def _sync_canvas_size(self, image: NativeImage, raw_len: int) -> None:
        if raw_len == self.width * self.height * 4:
            return
        with Image.open(io.BytesIO(image.to_blob(_SIZE_CHECK_FORMAT))) as decoded:
            width, height = decoded.size
        _LOGGER.debug(
            "Engine canvas is %dx%d, tracked %dx%d; updating",
            width,
            height,
            self.width,
            self.height,
        )
        self.width = width
        self.height = height

    def render(self, options: RenderOptions | None = None) -> bytes:
        """Render the current view and return encoded bytes (raw pixels for format "raw")."""
        opts = (options or RenderOptions()).normalized()
        with self._render_native(opts) as image:
            if opts.format == RAW_FORMAT:
                return image.to_raw()
            return image.to_blob(opts.format)

    def render_image(self, options: RenderOptions | None = None) -> Image.Image:
        """Render to a decoded RGBA image; the options' format is ignored."""
        opts = (options or RenderOptions()).normalized()
        with self._render_native(opts) as image:
            raw = image.to_raw()
            self._sync_canvas_size(image, len(raw))
        return raw_to_image(raw, self.width, self.height)

    def render_to_file(self, path: str | Path, options: RenderOptions | None = None) -> Path:
        """Encode like `render()` and write atomically; a failed encode leaves no file."""
        target = Path(path)
        payload = self.render(options)
        write_bytes_atomic(target, payload)
        _LOGGER.debug("Rendered %dx%d map to %s", self.width, self.height, target)
        return target
