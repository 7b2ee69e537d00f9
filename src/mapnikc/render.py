"""Render options, raw pixel conversion, and the standalone image encoder."""

from __future__ import annotations

from dataclasses import dataclass, replace

from PIL import Image

from .engine import Engine, get_engine
from .errors import FormatError, InputError, RenderError
from .handles import NativeImage


DEFAULT_FORMAT = "png256"
RAW_FORMAT = "raw"

# Pillow modes accepted by encode(); "RGBa" is premultiplied alpha.
_ENCODABLE_MODES = ("RGBA", "RGBa")


@dataclass(frozen=True, slots=True)
class RenderOptions:
    """Per-render settings.

    scale: fixed scale denominator, 0 keeps the map's computed scale.
    scale_factor: multiplier for symbol, line and font sizes; 0 means 1.0.
    format: codec id such as "png256", "png32", "jpeg80" or "raw"; empty means png256.
    """

    scale: float = 0.0
    scale_factor: float = 0.0
    format: str = ""

    def normalized(self) -> RenderOptions:
        return replace(
            self,
            scale_factor=self.scale_factor if self.scale_factor != 0.0 else 1.0,
            format=self.format or DEFAULT_FORMAT,
        )


def raw_to_image(raw: bytes, width: int, height: int) -> Image.Image:
    """Wrap a row-major RGBA buffer (stride width*4) as a Pillow image."""
    if len(raw) != width * height * 4:
        raise RenderError(
            f"mapnik: raw image has {len(raw)} bytes, expected {width * height * 4} for {width}x{height}"
        )
    return Image.frombytes("RGBA", (width, height), raw)


def encode(image: Image.Image, format: str, *, engine: Engine | None = None) -> bytes:
    """Encode a decoded image with the engine's codecs, independent of any map."""
    if not format:
        raise FormatError("mapnik: empty output format")
    if not isinstance(image, Image.Image):
        raise InputError(f"Expected a PIL image, got {type(image).__name__}")
    if image.mode not in _ENCODABLE_MODES:
        raise InputError(
            f"Unsupported pixel layout '{image.mode}'; expected one of {', '.join(_ENCODABLE_MODES)}"
        )
    if image.mode == "RGBa":
        image = image.convert("RGBA")
    engine = engine if engine is not None else get_engine()
    width, height = image.size
    with NativeImage.from_raw(engine, image.tobytes(), width, height) as native:
        return native.to_blob(format)
