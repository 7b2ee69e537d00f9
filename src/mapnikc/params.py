"""Conversion of key/value mappings into native parameter lists."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from . import _native
from .engine import Engine
from .errors import ConfigError, ConstructionError


def param_text(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ConfigError(f"Parameter '{key}' must be a string or number, got {type(value).__name__}")


@contextmanager
def native_parameters(engine: Engine, params: Mapping[str, Any]) -> Iterator[Any]:
    """Yield a native parameter list holding `params`; it is freed on exit.

    Keys are not validated here, the datasource plugins define what they accept.
    """
    lib = engine.lib
    handle = lib.mapnik_parameters()
    if not handle:
        raise ConstructionError("mapnik: unable to allocate parameter list")
    try:
        for key, value in params.items():
            if not isinstance(key, str) or not key:
                raise ConfigError(f"Parameter keys must be non-empty strings, got {key!r}")
            lib.mapnik_parameters_set(
                handle,
                _native.encode_str(key),
                _native.encode_str(param_text(value, key)),
            )
        yield handle
    finally:
        lib.mapnik_parameters_free(handle)
