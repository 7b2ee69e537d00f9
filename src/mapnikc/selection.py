"""Per-layer activation toggling with save/restore."""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, Protocol, Union, runtime_checkable

from .errors import ConfigError


_LOGGER = logging.getLogger("mapnikc.selection")


class Status(IntEnum):
    """Decision returned by a layer selector."""

    EXCLUDE = -1
    DEFAULT = 0
    INCLUDE = 1


@runtime_checkable
class LayerSelector(Protocol):
    def select(self, layer_name: str) -> Status: ...


Selector = Union[LayerSelector, Callable[[str], Status]]


class LayerTable(Protocol):
    """Live view of a map's layers, queried on every call."""

    def layer_count(self) -> int: ...

    def layer_name(self, index: int) -> str: ...

    def layer_is_active(self, index: int) -> bool: ...

    def set_layer_active(self, index: int, active: bool) -> None: ...


def _decide(selector: Selector, layer_name: str) -> Status:
    if isinstance(selector, LayerSelector):
        raw = selector.select(layer_name)
    elif callable(selector):
        raw = selector(layer_name)
    else:
        raise ConfigError(f"Layer selector must be callable or define select(), got {selector!r}")
    try:
        return Status(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid layer status {raw!r} for layer '{layer_name}'") from exc


class LayerActivation:
    """Snapshot, select, restore.

    Two states: no snapshot (`saved is None`) and saved. An empty snapshot
    counts as unsaved, so a selection on a map without layers does not pin a
    baseline that a later load would outgrow. `store()` only captures when
    nothing is saved yet, so an overlapping selection never replaces the
    original baseline. `reset()` writes the baseline back and returns to the
    unsaved state.

    Layer count and flags always come from the live table. Older engine
    majors report an extra inactive layer entry that newer ones omit; that
    entry is carried like any other.
    """

    def __init__(self, table: LayerTable) -> None:
        self._table = table
        self._saved: tuple[bool, ...] | None = None

    @property
    def saved(self) -> tuple[bool, ...] | None:
        return self._saved

    def current(self) -> list[bool]:
        return [self._table.layer_is_active(idx) for idx in range(self._table.layer_count())]

    def store(self) -> None:
        if self._saved:
            return
        current = tuple(self.current())
        if not current:
            return
        self._saved = current
        _LOGGER.debug("Stored layer status for %d layers", len(current))

    def select(self, selector: Selector) -> None:
        self.store()
        for idx in range(self._table.layer_count()):
            name = self._table.layer_name(idx)
            decision = _decide(selector, name)
            if decision is Status.INCLUDE:
                self._table.set_layer_active(idx, True)
            elif decision is Status.EXCLUDE:
                self._table.set_layer_active(idx, False)

    def reset(self) -> None:
        if not self._saved:
            self._saved = None
            return
        count = self._table.layer_count()
        if count > len(self._saved):
            # layers were added after the snapshot; never write a partial restore
            _LOGGER.warning(
                "Not restoring layer status: map has %d layers, snapshot holds %d",
                count,
                len(self._saved),
            )
            return
        for idx in range(count):
            self._table.set_layer_active(idx, self._saved[idx])
        self._saved = None
