from __future__ import annotations

import pytest

from mapnikc import ConstructionError, Datasource, HandleClosedError, Layer, Map
from mapnikc.errors import ConfigError


def test_datasource_created_and_freed_once(engine, fake_lib):
    ds = Datasource({"file": "test/test_track.gpx", "layer": "tracks", "type": "ogr"})
    assert not ds.freed
    assert ds.params["layer"] == "tracks"

    ds.free()
    assert ds.freed
    ds.free()
    assert fake_lib.free_calls["datasource"] == 1


def test_datasource_parameters_are_released(engine, fake_lib):
    Datasource({"type": "shape", "file": "roads.shp"})
    assert fake_lib.live_params == 0
    assert fake_lib.free_calls["parameters"] == 1


def test_datasource_rejected_by_plugin(engine, fake_lib):
    with pytest.raises(ConstructionError):
        Datasource({"file": "missing-type.shp"})
    assert fake_lib.live_params == 0


def test_datasource_non_string_values(engine):
    ds = Datasource({"type": "postgis", "port": 5432, "estimate_extent": False})
    assert ds.freed is False
    native = ds.ptr
    assert native.params == {"type": "postgis", "port": "5432", "estimate_extent": "false"}


def test_datasource_rejects_unconvertible_values(engine, fake_lib):
    with pytest.raises(ConfigError):
        Datasource({"type": "csv", "fields": ["a", "b"]})
    assert fake_lib.live_params == 0


def test_layer_lifecycle(engine, fake_lib):
    layer = Layer("test", "+init=epsg:4326")
    assert layer.name == "test"
    assert layer.ptr.srs == "+init=epsg:4326"

    layer.free()
    assert layer.freed
    layer.free()
    assert fake_lib.free_calls["layer"] == 1


def test_layer_styles_and_datasource(engine):
    ds = Datasource({"type": "csv", "extent": "0,0,1,1"})
    layer = Layer("roads")
    layer.add_style("roads-casing")
    layer.add_style("roads-fill")
    layer.set_datasource(ds)

    assert layer.styles == ["roads-casing", "roads-fill"]
    assert layer.ptr.styles == ["roads-casing", "roads-fill"]
    assert layer.datasource is ds
    assert layer.ptr.datasource is ds.ptr


def test_use_after_free_is_detected(engine):
    layer = Layer("test")
    layer.free()
    with pytest.raises(HandleClosedError):
        layer.add_style("anything")

    ds = Datasource({"type": "csv"})
    ds.free()
    with pytest.raises(HandleClosedError):
        Layer("other").set_datasource(ds)


def test_context_manager_frees(engine, fake_lib):
    with Map() as m:
        assert not m.freed
    assert m.freed
    m.free()
    assert fake_lib.free_calls["map"] == 1


def test_freed_map_queries_raise(engine):
    m = Map()
    m.free()
    with pytest.raises(HandleClosedError):
        _ = m.srs
    with pytest.raises(HandleClosedError):
        m.layer_count()
    with pytest.raises(HandleClosedError):
        m.render()
