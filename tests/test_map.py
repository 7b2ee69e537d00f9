from __future__ import annotations

import pytest

from mapnikc import (
    DEFAULT_SRS,
    AspectFixMode,
    BBox,
    Color,
    ConfigError,
    Datasource,
    Layer,
    LoadError,
    Map,
    RenderOptions,
    ZoomError,
)


def test_load_and_render_default_canvas(engine, style_path):
    m = Map()
    m.load(style_path)
    m.zoom_all()
    img = m.render_image(RenderOptions())
    assert img.size == (800, 600)

    m.free()
    assert m.freed


def test_load_string_resolves_relative_files(engine, style_dir):
    xml = (style_dir / "map.xml").read_text(encoding="utf-8")
    with Map() as m:
        m.load_string(xml, style_dir)
        m.zoom_all()
        assert m.render_image().size == (800, 600)


def test_load_string_without_base_path_fails(engine, style_dir, monkeypatch, tmp_path):
    xml = (style_dir / "map.xml").read_text(encoding="utf-8")
    other = tmp_path / "elsewhere"
    other.mkdir()
    monkeypatch.chdir(other)
    with Map() as m:
        with pytest.raises(LoadError) as excinfo:
            m.load_string(xml, "")
        assert "points.csv" in excinfo.value.diagnostic


def test_load_missing_document(engine, tmp_path):
    with Map() as m:
        with pytest.raises(LoadError) as excinfo:
            m.load(tmp_path / "nope.xml")
        assert excinfo.value.diagnostic
        assert str(excinfo.value).startswith("mapnik: ")
        assert m.layer_count() == 0


def test_load_malformed_document(engine):
    with Map() as m:
        with pytest.raises(LoadError):
            m.load_string("<Map><Layer name='a'></Map>")
        assert m.layer_count() == 0


def test_srs_default_and_overwrite(engine, style_path):
    with Map() as m:
        assert m.srs == DEFAULT_SRS
        m.load(style_path)
        assert m.srs == "+init=epsg:4326"
        m.srs = "+init=epsg:3857"
        assert m.srs == "+init=epsg:3857"


def test_srs_rejected(engine):
    with Map() as m:
        with pytest.raises(ConfigError):
            m.srs = "   "


def test_aspect_fix_mode(engine):
    with Map() as m:
        assert m.aspect_fix_mode is AspectFixMode.GROW_BBOX
        m.aspect_fix_mode = AspectFixMode.RESPECT
        assert m.aspect_fix_mode is AspectFixMode.RESPECT
        m.aspect_fix_mode = "adjust-canvas-height"
        assert m.aspect_fix_mode is AspectFixMode.ADJUST_CANVAS_HEIGHT


def test_aspect_fix_mode_invalid_value(engine, fake_lib):
    with Map() as m:
        with pytest.raises(ConfigError):
            m.aspect_fix_mode = 42
        assert m.ptr.aspect_fix_mode == 0


def test_background_color(engine):
    with Map() as m:
        assert m.background_color == Color(0, 0, 0, 0)
        m.background_color = Color(100, 50, 200, 150)
        assert m.background_color == Color(100, 50, 200, 150)

        img = m.render_image(RenderOptions(format="png24"))
        r, g, b, a = img.getpixel((0, 0))
        for got, want in zip((r, g, b, a), (100, 50, 200, 150)):
            assert abs(got - want) <= 2


def test_background_from_style(engine, tmp_path):
    with Map() as m:
        m.load_string("<Map background-color='#336699'/>", tmp_path)
        assert m.background_color == Color(0x33, 0x66, 0x99, 255)


def test_resize_keeps_srs_and_scales(engine, style_path):
    with Map() as m:
        m.load(style_path)
        m.resize(400, 300)
        assert m.srs == "+init=epsg:4326"
        m.zoom_all()
        wide = m.scale_denominator()
        m.resize(800, 600)
        m.zoom_all()
        assert m.scale_denominator() == pytest.approx(wide / 2)
        assert m.render_image().size == (800, 600)


def test_zoom_all_without_layers(engine):
    with Map() as m:
        with pytest.raises(ZoomError) as excinfo:
            m.zoom_all()
        assert "zoom_all" in excinfo.value.diagnostic


def test_zoom_to_box_frees_bbox(engine, fake_lib):
    with Map() as m:
        m.zoom_to_box(-180, -90, 180, 90)
        assert m.ptr.extent == (-180, -90, 180, 90)
        m.zoom_to(BBox(0, 0, 10, 10))
        assert m.ptr.extent == (0, 0, 10, 10)
    assert fake_lib.free_calls["bbox"] == 2


def test_max_extent_and_buffer_size(engine):
    with Map() as m:
        m.set_max_extent(-20, -10, 20, 10)
        assert m.ptr.max_extent == (-20, -10, 20, 10)
        m.reset_max_extent()
        assert m.ptr.max_extent is None
        m.set_buffer_size(128)
        assert m.ptr.buffer_size == 128


def test_add_layer_programmatically(engine):
    ds = Datasource({"type": "csv", "extent": "1,2,3,4"})
    layer = Layer("points", "+init=epsg:4326")
    layer.add_style("points")
    layer.set_datasource(ds)
    with Map() as m:
        m.add_layer(layer)
        layer.free()
        assert m.layer_count() == 1
        assert m.layer_names() == ["points"]
        m.zoom_all()
        assert m.ptr.extent == (1.0, 2.0, 3.0, 4.0)
    ds.free()


def test_layer_index_out_of_range(engine, style_path):
    with Map() as m:
        m.load(style_path)
        with pytest.raises(IndexError):
            m.layer_name(3)
        with pytest.raises(IndexError):
            m.set_layer_active(-1, True)


def test_aspect_fix_mode_failure_diagnostic(engine, fake_lib, monkeypatch):
    def reject(m, mode):
        fake_lib.register_error = b"aspect fix mode not supported"
        return -1

    monkeypatch.setattr(fake_lib, "mapnik_map_set_aspect_fix_mode", reject)
    with Map() as m:
        with pytest.raises(ConfigError) as excinfo:
            m.aspect_fix_mode = AspectFixMode.RESPECT
        assert excinfo.value.diagnostic == "aspect fix mode not supported"

        def reject_on_map(native_map, mode):
            native_map.err = b"map rejected aspect fix mode"
            return -1

        monkeypatch.setattr(fake_lib, "mapnik_map_set_aspect_fix_mode", reject_on_map)
        with pytest.raises(ConfigError) as excinfo:
            m.aspect_fix_mode = AspectFixMode.RESPECT
        assert excinfo.value.diagnostic == "map rejected aspect fix mode"
