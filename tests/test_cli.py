from __future__ import annotations

import io
import logging

import pytest
from PIL import Image

from mapnikc import cli


@pytest.fixture
def cli_env(engine, tmp_path, monkeypatch):
    plugins = tmp_path / "plugins"
    fonts = tmp_path / "fonts"
    plugins.mkdir()
    fonts.mkdir()
    monkeypatch.setenv("MAPNIK_INPUT_PLUGINS_DIRECTORY", str(plugins))
    monkeypatch.setenv("MAPNIK_FONT_DIRECTORY", str(fonts))
    monkeypatch.setenv("MAPNIKC_LIBRARY", str(tmp_path / "libmapnik_c_api.so"))
    monkeypatch.setattr(cli, "setup_logging", lambda log_file=None, verbose=False: None)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version(cli_env, capsys):
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out.strip() == "3.0.10"


def test_layers(cli_env, style_path, caplog):
    caplog.set_level(logging.INFO, logger="mapnikc.cli")
    assert cli.main(["layers", str(style_path)]) == 0
    assert "0 layerA on" in caplog.text
    assert "2 layerC on" in caplog.text
    assert "layerD" not in caplog.text


def test_render_writes_file(cli_env, style_path, fake_lib):
    out = cli_env / "out" / "map.png"
    code = cli.main(
        [
            "render",
            str(style_path),
            str(out),
            "--width",
            "64",
            "--height",
            "32",
            "--format",
            "png32",
            "--exclude",
            "layerA",
        ]
    )
    assert code == 0
    img = Image.open(io.BytesIO(out.read_bytes()))
    assert img.size == (64, 32)
    assert fake_lib.datasource_paths == [str(cli_env / "plugins")]


def test_render_uses_config_file(cli_env, style_path):
    (cli_env / "mapnikc.yaml").write_text(
        "map:\n  width_px: 40\n  height_px: 20\n  background: '#00ff00'\nrender:\n  format: png24\n",
        encoding="utf-8",
    )
    out = cli_env / "cfg.png"
    assert cli.main(["render", str(style_path), str(out), "--bbox", "0", "0", "10", "5"]) == 0
    img = Image.open(out).convert("RGBA")
    assert img.size == (40, 20)
    assert img.getpixel((0, 0)) == (0, 255, 0, 255)


def test_render_invalid_format_fails_cleanly(cli_env, style_path):
    out = cli_env / "bad.png"
    assert cli.main(["render", str(style_path), str(out), "--format", "invalidformat"]) == 1
    assert not out.exists()


def test_render_missing_style(cli_env):
    assert cli.main(["render", str(cli_env / "missing.xml"), str(cli_env / "x.png")]) == 1


def test_encode(cli_env):
    src = cli_env / "in.png"
    Image.new("RGB", (8, 4), (10, 20, 30)).save(src)
    out = cli_env / "re.png"
    assert cli.main(["encode", str(src), str(out), "--format", "png256"]) == 0
    assert Image.open(out).convert("RGBA").getpixel((3, 2)) == (10, 20, 30, 255)


def test_encode_unknown_format(cli_env):
    src = cli_env / "in.png"
    Image.new("RGBA", (2, 2)).save(src)
    out = cli_env / "re.bin"
    assert cli.main(["encode", str(src), str(out), "--format", "tiff9"]) == 1
    assert not out.exists()


def test_check_ok(cli_env, style_path, caplog):
    caplog.set_level(logging.INFO, logger="mapnikc.cli")
    assert cli.main(["check", "--style", str(style_path)]) == 0
    assert "[OK] Validation completed with no errors." in caplog.text
    assert "Engine version: 3.0.10 (300010)" in caplog.text


def test_check_reports_missing_font_dir(cli_env, caplog):
    (cli_env / "mapnikc.yaml").write_text("engine:\n  fonts_dir: nowhere\n", encoding="utf-8")
    caplog.set_level(logging.INFO, logger="mapnikc.cli")
    assert cli.main(["check"]) == 1
    assert "Font directory does not exist" in caplog.text
