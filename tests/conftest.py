from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FAKE_VERSION, MAP_XML, FakeMapnikLibrary
from mapnikc.engine import Engine, use_engine


@pytest.fixture
def fake_lib() -> FakeMapnikLibrary:
    return FakeMapnikLibrary()


@pytest.fixture
def engine(fake_lib: FakeMapnikLibrary):
    eng = Engine(fake_lib, version=FAKE_VERSION)
    previous = use_engine(eng)
    yield eng
    use_engine(previous)


@pytest.fixture
def style_dir(tmp_path: Path) -> Path:
    (tmp_path / "points.csv").write_text("x,y,name\n1,1,a\n", encoding="utf-8")
    (tmp_path / "map.xml").write_text(MAP_XML, encoding="utf-8")
    return tmp_path


@pytest.fixture
def style_path(style_dir: Path) -> Path:
    return style_dir / "map.xml"
