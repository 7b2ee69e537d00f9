"""Environment and config validation for the `check` command."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from . import _native
from .config import AppConfig
from .engine import default_fonts_dir, default_plugins_dir, get_engine
from .errors import MapnikError
from .map import Map


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Checks that the library, plugin and font dirs, and an optional style are usable."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self, *, style: Path | None = None) -> ValidationReport:
        report = ValidationReport()
        self._validate_library(report)
        self._validate_directory(
            report,
            label="Datasource plugin directory",
            configured=self.cfg.engine.plugins_dir,
            fallback=default_plugins_dir,
        )
        self._validate_directory(
            report,
            label="Font directory",
            configured=self.cfg.engine.fonts_dir,
            fallback=default_fonts_dir,
        )
        if style is not None:
            self._validate_style(report, style)
        return report

    def _validate_library(self, report: ValidationReport) -> None:
        try:
            resolved = _native.find_library(self.cfg.engine.library)
        except MapnikError as exc:
            report.add_error(str(exc))
            return
        report.add_info(f"C API library: {resolved}")
        try:
            engine = get_engine()
        except MapnikError as exc:
            report.add_error(str(exc))
            return
        report.add_info(f"Engine version: {engine.version} ({engine.version.numeric})")

    def _validate_directory(
        self,
        report: ValidationReport,
        *,
        label: str,
        configured: Path | None,
        fallback: Callable[[], Path | None],
    ) -> None:
        path = configured if configured is not None else fallback()
        if path is None:
            report.add_warning(f"{label} not configured and not detectable.")
        elif not path.is_dir():
            report.add_error(f"{label} does not exist: {path}")
        else:
            report.add_info(f"{label}: {path}")

    def _validate_style(self, report: ValidationReport, style: Path) -> None:
        if not style.exists():
            report.add_error(f"Style document not found: {style}")
            return
        try:
            with Map(self.cfg.map.width_px, self.cfg.map.height_px) as m:
                m.load(style)
                report.add_info(f"Style {style} loaded with {m.layer_count()} layers.")
                try:
                    m.zoom_all()
                except MapnikError as exc:
                    report.add_warning(f"zoom_all failed for {style}: {exc}")
        except MapnikError as exc:
            report.add_error(f"Style {style} failed to load: {exc}")


def format_report_lines(report: ValidationReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation completed with no errors.")
    return lines
