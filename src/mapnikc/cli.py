"""CLI entrypoint for the mapnik C API bindings."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from PIL import Image

from .config import DEFAULT_CONFIG_NAME, AppConfig, load_config
from .engine import get_engine, setup
from .errors import MapnikError
from .map import Map
from .render import encode
from .selection import Status
from .util import setup_logging, write_bytes_atomic
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("mapnikc.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapnikc",
        description="Render maps through the mapnik C API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--config",
            default=None,
            help=f"Path to YAML config (default: ./{DEFAULT_CONFIG_NAME} when present).",
        )
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    version_p = subparsers.add_parser("version", help="Print the engine version.")
    add_common(version_p)

    layers_p = subparsers.add_parser("layers", help="List the layers of a style document.")
    add_common(layers_p)
    layers_p.add_argument("style", help="Style XML path.")

    render_p = subparsers.add_parser("render", help="Render a style document to a file.")
    add_common(render_p)
    render_p.add_argument("style", help="Style XML path.")
    render_p.add_argument("output", help="Output image path.")
    render_p.add_argument("--width", type=int, default=None, help="Canvas width in pixels.")
    render_p.add_argument("--height", type=int, default=None, help="Canvas height in pixels.")
    render_p.add_argument("--format", default=None, help="Output format, e.g. png256, png32, jpeg80.")
    render_p.add_argument("--scale", type=float, default=None, help="Fixed scale denominator.")
    render_p.add_argument("--scale-factor", type=float, default=None, help="Symbol/font size multiplier.")
    render_p.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("MINX", "MINY", "MAXX", "MAXY"),
        default=None,
        help="Zoom to this extent instead of all layers.",
    )
    render_p.add_argument(
        "--include",
        action="append",
        default=[],
        help="Force a layer on by name. Can be repeated.",
    )
    render_p.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Force a layer off by name. Can be repeated.",
    )

    encode_p = subparsers.add_parser("encode", help="Re-encode an image with the engine codecs.")
    add_common(encode_p)
    encode_p.add_argument("input", help="Input image readable by Pillow.")
    encode_p.add_argument("output", help="Output path.")
    encode_p.add_argument("--format", required=True, help="Output format, e.g. png256.")

    check_p = subparsers.add_parser("check", help="Validate config, library, plugin and font dirs.")
    add_common(check_p)
    check_p.add_argument("--style", default=None, help="Also try loading this style document.")

    return parser


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config is not None:
        return load_config(args.config)
    default_path = Path(DEFAULT_CONFIG_NAME)
    if default_path.exists():
        return load_config(default_path)
    return AppConfig.default()


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = _load_config(args)
    setup_logging(cfg.logging.file, verbose=args.verbose)
    setup(cfg.engine)
    return cfg


def _run_version() -> int:
    engine = get_engine()
    print(engine.version.string)
    return 0


def _run_layers(cfg: AppConfig, *, style: Path) -> int:
    with Map(cfg.map.width_px, cfg.map.height_px) as m:
        m.load(style)
        for idx in range(m.layer_count()):
            state = "on" if m.layer_is_active(idx) else "off"
            LOGGER.info("%d %s %s", idx, m.layer_name(idx), state)
    return 0


def _run_render(cfg: AppConfig, args: argparse.Namespace) -> int:
    map_cfg = cfg.map
    if args.width is not None:
        map_cfg = replace(map_cfg, width_px=int(args.width))
    if args.height is not None:
        map_cfg = replace(map_cfg, height_px=int(args.height))

    options = cfg.render.options()
    if args.format is not None:
        options = replace(options, format=str(args.format))
    if args.scale is not None:
        options = replace(options, scale=float(args.scale))
    if args.scale_factor is not None:
        options = replace(options, scale_factor=float(args.scale_factor))

    include = {str(name) for name in args.include}
    exclude = {str(name) for name in args.exclude}

    def selector(layer_name: str) -> Status:
        if layer_name in exclude:
            return Status.EXCLUDE
        if layer_name in include:
            return Status.INCLUDE
        return Status.DEFAULT

    with Map(map_cfg.width_px, map_cfg.height_px) as m:
        m.load(Path(args.style))
        map_cfg.apply(m)
        if include or exclude:
            m.select_layers(selector)
            m.log_layer_status()
        if args.bbox is not None:
            m.zoom_to_box(*args.bbox)
        else:
            m.zoom_all()
        LOGGER.debug("Scale denominator: %s", m.scale_denominator())
        output = m.render_to_file(Path(args.output), options)
    LOGGER.info("Map written to %s", output)
    return 0


def _run_encode(args: argparse.Namespace) -> int:
    with Image.open(args.input) as src:
        image = src if src.mode in ("RGBA", "RGBa") else src.convert("RGBA")
        payload = encode(image, str(args.format))
    output = Path(args.output)
    write_bytes_atomic(output, payload)
    LOGGER.info("Encoded %s as %s to %s (%d bytes)", args.input, args.format, output, len(payload))
    return 0


def _run_check(cfg: AppConfig, *, style: str | None) -> int:
    report = Validator(cfg).run(style=Path(style) if style else None)
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    command = str(args.command)
    if command == "check":
        cfg = _load_config(args)
        setup_logging(cfg.logging.file, verbose=args.verbose)
        try:
            setup(cfg.engine)
        except MapnikError as exc:
            LOGGER.error("Engine setup failed: %s", exc)
        return _run_check(cfg, style=args.style)

    cfg = _load_and_setup(args)
    if command == "version":
        return _run_version()
    if command == "layers":
        return _run_layers(cfg, style=Path(args.style))
    if command == "render":
        return _run_render(cfg, args)
    if command == "encode":
        return _run_encode(args)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        return _dispatch(args)
    except MapnikError as exc:
        LOGGER.error("%s", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
