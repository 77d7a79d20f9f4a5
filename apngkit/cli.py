"""Command-line entry point: inspect, extract, render and assemble APNGs."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from apngkit.assets.cache import AnimationCache
from apngkit.assets.codec import read_image
from apngkit.assets.extract import extract_frames, frame_file_name
from apngkit.config import AppConfig, load_config
from apngkit.constants import MAX_COMPRESSION_LEVEL, MIN_COMPRESSION_LEVEL
from apngkit.encode.encoder import encode_frames, write_png
from apngkit.encode.filters import ScanlineFilter
from apngkit.errors import ApngError

logger = logging.getLogger(__name__)


def cmd_info(args: argparse.Namespace, config: AppConfig) -> int:
    cache = AnimationCache.from_config(config)
    for name in args.files:
        animation = cache.get_or_load(name)
        kind = "animated" if animation.is_animated else "still"
        plays = "forever" if animation.loops_forever else f"{animation.num_plays}x"
        print(f"{name}: {animation.width}x{animation.height} {kind}, "
              f"{animation.frame_count} frames, {animation.duration_ms:.0f} ms, loops {plays}")
        if animation.cover_frame is not None:
            print("  cover frame present")
        for i, frame in enumerate(animation.frames):
            print(f"  frame {i:3d}: {frame.duration_ms:8.1f} ms")
    return 0


def cmd_extract(args: argparse.Namespace, config: AppConfig) -> int:
    count = extract_frames(args.file, args.output_dir)
    print(f"Extracted {count} frames")
    return 0


def cmd_render(args: argparse.Namespace, config: AppConfig) -> int:
    cache = AnimationCache.from_config(config)
    enc = config.encoder
    for name in args.files:
        source = Path(name)
        out = Path(args.output_dir) if args.output_dir else source.parent
        out.mkdir(parents=True, exist_ok=True)

        animation = cache.get_or_load(source)
        for i, frame in enumerate(animation.frames):
            target = out / frame_file_name(source.with_suffix(".png"), i)
            with open(target, "wb") as f:
                write_png(f, frame.pixels, enc.compression_level, enc.filter)
        print(f"Rendered {animation.frame_count} frames of {source.name} into {out}")
    return 0


def cmd_assemble(args: argparse.Namespace, config: AppConfig) -> int:
    enc = config.encoder
    if args.level is not None:
        enc.compression_level = args.level
    if args.filter is not None:
        enc.filter = ScanlineFilter.parse(args.filter)
    if args.loop is not None:
        enc.num_plays = args.loop
    if args.no_optimise:
        enc.optimise = False
    if args.hidden_cover:
        enc.first_frame_in_animation = False
    if args.delay is not None:
        enc.default_delay_ms = args.delay
    enc.validate()

    frames = [read_image(p) for p in args.frames]
    output = Path(args.output)
    with open(output, "wb") as f:
        encode_frames(f, frames, None, enc)
    print(f"Wrote {output} ({len(frames)} frames, {output.stat().st_size / 1024:.1f} KB)")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    from apngkit import __version__

    parser = argparse.ArgumentParser(
        prog="apngkit",
        description="Decode, inspect and build Animated PNG files",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_info = sub.add_parser("info", help="Show frame count, size and timing")
    p_info.add_argument("files", nargs="+", help="APNGs or still images")
    p_info.set_defaults(func=cmd_info)

    p_extract = sub.add_parser("extract", help="Split raw frames into PNG files")
    p_extract.add_argument("file", help="APNG file")
    p_extract.add_argument("-o", "--output-dir", default=None, help="Destination directory")
    p_extract.set_defaults(func=cmd_extract)

    p_render = sub.add_parser("render", help="Write every composited frame as a PNG")
    p_render.add_argument("files", nargs="+", help="APNG files")
    p_render.add_argument("-o", "--output-dir", default=None, help="Destination directory")
    p_render.set_defaults(func=cmd_render)

    p_asm = sub.add_parser("assemble", help="Build an APNG from still images")
    p_asm.add_argument("output", help="Output APNG path")
    p_asm.add_argument("frames", nargs="+", help="Input frames, in order")
    p_asm.add_argument("--delay", type=float, default=None, help="Delay per frame in ms")
    p_asm.add_argument("--loop", type=int, default=None, help="Play count (0 = forever)")
    p_asm.add_argument(
        "--filter", choices=[f.name.lower() for f in ScanlineFilter], default=None,
        help="Scanline filter",
    )
    p_asm.add_argument(
        "--level", type=int, default=None,
        help=f"Compression level {MIN_COMPRESSION_LEVEL}-{MAX_COMPRESSION_LEVEL}",
    )
    p_asm.add_argument(
        "--no-optimise", action="store_true", help="Write full frames, no differencing",
    )
    p_asm.add_argument(
        "--hidden-cover", action="store_true",
        help="Make the first image a cover frame that is not part of the animation",
    )
    p_asm.set_defaults(func=cmd_assemble)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = load_config(Path(args.config) if args.config else None)
        return args.func(args, config)
    except (ApngError, OSError) as exc:
        logger.error("%s: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
