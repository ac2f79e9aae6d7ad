"""Command-line entry point."""

from __future__ import annotations
import argparse
import sys
import traceback
from typing import Mapping, Optional, Sequence

from . import __version__
from .config import DEFAULT_SCREEN_SIZE, ViewerConfig, parse_screen_size, screen_size_from_env
from .errors import ConfigError, EnumerationError
from .logging import log, set_enabled
from .sources import SourceList, resolve_sources


def _screen_size_arg(value: str):
    try:
        return parse_screen_size(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="riv",
        description="Fast keyboard-driven image viewer.",
    )
    parser.add_argument("paths", nargs="*",
                        help="image file, directory, or several files (default: current directory)")
    parser.add_argument("-s", "--screen-size", type=_screen_size_arg, metavar="W,H",
                        help="viewport size; overrides the SCREEN_SIZE environment variable")
    parser.add_argument("-p", "--prefetch", type=int, metavar="N",
                        help="images to keep decoded ahead of and behind the cursor")
    parser.add_argument("--prefetch-ahead", type=int, metavar="N")
    parser.add_argument("--prefetch-behind", type=int, metavar="N")
    parser.add_argument("-w", "--workers", type=int, metavar="N",
                        help="decode worker threads (0 decodes on the main thread)")
    parser.add_argument("--min-zoom", type=float)
    parser.add_argument("--max-zoom", type=float)
    parser.add_argument("--max-pixels", type=int,
                        help="refuse images with more decoded pixels than this")
    parser.add_argument("-u", "--up-scale", dest="upscale", action="store_true", default=None,
                        help="let small images grow to fill the viewport (default)")
    parser.add_argument("--no-up-scale", dest="upscale", action="store_false",
                        help="never enlarge images past 1:1 at fit")
    parser.add_argument("-l", "--low-performance", action="store_true", default=None,
                        help="one decode worker and nearest-neighbour scaling")
    parser.add_argument("-q", "--quiet", action="store_true", help="disable log output")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> ViewerConfig:
    """Merge defaults, SCREEN_SIZE and command-line options into a ViewerConfig."""
    explicit = args.screen_size or screen_size_from_env(environ)
    size = explicit or DEFAULT_SCREEN_SIZE
    ahead = args.prefetch_ahead if args.prefetch_ahead is not None else args.prefetch
    behind = args.prefetch_behind if args.prefetch_behind is not None else args.prefetch
    return ViewerConfig().with_overrides(
        width=size[0],
        height=size[1],
        prefetch_ahead=ahead,
        prefetch_behind=behind,
        workers=args.workers,
        min_zoom=args.min_zoom,
        max_zoom=args.max_zoom,
        max_pixels=args.max_pixels,
        upscale=args.upscale,
        low_performance=args.low_performance,
        size_from_display=explicit is None,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.quiet:
        set_enabled(False)

    try:
        config = build_config(args)
    except ConfigError as e:
        parser.error(str(e))

    log("[MAIN] Starting riv")
    try:
        images, start_index = resolve_sources(args.paths)
    except EnumerationError as e:
        sys.stderr.write(f"riv: {e}\n")
        return 1
    log(f"[DIR] Found {len(images)} images, start={start_index}")

    # Imported late so --help and --version work without a display stack
    from .app import Application
    from .navigator import Navigator

    navigator = Navigator(SourceList(images), config, start_index=start_index)
    app = Application(navigator, config)
    try:
        app.initialize()
    except Exception as e:
        log(f"[INIT][CRITICAL] Failed to initialize window: {e!r}")
        log(f"[INIT][CRITICAL] Traceback:\n{traceback.format_exc()}")
        navigator.cache.close()
        return 2
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
