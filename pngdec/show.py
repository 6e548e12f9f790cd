"""Decode a PNG file and optionally display it or dump its raw RGBA pixels.

Usage:
    python -m pngdec.show path/to/image.png
    python -m pngdec.show path/to/image.png --display --scale 8
    python -m pngdec.show path/to/image.png --output image.rgba
"""

import argparse
import logging
import os
import sys

from pngdec.decoder import DecoderOptions, load_png
from pngdec.display import export_raw, show_image
from pngdec.errors import DecodeError
from pngdec.utils.config import load_config

log = logging.getLogger("pngdec")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Decode a PNG file into raw RGBA pixels")
    parser.add_argument("path", help="Path to the PNG file")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML config (default: config/config.yaml if present)")
    parser.add_argument("--display", action="store_true", help="Show the image in a window")
    parser.add_argument("--scale", type=int, default=None, help="Display upscale factor")
    parser.add_argument("--output", help="Write raw RGBA bytes to this path")
    parser.add_argument("--export", action="store_true",
                        help="Write raw RGBA bytes to <export.output_dir>/<name>.rgba")
    parser.add_argument("--strict", action="store_true",
                        help="Treat a missing or misplaced IEND chunk as an error")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config = load_config(args.config)

    level = "DEBUG" if args.verbose else str(config["logging"].get("level", "INFO")).upper()
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    options = DecoderOptions.from_config(config)
    if args.strict:
        options = DecoderOptions(strict_end_chunk=True)

    try:
        image = load_png(args.path, options)
    except DecodeError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1

    name = os.path.basename(args.path)
    print(f"{name}: {image.summary()}")

    if args.output:
        export_raw(image, args.output)
    if args.export:
        stem = os.path.splitext(name)[0]
        export_raw(image, os.path.join(config["export"]["output_dir"], f"{stem}.rgba"))

    display_cfg = config["display"]
    if args.display or display_cfg.get("enabled"):
        scale = args.scale if args.scale is not None else int(display_cfg.get("scale") or 1)
        show_image(image, display_cfg.get("window_name") or name,
                   scale=scale, wait_ms=int(display_cfg.get("wait_ms") or 0))
    return 0


if __name__ == "__main__":
    sys.exit(main())
