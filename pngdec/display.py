"""Presentation and export of decoded images.

Both take the canonical RGBA buffer as-is; no pixel reinterpretation
happens here beyond OpenCV's BGRA channel order.
"""

import logging
from pathlib import Path

import cv2
import numpy as np

from pngdec.decoder import DecodedImage

log = logging.getLogger(__name__)


def to_bgra(image: DecodedImage) -> np.ndarray:
    """Canonical RGBA pixels converted to OpenCV's BGRA order."""
    return cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2BGRA)


def show_image(image: DecodedImage, window_name: str, scale: int = 1, wait_ms: int = 0):
    """
    Display a decoded image in an OpenCV window.

    Args:
        image: Decoded image
        window_name: Window title, typically the source file's base name
        scale: Integer upscale factor (nearest neighbour) for small images
        wait_ms: cv2.waitKey delay; 0 blocks until a key is pressed
    """
    frame = to_bgra(image)
    if scale > 1:
        frame = cv2.resize(frame, (image.width * scale, image.height * scale),
                           interpolation=cv2.INTER_NEAREST)

    cv2.imshow(window_name, frame)
    cv2.waitKey(wait_ms)
    cv2.destroyWindow(window_name)


def export_raw(image: DecodedImage, output_path) -> Path:
    """Write the canonical RGBA bytes (width * height * 4) to `output_path`."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(image.tobytes())
    log.info("Wrote raw RGBA to %s (%dx%d, %d bytes)", path, image.width, image.height,
             image.pixels.nbytes)
    return path
