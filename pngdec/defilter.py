"""Scanline defiltering.

Each scanline of the inflated stream is a filter-type byte followed by
``width * bpp`` filtered bytes. Reconstruction adds a predictor to each
filtered byte (mod 256). Predictors read the already reconstructed bytes
``bpp`` positions to the left (a), directly above (b) and above-left (c),
so rows must be processed top to bottom and bytes left to right.
"""

import logging
from typing import Union

import numpy as np

from pngdec.errors import InvalidScanlineFilter, InvalidStructure
from pngdec.metadata import ImageMetadata

log = logging.getLogger(__name__)

FILTER_NONE = 0
FILTER_SUB = 1
FILTER_UP = 2
FILTER_AVERAGE = 3
FILTER_PAETH = 4
FILTER_TYPES = (FILTER_NONE, FILTER_SUB, FILTER_UP, FILTER_AVERAGE, FILTER_PAETH)

BytesLike = Union[bytes, bytearray, memoryview, np.ndarray]


def paeth_predictor(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    # Ties resolve to a, then b
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _as_u8(buf: BytesLike) -> np.ndarray:
    if isinstance(buf, np.ndarray):
        return buf.astype(np.uint8, copy=False)
    return np.frombuffer(buf, dtype=np.uint8)


def unfilter_scanline(filter_type: int, scanline: BytesLike, prev_scanline: BytesLike,
                      bpp: int) -> np.ndarray:
    """Reconstruct one scanline.

    Args:
        filter_type: the scanline's leading filter byte
        scanline: filtered bytes of the row, without the filter byte
        prev_scanline: reconstructed previous row (all zeros for the first row)
        bpp: source bytes per pixel, the stride between a byte and its left neighbour

    Returns:
        uint8 array holding the reconstructed row
    """
    cur = _as_u8(scanline)
    prev = _as_u8(prev_scanline)
    if len(prev) != len(cur):
        raise ValueError(f"Previous row has {len(prev)} bytes, current row {len(cur)}")

    if filter_type == FILTER_NONE:
        return cur.copy()

    if filter_type == FILTER_SUB:
        # Per-channel running sum; uint8 accumulation wraps mod 256
        return cur.reshape(-1, bpp).cumsum(axis=0, dtype=np.uint8).reshape(-1)

    if filter_type == FILTER_UP:
        return cur + prev

    if filter_type == FILTER_AVERAGE:
        raw = cur.tolist()
        up = prev.tolist()
        out = bytearray(len(raw))
        for i in range(len(raw)):
            left = out[i - bpp] if i >= bpp else 0
            out[i] = (raw[i] + ((left + up[i]) >> 1)) & 0xFF
        return np.frombuffer(bytes(out), dtype=np.uint8).copy()

    if filter_type == FILTER_PAETH:
        raw = cur.tolist()
        up = prev.tolist()
        out = bytearray(len(raw))
        for i in range(len(raw)):
            if i >= bpp:
                left, up_left = out[i - bpp], up[i - bpp]
            else:
                left = up_left = 0
            out[i] = (raw[i] + paeth_predictor(left, up[i], up_left)) & 0xFF
        return np.frombuffer(bytes(out), dtype=np.uint8).copy()

    raise InvalidScanlineFilter(filter_type)


def defilter(data: bytes, meta: ImageMetadata) -> np.ndarray:
    """Reverse the filtering of every scanline in an inflated image stream.

    Returns a ``(height, width * bpp)`` uint8 array in source channel order.
    """
    bpp = meta.channels
    row_bytes = meta.row_bytes
    expected = meta.height * (1 + row_bytes)
    if len(data) < expected:
        raise InvalidStructure(
            f"Inflated image data is {len(data)} bytes, expected {expected}"
        )
    if len(data) > expected:
        log.warning("Ignoring %d bytes of inflated data past the last scanline",
                    len(data) - expected)

    rows = np.frombuffer(data, dtype=np.uint8, count=expected).reshape(meta.height, 1 + row_bytes)
    out = np.empty((meta.height, row_bytes), dtype=np.uint8)
    previous = np.zeros(row_bytes, dtype=np.uint8)
    for row in range(meta.height):
        filter_type = int(rows[row, 0])
        if filter_type not in FILTER_TYPES:
            raise InvalidScanlineFilter(filter_type, row)
        previous = unfilter_scanline(filter_type, rows[row, 1:], previous, bpp)
        out[row] = previous
    return out


def to_canonical(rows: np.ndarray, width: int, bpp: int) -> np.ndarray:
    """Expand defiltered rows to ``(height, width, 4)`` RGBA.

    Gray is replicated into R, G and B; alpha is 255 unless the source has it.
    """
    pixels = rows.reshape(rows.shape[0], width, bpp)
    if bpp == 4:
        return pixels.copy()

    out = np.empty(pixels.shape[:2] + (4,), dtype=np.uint8)
    out[..., 3] = 255
    if bpp == 3:
        out[..., :3] = pixels
    elif bpp in (1, 2):
        out[..., :3] = pixels[..., :1]
        if bpp == 2:
            out[..., 3] = pixels[..., 1]
    else:
        raise ValueError(f"Unsupported bytes per pixel: {bpp}")
    return out
