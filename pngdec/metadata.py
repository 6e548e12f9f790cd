"""Header metadata extraction and color model resolution."""

import struct
from dataclasses import dataclass
from enum import IntEnum

from pngdec.errors import InvalidHeader, InvalidStructure, UnsupportedFeature

# The header payload sits right after the signature (8) and the header's length and type (8)
HEADER_PAYLOAD_OFFSET = 16
HEADER_LAYOUT = ">IIBBBBB"


class ColorType(IntEnum):
    GRAYSCALE = 0
    TRUECOLOR = 2
    INDEXED = 3
    GRAYSCALE_ALPHA = 4
    TRUECOLOR_ALPHA = 6


def channel_count(color_type: int, bit_depth: int) -> int:
    """Number of channels (bytes per pixel at 8 bits) for a color type.

    Args:
        color_type: IHDR color type value
        bit_depth: IHDR bit depth value

    Returns:
        1 for grayscale, 2 for grayscale+alpha, 3 for truecolor, 4 for truecolor+alpha
    """
    if color_type == ColorType.GRAYSCALE:
        return 1
    if color_type == ColorType.INDEXED:
        raise UnsupportedFeature("indexed-color (palette) images")

    channels = {
        ColorType.TRUECOLOR: 3,
        ColorType.GRAYSCALE_ALPHA: 2,
        ColorType.TRUECOLOR_ALPHA: 4,
    }.get(color_type)
    if channels is None:
        raise InvalidHeader(f"Unknown color type {color_type}")
    if bit_depth not in (8, 16):
        raise InvalidHeader(
            f"Bit depth {bit_depth} is not allowed for color type {color_type}"
        )
    return channels


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    bit_depth: int
    color_type: int
    compression_method: int
    filter_method: int
    interlace_method: int

    @property
    def channels(self) -> int:
        return channel_count(self.color_type, self.bit_depth)

    @property
    def color_name(self) -> str:
        try:
            return ColorType(self.color_type).name.lower()
        except ValueError:
            return f"unknown({self.color_type})"

    @property
    def row_bytes(self) -> int:
        """Bytes of pixel data in one scanline, excluding the filter byte."""
        return self.width * self.channels


def read_metadata(data: bytes) -> ImageMetadata:
    """Read the 13-byte header payload at its fixed offset in the file buffer.

    Rejects every header the decoder cannot handle: compression or filter
    method other than 0, interlacing, and bit depths other than 8.
    """
    end = HEADER_PAYLOAD_OFFSET + struct.calcsize(HEADER_LAYOUT)
    if len(data) < end:
        raise InvalidStructure(f"File is {len(data)} bytes; the header ends at byte {end}")

    fields = struct.unpack_from(HEADER_LAYOUT, data, HEADER_PAYLOAD_OFFSET)
    meta = ImageMetadata(*fields)

    if meta.width == 0 or meta.height == 0:
        raise InvalidHeader(f"Image dimensions {meta.width}x{meta.height} must be non-zero")
    if meta.compression_method != 0:
        raise UnsupportedFeature(f"compression method {meta.compression_method}")
    if meta.filter_method != 0:
        raise UnsupportedFeature(f"filter method {meta.filter_method}")
    if meta.interlace_method != 0:
        raise UnsupportedFeature(f"interlace method {meta.interlace_method}")
    if meta.bit_depth != 8:
        raise UnsupportedFeature(f"bit depth {meta.bit_depth}")
    return meta
