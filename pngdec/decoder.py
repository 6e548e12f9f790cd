"""Top-level PNG decoding: bytes or a file path in, DecodedImage out."""

import logging
import os
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np

from pngdec.chunk import ChunkReader, ChunkType, RawChunk
from pngdec.defilter import defilter, to_canonical
from pngdec.errors import BadFilePath, FailedDecoding, FailedToOpenFile, FailedToReadFile
from pngdec.metadata import ImageMetadata, channel_count, read_metadata

log = logging.getLogger(__name__)

CANONICAL_CHANNELS = 4


@dataclass(frozen=True)
class DecoderOptions:
    strict_end_chunk: bool = False

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DecoderOptions":
        decoder_cfg = config.get("decoder", {}) or {}
        return cls(strict_end_chunk=bool(decoder_cfg.get("strict_end_chunk", False)))


@dataclass(frozen=True, eq=False)
class DecodedImage:
    metadata: ImageMetadata
    pixels: np.ndarray
    chunks: Tuple[RawChunk, ...] = field(default=(), repr=False)

    def __eq__(self, other):
        if not isinstance(other, DecodedImage):
            return NotImplemented
        return self.metadata == other.metadata and np.array_equal(self.pixels, other.pixels)

    def __hash__(self):
        return hash((self.metadata, self.pixels.tobytes()))

    @property
    def width(self) -> int:
        return self.metadata.width

    @property
    def height(self) -> int:
        return self.metadata.height

    @property
    def channels(self) -> int:
        return CANONICAL_CHANNELS

    @property
    def source_channels(self) -> int:
        return self.metadata.channels

    def tobytes(self) -> bytes:
        """Canonical RGBA bytes, row-major."""
        return self.pixels.tobytes()

    def summary(self) -> str:
        return (f"{self.width}x{self.height} {self.metadata.color_name}, "
                f"{self.metadata.bit_depth}-bit, {len(self.chunks)} chunk(s)")


def assemble_payload(chunks: Iterable[RawChunk]) -> bytes:
    """Concatenate IDAT payloads in file order."""
    return b"".join(c.payload for c in chunks if c.type_tag == ChunkType.IDAT.value)


def decompress(payload: bytes) -> bytes:
    try:
        return zlib.decompress(payload)
    except zlib.error as e:
        raise FailedDecoding(f"Failed to inflate image data: {e}") from e


def decode_png(data: bytes, options: Optional[DecoderOptions] = None) -> DecodedImage:
    """Decode a complete PNG file held in memory.

    Stages run in order and the first error aborts the decode: chunk
    parsing, header checks, color model resolution, IDAT assembly,
    inflation, defiltering and the final RGBA expansion.
    """
    options = options or DecoderOptions()

    reader = ChunkReader(data)
    body = reader.read_chunks(strict_end=options.strict_end_chunk)
    chunks = (reader.header,) + tuple(body)

    meta = read_metadata(data)
    bpp = channel_count(meta.color_type, meta.bit_depth)
    log.debug("header: %s", meta)

    payload = assemble_payload(chunks)
    log.debug("compressed payload: %d bytes", len(payload))
    inflated = decompress(payload)
    log.debug("inflated payload: %d bytes", len(inflated))

    rows = defilter(inflated, meta)
    pixels = to_canonical(rows, meta.width, bpp)
    pixels.flags.writeable = False
    return DecodedImage(metadata=meta, pixels=pixels, chunks=chunks)


def read_png_file(path: str) -> bytes:
    """Read a whole file, mapping failures onto the decode error kinds."""
    if not os.path.exists(path):
        raise BadFilePath(path)
    try:
        f = open(path, "rb")
    except OSError as e:
        raise FailedToOpenFile(path) from e
    with f:
        try:
            return f.read()
        except OSError as e:
            raise FailedToReadFile(path) from e


def load_png(path: str, options: Optional[DecoderOptions] = None) -> DecodedImage:
    data = read_png_file(path)
    log.info("Decoding %s (%d bytes)", path, len(data))
    return decode_png(data, options)
