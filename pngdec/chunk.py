"""Chunk model and chunk stream parser.

A PNG file is the 8-byte signature followed by a sequence of chunks. Each
chunk is a 4-byte big-endian length, a 4-byte type tag, ``length`` bytes of
payload and a 4-byte CRC-32 computed over the type tag and payload.
"""

import logging
import struct
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import List

from pngdec.errors import (
    FailedChecksum,
    InvalidHeader,
    InvalidSignature,
    InvalidStructure,
    UnsupportedFeature,
)

log = logging.getLogger(__name__)

PNG_SIGNATURE = bytes([137, 80, 78, 71, 13, 10, 26, 10])

HEADER_PAYLOAD_LENGTH = 13
# length + type tag + CRC
CHUNK_OVERHEAD = 12
# signature + header chunk + empty data chunk + terminal chunk
MIN_PNG_SIZE = len(PNG_SIGNATURE) + (CHUNK_OVERHEAD + HEADER_PAYLOAD_LENGTH) + 2 * CHUNK_OVERHEAD


class ChunkType(Enum):
    """Chunk types the parser treats specially."""
    IHDR = b"IHDR"
    PLTE = b"PLTE"
    IDAT = b"IDAT"
    IEND = b"IEND"


KNOWN_TYPES = frozenset(t.value for t in ChunkType)


@dataclass(frozen=True)
class RawChunk:
    length: int
    type_tag: bytes
    payload: bytes
    crc: int

    @property
    def type_name(self) -> str:
        return self.type_tag.decode("latin-1")

    @property
    def is_critical(self) -> bool:
        # Bit 5 of the first type byte clear (uppercase letter) marks a critical chunk
        return not self.type_tag[0] & 0x20

    def compute_crc(self) -> int:
        return zlib.crc32(self.type_tag + self.payload) & 0xFFFFFFFF

    @property
    def crc_ok(self) -> bool:
        return self.compute_crc() == self.crc

    def verify(self) -> None:
        """Raise FailedChecksum if the stored CRC does not match the chunk contents."""
        if not self.crc_ok:
            raise FailedChecksum(self.type_name, self.crc, self.compute_crc())


class ChunkReader:
    """Cursor over a complete PNG byte buffer.

    Construction validates the minimum size, the signature and the header
    chunk framing; ``read_chunks`` then walks the rest of the buffer.
    """

    def __init__(self, data: bytes):
        data = bytes(data)
        if len(data) < MIN_PNG_SIZE:
            raise InvalidStructure(
                f"File is {len(data)} bytes; a PNG needs at least {MIN_PNG_SIZE}"
            )
        if data[:len(PNG_SIGNATURE)] != PNG_SIGNATURE:
            raise InvalidSignature()
        self._data = data
        self.position = len(PNG_SIGNATURE)
        self.header = self._read_header()

    @property
    def remaining(self) -> int:
        return len(self._data) - self.position

    def _read_u32(self) -> int:
        (value,) = struct.unpack_from(">I", self._data, self.position)
        self.position += 4
        return value

    def _read_bytes(self, count: int) -> bytes:
        chunk = self._data[self.position:self.position + count]
        self.position += count
        return chunk

    def _read_header(self) -> RawChunk:
        length, type_tag = struct.unpack_from(">I4s", self._data, self.position)
        if length != HEADER_PAYLOAD_LENGTH:
            raise InvalidHeader(
                f"Header chunk declares length {length}, expected {HEADER_PAYLOAD_LENGTH}"
            )
        if type_tag != ChunkType.IHDR.value:
            raise InvalidHeader(f"First chunk is {type_tag!r}, expected b'IHDR'")
        header = self.read_chunk()
        header.verify()
        return header

    def read_chunk(self) -> RawChunk:
        """Read one chunk at the cursor and advance past it. The CRC is not checked."""
        start = self.position
        if self.remaining < CHUNK_OVERHEAD:
            raise InvalidStructure(
                f"Truncated chunk at offset {start}: {self.remaining} bytes left"
            )
        length = self._read_u32()
        if length > self.remaining - 8:
            raise InvalidStructure(
                f"Chunk at offset {start} declares {length} payload bytes "
                f"but only {self.remaining - 8} remain"
            )
        type_tag = self._read_bytes(4)
        payload = self._read_bytes(length)
        crc = self._read_u32()
        return RawChunk(length=length, type_tag=type_tag, payload=payload, crc=crc)

    def read_chunks(self, strict_end: bool = False) -> List[RawChunk]:
        """Read every chunk after the header until the buffer is exhausted.

        Palette chunks abort with UnsupportedFeature before their CRC is
        looked at; every other chunk is CRC-checked. The IEND chunk is
        consumed but not returned. With ``strict_end`` a missing IEND, or
        any bytes following it, is an InvalidStructure error.
        """
        chunks = []
        seen_end = False
        while self.position < len(self._data):
            chunk = self.read_chunk()
            if chunk.type_tag == ChunkType.PLTE.value:
                raise UnsupportedFeature("palette (PLTE) chunks")
            chunk.verify()
            log.debug("chunk %s, %d bytes", chunk.type_name, chunk.length)
            if chunk.is_critical and chunk.type_tag not in KNOWN_TYPES:
                log.warning("Ignoring unknown critical chunk %s", chunk.type_name)
            if chunk.type_tag == ChunkType.IEND.value:
                seen_end = True
                if self.remaining:
                    if strict_end:
                        raise InvalidStructure(
                            f"{self.remaining} bytes follow the IEND chunk"
                        )
                    log.warning("%d bytes follow the IEND chunk", self.remaining)
                continue
            chunks.append(chunk)

        if strict_end and not seen_end:
            raise InvalidStructure("Chunk stream ends without an IEND chunk")
        return chunks


def read_chunks(data: bytes, strict_end: bool = False) -> List[RawChunk]:
    """Validate ``data`` and return its chunks, header first, IEND excluded."""
    reader = ChunkReader(data)
    return [reader.header] + reader.read_chunks(strict_end=strict_end)
