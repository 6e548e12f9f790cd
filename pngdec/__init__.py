"""Pure-Python PNG decoder.

Decodes 8-bit, non-interlaced grayscale, grayscale+alpha, truecolor and
truecolor+alpha PNG files into a canonical RGBA pixel buffer.
"""

from .errors import (
    DecodeError,
    BadFilePath,
    FailedToOpenFile,
    FailedToReadFile,
    InvalidSignature,
    InvalidStructure,
    InvalidHeader,
    UnsupportedFeature,
    FailedChecksum,
    FailedDecoding,
    InvalidScanlineFilter
)

from .chunk import ChunkType, RawChunk, ChunkReader, read_chunks
from .metadata import ColorType, ImageMetadata, channel_count, read_metadata
from .defilter import paeth_predictor, unfilter_scanline, defilter, to_canonical
from .decoder import (
    DecoderOptions,
    DecodedImage,
    assemble_payload,
    decompress,
    decode_png,
    read_png_file,
    load_png
)
