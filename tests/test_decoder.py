"""
End-to-end decoding tests: bytes and files in, canonical RGBA out.

Run from project root: pytest tests/test_decoder.py -v
"""

import os
import sys
import numpy as np
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pngdec.decoder as decoder
from pngdec.chunk import RawChunk
from pngdec.decoder import (
    DecodedImage,
    DecoderOptions,
    assemble_payload,
    decode_png,
    decompress,
    load_png,
    read_png_file,
)
from pngdec.errors import (
    BadFilePath,
    DecodeError,
    FailedChecksum,
    FailedDecoding,
    FailedToOpenFile,
    FailedToReadFile,
    InvalidScanlineFilter,
    InvalidSignature,
    InvalidStructure,
    UnsupportedFeature,
)
from png_builder import SIGNATURE, chunk_offsets, ihdr_payload, make_chunk, make_png


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def gray_row_png() -> bytes:
    """8x1 8-bit grayscale image with a single unfiltered row."""
    return make_png(8, 1, color_type=0, rows=[bytes([10, 20, 30, 40, 50, 60, 70, 80])])


@pytest.fixture
def png_file(tmp_path, gray_row_png):
    path = tmp_path / "row.png"
    path.write_bytes(gray_row_png)
    return str(path)


@pytest.fixture
def no_decompress(monkeypatch):
    """Fail the test if the decoder reaches decompression."""
    def _fail(payload):
        raise AssertionError("decompress should not be called")
    monkeypatch.setattr(decoder, "decompress", _fail)


# =============================================================================
# Payload assembly and decompression
# =============================================================================

def test_assemble_payload_only_idat_in_order():
    chunks = [
        RawChunk(13, b"IHDR", b"h" * 13, 0),
        RawChunk(2, b"IDAT", b"ab", 0),
        RawChunk(3, b"tEXt", b"xyz", 0),
        RawChunk(1, b"IDAT", b"c", 0),
    ]
    assert assemble_payload(chunks) == b"abc"


def test_decompress_failure():
    with pytest.raises(FailedDecoding) as exc:
        decompress(b"definitely not zlib")
    assert exc.value.__cause__ is not None


# =============================================================================
# Successful decodes
# =============================================================================

def test_grayscale_row_scenario(gray_row_png):
    image = decode_png(gray_row_png)
    assert isinstance(image, DecodedImage)
    assert (image.width, image.height) == (8, 1)
    assert image.channels == 4
    assert image.source_channels == 1
    assert image.pixels.shape == (1, 8, 4)
    for i, value in enumerate([10, 20, 30, 40, 50, 60, 70, 80]):
        assert image.pixels[0, i].tolist() == [value, value, value, 255]


@pytest.mark.parametrize("color_type,bpp", [(0, 1), (4, 2), (2, 3), (6, 4)])
def test_supported_color_types(color_type, bpp):
    rng = np.random.default_rng(42 + color_type)
    width, height = 9, 6
    raw = rng.integers(0, 256, size=(height, width, bpp), dtype=np.uint8)
    rows = [raw[r].tobytes() for r in range(height)]
    data = make_png(width, height, color_type=color_type, rows=rows,
                    filter_types=[4, 3, 2, 1, 0, 4], idat_parts=2)

    image = decode_png(data)
    assert len(image.tobytes()) == width * height * 4

    px = image.pixels
    if bpp in (1, 2):
        for ch in range(3):
            np.testing.assert_array_equal(px[..., ch], raw[..., 0])
    else:
        np.testing.assert_array_equal(px[..., :3], raw[..., :3])
    expected_alpha = raw[..., bpp - 1] if bpp in (2, 4) else np.full((height, width), 255)
    np.testing.assert_array_equal(px[..., 3], expected_alpha)


def test_decoded_image_is_read_only(gray_row_png):
    image = decode_png(gray_row_png)
    with pytest.raises(ValueError):
        image.pixels[0, 0, 0] = 1
    with pytest.raises(AttributeError):
        image.pixels = None


def test_chunks_recorded(gray_row_png):
    image = decode_png(gray_row_png)
    assert [c.type_tag for c in image.chunks] == [b"IHDR", b"IDAT"]
    assert image.summary() == "8x1 grayscale, 8-bit, 2 chunk(s)"


def test_decodes_compare_and_hash(gray_row_png):
    first, second = decode_png(gray_row_png), decode_png(gray_row_png)
    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1

    other = decode_png(make_png(8, 1, color_type=0, rows=[bytes(range(8))]))
    assert first != other
    assert first != "not an image"


def test_ancillary_chunks_ignored():
    data = make_png(2, 1, color_type=0, rows=[bytes([7, 9])],
                    before_idat=[(b"gAMA", b"\x00\x00\xb1\x8f")],
                    after_idat=[(b"tEXt", b"k\x00v")])
    assert decode_png(data).pixels[0, :, 0].tolist() == [7, 9]


def test_strict_option():
    data = make_png(16, 1, rows=[bytes(range(16))], include_iend=False)
    assert decode_png(data).width == 16
    with pytest.raises(InvalidStructure):
        decode_png(data, DecoderOptions(strict_end_chunk=True))


# =============================================================================
# Failures
# =============================================================================

def test_truncated_file():
    with pytest.raises(InvalidStructure):
        decode_png(SIGNATURE + b"\x00" * 32)


def test_every_error_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_png(b"\x00" * 100)


def test_bad_signature(gray_row_png):
    with pytest.raises(InvalidSignature):
        decode_png(b"\x89PNX" + gray_row_png[4:])


def test_crc_failure(gray_row_png):
    offset = next(off for off, tag, _ in chunk_offsets(gray_row_png) if tag == b"IDAT")
    data = bytearray(gray_row_png)
    data[offset + 9] ^= 0x04
    with pytest.raises(FailedChecksum):
        decode_png(bytes(data))


@pytest.mark.parametrize("kwargs", [
    dict(color_type=2, before_idat=[(b"PLTE", b"\xff\x00\x00")]),
    dict(color_type=0, interlace=1),
    dict(color_type=0, bit_depth=4),
    dict(color_type=3),
])
def test_unsupported_features_stop_before_decompression(no_decompress, kwargs):
    data = make_png(4, 4, **kwargs)
    with pytest.raises(UnsupportedFeature):
        decode_png(data)


def test_corrupt_compressed_data():
    data = (SIGNATURE
            + make_chunk(b"IHDR", ihdr_payload(2, 2))
            + make_chunk(b"IDAT", b"this is not a zlib stream")
            + make_chunk(b"IEND"))
    with pytest.raises(FailedDecoding):
        decode_png(data)


def test_inflated_data_too_short():
    with pytest.raises(InvalidStructure):
        decode_png(make_png(4, 4, stream=bytes(5)))


def test_bad_filter_byte():
    with pytest.raises(InvalidScanlineFilter):
        decode_png(make_png(2, 1, stream=bytes([9, 0, 0])))


# =============================================================================
# File input
# =============================================================================

def test_load_png(png_file):
    image = load_png(png_file)
    assert image.pixels[0, 7].tolist() == [80, 80, 80, 255]


def test_missing_file(tmp_path):
    with pytest.raises(BadFilePath) as exc:
        read_png_file(str(tmp_path / "missing.png"))
    assert exc.value.path.endswith("missing.png")


def test_unopenable_path(tmp_path):
    with pytest.raises(FailedToOpenFile):
        read_png_file(str(tmp_path))


def test_unreadable_file(png_file, monkeypatch):
    class BrokenFile:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def read(self):
            raise OSError("I/O error")

    monkeypatch.setattr(decoder, "open", lambda *a, **k: BrokenFile(), raising=False)
    with pytest.raises(FailedToReadFile):
        read_png_file(png_file)
