"""Decode error kinds shared by every stage of the PNG pipeline.

All errors are terminal: the first one raised aborts the decode and no
partial image is returned.
"""

from typing import Optional


class DecodeError(Exception):
    """Base class for every decode failure."""


class BadFilePath(DecodeError):
    def __init__(self, path: str):
        super().__init__(f"Bad file path: {path}")
        self.path = path


class FailedToOpenFile(DecodeError):
    def __init__(self, path: str):
        super().__init__(f"Failed to open file with path: {path}")
        self.path = path


class FailedToReadFile(DecodeError):
    def __init__(self, path: str):
        super().__init__(f"Failed to read file with path: {path}")
        self.path = path


class InvalidSignature(DecodeError):
    def __init__(self, message: str = "PNG file has an invalid signature"):
        super().__init__(message)


class InvalidStructure(DecodeError):
    def __init__(self, message: str = "The PNG file has an invalid file structure"):
        super().__init__(message)


class InvalidHeader(DecodeError):
    def __init__(self, message: str = "The PNG header chunk is malformed"):
        super().__init__(message)


class UnsupportedFeature(DecodeError):
    """Syntactically valid PNG that uses a feature outside the decoder's scope."""

    def __init__(self, reason: str):
        super().__init__(f"Unsupported feature: {reason}")
        self.reason = reason


class FailedChecksum(DecodeError):
    def __init__(self, chunk_type: str, expected: int, actual: int):
        super().__init__(
            f"CRC mismatch in {chunk_type} chunk: stored 0x{expected:08x}, computed 0x{actual:08x}"
        )
        self.chunk_type = chunk_type
        self.expected = expected
        self.actual = actual


class FailedDecoding(DecodeError):
    def __init__(self, message: str = "Failed to inflate image data"):
        super().__init__(message)


class InvalidScanlineFilter(DecodeError):
    def __init__(self, filter_type: int, row: Optional[int] = None):
        where = f" in row {row}" if row is not None else ""
        super().__init__(f"Invalid scanline filter type {filter_type}{where}")
        self.filter_type = filter_type
        self.row = row
