"""Exception hierarchy for APNG decoding and encoding."""

from __future__ import annotations


class ApngError(Exception):
    """Base class for every error raised by apngkit."""


class StructuralError(ApngError):
    """The chunk stream is malformed (bad ordering, bad payload, bad geometry)."""


class InvalidFrameGeometry(StructuralError):
    """A frame rectangle does not fit inside the canvas."""

    def __init__(
        self,
        x_offset: int,
        y_offset: int,
        width: int,
        height: int,
        canvas_width: int,
        canvas_height: int,
    ) -> None:
        super().__init__(
            f"Frame {width}x{height} at ({x_offset}, {y_offset}) exceeds "
            f"canvas {canvas_width}x{canvas_height}"
        )
        self.x_offset = x_offset
        self.y_offset = y_offset
        self.width = width
        self.height = height
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height


class ChecksumError(ApngError):
    """A chunk's CRC does not match its type and payload."""

    def __init__(self, chunk_type: bytes, expected: int, actual: int) -> None:
        super().__init__(
            f"Bad CRC in {chunk_type!r} chunk: stored 0x{expected:08x}, "
            f"computed 0x{actual:08x}"
        )
        self.chunk_type = chunk_type
        self.expected = expected
        self.actual = actual


class TruncatedStreamError(ApngError):
    """The stream ended before a complete chunk (or IEND) was read."""


class ConfigurationError(ApngError, ValueError):
    """An encoder or decoder option is out of range or conflicts with another."""


class InvalidFrameSize(ApngError):
    """A frame handed to the encoder does not fit the declared canvas."""

    def __init__(
        self,
        width: int,
        height: int,
        canvas_width: int,
        canvas_height: int,
        first_frame: bool,
    ) -> None:
        if first_frame:
            msg = (
                f"First frame is {width}x{height} but must match the "
                f"canvas size {canvas_width}x{canvas_height}"
            )
        else:
            msg = (
                f"Frame {width}x{height} does not fit inside the "
                f"canvas {canvas_width}x{canvas_height}"
            )
        super().__init__(msg)
        self.width = width
        self.height = height
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.first_frame = first_frame


class SizeMismatch(ApngError, ValueError):
    """Two pixel buffers that must share dimensions do not."""


class DecodeCancelled(ApngError):
    """Decoding was stopped through its cancel event."""
