"""Byte-level building blocks: integer codecs, CRC, chunk bodies, op enums."""

from __future__ import annotations

import logging
import struct
import zlib
from dataclasses import dataclass
from enum import IntEnum

from apngkit.constants import (
    ACTL_LENGTH,
    DEFAULT_DELAY_DEN,
    FCTL_LENGTH,
    IHDR_LENGTH,
)
from apngkit.errors import StructuralError

logger = logging.getLogger(__name__)

_U32 = struct.Struct(">I")
_U16 = struct.Struct(">H")
_IHDR_SIZE = struct.Struct(">II")
_ACTL = struct.Struct(">II")
_FCTL = struct.Struct(">IIIIIHHBB")


def read_u32(data: bytes, offset: int = 0) -> int:
    return _U32.unpack_from(data, offset)[0]


def read_u16(data: bytes, offset: int = 0) -> int:
    return _U16.unpack_from(data, offset)[0]


def pack_u32(value: int) -> bytes:
    return _U32.pack(value)


def pack_u16(value: int) -> bytes:
    return _U16.pack(value)


def chunk_crc(chunk_type: bytes, payload: bytes) -> int:
    """CRC-32 over the chunk type followed by its payload."""
    return zlib.crc32(payload, zlib.crc32(chunk_type)) & 0xFFFFFFFF


def make_chunk(chunk_type: bytes, payload: bytes = b"") -> bytes:
    """Serialize a complete chunk: length, type, payload, CRC."""
    return (
        _U32.pack(len(payload))
        + chunk_type
        + payload
        + _U32.pack(chunk_crc(chunk_type, payload))
    )


class DisposeOp(IntEnum):
    """How a frame's region is treated before the next frame is drawn."""

    NONE = 0
    BACKGROUND = 1
    PREVIOUS = 2

    @classmethod
    def decode(cls, value: int) -> DisposeOp:
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown dispose_op %d, using NONE", value)
            return cls.NONE


class BlendOp(IntEnum):
    """How a frame's pixels combine with the canvas."""

    SOURCE = 0
    OVER = 1

    @classmethod
    def decode(cls, value: int) -> BlendOp:
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown blend_op %d, using SOURCE", value)
            return cls.SOURCE


def _check_length(name: str, payload: bytes, expected: int) -> None:
    if len(payload) != expected:
        raise StructuralError(
            f"{name} payload is {len(payload)} bytes, expected {expected}"
        )


@dataclass(frozen=True)
class ImageHeader:
    """IHDR contents. ``tail`` keeps depth/color/compression/filter/interlace verbatim."""

    width: int
    height: int
    tail: bytes

    @classmethod
    def parse(cls, payload: bytes) -> ImageHeader:
        _check_length("IHDR", payload, IHDR_LENGTH)
        width, height = _IHDR_SIZE.unpack_from(payload)
        if width == 0 or height == 0:
            raise StructuralError(f"IHDR declares an empty canvas {width}x{height}")
        return cls(width=width, height=height, tail=bytes(payload[8:IHDR_LENGTH]))

    @property
    def color_type(self) -> int:
        return self.tail[1]

    def with_size(self, width: int, height: int) -> bytes:
        """IHDR payload for a frame of the given size, same pixel format."""
        return _IHDR_SIZE.pack(width, height) + self.tail

    def to_payload(self) -> bytes:
        return self.with_size(self.width, self.height)


@dataclass(frozen=True)
class AnimationControl:
    """acTL contents. ``num_plays == 0`` loops forever."""

    num_frames: int
    num_plays: int = 0

    @classmethod
    def parse(cls, payload: bytes) -> AnimationControl:
        _check_length("acTL", payload, ACTL_LENGTH)
        num_frames, num_plays = _ACTL.unpack(payload)
        return cls(num_frames=num_frames, num_plays=num_plays)

    def to_payload(self) -> bytes:
        return _ACTL.pack(self.num_frames, self.num_plays)


@dataclass(frozen=True)
class FrameControl:
    """fcTL contents: one frame's rectangle, timing and compositing ops."""

    sequence_number: int
    width: int
    height: int
    x_offset: int = 0
    y_offset: int = 0
    delay_num: int = 0
    delay_den: int = DEFAULT_DELAY_DEN
    dispose_op: DisposeOp = DisposeOp.NONE
    blend_op: BlendOp = BlendOp.SOURCE

    @classmethod
    def parse(cls, payload: bytes) -> FrameControl:
        _check_length("fcTL", payload, FCTL_LENGTH)
        (seq, width, height, x_off, y_off,
         delay_num, delay_den, dispose, blend) = _FCTL.unpack(payload)
        return cls(
            sequence_number=seq,
            width=width,
            height=height,
            x_offset=x_off,
            y_offset=y_off,
            delay_num=delay_num,
            delay_den=delay_den,
            dispose_op=DisposeOp.decode(dispose),
            blend_op=BlendOp.decode(blend),
        )

    @property
    def delay_ms(self) -> float:
        den = self.delay_den or DEFAULT_DELAY_DEN
        return self.delay_num / den * 1000.0

    def fits(self, canvas_width: int, canvas_height: int) -> bool:
        return (
            self.x_offset + self.width <= canvas_width
            and self.y_offset + self.height <= canvas_height
        )

    def to_payload(self) -> bytes:
        return _FCTL.pack(
            self.sequence_number,
            self.width,
            self.height,
            self.x_offset,
            self.y_offset,
            self.delay_num,
            self.delay_den,
            int(self.dispose_op),
            int(self.blend_op),
        )
