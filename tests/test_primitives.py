from __future__ import annotations

import pytest

from apngkit.chunks.primitives import (
    AnimationControl,
    BlendOp,
    DisposeOp,
    FrameControl,
    ImageHeader,
    chunk_crc,
    make_chunk,
    pack_u16,
    pack_u32,
    read_u16,
    read_u32,
)
from apngkit.constants import IEND
from apngkit.errors import StructuralError


def test_integer_codecs_are_big_endian():
    assert pack_u32(0x01020304) == b"\x01\x02\x03\x04"
    assert pack_u16(0xABCD) == b"\xab\xcd"
    assert read_u32(b"\x00\xff\x00\x00\x00\x01", 2) == 1
    assert read_u16(b"\x12\x34") == 0x1234


def test_iend_chunk_matches_png_constant():
    assert chunk_crc(IEND, b"") == 0xAE426082
    assert make_chunk(IEND) == bytes.fromhex("0000000049454e44ae426082")


def test_frame_control_layout():
    control = FrameControl(7, 10, 20, 1, 2, 3, 4, DisposeOp.PREVIOUS, BlendOp.OVER)
    payload = control.to_payload()
    assert len(payload) == 26
    assert payload[:4] == pack_u32(7)
    assert payload[24:] == b"\x02\x01"
    assert FrameControl.parse(payload) == control


def test_delay_with_zero_denominator_means_hundredths():
    control = FrameControl(0, 1, 1, delay_num=5, delay_den=0)
    assert control.delay_ms == pytest.approx(50.0)
    assert FrameControl(0, 1, 1, delay_num=1, delay_den=3).delay_ms == pytest.approx(333.333, abs=0.01)


def test_frame_control_fits_canvas():
    assert FrameControl(0, 4, 4, 0, 0).fits(4, 4)
    assert not FrameControl(0, 4, 4, 1, 0).fits(4, 4)
    assert not FrameControl(0, 2, 3, 0, 2).fits(4, 4)


def test_unknown_op_bytes_fall_back_to_defaults():
    assert DisposeOp.decode(9) is DisposeOp.NONE
    assert BlendOp.decode(5) is BlendOp.SOURCE
    assert DisposeOp.decode(1) is DisposeOp.BACKGROUND


def test_image_header_keeps_tail():
    payload = pack_u32(3) + pack_u32(5) + bytes([8, 3, 0, 0, 1])
    header = ImageHeader.parse(payload)
    assert (header.width, header.height) == (3, 5)
    assert header.color_type == 3
    assert header.with_size(1, 2) == pack_u32(1) + pack_u32(2) + bytes([8, 3, 0, 0, 1])
    assert header.to_payload() == payload


@pytest.mark.parametrize("cls,size", [(ImageHeader, 12), (AnimationControl, 9), (FrameControl, 25)])
def test_wrong_payload_length_is_structural(cls, size):
    with pytest.raises(StructuralError):
        cls.parse(b"\x00" * size)


def test_empty_canvas_rejected():
    with pytest.raises(StructuralError):
        ImageHeader.parse(pack_u32(0) + pack_u32(5) + bytes(5))
