from __future__ import annotations

import io

import pytest

from apngkit.assets.extract import extract_frames, frame_file_name, split_frames
from apngkit.chunks.primitives import ImageHeader, make_chunk
from apngkit.config import EncoderConfig
from apngkit.encode.encoder import encode_frames
from apngkit.errors import StructuralError

from helpers import BLUE, RED, actl, fctl, fdat, idat, iend, ihdr, png_stream, read_chunks, reference_decode_png, solid


def _animation() -> bytes:
    return png_stream(
        ihdr(4, 4), make_chunk(b"gAMA", b"\x00\x00\xb1\x8f"), actl(2),
        fctl(0, 4, 4), idat(solid(4, 4, RED)),
        fctl(1, 2, 1, 1, 1), fdat(2, solid(2, 1, BLUE)),
        iend(),
    )


def test_split_yields_one_png_per_frame():
    frames = split_frames(_animation())
    assert len(frames) == 2
    assert (reference_decode_png(frames[0]) == solid(4, 4, RED)).all()
    assert (reference_decode_png(frames[1]) == solid(2, 1, BLUE)).all()


def test_split_frames_carry_preamble_but_no_animation_chunks():
    first, second = split_frames(_animation())
    names = [c.name for c in read_chunks(second)]
    assert names == ["IHDR", "gAMA", "IDAT", "IEND"]
    header = ImageHeader.parse(read_chunks(second)[0].payload)
    assert (header.width, header.height) == (2, 1)


def test_split_rejects_non_png():
    with pytest.raises(StructuralError):
        split_frames(b"not a png at all")


def test_extract_writes_numbered_files(tmp_path):
    source = tmp_path / "anim.png"
    out = io.BytesIO()
    encode_frames(out, [solid(2, 2, RED), solid(2, 2, BLUE), solid(2, 2, RED)], 10,
                  EncoderConfig(optimise=False))
    source.write_bytes(out.getvalue())

    target = tmp_path / "frames"
    assert extract_frames(source, target) == 3
    assert sorted(p.name for p in target.iterdir()) == ["anim_000.png", "anim_001.png", "anim_002.png"]
    assert (reference_decode_png((target / "anim_001.png").read_bytes()) == solid(2, 2, BLUE)).all()


def test_frame_file_name(tmp_path):
    assert frame_file_name(tmp_path / "walk.apng", 12) == "walk_012.apng"


def test_split_rejects_fdat_without_sequence_number():
    data = png_stream(
        ihdr(2, 2), actl(2),
        fctl(0, 2, 2), idat(solid(2, 2, RED)),
        fctl(1, 2, 2), make_chunk(b"fdAT", b"\x00\x00"),
        iend(),
    )
    with pytest.raises(StructuralError):
        split_frames(data)
