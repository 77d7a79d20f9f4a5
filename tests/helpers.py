"""Stream builders and a reference PNG decoder shared by the tests."""

from __future__ import annotations

import io
import zlib

import numpy as np

from apngkit.assets.codec import decompress
from apngkit.chunks.primitives import (
    AnimationControl,
    BlendOp,
    DisposeOp,
    FrameControl,
    ImageHeader,
    make_chunk,
    pack_u32,
)
from apngkit.chunks.reader import ChunkReader
from apngkit.constants import (
    ACTL,
    COLOR_TYPE_RGB,
    COLOR_TYPE_RGBA,
    FCTL,
    FDAT,
    IDAT,
    IEND,
    IHDR,
    PNG_SIGNATURE,
)
from apngkit.util.pixels import as_rgba

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
CLEAR = (0, 0, 0, 0)


def solid(width: int, height: int, color) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = color
    return pixels


def ihdr(width: int, height: int, color_type: int = COLOR_TYPE_RGBA) -> bytes:
    return make_chunk(IHDR, pack_u32(width) + pack_u32(height) + bytes([8, color_type, 0, 0, 0]))


def actl(num_frames: int, num_plays: int = 0) -> bytes:
    return make_chunk(ACTL, AnimationControl(num_frames, num_plays).to_payload())


def fctl(seq: int, width: int, height: int, x: int = 0, y: int = 0,
         delay_num: int = 100, delay_den: int = 1000,
         dispose: DisposeOp = DisposeOp.NONE, blend: BlendOp = BlendOp.SOURCE) -> bytes:
    control = FrameControl(seq, width, height, x, y, delay_num, delay_den, dispose, blend)
    return make_chunk(FCTL, control.to_payload())


def image_data(pixels: np.ndarray) -> bytes:
    height = pixels.shape[0]
    rows = pixels.reshape(height, -1)
    lines = np.hstack([np.zeros((height, 1), dtype=np.uint8), rows])
    return zlib.compress(lines.tobytes())


def idat(pixels: np.ndarray) -> bytes:
    return make_chunk(IDAT, image_data(pixels))


def fdat(seq: int, pixels: np.ndarray) -> bytes:
    return make_chunk(FDAT, pack_u32(seq) + image_data(pixels))


def iend() -> bytes:
    return make_chunk(IEND)


def png_stream(*chunks: bytes) -> bytes:
    return PNG_SIGNATURE + b"".join(chunks)


def read_chunks(data: bytes) -> list:
    reader = ChunkReader(io.BytesIO(data))
    assert reader.read_signature()
    return list(reader)


def reference_decode_png(data: bytes) -> np.ndarray:
    """Decode 8-bit RGB/RGBA, non-interlaced PNGs using filters NONE/SUB/UP."""
    header = None
    compressed = bytearray()
    for chunk in read_chunks(data):
        if chunk.chunk_type == IHDR:
            header = ImageHeader.parse(chunk.payload)
        elif chunk.chunk_type == IDAT:
            compressed += chunk.payload
    assert header is not None

    channels = {COLOR_TYPE_RGB: 3, COLOR_TYPE_RGBA: 4}[header.color_type]
    stride = header.width * channels
    raw = np.frombuffer(decompress(bytes(compressed)), dtype=np.uint8)
    rows = raw.reshape(header.height, stride + 1)

    out = np.zeros((header.height, stride), dtype=np.uint8)
    prior = np.zeros(stride, dtype=np.uint8)
    for y in range(header.height):
        ftype, line = int(rows[y, 0]), rows[y, 1:]
        if ftype == 0:
            current = line.copy()
        elif ftype == 1:
            current = line.copy()
            for x in range(channels, stride):
                current[x] = (int(current[x]) + int(current[x - channels])) & 0xFF
        elif ftype == 2:
            current = line + prior
        else:
            raise ValueError(f"Unsupported filter {ftype}")
        out[y] = current
        prior = current

    return as_rgba(out.reshape(header.height, header.width, channels))
