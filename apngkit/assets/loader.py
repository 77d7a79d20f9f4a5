"""Animation loading: runs a decode session over bytes, streams or files."""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from pathlib import Path
from typing import BinaryIO

from apngkit.assets import codec
from apngkit.chunks.reader import ChunkReader
from apngkit.config import DecoderConfig
from apngkit.constants import PNG_SIGNATURE
from apngkit.decode.animation import AnimatedImage, Frame
from apngkit.decode.compositor import DecodeCompositor, PixelDecoder
from apngkit.errors import DecodeCancelled
from apngkit.util.pixels import frozen_copy

logger = logging.getLogger(__name__)


def decode_apng(
    source: bytes | BinaryIO,
    config: DecoderConfig | None = None,
    cancel_event: threading.Event | None = None,
    decode_png: PixelDecoder | None = None,
    decode_image: PixelDecoder | None = None,
) -> AnimatedImage:
    """Decode an APNG (or any still image) into composited frames.

    Input that does not start with the PNG signature is handed whole to
    the generic image codec and comes back as a single still frame.

    Args:
        source: Encoded bytes, or a readable binary stream (not closed here).
        config: Decoding options.
        cancel_event: Checked between chunks; when set, decoding stops with
            DecodeCancelled.
        decode_png: Override for the per-frame PNG codec.
        decode_image: Override for the still-image codec.

    Returns:
        The decoded animation.
    """
    decode_png = decode_png or codec.decode_png
    decode_image = decode_image or codec.decode_image
    stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source

    head = stream.read(len(PNG_SIGNATURE))
    if head != PNG_SIGNATURE:
        logger.info("Not a PNG stream, using the generic image decoder")
        pixels = decode_image(head + stream.read())
        height, width = pixels.shape[:2]
        return AnimatedImage(
            width=width,
            height=height,
            frames=[Frame(pixels=frozen_copy(pixels), duration_ms=0.0)],
            is_animated=False,
        )

    compositor = DecodeCompositor(config, decode_png=decode_png, decode_image=decode_image)
    state = compositor.new_state()
    for chunk in ChunkReader(stream):
        if cancel_event is not None and cancel_event.is_set():
            raise DecodeCancelled("Decoding cancelled")
        compositor.dispatch(state, chunk)
        if state.finished:
            break
    return compositor.finish(state)


def load_apng(path: str | Path, config: DecoderConfig | None = None,
              cancel_event: threading.Event | None = None) -> AnimatedImage:
    """Load an animation file, decoding all frames into memory.

    Args:
        path: Path to an APNG, PNG, or any still image FFmpeg can read.
        config: Decoding options.
        cancel_event: Optional cooperative cancellation flag.

    Returns:
        AnimatedImage with all frames composited as RGBA arrays.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Animation file not found: {path}")
    logger.info("Loading animation: %s", path)

    with open(path, "rb") as f:
        animation = decode_apng(f, config, cancel_event)

    logger.info(
        "Loaded %d frames (%dx%d, %.0f ms) from %s",
        animation.frame_count, animation.width, animation.height,
        animation.duration_ms, path.name,
    )
    return animation


async def load_apng_async(path: str | Path, config: DecoderConfig | None = None,
                          cancel_event: threading.Event | None = None) -> AnimatedImage:
    """Run :func:`load_apng` on a worker thread so the event loop stays free.

    The decode runs to completion (or failure) as one unit; cancellation is
    only honoured through ``cancel_event``, between chunks.
    """
    return await asyncio.to_thread(load_apng, path, config, cancel_event)
