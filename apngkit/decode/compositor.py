"""Decode compositor, the chunk-driven APNG state machine.

All mutable decode state lives in a :class:`DecodeState` that the caller
threads through :meth:`DecodeCompositor.dispatch`, one chunk at a time.
The compositor itself only holds configuration and the codec callables,
so a session can be inspected or driven chunk by chunk in isolation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from apngkit.assets import codec
from apngkit.chunks.primitives import (
    AnimationControl,
    BlendOp,
    DisposeOp,
    FrameControl,
    ImageHeader,
    make_chunk,
    read_u32,
)
from apngkit.chunks.reader import Chunk
from apngkit.config import DecoderConfig
from apngkit.constants import (
    ACTL,
    FCTL,
    FDAT,
    IDAT,
    IEND,
    IHDR,
    PLTE,
    PNG_SIGNATURE,
    TRNS,
)
from apngkit.decode.animation import AnimatedImage, Frame
from apngkit.errors import InvalidFrameGeometry, StructuralError, TruncatedStreamError
from apngkit.util.pixels import blend_over, clear_rect, frozen_copy, new_canvas

logger = logging.getLogger(__name__)

PixelDecoder = Callable[[bytes], np.ndarray]

_IEND_CHUNK = make_chunk(IEND)


@dataclass
class PendingFrame:
    """A frame whose image data is still arriving."""

    control: FrameControl
    png: bytearray


@dataclass
class DecodeState:
    """Everything one decode session has learned so far."""

    header: ImageHeader | None = None
    animation: AnimationControl | None = None
    canvas: np.ndarray | None = None
    palette: Chunk | None = None
    transparency: Chunk | None = None
    pending: PendingFrame | None = None
    cover: bytearray | None = None
    raw: bytearray | None = field(default_factory=lambda: bytearray(PNG_SIGNATURE))
    frames: list[Frame] = field(default_factory=list)
    cover_frame: np.ndarray | None = None
    still_image: np.ndarray | None = None
    last_sequence: int = -1
    seen_image_data: bool = False
    finished: bool = False

    @property
    def is_animated(self) -> bool:
        return self.animation is not None


class DecodeCompositor:
    """Turns a validated chunk sequence into composited frames.

    Args:
        config: Decoding options (speed, cover frame).
        decode_png: Decodes one standalone PNG to an RGBA array.
        decode_image: Decodes a non-animated image to an RGBA array.
    """

    def __init__(
        self,
        config: DecoderConfig | None = None,
        decode_png: PixelDecoder | None = None,
        decode_image: PixelDecoder | None = None,
    ) -> None:
        self.config = config or DecoderConfig()
        self.config.validate()
        self._decode_png = decode_png or codec.decode_png
        self._decode_image = decode_image or codec.decode_image
        self._handlers: dict[bytes, Callable[[DecodeState, Chunk], None]] = {
            IHDR: self._on_ihdr,
            PLTE: self._on_palette,
            TRNS: self._on_transparency,
            ACTL: self._on_actl,
            FCTL: self._on_fctl,
            IDAT: self._on_idat,
            FDAT: self._on_fdat,
            IEND: self._on_iend,
        }

    def new_state(self) -> DecodeState:
        return DecodeState()

    def dispatch(self, state: DecodeState, chunk: Chunk) -> DecodeState:
        """Apply one chunk to ``state`` and return it."""
        if state.finished:
            logger.debug("Ignoring %r after IEND", chunk.chunk_type)
            return state
        if state.header is None and chunk.chunk_type != IHDR:
            raise StructuralError(f"{chunk.name} chunk before IHDR")
        if state.raw is not None:
            state.raw += chunk.to_bytes()

        handler = self._handlers.get(chunk.chunk_type)
        if handler is None:
            logger.debug("Skipping ancillary chunk %r", chunk.chunk_type)
        else:
            handler(state, chunk)
        return state

    def finish(self, state: DecodeState) -> AnimatedImage:
        """Hand the finished animation over to the caller."""
        if not state.finished:
            raise TruncatedStreamError("Stream ended before IEND")
        header = state.header
        assert header is not None

        if not state.is_animated:
            assert state.still_image is not None
            return AnimatedImage(
                width=header.width,
                height=header.height,
                frames=[Frame(pixels=frozen_copy(state.still_image), duration_ms=0.0)],
                is_animated=False,
            )

        animation = state.animation
        assert animation is not None
        if animation.num_frames != len(state.frames):
            logger.warning(
                "acTL declares %d frames but the stream holds %d",
                animation.num_frames, len(state.frames),
            )
        return AnimatedImage(
            width=header.width,
            height=header.height,
            frames=state.frames,
            cover_frame=state.cover_frame,
            num_plays=animation.num_plays,
            is_animated=True,
        )

    # --- Chunk handlers ---

    def _on_ihdr(self, state: DecodeState, chunk: Chunk) -> None:
        if state.header is not None:
            raise StructuralError("Duplicate IHDR chunk")
        header = ImageHeader.parse(chunk.payload)
        state.header = header
        state.canvas = new_canvas(header.width, header.height)
        logger.debug("IHDR %dx%d", header.width, header.height)

    def _on_palette(self, state: DecodeState, chunk: Chunk) -> None:
        state.palette = chunk

    def _on_transparency(self, state: DecodeState, chunk: Chunk) -> None:
        state.transparency = chunk

    def _on_actl(self, state: DecodeState, chunk: Chunk) -> None:
        if state.seen_image_data:
            raise StructuralError("acTL after image data")
        if state.animation is not None:
            raise StructuralError("Duplicate acTL chunk")
        state.animation = AnimationControl.parse(chunk.payload)
        state.raw = None
        logger.debug(
            "acTL: %d frames, %d plays",
            state.animation.num_frames, state.animation.num_plays,
        )

    def _on_fctl(self, state: DecodeState, chunk: Chunk) -> None:
        if not state.is_animated:
            logger.warning("Ignoring fcTL in a stream without acTL")
            return

        control = FrameControl.parse(chunk.payload)
        self._check_sequence(state, control.sequence_number)
        header = state.header
        assert header is not None
        if control.width == 0 or control.height == 0:
            raise StructuralError(f"fcTL declares an empty frame {control.width}x{control.height}")
        if not control.fits(header.width, header.height):
            raise InvalidFrameGeometry(
                control.x_offset, control.y_offset, control.width, control.height,
                header.width, header.height,
            )

        if state.pending is None:
            if state.cover is not None:
                state.cover_frame = frozen_copy(self._decode_standalone(state.cover))
                state.cover = None
                logger.debug("Decoded cover frame")
        else:
            self._finalize(state)

        png = bytearray(PNG_SIGNATURE)
        png += make_chunk(IHDR, header.with_size(control.width, control.height))
        if state.palette is not None:
            png += state.palette.to_bytes()
        if state.transparency is not None:
            png += state.transparency.to_bytes()
        state.pending = PendingFrame(control=control, png=png)

    def _on_idat(self, state: DecodeState, chunk: Chunk) -> None:
        state.seen_image_data = True
        if not state.is_animated:
            return

        if state.pending is not None:
            state.pending.png += make_chunk(IDAT, chunk.payload)
            return

        if not self.config.decode_cover_frame:
            logger.debug("Ignoring cover frame data")
            return
        if state.cover is None:
            header = state.header
            assert header is not None
            state.cover = bytearray(PNG_SIGNATURE)
            state.cover += make_chunk(IHDR, header.to_payload())
            if state.palette is not None:
                state.cover += state.palette.to_bytes()
            if state.transparency is not None:
                state.cover += state.transparency.to_bytes()
        state.cover += make_chunk(IDAT, chunk.payload)

    def _on_fdat(self, state: DecodeState, chunk: Chunk) -> None:
        state.seen_image_data = True
        if not state.is_animated:
            logger.warning("Ignoring fdAT in a stream without acTL")
            return
        if state.pending is None:
            raise StructuralError("fdAT before the first fcTL")
        if chunk.length < 4:
            raise StructuralError(f"fdAT payload is {chunk.length} bytes, need at least 4")
        self._check_sequence(state, read_u32(chunk.payload))
        state.pending.png += make_chunk(IDAT, chunk.payload[4:])

    def _on_iend(self, state: DecodeState, chunk: Chunk) -> None:
        if state.is_animated:
            if state.pending is not None:
                self._finalize(state)
            elif state.cover is not None:
                state.cover_frame = frozen_copy(self._decode_standalone(state.cover))
                state.cover = None
        else:
            assert state.raw is not None
            logger.debug("No acTL, decoding as a still image")
            state.still_image = self._decode_image(bytes(state.raw))
            state.raw = None
        state.finished = True

    # --- Helpers ---

    def _check_sequence(self, state: DecodeState, sequence: int) -> None:
        if sequence <= state.last_sequence:
            raise StructuralError(
                f"Sequence number {sequence} does not follow {state.last_sequence}"
            )
        state.last_sequence = sequence

    def _decode_standalone(self, png: bytearray) -> np.ndarray:
        return self._decode_png(bytes(png + _IEND_CHUNK))

    def _finalize(self, state: DecodeState) -> None:
        """Decode the open frame, composite it, emit a frame, apply disposal."""
        pending = state.pending
        canvas = state.canvas
        assert pending is not None and canvas is not None
        state.pending = None
        control = pending.control

        decoded = self._decode_standalone(pending.png)
        if decoded.shape[:2] != (control.height, control.width):
            raise StructuralError(
                f"Frame {control.sequence_number} decoded to "
                f"{decoded.shape[1]}x{decoded.shape[0]}, fcTL says "
                f"{control.width}x{control.height}"
            )

        x, y = control.x_offset, control.y_offset
        w, h = control.width, control.height
        dispose = control.dispose_op
        if dispose == DisposeOp.PREVIOUS and not state.frames:
            dispose = DisposeOp.BACKGROUND
        before = canvas.copy() if dispose == DisposeOp.PREVIOUS else None

        region = canvas[y:y + h, x:x + w]
        if control.blend_op == BlendOp.SOURCE:
            region[...] = decoded
        else:
            region[...] = blend_over(decoded, region)

        duration_ms = control.delay_ms / self.config.speed
        state.frames.append(Frame(pixels=frozen_copy(canvas), duration_ms=duration_ms))
        logger.debug(
            "Frame %d: %dx%d at (%d, %d), %.1f ms, %s/%s",
            len(state.frames) - 1, w, h, x, y, duration_ms,
            control.blend_op.name, dispose.name,
        )

        if dispose == DisposeOp.BACKGROUND:
            clear_rect(canvas, x, y, w, h)
        elif dispose == DisposeOp.PREVIOUS:
            state.canvas = before
