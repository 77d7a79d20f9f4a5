"""APNG chunk writer. Turns RGBA frames into a sequenced, CRC-protected stream."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO, Sequence

import numpy as np

from apngkit.assets.codec import compress_scanlines
from apngkit.chunks.primitives import (
    AnimationControl,
    BlendOp,
    DisposeOp,
    FrameControl,
    make_chunk,
    pack_u32,
)
from apngkit.config import EncoderConfig
from apngkit.constants import (
    ACTL,
    BIT_DEPTH,
    COLOR_TYPE_RGB,
    COLOR_TYPE_RGBA,
    ENCODER_DELAY_DEN,
    FCTL,
    FDAT,
    IDAT,
    IEND,
    IHDR,
    MAX_DELAY_MS,
    PNG_SIGNATURE,
)
from apngkit.encode.differ import diff_frames
from apngkit.encode.filters import ScanlineFilter, filter_scanlines
from apngkit.errors import ConfigurationError, InvalidFrameSize, StructuralError
from apngkit.util.pixels import as_rgba, new_canvas

if TYPE_CHECKING:
    from apngkit.decode.animation import AnimatedImage

logger = logging.getLogger(__name__)


def _ihdr_payload(width: int, height: int, encode_alpha: bool) -> bytes:
    color_type = COLOR_TYPE_RGBA if encode_alpha else COLOR_TYPE_RGB
    return pack_u32(width) + pack_u32(height) + bytes([BIT_DEPTH, color_type, 0, 0, 0])


def encode_image_data(
    pixels: np.ndarray,
    encode_alpha: bool,
    filter_type: ScanlineFilter,
    compression_level: int,
) -> bytes:
    """Filter and compress an RGBA image into an IDAT-ready zlib stream."""
    channels = pixels if encode_alpha else pixels[..., :3]
    return compress_scanlines(filter_scanlines(channels, filter_type), compression_level)


class ApngEncoder:
    """Push-style APNG writer.

    The signature, IHDR and acTL are written on construction; each
    :meth:`write_frame` call adds an fcTL plus IDAT (frame 0) or fdAT
    (later frames); :meth:`write_end` closes the stream with IEND.

    With ``config.optimise`` each frame is reduced to the rectangle that
    changed since the previous full frame, and the blend op is chosen to
    match. Callers relying on that should keep ``dispose_op`` at NONE.

    Args:
        stream: Writable binary sink. Owned by the caller.
        width: Canvas width.
        height: Canvas height.
        num_frames: Frame count declared in acTL.
        config: Encoder options, validated before anything is written.
    """

    def __init__(
        self,
        stream: BinaryIO,
        width: int,
        height: int,
        num_frames: int,
        config: EncoderConfig | None = None,
    ) -> None:
        self.config = config or EncoderConfig()
        self.config.validate()
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Canvas size must be positive, got {width}x{height}")
        if num_frames <= 0:
            raise ConfigurationError(f"num_frames must be positive, got {num_frames}")

        self._stream = stream
        self.width = width
        self.height = height
        self.num_frames = num_frames
        # A hidden cover frame is written as frame 0 but not counted in acTL.
        self._frame_limit = num_frames + (0 if self.config.first_frame_in_animation else 1)
        self._current_frame = 0
        self._sequence = 0
        self._previous: np.ndarray | None = None
        self._ended = False

        self._stream.write(PNG_SIGNATURE)
        self._write_chunk(IHDR, _ihdr_payload(width, height, self.config.encode_alpha))
        self._write_chunk(
            ACTL, AnimationControl(num_frames, self.config.num_plays).to_payload()
        )

    @property
    def frames_written(self) -> int:
        return self._current_frame

    @property
    def sequence_number(self) -> int:
        """Next sequence number to be written."""
        return self._sequence

    def _write_chunk(self, chunk_type: bytes, payload: bytes) -> None:
        self._stream.write(make_chunk(chunk_type, payload))

    def write_frame(
        self,
        pixels: np.ndarray,
        delay_ms: float | None = None,
        x_offset: int = 0,
        y_offset: int = 0,
        blend_op: BlendOp = BlendOp.SOURCE,
        dispose_op: DisposeOp = DisposeOp.NONE,
    ) -> None:
        """Append one frame.

        Args:
            pixels: ``(H, W, 3|4)`` uint8 frame. Frame 0 must cover the canvas.
            delay_ms: Display time; defaults to ``config.default_delay_ms``.
            x_offset: Frame position on the canvas. When optimising, the frame
                is pasted over the previous one here before diffing.
            y_offset: Frame position on the canvas.
            blend_op: How the frame combines with the canvas (chosen
                automatically when optimising).
            dispose_op: What happens to the frame region afterwards.
        """
        if self._ended:
            raise StructuralError("write_frame() after write_end()")
        if self._current_frame >= self._frame_limit:
            raise StructuralError(
                f"acTL declared {self.num_frames} frames, cannot write another"
            )

        config = self.config
        if delay_ms is None:
            delay_ms = config.default_delay_ms
        if not 0 <= delay_ms <= MAX_DELAY_MS:
            raise ConfigurationError(f"Delay must be within 0..{MAX_DELAY_MS} ms, got {delay_ms}")

        frame = as_rgba(pixels)
        first = self._current_frame == 0
        height, width = frame.shape[:2]
        if first and (width != self.width or height != self.height):
            raise InvalidFrameSize(width, height, self.width, self.height, first_frame=True)
        if (
            x_offset < 0 or y_offset < 0
            or x_offset + width > self.width
            or y_offset + height > self.height
        ):
            raise InvalidFrameSize(width, height, self.width, self.height, first_frame=first)

        if config.optimise and (not first or config.first_frame_in_animation):
            # Sub-canvas frames are pasted over the last full frame before diffing.
            if self._previous is not None:
                full = self._previous.copy()
            else:
                full = new_canvas(self.width, self.height)
            full[y_offset:y_offset + height, x_offset:x_offset + width] = frame

            if self._previous is not None:
                diff = diff_frames(self._previous, full)
                if diff.is_empty:
                    logger.debug("Frame %d is unchanged, writing a 1x1 patch", self._current_frame)
                    frame, x_offset, y_offset, blend_op = full[:1, :1], 0, 0, BlendOp.SOURCE
                else:
                    frame, x_offset, y_offset, blend_op = (
                        diff.pixels, diff.x_offset, diff.y_offset, diff.blend_op
                    )
            self._previous = full

        height, width = frame.shape[:2]

        if config.first_frame_in_animation or not first:
            control = FrameControl(
                sequence_number=self._sequence,
                width=width,
                height=height,
                x_offset=x_offset,
                y_offset=y_offset,
                delay_num=int(round(delay_ms)),
                delay_den=ENCODER_DELAY_DEN,
                dispose_op=DisposeOp(dispose_op),
                blend_op=BlendOp(blend_op),
            )
            self._sequence += 1
            self._write_chunk(FCTL, control.to_payload())

        data = encode_image_data(
            frame, config.encode_alpha, config.filter, config.compression_level
        )
        if first:
            self._write_chunk(IDAT, data)
        else:
            self._write_chunk(FDAT, pack_u32(self._sequence) + data)
            self._sequence += 1

        logger.debug(
            "Wrote frame %d: %dx%d at (%d, %d), %d bytes compressed",
            self._current_frame, width, height, x_offset, y_offset, len(data),
        )
        self._current_frame += 1

    def write_end(self) -> None:
        """Write IEND. Mandatory; the stream is invalid without it."""
        if self._ended:
            return
        if self._current_frame != self._frame_limit:
            logger.warning(
                "Expected %d frames but %d were written",
                self._frame_limit, self._current_frame,
            )
        self._write_chunk(IEND, b"")
        self._ended = True
        self._previous = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.write_end()
        return False


def write_png(
    stream: BinaryIO,
    pixels: np.ndarray,
    compression_level: int = 6,
    filter_type: ScanlineFilter = ScanlineFilter.NONE,
) -> None:
    """Write a plain (non-animated) RGBA PNG."""
    config = EncoderConfig(compression_level=compression_level, filter=filter_type)
    config.validate()
    frame = as_rgba(pixels)
    height, width = frame.shape[:2]
    stream.write(PNG_SIGNATURE)
    stream.write(make_chunk(IHDR, _ihdr_payload(width, height, True)))
    stream.write(make_chunk(
        IDAT, encode_image_data(frame, True, config.filter, config.compression_level)
    ))
    stream.write(make_chunk(IEND))


def encode_frames(
    stream: BinaryIO,
    frames: Sequence[np.ndarray],
    delays_ms: Sequence[float] | float | None = None,
    config: EncoderConfig | None = None,
) -> None:
    """Encode a list of full-canvas frames in one go.

    Args:
        stream: Writable binary sink.
        frames: RGBA frames, all the same size.
        delays_ms: One delay per frame, a single delay for all, or None for
            the configured default.
        config: Encoder options.
    """
    if not frames:
        raise ConfigurationError("Cannot encode an animation with no frames")
    config = config or EncoderConfig()
    if delays_ms is None or isinstance(delays_ms, (int, float)):
        delays = [delays_ms] * len(frames)
    else:
        delays = list(delays_ms)
        if len(delays) != len(frames):
            raise ConfigurationError(
                f"Got {len(delays)} delays for {len(frames)} frames"
            )

    height, width = frames[0].shape[:2]
    hidden = 0 if config.first_frame_in_animation else 1
    with ApngEncoder(stream, width, height, len(frames) - hidden, config) as encoder:
        for frame, delay in zip(frames, delays):
            encoder.write_frame(frame, delay_ms=delay)


def save_animation(
    stream: BinaryIO,
    animation: AnimatedImage,
    config: EncoderConfig | None = None,
) -> None:
    """Re-encode a decoded animation, one full canvas per frame."""
    config = config or EncoderConfig(num_plays=animation.num_plays)
    frames = [f.pixels for f in animation.frames]
    delays = [min(f.duration_ms, MAX_DELAY_MS) for f in animation.frames]
    logger.info("Encoding %d frames (%dx%d)", len(frames), animation.width, animation.height)
    encode_frames(stream, frames, delays, config)
