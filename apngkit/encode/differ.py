"""Frame differencing: shrinks a frame to the region that changed."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from apngkit.chunks.primitives import BlendOp
from apngkit.errors import SizeMismatch
from apngkit.util.pixels import has_transparency


@dataclass
class FrameDiff:
    """The changed region of a frame and how to blend it back in."""

    pixels: np.ndarray
    x_offset: int
    y_offset: int
    blend_op: BlendOp

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.pixels.shape[0] == 0 or self.pixels.shape[1] == 0


def diff_frames(previous: np.ndarray, current: np.ndarray) -> FrameDiff:
    """Compute the minimal changed rectangle between two RGBA frames.

    The blend op is picked from the whole of ``current``: if it holds any
    fully transparent pixel, OVER could not reproduce it, so SOURCE is
    used and unchanged pixels are copied through. Otherwise unchanged
    pixels are made transparent and blended OVER the previous canvas.

    Args:
        previous: The last full frame, ``(H, W, 4)`` uint8.
        current: The new full frame, same shape.

    Returns:
        A FrameDiff cropped to the changed pixels. When nothing changed the
        diff is empty (zero area) at offset (0, 0); callers must not emit it
        as-is.
    """
    if previous.shape != current.shape:
        raise SizeMismatch(
            f"Cannot diff frames of shape {previous.shape} and {current.shape}"
        )

    blend_op = BlendOp.SOURCE if has_transparency(current) else BlendOp.OVER
    changed = np.any(previous != current, axis=2)
    if not changed.any():
        return FrameDiff(
            pixels=np.zeros((0, 0, current.shape[2]), dtype=current.dtype),
            x_offset=0,
            y_offset=0,
            blend_op=blend_op,
        )

    rows = np.flatnonzero(changed.any(axis=1))
    cols = np.flatnonzero(changed.any(axis=0))
    top, bottom = int(rows[0]), int(rows[-1]) + 1
    left, right = int(cols[0]), int(cols[-1]) + 1

    if blend_op == BlendOp.OVER:
        out = np.where(changed[..., None], current, 0).astype(current.dtype)
    else:
        out = current.copy()

    return FrameDiff(
        pixels=np.ascontiguousarray(out[top:bottom, left:right]),
        x_offset=left,
        y_offset=top,
        blend_op=blend_op,
    )
