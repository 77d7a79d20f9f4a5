"""Pixel buffer helpers: allocation, rectangle ops and alpha compositing.

Pixel buffers are ``uint8`` arrays shaped ``(height, width, 4)`` holding
straight (non-premultiplied) RGBA.
"""

from __future__ import annotations

import numpy as np


def new_canvas(width: int, height: int) -> np.ndarray:
    """Allocate a fully transparent RGBA buffer."""
    return np.zeros((height, width, 4), dtype=np.uint8)


def as_rgba(pixels: np.ndarray) -> np.ndarray:
    """Coerce an RGB or RGBA ``uint8`` array to RGBA.

    RGB input gets an opaque alpha channel. RGBA input is returned as-is.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3|4) array, got shape {pixels.shape}")
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")
    if pixels.shape[2] == 4:
        return pixels
    alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([pixels, alpha], axis=2)


def clear_rect(canvas: np.ndarray, x: int, y: int, width: int, height: int) -> None:
    """Set a rectangle of ``canvas`` to fully transparent, in place."""
    canvas[y:y + height, x:x + width] = 0


def blend_over(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """Composite ``src`` over ``dst`` (Porter-Duff "over", straight alpha).

    Equivalent to ``out = src + dst * (1 - src.alpha)`` on premultiplied
    values. Weights are kept in integer-scaled units so a fully opaque or
    fully transparent source reproduces its input exactly.

    Returns:
        A new ``uint8`` array; neither input is modified.
    """
    src_a = src[..., 3:4].astype(np.float64)
    dst_a = dst[..., 3:4].astype(np.float64)

    src_w = src_a * 255.0
    dst_w = dst_a * (255.0 - src_a)
    out_w = src_w + dst_w

    color = src[..., :3] * src_w + dst[..., :3] * dst_w
    with np.errstate(divide="ignore", invalid="ignore"):
        color = np.where(out_w > 0, color / out_w, 0.0)

    out = np.empty_like(src)
    out[..., :3] = np.clip(np.rint(color), 0, 255).astype(np.uint8)
    out[..., 3:4] = np.clip(np.rint(out_w / 255.0), 0, 255).astype(np.uint8)
    return out


def has_transparency(pixels: np.ndarray) -> bool:
    """True if any pixel is fully transparent (alpha == 0)."""
    if pixels.size == 0:
        return False
    return bool(np.any(pixels[..., 3] == 0))


def frozen_copy(pixels: np.ndarray) -> np.ndarray:
    """Copy ``pixels`` and mark the copy read-only."""
    snapshot = pixels.copy()
    snapshot.setflags(write=False)
    return snapshot
