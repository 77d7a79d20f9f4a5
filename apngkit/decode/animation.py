"""Decoded animation containers."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class Frame:
    """One fully composited canvas and how long it stays on screen."""

    pixels: np.ndarray
    duration_ms: float

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class AnimatedImage:
    """A decoded APNG (or a still image routed through the same API).

    ``cover_frame`` is the default image stored before the first fcTL. It
    is only filled in when cover decoding was requested.
    """

    width: int
    height: int
    frames: list[Frame] = field(default_factory=list)
    cover_frame: np.ndarray | None = None
    num_plays: int = 0
    is_animated: bool = True

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def duration_ms(self) -> float:
        return sum(f.duration_ms for f in self.frames)

    @property
    def loops_forever(self) -> bool:
        return self.num_plays == 0

    @property
    def nbytes(self) -> int:
        """Approximate memory held by the pixel data."""
        total = sum(f.pixels.nbytes for f in self.frames)
        if self.cover_frame is not None:
            total += self.cover_frame.nbytes
        return total

    def get_frame(self, index: int) -> Frame:
        """Get a frame by index, wrapping around for looping."""
        return self.frames[index % self.frame_count]
