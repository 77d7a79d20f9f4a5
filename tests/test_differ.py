from __future__ import annotations

import pytest

from apngkit.chunks.primitives import BlendOp
from apngkit.encode.differ import diff_frames
from apngkit.errors import SizeMismatch

from helpers import BLUE, CLEAR, GREEN, RED, solid


def test_identical_frames_give_empty_diff():
    frame = solid(4, 4, RED)
    diff = diff_frames(frame, frame.copy())
    assert diff.is_empty
    assert diff.width == 0 or diff.height == 0


def test_single_changed_pixel():
    previous = solid(4, 4, RED)
    current = previous.copy()
    current[2, 2] = BLUE
    diff = diff_frames(previous, current)
    assert (diff.x_offset, diff.y_offset) == (2, 2)
    assert (diff.width, diff.height) == (1, 1)
    assert diff.blend_op is BlendOp.OVER
    assert diff.pixels[0, 0].tolist() == list(BLUE)


def test_over_blanks_unchanged_pixels_inside_box():
    previous = solid(5, 5, RED)
    current = previous.copy()
    current[1, 1] = BLUE
    current[3, 4] = GREEN
    diff = diff_frames(previous, current)
    assert (diff.x_offset, diff.y_offset, diff.width, diff.height) == (1, 1, 4, 3)
    assert diff.blend_op is BlendOp.OVER
    assert diff.pixels[0, 0].tolist() == list(BLUE)
    assert diff.pixels[2, 3].tolist() == list(GREEN)
    assert diff.pixels[1, 1].tolist() == list(CLEAR)


def test_transparency_anywhere_in_next_frame_forces_source():
    previous = solid(4, 4, RED)
    previous[0, 0] = CLEAR
    current = previous.copy()
    current[3, 3] = BLUE
    current[2, 3] = BLUE
    diff = diff_frames(previous, current)
    assert diff.blend_op is BlendOp.SOURCE
    assert (diff.x_offset, diff.y_offset, diff.width, diff.height) == (3, 2, 1, 2)

    current[3, 0] = GREEN
    diff = diff_frames(previous, current)
    assert (diff.x_offset, diff.y_offset, diff.width, diff.height) == (0, 2, 4, 2)
    # Unchanged pixels are copied through under SOURCE
    assert diff.pixels[0, 0].tolist() == list(RED)


def test_inputs_are_not_mutated():
    previous = solid(3, 3, RED)
    current = solid(3, 3, GREEN)
    before_prev, before_cur = previous.copy(), current.copy()
    diff = diff_frames(previous, current)
    diff.pixels[...] = 0
    assert (previous == before_prev).all()
    assert (current == before_cur).all()


def test_size_mismatch():
    with pytest.raises(SizeMismatch):
        diff_frames(solid(4, 4, RED), solid(4, 3, RED))
