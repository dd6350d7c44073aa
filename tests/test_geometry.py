"""Tests for the square crop geometry."""

import pytest

from square_crop import CropRect, compute_crop_rect


def test_landscape_is_centered_horizontally():
    """A 1200x800 image crops to the centered 800px square."""
    assert compute_crop_rect(1200, 800) == CropRect(x=200, y=0, size=800)


def test_portrait_is_centered_vertically():
    assert compute_crop_rect(800, 1200) == CropRect(x=0, y=200, size=800)


def test_square_image_has_no_base_offset():
    rect = compute_crop_rect(500, 500, 30, -30)
    assert rect == CropRect(x=0, y=0, size=500)


def test_odd_difference_is_floored():
    rect = compute_crop_rect(1001, 500)
    assert rect.x == 250
    assert rect.size == 500


def test_offset_shifts_the_square():
    rect = compute_crop_rect(1200, 800, 150, 0)
    assert rect == CropRect(x=350, y=0, size=800)


def test_negative_offset_is_clamped_to_left_edge():
    """Offset (-500, 0) on 1200x800 lands at x=0, not x=-300."""
    assert compute_crop_rect(1200, 800, -500, 0) == CropRect(x=0, y=0, size=800)


@pytest.mark.parametrize("width,height", [(1200, 800), (800, 1200), (640, 640), (3, 7)])
@pytest.mark.parametrize("offset_x,offset_y", [
    (100000, 0),
    (-100000, 0),
    (0, 100000),
    (0, -100000),
    (100000, -100000),
])
def test_rect_always_inside_image(width, height, offset_x, offset_y):
    """Clamping holds for offsets far outside the valid range."""
    rect = compute_crop_rect(width, height, offset_x, offset_y)

    assert rect.size == min(width, height)
    assert 0 <= rect.x <= width - rect.size
    assert 0 <= rect.y <= height - rect.size


def test_compute_is_pure():
    first = compute_crop_rect(1920, 1080, -37.5, 12)
    second = compute_crop_rect(1920, 1080, -37.5, 12)
    assert first == second


@pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (-5, 10)])
def test_non_positive_dimensions_are_rejected(width, height):
    with pytest.raises(ValueError):
        compute_crop_rect(width, height)


def test_to_box_rounds_fractional_offsets():
    rect = compute_crop_rect(1200, 800, 10.6, 0)
    assert rect.to_box() == (211, 0, 1011, 800)
