"""Tests for preview rendering, overlay drawing and thumbnails."""

import pytest
from PIL import Image

import square_crop
from square_crop import (
    CropRect,
    ImageRecord,
    OverlayStyle,
    ThumbnailCache,
    display_scale,
    draw_crop_overlay,
    render_preview,
)

BASE = (200, 100, 50)


def close_to(pixel, expected, tolerance=1):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


class RecordingSurface:
    """Drawing surface that only records calls."""
    def __init__(self):
        self.size = (300, 300)
        self.calls = []

    def fill_with_hole(self, hole, color):
        self.calls.append(("fill_with_hole", hole, color))

    def stroke_rect(self, box, color, width):
        self.calls.append(("stroke_rect", box, color, width))

    def line(self, start, end, color, width):
        self.calls.append(("line", start, end, color, width))


@pytest.mark.parametrize("width,height,expected", [
    (1000, 600, 0.5),
    (600, 1000, 0.5),
    (300, 200, 1.0),
    (500, 500, 1.0),
])
def test_display_scale_fits_and_never_upscales(width, height, expected):
    assert display_scale(width, height, 500) == pytest.approx(expected)


def test_overlay_draws_mask_border_and_thirds():
    surface = RecordingSurface()
    style = OverlayStyle()

    draw_crop_overlay(surface, CropRect(x=30, y=0, size=90), style)

    kinds = [call[0] for call in surface.calls]
    assert kinds == ["fill_with_hole", "stroke_rect", "line", "line", "line", "line"]
    assert surface.calls[0] == ("fill_with_hole", (30, 0, 120, 90), style.mask_color)
    assert surface.calls[1] == ("stroke_rect", (30, 0, 120, 90), style.border_color, 2)

    lines = {(call[1], call[2]) for call in surface.calls[2:]}
    assert lines == {
        ((60, 0), (60, 90)),
        ((30, 30), (120, 30)),
        ((90, 0), (90, 90)),
        ((30, 60), (120, 60)),
    }


def test_preview_is_scaled_to_bound():
    preview, scale = render_preview(Image.new("RGB", (1000, 600), BASE), max_size=500)

    assert scale == pytest.approx(0.5)
    assert preview.size == (500, 300)
    assert preview.mode == "RGB"


def test_preview_masks_outside_of_crop():
    """Display crop is x=100..400; the center stays clear, the sides darken."""
    preview, _ = render_preview(Image.new("RGB", (1000, 600), BASE), max_size=500)

    assert close_to(preview.getpixel((250, 150)), BASE)
    assert preview.getpixel((20, 150))[0] < 110
    assert preview.getpixel((480, 150))[0] < 110


def test_preview_draws_border_and_guides():
    preview, _ = render_preview(Image.new("RGB", (1000, 600), BASE), max_size=500)

    # Border on the left edge of the square
    assert preview.getpixel((100, 150)) == (255, 255, 255)
    # First vertical third line is a translucent white
    assert preview.getpixel((200, 150))[2] > BASE[2] + 50


def test_preview_scales_offset_to_display_space():
    """A 100px source offset moves the display square by 50px."""
    preview, _ = render_preview(Image.new("RGB", (1000, 600), BASE), offset=(100, 0),
                                max_size=500)

    assert preview.getpixel((150, 150)) == (255, 255, 255)
    assert preview.getpixel((120, 150))[0] < 110


def test_preview_clamps_offset():
    preview, _ = render_preview(Image.new("RGB", (1000, 600), BASE), offset=(-1000, 0),
                                max_size=500)

    assert close_to(preview.getpixel((20, 150)), BASE)
    assert preview.getpixel((450, 150))[0] < 110


def make_record(size=(400, 300)):
    image = Image.new("RGB", size, BASE)
    return ImageRecord(filename="thumb.webp", image=image, width=size[0], height=size[1])


def test_thumbnail_is_square_at_cache_size():
    cache = ThumbnailCache(size=200)
    thumbnail = cache.get(make_record())

    assert thumbnail.size == (200, 200)


def test_thumbnail_is_reused_until_offset_changes():
    cache = ThumbnailCache(size=64)
    record = make_record()

    first = cache.get(record)
    assert cache.get(record) is first

    moved = record.with_offset(40, 0)
    assert cache.get(moved) is not first
    assert len(cache) == 1


def test_prune_drops_removed_records():
    cache = ThumbnailCache(size=64)
    kept, dropped = make_record(), make_record()
    cache.get(kept)
    cache.get(dropped)

    cache.prune([kept])

    assert len(cache) == 1


def test_failed_thumbnail_yields_placeholder(monkeypatch):
    def broken_crop(*args, **kwargs):
        raise OSError("truncated image")

    monkeypatch.setattr(square_crop, "crop_square", broken_crop)
    cache = ThumbnailCache(size=64)

    assert cache.try_get(make_record()) is None
    assert len(cache) == 0


def test_try_get_returns_cached_thumbnail():
    cache = ThumbnailCache(size=64)
    record = make_record()

    assert cache.try_get(record) is cache.get(record)
