"""Tests for batch processing and the command-line entry point."""

import io
import logging
import zipfile

import pytest
from PIL import Image

import square_crop
from square_crop import CropSettings, ZIP_NAME, crop_and_save_images


@pytest.fixture
def quiet_logging(monkeypatch):
    """Keep main() from writing a log file next to the module."""
    monkeypatch.setattr(square_crop, "setup_error_logging",
                        lambda: logging.getLogger("square_crop_test"))


def test_writes_one_png_per_webp(make_webp, tmp_path):
    inputs = [make_webp("one.webp"), make_webp("two.webp", size=(300, 900))]
    output_dir = tmp_path / "out"

    assert crop_and_save_images(inputs, output_dir, CropSettings(export_size=256))

    for name in ("one.png", "two.png"):
        with Image.open(output_dir / name) as image:
            assert image.size == (256, 256)


def test_zip_mode_writes_archive(make_webp, tmp_path):
    output_dir = tmp_path / "out"

    assert crop_and_save_images([make_webp("one.webp")], output_dir,
                                CropSettings(), as_zip=True)

    with zipfile.ZipFile(output_dir / ZIP_NAME) as archive:
        assert "cropped-images/one.png" in archive.namelist()


def test_offset_is_applied_to_every_image(tmp_path):
    source = tmp_path / "banded.webp"
    image = Image.new("RGB", (1200, 800), (0, 255, 0))
    image.paste((255, 0, 0), (0, 0, 200, 800))
    image.save(source, "WEBP", lossless=True)

    settings = CropSettings(maintain_original_size=True)
    assert crop_and_save_images([source], tmp_path / "out", settings, offset=(-500, 0))

    with Image.open(tmp_path / "out" / "banded.png") as output:
        assert output.size == (800, 800)
        assert output.getpixel((0, 0))[:3] == (255, 0, 0)


def test_failed_image_leaves_no_pngs_behind(make_webp, tmp_path, monkeypatch):
    original = square_crop.crop_square

    def crop_second_fails(image, *args, **kwargs):
        if image.size == (300, 900):
            raise OSError("decode failed")
        return original(image, *args, **kwargs)

    monkeypatch.setattr(square_crop, "crop_square", crop_second_fails)
    inputs = [make_webp("a.webp"), make_webp("b.webp", size=(300, 900))]
    output_dir = tmp_path / "out"

    assert not crop_and_save_images(inputs, output_dir, CropSettings())
    assert list(output_dir.iterdir()) == []


def test_preview_is_saved_when_requested(make_webp, tmp_path):
    output_dir = tmp_path / "out"

    crop_and_save_images([make_webp("cat.webp", size=(1000, 600))], output_dir,
                         CropSettings(), preview=True)

    with Image.open(output_dir / "cat-preview.png") as preview:
        assert preview.size == (500, 300)


def test_no_valid_input_returns_false(tmp_path):
    jpeg = tmp_path / "photo.jpg"
    Image.new("RGB", (10, 10)).save(jpeg, "JPEG")

    assert not crop_and_save_images([jpeg], tmp_path / "out", CropSettings())
    assert not (tmp_path / "out").exists()


def test_main_exits_zero_on_success(make_webp, tmp_path, quiet_logging):
    output_dir = tmp_path / "out"
    argv = [str(make_webp("main.webp")), "--output", str(output_dir), "--size", "128"]

    with pytest.raises(SystemExit) as excinfo:
        square_crop.main(argv)

    assert excinfo.value.code == 0
    with Image.open(output_dir / "main.png") as image:
        assert image.size == (128, 128)


def test_main_exits_one_without_webp(tmp_path, quiet_logging):
    with pytest.raises(SystemExit) as excinfo:
        square_crop.main([str(tmp_path / "missing.jpg"), "--output", str(tmp_path)])

    assert excinfo.value.code == 1


@pytest.mark.parametrize("size", ["64", "4096", "big"])
def test_size_outside_range_is_a_usage_error(size, quiet_logging):
    with pytest.raises(SystemExit) as excinfo:
        square_crop.main(["a.webp", "--size", size])

    assert excinfo.value.code == 2
