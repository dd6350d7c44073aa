import sys
from pathlib import Path

import pytest
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]

# The project is a set of top-level modules; make them importable without install.
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def make_webp(tmp_path):
    """Write a lossless WebP into tmp_path and return its path."""
    def _make(name="image.webp", size=(1200, 800), color=(200, 100, 50)):
        path = tmp_path / name
        Image.new("RGB", size, color).save(path, "WEBP", lossless=True)
        return path
    return _make


@pytest.fixture
def banded_image():
    """1200x800 image: red left band, green centered square, blue right band."""
    image = Image.new("RGB", (1200, 800), (0, 255, 0))
    image.paste((255, 0, 0), (0, 0, 200, 800))
    image.paste((0, 0, 255), (1000, 0, 1200, 800))
    return image
