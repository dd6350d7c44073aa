#!/usr/bin/env python3
"""
square-crop: Crop WebP images to a 1:1 square and export them as PNG.

Usage:
    python square_crop.py a.webp b.webp [--output destination_folder] [--size 512]
"""

import argparse
import cv2
import numpy as np
from pathlib import Path
from PIL import Image, ImageDraw, UnidentifiedImageError, features
import sys
import io
import re
import uuid
import zipfile
import mimetypes
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple
import logging
from datetime import datetime
import traceback
import os

from version import __version__

# Not every platform mime table knows about WebP
mimetypes.add_type("image/webp", ".webp")

ACCEPTED_MEDIA_TYPE = "image/webp"
ZIP_NAME = "cropped-images.zip"
ZIP_FOLDER = "cropped-images"
MIN_EXPORT_SIZE = 128
MAX_EXPORT_SIZE = 2048
EXPORT_SIZE_STEP = 32
NO_VALID_FILES_WARNING = "No valid WebP files were found. Please upload WebP images only."


def setup_error_logging():
    """
    Setup logging to capture runtime errors and diagnostic information.
    Creates a log file in the same directory as the executable/script.
    """
    # Determine log file location (same directory as executable)
    if getattr(sys, 'frozen', False):
        # Running as PyInstaller executable
        app_dir = Path(sys.executable).parent
    else:
        # Running as script
        app_dir = Path(__file__).parent

    log_file = app_dir / f"square-crop-error-{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stderr)
        ]
    )

    return logging.getLogger(__name__)


def log_library_diagnostics(logger):
    """
    Log imaging library versions and codec support for debugging.
    Missing WebP support in the installed Pillow build is the usual reason
    every upload fails to decode.
    """
    logger.info("=" * 60)
    logger.info("Imaging Library Diagnostic Information")
    logger.info("=" * 60)

    logger.info(f"square-crop Version: {__version__}")
    logger.info(f"Pillow Version: {Image.__version__}")
    logger.info(f"OpenCV Version: {cv2.__version__}")
    logger.info(f"numpy Version: {np.__version__}")

    try:
        logger.info(f"Pillow WebP support: {features.check('webp')}")
        logger.info(f"Pillow zlib (PNG) support: {features.check('zlib')}")
    except Exception as e:
        logger.error(f"Could not query Pillow features: {e}")

    # Module locations help when several Pillow builds are installed
    for module in (Image, cv2, np):
        try:
            logger.info(f"{module.__name__} Module Path: {module.__file__}")
        except AttributeError as e:
            logger.error(f"Could not determine path for {module.__name__}: {e}")

    logger.info(f"Python Version: {sys.version}")
    logger.info(f"Platform: {sys.platform}")
    logger.info(f"Frozen (PyInstaller): {getattr(sys, 'frozen', False)}")
    if getattr(sys, 'frozen', False):
        logger.info(f"Executable Path: {sys.executable}")
        logger.info(f"MEIPASS: {getattr(sys, '_MEIPASS', 'Not set')}")

    logger.info("Relevant Environment Variables:")
    for var in ['PYTHONPATH', 'OPENCV_IO_ENABLE_OPENEXR']:
        logger.info(f"  {var}: {os.environ.get(var, 'Not set')}")

    logger.info("=" * 60)


# ============================================================================
# Errors
# ============================================================================

class SquareCropError(Exception):
    """Base class for square-crop failures"""


class ImageDecodeError(SquareCropError):
    """A file has the WebP media type but could not be decoded"""


class ExportError(SquareCropError):
    """Rasterizing or archiving failed; nothing was delivered"""


# ============================================================================
# Data Structures
# ============================================================================

@dataclass(frozen=True)
class CropRect:
    """
    Square crop region. Coordinates are in whatever space the rectangle was
    computed for (source pixels for export, display pixels for preview).
    """
    x: float
    y: float
    size: int

    def to_box(self) -> Tuple[int, int, int, int]:
        """Returns integer (left, top, right, bottom) tuple for PIL crop"""
        left = int(round(self.x))
        top = int(round(self.y))
        return (left, top, left + self.size, top + self.size)


@dataclass(frozen=True)
class ImageRecord:
    """
    One uploaded image. The crop offset is in SOURCE image pixels and is kept
    unclamped; compute_crop_rect() resolves it against the image bounds.
    """
    filename: str
    image: Image.Image = field(repr=False, compare=False)
    width: int
    height: int
    offset_x: float = 0.0
    offset_y: float = 0.0
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def offset(self) -> Tuple[float, float]:
        return (self.offset_x, self.offset_y)

    def with_offset(self, offset_x: float, offset_y: float) -> "ImageRecord":
        return replace(self, offset_x=offset_x, offset_y=offset_y)

    def crop_rect(self) -> CropRect:
        return compute_crop_rect(self.width, self.height, self.offset_x, self.offset_y)


@dataclass
class CropSettings:
    """Export configuration, built once per export action"""
    export_size: int = 512
    maintain_original_size: bool = False

    def __post_init__(self):
        if not MIN_EXPORT_SIZE <= self.export_size <= MAX_EXPORT_SIZE:
            raise ValueError(
                f"export_size must be between {MIN_EXPORT_SIZE} and {MAX_EXPORT_SIZE}, "
                f"got {self.export_size}"
            )

    @property
    def output_size(self) -> Optional[int]:
        """Target side length, or None to keep the natural crop size"""
        return None if self.maintain_original_size else self.export_size


@dataclass
class OverlayStyle:
    """Colors and line widths for the crop overlay (RGBA)"""
    mask_color: Tuple[int, int, int, int] = (0, 0, 0, 128)
    border_color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    border_width: int = 2
    guide_color: Tuple[int, int, int, int] = (255, 255, 255, 128)
    guide_width: int = 1


@dataclass
class AppConfig:
    """Application configuration/preferences"""
    preview_max_size: int = 500   # Longer side of the crop editor preview
    thumbnail_size: int = 200     # Side of the square thumbnails
    max_images: int = 100         # Files accepted per upload
    output_directory: Path = Path("./output")
    overlay: OverlayStyle = field(default_factory=OverlayStyle)


@dataclass(frozen=True)
class Session:
    """
    Images of the current session plus the selected index.
    Never mutated in place: every change returns a new Session.
    """
    records: Tuple[ImageRecord, ...] = ()
    selected_index: Optional[int] = None

    @property
    def selected(self) -> Optional[ImageRecord]:
        if self.selected_index is None:
            return None
        return self.records[self.selected_index]

    def add_records(self, records: Iterable[ImageRecord]) -> "Session":
        """Append newly uploaded records, keeping the current selection"""
        return replace(self, records=self.records + tuple(records))

    def select(self, index: Optional[int]) -> "Session":
        if index is not None and not 0 <= index < len(self.records):
            raise IndexError(f"No image at index {index}")
        return replace(self, selected_index=index)

    def with_offset(self, index: int, offset_x: float, offset_y: float) -> "Session":
        """Replace the crop offset of the record at index"""
        records = list(self.records)
        records[index] = records[index].with_offset(offset_x, offset_y)
        return replace(self, records=tuple(records))


@dataclass
class UploadResult:
    """Outcome of one upload: decoded records and how many files were skipped"""
    records: List[ImageRecord]
    skipped: int = 0

    @property
    def warning(self) -> Optional[str]:
        if self.records:
            return None
        return NO_VALID_FILES_WARNING


# ============================================================================
# Geometry Engine
# ============================================================================

def compute_crop_rect(width, height, offset_x=0, offset_y=0) -> CropRect:
    """
    Compute the largest square crop, centered on the longer axis and shifted
    by the offset, clamped so it stays inside the image.

    Args:
        width, height: Image dimensions in pixels (positive)
        offset_x, offset_y: Signed displacement from the centered position

    Returns:
        CropRect with top-left corner and side length
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    size = min(width, height)

    if width > height:
        # Landscape: center horizontally
        base_x, base_y = (width - size) // 2, 0
    else:
        # Portrait or square: center vertically
        base_x, base_y = 0, (height - size) // 2

    x = max(0, min(base_x + offset_x, width - size))
    y = max(0, min(base_y + offset_y, height - size))

    return CropRect(x=x, y=y, size=size)


class PillowSurface:
    """
    Drawing surface over a Pillow raster.
    Shapes go onto a transparent RGBA layer that composite() blends over the
    base image, so translucent colors behave like canvas alpha.
    """
    def __init__(self, base: Image.Image):
        self.base = base.convert("RGBA")
        self.layer = Image.new("RGBA", self.base.size, (0, 0, 0, 0))
        self.draw = ImageDraw.Draw(self.layer)

    @property
    def size(self) -> Tuple[int, int]:
        return self.base.size

    def fill_with_hole(self, hole, color):
        """Fill the whole surface except the hole box (even-odd fill)"""
        width, height = self.size
        x1, y1, x2, y2 = hole
        self.draw.rectangle((0, 0, width - 1, height - 1), fill=color)
        # ImageDraw overwrites pixels, so a clear fill punches the hole
        self.draw.rectangle((x1, y1, x2 - 1, y2 - 1), fill=(0, 0, 0, 0))

    def stroke_rect(self, box, color, width):
        x1, y1, x2, y2 = box
        self.draw.rectangle((x1, y1, x2 - 1, y2 - 1), outline=color, width=width)

    def line(self, start, end, color, width):
        self.draw.line([start, end], fill=color, width=width)

    def composite(self) -> Image.Image:
        return Image.alpha_composite(self.base, self.layer)


def draw_crop_overlay(surface, rect: CropRect, style: Optional[OverlayStyle] = None):
    """
    Draw the crop feedback: darkened mask outside the square, border around
    it, and rule-of-thirds guides inside.

    Args:
        surface: Anything with size, fill_with_hole(), stroke_rect() and line()
        rect: Crop rectangle in the surface's coordinate space
        style: Colors and widths (defaults to OverlayStyle())
    """
    style = style or OverlayStyle()
    x, y, size = rect.x, rect.y, rect.size
    box = (x, y, x + size, y + size)

    surface.fill_with_hole(box, style.mask_color)
    surface.stroke_rect(box, style.border_color, style.border_width)

    for i in (1, 2):
        step = size * i / 3
        # Vertical guide
        surface.line((x + step, y), (x + step, y + size), style.guide_color, style.guide_width)
        # Horizontal guide
        surface.line((x, y + step), (x + size, y + step), style.guide_color, style.guide_width)


# ============================================================================
# Drag Controller
# ============================================================================

class DragState(Enum):
    """Pointer interaction states for the crop editor"""
    IDLE = 0
    DRAGGING = 1


class DragController:
    """
    Turns pointer drags on the preview (display space) into crop offset
    changes (source space). Tracking is incremental: each move adds the delta
    since the previous event. Offsets are NOT clamped here; the geometry
    engine clamps on the next render.
    """
    def __init__(self, offset_x: float = 0.0, offset_y: float = 0.0):
        self.state = DragState.IDLE
        self.offset = (offset_x, offset_y)
        self.drag_start: Optional[Tuple[float, float]] = None  # Display space

    @property
    def is_dragging(self) -> bool:
        return self.state == DragState.DRAGGING

    def pointer_down(self, x, y):
        self.state = DragState.DRAGGING
        self.drag_start = (x, y)

    def pointer_move(self, x, y, scale) -> Optional[Tuple[float, float]]:
        """
        Apply a pointer move. Returns the new offset, or None when idle.

        Args:
            x, y: Pointer position in display coordinates
            scale: Display-to-source scale factor of the preview
        """
        if self.state != DragState.DRAGGING:
            return None
        if scale <= 0:
            raise ValueError(f"Display scale must be positive, got {scale}")

        dx = (x - self.drag_start[0]) / scale
        dy = (y - self.drag_start[1]) / scale
        self.offset = (self.offset[0] + dx, self.offset[1] + dy)
        self.drag_start = (x, y)
        return self.offset

    def pointer_up(self):
        self.state = DragState.IDLE
        self.drag_start = None

    # Leaving the preview ends the drag just like releasing the button
    pointer_leave = pointer_up


# ============================================================================
# Renderer
# ============================================================================

def display_scale(width, height, max_size=500) -> float:
    """Uniform scale (never above 1) fitting the image inside max_size"""
    return min(1.0, max_size / max(width, height))


def render_preview(image: Image.Image, offset=(0, 0), max_size=500,
                   style: Optional[OverlayStyle] = None) -> Tuple[Image.Image, float]:
    """
    Render the editor preview: the image scaled down to fit max_size with
    the crop overlay on top. Recomputed from scratch on every call.

    Args:
        image: Source image (full resolution)
        offset: Crop offset in source pixels
        max_size: Bound on the longer display side
        style: Overlay colors

    Returns:
        (RGB preview image, display scale used)
    """
    img_w, img_h = image.size
    scale = display_scale(img_w, img_h, max_size)

    display_w = max(1, int(img_w * scale))
    display_h = max(1, int(img_h * scale))
    scaled = image.resize((display_w, display_h), Image.Resampling.LANCZOS)

    rect = compute_crop_rect(display_w, display_h, offset[0] * scale, offset[1] * scale)

    surface = PillowSurface(scaled)
    draw_crop_overlay(surface, rect, style)
    return surface.composite().convert("RGB"), scale


class ThumbnailCache:
    """
    Square thumbnails per record, reused until the record's offset changes.
    """
    def __init__(self, size=200):
        self.size = size
        self._entries = {}  # record_id -> (offset, thumbnail)

    def get(self, record: ImageRecord) -> Image.Image:
        entry = self._entries.get(record.record_id)
        if entry is not None and entry[0] == record.offset:
            return entry[1]

        thumbnail = crop_square(record.image, record.offset_x, record.offset_y, self.size)
        self._entries[record.record_id] = (record.offset, thumbnail)
        return thumbnail

    def try_get(self, record: ImageRecord) -> Optional[Image.Image]:
        """Like get(), but logs a failure and returns None for a placeholder"""
        try:
            return self.get(record)
        except Exception as e:
            logger = logging.getLogger(__name__)
            logger.error(f"Error generating thumbnail for {record.filename}: {e}")
            logger.error(traceback.format_exc())
            return None

    def prune(self, records: Iterable[ImageRecord]):
        """Drop thumbnails for records no longer in the session"""
        keep = {record.record_id for record in records}
        for record_id in list(self._entries):
            if record_id not in keep:
                del self._entries[record_id]

    def __len__(self):
        return len(self._entries)


# ============================================================================
# Export Adapter
# ============================================================================

def resample_square(image: Image.Image, size: int) -> Image.Image:
    """
    Resample a square image to size x size with OpenCV.
    Area interpolation when shrinking avoids aliasing; cubic when enlarging.
    Alpha images are resampled premultiplied so transparent pixels do not
    bleed their color into the edges.
    """
    if image.size == (size, size):
        return image

    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA")

    interpolation = cv2.INTER_AREA if image.width > size else cv2.INTER_CUBIC

    if image.mode == "RGBA":
        premultiplied = np.array(image.convert("RGBa"))
        resized = cv2.resize(premultiplied, (size, size), interpolation=interpolation)
        return Image.frombytes("RGBa", (size, size), resized.tobytes()).convert("RGBA")

    resized = cv2.resize(np.array(image), (size, size), interpolation=interpolation)
    return Image.fromarray(resized)


def crop_square(image: Image.Image, offset_x=0, offset_y=0,
                output_size: Optional[int] = None) -> Image.Image:
    """
    Extract the square crop at full resolution, optionally resampled.

    Args:
        image: Source image
        offset_x, offset_y: Crop offset in source pixels
        output_size: Target side length, None keeps the natural crop size
    """
    rect = compute_crop_rect(image.width, image.height, offset_x, offset_y)
    cropped = image.crop(rect.to_box())

    if output_size is not None:
        cropped = resample_square(cropped, output_size)

    return cropped


def png_filename(name: str) -> str:
    """Original filename with its extension replaced by .png"""
    return re.sub(r"\.[^/.]+$", "", name) + ".png"


def export_png(record: ImageRecord, settings: CropSettings) -> bytes:
    """Crop one record per settings and encode it as PNG bytes"""
    logger = logging.getLogger(__name__)

    try:
        cropped = crop_square(record.image, record.offset_x, record.offset_y,
                              settings.output_size)
        buffer = io.BytesIO()
        cropped.save(buffer, "PNG", optimize=True)
    except Exception as e:
        logger.error(f"Failed to export {record.filename}: {e}")
        logger.error(traceback.format_exc())
        raise ExportError(f"Failed to export {record.filename}: {e}") from e

    logger.info(f"Exported {record.filename}: {cropped.width}x{cropped.height}px")
    return buffer.getvalue()


def build_zip(records: Iterable[ImageRecord], settings: CropSettings) -> bytes:
    """
    Export every record and pack the PNGs into a ZIP archive under
    cropped-images/. Any failure aborts the whole archive.
    """
    logger = logging.getLogger(__name__)

    # Same output name: the later image wins
    entries = {}
    for record in records:
        entries[f"{ZIP_FOLDER}/{png_filename(record.filename)}"] = export_png(record, settings)

    try:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(f"{ZIP_FOLDER}/", "")
            for name, data in entries.items():
                archive.writestr(name, data)
    except Exception as e:
        logger.error(f"Failed to build archive: {e}")
        logger.error(traceback.format_exc())
        raise ExportError(f"Failed to build archive: {e}") from e

    logger.info(f"Archive built with {len(entries)} image(s)")
    return buffer.getvalue()


# ============================================================================
# Upload
# ============================================================================

def is_webp(path) -> bool:
    """Check the media type implied by the file name"""
    media_type, _ = mimetypes.guess_type(str(path))
    return media_type == ACCEPTED_MEDIA_TYPE


def load_record(path) -> ImageRecord:
    """
    Decode a WebP file into an ImageRecord with a centered crop.
    Decoding finishes before the dimensions are read.
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.load()
            image = img.copy()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode '{path.name}': {e}") from e

    width, height = image.size
    return ImageRecord(filename=path.name, image=image, width=width, height=height)


def load_webp_files(paths, max_images=100) -> UploadResult:
    """
    Decode the WebP files among paths. Other files are skipped and counted;
    a WebP file that fails to decode raises ImageDecodeError.

    Args:
        paths: Candidate file paths
        max_images: Files accepted per upload; the rest are skipped
    """
    logger = logging.getLogger(__name__)
    result = UploadResult(records=[])

    for path in paths:
        path = Path(path)
        if not is_webp(path):
            logger.warning(f"Skipping non-WebP file: {path.name}")
            result.skipped += 1
            continue

        if len(result.records) >= max_images:
            logger.warning(f"Skipping {path.name}: limit of {max_images} images reached")
            result.skipped += 1
            continue

        record = load_record(path)
        logger.info(f"Loaded {path.name}: {record.width}x{record.height}px")
        result.records.append(record)

    if result.warning:
        logger.warning(result.warning)

    return result


# ============================================================================
# Batch processing
# ============================================================================

def crop_and_save_images(input_paths, output_dir, settings: CropSettings,
                         offset=(0, 0), as_zip=False, preview=False,
                         max_size=500) -> bool:
    """
    Crop WebP images and save the PNGs (or one ZIP archive) to output_dir.

    Args:
        input_paths: WebP files to process
        output_dir: Directory to save results
        settings: Export size settings
        offset: Crop offset applied to every image (source pixels)
        as_zip: Write cropped-images.zip instead of loose PNGs
        preview: Also write the overlay preview of each image
        max_size: Longer side of preview images

    Returns:
        True when at least one image was exported
    """
    logger = logging.getLogger(__name__)
    output_dir = Path(output_dir)

    try:
        upload = load_webp_files(input_paths)
    except ImageDecodeError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return False

    if upload.warning:
        print(f"Warning: {upload.warning}", file=sys.stderr)
        return False

    if upload.skipped:
        print(f"Skipped {upload.skipped} non-WebP file(s)")

    output_dir.mkdir(parents=True, exist_ok=True)
    records = [record.with_offset(*offset) for record in upload.records]

    try:
        if as_zip:
            archive_path = output_dir / ZIP_NAME
            archive_path.write_bytes(build_zip(records, settings))
            logger.info(f"Saved: {archive_path}")
            print(f"  Saved: {archive_path}")
        else:
            # Encode the whole batch before writing so a failure leaves nothing behind
            encoded = [(output_dir / png_filename(record.filename), export_png(record, settings))
                       for record in records]
            for output_path, data in encoded:
                output_path.write_bytes(data)
                logger.info(f"Saved: {output_path}")
                print(f"  Saved: {output_path}")

        if preview:
            for record in records:
                image, _ = render_preview(record.image, record.offset, max_size)
                preview_path = output_dir / f"{Path(record.filename).stem}-preview.png"
                image.save(preview_path, "PNG")
                logger.info(f"Saved preview: {preview_path}")

    except (ExportError, OSError) as e:
        logger.error(f"Export failed: {e}")
        print(f"Error: export failed: {e}", file=sys.stderr)
        return False

    print(f"Successfully exported {len(records)} image(s)")
    return True


def export_size_arg(value):
    """argparse type for --size"""
    size = int(value)
    if not MIN_EXPORT_SIZE <= size <= MAX_EXPORT_SIZE:
        raise argparse.ArgumentTypeError(
            f"size must be between {MIN_EXPORT_SIZE} and {MAX_EXPORT_SIZE}"
        )
    return size


def build_parser():
    parser = argparse.ArgumentParser(
        description="Crop WebP images to a 1:1 square and export them as PNG.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python square_crop.py cat.webp
  python square_crop.py *.webp --size 1024 --zip
  python square_crop.py banner.webp --offset -200 0 --keep-size
        """
    )

    parser.add_argument(
        "inputs",
        nargs="+",
        help="WebP files to crop (other files are skipped)"
    )

    parser.add_argument(
        "--output",
        default="./output",
        help="Output directory (default: ./output)"
    )

    parser.add_argument(
        "--size",
        type=export_size_arg,
        default=512,
        help=f"Output side length in pixels, {MIN_EXPORT_SIZE}-{MAX_EXPORT_SIZE} (default: 512)"
    )

    parser.add_argument(
        "--keep-size",
        action="store_true",
        help="Keep the natural crop size instead of resizing"
    )

    parser.add_argument(
        "--offset",
        nargs=2,
        type=float,
        default=(0.0, 0.0),
        metavar=("DX", "DY"),
        help="Shift the centered crop by DX, DY source pixels"
    )

    parser.add_argument(
        "--zip",
        action="store_true",
        help=f"Write a single {ZIP_NAME} instead of loose PNG files"
    )

    parser.add_argument(
        "--preview",
        action="store_true",
        help="Also save a preview with the crop overlay for each image"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging with imaging library diagnostics"
    )

    return parser


def main(argv=None):
    # Setup logging first
    logger = setup_error_logging()

    args = build_parser().parse_args(argv)

    try:
        if args.debug:
            log_library_diagnostics(logger)

        logger.info(f"Starting square-crop v{__version__}: {len(args.inputs)} input(s)")

        settings = CropSettings(export_size=args.size,
                                maintain_original_size=args.keep_size)
        success = crop_and_save_images(
            args.inputs, args.output, settings,
            offset=tuple(args.offset), as_zip=args.zip, preview=args.preview
        )

        if success:
            logger.info("Processing completed successfully")
        else:
            logger.warning("Processing completed with warnings or errors")

        sys.exit(0 if success else 1)

    except Exception as e:
        logger.error("=" * 60)
        logger.error("FATAL ERROR OCCURRED")
        logger.error("=" * 60)
        logger.error(f"Error: {str(e)}")
        logger.error(f"Error Type: {type(e).__name__}")
        logger.error("Stack Trace:")
        logger.error(traceback.format_exc())

        logger.error("\nLogging library diagnostics due to fatal error:")
        try:
            log_library_diagnostics(logger)
        except Exception as diag_error:
            logger.error(f"Could not log diagnostics: {diag_error}")

        print(f"\nFATAL ERROR: {str(e)}", file=sys.stderr)
        print("Error details have been logged. Please check the log file.", file=sys.stderr)

        sys.exit(1)


if __name__ == "__main__":
    main()
