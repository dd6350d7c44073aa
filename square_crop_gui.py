#!/usr/bin/env python3
"""
square-crop GUI: Batch square cropper for WebP images
Upload WebP files, adjust each square crop by dragging, export PNG or ZIP
"""

import tkinter as tk
from tkinter import filedialog, messagebox
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, List
import sys
import argparse
import logging
from datetime import datetime
import traceback

from PIL import ImageTk

from square_crop import (
    AppConfig,
    CropSettings,
    DragController,
    ImageDecodeError,
    MAX_EXPORT_SIZE,
    MIN_EXPORT_SIZE,
    EXPORT_SIZE_STEP,
    Session,
    ThumbnailCache,
    ZIP_NAME,
    build_zip,
    export_png,
    load_webp_files,
    log_library_diagnostics,
    png_filename,
    render_preview,
    setup_error_logging,
)
from version import __version__

EXPORT_ERROR_MESSAGE = "An error occurred during export. Please try again."
UPLOAD_ERROR_MESSAGE = "An error occurred while processing the images."


# ============================================================================
# Crop Editor Dialog
# ============================================================================

class CropEditorDialog(tk.Toplevel):
    """
    Modal editor for one image: drag on the preview to move the square crop.
    Apply keeps the new offset in self.result, Cancel leaves it None.
    """
    def __init__(self, parent, record, config: AppConfig):
        super().__init__(parent)
        self.title(f"Adjust Crop Position - {record.filename}")
        self.record = record
        self.config_ = config
        self.result = None
        self.scale_factor = 1.0
        self.photo_image = None  # Keep reference to prevent GC

        self.drag = DragController(record.offset_x, record.offset_y)

        # Make dialog modal
        self.transient(parent)
        self.grab_set()

        self.create_widgets()
        self.refresh()

        self.update_idletasks()
        self.resizable(False, False)

    def create_widgets(self):
        main_frame = tk.Frame(self, padx=15, pady=15)
        main_frame.pack(fill=tk.BOTH, expand=True)

        self.canvas = tk.Canvas(main_frame, highlightthickness=1,
                                highlightbackground="gray", cursor="hand2")
        self.canvas.pack()

        self.canvas.bind("<Button-1>", self.on_mouse_down)
        self.canvas.bind("<B1-Motion>", self.on_mouse_drag)
        self.canvas.bind("<ButtonRelease-1>", self.on_mouse_up)
        self.canvas.bind("<Leave>", self.on_mouse_up)

        tk.Label(main_frame,
                 text="Click and drag to adjust the crop position. "
                      "The image will be cropped to a 1:1 ratio.",
                 fg="gray25").pack(pady=(10, 0))

        button_frame = tk.Frame(main_frame)
        button_frame.pack(fill=tk.X, pady=(15, 0))

        tk.Button(button_frame, text="Apply Changes", width=14,
                  command=self.on_apply).pack(side=tk.RIGHT, padx=(5, 0))
        tk.Button(button_frame, text="Cancel", width=10,
                  command=self.on_cancel).pack(side=tk.RIGHT)

        self.bind("<Return>", lambda e: self.on_apply())
        self.bind("<Escape>", lambda e: self.on_cancel())

    def refresh(self):
        """Redraw preview and overlay for the current working offset"""
        preview, self.scale_factor = render_preview(
            self.record.image, self.drag.offset,
            self.config_.preview_max_size, self.config_.overlay
        )
        self.photo_image = ImageTk.PhotoImage(preview)

        self.canvas.config(width=preview.width, height=preview.height)
        self.canvas.delete("all")
        self.canvas.create_image(0, 0, anchor=tk.NW, image=self.photo_image)

    def on_mouse_down(self, event):
        self.drag.pointer_down(event.x, event.y)
        self.canvas.config(cursor="fleur")

    def on_mouse_drag(self, event):
        if self.drag.pointer_move(event.x, event.y, self.scale_factor) is not None:
            self.refresh()

    def on_mouse_up(self, event):
        self.drag.pointer_up()
        self.canvas.config(cursor="hand2")

    def on_apply(self):
        self.result = self.drag.offset
        self.destroy()

    def on_cancel(self):
        self.result = None
        self.destroy()


# ============================================================================
# Thumbnail Grid
# ============================================================================

class ThumbnailGrid(tk.Frame):
    """
    Grid of cropped thumbnails. Clicking one selects it and opens the editor.
    """
    COLUMNS = 5

    def __init__(self, parent, app, thumbnail_cache: ThumbnailCache):
        super().__init__(parent, bg="white")
        self.app = app
        self.thumbnail_cache = thumbnail_cache
        self.photo_images = []  # Keep references to prevent GC

        self.title_label = tk.Label(self, text="", font=("Arial", 12, "bold"),
                                    bg="white", anchor=tk.W)
        self.title_label.pack(fill=tk.X, padx=10, pady=(10, 5))

        self.grid_frame = tk.Frame(self, bg="white")
        self.grid_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=5)

    def refresh(self, session: Session):
        """Rebuild the grid from the session"""
        for child in self.grid_frame.winfo_children():
            child.destroy()
        self.photo_images = []

        self.title_label.config(text=f"Uploaded Images ({len(session.records)})")
        self.thumbnail_cache.prune(session.records)

        for index, record in enumerate(session.records):
            is_selected = index == session.selected_index

            cell = tk.Frame(self.grid_frame, bg="#1E88E5" if is_selected else "white",
                            padx=2, pady=2)
            row, column = divmod(index, self.COLUMNS)
            cell.grid(row=row, column=column, padx=4, pady=4)

            thumbnail = self.thumbnail_cache.try_get(record)
            if thumbnail is not None:
                photo = ImageTk.PhotoImage(thumbnail)
                self.photo_images.append(photo)
                image_label = tk.Label(cell, image=photo, cursor="hand2", bd=0)
            else:
                # Placeholder keeps the grid intact
                image_label = tk.Label(cell, text="Preview unavailable", bg="gray90",
                                       width=24, height=12, cursor="hand2", bd=0)
            image_label.pack()
            name_label = tk.Label(cell, text=record.filename, bg="black", fg="white",
                                  font=("Arial", 8), width=24, anchor=tk.W)
            name_label.pack(fill=tk.X)

            for widget in (image_label, name_label):
                widget.bind("<Button-1>", lambda e, i=index: self.app.open_editor(i))


# ============================================================================
# Export Options
# ============================================================================

class ExportOptionsPanel(tk.Frame):
    """Export size controls: keep-original-size toggle and output size scale"""
    def __init__(self, parent, app):
        super().__init__(parent, padx=10, pady=10)
        self.app = app

        tk.Label(self, text="Export Options", font=("Arial", 12, "bold")).pack(anchor=tk.W)

        self.maintain_var = tk.BooleanVar(value=False)
        tk.Checkbutton(
            self, text="Maintain original size (only crop to 1:1 ratio)",
            variable=self.maintain_var, command=self.on_maintain_changed
        ).pack(anchor=tk.W, pady=(5, 0))

        size_frame = tk.Frame(self)
        size_frame.pack(fill=tk.X, pady=(5, 0))

        tk.Label(size_frame, text="Output PNG Size:").pack(side=tk.LEFT)
        self.size_var = tk.IntVar(value=512)
        self.size_scale = tk.Scale(
            size_frame, from_=MIN_EXPORT_SIZE, to=MAX_EXPORT_SIZE,
            resolution=EXPORT_SIZE_STEP, orient=tk.HORIZONTAL, length=300,
            showvalue=False, variable=self.size_var, command=self.on_size_changed
        )
        self.size_scale.pack(side=tk.LEFT, padx=5)
        self.size_label = tk.Label(size_frame, width=12, anchor=tk.W)
        self.size_label.pack(side=tk.LEFT)
        self.on_size_changed()

    def on_maintain_changed(self):
        """Size choice is meaningless while keeping the natural size"""
        state = tk.DISABLED if self.maintain_var.get() else tk.NORMAL
        self.size_scale.config(state=state)
        self.size_label.config(state=state)

    def on_size_changed(self, value=None):
        size = self.size_var.get()
        self.size_label.config(text=f"{size}x{size}px")

    def get_settings(self) -> CropSettings:
        return CropSettings(export_size=self.size_var.get(),
                            maintain_original_size=self.maintain_var.get())


# ============================================================================
# Main Application
# ============================================================================

class SquareCropApp(tk.Tk):
    """
    Main window. Owns the Session; every change replaces it with a new one.
    """
    def __init__(self, initial_paths: Optional[List[Path]] = None):
        super().__init__()

        self.title("WebP Square Cropper - square-crop")
        self.geometry("1200x800")

        self.config_ = AppConfig()
        self.session = Session()
        self.thumbnail_cache = ThumbnailCache(self.config_.thumbnail_size)

        # Batch export runs off the UI thread
        self.executor = ThreadPoolExecutor(max_workers=1)
        self.pending_export = None

        self.setup_menu()
        self.setup_toolbar()

        self.status_bar = tk.Label(self, text="Ready", bd=1, relief=tk.SUNKEN,
                                   anchor=tk.W, padx=5)
        self.status_bar.pack(side=tk.BOTTOM, fill=tk.X)

        self.export_options = ExportOptionsPanel(self, self)
        self.export_options.pack(side=tk.BOTTOM, fill=tk.X)

        self.thumbnail_grid = ThumbnailGrid(self, self, self.thumbnail_cache)
        self.thumbnail_grid.pack(fill=tk.BOTH, expand=True)

        self.protocol("WM_DELETE_WINDOW", self.on_close)
        self.update_toolbar_state()

        if initial_paths:
            # Schedule loading after main window is rendered
            self.after(100, lambda: self.add_images(initial_paths))
        else:
            self.show_welcome()

    def setup_toolbar(self):
        """Create toolbar with action buttons"""
        self.toolbar = tk.Frame(self, relief=tk.RAISED, borderwidth=2)
        self.toolbar.pack(side=tk.TOP, fill=tk.X)

        self.open_btn = tk.Button(
            self.toolbar, text="Add WebP Images...",
            command=self.open_images
        )
        self.open_btn.pack(side=tk.LEFT, padx=2, pady=2)

        tk.Frame(self.toolbar, width=2, bg="gray", relief=tk.SUNKEN).pack(
            side=tk.LEFT, fill=tk.Y, padx=5, pady=2
        )

        self.export_selected_btn = tk.Button(
            self.toolbar, text="Export Selected PNG...",
            command=self.export_selected_image,
            state=tk.DISABLED
        )
        self.export_selected_btn.pack(side=tk.LEFT, padx=2, pady=2)

        self.export_all_btn = tk.Button(
            self.toolbar, text="Download All as ZIP...",
            command=self.export_all_images,
            state=tk.DISABLED
        )
        self.export_all_btn.pack(side=tk.LEFT, padx=2, pady=2)

    def setup_menu(self):
        menubar = tk.Menu(self)
        self.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="File", menu=file_menu)
        file_menu.add_command(label="Add WebP Images...", command=self.open_images)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.on_close)

        help_menu = tk.Menu(menubar, tearoff=0)
        menubar.add_cascade(label="Help", menu=help_menu)
        help_menu.add_command(label="About", command=self.show_about)

        self.bind("<Control-o>", lambda e: self.open_images())
        self.bind("<Tab>", lambda e: self.cycle_selection(1))
        self.bind("<Shift-Tab>", lambda e: self.cycle_selection(-1))
        self.bind("<Return>", lambda e: self.open_selected_editor())

    def show_welcome(self):
        self.status_bar.config(
            text="Add WebP images to start. Each one is cropped to a centered square."
        )

    def open_images(self):
        file_paths = filedialog.askopenfilenames(
            title="Select WebP images",
            filetypes=[
                ("WebP files", "*.webp"),
                ("All files", "*.*")
            ]
        )

        if file_paths:
            self.add_images([Path(p) for p in file_paths])

    def add_images(self, paths):
        """Decode uploaded files and append them to the session"""
        logger = logging.getLogger(__name__)
        try:
            result = load_webp_files(paths, self.config_.max_images)
        except ImageDecodeError as e:
            logger.error(f"Error loading images: {e}")
            logger.error(traceback.format_exc())
            messagebox.showerror("Error Loading Images", UPLOAD_ERROR_MESSAGE)
            return

        if result.warning:
            messagebox.showwarning("No WebP Images", result.warning)
            return

        self.session = self.session.add_records(result.records)
        self.refresh()

        message = f"Added {len(result.records)} image(s)."
        if result.skipped:
            message += f" Skipped {result.skipped} file(s) that are not WebP."
        self.status_bar.config(text=message)

    def refresh(self):
        self.thumbnail_grid.refresh(self.session)
        self.update_toolbar_state()

    def update_toolbar_state(self):
        """Enable/disable toolbar buttons based on session and export state"""
        busy = self.pending_export is not None
        has_selection = self.session.selected is not None
        has_images = len(self.session.records) > 0

        self.export_selected_btn.config(
            state=tk.NORMAL if has_selection and not busy else tk.DISABLED)
        self.export_all_btn.config(
            state=tk.NORMAL if has_images and not busy else tk.DISABLED,
            text="Processing..." if busy else "Download All as ZIP...")

    def cycle_selection(self, direction):
        if not self.session.records:
            return "break"

        current = self.session.selected_index
        if current is None:
            current = -1 if direction > 0 else 0
        self.session = self.session.select((current + direction) % len(self.session.records))
        self.refresh()

        # Prevent Tab from changing focus to other widgets
        return "break"

    def open_selected_editor(self):
        if self.session.selected_index is not None:
            self.open_editor(self.session.selected_index)

    def open_editor(self, index):
        """Select an image and let the user move its crop"""
        self.session = self.session.select(index)
        self.refresh()

        dialog = CropEditorDialog(self, self.session.records[index], self.config_)
        self.wait_window(dialog)

        if dialog.result is not None:
            self.session = self.session.with_offset(index, *dialog.result)
            self.refresh()
            self.status_bar.config(
                text=f"Updated crop of {self.session.records[index].filename}")

    def export_selected_image(self):
        """Export the selected image as a single PNG"""
        record = self.session.selected
        if record is None:
            return

        settings = self.export_options.get_settings()
        output_file = filedialog.asksaveasfilename(
            title="Save PNG As",
            initialdir=self.config_.output_directory,
            initialfile=png_filename(record.filename),
            defaultextension=".png",
            filetypes=[
                ("PNG files", "*.png"),
                ("All files", "*.*")
            ]
        )

        if not output_file:
            return  # User cancelled

        try:
            Path(output_file).write_bytes(export_png(record, settings))
        except Exception as e:
            logging.getLogger(__name__).error(f"Single export failed: {e}")
            messagebox.showerror("Export Error", EXPORT_ERROR_MESSAGE)
            return

        self.config_.output_directory = Path(output_file).parent
        self.status_bar.config(text=f"Exported {Path(output_file).name}")

    def export_all_images(self):
        """Build the ZIP in the background and save it when done"""
        if not self.session.records:
            messagebox.showwarning("No Images", "No images to export.")
            return

        output_file = filedialog.asksaveasfilename(
            title="Save ZIP Archive As",
            initialdir=self.config_.output_directory,
            initialfile=ZIP_NAME,
            defaultextension=".zip",
            filetypes=[
                ("ZIP archives", "*.zip"),
                ("All files", "*.*")
            ]
        )

        if not output_file:
            return  # User cancelled

        settings = self.export_options.get_settings()
        records = self.session.records
        self.pending_export = self.executor.submit(build_zip, records, settings)
        self.update_toolbar_state()
        self.status_bar.config(text=f"Exporting {len(records)} image(s)...")
        self.after(100, lambda: self.poll_export(Path(output_file), len(records)))

    def poll_export(self, output_path: Path, count: int):
        """Check the background export; reschedule until it finishes"""
        future = self.pending_export
        if future is None:
            return
        if not future.done():
            self.after(100, lambda: self.poll_export(output_path, count))
            return

        self.pending_export = None
        self.update_toolbar_state()

        try:
            output_path.write_bytes(future.result())
        except Exception as e:
            logging.getLogger(__name__).error(f"Batch export failed: {e}")
            self.status_bar.config(text="Export failed")
            messagebox.showerror("Export Error", EXPORT_ERROR_MESSAGE)
            return

        self.config_.output_directory = output_path.parent
        self.status_bar.config(
            text=f"Successfully exported {count} image(s) to: {output_path}")

    def show_about(self):
        messagebox.showinfo(
            "About WebP Square Cropper",
            f"WebP Square Cropper - square-crop GUI\n\n"
            f"Crop WebP images to 1:1 and export them as PNG.\n\n"
            f"Version {__version__}\n"
            f"Built with tkinter, Pillow, and OpenCV"
        )

    def on_close(self):
        self.executor.shutdown(wait=False)
        self.destroy()


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point with command-line argument support"""
    logger = setup_error_logging()

    parser = argparse.ArgumentParser(
        description="WebP Square Cropper - Crop WebP images to 1:1 and export PNG"
    )
    parser.add_argument(
        "images",
        nargs="*",
        type=str,
        help="WebP files to open automatically (optional)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging with imaging library diagnostics"
    )

    args = parser.parse_args()

    try:
        if args.debug:
            log_library_diagnostics(logger)

        logger.info(f"Starting square-crop GUI v{__version__}")

        initial_paths = []
        for image in args.images:
            path = Path(image)
            if not path.is_file():
                logger.error(f"Image file not found: {image}")
                print(f"Error: Image file not found: {image}", file=sys.stderr)
                sys.exit(1)
            initial_paths.append(path)

        app = SquareCropApp(initial_paths=initial_paths)
        logger.info("Application initialized successfully")
        app.mainloop()
        logger.info("Application closed normally")

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

        try:
            messagebox.showerror(
                "Fatal Error",
                f"An unexpected error occurred:\n\n{str(e)}\n\n"
                f"Error details have been logged to square-crop-error-{datetime.now().strftime('%Y%m%d')}.log"
            )
        except tk.TclError:
            print(f"\nFATAL ERROR: {str(e)}", file=sys.stderr)
            print("Error details have been logged. Please check the log file.", file=sys.stderr)

        sys.exit(1)


if __name__ == "__main__":
    main()
