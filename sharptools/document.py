# sharptools/document.py
"""
Multi-page PDF output over PyMuPDF.

Coordinates are given in the document unit (millimetres by default) with the
origin at the top-left corner of the page, and converted to PDF points here.
"""
from pathlib import Path
from typing import Union

import fitz  # PyMuPDF

# page sizes in millimetres, portrait
PAGE_FORMATS = {
    "a3": (297.0, 420.0),
    "a4": (210.0, 297.0),
    "a5": (148.0, 210.0),
    "letter": (215.9, 279.4),
}

# points per unit
UNITS = {
    "pt": 1.0,
    "mm": 72.0 / 25.4,
    "cm": 72.0 / 2.54,
    "in": 72.0,
}

IMAGE_FORMATS = ("PNG", "JPEG")


class PdfDocument:
    """A PDF that starts with one blank page, like a fresh sheet of paper."""

    def __init__(self, orientation: str = "portrait", unit: str = "mm", format: str = "a4"):
        if unit not in UNITS:
            raise ValueError(f"Unsupported unit: {unit}")
        if format not in PAGE_FORMATS:
            raise ValueError(f"Unsupported page format: {format}")

        width_mm, height_mm = PAGE_FORMATS[format]
        if orientation == "landscape":
            width_mm, height_mm = height_mm, width_mm

        self.unit = unit
        self._k = UNITS[unit]
        self._width_pt = width_mm * UNITS["mm"]
        self._height_pt = height_mm * UNITS["mm"]

        self._doc = fitz.open()
        self.add_page()

    @property
    def page_width(self) -> float:
        return self._width_pt / self._k

    @property
    def page_height(self) -> float:
        return self._height_pt / self._k

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def add_page(self) -> None:
        self._doc.new_page(width=self._width_pt, height=self._height_pt)

    def add_image(self, data: bytes, fmt: str, x: float, y: float, width: float, height: float) -> None:
        """Place an encoded PNG or JPEG on the last page."""
        if fmt not in IMAGE_FORMATS:
            raise ValueError(f"Unsupported image format: {fmt}")
        k = self._k
        rect = fitz.Rect(x * k, y * k, (x + width) * k, (y + height) * k)
        page = self._doc[self._doc.page_count - 1]
        page.insert_image(rect, stream=data, keep_proportion=False)

    def tobytes(self) -> bytes:
        return self._doc.tobytes(garbage=3, deflate=True)

    def save(self, path: Union[str, Path]) -> None:
        self._doc.save(str(path), garbage=3, deflate=True)

    def close(self) -> None:
        self._doc.close()
