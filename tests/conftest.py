import io

import pytest
from PIL import Image
from PyPDF2 import PdfWriter

from sharptools.collection import ImageFile

_PIL_FORMATS = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
}


def image_bytes(content_type: str = "image/png", size=(40, 30), color=(200, 40, 40)) -> bytes:
    img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    img.save(buf, format=_PIL_FORMATS[content_type])
    return buf.getvalue()


def image_file(name: str = "a.png", content_type: str = "image/png", size=(40, 30)) -> ImageFile:
    return ImageFile(filename=name, content_type=content_type, data=image_bytes(content_type, size))


def pdf_bytes(pages: int, width: float = 200, height: float = 300) -> bytes:
    """Blank PDF; page i (0-based) is (width + i) points wide so pages can be told apart."""
    w = PdfWriter()
    for i in range(pages):
        w.add_blank_page(width=width + i, height=height)
    buf = io.BytesIO()
    w.write(buf)
    return buf.getvalue()


@pytest.fixture
def make_image():
    return image_file


@pytest.fixture
def make_pdf():
    return pdf_bytes
