# sharptools/assembly.py
"""
Image-to-PDF assembly: one image per page, scaled to fit inside the margins
and centred on the page.
"""
import asyncio
import io
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from PIL import Image, ImageOps

from .document import PdfDocument
from .errors import AssemblyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class AssembledDocument:
    filename: str
    data: bytes
    page_count: int


def fit_to_page(page_width: float, page_height: float, img_width: float, img_height: float,
                margin: float) -> Placement:
    available_width = page_width - margin * 2
    available_height = page_height - margin * 2

    ratio = min(available_width / img_width, available_height / img_height)
    width = img_width * ratio
    height = img_height * ratio

    return Placement(
        x=(page_width - width) / 2,
        y=(page_height - height) / 2,
        width=width,
        height=height,
    )


def output_format(content_type: str) -> str:
    return "PNG" if content_type == "image/png" else "JPEG"


def decode_and_encode(data: bytes, content_type: str, quality: int) -> Tuple[int, int, bytes, str]:
    """
    Decode an image and re-encode it for embedding.
    Returns (width, height, encoded bytes, format).
    """
    fmt = output_format(content_type)

    with Image.open(io.BytesIO(data)) as src:
        src.load()
        img = ImageOps.exif_transpose(src)
        width, height = img.size
        if not width or not height:
            raise ValueError("Image has no pixels")

        if fmt == "JPEG" and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")

        buf = io.BytesIO()
        if fmt == "JPEG":
            img.save(buf, format="JPEG", quality=quality)
        else:
            img.save(buf, format="PNG")

    return width, height, buf.getvalue(), fmt


async def assemble_document(entries: Sequence, settings, clock: Optional[Callable[[], float]] = None,
                            document_factory=PdfDocument) -> AssembledDocument:
    """
    Build a PDF from ``entries`` in order. Decoding happens off the event loop,
    one entry at a time. Any failure discards the partial document.
    """
    if not entries:
        raise AssemblyError("No images to convert")

    clock = clock or time.time
    doc = document_factory(orientation=settings.orientation, unit="mm", format="a4")
    try:
        for i, entry in enumerate(entries):
            if i > 0:
                doc.add_page()

            f = entry.file
            width, height, encoded, fmt = await asyncio.to_thread(
                decode_and_encode, f.data, f.content_type, settings.quality
            )

            p = fit_to_page(doc.page_width, doc.page_height, width, height, settings.margin)
            doc.add_image(encoded, fmt, p.x, p.y, p.width, p.height)
            logger.debug("Placed %s (%sx%s, %s) on page %s", f.filename, width, height, fmt, i + 1)

        data = doc.tobytes()
        page_count = doc.page_count
    except Exception as e:
        logger.exception("PDF assembly failed")
        raise AssemblyError(f"Error generating PDF: {e}") from e
    finally:
        doc.close()

    filename = f"images-{int(clock() * 1000)}.pdf"
    return AssembledDocument(filename=filename, data=data, page_count=page_count)
