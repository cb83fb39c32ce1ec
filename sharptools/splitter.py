# sharptools/splitter.py
import io
import logging

from PyPDF2 import PdfReader, PdfWriter

from .errors import SplitError, ValidationError
from .pages import expand_page_selection

logger = logging.getLogger(__name__)


def safe_pdf_name(name: str) -> str:
    return "".join(c for c in name if c.isalnum() or c in ("-", "_", " ")).strip() or "document"


def split_pdf(data: bytes, selection: str) -> bytes:
    """Return a new PDF holding only the selected pages, in ascending order."""
    try:
        reader = PdfReader(io.BytesIO(data))
        total = len(reader.pages)
    except Exception as e:
        raise SplitError(f"Failed to open PDF: {e}") from e

    if total == 0:
        raise ValidationError("PDF has 0 pages")

    pages = expand_page_selection(selection, total)

    try:
        w = PdfWriter()
        for idx in pages:
            w.add_page(reader.pages[idx])
        out = io.BytesIO()
        w.write(out)
    except Exception as e:
        raise SplitError(f"Split failed: {e}") from e

    logger.info("Split %s of %s page(s)", len(pages), total)
    return out.getvalue()
