# sharptools/pages.py
"""
Page-selection strings for the split tool.

    PAGESET := PAGE (',' PAGE)*
    PAGE    := NUMBER ('-' NUMBER)?

Whitespace anywhere in the string is ignored.
"""
import re
from typing import List

from .errors import ValidationError

PAGE_SELECTION_RE = re.compile(r"^([0-9]+(-[0-9]+)?)(,[0-9]+(-[0-9]+)?)*$")

EMPTY_SELECTION_MSG = "Please enter pages to extract (comma-separated or ranges like 1-5)."
INVALID_SELECTION_MSG = (
    "Invalid page format. Use commas for separate pages and hyphens "
    "for ranges (e.g., 1,3-5,8)."
)


def _compact(text: str) -> str:
    return re.sub(r"\s+", "", text or "")


def is_valid_page_selection(text: str) -> bool:
    return bool(PAGE_SELECTION_RE.match(_compact(text)))


def validate_page_selection(text: str) -> str:
    """Return the selection with whitespace removed, or raise ValidationError."""
    if not (text or "").strip():
        raise ValidationError(EMPTY_SELECTION_MSG)
    compact = _compact(text)
    if not PAGE_SELECTION_RE.match(compact):
        raise ValidationError(INVALID_SELECTION_MSG)
    return compact


def expand_page_selection(text: str, total_pages: int) -> List[int]:
    """Expand a selection into sorted, unique, 0-based page indices."""
    compact = validate_page_selection(text)

    out = set()
    for part in compact.split(","):
        if "-" in part:
            a, b = part.split("-", 1)
            a, b = int(a), int(b)
            if a <= 0 or b <= 0:
                raise ValidationError("Pages start from 1")
            if a > b:
                a, b = b, a
            for p in range(a, min(b, total_pages) + 1):
                out.add(p - 1)
        else:
            p = int(part)
            if p <= 0:
                raise ValidationError("Pages start from 1")
            out.add(p - 1)

    pages = sorted(x for x in out if 0 <= x < total_pages)
    if not pages:
        raise ValidationError("No valid pages selected")
    return pages
