# sharptools/client.py
"""
Client for the split endpoint: validate locally, POST once, no retry.
"""
import logging
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import certifi
import httpx

from . import config
from .errors import TransportError, ValidationError
from .pages import validate_page_selection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitResult:
    filename: str
    data: bytes


def download_name(filename: str) -> str:
    stem = filename[:-4] if filename.lower().endswith(".pdf") else filename
    return f"split-{stem or 'document'}.pdf"


class SplitClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or config.SPLIT_ENDPOINT_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.SPLIT_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if self._transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        ctx = ssl.create_default_context(cafile=certifi.where())
        return httpx.AsyncClient(timeout=self.timeout, verify=ctx)

    async def split(self, data: bytes, filename: str, pages: str) -> SplitResult:
        if not data:
            raise ValidationError("Please select a PDF file.")
        if Path(filename).suffix.lower() != ".pdf":
            raise ValidationError("Please upload a PDF file only.")
        validate_page_selection(pages)

        files = {"file": (filename, data, "application/pdf")}
        async with self._client() as client:
            try:
                r = await client.post(f"{self.base_url}/split", files=files, data={"pages": pages})
            except httpx.HTTPError as e:
                raise TransportError(f"Failed to split PDF: {e}") from e

        if r.status_code < 200 or r.status_code >= 300:
            logger.warning("Split endpoint returned %s", r.status_code)
            raise TransportError("Failed to split PDF", status_code=r.status_code)

        return SplitResult(filename=download_name(filename), data=r.content)
