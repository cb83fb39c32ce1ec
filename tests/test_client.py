"""Tests for the split endpoint client."""

import asyncio

import httpx
import pytest

from sharptools.client import SplitClient, download_name
from sharptools.errors import TransportError, ValidationError


def _client(handler) -> SplitClient:
    return SplitClient(base_url="http://tools.test/", transport=httpx.MockTransport(handler))


class TestSplitClient:

    def test_posts_multipart_and_returns_pdf(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"%PDF-split")

        result = asyncio.run(_client(handler).split(b"%PDF-1.4", "report.pdf", "1,3-5"))

        assert result.data == b"%PDF-split"
        assert result.filename == "split-report.pdf"
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://tools.test/split"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="pages"' in body
        assert b"1,3-5" in body
        assert b'filename="report.pdf"' in body

    def test_non_success_status_raises(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        with pytest.raises(TransportError) as exc:
            asyncio.run(_client(handler).split(b"%PDF", "a.pdf", "1"))
        assert exc.value.status_code == 500
        # no retry
        assert len(calls) == 1

    def test_connection_error_raises_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError) as exc:
            asyncio.run(_client(handler).split(b"%PDF", "a.pdf", "1"))
        assert exc.value.status_code is None

    @pytest.mark.parametrize("pages", ["", "abc", "1,,3"])
    def test_invalid_selection_sends_nothing(self, pages):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        with pytest.raises(ValidationError):
            asyncio.run(_client(handler).split(b"%PDF", "a.pdf", pages))
        assert calls == []

    def test_non_pdf_rejected(self):
        with pytest.raises(ValidationError, match="PDF file only"):
            asyncio.run(_client(lambda r: httpx.Response(200)).split(b"x", "a.docx", "1"))

    def test_missing_file_rejected(self):
        with pytest.raises(ValidationError, match="select a PDF"):
            asyncio.run(_client(lambda r: httpx.Response(200)).split(b"", "a.pdf", "1"))


class TestDownloadName:

    def test_strips_extension(self):
        assert download_name("Scan.PDF") == "split-Scan.pdf"

    def test_empty_stem(self):
        assert download_name(".pdf") == "split-document.pdf"
