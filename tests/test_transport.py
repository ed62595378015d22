"""Tests for packettool.storage and packettool.fetch -- signed URLs and document downloads."""

import asyncio
import json

import httpx
import pytest

from packettool.fetch import FetchError, PdfFetcher
from packettool.storage import DocumentUrlError, LocalStorage, SupabaseStorage


async def _sign(handler, file_path, expires_in=3600):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        storage = SupabaseStorage("https://project.supabase.co/", "anon-key", client=client)
        return await storage.create_signed_url(file_path, expires_in)


async def _fetch(handler, url):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        return await PdfFetcher(client=client).fetch_bytes(url)


# SupabaseStorage


def test_supabase_signed_url_request():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"signedURL": "/object/sign/documents/specs/a.pdf?token=abc"})

    url = asyncio.run(_sign(handler, "specs/a.pdf", 600))

    assert url == "https://project.supabase.co/storage/v1/object/sign/documents/specs/a.pdf?token=abc"
    assert seen == {
        "method": "POST",
        "path": "/storage/v1/object/sign/documents/specs/a.pdf",
        "body": {"expiresIn": 600},
        "auth": "Bearer anon-key",
    }


def test_supabase_absolute_signed_url_passes_through():
    def handler(request):
        return httpx.Response(200, json={"signedUrl": "https://cdn.example.com/a.pdf?token=abc"})

    assert asyncio.run(_sign(handler, "a.pdf")) == "https://cdn.example.com/a.pdf?token=abc"


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "Object not found"}),
        httpx.Response(200, json={}),
        httpx.Response(200, content=b"not json"),
    ],
)
def test_supabase_failures_raise_document_url_error(response):
    with pytest.raises(DocumentUrlError, match="Failed to generate document URL") as exc_info:
        asyncio.run(_sign(lambda request: response, "missing.pdf"))
    assert exc_info.value.file_path == "missing.pdf"


def test_supabase_connection_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(DocumentUrlError):
        asyncio.run(_sign(handler, "a.pdf"))


# LocalStorage


def test_local_storage_returns_file_uri(tmp_path):
    (tmp_path / "a.pdf").write_bytes(b"%PDF-1.4")
    url = asyncio.run(LocalStorage(tmp_path).create_signed_url("a.pdf"))
    assert url == (tmp_path / "a.pdf").resolve().as_uri()


def test_local_storage_missing_file(tmp_path):
    with pytest.raises(DocumentUrlError):
        asyncio.run(LocalStorage(tmp_path).create_signed_url("nope.pdf"))


def test_local_storage_stays_inside_root(tmp_path):
    docs = tmp_path / "docs"
    docs.mkdir()
    private = tmp_path / "private" / "payroll.pdf"
    private.parent.mkdir()
    private.write_bytes(b"%PDF-1.4")
    storage = LocalStorage(docs)

    for outside in ("../private/payroll.pdf", str(private)):
        with pytest.raises(DocumentUrlError) as exc_info:
            asyncio.run(storage.create_signed_url(outside))
        assert "outside" in exc_info.value.details


# PdfFetcher


def test_fetch_bytes_success():
    def handler(request):
        assert request.url == "https://cdn.example.com/a.pdf?token=abc"
        return httpx.Response(200, content=b"%PDF-1.7 body")

    assert asyncio.run(_fetch(handler, "https://cdn.example.com/a.pdf?token=abc")) == b"%PDF-1.7 body"


@pytest.mark.parametrize(("status", "reason"), [(404, "Not Found"), (403, "Forbidden"), (500, "Internal Server Error")])
def test_fetch_bytes_non_2xx(status, reason):
    with pytest.raises(FetchError, match=f"Failed to fetch PDF: {reason}") as exc_info:
        asyncio.run(_fetch(lambda request: httpx.Response(status), "https://cdn.example.com/a.pdf"))
    assert exc_info.value.reason == reason


def test_fetch_bytes_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FetchError, match="timed out"):
        asyncio.run(_fetch(handler, "https://cdn.example.com/a.pdf"))


def test_fetch_local_file(tmp_path):
    path = tmp_path / "with space.pdf"
    path.write_bytes(b"%PDF-1.4 local")
    assert asyncio.run(PdfFetcher().fetch_bytes(path.as_uri())) == b"%PDF-1.4 local"


def test_fetch_local_file_missing(tmp_path):
    with pytest.raises(FetchError):
        asyncio.run(PdfFetcher().fetch_bytes((tmp_path / "gone.pdf").as_uri()))
