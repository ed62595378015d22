"""Shared fixtures: source PDFs and in-memory stand-ins for storage and fetching."""

import io

import pdfplumber
import pikepdf
import pytest

from packettool.fetch import FetchError
from packettool.models import ProjectFormData, SelectedDocument, SourceDocument, SubmittalStatus
from packettool.packet_config import PacketConfig, PacketConfigParams
from packettool.storage import DocumentUrlError


def make_pdf_bytes(page_count: int) -> bytes:
    """Blank US Letter pages; blank so any text found on them came from the packet."""
    pdf = pikepdf.Pdf.new()
    for _ in range(page_count):
        pdf.add_blank_page(page_size=(612, 792))
    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


def page_texts(pdf_bytes: bytes) -> list[str]:
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return [page.extract_text() or "" for page in pdf.pages]


def selected(name: str, path: str | None = None, order: int = 0, is_selected: bool = True, doc_type: str = "Data Sheet") -> SelectedDocument:
    return SelectedDocument(
        document=SourceDocument(id=name, name=name, type=doc_type, url=path or f"docs/{name}.pdf"),
        selected=is_selected,
        order=order,
    )


class FakeStorage:
    """Signs every path as memory://<path> unless told the path is missing."""

    def __init__(self, missing=()):
        self.missing = set(missing)
        self.calls: list[tuple[str, int]] = []

    async def create_signed_url(self, file_path: str, expires_in: int = 3600) -> str:
        self.calls.append((file_path, expires_in))
        if file_path in self.missing:
            raise DocumentUrlError(file_path, "object not found")
        return f"memory://{file_path}"


class FakeFetcher:
    """Serves bytes keyed by signed URL; unknown URLs behave like a 404."""

    def __init__(self, documents: dict[str, bytes] | None = None):
        self.documents = dict(documents or {})
        self.requested: list[str] = []

    def add(self, path: str, pdf_bytes: bytes):
        self.documents[f"memory://{path}"] = pdf_bytes

    async def fetch_bytes(self, url: str) -> bytes:
        self.requested.append(url)
        if url not in self.documents:
            raise FetchError(url, "Not Found")
        return self.documents[url]


@pytest.fixture
def form_data():
    return ProjectFormData(
        submitted_to="Acme Architects",
        project_name="Harbor View Tower",
        project_number="HV-2025-017",
        prepared_by="Jordan Lee",
        email_address="jordan@example.com",
        phone_number="555-0100",
        date="2025-10-01",
        product_type="underlayment",
        status=SubmittalStatus(for_review=True, for_record=True),
    )


@pytest.fixture
def config(tmp_path):
    return PacketConfig(PacketConfigParams(session_id="test", logs_dir=tmp_path / "logs", output_dir=tmp_path / "packets", invariant=True))


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def fetcher():
    return FakeFetcher()
