import argparse
import asyncio
import io
import json
import logging
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from pikepdf import Pdf, PdfError
from werkzeug.utils import secure_filename

from packettool.fetch import FetchError, PdfFetcher
from packettool.logger import configure_logger, dedent_and_log, packet_logger
from packettool.models import DocumentSection, ProjectFormData, SelectedDocument, SourceDocument, sort_selected
from packettool.packet_config import PacketConfig, PacketConfigParams
from packettool.pages import (
    render_cover_page,
    render_error_page,
    render_page_numbers,
    render_product_info_page,
    render_section_divider,
    render_table_of_contents,
    toc_capacity,
)
from packettool.storage import DocumentUrlError, LocalStorage, StorageService

PACKETTOOL_VERSION = "2025.10.1"

MAX_FILENAME_LENGTH = 100


class AssemblyState(NamedTuple):
    """Bookkeeping threaded through the assembly phases.

    toc_index is the page index reserved for the contents page, which is
    also the number of cover + product info pages. next_page_number is the
    1-based packet page number the next generated page will end up on once
    the contents page is in place.
    """

    toc_index: int
    next_page_number: int
    sections: tuple[DocumentSection, ...] = ()


@dataclass(frozen=True)
class FetchedPages:
    pdf_bytes: bytes


@dataclass(frozen=True)
class FetchFailed:
    reason: str


FetchResult = FetchedPages | FetchFailed


class PacketResult(NamedTuple):
    pdf_bytes: bytes
    sections: tuple[DocumentSection, ...]
    toc_index: int
    numbered_pages: tuple[int, ...]
    page_count: int


def _open_source(source: io.BytesIO, sources: ExitStack) -> Pdf:
    # pages copied out of a source Pdf need it open until the packet is saved
    return sources.enter_context(Pdf.open(source))


def _append_rendered(pdf: Pdf, sources: ExitStack, rendered: tuple[io.BytesIO, int]) -> int:
    """Append the pages of a freshly rendered reportlab buffer, return how many were added."""
    buffer, _ = rendered
    rendered_pdf = _open_source(buffer, sources)
    pdf.pages.extend(rendered_pdf.pages)
    return len(rendered_pdf.pages)


def _append_error_page(pdf: Pdf, sources: ExitStack, item_name: str, message: str, config: PacketConfig) -> int:
    return _append_rendered(pdf, sources, render_error_page(item_name, message, invariant=config.invariant))


def add_cover_pages(pdf: Pdf, sources: ExitStack, form_data: ProjectFormData, selected_names: list[str], config: PacketConfig) -> int:
    try:
        packet_logger.debug("[GP]Adding submittal form...")
        added = _append_rendered(pdf, sources, render_cover_page(form_data, selected_names, invariant=config.invariant))
    except Exception:
        packet_logger.exception("[GP]..Error creating cover page")
        return _append_error_page(pdf, sources, "Cover Page", "Failed to create cover page", config)
    packet_logger.debug(f"[GP]..Added {added} submittal form pages")
    return added


def add_product_info_page(pdf: Pdf, sources: ExitStack, form_data: ProjectFormData, config: PacketConfig) -> int:
    try:
        packet_logger.debug("[GP]Adding product info page...")
        return _append_rendered(pdf, sources, render_product_info_page(form_data, invariant=config.invariant))
    except Exception:
        packet_logger.exception("[GP]..Error adding product info")
        return _append_error_page(pdf, sources, "Product Info", "Failed to add product information", config)


def start_assembly(front_matter_length: int) -> AssemblyState:
    # +2: the contents page takes the reserved slot, and page numbers are 1-based
    return AssemblyState(toc_index=front_matter_length, next_page_number=front_matter_length + 2)


async def fetch_document(
    document: SourceDocument, storage: StorageService, fetcher: PdfFetcher, config: PacketConfig
) -> FetchResult:
    """Resolve a storage path to a signed URL and download it. Never raises."""
    try:
        signed_url = await storage.create_signed_url(document.url, config.signed_url_expiry)
        packet_logger.debug(f"[FD]..Fetching PDF for {document.name}")
        return FetchedPages(await fetcher.fetch_bytes(signed_url))
    except (DocumentUrlError, FetchError) as e:
        packet_logger.error(f"[FD]..Could not load {document.name}: {e}")
        return FetchFailed(str(e))
    except Exception as e:
        packet_logger.exception(f"[FD]..Unexpected error loading {document.name}")
        return FetchFailed(str(e) or type(e).__name__)


def place_document_pages(pdf: Pdf, sources: ExitStack, document: SourceDocument, result: FetchResult, config: PacketConfig) -> tuple[int, str | None]:
    """Append a document's body, or an error page in its place.

    Returns the number of pages added and the failure message, if any.
    """
    if isinstance(result, FetchedPages):
        try:
            source_pdf = _open_source(io.BytesIO(result.pdf_bytes), sources)
            if not source_pdf.pages:
                raise PdfError("document has no pages")
            pdf.pages.extend(source_pdf.pages)
            added = len(source_pdf.pages)
        except Exception as e:
            packet_logger.exception(f"[PD]..Could not add pages from {document.name}")
            result = FetchFailed(f"Failed to process document: {e}")
        else:
            packet_logger.info(f"[PD]..Added {added} pages from {document.name}")
            return added, None

    return _append_error_page(pdf, sources, document.name, result.reason, config), result.reason


def add_section_divider(pdf: Pdf, sources: ExitStack, document: SourceDocument, config: PacketConfig) -> int:
    try:
        return _append_rendered(pdf, sources, render_section_divider(document.name, document.type, invariant=config.invariant))
    except Exception:
        packet_logger.exception(f"[SD]..Error rendering divider for {document.name}")
        return _append_error_page(pdf, sources, document.name, "Failed to create section divider", config)


async def add_document(
    pdf: Pdf, sources: ExitStack, state: AssemblyState, document: SourceDocument, storage: StorageService, fetcher: PdfFetcher, config: PacketConfig
) -> AssemblyState:
    """Divider then body for one document. The section is recorded even when the body failed."""
    packet_logger.info(f"[GP]Processing document: {document.name}")
    start_page = state.next_page_number

    divider_pages = add_section_divider(pdf, sources, document, config)
    result = await fetch_document(document, storage, fetcher, config)
    body_pages, error = place_document_pages(pdf, sources, document, result, config)

    section = DocumentSection(
        name=document.name,
        type=document.type,
        start_page=start_page,
        page_count=divider_pages + body_pages,
        error=error,
    )
    return state._replace(
        next_page_number=start_page + section.page_count,
        sections=(*state.sections, section),
    )


def insert_table_of_contents(pdf: Pdf, sources: ExitStack, state: AssemblyState, config: PacketConfig):
    """Insert the contents page at the reserved slot. Nothing already numbered moves."""
    if len(state.sections) > toc_capacity():
        packet_logger.warning(f"[TOC]..{len(state.sections)} sections but only {toc_capacity()} fit on the contents page; the rest are omitted")
    try:
        buffer, _ = render_table_of_contents(state.sections, invariant=config.invariant)
    except Exception:
        packet_logger.exception("[TOC]..Error rendering table of contents")
        buffer, _ = render_error_page("Table of Contents", "Failed to create table of contents", invariant=config.invariant)
    toc_pdf = _open_source(buffer, sources)
    pdf.pages.insert(state.toc_index, toc_pdf.pages[0])


def plan_page_numbers(toc_index: int, sections: tuple[DocumentSection, ...] | list[DocumentSection], total_pages: int) -> list[int]:
    """Page indices that get a printed number: front matter, contents page, dividers.

    Body pages copied from source documents are stepped over using each
    section's page_count. The caller stamps each index with index + 1, its
    position in the packet, rather than a counter of numbered pages only,
    so a divider always shows the page its contents entry points to.
    """
    indices = list(range(min(toc_index, total_pages)))
    if total_pages > toc_index:
        indices.append(toc_index)

    current_index = toc_index + 1
    for section in sections:
        if current_index >= total_pages:
            break
        indices.append(current_index)
        current_index += section.page_count
    return indices


def add_selective_page_numbers(pdf: Pdf, sources: ExitStack, toc_index: int, sections: tuple[DocumentSection, ...], config: PacketConfig) -> list[int]:
    """Stamp each planned page with its 1-based position in the packet."""
    indices = plan_page_numbers(toc_index, sections, len(pdf.pages))
    if not indices:
        return indices

    try:
        numbered_pages = [(index + 1, (float(pdf.pages[index].mediabox[2]), float(pdf.pages[index].mediabox[3]))) for index in indices]
        overlay_buffer, _ = render_page_numbers(numbered_pages, invariant=config.invariant)
        overlay_pdf = _open_source(overlay_buffer, sources)
        for overlay_page, index in zip(overlay_pdf.pages, indices, strict=True):
            pdf.pages[index].add_overlay(overlay_page, None)
    except Exception:
        packet_logger.exception("[PN]..Error adding page numbers, packet saved without them")
        return []
    packet_logger.debug(f"[PN]..Numbered pages {[index + 1 for index in indices]}")
    return indices


async def assemble_packet(
    form_data: ProjectFormData,
    selected_documents: list[SelectedDocument],
    storage: StorageService,
    fetcher: PdfFetcher | None = None,
    config: PacketConfig | None = None,
) -> PacketResult:
    """Build the submittal packet and report how its pages were laid out."""
    config = config or PacketConfig()
    fetcher = fetcher or PdfFetcher(timeout=config.fetch_timeout)
    sorted_docs = sort_selected(selected_documents)
    selected_names = [doc.document.name for doc in sorted_docs]

    dedent_and_log(
        packet_logger,
        f"""
        [GP]THIS IS PACKETTOOL VERSION {PACKETTOOL_VERSION}
        [GP]Starting packet generation, session {config.session_id}
        ....project: {form_data.project_name}
        ....product type: {form_data.product_type}
        ....documents: {selected_names}""",
        level=logging.INFO,
    )

    with Pdf.new() as final_pdf, ExitStack() as sources:
        add_cover_pages(final_pdf, sources, form_data, selected_names, config)
        add_product_info_page(final_pdf, sources, form_data, config)

        state = start_assembly(len(final_pdf.pages))
        for doc in sorted_docs:
            state = await add_document(final_pdf, sources, state, doc.document, storage, fetcher, config)

        insert_table_of_contents(final_pdf, sources, state, config)
        numbered = add_selective_page_numbers(final_pdf, sources, state.toc_index, state.sections, config)

        output = io.BytesIO()
        final_pdf.save(output, deterministic_id=config.invariant)
        page_count = len(final_pdf.pages)

    pdf_bytes = output.getvalue()
    packet_logger.info(f"[GP]Packet generated successfully: {len(pdf_bytes)} bytes, {page_count} pages")
    return PacketResult(pdf_bytes, state.sections, state.toc_index, tuple(numbered), page_count)


async def generate_packet(
    form_data: ProjectFormData,
    selected_documents: list[SelectedDocument],
    storage: StorageService,
    fetcher: PdfFetcher | None = None,
    config: PacketConfig | None = None,
) -> bytes:
    result = await assemble_packet(form_data, selected_documents, storage, fetcher, config)
    return result.pdf_bytes


def get_output_filename(project_name: str, timestamp: str, fallback: str = "Submittal") -> str:
    """Filename for a finished packet, kept under MAX_FILENAME_LENGTH."""
    project = secure_filename(project_name)
    output_file = f"{project}_Submittal_Packet_{timestamp}.pdf"
    if len(output_file) > MAX_FILENAME_LENGTH:
        output_file = f"{project[:40]}_Submittal_Packet_{timestamp}.pdf"
    if not project or len(output_file) > MAX_FILENAME_LENGTH:
        output_file = f"{fallback}_{timestamp}.pdf"
    if len(output_file) > MAX_FILENAME_LENGTH:
        output_file = f"{timestamp}.pdf"
    return output_file


def _parse_cli_args():
    parser = argparse.ArgumentParser(description="Assemble a submittal packet from a form and local PDF files.")
    parser.add_argument("form", help="JSON file with the submittal form fields")
    parser.add_argument("input_files", nargs="+", help="Input PDF files, in packet order")
    parser.add_argument("-o", "--output_file", help="Output PDF file", default=None)
    parser.add_argument("-t", "--type", help="Document type shown on each divider", default="")
    parser.add_argument("--logs_dir", help="Directory for session logs", default=None)
    parser.add_argument("--invariant", help="Produce byte-for-byte reproducible output", action="store_true", default=False)
    return parser.parse_args()


def main():
    """Command-line usage, reading documents from the local filesystem."""
    args = _parse_cli_args()
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    config = PacketConfig(PacketConfigParams(timestamp=timestamp, logs_dir=args.logs_dir, invariant=args.invariant))
    configure_logger(config)

    with Path(args.form).open() as f:
        form_data = ProjectFormData.from_dict(json.load(f))

    selected = [
        SelectedDocument(SourceDocument(id=str(order), name=Path(path).stem, type=args.type, url=str(Path(path).resolve())), True, order)
        for order, path in enumerate(args.input_files)
    ]
    output_file = Path(args.output_file or get_output_filename(form_data.project_name, timestamp))

    pdf_bytes = asyncio.run(generate_packet(form_data, selected, LocalStorage("/"), config=config))
    output_file.write_bytes(pdf_bytes)
    packet_logger.info(f"[CLI]Packet written to {output_file}")


if __name__ == "__main__":
    main()
