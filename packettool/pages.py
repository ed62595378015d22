"""ReportLab renderers for the pages the packet generates itself.

Every renderer draws onto a fresh US Letter canvas and returns the finished
PDF as an in-memory buffer together with its page count, ready to be opened
with pikepdf and spliced into the packet. Positions are in PDF points with the
origin at the bottom-left corner of the page.
"""

import io
from collections.abc import Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen.canvas import Canvas

from packettool.models import DocumentSection, ProjectFormData

PAGE_WIDTH, PAGE_HEIGHT = LETTER

REGULAR_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"

BRAND_BLUE = colors.Color(0, 0.637, 0.792)
DARK_GRAY = colors.Color(0.13, 0.13, 0.13)
MEDIUM_GRAY = colors.Color(0.27, 0.27, 0.27)
HEADER_DARK = colors.Color(0.078, 0.078, 0.078)
TITLE_COLOR = colors.Color(0.094, 0.094, 0.098)
FIELD_FILL = colors.Color(0.95, 0.95, 0.95)
FIELD_BORDER = colors.Color(0.9, 0.9, 0.9)
ERROR_RED = colors.Color(0.8, 0.2, 0.2)
ERROR_MESSAGE_RED = colors.Color(0.6, 0.2, 0.2)
PAGE_NUMBER_GRAY = colors.Color(0.4, 0.4, 0.4)

HEADER_BAND_HEIGHT = 80
BRAND_NAME = "NEXGEN"

# Cover form geometry
LABEL_X = 55
VALUE_X = 155
FIELD_HEIGHT = 22
FIELD_SPACING = 4
CHECKBOX_SIZE = 12
CHECKBOX_SPACING = 130
CHECKBOX_LINE_SPACING = 14
MIN_Y_FOR_CONTENT = 100
PRODUCT_LINE_MIN_Y = MIN_Y_FOR_CONTENT + 100
CONTINUATION_START_Y = PAGE_HEIGHT - 140
FOOTER_Y = 120

# Table of contents geometry
TOC_LINE_HEIGHT = 25
TOC_MIN_Y = 100

PAGE_NUMBER_MARGIN = 50
PAGE_NUMBER_Y = 30
PAGE_NUMBER_SIZE = 10

COVER_TITLES = {
    True: ("MAXTERRA® MgO Non-Combustible Structural", "Floor Panels Submittal Form"),
    False: ("MAXTERRA® MgO Non-Combustible", "Underlayment Panels Submittal Form"),
}
PRODUCT_NAMES = {
    True: "MAXTERRA® MgO Non-Combustible Structural Floor Panels",
    False: "MAXTERRA® MgO Fire- And Water-Resistant Underlayment Panels",
}
FOOTER_LINES = (
    ("NEXGEN® Building Products, LLC", BOLD_FONT, 9, DARK_GRAY),
    ("1504 Manhattan Ave West, #300 Brandon, FL 34205", REGULAR_FONT, 8, MEDIUM_GRAY),
    ("(727) 634-5534", REGULAR_FONT, 8, MEDIUM_GRAY),
    ("Technical Support: support@nexgenbp.com", REGULAR_FONT, 8, MEDIUM_GRAY),
)
VERSION_TEXT = "Version 1.0 October 2025 © 2025 NEXGEN Building Products"


def _new_canvas(buffer: io.BytesIO, invariant: bool) -> Canvas:
    return Canvas(buffer, pagesize=LETTER, invariant=1 if invariant else 0)


def _finish(canvas: Canvas, buffer: io.BytesIO, page_count: int) -> tuple[io.BytesIO, int]:
    canvas.showPage()
    canvas.save()
    buffer.seek(0)
    return buffer, page_count


def _draw_text(canvas: Canvas, text: str, x: float, y: float, size: float, font: str = REGULAR_FONT, color=colors.black):
    canvas.setFont(font, size)
    canvas.setFillColor(color)
    canvas.drawString(x, y, text)


def _draw_box(canvas: Canvas, x: float, y: float, width: float, height: float):
    canvas.setFillColor(FIELD_FILL)
    canvas.setStrokeColor(FIELD_BORDER)
    canvas.setLineWidth(0.5)
    canvas.rect(x, y, width, height, stroke=1, fill=1)


def draw_header_band(canvas: Canvas, right_label: str | None = None, right_x: float = 145, right_size: float = 10, right_font: str = BOLD_FONT):
    """Dark band across the top of the page with the brand name and an optional label on the right."""
    canvas.setFillColor(HEADER_DARK)
    canvas.rect(0, PAGE_HEIGHT - HEADER_BAND_HEIGHT, PAGE_WIDTH, HEADER_BAND_HEIGHT, stroke=0, fill=1)
    _draw_text(canvas, BRAND_NAME, 50, PAGE_HEIGHT - 45, 18, BOLD_FONT, colors.white)
    if right_label:
        _draw_text(canvas, right_label, PAGE_WIDTH - right_x, PAGE_HEIGHT - 45, right_size, right_font, colors.white)


def _draw_checkbox(canvas: Canvas, label: str, checked: bool, x: float, y: float):
    _draw_box(canvas, x, y, CHECKBOX_SIZE, CHECKBOX_SIZE)
    if checked:
        _draw_text(canvas, "X", x + 3, y + 2, 9, BOLD_FONT, BRAND_BLUE)
    _draw_text(canvas, label, x + CHECKBOX_SIZE + 5, y + 2, 10)


def _draw_form_field(canvas: Canvas, label: str, value: str, y: float):
    _draw_text(canvas, label, LABEL_X, y + 6, 10, BOLD_FONT, DARK_GRAY)
    _draw_box(canvas, VALUE_X, y, PAGE_WIDTH - VALUE_X - 55, FIELD_HEIGHT)
    _draw_text(canvas, value or "", VALUE_X + 10, y + 6, 10)


def render_cover_page(form_data: ProjectFormData, selected_document_names: Sequence[str], invariant: bool = False) -> tuple[io.BytesIO, int]:
    """Render the submittal form.

    The list of selected documents is drawn as ticked checkboxes. When the
    list, or the product line after it, runs past the bottom margin a new
    page is started with the header band repeated. The company footer goes
    on the last page only.
    """
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, invariant)
    page_count = 1
    structural = form_data.is_structural_floor

    draw_header_band(canvas, "SECTION 06 16 26")

    title_lines = COVER_TITLES[structural]
    _draw_text(canvas, title_lines[0], 55, PAGE_HEIGHT - 147, 18, REGULAR_FONT, TITLE_COLOR)
    _draw_text(canvas, title_lines[1], 55, PAGE_HEIGHT - 167, 18, REGULAR_FONT, TITLE_COLOR)

    current_y = PAGE_HEIGHT - 210
    fields = [
        ("Submitted To", form_data.submitted_to),
        ("Project Name", form_data.project_name),
        ("Project Number", form_data.project_number),
        ("Prepared By", form_data.prepared_by),
        ("Email Address", form_data.email_address),
        ("Phone Number", form_data.phone_number),
        ("Date", form_data.date),
    ]
    for index, (label, value) in enumerate(fields):
        _draw_form_field(canvas, label, value, current_y)
        current_y -= FIELD_HEIGHT + (15 if index == len(fields) - 1 else FIELD_SPACING)

    _draw_text(canvas, "Status / Action", LABEL_X, current_y, 10, BOLD_FONT, DARK_GRAY)
    current_y -= 10

    status = form_data.status
    _draw_checkbox(canvas, "For Review", status.for_review, VALUE_X, current_y + 3)
    _draw_checkbox(canvas, "For Approval", status.for_approval, VALUE_X + CHECKBOX_SPACING, current_y + 3)
    current_y -= 18
    _draw_checkbox(canvas, "For Record", status.for_record, VALUE_X, current_y + 3)
    _draw_checkbox(canvas, "For Information Only", status.for_information_only, VALUE_X + CHECKBOX_SPACING, current_y + 3)
    current_y -= 30

    _draw_text(canvas, "Submittal Type (check all that apply):", LABEL_X, current_y, 15, BOLD_FONT, DARK_GRAY)
    current_y -= 20

    for name in selected_document_names:
        if current_y < MIN_Y_FOR_CONTENT:
            canvas.showPage()
            page_count += 1
            draw_header_band(canvas)
            current_y = CONTINUATION_START_Y
        _draw_checkbox(canvas, name, True, LABEL_X, current_y)
        current_y -= CHECKBOX_LINE_SPACING

    current_y -= 10
    if current_y < PRODUCT_LINE_MIN_Y:
        canvas.showPage()
        page_count += 1
        draw_header_band(canvas)
        current_y = CONTINUATION_START_Y

    _draw_text(canvas, "Product:", LABEL_X, current_y, 10, BOLD_FONT, DARK_GRAY)
    _draw_text(canvas, PRODUCT_NAMES[structural], VALUE_X, current_y, 9, REGULAR_FONT, DARK_GRAY)

    for offset, (text, font, size, color) in enumerate(FOOTER_LINES):
        _draw_text(canvas, text, LABEL_X, FOOTER_Y - 12 * offset, size, font, color)

    version_width = pdfmetrics.stringWidth(VERSION_TEXT, REGULAR_FONT, 7)
    _draw_text(canvas, VERSION_TEXT, PAGE_WIDTH - version_width - 50, 50, 7, REGULAR_FONT, MEDIUM_GRAY)

    return _finish(canvas, buffer, page_count)


def render_product_info_page(form_data: ProjectFormData, invariant: bool = False) -> tuple[io.BytesIO, int]:
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, invariant)
    structural = form_data.is_structural_floor

    draw_header_band(canvas, "SECTION 06 16 23" if structural else "SECTION 06 16 26")

    margin = 50
    current_y = PAGE_HEIGHT - 100
    _draw_text(canvas, "Product Information", margin, current_y, 16, BOLD_FONT, colors.Color(0.302, 0.298, 0.298))
    current_y -= 30
    _draw_text(canvas, PRODUCT_NAMES[structural], margin, current_y, 12, BOLD_FONT)

    return _finish(canvas, buffer, 1)


def render_table_of_contents(sections: Sequence[DocumentSection], invariant: bool = False) -> tuple[io.BytesIO, int]:
    """Render the contents page. Always exactly one page: entries below the bottom margin are dropped."""
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, invariant)

    draw_header_band(canvas, "Table of Contents", right_x=180, right_size=11)

    margin = 50
    current_y = PAGE_HEIGHT - 110
    _draw_text(canvas, "Table of Contents", margin, current_y, 18, BOLD_FONT, TITLE_COLOR)
    current_y -= 30

    for section in sections:
        if current_y < TOC_MIN_Y:
            break
        _draw_text(canvas, section.name, margin, current_y, 11)
        _draw_text(canvas, f"Page {section.start_page}", PAGE_WIDTH - 90, current_y, 11, BOLD_FONT)
        current_y -= TOC_LINE_HEIGHT

    return _finish(canvas, buffer, 1)


def toc_capacity() -> int:
    """How many entries fit on the contents page before truncation."""
    first_entry_y = PAGE_HEIGHT - 140
    return int((first_entry_y - TOC_MIN_Y) // TOC_LINE_HEIGHT) + 1


def render_section_divider(document_name: str, document_type: str = "", invariant: bool = False) -> tuple[io.BytesIO, int]:
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, invariant)

    draw_header_band(canvas, "Document Section", right_x=180, right_size=11, right_font=REGULAR_FONT)

    center_y = PAGE_HEIGHT / 2
    name_size = 40
    name_width = pdfmetrics.stringWidth(document_name, BOLD_FONT, name_size)
    _draw_text(canvas, document_name, (PAGE_WIDTH - name_width) / 2, center_y, name_size, BOLD_FONT, DARK_GRAY)

    line_width = 200
    canvas.setStrokeColor(BRAND_BLUE)
    canvas.setLineWidth(2)
    canvas.line((PAGE_WIDTH - line_width) / 2, center_y - 30, (PAGE_WIDTH + line_width) / 2, center_y - 30)

    if document_type:
        type_width = pdfmetrics.stringWidth(document_type, REGULAR_FONT, 14)
        _draw_text(canvas, document_type, (PAGE_WIDTH - type_width) / 2, center_y - 60, 14, REGULAR_FONT, MEDIUM_GRAY)

    return _finish(canvas, buffer, 1)


def render_error_page(item_name: str, error_message: str, invariant: bool = False) -> tuple[io.BytesIO, int]:
    """One-page placeholder standing in for whatever failed to render or load."""
    buffer = io.BytesIO()
    canvas = _new_canvas(buffer, invariant)

    _draw_text(canvas, "DOCUMENT ERROR", 50, PAGE_HEIGHT - 100, 16, BOLD_FONT, ERROR_RED)
    _draw_text(canvas, item_name, 50, PAGE_HEIGHT - 150, 14, BOLD_FONT)
    _draw_text(canvas, f"Error: {error_message}", 50, PAGE_HEIGHT - 180, 12, REGULAR_FONT, ERROR_MESSAGE_RED)
    _draw_text(canvas, "Please contact support if this error persists.", 50, PAGE_HEIGHT - 220, 10, REGULAR_FONT, PAGE_NUMBER_GRAY)

    return _finish(canvas, buffer, 1)


def render_page_numbers(numbered_pages: Sequence[tuple[int, tuple[float, float]]], invariant: bool = False) -> tuple[io.BytesIO, int]:
    """Render one transparent overlay page per (page_number, (width, height)) pair.

    Each overlay page matches the size of the page it will be laid onto, so
    the number lands in the bottom-right corner of that page.
    """
    buffer = io.BytesIO()
    canvas = Canvas(buffer, invariant=1 if invariant else 0)
    for page_number, (width, height) in numbered_pages:
        canvas.setPageSize((width, height))
        _draw_text(canvas, str(page_number), width - PAGE_NUMBER_MARGIN, PAGE_NUMBER_Y, PAGE_NUMBER_SIZE, REGULAR_FONT, PAGE_NUMBER_GRAY)
        canvas.showPage()
    canvas.save()
    buffer.seek(0)
    return buffer, len(numbered_pages)
