from __future__ import annotations

import logging
import re
from datetime import datetime, time
from decimal import Decimal

from fpdf import FPDF

from invoicely.constants import (
    FOOTER_TEXT,
    NO_ITEMS_PLACEHOLDER,
    NOT_SET,
    UTC,
    format_date,
    page_label,
)
from invoicely.layout.base import LayoutRenderer, PageContent, PageRow
from invoicely.layout.pagination import PaginationPlan
from invoicely.models import format_money, format_quantity
from invoicely.models.invoice import InvoiceDocument
from invoicely.models.party import PartyInfo
from invoicely.settings import settings

logger = logging.getLogger(__name__)

# A4 portrait, millimetres
PAGE_W = 210.0
PAGE_H = 297.0
MARGIN = 15.0
CONTENT_W = PAGE_W - 2 * MARGIN
RIGHT_X = PAGE_W - MARGIN

HEADER_H = 40.0
BODY_TOP = HEADER_H + 10.0
FOOTER_RULE_Y = PAGE_H - 18.0
BODY_BOTTOM = FOOTER_RULE_Y - 4.0

LINE_H = 4.5
ROW_PAD = 4.0
TABLE_HEADER_H = 4.0
EMPTY_STATE_H = 12.0

TOTALS_GAP = 6.0
TOTALS_ROW_H = 6.0
TOTALS_BAND_GAP = 4.0
TOTALS_BAND_H = 16.0
NOTES_GAP = 8.0
NOTES_PAD = 12.0

ELLIPSIS = "..."

# Table columns: left edges for text columns, right edges for numeric ones.
COL_ITEM_X = MARGIN
COL_DESC_X = MARGIN + 33.0
COL_AMOUNT_R = RIGHT_X
COL_PRICE_R = COL_AMOUNT_R - 28.0
COL_QTY_R = COL_PRICE_R - 26.0
ITEM_W = COL_DESC_X - COL_ITEM_X - 3.0
DESC_W = COL_QTY_R - 14.0 - COL_DESC_X

TOTALS_W = 80.0

CORE_FONT = "helvetica"
UNICODE_FONT = "InvoiceSans"

PRIMARY = (21, 93, 252)
PRIMARY_LIGHT = (190, 219, 255)
ROW_ALT = (244, 247, 255)
TEXT = (0, 0, 0)
MUTED = (110, 110, 120)
WHITE = (255, 255, 255)
RULE = (200, 200, 200)

_SLUG_STRIP = re.compile(r"[^a-z0-9\s]")
_SLUG_SPACE = re.compile(r"\s+")
_SLUG_HYPHENS = re.compile(r"-+")


class ExportLayoutError(ValueError):
    """A page's content cannot fit above the footer."""


def slugify_name(name: str) -> str:
    """'Acme & Sons, Inc.' -> 'acme-sons-inc'"""
    slug = _SLUG_STRIP.sub("", name.lower())
    slug = _SLUG_SPACE.sub("-", slug)
    slug = _SLUG_HYPHENS.sub("-", slug)
    return slug.strip("-")


def export_filename(recipient_name: str, invoice_number: str, extension: str = "pdf") -> str:
    return f"invoice-{slugify_name(recipient_name)}-{invoice_number}.{extension}"


def _is_latin1(value: str) -> bool:
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def fit_line_counts(needs: list[int], budget: int) -> list[int]:
    """Share ``budget`` text lines between rows that need ``needs`` lines each.

    Every row keeps at least one line. Rows needing no more than the common cap
    keep all of theirs; longer rows are cut to the cap, and lines left over go
    to the earliest cut rows.
    """
    if budget < len(needs):
        raise ExportLayoutError(f"{len(needs)} rows need at least {len(needs)} lines, only {budget} fit")
    if sum(needs) <= budget:
        return list(needs)
    cap = 1
    while sum(min(need, cap + 1) for need in needs) <= budget:
        cap += 1
    counts = [min(need, cap) for need in needs]
    spare = budget - sum(counts)
    for i, need in enumerate(needs):
        if spare == 0:
            break
        if need > counts[i]:
            counts[i] += 1
            spare -= 1
    return counts


class _FittedRow:
    __slots__ = ("row", "name_lines", "desc_lines", "line_count")

    def __init__(self, row: PageRow, name_lines: list[str], desc_lines: list[str], line_count: int) -> None:
        self.row = row
        self.name_lines = name_lines
        self.desc_lines = desc_lines
        self.line_count = line_count

    @property
    def height(self) -> float:
        return self.line_count * LINE_H + ROW_PAD


class ExportRenderer(LayoutRenderer[bytes]):
    """Draws the invoice as a PDF, one physical page per PageSpec.

    Every page is laid out against a fixed body area. Row text is wrapped and,
    when the page would otherwise run into the footer, cut to a shared line
    budget with a trailing ellipsis. A page whose fixed blocks leave no room
    for one line per row raises ExportLayoutError instead of producing a PDF
    with content off the page.

    Core Helvetica only covers Latin-1. Configure ``pdf_font_path`` (and
    optionally ``pdf_bold_font_path``) with TrueType files to draw any text.
    """

    def __init__(
        self,
        page_capacity: int | None = None,
        currency: str | None = None,
        font_path: str | None = None,
        bold_font_path: str | None = None,
    ) -> None:
        super().__init__(page_capacity or settings.export_page_capacity, currency)
        self.font_path = settings.pdf_font_path if font_path is None else font_path
        self.bold_font_path = settings.pdf_bold_font_path if bold_font_path is None else bold_font_path

    @property
    def unicode_fonts(self) -> bool:
        return bool(self.font_path)

    def render(
        self,
        document: InvoiceDocument,
        plan: PaginationPlan,
        sender: PartyInfo | None = None,
        recipient: PartyInfo | None = None,
    ) -> bytes:
        if sender is None or recipient is None:
            raise ValueError("Export requires both a sender profile and a recipient")

        self._currency = self.resolve_currency(sender)

        pdf = FPDF(orientation="P", unit="mm", format="A4")
        pdf.set_auto_page_break(auto=False)
        pdf.set_margins(MARGIN, MARGIN, MARGIN)
        pdf.set_creation_date(self._creation_date(document))
        self._register_fonts(pdf)
        pdf.set_title(self._plain(f"Invoice {document.invoice_number}"))
        pdf.set_author(self._plain(sender.display_name))
        pdf.set_creator("invoicely")

        for page in self.pages(document, plan):
            pdf.add_page()
            self._draw_page(pdf, page, document, sender, recipient)

        output = bytes(pdf.output())
        logger.debug(
            "PDF generated: invoice=%s items=%d pages=%d size=%d bytes",
            document.invoice_number,
            plan.item_count,
            plan.total_pages,
            len(output),
        )
        return output

    def _register_fonts(self, pdf: FPDF) -> None:
        if not self.unicode_fonts:
            self._family = CORE_FONT
            return
        pdf.add_font(UNICODE_FONT, "", self.font_path)
        pdf.add_font(UNICODE_FONT, "B", self.bold_font_path or self.font_path)
        pdf.add_font(UNICODE_FONT, "I", self.font_path)
        self._family = UNICODE_FONT

    def _font(self, pdf: FPDF, style: str, size: float) -> None:
        pdf.set_font(self._family, style, size)

    def _plain(self, value: str) -> str:
        if self.unicode_fonts:
            return value
        return value.encode("latin-1", "replace").decode("latin-1")

    @staticmethod
    def _creation_date(document: InvoiceDocument) -> datetime:
        # Pinned to the document so equal input gives byte-identical output.
        day = document.issue_date or (document.created_at.date() if document.created_at else None)
        if day is None:
            return datetime(2000, 1, 1, tzinfo=UTC)
        return datetime.combine(day, time(0, 0), tzinfo=UTC)

    def _money(self, amount: Decimal) -> str:
        text = format_money(amount, self._currency)
        if self.unicode_fonts or _is_latin1(text):
            return text
        return format_money(amount, self._currency, use_symbol=False)

    def _draw_page(
        self,
        pdf: FPDF,
        page: PageContent,
        document: InvoiceDocument,
        sender: PartyInfo,
        recipient: PartyInfo,
    ) -> None:
        self._draw_header(pdf, document)
        y = BODY_TOP
        if page.spec.show_parties_block:
            y = self._draw_parties(pdf, y, sender, recipient)

        notes_lines = self._notes_lines(pdf, document.notes) if page.spec.show_notes_block else []
        reserved = 0.0
        if page.spec.show_totals_block:
            reserved += self._totals_height(document)
        if notes_lines:
            reserved += NOTES_GAP + self._notes_height(notes_lines)

        available = BODY_BOTTOM - y - TABLE_HEADER_H - reserved
        rows = self._fit_rows(pdf, page, available, document)
        y = self._draw_table(pdf, y, page, rows)
        if page.spec.show_totals_block:
            y = self._draw_totals(pdf, y + TOTALS_GAP, document)
        if notes_lines:
            y = self._draw_notes(pdf, y + NOTES_GAP, notes_lines)
        self._draw_footer(pdf, page)

    def _text(self, pdf: FPDF, x: float, y: float, value: str) -> None:
        pdf.text(x, y, self._plain(value))

    def _text_right(self, pdf: FPDF, right: float, y: float, value: str) -> None:
        value = self._plain(value)
        pdf.text(right - pdf.get_string_width(value), y, value)

    def _wrap(self, pdf: FPDF, width: float, value: str) -> list[str]:
        value = self._plain(value)
        if not value.strip():
            return []
        return pdf.multi_cell(width, LINE_H, value, dry_run=True, output="LINES")

    def _truncate(self, pdf: FPDF, width: float, lines: list[str], count: int) -> list[str]:
        if len(lines) <= count:
            return lines
        kept = lines[:count]
        last = kept[-1].rstrip()
        while last and pdf.get_string_width(last + ELLIPSIS) > width:
            last = last[:-1].rstrip()
        kept[-1] = last + ELLIPSIS
        return kept

    def _fit_rows(
        self,
        pdf: FPDF,
        page: PageContent,
        available: float,
        document: InvoiceDocument,
    ) -> list[_FittedRow]:
        if not page.rows:
            if page.show_empty_state and available < EMPTY_STATE_H:
                raise ExportLayoutError(
                    f"Page {page.page_index + 1} of invoice {document.invoice_number} cannot fit above the footer"
                )
            return []

        wrapped = []
        for row in page.rows:
            self._font(pdf, "", 10)
            name_lines = self._wrap(pdf, ITEM_W, row.item.name)
            self._font(pdf, "", 9)
            desc_lines = self._wrap(pdf, DESC_W, row.item.description)
            wrapped.append((row, name_lines, desc_lines))

        budget = int((available - len(wrapped) * ROW_PAD) // LINE_H)
        needs = [max(len(name_lines), len(desc_lines), 1) for _, name_lines, desc_lines in wrapped]
        try:
            counts = fit_line_counts(needs, budget)
        except ExportLayoutError as exc:
            raise ExportLayoutError(
                f"Page {page.page_index + 1} of invoice {document.invoice_number} cannot fit "
                f"{len(wrapped)} rows above the footer; lower the export page capacity or shorten the notes"
            ) from exc

        fitted = []
        for (row, name_lines, desc_lines), count in zip(wrapped, counts):
            self._font(pdf, "", 10)
            name_lines = self._truncate(pdf, ITEM_W, name_lines, count)
            self._font(pdf, "", 9)
            desc_lines = self._truncate(pdf, DESC_W, desc_lines, count)
            fitted.append(_FittedRow(row, name_lines, desc_lines, count))

        cut = sum(1 for need, count in zip(needs, counts) if count < need)
        if cut:
            logger.info(
                "Page %d of invoice %s: %d row(s) shortened to fit above the footer",
                page.page_index + 1,
                document.invoice_number,
                cut,
            )
        return fitted

    def _draw_header(self, pdf: FPDF, document: InvoiceDocument) -> None:
        pdf.set_fill_color(*PRIMARY)
        pdf.rect(0, 0, PAGE_W, HEADER_H, "F")

        pdf.set_text_color(*WHITE)
        self._font(pdf, "B", 28)
        self._text(pdf, MARGIN, 24, "Invoice")

        details = [
            ("INVOICE #", document.invoice_number or NOT_SET),
            ("DATE", format_date(document.issue_date)),
            ("DUE DATE", format_date(document.due_date)),
        ]
        if document.customer_ref:
            details.append(("REFERENCE", document.customer_ref))

        label_x = RIGHT_X - 70
        y = 12.0
        for label, value in details:
            self._font(pdf, "B", 9)
            self._text(pdf, label_x, y, label)
            self._font(pdf, "", 9)
            self._text_right(pdf, RIGHT_X, y, value)
            y += 6

    def _draw_party(self, pdf: FPDF, x: float, y: float, label: str, party: PartyInfo) -> float:
        pdf.set_text_color(*MUTED)
        self._font(pdf, "B", 9)
        self._text(pdf, x, y, label)
        y += 7
        pdf.set_text_color(*TEXT)
        self._font(pdf, "B", 12)
        self._text(pdf, x, y, party.display_name)
        self._font(pdf, "", 10)
        lines = [party.email]
        if party.phone:
            lines.append(party.phone)
        lines.extend(party.address.lines())
        for line in lines:
            y += 5
            self._text(pdf, x, y, line)
        return y

    def _draw_parties(self, pdf: FPDF, y: float, sender: PartyInfo, recipient: PartyInfo) -> float:
        col_w = (CONTENT_W - 10) / 2
        left_end = self._draw_party(pdf, MARGIN, y, "FROM", sender)
        right_end = self._draw_party(pdf, MARGIN + col_w + 10, y, "BILL TO", recipient)
        y = max(left_end, right_end) + 6

        pdf.set_draw_color(*RULE)
        pdf.set_line_width(0.3)
        pdf.line(MARGIN, y, RIGHT_X, y)
        return y + 8

    def _draw_table(self, pdf: FPDF, y: float, page: PageContent, rows: list[_FittedRow]) -> float:
        pdf.set_text_color(*TEXT)
        self._font(pdf, "B", 10)
        self._text(pdf, COL_ITEM_X, y, "ITEMS")
        self._text(pdf, COL_DESC_X, y, "DESCRIPTION")
        self._text_right(pdf, COL_QTY_R, y, "QTY")
        self._text_right(pdf, COL_PRICE_R, y, "PRICE")
        self._text_right(pdf, COL_AMOUNT_R, y, "AMOUNT")
        pdf.set_draw_color(*PRIMARY)
        pdf.set_line_width(0.6)
        pdf.line(MARGIN, y + 2.5, RIGHT_X, y + 2.5)
        y += TABLE_HEADER_H

        if page.show_empty_state:
            pdf.set_text_color(*MUTED)
            self._font(pdf, "I", 10)
            self._text(pdf, COL_ITEM_X, y + 7, NO_ITEMS_PLACEHOLDER)
            return y + EMPTY_STATE_H

        for i, fitted in enumerate(rows):
            y = self._draw_row(pdf, y, fitted, shaded=i % 2 == 1)

        pdf.set_draw_color(*RULE)
        pdf.set_line_width(0.3)
        pdf.line(MARGIN, y, RIGHT_X, y)
        return y

    def _draw_row(self, pdf: FPDF, y: float, fitted: _FittedRow, shaded: bool) -> float:
        item = fitted.row.item
        if shaded:
            pdf.set_fill_color(*ROW_ALT)
            pdf.rect(MARGIN, y, CONTENT_W, fitted.height, "F")

        baseline = y + ROW_PAD / 2 + 3.2
        pdf.set_text_color(*TEXT)
        self._font(pdf, "", 10)
        for n, line in enumerate(fitted.name_lines):
            self._text(pdf, COL_ITEM_X, baseline + n * LINE_H, line)
        self._text_right(pdf, COL_QTY_R, baseline, format_quantity(item.quantity))
        self._text_right(pdf, COL_PRICE_R, baseline, self._money(item.unit_cost))
        self._font(pdf, "B", 10)
        self._text_right(pdf, COL_AMOUNT_R, baseline, self._money(item.line_total))

        pdf.set_text_color(*MUTED)
        self._font(pdf, "", 9)
        for n, line in enumerate(fitted.desc_lines):
            self._text(pdf, COL_DESC_X, baseline + n * LINE_H, line)
        return y + fitted.height

    @staticmethod
    def _totals_rows(document: InvoiceDocument) -> list[tuple[str, Decimal]]:
        rows = [("Subtotal", document.subtotal)]
        if document.tax > 0:
            rows.append(("Tax", document.tax))
        return rows

    def _totals_height(self, document: InvoiceDocument) -> float:
        return TOTALS_GAP + len(self._totals_rows(document)) * TOTALS_ROW_H + TOTALS_BAND_GAP + TOTALS_BAND_H

    def _draw_totals(self, pdf: FPDF, y: float, document: InvoiceDocument) -> float:
        x = RIGHT_X - TOTALS_W
        label_x = x + 4

        pdf.set_text_color(*TEXT)
        for label, amount in self._totals_rows(document):
            y += TOTALS_ROW_H
            self._font(pdf, "", 10)
            self._text(pdf, label_x, y, label)
            self._text_right(pdf, RIGHT_X - 4, y, self._money(amount))

        y += TOTALS_BAND_GAP
        pdf.set_fill_color(*PRIMARY)
        pdf.rect(x, y, TOTALS_W, TOTALS_BAND_H, "F")
        pdf.set_text_color(*WHITE)
        self._font(pdf, "B", 10)
        self._text(pdf, label_x, y + 10, f"TOTAL ({self._currency.upper()})")
        self._font(pdf, "B", 14)
        self._text_right(pdf, RIGHT_X - 4, y + 10.5, self._money(document.total))
        return y + TOTALS_BAND_H

    def _notes_lines(self, pdf: FPDF, notes: str) -> list[str]:
        self._font(pdf, "", 10)
        return self._wrap(pdf, CONTENT_W - 12, notes)

    @staticmethod
    def _notes_height(lines: list[str]) -> float:
        return NOTES_PAD + len(lines) * LINE_H

    def _draw_notes(self, pdf: FPDF, y: float, lines: list[str]) -> float:
        box_h = self._notes_height(lines)
        pdf.set_fill_color(*PRIMARY_LIGHT)
        pdf.rect(MARGIN, y, CONTENT_W, box_h, "F")
        pdf.set_text_color(*TEXT)
        self._font(pdf, "B", 10)
        self._text(pdf, MARGIN + 6, y + 7, "NOTES:")
        self._font(pdf, "", 10)
        for n, line in enumerate(lines):
            self._text(pdf, MARGIN + 6, y + 12.5 + n * LINE_H, line)
        return y + box_h

    def _draw_footer(self, pdf: FPDF, page: PageContent) -> None:
        pdf.set_draw_color(*RULE)
        pdf.set_line_width(0.3)
        pdf.line(MARGIN, FOOTER_RULE_Y, RIGHT_X, FOOTER_RULE_Y)
        pdf.set_text_color(*MUTED)
        self._font(pdf, "I", 8)
        self._text(pdf, MARGIN, FOOTER_RULE_Y + 6, FOOTER_TEXT)
        if page.show_page_numbers:
            self._font(pdf, "", 8)
            self._text_right(pdf, RIGHT_X, FOOTER_RULE_Y + 6, page_label(page.page_index, page.total_pages))


def render_export_document(
    document: InvoiceDocument,
    plan: PaginationPlan,
    sender: PartyInfo,
    recipient: PartyInfo,
    currency: str | None = None,
) -> bytes:
    return ExportRenderer(plan.page_capacity, currency).render(document, plan, sender, recipient)
