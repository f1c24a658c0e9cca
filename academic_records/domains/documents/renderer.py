# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PDF rendering of official documents.

Rendering is a pure function of the stored payload and the wording file, so
re-rendering an issued document reproduces it even after the source records
have changed.

Example:
    renderer = DocumentRenderer.from_settings()
    content = renderer.render(payload)  # application/pdf bytes
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pymupdf

from academic_records.core.config.settings import DocumentSettings, get_settings
from academic_records.core.config.yaml_loader import load_layered_yaml
from academic_records.core.errors import RecordsError
from academic_records.models.common import DocumentKind
from academic_records.models.document import DocumentPayload

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).with_name("templates.yaml")
PDF_CONTENT_TYPE = "application/pdf"

MARGIN = 50
FONT = "helv"
BOLD_FONT = "hebo"
# Column offsets of the history table, relative to the left margin
TABLE_COLUMNS = (0, 230, 280, 330, 380)
DISCIPLINE_NAME_WIDTH = 38


class DocumentRenderError(RecordsError):
    """Raised when a payload cannot be rendered."""

    pass


class _Canvas:
    """Top-down text cursor over a PDF document, adding pages as needed."""

    def __init__(self, doc: pymupdf.Document, width: float, height: float) -> None:
        self.doc = doc
        self.width = width
        self.height = height
        self.page: pymupdf.Page | None = None
        self.y = 0.0
        self.new_page()

    def new_page(self) -> None:
        self.page = self.doc.new_page(width=self.width, height=self.height)
        self.y = MARGIN

    def line(self, text: str, size: float = 10, align: str = "left", bold: bool = False) -> None:
        font = BOLD_FONT if bold else FONT
        self._reserve(size)
        length = pymupdf.get_text_length(text, fontname=font, fontsize=size)
        if align == "center":
            x = (self.width - length) / 2
        elif align == "right":
            x = self.width - MARGIN - length
        else:
            x = MARGIN
        self.y += size
        self.page.insert_text((x, self.y), text, fontname=font, fontsize=size)
        self.y += size * 0.4

    def paragraph(self, text: str, size: float = 10, bold: bool = False) -> None:
        for wrapped in self._wrap(text, size, BOLD_FONT if bold else FONT):
            self.line(wrapped, size, bold=bold)

    def row(self, cells: list[str], size: float = 8) -> None:
        self._reserve(size)
        self.y += size
        for offset, text in zip(TABLE_COLUMNS, cells):
            self.page.insert_text((MARGIN + offset, self.y), text, fontname=FONT, fontsize=size)
        self.y += size * 0.5

    def rule(self) -> None:
        self.page.draw_line((MARGIN, self.y), (self.width - MARGIN, self.y))
        self.y += 4

    def space(self, lines: float = 1.0, size: float = 10) -> None:
        self.y += size * lines

    def _reserve(self, size: float) -> None:
        if self.y + size > self.height - MARGIN:
            self.new_page()

    def _wrap(self, text: str, size: float, font: str) -> list[str]:
        usable = self.width - 2 * MARGIN
        lines: list[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}".strip()
            measured = pymupdf.get_text_length(candidate, fontname=font, fontsize=size)
            if current and measured > usable:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)
        return lines


class DocumentRenderer:
    """Renders document payloads to PDF.

    Attributes:
        texts: Merged wording mapping (titles, bodies, labels, table, outcomes).
        page_size: Paper size name.
    """

    def __init__(self, texts: dict[str, Any] | None = None, page_size: str = "A4") -> None:
        self.texts = texts if texts is not None else load_layered_yaml(TEMPLATES_PATH)
        self.page_size = page_size

    @classmethod
    def from_settings(cls, settings: DocumentSettings | None = None) -> "DocumentRenderer":
        """Build a renderer from document settings.

        The packaged wording is merged with the institution override file
        when one is configured.
        """
        settings = settings or get_settings().documents
        texts = load_layered_yaml(TEMPLATES_PATH, settings.templates_override)
        return cls(texts=texts, page_size=settings.page_size)

    def render(self, payload: DocumentPayload) -> bytes:
        """Render a payload.

        Args:
            payload: Composed document payload.

        Returns:
            PDF bytes.

        Raises:
            DocumentRenderError: If the wording is incomplete or the PDF
                cannot be produced.
        """
        try:
            content = self._render(payload)
        except (KeyError, ValueError, RuntimeError) as e:
            logger.error(
                "Rendering failed: kind=%s, number=%s, error=%s",
                payload.kind.value,
                payload.number,
                str(e),
            )
            raise DocumentRenderError(
                f"Failed to render {payload.kind.value} {payload.number}", e
            ) from e

        logger.debug("Rendered %s (%d bytes)", payload.number, len(content))
        return content

    def _render(self, payload: DocumentPayload) -> bytes:
        width, height = pymupdf.paper_size(self.page_size.lower())
        doc = pymupdf.open()
        try:
            canvas = _Canvas(doc, width, height)
            self._header(canvas, payload)
            self._body(canvas, payload)
            self._academic_context(canvas, payload)
            if payload.kind in (DocumentKind.TRANSCRIPT, DocumentKind.CERTIFICATE):
                self._history(canvas, payload)
            self._footer(canvas, payload)

            buf = io.BytesIO()
            doc.save(buf)
        finally:
            doc.close()
        return buf.getvalue()

    # =========================================================================
    # Sections
    # =========================================================================

    def _header(self, canvas: _Canvas, payload: DocumentPayload) -> None:
        labels = self.texts["labels"]
        institution = payload.institution

        canvas.line(institution.name, size=16, align="center", bold=True)
        if institution.address:
            canvas.line(institution.address, size=10, align="center")
        contact = " | ".join(v for v in (institution.phone, institution.contact_email) if v)
        if contact:
            canvas.line(contact, size=9, align="center")
        if institution.tax_id:
            canvas.line(labels["tax_id"].format(tax_id=institution.tax_id), size=9, align="center")
        canvas.space(2)

        canvas.line(self.texts["titles"][payload.kind.value], size=14, align="center", bold=True)
        canvas.space(1)
        canvas.line(labels["number"].format(number=payload.number), size=11, align="right")
        canvas.space(1)

    def _body(self, canvas: _Canvas, payload: DocumentPayload) -> None:
        body = self.texts["bodies"][payload.kind.value]
        student = payload.student
        student_number = student.public_number or student.student_number

        canvas.paragraph(body["lead"])
        if student_number:
            canvas.paragraph(
                self.texts["labels"]["student"].format(
                    name=student.full_name, student_number=student_number
                ),
                bold=True,
            )
        else:
            canvas.paragraph(student.full_name, bold=True)
        canvas.paragraph(body["statement"])
        canvas.space(1)

    def _academic_context(self, canvas: _Canvas, payload: DocumentPayload) -> None:
        labels = self.texts["labels"]
        enrollment = payload.enrollment

        if enrollment is not None:
            if enrollment.course_name:
                canvas.line(labels["course"].format(value=enrollment.course_name))
            if enrollment.class_name:
                canvas.line(labels["class"].format(value=enrollment.class_name))
            if enrollment.year_label:
                canvas.line(labels["year_label"].format(value=enrollment.year_label))
            if enrollment.academic_year:
                canvas.line(labels["academic_year"].format(value=enrollment.academic_year))
        if payload.purpose:
            canvas.paragraph(labels["purpose"].format(value=payload.purpose))

        if enrollment is not None and enrollment.disciplines:
            canvas.space(0.5)
            canvas.line(labels["disciplines"], bold=True)
            for name in enrollment.disciplines:
                canvas.line(f"- {name}", size=9)

        conclusion = payload.conclusion
        if conclusion is not None:
            canvas.space(0.5)
            canvas.line(labels["program"].format(value=conclusion.program_name))
            if conclusion.concluded_at:
                canvas.line(labels["concluded_at"].format(value=conclusion.concluded_at))
            canvas.line(
                labels["completed_disciplines"].format(value=conclusion.completed_disciplines)
            )
            if conclusion.official_act_number:
                canvas.line(labels["official_act"].format(value=conclusion.official_act_number))
            if conclusion.registration_number:
                canvas.line(labels["registration"].format(value=conclusion.registration_number))
        canvas.space(1)

    def _history(self, canvas: _Canvas, payload: DocumentPayload) -> None:
        labels = self.texts["labels"]
        table = self.texts["table"]
        outcomes = self.texts["outcomes"]

        if not payload.history:
            if payload.kind == DocumentKind.TRANSCRIPT:
                canvas.paragraph(labels["empty_history"], size=9)
                canvas.space(1)
            return

        canvas.line(labels["history"], bold=True)
        canvas.space(0.5)
        canvas.row(list(table["columns"]))
        canvas.rule()
        for row in payload.history:
            canvas.row(
                [
                    row.discipline_name[:DISCIPLINE_NAME_WIDTH],
                    str(row.academic_year) if row.academic_year else "-",
                    str(row.workload_hours),
                    f"{row.final_grade:.1f}" if row.final_grade is not None else "-",
                    table["equivalency"]
                    if row.from_equivalency
                    else outcomes.get(row.outcome.value, row.outcome.value),
                ]
            )
        canvas.space(1)

        canvas.line(labels["total_hours"].format(value=payload.total_hours))
        if payload.mean_grade is not None:
            canvas.line(labels["mean_grade"].format(value=f"{payload.mean_grade:.2f}"))
        canvas.space(1)

    def _footer(self, canvas: _Canvas, payload: DocumentPayload) -> None:
        labels = self.texts["labels"]
        issued_on = datetime.fromisoformat(payload.issued_at).strftime(self.texts["date_format"])

        canvas.line(labels["issued_on"].format(date=issued_on), align="right")
        canvas.line(
            labels["verification"].format(code=payload.verification_code),
            size=8,
            align="right",
        )
