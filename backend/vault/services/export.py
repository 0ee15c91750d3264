"""
Export engine — gathers a user's records and encodes them as JSON, CSV,
an Excel workbook or a PDF report.

Every encoder works from the same gathered ExportSection list, whose rows are
the records' public views, so no format can leak id / user_id or disagree with
another about which fields exist.
"""

import csv
import datetime as dt
import io
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Union

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from vault.entities import ENTITIES, EntityKind
from vault.errors import InvalidArgument
from vault.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

EXPORT_BASENAME = "personal-data-export"
REPORT_TITLE = "Personal Data Export"


@dataclass
class ExportSection:
    kind: EntityKind
    label: str
    fields: tuple[str, ...]
    rows: list[dict] = field(default_factory=list)
    # Personal info is one object, not a list
    single: bool = False


@dataclass(frozen=True)
class ExportArtifact:
    content: Union[bytes, str]
    media_type: str
    filename: str


@dataclass(frozen=True)
class ExportFormat:
    name: str
    extension: str
    media_type: str
    encode: Callable[[list[ExportSection]], Union[bytes, str]]


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------

def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return str(value)


def _json_default(value):
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# ---------------------------------------------------------------------------
# Encoders
# ---------------------------------------------------------------------------

def encode_json(sections: list[ExportSection]) -> str:
    payload: dict = {}
    for section in sections:
        if section.single:
            # No personal info on file: leave the key out rather than null
            if section.rows:
                payload[section.kind.value] = section.rows[0]
        else:
            payload[section.kind.value] = section.rows
    return json.dumps(payload, indent=2, default=_json_default)


def encode_csv(sections: list[ExportSection]) -> str:
    """
    One block per section: NAME line, header row, data rows. Blocks are
    separated by a blank line. An empty section is just its NAME line.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for index, section in enumerate(sections):
        if index:
            writer.writerow([])
        writer.writerow([section.kind.value.upper()])
        if not section.rows:
            continue
        writer.writerow(section.fields)
        for row in section.rows:
            writer.writerow([_text(row[name]) for name in section.fields])
    return buffer.getvalue()


def _excel_value(value):
    """Drop the control characters a worksheet cell cannot hold."""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def encode_excel(sections: list[ExportSection]) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    header_font = Font(bold=True)

    for section in sections:
        sheet = workbook.create_sheet(title=section.kind.value)
        if not section.rows:
            continue
        sheet.append(list(section.fields))
        for cell in sheet[1]:
            cell.font = header_font
        for row in section.rows:
            sheet.append([_excel_value(row[name]) for name in section.fields])
            for cell in sheet[sheet.max_row]:
                # openpyxl turns any "=..." string into a formula
                if cell.data_type == "f":
                    cell.data_type = "s"

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class PdfReport:
    """
    Flowing A4 text report. Positions are tracked as distance from the top
    edge; a new page starts whenever the next line would cross the bottom
    margin, and the current section simply carries on there.
    """

    TOP = 20 * mm
    BOTTOM = 17 * mm
    LEFT = 20 * mm
    INDENT = 25 * mm
    LINE = 6 * mm

    def __init__(self):
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(REPORT_TITLE)
        self.width, self.height = A4
        self.y = self.TOP
        self.pages = 1

    def _ensure_room(self, needed: float) -> None:
        if self.y + needed > self.height - self.BOTTOM:
            self.canvas.showPage()
            self.pages += 1
            self.y = self.TOP

    def write(self, text: str, size: int, x: float, advance: float, bold: bool = False) -> None:
        font = "Helvetica-Bold" if bold else "Helvetica"
        lines = simpleSplit(text, font, size, self.width - x - self.LEFT) or [""]
        for line in lines:
            self._ensure_room(self.LINE)
            self.canvas.setFont(font, size)
            self.canvas.drawString(x, self.height - self.y, line)
            self.y += self.LINE
        self.y += max(advance - self.LINE, 0)

    def skip(self, distance: float) -> None:
        self.y += distance

    def render(self) -> bytes:
        self.canvas.save()
        return self.buffer.getvalue()


def _pdf_line(section: ExportSection, row: dict) -> str:
    return ", ".join(f"{name}: {_text(row[name])}" for name in section.fields)


def build_pdf(sections: list[ExportSection]) -> PdfReport:
    report = PdfReport()
    report.write(REPORT_TITLE, 18, report.LEFT, 20 * mm, bold=True)

    for section in sections:
        report.write(section.label, 14, report.LEFT, 10 * mm, bold=True)
        if section.single:
            for row in section.rows:
                report.write(_pdf_line(section, row), 10, report.INDENT, 8 * mm)
        else:
            for number, row in enumerate(section.rows, start=1):
                report.write(f"{number}. {_pdf_line(section, row)}", 10, report.INDENT, 8 * mm)
        report.skip(10 * mm)

    return report


def encode_pdf(sections: list[ExportSection]) -> bytes:
    return build_pdf(sections).render()


FORMATS: dict[str, ExportFormat] = {
    "pdf": ExportFormat("pdf", "pdf", "application/pdf", encode_pdf),
    "csv": ExportFormat("csv", "csv", "text/csv; charset=utf-8", encode_csv),
    "excel": ExportFormat(
        "excel",
        "xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        encode_excel,
    ),
    "json": ExportFormat("json", "json", "application/json", encode_json),
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def parse_sections(requested: Optional[Iterable[str]]) -> list[EntityKind]:
    """
    Validate requested section names. Returns them in canonical order without
    duplicates; nothing requested means every section.
    """
    names = [name.strip().lower() for name in (requested or []) if name and name.strip()]
    if not names:
        return list(EntityKind)

    valid = {kind.value for kind in EntityKind}
    unknown = sorted(set(names) - valid)
    if unknown:
        raise InvalidArgument(f"Unknown export section(s): {', '.join(unknown)}")
    return [kind for kind in EntityKind if kind.value in names]


class ExportEngine:
    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    def gather(self, user_id: str, kinds: list[EntityKind]) -> list[ExportSection]:
        sections = []
        for kind in kinds:
            spec = ENTITIES[kind]
            records = self.gateway.collection(kind).list(user_id)
            if spec.singleton:
                records = records[:1]
            sections.append(
                ExportSection(
                    kind=kind,
                    label=spec.label,
                    fields=spec.record.PUBLIC_FIELDS,
                    rows=[record.public_view() for record in records],
                    single=spec.singleton,
                )
            )
        return sections

    def export(self, user_id: str, fmt: str, sections: Optional[Iterable[str]] = None) -> ExportArtifact:
        """
        Build one downloadable artifact. Format and section names are
        checked before any data is read.
        """
        export_format = FORMATS.get((fmt or "").lower())
        if export_format is None:
            raise InvalidArgument(f"Unsupported export format: {fmt}")
        kinds = parse_sections(sections)

        gathered = self.gather(user_id, kinds)
        content = export_format.encode(gathered)
        logger.info(
            "[export] user %s format=%s sections=%s",
            user_id,
            export_format.name,
            ",".join(kind.value for kind in kinds),
        )
        return ExportArtifact(
            content=content,
            media_type=export_format.media_type,
            filename=f"{EXPORT_BASENAME}.{export_format.extension}",
        )
