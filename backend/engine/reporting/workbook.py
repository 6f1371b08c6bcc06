"""Spreadsheet rendering for feeder performance reports.

Lays the report matrix out on the ``Feeder Performance`` sheet of a
template workbook (fixed header rows 1-4, data from row 5) and, when
requested, fills one analysis sheet per category.

Layout of the performance sheet:

- ``F1``: report title
- columns A-G: serial, business hub, feeder, region, band, daily uptake,
  monthly plan
- from column I, one 4-column block per day: a merged date label on
  row 3 over Nomination / Actual / Variance sub-headers on row 4, then a
  spacer column
- each region opens with a merged A:G banner row

Analysis sheets never read back from live cells of another sheet: each
feeder row is captured once as an immutable :class:`RowSnapshot` and
appended by value.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from copy import copy
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.styles.cell_style import StyleArray
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from engine.performance.categories import (
    ANALYSIS_CATEGORIES,
    AnalysisCategory,
    CategoryAssignment,
    FailedCheckSummary,
)
from engine.performance.date_range import format_day
from engine.performance.errors import TemplateMissing
from engine.performance.matrix import FeederMatrixRow

logger = logging.getLogger(__name__)

# ══════════════════════════════════════════════════════════════════════
# Layout constants
# ══════════════════════════════════════════════════════════════════════

PERFORMANCE_SHEET = "Feeder Performance"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TITLE_CELL = "F1"
HEADER_ROWS = 4
DATE_HEADER_ROW = 3
SUB_HEADER_ROW = 4
FIRST_DATA_ROW = 5

STATIC_COLUMNS = 7
FIRST_DATE_COLUMN = 9  # column I
DATE_BLOCK_STRIDE = 4
SUB_COLUMN_LABELS = ("Nomination", "Actual", "Variance")

STATIC_HEADERS = (
    "S/N",
    "Business Hub",
    "Feeder",
    "Region",
    "Band",
    "Daily Energy Uptake",
    "Monthly Delivery Plan",
)
STATIC_COLUMN_WIDTHS = (10, 20, 35, 15, 15, 15, 15)
DATE_COLUMN_WIDTH = 15

SUMMARY_HEADER_ROW = 5
SUMMARY_HEADERS = ("Region", "Business Hub", "Feeder Name", "Date", "Failed Checks")
SUMMARY_COLUMN_WIDTHS = (15, 20, 35, 15, 40)

# ARGB fills
FILL_SUB_HEADER = "FFF2F2F2"
FILL_REGION_BANNER = "FFD3D3D3"
FILL_VARIANCE_POSITIVE = "FFFF0000"
FILL_VARIANCE_NEGATIVE = "FF00FF00"
FILL_VARIANCE_ZERO = "FFFFFFFF"

_THIN = Side(style="thin")
THIN_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
CENTERED = Alignment(horizontal="center", vertical="center")


def _solid(argb: str) -> PatternFill:
    return PatternFill(fill_type="solid", start_color=argb, end_color=argb)


def variance_fill(variance: float) -> PatternFill:
    """Fill colour for a variance cell: over-delivery, under-delivery or on target."""
    if variance > 0:
        return _solid(FILL_VARIANCE_POSITIVE)
    if variance < 0:
        return _solid(FILL_VARIANCE_NEGATIVE)
    return _solid(FILL_VARIANCE_ZERO)


def date_block_column(index: int) -> int:
    """First (Nomination) column of the 0-based *index*-th day block."""
    return FIRST_DATE_COLUMN + index * DATE_BLOCK_STRIDE


def last_date_column(day_count: int) -> int:
    """Variance column of the final day block."""
    return date_block_column(day_count - 1) + len(SUB_COLUMN_LABELS) - 1


# ══════════════════════════════════════════════════════════════════════
# Row snapshots
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CellSnapshot:
    """Value and style of one rendered cell, detached from any sheet.

    The style is kept as the cell's style-array copy, so a snapshot may only
    be applied to sheets of the workbook it was captured from.
    """
    column: int
    value: Any
    style: StyleArray

    @classmethod
    def capture(cls, cell) -> CellSnapshot:
        return cls(column=cell.column, value=cell.value, style=copy(cell._style))

    def apply(self, cell) -> None:
        cell.value = self.value
        cell._style = copy(self.style)


@dataclass(frozen=True)
class RowSnapshot:
    """Immutable copy of a rendered feeder row."""
    feeder_id: str
    cells: tuple[CellSnapshot, ...]

    @classmethod
    def capture(cls, ws: Worksheet, row: int, max_column: int, feeder_id: str) -> RowSnapshot:
        cells = tuple(
            CellSnapshot.capture(ws.cell(row=row, column=col))
            for col in range(1, max_column + 1)
        )
        return cls(feeder_id=feeder_id, cells=cells)

    @property
    def values(self) -> tuple[Any, ...]:
        return tuple(c.value for c in self.cells)


def append_snapshot(ws: Worksheet, snapshot: RowSnapshot, row: int | None = None) -> int:
    """Write *snapshot* on *row*, or the first free row of *ws*; return that row."""
    target_row = ws.max_row + 1 if row is None else row
    for cell_snapshot in snapshot.cells:
        cell_snapshot.apply(ws.cell(row=target_row, column=cell_snapshot.column))
    return target_row


# ══════════════════════════════════════════════════════════════════════
# Template handling
# ══════════════════════════════════════════════════════════════════════

def build_default_template() -> Workbook:
    """In-memory template with the fixed header rows of the report."""
    wb = Workbook()
    ws = wb.active
    ws.title = PERFORMANCE_SHEET

    ws[TITLE_CELL].font = Font(bold=True, size=14)

    for col, label in enumerate(STATIC_HEADERS, start=1):
        cell = ws.cell(row=DATE_HEADER_ROW, column=col, value=label)
        cell.font = Font(bold=True)
        cell.fill = _solid(FILL_SUB_HEADER)
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        ws.cell(row=SUB_HEADER_ROW, column=col).border = THIN_BORDER
        letter = get_column_letter(col)
        ws.merge_cells(f"{letter}{DATE_HEADER_ROW}:{letter}{SUB_HEADER_ROW}")

    return wb


def load_template(path: str | Path | None = None) -> Workbook:
    """Open the report template, or build the default one when *path* is None.

    Raises
    ------
    TemplateMissing
        If *path* does not exist or lacks the performance sheet.
    """
    if path is None:
        return build_default_template()

    template_path = Path(path)
    if not template_path.is_file():
        raise TemplateMissing(f"Report template not found: {template_path}")

    wb = load_workbook(template_path)
    performance_sheet(wb)
    return wb


def performance_sheet(wb: Workbook) -> Worksheet:
    if PERFORMANCE_SHEET not in wb.sheetnames:
        raise TemplateMissing(f"Template worksheet '{PERFORMANCE_SHEET}' not found")
    return wb[PERFORMANCE_SHEET]


# ══════════════════════════════════════════════════════════════════════
# Performance sheet
# ══════════════════════════════════════════════════════════════════════

def write_title(ws: Worksheet, title: str) -> None:
    ws[TITLE_CELL] = title


def setup_date_headers(ws: Worksheet, days: Sequence[date]) -> None:
    """Merged date labels on row 3 and sub-column labels on row 4."""
    for index, day in enumerate(days):
        col = date_block_column(index)
        ws.merge_cells(
            start_row=DATE_HEADER_ROW,
            start_column=col,
            end_row=DATE_HEADER_ROW,
            end_column=col + len(SUB_COLUMN_LABELS) - 1,
        )
        header = ws.cell(row=DATE_HEADER_ROW, column=col, value=format_day(day))
        header.font = Font(bold=True)
        header.alignment = CENTERED
        header.border = THIN_BORDER

        for offset, label in enumerate(SUB_COLUMN_LABELS):
            cell = ws.cell(row=SUB_HEADER_ROW, column=col + offset, value=label)
            cell.font = Font(bold=True)
            cell.fill = _solid(FILL_SUB_HEADER)
            cell.border = THIN_BORDER
            cell.alignment = Alignment(horizontal="center")
            ws.column_dimensions[get_column_letter(col + offset)].width = DATE_COLUMN_WIDTH

    for col, width in enumerate(STATIC_COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width


def _write_region_banner(ws: Worksheet, row: int, region: str, day_count: int) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=STATIC_COLUMNS)
    cell = ws.cell(row=row, column=1, value=region)
    cell.font = Font(bold=True, size=14)
    cell.fill = _solid(FILL_REGION_BANNER)
    cell.alignment = CENTERED
    cell.border = THIN_BORDER

    for index in range(day_count):
        col = date_block_column(index)
        for offset in range(len(SUB_COLUMN_LABELS)):
            ws.cell(row=row, column=col + offset).border = THIN_BORDER


def _write_feeder_row(ws: Worksheet, row: int, serial: int, matrix_row: FeederMatrixRow) -> None:
    feeder = matrix_row.feeder
    static_values = (
        serial,
        feeder.business_hub,
        feeder.name,
        feeder.region,
        feeder.band,
        feeder.daily_energy_uptake,
        feeder.monthly_delivery_plan,
    )
    for col, value in enumerate(static_values, start=1):
        cell = ws.cell(row=row, column=col, value=value)
        cell.border = THIN_BORDER

    for index, day_cell in enumerate(matrix_row.cells):
        col = date_block_column(index)
        values = (day_cell.nomination, day_cell.actual, day_cell.variance)
        for offset, value in enumerate(values):
            cell = ws.cell(row=row, column=col + offset, value=value)
            cell.border = THIN_BORDER
            cell.alignment = CENTERED
        ws.cell(row=row, column=col + 2).fill = variance_fill(day_cell.variance)


def render_performance_sheet(
    ws: Worksheet,
    rows: Sequence[FeederMatrixRow],
    days: Sequence[date],
) -> dict[str, RowSnapshot]:
    """Write region banners and feeder rows; return a snapshot per feeder.

    Rows are grouped by region in order of first appearance, keeping the
    incoming order inside each region.  Serial numbers run across regions.
    """
    by_region: dict[str, list[FeederMatrixRow]] = {}
    for matrix_row in rows:
        by_region.setdefault(matrix_row.feeder.region, []).append(matrix_row)

    max_column = last_date_column(len(days))
    snapshots: dict[str, RowSnapshot] = {}
    row_index = FIRST_DATA_ROW
    serial = 1

    for region, region_rows in by_region.items():
        _write_region_banner(ws, row_index, region, len(days))
        row_index += 1

        for matrix_row in region_rows:
            _write_feeder_row(ws, row_index, serial, matrix_row)
            feeder_id = matrix_row.feeder.id
            snapshots[feeder_id] = RowSnapshot.capture(ws, row_index, max_column, feeder_id)
            serial += 1
            row_index += 1

    return snapshots


# ══════════════════════════════════════════════════════════════════════
# Analysis sheets
# ══════════════════════════════════════════════════════════════════════

def copy_header_block(source: Worksheet, target: Worksheet) -> None:
    """Copy rows 1-4 (values, styles, widths and merges) from *source*."""
    max_column = source.max_column
    for source_row in source.iter_rows(min_row=1, max_row=HEADER_ROWS, max_col=max_column):
        for source_cell in source_row:
            CellSnapshot.capture(source_cell).apply(
                target.cell(row=source_cell.row, column=source_cell.column)
            )

    for key, dimension in source.column_dimensions.items():
        if dimension.width:
            target.column_dimensions[key].width = dimension.width

    for merged in source.merged_cells.ranges:
        if merged.max_row <= HEADER_ROWS:
            target.merge_cells(merged.coord)


def create_analysis_sheets(wb: Workbook, source: Worksheet) -> dict[AnalysisCategory, Worksheet]:
    sheets: dict[AnalysisCategory, Worksheet] = {}
    for category in ANALYSIS_CATEGORIES:
        sheet = wb.create_sheet(category.sheet_title)
        copy_header_block(source, sheet)
        sheets[category] = sheet
    return sheets


def write_failed_checks_summary(ws: Worksheet, summaries: Sequence[FailedCheckSummary]) -> None:
    """Header on row 5, one five-column row per failing feeder after it."""
    for col, label in enumerate(SUMMARY_HEADERS, start=1):
        cell = ws.cell(row=SUMMARY_HEADER_ROW, column=col, value=label)
        cell.font = Font(bold=True)
        cell.fill = _solid(FILL_SUB_HEADER)
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center")

    for offset, summary in enumerate(summaries, start=1):
        for col, value in enumerate(summary.as_row(), start=1):
            cell = ws.cell(row=SUMMARY_HEADER_ROW + offset, column=col, value=value)
            cell.border = THIN_BORDER

    for col, width in enumerate(SUMMARY_COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width


def fill_analysis_sheets(
    sheets: dict[AnalysisCategory, Worksheet],
    snapshots: dict[str, RowSnapshot],
    assignments: Sequence[CategoryAssignment],
) -> None:
    """Append each assigned row to its category sheets.

    Rows follow the order of *snapshots*, which is the order they were
    rendered on the performance sheet.
    """
    position = {feeder_id: index for index, feeder_id in enumerate(snapshots)}
    ordered = sorted(assignments, key=lambda a: position.get(a.feeder_id, len(position)))

    next_row = {category: sheet.max_row + 1 for category, sheet in sheets.items()}
    summaries: list[FailedCheckSummary] = []
    for assignment in ordered:
        snapshot = snapshots.get(assignment.feeder_id)
        for category in assignment.categories:
            if category is AnalysisCategory.FAILED_CHECKS_SUMMARY:
                if assignment.summary is not None:
                    summaries.append(assignment.summary)
                continue
            if snapshot is not None:
                append_snapshot(sheets[category], snapshot, next_row[category])
                next_row[category] += 1

    write_failed_checks_summary(sheets[AnalysisCategory.FAILED_CHECKS_SUMMARY], summaries)


# ══════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════

def generate_workbook_report(
    *,
    title: str,
    days: Sequence[date],
    rows: Sequence[FeederMatrixRow],
    assignments: Sequence[CategoryAssignment] = (),
    include_analysis: bool = True,
    template_path: str | Path | None = None,
) -> Workbook:
    """Render a complete report workbook.

    Parameters
    ----------
    title : str
        Text written to the title cell.
    days : Sequence[date]
        Ordered report days; one column block each.
    rows : Sequence[FeederMatrixRow]
        Matrix rows in display order.
    assignments : Sequence[CategoryAssignment]
        Category routing for the rows, used when *include_analysis* is set.
    include_analysis : bool
        Add the eight analysis sheets after the performance sheet.
    template_path : str, Path or None
        Template workbook; the built-in layout is used when None.
    """
    wb = load_template(template_path)
    ws = performance_sheet(wb)

    write_title(ws, title)
    setup_date_headers(ws, days)

    sheets: dict[AnalysisCategory, Worksheet] = {}
    if include_analysis:
        sheets = create_analysis_sheets(wb, ws)

    snapshots = render_performance_sheet(ws, rows, days)

    if include_analysis:
        fill_analysis_sheets(sheets, snapshots, assignments)

    logger.debug(
        "Rendered workbook '%s': %d feeders x %d days, analysis=%s",
        title, len(rows), len(days), include_analysis,
    )
    return wb


def save_workbook(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()
