"""Tests for app.services.report_service and feeder_directory: the full pipeline."""

from __future__ import annotations

import uuid
from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook

from app.services.feeder_directory import (
    DuplicateFeeder,
    FeederDirectory,
    RegionMismatch,
    normalize_feeder_name,
)
from app.services.reading_store import ReadingRangeCache
from app.services.report_service import (
    ReportOrchestrator,
    email_body,
    email_subject,
    report_title,
)
from engine.performance.errors import InvalidRange, LookupNotFound, NoFeedersFound, TemplateMissing
from engine.reporting.workbook import PERFORMANCE_SHEET, XLSX_MEDIA_TYPE

pytestmark = pytest.mark.asyncio

D1 = date(2024, 1, 1)
D2 = date(2024, 1, 2)


def _sheet(report, name=PERFORMANCE_SHEET):
    return load_workbook(BytesIO(report.content))[name]


def _feeder_names(ws) -> list[str]:
    return [ws.cell(row=r, column=3).value for r in range(5, ws.max_row + 1) if ws.cell(row=r, column=3).value]


# ======================================================================
# Feeder directory
# ======================================================================


class TestFeederDirectory:
    async def test_profiles_sorted_by_region_hub_name(self, db, grid):
        profiles = await FeederDirectory(db).list_feeders()
        assert [p.name for p in profiles] == ["Garki 11kV", "Allen 33kV", "Opebi 11kV", "Ajah 11kV"]
        assert profiles[0].region == "Abuja"
        assert profiles[0].business_hub == "Wuse"

    async def test_region_lookup_case_insensitive(self, db, grid):
        region = await FeederDirectory(db).find_region_by_name("LAGOS")
        assert region.id == grid.lagos.id

    async def test_unknown_hub(self, db, grid):
        with pytest.raises(LookupNotFound, match="Business Hub 'Nowhere' not found"):
            await FeederDirectory(db).find_hub_by_name("Nowhere")

    async def test_region_mismatch(self, db, grid):
        with pytest.raises(RegionMismatch):
            await FeederDirectory(db).register_feeder(
                "Stray", grid.wuse.id, grid.lagos.id, "A20H", 10.0
            )

    async def test_duplicate_name_normalized(self, db, grid):
        with pytest.raises(DuplicateFeeder):
            await FeederDirectory(db).register_feeder(
                "allen-33 kv", grid.ikeja.id, grid.lagos.id, "A20H", 10.0
            )

    async def test_same_name_in_other_hub_allowed(self, db, grid):
        feeder = await FeederDirectory(db).register_feeder(
            "Allen 33kV", grid.lekki.id, grid.lagos.id, "E4H", 10.0
        )
        assert feeder.business_hub_id == grid.lekki.id

    async def test_unknown_band(self, db, grid):
        with pytest.raises(ValueError, match="Unknown band"):
            await FeederDirectory(db).register_feeder(
                "New", grid.ikeja.id, grid.lagos.id, "Z1H", 10.0
            )

    async def test_normalize_feeder_name(self):
        assert normalize_feeder_name(" Allen-33 KV ") == "allen33kv"


# ======================================================================
# Orchestrator: date range
# ======================================================================


class TestDateRangeReport:
    async def test_counters_and_metadata(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2)
        assert report.feeder_count == 4
        assert report.failed_count == 1  # Opebi
        assert report.insufficient_count == 1  # Ajah
        assert report.filename == "Energy_Report_2024-01-01_to_2024-01-02.xlsx"
        assert report.title == "FEEDER PERFORMANCE TRACKER (2024-01-01 TO 2024-01-02)"
        assert report.media_type == XLSX_MEDIA_TYPE

    async def test_rows_grouped_by_region(self, db, grid):
        ws = _sheet(await ReportOrchestrator(db).date_range(D1, D2))
        assert ws["A5"].value == "Abuja"
        assert ws["C6"].value == "Garki 11kV"
        assert ws["A7"].value == "Lagos"
        assert [ws.cell(row=r, column=3).value for r in (8, 9, 10)] == [
            "Allen 33kV",
            "Opebi 11kV",
            "Ajah 11kV",
        ]

    async def test_carry_forward_in_sheet(self, db, grid):
        ws = _sheet(await ReportOrchestrator(db).date_range(D1, D2))
        # Ajah: day-2 actual carried from day 1
        assert ws.cell(row=10, column=14).value == 100

    async def test_summary_sheet(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2)
        ws = _sheet(report, "Failed Checks Summary")
        assert ws["C6"].value == "Opebi 11kV"
        assert ws["E6"].value.split(", ")[0] == "Actual D-0 < Actual D-1"

    async def test_region_filter(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2, region="lagos")
        assert report.feeder_count == 3
        assert "Garki 11kV" not in _feeder_names(_sheet(report))

    async def test_hub_filter(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2, business_hub="IKEJA")
        assert report.feeder_count == 2

    async def test_without_analysis(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2, include_analysis=False)
        assert load_workbook(BytesIO(report.content)).sheetnames == [PERFORMANCE_SHEET]
        assert report.failed_count == 1

    async def test_write_to_stream(self, db, grid):
        report = await ReportOrchestrator(db).date_range(D1, D2)
        buf = BytesIO()
        assert report.write_to(buf) == len(report.content)
        assert buf.getvalue() == report.content


# ======================================================================
# Orchestrator: single day and feeder subset
# ======================================================================


class TestOtherShapes:
    async def test_single_day(self, db, grid):
        report = await ReportOrchestrator(db).single_day(D1)
        assert report.filename == "Energy_Monitoring_Report_2024-01-01.xlsx"
        assert report.title == "FEEDER PERFORMANCE TRACKER - 2024-01-01"
        assert report.failed_count == 0
        assert report.insufficient_count == 0
        assert _sheet(report)["I3"].value == "2024-01-01"

    async def test_single_day_accepts_string(self, db, grid):
        report = await ReportOrchestrator(db).single_day("2024-01-02")
        assert report.start == report.end == D2

    async def test_feeder_subset(self, db, grid):
        report = await ReportOrchestrator(db).feeder_subset([grid.garki.id, str(grid.opebi.id)], D1, D2)
        assert report.filename == "Feeder_Report_2024-01-01_to_2024-01-02.xlsx"
        assert report.feeder_count == 2
        assert _feeder_names(_sheet(report)) == ["Garki 11kV", "Opebi 11kV"]


# ======================================================================
# Failures
# ======================================================================


class TestFailures:
    async def test_unknown_feeders(self, db, grid):
        with pytest.raises(NoFeedersFound):
            await ReportOrchestrator(db).feeder_subset([uuid.uuid4()], D1, D2)

    async def test_empty_feeder_list(self, db, grid):
        with pytest.raises(NoFeedersFound):
            await ReportOrchestrator(db).feeder_subset([], D1, D2)

    async def test_region_without_feeders(self, db, grid):
        await FeederDirectory(db).create_region("Kano")
        await db.commit()
        with pytest.raises(NoFeedersFound):
            await ReportOrchestrator(db).date_range(D1, D2, region="Kano")

    async def test_unknown_region_aborts_before_readings(self, db, grid):
        cache = ReadingRangeCache()
        with pytest.raises(LookupNotFound, match="Region 'Atlantis' not found"):
            await ReportOrchestrator(db, cache=cache).date_range(D1, D2, region="Atlantis")
        assert len(cache) == 0

    async def test_invalid_range(self, db, grid):
        with pytest.raises(InvalidRange):
            await ReportOrchestrator(db).date_range(D2, D1, region="Atlantis")

    async def test_missing_template(self, db, grid, tmp_path):
        orchestrator = ReportOrchestrator(db, template_path=tmp_path / "missing.xlsx")
        with pytest.raises(TemplateMissing):
            await orchestrator.date_range(D1, D2)


# ======================================================================
# Cache and email text
# ======================================================================


class TestCacheAndText:
    async def test_repeat_window_served_from_cache(self, db, grid):
        cache = ReadingRangeCache()
        orchestrator = ReportOrchestrator(db, cache=cache)
        first = await orchestrator.date_range(D1, D2)
        second = await orchestrator.date_range(D1, D2, region="Abuja")
        assert len(cache) == 1
        assert (D1, D2) in cache
        assert second.feeder_count == 1
        assert first.feeder_count == 4

    async def test_email_text(self, db, grid):
        orchestrator = ReportOrchestrator(db)
        single = await orchestrator.single_day(D1)
        ranged = await orchestrator.date_range(D1, D2)
        assert email_subject(single) == "Energy Monitoring Report (2024-01-01)"
        assert email_subject(ranged) == "Energy Monitoring Report (2024-01-01 to 2024-01-02)"
        assert email_body(ranged) == "Please find attached the energy report for 2024-01-01 to 2024-01-02."
        assert email_body(single, "weekly") == "Please find attached the weekly report for 2024-01-01."

    async def test_report_title(self):
        assert report_title(D1, D1) == "FEEDER PERFORMANCE TRACKER - 2024-01-01"
        assert report_title(D1, D2) == "FEEDER PERFORMANCE TRACKER (2024-01-01 TO 2024-01-02)"
