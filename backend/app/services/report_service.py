"""End-to-end feeder performance report generation.

Each call runs one sequential pipeline on the caller's session:

    expand window -> resolve filters -> load feeders -> fetch readings
    -> build matrix -> classify -> route -> render workbook

Filter errors surface before any reading is fetched.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import BinaryIO

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.services.feeder_directory import FeederDirectory
from app.services.reading_store import ReadingRangeCache, ReadingStore
from engine.performance.categories import route_feeder
from engine.performance.compliance import DEFAULT_THRESHOLDS, ComplianceThresholds, classify_feeder
from engine.performance.date_range import expand_date_range, format_day, resolve_report_window
from engine.performance.errors import NoFeedersFound
from engine.performance.matrix import FeederProfile, build_matrix
from engine.reporting.workbook import XLSX_MEDIA_TYPE, generate_workbook_report, save_workbook

logger = logging.getLogger(__name__)

DayLike = date | datetime | str

TITLE_PREFIX = "FEEDER PERFORMANCE TRACKER"


@dataclass(frozen=True)
class RenderedReport:
    """Serialized workbook plus what the caller needs to deliver it."""
    content: bytes
    filename: str
    title: str
    start: date
    end: date
    feeder_count: int
    failed_count: int
    insufficient_count: int
    media_type: str = XLSX_MEDIA_TYPE

    @property
    def single_day(self) -> bool:
        return self.start == self.end

    @property
    def period_label(self) -> str:
        if self.single_day:
            return format_day(self.start)
        return f"{format_day(self.start)} to {format_day(self.end)}"

    def write_to(self, stream: BinaryIO) -> int:
        return stream.write(self.content)


def report_title(start: date, end: date) -> str:
    if start == end:
        return f"{TITLE_PREFIX} - {format_day(start)}"
    return f"{TITLE_PREFIX} ({format_day(start)} TO {format_day(end)})"


def email_subject(report: RenderedReport) -> str:
    return f"Energy Monitoring Report ({report.period_label})"


def email_body(report: RenderedReport, report_type: str | None = None) -> str:
    return f"Please find attached the {report_type or 'energy'} report for {report.period_label}."


# ── process-wide reading cache ──

_reading_cache: ReadingRangeCache | None = None


def get_reading_cache() -> ReadingRangeCache:
    global _reading_cache
    if _reading_cache is None:
        _reading_cache = ReadingRangeCache(
            ttl_seconds=settings.reading_cache_ttl_seconds,
            capacity=settings.reading_cache_capacity,
        )
    return _reading_cache


class ReportOrchestrator:
    """Generate report workbooks for the three selection shapes."""

    def __init__(
        self,
        db: AsyncSession,
        cache: ReadingRangeCache | None = None,
        template_path: str | Path | None = None,
        thresholds: ComplianceThresholds = DEFAULT_THRESHOLDS,
    ):
        self.directory = FeederDirectory(db)
        self.readings = ReadingStore(db, cache=cache)
        self.template_path = template_path if template_path is not None else settings.report_template_path
        self.thresholds = thresholds

    async def single_day(
        self,
        day: DayLike | None = None,
        region: str | None = None,
        business_hub: str | None = None,
        include_analysis: bool = True,
    ) -> RenderedReport:
        """Report for one day (today in UTC when *day* is omitted)."""
        start, end = resolve_report_window(specific_date=day)
        days = expand_date_range(start, end)
        feeders = await self.directory.resolve_feeders(region=region, business_hub=business_hub)
        return await self._render(
            feeders, days, f"Energy_Monitoring_Report_{format_day(start)}.xlsx", include_analysis
        )

    async def date_range(
        self,
        start: DayLike,
        end: DayLike,
        region: str | None = None,
        business_hub: str | None = None,
        include_analysis: bool = True,
    ) -> RenderedReport:
        days = expand_date_range(start, end)
        feeders = await self.directory.resolve_feeders(region=region, business_hub=business_hub)
        filename = f"Energy_Report_{format_day(days[0])}_to_{format_day(days[-1])}.xlsx"
        return await self._render(feeders, days, filename, include_analysis)

    async def feeder_subset(
        self,
        feeder_ids: Sequence[uuid.UUID | str],
        start: DayLike,
        end: DayLike,
        include_analysis: bool = True,
    ) -> RenderedReport:
        """Report for an explicit list of feeders; unknown ids are ignored."""
        days = expand_date_range(start, end)
        ids = [fid if isinstance(fid, uuid.UUID) else uuid.UUID(str(fid)) for fid in feeder_ids]
        if not ids:
            raise NoFeedersFound("No feeder ids given")
        feeders = await self.directory.resolve_feeders(feeder_ids=ids)
        filename = f"Feeder_Report_{format_day(days[0])}_to_{format_day(days[-1])}.xlsx"
        return await self._render(feeders, days, filename, include_analysis)

    async def _render(
        self,
        feeders: Sequence[FeederProfile],
        days: tuple[date, ...],
        filename: str,
        include_analysis: bool,
    ) -> RenderedReport:
        start, end = days[0], days[-1]
        readings = await self.readings.fetch_range(start, end)
        rows = build_matrix(feeders, days, readings)

        results = [classify_feeder(row, self.thresholds) for row in rows]
        assignments = [route_feeder(row, result) for row, result in zip(rows, results)]

        title = report_title(start, end)
        wb = generate_workbook_report(
            title=title,
            days=days,
            rows=rows,
            assignments=assignments,
            include_analysis=include_analysis,
            template_path=self.template_path,
        )

        report = RenderedReport(
            content=save_workbook(wb),
            filename=filename,
            title=title,
            start=start,
            end=end,
            feeder_count=len(rows),
            failed_count=sum(1 for r in results if r.failed_checks),
            insufficient_count=sum(1 for r in results if not r.sufficient),
        )
        logger.info(
            "Generated %s: %d feeders, %d failing, %d insufficient",
            filename, report.feeder_count, report.failed_count, report.insufficient_count,
        )
        return report
