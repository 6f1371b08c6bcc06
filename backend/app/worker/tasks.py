import asyncio
import logging
from datetime import date

from app.config import settings
from app.models.database import dispose_engine, get_session_factory
from app.services.email_service import send_report_email
from app.services.report_service import (
    RenderedReport,
    ReportOrchestrator,
    email_body,
    email_subject,
)
from app.worker import celery_app
from engine.performance.date_range import to_utc_day

logger = logging.getLogger(__name__)


async def _render_daily_report(day: date | None) -> RenderedReport:
    try:
        async with get_session_factory()() as db:
            orchestrator = ReportOrchestrator(db)
            return await orchestrator.single_day(day)
    finally:
        # Each asyncio.run() gets a fresh loop; pooled connections cannot cross it
        await dispose_engine()


@celery_app.task(bind=True, name="send_daily_report")
def send_daily_report(self, day: str | None = None, recipients: list[str] | None = None) -> dict:
    """Render the all-feeders report for *day* (today by default) and email it."""
    to_addrs = recipients or settings.daily_report_recipient_list
    if not to_addrs:
        logger.warning("Daily report skipped: no recipients configured")
        return {"status": "skipped", "reason": "no recipients"}

    report = asyncio.run(_render_daily_report(to_utc_day(day) if day else None))
    sent_to = send_report_email(
        to_addrs,
        email_subject(report),
        email_body(report, "daily feeders"),
        report.content,
        report.filename,
    )
    logger.info("Daily report %s sent to %d recipients", report.filename, len(sent_to))
    return {
        "status": "sent",
        "filename": report.filename,
        "recipients": sent_to,
        "feeder_count": report.feeder_count,
        "failed_count": report.failed_count,
        "insufficient_count": report.insufficient_count,
    }
