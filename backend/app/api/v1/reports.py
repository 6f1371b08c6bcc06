"""Feeder performance report downloads and email delivery."""
import logging
import smtplib
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.rate_limit import email_limiter, report_limiter
from app.models.database import get_db
from app.schemas.report import EmailReportRequest, EmailReportResponse, FeederReportRequest
from app.services.email_service import EmailNotConfigured, send_report_email
from app.services.report_service import (
    RenderedReport,
    ReportOrchestrator,
    email_body,
    email_subject,
    get_reading_cache,
)
from engine.performance.errors import (
    InvalidRange,
    LookupNotFound,
    NoFeedersFound,
    ReportError,
    TemplateMissing,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(exc: ReportError) -> HTTPException:
    if isinstance(exc, InvalidRange):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (LookupNotFound, NoFeedersFound)):
        code = status.HTTP_404_NOT_FOUND
    else:
        if isinstance(exc, TemplateMissing):
            logger.error("Report template unavailable: %s", exc)
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def _download(report: RenderedReport) -> StreamingResponse:
    return StreamingResponse(
        iter([report.content]),
        media_type=report.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{report.filename}"',
            "Access-Control-Expose-Headers": "Content-Disposition",
        },
    )


def get_orchestrator(db: AsyncSession = Depends(get_db)) -> ReportOrchestrator:
    return ReportOrchestrator(db, cache=get_reading_cache())


@router.get(
    "/daily",
    summary="Download daily report",
    description="Feeder performance workbook for one day (today in UTC by default).",
)
async def download_daily_report(
    request: Request,
    day: date | None = Query(default=None, alias="date"),
    region: str | None = None,
    business_hub: str | None = None,
    include_analysis: bool = True,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    report_limiter.check(request)
    try:
        report = await orchestrator.single_day(
            day, region=region, business_hub=business_hub, include_analysis=include_analysis
        )
    except ReportError as exc:
        raise _http_error(exc) from exc
    return _download(report)


@router.get(
    "/range",
    summary="Download date range report",
    description="Feeder performance workbook over an inclusive date range.",
)
async def download_range_report(
    request: Request,
    start_date: date,
    end_date: date,
    region: str | None = None,
    business_hub: str | None = None,
    include_analysis: bool = True,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    report_limiter.check(request)
    try:
        report = await orchestrator.date_range(
            start_date,
            end_date,
            region=region,
            business_hub=business_hub,
            include_analysis=include_analysis,
        )
    except ReportError as exc:
        raise _http_error(exc) from exc
    return _download(report)


@router.post(
    "/feeders",
    summary="Download report for selected feeders",
    description="Feeder performance workbook restricted to an explicit list of feeder ids.",
)
async def download_feeder_report(
    body: FeederReportRequest,
    request: Request,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    report_limiter.check(request)
    try:
        report = await orchestrator.feeder_subset(
            body.feeder_ids,
            body.start_date,
            body.end_date,
            include_analysis=body.include_analysis,
        )
    except ReportError as exc:
        raise _http_error(exc) from exc
    return _download(report)


@router.post(
    "/email",
    response_model=EmailReportResponse,
    summary="Email a report",
    description="Render a single-day or date range report and send it as an attachment.",
)
async def email_report(
    body: EmailReportRequest,
    request: Request,
    orchestrator: ReportOrchestrator = Depends(get_orchestrator),
):
    email_limiter.check(request)
    start, end = body.window()
    try:
        report = await orchestrator.date_range(
            start,
            end,
            region=body.region,
            business_hub=body.business_hub,
            include_analysis=body.include_analysis,
        )
    except ReportError as exc:
        raise _http_error(exc) from exc

    try:
        sent_to = await run_in_threadpool(
            send_report_email,
            [str(r) for r in body.recipients],
            email_subject(report),
            email_body(report, body.report_type),
            report.content,
            report.filename,
        )
    except EmailNotConfigured as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Failed to send report email")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to send report email: {exc}",
        ) from exc

    return EmailReportResponse(
        message="Report sent successfully",
        filename=report.filename,
        recipients=sent_to,
        feeder_count=report.feeder_count,
        failed_count=report.failed_count,
        insufficient_count=report.insufficient_count,
    )
