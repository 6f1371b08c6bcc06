from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI
from sqlalchemy import text
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1 import reports
from app.core.logging import RequestLoggingMiddleware, setup_logging
from app.models.database import dispose_engine, get_session_factory


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    setup_logging(json_format=settings.json_logs)

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    application.include_router(reports.router, prefix="/api/v1/reports", tags=["reports"])

    @application.get("/health")
    async def health_check() -> dict:
        result: dict = {"status": "ok", "services": {}}

        # Check database
        try:
            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
            result["services"]["database"] = "ok"
        except Exception as e:
            result["services"]["database"] = f"error: {e}"
            result["status"] = "degraded"

        # Check Redis
        try:
            import redis

            r = redis.from_url(settings.redis_url)
            r.ping()
            result["services"]["redis"] = "ok"
        except Exception as e:
            result["services"]["redis"] = f"error: {e}"
            result["status"] = "degraded"

        return result

    return application


app = create_app()
