"""Entry point. Wires the ledger, cache and use cases into routes.

Read model:
  - LEADERBOARD_MODE=cached    -> local JSON cache, rebuilt from the ledger at startup.
  - LEADERBOARD_MODE=stateless -> every read scans the ledger; the cache is unused.
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)
load_dotenv(os.path.join(PROJECT_DIR, ".env"))

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from typeboard.api.routes.admin_routes import router as admin_router, init_admin_routes
from typeboard.api.routes.score_routes import (
    ScoresPreflightMiddleware,
    init_routes,
    router as score_router,
)
from typeboard.application.submit_score import SubmissionCoordinator
from typeboard.application.sync_service import SyncService
from typeboard.config import LeaderboardMode, Settings, load_settings
from typeboard.domain.errors import LedgerUnavailable, ValidationError
from typeboard.infrastructure.auth.dependencies import configure_admin_token
from typeboard.infrastructure.ledger.client import HttpLedgerClient
from typeboard.infrastructure.ledger.reader import LedgerReader
from typeboard.infrastructure.repositories.leaderboard_repository import LeaderboardRepository

STATIC_DIR = os.path.join(PROJECT_DIR, "static")

log = logging.getLogger("typeboard.startup")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _resolve_data_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_DIR, path)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation_error(request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid payload") if errors else "Invalid payload"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(LedgerUnavailable)
    async def _ledger_unavailable(request, exc: LedgerUnavailable):
        # rank withheld; the client shows "rank unavailable"
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request, exc: Exception):
        logging.getLogger("typeboard.api").exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        return JSONResponse(status_code=500, content={"error": "Server error"})


def create_app(settings: Settings | None = None, ledger=None) -> FastAPI:
    """
    Build the application. ``settings`` defaults to the environment (fails fast
    when required variables are missing); ``ledger`` defaults to an
    HttpLedgerClient whose connection pool lives as long as the app.
    """
    settings = settings or load_settings()

    http = None
    if ledger is None:
        http = httpx.AsyncClient(timeout=httpx.Timeout(settings.ledger_timeout))
        ledger = HttpLedgerClient(
            http,
            mirror_url=settings.mirror_url,
            gateway_url=settings.gateway_url,
            topic_id=settings.topic_id,
            operator_id=settings.operator_id,
            operator_key=settings.operator_key,
            page_size=settings.page_size,
            read_retries=settings.read_retries,
        )

    repository = LeaderboardRepository(data_path=_resolve_data_path(settings.scores_file))
    # a page read may be retried; bound the whole attempt sequence
    page_timeout = settings.ledger_timeout * (settings.read_retries + 1)
    reader = LedgerReader(ledger, fetch_cap=settings.fetch_cap, page_timeout=page_timeout)
    sync_service = SyncService(reader, repository)
    coordinator = SubmissionCoordinator(
        ledger,
        reader,
        repository,
        limits=settings.limits,
        mode=settings.mode,
        confirm_timeout=settings.confirm_timeout,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Starting leaderboard: %s", settings.describe())
        if settings.mode is LeaderboardMode.CACHED:
            await sync_service.rebuild_on_startup()
        try:
            yield
        finally:
            if http is not None:
                await http.aclose()

    app = FastAPI(
        title="Typeboard",
        description="Typing-speed leaderboard backed by an append-only ledger.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    # outermost, so preflights for the score endpoint never reach CORSMiddleware
    app.add_middleware(ScoresPreflightMiddleware, allowed_origins=settings.allowed_origins)
    _install_error_handlers(app)

    if os.path.exists(STATIC_DIR):
        app.mount("/game", StaticFiles(directory=STATIC_DIR, html=True), name="game")

    init_routes(coordinator, repository, reader, response_limit=settings.response_limit)
    init_admin_routes(sync_service, repository, mode=settings.mode)
    configure_admin_token(settings.admin_token)

    app.include_router(score_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        result = {
            "status": "online",
            "mode": settings.mode.value,
            "topic_id": settings.topic_id,
        }
        if settings.mode is LeaderboardMode.CACHED:
            result["cached_entries"] = len(await asyncio.to_thread(repository.load))
        return result

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "typeboard.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
    )


if __name__ == "__main__":
    main()
