from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yomikata.analyzer.adapter import Analyzer
from yomikata.api.router import api_router
from yomikata.core.config import Settings, load_settings
from yomikata.core.logging import configure_logging
from yomikata.services.frequency import KanjiFrequencyTable

configure_logging()
logger = logging.getLogger(__name__)


def _default_analyzer_factory(settings: Settings) -> Analyzer:
    from yomikata.analyzer.ichiran import load_ichiran_analyzer

    return load_ichiran_analyzer(settings)


def create_app(
    settings: Settings | None = None,
    analyzer_factory: Callable[[Settings], Analyzer] = _default_analyzer_factory,
) -> FastAPI:
    app_settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(app_settings.log_level)

        analyzer: Analyzer | None = None
        try:
            analyzer = analyzer_factory(app_settings)
            if app_settings.analyzer_autostart:
                analyzer.ensure_ready()
            app.state.analyzer_ready = bool(analyzer.ready)
            app.state.analyzer_error = None
        except Exception as exc:
            app.state.analyzer_ready = False
            app.state.analyzer_error = str(exc)
            logger.exception(
                "backend_analyzer_startup_failed",
                extra={
                    "container": app_settings.container_name,
                    "docker_socket": str(app_settings.docker_socket),
                },
            )
        # An analyzer that failed to come up is kept: the next request retries readiness.
        app.state.analyzer = analyzer

        try:
            app.state.frequency_table = KanjiFrequencyTable.from_path(app_settings.frequency_table_path)
            app.state.frequency_table_ready = True
            app.state.frequency_table_error = None
        except (OSError, UnicodeDecodeError) as exc:
            app.state.frequency_table = None
            app.state.frequency_table_ready = False
            app.state.frequency_table_error = str(exc)
            logger.exception(
                "backend_frequency_table_startup_failed",
                extra={"frequency_table_path": str(app_settings.frequency_table_path)},
            )

        startup_status = (
            "ok" if app.state.analyzer_ready and app.state.frequency_table_ready else "degraded"
        )
        logger.info(
            "backend_startup",
            extra={
                "status": startup_status,
                "environment": app_settings.environment,
                "host": app_settings.host,
                "port": app_settings.port,
                "analyzer": analyzer.metadata() if analyzer else None,
                "analyzer_autostart": app_settings.analyzer_autostart,
                "analyzer_error": app.state.analyzer_error,
                "frequency_table_size": len(app.state.frequency_table) if app.state.frequency_table else 0,
                "frequency_table_error": app.state.frequency_table_error,
            },
        )
        yield

        if analyzer is not None:
            analyzer.close()
        logger.info("backend_shutdown")

    app = FastAPI(title="Yomikata Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.analyzer = None
    app.state.analyzer_ready = False
    app.state.analyzer_error = None
    app.state.frequency_table = None
    app.state.frequency_table_ready = False
    app.state.frequency_table_error = None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(app_settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
