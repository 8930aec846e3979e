import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flyway_backend.application import TranscriptService, configure_transcript_service
from flyway_backend.core.config import Settings, load_settings
from flyway_backend.core.state import LatestResultCache
from flyway_backend.infrastructure import JsonlTranscriptRepository
from flyway_backend.routes import enrichment, transcripts
from flyway_backend.workers.orchestrator import EnrichmentOrchestrator, configure_orchestrator

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(getattr(handler, "_flyway", False) for handler in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        handler._flyway = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    if settings.transcripts_path is not None:
        configure_transcript_service(TranscriptService(JsonlTranscriptRepository(settings.transcripts_path)))
        logger.info("Storing transcripts in %s", settings.transcripts_path)

    orchestrator = EnrichmentOrchestrator.from_settings(settings)
    configure_orchestrator(orchestrator)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("Enrichment worker command: %s", " ".join(settings.worker_command))
        yield
        await orchestrator.shutdown()
        LatestResultCache.instance().clear()

    app = FastAPI(title="Flyway Transcript API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(transcripts.router)
    app.include_router(enrichment.router)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Flyway Transcript API",
                "docs": "/docs",
                "health": "/invocations",
            }
        )

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
