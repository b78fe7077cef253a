from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes.assistant import router as assistant_router
from src.api.routes.live import router as live_router
from src.api.routes.meetings import router as meetings_router
from src.config import settings
from src.live.registry import SessionRegistry
from src.live.session import MeetingSession
from src.logging_setup import configure_logging
from src.pipeline_config import PipelineConfig
from src.storage.persistence import get_persistence

logger = logging.getLogger(__name__)


def create_session(meeting_id: str) -> MeetingSession:
    """Build a live session; persistence is attached only when Supabase is configured."""
    persistence = get_persistence() if settings.supabase_url else None
    return MeetingSession(meeting_id, persistence=persistence, config=PipelineConfig.from_settings())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.sessions = SessionRegistry(create_session)
    yield
    logger.info("Shutting down %d live meeting session(s)", len(app.state.sessions))
    await app.state.sessions.close_all()


configure_logging(settings.log_level)

app = FastAPI(
    title="Live Meeting Assistant API",
    description="Live diarized transcription with rolling summaries and transcript Q&A",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(meetings_router)
app.include_router(assistant_router)
app.include_router(live_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    run()
