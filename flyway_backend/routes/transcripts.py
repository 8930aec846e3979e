from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from flyway_backend.application import get_transcript_service
from flyway_backend.core.validation import ValidationError, validate_transcript_body
from flyway_backend.infrastructure import StoreError
from flyway_backend.workers.orchestrator import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transcripts"])


@router.post("/transcripts", status_code=201)
async def create_transcript(request: Request, background_tasks: BackgroundTasks) -> dict:
    """Persist a transcript and start enrichment once the response is sent."""
    try:
        text = validate_transcript_body(await request.body())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    service = get_transcript_service()
    try:
        transcript = await service.submit(text)
    except StoreError as exc:
        logger.error("Save failed: %s", exc)
        raise HTTPException(status_code=400, detail=f"Error: {exc}") from exc

    background_tasks.add_task(get_orchestrator().on_transcript_persisted)
    return {"message": "Transcript saved", "timestamp": transcript.created_at.isoformat()}
