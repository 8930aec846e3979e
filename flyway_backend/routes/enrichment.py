from __future__ import annotations

from fastapi import APIRouter, HTTPException

from flyway_backend.workers.orchestrator import get_orchestrator

router = APIRouter(tags=["enrichment"])


@router.get("/extracted-data")
async def get_extracted_data() -> dict:
    result = get_orchestrator().cache.get()
    if result is None:
        raise HTTPException(status_code=404, detail="No data available")
    return result


@router.get("/invocations")
async def list_invocations() -> dict:
    """Recent worker runs, newest first."""
    invocations = get_orchestrator().invocations.list_invocations()
    return {"items": [invocation.as_dict() for invocation in invocations]}
