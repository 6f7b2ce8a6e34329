"""Stored materials and practice score endpoints."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from examiq.api.deps import get_store, verify_internal_token
from examiq.models.materials import MaterialRecord, ScoreCreate, ScoreRecord
from examiq.services.storage import MaterialStore

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_internal_token)])


@router.get("/materials", response_model=List[MaterialRecord])
async def list_materials(
    subject: Optional[str] = None,
    store: MaterialStore = Depends(get_store),
):
    """List generated materials, newest first."""
    return await store.list_materials(subject)


@router.post("/scores", status_code=201)
async def create_score(payload: ScoreCreate, store: MaterialStore = Depends(get_store)):
    """Record a practice exam score."""
    try:
        await store.create_score(payload.subject, payload.score, payload.total)
    except ValueError as e:
        logger.error(f"Rejected score for '{payload.subject}': {e}")
        raise HTTPException(status_code=422, detail=str(e))
    return {"success": True}


@router.get("/analytics", response_model=List[ScoreRecord])
async def analytics(store: MaterialStore = Depends(get_store)):
    """Return every recorded score, oldest first."""
    return await store.list_scores()
