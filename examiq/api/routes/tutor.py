"""AI tutor endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from examiq.api.deps import get_tutor, verify_internal_token
from examiq.errors import GenerationError, InvalidRequest
from examiq.models.materials import TestExplanationRequest, TutorChatRequest, TutorResponse
from examiq.services.tutor import TutorService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tutor", dependencies=[Depends(verify_internal_token)])


@router.post("/chat", response_model=TutorResponse)
async def chat(payload: TutorChatRequest, tutor: TutorService = Depends(get_tutor)):
    """Answer a student question."""
    try:
        return TutorResponse(content=await tutor.chat(payload.message))
    except InvalidRequest as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except GenerationError as e:
        logger.error(f"Tutor chat failed: {e.message}")
        raise HTTPException(status_code=502, detail=f"Tutor failed: {e.message}")


@router.post("/explain-test", response_model=TutorResponse)
async def explain_test(payload: TestExplanationRequest, tutor: TutorService = Depends(get_tutor)):
    """Explain a practice test result and suggest what to revise."""
    result = payload.result
    if payload.subject:
        result = f"Subject: {payload.subject}\n{result}"
    try:
        return TutorResponse(content=await tutor.explain_test(result))
    except InvalidRequest as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except GenerationError as e:
        logger.error(f"Test explanation failed: {e.message}")
        raise HTTPException(status_code=502, detail=f"Tutor failed: {e.message}")
