"""Study material generation endpoints."""
import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from examiq.api.deps import get_pipeline, get_registry, verify_internal_token
from examiq.errors import InvalidRequest
from examiq.models.generation import Difficulty, GenerationKind, GenerationRequest, UploadedDocument
from examiq.models.materials import ProgressResponse
from examiq.services.document_processor.extractors import infer_format
from examiq.services.pipeline import GenerationPipeline
from examiq.services.progress import ProgressRegistry

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(verify_internal_token)])

STATUS_CODES = {"succeeded": 200, "partial": 207, "failed": 502}


def _requested_kinds(notes: bool, mcq: bool, descriptive_marks: List[int]) -> List[GenerationKind]:
    kinds = []
    if notes:
        kinds.append(GenerationKind.notes())
    if mcq:
        kinds.append(GenerationKind.mcq())
    for marks in descriptive_marks:
        kinds.append(GenerationKind.descriptive(marks))
    return kinds


@router.post("/generate")
async def generate_materials(
    subject: str = Form(...),
    manual_text: str = Form(""),
    difficulty: Difficulty = Form(Difficulty.MEDIUM),
    notes: bool = Form(False),
    mcq: bool = Form(False),
    descriptive_marks: Optional[List[int]] = Form(None),
    request_id: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    pipeline: GenerationPipeline = Depends(get_pipeline),
    registry: ProgressRegistry = Depends(get_registry),
):
    """
    Generate notes, an MCQ bank and descriptive banks for one subject.

    Responds 200 when every requested output was stored, 207 when only some
    were, and 502 when none were.
    """
    try:
        kinds = _requested_kinds(notes, mcq, descriptive_marks or [])
        documents = []
        for upload in files or []:
            documents.append(
                UploadedDocument(
                    name=upload.filename or "upload",
                    format=infer_format(upload.filename or "", upload.content_type),
                    data=await upload.read(),
                )
            )
        request = GenerationRequest(
            subject_name=subject,
            manual_text=manual_text,
            uploaded_documents=documents,
            difficulty=difficulty,
            requested_outputs=kinds,
        )
    except ValueError as e:
        logger.error(f"Rejected generation request for '{subject}': {e}")
        raise HTTPException(status_code=422, detail=str(e))

    request_id = request_id or str(uuid.uuid4())
    tracker = registry.open(request_id)

    try:
        outcome = await pipeline.submit(request, tracker=tracker, request_id=request_id)
    except InvalidRequest as e:
        logger.error(f"Invalid generation request {request_id}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return JSONResponse(
        status_code=STATUS_CODES[outcome.status],
        content=outcome.model_dump(mode="json"),
    )


@router.get("/generate/{request_id}/progress", response_model=ProgressResponse)
async def generation_progress(
    request_id: str,
    registry: ProgressRegistry = Depends(get_registry),
):
    """Poll the progress of a generation request."""
    tracker = registry.get(request_id)
    if tracker is None:
        raise HTTPException(status_code=404, detail="Unknown request id")
    return ProgressResponse(request_id=request_id, progress=tracker.current())
