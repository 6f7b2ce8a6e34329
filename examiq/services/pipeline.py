"""
Generation pipeline entry point.
Turns one GenerationRequest into persisted materials and a per-kind outcome.
"""

import logging
import uuid
from typing import Optional

from examiq.config import settings
from examiq.errors import InvalidRequest
from examiq.models.generation import GenerationRequest, RequestOutcome
from examiq.services.content_aggregator import aggregate
from examiq.services.document_processor.extractors import extract_documents
from examiq.services.generation_scheduler import GenerationScheduler
from examiq.services.llm.base import LLMProvider
from examiq.services.progress import ProgressTracker
from examiq.services.storage import MaterialStore

logger = logging.getLogger(__name__)


class GenerationPipeline:
    """Validates, extracts, aggregates and schedules one generation request."""

    def __init__(
        self,
        provider: LLMProvider,
        store: MaterialStore,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.scheduler = GenerationScheduler(
            provider,
            store,
            timeout=settings.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout,
            max_retries=settings.GENERATION_MAX_RETRIES if max_retries is None else max_retries,
            backoff=settings.GENERATION_RETRY_BACKOFF_SECONDS if backoff is None else backoff,
        )

    async def submit(
        self,
        request: GenerationRequest,
        tracker: Optional[ProgressTracker] = None,
        request_id: Optional[str] = None,
    ) -> RequestOutcome:
        """
        Run a generation request to completion.

        Args:
            request: Subject, input material, difficulty and requested kinds
            tracker: Progress tracker to report into (a private one if omitted)
            request_id: Identifier echoed in the outcome (generated if omitted)

        Returns:
            RequestOutcome with one entry per requested kind

        Raises:
            InvalidRequest: Blank subject, no requested outputs, or no usable input
        """
        subject = request.subject_name.strip()
        if not subject:
            raise InvalidRequest("Subject name is required")
        if not request.requested_outputs:
            raise InvalidRequest("At least one output kind must be requested")

        request_id = request_id or str(uuid.uuid4())
        tracker = tracker or ProgressTracker()

        batch = await extract_documents(request.uploaded_documents)
        aggregated = aggregate(request.manual_text, batch.texts)
        if not aggregated:
            if batch.failures:
                names = ", ".join(f.source_name for f in batch.failures)
                raise InvalidRequest(
                    f"No input content to generate from; unreadable documents: {names}",
                    details={"document_failures": [f.model_dump() for f in batch.failures]},
                )
            raise InvalidRequest("No input content to generate from")

        logger.info(
            f"Request {request_id}: generating {[k.label for k in request.requested_outputs]} "
            f"for '{subject}' from {len(aggregated)} chars"
        )

        tracker.reset()
        outcomes = await self.scheduler.run(
            subject,
            aggregated,
            request.difficulty,
            request.requested_outputs,
            tracker,
        )

        outcome = RequestOutcome(
            request_id=request_id,
            subject=subject,
            outcomes=outcomes,
            document_failures=batch.failures,
            progress=tracker.current(),
        )
        logger.info(f"Request {request_id} finished with status {outcome.status}")
        return outcome
