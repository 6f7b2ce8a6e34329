"""
Generation task scheduler.
Dispatches one backend call per requested kind, validates, persists and
reports each task independently.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from examiq.errors import BackendError, GenerationError, InvalidRequest
from examiq.models.generation import (
    Difficulty,
    GeneratedMaterial,
    GenerationKind,
    GenerationMode,
    TaskOutcome,
    TaskState,
)
from examiq.services.content_generator.prompts import GenerationPrompt, build
from examiq.services.llm.base import LLMProvider
from examiq.services.progress import MAX_PROGRESS, ProgressTracker
from examiq.services.storage import MaterialStore

logger = logging.getLogger(__name__)

PERSISTENCE_ERROR = "persistence_error"


def compute_weights(kinds: List[GenerationKind]) -> Dict[GenerationKind, float]:
    """
    Split 100 progress points across the requested kinds.

    Notes and the MCQ bank are one unit each; all descriptive banks together
    share a single unit.
    """
    descriptive = [k for k in kinds if k.mode == GenerationMode.DESCRIPTIVE]
    units = sum(1 for k in kinds if k.mode != GenerationMode.DESCRIPTIVE)
    if descriptive:
        units += 1
    if units == 0:
        return {}

    unit_weight = MAX_PROGRESS / units
    weights = {}
    for kind in kinds:
        if kind.mode == GenerationMode.DESCRIPTIVE:
            weights[kind] = unit_weight / len(descriptive)
        else:
            weights[kind] = unit_weight
    return weights


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, BackendError) and error.transient


@dataclass
class GenerationTask:
    task_id: str
    kind: GenerationKind
    prompt: GenerationPrompt
    weight: float
    state: TaskState = TaskState.PENDING
    attempts: int = 0


class GenerationScheduler:
    """Runs all generation tasks of one request concurrently."""

    def __init__(
        self,
        provider: LLMProvider,
        store: MaterialStore,
        timeout: Optional[float] = None,
        max_retries: int = 0,
        backoff: float = 0.0,
    ):
        self.provider = provider
        self.store = store
        self.timeout = timeout if timeout and timeout > 0 else None
        self.max_retries = max(0, max_retries)
        self.backoff = max(0.0, backoff)

    async def run(
        self,
        subject: str,
        aggregated_input: str,
        difficulty: Difficulty,
        kinds: List[GenerationKind],
        tracker: ProgressTracker,
    ) -> List[TaskOutcome]:
        """
        Generate, validate and persist every requested kind.

        Args:
            subject: Subject name used for material titles
            aggregated_input: Merged course material
            difficulty: Requested difficulty
            kinds: Distinct output kinds to generate
            tracker: Request-scoped progress tracker

        Returns:
            One TaskOutcome per kind, in request order
        """
        if not kinds:
            raise InvalidRequest("At least one output kind must be requested")
        if not aggregated_input.strip():
            raise InvalidRequest("No input content to generate from")

        weights = compute_weights(kinds)
        tasks = [
            GenerationTask(
                task_id=kind.label,
                kind=kind,
                prompt=build(kind, aggregated_input, difficulty),
                weight=weights[kind],
            )
            for kind in kinds
        ]

        logger.info(f"Dispatching {len(tasks)} generation tasks for '{subject}'")
        return list(await asyncio.gather(*(self._run_task(subject, task, tracker) for task in tasks)))

    async def _run_task(self, subject: str, task: GenerationTask, tracker: ProgressTracker) -> TaskOutcome:
        task.state = TaskState.IN_FLIGHT
        logger.info(f"Starting generation task {task.task_id} for '{subject}'")

        try:
            text = await self._complete_with_retry(task)
            parsed = task.prompt.contract.parse(text)
        except GenerationError as e:
            task.state = TaskState.FAILED
            logger.error(f"Generation task {task.task_id} failed ({e.error_code}): {e.message}")
            return self._outcome(task, error=e.error_code, message=e.message)
        except Exception as e:
            task.state = TaskState.FAILED
            logger.error(f"Generation task {task.task_id} failed unexpectedly ({type(e).__name__}): {e}")
            return self._outcome(
                task, error=BackendError.error_code, message=f"{type(e).__name__}: {e}"
            )

        material = GeneratedMaterial(
            title=task.kind.title_for(subject),
            subject=subject,
            content=task.prompt.contract.serialize(parsed),
            type=task.kind.material_type,
        )

        try:
            material_id = await self.store.create_material(
                material.title, material.subject, material.content, material.type
            )
        except Exception as e:
            task.state = TaskState.FAILED
            logger.error(f"Failed to persist material for task {task.task_id}: {e}")
            return self._outcome(task, error=PERSISTENCE_ERROR, message=str(e))

        task.state = TaskState.SUCCEEDED
        tracker.advance(task.task_id, task.weight)
        logger.info(f"Generation task {task.task_id} succeeded, stored material {material_id}")
        return self._outcome(task, material_id=material_id, title=material.title)

    async def _complete_with_retry(self, task: GenerationTask) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=self.backoff * 8),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                task.attempts = attempt.retry_state.attempt_number
                return await self._complete_once(task.prompt)
        raise BackendError("Generation retries exhausted", transient=True)

    async def _complete_once(self, prompt: GenerationPrompt) -> str:
        call = self.provider.complete(prompt.prompt, prompt.system_instruction, prompt.contract)
        if self.timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise BackendError(f"Backend call timed out after {self.timeout}s", transient=True) from e

    @staticmethod
    def _outcome(
        task: GenerationTask,
        material_id: Optional[int] = None,
        title: Optional[str] = None,
        error: Optional[str] = None,
        message: Optional[str] = None,
    ) -> TaskOutcome:
        return TaskOutcome(
            kind=task.kind.label,
            state=task.state,
            weight=task.weight,
            material_id=material_id,
            material_type=task.kind.material_type,
            title=title,
            error=error,
            message=message,
            attempts=task.attempts,
        )
