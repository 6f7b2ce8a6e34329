"""Tests for the generation scheduler and pipeline."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from examiq.errors import BackendError, InvalidRequest
from examiq.models.generation import (
    Difficulty,
    DocumentFormat,
    GenerationKind,
    GenerationRequest,
    MaterialType,
    TaskState,
    UploadedDocument,
)
from examiq.services.content_generator.schemas import key_point_band
from examiq.services.generation_scheduler import GenerationScheduler, compute_weights
from examiq.services.pipeline import GenerationPipeline
from examiq.services.progress import ProgressTracker


def scripted_provider(responses):
    """Provider whose complete() answers per contract name; exceptions are raised."""
    provider = MagicMock()

    async def complete(prompt, system_instruction, contract):
        response = responses[contract.name]
        if isinstance(response, list):
            response = response.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    provider.complete = AsyncMock(side_effect=complete)
    return provider


class TestComputeWeights:
    def test_notes_and_mcq(self):
        weights = compute_weights([GenerationKind.notes(), GenerationKind.mcq()])
        assert list(weights.values()) == [50, 50]

    def test_descriptive_banks_share_one_unit(self):
        kinds = [
            GenerationKind.notes(),
            GenerationKind.mcq(),
            GenerationKind.descriptive(3),
            GenerationKind.descriptive(5),
        ]
        weights = compute_weights(kinds)
        assert weights[GenerationKind.notes()] == pytest.approx(100 / 3)
        assert weights[GenerationKind.descriptive(3)] == pytest.approx(100 / 6)
        assert sum(weights.values()) == pytest.approx(100)

    def test_descriptive_only(self):
        weights = compute_weights([GenerationKind.descriptive(2), GenerationKind.descriptive(8)])
        assert list(weights.values()) == [50, 50]


class TestGenerationScheduler:
    """Per-task isolation, persistence and progress."""

    @pytest.mark.asyncio
    async def test_notes_and_mcq_persisted(self, mock_provider, memory_store, sample_text):
        tracker = ProgressTracker()
        scheduler = GenerationScheduler(mock_provider, memory_store)

        outcomes = await scheduler.run(
            "Machine Learning",
            sample_text,
            Difficulty.MEDIUM,
            [GenerationKind.notes(), GenerationKind.mcq()],
            tracker,
        )

        assert [o.state for o in outcomes] == [TaskState.SUCCEEDED, TaskState.SUCCEEDED]
        materials = await memory_store.list_materials()
        assert sorted(m.type for m in materials) == [MaterialType.MCQ, MaterialType.NOTES]
        assert {m.title for m in materials} == {
            "Machine Learning: Comprehensive Notes",
            "Machine Learning: Practice Quiz",
        }
        assert tracker.current() == 100

    @pytest.mark.asyncio
    async def test_descriptive_banks_within_band(self, mock_provider, memory_store, sample_text):
        kinds = [GenerationKind.descriptive(3), GenerationKind.descriptive(5)]
        scheduler = GenerationScheduler(mock_provider, memory_store)

        await scheduler.run("History", sample_text, Difficulty.HARD, kinds, ProgressTracker())

        materials = await memory_store.list_materials()
        assert len(materials) == 2
        for material in materials:
            assert material.type == MaterialType.FIVE_MARK
            for item in json.loads(material.content):
                low, high = key_point_band(item["marks"])
                assert low <= len(item["key_points"]) <= high

    @pytest.mark.asyncio
    async def test_schema_violation_isolated(self, memory_store, sample_text, sample_mcq_items, descriptive_payload):
        bad_mcq = [dict(sample_mcq_items[0], correct_answer="Z")]
        provider = scripted_provider(
            {
                "notes": "## Notes",
                "mcq": json.dumps(bad_mcq),
                "descriptive_5": descriptive_payload(5, 4),
            }
        )
        tracker = ProgressTracker()
        scheduler = GenerationScheduler(provider, memory_store)

        outcomes = await scheduler.run(
            "Chemistry",
            sample_text,
            Difficulty.MEDIUM,
            [GenerationKind.notes(), GenerationKind.mcq(), GenerationKind.descriptive(5)],
            tracker,
        )

        by_kind = {o.kind: o for o in outcomes}
        assert by_kind["mcq"].state == TaskState.FAILED
        assert by_kind["mcq"].error == "schema_violation"
        assert by_kind["notes"].state == TaskState.SUCCEEDED
        assert by_kind["descriptive_5"].state == TaskState.SUCCEEDED
        assert len(await memory_store.list_materials()) == 2
        assert tracker.current() == pytest.approx(200 / 3, abs=0.01)

    @pytest.mark.asyncio
    async def test_transient_backend_error_retried(self, memory_store, sample_text):
        provider = scripted_provider(
            {"notes": [BackendError("rate limited", transient=True), "## Notes"]}
        )
        scheduler = GenerationScheduler(provider, memory_store, max_retries=2, backoff=0)

        outcomes = await scheduler.run(
            "Physics", sample_text, Difficulty.MEDIUM, [GenerationKind.notes()], ProgressTracker()
        )

        assert outcomes[0].state == TaskState.SUCCEEDED
        assert outcomes[0].attempts == 2
        assert provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_backend_error_not_retried(self, memory_store, sample_text):
        provider = scripted_provider({"notes": BackendError("invalid api key")})
        scheduler = GenerationScheduler(provider, memory_store, max_retries=2, backoff=0)

        outcomes = await scheduler.run(
            "Physics", sample_text, Difficulty.MEDIUM, [GenerationKind.notes()], ProgressTracker()
        )

        assert outcomes[0].state == TaskState.FAILED
        assert outcomes[0].error == "backend_error"
        assert provider.complete.await_count == 1
        assert await memory_store.list_materials() == []

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, memory_store, sample_text):
        provider = scripted_provider({"mcq": BackendError("overloaded", transient=True)})
        scheduler = GenerationScheduler(provider, memory_store, max_retries=1, backoff=0)

        outcomes = await scheduler.run(
            "Physics", sample_text, Difficulty.MEDIUM, [GenerationKind.mcq()], ProgressTracker()
        )

        assert outcomes[0].error == "backend_error"
        assert outcomes[0].attempts == 2

    @pytest.mark.asyncio
    async def test_timeout_is_backend_error(self, memory_store, sample_text):
        async def slow_complete(prompt, system_instruction, contract):
            await asyncio.sleep(1)
            return "## Notes"

        provider = MagicMock()
        provider.complete = AsyncMock(side_effect=slow_complete)
        scheduler = GenerationScheduler(provider, memory_store, timeout=0.01)

        outcomes = await scheduler.run(
            "Physics", sample_text, Difficulty.MEDIUM, [GenerationKind.notes()], ProgressTracker()
        )

        assert outcomes[0].state == TaskState.FAILED
        assert outcomes[0].error == "backend_error"
        assert "timed out" in outcomes[0].message

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_isolated(self, memory_store, sample_text):
        """A raw network error in one task fails that task only."""
        provider = scripted_provider({"notes": "## Notes", "mcq": ConnectionResetError("peer reset")})
        tracker = ProgressTracker()
        scheduler = GenerationScheduler(provider, memory_store, max_retries=2, backoff=0)

        outcomes = await scheduler.run(
            "Biology",
            sample_text,
            Difficulty.MEDIUM,
            [GenerationKind.notes(), GenerationKind.mcq()],
            tracker,
        )

        by_kind = {o.kind: o for o in outcomes}
        assert by_kind["notes"].state == TaskState.SUCCEEDED
        assert by_kind["mcq"].state == TaskState.FAILED
        assert by_kind["mcq"].error == "backend_error"
        assert "ConnectionResetError" in by_kind["mcq"].message
        assert [m.title for m in await memory_store.list_materials()] == ["Biology: Comprehensive Notes"]
        assert tracker.current() == 50

    @pytest.mark.asyncio
    async def test_persistence_failure_isolated(self, mock_provider, sample_text):
        store = MagicMock()
        store.create_material = AsyncMock(side_effect=[RuntimeError("disk full"), 7])
        tracker = ProgressTracker()
        scheduler = GenerationScheduler(mock_provider, store)

        outcomes = await scheduler.run(
            "Physics",
            sample_text,
            Difficulty.MEDIUM,
            [GenerationKind.notes(), GenerationKind.mcq()],
            tracker,
        )

        errors = sorted(o.error or "" for o in outcomes)
        assert errors == ["", "persistence_error"]
        assert tracker.current() == 50

    @pytest.mark.asyncio
    async def test_empty_kinds_rejected(self, mock_provider, memory_store):
        scheduler = GenerationScheduler(mock_provider, memory_store)
        with pytest.raises(InvalidRequest):
            await scheduler.run("Physics", "text", Difficulty.MEDIUM, [], ProgressTracker())


class TestGenerationPipeline:
    """End-to-end submission through extraction, aggregation and scheduling."""

    @pytest.mark.asyncio
    async def test_submit_with_documents(self, mock_provider, memory_store, pdf_bytes):
        request = GenerationRequest(
            subject_name="  Deep Learning ",
            manual_text="Backpropagation computes gradients.",
            uploaded_documents=[
                UploadedDocument(name="lecture.pdf", format=DocumentFormat.PDF, data=pdf_bytes),
                UploadedDocument(name="broken.docx", format=DocumentFormat.DOCX, data=b"junk"),
            ],
            requested_outputs=[GenerationKind.notes(), GenerationKind.mcq()],
        )
        pipeline = GenerationPipeline(mock_provider, memory_store, timeout=0, max_retries=0, backoff=0)

        outcome = await pipeline.submit(request, request_id="req-42")

        assert outcome.request_id == "req-42"
        assert outcome.subject == "Deep Learning"
        assert outcome.status == "succeeded"
        assert outcome.progress == 100
        assert [f.source_name for f in outcome.document_failures] == ["broken.docx"]
        assert outcome.outcome_for(GenerationKind.mcq()).material_id is not None

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_backend_calls(self, mock_llm_provider, memory_store):
        request = GenerationRequest(
            subject_name="Biology",
            manual_text="   ",
            requested_outputs=[GenerationKind.notes()],
        )
        pipeline = GenerationPipeline(mock_llm_provider, memory_store)

        with pytest.raises(InvalidRequest):
            await pipeline.submit(request)

        mock_llm_provider.complete.assert_not_called()
        assert await memory_store.list_materials() == []

    @pytest.mark.asyncio
    async def test_unreadable_documents_only(self, mock_llm_provider, memory_store):
        request = GenerationRequest(
            subject_name="Biology",
            uploaded_documents=[UploadedDocument(name="scan.pdf", format=DocumentFormat.PDF, data=b"junk")],
            requested_outputs=[GenerationKind.notes()],
        )
        pipeline = GenerationPipeline(mock_llm_provider, memory_store)

        with pytest.raises(InvalidRequest, match="scan.pdf"):
            await pipeline.submit(request)
        mock_llm_provider.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_subject_rejected(self, mock_llm_provider, memory_store):
        request = GenerationRequest(
            subject_name=" ", manual_text="text", requested_outputs=[GenerationKind.notes()]
        )
        with pytest.raises(InvalidRequest):
            await GenerationPipeline(mock_llm_provider, memory_store).submit(request)

    @pytest.mark.asyncio
    async def test_no_outputs_rejected(self, mock_llm_provider, memory_store):
        request = GenerationRequest(subject_name="Biology", manual_text="text")
        with pytest.raises(InvalidRequest):
            await GenerationPipeline(mock_llm_provider, memory_store).submit(request)

    @pytest.mark.asyncio
    async def test_submit_reports_unexpected_errors_per_kind(self, mock_provider, memory_store):
        original_complete = mock_provider.complete

        async def flaky_complete(prompt, system_instruction, contract):
            if contract.name == "mcq":
                raise ConnectionResetError("peer reset")
            return await original_complete(prompt, system_instruction, contract)

        mock_provider.complete = flaky_complete
        request = GenerationRequest(
            subject_name="Bio",
            manual_text="Cells divide by mitosis.",
            requested_outputs=[GenerationKind.notes(), GenerationKind.mcq()],
        )

        outcome = await GenerationPipeline(mock_provider, memory_store, max_retries=0).submit(request)

        assert outcome.status == "partial"
        assert outcome.outcome_for(GenerationKind.mcq()).error == "backend_error"
        assert outcome.outcome_for(GenerationKind.notes()).material_id is not None

    @pytest.mark.asyncio
    async def test_tracker_reset_before_run(self, mock_provider, memory_store):
        tracker = ProgressTracker()
        tracker.advance("stale", 40)
        request = GenerationRequest(
            subject_name="Biology", manual_text="Cells", requested_outputs=[GenerationKind.notes()]
        )

        outcome = await GenerationPipeline(mock_provider, memory_store, max_retries=0).submit(request, tracker=tracker)

        assert outcome.progress == 100
        assert tracker.current() == 100
