"""Deterministic provider for development and tests; no network calls."""
import json
from typing import List, Optional

from examiq.services.content_generator.schemas import DescriptiveItem, MCQItem, OutputContract, key_point_band
from examiq.services.llm.base import LLMMessage, LLMProvider, LLMResponse


class MockProvider(LLMProvider):
    """Return canned, contract-conforming content for any prompt."""

    def __init__(self, question_count: int = 3):
        self.question_count = question_count
        self.calls: List[str] = []

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        prompt = messages[-1].content if messages else ""
        return LLMResponse(
            content=self._mock_notes(prompt),
            tokens_used=0,
            model="mock",
            finish_reason="stop",
        )

    async def complete(
        self,
        prompt: str,
        system_instruction: str,
        contract: OutputContract,
    ) -> str:
        self.calls.append(contract.name)
        if contract.item_model is MCQItem:
            return json.dumps([self._mock_mcq(i) for i in range(1, self.question_count + 1)])
        if contract.item_model is DescriptiveItem:
            marks = contract.context.get("marks", 5)
            return json.dumps(
                [self._mock_descriptive(i, marks) for i in range(1, self.question_count + 1)]
            )
        response = await self.generate_text([LLMMessage(role="user", content=prompt)])
        return response.content

    def _mock_notes(self, prompt: str) -> str:
        excerpt = " ".join(prompt.split()[-40:])
        return f"""## Overview
These notes summarize the supplied course material.

## Key Concepts
- **Concept 1**: The foundational principle establishes the basic framework.
- **Concept 2**: Practical applications build on the foundation.

## Detailed Content
{excerpt}

## Summary
- Understanding the foundational concepts is essential
- Practical applications demonstrate real-world relevance
"""

    def _mock_mcq(self, index: int) -> dict:
        return {
            "question": f"Sample question {index}: which statement best describes the core concept?",
            "options": {
                "A": "The foundational principle",
                "B": "An unrelated definition",
                "C": "A common misconception",
                "D": "None of the above",
            },
            "correct_answer": "A",
            "explanation": "Option A restates the foundational principle; the others do not.",
        }

    def _mock_descriptive(self, index: int, marks: int) -> dict:
        low, _ = key_point_band(marks)
        return {
            "question": f"Sample {marks}-mark question {index}: explain the core concept.",
            "marks": marks,
            "introduction": "Introduce the concept and its context.",
            "key_points": [f"Key point {n}" for n in range(1, low + 1)],
            "conclusion": "Summarize why the concept matters.",
            "marks_distribution": f"1 mark for intro, {max(marks - 2, 0)} marks for points, 1 mark for conclusion",
        }
