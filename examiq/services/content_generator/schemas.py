"""
Output contracts for generation tasks.
Validates backend responses into typed question items before anything is persisted.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, ValidationInfo, field_validator, model_validator

from examiq.errors import SchemaViolation

MCQ_LABELS = ("A", "B", "C", "D")


def key_point_band(marks: int) -> tuple[int, int]:
    """Allowed number of key points for a descriptive answer worth ``marks``."""
    if marks <= 2:
        return 2, 3
    if marks <= 5:
        return 4, 6
    return 7, 10


class MCQOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    A: str = Field(min_length=1)
    B: str = Field(min_length=1)
    C: str = Field(min_length=1)
    D: str = Field(min_length=1)


class MCQItem(BaseModel):
    """One multiple choice question with exactly four labelled options."""

    question: str = Field(min_length=1)
    options: MCQOptions
    correct_answer: str
    explanation: str = Field(min_length=1)

    @field_validator("correct_answer")
    @classmethod
    def _check_answer_label(cls, value: str) -> str:
        label = value.strip().upper()
        if label not in MCQ_LABELS:
            raise ValueError(f"correct_answer must be one of {', '.join(MCQ_LABELS)}, got {value!r}")
        return label


class DescriptiveItem(BaseModel):
    """One descriptive question with a model answer outline."""

    question: str = Field(min_length=1)
    marks: int
    introduction: str = Field(min_length=1)
    key_points: List[str]
    conclusion: str = Field(min_length=1)
    marks_distribution: str = Field(min_length=1)

    @field_validator("key_points")
    @classmethod
    def _check_points_not_blank(cls, value: List[str]) -> List[str]:
        if any(not point.strip() for point in value):
            raise ValueError("key_points must not contain blank entries")
        return value

    @model_validator(mode="after")
    def _check_requested_marks(self, info: ValidationInfo) -> "DescriptiveItem":
        expected = (info.context or {}).get("marks")
        if expected is None:
            return self
        if self.marks != expected:
            raise ValueError(f"marks must echo the requested value {expected}, got {self.marks}")
        low, high = key_point_band(expected)
        if not low <= len(self.key_points) <= high:
            raise ValueError(
                f"{expected}-mark answers need {low}-{high} key points, got {len(self.key_points)}"
            )
        return self


@dataclass(frozen=True)
class OutputContract:
    """Expected shape of a backend response: free text or a typed JSON array."""

    name: str
    item_model: Optional[Type[BaseModel]] = None
    json_schema: Optional[Dict[str, Any]] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def free_text(cls, name: str) -> "OutputContract":
        return cls(name=name)

    @classmethod
    def typed_array(
        cls,
        name: str,
        item_model: Type[BaseModel],
        item_schema: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> "OutputContract":
        return cls(
            name=name,
            item_model=item_model,
            json_schema={"type": "array", "items": item_schema},
            context=context or {},
        )

    @property
    def is_typed(self) -> bool:
        return self.item_model is not None

    def parse(self, text: str) -> Union[str, List[BaseModel]]:
        """
        Validate raw backend text against this contract.

        Returns:
            Stripped text for free-text contracts, validated items otherwise

        Raises:
            SchemaViolation: Empty text, unparseable JSON, or invalid items
        """
        if not self.is_typed:
            content = (text or "").strip()
            if not content:
                raise SchemaViolation(f"{self.name}: backend returned an empty response")
            return content

        try:
            data = _extract_json_array(text or "")
        except ValueError as e:
            raise SchemaViolation(f"{self.name}: {e}") from e

        if not data:
            raise SchemaViolation(f"{self.name}: backend returned no items")

        adapter = TypeAdapter(List[self.item_model])  # type: ignore[name-defined]
        try:
            return adapter.validate_python(data, context=self.context)
        except ValidationError as e:
            raise SchemaViolation(
                f"{self.name}: {e.error_count()} validation error(s): {_summarize_errors(e)}"
            ) from e

    def serialize(self, parsed: Union[str, List[BaseModel]]) -> str:
        """Render parsed output as persisted material content."""
        if isinstance(parsed, str):
            return parsed
        return json.dumps([item.model_dump() for item in parsed], ensure_ascii=False)


def _summarize_errors(error: ValidationError, limit: int = 3) -> str:
    messages = []
    for detail in error.errors()[:limit]:
        location = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{location or 'item'}: {detail['msg']}")
    return "; ".join(messages)


def _extract_json_array(text: str) -> List[Any]:
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.lower().startswith("json"):
            candidate = candidate[4:].strip()

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        start = candidate.find("[")
        end = candidate.rfind("]")
        if start == -1 or end == -1 or end <= start:
            raise ValueError("No JSON array found in model response")
        try:
            parsed = json.loads(candidate[start : end + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"Model response is not valid JSON: {e}") from e

    # Providers that only decode objects wrap the array as {"items": [...]}
    if isinstance(parsed, dict):
        lists = [value for value in parsed.values() if isinstance(value, list)]
        if "items" in parsed and isinstance(parsed["items"], list):
            parsed = parsed["items"]
        elif len(lists) == 1:
            parsed = lists[0]

    if not isinstance(parsed, list):
        raise ValueError("Model response JSON is not an array")
    return parsed
