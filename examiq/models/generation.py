"""Pydantic models for the study material generation pipeline."""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


# Mark values a descriptive question bank can be generated for
ALLOWED_MARKS = (1, 2, 3, 4, 5, 6, 8)


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class DocumentFormat(str, Enum):
    PLAIN_TEXT = "plain_text"
    MARKDOWN = "markdown"
    PDF = "pdf"
    DOCX = "docx"


class GenerationMode(str, Enum):
    NOTES = "notes"
    MCQ = "mcq"
    DESCRIPTIVE = "descriptive"


class MaterialType(str, Enum):
    NOTES = "notes"
    MCQ = "mcq"
    # Persisted category for descriptive banks of every mark value
    FIVE_MARK = "five_mark"


class TaskState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationKind(BaseModel):
    """One requested output kind: notes, an MCQ bank, or a descriptive bank for a mark value."""

    model_config = ConfigDict(frozen=True)

    mode: GenerationMode
    marks: Optional[int] = None

    @model_validator(mode="after")
    def _check_marks(self) -> "GenerationKind":
        if self.mode == GenerationMode.DESCRIPTIVE:
            if self.marks not in ALLOWED_MARKS:
                raise ValueError(
                    f"Descriptive marks must be one of {list(ALLOWED_MARKS)}, got {self.marks}"
                )
        elif self.marks is not None:
            raise ValueError(f"Marks only apply to descriptive banks, not {self.mode.value}")
        return self

    @classmethod
    def notes(cls) -> "GenerationKind":
        return cls(mode=GenerationMode.NOTES)

    @classmethod
    def mcq(cls) -> "GenerationKind":
        return cls(mode=GenerationMode.MCQ)

    @classmethod
    def descriptive(cls, marks: int) -> "GenerationKind":
        return cls(mode=GenerationMode.DESCRIPTIVE, marks=marks)

    @classmethod
    def parse(cls, label: str) -> "GenerationKind":
        """Parse ``notes``, ``mcq`` or ``descriptive_<marks>``."""
        value = label.strip().lower()
        if value == GenerationMode.NOTES.value:
            return cls.notes()
        if value == GenerationMode.MCQ.value:
            return cls.mcq()
        prefix = f"{GenerationMode.DESCRIPTIVE.value}_"
        if value.startswith(prefix) and value[len(prefix):].isdigit():
            return cls.descriptive(int(value[len(prefix):]))
        raise ValueError(f"Unknown generation kind: {label}")

    @property
    def label(self) -> str:
        if self.mode == GenerationMode.DESCRIPTIVE:
            return f"{self.mode.value}_{self.marks}"
        return self.mode.value

    @property
    def material_type(self) -> MaterialType:
        if self.mode == GenerationMode.NOTES:
            return MaterialType.NOTES
        if self.mode == GenerationMode.MCQ:
            return MaterialType.MCQ
        return MaterialType.FIVE_MARK

    def title_for(self, subject: str) -> str:
        if self.mode == GenerationMode.NOTES:
            return f"{subject}: Comprehensive Notes"
        if self.mode == GenerationMode.MCQ:
            return f"{subject}: Practice Quiz"
        return f"{subject}: {self.marks}-Mark Questions"


class UploadedDocument(BaseModel):
    """Raw uploaded file tagged with its declared format."""

    name: str
    format: Optional[DocumentFormat] = None
    data: bytes


class ExtractedText(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_name: str
    text: str


class DocumentFailure(BaseModel):
    source_name: str
    error: str  # unsupported_format or extraction_failed
    message: str


class GenerationRequest(BaseModel):
    """One user generation action."""

    subject_name: str
    manual_text: str = ""
    uploaded_documents: List[UploadedDocument] = Field(default_factory=list)
    difficulty: Difficulty = Difficulty.MEDIUM
    requested_outputs: List[GenerationKind] = Field(default_factory=list)

    @field_validator("requested_outputs")
    @classmethod
    def _dedupe_outputs(cls, value: List[GenerationKind]) -> List[GenerationKind]:
        # Requested outputs behave as a set; keep first-seen order
        seen = set()
        unique = []
        for kind in value:
            if kind not in seen:
                seen.add(kind)
                unique.append(kind)
        return unique


class GeneratedMaterial(BaseModel):
    """Validated artifact of a succeeded generation task, ready for persistence."""

    model_config = ConfigDict(frozen=True)

    title: str
    subject: str
    content: str
    type: MaterialType
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TaskOutcome(BaseModel):
    """Terminal result of one generation task."""

    kind: str
    state: TaskState
    weight: float
    material_id: Optional[int] = None
    material_type: Optional[MaterialType] = None
    title: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    attempts: int = 0


class RequestOutcome(BaseModel):
    """Per-kind results of one submitted generation request."""

    request_id: str
    subject: str
    outcomes: List[TaskOutcome] = Field(default_factory=list)
    document_failures: List[DocumentFailure] = Field(default_factory=list)
    progress: float = 0.0

    @computed_field  # type: ignore[misc]
    @property
    def status(self) -> str:
        succeeded = sum(1 for o in self.outcomes if o.state == TaskState.SUCCEEDED)
        if self.outcomes and succeeded == len(self.outcomes):
            return "succeeded"
        if succeeded:
            return "partial"
        return "failed"

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def partial(self) -> bool:
        return self.status == "partial"

    def outcome_for(self, kind: GenerationKind) -> Optional[TaskOutcome]:
        for outcome in self.outcomes:
            if outcome.kind == kind.label:
                return outcome
        return None
