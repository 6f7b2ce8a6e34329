"""Pydantic models for persisted materials, scores and tutor requests."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from examiq.models.generation import MaterialType


class MaterialRecord(BaseModel):
    id: int
    title: str
    subject: str
    content: str
    type: MaterialType
    created_at: datetime


class ScoreCreate(BaseModel):
    """Practice exam result submitted by the client."""

    subject: str = Field(min_length=1)
    score: int = Field(ge=0)
    total: int = Field(gt=0)

    @model_validator(mode="after")
    def _score_within_total(self) -> "ScoreCreate":
        if self.score > self.total:
            raise ValueError("score cannot exceed total")
        return self


class ScoreRecord(BaseModel):
    id: int
    subject: str
    score: int
    total: int
    created_at: datetime


class ProgressResponse(BaseModel):
    request_id: str
    progress: float


class TutorChatRequest(BaseModel):
    message: str = Field(min_length=1)


class TestExplanationRequest(BaseModel):
    result: str = Field(min_length=1)
    subject: Optional[str] = None


class TutorResponse(BaseModel):
    content: str
