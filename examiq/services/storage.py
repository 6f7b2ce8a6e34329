"""
Material and score persistence.
Append-only stores; generation tasks write to them concurrently.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from examiq.db.connection import execute_one, execute_query, execute_update
from examiq.models.generation import MaterialType
from examiq.models.materials import MaterialRecord, ScoreRecord

logger = logging.getLogger(__name__)


def _check_score(score: int, total: int) -> None:
    if total <= 0:
        raise ValueError(f"total must be positive, got {total}")
    if score < 0 or score > total:
        raise ValueError(f"score must be between 0 and {total}, got {score}")


class MaterialStore(ABC):
    """Persistence sink for generated materials and practice scores."""

    @abstractmethod
    async def create_material(self, title: str, subject: str, content: str, type: MaterialType) -> int:
        """Append a material and return its assigned id."""

    @abstractmethod
    async def create_score(self, subject: str, score: int, total: int) -> None:
        """Append a practice exam score."""

    @abstractmethod
    async def list_materials(self, subject: Optional[str] = None) -> List[MaterialRecord]:
        """List materials, newest first."""

    @abstractmethod
    async def list_scores(self) -> List[ScoreRecord]:
        """List scores, oldest first."""


class InMemoryMaterialStore(MaterialStore):
    """Process-local store used when no database is configured."""

    def __init__(self):
        self._materials: List[MaterialRecord] = []
        self._scores: List[ScoreRecord] = []
        self._lock = asyncio.Lock()

    async def create_material(self, title: str, subject: str, content: str, type: MaterialType) -> int:
        async with self._lock:
            record = MaterialRecord(
                id=len(self._materials) + 1,
                title=title,
                subject=subject,
                content=content,
                type=type,
                created_at=datetime.now(timezone.utc),
            )
            self._materials.append(record)
        return record.id

    async def create_score(self, subject: str, score: int, total: int) -> None:
        _check_score(score, total)
        async with self._lock:
            self._scores.append(
                ScoreRecord(
                    id=len(self._scores) + 1,
                    subject=subject,
                    score=score,
                    total=total,
                    created_at=datetime.now(timezone.utc),
                )
            )

    async def list_materials(self, subject: Optional[str] = None) -> List[MaterialRecord]:
        materials = [m for m in self._materials if subject is None or m.subject == subject]
        return sorted(materials, key=lambda m: (m.created_at, m.id), reverse=True)

    async def list_scores(self) -> List[ScoreRecord]:
        return list(self._scores)


class PostgresMaterialStore(MaterialStore):
    """asyncpg-backed store over the ``materials`` and ``scores`` tables."""

    async def create_material(self, title: str, subject: str, content: str, type: MaterialType) -> int:
        record = await execute_one(
            """
            INSERT INTO materials (title, subject, content, type, created_at)
            VALUES ($1, $2, $3, $4, NOW())
            RETURNING id
            """,
            title,
            subject,
            content,
            MaterialType(type).value,
        )
        logger.debug(f"Stored material {record['id']} ({title})")
        return record["id"]

    async def create_score(self, subject: str, score: int, total: int) -> None:
        _check_score(score, total)
        await execute_update(
            """
            INSERT INTO scores (subject, score, total, created_at)
            VALUES ($1, $2, $3, NOW())
            """,
            subject,
            score,
            total,
        )

    async def list_materials(self, subject: Optional[str] = None) -> List[MaterialRecord]:
        if subject is None:
            rows = await execute_query(
                """
                SELECT id, title, subject, content, type, created_at
                FROM materials
                ORDER BY created_at DESC, id DESC
                """
            )
        else:
            rows = await execute_query(
                """
                SELECT id, title, subject, content, type, created_at
                FROM materials
                WHERE subject = $1
                ORDER BY created_at DESC, id DESC
                """,
                subject,
            )
        return [MaterialRecord(**dict(row)) for row in rows]

    async def list_scores(self) -> List[ScoreRecord]:
        rows = await execute_query(
            """
            SELECT id, subject, score, total, created_at
            FROM scores
            ORDER BY created_at ASC, id ASC
            """
        )
        return [ScoreRecord(**dict(row)) for row in rows]
