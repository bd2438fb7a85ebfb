from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

FieldType = Literal["text", "number", "date"]
FIELD_TYPES = ("text", "number", "date")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    """One uploaded template and everything answered about it so far."""

    id: str
    original_document: bytes = Field(repr=False, exclude=True)
    fields: List[str]
    field_types: Dict[str, FieldType] = {}
    answers: Dict[str, str] = {}
    questions: Dict[str, str] = {}
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class FieldHint(BaseModel):
    """Oracle enrichment for a single field."""

    question: str
    type: Optional[FieldType] = None


class FieldPrompt(BaseModel):
    field: str
    field_type: FieldType
    question: str
    is_ai_phrased: bool
    progress: int
    total: int


class QuestionnaireDone(BaseModel):
    progress: int
    total: int
