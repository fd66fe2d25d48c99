from __future__ import annotations

"""Schema constants and Pydantic models for Parquet-backed decision logs."""

from datetime import datetime, timezone
from typing import Literal, Optional

import pandas as pd
from pandas.api.types import CategoricalDtype
from pydantic import BaseModel, Field, field_validator, model_validator

# --- Constants ---

MODES = {"debug", "crisis"}
DIFFICULTIES = {"easy", "medium", "hard"}
OUTCOMES = {"solved", "failed", "timeout"}


def _cat_dtype(categories: set[str]) -> CategoricalDtype:
    return CategoricalDtype(categories=sorted(categories), ordered=False)


DTYPES = {
    "session_id": "string",
    # timezone-aware UTC timestamps
    "session_start": pd.DatetimeTZDtype(tz="UTC"),
    "mode": _cat_dtype(MODES),
    "question_id": "string",
    "scenario_id": "string",
    "difficulty": _cat_dtype(DIFFICULTIES),
    "final_outcome": _cat_dtype(OUTCOMES),
    "correct": "boolean",
    "partial_credit": "boolean",
    "bonus_used": "boolean",
    "time_spent": "Float32",
    "cursor_activity": "Float32",
    "reasoning_delta": "Int16",
    "efficiency_delta": "Int16",
    "resource_delta": "Int16",
    "validation_attempts": "UInt8",
}

META_DTYPES = {
    "session_id": "string",
    "session_start": pd.DatetimeTZDtype(tz="UTC"),
    "mode": _cat_dtype(MODES),
    "total_questions": "UInt16",
    "solved": "UInt16",
    "total_xp": "UInt32",
    "badge": "string",
    "passed": "boolean",
}


def _utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# --- Pydantic models ---

class DecisionRow(BaseModel):
    session_id: str
    session_start: datetime
    mode: Literal[tuple(MODES)]  # type: ignore[valid-type]
    question_id: str
    scenario_id: str = ""
    difficulty: Literal[tuple(DIFFICULTIES)]  # type: ignore[valid-type]
    final_outcome: Literal[tuple(OUTCOMES)]  # type: ignore[valid-type]
    correct: bool
    partial_credit: bool = False
    bonus_used: bool = False
    time_spent: float = Field(ge=0)
    cursor_activity: float = Field(default=0.0, ge=0)
    reasoning_delta: int = Field(ge=-100, le=100)
    efficiency_delta: int = Field(ge=-100, le=100)
    resource_delta: int = Field(ge=-100, le=100)
    validation_attempts: int = Field(ge=0, le=255)

    @field_validator("session_start")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)

    @model_validator(mode="after")
    def _outcome_matches_correct(self) -> "DecisionRow":
        if self.correct != (self.final_outcome == "solved"):
            raise ValueError("correct must be true exactly when final_outcome is 'solved'")
        return self


class SessionMeta(BaseModel):
    session_id: str
    session_start: datetime
    mode: Literal[tuple(MODES)]  # type: ignore[valid-type]
    total_questions: int = Field(ge=0, le=65535)
    solved: int = Field(ge=0, le=65535)
    total_xp: int = Field(ge=0)
    badge: Optional[str] = None
    passed: bool = False

    @field_validator("session_start")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _utc(v)

    @model_validator(mode="after")
    def _solved_le_total(self) -> "SessionMeta":
        if self.solved > self.total_questions:
            raise ValueError("solved must be <= total_questions")
        return self
