from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


def _new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Workout(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow, index=True)
    label: Optional[str] = None
    reps: float = 0
    weight: float = 0
    highest_reps: float = 0
    highest_weight: float = 0
    pushups: int = 0
    pullups: int = 0
    chinups: int = 0
    endurance_type: Optional[str] = None
    distance: Optional[str] = None
    time: Optional[str] = None
    plank_type: Optional[str] = None
    plank_duration: Optional[str] = None
    stretches: Optional[str] = None
    stretch_duration: Optional[str] = None
    # list of serialized HistoryEntry dicts, oldest first
    history: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
