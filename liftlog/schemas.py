"""Wire shapes shared by the store service and the session client.

Keys travel in camelCase (``highestReps``, ``timeStamp``); Python code uses
the snake_case attribute names.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


COUNTER_FIELDS = ("reps", "weight", "pushups", "pullups", "chinups")
TEXT_FIELDS = (
    "endurance_type",
    "distance",
    "time",
    "plank_type",
    "plank_duration",
    "stretches",
    "stretch_duration",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text_or_none(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryEntry(CamelModel):
    """One frozen session. Missing counters mean nothing was recorded."""

    entry_id: str = Field(default_factory=lambda: uuid4().hex)
    label: Optional[str] = None
    time_stamp: datetime = Field(default_factory=_utcnow)
    reps: Optional[float] = None
    weight: Optional[float] = None
    pushups: Optional[int] = None
    pullups: Optional[int] = None
    chinups: Optional[int] = None
    endurance_type: Optional[str] = None
    distance: Optional[str] = None
    time: Optional[str] = None
    plank_type: Optional[str] = None
    plank_duration: Optional[str] = None
    stretches: Optional[str] = None
    stretch_duration: Optional[str] = None

    @field_validator(*COUNTER_FIELDS, mode="before")
    @classmethod
    def _blank_counter(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _text_or_none(value)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorkoutFields(CamelModel):
    """Request body for create and replace. Unknown keys, ``id`` included, are ignored."""

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
    history: List[HistoryEntry] = Field(default_factory=list)

    @field_validator(
        "reps", "weight", "highest_reps", "highest_weight", "pushups", "pullups", "chinups",
        mode="before",
    )
    @classmethod
    def _blank_is_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        return value

    @field_validator(*TEXT_FIELDS, "label", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        return _text_or_none(value)

    def column_values(self, only_set: bool = False) -> Dict[str, Any]:
        """Values keyed by ``Workout`` column name, history serialized for the JSON column."""
        values = self.model_dump(exclude_unset=only_set, exclude={"history"})
        if not only_set or "history" in self.model_fields_set:
            values["history"] = [entry.to_wire() for entry in self.history]
        return values


class WorkoutDocument(CamelModel):
    id: str
    created_at: datetime
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
    history: List[HistoryEntry] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # sqlite hands datetimes back without tzinfo
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
