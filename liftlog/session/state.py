"""Session state for the workout logger.

``SessionState`` is immutable. Every mutation below is a plain function that
takes the prior state and returns a new one, so the owner decides when state
changes hands and what gets pushed to the store afterwards.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..schemas import TEXT_FIELDS, HistoryEntry, WorkoutDocument


BUMP_FIELDS = ("pushups", "pullups", "chinups")
EDITABLE_FIELDS = ("label", "reps", "weight") + TEXT_FIELDS
# counters zeroed by end_session; free text carries over to the next session
SESSION_COUNTERS = ("reps", "weight") + BUMP_FIELDS

_NUMERIC_TEXT = re.compile(r"\d*\.?\d*")
_TIME_PART = re.compile(r"\d+(\.\d+)?")


class Temporary(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["temporary"] = "temporary"
    token: str


class Canonical(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["canonical"] = "canonical"
    server_id: str


Identifier = Union[Temporary, Canonical]


class WorkoutRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: Identifier = Field(discriminator="kind")
    label: str
    created_at: Optional[datetime] = None
    # reps/weight hold the raw text while the user is typing
    reps: Union[int, float, str] = 0
    weight: Union[int, float, str] = 0
    highest_reps: Union[int, float] = 0
    highest_weight: Union[int, float] = 0
    pushups: int = 0
    pullups: int = 0
    chinups: int = 0
    endurance_type: str = ""
    distance: str = ""
    time: str = ""
    plank_type: str = ""
    plank_duration: str = ""
    stretches: str = ""
    stretch_duration: str = ""
    history: Tuple[HistoryEntry, ...] = ()

    @property
    def key(self) -> str:
        if isinstance(self.identifier, Canonical):
            return self.identifier.server_id
        return self.identifier.token

    @property
    def is_canonical(self) -> bool:
        return isinstance(self.identifier, Canonical)


class SessionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    workouts: Tuple[WorkoutRecord, ...] = ()
    message: str = ""


# ---------- coercion helpers ----------

def as_number(value: Any) -> Union[int, float]:
    """Numeric value of ``value``; anything unparsable counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return int(number) if number.is_integer() else number


def to_int(value: Any) -> int:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def is_numeric_text(value: str) -> bool:
    """Digits with at most one decimal point; ``""`` and ``"."`` pass."""
    return _NUMERIC_TEXT.fullmatch(value) is not None


def normalize_time(value: str) -> str:
    """Zero-pad ``M:SS`` or ``H:MM:SS``; return anything else untouched."""
    if not value:
        return ""
    parts = [p.strip() for p in str(value).split(":")]
    if len(parts) == 1 or any(p == "" for p in parts):
        return value
    parts = parts[:3]
    if not all(_TIME_PART.fullmatch(p) for p in parts):
        return value
    return ":".join(p.rjust(2, "0") for p in parts)


# ---------- lookups ----------

def find_index(state: SessionState, key: str) -> Optional[int]:
    for i, record in enumerate(state.workouts):
        if record.key == key:
            return i
    return None


def _replace_at(state: SessionState, index: int, record: WorkoutRecord, **changes: Any) -> SessionState:
    workouts = list(state.workouts)
    workouts[index] = record
    return state.model_copy(update={"workouts": tuple(workouts), **changes})


# ---------- mutations ----------

def new_workout(label: str, token: str) -> WorkoutRecord:
    return WorkoutRecord(identifier=Temporary(token=token), label=label)


def add_workout(state: SessionState, label: str, token: str) -> SessionState:
    label = (label or "").strip()
    if not label:
        return state
    workouts = state.workouts + (new_workout(label, token),)
    return state.model_copy(update={"workouts": workouts})


def remove_workout(state: SessionState, index: int) -> Tuple[SessionState, WorkoutRecord]:
    workouts = list(state.workouts)
    removed = workouts.pop(index)
    return state.model_copy(update={"workouts": tuple(workouts)}), removed


def reconcile_identifier(state: SessionState, token: str, server_id: str) -> SessionState:
    """Swap ``Temporary(token)`` for ``Canonical(server_id)`` leaving local edits alone."""
    for i, record in enumerate(state.workouts):
        if isinstance(record.identifier, Temporary) and record.identifier.token == token:
            updated = record.model_copy(update={"identifier": Canonical(server_id=server_id)})
            return _replace_at(state, i, updated)
    return state


def _increment(state: SessionState, index: int, field: str, best_field: str, unit: str) -> SessionState:
    record = state.workouts[index]
    value = as_number(getattr(record, field)) + 1
    update: Dict[str, Any] = {field: value}
    if value > as_number(getattr(record, best_field)):
        update[best_field] = value
        message = f"🎉 New personal best for {record.label}: {value} {unit}!"
    else:
        message = ""
    return _replace_at(state, index, record.model_copy(update=update), message=message)


def increment_reps(state: SessionState, index: int) -> SessionState:
    return _increment(state, index, "reps", "highest_reps", "reps")


def increment_weight(state: SessionState, index: int) -> SessionState:
    return _increment(state, index, "weight", "highest_weight", "lbs")


def bump(state: SessionState, index: int, field: str, delta: int = 1) -> SessionState:
    if field not in BUMP_FIELDS:
        raise ValueError(f"cannot bump {field!r}")
    record = state.workouts[index]
    value = max(0, to_int(getattr(record, field)) + delta)
    return _replace_at(state, index, record.model_copy(update={field: value}))


def edit_field(state: SessionState, index: int, field: str, value: str) -> SessionState:
    if field not in EDITABLE_FIELDS:
        raise ValueError(f"cannot edit {field!r}")
    if field in ("reps", "weight"):
        if not is_numeric_text(value):
            return state
    elif field == "plank_duration":
        value = normalize_time(value)
    record = state.workouts[index]
    return _replace_at(state, index, record.model_copy(update={field: value}))


def has_activity(record: WorkoutRecord) -> bool:
    return bool(
        as_number(record.reps) > 0
        or as_number(record.weight) > 0
        or any(to_int(getattr(record, f)) > 0 for f in BUMP_FIELDS)
        or (record.endurance_type and record.distance)
        or record.time
        or record.plank_type
        or record.plank_duration
        or record.stretches
        or record.stretch_duration
    )


def take_snapshot(record: WorkoutRecord, now: datetime) -> HistoryEntry:
    """Sparse copy of the session: zero counters and empty text are left out."""
    fields: Dict[str, Any] = {"label": record.label, "time_stamp": now}
    for name in ("reps", "weight"):
        number = as_number(getattr(record, name))
        if number > 0:
            fields[name] = number
    for name in BUMP_FIELDS:
        count = to_int(getattr(record, name))
        if count > 0:
            fields[name] = count
    for name in TEXT_FIELDS:
        text = getattr(record, name)
        if text:
            fields[name] = text
    return HistoryEntry(**fields)


def end_session(
    state: SessionState, now: Optional[datetime] = None
) -> Tuple[SessionState, List[WorkoutRecord]]:
    """Snapshot every active workout and zero its counters.

    Returns the new state and the records that received a snapshot.
    """
    now = now or datetime.now(timezone.utc)
    workouts: List[WorkoutRecord] = []
    snapshotted: List[WorkoutRecord] = []
    for record in state.workouts:
        if not has_activity(record):
            workouts.append(record)
            continue
        update: Dict[str, Any] = {name: 0 for name in SESSION_COUNTERS}
        update["history"] = record.history + (take_snapshot(record, now),)
        updated = record.model_copy(update=update)
        workouts.append(updated)
        snapshotted.append(updated)
    return SessionState(workouts=tuple(workouts), message=""), snapshotted


def delete_history(
    state: SessionState, key: str, index: int
) -> Tuple[SessionState, Optional[WorkoutRecord]]:
    """Drop history entry ``index`` of workout ``key``.

    Returns the updated record, or ``None`` when nothing was removed.
    """
    i = find_index(state, key)
    if i is None:
        return state, None
    record = state.workouts[i]
    if index < 0 or index >= len(record.history):
        return state, None
    history = record.history[:index] + record.history[index + 1:]
    updated = record.model_copy(update={"history": history})
    return _replace_at(state, i, updated), updated


# ---------- wire conversion ----------

_PAYLOAD_FIELDS = (
    "label", "reps", "weight", "highest_reps", "highest_weight",
) + BUMP_FIELDS + TEXT_FIELDS


def to_payload(record: WorkoutRecord) -> Dict[str, Any]:
    """Full record body for create/replace, camelCase keys, no identifier."""
    payload: Dict[str, Any] = {}
    for name in _PAYLOAD_FIELDS:
        value = getattr(record, name)
        if name in ("reps", "weight"):
            value = as_number(value)
        payload[to_camel(name)] = value
    payload["history"] = [entry.to_wire() for entry in record.history]
    return payload


def from_document(document: Dict[str, Any]) -> WorkoutRecord:
    doc = WorkoutDocument.model_validate(document)
    values: Dict[str, Any] = {
        "identifier": Canonical(server_id=doc.id),
        "label": doc.label or "",
        "created_at": doc.created_at,
        "history": tuple(doc.history),
    }
    for name in ("reps", "weight", "highest_reps", "highest_weight"):
        values[name] = as_number(getattr(doc, name))
    for name in BUMP_FIELDS:
        values[name] = getattr(doc, name)
    for name in TEXT_FIELDS:
        values[name] = getattr(doc, name) or ""
    return WorkoutRecord(**values)


def load_documents(documents: Iterable[Dict[str, Any]]) -> SessionState:
    """Build state from a bulk list; malformed documents are skipped.

    The store lists newest first, local order is creation order.
    """
    records: List[WorkoutRecord] = []
    for document in documents:
        try:
            records.append(from_document(document))
        except ValidationError as e:
            ident = document.get("id") if isinstance(document, dict) else None
            print(f"[liftlog] skipping malformed workout {ident!r}: {e}")
    records.sort(key=lambda r: r.created_at or datetime.min.replace(tzinfo=timezone.utc))
    return SessionState(workouts=tuple(records))
