from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ..db import get_session
from ..models import Workout
from ..schemas import WorkoutDocument, WorkoutFields

router = APIRouter()


def _document(workout: Workout) -> Dict[str, Any]:
    return WorkoutDocument.model_validate(workout.model_dump()).to_wire()


def _coerce(body: Any) -> WorkoutFields:
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Workout body must be a JSON object")
    try:
        return WorkoutFields.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/workouts", status_code=201)
async def create_workout(body: Any = Body(...)) -> Dict[str, Any]:
    fields = _coerce(body)
    try:
        async with get_session() as session:
            workout = Workout(**fields.column_values())
            session.add(workout)
            await session.commit()
            await session.refresh(workout)
            print(f"[liftlog] created workout {workout.id} ({workout.label or 'Untitled'})")
            return _document(workout)
    except (SQLAlchemyError, ValidationError) as e:
        print(f"[liftlog] create failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/workouts")
async def list_workouts() -> List[Dict[str, Any]]:
    try:
        async with get_session() as session:
            result = await session.exec(select(Workout).order_by(Workout.created_at.desc()))
            return [_document(w) for w in result.all()]
    except (SQLAlchemyError, ValidationError) as e:
        print(f"[liftlog] list failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/workouts/{workout_id}")
async def replace_workout(workout_id: str, body: Any = Body(...)) -> Dict[str, Any]:
    fields = _coerce(body)
    try:
        async with get_session() as session:
            workout = await session.get(Workout, workout_id)
            if workout is None:
                raise HTTPException(status_code=404, detail="Workout not found")
            # shallow merge: keys absent from the body keep their stored value
            for name, value in fields.column_values(only_set=True).items():
                setattr(workout, name, value)
            session.add(workout)
            await session.commit()
            await session.refresh(workout)
            return _document(workout)
    except (SQLAlchemyError, ValidationError) as e:
        print(f"[liftlog] replace {workout_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/workouts/{workout_id}/history/{index}")
async def delete_history_entry(workout_id: str, index: str) -> Dict[str, Any]:
    try:
        async with get_session() as session:
            workout = await session.get(Workout, workout_id)
            if workout is None:
                raise HTTPException(status_code=404, detail="Workout not found")

            history = list(workout.history or [])
            print(f"[liftlog] history length={len(history)} requested index={index}")
            try:
                i = int(index)
            except ValueError:
                i = -1
            if i < 0 or i >= len(history):
                raise HTTPException(status_code=404, detail="History item not found")

            del history[i]
            # reassign so the JSON column is flagged dirty
            workout.history = history
            session.add(workout)
            await session.commit()
            await session.refresh(workout)
            return {"message": "History item deleted", "workout": _document(workout)}
    except (SQLAlchemyError, ValidationError) as e:
        print(f"[liftlog] delete history {workout_id}[{index}] failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/workouts/{workout_id}")
async def delete_workout(workout_id: str) -> Dict[str, Any]:
    try:
        async with get_session() as session:
            workout = await session.get(Workout, workout_id)
            if workout is None:
                raise HTTPException(status_code=404, detail="Workout not found")
            await session.delete(workout)
            await session.commit()
            print(f"[liftlog] deleted workout {workout_id}")
            return {"message": "Workout deleted"}
    except SQLAlchemyError as e:
        print(f"[liftlog] delete {workout_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
