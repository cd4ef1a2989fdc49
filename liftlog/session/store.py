from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Dict, List, Optional, Set, Tuple
from uuid import uuid4

import httpx

from ..schemas import HistoryEntry
from ..services.store_client import WorkoutStoreClient
from . import state as ops
from .state import SessionState, WorkoutRecord


class SessionStore:
    """Owns the session state and mirrors it to the workout store.

    Every method applies its change locally and returns at once; network
    calls run as background tasks whose failures are logged and dropped.
    Only these methods talk to the store:

    - ``add_workout``: create, then swap in the server id
    - ``remove_workout``: delete the workout
    - ``increment_reps`` / ``increment_weight``: replace the record
    - ``end_session``: replace every snapshotted record
    - ``delete_history``: delete one history entry

    ``bump`` and ``edit_field`` stay local until the next of those. Records
    still holding a temporary id are never replaced or deleted remotely.
    Must be driven from inside a running event loop.
    """

    def __init__(self, client: Optional[WorkoutStoreClient] = None, state: Optional[SessionState] = None) -> None:
        self._client = client or WorkoutStoreClient()
        self.state = state or SessionState()
        self._pending: Set[asyncio.Task] = set()

    @property
    def workouts(self) -> Tuple[WorkoutRecord, ...]:
        return self.state.workouts

    @property
    def message(self) -> str:
        return self.state.message

    # ---------- background sync ----------

    def _spawn(self, call: Awaitable[Any], what: str) -> None:
        task = asyncio.get_running_loop().create_task(self._guard(call, what))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _guard(call: Awaitable[Any], what: str) -> None:
        try:
            await call
        except httpx.HTTPError as e:
            print(f"[liftlog] sync: {what} failed: {e!r}")

    async def _create(self, token: str, payload: Dict[str, Any]) -> None:
        saved = await self._client.create_workout(payload)
        server_id = saved.get("id") if isinstance(saved, dict) else None
        if server_id:
            self.state = ops.reconcile_identifier(self.state, token, str(server_id))

    async def _replace_batch(self, batch: List[Tuple[str, str, Dict[str, Any]]]) -> None:
        results = await asyncio.gather(
            *(self._client.replace_workout(key, payload) for key, _, payload in batch),
            return_exceptions=True,
        )
        for (key, label, _), result in zip(batch, results):
            if isinstance(result, httpx.HTTPError):
                print(f"[liftlog] sync: failed to save workout {label!r} ({key}): {result!r}")
            elif isinstance(result, BaseException):
                raise result

    def _push(self, index: int) -> None:
        record = self.state.workouts[index]
        if record.is_canonical:
            self._spawn(
                self._client.replace_workout(record.key, ops.to_payload(record)),
                f"replace {record.label!r}",
            )

    async def drain(self) -> None:
        """Wait for every sync task dispatched so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def aclose(self) -> None:
        await self.drain()
        await self._client.close()

    # ---------- startup ----------

    async def bootstrap(self) -> None:
        try:
            documents = await self._client.list_workouts()
        except httpx.HTTPError as e:
            print(f"[liftlog] sync: initial fetch failed, starting empty: {e!r}")
            self.state = SessionState()
            return
        self.state = ops.load_documents(documents)
        print(f"[liftlog] sync: loaded {len(self.state.workouts)} workouts")

    # ---------- mutations ----------

    def add_workout(self, label: str) -> Optional[str]:
        """Append a new workout; returns its temporary token, or None for a blank label."""
        token = f"temp-{uuid4().hex}"
        updated = ops.add_workout(self.state, label, token)
        if updated is self.state:
            return None
        self.state = updated
        record = updated.workouts[-1]
        self._spawn(self._create(token, ops.to_payload(record)), f"create {record.label!r}")
        return token

    def remove_workout(self, index: int) -> WorkoutRecord:
        self.state, removed = ops.remove_workout(self.state, index)
        if removed.is_canonical:
            self._spawn(self._client.delete_workout(removed.key), f"delete {removed.label!r}")
        return removed

    def increment_reps(self, index: int) -> None:
        self.state = ops.increment_reps(self.state, index)
        self._push(index)

    def increment_weight(self, index: int) -> None:
        self.state = ops.increment_weight(self.state, index)
        self._push(index)

    def bump(self, index: int, field: str, delta: int = 1) -> None:
        self.state = ops.bump(self.state, index, field, delta)

    def edit_field(self, index: int, field: str, value: str) -> None:
        self.state = ops.edit_field(self.state, index, field, value)

    def end_session(self, now: Optional[datetime] = None) -> List[WorkoutRecord]:
        self.state, snapshotted = ops.end_session(self.state, now)
        batch = [(r.key, r.label, ops.to_payload(r)) for r in snapshotted if r.is_canonical]
        if batch:
            self._spawn(self._replace_batch(batch), "end of session")
        return snapshotted

    def delete_history(self, key: str, index: int) -> bool:
        self.state, updated = ops.delete_history(self.state, key, index)
        if updated is None:
            return False
        if updated.is_canonical:
            self._spawn(
                self._client.delete_history_entry(key, index),
                f"delete history {index} of {updated.label!r}",
            )
        return True

    def history(self, key: str) -> Tuple[HistoryEntry, ...]:
        i = ops.find_index(self.state, key)
        if i is None:
            return ()
        return self.state.workouts[i].history
