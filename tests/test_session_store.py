import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from liftlog.services.store_client import WorkoutStoreClient
from liftlog.session import SessionState, SessionStore, Temporary, WorkoutRecord
from liftlog.session.state import Canonical


class FakeStore:
    """Scripted stand-in for the workout store, driven through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.documents: List[Dict[str, Any]] = []
        self.fail_paths: Dict[str, int] = {}
        self.offline = False
        self._ids = 0

    def calls(self, method: Optional[str] = None) -> List[str]:
        return [
            f"{r.method} {r.url.path}" for r in self.requests if method is None or r.method == method
        ]

    def body(self, index: int) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("store unreachable", request=request)
        status = self.fail_paths.get(f"{request.method} {request.url.path}")
        if status:
            return httpx.Response(status, json={"error": "nope"})
        if request.method == "GET":
            return httpx.Response(200, json=self.documents)
        if request.method == "POST":
            self._ids += 1
            payload = json.loads(request.content)
            return httpx.Response(201, json={**payload, "id": f"srv-{self._ids}"})
        if request.method == "PUT":
            return httpx.Response(200, json=json.loads(request.content))
        return httpx.Response(200, json={"message": "deleted"})


@pytest.fixture()
def fake() -> FakeStore:
    return FakeStore()


def _store(fake: FakeStore, *records: WorkoutRecord) -> SessionStore:
    client = WorkoutStoreClient(base_url="http://store.test", transport=httpx.MockTransport(fake))
    return SessionStore(client, SessionState(workouts=tuple(records)))


def _saved(label: str, server_id: str, **fields) -> WorkoutRecord:
    return WorkoutRecord(identifier=Canonical(server_id=server_id), label=label, **fields)


@pytest.mark.asyncio
async def test_add_workout_reconciles_server_id(fake):
    store = _store(fake)
    token = store.add_workout("Bench")
    assert store.workouts[0].identifier == Temporary(token=token)

    # local edits made before the create lands survive reconciliation
    store.increment_reps(0)
    await store.drain()

    record = store.workouts[0]
    assert record.identifier == Canonical(server_id="srv-1")
    assert record.reps == 1
    assert fake.calls() == ["POST /workouts"]
    assert fake.body(0)["label"] == "Bench"
    assert fake.body(0)["reps"] == 0
    await store.aclose()


@pytest.mark.asyncio
async def test_blank_label_sends_nothing(fake):
    store = _store(fake)
    assert store.add_workout("  ") is None
    await store.drain()
    assert store.workouts == ()
    assert fake.requests == []
    await store.aclose()


@pytest.mark.asyncio
async def test_failed_create_keeps_temporary_id_and_skips_later_sync(fake, capsys):
    fake.fail_paths["POST /workouts"] = 500
    store = _store(fake)
    store.add_workout("Bench")
    await store.drain()
    assert not store.workouts[0].is_canonical
    assert "[liftlog] sync: create 'Bench' failed" in capsys.readouterr().out

    store.increment_weight(0)
    store.remove_workout(0)
    await store.drain()
    assert fake.calls() == ["POST /workouts"]
    await store.aclose()


@pytest.mark.asyncio
async def test_increment_pushes_full_record(fake):
    store = _store(fake, _saved("Bench", "w1", highest_reps=0))
    store.increment_reps(0)
    assert store.message == "🎉 New personal best for Bench: 1 reps!"
    await store.drain()

    assert fake.calls() == ["PUT /workouts/w1"]
    body = fake.body(0)
    assert body["reps"] == 1
    assert body["highestReps"] == 1
    assert body["history"] == []
    await store.aclose()


@pytest.mark.asyncio
async def test_bump_and_edit_stay_local(fake):
    store = _store(fake, _saved("Pullups", "w1"))
    store.bump(0, "pullups")
    store.bump(0, "chinups", -1)
    store.edit_field(0, "stretches", "calves")
    await store.drain()

    assert fake.requests == []
    assert store.workouts[0].pullups == 1
    assert store.workouts[0].chinups == 0
    await store.aclose()


@pytest.mark.asyncio
async def test_end_session_syncs_only_saved_snapshotted_workouts(fake):
    store = _store(
        fake,
        _saved("Bench", "w1", reps=5),
        _saved("Idle", "w2"),
        WorkoutRecord(identifier=Temporary(token="temp-x"), label="Local", pushups=2),
    )
    snapped = store.end_session()
    assert [r.label for r in snapped] == ["Bench", "Local"]
    assert store.workouts[2].history[0].pushups == 2
    await store.drain()

    assert fake.calls() == ["PUT /workouts/w1"]
    body = fake.body(0)
    assert body["reps"] == 0
    assert body["history"][0]["reps"] == 5
    assert body["history"][0]["label"] == "Bench"
    await store.aclose()


@pytest.mark.asyncio
async def test_end_session_failures_are_logged_not_raised(fake, capsys):
    fake.fail_paths["PUT /workouts/w1"] = 404
    store = _store(fake, _saved("Bench", "w1", reps=1), _saved("Row", "w2", weight=3))
    store.end_session()
    await store.drain()

    assert sorted(fake.calls()) == ["PUT /workouts/w1", "PUT /workouts/w2"]
    out = capsys.readouterr().out
    assert "failed to save workout 'Bench'" in out
    assert "'Row'" not in out
    assert store.workouts[0].reps == 0
    await store.aclose()


@pytest.mark.asyncio
async def test_remove_saved_workout_sends_delete(fake):
    store = _store(fake, _saved("Bench", "w1"), _saved("Row", "w2"))
    removed = store.remove_workout(0)
    assert removed.label == "Bench"
    assert [w.label for w in store.workouts] == ["Row"]
    await store.drain()
    assert fake.calls() == ["DELETE /workouts/w1"]
    await store.aclose()


@pytest.mark.asyncio
async def test_delete_history_is_optimistic(fake):
    fake.fail_paths["DELETE /workouts/w1/history/0"] = 404
    store = _store(fake, _saved("Bench", "w1", reps=2))
    store.end_session()
    await store.drain()

    assert store.delete_history("w1", 0) is True
    await store.drain()
    assert store.history("w1") == ()
    assert fake.calls("DELETE") == ["DELETE /workouts/w1/history/0"]

    assert store.delete_history("w1", 0) is False
    await store.drain()
    assert len(fake.calls("DELETE")) == 1
    await store.aclose()


@pytest.mark.asyncio
async def test_history_is_keyed_by_identifier(fake):
    store = _store(fake, _saved("Same", "a", reps=1), _saved("Same", "b"))
    store.end_session()
    assert len(store.history("a")) == 1
    assert store.history("b") == ()
    assert store.history("missing") == ()
    await store.aclose()


@pytest.mark.asyncio
async def test_bootstrap_loads_in_creation_order(fake):
    fake.documents = [
        {"id": "b", "label": "Newer", "createdAt": "2026-02-01T00:00:00Z", "reps": 3},
        {"id": "a", "label": "Older", "createdAt": "2026-01-01T00:00:00Z"},
    ]
    store = _store(fake)
    await store.bootstrap()
    assert [w.key for w in store.workouts] == ["a", "b"]
    assert store.workouts[1].reps == 3
    assert store.workouts[1].history == ()
    await store.aclose()


@pytest.mark.asyncio
async def test_bootstrap_offline_starts_empty(fake):
    fake.offline = True
    store = _store(fake, _saved("Stale", "w1"))
    await store.bootstrap()
    assert store.workouts == ()
    await store.aclose()


def _portal(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>captive portal</html>", headers={"content-type": "text/html"})


@pytest.mark.asyncio
async def test_non_json_replies_are_logged_not_raised(capsys):
    client = WorkoutStoreClient(base_url="http://store.test", transport=httpx.MockTransport(_portal))
    store = SessionStore(client, SessionState(workouts=(_saved("Row", "w1", reps=2),)))

    await store.bootstrap()
    assert store.workouts == ()

    store.add_workout("Bench")
    store.end_session()
    await store.drain()
    assert not store.workouts[0].is_canonical
    out = capsys.readouterr().out
    assert "initial fetch failed" in out
    assert "create 'Bench' failed" in out
    await store.aclose()


@pytest.mark.asyncio
async def test_non_json_reply_fails_end_of_session_batch_quietly(capsys):
    client = WorkoutStoreClient(base_url="http://store.test", transport=httpx.MockTransport(_portal))
    store = SessionStore(client, SessionState(workouts=(_saved("Row", "w1", reps=2),)))
    store.end_session()
    await store.drain()
    assert "failed to save workout 'Row'" in capsys.readouterr().out
    assert len(store.history("w1")) == 1
    await store.aclose()
