import asyncio
import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# The engine is built at import time, so point it at a scratch database first
_DB_DIR = Path(tempfile.mkdtemp(prefix="liftlog-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'liftlog_test.db'}"

from liftlog.db import init_db  # noqa: E402
from liftlog.main import app  # noqa: E402


@pytest.fixture()
def fresh_db():
    asyncio.run(init_db(reset=True))
    yield


@pytest.fixture()
def client(fresh_db) -> TestClient:
    with TestClient(app) as c:
        yield c
