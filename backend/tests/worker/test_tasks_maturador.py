# tests/worker/test_tasks_maturador.py
import asyncio
from datetime import timedelta

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from maturador.core.config import settings
from maturador.modules.maturador.models import ChipPair
from maturador.modules.maturador.repository import MaturadorRepository
from maturador.modules.monitoring.repository import ChipMonitoringRepository
from maturador.worker import tasks_maturador

class FakeMongoContext:
    def __init__(self, db):
        self.db = db

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    def get_db(self):
        return self.db

class DownMongoContext:
    async def __aenter__(self):
        raise ConnectionError("MongoDB connection failed: refused")

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

@pytest.fixture
def worker_db(monkeypatch):
    db = AsyncMongoMockClient()["worker_test"]
    monkeypatch.setattr(tasks_maturador, "MongoDbContext", lambda: FakeMongoContext(db))
    monkeypatch.setattr(settings, "MATURATION_ACTIVITY_PROBABILITY", 1.0)
    return db

async def _seed_running(db, usuario_id: ObjectId) -> None:
    repo = MaturadorRepository(db)
    config = await repo.get_or_create(usuario_id)
    pair = ChipPair(chip1="chip-a", chip2="chip-b", status="running")
    await repo.save_pairs(config, [pair], is_running=True)

def test_run_tick_advances_running_pairs(worker_db):
    usuario_id = ObjectId()
    asyncio.run(_seed_running(worker_db, usuario_id))

    summary = tasks_maturador.run_tick()

    assert summary == {"configs": 1, "messages": 1, "paused_pairs": 0}
    config = asyncio.run(MaturadorRepository(worker_db).get_or_create(usuario_id))
    assert config.pairs[0].messages_exchanged == 1
    record = asyncio.run(ChipMonitoringRepository(worker_db).get_for_chip(usuario_id, "chip-a"))
    assert record.total_messages == 1

def test_run_tick_with_nothing_running(worker_db):
    assert tasks_maturador.run_tick() == {"configs": 0, "messages": 0, "paused_pairs": 0}

def test_run_tick_survives_database_outage(monkeypatch):
    monkeypatch.setattr(tasks_maturador, "MongoDbContext", DownMongoContext)

    summary = tasks_maturador.run_tick()

    assert summary["messages"] == 0
    assert "refused" in summary["error"]

def test_beat_schedule_registers_tick():
    from maturador.worker.celery_app import celery_app

    entry = celery_app.conf.beat_schedule["maturador-tick"]
    assert entry["task"] == "maturador.run_tick"
    assert entry["schedule"] == timedelta(seconds=settings.MATURATION_TICK_SECONDS)
