from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from eyecare.db.session import Database
from eyecare.main import create_app
from eyecare.schemas.client_record import ClientRecordWrite
from eyecare.services.backup import BackupService
from eyecare.services.lifecycle import LifecycleService
from eyecare.services.record_store import RecordStore


@pytest.fixture()
def database(tmp_path) -> Database:
    db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
    db = Database(f"sqlite:///{db_path}").open()
    yield db
    db.close()


@pytest.fixture()
def store(database: Database) -> RecordStore:
    return RecordStore(database)


@pytest.fixture()
def lifecycle(store: RecordStore) -> LifecycleService:
    return LifecycleService(store)


@pytest.fixture()
def backup(store: RecordStore) -> BackupService:
    return BackupService(store)


@pytest.fixture()
def client(database: Database) -> TestClient:
    return TestClient(create_app(database))


def make_record(name: str = "Asha", client_code: str | None = None, **overrides) -> ClientRecordWrite:
    payload = {
        "name": name,
        "mobile": "+91 98450 12345",
        "clientCode": client_code or f"EC-{uuid.uuid4().hex[:8].upper()}",
        "leftEye": {"spherical": -1.25, "cylindrical": -0.5, "axis": 90},
        "rightEye": {"spherical": -1.0, "addPower": 1.5},
    }
    payload.update(overrides)
    return ClientRecordWrite.model_validate(payload)
