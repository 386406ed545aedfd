from __future__ import annotations

from uuid import UUID

from eyecare.core.exceptions import InvalidTransition, NotFound
from eyecare.core.logging_setup import logger
from eyecare.models.base import utcnow
from eyecare.models.client_record import ClientStatus
from eyecare.schemas.client_record import ClientRecordRead
from eyecare.services.record_store import RecordStore


class LifecycleService:
    """active -> completed -> active. Every transition is a store ``put``."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def complete(self, record_id: UUID | str) -> ClientRecordRead:
        record = self._require(record_id)
        if record.status == ClientStatus.COMPLETED:
            raise InvalidTransition(f"Record {record_id} is already completed")
        now = utcnow()
        payload = record.to_write().model_copy(
            update={"status": ClientStatus.COMPLETED, "completed_at": now, "updated_at": now}
        )
        updated = self.store.put(payload)
        logger.info("Registro concluido: %s", record_id)
        return updated

    def reactivate(self, record_id: UUID | str) -> ClientRecordRead:
        record = self._require(record_id)
        if record.status != ClientStatus.COMPLETED:
            raise InvalidTransition(f"Record {record_id} is not completed")
        payload = record.to_write().model_copy(
            update={"status": ClientStatus.ACTIVE, "completed_at": None, "updated_at": utcnow()}
        )
        updated = self.store.put(payload)
        logger.info("Registro reativado: %s", record_id)
        return updated

    def _require(self, record_id: UUID | str) -> ClientRecordRead:
        record = self.store.get_by_id(record_id)
        if record is None:
            raise NotFound(f"Record {record_id} not found")
        return record
