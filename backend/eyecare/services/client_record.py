from __future__ import annotations

from uuid import UUID

from eyecare.core.exceptions import NotFound, RecordLocked
from eyecare.models.client_record import ClientStatus
from eyecare.schemas.client_record import (
    ClientRecordRead,
    ClientRecordWrite,
    ImportResult,
    StorageStats,
)
from eyecare.services import query
from eyecare.services.backup import BackupService
from eyecare.services.lifecycle import LifecycleService
from eyecare.services.record_store import RecordStore


class ClientRecordService:
    def __init__(
        self,
        store: RecordStore,
        *,
        lifecycle: LifecycleService | None = None,
        backup: BackupService | None = None,
    ) -> None:
        self.store = store
        self.lifecycle = lifecycle or LifecycleService(store)
        self.backup = backup or BackupService(store)

    def load_all(
        self,
        status: ClientStatus | str | None = None,
        sort: query.SortKey | str | None = None,
    ) -> list[ClientRecordRead]:
        records = self.store.get_all()
        if status:
            records = query.filter_by_status(records, status)
        if sort:
            records = query.sort_records(records, sort)
        return records

    def get(self, record_id: UUID | str) -> ClientRecordRead:
        record = self.store.get_by_id(record_id)
        if record is None:
            raise NotFound(f"Record {record_id} not found")
        return record

    def get_by_client_code(self, client_code: str) -> ClientRecordRead:
        record = self.store.get_by_client_code(client_code)
        if record is None:
            raise NotFound(f"Client code {client_code!r} not found")
        return record

    def save(self, payload: ClientRecordWrite) -> ClientRecordRead:
        """Create or edit a record. Completed records are read-only until reactivated."""
        existing = self.store.get_by_id(payload.id) if payload.id else None
        update: dict[str, object] = {"updated_at": None}
        if existing is None:
            update["status"] = ClientStatus.ACTIVE
            update["completed_at"] = None
        else:
            if existing.status == ClientStatus.COMPLETED:
                raise RecordLocked(f"Record {existing.id} is completed; reactivate it before editing")
            # status changes go through complete()/reactivate()
            update["status"] = existing.status
            update["created_at"] = existing.created_at
            if "client_code" not in payload.model_fields_set:
                update["client_code"] = existing.client_code
        return self.store.put(payload.model_copy(update=update))

    def delete(self, record_id: UUID | str) -> None:
        self.store.delete(record_id)

    def complete(self, record_id: UUID | str) -> ClientRecordRead:
        return self.lifecycle.complete(record_id)

    def reactivate(self, record_id: UUID | str) -> ClientRecordRead:
        return self.lifecycle.reactivate(record_id)

    def search(self, term: str | None, field: query.SearchField | str = query.SearchField.ALL) -> list[ClientRecordRead]:
        return query.search(self.store.get_all(), term, field)

    def frame_options(self) -> list[str]:
        return query.distinct_frame_options(self.store.get_all())

    def export_json(self) -> str:
        return self.backup.export_json()

    def export_csv(self) -> str:
        return self.backup.export_csv()

    def import_json(self, content: str | bytes) -> ImportResult:
        return self.backup.import_json(content)

    def import_csv(self, content: str | bytes) -> ImportResult:
        return self.backup.import_csv(content)

    def import_file(self, content: str | bytes) -> ImportResult:
        return self.backup.import_any(content)

    def stats(self) -> StorageStats:
        return self.backup.stats()

    def clear_all(self) -> int:
        return self.store.clear()
