from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from eyecare.core.exceptions import ConstraintViolation, StorageUnavailable
from eyecare.core.logging_setup import logger
from eyecare.db.session import Database
from eyecare.models.base import as_utc, utcnow
from eyecare.models.client_record import ClientRecord, ClientStatus
from eyecare.schemas.client_record import RESTORE_CONTEXT, ClientRecordRead, ClientRecordWrite


def collation_key(value: str | None) -> tuple[str, str]:
    """Accent and case insensitive ordering key, original text as tie-break."""
    text = value or ""
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return folded, text


def _parse_id(record_id: UUID | str | None) -> UUID | None:
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id))
    except ValueError:
        return None


class RecordStore:
    def __init__(self, database: Database) -> None:
        self.database = database

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self.database.session() as session:
                yield session
        except OperationalError as exc:
            logger.error("Storage failure: %s", exc)
            raise StorageUnavailable(f"Storage unavailable: {exc.orig}") from exc

    # Reads --------------------------------------------------------------
    def get_all(self) -> list[ClientRecordRead]:
        with self._session() as session:
            rows = session.exec(select(ClientRecord)).all()
            records = [self._to_read(row) for row in rows]
        return sorted(records, key=lambda record: collation_key(record.name))

    def get_by_id(self, record_id: UUID | str) -> ClientRecordRead | None:
        parsed = _parse_id(record_id)
        if parsed is None:
            return None
        with self._session() as session:
            row = session.get(ClientRecord, parsed)
            return self._to_read(row) if row else None

    def get_by_client_code(self, client_code: str) -> ClientRecordRead | None:
        with self._session() as session:
            statement = select(ClientRecord).where(ClientRecord.client_code == client_code)
            row = session.exec(statement).first()
            return self._to_read(row) if row else None

    # Writes -------------------------------------------------------------
    def put(self, record: ClientRecordWrite) -> ClientRecordRead:
        with self._session() as session:
            row = self._apply(session, record)
            self._commit(session, record.client_code)
            logger.info("Registro salvo: %s (%s)", row.id, row.client_code)
            return self._to_read(row)

    def delete(self, record_id: UUID | str) -> bool:
        parsed = _parse_id(record_id)
        if parsed is None:
            return False
        with self._session() as session:
            row = session.get(ClientRecord, parsed)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Registro removido: %s", record_id)
        return True

    def clear(self) -> int:
        with self._session() as session:
            rows = session.exec(select(ClientRecord)).all()
            for row in rows:
                session.delete(row)
            session.commit()
        removed = len(rows)
        logger.warning("Todos os registros removidos (%s)", removed)
        return removed

    def import_batch(self, records: Iterable[ClientRecordWrite], *, atomic: bool = True) -> list[ClientRecordRead]:
        """Upsert ``records`` by id, in order.

        With ``atomic`` the batch is one transaction and a failure leaves the
        store untouched. Without it every put commits on its own, so a failure
        keeps the puts that came before it.
        """
        if not atomic:
            return [self.put(record) for record in records]

        with self._session() as session:
            rows: list[ClientRecord] = []
            for record in records:
                rows.append(self._apply(session, record))
                self._flush(session, record.client_code)
            self._commit(session, None)
            logger.info("Lote importado: %s registros", len(rows))
            return [self._to_read(row) for row in rows]

    # Helpers ------------------------------------------------------------
    def _apply(self, session: Session, record: ClientRecordWrite) -> ClientRecord:
        record_id = record.id or uuid4()
        holder = session.exec(
            select(ClientRecord).where(ClientRecord.client_code == record.client_code)
        ).first()
        if holder is not None and holder.id != record_id:
            raise ConstraintViolation(f"Client code {record.client_code!r} already belongs to another record")

        now = utcnow()
        row = session.get(ClientRecord, record_id)
        if row is None:
            row = ClientRecord(id=record_id, created_at=record.created_at or now)
        row.created_at = as_utc(row.created_at)
        row.updated_at = max(record.updated_at or now, row.created_at)

        data = record.model_dump(
            exclude={"id", "created_at", "updated_at", "completed_at", "left_eye", "right_eye"}
        )
        for field, value in data.items():
            setattr(row, field, value)
        row.left_eye = record.left_eye.model_dump()
        row.right_eye = record.right_eye.model_dump()

        if record.status == ClientStatus.COMPLETED:
            row.completed_at = record.completed_at or as_utc(row.completed_at) or row.updated_at
        else:
            row.completed_at = None

        session.add(row)
        return row

    def _flush(self, session: Session, client_code: str | None) -> None:
        try:
            session.flush()
        except IntegrityError as exc:
            session.rollback()
            raise ConstraintViolation(f"Client code {client_code!r} already exists") from exc

    def _commit(self, session: Session, client_code: str | None) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ConstraintViolation(f"Client code {client_code!r} already exists") from exc

    @staticmethod
    def _to_read(row: ClientRecord) -> ClientRecordRead:
        # stored values were accepted once, re-read them leniently
        return ClientRecordRead.model_validate(row, from_attributes=True, context=RESTORE_CONTEXT)
