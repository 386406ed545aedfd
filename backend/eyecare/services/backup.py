from __future__ import annotations

import csv
import io
import json
import math
from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid5

from pydantic import ValidationError as PydanticValidationError

from eyecare.core.config import settings
from eyecare.core.exceptions import ParseError, ValidationError, Violation
from eyecare.core.logging_setup import logger
from eyecare.models.base import utcnow
from eyecare.schemas.client_record import (
    RESTORE_CONTEXT,
    BackupEnvelope,
    ClientRecordRead,
    ClientRecordWrite,
    ImportResult,
    StorageStats,
)
from eyecare.services.record_store import RecordStore

REQUIRED_FIELDS = ("name", "mobile", "clientCode", "leftEye", "rightEye")

CSV_HEADERS = [
    "Client Code",
    "Name",
    "Mobile",
    "Email",
    "Right Eye SPH",
    "Right Eye CYL",
    "Right Eye AXIS",
    "Right Eye ADD",
    "Left Eye SPH",
    "Left Eye CYL",
    "Left Eye AXIS",
    "Left Eye ADD",
    "Pupil Distance",
    "Notes",
    "Created Date",
    "Updated Date",
]
CSV_MIN_COLUMNS = 6
_READING_FIELDS = ("spherical", "cylindrical", "axis", "add_power")

# ids from the old IndexedDB backups were auto-increment integers
_LEGACY_ID_NAMESPACE = UUID("5b1f3c62-8d0e-4c55-9a43-2f6c1e7d9a10")


def backup_filename(kind: str, today: date | None = None) -> str:
    stamp = (today or utcnow().date()).isoformat()
    if kind == "json":
        return f"eyecare_backup_{stamp}.json"
    if kind == "csv":
        return f"eyecare_data_{stamp}.csv"
    raise ValueError(f"Unknown export kind: {kind}")


def format_bytes(size: int, decimals: int = 2) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = min(int(math.log(size, 1024)), len(units) - 1)
    value = round(size / (1024 ** exponent), max(decimals, 0))
    return f"{value:g} {units[exponent]}"


def detect_format(text: str) -> str:
    head = text.lstrip("\ufeff \t\r\n")[:1]
    return "json" if head in ("{", "[") else "csv"


def validate_records(candidates: list[Any]) -> tuple[list[ClientRecordWrite], list[Violation]]:
    """Check every candidate and collect violations instead of stopping at the first one."""
    records: list[ClientRecordWrite] = []
    violations: list[Violation] = []
    for index, candidate in enumerate(candidates):
        if not isinstance(candidate, dict):
            violations.append(Violation(index, "record", "must be an object"))
            continue
        missing = [field for field in REQUIRED_FIELDS if _is_missing(candidate.get(field))]
        if missing:
            violations.extend(Violation(index, field, "is required") for field in missing)
            continue
        payload = dict(candidate)
        if "id" in payload:
            payload["id"] = _coerce_id(payload["id"])
        try:
            records.append(ClientRecordWrite.model_validate(payload, context=RESTORE_CONTEXT))
        except PydanticValidationError as exc:
            for error in exc.errors():
                location = ".".join(str(part) for part in error["loc"]) or "record"
                violations.append(Violation(index, location, error["msg"]))
    return records, violations


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _coerce_id(value: Any) -> Any:
    if value is None or isinstance(value, UUID):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return uuid5(_LEGACY_ID_NAMESPACE, str(value))
    if isinstance(value, str) and value.strip().isdigit():
        return uuid5(_LEGACY_ID_NAMESPACE, value.strip())
    return value


def _decode(content: str | bytes) -> str:
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"File is not valid UTF-8 text (byte {exc.start})") from exc


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        # shortest exact text, whole numbers without the trailing .0
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class BackupService:
    def __init__(
        self,
        store: RecordStore,
        *,
        export_version: str | None = None,
        atomic: bool | None = None,
    ) -> None:
        self.store = store
        self.export_version = export_version or settings.export_version
        self.atomic = settings.import_atomic if atomic is None else atomic

    # Export -------------------------------------------------------------
    def build_envelope(self) -> BackupEnvelope:
        users = self.store.get_all()
        return BackupEnvelope(
            version=self.export_version,
            export_date=utcnow(),
            total_users=len(users),
            users=users,
        )

    def export_json(self) -> str:
        envelope = self.build_envelope()
        text = json.dumps(envelope.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)
        logger.info("Backup JSON exportado: %s registros", envelope.total_users)
        return text

    def export_csv(self) -> str:
        users = self.store.get_all()
        if not users:
            raise ValidationError("No data to export")
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for user in users:
            writer.writerow([_cell(value) for value in self._csv_row(user)])
        logger.info("CSV exportado: %s registros", len(users))
        return buffer.getvalue()

    @staticmethod
    def _csv_row(user: ClientRecordRead) -> list[Any]:
        return [
            user.client_code,
            user.name,
            user.mobile,
            user.email,
            *(getattr(user.right_eye, field) for field in _READING_FIELDS),
            *(getattr(user.left_eye, field) for field in _READING_FIELDS),
            user.pupil_distance,
            user.notes,
            user.created_at,
            user.updated_at,
        ]

    # Import -------------------------------------------------------------
    def import_any(self, content: str | bytes) -> ImportResult:
        text = _decode(content)
        if detect_format(text) == "json":
            return self.import_json(text)
        return self.import_csv(text)

    def import_json(self, content: str | bytes) -> ImportResult:
        text = _decode(content)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Malformed JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}") from exc

        if isinstance(payload, list):
            users = payload
        elif isinstance(payload, dict):
            if "users" not in payload:
                raise ValidationError("Invalid backup file format", [Violation(None, "users", "is required")])
            users = payload["users"]
            if not isinstance(users, list):
                raise ValidationError("Invalid backup file format", [Violation(None, "users", "must be a list")])
        else:
            raise ValidationError("Invalid backup file format", [Violation(None, "users", "is required")])

        records, violations = validate_records(users)
        if violations:
            raise ValidationError("Invalid user data", violations)

        imported = self.store.import_batch(records, atomic=self.atomic)
        logger.info("Backup JSON importado: %s registros", len(imported))
        return ImportResult(format="json", imported=len(imported))

    def import_csv(self, content: str | bytes) -> ImportResult:
        text = _decode(content)
        try:
            rows = list(csv.reader(io.StringIO(text)))
        except csv.Error as exc:
            raise ParseError(f"Malformed CSV: {exc}") from exc
        if len(rows) < 2:
            raise ValidationError("CSV file appears to be empty")

        records: list[ClientRecordWrite] = []
        skipped = 0
        for line_number, row in enumerate(rows[1:], start=2):
            columns = [cell.strip() for cell in row]
            if not any(columns):
                continue
            if len(columns) < CSV_MIN_COLUMNS:
                skipped += 1
                continue
            record = self._record_from_columns(columns, line_number)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        if not records:
            raise ValidationError("No valid user data found in CSV")

        imported = self.store.import_batch(records, atomic=self.atomic)
        logger.info("CSV importado: %s registros, %s linhas ignoradas", len(imported), skipped)
        return ImportResult(format="csv", imported=len(imported), skipped=skipped)

    @staticmethod
    def _record_from_columns(columns: list[str], line_number: int) -> ClientRecordWrite | None:
        padded = columns + [""] * (len(CSV_HEADERS) - len(columns))
        if not padded[1] or not padded[2]:
            return None
        try:
            return ClientRecordWrite.model_validate(
                {
                    "client_code": padded[0],
                    "name": padded[1],
                    "mobile": padded[2],
                    "email": padded[3],
                    "right_eye": dict(zip(_READING_FIELDS, padded[4:8])),
                    "left_eye": dict(zip(_READING_FIELDS, padded[8:12])),
                    "pupil_distance": padded[12],
                    "notes": padded[13],
                },
                context=RESTORE_CONTEXT,
            )
        except PydanticValidationError as exc:
            fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
            logger.warning("Linha %s do CSV ignorada (%s)", line_number, fields)
            return None

    # Statistics ---------------------------------------------------------
    def stats(self) -> StorageStats:
        users = self.store.get_all()
        serialized = json.dumps([user.model_dump(mode="json", by_alias=True) for user in users])
        size = len(serialized.encode("utf-8"))
        return StorageStats(
            total_users=len(users),
            data_size=size,
            data_size_formatted=format_bytes(size),
            last_modified=max((user.updated_at for user in users), default=None),
        )
