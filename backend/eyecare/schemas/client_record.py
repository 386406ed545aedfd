from __future__ import annotations

import re
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field, ValidationInfo, field_validator

from eyecare.models.base import as_utc
from eyecare.models.client_record import ClientStatus
from eyecare.schemas.common import CamelModel, IDModel, Timestamped
from eyecare.utils import generate_client_code, normalize_email

MOBILE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")

# validation context for records read back from backup files
RESTORE_CONTEXT = {"restore": True}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class PrescriptionReading(CamelModel):
    spherical: float | None = None
    cylindrical: float | None = None
    axis: int | None = Field(default=None, ge=1, le=180)
    add_power: float | None = None

    @field_validator("spherical", "cylindrical", "axis", "add_power", mode="before")
    @classmethod
    def blank_values_are_absent(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)


class ClientRecordBase(CamelModel):
    client_code: str = Field(default_factory=generate_client_code, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    mobile: str = Field(min_length=1, max_length=32)
    email: str | None = None
    left_eye: PrescriptionReading = Field(default_factory=PrescriptionReading)
    right_eye: PrescriptionReading = Field(default_factory=PrescriptionReading)
    pupil_distance: float | None = Field(default=None, gt=0)
    frame_option: str | None = None
    notes: str | None = None
    status: ClientStatus = ClientStatus.ACTIVE

    @field_validator("client_code", mode="before")
    @classmethod
    def ensure_client_code(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return generate_client_code()
        return value.strip() if isinstance(value, str) else value

    @field_validator("name", "mobile", mode="before")
    @classmethod
    def strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("mobile")
    @classmethod
    def validate_mobile(cls, value: str) -> str:
        if not MOBILE_PATTERN.match(value):
            raise ValueError("Invalid mobile number format")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def validate_email_shape(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or isinstance(value, str):
            lenient = bool(info.context and info.context.get("restore"))
            return normalize_email(value, lenient=lenient)
        return value

    @field_validator("left_eye", "right_eye", mode="before")
    @classmethod
    def missing_reading_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("pupil_distance", "frame_option", "notes", mode="before")
    @classmethod
    def blank_optional_is_absent(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value: Any) -> Any:
        return ClientStatus.ACTIVE if value in (None, "") else value


class ClientRecordWrite(ClientRecordBase):
    """Payload accepted by ``RecordStore.put``; ``id`` is assigned when absent."""

    id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @field_validator("created_at", "updated_at", "completed_at")
    @classmethod
    def normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class ClientRecordRead(IDModel, Timestamped, ClientRecordBase):
    completed_at: datetime | None = None

    @field_validator("completed_at")
    @classmethod
    def normalize_completed_at(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def to_write(self) -> ClientRecordWrite:
        return ClientRecordWrite.model_validate(self.model_dump(), context=RESTORE_CONTEXT)


class BackupEnvelope(CamelModel):
    version: str
    export_date: datetime
    total_users: int
    users: list[ClientRecordRead]


class StorageStats(CamelModel):
    total_users: int
    data_size: int
    data_size_formatted: str
    last_modified: datetime | None = None


class ImportResult(CamelModel):
    format: str
    imported: int
    skipped: int = 0
