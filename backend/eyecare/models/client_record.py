from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON
from sqlmodel import Field

from eyecare.models.base import TimestampedModel, UUIDModel


class ClientStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ClientRecord(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "client_records"

    client_code: str = Field(unique=True, index=True, max_length=64)
    name: str = Field(index=True, max_length=255)
    mobile: str = Field(index=True, max_length=32)
    email: str | None = Field(default=None, index=True, max_length=255)

    left_eye: dict = Field(default_factory=dict, sa_type=JSON)
    right_eye: dict = Field(default_factory=dict, sa_type=JSON)
    pupil_distance: float | None = Field(default=None)

    frame_option: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None)

    status: ClientStatus | None = Field(default=ClientStatus.ACTIVE, index=True)
    completed_at: datetime | None = Field(default=None)
