from typing import Annotated

from fastapi import Depends, Request

from eyecare.db.session import Database
from eyecare.services.client_record import ClientRecordService
from eyecare.services.record_store import RecordStore


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_store(database: Annotated[Database, Depends(get_database)]) -> RecordStore:
    return RecordStore(database)


def get_record_service(store: Annotated[RecordStore, Depends(get_store)]) -> ClientRecordService:
    return ClientRecordService(store)
