from typing import Annotated

from fastapi import APIRouter, Depends

from eyecare.api.deps import get_database
from eyecare.core.exceptions import StorageUnavailable
from eyecare.db.session import Database

router = APIRouter(tags=["health"])


@router.get("/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
def ready(database: Annotated[Database, Depends(get_database)]) -> dict[str, str]:
    if not database.is_open:
        raise StorageUnavailable("Database is not open")
    return {"status": "ready"}
