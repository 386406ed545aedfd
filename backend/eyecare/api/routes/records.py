from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from eyecare.api.deps import get_record_service
from eyecare.models.client_record import ClientStatus
from eyecare.schemas.client_record import ClientRecordRead, ClientRecordWrite
from eyecare.services.client_record import ClientRecordService
from eyecare.services.query import SearchField, SortKey

router = APIRouter(prefix="/records", tags=["records"])

Service = Annotated[ClientRecordService, Depends(get_record_service)]


@router.get("", response_model=list[ClientRecordRead])
def load_all(
    service: Service,
    record_status: ClientStatus | None = Query(None, alias="status"),
    sort: SortKey | None = Query(None),
) -> list[ClientRecordRead]:
    return service.load_all(status=record_status, sort=sort)


@router.post("", response_model=ClientRecordRead)
def save_record(payload: ClientRecordWrite, service: Service) -> ClientRecordRead:
    return service.save(payload)


@router.delete("")
def clear_all(service: Service) -> dict[str, int]:
    return {"removed": service.clear_all()}


@router.get("/search", response_model=list[ClientRecordRead])
def search_records(
    service: Service,
    term: str = Query(""),
    field: SearchField = Query(SearchField.ALL),
) -> list[ClientRecordRead]:
    return service.search(term, field)


@router.get("/frame-options")
def frame_options(service: Service) -> list[str]:
    return service.frame_options()


@router.get("/by-code/{client_code}", response_model=ClientRecordRead)
def get_by_client_code(client_code: str, service: Service) -> ClientRecordRead:
    return service.get_by_client_code(client_code)


@router.get("/{record_id}", response_model=ClientRecordRead)
def get_record(record_id: UUID, service: Service) -> ClientRecordRead:
    return service.get(record_id)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_record(record_id: UUID, service: Service) -> Response:
    service.delete(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{record_id}/complete", response_model=ClientRecordRead)
def complete_record(record_id: UUID, service: Service) -> ClientRecordRead:
    return service.complete(record_id)


@router.post("/{record_id}/reactivate", response_model=ClientRecordRead)
def reactivate_record(record_id: UUID, service: Service) -> ClientRecordRead:
    return service.reactivate(record_id)
