from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from eyecare.api.deps import get_record_service
from eyecare.schemas.client_record import ImportResult, StorageStats
from eyecare.services.backup import backup_filename
from eyecare.services.client_record import ClientRecordService

router = APIRouter(prefix="/backup", tags=["backup"])

Service = Annotated[ClientRecordService, Depends(get_record_service)]


async def _read_upload(file: UploadFile) -> bytes:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")
    return data


@router.get("/export/json")
def export_json(service: Service) -> Response:
    content = service.export_json()
    headers = {"Content-Disposition": f'attachment; filename="{backup_filename("json")}"'}
    return Response(content=content.encode("utf-8"), media_type="application/json", headers=headers)


@router.get("/export/csv")
def export_csv(service: Service) -> Response:
    content = service.export_csv()
    headers = {"Content-Disposition": f'attachment; filename="{backup_filename("csv")}"'}
    return Response(content=content.encode("utf-8"), media_type="text/csv; charset=utf-8", headers=headers)


@router.post("/import", response_model=ImportResult)
async def import_file(service: Service, file: UploadFile = File(...)) -> ImportResult:
    return service.import_file(await _read_upload(file))


@router.post("/import/json", response_model=ImportResult)
async def import_json(service: Service, file: UploadFile = File(...)) -> ImportResult:
    return service.import_json(await _read_upload(file))


@router.post("/import/csv", response_model=ImportResult)
async def import_csv(service: Service, file: UploadFile = File(...)) -> ImportResult:
    return service.import_csv(await _read_upload(file))


@router.get("/stats", response_model=StorageStats)
def storage_stats(service: Service) -> StorageStats:
    return service.stats()
