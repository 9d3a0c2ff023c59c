from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from cashbackcounter.api.deps import get_service
from cashbackcounter.config import settings
from cashbackcounter.errors import BackupError
from cashbackcounter.schemas.responses import ImportResponse
from cashbackcounter.services.ledger_service import LedgerService

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get("")
def download_backup(service: LedgerService = Depends(get_service)) -> Response:
    try:
        data = service.backup_bytes()
    except BackupError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    filename = f"Cashback_Export_{datetime.now():%Y%m%d_%H%M%S}.zip"
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("", response_model=ImportResponse)
async def upload_backup(
    request: Request,
    recompute: bool | None = None,
    service: LedgerService = Depends(get_service),
) -> ImportResponse:
    data = await request.body()
    if recompute is None:
        recompute = settings.recompute_on_import
    try:
        imported = await run_in_threadpool(service.import_backup_bytes, data, recompute)
    except BackupError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ImportResponse(imported=imported)
