from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from cashbackcounter.api.deps import get_service
from cashbackcounter.domain.models import Card
from cashbackcounter.errors import BackupError
from cashbackcounter.schemas.responses import ImportResponse
from cashbackcounter.services.ledger_service import LedgerService, cards_backup_filename

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("", response_model=list[Card])
def list_cards(service: LedgerService = Depends(get_service)) -> list[Card]:
    return service.list_cards()


@router.post("", response_model=Card, status_code=201)
def add_card(card: Card, service: LedgerService = Depends(get_service)) -> Card:
    return service.add_card(card)


@router.get("/export")
def export_cards(service: LedgerService = Depends(get_service)) -> Response:
    filename = cards_backup_filename(date.today())
    return Response(
        content=service.cards_csv().encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_cards(request: Request, service: LedgerService = Depends(get_service)) -> ImportResponse:
    data = await request.body()
    try:
        imported = await run_in_threadpool(service.import_cards_bytes, data)
    except BackupError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ImportResponse(imported=imported)


@router.post("/templates/sync", response_model=ImportResponse)
def sync_templates(service: LedgerService = Depends(get_service)) -> ImportResponse:
    return ImportResponse(imported=service.sync_templates())


@router.delete("/{card_id}", response_model=Card)
def delete_card(card_id: str, service: LedgerService = Depends(get_service)) -> Card:
    return service.delete_card(card_id)


@router.post("/{card_id}/template/{template_key}", response_model=Card)
def apply_template(card_id: str, template_key: str, service: LedgerService = Depends(get_service)) -> Card:
    return service.apply_template(card_id, template_key)
