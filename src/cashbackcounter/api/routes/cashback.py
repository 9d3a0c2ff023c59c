from fastapi import APIRouter, Depends

from cashbackcounter.api.deps import get_service
from cashbackcounter.domain.models import CashbackQuote
from cashbackcounter.schemas.requests import PreviewRequest
from cashbackcounter.services.ledger_service import LedgerService

router = APIRouter(tags=["cashback"])


@router.post("/cashback/preview", response_model=CashbackQuote)
def preview(request: PreviewRequest, service: LedgerService = Depends(get_service)) -> CashbackQuote:
    return service.preview(request)
