from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from cashbackcounter.api.deps import get_service
from cashbackcounter.domain.models import Income
from cashbackcounter.schemas.requests import IncomeCreate, TransactionCreate, TransactionUpdate
from cashbackcounter.schemas.responses import TransactionView
from cashbackcounter.services.ledger_service import LedgerService

router = APIRouter(tags=["transactions"])


@router.get("/transactions", response_model=list[TransactionView])
def list_transactions(service: LedgerService = Depends(get_service)) -> list[TransactionView]:
    return [TransactionView.from_transaction(txn) for txn in service.list_transactions()]


@router.post("/transactions", response_model=TransactionView, status_code=201)
def add_transaction(request: TransactionCreate, service: LedgerService = Depends(get_service)) -> TransactionView:
    return TransactionView.from_transaction(service.add_transaction(request))


@router.patch("/transactions/{transaction_id}", response_model=TransactionView)
def edit_transaction(
    transaction_id: str,
    changes: TransactionUpdate,
    service: LedgerService = Depends(get_service),
) -> TransactionView:
    return TransactionView.from_transaction(service.edit_transaction(transaction_id, changes))


@router.put("/transactions/{transaction_id}/receipt", response_model=TransactionView)
async def attach_receipt(
    transaction_id: str,
    request: Request,
    service: LedgerService = Depends(get_service),
) -> TransactionView:
    data = await request.body()
    return TransactionView.from_transaction(await run_in_threadpool(service.attach_receipt, transaction_id, data))


@router.delete("/transactions/{transaction_id}", response_model=TransactionView)
def delete_transaction(transaction_id: str, service: LedgerService = Depends(get_service)) -> TransactionView:
    return TransactionView.from_transaction(service.delete_transaction(transaction_id))


@router.post("/incomes", response_model=Income, status_code=201)
def add_income(request: IncomeCreate, service: LedgerService = Depends(get_service)) -> Income:
    return service.add_income(request)
