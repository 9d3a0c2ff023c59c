from functools import lru_cache

from cashbackcounter.config import settings
from cashbackcounter.engine.calculator import CashbackCalculator
from cashbackcounter.repository.ledger_store import LedgerStore
from cashbackcounter.services.ledger_service import LedgerService


@lru_cache
def get_service() -> LedgerService:
    return LedgerService(
        LedgerStore(settings.ledger_file),
        CashbackCalculator(enforce_caps=settings.enforce_caps),
    )
