from datetime import date

import pytest

from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.models import Card, Transaction
from cashbackcounter.repository.ledger_store import LedgerStore
from cashbackcounter.services.ledger_service import LedgerService


@pytest.fixture
def dining_card() -> Card:
    return Card(
        bank_name="HSBC",
        card_type="Pulse",
        suffix="4896",
        colors=["DB0011", "1A1A1A"],
        issue_region=Region.CN,
        default_rate=0.01,
        category_rates={Category.DINING: 0.05},
        foreign_rate=0.03,
        cap_period=CapPeriod.MONTHLY,
    )


@pytest.fixture
def service(tmp_path) -> LedgerService:
    return LedgerService(LedgerStore(tmp_path / "ledger.json"))


def _make_txn(card: Card | None, **overrides) -> Transaction:
    fields = {
        "merchant": "Starbucks",
        "category": Category.DINING,
        "region": Region.CN,
        "amount": 100.0,
        "date": date(2025, 3, 5),
        "card_id": card.id if card else None,
    }
    fields.update(overrides)
    return Transaction(**fields)


@pytest.fixture
def make_txn():
    return _make_txn
