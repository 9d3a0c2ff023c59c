from datetime import date

import pytest

from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.ledger import Ledger
from cashbackcounter.domain.models import Card, Income
from cashbackcounter.domain.templates import default_templates, template_key
from cashbackcounter.errors import LedgerLookupError
from cashbackcounter.repository.ledger_store import LedgerStore


def test_removing_card_nullifies_transactions(dining_card, make_txn) -> None:
    kept = make_txn(dining_card, cashback_amount=5.0)
    ledger = Ledger(cards=[dining_card], transactions=[kept])

    ledger.remove_card(dining_card.id)

    assert ledger.cards == []
    assert ledger.transactions == [kept]
    assert kept.card_id is None
    assert kept.cashback_amount == 5.0


def test_removing_transaction_nullifies_incomes(dining_card, make_txn) -> None:
    txn = make_txn(dining_card)
    income = Income(amount=20, date=date(2025, 3, 6), transaction_id=txn.id)
    ledger = Ledger(cards=[dining_card], transactions=[txn], incomes=[income])

    ledger.remove_transaction(txn.id)

    assert ledger.incomes == [income]
    assert income.transaction_id is None


def test_unknown_ids_raise_lookup_error() -> None:
    with pytest.raises(LedgerLookupError):
        Ledger().remove_card("missing")
    with pytest.raises(KeyError):
        Ledger().get_transaction("missing")


def test_income_currency_follows_region() -> None:
    assert Income(amount=1, date=date(2025, 1, 1), region=Region.HK).currency_code == "HKD"
    assert Income(amount=1, date=date(2025, 1, 1), currency_code="JPY").currency_code == "JPY"


def test_apply_template_keeps_identity(dining_card) -> None:
    ledger = Ledger(cards=[dining_card])
    ledger.sync_default_templates()
    key = template_key("信銀國際", "大灣區雙幣信用卡")

    card = ledger.apply_template(dining_card.id, key)

    assert card.id == dining_card.id
    assert card.suffix == "4896"
    assert card.template_key == key
    assert card.default_rate == pytest.approx(0.04)
    assert card.category_rates == pytest.approx({Category.OTHER: 0.06})
    assert card.category_caps == {Category.OTHER: 3000}
    assert card.cap_period == CapPeriod.MONTHLY


def test_sync_templates_is_idempotent_and_refreshes_cards() -> None:
    ledger = Ledger()
    ledger.sync_default_templates()
    ledger.sync_default_templates()
    assert len(ledger.templates) == len(default_templates())

    template = ledger.templates[0]
    card = template.make_card(suffix="0001")
    card.default_rate = 0.5
    ledger.cards.append(card)

    assert ledger.refresh_cards_from_templates() == 1
    assert card.default_rate == template.default_rate


def test_next_repayment_date_clamps_to_month_end() -> None:
    card = Card(bank_name="B", card_type="T", suffix="1", repayment_day=31)

    assert card.next_repayment_date(date(2025, 2, 10)) == date(2025, 2, 28)
    assert card.next_repayment_date(date(2025, 2, 28)) == date(2025, 3, 31)
    assert card.next_repayment_date(date(2025, 12, 31)) == date(2026, 1, 31)


def test_repayment_reminder_disabled_by_default() -> None:
    assert Card(bank_name="B", card_type="T", suffix="1").next_repayment_date(date(2025, 1, 1)) is None


def test_rates_outside_unit_interval_are_rejected() -> None:
    with pytest.raises(ValueError):
        Card(bank_name="B", card_type="T", suffix="1", default_rate=1.5)
    with pytest.raises(ValueError):
        Card(bank_name="B", card_type="T", suffix="1", category_rates={Category.DINING: -0.1})


def test_store_round_trips_binary_receipts(tmp_path, dining_card, make_txn) -> None:
    store = LedgerStore(tmp_path / "nested" / "ledger.json")
    txn = make_txn(dining_card, receipt=b"\xff\xd8\xff\xe0 jpeg")
    store.save(Ledger(cards=[dining_card], transactions=[txn]))

    loaded = store.load()

    assert loaded.transactions[0].receipt == b"\xff\xd8\xff\xe0 jpeg"
    assert loaded.cards[0].category_rates == {Category.DINING: 0.05}
    assert [path.name for path in (tmp_path / "nested").iterdir()] == ["ledger.json"]


def test_missing_store_file_means_empty_ledger(tmp_path) -> None:
    assert LedgerStore(tmp_path / "absent.json").load() == Ledger()
