from collections.abc import Iterable, Mapping
from datetime import date

from cashbackcounter.domain.catalog import Category, Region
from cashbackcounter.domain.models import Card, CashbackQuote, Transaction
from cashbackcounter.engine.caps import CapLedger, period_bounds, period_history
from cashbackcounter.engine.rates import resolve_rate, resolve_rate_with_reason


class CashbackCalculator:
    """Rate resolution followed by cap clamping.

    Stateless apart from configuration: the caller passes the transaction
    history that the cap buckets are computed from, so the same instance can
    serve committed saves, previews and bulk re-derivation.
    """

    def __init__(self, enforce_caps: bool = True):
        self.enforce_caps = enforce_caps

    def quote(
        self,
        amount: float,
        category: Category,
        region: Region,
        card: Card | None,
        on: date,
        history: Iterable[Transaction] = (),
        exclude_id: str | None = None,
    ) -> CashbackQuote:
        if card is None:
            return CashbackQuote(
                card_id=None,
                rate=0,
                rate_source="no card",
                proposed=0,
                cashback=0,
                reasoning="no card attached, cashback=0.00",
            )

        rate, reason = resolve_rate_with_reason(category, region, card)
        proposed = round(amount * rate, 2)
        cashback, binding = proposed, None

        if self.enforce_caps:
            ledger = CapLedger.from_history(card, period_history(history, card, on, exclude_id))
            cashback, binding = ledger.clamp_with_reason(proposed, category, region)

        reasoning = f"rate={rate:.2%} ({reason}), proposed={proposed:.2f}, cashback={cashback:.2f}"
        if binding:
            reasoning += f", limited by {binding}"

        return CashbackQuote(
            card_id=card.id,
            rate=rate,
            rate_source=reason,
            proposed=proposed,
            cashback=cashback,
            binding_cap=binding,
            reasoning=reasoning,
        )

    def compute(
        self,
        transaction: Transaction,
        card: Card | None,
        history: Iterable[Transaction] = (),
    ) -> float:
        return self.quote(
            amount=transaction.billing_amount,
            category=transaction.category,
            region=transaction.region,
            card=card,
            on=transaction.date,
            history=history,
            exclude_id=transaction.id,
        ).cashback

    def preview(
        self,
        amount: float,
        category: Category,
        region: Region,
        card: Card | None,
        on: date,
        history: Iterable[Transaction] = (),
    ) -> float:
        return self.quote(amount, category, region, card, on, history).cashback

    def rederive(
        self,
        transactions: Iterable[Transaction],
        cards: Mapping[str, Card],
        history: Iterable[Transaction] = (),
    ) -> dict[str, float]:
        """Recompute every reward in date order with running cap totals.

        ``history`` holds already-settled transactions whose rewards count
        against the same caps. Returns ``{transaction_id: cashback}``; the
        transactions are not modified.
        """
        settled = list(history)
        results: dict[str, float] = {}
        ledgers: dict[tuple[str, date], CapLedger] = {}

        for txn in sorted(transactions, key=lambda item: item.date):
            card = cards.get(txn.card_id) if txn.card_id else None
            if card is None:
                results[txn.id] = 0.0
                continue

            reward = round(txn.billing_amount * resolve_rate(txn.category, txn.region, card), 2)
            if self.enforce_caps:
                key = (card.id, period_bounds(txn.date, card.cap_period)[0])
                if key not in ledgers:
                    ledgers[key] = CapLedger.from_history(card, period_history(settled, card, txn.date))
                ledger = ledgers[key]
                reward = ledger.clamp(reward, txn.category, txn.region)
                ledger.record(reward, txn.category, txn.region)
            results[txn.id] = reward

        return results
