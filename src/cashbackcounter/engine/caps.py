"""Periodic cap accounting.

Caps bound the cumulative reward earned within an accounting period, not the
spend. Two independent buckets apply to every transaction: the base bucket
(local or foreign, depending on whether the spend is cross-border) and, when
the card caps the transaction's category, a category bucket. A cap of 0 is
unlimited.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.models import Card, Transaction
from cashbackcounter.engine.rates import is_cross_border

logger = logging.getLogger(__name__)


def period_bounds(day: date, period: CapPeriod) -> tuple[date, date]:
    """Return the half-open ``[start, end)`` period containing ``day``."""
    if period == CapPeriod.MONTHLY:
        start = day.replace(day=1)
        if day.month == 12:
            return start, date(day.year + 1, 1, 1)
        return start, date(day.year, day.month + 1, 1)
    return date(day.year, 1, 1), date(day.year + 1, 1, 1)


def period_history(
    transactions: Iterable[Transaction],
    card: Card,
    day: date,
    exclude_id: str | None = None,
) -> list[Transaction]:
    """Transactions on ``card`` inside the cap period that contains ``day``."""
    start, end = period_bounds(day, card.cap_period)
    return [
        txn
        for txn in transactions
        if txn.card_id == card.id and start <= txn.date < end and txn.id != exclude_id
    ]


def _remaining(cap: float, used: float) -> float:
    if cap <= 0:
        return math.inf
    return max(cap - used, 0.0)


class CapLedger:
    def __init__(self, card: Card):
        self.card = card
        self.base_used = {False: 0.0, True: 0.0}
        self.category_used: dict[Category, float] = defaultdict(float)

    @classmethod
    def from_history(cls, card: Card, history: Iterable[Transaction]) -> "CapLedger":
        """Build running totals from rewards already granted in one period.

        ``history`` must already be restricted to the card and period, see
        :func:`period_history`.
        """
        ledger = cls(card)
        for txn in history:
            ledger.record(txn.cashback_amount, txn.category, txn.region)
        return ledger

    def record(self, reward: float, category: Category, region: Region) -> None:
        self.base_used[is_cross_border(self.card, region)] += reward
        self.category_used[category] += reward

    def base_headroom(self, region: Region) -> float:
        foreign = is_cross_border(self.card, region)
        cap = self.card.foreign_cap if foreign else self.card.local_cap
        return _remaining(cap, self.base_used[foreign])

    def category_headroom(self, category: Category) -> float:
        cap = self.card.category_caps.get(category, 0)
        return _remaining(cap, self.category_used[category])

    def clamp_with_reason(self, proposed: float, category: Category, region: Region) -> tuple[float, str | None]:
        base = self.base_headroom(region)
        per_category = self.category_headroom(category)
        allowed = min(proposed, base, per_category)

        binding = None
        if allowed < proposed:
            binding = "category cap" if per_category <= base else "base cap"
            logger.debug(
                "Clamped %.2f to %.2f on %s (%s)", proposed, allowed, self.card.display_name, binding
            )
        return round(allowed, 2), binding

    def clamp(self, proposed: float, category: Category, region: Region) -> float:
        return self.clamp_with_reason(proposed, category, region)[0]


def clamp(
    proposed_reward: float,
    category: Category,
    region: Region,
    card: Card,
    history: Iterable[Transaction],
) -> float:
    return CapLedger.from_history(card, history).clamp(proposed_reward, category, region)
