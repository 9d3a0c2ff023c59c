"""Delimited-text codec for transactions and cards.

Columns are identified by position; the header row is written for humans
and skipped on import. Files start with a UTF-8 byte-order mark so that
spreadsheet tools open CJK text correctly.

Text fields are double-quoted with embedded quotes doubled. Line breaks
inside a field are flattened to spaces on export, so a multi-line merchant
name comes back as a single line.
"""

import csv
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date

from cashbackcounter.codec.reconcile import reconcile_card
from cashbackcounter.domain.catalog import Category, Region
from cashbackcounter.domain.models import DELETED_CARD_NAME, NO_CARD_SUFFIX, Card, Transaction

logger = logging.getLogger(__name__)

BOM = "\ufeff"

TRANSACTION_HEADER = (
    "交易时间,商户名称,消费类别,消费金额(原币),入账金额(本币),返现金额(本币),支付卡片,卡片尾号,消费地区"
)
TRANSACTION_COLUMNS = 9

CARD_HEADER = (
    "银行名称,卡种名称,尾号,颜色1(Hex),颜色2(Hex),地区(Code),本币返现率(%),外币返现率(%),本币上限,外币上限,"
    "餐饮加成(%),超市加成(%),出行加成(%),数码加成(%),其他加成(%),餐饮上限,超市上限,出行上限,数码上限,其他上限,还款日"
)
CARD_COLUMNS = 21

# Category column order in the card file.
CARD_CATEGORIES = [Category.DINING, Category.GROCERY, Category.TRAVEL, Category.DIGITAL, Category.OTHER]

ReceiptLoader = Callable[[str, date, int], bytes | None]


class RowError(ValueError):
    pass


def quote_field(text: str) -> str:
    flat = text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    return '"' + flat.replace('"', '""') + '"'


def split_row(line: str) -> list[str]:
    """Split one line on commas outside double quotes and unescape ``""``."""
    return next(csv.reader([line]), [])


def _money(value: float) -> str:
    return f"{value:.2f}"


def _percent(rate: float | None) -> str:
    return "" if rate is None else f"{rate * 100:.2f}"


def _cap(value: float | None) -> str:
    return f"{value:.2f}" if value else ""


def _data_lines(text: str) -> Iterable[tuple[int, str]]:
    """Yield ``(position, line)`` for data rows; position 1 is the first row after the header."""
    for index, raw in enumerate(text.lstrip(BOM).split("\n")):
        line = raw.rstrip()
        if index == 0 or not line:
            continue
        yield index, line


def _parse_float(raw: str, column: str) -> float:
    try:
        return float(raw.strip())
    except ValueError:
        raise RowError(f"{column} is not a number: {raw!r}") from None


def _parse_optional_float(raw: str, column: str) -> float | None:
    if not raw.strip():
        return None
    return _parse_float(raw, column)


# --- transactions -----------------------------------------------------------


def encode_transactions(transactions: Iterable[Transaction], cards: Mapping[str, Card]) -> str:
    lines = [TRANSACTION_HEADER]
    for txn in transactions:
        card = cards.get(txn.card_id) if txn.card_id else None
        card_name = quote_field(card.display_name) if card else DELETED_CARD_NAME
        suffix = card.suffix if card else NO_CARD_SUFFIX
        lines.append(
            ",".join(
                [
                    txn.date.isoformat(),
                    quote_field(txn.merchant),
                    txn.category.display_name,
                    _money(txn.amount),
                    _money(txn.billing_amount),
                    _money(txn.cashback_amount),
                    card_name,
                    suffix,
                    txn.region.display_name,
                ]
            )
        )
    return BOM + "\n".join(lines) + "\n"


def _decode_transaction_row(
    position: int,
    columns: list[str],
    cards: list[Card],
    receipt_loader: ReceiptLoader | None,
) -> Transaction:
    try:
        day = date.fromisoformat(columns[0].strip())
    except ValueError:
        raise RowError(f"bad date {columns[0]!r}") from None

    merchant = columns[1]
    amount = _parse_float(columns[3], "amount")
    billing = _parse_float(columns[4], "billing amount")
    cashback = _parse_float(columns[5], "cashback")
    card = reconcile_card(columns[6], columns[7], cards)

    receipt = receipt_loader(merchant, day, position) if receipt_loader else None

    return Transaction(
        merchant=merchant,
        category=Category.from_display_name(columns[2]),
        region=Region.from_label(columns[8], default=Region.CN),
        amount=amount,
        billing_amount=billing,
        date=day,
        card_id=card.id if card else None,
        receipt=receipt,
        cashback_amount=cashback,
    )


def decode_transactions(
    text: str,
    cards: Iterable[Card],
    receipt_loader: ReceiptLoader | None = None,
) -> list[Transaction]:
    """Parse a transactions file, skipping rows that cannot be read.

    ``receipt_loader`` is called with ``(merchant, date, position)`` where
    position is the row's 1-based place after the header.
    """
    known_cards = list(cards)
    transactions: list[Transaction] = []

    for position, line in _data_lines(text):
        columns = split_row(line)
        if len(columns) < TRANSACTION_COLUMNS:
            logger.warning(
                "Skipping transaction row %d: expected %d columns, got %d",
                position,
                TRANSACTION_COLUMNS,
                len(columns),
            )
            continue
        try:
            transactions.append(_decode_transaction_row(position, columns, known_cards, receipt_loader))
        except ValueError as exc:
            logger.warning("Skipping transaction row %d: %s", position, exc)

    return transactions


# --- cards ------------------------------------------------------------------


def encode_cards(cards: Iterable[Card]) -> str:
    lines = [CARD_HEADER]
    for card in cards:
        colors = card.colors or ["0000FF", "000000"]
        fields = [
            quote_field(card.bank_name),
            quote_field(card.card_type),
            card.suffix,
            colors[0],
            colors[-1],
            card.issue_region.value,
            _percent(card.default_rate),
            _percent(card.foreign_rate),
            _cap(card.local_cap),
            _cap(card.foreign_cap),
        ]
        fields.extend(_percent(card.category_rates.get(category)) for category in CARD_CATEGORIES)
        fields.extend(_cap(card.category_caps.get(category)) for category in CARD_CATEGORIES)
        fields.append(str(card.repayment_day) if card.repayment_day > 0 else "")
        lines.append(",".join(fields))
    return BOM + "\n".join(lines) + "\n"


def _decode_card_row(columns: list[str]) -> Card:
    category_rates = {}
    category_caps = {}
    for offset, category in enumerate(CARD_CATEGORIES):
        rate = _parse_optional_float(columns[10 + offset], f"{category.value} rate")
        if rate is not None:
            category_rates[category] = rate / 100
        cap = _parse_optional_float(columns[15 + offset], f"{category.value} cap")
        if cap:
            category_caps[category] = cap

    foreign_rate = _parse_optional_float(columns[7], "foreign rate")
    repayment_raw = columns[20].strip()

    return Card(
        bank_name=columns[0],
        card_type=columns[1],
        suffix=columns[2].strip(),
        colors=[columns[3].strip(), columns[4].strip()],
        issue_region=Region.from_label(columns[5], default=Region.CN),
        default_rate=(_parse_optional_float(columns[6], "default rate") or 0) / 100,
        foreign_rate=None if foreign_rate is None else foreign_rate / 100,
        local_cap=_parse_optional_float(columns[8], "local cap") or 0,
        foreign_cap=_parse_optional_float(columns[9], "foreign cap") or 0,
        category_rates=category_rates,
        category_caps=category_caps,
        repayment_day=int(repayment_raw) if repayment_raw else 0,
    )


def decode_cards(text: str) -> list[Card]:
    cards: list[Card] = []
    for position, line in _data_lines(text):
        columns = split_row(line)
        if len(columns) < CARD_COLUMNS:
            logger.warning(
                "Skipping card row %d: expected %d columns, got %d", position, CARD_COLUMNS, len(columns)
            )
            continue
        try:
            cards.append(_decode_card_row(columns))
        except ValueError as exc:
            logger.warning("Skipping card row %d: %s", position, exc)
    return cards
