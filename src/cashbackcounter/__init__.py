from cashbackcounter.codec.archive import pack, receipt_filename, unpack
from cashbackcounter.codec.csv_codec import decode_cards, decode_transactions, encode_cards, encode_transactions
from cashbackcounter.codec.reconcile import reconcile_card
from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.ledger import Ledger
from cashbackcounter.domain.models import Card, CashbackQuote, Income, Transaction
from cashbackcounter.domain.templates import CardTemplate
from cashbackcounter.engine.calculator import CashbackCalculator
from cashbackcounter.engine.caps import CapLedger, clamp
from cashbackcounter.engine.rates import resolve_rate

__all__ = [
    "CapLedger",
    "CapPeriod",
    "Card",
    "CardTemplate",
    "CashbackCalculator",
    "CashbackQuote",
    "Category",
    "Income",
    "Ledger",
    "Region",
    "Transaction",
    "clamp",
    "decode_cards",
    "decode_transactions",
    "encode_cards",
    "encode_transactions",
    "pack",
    "receipt_filename",
    "reconcile_card",
    "resolve_rate",
    "unpack",
]
