from datetime import date

from pydantic import BaseModel

from cashbackcounter.domain.catalog import Category, Region
from cashbackcounter.domain.models import Transaction


class TransactionView(BaseModel):
    id: str
    merchant: str
    category: Category
    region: Region
    amount: float
    billing_amount: float
    date: date
    card_id: str | None
    cashback_amount: float
    has_receipt: bool

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionView":
        return cls(
            id=txn.id,
            merchant=txn.merchant,
            category=txn.category,
            region=txn.region,
            amount=txn.amount,
            billing_amount=txn.billing_amount,
            date=txn.date,
            card_id=txn.card_id,
            cashback_amount=txn.cashback_amount,
            has_receipt=txn.has_receipt,
        )


class ImportResponse(BaseModel):
    imported: int
