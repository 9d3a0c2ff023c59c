import datetime as dt

from pydantic import BaseModel, Field

from cashbackcounter.domain.catalog import Category, Region


class PreviewRequest(BaseModel):
    card_id: str | None = None
    amount: float = Field(gt=0)
    category: Category = Category.OTHER
    region: Region = Region.CN
    date: dt.date | None = None


class TransactionCreate(BaseModel):
    merchant: str
    category: Category = Category.OTHER
    region: Region = Region.CN
    amount: float = Field(gt=0)
    billing_amount: float | None = Field(default=None, gt=0)
    date: dt.date
    card_id: str | None = None


class TransactionUpdate(BaseModel):
    merchant: str | None = None
    category: Category | None = None
    region: Region | None = None
    amount: float | None = Field(default=None, gt=0)
    billing_amount: float | None = Field(default=None, gt=0)
    date: dt.date | None = None
    card_id: str | None = None


class IncomeCreate(BaseModel):
    amount: float = Field(gt=0)
    date: dt.date
    region: Region = Region.CN
    detail: str = ""
    platform: str = ""
    transaction_id: str | None = None
