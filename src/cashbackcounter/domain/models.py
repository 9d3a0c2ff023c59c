import calendar
from datetime import date
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cashbackcounter.domain.catalog import CapPeriod, Category, Region

Rate = float
NO_CARD_SUFFIX = "无卡"
DELETED_CARD_NAME = "已删除卡片"


def _new_id() -> str:
    return uuid4().hex


class Card(BaseModel):
    id: str = Field(default_factory=_new_id)
    bank_name: str
    card_type: str
    suffix: str
    colors: list[str] = Field(default_factory=lambda: ["0000FF", "000000"])
    issue_region: Region = Region.CN
    default_rate: Rate = Field(default=0, ge=0, le=1)
    category_rates: dict[Category, Rate] = Field(default_factory=dict)
    foreign_rate: Rate | None = Field(default=None, ge=0, le=1)
    local_cap: float = Field(default=0, ge=0)
    foreign_cap: float = Field(default=0, ge=0)
    category_caps: dict[Category, float] = Field(default_factory=dict)
    cap_period: CapPeriod = CapPeriod.YEARLY
    repayment_day: int = Field(default=0, ge=0, le=31)
    template_key: str | None = None

    @field_validator("suffix")
    @classmethod
    def _check_suffix(cls, value: str) -> str:
        # Written unquoted in both CSV files.
        if any(char in value for char in ',"\r\n'):
            raise ValueError(f"suffix may not contain commas, quotes or line breaks: {value!r}")
        return value

    @model_validator(mode="after")
    def _check_rule_tables(self) -> "Card":
        for category, rate in self.category_rates.items():
            if not 0 <= rate <= 1:
                raise ValueError(f"rate for {category.value} must be within [0, 1], got {rate}")
        for category, cap in self.category_caps.items():
            if cap < 0:
                raise ValueError(f"cap for {category.value} must be >= 0, got {cap}")
        return self

    @property
    def display_name(self) -> str:
        return f"{self.bank_name} {self.card_type}"

    def next_repayment_date(self, after: date) -> date | None:
        """Next date strictly after ``after`` falling on the repayment day.

        Short months clamp the day to their last day. Returns None when the
        reminder is disabled.
        """
        if self.repayment_day == 0:
            return None

        candidate = self._repayment_in(after.year, after.month)
        if candidate > after:
            return candidate
        if after.month == 12:
            return self._repayment_in(after.year + 1, 1)
        return self._repayment_in(after.year, after.month + 1)

    def _repayment_in(self, year: int, month: int) -> date:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(self.repayment_day, last_day))


class Transaction(BaseModel):
    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    id: str = Field(default_factory=_new_id)
    merchant: str
    category: Category = Category.OTHER
    region: Region = Region.CN
    amount: float
    billing_amount: float | None = None
    date: date
    card_id: str | None = None
    receipt: bytes | None = None
    cashback_amount: float = 0

    @model_validator(mode="after")
    def _default_billing_amount(self) -> "Transaction":
        if self.billing_amount is None:
            self.billing_amount = self.amount
        return self

    @property
    def has_receipt(self) -> bool:
        return bool(self.receipt)


class Income(BaseModel):
    id: str = Field(default_factory=_new_id)
    amount: float
    date: date
    region: Region = Region.CN
    currency_code: str | None = None
    detail: str = ""
    platform: str = ""
    transaction_id: str | None = None

    @model_validator(mode="after")
    def _default_currency(self) -> "Income":
        if not self.currency_code:
            self.currency_code = self.region.currency_code
        return self


class CashbackQuote(BaseModel):
    card_id: str | None
    rate: Rate
    rate_source: str
    proposed: float
    cashback: float
    binding_cap: str | None = None
    reasoning: str
