from pydantic import BaseModel, Field

from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.models import Card, Rate


def template_key(bank_name: str, card_type: str) -> str:
    return f"{bank_name}-{card_type}"


class CardTemplate(BaseModel):
    """A shareable rule set. Rates are fractions, same as on Card."""

    template_key: str
    bank_name: str
    card_type: str
    colors: list[str] = Field(default_factory=lambda: ["0000FF", "000000"])
    region: Region = Region.CN
    default_rate: Rate = Field(default=0, ge=0, le=1)
    category_rates: dict[Category, Rate] = Field(default_factory=dict)
    foreign_rate: Rate | None = Field(default=None, ge=0, le=1)
    local_cap: float = Field(default=0, ge=0)
    foreign_cap: float = Field(default=0, ge=0)
    category_caps: dict[Category, float] = Field(default_factory=dict)
    cap_period: CapPeriod = CapPeriod.YEARLY

    def apply_to(self, card: Card) -> None:
        """Overwrite the card's rules and appearance; id, suffix and history stay."""
        card.bank_name = self.bank_name
        card.card_type = self.card_type
        card.colors = list(self.colors)
        card.issue_region = self.region
        card.default_rate = self.default_rate
        card.category_rates = dict(self.category_rates)
        card.foreign_rate = self.foreign_rate
        card.local_cap = self.local_cap
        card.foreign_cap = self.foreign_cap
        card.category_caps = dict(self.category_caps)
        card.cap_period = self.cap_period
        card.template_key = self.template_key

    def make_card(self, suffix: str, repayment_day: int = 0) -> Card:
        card = Card(bank_name=self.bank_name, card_type=self.card_type, suffix=suffix, repayment_day=repayment_day)
        self.apply_to(card)
        return card


def _seed(
    bank_name: str,
    card_type: str,
    colors: list[str],
    region: Region,
    special_percent: dict[Category, float],
    default_percent: float,
    foreign_percent: float | None,
    local_cap: float = 0,
    foreign_cap: float = 0,
    category_caps: dict[Category, float] | None = None,
    cap_period: CapPeriod = CapPeriod.YEARLY,
) -> CardTemplate:
    # Seed tables are written in percent, the way issuers advertise them.
    return CardTemplate(
        template_key=template_key(bank_name, card_type),
        bank_name=bank_name,
        card_type=card_type,
        colors=colors,
        region=region,
        default_rate=default_percent / 100,
        category_rates={category: value / 100 for category, value in special_percent.items()},
        foreign_rate=None if foreign_percent is None else foreign_percent / 100,
        local_cap=local_cap,
        foreign_cap=foreign_cap,
        category_caps=category_caps or {},
        cap_period=cap_period,
    )


def default_templates() -> list[CardTemplate]:
    return [
        _seed("滙豐香港", "Red信用卡", ["DA291C", "005863"], Region.HK, {}, 4.0, 1.0, local_cap=4800),
        _seed(
            "滙豐香港",
            "Pulse銀聯信用卡",
            ["DB0011", "1A1A1A"],
            Region.CN,
            {Category.DINING: 5},
            4.4,
            2.4,
            local_cap=4400,
            foreign_cap=2400,
            category_caps={Category.DINING: 500},
        ),
        _seed("滙豐香港", "卓越理財信用卡", ["111111", "D9D9D9"], Region.HK, {}, 0.4, 2.4),
        _seed("滙豐香港", "Visa Signature卡", ["1C1C1C", "757575"], Region.HK, {}, 1.6, 3.6, foreign_cap=3600),
        _seed("滙豐香港", "萬事達卡扣賬卡", ["1D5564", "85BDCD"], Region.HK, {}, 0.4, 0.4),
        _seed(
            "HSBC US",
            "Elite",
            ["050505", "050505"],
            Region.US,
            {Category.TRAVEL: 5.28, Category.DINING: 1.32},
            1.32,
            1.32,
        ),
        _seed(
            "工銀亞洲",
            "Visa Signature",
            ["121212", "EDC457"],
            Region.HK,
            {Category.GROCERY: 15},
            1.5,
            1.5,
            category_caps={Category.GROCERY: 2400},
        ),
        _seed(
            "工銀亞洲",
            "粵港澳灣區信用卡",
            ["0F0F0F", "C0C0C0"],
            Region.CN,
            {Category.GROCERY: 15},
            1.5,
            1.5,
            category_caps={Category.GROCERY: 2400},
        ),
        _seed(
            "信銀國際",
            "大灣區雙幣信用卡",
            ["8A8F99", "E3DEE9"],
            Region.CN,
            {Category.OTHER: 6},
            4,
            0.4,
            local_cap=1800,
            category_caps={Category.OTHER: 3000},
            cap_period=CapPeriod.MONTHLY,
        ),
        _seed("中銀香港", "萬事達卡扣賬卡", ["121212", "D4B979"], Region.HK, {}, 0.5, 0.5),
        _seed("农行", "大学生青春卡", ["9EC0B3", "D9A62E"], Region.CN, {}, 0.1, 4),
        _seed("农行", "Visa尊然白金信用卡", ["1A1A1A", "C4C6C8"], Region.CN, {}, 0.1, 4),
        _seed("工行", "牡丹祥运信用卡", ["2F2F2F", "C7A04D"], Region.CN, {}, 0, 3),
    ]
