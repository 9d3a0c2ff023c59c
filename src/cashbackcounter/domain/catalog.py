from __future__ import annotations

from enum import Enum


class Category(str, Enum):
    DINING = "dining"
    GROCERY = "grocery"
    TRAVEL = "travel"
    DIGITAL = "digital"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _CATEGORY_NAMES[self]

    @property
    def icon(self) -> str:
        return _CATEGORY_ICONS[self]

    @classmethod
    def from_display_name(cls, name: str) -> "Category":
        """Map a display name (or identifier) back to a category, defaulting to OTHER."""
        name = name.strip()
        for category in cls:
            if name in (category.display_name, category.value):
                return category
        return cls.OTHER


_CATEGORY_NAMES = {
    Category.DINING: "餐饮",
    Category.GROCERY: "超市",
    Category.TRAVEL: "出行",
    Category.DIGITAL: "数码",
    Category.OTHER: "其他",
}

_CATEGORY_ICONS = {
    Category.DINING: "fork.knife",
    Category.GROCERY: "cart.fill",
    Category.TRAVEL: "car.fill",
    Category.DIGITAL: "iphone",
    Category.OTHER: "bag.fill",
}


class Region(str, Enum):
    CN = "CN"
    HK = "HK"
    US = "US"
    OTHER = "OTHER"

    @property
    def display_name(self) -> str:
        return _REGION_META[self][0]

    @property
    def icon(self) -> str:
        return _REGION_META[self][1]

    @property
    def currency_code(self) -> str:
        return _REGION_META[self][2]

    @property
    def currency_symbol(self) -> str:
        return _REGION_META[self][3]

    @classmethod
    def from_label(cls, label: str, default: "Region | None" = None) -> "Region | None":
        label = label.strip()
        for region in cls:
            if label in (region.display_name, region.value):
                return region
        return default


_REGION_META = {
    Region.CN: ("中国大陆", "🇨🇳", "CNY", "¥"),
    Region.HK: ("中国香港", "🇭🇰", "HKD", "HK$"),
    Region.US: ("美国", "🇺🇸", "USD", "$"),
    Region.OTHER: ("其他地区", "🌍", "EUR", "€"),
}


class CapPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
