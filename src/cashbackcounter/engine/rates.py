from cashbackcounter.domain.catalog import Category, Region
from cashbackcounter.domain.models import Card, Rate


def is_cross_border(card: Card, region: Region) -> bool:
    return region != card.issue_region


def _category_rate(card: Card, category: Category) -> tuple[Rate, str]:
    if category in card.category_rates:
        return card.category_rates[category], f"matched category '{category.display_name}'"
    return card.default_rate, "fallback to default rate"


def resolve_rate_with_reason(category: Category, region: Region, card: Card) -> tuple[Rate, str]:
    rate, reason = _category_rate(card, category)

    if is_cross_border(card, region) and card.foreign_rate is not None:
        # The foreign bonus only ever raises the rate.
        if card.foreign_rate > rate:
            return card.foreign_rate, f"foreign rate in {region.display_name} beats {reason}"
        return rate, f"{reason}, foreign rate not higher"

    return rate, reason


def resolve_rate(category: Category, region: Region, card: Card) -> Rate:
    return resolve_rate_with_reason(category, region, card)[0]
