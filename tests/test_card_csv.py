import pytest

from cashbackcounter.codec.csv_codec import BOM, CARD_HEADER, decode_cards, encode_cards
from cashbackcounter.domain.catalog import CapPeriod, Category, Region
from cashbackcounter.domain.models import Card


def _row(*fields: str) -> str:
    return ",".join(fields)


def test_encode_card_row(dining_card) -> None:
    dining_card.category_caps = {Category.DINING: 20}
    dining_card.repayment_day = 15

    text = encode_cards([dining_card])

    assert text.startswith(BOM + CARD_HEADER + "\n")
    assert text.splitlines()[1] == '"HSBC","Pulse",4896,DB0011,1A1A1A,CN,1.00,3.00,,,5.00,,,,,20.00,,,,,15'


def test_card_round_trip(dining_card) -> None:
    dining_card.local_cap = 4400
    dining_card.foreign_cap = 2400
    dining_card.category_caps = {Category.DINING: 500}
    dining_card.category_rates[Category.TRAVEL] = 0.0528
    dining_card.bank_name = "滙豐, 香港"

    card = decode_cards(encode_cards([dining_card]))[0]

    assert card.id != dining_card.id
    assert card.bank_name == "滙豐, 香港"
    assert card.display_name == dining_card.display_name
    assert card.suffix == "4896"
    assert card.colors == ["DB0011", "1A1A1A"]
    assert card.issue_region == Region.CN
    assert card.default_rate == pytest.approx(0.01)
    assert card.foreign_rate == pytest.approx(0.03)
    assert card.category_rates == pytest.approx({Category.DINING: 0.05, Category.TRAVEL: 0.0528})
    assert card.local_cap == 4400
    assert card.foreign_cap == 2400
    assert card.category_caps == {Category.DINING: 500}


def test_blank_rate_is_unset_but_zero_is_kept() -> None:
    text = "header\n" + _row("B", "T", "0001", "000000", "FFFFFF", "HK", "0.40", "", "", "", "0.00", "", "", "", "", "", "", "", "", "", "")

    card = decode_cards(text)[0]

    assert card.foreign_rate is None
    assert card.category_rates == {Category.DINING: 0}


def test_zero_or_blank_caps_mean_uncapped() -> None:
    text = "header\n" + _row("B", "T", "0001", "000000", "FFFFFF", "中国香港", "1", "", "0", "", "", "", "", "", "", "0", "", "", "", "", "")

    card = decode_cards(text)[0]

    assert card.issue_region == Region.HK
    assert card.local_cap == 0
    assert card.foreign_cap == 0
    assert card.category_caps == {}
    assert card.cap_period == CapPeriod.YEARLY
    assert card.repayment_day == 0


def test_bad_card_rows_are_skipped() -> None:
    good = _row("B", "T", "0001", "000000", "FFFFFF", "CN", "1", "", "", "", "", "", "", "", "", "", "", "", "", "", "5")
    rows = [
        "header",
        _row("B", "T", "0002"),
        _row("B", "T", "0003", "000000", "FFFFFF", "CN", "150", "", "", "", "", "", "", "", "", "", "", "", "", "", ""),
        _row("B", "T", "0004", "000000", "FFFFFF", "CN", "x", "", "", "", "", "", "", "", "", "", "", "", "", "", ""),
        good,
    ]

    cards = decode_cards("\n".join(rows))

    assert [card.suffix for card in cards] == ["0001"]
    assert cards[0].repayment_day == 5


def test_encode_leaves_unset_fields_blank() -> None:
    card = Card(bank_name="工行", card_type="牡丹", suffix="9999")

    row = encode_cards([card]).splitlines()[1]

    assert row == '"工行","牡丹",9999,0000FF,000000,CN,0.00,,,,,,,,,,,,,,'


@pytest.mark.parametrize("suffix", ["12,34", '12"34', "12\n34"])
def test_suffix_rejects_csv_delimiters(suffix) -> None:
    with pytest.raises(ValueError):
        Card(bank_name="B", card_type="T", suffix=suffix)


def test_row_with_delimiter_in_suffix_is_skipped() -> None:
    blanks = [""] * 15
    rows = [
        "header",
        _row("B", "T", '"00,01"', "000000", "FFFFFF", "CN", "1", *blanks),
        _row("B", "T", "0002", "000000", "FFFFFF", "CN", "1", *blanks),
    ]

    assert [card.suffix for card in decode_cards("\n".join(rows))] == ["0002"]
