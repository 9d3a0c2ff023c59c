import logging
from collections.abc import Iterable

from cashbackcounter.domain.models import DELETED_CARD_NAME, NO_CARD_SUFFIX, Card

logger = logging.getLogger(__name__)


def reconcile_card(card_name: str, suffix: str, cards: Iterable[Card]) -> Card | None:
    """Find the existing card an imported row refers to.

    Tries ``"<bank> <type>"`` plus suffix first, then the suffix alone. When
    several cards share a suffix the first one in ``cards`` order wins; no
    further disambiguation is attempted.
    """
    card_name = card_name.strip()
    suffix = suffix.strip()
    if suffix == NO_CARD_SUFFIX or card_name == DELETED_CARD_NAME:
        return None

    candidates = list(cards)
    for card in candidates:
        if card.suffix == suffix and card.display_name == card_name:
            return card

    for card in candidates:
        if card.suffix == suffix:
            logger.info("Matched '%s' by suffix %s only, using %s", card_name, suffix, card.display_name)
            return card

    logger.warning("No card matches '%s' (suffix %s); importing without a card", card_name, suffix)
    return None
