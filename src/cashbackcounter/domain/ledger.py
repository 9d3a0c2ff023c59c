import logging

from pydantic import BaseModel, ConfigDict, Field

from cashbackcounter.domain.models import Card, Income, Transaction
from cashbackcounter.domain.templates import CardTemplate, default_templates
from cashbackcounter.errors import LedgerLookupError

logger = logging.getLogger(__name__)


class Ledger(BaseModel):
    """Cards, transactions, incomes and templates held together.

    Transactions point at cards by id and incomes point at transactions by
    id. Removing the target of a reference clears the reference rather than
    cascading the delete.
    """

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    cards: list[Card] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    templates: list[CardTemplate] = Field(default_factory=list)

    def card_lookup(self) -> dict[str, Card]:
        return {card.id: card for card in self.cards}

    def get_card(self, card_id: str) -> Card:
        for card in self.cards:
            if card.id == card_id:
                return card
        raise LedgerLookupError("card", card_id)

    def get_transaction(self, transaction_id: str) -> Transaction:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        raise LedgerLookupError("transaction", transaction_id)

    def get_template(self, key: str) -> CardTemplate:
        for template in self.templates:
            if template.template_key == key:
                return template
        raise LedgerLookupError("template", key)

    def remove_card(self, card_id: str) -> Card:
        card = self.get_card(card_id)
        self.cards.remove(card)

        orphaned = 0
        for transaction in self.transactions:
            if transaction.card_id == card_id:
                transaction.card_id = None
                orphaned += 1
        logger.info("Removed card %s; %d transaction(s) now card-less", card.display_name, orphaned)
        return card

    def remove_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        self.transactions.remove(transaction)
        for income in self.incomes:
            if income.transaction_id == transaction_id:
                income.transaction_id = None
        return transaction

    def apply_template(self, card_id: str, key: str) -> Card:
        card = self.get_card(card_id)
        self.get_template(key).apply_to(card)
        return card

    def sync_default_templates(self) -> None:
        current = {template.template_key: index for index, template in enumerate(self.templates)}
        for seed in default_templates():
            if seed.template_key in current:
                self.templates[current[seed.template_key]] = seed
            else:
                self.templates.append(seed)

    def refresh_cards_from_templates(self) -> int:
        templates = {template.template_key: template for template in self.templates}
        refreshed = 0
        for card in self.cards:
            template = templates.get(card.template_key) if card.template_key else None
            if template is None:
                continue
            template.apply_to(card)
            refreshed += 1
        return refreshed
