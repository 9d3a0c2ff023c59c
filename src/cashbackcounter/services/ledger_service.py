import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from cashbackcounter.codec import archive
from cashbackcounter.codec.csv_codec import decode_cards, encode_cards
from cashbackcounter.domain.ledger import Ledger
from cashbackcounter.domain.models import Card, CashbackQuote, Income, Transaction
from cashbackcounter.engine.calculator import CashbackCalculator
from cashbackcounter.errors import CardsFileError
from cashbackcounter.repository.ledger_store import LedgerStore
from cashbackcounter.schemas.requests import IncomeCreate, PreviewRequest, TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)


def cards_backup_filename(day: date) -> str:
    return f"Cards_Backup_{day:%Y%m%d}.csv"


class LedgerService:
    """Use cases over the persisted ledger.

    Every mutation runs load -> change -> save under one lock. Exports work on
    a deep copy taken under the lock, so cap history and card lookups come
    from a single consistent snapshot.
    """

    def __init__(self, store: LedgerStore, calculator: CashbackCalculator | None = None):
        self.store = store
        self.calculator = calculator or CashbackCalculator()
        self._lock = threading.RLock()

    @contextmanager
    def _editing(self) -> Iterator[Ledger]:
        with self._lock:
            ledger = self.store.load()
            yield ledger
            self.store.save(ledger)

    def snapshot(self) -> Ledger:
        with self._lock:
            return self.store.load().model_copy(deep=True)

    # --- cards ---------------------------------------------------------------

    def list_cards(self) -> list[Card]:
        return self.snapshot().cards

    def add_card(self, card: Card) -> Card:
        with self._editing() as ledger:
            ledger.cards.append(card)
        return card

    def delete_card(self, card_id: str) -> Card:
        with self._editing() as ledger:
            return ledger.remove_card(card_id)

    def apply_template(self, card_id: str, key: str) -> Card:
        with self._editing() as ledger:
            return ledger.apply_template(card_id, key)

    def sync_templates(self) -> int:
        """Upsert the built-in templates and re-apply them to linked cards."""
        with self._editing() as ledger:
            ledger.sync_default_templates()
            return ledger.refresh_cards_from_templates()

    # --- transactions ----------------------------------------------------------

    def list_transactions(self) -> list[Transaction]:
        return self.snapshot().transactions

    def preview(self, request: PreviewRequest) -> CashbackQuote:
        ledger = self.snapshot()
        card = ledger.get_card(request.card_id) if request.card_id else None
        return self.calculator.quote(
            amount=request.amount,
            category=request.category,
            region=request.region,
            card=card,
            on=request.date or date.today(),
            history=ledger.transactions,
        )

    def _price(self, ledger: Ledger, txn: Transaction) -> None:
        card = ledger.get_card(txn.card_id) if txn.card_id else None
        txn.cashback_amount = self.calculator.compute(txn, card, ledger.transactions)

    def add_transaction(self, request: TransactionCreate, receipt: bytes | None = None) -> Transaction:
        with self._editing() as ledger:
            txn = Transaction(**request.model_dump(), receipt=receipt)
            self._price(ledger, txn)
            ledger.transactions.append(txn)
        logger.info("Recorded %s %.2f, cashback %.2f", txn.merchant, txn.amount, txn.cashback_amount)
        return txn

    def edit_transaction(self, transaction_id: str, changes: TransactionUpdate) -> Transaction:
        with self._editing() as ledger:
            txn = ledger.get_transaction(transaction_id)
            updates = changes.model_dump(exclude_unset=True)
            if "amount" in updates and "billing_amount" not in updates and txn.billing_amount == txn.amount:
                updates["billing_amount"] = updates["amount"]
            for field, value in updates.items():
                setattr(txn, field, value)
            self._price(ledger, txn)
        return txn

    def attach_receipt(self, transaction_id: str, receipt: bytes | None) -> Transaction:
        with self._editing() as ledger:
            txn = ledger.get_transaction(transaction_id)
            txn.receipt = receipt or None
        return txn

    def delete_transaction(self, transaction_id: str) -> Transaction:
        with self._editing() as ledger:
            return ledger.remove_transaction(transaction_id)

    def add_income(self, request: IncomeCreate) -> Income:
        with self._editing() as ledger:
            if request.transaction_id:
                ledger.get_transaction(request.transaction_id)
            income = Income(**request.model_dump())
            ledger.incomes.append(income)
        return income

    # --- backup ----------------------------------------------------------------

    def backup_bytes(self) -> bytes:
        ledger = self.snapshot()
        return archive.pack(ledger.transactions, ledger.card_lookup())

    def export_backup(self, dest_dir: Path, now: datetime | None = None) -> Path:
        ledger = self.snapshot()
        path = archive.export_backup(ledger.transactions, ledger.card_lookup(), dest_dir, now=now)
        logger.info("Exported backup to %s", path)
        return path

    def import_backup_bytes(self, data: bytes, recompute: bool = False) -> int:
        with self._lock:
            imported = archive.unpack(data, self.store.load().cards)
            return self._insert_imported(imported, recompute)

    def import_backup(self, path: Path, recompute: bool = False) -> int:
        with self._lock:
            imported = archive.import_backup(path, self.store.load().cards)
            return self._insert_imported(imported, recompute)

    def _insert_imported(self, imported: list[Transaction], recompute: bool) -> int:
        with self._editing() as ledger:
            if recompute:
                rewards = self.calculator.rederive(imported, ledger.card_lookup(), history=ledger.transactions)
                for txn in imported:
                    txn.cashback_amount = rewards[txn.id]
            ledger.transactions.extend(imported)
        logger.info("Imported %d transaction(s)", len(imported))
        return len(imported)

    def cards_csv(self) -> str:
        return encode_cards(self.snapshot().cards)

    def export_cards(self, dest_dir: Path, day: date | None = None) -> Path:
        target = dest_dir / cards_backup_filename(day or date.today())
        text = self.cards_csv()

        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=dest_dir, prefix=".cards_", suffix=".csv", delete=False
            ) as fp:
                fp.write(text)
                partial = Path(fp.name)
        except OSError as exc:
            raise CardsFileError(f"Could not write cards to {dest_dir}: {exc}") from exc

        try:
            os.replace(partial, target)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise CardsFileError(f"Could not write cards to {target}: {exc}") from exc

        logger.info("Exported cards to %s", target)
        return target

    def import_cards_csv(self, text: str) -> int:
        cards = decode_cards(text)
        with self._editing() as ledger:
            ledger.cards.extend(cards)
        logger.info("Imported %d card(s)", len(cards))
        return len(cards)

    def import_cards_bytes(self, data: bytes) -> int:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CardsFileError(f"Cards file is not valid UTF-8: {exc}") from exc
        return self.import_cards_csv(text)

    def import_cards_file(self, path: Path) -> int:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise CardsFileError(f"Could not read cards file {path}: {exc}") from exc
        return self.import_cards_bytes(data)
