"""Backup archive: the transactions file plus receipt images.

Layout at the archive root (no enclosing folder)::

    Transactions.csv
    Receipts/receipt_<YYYYMMDD>_<merchant>_<ordinal>.jpg

The ordinal is the transaction's 1-based position in the exported sequence,
which is also its row position in Transactions.csv. Import recomputes the
filename from the row, so both sides must number rows identically.
"""

import io
import logging
import os
import re
import tempfile
import zipfile
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from pathlib import Path

from cashbackcounter.codec.csv_codec import ReceiptLoader, decode_transactions, encode_transactions
from cashbackcounter.domain.models import Card, Transaction
from cashbackcounter.errors import ArchiveIOError, MissingTransactionsFileError

logger = logging.getLogger(__name__)

TRANSACTIONS_FILE = "Transactions.csv"
RECEIPTS_DIR = "Receipts"
MERCHANT_COMPONENT_LIMIT = 40

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_\u4e00-\u9fa5-]")


def sanitize_merchant(merchant: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", merchant).strip("_")
    return cleaned[:MERCHANT_COMPONENT_LIMIT] or "receipt"


def receipt_filename(merchant: str, day: date, ordinal: int) -> str:
    return f"receipt_{day:%Y%m%d}_{sanitize_merchant(merchant)}_{ordinal}.jpg"


def _write_tree(root: Path, transactions: list[Transaction], cards: Mapping[str, Card]) -> int:
    (root / TRANSACTIONS_FILE).write_text(encode_transactions(transactions, cards), encoding="utf-8")

    receipts_dir = root / RECEIPTS_DIR
    receipts_dir.mkdir()

    written = 0
    for ordinal, txn in enumerate(transactions, start=1):
        if not txn.has_receipt:
            continue
        (receipts_dir / receipt_filename(txn.merchant, txn.date, ordinal)).write_bytes(txn.receipt)
        written += 1
    return written


def _zip_tree(root: Path, target: io.BufferedIOBase) -> None:
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.write(root / TRANSACTIONS_FILE, TRANSACTIONS_FILE)
        archive.writestr(f"{RECEIPTS_DIR}/", b"")
        for path in sorted((root / RECEIPTS_DIR).iterdir()):
            archive.write(path, f"{RECEIPTS_DIR}/{path.name}")


def pack(transactions: Iterable[Transaction], cards: Mapping[str, Card]) -> bytes:
    """Build the backup archive in memory.

    Files are staged in a temporary directory that is removed on every exit
    path.
    """
    ordered = list(transactions)
    buffer = io.BytesIO()
    with tempfile.TemporaryDirectory(prefix="cashback_export_") as tmp:
        try:
            receipts = _write_tree(Path(tmp), ordered, cards)
            _zip_tree(Path(tmp), buffer)
        except OSError as exc:
            raise ArchiveIOError(f"Could not build backup archive: {exc}") from exc

    logger.info("Packed %d transaction(s) and %d receipt(s)", len(ordered), receipts)
    return buffer.getvalue()


def export_backup(
    transactions: Iterable[Transaction],
    cards: Mapping[str, Card],
    dest_dir: Path,
    now: datetime | None = None,
) -> Path:
    """Write ``Cashback_Export_<timestamp>.zip`` into ``dest_dir``.

    The archive appears under its final name only once fully written.
    """
    data = pack(transactions, cards)
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    target = dest_dir / f"Cashback_Export_{stamp}.zip"

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=dest_dir, prefix=".export_", suffix=".zip", delete=False) as fp:
            fp.write(data)
            partial = Path(fp.name)
    except OSError as exc:
        raise ArchiveIOError(f"Could not write backup to {dest_dir}: {exc}") from exc

    try:
        os.replace(partial, target)
    except OSError as exc:
        partial.unlink(missing_ok=True)
        raise ArchiveIOError(f"Could not write backup to {target}: {exc}") from exc

    return target


def _safe_extract(archive: zipfile.ZipFile, root: Path) -> None:
    base = root.resolve()
    for member in archive.infolist():
        destination = (base / member.filename).resolve()
        if not destination.is_relative_to(base):
            raise ArchiveIOError(f"Refusing archive member outside the backup root: {member.filename}")
    archive.extractall(base)


def _directory_loader(receipts_dir: Path) -> ReceiptLoader:
    def load(merchant: str, day: date, position: int) -> bytes | None:
        path = receipts_dir / receipt_filename(merchant, day, position)
        if not path.is_file():
            return None
        return path.read_bytes()

    return load


def unpack(data: bytes, cards: Iterable[Card]) -> list[Transaction]:
    """Read a backup archive back into transactions linked to ``cards``."""
    with tempfile.TemporaryDirectory(prefix="cashback_import_") as tmp:
        root = Path(tmp)
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                _safe_extract(archive, root)
        except zipfile.BadZipFile as exc:
            raise ArchiveIOError(f"Backup is not a readable zip archive: {exc}") from exc
        except OSError as exc:
            raise ArchiveIOError(f"Could not unpack backup: {exc}") from exc

        csv_path = root / TRANSACTIONS_FILE
        if not csv_path.is_file():
            raise MissingTransactionsFileError(f"{TRANSACTIONS_FILE} not found in backup archive")

        receipts_dir = root / RECEIPTS_DIR
        loader = _directory_loader(receipts_dir) if receipts_dir.is_dir() else None

        try:
            text = csv_path.read_text(encoding="utf-8-sig")
            transactions = decode_transactions(text, cards, loader)
        except (OSError, UnicodeDecodeError) as exc:
            raise ArchiveIOError(f"Could not read {TRANSACTIONS_FILE}: {exc}") from exc

    attached = sum(1 for txn in transactions if txn.has_receipt)
    logger.info("Unpacked %d transaction(s) with %d receipt(s)", len(transactions), attached)
    return transactions


def import_backup(path: Path, cards: Iterable[Card]) -> list[Transaction]:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ArchiveIOError(f"Could not read backup {path}: {exc}") from exc
    return unpack(data, cards)
