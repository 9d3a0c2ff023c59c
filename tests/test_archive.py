import io
import tempfile
import zipfile
from datetime import date, datetime

import pytest

from cashbackcounter.codec.archive import (
    RECEIPTS_DIR,
    TRANSACTIONS_FILE,
    export_backup,
    pack,
    receipt_filename,
    sanitize_merchant,
    unpack,
)
from cashbackcounter.errors import ArchiveIOError, MissingTransactionsFileError


@pytest.fixture
def scratch(tmp_path, monkeypatch):
    directory = tmp_path / "scratch"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


def _zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in files.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def test_receipt_filename_format() -> None:
    assert receipt_filename("Apple Store #5", date(2025, 1, 5), 3) == "receipt_20250105_Apple_Store__5_3.jpg"


def test_sanitize_keeps_cjk_and_strips_edges() -> None:
    assert sanitize_merchant("星巴克（国贸店）") == "星巴克_国贸店"
    assert sanitize_merchant("__7-Eleven__") == "7-Eleven"


def test_sanitize_truncates_and_never_returns_empty() -> None:
    assert sanitize_merchant("a" * 50) == "a" * 40
    assert sanitize_merchant("!!!") == "receipt"
    assert sanitize_merchant("") == "receipt"


def test_pack_lays_files_at_archive_root(dining_card, make_txn) -> None:
    txns = [
        make_txn(dining_card, merchant="Cafe", date=date(2025, 1, 5)),
        make_txn(dining_card, merchant="Book Shop", date=date(2025, 1, 6), receipt=b"jpeg-bytes"),
    ]

    with zipfile.ZipFile(io.BytesIO(pack(txns, {dining_card.id: dining_card}))) as archive:
        names = archive.namelist()
        csv_bytes = archive.read(TRANSACTIONS_FILE)
        receipt = archive.read(f"{RECEIPTS_DIR}/receipt_20250106_Book_Shop_2.jpg")

    assert sorted(names) == [
        f"{RECEIPTS_DIR}/",
        f"{RECEIPTS_DIR}/receipt_20250106_Book_Shop_2.jpg",
        TRANSACTIONS_FILE,
    ]
    assert csv_bytes.startswith(b"\xef\xbb\xbf")
    assert receipt == b"jpeg-bytes"


def test_round_trip_reattaches_receipts_by_position(dining_card, make_txn) -> None:
    same_day = date(2025, 2, 1)
    txns = [
        make_txn(dining_card, merchant="Uber", date=same_day, receipt=b"first"),
        make_txn(dining_card, merchant="Uber", date=same_day),
        make_txn(None, merchant="星巴克", date=same_day, receipt=b"third"),
        make_txn(dining_card, merchant="Uber", date=same_day, receipt=b"fourth"),
        make_txn(dining_card, merchant="Lunch", date=date(2025, 2, 2)),
    ]

    restored = unpack(pack(txns, {dining_card.id: dining_card}), [dining_card])

    assert [txn.merchant for txn in restored] == [txn.merchant for txn in txns]
    assert [txn.receipt for txn in restored] == [b"first", None, b"third", b"fourth", None]
    assert sum(1 for txn in restored if txn.has_receipt) == 3


def test_missing_transactions_file_is_fatal(dining_card) -> None:
    data = _zip({"Receipts/receipt_20250101_x_1.jpg": b"img"})

    with pytest.raises(MissingTransactionsFileError):
        unpack(data, [dining_card])


def test_corrupt_archive_raises_named_error() -> None:
    with pytest.raises(ArchiveIOError):
        unpack(b"definitely not a zip", [])


def test_member_escaping_root_is_rejected() -> None:
    data = _zip({TRANSACTIONS_FILE: b"header\n", "../evil.txt": b"x"})

    with pytest.raises(ArchiveIOError):
        unpack(data, [])


def test_temporary_files_are_removed_on_success_and_failure(scratch, dining_card, make_txn) -> None:
    unpack(pack([make_txn(dining_card, receipt=b"img")], {dining_card.id: dining_card}), [dining_card])
    with pytest.raises(MissingTransactionsFileError):
        unpack(_zip({"other.csv": b""}), [])

    assert list(scratch.iterdir()) == []


def test_export_backup_writes_only_the_final_archive(tmp_path, dining_card, make_txn) -> None:
    out_dir = tmp_path / "exports"

    path = export_backup([make_txn(dining_card)], {dining_card.id: dining_card}, out_dir, now=datetime(2025, 3, 1, 9, 30, 0))

    assert path.name == "Cashback_Export_20250301_093000.zip"
    assert [item.name for item in out_dir.iterdir()] == [path.name]
    assert zipfile.is_zipfile(path)


def test_temporary_files_are_removed_when_packing_fails(scratch, monkeypatch, dining_card, make_txn) -> None:
    def broken_zip(root, target):
        raise OSError("disk full")

    monkeypatch.setattr("cashbackcounter.codec.archive._zip_tree", broken_zip)

    with pytest.raises(ArchiveIOError, match="disk full"):
        pack([make_txn(dining_card, receipt=b"img")], {dining_card.id: dining_card})

    assert list(scratch.iterdir()) == []
