import logging
import os
import tempfile
from pathlib import Path

from cashbackcounter.domain.ledger import Ledger

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(self, ledger_file: str | Path):
        self.ledger_file = Path(ledger_file)

    def load(self) -> Ledger:
        if not self.ledger_file.exists():
            logger.info("No ledger at %s, starting empty", self.ledger_file)
            return Ledger()

        with self.ledger_file.open("r", encoding="utf-8") as fh:
            return Ledger.model_validate_json(fh.read())

    def save(self, ledger: Ledger) -> None:
        self.ledger_file.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            mode="w",
            suffix=".json",
            prefix=".ledger_",
            dir=self.ledger_file.parent,
            delete=False,
            encoding="utf-8",
        ) as fp:
            fp.write(ledger.model_dump_json(indent=2))
            staged = Path(fp.name)

        try:
            os.replace(staged, self.ledger_file)
        except OSError:
            staged.unlink(missing_ok=True)
            raise
