class CashbackCounterError(Exception):
    pass


class LedgerLookupError(CashbackCounterError, KeyError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"Unknown {kind}: {key}")
        self.kind = kind
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class BackupError(CashbackCounterError):
    pass


class MissingTransactionsFileError(BackupError):
    pass


class ArchiveIOError(BackupError):
    pass


class CardsFileError(BackupError):
    pass
