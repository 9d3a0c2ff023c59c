import argparse
import logging
from pathlib import Path

from cashbackcounter.api.app import run as run_api
from cashbackcounter.api.deps import get_service
from cashbackcounter.config import settings
from cashbackcounter.errors import CashbackCounterError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cashback Counter entrypoint")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["api", "export", "import", "export-cards", "import-cards"],
        default="api",
        help="Run mode: api (default), export, import, export-cards, import-cards",
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="Backup zip or cards CSV to import; output directory for exports (default: EXPORT_DIR)",
    )
    parser.add_argument(
        "--recompute",
        action="store_true",
        default=settings.recompute_on_import,
        help="Re-derive cashback on import instead of trusting the stored amounts",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.mode == "api":
        run_api()
        return

    service = get_service()
    try:
        if args.mode == "export":
            print(service.export_backup(Path(args.path or settings.export_dir)))
        elif args.mode == "export-cards":
            print(service.export_cards(Path(args.path or settings.export_dir)))
        elif not args.path:
            raise SystemExit(f"{args.mode} needs a file path")
        elif args.mode == "import":
            print(f"Imported {service.import_backup(Path(args.path), recompute=args.recompute)} transaction(s)")
        else:
            print(f"Imported {service.import_cards_file(Path(args.path))} card(s)")
    except CashbackCounterError as exc:
        raise SystemExit(f"{args.mode} failed: {exc}") from exc


if __name__ == "__main__":
    main()
