"""
Manage the spreadsheets that mirror submissions.

Registrations are not exposed over HTTP; operators add them here:

    python scripts/sheets_admin.py register <spreadsheet_id> "Sheet1"
    python scripts/sheets_admin.py list
    python scripts/sheets_admin.py ensure-headers
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rice_monitor.config import configure_logging
from rice_monitor.dependencies import get_db_client, get_sync_engine
from shared.types import SheetRegistration

logger = logging.getLogger(__name__)


def _register(args: argparse.Namespace) -> int:
    sheet = SheetRegistration(
        spreadsheet_id=args.spreadsheet_id, spreadsheet_name=args.sheet_name
    )
    get_db_client().add_sheet(sheet)
    logger.info("Registered %s (%s)", sheet.spreadsheet_name, sheet.spreadsheet_id)
    if args.skip_headers:
        return 0
    try:
        get_sync_engine().ensure_header(sheet.spreadsheet_id, sheet.spreadsheet_name)
    except Exception as exc:
        logger.exception("Registered, but writing headers failed: %s", exc)
        return 1
    return 0


def _list(args: argparse.Namespace) -> int:
    sheets = get_db_client().list_sheets()
    for sheet in sheets:
        print(f"{sheet.spreadsheet_id}\t{sheet.spreadsheet_name}")
    if not sheets:
        logger.info("No spreadsheets registered")
    return 0


def _ensure_headers(args: argparse.Namespace) -> int:
    total = len(get_db_client().list_sheets())
    ok = get_sync_engine().ensure_all_headers()
    logger.info("Headers checked on %d of %d spreadsheets", ok, total)
    return 0 if ok == total else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Spreadsheet mirror administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register = subparsers.add_parser("register", help="Add a spreadsheet tab to mirror into")
    register.add_argument("spreadsheet_id", help="Spreadsheet id from its URL")
    register.add_argument("sheet_name", help="Tab name inside the spreadsheet")
    register.add_argument(
        "--skip-headers",
        action="store_true",
        help="Do not write the header row after registering",
    )
    register.set_defaults(handler=_register)

    list_parser = subparsers.add_parser("list", help="Show registered spreadsheets")
    list_parser.set_defaults(handler=_list)

    ensure = subparsers.add_parser(
        "ensure-headers", help="Write the header row where cell A1 is empty"
    )
    ensure.set_defaults(handler=_ensure_headers)

    args = parser.parse_args()
    configure_logging()
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
