"""
Spreadsheet mirror of submissions.

Every registered spreadsheet receives one row per submission, keyed by the
submission id in column A. Syncing is best-effort: failures are logged per
spreadsheet and never raised to the caller.
"""

from __future__ import annotations

import logging
from typing import Optional

from rice_monitor.db import DbClient
from rice_monitor.row_codec import HEADERS, field_name_for, submission_to_row
from rice_monitor.sheets import SheetsClient, a1_range
from shared.types import SheetRegistration, Submission

logger = logging.getLogger(__name__)


def resolve_field_name(db: DbClient, submission: Submission) -> str:
    """Look up the display name for a submission's field (empty if gone)."""
    field = None
    if submission.is_linked_to_field:
        try:
            field = db.get_field(submission.field_id)
        except Exception:
            logger.exception(
                "Failed to load field %s for submission %s",
                submission.field_id,
                submission.id,
            )
    return field_name_for(submission, field)


class SheetSyncEngine:
    def __init__(self, db: DbClient, sheets: SheetsClient):
        self.db = db
        self.sheets = sheets

    def _registrations(self) -> Optional[list[SheetRegistration]]:
        try:
            return self.db.list_sheets()
        except Exception:
            logger.exception("Failed to load sheet registrations")
            return None

    def ensure_header(self, spreadsheet_id: str, sheet_name: str) -> bool:
        """
        Write the header row when A1 is empty. Returns True if it was written.
        Errors propagate; `ensure_all_headers` isolates them per spreadsheet.
        """
        values = self.sheets.get_values(spreadsheet_id, a1_range(sheet_name, "A1:A1"))
        if values and values[0] and values[0][0] != "":
            logger.info("Sheet headers already exist for %s.", sheet_name)
            return False
        self.sheets.update_values(spreadsheet_id, a1_range(sheet_name, "A1"), [HEADERS])
        logger.info("Sheet headers written for %s.", sheet_name)
        return True

    def ensure_all_headers(self) -> int:
        """Ensure headers on every registered sheet; returns how many succeeded."""
        registrations = self._registrations() or []
        ok = 0
        for sheet in registrations:
            try:
                self.ensure_header(sheet.spreadsheet_id, sheet.spreadsheet_name)
                ok += 1
            except Exception:
                logger.exception(
                    "Failed to ensure headers for sheet %s (%s)",
                    sheet.spreadsheet_name,
                    sheet.spreadsheet_id,
                )
        return ok

    def _append_row(self, sheet: SheetRegistration, row: list[str]) -> bool:
        try:
            self.sheets.append_values(
                sheet.spreadsheet_id, a1_range(sheet.spreadsheet_name, "A:A"), [row]
            )
        except Exception:
            logger.exception(
                "Unable to append row to sheet %s (%s)",
                sheet.spreadsheet_name,
                sheet.spreadsheet_id,
            )
            return False
        return True

    def append_submission(self, submission: Submission, field_name: str) -> int:
        """Append a row to every registered sheet; returns how many succeeded."""
        registrations = self._registrations()
        if registrations is None:
            return 0
        row = submission_to_row(submission, field_name)
        ok = 0
        for sheet in registrations:
            if self._append_row(sheet, row):
                ok += 1
                logger.info(
                    "Appended submission %s to sheet %s.", submission.id, sheet.spreadsheet_name
                )
        return ok

    def update_submission(self, submission: Submission, field_name: str) -> int:
        """
        Overwrite the submission's row in every registered sheet, appending
        where no row carries its id yet. Returns how many sheets were written.
        """
        registrations = self._registrations()
        if registrations is None:
            return 0
        row = submission_to_row(submission, field_name)
        ok = 0
        for sheet in registrations:
            try:
                column = self.sheets.get_values(
                    sheet.spreadsheet_id, a1_range(sheet.spreadsheet_name, "A:A")
                )
            except Exception:
                logger.exception(
                    "Unable to read sheet %s for update", sheet.spreadsheet_name
                )
                continue

            row_index = -1
            for i, cells in enumerate(column):
                if cells and cells[0] == submission.id:
                    row_index = i
                    break

            if row_index == -1:
                logger.info(
                    "Submission %s not found in sheet %s, appending instead.",
                    submission.id,
                    sheet.spreadsheet_name,
                )
                if self._append_row(sheet, row):
                    ok += 1
                continue

            target = a1_range(sheet.spreadsheet_name, f"A{row_index + 1}")
            try:
                self.sheets.update_values(sheet.spreadsheet_id, target, [row])
            except Exception:
                logger.exception(
                    "Unable to update row in sheet %s", sheet.spreadsheet_name
                )
                continue
            ok += 1
            logger.info(
                "Updated submission %s in sheet %s at row %d.",
                submission.id,
                sheet.spreadsheet_name,
                row_index + 1,
            )
        return ok
