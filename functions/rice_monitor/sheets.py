"""
Spreadsheet backend clients: the Google Sheets values API over an
authorized requests session, and an in-memory grid used in tests and local
runs.

Ranges use A1 notation with a quoted sheet name, e.g. `'Sheet 1'!A:A`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import google.auth
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
REQUEST_TIMEOUT = 30  # seconds

_CELL_PATTERN = re.compile(r"^([A-Za-z]*)(\d*)$")


class SheetsApiError(RuntimeError):
    pass


class SheetsClient(Protocol):
    """Range read/update/append against a spreadsheet."""

    def get_values(self, spreadsheet_id: str, range_: str) -> list[list[str]]:
        ...

    def update_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        ...

    def append_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        ...


def a1_range(sheet_name: str, cells: str) -> str:
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


@dataclass
class A1Range:
    sheet_name: str
    start_col: int = 0
    start_row: Optional[int] = None
    end_col: Optional[int] = None
    end_row: Optional[int] = None


def _column_index(letters: str) -> int:
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def parse_a1(range_: str) -> A1Range:
    if range_.startswith("'"):
        close = range_.rfind("'!")
        if close <= 0:
            raise SheetsApiError(f"Malformed range: {range_}")
        sheet_name = range_[1:close].replace("''", "'")
        cells = range_[close + 2 :]
    else:
        sheet_name, _, cells = range_.partition("!")

    parts = cells.split(":") if cells else []
    bounds = []
    for part in parts:
        match = _CELL_PATTERN.match(part)
        if not match:
            raise SheetsApiError(f"Malformed range: {range_}")
        letters, digits = match.groups()
        col = _column_index(letters) if letters else None
        row = int(digits) - 1 if digits else None
        bounds.append((col, row))

    parsed = A1Range(sheet_name=sheet_name)
    if bounds:
        parsed.start_col = bounds[0][0] or 0
        parsed.start_row = bounds[0][1]
    if len(bounds) > 1:
        parsed.end_col, parsed.end_row = bounds[1]
    return parsed


def _trim(row: list[str]) -> list[str]:
    end = len(row)
    while end and row[end - 1] == "":
        end -= 1
    return row[:end]


@dataclass
class InMemorySheetsClient:
    """Grid-of-strings double that mimics the values API semantics we use."""

    grids: dict = field(default_factory=dict)

    def add_sheet(self, spreadsheet_id: str, sheet_name: str) -> None:
        self.grids.setdefault((spreadsheet_id, sheet_name), [])

    def rows(self, spreadsheet_id: str, sheet_name: str) -> list[list[str]]:
        return self._grid(spreadsheet_id, sheet_name)

    def _grid(self, spreadsheet_id: str, sheet_name: str) -> list[list[str]]:
        key = (spreadsheet_id, sheet_name)
        if key not in self.grids:
            raise SheetsApiError(
                f"Unable to parse range: sheet {sheet_name!r} not found in {spreadsheet_id}"
            )
        return self.grids[key]

    def get_values(self, spreadsheet_id: str, range_: str) -> list[list[str]]:
        target = parse_a1(range_)
        grid = self._grid(spreadsheet_id, target.sheet_name)
        first_row = target.start_row or 0
        last_row = target.end_row if target.end_row is not None else len(grid) - 1
        if target.end_row is None and target.start_row is not None and target.end_col is None:
            last_row = first_row
        last_col = target.end_col if target.end_col is not None else target.start_col

        values = []
        for row in grid[first_row : last_row + 1]:
            values.append(_trim(row[target.start_col : last_col + 1]))
        while values and not values[-1]:
            values.pop()
        return values

    def update_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        target = parse_a1(range_)
        grid = self._grid(spreadsheet_id, target.sheet_name)
        first_row = target.start_row or 0
        for offset, new_row in enumerate(values):
            row_index = first_row + offset
            while len(grid) <= row_index:
                grid.append([])
            row = grid[row_index]
            needed = target.start_col + len(new_row)
            if len(row) < needed:
                row.extend([""] * (needed - len(row)))
            row[target.start_col : needed] = [str(cell) for cell in new_row]

    def append_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        target = parse_a1(range_)
        grid = self._grid(spreadsheet_id, target.sheet_name)
        while grid and not _trim(grid[-1]):
            grid.pop()
        for new_row in values:
            grid.append([str(cell) for cell in new_row])


class GoogleSheetsClient:
    """Google Sheets v4 values API."""

    def __init__(self, credentials_path: Optional[str] = None):
        if credentials_path:
            creds = service_account.Credentials.from_service_account_file(
                credentials_path, scopes=SHEETS_SCOPES
            )
        else:
            creds, _ = google.auth.default(scopes=SHEETS_SCOPES)
        self.session = AuthorizedSession(creds)

    def _values_url(self, spreadsheet_id: str, range_: str, suffix: str = "") -> str:
        return f"{SHEETS_API_BASE}/{spreadsheet_id}/values/{quote(range_, safe='')}{suffix}"

    def get_values(self, spreadsheet_id: str, range_: str) -> list[list[str]]:
        response = self.session.get(
            self._values_url(spreadsheet_id, range_), timeout=REQUEST_TIMEOUT
        )
        response.raise_for_status()
        return response.json().get("values", [])

    def update_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        response = self.session.put(
            self._values_url(spreadsheet_id, range_),
            params={"valueInputOption": "RAW"},
            json={"range": range_, "majorDimension": "ROWS", "values": values},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()

    def append_values(
        self, spreadsheet_id: str, range_: str, values: list[list[str]]
    ) -> None:
        response = self.session.post(
            self._values_url(spreadsheet_id, range_, ":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"range": range_, "majorDimension": "ROWS", "values": values},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
