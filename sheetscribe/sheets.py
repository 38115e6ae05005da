"""
Tabular store surface.

Rows are addressed by their 1-based sheet row number and fields by single
column letters; row 1 holds the headers.  :class:`GoogleSheet` talks to the
Sheets v4 API through ``googleapiclient``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from googleapiclient.discovery import build

from .credentials import CredentialProvider

logger = logging.getLogger(__name__)

HEADER_ROW = 1


class Sheet(ABC):
    @abstractmethod
    def last_row(self) -> int:
        """Return the number of the last row holding any content (0 if empty)."""

    @abstractmethod
    def get(self, column: str, row: int) -> Any:
        """Return the value of one cell, ``None`` when it is empty."""

    @abstractmethod
    def set(self, column: str, row: int, value: Any) -> None:
        """Write one cell."""

    def get_column(self, column: str, first_row: int, last_row: int) -> List[Any]:
        return [self.get(column, row) for row in range(first_row, last_row + 1)]

    def append_column(self, column: str, values: Sequence[Any]) -> int:
        """Write ``values`` into ``column`` below the current last row.

        Returns:
            The row number of the first written value.
        """
        start = self.last_row() + 1
        for offset, value in enumerate(values):
            self.set(column, start + offset, value)
        return start


class GoogleSheet(Sheet):
    def __init__(self, spreadsheet_id: str, sheet_name: str, credentials: CredentialProvider, *, service: Any = None) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        if service is None:
            service = build("sheets", "v4", credentials=credentials.credentials, cache_discovery=False)
        self._values = service.spreadsheets().values()

    def _range(self, a1: Optional[str] = None) -> str:
        tab = "'{}'".format(self.sheet_name.replace("'", "''"))
        return f"{tab}!{a1}" if a1 else tab

    def _read(self, a1: Optional[str] = None) -> List[List[Any]]:
        result = self._values.get(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(a1),
            valueRenderOption="UNFORMATTED_VALUE",
        ).execute()
        return result.get("values", [])

    def _write(self, a1: str, rows: List[List[Any]]) -> None:
        self._values.update(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(a1),
            valueInputOption="RAW",
            body={"values": rows},
        ).execute()

    def last_row(self) -> int:
        return len(self._read())

    def get(self, column: str, row: int) -> Any:
        rows = self._read(f"{column}{row}")
        if rows and rows[0]:
            return rows[0][0]
        return None

    def get_column(self, column: str, first_row: int, last_row: int) -> List[Any]:
        if last_row < first_row:
            return []
        rows = self._read(f"{column}{first_row}:{column}{last_row}")
        values = [row[0] if row else None for row in rows]
        values.extend([None] * (last_row - first_row + 1 - len(values)))
        return values

    def set(self, column: str, row: int, value: Any) -> None:
        self._write(f"{column}{row}", [[value]])

    def append_column(self, column: str, values: Sequence[Any]) -> int:
        start = self.last_row() + 1
        if values:
            end = start + len(values) - 1
            self._write(f"{column}{start}:{column}{end}", [[value] for value in values])
            logger.info("Wrote %d values to %s%d:%s%d", len(values), column, start, column, end)
        return start
