"""
Idempotent column-transform loop.

:class:`RowProcessor` reads an input column, skips every row whose output
cell already has content, and writes ``transform(input)`` into the rest.  Rows
written before a failing row keep their values; the failure itself is not
caught here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Tuple

from .ratelimit import TokenBucket
from .sheets import HEADER_ROW, Sheet

logger = logging.getLogger(__name__)

Transform = Callable[[str], Optional[str]]


def has_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


@dataclass
class ProcessStats:
    written: int = 0
    skipped: int = 0
    declined: int = 0


class RowProcessor:
    def __init__(self, sheet: Sheet, limiter: Optional[TokenBucket] = None) -> None:
        self.sheet = sheet
        self.limiter = limiter or TokenBucket()

    def pending_rows(
        self,
        input_column: str,
        output_column: str,
        stats: Optional[ProcessStats] = None,
        *,
        last_row: Optional[int] = None,
    ) -> Iterator[Tuple[int, str]]:
        """Yield ``(row, text)`` for rows with input text and an empty output cell.

        Both columns are read once up front, so a run over an already
        processed sheet costs a fixed number of reads.
        """
        if last_row is None:
            last_row = self.sheet.last_row()
        first_row = HEADER_ROW + 1
        if last_row < first_row:
            return
        inputs = self.sheet.get_column(input_column, first_row, last_row)
        outputs = self.sheet.get_column(output_column, first_row, last_row)
        for row, (value, existing) in enumerate(zip(inputs, outputs), start=first_row):
            if not has_text(value):
                continue
            if not is_blank(existing):
                logger.info("Row %d already has content. Skipping.", row)
                if stats is not None:
                    stats.skipped += 1
                continue
            yield row, value

    def process(self, input_column: str, output_column: str, transform: Transform) -> ProcessStats:
        """Apply ``transform`` to every pending row of ``input_column``.

        ``transform`` may return ``None`` to leave the output cell empty for
        now; the row is then picked up again on the next run.
        """
        stats = ProcessStats()
        last_row = self.sheet.last_row()
        total = max(last_row - HEADER_ROW, 0)
        for row, text in self.pending_rows(input_column, output_column, stats, last_row=last_row):
            self.limiter.acquire()
            result = transform(text)
            if result is None:
                stats.declined += 1
                continue
            self.sheet.set(output_column, row, result)
            stats.written += 1
            logger.info("Row %d: %s", row, result)
            logger.info("Processed %d out of %d rows.", row - HEADER_ROW, total)
        logger.info(
            "%s -> %s: %d written, %d skipped, %d pending",
            input_column, output_column, stats.written, stats.skipped, stats.declined,
        )
        return stats
