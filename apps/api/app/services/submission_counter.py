"""Count real submissions in a decoded spreadsheet export."""

from collections.abc import Iterable, Sequence
from typing import Any


def _cell_text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip()


def is_submission_row(row: Sequence[Any] | None) -> bool:
    """A row is a submission when at least one cell has visible content."""
    if not row:
        return False
    return any(_cell_text(cell) for cell in row)


def count_submissions(rows: Iterable[Sequence[Any] | None]) -> int:
    """
    Count data rows that contain at least one non-blank cell.

    `rows` must already exclude the header row. All-blank rows (trailing
    padding in provider exports) are ignored. Pure, so it is safe for
    dry-run previews; zero rows gives 0 and rejecting that is up to the
    caller.
    """
    return sum(1 for row in rows if is_submission_row(row))
