import logging
import unicodedata
from typing import Any, Iterable, List, Optional, Sequence

from sheet_pipeline.models import Grid, NormalizedSheet, Row

logger = logging.getLogger(__name__)

# Header names recognised as the identifier column (compared case-insensitively)
IDENTIFIER_HEADERS = frozenset({"id", "stt", "no", "số thứ tự"})


def _fold(text: str) -> str:
    return unicodedata.normalize("NFC", text).strip().casefold()


def header_label(value: Any, index: int) -> str:
    """Header text for the cell at 0-based `index`, or `Column_<n>` when blank."""
    if value is None:
        return f"Column_{index + 1}"
    text = str(value).strip()
    return text if text else f"Column_{index + 1}"


def unique_headers(labels: Iterable[str]) -> List[str]:
    """Suffix repeated header names with `_1`, `_2`, ... so every name is unique."""
    seen = set()
    headers = []
    for label in labels:
        candidate = label
        counter = 1
        while candidate in seen:
            candidate = f"{label}_{counter}"
            counter += 1
        seen.add(candidate)
        headers.append(candidate)
    return headers


def find_identifier_column(headers: Sequence[str]) -> Optional[int]:
    """
    Locate the identifier column by name.

    Args:
        headers: Ordered header names

    Returns:
        0-based index of the first header matching one of IDENTIFIER_HEADERS, or None
    """
    for index, header in enumerate(headers):
        if header is not None and _fold(str(header)) in IDENTIFIER_HEADERS:
            return index
    return None


def normalize_grid(grid: Grid) -> NormalizedSheet:
    """
    Convert a raw grid (row 0 = headers) into headers and row mappings.

    The header list is as wide as the widest row. Blank headers become
    `Column_<n>`. Cells missing at the end of a short row are left out of
    that row's mapping rather than filled with empty strings.

    Args:
        grid: Raw cell values, header row first

    Returns:
        NormalizedSheet; an empty grid yields no headers and no rows
    """
    if not grid:
        return NormalizedSheet(headers=[], rows=[])

    width = max(len(row) for row in grid)
    header_cells = list(grid[0]) + [None] * (width - len(grid[0]))
    headers = unique_headers(header_label(value, i) for i, value in enumerate(header_cells))

    rows: List[Row] = []
    for raw in grid[1:]:
        rows.append({headers[i]: value for i, value in enumerate(raw)})

    logger.debug(
        "Normalized grid",
        extra={"row_count": len(rows), "column_count": len(headers)}
    )
    return NormalizedSheet(headers=headers, rows=rows)


def to_grid(headers: Sequence[str], rows: Iterable[Row]) -> Grid:
    """Inverse of normalize_grid: header row followed by one list per row."""
    return [list(headers)] + [[row.get(h) for h in headers] for row in rows]
