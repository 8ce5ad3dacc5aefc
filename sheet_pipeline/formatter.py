"""
Layout rules for output sheets.

`format_sheet` is a pure function: it reads a Sheet and returns a new
FormattedSheet whose cells carry their value together with openpyxl style
objects. Nothing is mutated; the serializer walks the result to emit the
workbook. Only the first seven columns receive styles and translated
headers; anything to the right is carried through as plain values.
"""
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from sheet_pipeline.language import is_primary_language
from sheet_pipeline.models import FormattedCell, FormattedSheet, Hyperlink, IdentifierGroup, Sheet
from sheet_pipeline.translator import (
    SEQUENCE_LABEL,
    SEQUENCE_TOKEN,
    TRANSLATED_COLUMN_LIMIT,
    HeaderTranslator,
    default_translator,
)

FORMATTED_COLUMN_LIMIT = TRANSLATED_COLUMN_LIMIT

HEADER_FILL_COLOR = "FF4472C4"
HEADER_FONT_COLOR = "FFFFFFFF"
HEADER_FONT_SIZE = 14
HEADER_ROW_HEIGHT = 30
ALTERNATE_FILL_COLOR = "FFF2F2F2"
LINK_FONT_COLOR = "FF0000FF"
SECONDARY_FONT_COLOR = "FFC00000"

MIN_COLUMN_WIDTH = 10
MAX_COLUMN_WIDTH = 50
WIDE_COLUMN = 5
WIDE_COLUMN_FACTOR = 1.5

THIN_SIDE = Side(style="thin")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)
HEADER_FONT = Font(bold=True, size=HEADER_FONT_SIZE, color=HEADER_FONT_COLOR)
HEADER_FILL = PatternFill(fill_type="solid", fgColor=HEADER_FILL_COLOR)
HEADER_ALIGNMENT = Alignment(horizontal="center", vertical="center", wrap_text=True)
ALTERNATE_FILL = PatternFill(fill_type="solid", fgColor=ALTERNATE_FILL_COLOR)
LINK_FONT = Font(color=LINK_FONT_COLOR, underline="single")
SECONDARY_FONT = Font(color=SECONDARY_FONT_COLOR)
CENTER = Alignment(horizontal="center", vertical="center")
LEFT_WRAP = Alignment(horizontal="left", vertical="center", wrap_text=True)

SEQUENCE_HEADER_TOKENS = ("id", "stt", SEQUENCE_TOKEN)


def is_sequence_header(header: Any) -> bool:
    """True when a first-column header should become the sequence column."""
    if header is None:
        return False
    text = str(header).lower()
    return any(token in text for token in SEQUENCE_HEADER_TOKENS)


def composite_link(value: Any) -> Optional[Hyperlink]:
    """Hyperlink for a `{text, url}` composite; None for any other value."""
    if isinstance(value, Hyperlink):
        return value if value.text and value.url else None
    if isinstance(value, Mapping) and "text" in value and "url" in value:
        text = "" if value["text"] is None else str(value["text"]).strip()
        url = "" if value["url"] is None else str(value["url"]).strip()
        if text and url:
            return Hyperlink(text=text, url=url)
    return None


def split_hyperlink(value: Any) -> Optional[Hyperlink]:
    """
    Split "text http://..." into display text and URL.

    Returns None unless the value contains "http" with non-empty text
    before it. Composites need both a text and a url.
    """
    if isinstance(value, (Hyperlink, Mapping)):
        return composite_link(value)
    if value is None:
        return None
    text = str(value)
    position = text.find("http")
    if position == -1:
        return None
    label = text[:position].strip()
    url = text[position:].strip()
    if label and url:
        return Hyperlink(text=label, url=url)
    return None


def display_value(value: Any) -> Any:
    """A composite without a usable url shows its text."""
    if isinstance(value, Hyperlink):
        return value.text
    if isinstance(value, Mapping) and "text" in value and "url" in value:
        return value["text"]
    return value


def cell_text(value: Any) -> str:
    value = display_value(value)
    return "" if value is None else str(value)


def column_widths(grid: Sequence[Sequence[Any]], limit: int = FORMATTED_COLUMN_LIMIT) -> Dict[int, float]:
    """
    Width per 1-based column: longest text + 2, clamped to [10, 50].

    Empty cells count as zero-length text. Column 5 is widened by half and
    rounded half up.
    """
    width_count = max((len(row) for row in grid), default=0)
    widths: Dict[int, float] = {}
    for column in range(1, min(width_count, limit) + 1):
        longest = max(
            (len(cell_text(row[column - 1])) if column <= len(row) else 0 for row in grid),
            default=0,
        )
        widths[column] = min(max(longest + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH)
    if WIDE_COLUMN in widths:
        widths[WIDE_COLUMN] = math.floor(widths[WIDE_COLUMN] * WIDE_COLUMN_FACTOR + 0.5)
    return widths


def _group_index_by_row(groups: Sequence[IdentifierGroup], row_count: int) -> List[int]:
    index = [0] * row_count
    for position, group in enumerate(groups):
        for row in range(group.start_index, group.end_index + 1):
            index[row] = position
    return index


def _sequence_values(
    row_count: int, groups: Optional[Sequence[IdentifierGroup]]
) -> Tuple[List[Any], List[str]]:
    """Values for column A of every data row, plus merge ranges for groups."""
    if not groups:
        return list(range(1, row_count + 1)), []
    values: List[Any] = [None] * row_count
    merges = []
    for group in groups:
        values[group.start_index] = group.sequence_number
        if group.end_index > group.start_index:
            merges.append(f"A{group.start_index + 2}:A{group.end_index + 2}")
    return values, merges


def _data_cell(
    value: Any, column: int, fill: Optional[PatternFill], secondary: bool
) -> FormattedCell:
    centred = column == 1 or column == WIDE_COLUMN
    alignment = CENTER if centred else LEFT_WRAP
    # Text-plus-URL splitting applies to the link columns only
    link = split_hyperlink(value) if column > WIDE_COLUMN else composite_link(value)
    if link is not None:
        return FormattedCell(value=link.text, font=LINK_FONT, fill=fill, alignment=alignment,
                             border=THIN_BORDER, hyperlink=link.url)

    font = SECONDARY_FONT if secondary and column >= 2 else None
    return FormattedCell(value=display_value(value), font=font, fill=fill,
                         alignment=alignment, border=THIN_BORDER)


def _plain_cell(value: Any) -> FormattedCell:
    link = composite_link(value)
    if link is not None:
        return FormattedCell(value=link.text, hyperlink=link.url)
    return FormattedCell(value=display_value(value))


def format_sheet(sheet: Sheet, translator: HeaderTranslator = default_translator) -> FormattedSheet:
    """
    Lay out one sheet.

    Args:
        sheet: Normalized and re-indexed sheet; `groups` selects grouped layout
        translator: Header translator for the first seven columns

    Returns:
        FormattedSheet with header row, data rows, widths, heights and merges
    """
    headers = list(sheet.headers)
    row_count = len(sheet.rows)
    data = [[row.get(h) for h in headers] for row in sheet.rows]
    merges: List[str] = []

    if headers and is_sequence_header(headers[0]):
        headers[0] = SEQUENCE_LABEL
        sequence, merges = _sequence_values(row_count, sheet.groups)
        for values, number in zip(data, sequence):
            values[0] = number

    headers = translator.translate_headers(headers, FORMATTED_COLUMN_LIMIT)
    widths = column_widths([headers] + data)

    header_cells = tuple(
        FormattedCell(value=h, font=HEADER_FONT, fill=HEADER_FILL,
                      alignment=HEADER_ALIGNMENT, border=THIN_BORDER)
        if column <= FORMATTED_COLUMN_LIMIT else FormattedCell(value=h)
        for column, h in enumerate(headers, start=1)
    )

    flags = sheet.primary_flags
    if flags is None or len(flags) != row_count:
        flags = tuple(is_primary_language(row) for row in sheet.rows)
    group_of_row = _group_index_by_row(sheet.groups, row_count) if sheet.groups else None

    rows = [header_cells]
    for r, values in enumerate(data):
        if group_of_row is not None:
            shaded = group_of_row[r] % 2 == 1
        else:
            shaded = (r + 2) % 2 == 0
        fill = ALTERNATE_FILL if shaded else None
        secondary = not flags[r]
        rows.append(tuple(
            _data_cell(value, column, fill, secondary)
            if column <= FORMATTED_COLUMN_LIMIT else _plain_cell(value)
            for column, value in enumerate(values, start=1)
        ))

    return FormattedSheet(
        name=sheet.name,
        cells=tuple(rows),
        column_widths=widths,
        row_heights={1: HEADER_ROW_HEIGHT},
        merged_ranges=tuple(merges),
    )


def format_workbook(sheets: Sequence[Sheet], translator: HeaderTranslator = default_translator) -> List[FormattedSheet]:
    return [format_sheet(sheet, translator) for sheet in sheets]
