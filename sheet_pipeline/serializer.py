import io
import json
import logging
from datetime import date, datetime, time
from typing import Any, Optional, Sequence
from urllib.parse import quote

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from sheet_pipeline.merger import source_stem
from sheet_pipeline.models import FormattedSheet, Sheet

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EMPTY_SHEET_NAME = "Sheet1"


def cell_value(value: Any) -> Any:
    """Coerce a row value into something a worksheet cell can hold."""
    if value is None or isinstance(value, (bool, int, float, datetime, date, time)):
        return value
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return ILLEGAL_CHARACTERS_RE.sub("", json.dumps(value, ensure_ascii=False, default=str))


def write_cell(worksheet, row: int, column: int, value: Any):
    """Store `value` in a worksheet cell; input text is never a formula."""
    value = cell_value(value)
    cell = worksheet.cell(row=row, column=column, value=value)
    if isinstance(value, str) and value.startswith("="):
        cell.data_type = "s"
    return cell


def write_formatted_workbook(sheets: Sequence[FormattedSheet]) -> bytes:
    """
    Emit a styled workbook from formatted sheets.

    Args:
        sheets: Output of the formatter, in workbook order

    Returns:
        .xlsx bytes
    """
    workbook = Workbook()
    workbook.remove(workbook.active)

    for sheet in sheets:
        worksheet = workbook.create_sheet(title=sheet.name)
        for r, row in enumerate(sheet.cells, start=1):
            for c, formatted in enumerate(row, start=1):
                cell = write_cell(worksheet, r, c, formatted.value)
                if formatted.font is not None:
                    cell.font = formatted.font
                if formatted.fill is not None:
                    cell.fill = formatted.fill
                if formatted.alignment is not None:
                    cell.alignment = formatted.alignment
                if formatted.border is not None:
                    cell.border = formatted.border
                if formatted.hyperlink:
                    cell.hyperlink = formatted.hyperlink
                    cell.hyperlink.tooltip = formatted.hyperlink

        for column, width in sheet.column_widths.items():
            worksheet.column_dimensions[get_column_letter(column)].width = width
        for row_number, height in sheet.row_heights.items():
            worksheet.row_dimensions[row_number].height = height
        for cell_range in sheet.merged_ranges:
            worksheet.merge_cells(cell_range)

    return _save(workbook, "Wrote formatted workbook", len(sheets))


def write_plain_workbook(sheets: Sequence[Sheet]) -> bytes:
    """Emit an unstyled workbook: one plain header row, then the data rows."""
    workbook = Workbook()
    workbook.remove(workbook.active)

    for sheet in sheets:
        worksheet = workbook.create_sheet(title=sheet.name)
        for c, header in enumerate(sheet.headers, start=1):
            write_cell(worksheet, 1, c, header)
        for r, row in enumerate(sheet.rows, start=2):
            for c, header in enumerate(sheet.headers, start=1):
                if row.get(header) is not None:
                    write_cell(worksheet, r, c, row[header])

    return _save(workbook, "Wrote plain workbook", len(sheets))


def _save(workbook: Workbook, message: str, sheet_count: int) -> bytes:
    if not workbook.worksheets:
        workbook.create_sheet(title=EMPTY_SHEET_NAME)
    buffer = io.BytesIO()
    workbook.save(buffer)
    logger.info(message, extra={"sheet_count": sheet_count, "size": buffer.tell()})
    return buffer.getvalue()


def dated_file_name(prefix: str, today: Optional[date] = None) -> str:
    """`"<prefix> YYYYMMDD.xlsx"` for the given (default: local) date."""
    today = today or datetime.now().date()
    return f"{prefix} {today.strftime('%Y%m%d')}.xlsx"


def derived_file_name(file_name: str, suffix: str) -> str:
    """Output name built from the uploaded name: `<stem><suffix>.xlsx`."""
    stem = source_stem(file_name) or "workbook"
    return f"{stem}{suffix}.xlsx"


def content_disposition(file_name: str) -> str:
    """Attachment header value; non-ASCII names are percent-encoded."""
    file_name = file_name.replace('"', "")
    try:
        file_name.encode("ascii")
    except UnicodeEncodeError:
        encoded = quote(file_name)
        return f"attachment; filename=\"{encoded}\"; filename*=UTF-8''{encoded}"
    return f'attachment; filename="{file_name}"'
