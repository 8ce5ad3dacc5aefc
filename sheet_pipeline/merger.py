"""
Combine several sources into one list of output sheets.

File sources are decoded, normalized and numbered flat. JSON bodies come
in three shapes which are resolved once, here, into a list of
JsonSheetSource before any row is touched; their rows are numbered in
grouped mode.
"""
import json
import logging
import os
import re
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Sequence

from sheet_pipeline.errors import InvalidPayloadError, NoValidSheetsError
from sheet_pipeline.language import is_primary_language
from sheet_pipeline.models import FileSource, JsonSheetSource, RawSheet, Row, Sheet
from sheet_pipeline.normalizer import find_identifier_column, normalize_grid
from sheet_pipeline.reader import read_workbook
from sheet_pipeline.reindexer import reindex_flat, reindex_grouped
from sheet_pipeline.translator import TRANSLATED_COLUMN_LIMIT

logger = logging.getLogger(__name__)

MAX_SHEET_NAME_LENGTH = 31
INVALID_SHEET_NAME_CHARS = re.compile(r"[\[\]:*?/\\]")
DEFAULT_SHEET_NAME = "Sheet1"


class PayloadShape(Enum):
    BARE_ARRAY = "bare_array"
    SHEETS_LIST = "sheets_list"
    KEYED_OBJECT = "keyed_object"


def sanitize_sheet_name(name: Any) -> str:
    """Make `name` acceptable as a worksheet title."""
    text = INVALID_SHEET_NAME_CHARS.sub("_", str(name if name is not None else "")).strip()
    # Titles may not start or end with an apostrophe
    text = text.strip("'")
    return text[:MAX_SHEET_NAME_LENGTH] or "Sheet"


def unique_sheet_name(name: str, taken: Iterable[str]) -> str:
    """
    Return `name`, or `name_1`, `name_2`, ... when it is already taken.

    Names are compared case-insensitively, as spreadsheet applications do.
    Suffixed names are shortened so they stay within the title length limit.
    """
    used = {t.casefold() for t in taken}
    if name.casefold() not in used:
        return name
    counter = 1
    while True:
        suffix = f"_{counter}"
        candidate = f"{name[:MAX_SHEET_NAME_LENGTH - len(suffix)]}{suffix}"
        if candidate.casefold() not in used:
            return candidate
        counter += 1


def source_stem(file_name: str) -> str:
    """File name without directory and extension."""
    base = os.path.basename((file_name or "").replace("\\", "/"))
    return os.path.splitext(base)[0]


def merge_file_sources(
    sources: Sequence[FileSource],
    sheet_names: Optional[Sequence[str]] = None,
    reader: Callable[[bytes], List[RawSheet]] = read_workbook,
) -> List[Sheet]:
    """
    Decode every uploaded file and collect their non-empty sheets.

    Sheet naming, per source: an explicit positional name when given; the
    file name without extension when several files arrive and no names were
    given at all; otherwise the sheet's own name. Collisions get `_<n>`.

    Args:
        sources: Uploaded files in request order
        sheet_names: Optional positional names, one per source
        reader: Decoder used for the spreadsheet bytes

    Returns:
        Sheets with the identifier column numbered 1..N

    Raises:
        WorkbookDecodeError: If a file cannot be decoded
        NoValidSheetsError: If no sheet has at least one data row
    """
    names = [(n or "").strip() for n in (sheet_names or [])]
    any_named = any(names)
    use_file_names = len(sources) > 1 and not any_named

    sheets: List[Sheet] = []
    for index, source in enumerate(sources):
        explicit = names[index] if index < len(names) else ""
        for raw in reader(source.content):
            normalized = normalize_grid(raw.grid)
            if not normalized.rows:
                logger.info(
                    "Skipping sheet without data rows",
                    extra={"file_name": source.file_name, "sheet": raw.name}
                )
                continue

            if explicit:
                base = explicit
            elif use_file_names:
                base = source_stem(source.file_name)
            else:
                base = raw.name
            name = unique_sheet_name(sanitize_sheet_name(base), [s.name for s in sheets])

            id_index = find_identifier_column(normalized.headers)
            id_key = normalized.headers[id_index] if id_index is not None else None
            rows = reindex_flat(normalized.rows, id_key)
            sheets.append(Sheet(
                name=name,
                headers=normalized.headers,
                rows=rows,
                primary_flags=tuple(is_primary_language(row) for row in rows),
            ))

    if not sheets:
        raise NoValidSheetsError("No sheet with data rows found in the uploaded files")

    logger.info(
        "Merged file sources",
        extra={"source_count": len(sources), "sheet_count": len(sheets)}
    )
    return sheets


def classify_payload(payload: Any) -> PayloadShape:
    """
    Decide which of the accepted JSON shapes `payload` has.

    Raises:
        InvalidPayloadError: If the payload is neither a list nor an object
    """
    if isinstance(payload, list):
        return PayloadShape.BARE_ARRAY
    if isinstance(payload, dict):
        entries = payload.get("sheets")
        if isinstance(entries, list) and all(
            isinstance(e, dict) and ("data" in e or "name" in e) for e in entries
        ):
            return PayloadShape.SHEETS_LIST
        return PayloadShape.KEYED_OBJECT
    raise InvalidPayloadError(
        "JSON body must be an array of rows, an object with a 'sheets' list, "
        "or an object keyed by sheet name"
    )


def coerce_rows(data: Any, sheet_name: str) -> List[Row]:
    """
    Turn sheet data (JSON text or a list) into row mappings.

    Data that cannot be parsed or is not a list yields no rows; entries
    that are not objects are dropped.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as e:
            logger.warning("Sheet data is not valid JSON", extra={"sheet": sheet_name, "error": str(e)})
            return []
    if not isinstance(data, list):
        logger.warning("Sheet data is not a list of rows", extra={"sheet": sheet_name})
        return []
    rows = [dict(item) for item in data if isinstance(item, dict)]
    if len(rows) != len(data):
        logger.warning(
            "Dropped non-object rows",
            extra={"sheet": sheet_name, "dropped": len(data) - len(rows)}
        )
    return rows


def resolve_json_payload(payload: Any) -> List[JsonSheetSource]:
    """Normalize any accepted JSON shape into an ordered list of named row sets."""
    shape = classify_payload(payload)
    if shape is PayloadShape.BARE_ARRAY:
        return [JsonSheetSource(DEFAULT_SHEET_NAME, coerce_rows(payload, DEFAULT_SHEET_NAME))]

    if shape is PayloadShape.SHEETS_LIST:
        sources = []
        for index, entry in enumerate(payload["sheets"]):
            name = str(entry.get("name") or f"Sheet{index + 1}")
            sources.append(JsonSheetSource(name, coerce_rows(entry.get("data"), name)))
        return sources

    return [JsonSheetSource(str(name), coerce_rows(data, str(name))) for name, data in payload.items()]


def build_json_sheets(sources: Sequence[JsonSheetSource]) -> List[Sheet]:
    """
    Group, number and slice JSON row sets into output sheets.

    Each sheet's columns are the first seven keys of its first row after
    grouping, in that row's key order.

    Raises:
        NoValidSheetsError: If every source has zero rows
    """
    sheets: List[Sheet] = []
    for source in sources:
        if not source.rows:
            logger.warning("Skipping empty JSON sheet", extra={"sheet": source.name})
            continue

        keys = list(source.rows[0].keys())
        id_index = find_identifier_column(keys)
        grouped = reindex_grouped(source.rows, keys[id_index] if id_index is not None else None)
        headers = list(grouped.rows[0].keys())[:TRANSLATED_COLUMN_LIMIT]
        rows = [{h: row.get(h) for h in headers} for row in grouped.rows]

        name = unique_sheet_name(sanitize_sheet_name(source.name), [s.name for s in sheets])
        sheets.append(Sheet(
            name=name,
            headers=headers,
            rows=rows,
            groups=grouped.groups if id_index is not None else None,
            primary_flags=grouped.primary_flags,
        ))

    if not sheets:
        raise NoValidSheetsError("No valid sheet data provided")

    logger.info("Built sheets from JSON", extra={"sheet_count": len(sheets)})
    return sheets
