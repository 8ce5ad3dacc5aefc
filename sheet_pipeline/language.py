"""
Primary/secondary language classification of rows.

A row counts as secondary language when its JSON text (keys included)
contains any code point from the CJK Unified Ideographs block
(U+4E00-U+9FFF). This is a heuristic, not a language detector: a single
ideograph anywhere in the row, such as a pasted reference code or a
Chinese column name, is enough to classify the whole row as secondary.
"""
import json
import re
from typing import Any, Mapping

CJK_PATTERN = re.compile(r"[\u4e00-\u9fff]")


def row_text(row: Mapping[str, Any]) -> str:
    return json.dumps(row, ensure_ascii=False, default=str)


def is_primary_language(row: Mapping[str, Any]) -> bool:
    """Return False when the serialized row contains a CJK ideograph."""
    return CJK_PATTERN.search(row_text(row)) is None
