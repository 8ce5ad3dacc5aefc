import io
import logging
import time
from datetime import date, datetime
from typing import Any, List

import numpy as np
import pandas as pd

from sheet_pipeline.errors import WorkbookDecodeError
from sheet_pipeline.models import Grid, RawSheet

logger = logging.getLogger(__name__)


def native_value(value: Any) -> Any:
    """
    Convert a cell value produced by pandas into a plain Python value.

    NaN/NaT become None, numpy scalars become their Python counterparts
    and pandas Timestamps become datetime objects.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, (datetime, date, str, bool)):
        return value
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and pd.isna(value):
        return None
    return value


def _trim_trailing(values: List[Any]) -> List[Any]:
    end = len(values)
    while end and values[end - 1] is None:
        end -= 1
    return values[:end]


def frame_to_grid(df: pd.DataFrame) -> Grid:
    """
    Turn a header-less DataFrame into a list of rows.

    Trailing empty cells are dropped from every row so that ragged rows
    stay ragged; wholly empty trailing rows are dropped as well.
    """
    grid = [
        _trim_trailing([native_value(v) for v in row])
        for row in df.itertuples(index=False, name=None)
    ]
    while grid and not grid[-1]:
        grid.pop()
    return grid


def read_workbook(content: bytes) -> List[RawSheet]:
    """
    Decode spreadsheet bytes into an ordered list of raw sheets.

    Args:
        content: Raw .xlsx/.xls bytes

    Returns:
        List of RawSheet in workbook order; row 0 of each grid is the header row

    Raises:
        WorkbookDecodeError: If the bytes are not a readable spreadsheet
    """
    start_time = time.time()
    try:
        # Only blank cells are missing; text such as "N/A" or "null" is data
        frames = pd.read_excel(
            io.BytesIO(content),
            sheet_name=None,
            header=None,
            dtype=object,
            keep_default_na=False,
            na_values=[""],
        )
    except Exception as e:
        logger.error(
            "Failed to decode workbook",
            extra={"size": len(content), "error": str(e), "error_type": type(e).__name__}
        )
        raise WorkbookDecodeError(f"Failed to read Excel file: {str(e)}") from e

    sheets = [RawSheet(name=str(name), grid=frame_to_grid(df)) for name, df in frames.items()]
    logger.info(
        "Decoded workbook",
        extra={
            "sheet_count": len(sheets),
            "read_time_seconds": f"{time.time() - start_time:.2f}"
        }
    )
    return sheets
