"""
Pytest configuration file.

Puts the project directory on the Python path so the flat modules
(main, workbook_process, config) import during test execution, and
provides helpers that build spreadsheet bytes in memory.
"""
import io
import os
import sys

import pytest
from openpyxl import Workbook, load_workbook

# Add the current directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))


def build_xlsx(sheets):
    """
    Build .xlsx bytes from a mapping of sheet name -> list of rows.

    Rows are written as given, so ragged rows and None cells are preserved.
    Strings starting with '=' are stored as text, not as formulas.
    """
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(list(row))
            for cell in worksheet[worksheet.max_row]:
                if isinstance(cell.value, str) and cell.value.startswith("="):
                    cell.data_type = "s"
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_bytes():
    """Fixture returning the build_xlsx helper."""
    return build_xlsx


@pytest.fixture
def open_xlsx():
    """Fixture returning a loader that opens workbook bytes with openpyxl."""
    def _open(content):
        return load_workbook(io.BytesIO(content))
    return _open
