from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

Row = Dict[str, Any]
Grid = List[List[Any]]


@dataclass(frozen=True)
class Hyperlink:
    """Cell value made of display text and a link target."""
    text: str
    url: str


@dataclass(frozen=True)
class FileSource:
    """An uploaded spreadsheet as received from the transport layer."""
    file_name: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RawSheet:
    name: str
    grid: Grid


@dataclass(frozen=True)
class NormalizedSheet:
    """Header list plus one mapping per data row."""
    headers: List[str]
    rows: List[Row]

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)


@dataclass(frozen=True)
class JsonSheetSource:
    """One `{name, rows}` entry resolved from a JSON request body."""
    name: str
    rows: List[Row]


@dataclass(frozen=True)
class IdentifierGroup:
    """
    Rows sharing one original identifier value after grouping.

    Attributes:
        key: The original identifier value (None when absent)
        sequence_number: 1-based number in first-appearance order
        start_index: First position of the group in the sorted rows
        end_index: Last position of the group in the sorted rows (inclusive)
        primary_flags: Language classification of each member row
    """
    key: Any
    sequence_number: int
    start_index: int
    end_index: int
    primary_flags: Tuple[bool, ...]

    @property
    def size(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass(frozen=True)
class GroupedRows:
    rows: List[Row]
    groups: Tuple[IdentifierGroup, ...]

    @property
    def primary_flags(self) -> Tuple[bool, ...]:
        flags: Tuple[bool, ...] = ()
        for group in self.groups:
            flags += group.primary_flags
        return flags


@dataclass(frozen=True)
class Sheet:
    """
    A named sheet ready for layout.

    `groups` is set only when the rows went through grouped re-indexing;
    `primary_flags` holds one language flag per row when it is known.
    """
    name: str
    headers: List[str]
    rows: List[Row]
    groups: Optional[Tuple[IdentifierGroup, ...]] = None
    primary_flags: Optional[Tuple[bool, ...]] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)


@dataclass(frozen=True)
class FormattedCell:
    """
    One output cell with its presentation.

    Style members hold openpyxl style objects (Font, PatternFill,
    Alignment, Border) or None when the cell keeps the default style.
    """
    value: Any = None
    font: Any = None
    fill: Any = None
    alignment: Any = None
    border: Any = None
    hyperlink: Optional[str] = None


@dataclass(frozen=True)
class FormattedSheet:
    name: str
    cells: Tuple[Tuple[FormattedCell, ...], ...]
    column_widths: Dict[int, float] = field(default_factory=dict)
    row_heights: Dict[int, float] = field(default_factory=dict)
    merged_ranges: Tuple[str, ...] = ()

    def cell(self, row: int, column: int) -> FormattedCell:
        """Return the cell at 1-based worksheet coordinates."""
        return self.cells[row - 1][column - 1]
