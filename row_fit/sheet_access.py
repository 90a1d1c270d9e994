"""
Sheet access interfaces for the row-fitting engine.

The engine never touches a concrete workbook library directly. It reads and
mutates sheets through the abstract accessors defined here; `row_fit.openpyxl_sheet`
provides the openpyxl-backed implementation. All indices are zero-based.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional
import logging

from height_measure.cell_height import CellStyle, FontMetrics

logger = logging.getLogger(__name__)


class RowFitError(Exception):
    """Base exception for row-fitting operations."""
    pass


class MissingEntityError(RowFitError, LookupError):
    """Raised when a referenced row, column or font cannot be resolved."""
    pass


@dataclass(frozen=True)
class MergedRegion:
    """Rectangular merged region, inclusive bounds."""

    first_row: int
    last_row: int
    first_column: int
    last_column: int

    def __post_init__(self):
        if self.first_row < 0 or self.first_column < 0:
            raise ValueError(f"Merged region indices must be non-negative: {self}")
        if self.first_row > self.last_row or self.first_column > self.last_column:
            raise ValueError(f"Merged region bounds are inverted: {self}")

    @classmethod
    def from_span(cls, row: int, column: int, row_span: int = 1, column_span: int = 1) -> "MergedRegion":
        """Build a region anchored at (row, column); spans below 1 collapse to 1."""
        return cls(
            first_row=row,
            last_row=max(row, row + row_span - 1),
            first_column=column,
            last_column=max(column, column + column_span - 1),
        )

    def contains_row(self, row: int) -> bool:
        return self.first_row <= row <= self.last_row

    def contains_column(self, column: int) -> bool:
        return self.first_column <= column <= self.last_column

    def contains(self, row: int, column: int) -> bool:
        return self.contains_row(row) and self.contains_column(column)

    def is_degenerate(self) -> bool:
        """A single-cell region; merging it is a no-op."""
        return self.first_row == self.last_row and self.first_column == self.last_column

    @property
    def row_span(self) -> int:
        return self.last_row - self.first_row + 1

    def rows(self) -> range:
        return range(self.first_row, self.last_row + 1)

    def columns(self) -> range:
        return range(self.first_column, self.last_column + 1)


class CellAccessor(ABC):
    """Read-only view of a single cell."""

    @property
    @abstractmethod
    def row_index(self) -> int:
        pass

    @property
    @abstractmethod
    def column_index(self) -> int:
        pass

    @abstractmethod
    def displayed_text(self) -> str:
        """Formatted text as the user sees it (formulas already evaluated)."""
        pass

    @abstractmethod
    def style(self) -> CellStyle:
        pass


class RowAccessor(ABC):
    """A row with a mutable height in points."""

    @property
    @abstractmethod
    def index(self) -> int:
        pass

    @property
    @abstractmethod
    def height(self) -> float:
        pass

    @height.setter
    @abstractmethod
    def height(self, value: float) -> None:
        pass

    @abstractmethod
    def cells(self) -> Iterator[CellAccessor]:
        """Present cells in ascending column order."""
        pass

    @abstractmethod
    def get_cell(self, column_index: int) -> Optional[CellAccessor]:
        pass

    @abstractmethod
    def create_cell(self, column_index: int) -> CellAccessor:
        pass

    def cell(self, column_index: int) -> CellAccessor:
        """Get the cell, creating it when absent."""
        return self.get_cell(column_index) or self.create_cell(column_index)


class FontRegistry(ABC):
    """Resolves font references to metrics."""

    @abstractmethod
    def get_font(self, font_ref: Any) -> FontMetrics:
        pass

    @abstractmethod
    def default_font(self) -> FontMetrics:
        pass


class ColumnWidthRegistry(ABC):
    """Column widths in native units (1/256 of a character)."""

    @abstractmethod
    def get_column_width(self, column_index: int) -> float:
        pass


class SheetAccessor(ABC):
    """Row store plus merged-region registry of one sheet."""

    @property
    @abstractmethod
    def fonts(self) -> FontRegistry:
        pass

    @property
    @abstractmethod
    def column_widths(self) -> ColumnWidthRegistry:
        pass

    @abstractmethod
    def get_row(self, row_index: int) -> Optional[RowAccessor]:
        pass

    @abstractmethod
    def create_row(self, row_index: int) -> RowAccessor:
        pass

    @abstractmethod
    def row_indices(self) -> List[int]:
        """Indices of existing rows, ascending."""
        pass

    @abstractmethod
    def default_row_height(self) -> float:
        pass

    @abstractmethod
    def merged_regions(self) -> List[MergedRegion]:
        pass

    @abstractmethod
    def add_merged_region(self, region: MergedRegion) -> None:
        pass

    def row(self, row_index: int) -> RowAccessor:
        """Get the row, creating it when absent."""
        return self.get_row(row_index) or self.create_row(row_index)

    def merged_regions_for_row(self, row_index: int) -> List[MergedRegion]:
        return [r for r in self.merged_regions() if r.contains_row(row_index)]

    def merged_region_for_cell(self, row_index: int, column_index: int) -> Optional[MergedRegion]:
        for region in self.merged_regions():
            if region.contains(row_index, column_index):
                return region
        return None

    def row_height_or_default(self, row_index: int) -> float:
        row = self.get_row(row_index)
        return row.height if row is not None else self.default_row_height()


def merge_cell(sheet: SheetAccessor, cell: CellAccessor,
               row_span: int = 1, column_span: int = 1) -> Optional[MergedRegion]:
    """
    Merge the cell with its neighbours to the right and below.

    Returns the created region, or None when the spans describe a single cell.
    """
    region = MergedRegion.from_span(cell.row_index, cell.column_index, row_span, column_span)
    if region.is_degenerate():
        logger.debug(f"Skipping single-cell merge at ({cell.row_index}, {cell.column_index})")
        return None
    sheet.add_merged_region(region)
    return region
