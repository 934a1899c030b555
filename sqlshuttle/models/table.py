"""Table-level models used by the exporter and the table filter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field as PydanticField


class TableKind(str, Enum):
    """Kind of relation listed by a connector."""

    BASE_TABLE = "BASE TABLE"
    VIEW = "VIEW"


class MatchKind(str, Enum):
    """How an exclude pattern is compared to a table name."""

    PREFIX = "prefix"
    SUFFIX = "suffix"
    WILDCARD = "wildcard"


class TableDescriptor(BaseModel):
    """A table or view resolved once per export and immutable thereafter."""

    name: str = PydanticField(..., description="Table name as stored in the catalog")

    kind: TableKind = PydanticField(TableKind.BASE_TABLE, description="Base table or view")

    columns: tuple[str, ...] = PydanticField(
        (),
        description="Column names in storage order",
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def is_view(self) -> bool:
        return self.kind == TableKind.VIEW


class FilterRule(BaseModel):
    """An exclude pattern compiled from its raw configuration string."""

    pattern: str = PydanticField(..., description="Literal text to match (markers stripped)")

    match_kind: MatchKind = PydanticField(..., description="Comparison to apply")

    model_config = {"frozen": True, "extra": "forbid"}


@dataclass
class ExportCursor:
    """Offset/limit window position over one table.

    A short fetch (fewer rows than ``chunk_size``) means the table is done.
    """

    table_name: str
    chunk_size: int
    row_offset: int = 0
    windows_fetched: int = 0

    def advance(self, rows_fetched: int) -> bool:
        """Move to the next window.

        Args:
            rows_fetched: Number of rows the current window returned

        Returns:
            True if another window should be fetched
        """
        self.windows_fetched += 1
        self.row_offset += self.chunk_size
        return rows_fetched >= self.chunk_size
