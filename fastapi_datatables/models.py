"""DataTables request and response models"""

from enum import StrEnum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class SortDirection(StrEnum):
    """Sorting directions"""

    ASC = "asc"  # ascending order
    DESC = "desc"  # descending order

    @classmethod
    def parse(cls, raw: Any) -> "SortDirection":
        """Parse a client direction; anything but asc/desc falls back to ASC."""
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                pass
        return cls.ASC


class DbEngine(StrEnum):
    """Database engines with a known text typecast"""

    ORACLE = "oracle"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class PaginatorStrategy(StrEnum):
    """Built-in pagination strategies"""

    PAGE = "page"  # start rounded down to a page boundary
    OFFSET = "offset"  # start used verbatim as the offset


T = TypeVar("T")


class ColumnSpec(BaseModel):
    """A logical column declared once per table definition.

    ``source`` is either ``"Entity.column"`` or a bare name for a virtual
    (computed) column that can only be ordered by label.

    Example:
        ColumnSpec(display_name="email", source="User.email")
        ColumnSpec(display_name="post_count", source="post_count", searchable=False)
    """

    model_config = ConfigDict(frozen=True)

    display_name: str
    source: str
    sortable: bool = True
    searchable: bool = True
    legacy: Optional[bool] = None

    @property
    def entity(self) -> str:
        return self.source.split(".", 1)[0]

    @property
    def column(self) -> Optional[str]:
        parts = self.source.split(".", 1)
        return parts[1] if len(parts) == 2 and parts[1] else None

    @property
    def is_virtual(self) -> bool:
        return self.column is None


class ColumnParam(BaseModel):
    """One entry of the client's ``columns`` list"""

    data: str = ""
    name: str = ""
    searchable: bool = True
    orderable: bool = True
    search_value: str = ""
    search_regex: bool = False


class OrderClause(BaseModel):
    """One entry of the client's ``order`` list"""

    column: int
    dir: SortDirection = SortDirection.ASC


class RequestParams(BaseModel):
    """A normalized DataTables request"""

    draw: int = 0
    start: int = Field(default=0, ge=0)
    length: int = 10
    order: List[OrderClause] = Field(default_factory=list)
    search_value: Optional[str] = None
    search_regex: bool = False
    columns: List[ColumnParam] = Field(default_factory=list)

    @property
    def paginated(self) -> bool:
        return self.length != -1

    @property
    def displayed_columns(self) -> List[str]:
        """Column identifiers in client display order."""
        return [c.data for c in self.columns]

    @property
    def per_column_search(self) -> Dict[int, str]:
        """Display index -> search value, for columns with a non-empty search."""
        return {i: c.search_value for i, c in enumerate(self.columns) if c.search_value.strip()}


class DataTablesResponse(BaseModel, Generic[T]):
    """Response envelope consumed by the DataTables client"""

    draw: int
    recordsTotal: int
    recordsFiltered: int
    data: List[T]
    error: Optional[str] = None
