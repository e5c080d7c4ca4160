"""Configuration classes for fastapi-datatables."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Union

from sqlalchemy.dialects import oracle
from sqlalchemy.types import CHAR, TEXT, VARCHAR, TypeEngine

from fastapi_datatables.models import DbEngine, PaginatorStrategy

# Text type each engine can LIKE against after a CAST
TYPECASTS: Mapping[DbEngine, TypeEngine] = MappingProxyType(
    {
        DbEngine.ORACLE: oracle.VARCHAR2(4000),
        DbEngine.POSTGRES: VARCHAR(),
        DbEngine.MYSQL: CHAR(),
        DbEngine.SQLITE: TEXT(),
    }
)


@dataclass(frozen=True)
class DataTablesConfig:
    """
    Configuration for DataTables request processing.

    Instances are immutable and can be shared by concurrent requests; pass one
    explicitly to every ``DataTable`` instead of relying on global state.

    Attributes:
        db_engine: Engine used to pick the text typecast for searches (default: sqlite)
        paginator: Pagination strategy (default: page)
        default_length: Rows per page when the request omits ``length`` (default: 10)
        max_length: Upper bound for ``length``, None for unlimited (default: None)
        allow_all_rows: If False, ``length=-1`` is clamped to ``default_length`` (default: True)
        strict_mode: If True, unknown sort columns are a 400 instead of dropped (default: False)

    Example:
        config = DataTablesConfig(db_engine=DbEngine.POSTGRES, max_length=500)

        @app.get("/users/data")
        def users(params: RequestParams = Depends(datatables_params)):
            return UsersTable(params, config=config).as_json(session)
    """

    db_engine: DbEngine = DbEngine.SQLITE
    paginator: PaginatorStrategy = PaginatorStrategy.PAGE
    default_length: int = 10
    max_length: Optional[int] = None
    allow_all_rows: bool = True
    strict_mode: bool = False

    def __post_init__(self):
        """Validate configuration values."""
        # Accept plain strings from settings files
        object.__setattr__(self, "db_engine", DbEngine(self.db_engine))
        object.__setattr__(self, "paginator", PaginatorStrategy(self.paginator))
        if self.default_length < 1:
            raise ValueError("default_length must be >= 1")
        if self.max_length is not None:
            if self.max_length < 1:
                raise ValueError("max_length must be >= 1 or None")
            if self.default_length > self.max_length:
                raise ValueError("default_length cannot exceed max_length")

    @property
    def typecast(self) -> TypeEngine:
        """Text type searchable columns are cast to."""
        return TYPECASTS[self.db_engine]

    def validate_length(self, length: int) -> int:
        """
        Constrain a requested page length.

        Args:
            length: Requested length, ``-1`` meaning all rows

        Returns:
            int: Length to use
        """
        if length == -1:
            return -1 if self.allow_all_rows else self.default_length
        if self.max_length is not None and length > self.max_length:
            return self.max_length
        return length


class DataTablesPresets:
    """Pre-defined DataTablesConfig presets for common use cases."""

    @staticmethod
    def default() -> DataTablesConfig:
        """Default configuration with sensible defaults."""
        return DataTablesConfig()

    @staticmethod
    def strict() -> DataTablesConfig:
        """Strict mode configuration - unknown sort columns are rejected."""
        return DataTablesConfig(strict_mode=True)

    @staticmethod
    def for_engine(db_engine: Union[DbEngine, str]) -> DataTablesConfig:
        """Default configuration for a given database engine."""
        return DataTablesConfig(db_engine=DbEngine(db_engine))

    @staticmethod
    def bounded(max_length: int = 100) -> DataTablesConfig:
        """
        Configuration that refuses to return unbounded pages.

        Args:
            max_length: Maximum rows per page
        """
        return DataTablesConfig(
            max_length=max_length,
            default_length=min(10, max_length),
            allow_all_rows=False,
        )
