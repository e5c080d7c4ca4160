"""fastapi-datatables: DataTables server-side processing for FastAPI + SQLModel."""

from . import models as models  # noqa: F401
from .columns import ColumnRegistry, ColumnResolver  # noqa: F401
from .config import TYPECASTS, DataTablesConfig, DataTablesPresets  # noqa: F401
from .datatable import DataTable  # noqa: F401
from .exceptions import (  # noqa: F401
    ConfigurationError,
    DataTablesError,
    MalformedParameterError,
    MethodNotImplementedError,
    UnresolvableColumnError,
)
from .models import (  # noqa: F401
    ColumnParam,
    ColumnSpec,
    DataTablesResponse,
    DbEngine,
    OrderClause,
    PaginatorStrategy,
    RequestParams,
    SortDirection,
)
from .pagination import (  # noqa: F401
    PAGINATORS,
    OffsetPaginator,
    PagePaginator,
    Paginator,
    get_paginator,
)
from .params import (  # noqa: F401
    datatables_params,
    datatables_params_from_body,
    normalize_request,
    unflatten_query_params,
)
from .search import SearchEngine  # noqa: F401
from .sorting import SortClause, SortEngine  # noqa: F401

__all__ = [
    # Main class
    "DataTable",
    # Engines
    "ColumnResolver",
    "SearchEngine",
    "SortEngine",
    # Pagination strategies
    "Paginator",
    "PagePaginator",
    "OffsetPaginator",
    "PAGINATORS",
    "get_paginator",
    # Request parsing
    "normalize_request",
    "unflatten_query_params",
    "datatables_params",
    "datatables_params_from_body",
    # Configuration
    "ColumnRegistry",
    "DataTablesConfig",
    "DataTablesPresets",
    "TYPECASTS",
    # Errors
    "DataTablesError",
    "MethodNotImplementedError",
    "ConfigurationError",
    "MalformedParameterError",
    "UnresolvableColumnError",
    # Models
    "ColumnSpec",
    "ColumnParam",
    "OrderClause",
    "RequestParams",
    "SortClause",
    "SortDirection",
    "DbEngine",
    "PaginatorStrategy",
    "DataTablesResponse",
    # Module
    "models",
]
