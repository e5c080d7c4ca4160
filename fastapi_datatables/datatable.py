"""Response assembly for DataTables server-side processing."""

import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import ColumnElement, Select
from sqlmodel import Session
from sqlmodel.ext.asyncio.session import AsyncSession

from fastapi_datatables.columns import ColumnRegistry, ColumnResolver
from fastapi_datatables.config import DataTablesConfig
from fastapi_datatables.exceptions import MethodNotImplementedError
from fastapi_datatables.models import DataTablesResponse, RequestParams
from fastapi_datatables.pagination import Paginator, count_rows, count_rows_async, get_paginator
from fastapi_datatables.search import SearchEngine
from fastapi_datatables.sorting import SortClause, SortEngine

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class DataTable:
    """
    Base class for a server-side DataTables endpoint.

    Subclass it per table, declare the columns and implement
    ``get_raw_records`` and ``serialize_row``. Instantiate once per request:
    the resolved columns, search predicate and raw query are memoized on the
    instance and must not outlive the request.

    The pipeline is split into focused engines:
    - ColumnResolver: client column references to SQL columns
    - SortEngine: ordered multi-column sorting
    - SearchEngine: escaped, engine-typecast search predicates
    - Paginator: pluggable page bounding

    Example:
        class UsersTable(DataTable):
            registry = ColumnRegistry(
                entities={"User": User},
                view_columns=[
                    ColumnSpec(display_name="name", source="User.name"),
                    ColumnSpec(display_name="email", source="User.email"),
                ],
            )

            def get_raw_records(self):
                return select(User)

            def serialize_row(self, user):
                return {"name": user.name, "email": user.email}

        @app.get("/users/data")
        def users(
            params: RequestParams = Depends(datatables_params),
            session: Session = Depends(get_session),
        ):
            return UsersTable(params).as_json(session)
    """

    registry: Optional[ColumnRegistry] = None

    def __init__(
        self,
        params: RequestParams,
        config: Optional[DataTablesConfig] = None,
        registry: Optional[ColumnRegistry] = None,
        paginator: Optional[Paginator] = None,
    ):
        """
        Initialize DataTable.

        Args:
            params: Normalized request parameters
            config: Configuration; defaults to ``DataTablesConfig()``
            registry: Column declarations, overriding the class-level ``registry``
            paginator: Pagination strategy, overriding ``config.paginator``

        Raises:
            MethodNotImplementedError: If no column registry is declared or the
                configured pagination strategy is not registered
        """
        self.params = params
        self.config = config or DataTablesConfig()
        if registry is not None:
            self.registry = registry
        if self.registry is None:
            raise MethodNotImplementedError(
                f"{type(self).__name__} must declare a column registry."
            )
        self.paginator = paginator or get_paginator(self.config.paginator)

        self.resolver = ColumnResolver(self.registry, params.displayed_columns)
        self._search_engine = SearchEngine(self.config)
        self._sort_engine = SortEngine(strict_mode=self.config.strict_mode)

        self._raw_records: Optional[Select] = None
        self._records: Optional[Select] = None
        self._search_condition: Any = _UNSET

    # --- Implementor hooks ---

    def get_raw_records(self) -> Select:
        """Unfiltered query for every row the table can show."""
        raise MethodNotImplementedError(
            f"{type(self).__name__} must implement get_raw_records()."
        )

    def serialize_row(self, row: Any) -> Any:
        """Shape one fetched row for the ``data`` array."""
        raise MethodNotImplementedError(f"{type(self).__name__} must implement serialize_row().")

    def data(self, rows: Sequence[Any]) -> List[Any]:
        return [self.serialize_row(row) for row in rows]

    # --- Query pipeline ---

    def raw_records(self) -> Select:
        if self._raw_records is None:
            self._raw_records = self.get_raw_records()
        return self._raw_records

    def sort_clauses(self) -> List[SortClause]:
        return self._sort_engine.build_sort_clauses(self.params.order, self.resolver)

    def sort_records(self, query: Select) -> Select:
        return self._sort_engine.apply_sort(query, self.sort_clauses())

    def search_condition(self) -> Optional[ColumnElement[bool]]:
        """Global search predicate for this request, built once."""
        if self._search_condition is _UNSET:
            self._search_condition = self._search_engine.build_conditions(
                self.params.search_value, self.resolver.searchable()
            )
        return self._search_condition

    def filter_records(self, query: Select) -> Select:
        condition = self.search_condition()
        if condition is None:
            return query
        return query.where(condition)

    def composite_search(self, query: Select) -> Select:
        """
        Filter by each column's own search value.

        Not part of the default pipeline; call it from an overridden
        ``filter_records`` to enable per-column search.
        """
        condition = self._search_engine.build_composite_conditions(
            self.params.per_column_search, self.resolver
        )
        if condition is None:
            return query
        return query.where(condition)

    def paginate_records(self, query: Select) -> Select:
        return self.paginator.paginate(query, self.params.start, self.params.length)

    def fetch_records(self) -> Select:
        query = self.raw_records()
        if self.params.order:
            query = self.sort_records(query)
        if self.params.search_value:
            query = self.filter_records(query)
        if self.params.paginated:
            query = self.paginate_records(query)
        return query

    def records(self) -> Select:
        """Final query for the requested page, built once."""
        if self._records is None:
            self._records = self.fetch_records()
        return self._records

    def filtered_records(self) -> Select:
        """Raw query with search applied, before sorting and pagination."""
        query = self.raw_records()
        if self.params.search_value:
            query = self.filter_records(query)
        return query

    # --- Response building ---

    def build_response(
        self, records_total: int, records_filtered: int, rows: Sequence[Any]
    ) -> DataTablesResponse[Any]:
        return DataTablesResponse(
            draw=self.params.draw,
            recordsTotal=records_total,
            recordsFiltered=records_filtered,
            data=self.data(rows),
        )

    def as_json(self, session: Session) -> DataTablesResponse[Any]:
        """
        Execute the request and build the response envelope.

        Args:
            session: Database session

        Returns:
            DataTablesResponse: Counts and the requested page of rows
        """
        records_total = count_rows(self.raw_records(), session)
        if self.params.search_value:
            records_filtered = count_rows(self.filtered_records(), session)
        else:
            records_filtered = records_total
        rows = session.exec(self.records()).all()
        logger.debug(
            "draw=%s total=%s filtered=%s rows=%s",
            self.params.draw,
            records_total,
            records_filtered,
            len(rows),
        )
        return self.build_response(records_total, records_filtered, rows)

    async def as_json_async(self, session: AsyncSession) -> DataTablesResponse[Any]:
        """
        Execute the request asynchronously and build the response envelope.

        Args:
            session: Async database session

        Returns:
            DataTablesResponse: Counts and the requested page of rows
        """
        records_total = await count_rows_async(self.raw_records(), session)
        if self.params.search_value:
            records_filtered = await count_rows_async(self.filtered_records(), session)
        else:
            records_filtered = records_total
        result = await session.exec(self.records())
        rows = result.all()
        return self.build_response(records_total, records_filtered, rows)
