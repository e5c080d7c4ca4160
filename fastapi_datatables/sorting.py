"""Sort engine for applying multi-column ordering to queries."""

import logging
from dataclasses import dataclass
from typing import Any, List, Sequence

from sqlalchemy import ColumnElement, Select

from fastapi_datatables.columns import ColumnResolver
from fastapi_datatables.exceptions import UnresolvableColumnError
from fastapi_datatables.models import OrderClause, SortDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SortClause:
    """A resolved ordering term"""

    column: ColumnElement[Any]
    direction: SortDirection = SortDirection.ASC

    def to_order_by(self) -> ColumnElement[Any]:
        return self.column.desc() if self.direction == SortDirection.DESC else self.column.asc()


class SortEngine:
    """
    Engine for applying sorting to SQL queries.

    Resolves each client order clause to a column and keeps the client's
    order, so the first clause is the primary sort key.
    """

    def __init__(self, strict_mode: bool = False):
        """
        Initialize SortEngine.

        Args:
            strict_mode: If True, raise errors for unresolvable sort columns
        """
        self.strict_mode = strict_mode

    def build_sort_clauses(
        self, order: Sequence[OrderClause], resolver: ColumnResolver
    ) -> List[SortClause]:
        """
        Resolve order clauses to sort clauses.

        Args:
            order: Normalized client order clauses
            resolver: Column resolver for the current request

        Returns:
            List[SortClause]: Resolved clauses in request order

        Raises:
            UnresolvableColumnError: If strict_mode is True and a column is unknown
        """
        clauses = []
        for item in order:
            try:
                column = resolver.resolve_sort_column(item.column)
            except UnresolvableColumnError:
                if self.strict_mode:
                    raise
                logger.debug("Dropping sort on unresolvable column %s", item.column)
                continue
            clauses.append(SortClause(column=column, direction=item.dir))
        return clauses

    def apply_sort(self, query: Select, clauses: Sequence[SortClause]) -> Select:
        """
        Apply sort clauses to a query as one ordering.

        Args:
            query: Base SQLAlchemy Select query
            clauses: Resolved sort clauses

        Returns:
            Select: Query with sorting applied
        """
        if not clauses:
            return query
        return query.order_by(*(clause.to_order_by() for clause in clauses))
