"""Search engine turning free-text search into SQL predicates."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import ColumnElement, Select, and_, cast, or_

from fastapi_datatables.columns import ColumnResolver
from fastapi_datatables.config import DataTablesConfig
from fastapi_datatables.exceptions import UnresolvableColumnError

logger = logging.getLogger(__name__)


def tokenize(value: Optional[str]) -> List[str]:
    """Split a search string on whitespace into atoms."""
    if not value:
        return []
    return value.split()


class SearchEngine:
    """
    Engine for building search predicates.

    Every atom of the search string must match at least one searchable
    column: atoms are OR'd across columns and the resulting groups AND'd.
    Matching is a case-insensitive substring test against the column cast to
    the engine's text type, with LIKE metacharacters in the atom escaped.
    """

    def __init__(self, config: Optional[DataTablesConfig] = None):
        """
        Initialize SearchEngine.

        Args:
            config: Configuration selecting the database engine typecast
        """
        self.config = config or DataTablesConfig()

    def cast_column(self, column: ColumnElement[Any]) -> ColumnElement[Any]:
        """Cast a column to the engine-specific comparable text type."""
        return cast(column, self.config.typecast)

    def search_condition(self, column: ColumnElement[Any], atom: str) -> ColumnElement[bool]:
        """
        Build a containment test for one atom on one column.

        ``autoescape`` escapes ``%``, ``_`` and the escape character itself, so
        the atom is always matched literally and bound as a parameter.

        Args:
            column: Column to search
            atom: Single search term

        Returns:
            ColumnElement[bool]: Case-insensitive ``%atom%`` predicate
        """
        return self.cast_column(column).icontains(atom, autoescape=True)

    def build_conditions(
        self, value: Optional[str], columns: Sequence[ColumnElement[Any]]
    ) -> Optional[ColumnElement[bool]]:
        """
        Build the global search predicate.

        Args:
            value: Raw search string
            columns: Searchable columns

        Returns:
            Optional[ColumnElement[bool]]: Predicate, or None when there is nothing to filter
        """
        atoms = tokenize(value)
        if not atoms or not columns:
            return None

        groups = [or_(*(self.search_condition(col, atom) for col in columns)) for atom in atoms]
        return and_(*groups)

    def build_composite_conditions(
        self, per_column: Dict[int, str], resolver: ColumnResolver
    ) -> Optional[ColumnElement[bool]]:
        """
        Build a predicate from per-column search values.

        Each column is matched against its own value; the non-empty results
        are AND'd. Columns that cannot be resolved are skipped.

        Args:
            per_column: Display index -> search value
            resolver: Column resolver for the current request

        Returns:
            Optional[ColumnElement[bool]]: Predicate, or None when no column has a value
        """
        conditions = []
        for index, value in sorted(per_column.items()):
            if not value or not value.strip():
                continue
            try:
                column = resolver.resolve_search_column(index)
            except UnresolvableColumnError:
                logger.debug("Skipping search on unresolvable column %s", index)
                continue
            conditions.append(self.search_condition(column, value.strip()))

        if not conditions:
            return None
        return and_(*conditions)

    def apply_search(
        self, query: Select, value: Optional[str], columns: Sequence[ColumnElement[Any]]
    ) -> Select:
        """
        Apply the global search predicate to a query.

        Args:
            query: Base SQLAlchemy Select query
            value: Raw search string
            columns: Searchable columns

        Returns:
            Select: Query with the predicate applied, unchanged if there is none
        """
        condition = self.build_conditions(value, columns)
        if condition is None:
            return query
        return query.where(condition)
