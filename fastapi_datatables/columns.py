"""Column registry and resolution of client column references."""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from sqlalchemy import ColumnElement, Table, literal_column

from fastapi_datatables.exceptions import ConfigurationError, UnresolvableColumnError
from fastapi_datatables.models import ColumnSpec

logger = logging.getLogger(__name__)

_IRREGULAR_PLURAL_SUFFIXES = ("sses", "xes", "ches", "shes", "zzes")


def singularize(word: str) -> str:
    """Best-effort English singular for table-style names (``categories`` -> ``category``)."""
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(_IRREGULAR_PLURAL_SUFFIXES):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def legacy_entity_name(fragment: str) -> str:
    """Recover an entity name from a table-style fragment: ``user_accounts`` -> ``UserAccount``."""
    return "".join(part.capitalize() for part in singularize(fragment).split("_") if part)


def looks_legacy(ref: str) -> bool:
    """Legacy refs start with a lowercase table name instead of an entity name."""
    head = ref[:1]
    return bool(head) and head == head.lower()


@lru_cache(maxsize=None)
def _warn_deprecated(ref: str) -> None:
    # Cached so each ref is reported once per process
    logger.warning(
        "[DEPRECATED] Column reference '%s' uses table_name.column_name notation; "
        "use Entity.column instead.",
        ref,
    )


def _table_of(entity: Any) -> Optional[Table]:
    if isinstance(entity, Table):
        return entity
    table = getattr(entity, "__table__", None)
    return table if isinstance(table, Table) else None


def entity_attribute(entity: Any, column: str) -> Optional[ColumnElement[Any]]:
    """
    Get a column-like attribute from an entity.

    Works for ``Table`` objects, mapped columns, and computed attributes such
    as ``hybrid_property`` that define a SQL expression.

    Args:
        entity: SQLModel class or SQLAlchemy ``Table``
        column: Attribute or column name

    Returns:
        Optional[ColumnElement]: The SQL expression if available, None otherwise
    """
    if isinstance(entity, Table):
        return entity.c.get(column)

    attr = getattr(entity, column, None)
    if attr is None:
        return None
    if isinstance(attr, ColumnElement):
        return attr
    if hasattr(attr, "__clause_element__"):
        return attr.__clause_element__()
    return None


@dataclass(frozen=True)
class ColumnRegistry:
    """
    Static per-table column declarations.

    ``entities`` maps the logical entity names used in column references to
    SQLModel classes or ``Table`` objects. Either plain ``sortable_columns`` /
    ``searchable_columns`` lists or richer ``view_columns`` can be supplied;
    when ``view_columns`` is present it takes precedence.

    The registry is validated once at construction and is read-only
    afterwards, so one instance can be shared by concurrent requests.

    Example:
        registry = ColumnRegistry(
            entities={"User": User},
            view_columns=[
                ColumnSpec(display_name="name", source="User.name"),
                ColumnSpec(display_name="email", source="User.email"),
            ],
        )
    """

    entities: Mapping[str, Any] = field(default_factory=dict)
    sortable_columns: Sequence[str] = ()
    searchable_columns: Sequence[str] = ()
    view_columns: Union[Mapping[str, ColumnSpec], Sequence[ColumnSpec]] = field(
        default_factory=dict
    )

    def __post_init__(self):
        """Freeze the declarations and validate entity references."""
        view_columns = self.view_columns
        if not isinstance(view_columns, Mapping):
            view_columns = {spec.display_name: spec for spec in view_columns}
        object.__setattr__(self, "entities", MappingProxyType(dict(self.entities)))
        object.__setattr__(self, "sortable_columns", tuple(self.sortable_columns))
        object.__setattr__(self, "searchable_columns", tuple(self.searchable_columns))
        object.__setattr__(self, "view_columns", MappingProxyType(dict(view_columns)))

        for name, entity in self.entities.items():
            if _table_of(entity) is None:
                raise ConfigurationError(f"Entity '{name}' is not a table or mapped class")

        for name, spec in self.view_columns.items():
            if name != spec.display_name:
                raise ConfigurationError(
                    f"View column key '{name}' does not match display name '{spec.display_name}'"
                )
            self._check_source(f"View column '{name}'", spec.source, spec.legacy)

        for ref in self.sortable_columns:
            self._check_source(f"Sortable column '{ref}'", ref)
        for ref in self.searchable_columns:
            self._check_source(f"Searchable column '{ref}'", ref)

    def _check_source(self, label: str, source: str, legacy: Optional[bool] = None) -> None:
        """Reject ``Entity.column`` sources naming an unknown entity or column."""
        entity_name, _, column = source.partition(".")
        legacy = legacy if legacy is not None else looks_legacy(source)
        # Virtual and legacy sources are only resolvable per request
        if not column or legacy:
            return
        entity = self.entities.get(entity_name)
        if entity is None:
            raise ConfigurationError(f"{label} references unknown entity '{entity_name}'")
        if entity_attribute(entity, column) is None:
            raise ConfigurationError(f"{label} references unknown column '{source}'")

    def default_display_order(self) -> List[str]:
        """Display order used when the request does not list its columns."""
        if self.view_columns:
            return list(self.view_columns.keys())
        return list(self.sortable_columns)


class ColumnResolver:
    """
    Resolves client column references to SQL column expressions.

    One resolver is built per request: it binds the registry to the client's
    displayed column order and memoizes the searchable column list for the
    lifetime of that request only.
    """

    def __init__(self, registry: ColumnRegistry, displayed_columns: Sequence[str] = ()):
        """
        Initialize ColumnResolver.

        Args:
            registry: Column declarations for the table
            displayed_columns: Column identifiers in client display order
        """
        self.registry = registry
        self.displayed_columns = list(displayed_columns) or registry.default_display_order()
        self._searchable: Optional[List[ColumnElement[Any]]] = None

    def _resolve_modern(self, entity_name: str, column: str) -> Optional[ColumnElement[Any]]:
        entity = self.registry.entities.get(entity_name)
        if entity is None:
            return None
        return entity_attribute(entity, column)

    def _resolve_legacy(self, entity_name: str, column: str) -> Optional[ColumnElement[Any]]:
        return self._resolve_modern(legacy_entity_name(entity_name), column)

    def resolve_ref(self, ref: str, legacy: Optional[bool] = None) -> ColumnElement[Any]:
        """
        Resolve a physical reference (``Entity.column`` or a virtual column name).

        The strategy tried first is picked by ``legacy``, or by the shape of
        the reference when ``legacy`` is None; the other strategy is the
        fallback.

        Args:
            ref: Physical column reference
            legacy: Explicit compatibility flag from the column declaration

        Returns:
            ColumnElement: Column expression usable in filters and orderings

        Raises:
            UnresolvableColumnError: If neither strategy resolves the reference
        """
        entity_name, _, column = ref.partition(".")
        if not column:
            # Virtual column, ordered by its label
            return literal_column(entity_name)

        use_legacy = legacy if legacy is not None else looks_legacy(ref)
        strategies: List[Callable[[str, str], Optional[ColumnElement[Any]]]] = [
            self._resolve_modern,
            self._resolve_legacy,
        ]
        if use_legacy:
            strategies.reverse()

        for strategy in strategies:
            resolved = strategy(entity_name, column)
            if resolved is not None:
                if strategy == self._resolve_legacy:
                    _warn_deprecated(ref)
                return resolved
        raise UnresolvableColumnError(ref)

    def resolve_spec(self, spec: ColumnSpec) -> ColumnElement[Any]:
        return self.resolve_ref(spec.source, legacy=spec.legacy)

    def _display_name_at(self, index: int) -> str:
        if index < 0 or index >= len(self.displayed_columns):
            raise UnresolvableColumnError(index, "display index out of range")
        return self.displayed_columns[index]

    def resolve_sort_column(self, index: int) -> ColumnElement[Any]:
        """
        Resolve a display column index to the column to order by.

        Args:
            index: Position in the client's displayed column list

        Returns:
            ColumnElement: Column expression

        Raises:
            UnresolvableColumnError: If the index or its column is unknown
        """
        name = self._display_name_at(index)

        if self.registry.view_columns:
            spec = self.registry.view_columns.get(name)
            if spec is None or not spec.sortable:
                raise UnresolvableColumnError(name, "not a sortable column")
            return self.resolve_spec(spec)

        # Array data sources send the column position itself as ``data``
        position = int(name) if name.isdecimal() else self.displayed_columns.index(name)
        if position >= len(self.registry.sortable_columns):
            raise UnresolvableColumnError(name, "not a sortable column")
        return self.resolve_ref(self.registry.sortable_columns[position])

    def resolve_search_column(self, index: int) -> ColumnElement[Any]:
        """
        Resolve a display column index to the column its own search applies to.

        Raises:
            UnresolvableColumnError: If the column is unknown or not searchable
        """
        if self.registry.view_columns:
            name = self._display_name_at(index)
            spec = self.registry.view_columns.get(name)
            if spec is None or not spec.searchable or spec.is_virtual:
                raise UnresolvableColumnError(name, "not a searchable column")
            return self.resolve_spec(spec)

        if index < 0 or index >= len(self.registry.searchable_columns):
            raise UnresolvableColumnError(index, "not a searchable column")
        return self.resolve_ref(self.registry.searchable_columns[index])

    def searchable(self) -> List[ColumnElement[Any]]:
        """
        All searchable columns, resolved once per request.

        Unresolvable and virtual declarations are skipped.
        """
        if self._searchable is not None:
            return self._searchable

        if self.registry.view_columns:
            declared = [
                (spec.source, spec.legacy)
                for spec in self.registry.view_columns.values()
                if spec.searchable and not spec.is_virtual
            ]
        else:
            declared = [(ref, None) for ref in self.registry.searchable_columns if "." in ref]

        columns = []
        for ref, legacy in declared:
            try:
                columns.append(self.resolve_ref(ref, legacy=legacy))
            except UnresolvableColumnError:
                logger.debug("Skipping unresolvable searchable column '%s'", ref)
        self._searchable = columns
        return columns
