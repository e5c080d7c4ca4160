"""Pagination strategies and row counting."""

from types import MappingProxyType
from typing import Mapping, Type

from sqlalchemy import Select, func
from sqlmodel import Session, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fastapi_datatables.exceptions import MethodNotImplementedError
from fastapi_datatables.models import PaginatorStrategy


class Paginator:
    """
    Strategy bounding a query to one page of rows.

    Subclasses implement ``paginate``. A ``length`` of ``-1`` means all rows
    and is handled by the caller, so strategies only see positive lengths.
    """

    def paginate(self, query: Select, start: int, length: int) -> Select:
        """
        Bound a query to the requested window.

        Args:
            query: Filtered and sorted SQLAlchemy Select query
            start: Row offset requested by the client
            length: Rows per page (>= 1)

        Returns:
            Select: Bounded query
        """
        raise MethodNotImplementedError(
            f"{type(self).__name__} does not implement paginate(); "
            "use a concrete pagination strategy."
        )


class PagePaginator(Paginator):
    """
    Page-number pagination.

    ``start`` is rounded down to a page boundary:
    ``page = start // length + 1`` and ``offset = (page - 1) * length``.
    """

    @staticmethod
    def page(start: int, per_page: int) -> int:
        return start // per_page + 1

    @classmethod
    def offset(cls, start: int, per_page: int) -> int:
        return (cls.page(start, per_page) - 1) * per_page

    def paginate(self, query: Select, start: int, length: int) -> Select:
        return query.offset(self.offset(start, length)).limit(length)


class OffsetPaginator(Paginator):
    """Offset pagination using ``start`` verbatim."""

    def paginate(self, query: Select, start: int, length: int) -> Select:
        return query.offset(start).limit(length)


# Strategy registry: maps PaginatorStrategy -> paginator class. Read-only;
# custom strategies are passed to ``DataTable(paginator=...)`` instead.
PAGINATORS: Mapping[PaginatorStrategy, Type[Paginator]] = MappingProxyType(
    {
        PaginatorStrategy.PAGE: PagePaginator,
        PaginatorStrategy.OFFSET: OffsetPaginator,
    }
)


def get_paginator(strategy: PaginatorStrategy) -> Paginator:
    """
    Instantiate the paginator registered for a strategy.

    Raises:
        MethodNotImplementedError: If no paginator is registered for the strategy
    """
    paginator_cls = PAGINATORS.get(strategy)
    if paginator_cls is None:
        raise MethodNotImplementedError(f"No paginator registered for strategy '{strategy}'.")
    return paginator_cls()


def count_rows(query: Select, session: Session) -> int:
    """
    Count rows matching a query.

    Args:
        query: SQLAlchemy Select query
        session: Database session

    Returns:
        int: Row count
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    return session.exec(count_query).one()


async def count_rows_async(query: Select, session: AsyncSession) -> int:
    """
    Count rows matching a query asynchronously.

    Args:
        query: SQLAlchemy Select query
        session: Async database session

    Returns:
        int: Row count
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    result = await session.exec(count_query)
    return result.one()
