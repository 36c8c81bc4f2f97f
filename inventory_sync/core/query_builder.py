# inventory_sync/core/query_builder.py
"""Composition of paginated, filtered stock reads.

A QueryState is an immutable value; every filter or page transition returns a
new state. build_query turns a state into the predicate, ordering and offset
window the table interfaces understand.
"""
from dataclasses import dataclass, replace
from typing import Dict, Optional
import math

STOCK_TABLE = 'stock'

@dataclass(frozen=True)
class FilterPredicate:
    """AND of a name substring match and exact reference name matches.

    A None field means no constraint on that column.
    """
    name_contains: Optional[str] = None
    category: Optional[str] = None
    warehouse: Optional[str] = None

    def equals(self) -> Dict[str, str]:
        """Exact-match constraints keyed by column."""
        constraints = {}
        if self.category is not None:
            constraints['category'] = self.category
        if self.warehouse is not None:
            constraints['warehouse'] = self.warehouse
        return constraints

    @property
    def is_empty(self) -> bool:
        return self.name_contains is None and not self.equals()


@dataclass(frozen=True)
class OrderSpec:
    column: str = 'name'
    ascending: bool = True


@dataclass(frozen=True)
class RangeSpec:
    """Inclusive zero-based row offsets."""
    start: int
    end: int

    @property
    def limit(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class StockQuery:
    predicate: FilterPredicate
    order: OrderSpec
    range: RangeSpec


NAME_ORDER = OrderSpec('name', True)


@dataclass(frozen=True)
class QueryState:
    """Search, filter and page selection for the stock list.

    page is 1-based.
    """
    search_term: str = ''
    category_filter: Optional[str] = None
    warehouse_filter: Optional[str] = None
    page: int = 1
    page_size: int = 10

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"Page must be 1 or greater, got {self.page}")
        if self.page_size < 1:
            raise ValueError(f"Page size must be 1 or greater, got {self.page_size}")

    def with_search(self, search_term: str) -> 'QueryState':
        """New search term; returns to the first page."""
        return replace(self, search_term=search_term or '', page=1)

    def with_filters(self, category: Optional[str] = None, warehouse: Optional[str] = None) -> 'QueryState':
        """New category/warehouse filters; returns to the first page.

        Empty strings clear a filter.
        """
        return replace(
            self,
            category_filter=category or None,
            warehouse_filter=warehouse or None,
            page=1
        )

    def with_page(self, page: int) -> 'QueryState':
        return replace(self, page=page)


def page_window(page: int, page_size: int) -> RangeSpec:
    """Translate a 1-based page into an inclusive offset window.

    Args:
        page: Page number, starting at 1
        page_size: Rows per page

    Returns:
        RangeSpec covering [(page-1)*page_size, page*page_size - 1]
    """
    start = (page - 1) * page_size
    return RangeSpec(start, start + page_size - 1)


def total_pages(total_count: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil((total_count or 0) / page_size)


def like_pattern(term: str) -> str:
    """Wrap a search term for a substring ILIKE, matching wildcards literally."""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


def build_query(state: QueryState) -> StockQuery:
    """Build the stock read for a query state.

    Args:
        state: Current query state

    Returns:
        StockQuery with predicate, fixed name ordering and page window
    """
    predicate = FilterPredicate(
        name_contains=state.search_term or None,
        category=state.category_filter or None,
        warehouse=state.warehouse_filter or None
    )
    return StockQuery(
        predicate=predicate,
        order=NAME_ORDER,
        range=page_window(state.page, state.page_size)
    )
