"""Query and aggregation package."""

from spendwise.queries.aggregation import AggregationExecutor
from spendwise.queries.executor import (
    QueryExecutor,
    filter_by_date_range,
    sort_newest_first,
)

__all__ = [
    "AggregationExecutor",
    "QueryExecutor",
    "filter_by_date_range",
    "sort_newest_first",
]
