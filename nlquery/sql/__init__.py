"""
SQL Rewriting Module

Text-level repairs and pagination applied to generated SQL before it runs.

Usage:
    from nlquery.sql import PaginationEngine, SqlAutoFixer

    sql = SqlAutoFixer().fix(raw_sql)
    decision = PaginationEngine(threshold=10).paginate(sql, page=1, page_size=10)
"""

from nlquery.sql.fixer import DEFAULT_PLACEHOLDER_DATE, FixResult, SqlAutoFixer
from nlquery.sql.pagination import (
    DEFAULT_LARGE_DATASET_THRESHOLD,
    PaginationEngine,
    build_count_query,
    find_upstream_limit,
)

__all__ = [
    "SqlAutoFixer",
    "FixResult",
    "DEFAULT_PLACEHOLDER_DATE",
    "PaginationEngine",
    "DEFAULT_LARGE_DATASET_THRESHOLD",
    "build_count_query",
    "find_upstream_limit",
]
