"""
Pagination Engine

Reconciles a LIMIT written by the SQL generation service (the "upstream"
limit) with the page/page size requested by the caller.

Small result sets are left alone: when the AI's row estimate or the
upstream LIMIT is at or below the large-dataset threshold, the statement
runs unmodified. Otherwise the upstream LIMIT is removed and replaced by
``LIMIT <n> OFFSET <m>``, with ``n`` clamped so that paging never returns
rows past the upstream limit.

Usage:
    engine = PaginationEngine(threshold=10)
    decision = engine.paginate("SELECT * FROM t LIMIT 50", page=2, page_size=10)
    decision.executable_sql  # "SELECT * FROM t LIMIT 10 OFFSET 10;"
"""

import logging
import re

import sqlparse

from nlquery.models import PaginationDecision

logger = logging.getLogger(__name__)

DEFAULT_LARGE_DATASET_THRESHOLD = 10

_LIMIT_VALUE = re.compile(r"\s*(\d+)\b")


def find_upstream_limit(sql: str) -> tuple[int | None, int | None]:
    """
    Locate the first LIMIT clause.

    Only a LIMIT keyword token counts; the word inside a string literal,
    quoted identifier or comment is ignored.

    Returns:
        (position of the LIMIT keyword or None, parsed value or None).
        A keyword with no parseable integer yields (position, None).
    """
    position = 0
    for statement in sqlparse.parse(sql):
        for token in statement.flatten():
            if token.is_keyword and token.normalized == "LIMIT":
                value_match = _LIMIT_VALUE.match(sql, position + len(token.value))
                if not value_match:
                    return position, None
                return position, int(value_match.group(1))
            position += len(token.value)
    return None, None


def strip_terminator(sql: str) -> str:
    """Remove trailing semicolons and whitespace."""
    return sql.rstrip().rstrip(";").rstrip()


def build_count_query(sql: str) -> str:
    """Wrap a statement so it returns its own row count."""
    cleaned = sqlparse.format(sql, strip_comments=True).strip()
    while cleaned.endswith(";"):
        cleaned = strip_terminator(cleaned)
    return f"SELECT COUNT(*) FROM ({cleaned}) AS subquery"


class PaginationEngine:
    """
    Decides whether a statement needs paging and builds the executable SQL.

    ``paginate`` never raises; on any internal failure it returns the
    original statement for both display and execution.
    """

    def __init__(self, threshold: int = DEFAULT_LARGE_DATASET_THRESHOLD):
        self.threshold = threshold

    def paginate(
        self,
        sql: str,
        page: int,
        page_size: int,
        row_estimate: int | None = None,
        upstream_limit: int | None = None,
        threshold: int | None = None,
    ) -> PaginationDecision:
        """
        Build the pagination decision for one request.

        Args:
            sql: Statement after auto-fixing
            page: 1-based page number (validated by the caller)
            page_size: Rows per page (validated by the caller)
            row_estimate: Expected total rows reported by the AI service
            upstream_limit: Known upstream limit when the text has none
            threshold: Overrides the engine's large-dataset threshold

        Returns:
            PaginationDecision with display and executable SQL
        """
        limit_threshold = self.threshold if threshold is None else threshold
        try:
            return self._paginate(
                sql, page, page_size, row_estimate, upstream_limit, limit_threshold
            )
        except Exception as e:
            logger.warning(f"Pagination failed, using original SQL: {e}", exc_info=True)
            return PaginationDecision(original_sql=sql, executable_sql=sql)

    def _paginate(
        self,
        sql: str,
        page: int,
        page_size: int,
        row_estimate: int | None,
        upstream_limit: int | None,
        threshold: int,
    ) -> PaginationDecision:
        statement = sql.strip()
        if not statement:
            return PaginationDecision(original_sql=sql, executable_sql=sql)

        limit_pos, parsed_limit = find_upstream_limit(statement)
        malformed_limit = limit_pos is not None and parsed_limit is None
        if parsed_limit is not None:
            upstream_limit = parsed_limit

        if not malformed_limit:
            if row_estimate is not None and row_estimate <= threshold:
                return self._unmodified(
                    statement, upstream_limit, f"row estimate {row_estimate}", threshold
                )
            if upstream_limit is not None and upstream_limit <= threshold:
                return self._unmodified(
                    statement, upstream_limit, f"upstream limit {upstream_limit}", threshold
                )

        base_sql = statement[:limit_pos] if limit_pos is not None else statement
        if "--" in base_sql:
            # A trailing line comment would swallow the appended clause.
            base_sql = sqlparse.format(base_sql, strip_comments=True)
        offset = (page - 1) * page_size
        if upstream_limit is not None:
            effective_limit = max(0, min(page_size, upstream_limit - offset))
        else:
            effective_limit = page_size

        executable_sql = f"{strip_terminator(base_sql)} LIMIT {effective_limit} OFFSET {offset};"

        logger.debug(
            "Applied pagination",
            extra={
                "page": page,
                "page_size": page_size,
                "offset": offset,
                "effective_limit": effective_limit,
                "upstream_limit": upstream_limit,
                "malformed_limit": malformed_limit,
            },
        )

        return PaginationDecision(
            original_sql=statement,
            executable_sql=executable_sql,
            upstream_limit=upstream_limit,
            paginated=True,
            offset=offset,
            effective_limit=effective_limit,
        )

    def _unmodified(
        self, statement: str, upstream_limit: int | None, basis: str, threshold: int
    ) -> PaginationDecision:
        logger.debug(f"Pagination skipped: {basis} within threshold {threshold}")
        return PaginationDecision(
            original_sql=statement,
            executable_sql=statement,
            upstream_limit=upstream_limit,
        )
