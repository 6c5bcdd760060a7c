"""
SQL Auto-Fixer

Deterministic text rewrites for defects the SQL generation service is
known to produce. These are regex-level repairs, not a parser: each rule
targets one specific pattern and leaves everything else alone.

Rules (applied in order):
    1. placeholder_date: ``YYYY-MM-DD`` template tokens become a real date
    2. subquery_group_by: ``(SELECT a.col FROM t a GROUP BY EXTRACT(...``
       selects a bare column while grouping by an expression; wrap the
       column in ``MAX(...)``

Usage:
    fixer = SqlAutoFixer()
    sql = fixer.fix("SELECT * FROM orders WHERE order_date > 'YYYY-MM-DD'")
"""

import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_DATE = "2024-01-01"

_DATE_PLACEHOLDER = re.compile(r"YYYY-MM-DD", re.IGNORECASE)
# A quoted literal (doubled quotes escape), or a bare placeholder not touching a quote.
_LITERAL_OR_BARE_PLACEHOLDER = re.compile(
    r"""(?P<literal>'(?:[^']|'')*'|"(?:[^"]|"")*")"""
    r"""|(?<!['"])\bYYYY-MM-DD\b(?!['"])""",
    re.IGNORECASE,
)

_SUBQUERY_GROUP_BY = re.compile(
    r"\(\s*SELECT\s+(?P<column>(?P<alias>\w+)\.\w+)\s+"
    r"FROM\s+(?P<table>\w+)\s+(?:AS\s+)?(?P=alias)\s+"
    r"GROUP\s+BY\s+EXTRACT\s*\(",
    re.IGNORECASE | re.DOTALL,
)
_AGGREGATE_SELECT = re.compile(r"SELECT\s+(MAX|MIN|SUM|COUNT|AVG)\s*\(", re.IGNORECASE)


@dataclass(frozen=True)
class FixResult:
    """Rewritten SQL and the names of the rules that changed it."""

    sql: str
    applied: tuple[str, ...] = field(default_factory=tuple)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def find_matching_parenthesis(sql: str, open_pos: int) -> int:
    """Index of the ``)`` closing the ``(`` at ``open_pos``, or -1."""
    depth = 0
    for index in range(open_pos, len(sql)):
        char = sql[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


class SqlAutoFixer:
    """
    Applies the fixed, ordered rule set to generated SQL.

    ``fix`` is total: if any rule blows up the input is returned unchanged
    and the failure is only logged.
    """

    def __init__(self, placeholder_date: str = DEFAULT_PLACEHOLDER_DATE):
        self.placeholder_date = placeholder_date
        self._rules = (
            ("placeholder_date", self._replace_date_placeholders),
            ("subquery_group_by", self._fix_subquery_group_by),
        )

    def fix(self, sql: str) -> str:
        """Return ``sql`` with all rules applied."""
        return self.fix_with_report(sql).sql

    def fix_with_report(self, sql: str) -> FixResult:
        """Like ``fix`` but also reports which rules changed the statement."""
        if not sql or not sql.strip():
            return FixResult(sql=sql)

        try:
            fixed_sql = sql
            applied = []
            for name, rule in self._rules:
                rewritten = rule(fixed_sql)
                if rewritten != fixed_sql:
                    applied.append(name)
                    fixed_sql = rewritten
        except Exception as e:
            logger.warning(f"Failed to fix SQL, returning original: {e}", exc_info=True)
            return FixResult(sql=sql)

        if applied:
            logger.info(
                f"SQL fixed by rules: {', '.join(applied)}",
                extra={"original_sql": sql, "fixed_sql": fixed_sql, "rules": applied},
            )
        return FixResult(sql=fixed_sql, applied=tuple(applied))

    def _replace_date_placeholders(self, sql: str) -> str:
        date_literal = f"'{self.placeholder_date}'"

        def substitute(match: re.Match) -> str:
            quoted = match.group("literal")
            if quoted is None or quoted[1:-1].upper() == "YYYY-MM-DD":
                return date_literal
            # Already inside a string: keep its quoting, insert the bare date.
            return _DATE_PLACEHOLDER.sub(lambda _: self.placeholder_date, quoted)

        return _LITERAL_OR_BARE_PLACEHOLDER.sub(substitute, sql)

    def _fix_subquery_group_by(self, sql: str) -> str:
        # Last match first so earlier offsets stay valid after each splice.
        matches = list(_SUBQUERY_GROUP_BY.finditer(sql))
        for match in reversed(matches):
            column = match.group("column")
            start = match.start()
            end = find_matching_parenthesis(sql, start)
            if end <= start:
                continue

            subquery = sql[start : end + 1]
            if _AGGREGATE_SELECT.search(subquery):
                continue

            select_clause = re.compile(
                rf"SELECT\s+{re.escape(column)}\s+FROM", re.IGNORECASE
            )
            fixed_subquery = select_clause.sub(
                lambda _: f"SELECT MAX({column}) FROM", subquery, count=1
            )
            sql = sql[:start] + fixed_subquery + sql[end + 1 :]

        return sql
