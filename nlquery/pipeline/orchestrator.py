"""
Query Pipeline Orchestrator

Turns a natural-language prompt into rows:

    ValidateInput -> ResolveSql (cache or AI) -> AutoFixSql
        -> ApplyPagination -> Execute -> AssembleResponse

Every stage can end the request early. Each early exit, like the happy
path, produces a QueryResponse; ``run`` does not raise for pipeline
failures. A history record is queued for every request without waiting
for it to be written.
"""

import asyncio
import logging
import time
from uuid import uuid4

from nlquery.ai.base import BaseAIClient
from nlquery.ai.http_client import HTTPAIClient
from nlquery.cache import ResponseCache, normalize_prompt
from nlquery.config import Settings
from nlquery.connectors.base import BaseConnector
from nlquery.history import HistoryRecorder
from nlquery.models import (
    AIServiceError,
    CachedGeneration,
    GenerationResult,
    InputValidationError,
    PaginationDecision,
    PaginationInfo,
    QueryHistoryRecord,
    QueryRequest,
    QueryResponse,
    ResponseStatus,
    SQLExecutionError,
)
from nlquery.sql import PaginationEngine, SqlAutoFixer, build_count_query

logger = logging.getLogger(__name__)

DEFAULT_AI_TIMEOUT = 30.0
DEFAULT_MAX_PAGE_SIZE = 1000

AI_UNAVAILABLE_MESSAGE = "AI service not available - cannot generate SQL"
NOT_CONVERTIBLE_MESSAGE = "AI could not generate a valid SQL query for this prompt"
EXECUTION_FAILED_MESSAGE = "Query execution failed"
SUCCESS_MESSAGE = "Query executed successfully"


class QueryOrchestrator:
    """
    Prompt-to-rows pipeline.

    One instance is meant to serve every request in the process so that
    all of them share its ResponseCache. Concurrent ``run`` calls are
    safe; two concurrent cache misses for the same prompt both call the
    AI service.

    Attributes:
        ai_client: SQL generation client (None = AI unavailable)
        connector: Database that executes the final SQL
        cache: Shared prompt cache (None = caching disabled)
        fixer: SQL auto-fixer
        paginator: Pagination engine
        history: Optional fire-and-forget history recorder
        ai_timeout: Seconds allowed for one generation call
        max_page_size: Largest page size a caller may request
        default_language: Language sent when the request has none
    """

    def __init__(
        self,
        ai_client: BaseAIClient | None,
        connector: BaseConnector,
        cache: ResponseCache | None = None,
        fixer: SqlAutoFixer | None = None,
        paginator: PaginationEngine | None = None,
        history: HistoryRecorder | None = None,
        ai_timeout: float = DEFAULT_AI_TIMEOUT,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
        default_language: str = "en",
    ):
        self.ai_client = ai_client
        self.connector = connector
        self.cache = cache
        self.fixer = fixer or SqlAutoFixer()
        self.paginator = paginator or PaginationEngine()
        self.history = history
        self.ai_timeout = ai_timeout
        self.max_page_size = max_page_size
        self.default_language = default_language

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        connector: BaseConnector,
        ai_client: BaseAIClient | None = None,
        cache: ResponseCache | None = None,
        history: HistoryRecorder | None = None,
    ) -> "QueryOrchestrator":
        """Build an orchestrator wired from application settings."""
        if ai_client is None:
            ai_client = HTTPAIClient(
                base_url=settings.ai_service.url,
                timeout=settings.ai_service.timeout,
            )
        if cache is None and settings.cache.enabled:
            cache = ResponseCache.from_minutes(settings.cache.ttl_minutes)
        return cls(
            ai_client=ai_client,
            connector=connector,
            cache=cache,
            paginator=PaginationEngine(threshold=settings.pagination.large_dataset_threshold),
            history=history,
            ai_timeout=settings.ai_service.timeout,
            max_page_size=settings.pagination.max_page_size,
            default_language=settings.ai_service.default_language,
        )

    async def run(self, request: QueryRequest) -> QueryResponse:
        """
        Process one query request.

        Args:
            request: Prompt plus paging options

        Returns:
            QueryResponse; ``success`` is False for every failure path
        """
        request_id = str(uuid4())
        start_time = time.perf_counter()
        logger.info(
            f"[{request_id}] Processing query",
            extra={
                "request_id": request_id,
                "prompt": request.prompt[:100],
                "page": request.page,
                "page_size": request.page_size,
                "disable_cache": request.disable_cache,
            },
        )

        try:
            self._validate(request)
        except InputValidationError as e:
            logger.warning(f"[{request_id}] Invalid request: {e.message}")
            return self._fail(request, request_id, start_time, "invalid_input", e.message)

        try:
            generation = await self._resolve_sql(request, request_id)
        except AIServiceError as e:
            logger.warning(f"[{request_id}] SQL generation unavailable: {e.message}")
            return self._fail(request, request_id, start_time, "ai_unavailable", e.message)

        if not generation.can_convert or not generation.sql.strip():
            logger.info(f"[{request_id}] Prompt not convertible: {generation.error_reason}")
            return self._fail(
                request,
                request_id,
                start_time,
                "not_convertible",
                NOT_CONVERTIBLE_MESSAGE,
                generation=generation,
                reason=generation.error_reason,
            )

        fixed_sql = self.fixer.fix(generation.sql)
        decision = self.paginator.paginate(
            fixed_sql,
            page=request.page,
            page_size=request.page_size,
            row_estimate=generation.row_estimate,
        )
        logger.info(
            f"[{request_id}] Executing SQL: {decision.executable_sql}",
            extra={"request_id": request_id, "paginated": decision.paginated},
        )

        try:
            rows, total_rows = await self._execute(decision, request, request_id)
        except SQLExecutionError as e:
            logger.error(f"[{request_id}] {e.message}", extra={"request_id": request_id, **e.context})
            return self._fail(
                request,
                request_id,
                start_time,
                "execution_failed",
                EXECUTION_FAILED_MESSAGE,
                generation=generation,
                sql=decision.original_sql,
            )

        execution_time_ms = (time.perf_counter() - start_time) * 1000
        response = QueryResponse(
            success=True,
            status="ok",
            message=SUCCESS_MESSAGE,
            request_id=request_id,
            prompt=request.prompt,
            sql=decision.original_sql,
            paginated_sql=decision.executable_sql,
            data=rows,
            row_count=len(rows),
            ai_suggestions=list(generation.suggestions),
            pagination=PaginationInfo.build(request.page, request.page_size, total_rows),
            from_cache=generation.from_cache,
            execution_time_ms=execution_time_ms,
        )

        self._record_history(
            QueryHistoryRecord(
                request_id=request_id,
                prompt=request.prompt,
                sql=decision.original_sql,
                success=True,
                execution_time_ms=execution_time_ms,
                row_count=len(rows),
                model=generation.model or "unknown",
                ai_generated=generation.is_ai_generated,
                tables_accessed=list(generation.tables_accessed),
            )
        )

        logger.info(
            f"[{request_id}] Query complete: {len(rows)} rows, {execution_time_ms:.0f}ms",
            extra={"request_id": request_id, "total_rows": total_rows},
        )
        return response

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _validate(self, request: QueryRequest) -> None:
        if not request.prompt or not request.prompt.strip():
            raise InputValidationError("Prompt must not be empty")
        if request.page < 1:
            raise InputValidationError(
                "Page number must be greater than 0", context={"page": request.page}
            )
        if request.page_size < 1 or request.page_size > self.max_page_size:
            raise InputValidationError(
                f"Page size must be between 1 and {self.max_page_size}",
                context={"page_size": request.page_size},
            )

    async def _resolve_sql(self, request: QueryRequest, request_id: str) -> GenerationResult:
        cache_key = normalize_prompt(request.prompt)

        if self.cache is not None and not request.disable_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"[{request_id}] Cache hit", extra={"request_id": request_id})
                return GenerationResult.from_cache_entry(cached)

        if self.ai_client is None:
            logger.error(f"[{request_id}] SQL generation client not configured")
            raise AIServiceError(AI_UNAVAILABLE_MESSAGE)

        language = request.language or self.default_language
        try:
            response = await asyncio.wait_for(
                self.ai_client.generate_sql(request.prompt, language),
                timeout=self.ai_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"[{request_id}] SQL generation timed out after {self.ai_timeout}s")
            raise AIServiceError(AI_UNAVAILABLE_MESSAGE, context={"timeout": self.ai_timeout}) from e
        except AIServiceError as e:
            raise AIServiceError(AI_UNAVAILABLE_MESSAGE, context=e.to_dict()) from e

        if response.can_convert and response.has_sql:
            if self.cache is not None:
                self.cache.put(cache_key, CachedGeneration(sql=response.sql, is_ai_generated=True))
            return GenerationResult(
                success=True,
                can_convert=True,
                sql=response.sql,
                row_estimate=response.total_rows,
                suggestions=response.ai_suggestions,
                model=response.model,
                tables_accessed=response.tables_accessed,
            )

        if response.success:
            return GenerationResult(
                success=True,
                can_convert=False,
                error_reason=response.reason or response.message or None,
                suggestions=response.ai_suggestions,
                model=response.model,
            )

        logger.warning(f"[{request_id}] SQL generation failed: {response.error}")
        raise AIServiceError(
            response.message or AI_UNAVAILABLE_MESSAGE, context={"error": response.error}
        )

    async def _execute(
        self, decision: PaginationDecision, request: QueryRequest, request_id: str
    ) -> tuple[list[dict], int]:
        try:
            result = await self.connector.execute(decision.executable_sql)
        except Exception as e:
            raise SQLExecutionError(
                EXECUTION_FAILED_MESSAGE,
                context={"error": str(e), "error_type": type(e).__name__},
            ) from e

        rows = result.rows
        total_rows = await self._count_total_rows(decision.original_sql, request_id)
        if total_rows is None:
            if len(rows) == request.page_size:
                total_rows = request.page * request.page_size + 1
            else:
                total_rows = (request.page - 1) * request.page_size + len(rows)
        return rows, total_rows

    async def _count_total_rows(self, sql: str, request_id: str) -> int | None:
        try:
            return await self.connector.count_rows(build_count_query(sql))
        except Exception as e:
            logger.debug(f"[{request_id}] Total row count unavailable: {e}")
            return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fail(
        self,
        request: QueryRequest,
        request_id: str,
        start_time: float,
        status: ResponseStatus,
        message: str,
        generation: GenerationResult | None = None,
        reason: str | None = None,
        sql: str = "",
    ) -> QueryResponse:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        self._record_history(
            QueryHistoryRecord(
                request_id=request_id,
                prompt=request.prompt,
                sql=sql,
                success=False,
                execution_time_ms=execution_time_ms,
                model=(generation.model if generation else None) or "unknown",
                error_message=message,
                ai_generated=bool(generation and generation.is_ai_generated),
            )
        )
        return QueryResponse(
            success=False,
            status=status,
            message=message,
            request_id=request_id,
            prompt=request.prompt,
            sql=sql,
            ai_suggestions=list(generation.suggestions) if generation else [],
            reason=reason,
            from_cache=bool(generation and generation.from_cache),
            execution_time_ms=execution_time_ms,
        )

    def _record_history(self, record: QueryHistoryRecord) -> None:
        if self.history is None:
            return
        self.history.record(record)
