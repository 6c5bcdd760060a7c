"""
HTTP SQL Generation Client

Implementation of BaseAIClient for the SQL generation service's JSON API:

    POST /api/generate-sql    {prompt, language} -> GenerateSqlResponse
    GET  /api/health          2xx when healthy
    GET  /api/ai-status       ServiceStatus
    POST /api/train-schema    {schema_ddl} -> {success, message, error}
"""

import logging
import time

import httpx
from pydantic import ValidationError

from nlquery.ai.base import BaseAIClient
from nlquery.ai.models import GenerateSqlRequest, GenerateSqlResponse, ServiceStatus
from nlquery.models import AIServiceError

logger = logging.getLogger(__name__)


class HTTPAIClient(BaseAIClient):
    """
    SQL generation client over HTTP using httpx.

    One attempt per call, no retries. A non-2xx status that still carries
    a JSON body is parsed normally so the caller can show the service's
    own error message.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:5001",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL of the SQL generation service
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        super().__init__(client_name="http", timeout=timeout)

        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=float(timeout),
            transport=transport,
        )

        logger.info(
            f"SQL generation client targeting {self.base_url}",
            extra={"base_url": self.base_url},
        )

    async def generate_sql(self, prompt: str, language: str = "en") -> GenerateSqlResponse:
        """
        Request SQL for a prompt.

        Raises:
            AIServiceError: On network errors, timeouts, empty error
                responses, non-JSON bodies or bodies that fail validation
        """
        payload = GenerateSqlRequest(prompt=prompt, language=language)
        logger.info(
            "SQL generation request",
            extra={"prompt": prompt[:100], "language": language},
        )

        start_time = time.perf_counter()
        try:
            response = await self.client.post("/api/generate-sql", json=payload.model_dump())
        except httpx.TimeoutException as e:
            logger.error(f"SQL generation service timed out after {self.timeout}s")
            raise AIServiceError(
                "SQL generation service timed out", context={"timeout": self.timeout}
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling SQL generation service: {e}")
            raise AIServiceError(f"SQL generation service unreachable: {e}") from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"SQL generation service responded {response.status_code} in {duration_ms:.0f}ms"
        )

        if response.is_error and not response.text.strip():
            logger.warning(f"SQL generation service error {response.status_code} with no content")
            raise AIServiceError(
                f"SQL generation service returned {response.status_code}",
                context={"status_code": response.status_code},
            )
        if response.is_error:
            logger.info(
                f"SQL generation service error {response.status_code}: {response.text[:500]}"
            )

        try:
            result = GenerateSqlResponse.model_validate(response.json())
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            logger.error(f"Malformed response from SQL generation service: {e}")
            raise AIServiceError(
                "Malformed response from SQL generation service",
                context={"status_code": response.status_code},
            ) from e

        self._log_response(result, duration_ms)
        if result.success and result.can_convert:
            logger.info(f"Generated SQL with model {result.model}: {result.sql}")
        elif result.success:
            logger.info(f"Prompt cannot be converted to SQL: {result.reason}")
        else:
            logger.warning(
                f"SQL generation failed - error: {result.error}, message: {result.message}"
            )
        return result

    async def check_health(self) -> bool:
        try:
            response = await self.client.get("/api/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.error(f"Error checking SQL generation service health: {e}")
            return False

    async def get_status(self) -> ServiceStatus | None:
        try:
            response = await self.client.get("/api/ai-status")
            if not response.is_success:
                return None
            return ServiceStatus.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.error(f"Error getting SQL generation service status: {e}")
            return None

    async def train_schema(self, schema_ddl: str) -> bool:
        """Send the database schema DDL so the service can ground its SQL."""
        logger.info("Training SQL generation service with database schema")
        try:
            response = await self.client.post(
                "/api/train-schema", json={"schema_ddl": schema_ddl}
            )
            if not response.is_success:
                logger.warning(f"Schema training failed with status code: {response.status_code}")
                return False
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error during schema training: {e}")
            return False

        success = isinstance(body, dict) and body.get("success") is True
        if success:
            logger.info("Schema training completed successfully")
        else:
            error = body.get("error") if isinstance(body, dict) else body
            logger.warning(f"Schema training failed: {error}")
        return success

    async def close(self) -> None:
        await self.client.aclose()
