"""
Base SQL Generation Client

Abstract base class for clients of the external SQL generation service.
The pipeline only depends on this interface; the service itself is a
black box that turns a prompt into SQL.
"""

import logging
from abc import ABC, abstractmethod

from nlquery.ai.models import GenerateSqlResponse, ServiceStatus

logger = logging.getLogger(__name__)


class BaseAIClient(ABC):
    """
    Abstract base class for SQL generation clients.

    Implementations make exactly one attempt per call and raise
    ``AIServiceError`` for transport failures, timeouts and malformed
    responses. A well-formed response is always returned as-is, even
    when it reports failure or a non-convertible prompt.

    Attributes:
        client_name: Identifier used in logs
        timeout: Request timeout in seconds
    """

    def __init__(self, client_name: str, timeout: float = 30.0):
        """
        Initialize base client.

        Args:
            client_name: Client identifier (e.g., "http")
            timeout: Request timeout in seconds
        """
        self.client_name = client_name
        self.timeout = timeout

        logger.info(
            f"Initialized {client_name} SQL generation client",
            extra={"client": client_name, "timeout": timeout},
        )

    @abstractmethod
    async def generate_sql(self, prompt: str, language: str = "en") -> GenerateSqlResponse:
        """
        Ask the service for SQL answering ``prompt``.

        Args:
            prompt: Natural language question
            language: Language of the prompt

        Returns:
            GenerateSqlResponse as reported by the service

        Raises:
            AIServiceError: Network error, timeout, or malformed response
        """
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True when the service reports healthy."""
        pass  # pragma: no cover - abstract method

    async def get_status(self) -> ServiceStatus | None:
        """Service configuration status, if the client supports it."""
        return None

    async def train_schema(self, schema_ddl: str) -> bool:
        """Send database DDL to the service. Unsupported by default."""
        logger.warning(f"{self.client_name} client does not support schema training")
        return False

    async def close(self) -> None:
        """Release client resources. Safe to call multiple times."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _log_response(self, response: GenerateSqlResponse, duration_ms: float) -> None:
        """Log response details for debugging."""
        logger.debug(
            f"{self.client_name} generation response",
            extra={
                "client": self.client_name,
                "success": response.success,
                "can_convert": response.can_convert,
                "model": response.model,
                "total_rows": response.total_rows,
                "duration_ms": duration_ms,
            },
        )
