"""
SQL Generation Client Module

Clients for the external service that turns natural language into SQL.

Usage:
    from nlquery.ai import HTTPAIClient

    async with HTTPAIClient(base_url="http://localhost:5001") as client:
        response = await client.generate_sql("top 5 customers", language="en")
        print(response.sql)
"""

from nlquery.ai.base import BaseAIClient
from nlquery.ai.http_client import HTTPAIClient
from nlquery.ai.models import (
    GenerateSqlRequest,
    GenerateSqlResponse,
    SecurityConfig,
    ServiceStatus,
)

__all__ = [
    "BaseAIClient",
    "HTTPAIClient",
    "GenerateSqlRequest",
    "GenerateSqlResponse",
    "SecurityConfig",
    "ServiceStatus",
]
