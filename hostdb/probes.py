"""hostdb: SQL probe health checks.

Every SQL engine answers readiness the same way:

    1. Resolve the resource's connection string
    2. Refuse blank strings and strings with unresolved ``.bindings.`` placeholders
    3. Open a connection with a short timeout and run ``SELECT 1``

Drivers are blocking DB-API 2.0 modules, so the probe runs in a worker thread
via ``asyncio.to_thread``.  Driver imports are deferred to ``connect()`` so
that a missing optional driver only affects its own engine.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Any, Awaitable, Callable, ClassVar

from hostdb.logging import get_logger
from hostdb.model.connection_string import host_and_port, parse_connection_string
from hostdb.model.health import HealthCheck, HealthCheckContext, HealthCheckResult
from hostdb.model.resources import CaseInsensitiveDict

log = get_logger(__name__)

ConnectionStringGetter = Callable[[], Awaitable[str | None]]


class SqlProbeHealthCheck(HealthCheck):
    """Base class: subclasses name the engine and open the connection."""

    engine: ClassVar[str] = "SQL"
    probe_query: ClassVar[str] = "SELECT 1"
    connect_timeout: ClassVar[int] = 3

    def __init__(
        self,
        get_connection_string: ConnectionStringGetter,
        database_name: str | None = None,
    ) -> None:
        self._get_connection_string = get_connection_string
        self.database_name = database_name

    async def check_health(self, context: HealthCheckContext) -> HealthCheckResult:
        try:
            connection_string = await self._get_connection_string()
        except Exception as exc:
            return HealthCheckResult.unhealthy(
                f"Failed to resolve {self.engine} connection string.", exc
            )

        if not connection_string or not connection_string.strip():
            return HealthCheckResult.unhealthy(f"{self.engine} connection string is empty.")
        if ".bindings." in connection_string:
            return HealthCheckResult.unhealthy(
                f"{self.engine} connection string is not resolved yet."
            )

        try:
            parts = parse_connection_string(connection_string)
            value = await asyncio.to_thread(self._probe, parts)
        except Exception as exc:
            log.debug("sql_probe_failed", engine=self.engine, error=type(exc).__name__)
            return HealthCheckResult.unhealthy(f"{self.engine} is not ready.", exc)

        if value is None:
            return HealthCheckResult.unhealthy(f"{self.engine} probe query returned no rows.")
        return HealthCheckResult.healthy()

    def _probe(self, parts: CaseInsensitiveDict) -> Any:
        conn = self.connect(parts)
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(self.probe_query)
                row = cursor.fetchone()
            finally:
                cursor.close()
        finally:
            conn.close()
        return None if row is None else row[0]

    def database_for(self, parts: CaseInsensitiveDict) -> str | None:
        return parts.get("Database") or self.database_name

    @abstractmethod
    def connect(self, parts: CaseInsensitiveDict) -> Any:
        """Open a DB-API connection from the parsed connection string."""


class PostgresProbeHealthCheck(SqlProbeHealthCheck):
    """psycopg2 probe for PostgreSQL wire-compatible engines."""

    default_port: ClassVar[int] = 5432

    def connect(self, parts: CaseInsensitiveDict) -> Any:
        import psycopg2  # noqa: PLC0415

        host, port = host_and_port(parts, self.default_port)
        return psycopg2.connect(
            host=host,
            port=port,
            user=parts.get("Username"),
            password=parts.get("Password"),
            dbname=self.database_for(parts),
            connect_timeout=self.connect_timeout,
        )
