"""MongoDB health checks (pymongo, run in a worker thread).

Two checks:

    MongoDBHealthCheck         ``ping`` against the server's connection string
    MongoReplicaSetHealthCheck ``replSetInitiate`` once, then ``isMaster`` until
                               the node reports itself primary
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from pymongo import MongoClient
from pymongo.errors import OperationFailure

from hostdb.exceptions import ModelError
from hostdb.logging import get_logger
from hostdb.model.health import HealthCheck, HealthCheckContext, HealthCheckResult

log = get_logger(__name__)

SERVER_SELECTION_TIMEOUT_MS = 5000


@dataclass
class MongoClientSettings:
    """What the replica-set check needs to build its ``MongoClient``."""

    uri: str
    options: dict[str, Any] = field(
        default_factory=lambda: {"serverSelectionTimeoutMS": SERVER_SELECTION_TIMEOUT_MS}
    )

    @classmethod
    def from_connection_string(cls, uri: str) -> "MongoClientSettings":
        return cls(uri=uri)

    def create_client(self) -> MongoClient:
        return MongoClient(self.uri, **self.options)


class MongoDBHealthCheck(HealthCheck):
    def __init__(self, get_connection_string: Callable[[], Awaitable[str | None]]) -> None:
        self._get_connection_string = get_connection_string

    async def check_health(self, context: HealthCheckContext) -> HealthCheckResult:
        connection_string = await self._get_connection_string()
        if not connection_string:
            return HealthCheckResult.unhealthy("MongoDB connection string is empty.")
        settings = MongoClientSettings.from_connection_string(connection_string)
        return await asyncio.to_thread(self._ping, settings)

    @staticmethod
    def _ping(settings: MongoClientSettings) -> HealthCheckResult:
        client = settings.create_client()
        try:
            client.admin.command("ping")
        finally:
            client.close()
        return HealthCheckResult.healthy()


class MongoReplicaSetHealthCheck(HealthCheck):
    """Initiates the replica set, then waits for the node to become primary.

    Without captured *settings*, they are built from *get_connection_string*
    once the endpoints are allocated, so containers started with
    ``wait_for()`` on the replica set do not have to wait for the
    connection-string event.
    """

    def __init__(
        self,
        settings: MongoClientSettings | None,
        get_connection_string: Callable[[], Awaitable[str | None]] | None = None,
    ) -> None:
        self.settings = settings
        self._get_connection_string = get_connection_string

    async def check_health(self, context: HealthCheckContext) -> HealthCheckResult:
        settings = self.settings or await self._resolve_settings()
        if settings is None:
            return HealthCheckResult.unhealthy("MongoDB client settings are not available yet.")
        return await asyncio.to_thread(self._check, settings)

    async def _resolve_settings(self) -> MongoClientSettings | None:
        if self._get_connection_string is None:
            return None
        try:
            connection_string = await self._get_connection_string()
        except ModelError:
            # Endpoints not allocated yet.
            return None
        if not connection_string:
            return None
        return MongoClientSettings.from_connection_string(connection_string)

    @staticmethod
    def _check(settings: MongoClientSettings) -> HealthCheckResult:
        client = settings.create_client()
        try:
            admin = client.admin
            try:
                admin.command("replSetInitiate", {})
                log.info("mongo_replica_set_initiated")
            except OperationFailure as exc:
                if (exc.details or {}).get("codeName") != "AlreadyInitialized":
                    return HealthCheckResult.unhealthy(
                        "Failed to initialize MongoDB replica set.", exc
                    )

            try:
                result = admin.command("isMaster")
            except OperationFailure as exc:
                return HealthCheckResult.unhealthy(
                    "Failed to determine MongoDB primary node.", exc
                )
            if result.get("ismaster") is True:
                return HealthCheckResult.healthy()
            return HealthCheckResult.unhealthy("MongoDB is not the primary node.")
        finally:
            client.close()
