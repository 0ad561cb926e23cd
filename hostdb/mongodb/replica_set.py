"""MongoDB single-node replica sets.

``add_mongo_replica_set()`` puts a replica-set resource in front of a MongoDB
server (or a database, which is replaced by its server):

    1. The server's own health checks are dropped; they cannot connect to a
       node that has not been initiated.
    2. When the server's connection string becomes available, the client
       settings for the replica set are captured.  Before that the check
       resolves them itself once the endpoints are allocated.
    3. ``<name>_check`` initiates the set and waits for a primary.
    4. The replica set's connection string is the server's plus
       ``&directConnection=true``.
"""

from __future__ import annotations

from typing import Any

from hostdb.exceptions import HostDbError
from hostdb.logging import get_logger
from hostdb.model.annotations import HealthCheckAnnotation
from hostdb.model.builder import DistributedApplicationBuilder, ResourceBuilder
from hostdb.model.eventing import ConnectionStringAvailableEvent
from hostdb.model.resources import ResourceWithConnectionString
from hostdb.mongodb.health import MongoClientSettings, MongoReplicaSetHealthCheck
from hostdb.mongodb.resources import MongoDBDatabaseResource, MongoReplicaSetResource

log = get_logger(__name__)


class MongoReplicaSetBuilder(ResourceBuilder[MongoReplicaSetResource]):
    pass


def add_mongo_replica_set(
    builder: DistributedApplicationBuilder,
    name: str,
    mongo_resource: ResourceWithConnectionString,
) -> MongoReplicaSetBuilder:
    if not name:
        raise ValueError("name must not be empty")
    if mongo_resource is None:
        raise TypeError("mongo_resource must not be None")

    server: Any = (
        mongo_resource.parent
        if isinstance(mongo_resource, MongoDBDatabaseResource)
        else mongo_resource
    )
    replica_set = MongoReplicaSetResource(name, server)
    captured: dict[str, MongoClientSettings] = {}

    async def capture_client_settings(event: ConnectionStringAvailableEvent) -> None:
        connection_string = await replica_set.connection_string_expression.get_value()
        if not connection_string:
            raise HostDbError(
                f"ConnectionStringAvailableEvent was published for the '{replica_set.name}' "
                "resource but the connection string was null.",
                context={"resource": replica_set.name},
            )
        captured["settings"] = MongoClientSettings.from_connection_string(connection_string)
        log.debug("mongo_client_settings_captured", resource=replica_set.name)

    builder.eventing.subscribe(
        ConnectionStringAvailableEvent, capture_client_settings, resource=server
    )

    for annotation in server.annotations_of(HealthCheckAnnotation):
        server.annotations.remove(annotation)
        builder.health_checks.remove(annotation.key)

    key = f"{name}_check"
    builder.health_checks.add(
        key, lambda _app: MongoReplicaSetHealthCheck(
            captured.get("settings"), replica_set.get_connection_string
        )
    )

    return (
        builder.add_resource(replica_set, MongoReplicaSetBuilder)
        .with_health_check(key)
        .with_connection_string_redirection(server)
    )
