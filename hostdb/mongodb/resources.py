"""MongoDB resources.

Connection strings::

    server       mongodb://{user}:{password}@{host}:{port}/?authSource=admin&authMechanism=SCRAM-SHA-256
    database     mongodb://{user}:{password}@{host}:{port}/{db}?authSource=admin&authMechanism=SCRAM-SHA-256
    replica set  <redirect target's string>&directConnection=true
"""

from __future__ import annotations

from typing import Any

from hostdb.exceptions import MissingConnectionStringRedirectError
from hostdb.model.annotations import ConnectionStringRedirectAnnotation
from hostdb.model.expressions import ExpressionPart, ReferenceExpression, ReferenceExpressionBuilder
from hostdb.model.resources import Resource, ResourceWithConnectionString, ResourceWithParent
from hostdb.servers import DatabaseResource, DatabaseServerResource

AUTH_QUERY = "?authSource=admin&authMechanism=SCRAM-SHA-256"


class MongoDBServerResource(DatabaseServerResource):
    DEFAULT_USER_NAME = "admin"
    DEFAULT_DATABASE_NAME = "admin"

    def address_parts(self) -> list[ExpressionPart]:
        return [
            "mongodb://", self.user_name_reference,
            ":", self.password_parameter,
            "@", self.host,
            ":", self.port,
        ]  # fmt: skip

    def connection_string_parts(self) -> list[ExpressionPart]:
        return [*self.address_parts(), "/", AUTH_QUERY]


class MongoDBDatabaseResource(DatabaseResource[MongoDBServerResource]):
    def connection_string_parts(self) -> list[ExpressionPart]:
        return [*self.parent.address_parts(), "/", self.database_name, AUTH_QUERY]


class MongoReplicaSetResource(Resource, ResourceWithConnectionString, ResourceWithParent[Any]):
    """A single-node replica set on top of a MongoDB server resource.

    Its connection string is the server's with ``directConnection=true``
    appended, so drivers talk to the node even before the set has a primary
    reachable under its advertised host name.
    """

    def __init__(self, name: str, parent: ResourceWithConnectionString) -> None:
        if parent is None:
            raise TypeError("parent must not be None")
        super().__init__(name)
        self.parent = parent

    @property
    def connection_string_expression(self) -> ReferenceExpression:
        redirect = self.last_annotation(ConnectionStringRedirectAnnotation)
        if redirect is None:
            raise MissingConnectionStringRedirectError(self.name)
        return (
            ReferenceExpressionBuilder()
            .append_formatted(redirect.resource.connection_string_expression)
            .append_literal("&directConnection=true")
            .build()
        )

    async def get_connection_string(self) -> str | None:
        # The redirect only feeds the expression; the replica set keeps its own string.
        return await self.connection_string_expression.get_value()
