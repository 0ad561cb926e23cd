"""MongoDB builder extensions.

Usage::

    mongo = add_mongodb(builder, "mongo", port=27017).with_replica_set()
    db = mongo.add_database("orders")
    rs = add_mongo_replica_set(builder, "mongo-rs", db.resource)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.mongodb import image_tags
from hostdb.mongodb.health import MongoDBHealthCheck
from hostdb.mongodb.resources import MongoDBDatabaseResource, MongoDBServerResource
from hostdb.servers import (
    DatabaseBuilder,
    DatabaseServerBuilder,
    optional_parameter,
    password_parameter,
    validate_port,
)

MONGODB_PORT = 27017
DEFAULT_KEY_FILE = "/etc/mongo-keyfile"
REPLICA_SET_NAME = "rs0"
# Mongo.Dockerfile ships next to this module.
DOCKERFILE_DIRECTORY = Path(__file__).resolve().parent
DOCKERFILE_NAME = "Mongo.Dockerfile"


class MongoDBDatabaseBuilder(DatabaseBuilder[MongoDBDatabaseResource]):
    pass


class MongoDBServerBuilder(DatabaseServerBuilder[MongoDBServerResource]):
    DATA_PATH = "/data/db"
    INIT_PATH = "/docker-entrypoint-initdb.d"
    database_class = MongoDBDatabaseResource
    database_builder_class = MongoDBDatabaseBuilder

    def add_database(self, name: str, database_name: str | None = None) -> MongoDBDatabaseBuilder:
        database_name = database_name or name
        database = MongoDBDatabaseResource(name, database_name, self.resource)
        builder = self.application_builder.add_resource(database, MongoDBDatabaseBuilder)
        self.resource.add_database(name, database_name)
        return builder

    def register_server_health_check(self) -> "MongoDBServerBuilder":
        key = f"{self.resource.name}_check"
        server = self.resource
        self.application_builder.health_checks.add(
            key, lambda _app: MongoDBHealthCheck(server.get_connection_string)
        )
        return self.with_health_check(key)

    def with_replica_set(
        self,
        context_path: str | Path | None = None,
        dockerfile: str | None = None,
        key_file: str = DEFAULT_KEY_FILE,
    ) -> "MongoDBServerBuilder":
        """Build an image with a key file and start mongod as a replica-set member.

        Without *context_path* the bundled ``Mongo.Dockerfile`` is used.
        """
        if context_path is None:
            context_path, dockerfile = DOCKERFILE_DIRECTORY, DOCKERFILE_NAME
        return self.with_dockerfile(context_path, dockerfile).with_args(
            "--replSet", REPLICA_SET_NAME, "--bind_ip_all", "--keyFile", key_file
        )


def add_mongodb(
    builder: DistributedApplicationBuilder,
    name: str,
    port: int | None = None,
    user_name: Any = None,
    password: Any = None,
) -> MongoDBServerBuilder:
    """Add a MongoDB server container with root credentials.

    The generated ``<name>-password`` avoids special characters so it can be
    embedded in a ``mongodb://`` URI unescaped.
    """
    validate_port(port)
    server = MongoDBServerResource(
        name,
        optional_parameter(user_name),
        password_parameter(builder, name, password, special=False),
    )
    registry, image, tag = builder.settings.image_for(
        "mongodb", image_tags.REGISTRY, image_tags.IMAGE, image_tags.TAG
    )
    server_builder: MongoDBServerBuilder = builder.add_resource(server, MongoDBServerBuilder)
    return (
        server_builder.with_endpoint(
            port=port, target_port=MONGODB_PORT, name=server.PRIMARY_ENDPOINT_NAME
        )
        .with_image(image, tag)
        .with_image_registry(registry)
        .with_deferred_environment(
            "MONGO_INITDB_ROOT_USERNAME", lambda: server.user_name_reference
        )
        .with_deferred_environment(
            "MONGO_INITDB_ROOT_PASSWORD", lambda: server.password_parameter
        )
        .register_server_health_check()
        .publish_as_container()
    )
