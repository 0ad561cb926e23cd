"""pgweb sidecar.

pgweb reads connection bookmarks from ``~/.pgweb/bookmarks/*.toml``; one
bookmark is generated per database, or one per server that has none.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from hostdb.model.annotations import (
    ContainerDirectory,
    ContainerFile,
    ContainerFileSystemCallbackContext,
    ContainerFileSystemEntry,
)
from hostdb.model.builder import ResourceBuilder
from hostdb.model.expressions import EndpointReference
from hostdb.model.resources import ContainerResource
from hostdb.pgtools.pgadmin import pg_wire_servers
from hostdb.servers import DatabaseResource, DatabaseServerResource, validate_port

PGWEB_REGISTRY = "docker.io"
PGWEB_IMAGE = "sosedoff/pgweb"
PGWEB_TAG = "0.16.2"
PGWEB_TARGET_PORT = 8081
BOOKMARKS_DIRECTORY = "/.pgweb/bookmarks"


class PgWebContainerResource(ContainerResource):
    PRIMARY_ENDPOINT_NAME = "http"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.primary_endpoint = EndpointReference(self, self.PRIMARY_ENDPOINT_NAME)


class PgWebBuilder(ResourceBuilder[PgWebContainerResource]):
    def with_host_port(self, port: int | None) -> "PgWebBuilder":
        validate_port(port)

        def set_port(endpoint):
            endpoint.port = port

        return self.with_endpoint_callback(PgWebContainerResource.PRIMARY_ENDPOINT_NAME, set_port)


async def bookmark(server: DatabaseServerResource, database: str | None) -> str:
    values: dict[str, Any] = {
        "host": server.name,
        "port": server.primary_endpoint.target_port,
        "user": await server.user_name_reference.get_value(),
        "password": await server.password_parameter.get_value(),
        "database": database,
        "sslmode": "disable",
    }
    lines = []
    for key, value in values.items():
        # JSON string escapes are valid TOML basic-string escapes.
        rendered = value if isinstance(value, int) else json.dumps(value or "")
        lines.append(f"{key} = {rendered}")
    return "\n".join(lines) + "\n"


async def write_bookmarks(
    context: ContainerFileSystemCallbackContext,
) -> list[ContainerFileSystemEntry]:
    resources = context.app.resources
    files: list[ContainerFileSystemEntry] = []
    for server in pg_wire_servers(resources):
        databases = [
            r for r in resources if isinstance(r, DatabaseResource) and r.parent is server
        ]
        if not databases:
            files.append(
                ContainerFile(
                    f"{server.name}.toml", await bookmark(server, server.DEFAULT_DATABASE_NAME)
                )
            )
        for database in databases:
            files.append(
                ContainerFile(f"{database.name}.toml", await bookmark(server, database.database_name))
            )
    return [ContainerDirectory(".pgweb", [ContainerDirectory("bookmarks", files)])]


def with_pgweb(
    server_builder: ResourceBuilder,
    configure: Callable[[PgWebBuilder], Any] | None = None,
    container_name: str = "pgweb",
) -> Any:
    """Add (once) a pgweb container bookmarking every compatible database."""
    app_builder = server_builder.application_builder
    existing = next(
        (r for r in app_builder.resources if isinstance(r, PgWebContainerResource)), None
    )
    if existing is not None:
        pgweb = app_builder.create_resource_builder(existing, PgWebBuilder)
    else:
        registry, image, tag = app_builder.settings.image_for(
            "pgweb", PGWEB_REGISTRY, PGWEB_IMAGE, PGWEB_TAG
        )
        pgweb = (
            app_builder.add_resource(PgWebContainerResource(container_name), PgWebBuilder)
            .with_image(image, tag)
            .with_image_registry(registry)
            .with_http_endpoint(target_port=PGWEB_TARGET_PORT)
            .with_args(f"--bookmarks-dir={BOOKMARKS_DIRECTORY}", "--sessions")
            .with_container_files("/", write_bookmarks)
        )

    if configure is not None:
        configure(pgweb)
    return server_builder
