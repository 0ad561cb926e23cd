"""pgAdmin sidecar.

One ``pgadmin`` container serves every PostgreSQL wire-compatible server in
the application.  Its ``servers.json`` is generated at start-up so the UI
opens with each server registered and its password filled in.
"""

from __future__ import annotations

import json
import shlex
from typing import Any, Callable

from hostdb.model.annotations import (
    ContainerFile,
    ContainerFileSystemCallbackContext,
    ContainerFileSystemEntry,
)
from hostdb.model.builder import ResourceBuilder
from hostdb.model.expressions import EndpointReference
from hostdb.model.resources import ContainerResource, Resource
from hostdb.servers import DatabaseServerResource, validate_port

PGADMIN_REGISTRY = "docker.io"
PGADMIN_IMAGE = "dpage/pgadmin4"
PGADMIN_TAG = "9.9.0"
PGADMIN_TARGET_PORT = 80
SERVERS_JSON_DESTINATION = "/pgadmin4"


class PgAdminContainerResource(ContainerResource):
    PRIMARY_ENDPOINT_NAME = "http"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.primary_endpoint = EndpointReference(self, self.PRIMARY_ENDPOINT_NAME)


class PgAdminBuilder(ResourceBuilder[PgAdminContainerResource]):
    def with_host_port(self, port: int | None) -> "PgAdminBuilder":
        validate_port(port)

        def set_port(endpoint):
            endpoint.port = port

        return self.with_endpoint_callback(PgAdminContainerResource.PRIMARY_ENDPOINT_NAME, set_port)


def pg_wire_servers(resources: list[Resource]) -> list[DatabaseServerResource]:
    return [
        r for r in resources if isinstance(r, DatabaseServerResource) and r.PG_WIRE_COMPATIBLE
    ]


async def write_servers_json(
    context: ContainerFileSystemCallbackContext,
) -> list[ContainerFileSystemEntry]:
    servers: dict[str, Any] = {}
    for index, server in enumerate(pg_wire_servers(context.app.resources), start=1):
        password = await server.password_parameter.get_value()
        servers[str(index)] = {
            "Name": server.name,
            "Group": "Servers",
            "Host": server.name,
            "Port": server.primary_endpoint.target_port,
            "Username": await server.user_name_reference.get_value(),
            "SSLMode": "prefer",
            "MaintenanceDB": server.DEFAULT_DATABASE_NAME,
            "PasswordExecCommand": f"echo {shlex.quote(password)}",
        }
    return [ContainerFile("servers.json", json.dumps({"Servers": servers}, indent=2))]


def with_pgadmin(
    server_builder: ResourceBuilder,
    configure: Callable[[PgAdminBuilder], Any] | None = None,
    container_name: str = "pgadmin",
) -> Any:
    """Add (once) a pgAdmin container listing every compatible server.

    *configure* runs on every call, so with several servers the last
    ``with_host_port()`` wins.
    """
    app_builder = server_builder.application_builder
    existing = next(
        (r for r in app_builder.resources if isinstance(r, PgAdminContainerResource)), None
    )
    if existing is not None:
        pgadmin = app_builder.create_resource_builder(existing, PgAdminBuilder)
    else:
        registry, image, tag = app_builder.settings.image_for(
            "pgadmin", PGADMIN_REGISTRY, PGADMIN_IMAGE, PGADMIN_TAG
        )
        pgadmin = (
            app_builder.add_resource(PgAdminContainerResource(container_name), PgAdminBuilder)
            .with_image(image, tag)
            .with_image_registry(registry)
            .with_http_endpoint(target_port=PGADMIN_TARGET_PORT)
            .with_environment("PGADMIN_CONFIG_MASTER_PASSWORD_REQUIRED", "False")
            .with_environment("PGADMIN_CONFIG_SERVER_MODE", "False")
            .with_container_files(SERVERS_JSON_DESTINATION, write_servers_json)
        )

    if configure is not None:
        configure(pgadmin)
    return server_builder
