"""OpenGauss builder extensions.

Usage::

    og = add_opengauss(builder, "og", port=5433).with_data_volume()
    orders = og.add_database("orders")
    og.with_pgweb(lambda pgweb: pgweb.with_host_port(8081))
"""

from __future__ import annotations

from typing import Any, Callable

from hostdb.model.annotations import EnvironmentCallbackContext
from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.opengauss import image_tags
from hostdb.opengauss.health import OpenGaussHealthCheck
from hostdb.opengauss.resources import OpenGaussDatabaseResource, OpenGaussServerResource
from hostdb.pgtools import PgAdminBuilder, PgWebBuilder, with_pgadmin, with_pgweb
from hostdb.servers import (
    DatabaseBuilder,
    DatabaseServerBuilder,
    optional_parameter,
    password_parameter,
    validate_port,
)

OPENGAUSS_PORT = 5432


class OpenGaussDatabaseBuilder(DatabaseBuilder[OpenGaussDatabaseResource]):
    pass


class OpenGaussServerBuilder(DatabaseServerBuilder[OpenGaussServerResource]):
    DATA_PATH = "/var/lib/opengauss"
    INIT_PATH = "/docker-entrypoint-initdb.d"
    HEALTH_CHECK_SUFFIX = "opengauss"
    database_class = OpenGaussDatabaseResource
    database_builder_class = OpenGaussDatabaseBuilder

    def health_check_factory(self, get_connection_string, database_name):
        return OpenGaussHealthCheck(get_connection_string, database_name)

    def add_database(self, name: str, database_name: str | None = None) -> OpenGaussDatabaseBuilder:
        return super().add_database(name, database_name)

    def run_as_privileged(self) -> "OpenGaussServerBuilder":
        """Start the container with ``docker run --privileged``."""
        return self.with_container_runtime_args("--privileged")

    def with_pgadmin(
        self,
        configure: Callable[[PgAdminBuilder], Any] | None = None,
        container_name: str = "pgadmin",
    ) -> "OpenGaussServerBuilder":
        return with_pgadmin(self, configure, container_name)

    def with_pgweb(
        self,
        configure: Callable[[PgWebBuilder], Any] | None = None,
        container_name: str = "pgweb",
    ) -> "OpenGaussServerBuilder":
        return with_pgweb(self, configure, container_name)


def _user_name_environment(server: OpenGaussServerResource):
    def apply(context: EnvironmentCallbackContext) -> None:
        # The image creates GS_USERNAME on first start; unset means "gaussdb".
        if server.user_name_parameter is not None:
            context.environment_variables["GS_USERNAME"] = server.user_name_parameter

    return apply


def add_opengauss(
    builder: DistributedApplicationBuilder,
    name: str,
    user_name: Any = None,
    password: Any = None,
    port: int | None = None,
) -> OpenGaussServerBuilder:
    """Add an OpenGauss server container.

    Args:
        builder:   The application builder.
        name:      Resource name; also the container's network alias.
        user_name: Parameter (or its builder) for the login; defaults to ``gaussdb``.
        password:  Parameter for the password; defaults to a generated
                   ``<name>-password``.
        port:      Host port; ``None`` picks a free one at start-up.
    """
    validate_port(port)
    server = OpenGaussServerResource(
        name, optional_parameter(user_name), password_parameter(builder, name, password)
    )
    registry, image, tag = builder.settings.image_for(
        "opengauss", image_tags.REGISTRY, image_tags.IMAGE, image_tags.TAG
    )
    server_builder: OpenGaussServerBuilder = builder.add_resource(server, OpenGaussServerBuilder)
    return (
        server_builder.with_endpoint(
            port=port, target_port=OPENGAUSS_PORT, name=server.PRIMARY_ENDPOINT_NAME
        )
        .with_image(image, tag)
        .with_image_registry(registry)
        .with_deferred_environment("GS_PASSWORD", lambda: server.password_parameter)
        .with_deferred_environment("PGPASSWORD", lambda: server.password_parameter)
        .with_environment_callback(_user_name_environment(server))
        .publish_as_container()
        .register_server_health_check()
    )
