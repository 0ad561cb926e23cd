"""KingbaseES builder extensions.

Usage::

    kb = add_kingbasees(builder, "kb").with_data_volume()
    kb.add_database("orders")
    kb.with_pgadmin(lambda pga: pga.with_host_port(8082))

The image's entrypoint needs sshd and exits after initialisation, so the
container starts through the bundled ``kingbase-init.sh`` instead.
"""

from __future__ import annotations

from importlib import resources as package_resources
from typing import Any, Callable

from hostdb.kingbasees import image_tags
from hostdb.kingbasees.health import KingbaseESHealthCheck
from hostdb.kingbasees.resources import KingbaseESDatabaseResource, KingbaseESServerResource
from hostdb.model.annotations import (
    ContainerFile,
    ContainerFileSystemCallbackContext,
    ContainerFileSystemEntry,
    EnvironmentCallbackContext,
)
from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.pgtools import PgAdminBuilder, PgWebBuilder, with_pgadmin, with_pgweb
from hostdb.servers import (
    DatabaseBuilder,
    DatabaseServerBuilder,
    optional_parameter,
    password_parameter,
    validate_port,
)

KINGBASEES_PORT = 54321
INIT_SCRIPT_NAME = "kingbase-init.sh"
INIT_SCRIPT_DIRECTORY = "/opt/hostdb"


def read_init_script() -> str:
    return package_resources.files("hostdb.kingbasees").joinpath(INIT_SCRIPT_NAME).read_text()


async def _init_script_files(
    _context: ContainerFileSystemCallbackContext,
) -> list[ContainerFileSystemEntry]:
    return [ContainerFile(INIT_SCRIPT_NAME, read_init_script(), mode=0o755)]


class KingbaseESDatabaseBuilder(DatabaseBuilder[KingbaseESDatabaseResource]):
    pass


class KingbaseESServerBuilder(DatabaseServerBuilder[KingbaseESServerResource]):
    DATA_PATH = "/home/kingbase/cluster/data"
    INIT_PATH = "/docker-entrypoint-initdb.d"
    HEALTH_CHECK_SUFFIX = "kingbasees"
    database_class = KingbaseESDatabaseResource
    database_builder_class = KingbaseESDatabaseBuilder

    def health_check_factory(self, get_connection_string, database_name):
        return KingbaseESHealthCheck(get_connection_string, database_name)

    def add_database(
        self, name: str, database_name: str | None = None
    ) -> KingbaseESDatabaseBuilder:
        return super().add_database(name, database_name)

    def with_pgadmin(
        self,
        configure: Callable[[PgAdminBuilder], Any] | None = None,
        container_name: str = "pgadmin",
    ) -> "KingbaseESServerBuilder":
        return with_pgadmin(self, configure, container_name)

    def with_pgweb(
        self,
        configure: Callable[[PgWebBuilder], Any] | None = None,
        container_name: str = "pgweb",
    ) -> "KingbaseESServerBuilder":
        return with_pgweb(self, configure, container_name)


def _kingbase_environment(server: KingbaseESServerResource):
    def apply(context: EnvironmentCallbackContext) -> None:
        env = context.environment_variables
        env["DB_USER"] = server.user_name_parameter or server.DEFAULT_USER_NAME
        env["DB_PASSWORD"] = server.password_parameter
        env["DB_MODE"] = "pg"
        env["NEED_START"] = "yes"
        env["ENABLE_CI"] = "yes"

    return apply


def add_kingbasees(
    builder: DistributedApplicationBuilder,
    name: str,
    user_name: Any = None,
    password: Any = None,
    port: int | None = None,
) -> KingbaseESServerBuilder:
    """Add a KingbaseES server container (PostgreSQL mode, privileged).

    Args:
        builder:   The application builder.
        name:      Resource name; also the container's network alias.
        user_name: Login parameter; defaults to ``system``.
        password:  Password parameter; defaults to a generated ``<name>-password``.
        port:      Host port; ``None`` picks a free one at start-up.
    """
    validate_port(port)
    server = KingbaseESServerResource(
        name,
        optional_parameter(user_name),
        password_parameter(builder, name, password),
        entrypoint="/bin/sh",
    )
    registry, image, tag = builder.settings.image_for(
        "kingbasees", image_tags.REGISTRY, image_tags.IMAGE, image_tags.TAG
    )
    server_builder: KingbaseESServerBuilder = builder.add_resource(
        server, KingbaseESServerBuilder
    )
    return (
        server_builder.with_container_runtime_args("--privileged")
        .with_endpoint(port=port, target_port=KINGBASEES_PORT, name=server.PRIMARY_ENDPOINT_NAME)
        .with_image(image, tag)
        .with_image_registry(registry)
        .with_environment_callback(_kingbase_environment(server))
        .with_container_files(INIT_SCRIPT_DIRECTORY, _init_script_files)
        .with_args(f"{INIT_SCRIPT_DIRECTORY}/{INIT_SCRIPT_NAME}")
        .register_server_health_check()
        .publish_as_container()
    )
