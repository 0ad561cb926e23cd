"""DMDB (DM8) builder extensions.

Usage::

    dm = add_dmdb(builder, "dm", port=5236).with_data_volume()
    dm.add_database("orders")

The container needs ``--privileged``; it is added unconditionally.
"""

from __future__ import annotations

from typing import Any

from hostdb.dmdb import image_tags
from hostdb.dmdb.health import DEFAULT_TIMEOUT, DmdbHealthCheck
from hostdb.dmdb.resources import DmdbDatabaseResource, DmdbServerResource
from hostdb.model.builder import DistributedApplicationBuilder
from hostdb.model.parameters import ParameterReferenceDefault, create_default_password_parameter
from hostdb.servers import (
    DatabaseBuilder,
    DatabaseServerBuilder,
    as_parameter,
    optional_parameter,
    validate_port,
)

DMDB_PORT = 5236


class DmdbDatabaseBuilder(DatabaseBuilder[DmdbDatabaseResource]):
    pass


class DmdbServerBuilder(DatabaseServerBuilder[DmdbServerResource]):
    DATA_PATH = "/opt/dmdbms/data"
    HEALTH_CHECK_SUFFIX = "dmdb"
    HEALTH_CHECK_TIMEOUT = DEFAULT_TIMEOUT
    database_class = DmdbDatabaseResource
    database_builder_class = DmdbDatabaseBuilder

    def health_check_factory(self, get_connection_string, database_name):
        return DmdbHealthCheck(get_connection_string, database_name)

    def add_database(self, name: str, database_name: str | None = None) -> DmdbDatabaseBuilder:
        return super().add_database(name, database_name)

    def with_dba_password(self, dba_password: Any) -> "DmdbServerBuilder":
        """Replace the DBA password (``SYSDBA_PWD`` and ``SYSAUDITOR_PWD`` follow)."""
        self.resource.dba_password_parameter = as_parameter(dba_password)
        return self


def add_dmdb(
    builder: DistributedApplicationBuilder,
    name: str,
    user_name: Any = None,
    password: Any = None,
    dba_password: Any = None,
    port: int | None = None,
) -> DmdbServerBuilder:
    """Add a DM8 server container.

    Args:
        builder:      The application builder.
        name:         Resource name; also the container's network alias.
        user_name:    Login parameter; defaults to ``SYSDBA``.
        password:     Login password; defaults to ``<name>-password``, which
                      takes the DBA password's value unless configured, so the
                      default ``SYSDBA`` login works.
        dba_password: DBA password; defaults to a generated
                      ``<name>-dba-password`` without special characters.
        port:         Host port; ``None`` picks a free one at start-up.
    """
    validate_port(port)
    dba_parameter = (
        as_parameter(dba_password)
        if dba_password is not None
        else create_default_password_parameter(builder, f"{name}-dba-password", special=False)
    )
    password_parameter = (
        as_parameter(password)
        if password is not None
        else create_default_password_parameter(
            builder, f"{name}-password", default=ParameterReferenceDefault(dba_parameter)
        )
    )
    server = DmdbServerResource(
        name, optional_parameter(user_name), password_parameter, dba_parameter
    )
    registry, image, tag = builder.settings.image_for(
        "dmdb", image_tags.REGISTRY, image_tags.IMAGE, image_tags.TAG
    )
    server_builder: DmdbServerBuilder = builder.add_resource(server, DmdbServerBuilder)
    return (
        server_builder.with_container_runtime_args("--privileged")
        .with_endpoint(port=port, target_port=DMDB_PORT, name=server.PRIMARY_ENDPOINT_NAME)
        .with_image(image, tag)
        .with_image_registry(registry)
        .with_deferred_environment("DM_USER_PWD", lambda: server.password_parameter)
        .with_deferred_environment("SYSDBA_PWD", lambda: server.dba_password_parameter)
        .with_deferred_environment("SYSAUDITOR_PWD", lambda: server.dba_password_parameter)
        .register_server_health_check()
        .publish_as_container()
    )
