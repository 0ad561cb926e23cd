"""Unit tests — OpenGauss builder extensions."""

from __future__ import annotations

import pytest

from hostdb.exceptions import DuplicateResourceError
from hostdb.manifest import evaluate_environment
from hostdb.model.annotations import (
    ContainerDirectory,
    ContainerFile,
    ContainerFileSystemCallbackAnnotation,
    ContainerFileSystemCallbackContext,
    ContainerImageAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    ContainerRuntimeArgsCallbackAnnotation,
    EndpointAnnotation,
    HealthCheckAnnotation,
)
from hostdb.opengauss import (
    OpenGaussDatabaseResource,
    OpenGaussHealthCheck,
    OpenGaussServerResource,
    add_opengauss,
)
from hostdb.pgtools import PgWebContainerResource


def _endpoint(resource, name: str = "tcp") -> EndpointAnnotation:
    return next(e for e in resource.annotations_of(EndpointAnnotation) if e.name == name)


@pytest.mark.unit
class TestAddOpenGauss:
    def test_adds_server_resource(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss")
        assert opengauss.resource.name == "opengauss"
        assert isinstance(opengauss.resource, OpenGaussServerResource)
        assert builder.find_resource("opengauss") is opengauss.resource

    def test_default_password_parameter(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss")
        assert opengauss.resource.password_parameter.name == "opengauss-password"
        assert opengauss.resource.password_parameter.secret

    def test_custom_password(self, builder, secret) -> None:
        opengauss = add_opengauss(builder, "opengauss", password=secret("custom-password"))
        assert opengauss.resource.password_parameter.name == "custom-password"

    def test_custom_user_name(self, builder) -> None:
        user = builder.add_parameter("custom-user", value="admin")
        opengauss = add_opengauss(builder, "opengauss", user_name=user)
        assert opengauss.resource.user_name_parameter.name == "custom-user"

    def test_port_sets_host_port(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss", port=5433)
        endpoint = _endpoint(opengauss.resource)
        assert endpoint.port == 5433
        assert endpoint.target_port == 5432

    def test_invalid_port(self, builder) -> None:
        with pytest.raises(ValueError):
            add_opengauss(builder, "opengauss", port=0)

    def test_environment_variables(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss")
        env = evaluate_environment(opengauss.resource)
        assert env["GS_PASSWORD"] is opengauss.resource.password_parameter
        assert env["PGPASSWORD"] is opengauss.resource.password_parameter
        assert "GS_USERNAME" not in env

    def test_user_name_environment(self, builder) -> None:
        user = builder.add_parameter("custom-user", value="admin").resource
        opengauss = add_opengauss(builder, "opengauss", user_name=user)
        assert evaluate_environment(opengauss.resource)["GS_USERNAME"] is user

    def test_container_image(self, builder) -> None:
        image = add_opengauss(builder, "og").resource.last_annotation(ContainerImageAnnotation)
        assert (image.registry, image.image, image.tag) == (
            "docker.io",
            "opengauss/opengauss",
            "6.0.0",
        )

    def test_image_override_from_settings(self, builder) -> None:
        builder.settings.images.opengauss.tag = "5.0.0"
        image = add_opengauss(builder, "og").resource.last_annotation(ContainerImageAnnotation)
        assert image.tag == "5.0.0"

    def test_health_check_registered(self, builder) -> None:
        opengauss = add_opengauss(builder, "og")
        (annotation,) = opengauss.resource.annotations_of(HealthCheckAnnotation)
        assert annotation.key == "og-opengauss"
        check = builder.health_checks.get("og-opengauss").instantiate(None)
        assert isinstance(check, OpenGaussHealthCheck)
        assert check.database_name == "postgres"

    def test_run_as_privileged(self, builder) -> None:
        opengauss = add_opengauss(builder, "og").run_as_privileged()
        runtime_args: list[str] = []
        for annotation in opengauss.resource.annotations_of(ContainerRuntimeArgsCallbackAnnotation):
            annotation.callback(runtime_args)
        assert runtime_args == ["--privileged"]


@pytest.mark.unit
class TestOpenGaussDatabases:
    def test_add_database(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss")
        database = opengauss.add_database("mydb")
        assert isinstance(database.resource, OpenGaussDatabaseResource)
        assert database.resource.name == "mydb"
        assert database.resource.database_name == "mydb"
        assert database.resource.parent is opengauss.resource

    def test_custom_database_name(self, builder) -> None:
        database = add_opengauss(builder, "og").add_database("resource-name", "custom-db-name")
        assert database.resource.name == "resource-name"
        assert database.resource.database_name == "custom-db-name"

    def test_databases_dictionary(self, builder) -> None:
        opengauss = add_opengauss(builder, "og")
        opengauss.add_database("mydb")
        assert opengauss.resource.databases["MYDB"] == "mydb"

    def test_database_health_check(self, builder) -> None:
        database = add_opengauss(builder, "og").add_database("mydb")
        (annotation,) = database.resource.annotations_of(HealthCheckAnnotation)
        assert annotation.key == "og-mydb-opengaussdb"
        check = builder.health_checks.get(annotation.key).instantiate(None)
        assert check.database_name == "mydb"

    def test_blank_database_name(self, builder) -> None:
        with pytest.raises(ValueError):
            add_opengauss(builder, "og").add_database("db", "  ")

    def test_duplicate_database_leaves_first_registration(self, builder) -> None:
        opengauss = add_opengauss(builder, "og")
        opengauss.add_database("mydb", "first")
        with pytest.raises(DuplicateResourceError):
            opengauss.add_database("mydb", "second")
        assert dict(opengauss.resource.databases) == {"mydb": "first"}
        check = builder.health_checks.get("og-mydb-opengaussdb").instantiate(None)
        assert check.database_name == "first"

    def test_database_name_clashing_with_other_resource(self, builder) -> None:
        builder.add_parameter("orders")
        opengauss = add_opengauss(builder, "og")
        with pytest.raises(DuplicateResourceError):
            opengauss.add_database("orders")
        assert "orders" not in opengauss.resource.databases
        assert "og-orders-opengaussdb" not in builder.health_checks


@pytest.mark.unit
class TestOpenGaussStorageAndCredentials:
    def test_data_volume(self, builder) -> None:
        opengauss = add_opengauss(builder, "opengauss").with_data_volume()
        (volume,) = opengauss.resource.annotations_of(ContainerMountAnnotation)
        assert volume.type is ContainerMountType.VOLUME
        assert volume.source == "opengauss-data"
        assert volume.target == "/var/lib/opengauss"
        assert not volume.read_only

    def test_data_volume_custom_name(self, builder) -> None:
        opengauss = add_opengauss(builder, "og").with_data_volume("custom-volume")
        (volume,) = opengauss.resource.annotations_of(ContainerMountAnnotation)
        assert volume.source == "custom-volume"

    def test_data_bind_mount(self, builder) -> None:
        opengauss = add_opengauss(builder, "og").with_data_bind_mount("/my/data/path")
        (mount,) = opengauss.resource.annotations_of(ContainerMountAnnotation)
        assert mount.type is ContainerMountType.BIND_MOUNT
        assert mount.source == "/my/data/path"
        assert not mount.read_only

    def test_init_bind_mount(self, builder) -> None:
        opengauss = add_opengauss(builder, "og").with_init_bind_mount("/my/init/scripts")
        (mount,) = opengauss.resource.annotations_of(ContainerMountAnnotation)
        assert mount.source == "/my/init/scripts"
        assert mount.target == "/docker-entrypoint-initdb.d"

    def test_with_password(self, builder, secret) -> None:
        opengauss = add_opengauss(builder, "og").with_password(secret("new-password"))
        assert opengauss.resource.password_parameter.name == "new-password"
        assert evaluate_environment(opengauss.resource)["GS_PASSWORD"].name == "new-password"

    def test_with_user_name(self, builder) -> None:
        user = builder.add_parameter("new-user", value="u")
        opengauss = add_opengauss(builder, "og").with_user_name(user)
        assert opengauss.resource.user_name_parameter.name == "new-user"

    def test_with_host_port(self, builder) -> None:
        opengauss = add_opengauss(builder, "og").with_host_port(6543)
        assert _endpoint(opengauss.resource).port == 6543


@pytest.mark.unit
class TestOpenGaussConnectionStrings:
    def test_server_connection_string(self, builder) -> None:
        expression = add_opengauss(builder, "og").resource.connection_string_expression
        assert expression.value_expression == (
            "Host={og.bindings.tcp.host};Port={og.bindings.tcp.port};"
            "Username=gaussdb;Password={og-password.value}"
        )

    def test_database_connection_string(self, builder) -> None:
        database = add_opengauss(builder, "og").add_database("mydb")
        assert database.resource.connection_string_expression.value_expression.endswith(
            ";Database=mydb"
        )

    def test_custom_user_in_connection_string(self, builder) -> None:
        user = builder.add_parameter("dbuser", value="bob")
        opengauss = add_opengauss(builder, "og", user_name=user)
        assert "Username={dbuser.value}" in (
            opengauss.resource.connection_string_expression.value_expression
        )

    @pytest.mark.asyncio
    async def test_resolved_database_connection_string(self, builder, secret) -> None:
        opengauss = add_opengauss(builder, "og", password=secret("pw", "pass"), port=15432)
        opengauss.add_database("mydb")
        app = builder.build()
        app.allocate_endpoints()
        assert await app.get_connection_string("mydb") == (
            "Host=localhost;Port=15432;Username=gaussdb;Password=pass;Database=mydb"
        )


@pytest.mark.unit
class TestOpenGaussTools:
    def test_pgadmin_added_once(self, builder) -> None:
        add_opengauss(builder, "og1").with_pgadmin(lambda pga: pga.with_host_port(8081))
        add_opengauss(builder, "og2").with_pgadmin(lambda pga: pga.with_host_port(8082))

        matches = [r for r in builder.resources if r.name.casefold() == "pgadmin"]
        assert len(matches) == 1
        (files,) = matches[0].annotations_of(ContainerFileSystemCallbackAnnotation)
        assert files.destination_path == "/pgadmin4"
        assert _endpoint(matches[0], "http").port == 8082

    def test_pgweb_added_once(self, builder) -> None:
        add_opengauss(builder, "og1").with_pgweb(lambda pgweb: pgweb.with_host_port(1000))
        add_opengauss(builder, "og2").with_pgweb(lambda pgweb: pgweb.with_host_port(2000))

        pgwebs = [r for r in builder.resources if isinstance(r, PgWebContainerResource)]
        assert len(pgwebs) == 1
        assert _endpoint(pgwebs[0], "http").port == 2000

    @pytest.mark.asyncio
    async def test_pgweb_default_bookmark_without_database(self, builder) -> None:
        add_opengauss(builder, "og").with_pgweb()
        app = builder.build()
        pgweb = app.get_resource("pgweb")
        (files,) = pgweb.annotations_of(ContainerFileSystemCallbackAnnotation)

        entries = await files.callback(ContainerFileSystemCallbackContext(pgweb, app))

        pgweb_directory = entries[0]
        assert isinstance(pgweb_directory, ContainerDirectory)
        assert pgweb_directory.name == ".pgweb"
        (bookmarks,) = pgweb_directory.entries
        assert bookmarks.name == "bookmarks"
        (bookmark,) = [e for e in bookmarks.entries if isinstance(e, ContainerFile)]
        assert bookmark.name == "og.toml"
        assert 'host = "og"' in bookmark.contents
        assert 'database = "postgres"' in bookmark.contents
