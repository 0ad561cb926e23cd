"""hostdb: Shared base for password-protected database servers.

OpenGauss, DMDB, KingbaseES and MongoDB all follow the same shape:

    <Engine>ServerResource     container + connection string + databases map
    <Engine>DatabaseResource   child resource, server string + database name
    <Engine>ServerBuilder      with_data_volume / with_password / add_database ...
    <Engine>DatabaseBuilder    fluent wrapper for the child

Engines subclass these and set the class-level constants; anything specific
(extra passwords, privileged mode, sidecars) lives in the engine package.
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, TypeVar

from hostdb.model.annotations import EnvironmentCallbackContext
from hostdb.model.builder import ResourceBuilder
from hostdb.model.expressions import (
    EndpointProperty,
    EndpointReference,
    ExpressionPart,
    ReferenceExpression,
)
from hostdb.model.parameters import ParameterResource, create_default_password_parameter
from hostdb.model.resources import (
    CaseInsensitiveDict,
    ContainerResource,
    Resource,
    ResourceWithConnectionString,
    ResourceWithParent,
)

S = TypeVar("S", bound="DatabaseServerResource")
D = TypeVar("D", bound="DatabaseResource")


def validate_port(port: int | None) -> int | None:
    if port is not None and not (1 <= port <= 65535):
        raise ValueError(f"Port must be 1-65535, got {port}")
    return port


class DatabaseServerResource(ContainerResource, ResourceWithConnectionString):
    PRIMARY_ENDPOINT_NAME: ClassVar[str] = "tcp"
    DEFAULT_USER_NAME: ClassVar[str] = ""
    DEFAULT_DATABASE_NAME: ClassVar[str | None] = None
    # Speaks the PostgreSQL wire protocol; pgAdmin and pgweb can browse it.
    PG_WIRE_COMPATIBLE: ClassVar[bool] = False

    def __init__(
        self,
        name: str,
        user_name: ParameterResource | None,
        password: ParameterResource,
        entrypoint: str | None = None,
    ) -> None:
        if password is None:
            raise TypeError("password must not be None")
        super().__init__(name, entrypoint)
        self.user_name_parameter = user_name
        self.password_parameter = password
        self.primary_endpoint = EndpointReference(self, self.PRIMARY_ENDPOINT_NAME)
        self.databases = CaseInsensitiveDict()

    @property
    def host(self) -> Any:
        return self.primary_endpoint.property(EndpointProperty.HOST)

    @property
    def port(self) -> Any:
        return self.primary_endpoint.property(EndpointProperty.PORT)

    @property
    def user_name_reference(self) -> ReferenceExpression:
        if self.user_name_parameter is not None:
            return ReferenceExpression.create(self.user_name_parameter)
        return ReferenceExpression.create(self.DEFAULT_USER_NAME)

    def connection_string_parts(self) -> list[ExpressionPart]:
        return [
            "Host=", self.host,
            ";Port=", self.port,
            ";Username=", self.user_name_reference,
            ";Password=", self.password_parameter,
        ]  # fmt: skip

    @property
    def connection_string_expression(self) -> ReferenceExpression:
        return ReferenceExpression.create(*self.connection_string_parts())

    def add_database(self, name: str, database_name: str) -> None:
        """Record a database; an existing entry for *name* is kept."""
        self.databases.setdefault(name, database_name)


class DatabaseResource(Resource, ResourceWithConnectionString, ResourceWithParent[S]):
    def __init__(self, name: str, database_name: str, parent: S) -> None:
        if not database_name or not database_name.strip():
            raise ValueError("database_name must not be empty")
        super().__init__(name)
        self.database_name = database_name
        self.parent = parent

    def connection_string_parts(self) -> list[ExpressionPart]:
        return [*self.parent.connection_string_parts(), ";Database=", self.database_name]

    @property
    def connection_string_expression(self) -> ReferenceExpression:
        return ReferenceExpression.create(*self.connection_string_parts())


class DatabaseBuilder(ResourceBuilder[D]):
    pass


class DatabaseServerBuilder(ResourceBuilder[S]):
    """``with_*`` operations common to every database server.

    Subclasses set:
        DATA_PATH            container directory holding the data files
        INIT_PATH            container directory scanned for init scripts
        HEALTH_CHECK_SUFFIX  ``<server>-<suffix>`` / ``<server>-<db>-<suffix>db``
        HEALTH_CHECK_TIMEOUT per-probe timeout, ``None`` for the configured default
        database_class / database_builder_class
        health_check_factory(get_connection_string, database_name) -> HealthCheck
    """

    DATA_PATH: ClassVar[str] = ""
    INIT_PATH: ClassVar[str | None] = None
    HEALTH_CHECK_SUFFIX: ClassVar[str] = ""
    HEALTH_CHECK_TIMEOUT: ClassVar[float | None] = None
    database_class: ClassVar[type] = DatabaseResource
    database_builder_class: ClassVar[type] = DatabaseBuilder

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    def add_database(self, name: str, database_name: str | None = None) -> Any:
        database_name = database_name or name
        database = self.database_class(name, database_name, self.resource)
        builder = self.application_builder.add_resource(database, self.database_builder_class)
        self.resource.add_database(name, database_name)

        key = f"{self.resource.name}-{name}-{self.HEALTH_CHECK_SUFFIX}db"
        self.application_builder.health_checks.add(
            key,
            lambda _app: self.health_check_factory(database.get_connection_string, database_name),
            timeout=self.HEALTH_CHECK_TIMEOUT,
        )
        return builder.with_health_check(key)

    def register_server_health_check(self) -> Any:
        key = f"{self.resource.name}-{self.HEALTH_CHECK_SUFFIX}"
        server = self.resource
        self.application_builder.health_checks.add(
            key,
            lambda _app: self.health_check_factory(
                server.get_connection_string, server.DEFAULT_DATABASE_NAME
            ),
            timeout=self.HEALTH_CHECK_TIMEOUT,
        )
        return self.with_health_check(key)

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def with_data_volume(self, name: str | None = None, read_only: bool = False) -> Any:
        return self.with_volume(name or f"{self.resource.name}-data", self.DATA_PATH, read_only)

    def with_data_bind_mount(self, source: str, read_only: bool = False) -> Any:
        return self.with_bind_mount(source, self.DATA_PATH, read_only)

    def with_init_bind_mount(self, source: str, read_only: bool = False) -> Any:
        if self.INIT_PATH is None:
            raise NotImplementedError(f"{type(self.resource).__name__} has no init directory")
        return self.with_bind_mount(source, self.INIT_PATH, read_only)

    # ------------------------------------------------------------------
    # Credentials and port
    # ------------------------------------------------------------------

    def with_password(self, password: ResourceBuilder[ParameterResource] | ParameterResource) -> Any:
        self.resource.password_parameter = as_parameter(password)
        return self

    def with_user_name(
        self, user_name: ResourceBuilder[ParameterResource] | ParameterResource
    ) -> Any:
        self.resource.user_name_parameter = as_parameter(user_name)
        return self

    def with_host_port(self, port: int | None) -> Any:
        validate_port(port)

        def set_port(endpoint):
            endpoint.port = port

        return self.with_endpoint_callback(self.resource.PRIMARY_ENDPOINT_NAME, set_port)

    def with_deferred_environment(
        self, name: str, value: Callable[[], Any]
    ) -> Any:
        """Set *name* to whatever *value()* returns when the environment is built.

        Used for credentials so ``with_password()`` called later still wins.
        """

        def apply(context: EnvironmentCallbackContext) -> None:
            context.environment_variables[name] = value()

        return self.with_environment_callback(apply)


def as_parameter(value: Any) -> ParameterResource:
    resource = value.resource if isinstance(value, ResourceBuilder) else value
    if not isinstance(resource, ParameterResource):
        raise TypeError(f"Expected a parameter, got {type(resource).__name__}")
    return resource


def password_parameter(
    builder: Any,
    name: str,
    password: Any | None,
    special: bool = True,
    **kwargs: Any,
) -> ParameterResource:
    """The user's parameter if given, else a generated ``<name>-password``."""
    if password is not None:
        return as_parameter(password)
    return create_default_password_parameter(builder, f"{name}-password", special=special, **kwargs)


def optional_parameter(value: Any | None) -> ParameterResource | None:
    return None if value is None else as_parameter(value)
