"""hostdb model: Builders.

``DistributedApplicationBuilder`` collects resources, health checks and event
subscriptions.  ``ResourceBuilder`` wraps one resource and exposes the fluent
``with_*`` methods shared by every engine; engine packages subclass it to add
their own (``OpenGaussServerBuilder.with_data_volume`` and so on).

Usage::

    builder = DistributedApplicationBuilder("shop")
    og = add_opengauss(builder, "og").with_data_volume()
    orders = og.add_database("orders")
    app = builder.build()
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from hostdb.config import Settings, get_settings
from hostdb.exceptions import (
    DuplicateEndpointError,
    DuplicateResourceError,
    EndpointNotFoundError,
)
from hostdb.logging import get_logger
from hostdb.model.annotations import (
    CommandLineArgsCallbackAnnotation,
    CommandLineArgsCallbackContext,
    ConnectionStringRedirectAnnotation,
    ContainerFileSystemCallbackAnnotation,
    ContainerImageAnnotation,
    ContainerLifetime,
    ContainerLifetimeAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    ContainerRuntimeArgsCallbackAnnotation,
    DockerfileBuildAnnotation,
    EndpointAnnotation,
    EnvironmentCallbackAnnotation,
    EnvironmentCallbackContext,
    EnvValue,
    HealthCheckAnnotation,
    ManifestPublishingAnnotation,
    WaitAnnotation,
)
from hostdb.model.eventing import Eventing
from hostdb.model.health import HealthCheckRegistry
from hostdb.model.resources import ContainerResource, Resource

if TYPE_CHECKING:
    from hostdb.model.application import DistributedApplication
    from hostdb.model.parameters import ParameterResource

log = get_logger(__name__)

T = TypeVar("T", bound=Resource)
B = TypeVar("B", bound="ResourceBuilder")


class DistributedApplicationBuilder:
    def __init__(
        self,
        app_name: str | None = None,
        settings: Settings | None = None,
        app_host_directory: str | Path | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.app_host_directory = Path(app_host_directory or Path.cwd()).resolve()
        self.app_name = app_name or self.app_host_directory.name or "hostdb"
        self.resources: list[Resource] = []
        self.health_checks = HealthCheckRegistry()
        self.eventing = Eventing()

    def find_resource(self, name: str) -> Resource | None:
        folded = name.casefold()
        for resource in self.resources:
            if resource.name.casefold() == folded:
                return resource
        return None

    def add_resource(
        self, resource: T, builder_class: type[ResourceBuilder] | None = None
    ) -> Any:
        """Add *resource* and return a builder for it.

        Raises:
            DuplicateResourceError: A resource with the same name exists.
        """
        if self.find_resource(resource.name) is not None:
            raise DuplicateResourceError(resource.name)
        self.resources.append(resource)
        log.debug("resource_added", resource=resource.name, kind=type(resource).__name__)
        return self.create_resource_builder(resource, builder_class)

    def create_resource_builder(
        self, resource: T, builder_class: type[ResourceBuilder] | None = None
    ) -> Any:
        """Wrap a resource that is already part of the model."""
        return (builder_class or ResourceBuilder)(self, resource)

    def add_parameter(
        self, name: str, value: str | None = None, secret: bool = False
    ) -> "ResourceBuilder[ParameterResource]":
        from hostdb.model.parameters import add_parameter

        return add_parameter(self, name, value=value, secret=secret)

    def resolve_path(self, path: str | Path) -> str:
        """Absolute paths stay; relative ones resolve against the app host directory."""
        return os.path.normpath(os.path.join(self.app_host_directory, path))

    def build(self, runtime: Any = None) -> "DistributedApplication":
        from hostdb.model.application import DistributedApplication

        return DistributedApplication(self, runtime=runtime)


class ResourceBuilder(Generic[T]):
    """Fluent wrapper around one resource.  Every ``with_*`` returns ``self``."""

    def __init__(self, application_builder: DistributedApplicationBuilder, resource: T) -> None:
        self.application_builder = application_builder
        self.resource = resource

    # ------------------------------------------------------------------
    # Generic annotations
    # ------------------------------------------------------------------

    def with_annotation(self: B, annotation: Any, replace: bool = False) -> B:
        if replace:
            self.resource.annotations[:] = [
                a for a in self.resource.annotations if not isinstance(a, type(annotation))
            ]
        self.resource.annotations.append(annotation)
        return self

    def with_health_check(self: B, key: str) -> B:
        return self.with_annotation(HealthCheckAnnotation(key))

    def with_connection_string_redirection(self: B, resource: Any) -> B:
        return self.with_annotation(ConnectionStringRedirectAnnotation(resource), replace=True)

    def wait_for(self: B, other: "ResourceBuilder | Resource") -> B:
        target = other.resource if isinstance(other, ResourceBuilder) else other
        return self.with_annotation(WaitAnnotation(target))

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def with_endpoint(
        self: B,
        port: int | None = None,
        target_port: int | None = None,
        name: str | None = None,
        scheme: str = "tcp",
        is_proxied: bool = True,
    ) -> B:
        name = name or scheme
        if any(a.name == name for a in self.resource.annotations_of(EndpointAnnotation)):
            raise DuplicateEndpointError(self.resource.name, name)
        return self.with_annotation(
            EndpointAnnotation(
                name=name,
                target_port=target_port,
                port=port,
                scheme=scheme,
                is_proxied=is_proxied,
            )
        )

    def with_http_endpoint(
        self: B, port: int | None = None, target_port: int | None = None, name: str = "http"
    ) -> B:
        return self.with_endpoint(port=port, target_port=target_port, name=name, scheme="http")

    def with_endpoint_callback(
        self: B,
        name: str,
        callback: Callable[[EndpointAnnotation], None],
        create_if_missing: bool = True,
    ) -> B:
        for annotation in self.resource.annotations_of(EndpointAnnotation):
            if annotation.name == name:
                callback(annotation)
                return self
        if not create_if_missing:
            raise EndpointNotFoundError(self.resource.name, name)
        annotation = EndpointAnnotation(name=name)
        callback(annotation)
        return self.with_annotation(annotation)

    # ------------------------------------------------------------------
    # Container image
    # ------------------------------------------------------------------

    def _image_annotation(self) -> ContainerImageAnnotation:
        annotation = self.resource.last_annotation(ContainerImageAnnotation)
        if annotation is None:
            raise ValueError(f"Resource '{self.resource.name}' has no container image")
        return annotation

    def with_image(self: B, image: str, tag: str | None = None) -> B:
        """Set the image; ``"name:tag"`` is split when *tag* is omitted."""
        if not image:
            raise ValueError("image must not be empty")
        if tag is None and ":" in image.rsplit("/", 1)[-1]:
            image, tag = image.rsplit(":", 1)
        existing = self.resource.last_annotation(ContainerImageAnnotation)
        registry = existing.registry if existing else None
        return self.with_annotation(
            ContainerImageAnnotation(image=image, tag=tag or "latest", registry=registry),
            replace=True,
        )

    def with_image_tag(self: B, tag: str) -> B:
        self._image_annotation().tag = tag
        return self

    def with_image_registry(self: B, registry: str | None) -> B:
        self._image_annotation().registry = registry
        return self

    def with_dockerfile(
        self: B, context_path: str | Path, dockerfile_path: str | Path | None = None
    ) -> B:
        """Build the image from a Dockerfile instead of pulling it."""
        context = self.application_builder.resolve_path(context_path)
        dockerfile = os.path.join(context, dockerfile_path or "Dockerfile")
        tag = f"{self.application_builder.app_name}-{self.resource.name}".lower()
        self.with_annotation(
            ContainerImageAnnotation(image=tag, tag="latest", registry=None), replace=True
        )
        return self.with_annotation(
            DockerfileBuildAnnotation(context, os.path.normpath(dockerfile), f"{tag}:latest"),
            replace=True,
        )

    def with_lifetime(self: B, lifetime: ContainerLifetime) -> B:
        return self.with_annotation(ContainerLifetimeAnnotation(lifetime), replace=True)

    def publish_as_container(self: B) -> B:
        return self.with_annotation(ManifestPublishingAnnotation("container.v0"), replace=True)

    # ------------------------------------------------------------------
    # Environment, arguments and mounts
    # ------------------------------------------------------------------

    def with_environment(self: B, name: str, value: EnvValue) -> B:
        def apply(context: EnvironmentCallbackContext) -> None:
            context.environment_variables[name] = value

        return self.with_annotation(EnvironmentCallbackAnnotation(apply))

    def with_environment_callback(
        self: B, callback: Callable[[EnvironmentCallbackContext], None]
    ) -> B:
        return self.with_annotation(EnvironmentCallbackAnnotation(callback))

    def with_args(self: B, *args: EnvValue) -> B:
        def apply(context: CommandLineArgsCallbackContext) -> None:
            context.args.extend(args)

        return self.with_annotation(CommandLineArgsCallbackAnnotation(apply))

    def with_container_runtime_args(self: B, *args: str) -> B:
        def apply(runtime_args: list[str]) -> None:
            runtime_args.extend(args)

        return self.with_annotation(ContainerRuntimeArgsCallbackAnnotation(apply))

    def with_entrypoint(self: B, entrypoint: str) -> B:
        if not isinstance(self.resource, ContainerResource):
            raise TypeError(f"Resource '{self.resource.name}' is not a container")
        self.resource.entrypoint = entrypoint
        return self

    def with_volume(
        self: B, name: str | None, target: str, read_only: bool = False
    ) -> B:
        """Mount a named volume, or an anonymous one when *name* is ``None``."""
        return self.with_annotation(
            ContainerMountAnnotation(name, target, ContainerMountType.VOLUME, read_only)
        )

    def with_bind_mount(
        self: B, source: str | Path, target: str, read_only: bool = False
    ) -> B:
        return self.with_annotation(
            ContainerMountAnnotation(
                self.application_builder.resolve_path(source),
                target,
                ContainerMountType.BIND_MOUNT,
                read_only,
            )
        )

    def with_container_files(
        self: B,
        destination_path: str,
        callback: Callable[..., Any],
    ) -> B:
        """Write the entries returned by *callback* under *destination_path*."""
        return self.with_annotation(
            ContainerFileSystemCallbackAnnotation(destination_path, callback)
        )
