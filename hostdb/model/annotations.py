"""hostdb model: Resource annotations.

Annotations are plain records attached to a resource.  Builder extensions
append them; the manifest publisher, the container runtime and the
application read them back with ``Resource.annotations_of()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

if TYPE_CHECKING:
    from hostdb.model.application import DistributedApplication
    from hostdb.model.resources import Resource


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AllocatedEndpoint:
    """Host and port an endpoint is reachable on once the app is running."""

    host: str
    port: int


@dataclass
class EndpointAnnotation:
    name: str
    target_port: int | None = None
    port: int | None = None
    """Host port.  ``None`` lets the application pick a free one."""
    scheme: str = "tcp"
    transport: str = "tcp"
    is_proxied: bool = True
    allocated: AllocatedEndpoint | None = None

    def __post_init__(self) -> None:
        for value in (self.port, self.target_port):
            if value is not None and not (1 <= value <= 65535):
                raise ValueError(f"Endpoint ports must be 1-65535, got {value}")


# ---------------------------------------------------------------------------
# Container image and mounts
# ---------------------------------------------------------------------------


@dataclass
class ContainerImageAnnotation:
    image: str
    tag: str | None = None
    registry: str | None = None

    @property
    def full_image(self) -> str:
        reference = self.image
        if self.registry:
            reference = f"{self.registry}/{reference}"
        if self.tag:
            reference = f"{reference}:{self.tag}"
        return reference


class ContainerMountType(str, Enum):
    BIND_MOUNT = "bind"
    VOLUME = "volume"


@dataclass
class ContainerMountAnnotation:
    source: str | None
    target: str
    type: ContainerMountType
    read_only: bool = False

    def __post_init__(self) -> None:
        if not self.target.startswith("/"):
            raise ValueError(f"Mount target must be an absolute path, got '{self.target}'")
        if self.type is ContainerMountType.BIND_MOUNT and not self.source:
            raise ValueError("A bind mount requires a source path")


@dataclass
class DockerfileBuildAnnotation:
    context_path: str
    dockerfile_path: str
    image_tag: str


class ContainerLifetime(str, Enum):
    SESSION = "session"
    PERSISTENT = "persistent"


@dataclass
class ContainerLifetimeAnnotation:
    lifetime: ContainerLifetime


# ---------------------------------------------------------------------------
# Environment and arguments
# ---------------------------------------------------------------------------


# A literal string or anything exposing ``value_expression`` and ``get_value()``.
EnvValue = Union[str, Any, None]


@dataclass
class EnvironmentCallbackContext:
    app: "DistributedApplication | None" = None
    environment_variables: dict[str, EnvValue] = field(default_factory=dict)


@dataclass
class EnvironmentCallbackAnnotation:
    callback: Callable[[EnvironmentCallbackContext], None]


@dataclass
class CommandLineArgsCallbackContext:
    app: "DistributedApplication | None" = None
    args: list[EnvValue] = field(default_factory=list)


@dataclass
class CommandLineArgsCallbackAnnotation:
    """Arguments passed to the container process."""

    callback: Callable[[CommandLineArgsCallbackContext], None]


@dataclass
class ContainerRuntimeArgsCallbackAnnotation:
    """Arguments passed to ``docker run`` itself (e.g. ``--privileged``)."""

    callback: Callable[[list[str]], None]


# ---------------------------------------------------------------------------
# Files written into the container before it starts
# ---------------------------------------------------------------------------


@dataclass
class ContainerFile:
    name: str
    contents: str
    mode: int = 0o644


@dataclass
class ContainerDirectory:
    name: str
    entries: list["ContainerFileSystemEntry"] = field(default_factory=list)


ContainerFileSystemEntry = Union[ContainerFile, ContainerDirectory]


@dataclass
class ContainerFileSystemCallbackContext:
    model: "Resource"
    app: "DistributedApplication"


@dataclass
class ContainerFileSystemCallbackAnnotation:
    destination_path: str
    callback: Callable[
        [ContainerFileSystemCallbackContext], Awaitable[list[ContainerFileSystemEntry]]
    ]


# ---------------------------------------------------------------------------
# Graph relations
# ---------------------------------------------------------------------------


@dataclass
class HealthCheckAnnotation:
    key: str


@dataclass
class ConnectionStringRedirectAnnotation:
    resource: Any
    """The resource whose connection string is used instead."""


@dataclass
class WaitAnnotation:
    resource: "Resource"


@dataclass
class ManifestPublishingAnnotation:
    """Forces the manifest entry type of a resource (e.g. ``container.v0``)."""

    resource_type: str
