"""hostdb model: the application graph.

Resources, their annotations, deferred values (parameters, endpoint
references, reference expressions), health checks and lifecycle events,
plus the builder that assembles them and the application that runs them.
"""

from hostdb.model.annotations import (
    AllocatedEndpoint,
    CommandLineArgsCallbackAnnotation,
    CommandLineArgsCallbackContext,
    ConnectionStringRedirectAnnotation,
    ContainerDirectory,
    ContainerFile,
    ContainerFileSystemCallbackAnnotation,
    ContainerFileSystemCallbackContext,
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
    HealthCheckAnnotation,
    ManifestPublishingAnnotation,
    WaitAnnotation,
)
from hostdb.model.application import DistributedApplication
from hostdb.model.builder import DistributedApplicationBuilder, ResourceBuilder
from hostdb.model.eventing import BeforeStartEvent, ConnectionStringAvailableEvent, Eventing
from hostdb.model.expressions import (
    EndpointProperty,
    EndpointReference,
    EndpointReferenceExpression,
    ReferenceExpression,
    ReferenceExpressionBuilder,
    ValueProvider,
)
from hostdb.model.health import (
    HealthCheck,
    HealthCheckContext,
    HealthCheckRegistry,
    HealthCheckResult,
    HealthStatus,
)
from hostdb.model.parameters import (
    GenerateParameterDefault,
    ParameterResource,
    create_default_password_parameter,
)
from hostdb.model.resources import (
    CaseInsensitiveDict,
    ContainerResource,
    Resource,
    ResourceWithConnectionString,
    ResourceWithParent,
)

__all__ = [
    # Builder / application
    "DistributedApplicationBuilder",
    "DistributedApplication",
    "ResourceBuilder",
    # Resources
    "Resource",
    "ContainerResource",
    "ResourceWithConnectionString",
    "ResourceWithParent",
    "ParameterResource",
    "GenerateParameterDefault",
    "create_default_password_parameter",
    "CaseInsensitiveDict",
    # Values
    "ValueProvider",
    "ReferenceExpression",
    "ReferenceExpressionBuilder",
    "EndpointReference",
    "EndpointReferenceExpression",
    "EndpointProperty",
    # Annotations
    "AllocatedEndpoint",
    "EndpointAnnotation",
    "ContainerImageAnnotation",
    "ContainerMountAnnotation",
    "ContainerMountType",
    "ContainerLifetime",
    "ContainerLifetimeAnnotation",
    "DockerfileBuildAnnotation",
    "EnvironmentCallbackAnnotation",
    "EnvironmentCallbackContext",
    "CommandLineArgsCallbackAnnotation",
    "CommandLineArgsCallbackContext",
    "ContainerRuntimeArgsCallbackAnnotation",
    "ContainerFile",
    "ContainerDirectory",
    "ContainerFileSystemCallbackAnnotation",
    "ContainerFileSystemCallbackContext",
    "HealthCheckAnnotation",
    "ConnectionStringRedirectAnnotation",
    "ManifestPublishingAnnotation",
    "WaitAnnotation",
    # Health / events
    "HealthCheck",
    "HealthCheckContext",
    "HealthCheckRegistry",
    "HealthCheckResult",
    "HealthStatus",
    "Eventing",
    "BeforeStartEvent",
    "ConnectionStringAvailableEvent",
]
