"""hostdb: Manifest publishing.

Serialises the resource graph into a deployment manifest: one entry per
resource, values left as ``{resource.property}`` placeholders so a deployment
tool can substitute them.

    parameter.v0   a parameter, with its secret flag and default
    container.v0   a container pulled from a registry
    container.v1   a container built from a Dockerfile
    value.v0       a connection string of a non-container resource

Parameters are discovered from the resources *and* from every value that
references one.  Generated passwords are never added to the builder, so the
second source is what makes them appear.
"""

from __future__ import annotations

import os
from typing import Any, Iterable, Iterator

from hostdb.model.annotations import (
    CommandLineArgsCallbackAnnotation,
    CommandLineArgsCallbackContext,
    ContainerImageAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    DockerfileBuildAnnotation,
    EndpointAnnotation,
    EnvironmentCallbackAnnotation,
    EnvironmentCallbackContext,
    ManifestPublishingAnnotation,
)
from hostdb.model.expressions import iter_providers
from hostdb.model.parameters import ParameterReferenceDefault, ParameterResource
from hostdb.model.resources import ContainerResource, Resource, ResourceWithConnectionString

MANIFEST_SCHEMA = "https://json.schemastore.org/aspire-8.0.json"


def evaluate_environment(resource: Resource, app: Any = None) -> dict[str, Any]:
    """Run the environment callbacks of *resource*; values stay unresolved."""
    context = EnvironmentCallbackContext(app=app)
    for annotation in resource.annotations_of(EnvironmentCallbackAnnotation):
        annotation.callback(context)
    return context.environment_variables


def evaluate_args(resource: Resource, app: Any = None) -> list[Any]:
    context = CommandLineArgsCallbackContext(app=app)
    for annotation in resource.annotations_of(CommandLineArgsCallbackAnnotation):
        annotation.callback(context)
    return context.args


def expression_of(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value.value_expression


def _values_of(resource: Resource) -> Iterator[Any]:
    if isinstance(resource, ResourceWithConnectionString):
        yield resource.connection_string_expression
    if isinstance(resource, ContainerResource):
        yield from evaluate_environment(resource).values()
        yield from evaluate_args(resource)


def referenced_parameters(resources: Iterable[Resource]) -> list[ParameterResource]:
    """Every parameter in *resources* or referenced by one, in discovery order."""
    found: dict[str, ParameterResource] = {}

    def visit(parameter: ParameterResource) -> None:
        if parameter.name.casefold() in found:
            return
        found[parameter.name.casefold()] = parameter
        if isinstance(parameter.default, ParameterReferenceDefault):
            visit(parameter.default.source)

    for resource in resources:
        if isinstance(resource, ParameterResource):
            visit(resource)
            continue
        for value in _values_of(resource):
            for provider in iter_providers(value):
                if isinstance(provider, ParameterResource):
                    visit(provider)
    return list(found.values())


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


def parameter_entry(parameter: ParameterResource) -> dict[str, Any]:
    value_input: dict[str, Any] = {"type": "string"}
    if parameter.secret:
        value_input["secret"] = True
    if parameter.default is not None:
        default = parameter.default.manifest_entry()
        if default is not None:
            value_input["default"] = default
    return {
        "type": "parameter.v0",
        "value": f"{{{parameter.name}.inputs.value}}",
        "inputs": {"value": value_input},
    }


def _bindings(resource: Resource) -> dict[str, Any]:
    bindings: dict[str, Any] = {}
    for endpoint in resource.annotations_of(EndpointAnnotation):
        binding: dict[str, Any] = {
            "scheme": endpoint.scheme,
            "protocol": endpoint.transport,
            "transport": endpoint.transport,
        }
        if endpoint.port is not None:
            binding["port"] = endpoint.port
        if endpoint.target_port is not None:
            binding["targetPort"] = endpoint.target_port
        if not endpoint.is_proxied:
            binding["external"] = True
        bindings[endpoint.name] = binding
    return bindings


def container_entry(resource: ContainerResource, manifest_directory: str) -> dict[str, Any]:
    build = resource.last_annotation(DockerfileBuildAnnotation)
    entry: dict[str, Any]
    if build is not None:
        entry = {
            "type": "container.v1",
            "build": {
                "context": os.path.relpath(build.context_path, manifest_directory),
                "dockerfile": os.path.relpath(build.dockerfile_path, manifest_directory),
            },
        }
    else:
        publishing = resource.last_annotation(ManifestPublishingAnnotation)
        image = resource.last_annotation(ContainerImageAnnotation)
        entry = {"type": publishing.resource_type if publishing else "container.v0"}
        if image is not None:
            entry["image"] = image.full_image

    if resource.entrypoint:
        entry["entrypoint"] = resource.entrypoint
    args = [expression_of(a) for a in evaluate_args(resource)]
    if args:
        entry["args"] = args
    if isinstance(resource, ResourceWithConnectionString):
        entry["connectionString"] = resource.connection_string_expression.value_expression

    volumes, bind_mounts = [], []
    for mount in resource.annotations_of(ContainerMountAnnotation):
        if mount.type is ContainerMountType.VOLUME:
            volumes.append(
                {"name": mount.source, "target": mount.target, "readOnly": mount.read_only}
            )
        else:
            bind_mounts.append(
                {
                    "source": os.path.relpath(mount.source, manifest_directory),
                    "target": mount.target,
                    "readOnly": mount.read_only,
                }
            )
    if volumes:
        entry["volumes"] = volumes
    if bind_mounts:
        entry["bindMounts"] = bind_mounts

    env = {k: expression_of(v) for k, v in evaluate_environment(resource).items()}
    if env:
        entry["env"] = env
    bindings = _bindings(resource)
    if bindings:
        entry["bindings"] = bindings
    return entry


def value_entry(resource: ResourceWithConnectionString) -> dict[str, Any]:
    return {
        "type": "value.v0",
        "connectionString": resource.connection_string_expression.value_expression,
    }


def build_manifest(app_or_builder: Any, manifest_directory: str | None = None) -> dict[str, Any]:
    """Return the manifest of a builder or a built application.

    Relative paths (Dockerfile contexts, bind-mount sources) are expressed
    relative to *manifest_directory*, the app host directory by default.
    """
    builder = getattr(app_or_builder, "builder", app_or_builder)
    resources: list[Resource] = list(app_or_builder.resources)
    manifest_directory = str(manifest_directory or builder.app_host_directory)

    entries: dict[str, Any] = {}
    for parameter in referenced_parameters(resources):
        entries[parameter.name] = parameter_entry(parameter)
    for resource in resources:
        if isinstance(resource, ParameterResource):
            continue
        if isinstance(resource, ContainerResource):
            entries[resource.name] = container_entry(resource, manifest_directory)
        elif isinstance(resource, ResourceWithConnectionString):
            entries[resource.name] = value_entry(resource)
    return {"$schema": MANIFEST_SCHEMA, "resources": entries}
