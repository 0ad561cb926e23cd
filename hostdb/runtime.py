"""hostdb: Docker CLI container runtime.

``DockerCli`` renders ``docker`` argument vectors for container resources;
``DockerCliRuntime`` runs them for a ``DistributedApplication``.

Security notes:
  - Commands always run with ``asyncio.create_subprocess_exec`` (no shell).
  - Environment values (passwords included) appear in argv but are never logged;
    only the first words of a command are.
  - Files produced by container-file callbacks are written under a per-app
    state directory and bind-mounted read-only.

Start order follows ``wait_for()``: a container whose dependencies are not
healthy yet is started only after they pass their health checks.
"""

from __future__ import annotations

import asyncio
import json
import os
import posixpath
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any

from hostdb.config import Settings, get_settings
from hostdb.exceptions import ContainerRuntimeError
from hostdb.logging import get_logger
from hostdb.manifest import evaluate_args, evaluate_environment, referenced_parameters
from hostdb.model.annotations import (
    AllocatedEndpoint,
    ContainerDirectory,
    ContainerFile,
    ContainerFileSystemCallbackAnnotation,
    ContainerFileSystemCallbackContext,
    ContainerFileSystemEntry,
    ContainerImageAnnotation,
    ContainerLifetime,
    ContainerLifetimeAnnotation,
    ContainerMountAnnotation,
    ContainerMountType,
    ContainerRuntimeArgsCallbackAnnotation,
    DockerfileBuildAnnotation,
    EndpointAnnotation,
    WaitAnnotation,
)
from hostdb.model.resources import ContainerResource, Resource

log = get_logger(__name__)

APP_LABEL = "io.hostdb.app"
PARAMETERS_FILE = "parameters.json"

# (host path, container path)
FileMount = tuple[str, str]


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9_.-]+", "-", value.lower()).strip("-") or "hostdb"


def container_resources(resources: list[Resource]) -> list[ContainerResource]:
    """Container resources ordered so that ``wait_for()`` targets come first."""
    containers = [r for r in resources if isinstance(r, ContainerResource)]
    ordered: list[ContainerResource] = []
    visiting: set[str] = set()

    def visit(resource: ContainerResource) -> None:
        if resource in ordered:
            return
        if resource.name in visiting:
            raise ValueError(f"Circular wait_for() dependency involving '{resource.name}'")
        visiting.add(resource.name)
        for wait in resource.annotations_of(WaitAnnotation):
            if isinstance(wait.resource, ContainerResource):
                visit(wait.resource)
        visiting.discard(resource.name)
        ordered.append(resource)

    for container in containers:
        visit(container)
    return ordered


async def resolve(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    resolved = await value.get_value()
    return "" if resolved is None else str(resolved)


class DockerCli:
    """Renders ``docker`` commands.  Nothing here executes anything."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.binary = self.settings.runtime.docker_binary

    def network_name(self, app: Any) -> str:
        return self.settings.runtime.network or f"{_slug(app.app_name)}-network"

    def container_name(self, app: Any, resource: Resource) -> str:
        return f"{_slug(app.app_name)}-{_slug(resource.name)}"

    def image_of(self, resource: Resource) -> str:
        build = resource.last_annotation(DockerfileBuildAnnotation)
        if build is not None:
            return build.image_tag
        image = resource.last_annotation(ContainerImageAnnotation)
        if image is None:
            raise ValueError(f"Resource '{resource.name}' has no container image")
        return image.full_image

    def render_build(self, resource: Resource) -> list[str] | None:
        """``docker build`` for Dockerfile resources, ``None`` for pulled images."""
        build = resource.last_annotation(DockerfileBuildAnnotation)
        if build is None:
            return None
        return [
            self.binary, "build",
            "--tag", build.image_tag,
            "--file", build.dockerfile_path,
            build.context_path,
        ]  # fmt: skip

    async def render_run(
        self,
        resource: ContainerResource,
        app: Any,
        file_mounts: list[FileMount] | None = None,
    ) -> list[str]:
        """``docker run`` for *resource*.  Endpoints must be allocated."""
        argv = [
            self.binary, "run", "--detach",
            "--name", self.container_name(app, resource),
            "--label", f"{APP_LABEL}={app.app_name}",
            "--network", self.network_name(app),
            "--network-alias", resource.name,
        ]  # fmt: skip

        runtime_args: list[str] = []
        for annotation in resource.annotations_of(ContainerRuntimeArgsCallbackAnnotation):
            annotation.callback(runtime_args)
        argv.extend(runtime_args)

        for endpoint in resource.annotations_of(EndpointAnnotation):
            if endpoint.target_port is None or endpoint.allocated is None:
                continue
            argv += ["--publish", f"{endpoint.allocated.port}:{endpoint.target_port}"]

        for name, value in evaluate_environment(resource, app).items():
            argv += ["--env", f"{name}={await resolve(value)}"]

        for mount in resource.annotations_of(ContainerMountAnnotation):
            argv += ["--mount", self._mount_spec(mount)]
        for source, target in file_mounts or ():
            argv += ["--mount", f"type=bind,source={source},target={target},readonly"]

        if resource.entrypoint:
            argv += ["--entrypoint", resource.entrypoint]
        argv.append(self.image_of(resource))
        for arg in evaluate_args(resource, app):
            argv.append(await resolve(arg))
        return argv

    @staticmethod
    def _mount_spec(mount: ContainerMountAnnotation) -> str:
        if mount.type is ContainerMountType.VOLUME:
            spec = f"type=volume,target={mount.target}"
            if mount.source:
                spec = f"type=volume,source={mount.source},target={mount.target}"
        else:
            spec = f"type=bind,source={mount.source},target={mount.target}"
        return spec + (",readonly" if mount.read_only else "")

    def render_remove(self, app: Any, resource: Resource) -> list[str]:
        return [self.binary, "rm", "--force", self.container_name(app, resource)]

    def render_port(self, app: Any, resource: Resource, target_port: int) -> list[str]:
        return [self.binary, "port", self.container_name(app, resource), f"{target_port}/tcp"]


class DockerCliRuntime:
    """Starts and stops the container resources of an application."""

    def __init__(self, cli: DockerCli | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or (cli.settings if cli else get_settings())
        self.cli = cli or DockerCli(self.settings)
        self.timeout = self.settings.runtime.command_timeout_seconds

    def state_directory(self, app: Any) -> Path:
        return Path(tempfile.gettempdir()) / "hostdb" / _slug(app.app_name)

    # ------------------------------------------------------------------
    # Command execution
    # ------------------------------------------------------------------

    async def run(self, argv: list[str], check: bool = True) -> tuple[int, str, str]:
        log.debug("docker_command", command=argv[:3])
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ContainerRuntimeError(argv, None, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise ContainerRuntimeError(argv, None, f"timed out after {self.timeout}s")

        out = stdout.decode(errors="replace") if stdout else ""
        err = stderr.decode(errors="replace") if stderr else ""
        if check and proc.returncode != 0:
            raise ContainerRuntimeError(argv, proc.returncode, err)
        return proc.returncode or 0, out, err

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, app: Any) -> None:
        state = self.state_directory(app)
        state.mkdir(mode=0o700, parents=True, exist_ok=True)
        state.chmod(0o700)
        await self.ensure_network(app)
        # Reused persistent containers were initialised with the saved secrets.
        await self.load_parameters(app)
        await self.save_parameters(app)

        for resource in container_resources(app.resources):
            for wait in resource.annotations_of(WaitAnnotation):
                await app.wait_for_resource_healthy(wait.resource.name)

            if self.is_persistent(resource) and await self.container_exists(app, resource):
                log.info("container_reused", resource=resource.name)
                await self.discover_resource_endpoints(app, resource)
                continue

            build = self.cli.render_build(resource)
            if build is not None:
                log.info("image_build_started", resource=resource.name)
                await self.run(build)

            file_mounts = await self.write_container_files(app, resource, state)
            # A stale container with the same name blocks ``docker run``.
            await self.run(self.cli.render_remove(app, resource), check=False)
            await self.run(await self.cli.render_run(resource, app, file_mounts))
            log.info("container_started", resource=resource.name)

    async def stop(self, app: Any) -> None:
        kept = False
        for resource in reversed(container_resources(app.resources)):
            if self.is_persistent(resource):
                log.info("container_kept", resource=resource.name)
                kept = True
                continue
            await self.run(self.cli.render_remove(app, resource), check=False)
            log.info("container_removed", resource=resource.name)
        if kept:
            log.info("state_kept", directory=str(self.state_directory(app)))
            return
        shutil.rmtree(self.state_directory(app), ignore_errors=True)

    async def ensure_network(self, app: Any) -> None:
        network = self.cli.network_name(app)
        code, _, _ = await self.run([self.cli.binary, "network", "inspect", network], check=False)
        if code != 0:
            await self.run([self.cli.binary, "network", "create", network])
            log.info("network_created", network=network)

    async def container_exists(self, app: Any, resource: Resource) -> bool:
        code, _, _ = await self.run(
            [self.cli.binary, "container", "inspect", self.cli.container_name(app, resource)],
            check=False,
        )
        return code == 0

    @staticmethod
    def is_persistent(resource: Resource) -> bool:
        lifetime = resource.last_annotation(ContainerLifetimeAnnotation)
        return lifetime is not None and lifetime.lifetime is ContainerLifetime.PERSISTENT

    # ------------------------------------------------------------------
    # Endpoints and parameters of running containers
    # ------------------------------------------------------------------

    async def discover_endpoints(self, app: Any) -> None:
        """Read published ports of running containers (``docker port``)."""
        await self.load_parameters(app)
        for resource in container_resources(app.resources):
            await self.discover_resource_endpoints(app, resource)

    async def discover_resource_endpoints(self, app: Any, resource: Resource) -> None:
        for endpoint in resource.annotations_of(EndpointAnnotation):
            if endpoint.target_port is None:
                continue
            _, out, _ = await self.run(self.cli.render_port(app, resource, endpoint.target_port))
            port = parse_port_output(out)
            if port is None:
                raise ContainerRuntimeError(
                    self.cli.render_port(app, resource, endpoint.target_port),
                    0,
                    f"no published port for {resource.name}/{endpoint.name}",
                )
            endpoint.allocated = AllocatedEndpoint(self.settings.runtime.bind_host, port)

    async def save_parameters(self, app: Any) -> None:
        """Persist resolved parameter values so ``attach()`` sees the same secrets."""
        values = {
            p.name: await p.get_value()
            for p in referenced_parameters(app.resources)
        }
        path = self.state_directory(app) / PARAMETERS_FILE
        fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            handle.write(json.dumps(values))
        os.chmod(path, 0o600)

    async def load_parameters(self, app: Any) -> None:
        path = self.state_directory(app) / PARAMETERS_FILE
        if not path.exists():
            return
        values = json.loads(path.read_text())
        for parameter in referenced_parameters(app.resources):
            if parameter.value is None and parameter.name in values:
                parameter.value = values[parameter.name]

    # ------------------------------------------------------------------
    # Container files
    # ------------------------------------------------------------------

    async def write_container_files(
        self, app: Any, resource: Resource, state: Path
    ) -> list[FileMount]:
        """Materialise file callbacks; one mount per top-level entry."""
        mounts: list[FileMount] = []
        annotations = resource.annotations_of(ContainerFileSystemCallbackAnnotation)
        for index, annotation in enumerate(annotations):
            entries = await annotation.callback(ContainerFileSystemCallbackContext(resource, app))
            root = state / _slug(resource.name) / str(index)
            if root.exists():
                shutil.rmtree(root)
            root.mkdir(parents=True)
            for entry in entries:
                write_entry(root, entry)
                mounts.append(
                    (str(root / entry.name), posixpath.join(annotation.destination_path, entry.name))
                )
        return mounts


def write_entry(directory: Path, entry: ContainerFileSystemEntry) -> None:
    if isinstance(entry, ContainerFile):
        path = directory / entry.name
        path.write_text(entry.contents)
        os.chmod(path, entry.mode)
    elif isinstance(entry, ContainerDirectory):
        path = directory / entry.name
        path.mkdir(parents=True, exist_ok=True)
        for child in entry.entries:
            write_entry(path, child)
    else:
        raise TypeError(f"Unsupported container file system entry: {entry!r}")


def parse_port_output(output: str) -> int | None:
    """First host port of ``docker port`` output (``0.0.0.0:49153``, ``[::]:49153``)."""
    for line in output.splitlines():
        _, sep, port = line.strip().rpartition(":")
        if sep and port.isdigit():
            return int(port)
    return None
