"""hostdb model: Deferred values.

Connection strings and environment variables are built before any port is
allocated, so they are expressed as *value providers* rather than strings.
A value provider has two faces:

    value_expression     the manifest placeholder, e.g. ``{pg.bindings.tcp.port}``
    await get_value()    the concrete value once the application runs

``ReferenceExpression`` concatenates literals and providers.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, Sequence, Union, runtime_checkable

from hostdb.exceptions import EndpointNotAllocatedError, EndpointNotFoundError
from hostdb.model.annotations import EndpointAnnotation

if TYPE_CHECKING:
    from hostdb.model.resources import Resource


@runtime_checkable
class ValueProvider(Protocol):
    @property
    def value_expression(self) -> str: ...

    async def get_value(self) -> str | None: ...


ExpressionPart = Union[str, ValueProvider, None]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class EndpointProperty(str, Enum):
    URL = "url"
    HOST = "host"
    PORT = "port"
    TARGET_PORT = "targetPort"
    HOST_AND_PORT = "hostAndPort"
    SCHEME = "scheme"


class EndpointReference:
    """Points at a named endpoint of a resource, allocated or not."""

    def __init__(self, resource: "Resource", endpoint_name: str) -> None:
        self.resource = resource
        self.endpoint_name = endpoint_name

    @property
    def annotation(self) -> EndpointAnnotation:
        for annotation in self.resource.annotations_of(EndpointAnnotation):
            if annotation.name == self.endpoint_name:
                return annotation
        raise EndpointNotFoundError(self.resource.name, self.endpoint_name)

    @property
    def exists(self) -> bool:
        return any(
            a.name == self.endpoint_name
            for a in self.resource.annotations_of(EndpointAnnotation)
        )

    @property
    def is_allocated(self) -> bool:
        return self.exists and self.annotation.allocated is not None

    def _allocated(self):
        allocated = self.annotation.allocated
        if allocated is None:
            raise EndpointNotAllocatedError(self.resource.name, self.endpoint_name)
        return allocated

    @property
    def host(self) -> str:
        return self._allocated().host

    @property
    def port(self) -> int:
        return self._allocated().port

    @property
    def target_port(self) -> int | None:
        return self.annotation.target_port

    @property
    def scheme(self) -> str:
        return self.annotation.scheme

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def value_expression(self) -> str:
        return self.property(EndpointProperty.URL).value_expression

    async def get_value(self) -> str:
        return self.url

    def __repr__(self) -> str:
        return f"EndpointReference({self.resource.name!r}, {self.endpoint_name!r})"

    # Defined last: the name shadows the builtin for the rest of the class body.
    def property(self, prop: EndpointProperty) -> "EndpointReferenceExpression":
        return EndpointReferenceExpression(self, prop)


class EndpointReferenceExpression:
    """A single property of an endpoint, as a value provider."""

    def __init__(self, endpoint: EndpointReference, prop: EndpointProperty) -> None:
        self.endpoint = endpoint
        self.property = prop

    @property
    def value_expression(self) -> str:
        return (
            f"{{{self.endpoint.resource.name}.bindings."
            f"{self.endpoint.endpoint_name}.{self.property.value}}}"
        )

    async def get_value(self) -> str:
        endpoint = self.endpoint
        if self.property is EndpointProperty.HOST:
            return endpoint.host
        if self.property is EndpointProperty.PORT:
            return str(endpoint.port)
        if self.property is EndpointProperty.TARGET_PORT:
            return str(endpoint.target_port)
        if self.property is EndpointProperty.HOST_AND_PORT:
            return f"{endpoint.host}:{endpoint.port}"
        if self.property is EndpointProperty.SCHEME:
            return endpoint.scheme
        return endpoint.url


# ---------------------------------------------------------------------------
# Reference expressions
# ---------------------------------------------------------------------------


def _escape(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


class ReferenceExpression:
    """A ``str.format`` template whose ``{0}``, ``{1}``... slots are providers."""

    def __init__(self, format: str, providers: Sequence[Any] = ()) -> None:
        self.format = format
        self.providers: list[Any] = list(providers)

    @classmethod
    def create(cls, *parts: ExpressionPart) -> "ReferenceExpression":
        builder = ReferenceExpressionBuilder()
        for part in parts:
            builder.append_formatted(part)
        return builder.build()

    @property
    def value_expression(self) -> str:
        return self.format.format(*(p.value_expression for p in self.providers))

    async def get_value(self) -> str:
        values = []
        for provider in self.providers:
            value = await provider.get_value()
            values.append("" if value is None else value)
        return self.format.format(*values)

    def __str__(self) -> str:
        return self.value_expression

    def __repr__(self) -> str:
        return f"ReferenceExpression({self.value_expression!r})"


class ReferenceExpressionBuilder:
    def __init__(self) -> None:
        self._format: list[str] = []
        self._providers: list[Any] = []

    def append_literal(self, text: str) -> "ReferenceExpressionBuilder":
        self._format.append(_escape(text))
        return self

    def append_formatted(self, part: ExpressionPart) -> "ReferenceExpressionBuilder":
        if part is None:
            return self
        if isinstance(part, str):
            return self.append_literal(part)
        if not isinstance(part, ValueProvider):
            raise TypeError(f"{part!r} is neither a string nor a value provider")
        self._format.append(f"{{{len(self._providers)}}}")
        self._providers.append(part)
        return self

    def build(self) -> ReferenceExpression:
        return ReferenceExpression("".join(self._format), self._providers)


def iter_providers(value: Any):
    """Yield *value* and every provider nested inside it, depth first."""
    yield value
    if isinstance(value, ReferenceExpression):
        for provider in value.providers:
            yield from iter_providers(provider)
