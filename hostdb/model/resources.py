"""hostdb model: Resources.

Every node of the application graph is a ``Resource``: a name plus an
ordered list of annotations.  Behaviour is layered on with mixins:

    Resource
    ├── ContainerResource              runs as a container
    ├── ResourceWithConnectionString   exposes a connection-string expression
    └── ResourceWithParent             child of another resource (databases)
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, MutableMapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from hostdb.model.annotations import ConnectionStringRedirectAnnotation

if TYPE_CHECKING:
    from hostdb.model.expressions import ReferenceExpression

A = TypeVar("A")
P = TypeVar("P", bound="Resource")

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


def validate_resource_name(name: str) -> str:
    if not name or not name.strip():
        raise ValueError("Resource name must not be empty")
    if not _NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid resource name '{name}': use letters, digits, '-' and '_', "
            "starting with a letter"
        )
    return name


class Resource:
    def __init__(self, name: str) -> None:
        self.name = validate_resource_name(name)
        self.annotations: list[Any] = []

    def annotations_of(self, kind: type[A]) -> list[A]:
        return [a for a in self.annotations if isinstance(a, kind)]

    def last_annotation(self, kind: type[A]) -> A | None:
        for annotation in reversed(self.annotations):
            if isinstance(annotation, kind):
                return annotation
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ContainerResource(Resource):
    def __init__(self, name: str, entrypoint: str | None = None) -> None:
        super().__init__(name)
        self.entrypoint = entrypoint


class ResourceWithConnectionString(ABC):
    """Mixin for resources other resources can connect to.

    Also a value provider: ``value_expression`` is the manifest placeholder
    ``{<name>.connectionString}``, so a resource can be passed straight to
    ``with_environment()``.
    """

    name: str

    @property
    @abstractmethod
    def connection_string_expression(self) -> "ReferenceExpression": ...

    async def get_connection_string(self) -> str | None:
        redirect = self.last_annotation(ConnectionStringRedirectAnnotation)  # type: ignore[attr-defined]
        if redirect is not None:
            return await redirect.resource.get_connection_string()
        return await self.connection_string_expression.get_value()

    @property
    def value_expression(self) -> str:
        return f"{{{self.name}.connectionString}}"

    async def get_value(self) -> str | None:
        return await self.get_connection_string()


class ResourceWithParent(Generic[P]):
    """Mixin for resources owned by another resource."""

    parent: P


class CaseInsensitiveDict(MutableMapping):
    """``dict[str, V]`` whose keys compare case-insensitively.

    The spelling used when a key is first stored is kept for iteration.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._store: dict[str, tuple[str, Any]] = {}
        if data:
            self.update(data)

    def __setitem__(self, key: str, value: Any) -> None:
        self._store[key.casefold()] = (key, value)

    def __getitem__(self, key: str) -> Any:
        return self._store[key.casefold()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._store

    def __repr__(self) -> str:
        return f"CaseInsensitiveDict({dict(self.items())!r})"
