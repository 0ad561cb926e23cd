"""hostdb model: Parameter resources.

A parameter is a named, possibly secret, value resolved when the application
runs.  Resolution order:

    1. The value passed to ``add_parameter()``
    2. ``Settings.parameters[<name>]``
    3. The parameter's default (a generated password, usually)

A generated value is produced once per parameter and then reused, so every
connection string and environment variable referencing the parameter sees
the same secret.
"""

from __future__ import annotations

import secrets
import string
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from hostdb.exceptions import MissingParameterValueError
from hostdb.model.resources import Resource

if TYPE_CHECKING:
    from hostdb.model.builder import DistributedApplicationBuilder, ResourceBuilder

# Characters safe inside "Key=Value;" connection strings and shell-free argv.
SPECIAL_CHARACTERS = "-_.{}~()*+!"


class ParameterDefault(ABC):
    """Produces a value for a parameter nobody configured."""

    @abstractmethod
    async def get_default_value(self) -> str: ...

    def manifest_entry(self) -> dict[str, object] | None:
        """Describe the default in the manifest, or ``None`` to omit it."""
        return None


class GenerateParameterDefault(ParameterDefault):
    """Random password with at least one character of every enabled class."""

    def __init__(
        self,
        min_length: int = 22,
        lower: bool = True,
        upper: bool = True,
        numeric: bool = True,
        special: bool = True,
    ) -> None:
        classes = [
            chars
            for enabled, chars in (
                (lower, string.ascii_lowercase),
                (upper, string.ascii_uppercase),
                (numeric, string.digits),
                (special, SPECIAL_CHARACTERS),
            )
            if enabled
        ]
        if not classes:
            raise ValueError("At least one character class must be enabled")
        if min_length < len(classes):
            raise ValueError(f"min_length must be at least {len(classes)}")
        self.min_length = min_length
        self.lower = lower
        self.upper = upper
        self.numeric = numeric
        self.special = special
        self._classes = classes
        self._value: str | None = None

    def generate(self) -> str:
        rng = secrets.SystemRandom()
        chars = [secrets.choice(chars) for chars in self._classes]
        alphabet = "".join(self._classes)
        chars += [secrets.choice(alphabet) for _ in range(self.min_length - len(chars))]
        rng.shuffle(chars)
        return "".join(chars)

    async def get_default_value(self) -> str:
        if self._value is None:
            self._value = self.generate()
        return self._value

    def manifest_entry(self) -> dict[str, object]:
        generate: dict[str, object] = {"minLength": self.min_length}
        for flag in ("lower", "upper", "numeric", "special"):
            if not getattr(self, flag):
                generate[flag] = False
        return {"generate": generate}


class ParameterReferenceDefault(ParameterDefault):
    """Falls back to the value of another parameter."""

    def __init__(self, source: "ParameterResource") -> None:
        self.source = source

    async def get_default_value(self) -> str:
        return await self.source.get_value()

    def manifest_entry(self) -> dict[str, object]:
        return {"value": self.source.value_expression}


class ParameterResource(Resource):
    """A named input of the application model."""

    def __init__(
        self,
        name: str,
        value: str | None = None,
        secret: bool = False,
        default: ParameterDefault | None = None,
    ) -> None:
        super().__init__(name)
        self.value = value
        self.secret = secret
        self.default = default

    @property
    def value_expression(self) -> str:
        return f"{{{self.name}.value}}"

    async def get_value(self) -> str:
        if self.value is not None:
            return self.value
        if self.default is not None:
            return await self.default.get_default_value()
        raise MissingParameterValueError(self.name)

    def __repr__(self) -> str:
        # Never render the value of a secret.
        return f"ParameterResource(name={self.name!r}, secret={self.secret})"


def create_default_password_parameter(
    builder: "DistributedApplicationBuilder",
    name: str,
    special: bool = True,
    min_length: int = 22,
    default: ParameterDefault | None = None,
) -> ParameterResource:
    """Create (but do not add) a secret password parameter.

    A value configured under ``parameters.<name>`` wins over generation.
    Callers add the parameter to the builder themselves so that a custom
    password passed by the user never leaves an unused parameter behind.
    """
    return ParameterResource(
        name,
        value=builder.settings.parameters.get(name),
        secret=True,
        default=default or GenerateParameterDefault(min_length=min_length, special=special),
    )


def add_parameter(
    builder: "DistributedApplicationBuilder",
    name: str,
    value: str | None = None,
    secret: bool = False,
) -> "ResourceBuilder[ParameterResource]":
    if value is None:
        value = builder.settings.parameters.get(name)
    return builder.add_resource(ParameterResource(name, value=value, secret=secret))
