"""Unit tests — ParameterResource and password defaults."""

from __future__ import annotations

import pytest

from hostdb.exceptions import MissingParameterValueError
from hostdb.model.parameters import (
    SPECIAL_CHARACTERS,
    GenerateParameterDefault,
    ParameterReferenceDefault,
    ParameterResource,
    create_default_password_parameter,
)


@pytest.mark.unit
class TestGenerateParameterDefault:
    @pytest.mark.asyncio
    async def test_value_is_generated_once(self) -> None:
        default = GenerateParameterDefault()
        first = await default.get_default_value()
        assert len(first) == 22
        assert await default.get_default_value() == first

    def test_every_enabled_class_is_present(self) -> None:
        value = GenerateParameterDefault(min_length=8).generate()
        assert any(c.islower() for c in value)
        assert any(c.isupper() for c in value)
        assert any(c.isdigit() for c in value)
        assert any(c in SPECIAL_CHARACTERS for c in value)

    def test_special_disabled(self) -> None:
        for _ in range(20):
            value = GenerateParameterDefault(special=False).generate()
            assert value.isalnum()

    def test_no_class_enabled_raises(self) -> None:
        with pytest.raises(ValueError):
            GenerateParameterDefault(lower=False, upper=False, numeric=False, special=False)

    def test_manifest_entry_lists_disabled_classes(self) -> None:
        entry = GenerateParameterDefault(special=False).manifest_entry()
        assert entry == {"generate": {"minLength": 22, "special": False}}


@pytest.mark.unit
class TestParameterResource:
    @pytest.mark.asyncio
    async def test_explicit_value_wins(self) -> None:
        param = ParameterResource("p", value="v", default=GenerateParameterDefault())
        assert await param.get_value() == "v"

    @pytest.mark.asyncio
    async def test_missing_value_raises(self) -> None:
        with pytest.raises(MissingParameterValueError):
            await ParameterResource("p").get_value()

    @pytest.mark.asyncio
    async def test_reference_default_follows_source(self) -> None:
        source = ParameterResource("src", value="abc")
        param = ParameterResource("p", default=ParameterReferenceDefault(source))
        assert await param.get_value() == "abc"

    @pytest.mark.asyncio
    async def test_reference_default_without_source_value_raises(self) -> None:
        param = ParameterResource("p", default=ParameterReferenceDefault(ParameterResource("src")))
        with pytest.raises(MissingParameterValueError, match=r"parameters\.src"):
            await param.get_value()

    def test_repr_hides_value(self) -> None:
        assert "hunter2" not in repr(ParameterResource("p", value="hunter2", secret=True))


@pytest.mark.unit
class TestDefaultPasswordParameter:
    def test_not_added_to_builder(self, builder) -> None:
        param = create_default_password_parameter(builder, "db-password")
        assert param.secret
        assert builder.find_resource("db-password") is None

    @pytest.mark.asyncio
    async def test_configured_value_wins(self, builder) -> None:
        builder.settings.parameters["db-password"] = "fromconfig"
        param = create_default_password_parameter(builder, "db-password")
        assert await param.get_value() == "fromconfig"

    @pytest.mark.asyncio
    async def test_add_parameter_reads_settings(self, builder) -> None:
        builder.settings.parameters["user"] = "alice"
        param = builder.add_parameter("user").resource
        assert await param.get_value() == "alice"
