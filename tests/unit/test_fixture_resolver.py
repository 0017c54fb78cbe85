from unittest.mock import AsyncMock, MagicMock

import pytest

from app_explorer.elements import Element, ElementType, ScreenCategory
from app_explorer.errors import FixtureNoMatchError
from app_explorer.fixture_resolver import FixtureResolver, generic_fallback
from app_explorer.fixtures import (
    AIGenerated,
    Fallback,
    Fixture,
    FixtureContext,
    FixtureDefault,
    FixtureExact,
    FixturePattern,
    FixtureSemantic,
)


def _input(identifier=None, label=None) -> Element:
    return Element(ElementType.INPUT, identifier, label, interactive=True)


def _fixture(patterns=None, defaults=None, mode="aiGenerated") -> Fixture:
    return Fixture.from_dict(
        {"patterns": patterns or {}, "defaults": defaults or {}, "fallbackMode": mode},
        environ={},
    )


@pytest.fixture
def oracle() -> MagicMock:
    mock = MagicMock()
    mock.generate_value = AsyncMock(return_value="ai@generated.io")
    return mock


class TestCascade:
    @pytest.mark.asyncio
    async def test_screen_context_beats_identifier(self) -> None:
        resolver = FixtureResolver(
            _fixture({"emailField": "exact@test.com", "screen:login|field:email": "login@test.com"})
        )

        value, source = await resolver.resolve(_input("emailField"), ScreenCategory.LOGIN)

        assert value == "login@test.com"
        assert source == FixtureContext(screen="login", field="email")
        assert source.confidence == 0.9

    @pytest.mark.asyncio
    async def test_identifier_used_off_context(self) -> None:
        resolver = FixtureResolver(
            _fixture({"emailField": "exact@test.com", "screen:login|field:email": "login@test.com"})
        )

        value, source = await resolver.resolve(_input("emailField"), ScreenCategory.SIGNUP)

        assert value == "exact@test.com"
        assert source == FixtureExact(pattern="emailField")
        assert source.description == "fixture (exact: emailField)"

    @pytest.mark.asyncio
    async def test_contains_beats_semantic(self) -> None:
        resolver = FixtureResolver(
            _fixture({"semantic:email": "semantic@test.com", "pattern:contains:email": "contains@test.com"})
        )

        value, source = await resolver.resolve(_input("userEmailInput"))

        assert value == "contains@test.com"
        assert source == FixturePattern(pattern_type="contains", pattern="email")

    @pytest.mark.asyncio
    async def test_regex_beats_contains(self) -> None:
        resolver = FixtureResolver(
            _fixture({"pattern:contains:card": "1111", "pattern:regex:card.*number": "4242424242424242"})
        )

        value, source = await resolver.resolve(_input("cardNumberField"))

        assert value == "4242424242424242"
        assert source.pattern_type == "regex"

    @pytest.mark.asyncio
    async def test_semantic_pattern(self) -> None:
        resolver = FixtureResolver(_fixture({"semantic:phone": "555-0123"}))

        value, source = await resolver.resolve(_input("mobileInput"))

        assert value == "555-0123"
        assert source == FixtureSemantic(field_type="phone")

    @pytest.mark.asyncio
    async def test_fixture_type_default(self) -> None:
        resolver = FixtureResolver(_fixture(defaults={"email": "default@example.com"}))

        value, source = await resolver.resolve(_input(label="Work email"))

        assert value == "default@example.com"
        assert source == FixtureDefault(field_type="email")
        assert source.confidence == 0.7

    @pytest.mark.asyncio
    async def test_resolution_is_reproducible(self) -> None:
        resolver = FixtureResolver(_fixture({"pattern:contains:pass": "pw1", "pattern:label:Password": "pw2"}))
        element = _input("passField", "Password")

        first = await resolver.resolve(element)
        second = await resolver.resolve(element)

        assert first == second == ("pw2", FixturePattern(pattern_type="label", pattern="Password"))


class TestFallbackModes:
    @pytest.mark.asyncio
    async def test_ai_generated_uses_oracle(self, oracle) -> None:
        resolver = FixtureResolver(_fixture(), oracle)

        value, source = await resolver.resolve(_input("companyField"), ScreenCategory.FORM)

        assert value == "ai@generated.io"
        assert isinstance(source, AIGenerated)
        oracle.generate_value.assert_awaited_once_with("companyField", ScreenCategory.FORM, ElementType.INPUT)

    @pytest.mark.asyncio
    async def test_oracle_failure_falls_back_to_semantic_default(self, oracle) -> None:
        oracle.generate_value.side_effect = RuntimeError("model offline")
        resolver = FixtureResolver(_fixture(), oracle)

        value, source = await resolver.resolve(_input("phoneField"))

        assert value == "555-0100"
        assert source == FixtureDefault(field_type="phone")

    @pytest.mark.asyncio
    async def test_no_fixture_no_oracle(self) -> None:
        value, source = await FixtureResolver().resolve(_input("fooBar"))

        assert value == "test input"
        assert source == Fallback()
        assert source.confidence == 0.4

    @pytest.mark.asyncio
    async def test_email_keyword_wins_without_fixture(self) -> None:
        value, _ = await FixtureResolver().resolve(_input("emailName"))

        assert value == "test@example.com"

    @pytest.mark.asyncio
    async def test_semantic_defaults_skip_oracle(self, oracle) -> None:
        resolver = FixtureResolver(_fixture(mode="semanticDefaults"), oracle)

        value, source = await resolver.resolve(_input("emailName"))

        assert value == "test@example.com"
        assert source == FixtureDefault(field_type="email")
        oracle.generate_value.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generic_mode(self) -> None:
        resolver = FixtureResolver(_fixture(mode="generic"))

        value, source = await resolver.resolve(_input("emailName"))

        assert value == "test@example.com"
        assert source == Fallback()

    @pytest.mark.asyncio
    async def test_strict_mode_raises(self) -> None:
        resolver = FixtureResolver(_fixture({"otherField": "x"}, mode="strict"))

        with pytest.raises(FixtureNoMatchError) as exc_info:
            await resolver.resolve(_input("emailField"))

        assert exc_info.value.element == "emailField"
        assert "fallback mode is strict" in str(exc_info.value)


class TestGenericFallback:
    @pytest.mark.parametrize(
        "identifier, expected",
        [
            ("emailName", "test@example.com"),
            ("passwordHint", "TestPassword123"),
            ("phone", "555-0100"),
            ("nickname", "Test User"),
            ("searchBox", "test query"),
            ("comment", "test input"),
        ],
    )
    def test_keyword_order(self, identifier, expected) -> None:
        assert generic_fallback(_input(identifier)) == expected

    def test_identifier_wins_over_label(self) -> None:
        assert generic_fallback(_input("userField", "Email")) == "test input"

    def test_label_used_without_identifier(self) -> None:
        assert generic_fallback(_input(label="Email")) == "test@example.com"

    @pytest.mark.asyncio
    async def test_generic_mode_ignores_label_when_id_present(self) -> None:
        resolver = FixtureResolver(_fixture(mode="generic"))

        value, source = await resolver.resolve(_input("userField", "Email"))

        assert value == "test input"
        assert source == Fallback()
