from __future__ import annotations

"""Turns an input element into a concrete value to type.

Resolution walks a fixed cascade and stops at the first hit:

1. screen-context patterns       4. semantic patterns
2. exact identifier              5. fixture type defaults
3. contains / regex / label /    6. oracle (``aiGenerated`` only)
   placeholder patterns          7. generic keyword table

The first five levels are pure lookups on the loaded ``Fixture``; only the
oracle level suspends.
"""

import logging
from typing import List, Optional, Tuple

from .elements import Element, ScreenCategory
from .errors import FixtureNoMatchError
from .fixtures import (
    GENERIC_PATTERN_TYPES,
    AIGenerated,
    Fallback,
    FallbackMode,
    FieldPattern,
    Fixture,
    FixtureContext,
    FixtureDefault,
    FixtureExact,
    FixturePattern,
    FixtureSemantic,
    IdentifierPattern,
    ScreenContextPattern,
    SemanticFieldType,
    SemanticPattern,
    ValueSource,
)
from .interfaces import Oracle

logger = logging.getLogger(__name__)

_GENERIC_TABLE: Tuple[Tuple[str, str], ...] = (
    ("email", "test@example.com"),
    ("password", "TestPassword123"),
    ("phone", "555-0100"),
    ("name", "Test User"),
    ("search", "test query"),
)
_GENERIC_DEFAULT = "test input"


def generic_fallback(element: Element) -> str:
    """Last resort keyword table over the id, or the label when there is no id."""
    text = (element.id or element.label or "").lower()
    for keyword, value in _GENERIC_TABLE:
        if keyword in text:
            return value
    return _GENERIC_DEFAULT


class FixtureResolver:
    def __init__(self, fixture: Optional[Fixture] = None, oracle: Optional[Oracle] = None) -> None:
        self.fixture = fixture
        self.oracle = oracle
        # priority-descending, stable over insertion order
        self._patterns: List[Tuple[FieldPattern, str]] = []
        if fixture is not None:
            self._patterns = sorted(fixture.patterns.items(), key=lambda kv: -kv[0].priority)

    @property
    def fallback_mode(self) -> FallbackMode:
        return self.fixture.fallback_mode if self.fixture else FallbackMode.AI_GENERATED

    # ------------------------------------------------------------------
    async def resolve(
        self,
        element: Element,
        screen_category: Optional[ScreenCategory] = None,
    ) -> Tuple[str, ValueSource]:
        hit = self._match_fixture(element, screen_category)
        if hit is None:
            hit = await self._fallback(element, screen_category)
        value, source = hit
        logger.debug("Resolved value for %s via %s", element.display_name, source.description)
        return value, source

    # ------------------------------------------------------------------
    def _match_fixture(
        self,
        element: Element,
        screen: Optional[ScreenCategory],
    ) -> Optional[Tuple[str, ValueSource]]:
        if self.fixture is None:
            return None

        for pattern, value in self._patterns:
            if isinstance(pattern, ScreenContextPattern) and pattern.matches(element, screen):
                return value, FixtureContext(screen=pattern.screen, field=pattern.field)

        for pattern, value in self._patterns:
            if isinstance(pattern, IdentifierPattern) and pattern.matches(element):
                return value, FixtureExact(pattern=pattern.identifier)

        for pattern, value in self._patterns:
            if isinstance(pattern, GENERIC_PATTERN_TYPES) and pattern.matches(element):
                return value, FixturePattern(pattern_type=pattern.kind, pattern=pattern.text)

        for pattern, value in self._patterns:
            if isinstance(pattern, SemanticPattern) and pattern.matches(element):
                return value, FixtureSemantic(field_type=pattern.field_type.value)

        for field_type, value in self.fixture.defaults.items():
            if field_type.matches(element):
                return value, FixtureDefault(field_type=field_type.value)

        return None

    async def _fallback(
        self,
        element: Element,
        screen: Optional[ScreenCategory],
    ) -> Tuple[str, ValueSource]:
        mode = self.fallback_mode

        if mode is FallbackMode.STRICT:
            raise FixtureNoMatchError(element.display_name)

        if mode is FallbackMode.AI_GENERATED and self.oracle is not None:
            identifier = element.id or element.label or "unknown"
            try:
                value = await self.oracle.generate_value(identifier, screen, element.type)
            except Exception as exc:
                logger.warning("Oracle value generation failed for %s: %s", identifier, exc)
            else:
                return value, AIGenerated(context=f"{identifier} on {screen.value if screen else 'unknown'} screen")

        if mode in (FallbackMode.AI_GENERATED, FallbackMode.SEMANTIC_DEFAULTS):
            for field_type in SemanticFieldType:
                if field_type.matches(element):
                    return field_type.default_value, FixtureDefault(field_type=field_type.value)

        return generic_fallback(element), Fallback()
