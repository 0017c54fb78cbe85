from __future__ import annotations

"""Declarative test data for form fields.

A ``Fixture`` maps ``FieldPattern`` keys to values plus per-``SemanticFieldType``
defaults. On disk it is a JSON document whose pattern keys use a small
prefix syntax::

    {
      "patterns": {
        "loginEmailField": "admin@test.com",
        "pattern:contains:password": "${TEST_PASSWORD}",
        "pattern:regex:card.*number": "4242424242424242",
        "semantic:phone": "555-0123",
        "screen:login|field:email": "specific@login.com"
      },
      "defaults": {"email": "default@example.com"},
      "fallbackMode": "semanticDefaults"
    }

``${VAR_NAME}`` placeholders are replaced from the environment when loading.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .elements import Element, ScreenCategory
from .errors import FixtureLoadError

logger = logging.getLogger(__name__)


class FallbackMode(str, Enum):
    AI_GENERATED = "aiGenerated"
    SEMANTIC_DEFAULTS = "semanticDefaults"
    GENERIC = "generic"
    STRICT = "strict"


class SemanticFieldType(str, Enum):
    EMAIL = "email"
    PASSWORD = "password"
    PHONE = "phone"
    URL = "url"
    CREDIT_CARD = "creditCard"
    ZIP_CODE = "zipCode"
    NAME = "name"
    ADDRESS = "address"
    CITY = "city"
    STATE = "state"
    COUNTRY = "country"
    USERNAME = "username"
    SEARCH = "search"
    DATE = "date"
    NUMBER = "number"

    def matches(self, element: Element) -> bool:
        """Substring heuristic over the element's id (label when there is no id)."""
        text = (element.id or element.label or "").lower()
        if self is SemanticFieldType.USERNAME:
            return "username" in text or ("user" in text and "name" in text)
        return any(word in text for word in _FIELD_WORDS[self])

    @property
    def default_value(self) -> str:
        return _FIELD_DEFAULTS[self]


_FIELD_WORDS: Dict[SemanticFieldType, Tuple[str, ...]] = {
    SemanticFieldType.EMAIL: ("email", "e-mail"),
    SemanticFieldType.PASSWORD: ("password", "pwd"),
    SemanticFieldType.PHONE: ("phone", "tel", "mobile"),
    SemanticFieldType.URL: ("url", "website", "link"),
    SemanticFieldType.CREDIT_CARD: ("card", "credit", "payment"),
    SemanticFieldType.ZIP_CODE: ("zip", "postal"),
    SemanticFieldType.NAME: ("name", "fullname"),
    SemanticFieldType.ADDRESS: ("address", "street"),
    SemanticFieldType.CITY: ("city", "town"),
    SemanticFieldType.STATE: ("state", "province"),
    SemanticFieldType.COUNTRY: ("country", "nation"),
    SemanticFieldType.SEARCH: ("search", "query"),
    SemanticFieldType.DATE: ("date", "birthday", "dob"),
    SemanticFieldType.NUMBER: ("number", "quantity", "amount"),
}

_FIELD_DEFAULTS: Dict[SemanticFieldType, str] = {
    SemanticFieldType.EMAIL: "test@example.com",
    SemanticFieldType.PASSWORD: "TestPassword123",
    SemanticFieldType.PHONE: "555-0100",
    SemanticFieldType.URL: "https://example.com",
    SemanticFieldType.CREDIT_CARD: "4242424242424242",
    SemanticFieldType.ZIP_CODE: "94103",
    SemanticFieldType.NAME: "Test User",
    SemanticFieldType.ADDRESS: "123 Main St",
    SemanticFieldType.CITY: "San Francisco",
    SemanticFieldType.STATE: "CA",
    SemanticFieldType.COUNTRY: "USA",
    SemanticFieldType.USERNAME: "testuser",
    SemanticFieldType.SEARCH: "test query",
    SemanticFieldType.DATE: "1990-01-15",
    SemanticFieldType.NUMBER: "42",
}


# ---------------------------------------------------------------------------
# field patterns ------------------------------------------------------------


def _contains_ci(needle: str, *haystacks: Optional[str]) -> bool:
    needle = needle.lower()
    return any(h is not None and needle in h.lower() for h in haystacks)


@dataclass(frozen=True)
class IdentifierPattern:
    identifier: str
    priority: ClassVar[int] = 90
    kind: ClassVar[str] = "identifier"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        return element.id == self.identifier

    @property
    def text(self) -> str:
        return self.identifier


@dataclass(frozen=True)
class ContainsPattern:
    substring: str
    priority: ClassVar[int] = 40
    kind: ClassVar[str] = "contains"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        return _contains_ci(self.substring, element.id, element.label)

    @property
    def text(self) -> str:
        return self.substring


@dataclass(frozen=True)
class RegexPattern:
    pattern: str
    priority: ClassVar[int] = 70
    kind: ClassVar[str] = "regex"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        try:
            regex = re.compile(self.pattern, re.IGNORECASE)
        except re.error:
            logger.debug("Ignoring invalid fixture regex %r", self.pattern)
            return False
        return any(s is not None and regex.search(s) for s in (element.id, element.label))

    @property
    def text(self) -> str:
        return self.pattern


@dataclass(frozen=True)
class PlaceholderPattern:
    placeholder: str
    priority: ClassVar[int] = 50
    kind: ClassVar[str] = "placeholder"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        # elements carry no separate placeholder text
        return element.label == self.placeholder or element.value == self.placeholder

    @property
    def text(self) -> str:
        return self.placeholder


@dataclass(frozen=True)
class LabelPattern:
    label: str
    priority: ClassVar[int] = 60
    kind: ClassVar[str] = "label"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        return element.label == self.label

    @property
    def text(self) -> str:
        return self.label


@dataclass(frozen=True)
class SemanticPattern:
    field_type: SemanticFieldType
    priority: ClassVar[int] = 80
    kind: ClassVar[str] = "semantic"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        return self.field_type.matches(element)

    @property
    def text(self) -> str:
        return self.field_type.value


@dataclass(frozen=True)
class ScreenContextPattern:
    screen: str
    field: str
    priority: ClassVar[int] = 100
    kind: ClassVar[str] = "screenContext"

    def matches(self, element: Element, screen: Optional[ScreenCategory] = None) -> bool:
        if screen is None or screen.value.lower() != self.screen.lower():
            return False
        return _contains_ci(self.field, element.id, element.label)

    @property
    def text(self) -> str:
        return f"{self.screen}/{self.field}"


FieldPattern = Union[
    IdentifierPattern,
    ContainsPattern,
    RegexPattern,
    PlaceholderPattern,
    LabelPattern,
    SemanticPattern,
    ScreenContextPattern,
]

GENERIC_PATTERN_TYPES = (ContainsPattern, RegexPattern, LabelPattern, PlaceholderPattern)

_PREFIXED = {
    "contains": ContainsPattern,
    "regex": RegexPattern,
    "placeholder": PlaceholderPattern,
    "label": LabelPattern,
}


def parse_pattern_key(key: str) -> Optional[FieldPattern]:
    """Inverse of ``format_pattern_key``; ``None`` for keys it cannot read."""
    if key.startswith("pattern:"):
        parts = key.split(":", 2)
        if len(parts) != 3 or parts[1] not in _PREFIXED:
            return None
        return _PREFIXED[parts[1]](parts[2])
    if key.startswith("semantic:"):
        try:
            return SemanticPattern(SemanticFieldType(key[len("semantic:"):]))
        except ValueError:
            return None
    if key.startswith("screen:"):
        parts = key.split("|")
        if len(parts) != 2 or not parts[1].startswith("field:"):
            return None
        return ScreenContextPattern(screen=parts[0][len("screen:"):], field=parts[1][len("field:"):])
    return IdentifierPattern(key)


def format_pattern_key(pattern: FieldPattern) -> str:
    if isinstance(pattern, IdentifierPattern):
        return pattern.identifier
    if isinstance(pattern, SemanticPattern):
        return f"semantic:{pattern.field_type.value}"
    if isinstance(pattern, ScreenContextPattern):
        return f"screen:{pattern.screen}|field:{pattern.field}"
    return f"pattern:{pattern.kind}:{pattern.text}"


# ---------------------------------------------------------------------------
# value provenance ----------------------------------------------------------


@dataclass(frozen=True)
class FixtureExact:
    pattern: str
    confidence: ClassVar[float] = 1.0
    label: ClassVar[str] = "Fixture (exact)"

    @property
    def description(self) -> str:
        return f"fixture (exact: {self.pattern})"


@dataclass(frozen=True)
class FixturePattern:
    pattern_type: str
    pattern: str
    confidence: ClassVar[float] = 0.9
    label: ClassVar[str] = "Fixture (pattern)"

    @property
    def description(self) -> str:
        return f"fixture ({self.pattern_type}: {self.pattern})"


@dataclass(frozen=True)
class FixtureContext:
    screen: str
    field: str
    confidence: ClassVar[float] = 0.9
    label: ClassVar[str] = "Fixture (context)"

    @property
    def description(self) -> str:
        return f"fixture (context: {self.screen}/{self.field})"


@dataclass(frozen=True)
class FixtureSemantic:
    field_type: str
    confidence: ClassVar[float] = 0.8
    label: ClassVar[str] = "Fixture (semantic)"

    @property
    def description(self) -> str:
        return f"fixture (semantic: {self.field_type})"


@dataclass(frozen=True)
class FixtureDefault:
    field_type: str
    confidence: ClassVar[float] = 0.7
    label: ClassVar[str] = "Fixture (default)"

    @property
    def description(self) -> str:
        return f"fixture (default: {self.field_type})"


@dataclass(frozen=True)
class EnvironmentVariable:
    key: str
    confidence: ClassVar[float] = 1.0
    label: ClassVar[str] = "Environment"

    @property
    def description(self) -> str:
        return f"environment (${self.key})"


@dataclass(frozen=True)
class AIGenerated:
    context: str
    confidence: ClassVar[float] = 0.6
    label: ClassVar[str] = "AI"

    @property
    def description(self) -> str:
        return f"AI generated ({self.context})"


@dataclass(frozen=True)
class Fallback:
    confidence: ClassVar[float] = 0.4
    label: ClassVar[str] = "Fallback"

    @property
    def description(self) -> str:
        return "fallback"


ValueSource = Union[
    FixtureExact,
    FixturePattern,
    FixtureContext,
    FixtureSemantic,
    FixtureDefault,
    EnvironmentVariable,
    AIGenerated,
    Fallback,
]


def value_source_to_dict(source: ValueSource) -> Dict[str, Any]:
    data: Dict[str, Any] = {"type": type(source).__name__}
    data.update(source.__dict__)
    data["confidence"] = source.confidence
    data["description"] = source.description
    return data


# ---------------------------------------------------------------------------
# fixture -------------------------------------------------------------------

_ENV_VAR = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env(value: str, environ: Optional[Dict[str, str]] = None) -> str:
    """Replace ``${VAR}`` with its environment value; unknown names stay verbatim."""
    env = os.environ if environ is None else environ

    def _sub(match: "re.Match[str]") -> str:
        return env.get(match.group(1), match.group(0))

    return _ENV_VAR.sub(_sub, value)


@dataclass
class Fixture:
    patterns: Dict[FieldPattern, str] = field(default_factory=dict)
    defaults: Dict[SemanticFieldType, str] = field(default_factory=dict)
    fallback_mode: FallbackMode = FallbackMode.AI_GENERATED
    name: Optional[str] = None
    description: Optional[str] = None
    version: str = "1.0"

    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> "Fixture":
        if not isinstance(data, dict):
            raise FixtureLoadError("fixture document must be a JSON object")

        patterns: Dict[FieldPattern, str] = {}
        for key, value in (data.get("patterns") or {}).items():
            pattern = parse_pattern_key(str(key))
            if pattern is None:
                logger.warning("Skipping unreadable fixture pattern key %r", key)
                continue
            patterns[pattern] = substitute_env(str(value), environ)

        defaults: Dict[SemanticFieldType, str] = {}
        for key, value in (data.get("defaults") or {}).items():
            try:
                defaults[SemanticFieldType(key)] = substitute_env(str(value), environ)
            except ValueError:
                logger.warning("Skipping unknown semantic field type %r in fixture defaults", key)

        try:
            mode = FallbackMode(data.get("fallbackMode", FallbackMode.AI_GENERATED.value))
        except ValueError as exc:
            raise FixtureLoadError(f"invalid fallbackMode: {data.get('fallbackMode')!r}") from exc

        return cls(
            patterns=patterns,
            defaults=defaults,
            fallback_mode=mode,
            name=data.get("name"),
            description=data.get("description"),
            version=str(data.get("version", "1.0")),
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Fixture":
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise FixtureLoadError(f"cannot load fixture {path}: {exc}") from exc
        fixture = cls.from_dict(data)
        logger.info("Loaded fixture %s (%d patterns, %d defaults)",
                    fixture.name or path, len(fixture.patterns), len(fixture.defaults))
        return fixture

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.version,
            "patterns": {format_pattern_key(p): v for p, v in self.patterns.items()},
            "defaults": {t.value: v for t, v in self.defaults.items()},
            "fallbackMode": self.fallback_mode.value,
        }
        if self.name is not None:
            data["name"] = self.name
        if self.description is not None:
            data["description"] = self.description
        return data

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2, sort_keys=True)
