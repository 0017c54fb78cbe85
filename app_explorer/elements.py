from __future__ import annotations

"""Data structures describing what is on screen.

Two layers live here:

* the *raw* layer (``RawNode`` / ``RawTree``) that a UI driver reports in one
  snapshot call, with every property already captured, and
* the *compressed* layer (``Element`` / ``Hierarchy``) that the compressor
  derives from it and that every other component consumes.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ElementType(str, Enum):
    """Simplified element categories exposed to the oracle."""

    BUTTON = "button"
    TEXT = "text"
    INPUT = "input"
    IMAGE = "image"
    LINK = "link"
    TOGGLE = "toggle"
    SLIDER = "slider"
    PICKER = "picker"
    CELL = "cell"
    CONTAINER = "container"


class SemanticIntent(str, Enum):
    SUBMIT = "submit"
    CANCEL = "cancel"
    DESTRUCTIVE = "destructive"
    NAVIGATION = "navigation"
    NEUTRAL = "neutral"


class ScreenCategory(str, Enum):
    LOGIN = "login"
    SIGNUP = "signup"
    FORM = "form"
    SEARCH = "search"
    LIST = "list"
    SETTINGS = "settings"
    ERROR = "error"
    CONTENT = "content"


@dataclass(frozen=True)
class Frame:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in self.as_tuple())

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


# ---------------------------------------------------------------------------
# raw layer -----------------------------------------------------------------


@dataclass
class RawNode:
    """One node of a driver snapshot.

    ``kind`` is the driver's own element type name (``button``, ``textField``,
    ``staticText``, ``window`` ...); the categorizer maps it to an
    ``ElementType``.
    """

    kind: str
    identifier: str = ""
    label: str = ""
    value: Any = None
    enabled: bool = True
    frame: Frame = field(default_factory=Frame)
    children: List["RawNode"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawNode":
        raw_frame = data.get("frame") or {}
        if isinstance(raw_frame, (list, tuple)):
            frame = Frame(*[float(v) for v in raw_frame[:4]])
        else:
            frame = Frame(
                x=float(raw_frame.get("x", 0.0)),
                y=float(raw_frame.get("y", 0.0)),
                width=float(raw_frame.get("width", 0.0)),
                height=float(raw_frame.get("height", 0.0)),
            )
        return cls(
            kind=str(data.get("kind", "other")),
            identifier=str(data.get("identifier") or ""),
            label=str(data.get("label") or ""),
            value=data.get("value"),
            enabled=bool(data.get("enabled", True)),
            frame=frame,
            children=[cls.from_dict(c) for c in data.get("children", [])],
        )


@dataclass
class RawTree:
    root: RawNode
    keyboard_present: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawTree":
        return cls(
            root=RawNode.from_dict(data["root"]),
            keyboard_present=bool(data.get("keyboard_present", False)),
        )


# ---------------------------------------------------------------------------
# compressed layer ----------------------------------------------------------


@dataclass(frozen=True)
class Element:
    type: ElementType
    id: Optional[str] = None
    label: Optional[str] = None
    interactive: bool = False
    value: Optional[str] = None
    intent: Optional[SemanticIntent] = None
    priority: Optional[int] = None
    children: Tuple["Element", ...] = ()

    @property
    def key(self) -> str:
        """Composite ``type|id|label`` key used for de-duplication."""
        return element_key(self.type, self.id, self.label)

    @property
    def display_name(self) -> str:
        return self.id or self.label or self.type.value

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value, "interactive": self.interactive}
        if self.id is not None:
            data["id"] = self.id
        if self.label is not None:
            data["label"] = self.label
        if self.value is not None:
            data["value"] = self.value
        if self.intent is not None:
            data["intent"] = self.intent.value
        if self.priority is not None:
            data["priority"] = self.priority
        return data


def element_key(element_type: ElementType, identifier: Optional[str], label: Optional[str]) -> str:
    return f"{element_type.value}|{identifier or ''}|{label or ''}"


@dataclass(frozen=True)
class ElementQueries:
    """Alternative ways of finding an element again in the live UI."""

    primary: str
    alternatives: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ElementContext:
    """Detailed per-element data kept for the top elements of a capture."""

    raw_kind: str
    frame: Frame
    is_enabled: bool
    queries: ElementQueries
    traits: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw_kind": self.raw_kind,
            "frame": list(self.frame.as_tuple()),
            "is_enabled": self.is_enabled,
            "queries": {"primary": self.queries.primary, "alternatives": list(self.queries.alternatives)},
            "traits": list(self.traits),
        }


@dataclass(frozen=True)
class Hierarchy:
    """Compressed, bounded view of one screen at one point in time."""

    elements: Tuple[Element, ...] = ()
    screenshot: bytes = b""
    screen_category: Optional[ScreenCategory] = None
    element_contexts: Mapping[str, ElementContext] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "Hierarchy":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.elements

    @property
    def interactive_count(self) -> int:
        return sum(1 for e in self.elements if e.interactive)

    def find(self, target: Optional[str]) -> Optional[Element]:
        """Look an element up by identifier first, then by label."""
        if not target:
            return None
        for e in self.elements:
            if e.id == target:
                return e
        for e in self.elements:
            if e.label == target:
                return e
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elements": [e.to_dict() for e in self.elements],
            "screen_category": self.screen_category.value if self.screen_category else None,
        }
