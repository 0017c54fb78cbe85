from __future__ import annotations

"""Rule-based element categorisation and intent / screen-type detection.

Both classes are pluggable: the compressor only calls the public methods, so
a smarter analyzer (e.g. one backed by a model) can be swapped in.
"""

import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .elements import Element, ElementType, ScreenCategory, SemanticIntent

# driver kind -> (simplified type, interactive)
_KIND_MAP: Dict[str, Tuple[ElementType, bool]] = {
    "button": (ElementType.BUTTON, True),
    "link": (ElementType.LINK, True),
    "textfield": (ElementType.INPUT, True),
    "securetextfield": (ElementType.INPUT, True),
    "searchfield": (ElementType.INPUT, True),
    "textview": (ElementType.INPUT, True),
    "switch": (ElementType.TOGGLE, True),
    "checkbox": (ElementType.TOGGLE, True),
    "toggle": (ElementType.TOGGLE, True),
    "slider": (ElementType.SLIDER, True),
    "picker": (ElementType.PICKER, True),
    "pickerwheel": (ElementType.PICKER, True),
    "segmentedcontrol": (ElementType.PICKER, True),
    "cell": (ElementType.CELL, True),
    "tab": (ElementType.BUTTON, True),
    "menuitem": (ElementType.BUTTON, True),
    "statictext": (ElementType.TEXT, False),
    "text": (ElementType.TEXT, False),
    "image": (ElementType.IMAGE, False),
    "icon": (ElementType.IMAGE, False),
}

# system chrome that never belongs to the app under test
_SKIPPED_KINDS = frozenset({"statusbar", "menubar", "menubaritem", "scrollindicator", "systemalert"})


class ElementCategorizer:
    """Maps a driver's element kind onto the simplified ``ElementType`` set."""

    def categorize(self, kind: str) -> Tuple[ElementType, bool]:
        return _KIND_MAP.get(kind.lower(), (ElementType.CONTAINER, False))

    def should_skip(self, kind: str) -> bool:
        return kind.lower() in _SKIPPED_KINDS


_INTENT_WORDS: Sequence[Tuple[SemanticIntent, Tuple[str, ...]]] = (
    (SemanticIntent.DESTRUCTIVE, ("delete", "remove", "logout", "log out", "sign out", "erase", "reset")),
    (SemanticIntent.CANCEL, ("cancel", "close", "dismiss", "skip", "not now", "no thanks")),
    (SemanticIntent.SUBMIT, ("submit", "login", "log in", "sign in", "signin", "sign up", "signup",
                             "register", "continue", "save", "confirm", "send", "next", "done", "ok",
                             "checkout", "buy", "pay")),
    (SemanticIntent.NAVIGATION, ("back", "menu", "home", "tab", "settings", "profile", "more", "nav")),
)

_INTENT_BONUS = {
    SemanticIntent.SUBMIT: 100,
    SemanticIntent.NAVIGATION: 60,
    SemanticIntent.CANCEL: 30,
    SemanticIntent.DESTRUCTIVE: 10,
    SemanticIntent.NEUTRAL: 0,
}


def _words(text: str) -> str:
    # camelCase / snake_case identifiers -> space separated lower-case words
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text)
    return " " + re.sub(r"[^a-z0-9]+", " ", text.lower()).strip() + " "


class SemanticAnalyzer:
    """Heuristic intent, priority and screen-type detection."""

    def detect_intent(self, label: Optional[str], identifier: Optional[str]) -> SemanticIntent:
        haystack = _words(" ".join(p for p in (label, identifier) if p))
        for intent, words in _INTENT_WORDS:
            if any(f" {w} " in haystack for w in words):
                return intent
        return SemanticIntent.NEUTRAL

    def calculate_semantic_priority(self, element: Element) -> int:
        """Score in roughly 0..230; higher means more worth showing the oracle."""
        score = 0
        if element.interactive:
            score += 50
        if element.type == ElementType.INPUT:
            score += 80
        intent = element.intent or self.detect_intent(element.label, element.id)
        score += _INTENT_BONUS[intent]
        if element.type in (ElementType.TEXT, ElementType.IMAGE) and not element.interactive:
            score = min(score, 20)
        return score

    def detect_screen_category(self, elements: Iterable[Element]) -> ScreenCategory:
        elements = list(elements)
        inputs = [e for e in elements if e.type == ElementType.INPUT]
        text = _words(" ".join(f"{e.id or ''} {e.label or ''}" for e in elements))

        has_password = any(
            "password" in _words(f"{e.id or ''} {e.label or ''}") for e in inputs
        )
        if has_password:
            if any(w in text for w in (" sign up ", " signup ", " register ", " create account ")):
                return ScreenCategory.SIGNUP
            return ScreenCategory.LOGIN
        if any(" search " in _words(f"{e.id or ''} {e.label or ''}") for e in inputs):
            return ScreenCategory.SEARCH
        if len(inputs) >= 2:
            return ScreenCategory.FORM
        if any(w in text for w in (" error ", " failed ", " try again ")):
            return ScreenCategory.ERROR
        if sum(1 for e in elements if e.type == ElementType.TOGGLE) >= 2 or " settings " in text:
            return ScreenCategory.SETTINGS
        if sum(1 for e in elements if e.type == ElementType.CELL) >= 3:
            return ScreenCategory.LIST
        return ScreenCategory.CONTENT
