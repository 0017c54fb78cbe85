from __future__ import annotations

"""Element compressor: raw UI tree -> small, priority-ordered ``Hierarchy``.

The raw tree is walked exactly once. Everything needed later (including the
detailed per-element context) is read from that single snapshot, which only
lives for the duration of one ``compress`` call.
"""

import logging
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Dict, List, Optional

from .config import CompressorConfig
from .elements import (
    Element,
    ElementContext,
    ElementQueries,
    ElementType,
    Hierarchy,
    RawNode,
    RawTree,
    ScreenCategory,
    SemanticIntent,
)
from .interfaces import UIDriver
from .semantic import ElementCategorizer, SemanticAnalyzer

logger = logging.getLogger(__name__)

_KEYBOARD_IDENTIFIERS = ("keyboard", "autocorrection", "prediction", "emoji")
_KEYBOARD_LABELS = frozenset({
    "return", "space", "shift", "delete", "next keyboard", "dictation",
    "emoji", "done", "go", "search", "send",
})

_TRAITS = {
    "button": "button",
    "textfield": "textField",
    "securetextfield": "textField",
    "searchfield": "textField",
    "statictext": "staticText",
    "image": "image",
    "link": "link",
}


class StructuralPriority(IntEnum):
    LOW = 25
    MEDIUM = 50
    HIGH = 75
    CRITICAL = 100


def structural_priority(element: Element) -> StructuralPriority:
    has_id = bool(element.id)
    has_label = bool(element.label)
    if element.interactive and has_id and has_label:
        return StructuralPriority.CRITICAL
    if element.interactive and (has_id or has_label):
        return StructuralPriority.HIGH
    if element.interactive or has_id:
        return StructuralPriority.MEDIUM
    return StructuralPriority.LOW


@dataclass
class _Candidate:
    element: Element
    node: RawNode
    structural: StructuralPriority
    semantic: int


class ElementCompressor:
    """Turns driver snapshots into ``Hierarchy`` objects."""

    def __init__(
        self,
        config: Optional[CompressorConfig] = None,
        categorizer: Optional[ElementCategorizer] = None,
        analyzer: Optional[SemanticAnalyzer] = None,
    ) -> None:
        self.config = config or CompressorConfig()
        self.categorizer = categorizer or ElementCategorizer()
        self.analyzer = analyzer or SemanticAnalyzer()

    # ------------------------------------------------------------------
    async def capture(self, driver: UIDriver) -> Hierarchy:
        """Snapshot the live UI and compress it.

        Returns an empty hierarchy when the app is gone or the snapshot fails;
        the exploration loop reads that as a crash signal.
        """
        try:
            if not await driver.is_app_alive():
                logger.warning("App is not running - returning empty hierarchy")
                return Hierarchy.empty()
            raw_tree = await driver.capture_raw_tree()
        except Exception as exc:
            logger.warning("Snapshot failed (%s) - returning empty hierarchy", exc)
            return Hierarchy.empty()

        try:
            screenshot = await driver.take_screenshot()
        except Exception as exc:
            logger.debug("Screenshot failed: %s", exc)
            screenshot = b""

        return self.compress(raw_tree, screenshot=screenshot)

    def compress(self, raw_tree: RawTree, screenshot: bytes = b"") -> Hierarchy:
        return compress(
            raw_tree,
            self.config,
            screenshot=screenshot,
            categorizer=self.categorizer,
            analyzer=self.analyzer,
        )


def compress(
    raw_tree: RawTree,
    config: Optional[CompressorConfig] = None,
    screenshot: bytes = b"",
    categorizer: Optional[ElementCategorizer] = None,
    analyzer: Optional[SemanticAnalyzer] = None,
) -> Hierarchy:
    """Pure compression of one raw snapshot."""
    config = config or CompressorConfig()
    categorizer = categorizer or ElementCategorizer()
    semantic = analyzer if config.use_semantic_analysis else None
    if config.use_semantic_analysis and semantic is None:
        semantic = SemanticAnalyzer()

    skip_keyboard = config.exclude_keyboard and raw_tree.keyboard_present
    candidates: List[_Candidate] = []
    seen: set[str] = set()

    # iterative pre-order walk; children pushed reversed to keep document order
    stack: List[RawNode] = [raw_tree.root]
    while stack:
        node = stack.pop()
        if categorizer.should_skip(node.kind):
            continue
        if skip_keyboard and is_keyboard_node(node):
            continue
        if not node.frame.is_finite():
            continue

        element = _make_element(node, categorizer, semantic)
        if _should_include(element) and element.key not in seen:
            seen.add(element.key)
            candidates.append(
                _Candidate(
                    element=element,
                    node=node,
                    structural=structural_priority(element),
                    semantic=element.priority or 0,
                )
            )
        stack.extend(reversed(node.children))

    candidates.sort(key=lambda c: (-c.semantic, -c.structural))
    top = candidates[: config.max_elements]
    if len(candidates) > len(top):
        logger.debug("Compressed %d elements down to %d", len(candidates), len(top))

    contexts: Dict[str, ElementContext] = {}
    if config.capture_element_context:
        for index, cand in enumerate(top):
            contexts[cand.element.key] = _element_context(cand, index)

    elements = tuple(c.element for c in top)
    category: Optional[ScreenCategory] = None
    if semantic is not None:
        category = semantic.detect_screen_category(elements)
        if category == ScreenCategory.CONTENT:
            category = None

    return Hierarchy(
        elements=elements,
        screenshot=screenshot,
        screen_category=category,
        element_contexts=contexts,
    )


# ---------------------------------------------------------------------------
# helpers -------------------------------------------------------------------


def is_keyboard_node(node: RawNode) -> bool:
    identifier = node.identifier.lower()
    if any(k in identifier for k in _KEYBOARD_IDENTIFIERS):
        return True
    label = node.label.lower()
    if len(label) == 1:
        return True
    return label in _KEYBOARD_LABELS


def _make_element(
    node: RawNode,
    categorizer: ElementCategorizer,
    analyzer: Optional[SemanticAnalyzer],
) -> Element:
    element_type, interactive = categorizer.categorize(node.kind)
    identifier = node.identifier or None
    label = node.label or None

    value: Optional[str] = None
    if interactive and node.value is not None and node.value != "":
        # bools before numbers: True is an int too
        if isinstance(node.value, bool):
            value = "1" if node.value else "0"
        else:
            value = str(node.value)

    element = Element(
        type=element_type,
        id=identifier,
        label=label,
        interactive=interactive,
        value=value,
    )
    if analyzer is None:
        return element

    intent = analyzer.detect_intent(label, identifier)
    element = replace(element, intent=None if intent == SemanticIntent.NEUTRAL else intent)
    return replace(element, priority=analyzer.calculate_semantic_priority(element))


def _should_include(element: Element) -> bool:
    if element.interactive:
        return True
    if element.type == ElementType.TEXT and element.label:
        return True
    if element.type == ElementType.IMAGE:
        return True
    return bool(element.id) or bool(element.label)


def _element_context(cand: _Candidate, index: int) -> ElementContext:
    element, node = cand.element, cand.node
    trait = _TRAITS.get(node.kind.lower())
    return ElementContext(
        raw_kind=node.kind,
        frame=node.frame,
        is_enabled=node.enabled,
        queries=build_queries(element, index),
        traits=(trait,) if trait else (),
    )


def build_queries(element: Element, index: int) -> ElementQueries:
    """Query strategies, most stable first: identifier, label, type + index."""
    strategies: List[str] = []
    if element.id:
        strategies.append(f'{element.type.value}[id="{element.id}"]')
    if element.label:
        strategies.append(f'{element.type.value}[label="{element.label}"]')
    strategies.append(f"{element.type.value}[{index}]")
    return ElementQueries(primary=strategies[0], alternatives=tuple(strategies[1:]))
