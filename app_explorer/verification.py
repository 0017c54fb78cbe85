from __future__ import annotations

"""Post-action verification: did the action visibly do something?"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Tuple

from .decisions import ActionKind, Decision
from .elements import Hierarchy
from .fingerprint import screen_fingerprint


@dataclass(frozen=True)
class VerificationResult:
    passed: bool
    reason: str
    screen_changed: bool
    expected_element_found: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "reason": self.reason,
            "screen_changed": self.screen_changed,
            "expected_element_found": self.expected_element_found,
        }


def _element_state(hierarchy: Hierarchy) -> Set[Tuple[str, Optional[str]]]:
    return {(e.key, e.value) for e in hierarchy.elements}


def screen_changed(before: Hierarchy, after: Hierarchy) -> bool:
    if screen_fingerprint(before) != screen_fingerprint(after):
        return True
    return _element_state(before) != _element_state(after)


def verify(decision: Decision, before: Hierarchy, after: Hierarchy) -> VerificationResult:
    """Compare the hierarchies captured around ``decision``."""
    changed = screen_changed(before, after)
    target = decision.target_element

    if decision.action == ActionKind.TYPE:
        element = after.find(target)
        if element is None:
            return VerificationResult(
                passed=False,
                reason=f"Input field '{target}' not found after typing",
                screen_changed=changed,
                expected_element_found=False,
            )
        previous = before.find(target)
        text = decision.text_to_type or ""
        value = element.value or ""
        if (text and text in value) or (previous is not None and previous.value != element.value):
            return VerificationResult(True, f"Field '{target}' now holds the typed value", changed, True)
        return VerificationResult(False, f"Field '{target}' value did not change", changed, True)

    if decision.action == ActionKind.TAP:
        if changed:
            return VerificationResult(True, "Screen changed after tap", True)
        before_el, after_el = before.find(target), after.find(target)
        if before_el is not None and after_el is not None and before_el.value != after_el.value:
            return VerificationResult(True, f"Value of '{target}' changed after tap", False, True)
        return VerificationResult(False, "No visible change after tap", False)

    if decision.action == ActionKind.SWIPE:
        if changed:
            return VerificationResult(True, "Content moved after swipe", True)
        return VerificationResult(False, "No visible change after swipe", False)

    return VerificationResult(True, "Nothing to verify", changed)
