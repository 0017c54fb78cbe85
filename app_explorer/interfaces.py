from __future__ import annotations

"""Capability interfaces for the two external collaborators.

Anything with these coroutine methods can drive a session: a real browser,
a remote model, or the scripted fakes used by the test-suite.
"""

from typing import Optional, Protocol, runtime_checkable

from .decisions import AlternativeAction, Decision
from .elements import ElementType, Hierarchy, RawTree, ScreenCategory


@runtime_checkable
class UIDriver(Protocol):
    async def capture_raw_tree(self) -> RawTree:
        """Snapshot the whole element tree in one call; raise if unavailable."""
        ...

    async def execute(self, decision: Decision) -> bool:
        """Perform the action and wait for the UI to settle."""
        ...

    async def is_app_alive(self) -> bool:
        ...

    async def take_screenshot(self) -> bytes:
        """PNG bytes, or ``b""`` on failure."""
        ...


@runtime_checkable
class Oracle(Protocol):
    async def decide(self, hierarchy: Hierarchy, goal: str) -> Decision:
        ...

    async def convert_alternative(self, alternative: AlternativeAction, context: Hierarchy) -> Decision:
        ...

    async def generate_value(
        self,
        identifier: str,
        screen_category: Optional[ScreenCategory],
        element_type: ElementType,
    ) -> str:
        ...
