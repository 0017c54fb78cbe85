from typing import List, Optional, Union
from unittest.mock import AsyncMock

from app_explorer.decisions import ActionKind, AlternativeAction, Decision, SuccessProbability


class ScriptedOracle:
    """Oracle answering ``decide`` from a list (exceptions are raised)."""

    def __init__(self, decisions: List[Union[Decision, Exception]], value: str = "ai value") -> None:
        self.decide = AsyncMock(side_effect=list(decisions))
        self.convert_alternative = AsyncMock(side_effect=lambda alt, ctx: Decision.from_alternative(alt))
        self.generate_value = AsyncMock(return_value=value)


def tap(target: str, *alternatives: str, probability: float = 0.8) -> Decision:
    return Decision(
        action=ActionKind.TAP,
        target_element=target,
        reasoning=f"tap {target}",
        success_probability=SuccessProbability(probability),
        alternative_actions=tuple(AlternativeAction(ActionKind.TAP, a) for a in alternatives),
    )


def type_into(target: str, text: Optional[str] = None) -> Decision:
    return Decision(action=ActionKind.TYPE, target_element=target, text_to_type=text)


def done() -> Decision:
    return Decision(action=ActionKind.DONE, reasoning="nothing left")
