from __future__ import annotations

"""What the oracle hands back at every step."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ActionKind(str, Enum):
    TAP = "tap"
    TYPE = "type"
    SWIPE = "swipe"
    DONE = "done"


class ConfidenceLevel(str, Enum):
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @classmethod
    def from_probability(cls, value: float) -> "ConfidenceLevel":
        if value < 0.2:
            return cls.VERY_LOW
        if value < 0.4:
            return cls.LOW
        if value < 0.6:
            return cls.MEDIUM
        if value < 0.8:
            return cls.HIGH
        return cls.VERY_HIGH


@dataclass(frozen=True)
class SuccessProbability:
    value: float
    reasoning: str = ""

    def __post_init__(self) -> None:
        if not 0.0 <= self.value <= 1.0:
            raise ValueError(f"success probability must be within [0, 1], got {self.value}")

    @property
    def level(self) -> ConfidenceLevel:
        return ConfidenceLevel.from_probability(self.value)


@dataclass(frozen=True)
class AlternativeAction:
    """A lower-ranked option the oracle would have picked next."""

    action: ActionKind
    target_element: Optional[str] = None
    text_to_type: Optional[str] = None
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "target_element": self.target_element,
            "text_to_type": self.text_to_type,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class Decision:
    action: ActionKind
    target_element: Optional[str] = None
    text_to_type: Optional[str] = None
    reasoning: str = ""
    success_probability: SuccessProbability = field(default_factory=lambda: SuccessProbability(0.5))
    alternative_actions: Tuple[AlternativeAction, ...] = ()
    # raw exchange with the oracle, kept for observability
    prompt: str = ""
    raw_response: str = ""

    @property
    def confidence(self) -> int:
        """Success probability as an integer percentage."""
        return int(round(self.success_probability.value * 100))

    @property
    def action_label(self) -> str:
        """Edge label used in the navigation graph (``tap:loginButton``)."""
        if self.target_element:
            return f"{self.action.value}:{self.target_element}"
        return self.action.value

    @classmethod
    def from_alternative(
        cls,
        alternative: AlternativeAction,
        success_probability: Optional[SuccessProbability] = None,
    ) -> "Decision":
        return cls(
            action=alternative.action,
            target_element=alternative.target_element,
            text_to_type=alternative.text_to_type,
            reasoning=alternative.reasoning or "Alternative action after failed verification",
            success_probability=success_probability or SuccessProbability(0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "target_element": self.target_element,
            "text_to_type": self.text_to_type,
            "reasoning": self.reasoning,
            "success_probability": self.success_probability.value,
            "success_reasoning": self.success_probability.reasoning,
            "confidence": self.confidence,
            "confidence_level": self.success_probability.level.value,
            "alternative_actions": [a.to_dict() for a in self.alternative_actions],
        }
