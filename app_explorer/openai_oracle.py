from __future__ import annotations

"""OpenAI-backed decision oracle.

The model never invents element names: every screen is turned into a numbered
list of concrete choices and the model only answers with choice numbers.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

from .decisions import ActionKind, AlternativeAction, Decision, SuccessProbability
from .elements import ElementType, Hierarchy, ScreenCategory
from .errors import InvalidDecisionError, OracleError

load_dotenv()

logger = logging.getLogger(__name__)

# how many runner-up choices are kept as retry alternatives
MAX_ALTERNATIVES = 3


@dataclass(frozen=True)
class ActionChoice:
    number: int
    action: ActionKind
    target_element: Optional[str]
    description: str
    priority: int = 0
    intent: Optional[str] = None

    def format_for_prompt(self) -> str:
        hints = [self.intent] if self.intent else []
        hints.append(f"priority: {self.priority}")
        return f"{self.number}. {self.description} [{', '.join(hints)}]"


def build_choices(hierarchy: Hierarchy) -> List[ActionChoice]:
    """Numbered, priority-ordered list of everything the model may pick."""
    choices: List[ActionChoice] = []
    for element in hierarchy.elements:
        if not element.interactive:
            continue
        target = element.id or element.label
        if not target:
            continue
        if element.type == ElementType.INPUT:
            action, verb = ActionKind.TYPE, "Type into"
        else:
            action, verb = ActionKind.TAP, "Tap"
        choices.append(
            ActionChoice(
                number=len(choices) + 1,
                action=action,
                target_element=target,
                description=f"{verb} {element.type.value} '{target}'",
                priority=element.priority or 0,
                intent=element.intent.value if element.intent else None,
            )
        )
    choices.append(ActionChoice(len(choices) + 1, ActionKind.SWIPE, None, "Swipe to reveal more content", 10))
    choices.append(ActionChoice(len(choices) + 1, ActionKind.DONE, None, "Stop exploring (goal reached or nothing left)", 0))
    return choices


def build_prompt(hierarchy: Hierarchy, goal: str, choices: List[ActionChoice]) -> str:
    category = hierarchy.screen_category.value if hierarchy.screen_category else "unknown"
    visible = [e.label for e in hierarchy.elements if not e.interactive and e.label][:15]
    return (
        "You are exploring a user interface to discover as many screens as possible.\n"
        f"Goal: {goal}\n"
        f"Screen type: {category}\n"
        f"Visible text: {visible}\n\n"
        "Available actions:\n"
        + "\n".join(c.format_for_prompt() for c in choices)
        + "\n\nYou should respond in JSON with the following keys:\n"
        "{\n  \"choice\": <number of the action to perform>,\n"
        "  \"reasoning\": <1-2 sentences>,\n"
        "  \"confidence\": <0-100, how likely the action succeeds>,\n"
        "  \"alternatives\": [<up to 3 other choice numbers, best first>]\n}\n"
    )


def parse_choice(content: str, choices: List[ActionChoice], prompt: str = "") -> Decision:
    """Turn the model's JSON answer into a ``Decision``."""
    json_str = re.sub(r"```[a-zA-Z]*", "", content).strip("` \n")
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError as exc:
        raise InvalidDecisionError(f"model answer is not JSON: {content[:200]!r}") from exc
    if not isinstance(parsed, dict):
        raise InvalidDecisionError("model answer is not a JSON object")

    by_number: Dict[int, ActionChoice] = {c.number: c for c in choices}
    try:
        chosen = by_number[int(parsed.get("choice"))]
    except (TypeError, ValueError, KeyError) as exc:
        raise InvalidDecisionError(f"invalid choice {parsed.get('choice')!r}") from exc

    try:
        confidence = float(parsed.get("confidence", 50))
    except (TypeError, ValueError):
        confidence = 50.0
    confidence = min(100.0, max(0.0, confidence))

    alternatives: List[AlternativeAction] = []
    for raw in parsed.get("alternatives") or []:
        try:
            alt = by_number[int(raw)]
        except (TypeError, ValueError, KeyError):
            continue
        if alt.number == chosen.number or alt.action == ActionKind.DONE:
            continue
        alternatives.append(AlternativeAction(alt.action, alt.target_element, reasoning=alt.description))
        if len(alternatives) >= MAX_ALTERNATIVES:
            break

    reasoning = str(parsed.get("reasoning", ""))
    return Decision(
        action=chosen.action,
        target_element=chosen.target_element,
        reasoning=reasoning,
        success_probability=SuccessProbability(confidence / 100, reasoning),
        alternative_actions=tuple(alternatives),
        prompt=prompt,
        raw_response=content,
    )


class OpenAIOracle:
    """Multiple-choice decision making with an OpenAI chat model."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._client = client or AsyncOpenAI()
        self.token_usage: int = 0

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:
            raise OracleError(f"OpenAI request failed: {exc}") from exc
        self.token_usage += resp.usage.total_tokens if resp and resp.usage else 0
        return (resp.choices[0].message.content or "").strip()

    # ------------------------------------------------------------------
    async def decide(self, hierarchy: Hierarchy, goal: str) -> Decision:
        choices = build_choices(hierarchy)
        prompt = build_prompt(hierarchy, goal, choices)
        content = await self._complete(prompt, max_tokens=256)
        logger.debug("Model answer: %s", content[:500])
        return parse_choice(content, choices, prompt)

    async def convert_alternative(self, alternative: AlternativeAction, context: Hierarchy) -> Decision:
        # no round-trip: the alternative already names a concrete choice
        present = alternative.target_element is None or context.find(alternative.target_element) is not None
        probability = SuccessProbability(
            0.5 if present else 0.2,
            "alternative target visible" if present else "alternative target not on current screen",
        )
        return Decision.from_alternative(alternative, probability)

    async def generate_value(
        self,
        identifier: str,
        screen_category: Optional[ScreenCategory],
        element_type: ElementType,
    ) -> str:
        screen = screen_category.value if screen_category else "unknown"
        prompt = (
            f"Now suppose you are filling a {element_type.value} field named '{identifier}' "
            f"on a {screen} screen of an app under test.\n"
            "Generate one short, realistic test value that fits any semantic clue in the name "
            "(e.g. email / phone).\n\n"
            "Please respond in the following format (JSON):\n"
            "{\"value\": \"<generated input>\"}"
        )
        content = await self._complete(prompt, max_tokens=32)
        json_str = re.sub(r"```[a-zA-Z]*", "", content).strip("` \n")
        try:
            parsed: Any = json.loads(json_str)
        except json.JSONDecodeError:
            parsed = json_str.strip('"')
        value = parsed.get("value") if isinstance(parsed, dict) else parsed
        if not isinstance(value, str) or not value.strip():
            raise InvalidDecisionError(f"model produced no value for '{identifier}'")
        return value.strip()
