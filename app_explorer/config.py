from __future__ import annotations

"""Runtime configuration for the compressor and the exploration loop.

Values can be given programmatically or picked up from the environment
(``EXPLORER_*`` variables, optionally via a ``.env`` file).
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Hard budget on elements handed to the oracle per screen.
MAX_ELEMENTS = 50


@dataclass
class CompressorConfig:
    max_elements: int = MAX_ELEMENTS
    exclude_keyboard: bool = True
    use_semantic_analysis: bool = True
    capture_element_context: bool = True


@dataclass
class ExplorationConfig:
    """Knobs of a single exploration session."""

    steps: int = 20
    goal: str = "Explore the app systematically"
    enable_verification: bool = False
    max_retries: int = 2
    # seconds to let the UI settle before the verification capture
    settle_delay: float = 1.0
    screenshot_dir: Optional[str] = None
    fixture_path: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.2

    def __post_init__(self) -> None:
        if self.steps < 1:
            raise ValueError("steps must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @property
    def max_attempts(self) -> int:
        return 1 + self.max_retries if self.enable_verification else 1

    @classmethod
    def from_env(cls, **overrides) -> "ExplorationConfig":
        """Build a config from ``EXPLORER_*`` environment variables.

        Keyword overrides win over the environment.
        """
        load_dotenv()
        env = os.environ
        values = {
            "steps": int(env.get("EXPLORER_STEPS", cls.steps)),
            "goal": env.get("EXPLORER_GOAL", cls.goal),
            "enable_verification": _as_bool(env.get("EXPLORER_VERIFY"), cls.enable_verification),
            "max_retries": int(env.get("EXPLORER_MAX_RETRIES", cls.max_retries)),
            "settle_delay": float(env.get("EXPLORER_SETTLE_DELAY", cls.settle_delay)),
            "screenshot_dir": env.get("EXPLORER_SCREENSHOT_DIR") or None,
            "fixture_path": env.get("EXPLORER_FIXTURE") or None,
            "model": env.get("EXPLORER_MODEL", cls.model),
            "temperature": float(env.get("EXPLORER_TEMPERATURE", cls.temperature)),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _as_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}
