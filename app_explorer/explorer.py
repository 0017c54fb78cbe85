from __future__ import annotations

"""The exploration loop: capture -> decide -> act -> (verify -> retry) -> record."""

import asyncio
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .compressor import ElementCompressor
from .config import ExplorationConfig
from .decisions import ActionKind, Decision
from .elements import Element, ElementType, Hierarchy, ScreenCategory
from .errors import FixtureNoMatchError, OracleError
from .fingerprint import screen_fingerprint
from .fixture_resolver import FixtureResolver
from .fixtures import Fixture, ValueSource, value_source_to_dict
from .interfaces import Oracle, UIDriver
from .navigation import NavigationGraph
from .summary import (
    CoverageStats,
    Insights,
    SessionMetrics,
    SessionStatus,
    build_insights,
    coverage_stats,
    health_score,
    session_status,
)
from .verification import VerificationResult, verify

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionOutcome(str, Enum):
    DONE = "done"
    CRASHED = "crashed"
    BUDGET_EXHAUSTED = "budget_exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    """One exploration step as finally accepted (after any retries)."""

    sequence_number: int
    decision: Decision
    was_successful: bool
    did_cause_crash: bool = False
    was_retry: bool = False
    verification: Optional[VerificationResult] = None
    screenshot_ref: Optional[str] = None
    timestamp: datetime = field(default_factory=_now)
    screen_category: Optional[ScreenCategory] = None
    interactive_element_count: int = 0
    value_source: Optional[ValueSource] = None
    failure_reason: Optional[str] = None
    attempts: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "decision": self.decision.to_dict(),
            "ai_prompt": self.decision.prompt or None,
            "ai_response": self.decision.raw_response or None,
            "was_successful": self.was_successful,
            "did_cause_crash": self.did_cause_crash,
            "was_retry": self.was_retry,
            "verification": self.verification.to_dict() if self.verification else None,
            "screenshot_ref": self.screenshot_ref,
            "timestamp": self.timestamp.isoformat(),
            "screen_category": self.screen_category.value if self.screen_category else None,
            "interactive_element_count": self.interactive_element_count,
            "value_source": value_source_to_dict(self.value_source) if self.value_source else None,
            "failure_reason": self.failure_reason,
            "attempts": self.attempts,
        }


class StepLog:
    """1-based sequence of steps; only the last one may be amended."""

    def __init__(self) -> None:
        self._steps: List[Step] = []

    def append(self, decision: Decision, was_successful: bool, **fields: Any) -> Step:
        step = Step(
            sequence_number=len(self._steps) + 1,
            decision=decision,
            was_successful=was_successful,
            **fields,
        )
        self._steps.append(step)
        return step

    def mark_crash(self) -> Optional[Step]:
        """Blame the last step for a crash noticed only at the next capture."""
        if not self._steps:
            return None
        self._steps[-1] = replace(
            self._steps[-1], was_successful=False, did_cause_crash=True, failure_reason="App crashed"
        )
        return self._steps[-1]

    @property
    def steps(self) -> Tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def last(self) -> Optional[Step]:
        return self._steps[-1] if self._steps else None

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)


@dataclass
class ExplorationResult:
    outcome: SessionOutcome
    steps: List[Step]
    graph: NavigationGraph
    metrics: SessionMetrics
    coverage: CoverageStats
    insights: Insights
    started_at: datetime
    finished_at: datetime
    error: Optional[str] = None
    config: Optional[ExplorationConfig] = None

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def health_score(self) -> float:
        return health_score(self.metrics, self.coverage.screens_discovered)

    @property
    def status(self) -> SessionStatus:
        return session_status(self.metrics)

    def to_dict(self) -> Dict[str, Any]:
        """Plain, ``json.dumps``-compatible export of the whole session."""
        metrics = self.metrics.to_dict()
        metrics["health_score"] = self.health_score
        return {
            "outcome": self.outcome.value,
            "status": self.status.value,
            "error": self.error,
            "configuration": asdict(self.config) if self.config else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_seconds": round(self.duration, 3),
            "steps": [s.to_dict() for s in self.steps],
            "navigation_graph": self.graph.to_dict(),
            "coverage": asdict(self.coverage),
            "metrics": metrics,
            "insights": asdict(self.insights),
        }


@dataclass
class _StepRun:
    """What ``_run_step`` hands back to the loop."""

    step: Step
    executed: Optional[Decision] = None
    end: Optional[SessionOutcome] = None
    error: Optional[str] = None


class ExplorationAgent:
    """Drives one exploration session against a UI through a driver and an oracle."""

    def __init__(
        self,
        driver: UIDriver,
        oracle: Oracle,
        config: Optional[ExplorationConfig] = None,
        fixture: Optional[Fixture] = None,
        compressor: Optional[ElementCompressor] = None,
    ) -> None:
        self.driver = driver
        self.oracle = oracle
        self.config = config or ExplorationConfig()
        self.compressor = compressor or ElementCompressor()
        self.resolver = FixtureResolver(fixture, oracle)
        self._reset()

    def _reset(self) -> None:
        """Fresh graph, log and counters; every ``explore`` call is its own session."""
        self.graph = NavigationGraph()
        self.log = StepLog()
        self._verifications_performed = 0
        self._verifications_passed = 0
        self._verifications_failed = 0
        self._retry_attempts = 0

    # ------------------------------------------------------------------
    async def explore(self) -> ExplorationResult:
        """Run up to ``config.steps`` steps and return what happened.

        Raises only before anything was recorded: when the very first decision
        cannot be obtained, or when a strict fixture has no value for the
        first step's field. Later failures end the session as FAILED.
        """
        self._reset()
        started = _now()
        outcome = SessionOutcome.BUDGET_EXHAUSTED
        error: Optional[str] = None
        # (from_fingerprint, action) waiting for the next capture to close it
        pending: Optional[Tuple[str, str]] = None

        for index in range(self.config.steps):
            hierarchy = await self.compressor.capture(self.driver)
            if hierarchy.is_empty:
                logger.warning("Empty hierarchy at step %d - app crashed or exited", index + 1)
                outcome = SessionOutcome.CRASHED
                if pending is not None:
                    self.log.mark_crash()
                pending = None
                break
            fingerprint = self._register_screen(hierarchy, pending)
            pending = None

            try:
                decision = await self.oracle.decide(hierarchy, self.config.goal)
            except Exception as exc:
                if not self.log:
                    if isinstance(exc, OracleError):
                        raise
                    raise OracleError(f"Oracle failed before the first step: {exc}") from exc
                logger.error("Oracle failed at step %d: %s", index + 1, exc)
                outcome = SessionOutcome.FAILED
                error = str(exc)
                break

            if decision.action == ActionKind.DONE:
                logger.info("Oracle signalled done: %s", decision.reasoning)
                outcome = SessionOutcome.DONE
                break

            run = await self._run_step(decision, hierarchy)
            logger.info(
                "Step %d: %s -> %s%s",
                run.step.sequence_number,
                run.step.decision.action_label,
                "ok" if run.step.was_successful else "failed",
                " (crash)" if run.step.did_cause_crash else "",
            )
            if run.executed is not None:
                pending = (fingerprint, run.executed.action_label)
            if run.end is not None:
                outcome = run.end
                error = run.error
                pending = None
                break

        if pending is not None:
            hierarchy = await self.compressor.capture(self.driver)
            if hierarchy.is_empty:
                logger.warning("Empty hierarchy after the last step - app crashed or exited")
                outcome = SessionOutcome.CRASHED
                self.log.mark_crash()
            else:
                self._register_screen(hierarchy, pending)

        return self._build_result(outcome, started, error)

    # ------------------------------------------------------------------
    def _register_screen(self, hierarchy: Hierarchy, pending: Optional[Tuple[str, str]]) -> str:
        fingerprint = screen_fingerprint(hierarchy)
        is_new = self.graph.add_node(
            fingerprint, hierarchy.screen_category, hierarchy.interactive_count
        )
        if is_new:
            logger.info(
                "New screen %s (%s, %d interactive elements)",
                fingerprint[:12],
                hierarchy.screen_category.value if hierarchy.screen_category else "unknown",
                hierarchy.interactive_count,
            )
        if pending is not None:
            self.graph.record_transition(pending[0], pending[1], fingerprint)
        return fingerprint

    async def _run_step(self, decision: Decision, hierarchy: Hierarchy) -> _StepRun:
        sequence = len(self.log) + 1
        common: Dict[str, Any] = {
            "screenshot_ref": self._save_screenshot(hierarchy, sequence),
            "screen_category": hierarchy.screen_category,
            "interactive_element_count": hierarchy.interactive_count,
        }
        alternatives = list(decision.alternative_actions)
        screen = hierarchy
        current = decision
        last_executed: Optional[Decision] = None
        attempt = 0

        while True:
            try:
                current, value_source = await self._with_value(current, screen)
            except FixtureNoMatchError as exc:
                if not self.log and last_executed is None:
                    raise
                logger.error("No value for %s: %s", current.action_label, exc)
                step = self._append(current, False, attempt, None, str(exc), common)
                return _StepRun(step, last_executed, SessionOutcome.FAILED, str(exc))
            common["value_source"] = value_source
            verification: Optional[VerificationResult] = None
            failure_reason: Optional[str] = None

            try:
                executed = await self.driver.execute(current)
            except Exception as exc:
                logger.warning("Executing %s raised: %s", current.action_label, exc)
                if not await self._is_alive():
                    return self._crash(current, attempt, common, last_executed)
                executed = False
                failure_reason = f"Execution error: {exc}"
                break

            if not executed:
                failure_reason = "Action could not be performed"
                break
            last_executed = current

            if not await self._is_alive():
                return self._crash(current, attempt, common, last_executed)

            if not self.config.enable_verification:
                break

            await asyncio.sleep(self.config.settle_delay)
            after = await self.compressor.capture(self.driver)
            if after.is_empty:
                return self._crash(current, attempt, common, last_executed)

            verification = verify(current, screen, after)
            self._verifications_performed += 1
            if verification.passed:
                self._verifications_passed += 1
                break
            self._verifications_failed += 1
            failure_reason = verification.reason
            logger.info("Verification failed for %s: %s", current.action_label, verification.reason)

            if attempt + 1 >= self.config.max_attempts or not alternatives:
                break

            alternative = alternatives.pop(0)
            try:
                converted = await self.oracle.convert_alternative(alternative, after)
            except Exception as exc:
                logger.error("Could not convert alternative action: %s", exc)
                step = self._append(current, executed, attempt, verification, failure_reason, common)
                return _StepRun(step, last_executed, SessionOutcome.FAILED, str(exc))

            attempt += 1
            self._retry_attempts += 1
            logger.info("Retry %d with alternative %s", attempt, converted.action_label)
            current = converted
            screen = after

        step = self._append(current, executed, attempt, verification, failure_reason, common)
        return _StepRun(step, last_executed)

    def _append(
        self,
        decision: Decision,
        executed: bool,
        attempt: int,
        verification: Optional[VerificationResult],
        failure_reason: Optional[str],
        common: Dict[str, Any],
    ) -> Step:
        successful = executed and (verification is None or verification.passed)
        return self.log.append(
            decision,
            successful,
            was_retry=attempt > 0,
            verification=verification,
            failure_reason=None if successful else failure_reason,
            attempts=attempt + 1,
            **common,
        )

    def _crash(
        self,
        decision: Decision,
        attempt: int,
        common: Dict[str, Any],
        last_executed: Optional[Decision],
    ) -> _StepRun:
        logger.warning("App crashed after %s", decision.action_label)
        step = self.log.append(
            decision,
            False,
            did_cause_crash=True,
            was_retry=attempt > 0,
            failure_reason="App crashed",
            attempts=attempt + 1,
            **common,
        )
        return _StepRun(step, last_executed, SessionOutcome.CRASHED)

    async def _with_value(
        self, decision: Decision, screen: Hierarchy
    ) -> Tuple[Decision, Optional[ValueSource]]:
        """Fill in text for a ``type`` decision that came without any."""
        if decision.action != ActionKind.TYPE or decision.text_to_type:
            return decision, None
        element = screen.find(decision.target_element) or Element(
            type=ElementType.INPUT, id=decision.target_element, interactive=True
        )
        value, source = await self.resolver.resolve(element, screen.screen_category)
        return replace(decision, text_to_type=value), source

    async def _is_alive(self) -> bool:
        try:
            return await self.driver.is_app_alive()
        except Exception as exc:
            logger.warning("Liveness check failed: %s", exc)
            return False

    def _save_screenshot(self, hierarchy: Hierarchy, sequence: int) -> Optional[str]:
        directory = self.config.screenshot_dir
        if not directory or not hierarchy.screenshot:
            return None
        path = os.path.join(directory, f"step_{sequence}_before.png")
        try:
            os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as fh:
                fh.write(hierarchy.screenshot)
        except OSError as exc:
            logger.warning("Failed to write screenshot %s: %s", path, exc)
            return None
        return path

    # ------------------------------------------------------------------
    def _build_result(
        self, outcome: SessionOutcome, started: datetime, error: Optional[str]
    ) -> ExplorationResult:
        steps = list(self.log)
        successful = sum(1 for s in steps if s.was_successful)
        crash_steps = sum(1 for s in steps if s.did_cause_crash)
        metrics = SessionMetrics(
            total_actions=len(steps),
            successful_actions=successful,
            failed_actions=len(steps) - successful,
            crashes_detected=max(crash_steps, 1 if outcome == SessionOutcome.CRASHED else 0),
            verifications_performed=self._verifications_performed,
            verifications_passed=self._verifications_passed,
            verifications_failed=self._verifications_failed,
            retry_attempts=self._retry_attempts,
        )
        result = ExplorationResult(
            outcome=outcome,
            steps=steps,
            graph=self.graph,
            metrics=metrics,
            coverage=coverage_stats(self.graph),
            insights=build_insights(steps),
            started_at=started,
            finished_at=_now(),
            error=error,
            config=self.config,
        )
        logger.info(
            "Exploration finished: %s after %d steps, %d screens, %d transitions",
            outcome.value, len(steps), self.graph.total_screens, self.graph.total_transitions,
        )
        return result
