from __future__ import annotations

"""Aggregate views over a finished session: coverage, metrics and insights."""

from collections import Counter
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Sequence

from .navigation import NavigationGraph

if TYPE_CHECKING:
    from .explorer import Step


class SessionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CRASHED = "crashed"


@dataclass
class CoverageStats:
    screens_discovered: int = 0
    transitions_recorded: int = 0
    total_visits: int = 0
    # share of discovered screens that have at least one outgoing transition
    coverage_percentage: float = 0.0


@dataclass
class SessionMetrics:
    total_actions: int = 0
    successful_actions: int = 0
    failed_actions: int = 0
    crashes_detected: int = 0
    verifications_performed: int = 0
    verifications_passed: int = 0
    verifications_failed: int = 0
    retry_attempts: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_actions == 0:
            return 0.0
        return self.successful_actions / self.total_actions * 100

    @property
    def verification_rate(self) -> float:
        if self.verifications_performed == 0:
            return 0.0
        return self.verifications_passed / self.verifications_performed * 100

    def to_dict(self) -> Dict[str, float]:
        data = asdict(self)
        data["success_rate"] = round(self.success_rate, 2)
        data["verification_rate"] = round(self.verification_rate, 2)
        return data


@dataclass
class Insights:
    average_confidence: float = 0.0
    top_failure_reasons: List[str] = field(default_factory=list)
    screen_type_distribution: Dict[str, int] = field(default_factory=dict)


def coverage_stats(graph: NavigationGraph) -> CoverageStats:
    nodes = graph.nodes
    if not nodes:
        return CoverageStats()
    left = {e.from_fingerprint for e in graph.edges}
    return CoverageStats(
        screens_discovered=graph.total_screens,
        transitions_recorded=graph.total_transitions,
        total_visits=sum(n.visit_count for n in nodes),
        coverage_percentage=round(len(left) / len(nodes) * 100, 2),
    )


def health_score(metrics: SessionMetrics, screens_discovered: int) -> float:
    """0..100 score: success rate, small bonuses, heavy crash penalty."""
    score = metrics.success_rate
    if screens_discovered >= 5:
        score = min(100.0, score + 5)
    if metrics.verifications_performed > 0 and metrics.verification_rate >= 80:
        score = min(100.0, score + 5)
    if metrics.crashes_detected > 0:
        score = max(0.0, score - metrics.crashes_detected * 10)
    return round(score, 2)


def session_status(metrics: SessionMetrics) -> SessionStatus:
    if metrics.crashes_detected > 0:
        return SessionStatus.CRASHED
    if metrics.failed_actions > 0:
        return SessionStatus.FAILED
    return SessionStatus.COMPLETED


def build_insights(steps: Sequence["Step"], top_n: int = 5) -> Insights:
    if not steps:
        return Insights()
    reasons = Counter(s.failure_reason for s in steps if s.failure_reason)
    categories = Counter(
        s.screen_category.value if s.screen_category else "unknown" for s in steps
    )
    return Insights(
        average_confidence=round(sum(s.decision.confidence for s in steps) / len(steps), 2),
        top_failure_reasons=[r for r, _ in reasons.most_common(top_n)],
        screen_type_distribution=dict(categories),
    )
