import pytest

from app_explorer.decisions import ActionKind, ConfidenceLevel, Decision, SuccessProbability
from app_explorer.elements import ScreenCategory
from app_explorer.explorer import Step
from app_explorer.navigation import NavigationGraph
from app_explorer.summary import (
    SessionMetrics,
    SessionStatus,
    build_insights,
    coverage_stats,
    health_score,
    session_status,
)


def _step(n: int, ok: bool, confidence: float, reason=None, category=None) -> Step:
    return Step(
        sequence_number=n,
        decision=Decision(ActionKind.TAP, "b", success_probability=SuccessProbability(confidence)),
        was_successful=ok,
        failure_reason=reason,
        screen_category=category,
    )


class TestHealthScore:
    def test_success_rate_is_the_base(self) -> None:
        metrics = SessionMetrics(total_actions=4, successful_actions=3, failed_actions=1)

        assert metrics.success_rate == 75.0
        assert health_score(metrics, screens_discovered=2) == 75.0

    def test_bonuses_are_capped(self) -> None:
        metrics = SessionMetrics(
            total_actions=10,
            successful_actions=10,
            verifications_performed=5,
            verifications_passed=4,
        )

        assert health_score(metrics, screens_discovered=5) == 100.0

    def test_coverage_and_verification_bonus(self) -> None:
        metrics = SessionMetrics(
            total_actions=10,
            successful_actions=8,
            failed_actions=2,
            verifications_performed=10,
            verifications_passed=9,
        )

        assert health_score(metrics, screens_discovered=6) == 90.0

    def test_crash_penalty_floors_at_zero(self) -> None:
        metrics = SessionMetrics(total_actions=2, successful_actions=1, failed_actions=1, crashes_detected=10)

        assert health_score(metrics, screens_discovered=1) == 0.0

    def test_no_actions(self) -> None:
        assert health_score(SessionMetrics(), screens_discovered=0) == 0.0


class TestStatus:
    @pytest.mark.parametrize(
        "metrics, expected",
        [
            (SessionMetrics(total_actions=3, successful_actions=3), SessionStatus.COMPLETED),
            (SessionMetrics(total_actions=3, successful_actions=2, failed_actions=1), SessionStatus.FAILED),
            (SessionMetrics(failed_actions=1, crashes_detected=1), SessionStatus.CRASHED),
        ],
    )
    def test_status(self, metrics, expected) -> None:
        assert session_status(metrics) == expected


class TestCoverage:
    def test_empty_graph(self) -> None:
        stats = coverage_stats(NavigationGraph())

        assert stats.screens_discovered == 0
        assert stats.coverage_percentage == 0.0

    def test_share_of_screens_with_outgoing_transitions(self) -> None:
        graph = NavigationGraph()
        graph.record_transition("A", "tap:x", "B")
        graph.add_node("C")
        graph.add_node("A")

        stats = coverage_stats(graph)

        assert stats.screens_discovered == 3
        assert stats.transitions_recorded == 1
        assert stats.total_visits == 4
        assert stats.coverage_percentage == 33.33


class TestInsights:
    def test_aggregates(self) -> None:
        steps = [
            _step(1, True, 0.9, category=ScreenCategory.LOGIN),
            _step(2, False, 0.5, "No visible change after tap", ScreenCategory.LOGIN),
            _step(3, False, 0.4, "No visible change after tap"),
            _step(4, False, 0.2, "App crashed"),
        ]

        insights = build_insights(steps)

        assert insights.average_confidence == 50.0
        assert insights.top_failure_reasons == ["No visible change after tap", "App crashed"]
        assert insights.screen_type_distribution == {"login": 2, "unknown": 2}

    def test_no_steps(self) -> None:
        assert build_insights([]).average_confidence == 0.0


class TestConfidenceLevel:
    @pytest.mark.parametrize(
        "value, level",
        [
            (0.0, ConfidenceLevel.VERY_LOW),
            (0.19, ConfidenceLevel.VERY_LOW),
            (0.2, ConfidenceLevel.LOW),
            (0.5, ConfidenceLevel.MEDIUM),
            (0.79, ConfidenceLevel.HIGH),
            (0.8, ConfidenceLevel.VERY_HIGH),
        ],
    )
    def test_buckets(self, value, level) -> None:
        assert SuccessProbability(value).level == level

    def test_probability_must_be_in_range(self) -> None:
        with pytest.raises(ValueError):
            SuccessProbability(1.5)
