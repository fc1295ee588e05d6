"""
Tests for the Priority Scorer.

Total signal = nearby + 1 (self) + confirmations.
Low at 1, Medium at 2-4, High at 5+.
"""
import pytest

from app import config
from app.models.db_models import Priority
from app.services.reports.priority import PriorityScorer, score_priority, total_signal


class TestTotalSignal:

    def test_counts_self(self):
        assert total_signal(0, 0) == 1

    def test_sums_components(self):
        assert total_signal(2, 3) == 6


class TestTiering:

    @pytest.mark.parametrize("nearby,confirmations,expected", [
        (0, 0, Priority.LOW),
        (1, 0, Priority.MEDIUM),
        (0, 1, Priority.MEDIUM),
        (2, 1, Priority.MEDIUM),
        (0, 3, Priority.MEDIUM),
        (4, 0, Priority.HIGH),
        (0, 4, Priority.HIGH),
        (2, 2, Priority.HIGH),
        (10, 10, Priority.HIGH),
    ])
    def test_tiers(self, nearby, confirmations, expected):
        assert score_priority(nearby, confirmations).priority == expected

    def test_boundary_goes_to_higher_tier(self):
        """Signal exactly at the High threshold is High."""
        scorer = PriorityScorer(high_threshold=5, medium_threshold=2)
        assert scorer.score(3, 1).total_signal == 5
        assert scorer.score(3, 1).priority == Priority.HIGH

    def test_configurable_threshold(self):
        scorer = PriorityScorer(high_threshold=8)
        assert scorer.score(4, 0).priority == Priority.MEDIUM
        assert scorer.score(4, 3).priority == Priority.HIGH

    def test_invalid_thresholds(self):
        with pytest.raises(ValueError):
            PriorityScorer(high_threshold=2, medium_threshold=3)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            score_priority(-1, 0)


class TestCrowdVerified:

    def test_single_report_not_crowd_verified(self):
        assert score_priority(0, 10).crowd_verified is False

    def test_one_neighbour_is_crowd_verified(self):
        assert score_priority(1, 0).crowd_verified is True


def test_idempotent():
    assert score_priority(2, 1) == score_priority(2, 1)


class TestConfiguredHighThreshold:

    def test_low_env_value_raised_to_medium(self, monkeypatch):
        monkeypatch.setenv("HIGH_PRIORITY_SIGNAL_THRESHOLD", "1")
        high = config._int_env_at_least(
            "HIGH_PRIORITY_SIGNAL_THRESHOLD", 5, config.MEDIUM_PRIORITY_SIGNAL_THRESHOLD
        )

        assert high == config.MEDIUM_PRIORITY_SIGNAL_THRESHOLD
        scorer = PriorityScorer(high_threshold=high)
        assert scorer.score(1, 0).priority == Priority.HIGH

    def test_valid_env_value_kept(self, monkeypatch):
        monkeypatch.setenv("HIGH_PRIORITY_SIGNAL_THRESHOLD", "8")
        assert config._int_env_at_least("HIGH_PRIORITY_SIGNAL_THRESHOLD", 5, 2) == 8

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv("HIGH_PRIORITY_SIGNAL_THRESHOLD", raising=False)
        assert config._int_env_at_least("HIGH_PRIORITY_SIGNAL_THRESHOLD", 5, 2) == 5
