"""
Priority Scorer

Pure function of (nearby_reports_count, confirmation_count).
Safe to call redundantly; recomputing from stored counts reproduces the
stored priority.

Tiering on total signal = nearby + 1 (self) + confirmations:
- High:   signal >= HIGH_PRIORITY_SIGNAL_THRESHOLD
- Medium: signal >= MEDIUM_PRIORITY_SIGNAL_THRESHOLD
- Low:    otherwise (uncorroborated)
"""
from dataclasses import dataclass

from ...config import HIGH_PRIORITY_SIGNAL_THRESHOLD, MEDIUM_PRIORITY_SIGNAL_THRESHOLD
from ...models.db_models import Priority


@dataclass(frozen=True)
class PriorityScore:
    priority: Priority
    crowd_verified: bool
    total_signal: int


def total_signal(nearby_count: int, confirmation_count: int) -> int:
    """Combined corroborating evidence, counting the report itself."""
    return nearby_count + 1 + confirmation_count


class PriorityScorer:
    """Maps community signal to a priority tier."""

    def __init__(
        self,
        high_threshold: int = HIGH_PRIORITY_SIGNAL_THRESHOLD,
        medium_threshold: int = MEDIUM_PRIORITY_SIGNAL_THRESHOLD,
    ):
        if medium_threshold > high_threshold:
            raise ValueError("medium_threshold must not exceed high_threshold")
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold

    def score(self, nearby_count: int, confirmation_count: int) -> PriorityScore:
        if nearby_count < 0 or confirmation_count < 0:
            raise ValueError("signal counts must be non-negative")

        signal = total_signal(nearby_count, confirmation_count)

        # Boundaries resolve toward the higher tier
        if signal >= self.high_threshold:
            priority = Priority.HIGH
        elif signal >= self.medium_threshold:
            priority = Priority.MEDIUM
        else:
            priority = Priority.LOW

        return PriorityScore(
            priority=priority,
            crowd_verified=nearby_count >= 1,
            total_signal=signal,
        )


def score_priority(nearby_count: int, confirmation_count: int) -> PriorityScore:
    """Score with the configured thresholds."""
    return PriorityScorer().score(nearby_count, confirmation_count)
