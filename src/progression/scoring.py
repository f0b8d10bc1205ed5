"""Scoring of a single exercise set (a section run)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

PASS_THRESHOLD = 70.0


@dataclass(frozen=True)
class SectionScore:
    """Outcome counts for one section run."""

    correct: int
    total: int

    @property
    def evaluable(self) -> bool:
        """A run with no outcomes cannot be judged either way."""
        return self.total > 0

    @property
    def percentage(self) -> float | None:
        if not self.evaluable:
            return None
        return self.correct * 100.0 / self.total

    def passed(self, threshold: float = PASS_THRESHOLD) -> bool:
        """Inclusive threshold check. Only meaningful for evaluable runs."""
        if not self.evaluable:
            raise ValueError("an empty section run has no pass/fail result")
        return self.percentage >= threshold


def score_run(outcomes: Sequence[bool]) -> SectionScore:
    """Count correct outcomes in a run."""
    return SectionScore(correct=sum(1 for outcome in outcomes if outcome), total=len(outcomes))
