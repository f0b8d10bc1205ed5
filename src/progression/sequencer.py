"""
Section/Lesson Progression State Machine.

States:
    Idle                        - no lesson begun
    InSection(lesson, section)  - working through one section of a lesson
    LessonComplete(lesson)      - every instantiated section passed
    AllComplete                 - set externally once no lesson remains

A passed section moves forward along the section sequence, skipping kinds
the lesson does not instantiate. A failed section is retried with a fresh
exercise set; the failed run is not kept.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from .exceptions import DesynchronizedStateError
from .models import DEFAULT_SECTION_SEQUENCE, Lesson, Phase, ProgressionState, SectionKind
from .scoring import PASS_THRESHOLD, SectionScore, score_run


class Decision(str, Enum):
    """Routing decision emitted for a submitted section run."""

    NOT_EVALUATED = "not_evaluated"
    RETRY = "retry"
    ADVANCE_SECTION = "advance_section"
    LESSON_FINISHED = "lesson_finished"


@dataclass(frozen=True)
class Transition:
    """Result of submitting a section run."""

    state: ProgressionState
    decision: Decision
    score: SectionScore
    next_section: SectionKind | None = None

    @property
    def percentage(self) -> float | None:
        return self.score.percentage


class ProgressionStateMachine:
    """
    Stateless transition logic; the current state is always passed in.

    Args:
        sequence: Canonical order of section kinds
        threshold: Pass threshold in percent (inclusive)
    """

    def __init__(
        self,
        sequence: Sequence[SectionKind] = DEFAULT_SECTION_SEQUENCE,
        threshold: float = PASS_THRESHOLD,
    ):
        if not sequence:
            raise ValueError("section sequence must not be empty")
        if len(set(sequence)) != len(sequence):
            raise ValueError("section sequence must not repeat a kind")
        self.sequence: tuple[SectionKind, ...] = tuple(sequence)
        self.threshold = threshold

    def available_sections(self, lesson: Lesson) -> tuple[SectionKind, ...]:
        """Kinds a lesson instantiates, in sequence order. Empty means all of them."""
        if not lesson.sections:
            return self.sequence
        instantiated = set(lesson.sections)
        return tuple(kind for kind in self.sequence if kind in instantiated)

    def next_section(
        self,
        current: SectionKind,
        available: Sequence[SectionKind],
    ) -> SectionKind | None:
        """Walk the sequence forward from current to the next available kind."""
        if current not in self.sequence:
            return None
        offered = set(available)
        start = self.sequence.index(current) + 1
        for kind in self.sequence[start:]:
            if kind in offered:
                return kind
        return None

    def begin_lesson(self, lesson: Lesson) -> ProgressionState:
        """Enter the first available section of a lesson."""
        available = self.available_sections(lesson)
        if not available:
            raise ValueError(f"Lesson {lesson.id!r} instantiates no known section kinds")
        return ProgressionState.in_section(lesson.id, available[0], available)

    def submit(
        self,
        state: ProgressionState,
        lesson_id: str,
        section: SectionKind,
        outcomes: Sequence[bool],
    ) -> Transition:
        """
        Evaluate a section run against the current state.

        Raises:
            DesynchronizedStateError: If (lesson_id, section) is not the current position
        """
        if (
            state.phase != Phase.IN_SECTION
            or state.lesson_id != lesson_id
            or state.section != section
        ):
            raise DesynchronizedStateError(
                expected=state.describe(),
                received=f"InSection({lesson_id}, {SectionKind(section).value})",
            )

        score = score_run(outcomes)
        if not score.evaluable:
            return Transition(state, Decision.NOT_EVALUATED, score)

        if not score.passed(self.threshold):
            logger.debug(f"{state.describe()}: {score.percentage:.1f}% below threshold, retry")
            return Transition(state, Decision.RETRY, score)

        following = self.next_section(section, state.available_sections)
        if following is not None:
            new_state = ProgressionState.in_section(lesson_id, following, state.available_sections)
            return Transition(new_state, Decision.ADVANCE_SECTION, score, next_section=following)

        return Transition(
            ProgressionState.lesson_complete(lesson_id),
            Decision.LESSON_FINISHED,
            score,
        )
