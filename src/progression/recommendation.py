"""
Next-lesson recommendation.

First-gap selection over the roadmap order. Proficiency and goals shape the
generated content only; they play no part here.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from .models import LearningRoadmap, Lesson


class Reason(str, Enum):
    """Why a recommendation was (or was not) made."""

    NEXT_IN_ROADMAP = "next_in_roadmap"
    ALL_LESSONS_COMPLETE = "all_lessons_complete"
    EMPTY_ROADMAP = "empty_roadmap"


@dataclass(frozen=True)
class Recommendation:
    lesson: Lesson | None
    reason: Reason

    @property
    def has_lesson(self) -> bool:
        return self.lesson is not None


def next_lesson(roadmap: LearningRoadmap | None, completed: Collection[str]) -> Recommendation:
    """
    Pick the first lesson in roadmap order that is not completed.

    Args:
        roadmap: The learner's roadmap (None counts as empty)
        completed: Completed lesson ids

    Returns:
        Recommendation; lesson is None when the roadmap is empty or finished
    """
    if roadmap is None or not roadmap.lessons:
        return Recommendation(None, Reason.EMPTY_ROADMAP)

    done = set(completed)
    for lesson in roadmap.lessons:
        if lesson.id not in done:
            return Recommendation(lesson, Reason.NEXT_IN_ROADMAP)
    return Recommendation(None, Reason.ALL_LESSONS_COMPLETE)
