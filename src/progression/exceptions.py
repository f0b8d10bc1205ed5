"""
Error taxonomy for the progression engine.

Scoring an empty run is not an error: it surfaces as the NOT_EVALUATED
decision with no percentage, so it stays distinguishable from a real 0%.
"""

from __future__ import annotations


class ProgressionError(Exception):
    """Base class for progression engine errors."""

    retryable: bool = False


class ContentGenerationFailed(ProgressionError):
    """Raised when the content generator fails. No learner state is touched."""

    retryable = True

    def __init__(self, section: str, topic: str, cause: Exception | None = None):
        self.section = section
        self.topic = topic
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Content generation failed for {section!r} / {topic!r}{detail}")


class DesynchronizedStateError(ProgressionError):
    """Raised when a section result does not match the learner's current position."""

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Section result for {received} does not match current position {expected}; "
            "re-fetch the learner state and retry"
        )


class LessonNotFoundError(ProgressionError):
    """Raised when a lesson id is not part of the learner's roadmap."""

    def __init__(self, lesson_id: str):
        self.lesson_id = lesson_id
        super().__init__(f"Lesson {lesson_id!r} is not in the learner's roadmap")


class PersistenceError(ProgressionError):
    """Raised when loading or saving learner state fails."""

    retryable = True

    def __init__(self, learner_id: str, operation: str, cause: Exception | None = None):
        self.learner_id = learner_id
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {operation} state for learner {learner_id!r}{detail}")
