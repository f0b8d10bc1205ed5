"""
Progress Engine: public surface of the adaptive progression core.

Owns each learner's LearnerState and routes every mutation through the
reducer. Per call:

    load (once per learner) -> dispatch(command) -> replace cached state -> save

Mutations for one learner are serialized by a per-learner lock; different
learners never share state and can be served in parallel.

If a save fails the cached state keeps the new value and PersistenceError
is raised; flush() retries the save later.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from .clock import Clock, SystemClock
from .content import (
    ContentGenerator,
    ContentRequest,
    SectionContent,
    generate_content,
    topic_for_section,
)
from .exceptions import ContentGenerationFailed, LessonNotFoundError, PersistenceError
from .mistakes import MistakeArchive, new_error_record
from .models import (
    ErrorRecord,
    LearnedItem,
    LearnerProfile,
    LearnerState,
    LearningRoadmap,
    Lesson,
    ProgressionState,
    SectionKind,
)
from .recommendation import Recommendation, next_lesson
from .reducer import (
    BeginLesson,
    ClearMistakes,
    Command,
    EngineConfig,
    Event,
    ItemRescheduled,
    LessonFinished,
    MarkLessonComplete,
    RecordMistake,
    RecordPracticeSet,
    ResetProgress,
    SectionAdvanced,
    SectionRetry,
    SetProfile,
    SetRoadmap,
    SubmitRepetition,
    SubmitSectionResult,
    UnmarkLessonComplete,
    dispatch,
    outcomes_tuple,
)
from .sequencer import Decision
from .srs import due_items, new_items, stage_histogram


@dataclass(frozen=True)
class SectionResult:
    """What the presentation layer needs after submitting a section run."""

    lesson_id: str
    section: SectionKind
    decision: Decision
    percentage: float | None
    next_section: SectionKind | None = None
    next_lesson: Lesson | None = None
    position: ProgressionState | None = None


class ProgressEngine:
    """
    Root façade over scheduling, progression and the mistake archive.

    Args:
        repository: Load/save boundary for learner documents
        clock: Source of "now" (SystemClock if None)
        config: Engine parameters (defaults if None)
        content_generator: Optional generator for section material
    """

    def __init__(
        self,
        repository,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        content_generator: ContentGenerator | None = None,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.config = config or EngineConfig()
        self.content_generator = content_generator

        self._states: dict[str, LearnerState] = {}
        self._unsaved: set[str] = set()
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # =========================================================================
    # State plumbing
    # =========================================================================

    def _lock_for(self, learner_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(learner_id)
            if lock is None:
                lock = self._locks[learner_id] = threading.Lock()
            return lock

    def _state(self, learner_id: str) -> LearnerState:
        """Cached state, loading it on first use. Caller holds the learner lock."""
        state = self._states.get(learner_id)
        if state is not None:
            return state

        try:
            state = self.repository.load(learner_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(learner_id, "load", e) from e

        if state is None:
            logger.info(f"No stored state for learner {learner_id}; starting fresh")
            state = LearnerState.empty(learner_id)
        self._states[learner_id] = state
        return state

    def _save(self, learner_id: str, state: LearnerState) -> None:
        try:
            self.repository.save(learner_id, state)
        except Exception as e:
            with self._registry_lock:
                self._unsaved.add(learner_id)
            logger.warning(f"Saving state for learner {learner_id} failed; keeping it in memory: {e}")
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(learner_id, "save", e) from e
        with self._registry_lock:
            self._unsaved.discard(learner_id)

    def dispatch(self, learner_id: str, command: Command) -> tuple[LearnerState, list[Event]]:
        """Apply one command for a learner and persist the result."""
        with self._lock_for(learner_id):
            state = self._state(learner_id)
            new_state, events = dispatch(state, command, self.clock.now(), self.config)
            if new_state is state:
                return state, events
            self._states[learner_id] = new_state
            self._save(learner_id, new_state)
            return new_state, events

    def get_state(self, learner_id: str) -> LearnerState:
        with self._lock_for(learner_id):
            return self._state(learner_id)

    def flush(self, learner_id: str | None = None) -> int:
        """
        Retry saving learner states whose last save failed.

        Returns:
            Number of learner states written
        """
        if learner_id is not None:
            targets = [learner_id]
        else:
            with self._registry_lock:
                targets = sorted(self._unsaved)
        written = 0
        for target in targets:
            with self._lock_for(target):
                if not self.has_unsaved_changes(target) or target not in self._states:
                    continue
                self._save(target, self._states[target])
                written += 1
        return written

    def has_unsaved_changes(self, learner_id: str) -> bool:
        with self._registry_lock:
            return learner_id in self._unsaved

    def evict(self, learner_id: str) -> bool:
        """
        Drop a learner's cached state, saving it first if a save is pending.

        Long-running hosts call this for idle learners; the next call
        reloads the document from the repository. The learner's lock entry
        stays so callers already waiting on it remain serialized.

        Returns:
            True if the learner was cached and has been evicted

        Raises:
            PersistenceError: If the cached state could not be saved first
        """
        with self._lock_for(learner_id):
            if learner_id not in self._states:
                return False
            if self.has_unsaved_changes(learner_id):
                self._save(learner_id, self._states[learner_id])
            del self._states[learner_id]
        logger.debug(f"Evicted cached state for learner {learner_id}")
        return True

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def submit_repetition(
        self,
        learner_id: str,
        word: str,
        correct: bool,
        target_language: str | None = None,
        translation: str = "",
        example_sentence: str | None = None,
    ) -> LearnedItem:
        """Record one repetition outcome and return the rescheduled item."""
        if target_language is None:
            profile = self.get_state(learner_id).profile
            if profile is None:
                raise ValueError("target_language is required when the learner has no profile")
            target_language = profile.target_language

        _, events = self.dispatch(
            learner_id,
            SubmitRepetition(word, target_language, correct, translation, example_sentence),
        )
        rescheduled = next(e for e in events if isinstance(e, ItemRescheduled))
        return rescheduled.item

    def get_due_items(self, learner_id: str) -> list[LearnedItem]:
        """Items due for review now, in no particular order."""
        state = self.get_state(learner_id)
        return due_items(state.learned_items.values(), self.clock.now())

    def get_new_items(self, learner_id: str) -> list[LearnedItem]:
        """Items on stage 0, drilled by the new-words section."""
        return new_items(self.get_state(learner_id).learned_items.values())

    # =========================================================================
    # Progression
    # =========================================================================

    def set_profile(self, learner_id: str, profile: LearnerProfile) -> LearnerState:
        return self.dispatch(learner_id, SetProfile(profile))[0]

    def set_roadmap(self, learner_id: str, roadmap: LearningRoadmap) -> LearnerState:
        return self.dispatch(learner_id, SetRoadmap(roadmap))[0]

    def begin_lesson(self, learner_id: str, lesson_id: str) -> ProgressionState:
        return self.dispatch(learner_id, BeginLesson(lesson_id))[0].position

    def submit_section_result(
        self,
        learner_id: str,
        lesson_id: str,
        section: SectionKind | str,
        outcomes: Sequence[bool],
    ) -> SectionResult:
        """
        Score a section run and route the learner.

        Raises:
            DesynchronizedStateError: If (lesson_id, section) is not the current position
        """
        section = SectionKind(section)
        state, events = self.dispatch(
            learner_id, SubmitSectionResult(lesson_id, section, outcomes_tuple(outcomes))
        )

        for event in events:
            if isinstance(event, SectionRetry):
                return SectionResult(lesson_id, section, Decision.RETRY, event.percentage, position=state.position)
            if isinstance(event, SectionAdvanced):
                logger.info(f"Learner {learner_id} advanced {lesson_id}: {section.value} -> {event.next_section.value}")
                return SectionResult(
                    lesson_id,
                    section,
                    Decision.ADVANCE_SECTION,
                    event.percentage,
                    next_section=event.next_section,
                    position=state.position,
                )
            if isinstance(event, LessonFinished):
                logger.info(f"Learner {learner_id} finished lesson {lesson_id}")
                return SectionResult(
                    lesson_id,
                    section,
                    Decision.LESSON_FINISHED,
                    event.percentage,
                    next_lesson=event.next_lesson,
                    position=state.position,
                )
        return SectionResult(lesson_id, section, Decision.NOT_EVALUATED, None, position=state.position)

    def get_next_lesson(self, learner_id: str) -> Recommendation:
        state = self.get_state(learner_id)
        return next_lesson(state.roadmap, state.completed)

    def mark_lesson_complete(self, learner_id: str, lesson_id: str) -> LearnerState:
        return self.dispatch(learner_id, MarkLessonComplete(lesson_id))[0]

    def unmark_lesson_complete(self, learner_id: str, lesson_id: str) -> LearnerState:
        return self.dispatch(learner_id, UnmarkLessonComplete(lesson_id))[0]

    def record_practice_set(self, learner_id: str) -> int:
        return self.dispatch(learner_id, RecordPracticeSet())[0].practice_sets_completed

    def reset_progress(self, learner_id: str) -> LearnerState:
        return self.dispatch(learner_id, ResetProgress())[0]

    # =========================================================================
    # Mistakes
    # =========================================================================

    def record_mistake(
        self,
        learner_id: str,
        module: SectionKind | str,
        context: str,
        user_attempt: str,
        correct_answer: str | None = None,
    ) -> ErrorRecord:
        record = new_error_record(
            module=str(module.value if isinstance(module, SectionKind) else module),
            context=context,
            user_attempt=user_attempt,
            correct_answer=correct_answer,
            occurred_at=self.clock.now(),
        )
        self.dispatch(learner_id, RecordMistake(record))
        return record

    def get_mistakes(self, learner_id: str) -> list[ErrorRecord]:
        """Archived mistakes, oldest first."""
        return list(self.get_state(learner_id).mistakes)

    def clear_mistakes(self, learner_id: str) -> None:
        self.dispatch(learner_id, ClearMistakes())

    # =========================================================================
    # Content
    # =========================================================================

    def generate_section_content(
        self,
        learner_id: str,
        lesson_id: str,
        section: SectionKind | str,
        topic: str | None = None,
    ) -> SectionContent:
        """
        Ask the content generator for one section's material.

        Never touches learner state.

        Raises:
            LessonNotFoundError: If the lesson is not in the roadmap
            ContentGenerationFailed: On any generator failure
        """
        section = SectionKind(section)
        state = self.get_state(learner_id)
        lesson = state.roadmap.get_lesson(lesson_id) if state.roadmap else None
        if lesson is None:
            raise LessonNotFoundError(lesson_id)

        request = ContentRequest(
            section=section,
            topic=topic or topic_for_section(lesson, section),
            level=lesson.level,
            profile=state.profile,
            past_errors=MistakeArchive(state.mistakes, self.config.mistake_archive_limit).summary(),
        )
        if self.content_generator is None:
            raise ContentGenerationFailed(section.value, request.topic, RuntimeError("no content generator configured"))
        return generate_content(self.content_generator, request)

    # =========================================================================
    # Stats
    # =========================================================================

    def get_stats(self, learner_id: str) -> dict[str, Any]:
        """
        Aggregate learning statistics for a learner.

        Returns:
            Dictionary with aggregate stats
        """
        state = self.get_state(learner_id)
        items = list(state.learned_items.values())
        lessons_total = len(state.roadmap.lessons) if state.roadmap else 0
        return {
            "items_tracked": len(items),
            "items_due": len(due_items(items, self.clock.now())),
            "items_by_stage": stage_histogram(items),
            "items_at_max_stage": sum(1 for i in items if i.learning_stage == self.config.srs.max_stage),
            "mistakes_archived": len(state.mistakes),
            "lessons_completed": len(state.completed_lesson_ids),
            "lessons_total": lessons_total,
            "practice_sets_completed": state.practice_sets_completed,
            "position": state.position.describe(),
        }
