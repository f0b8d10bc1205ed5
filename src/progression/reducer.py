"""
Command reducer for learner state.

Every mutation of a LearnerState goes through dispatch():

    new_state, events = dispatch(state, command, now, config)

dispatch never mutates its input and never reads a clock; the same
(state, command, now) always yields the same result.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from loguru import logger

from .exceptions import LessonNotFoundError
from .mistakes import MISTAKE_ARCHIVE_LIMIT, MistakeArchive
from .models import (
    DEFAULT_SECTION_SEQUENCE,
    ErrorRecord,
    LearnedItem,
    LearnerProfile,
    LearnerState,
    LearningRoadmap,
    Lesson,
    Phase,
    ProgressionState,
    SectionKind,
)
from .recommendation import Reason, next_lesson
from .scoring import PASS_THRESHOLD
from .sequencer import Decision, ProgressionStateMachine
from .srs import LearnedItemStore, SRSConfig, SRSScheduler

# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class EngineConfig:
    """Tunable parameters of the progression engine."""

    srs: SRSConfig = field(default_factory=SRSConfig)
    section_sequence: tuple[SectionKind, ...] = DEFAULT_SECTION_SEQUENCE
    pass_threshold: float = PASS_THRESHOLD
    mistake_archive_limit: int = MISTAKE_ARCHIVE_LIMIT


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class SetProfile:
    profile: LearnerProfile


@dataclass(frozen=True)
class SetRoadmap:
    roadmap: LearningRoadmap


@dataclass(frozen=True)
class SubmitRepetition:
    word: str
    target_language: str
    correct: bool
    translation: str = ""
    example_sentence: str | None = None


@dataclass(frozen=True)
class BeginLesson:
    lesson_id: str


@dataclass(frozen=True)
class SubmitSectionResult:
    lesson_id: str
    section: SectionKind
    outcomes: tuple[bool, ...]


@dataclass(frozen=True)
class RecordMistake:
    record: ErrorRecord


@dataclass(frozen=True)
class ClearMistakes:
    pass


@dataclass(frozen=True)
class MarkLessonComplete:
    lesson_id: str


@dataclass(frozen=True)
class UnmarkLessonComplete:
    lesson_id: str


@dataclass(frozen=True)
class RecordPracticeSet:
    pass


@dataclass(frozen=True)
class ResetProgress:
    """Wipe learning progress; profile and roadmap are kept."""


Command = (
    SetProfile
    | SetRoadmap
    | SubmitRepetition
    | BeginLesson
    | SubmitSectionResult
    | RecordMistake
    | ClearMistakes
    | MarkLessonComplete
    | UnmarkLessonComplete
    | RecordPracticeSet
    | ResetProgress
)


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class ProfileUpdated:
    profile: LearnerProfile


@dataclass(frozen=True)
class RoadmapReplaced:
    lesson_count: int


@dataclass(frozen=True)
class ItemRescheduled:
    item: LearnedItem
    previous_stage: int | None


@dataclass(frozen=True)
class LessonBegun:
    lesson_id: str
    section: SectionKind


@dataclass(frozen=True)
class SectionNotEvaluated:
    lesson_id: str
    section: SectionKind


@dataclass(frozen=True)
class SectionRetry:
    lesson_id: str
    section: SectionKind
    percentage: float


@dataclass(frozen=True)
class SectionAdvanced:
    lesson_id: str
    section: SectionKind
    next_section: SectionKind
    percentage: float


@dataclass(frozen=True)
class LessonFinished:
    lesson_id: str
    percentage: float
    next_lesson: Lesson | None


@dataclass(frozen=True)
class AllLessonsComplete:
    pass


@dataclass(frozen=True)
class MistakeRecorded:
    record: ErrorRecord


@dataclass(frozen=True)
class MistakesCleared:
    count: int


@dataclass(frozen=True)
class LessonCompletionChanged:
    lesson_id: str
    completed: bool


@dataclass(frozen=True)
class PracticeSetRecorded:
    total: int


@dataclass(frozen=True)
class ProgressReset:
    pass


Event = (
    ProfileUpdated
    | RoadmapReplaced
    | ItemRescheduled
    | LessonBegun
    | SectionNotEvaluated
    | SectionRetry
    | SectionAdvanced
    | LessonFinished
    | AllLessonsComplete
    | MistakeRecorded
    | MistakesCleared
    | LessonCompletionChanged
    | PracticeSetRecorded
    | ProgressReset
)

Result = tuple[LearnerState, list[Event]]


# =============================================================================
# Helpers
# =============================================================================


def _machine(config: EngineConfig) -> ProgressionStateMachine:
    return ProgressionStateMachine(config.section_sequence, config.pass_threshold)


def _require_lesson(state: LearnerState, lesson_id: str) -> Lesson:
    lesson = state.roadmap.get_lesson(lesson_id) if state.roadmap else None
    if lesson is None:
        raise LessonNotFoundError(lesson_id)
    return lesson


def _settle_position(state: LearnerState, events: list[Event]) -> LearnerState:
    """
    Recompute AllComplete while the learner is between lessons.

    A learner inside a section keeps their position.
    """
    if state.position.phase == Phase.IN_SECTION:
        return state

    recommendation = next_lesson(state.roadmap, state.completed)
    if recommendation.reason == Reason.ALL_LESSONS_COMPLETE:
        if state.position.phase != Phase.ALL_COMPLETE:
            events.append(AllLessonsComplete())
        return replace(state, position=ProgressionState.all_complete())
    if state.position.phase == Phase.ALL_COMPLETE:
        return replace(state, position=ProgressionState.idle())
    return state


# =============================================================================
# Handlers
# =============================================================================


def _set_profile(state: LearnerState, command: SetProfile, now: datetime, config: EngineConfig) -> Result:
    return replace(state, profile=command.profile), [ProfileUpdated(command.profile)]


def _set_roadmap(state: LearnerState, command: SetRoadmap, now: datetime, config: EngineConfig) -> Result:
    known = set(command.roadmap.lesson_ids)
    kept = tuple(lesson_id for lesson_id in state.completed_lesson_ids if lesson_id in known)
    events: list[Event] = [RoadmapReplaced(len(command.roadmap.lessons))]
    new_state = replace(
        state,
        roadmap=command.roadmap,
        completed_lesson_ids=kept,
        position=ProgressionState.idle(),
    )
    return _settle_position(new_state, events), events


def _submit_repetition(
    state: LearnerState, command: SubmitRepetition, now: datetime, config: EngineConfig
) -> Result:
    store = LearnedItemStore(state.learned_items)
    scheduler = SRSScheduler(config.srs)
    previous = store.get_by_word(command.target_language, command.word)
    item = scheduler.review(
        store,
        command.word,
        command.target_language,
        command.correct,
        now,
        translation=command.translation,
        example_sentence=command.example_sentence,
    )
    event = ItemRescheduled(item, previous.learning_stage if previous else None)
    return replace(state, learned_items=store.to_dict()), [event]


def _begin_lesson(state: LearnerState, command: BeginLesson, now: datetime, config: EngineConfig) -> Result:
    lesson = _require_lesson(state, command.lesson_id)
    position = _machine(config).begin_lesson(lesson)
    if state.position.phase == Phase.IN_SECTION and state.position.lesson_id != lesson.id:
        logger.info(f"Learner {state.learner_id} left {state.position.describe()} for lesson {lesson.id}")
    return replace(state, position=position), [LessonBegun(lesson.id, position.section)]


def _submit_section_result(
    state: LearnerState, command: SubmitSectionResult, now: datetime, config: EngineConfig
) -> Result:
    transition = _machine(config).submit(
        state.position, command.lesson_id, command.section, command.outcomes
    )
    section = SectionKind(command.section)

    if transition.decision == Decision.NOT_EVALUATED:
        return state, [SectionNotEvaluated(command.lesson_id, section)]

    if transition.decision == Decision.RETRY:
        return state, [SectionRetry(command.lesson_id, section, transition.percentage)]

    if transition.decision == Decision.ADVANCE_SECTION:
        event = SectionAdvanced(
            command.lesson_id, section, transition.next_section, transition.percentage
        )
        return replace(state, position=transition.state), [event]

    completed = state.completed_lesson_ids
    if command.lesson_id not in completed:
        completed = completed + (command.lesson_id,)
    new_state = replace(state, completed_lesson_ids=completed, position=transition.state)

    recommendation = next_lesson(new_state.roadmap, new_state.completed)
    events: list[Event] = [
        LessonFinished(command.lesson_id, transition.percentage, recommendation.lesson)
    ]
    return _settle_position(new_state, events), events


def _record_mistake(state: LearnerState, command: RecordMistake, now: datetime, config: EngineConfig) -> Result:
    archive = MistakeArchive(state.mistakes, limit=config.mistake_archive_limit)
    archive.append(command.record)
    return replace(state, mistakes=tuple(archive.list())), [MistakeRecorded(command.record)]


def _clear_mistakes(state: LearnerState, command: ClearMistakes, now: datetime, config: EngineConfig) -> Result:
    return replace(state, mistakes=()), [MistakesCleared(len(state.mistakes))]


def _mark_lesson_complete(
    state: LearnerState, command: MarkLessonComplete, now: datetime, config: EngineConfig
) -> Result:
    _require_lesson(state, command.lesson_id)
    if command.lesson_id in state.completed_lesson_ids:
        return state, []
    events: list[Event] = [LessonCompletionChanged(command.lesson_id, True)]
    new_state = replace(state, completed_lesson_ids=state.completed_lesson_ids + (command.lesson_id,))
    return _settle_position(new_state, events), events


def _unmark_lesson_complete(
    state: LearnerState, command: UnmarkLessonComplete, now: datetime, config: EngineConfig
) -> Result:
    if command.lesson_id not in state.completed_lesson_ids:
        return state, []
    events: list[Event] = [LessonCompletionChanged(command.lesson_id, False)]
    remaining = tuple(i for i in state.completed_lesson_ids if i != command.lesson_id)
    new_state = replace(state, completed_lesson_ids=remaining)
    return _settle_position(new_state, events), events


def _record_practice_set(
    state: LearnerState, command: RecordPracticeSet, now: datetime, config: EngineConfig
) -> Result:
    total = state.practice_sets_completed + 1
    return replace(state, practice_sets_completed=total), [PracticeSetRecorded(total)]


def _reset_progress(state: LearnerState, command: ResetProgress, now: datetime, config: EngineConfig) -> Result:
    fresh = LearnerState(learner_id=state.learner_id, profile=state.profile, roadmap=state.roadmap)
    events: list[Event] = [ProgressReset()]
    return _settle_position(fresh, events), events


_HANDLERS: dict[type, Callable[[LearnerState, object, datetime, EngineConfig], Result]] = {
    SetProfile: _set_profile,
    SetRoadmap: _set_roadmap,
    SubmitRepetition: _submit_repetition,
    BeginLesson: _begin_lesson,
    SubmitSectionResult: _submit_section_result,
    RecordMistake: _record_mistake,
    ClearMistakes: _clear_mistakes,
    MarkLessonComplete: _mark_lesson_complete,
    UnmarkLessonComplete: _unmark_lesson_complete,
    RecordPracticeSet: _record_practice_set,
    ResetProgress: _reset_progress,
}


def dispatch(
    state: LearnerState,
    command: Command,
    now: datetime,
    config: EngineConfig | None = None,
) -> Result:
    """
    Apply one command to a learner state.

    Args:
        state: Current state (left untouched)
        command: One of the command dataclasses above
        now: Instant the command happens at
        config: Engine parameters (defaults if None)

    Returns:
        (new_state, events)

    Raises:
        TypeError: For an unknown command type
        DesynchronizedStateError: Section result for the wrong position
        LessonNotFoundError: Lesson id missing from the roadmap
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unknown command: {type(command).__name__}")
    return handler(state, command, now, config or EngineConfig())


def outcomes_tuple(outcomes: Sequence[bool]) -> tuple[bool, ...]:
    """Normalize any outcome sequence for a SubmitSectionResult command."""
    return tuple(bool(outcome) for outcome in outcomes)
