"""
Adaptive Progression Engine.

Tracks vocabulary retention and gates lesson progression for each learner.

Components:
- SRSScheduler: Stage-based spaced repetition
- MistakeArchive: Bounded log of recent errors
- ProgressionStateMachine: Section/lesson routing on a score threshold
- next_lesson: First-gap lesson recommendation
- dispatch: Command reducer over LearnerState
- ProgressEngine: Per-learner façade with persistence
- JsonStateStore: One JSON document per learner
"""

from .clock import Clock, SystemClock
from .content import ContentGenerator, ContentRequest, Exercise, SectionContent, VocabularyWord
from .engine import ProgressEngine, SectionResult
from .exceptions import (
    ContentGenerationFailed,
    DesynchronizedStateError,
    LessonNotFoundError,
    PersistenceError,
    ProgressionError,
)
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
    ProficiencyLevel,
    ProgressionState,
    SectionKind,
    Topic,
    TopicCategory,
)
from .recommendation import Reason, Recommendation, next_lesson
from .reducer import EngineConfig, dispatch
from .scoring import PASS_THRESHOLD, SectionScore, score_run
from .sequencer import Decision, ProgressionStateMachine
from .srs import LearnedItemStore, SRSConfig, SRSScheduler, due_items
from .state_store import InMemoryStateStore, JsonStateStore, StateRepository

__all__ = [
    # Main engine
    "ProgressEngine",
    "SectionResult",
    "EngineConfig",
    "dispatch",
    # Scheduling
    "SRSConfig",
    "SRSScheduler",
    "LearnedItemStore",
    "due_items",
    # Progression
    "ProgressionStateMachine",
    "Decision",
    "PASS_THRESHOLD",
    "SectionScore",
    "score_run",
    "next_lesson",
    "Recommendation",
    "Reason",
    # Mistakes
    "MistakeArchive",
    "MISTAKE_ARCHIVE_LIMIT",
    # Data models
    "LearnedItem",
    "Lesson",
    "Topic",
    "TopicCategory",
    "LearningRoadmap",
    "ErrorRecord",
    "LearnerProfile",
    "LearnerState",
    "ProgressionState",
    "Phase",
    "ProficiencyLevel",
    "SectionKind",
    "DEFAULT_SECTION_SEQUENCE",
    # Boundaries
    "Clock",
    "SystemClock",
    "StateRepository",
    "JsonStateStore",
    "InMemoryStateStore",
    "ContentGenerator",
    "ContentRequest",
    "SectionContent",
    "Exercise",
    "VocabularyWord",
    # Errors
    "ProgressionError",
    "ContentGenerationFailed",
    "DesynchronizedStateError",
    "LessonNotFoundError",
    "PersistenceError",
]
