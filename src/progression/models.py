"""
Data model for learner progression.

Everything a learner owns lives in one LearnerState document:
- LearnedItem: vocabulary retention record under spaced repetition
- LearningRoadmap / Lesson / Topic: the ordered curriculum
- ErrorRecord: an archived mistake
- ProgressionState: where the learner currently is inside a lesson

Records are dataclasses with to_dict()/from_dict() for JSON persistence.
Instants are timezone-aware UTC datetimes stored as ISO-8601 strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .clock import ensure_aware

SCHEMA_VERSION = 1


# =============================================================================
# Enums
# =============================================================================


class SectionKind(str, Enum):
    """Kind of exercise section inside a lesson."""

    THEORY = "theory"
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"
    NEW_WORDS = "new_words"
    REPETITION = "repetition"
    PHONETICS = "phonetics"
    READING = "reading"
    LISTENING = "listening"
    SPEAKING = "speaking"
    WRITING = "writing"
    PRACTICE = "practice"

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()


DEFAULT_SECTION_SEQUENCE: tuple[SectionKind, ...] = (
    SectionKind.THEORY,
    SectionKind.GRAMMAR,
    SectionKind.VOCABULARY,
    SectionKind.NEW_WORDS,
    SectionKind.REPETITION,
    SectionKind.PHONETICS,
    SectionKind.READING,
    SectionKind.LISTENING,
    SectionKind.SPEAKING,
    SectionKind.WRITING,
    SectionKind.PRACTICE,
)


class TopicCategory(str, Enum):
    """Category tag attached to a lesson topic at generation time."""

    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"
    READING = "reading"
    LISTENING = "listening"
    WRITING = "writing"
    SPEAKING = "speaking"
    PHONETICS = "phonetics"
    CULTURE = "culture"
    OTHER = "other"


class ProficiencyLevel(str, Enum):
    """Coarse CEFR band chosen at onboarding."""

    BEGINNER = "A1-A2"
    INTERMEDIATE = "B1-B2"
    ADVANCED = "C1-C2"


class Phase(str, Enum):
    """Phase of the progression state machine."""

    IDLE = "idle"
    IN_SECTION = "in_section"
    LESSON_COMPLETE = "lesson_complete"
    ALL_COMPLETE = "all_complete"


# =============================================================================
# Helpers
# =============================================================================


def _dt_to_str(moment: datetime) -> str:
    return ensure_aware(moment).isoformat()


def _dt_from_str(raw: str) -> datetime:
    return ensure_aware(datetime.fromisoformat(raw))


def normalize_word(word: str) -> str:
    """Lower-case a word and collapse its whitespace."""
    normalized = " ".join(word.split()).lower()
    if not normalized:
        raise ValueError("word must not be empty")
    return normalized


def make_item_id(target_language: str, word: str) -> str:
    """Deterministic dedup key for a vocabulary item."""
    language = target_language.strip().lower()
    if not language:
        raise ValueError("target_language must not be empty")
    return f"{language}_{normalize_word(word)}"


# =============================================================================
# Vocabulary
# =============================================================================


@dataclass(frozen=True)
class LearnedItem:
    """A vocabulary unit under spaced repetition."""

    id: str
    word: str
    translation: str
    target_language: str
    learning_stage: int
    last_reviewed_at: datetime
    next_review_due_at: datetime
    example_sentence: str | None = None

    def is_due(self, now: datetime) -> bool:
        """Eligible for review once the due instant has passed."""
        return ensure_aware(now) >= self.next_review_due_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "target_language": self.target_language,
            "example_sentence": self.example_sentence,
            "learning_stage": self.learning_stage,
            "last_reviewed_at": _dt_to_str(self.last_reviewed_at),
            "next_review_due_at": _dt_to_str(self.next_review_due_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearnedItem:
        return cls(
            id=data["id"],
            word=data["word"],
            translation=data.get("translation", ""),
            target_language=data["target_language"],
            example_sentence=data.get("example_sentence"),
            learning_stage=int(data["learning_stage"]),
            last_reviewed_at=_dt_from_str(data["last_reviewed_at"]),
            next_review_due_at=_dt_from_str(data["next_review_due_at"]),
        )


# =============================================================================
# Curriculum
# =============================================================================


@dataclass(frozen=True)
class Topic:
    """A topic covered by a lesson."""

    title: str
    category: TopicCategory = TopicCategory.OTHER

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "category": self.category.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> Topic:
        # Plain strings are accepted for roadmaps written by hand
        if isinstance(data, str):
            return cls(title=data)
        return cls(
            title=data["title"],
            category=TopicCategory(data.get("category", TopicCategory.OTHER.value)),
        )


@dataclass(frozen=True)
class Lesson:
    """An ordered unit of curriculum content."""

    id: str
    level: str
    title: str
    description: str = ""
    topics: tuple[Topic, ...] = ()
    estimated_duration: str | None = None
    sections: tuple[SectionKind, ...] = ()  # kinds instantiated by the generator

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "level": self.level,
            "title": self.title,
            "description": self.description,
            "topics": [topic.to_dict() for topic in self.topics],
            "estimated_duration": self.estimated_duration,
            "sections": [section.value for section in self.sections],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Lesson:
        return cls(
            id=str(data["id"]),
            level=data.get("level", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            topics=tuple(Topic.from_dict(t) for t in data.get("topics", [])),
            estimated_duration=data.get("estimated_duration", data.get("estimatedDuration")),
            sections=tuple(SectionKind(s) for s in data.get("sections", [])),
        )


@dataclass(frozen=True)
class LearningRoadmap:
    """The ordered curriculum assigned to a learner."""

    introduction: str = ""
    lessons: tuple[Lesson, ...] = ()
    conclusion: str | None = None

    def get_lesson(self, lesson_id: str) -> Lesson | None:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    @property
    def lesson_ids(self) -> list[str]:
        return [lesson.id for lesson in self.lessons]

    def to_dict(self) -> dict[str, Any]:
        return {
            "introduction": self.introduction,
            "lessons": [lesson.to_dict() for lesson in self.lessons],
            "conclusion": self.conclusion,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningRoadmap:
        return cls(
            introduction=data.get("introduction", ""),
            lessons=tuple(Lesson.from_dict(lesson) for lesson in data.get("lessons", [])),
            conclusion=data.get("conclusion"),
        )


# =============================================================================
# Mistakes
# =============================================================================


@dataclass(frozen=True)
class ErrorRecord:
    """A single archived mistake."""

    id: str
    module: str
    context: str
    user_attempt: str
    occurred_at: datetime
    correct_answer: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "module": self.module,
            "context": self.context,
            "user_attempt": self.user_attempt,
            "correct_answer": self.correct_answer,
            "occurred_at": _dt_to_str(self.occurred_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorRecord:
        return cls(
            id=data["id"],
            module=data["module"],
            context=data.get("context", ""),
            user_attempt=data.get("user_attempt", ""),
            correct_answer=data.get("correct_answer"),
            occurred_at=_dt_from_str(data["occurred_at"]),
        )


# =============================================================================
# Learner
# =============================================================================


@dataclass(frozen=True)
class LearnerProfile:
    """Learner settings fed to content generation (never to lesson selection)."""

    target_language: str
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    goal: str = ""
    interface_language: str = "en"

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_language": self.target_language,
            "proficiency_level": self.proficiency_level.value,
            "goal": self.goal,
            "interface_language": self.interface_language,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearnerProfile:
        return cls(
            target_language=data["target_language"],
            proficiency_level=ProficiencyLevel(
                data.get("proficiency_level", ProficiencyLevel.BEGINNER.value)
            ),
            goal=data.get("goal", ""),
            interface_language=data.get("interface_language", "en"),
        )


@dataclass(frozen=True)
class ProgressionState:
    """Current position of the learner in the progression state machine."""

    phase: Phase = Phase.IDLE
    lesson_id: str | None = None
    section: SectionKind | None = None
    available_sections: tuple[SectionKind, ...] = ()

    @classmethod
    def idle(cls) -> ProgressionState:
        return cls()

    @classmethod
    def in_section(
        cls,
        lesson_id: str,
        section: SectionKind,
        available_sections: tuple[SectionKind, ...],
    ) -> ProgressionState:
        return cls(Phase.IN_SECTION, lesson_id, section, available_sections)

    @classmethod
    def lesson_complete(cls, lesson_id: str) -> ProgressionState:
        return cls(Phase.LESSON_COMPLETE, lesson_id)

    @classmethod
    def all_complete(cls) -> ProgressionState:
        return cls(Phase.ALL_COMPLETE)

    def describe(self) -> str:
        """Short label used in logs and error messages."""
        if self.phase == Phase.IN_SECTION and self.section is not None:
            return f"InSection({self.lesson_id}, {self.section.value})"
        if self.phase == Phase.LESSON_COMPLETE:
            return f"LessonComplete({self.lesson_id})"
        if self.phase == Phase.ALL_COMPLETE:
            return "AllComplete"
        return "Idle"

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "lesson_id": self.lesson_id,
            "section": self.section.value if self.section else None,
            "available_sections": [s.value for s in self.available_sections],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressionState:
        section = data.get("section")
        return cls(
            phase=Phase(data.get("phase", Phase.IDLE.value)),
            lesson_id=data.get("lesson_id"),
            section=SectionKind(section) if section else None,
            available_sections=tuple(SectionKind(s) for s in data.get("available_sections", [])),
        )


@dataclass(frozen=True)
class LearnerState:
    """
    The single persisted document per learner.

    Treated as immutable: the reducer builds a new instance for every
    mutation, so dict/list fields must be copied before they are changed.
    """

    learner_id: str
    profile: LearnerProfile | None = None
    roadmap: LearningRoadmap | None = None
    completed_lesson_ids: tuple[str, ...] = ()
    learned_items: dict[str, LearnedItem] = field(default_factory=dict)
    mistakes: tuple[ErrorRecord, ...] = ()
    position: ProgressionState = field(default_factory=ProgressionState)
    practice_sets_completed: int = 0
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def empty(cls, learner_id: str) -> LearnerState:
        """Initial state for a learner with nothing persisted yet."""
        return cls(learner_id=learner_id)

    @property
    def completed(self) -> frozenset[str]:
        return frozenset(self.completed_lesson_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "learner_id": self.learner_id,
            "profile": self.profile.to_dict() if self.profile else None,
            "roadmap": self.roadmap.to_dict() if self.roadmap else None,
            "completed_lesson_ids": list(self.completed_lesson_ids),
            "learned_items": {item_id: item.to_dict() for item_id, item in self.learned_items.items()},
            "mistakes": [record.to_dict() for record in self.mistakes],
            "position": self.position.to_dict(),
            "practice_sets_completed": self.practice_sets_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearnerState:
        version = int(data.get("schema_version", SCHEMA_VERSION))
        if version > SCHEMA_VERSION:
            raise ValueError(f"State schema version {version} is newer than supported {SCHEMA_VERSION}")

        profile = data.get("profile")
        roadmap = data.get("roadmap")
        return cls(
            learner_id=data["learner_id"],
            profile=LearnerProfile.from_dict(profile) if profile else None,
            roadmap=LearningRoadmap.from_dict(roadmap) if roadmap else None,
            completed_lesson_ids=tuple(data.get("completed_lesson_ids", [])),
            learned_items={
                item_id: LearnedItem.from_dict(item)
                for item_id, item in data.get("learned_items", {}).items()
            },
            mistakes=tuple(ErrorRecord.from_dict(r) for r in data.get("mistakes", [])),
            position=ProgressionState.from_dict(data.get("position", {})),
            practice_sets_completed=int(data.get("practice_sets_completed", 0)),
            schema_version=SCHEMA_VERSION,
        )
