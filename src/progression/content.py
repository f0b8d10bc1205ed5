"""
Content generator boundary.

The generator is an external collaborator: given a section kind, a topic,
a level and the learner profile it returns typed lesson material. Its
prompt logic is out of scope; only its output shape is checked here.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ContentGenerationFailed
from .models import LearnerProfile, Lesson, SectionKind, TopicCategory


# ========================================
# Content Models
# ========================================


class VocabularyWord(BaseModel):
    """A word introduced by vocabulary-type sections."""

    model_config = ConfigDict(populate_by_name=True)

    word: str
    translation: str = ""
    example_sentence: str | None = Field(default=None, alias="exampleSentence")


class Exercise(BaseModel):
    """One task of a generated exercise set."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    correct_answer: str = Field(alias="correctAnswer")
    options: list[str] = Field(default_factory=list)
    explanation: str | None = None


class SectionContent(BaseModel):
    """Material for one section of a lesson."""

    section: SectionKind
    topic: str
    level: str
    title: str = ""
    explanation: str = ""
    exercises: list[Exercise] = Field(default_factory=list)
    words: list[VocabularyWord] = Field(default_factory=list)


class ContentRequest(BaseModel):
    """Everything a generator is told about the learner and the task."""

    section: SectionKind
    topic: str
    level: str
    profile: LearnerProfile | None = None
    past_errors: str = "No past errors recorded."


# ========================================
# Generator Boundary
# ========================================


class ContentGenerator(Protocol):
    """Produces section material; any exception counts as a failure."""

    def generate(self, request: ContentRequest) -> SectionContent: ...


def generate_content(generator: ContentGenerator, request: ContentRequest) -> SectionContent:
    """
    Call the generator and normalize its failures.

    Raises:
        ContentGenerationFailed: On any generator error or malformed output
    """
    try:
        content = generator.generate(request)
        if not isinstance(content, SectionContent):
            content = SectionContent.model_validate(content)
    except ContentGenerationFailed:
        raise
    except Exception as e:
        logger.warning(f"Content generation failed for {request.section.value}/{request.topic}: {e}")
        raise ContentGenerationFailed(request.section.value, request.topic, e) from e
    return content


_SECTION_TOPIC_CATEGORIES: dict[SectionKind, TopicCategory] = {
    SectionKind.GRAMMAR: TopicCategory.GRAMMAR,
    SectionKind.THEORY: TopicCategory.GRAMMAR,
    SectionKind.VOCABULARY: TopicCategory.VOCABULARY,
    SectionKind.NEW_WORDS: TopicCategory.VOCABULARY,
    SectionKind.REPETITION: TopicCategory.VOCABULARY,
    SectionKind.PRACTICE: TopicCategory.VOCABULARY,
    SectionKind.READING: TopicCategory.READING,
    SectionKind.LISTENING: TopicCategory.LISTENING,
    SectionKind.WRITING: TopicCategory.WRITING,
    SectionKind.SPEAKING: TopicCategory.SPEAKING,
    SectionKind.PHONETICS: TopicCategory.PHONETICS,
}


def topic_for_section(lesson: Lesson, section: SectionKind) -> str:
    """Pick the lesson topic tagged for a section, falling back to the first topic or title."""
    wanted = _SECTION_TOPIC_CATEGORIES.get(section)
    for topic in lesson.topics:
        if topic.category == wanted:
            return topic.title
    if lesson.topics:
        return lesson.topics[0].title
    return lesson.title
