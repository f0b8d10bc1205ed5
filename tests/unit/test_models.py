"""
Unit tests for the learner data model.
"""

import pytest

from src.progression.models import (
    LearningRoadmap,
    Lesson,
    ProgressionState,
    SectionKind,
    Topic,
    TopicCategory,
    make_item_id,
    normalize_word,
)


class TestItemIds:
    def test_make_item_id(self):
        assert make_item_id("German", "Guten  Morgen ") == "german_guten morgen"

    def test_empty_word_rejected(self):
        with pytest.raises(ValueError):
            normalize_word("   ")

    def test_empty_language_rejected(self):
        with pytest.raises(ValueError):
            make_item_id(" ", "Apfel")


class TestRoadmapParsing:
    def test_hand_written_roadmap(self):
        roadmap = LearningRoadmap.from_dict(
            {
                "introduction": "Hi",
                "lessons": [
                    {
                        "id": 1,
                        "level": "A1",
                        "title": "Basics",
                        "topics": ["Alphabet", {"title": "Articles", "category": "grammar"}],
                        "estimatedDuration": "30 min",
                        "sections": ["grammar", "new_words"],
                    }
                ],
            }
        )

        lesson = roadmap.lessons[0]
        assert lesson.id == "1"
        assert lesson.topics == (Topic("Alphabet"), Topic("Articles", TopicCategory.GRAMMAR))
        assert lesson.estimated_duration == "30 min"
        assert lesson.sections == (SectionKind.GRAMMAR, SectionKind.NEW_WORDS)
        assert roadmap.conclusion is None

    def test_unknown_section_rejected(self):
        with pytest.raises(ValueError):
            Lesson.from_dict({"id": "L1", "sections": ["cooking"]})

    def test_get_lesson(self, sample_roadmap):
        assert sample_roadmap.get_lesson("L2").title == "At the bakery"
        assert sample_roadmap.get_lesson("L9") is None
        assert sample_roadmap.lesson_ids == ["L1", "L2", "L3"]


class TestProgressionState:
    @pytest.mark.parametrize(
        "state, label",
        [
            (ProgressionState.idle(), "Idle"),
            (ProgressionState.in_section("L1", SectionKind.GRAMMAR, (SectionKind.GRAMMAR,)), "InSection(L1, grammar)"),
            (ProgressionState.lesson_complete("L1"), "LessonComplete(L1)"),
            (ProgressionState.all_complete(), "AllComplete"),
        ],
    )
    def test_describe(self, state, label):
        assert state.describe() == label
        assert ProgressionState.from_dict(state.to_dict()) == state

    def test_display_name(self):
        assert SectionKind.NEW_WORDS.display_name == "New Words"
