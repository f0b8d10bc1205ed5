"""
Unit tests for the stage-based spaced repetition scheduler.
"""

from datetime import UTC, datetime, timedelta

import pytest

from src.progression.srs import (
    DEFAULT_INTERVAL_DAYS,
    LearnedItemStore,
    SRSConfig,
    SRSScheduler,
    due_items,
    new_items,
    stage_histogram,
)

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def scheduler():
    return SRSScheduler()


class TestSRSConfig:
    def test_default_table(self):
        config = SRSConfig()
        assert config.interval_days == DEFAULT_INTERVAL_DAYS
        assert config.max_stage == 6

    def test_interval_clamped_to_table(self):
        config = SRSConfig((0, 1, 3))
        assert config.interval(2) == timedelta(days=3)
        assert config.interval(10) == timedelta(days=3)
        assert config.interval(-1) == timedelta(0)

    @pytest.mark.parametrize("table", [(), (0, -1), (0, 3, 1)])
    def test_invalid_tables_rejected(self, table):
        with pytest.raises(ValueError):
            SRSConfig(table)


class TestStageTransitions:
    def test_new_word_correct_starts_on_stage_one(self, scheduler):
        item = scheduler.apply_outcome(None, True, NOW, word="Apfel", target_language="German")

        assert item.id == "german_apfel"
        assert item.learning_stage == 1
        assert item.next_review_due_at == NOW + timedelta(days=1)

    def test_new_word_incorrect_starts_on_stage_zero(self, scheduler):
        item = scheduler.apply_outcome(None, False, NOW, word="Apfel", target_language="German")

        assert item.learning_stage == 0
        assert item.next_review_due_at == NOW

    def test_stage_capped_at_max(self, scheduler):
        item = scheduler.apply_outcome(None, True, NOW, word="Haus", target_language="German")
        for _ in range(10):
            item = scheduler.apply_outcome(item, True, NOW, word="Haus", target_language="German")

        assert item.learning_stage == scheduler.max_stage
        assert item.next_review_due_at == NOW + timedelta(days=DEFAULT_INTERVAL_DAYS[-1])

    def test_incorrect_drops_to_zero_from_any_stage(self, scheduler):
        item = scheduler.apply_outcome(None, True, NOW, word="Haus", target_language="German")
        for _ in range(4):
            item = scheduler.apply_outcome(item, True, NOW, word="Haus", target_language="German")
        assert item.learning_stage == 5

        item = scheduler.apply_outcome(item, False, NOW, word="Haus", target_language="German")
        assert item.learning_stage == 0

    def test_existing_translation_kept(self, scheduler):
        item = scheduler.apply_outcome(
            None, True, NOW, word="Apfel", target_language="German", translation="apple"
        )
        item = scheduler.apply_outcome(
            item, True, NOW, word="Apfel", target_language="German", translation="pomme"
        )
        assert item.translation == "apple"

    def test_blank_translation_filled(self, scheduler):
        item = scheduler.apply_outcome(None, True, NOW, word="Apfel", target_language="German")
        item = scheduler.apply_outcome(
            item, True, NOW, word="Apfel", target_language="German", translation="apple"
        )
        assert item.translation == "apple"

    def test_naive_now_treated_as_utc(self, scheduler):
        item = scheduler.apply_outcome(
            None, True, datetime(2024, 3, 1, 9, 0), word="Apfel", target_language="German"
        )
        assert item.last_reviewed_at == NOW


    def test_higher_stage_never_due_earlier(self, scheduler):
        config = scheduler.config
        for stage in range(config.max_stage):
            assert config.interval(stage) <= config.interval(stage + 1)


class TestItemStore:
    def test_review_dedups_by_language_and_word(self, scheduler):
        store = LearnedItemStore()
        scheduler.review(store, "Apfel", "German", True, NOW)
        scheduler.review(store, "  apfel ", "german", True, NOW)

        assert len(store) == 1
        assert store.get("german_apfel").learning_stage == 2

    def test_same_word_in_two_languages_is_two_items(self, scheduler):
        store = LearnedItemStore()
        scheduler.review(store, "chat", "French", True, NOW)
        scheduler.review(store, "chat", "English", False, NOW)

        assert "french_chat" in store
        assert "english_chat" in store

    def test_store_copies_input_mapping(self, scheduler):
        source = {}
        store = LearnedItemStore(source)
        scheduler.review(store, "Apfel", "German", True, NOW)
        assert source == {}

    def test_upsert_same_record_is_idempotent(self, scheduler):
        store = LearnedItemStore()
        item = scheduler.review(store, "Apfel", "German", True, NOW)
        store.upsert(item)
        store.upsert(item)
        assert store.to_dict() == {"german_apfel": item}


class TestQueries:
    def test_due_items_boundary_inclusive(self, scheduler):
        item = scheduler.apply_outcome(None, True, NOW, word="Apfel", target_language="German")
        due_at = item.next_review_due_at

        assert due_items([item], due_at - timedelta(seconds=1)) == []
        assert due_items([item], due_at) == [item]

    def test_new_items_are_stage_zero(self, scheduler):
        known = scheduler.apply_outcome(None, True, NOW, word="Apfel", target_language="German")
        failed = scheduler.apply_outcome(None, False, NOW, word="Birne", target_language="German")

        assert new_items([known, failed]) == [failed]

    def test_stage_histogram(self, scheduler):
        a = scheduler.apply_outcome(None, True, NOW, word="a", target_language="German")
        b = scheduler.apply_outcome(None, True, NOW, word="b", target_language="German")
        c = scheduler.apply_outcome(None, False, NOW, word="c", target_language="German")

        assert stage_histogram([a, b, c]) == {0: 1, 1: 2}
