"""
Stage-based Spaced Repetition Scheduler.

Each vocabulary item sits on a learning stage. Stages map to review
intervals through a configurable, monotone interval table:

    stage 0 -> due the same day (freshly failed or never known)
    stage 1 -> 1 day
    stage 2 -> 3 days
    ...
    max_stage -> the longest interval

A correct repetition moves the item one stage up (capped at max_stage).
Any incorrect repetition drops it straight back to stage 0.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from loguru import logger

from .clock import ensure_aware
from .models import LearnedItem, make_item_id

DEFAULT_INTERVAL_DAYS: tuple[int, ...] = (0, 1, 3, 7, 14, 30, 60)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class SRSConfig:
    """Review interval table, indexed by learning stage."""

    interval_days: tuple[int, ...] = DEFAULT_INTERVAL_DAYS

    def __post_init__(self):
        if not self.interval_days:
            raise ValueError("interval_days must contain at least one stage")
        if any(days < 0 for days in self.interval_days):
            raise ValueError("interval_days must not contain negative intervals")
        if any(b < a for a, b in zip(self.interval_days, self.interval_days[1:])):
            raise ValueError("interval_days must be non-decreasing")

    @property
    def max_stage(self) -> int:
        return len(self.interval_days) - 1

    def interval(self, stage: int) -> timedelta:
        """Review interval for a stage, clamped into the table."""
        stage = min(max(stage, 0), self.max_stage)
        return timedelta(days=self.interval_days[stage])


# =============================================================================
# Item Store
# =============================================================================


class LearnedItemStore:
    """
    In-memory collection of retention records keyed by item id.

    Wraps a copy of the learner's id-keyed mapping; upserting the same
    record twice leaves the store unchanged.
    """

    def __init__(self, items: dict[str, LearnedItem] | None = None):
        self._items: dict[str, LearnedItem] = dict(items or {})

    def get(self, item_id: str) -> LearnedItem | None:
        return self._items.get(item_id)

    def get_by_word(self, target_language: str, word: str) -> LearnedItem | None:
        return self._items.get(make_item_id(target_language, word))

    def upsert(self, item: LearnedItem) -> None:
        self._items[item.id] = item

    def values(self) -> list[LearnedItem]:
        return list(self._items.values())

    def to_dict(self) -> dict[str, LearnedItem]:
        return dict(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LearnedItem]:
        return iter(self._items.values())


# =============================================================================
# Scheduler
# =============================================================================


class SRSScheduler:
    """Turns a repetition outcome into an updated retention record."""

    def __init__(self, config: SRSConfig | None = None):
        self.config = config or SRSConfig()

    @property
    def max_stage(self) -> int:
        return self.config.max_stage

    def next_stage(self, old_stage: int, correct: bool) -> int:
        if not correct:
            return 0
        return min(old_stage + 1, self.max_stage)

    def apply_outcome(
        self,
        item: LearnedItem | None,
        correct: bool,
        now: datetime,
        *,
        word: str,
        target_language: str,
        translation: str = "",
        example_sentence: str | None = None,
    ) -> LearnedItem:
        """
        Apply one repetition outcome.

        Args:
            item: Existing record, or None for a word never reviewed
            correct: Whether the learner knew the word
            now: Instant of the repetition
            word: The word as shown to the learner
            target_language: Language the word belongs to
            translation: Translation, used for new records or to fill a blank one
            example_sentence: Optional example, same rule as translation

        Returns:
            The updated (or newly created) LearnedItem
        """
        now = ensure_aware(now)
        old_stage = item.learning_stage if item is not None else 0
        new_stage = self.next_stage(old_stage, correct)
        due_at = now + self.config.interval(new_stage)

        if item is None:
            updated = LearnedItem(
                id=make_item_id(target_language, word),
                word=word.strip(),
                translation=translation,
                target_language=target_language,
                example_sentence=example_sentence,
                learning_stage=new_stage,
                last_reviewed_at=now,
                next_review_due_at=due_at,
            )
        else:
            updated = replace(
                item,
                translation=item.translation or translation,
                example_sentence=item.example_sentence or example_sentence,
                learning_stage=new_stage,
                last_reviewed_at=now,
                next_review_due_at=due_at,
            )

        logger.debug(
            f"SRS {updated.id}: stage {old_stage} -> {new_stage} "
            f"({'correct' if correct else 'incorrect'}), due {due_at.isoformat()}"
        )
        return updated

    def review(
        self,
        store: LearnedItemStore,
        word: str,
        target_language: str,
        correct: bool,
        now: datetime,
        translation: str = "",
        example_sentence: str | None = None,
    ) -> LearnedItem:
        """Apply an outcome and upsert the result into the store."""
        updated = self.apply_outcome(
            store.get_by_word(target_language, word),
            correct,
            now,
            word=word,
            target_language=target_language,
            translation=translation,
            example_sentence=example_sentence,
        )
        store.upsert(updated)
        return updated


# =============================================================================
# Queries
# =============================================================================


def due_items(items: Iterable[LearnedItem], now: datetime) -> list[LearnedItem]:
    """All items whose due instant has passed. No particular order."""
    now = ensure_aware(now)
    return [item for item in items if item.next_review_due_at <= now]


def new_items(items: Iterable[LearnedItem]) -> list[LearnedItem]:
    """Items sitting on stage 0 (failed or not yet known)."""
    return [item for item in items if item.learning_stage == 0]


def stage_histogram(items: Iterable[LearnedItem]) -> dict[int, int]:
    """Count of items per learning stage."""
    return dict(sorted(Counter(item.learning_stage for item in items).items()))
