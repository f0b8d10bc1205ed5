"""Bounded archive of recent learner mistakes."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from datetime import datetime
from uuid import uuid4

from .models import ErrorRecord

MISTAKE_ARCHIVE_LIMIT = 50


class MistakeArchive:
    """
    FIFO-bounded log of error records, oldest first.

    Presentation layers wanting newest-first reverse on read (newest_first),
    never on write, so the stored order stays stable.
    """

    def __init__(self, entries: Iterable[ErrorRecord] = (), limit: int = MISTAKE_ARCHIVE_LIMIT):
        if limit < 1:
            raise ValueError("archive limit must be positive")
        self.limit = limit
        self._entries: deque[ErrorRecord] = deque(entries, maxlen=limit)

    def append(self, entry: ErrorRecord) -> None:
        # deque(maxlen) drops from the left once full
        self._entries.append(entry)

    def list(self) -> list[ErrorRecord]:
        return list(self._entries)

    def newest_first(self) -> list[ErrorRecord]:
        return list(reversed(self._entries))

    def clear(self) -> None:
        self._entries.clear()

    def summary(self) -> str:
        """Past errors as the text block handed to the content generator."""
        if not self._entries:
            return "No past errors recorded."
        return "\n".join(
            f"Module: {e.module}, Context: {e.context or 'N/A'}, "
            f"User attempt: {e.user_attempt}, Correct: {e.correct_answer or 'N/A'}"
            for e in self._entries
        )

    def __len__(self) -> int:
        return len(self._entries)


def new_error_record(
    module: str,
    context: str,
    user_attempt: str,
    occurred_at: datetime,
    correct_answer: str | None = None,
) -> ErrorRecord:
    """Create an ErrorRecord with a fresh id."""
    return ErrorRecord(
        id=uuid4().hex,
        module=module,
        context=context,
        user_attempt=user_attempt,
        correct_answer=correct_answer,
        occurred_at=occurred_at,
    )
