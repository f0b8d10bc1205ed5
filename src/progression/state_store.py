"""
Whole-document persistence for learner state.

Each learner is one JSON document: ~/.lingua/learners/{learner_id}.json
A missing document is not an error; it means a fresh learner.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from loguru import logger

from .exceptions import PersistenceError
from .models import LearnerState

DEFAULT_STATE_DIR = Path.home() / ".lingua" / "learners"

_SAFE_ID = re.compile(r"^[A-Za-z0-9._@-]+$")


class StateRepository(Protocol):
    """Load/save boundary of the engine."""

    def load(self, learner_id: str) -> LearnerState | None: ...

    def save(self, learner_id: str, state: LearnerState) -> None: ...


class JsonStateStore:
    """
    JSON-file backed state persistence.

    Writes go to a temporary file that replaces the document, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, state_dir: Path | None = None):
        self.state_dir = Path(state_dir) if state_dir else DEFAULT_STATE_DIR
        self.state_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"JsonStateStore initialized at {self.state_dir}")

    def path_for(self, learner_id: str) -> Path:
        if not _SAFE_ID.match(learner_id) or learner_id in (".", ".."):
            raise ValueError(f"Invalid learner id: {learner_id!r}")
        return self.state_dir / f"{learner_id}.json"

    def load(self, learner_id: str) -> LearnerState | None:
        """Load a learner document, or None if the learner has none yet."""
        filepath = self.path_for(learner_id)
        if not filepath.exists():
            logger.debug(f"No state for learner {learner_id}, starting fresh")
            return None

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            return LearnerState.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(learner_id, "load", e) from e

    def save(self, learner_id: str, state: LearnerState) -> None:
        """Replace the learner document with the given state."""
        filepath = self.path_for(learner_id)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.state_dir, prefix=f".{learner_id}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(state.to_dict(), f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, filepath)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(learner_id, "save", e) from e
        logger.debug(f"Saved state for learner {learner_id} to {filepath}")

    def delete(self, learner_id: str) -> bool:
        """Delete a learner document."""
        filepath = self.path_for(learner_id)
        if filepath.exists():
            filepath.unlink()
            return True
        return False

    def list_learners(self) -> list[str]:
        return sorted(p.stem for p in self.state_dir.glob("*.json"))


class InMemoryStateStore:
    """Dict-backed repository, used by tests and embedding callers."""

    def __init__(self):
        self._documents: dict[str, dict] = {}

    def load(self, learner_id: str) -> LearnerState | None:
        data = self._documents.get(learner_id)
        if data is None:
            return None
        return LearnerState.from_dict(data)

    def save(self, learner_id: str, state: LearnerState) -> None:
        # Stored as a plain document so callers cannot alias live state
        self._documents[learner_id] = json.loads(json.dumps(state.to_dict()))

    def __contains__(self, learner_id: object) -> bool:
        return learner_id in self._documents
