"""
Unit tests for learner state persistence.
"""

import json

import pytest

from src.progression.exceptions import PersistenceError
from src.progression.models import SCHEMA_VERSION, LearnerState
from src.progression.reducer import BeginLesson, RecordMistake, SetProfile, SetRoadmap, SubmitRepetition, dispatch
from src.progression.mistakes import new_error_record
from src.progression.state_store import InMemoryStateStore, JsonStateStore


@pytest.fixture
def json_store(tmp_path):
    return JsonStateStore(tmp_path / "learners")


@pytest.fixture
def rich_state(sample_profile, sample_roadmap, t0):
    """A state with something in every field."""
    state = LearnerState.empty("anna")
    for command in (
        SetProfile(sample_profile),
        SetRoadmap(sample_roadmap),
        SubmitRepetition("Apfel", "German", True, translation="apple", example_sentence="Ich esse einen Apfel."),
        RecordMistake(new_error_record("grammar", "ich ___ müde", "bist", t0, correct_answer="bin")),
        BeginLesson("L1"),
    ):
        state, _ = dispatch(state, command, t0)
    return state


class TestJsonStateStore:
    def test_missing_learner_loads_none(self, json_store):
        assert json_store.load("nobody") is None

    def test_save_and_load(self, json_store, rich_state):
        json_store.save("anna", rich_state)
        assert json_store.load("anna") == rich_state

    def test_document_is_plain_json(self, json_store, rich_state):
        json_store.save("anna", rich_state)
        data = json.loads(json_store.path_for("anna").read_text(encoding="utf-8"))

        assert data["schema_version"] == SCHEMA_VERSION
        assert data["position"]["phase"] == "in_section"
        assert "german_apfel" in data["learned_items"]

    def test_no_temp_files_left(self, json_store, rich_state):
        json_store.save("anna", rich_state)
        json_store.save("anna", rich_state)
        assert [p.name for p in json_store.state_dir.iterdir()] == ["anna.json"]

    def test_corrupt_document_raises(self, json_store):
        json_store.path_for("anna").write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc_info:
            json_store.load("anna")
        assert exc_info.value.operation == "load"

    def test_newer_schema_rejected(self, json_store, rich_state):
        data = rich_state.to_dict()
        data["schema_version"] = SCHEMA_VERSION + 1
        json_store.path_for("anna").write_text(json.dumps(data), encoding="utf-8")

        with pytest.raises(PersistenceError):
            json_store.load("anna")

    @pytest.mark.parametrize("learner_id", ["../escape", "a/b", "", ".."])
    def test_unsafe_ids_rejected(self, json_store, learner_id):
        with pytest.raises(ValueError):
            json_store.path_for(learner_id)

    def test_list_and_delete(self, json_store, rich_state):
        json_store.save("anna", rich_state)
        json_store.save("ben", LearnerState.empty("ben"))

        assert json_store.list_learners() == ["anna", "ben"]
        assert json_store.delete("ben") is True
        assert json_store.delete("ben") is False
        assert json_store.list_learners() == ["anna"]


class TestInMemoryStateStore:
    def test_round_trip(self, rich_state):
        store = InMemoryStateStore()
        store.save("anna", rich_state)

        assert "anna" in store
        assert store.load("anna") == rich_state
        assert store.load("ben") is None
