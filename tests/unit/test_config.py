"""
Unit tests for settings loading.
"""

import pytest
from pydantic import ValidationError

from config import Settings
from src.progression.models import SectionKind


class TestSettings:
    def test_defaults_build_engine_config(self):
        config = Settings(_env_file=None).get_engine_config()

        assert config.srs.max_stage == 6
        assert config.pass_threshold == 70.0
        assert config.mistake_archive_limit == 50
        assert config.section_sequence[0] == SectionKind.THEORY

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STATE_DIR", str(tmp_path))
        monkeypatch.setenv("PASS_THRESHOLD", "80")
        monkeypatch.setenv("SRS_INTERVAL_DAYS", "[0, 2, 5]")

        settings = Settings(_env_file=None)

        assert settings.state_dir == tmp_path
        assert settings.get_engine_config().srs.max_stage == 2
        assert settings.get_engine_config().pass_threshold == 80.0

    def test_decreasing_intervals_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, srs_interval_days=[0, 5, 1])

    def test_threshold_out_of_range(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, pass_threshold=120)
