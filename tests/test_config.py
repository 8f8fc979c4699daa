"""Tests für das Konfigurationssystem der Planungs-Engine."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.schema import (
    ApiConfig,
    EngineConfig,
    LoggingConfig,
    PlanningConfig,
    ProgressConfig,
)
from config.defaults import API_ACTIONS, STATUS_ALIASES, default_engine_config
from config.manager import ConfigManager
from models.session import LifecycleState


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_engine_config_valid(self):
        """Vollständige Default-Config ist valide."""
        config = default_engine_config()
        assert config.school_name == "Muster-Schule"
        assert config.api.base_url == ""
        assert config.planning.scheme_load_soft_timeout_seconds == 60
        assert config.planning.exclude_existing is True
        assert config.planning.fallback_window_days == 5

    def test_default_progress_bands(self):
        """Fortschrittsbänder 80 % / 50 %."""
        config = default_engine_config()
        assert config.progress.good_threshold == 80
        assert config.progress.caution_threshold == 50

    def test_status_aliases_cover_all_states(self):
        """Jeder Lebenszyklus-Zustand ist über mindestens einen Alias erreichbar."""
        assert set(STATUS_ALIASES.values()) == set(LifecycleState)

    def test_pending_review_is_planned(self):
        assert STATUS_ALIASES["pending review"] == LifecycleState.PLANNED

    def test_api_actions(self):
        assert API_ACTIONS["schemes"] == "getApprovedSchemesForLessonPlanning"
        assert API_ACTIONS["create_bulk"] == "createBulkSchemeLessonPlans"


# ─── PYDANTIC-VALIDIERUNG ─────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_caution_above_good_raises(self):
        """caution_threshold > good_threshold → ValidationError."""
        with pytest.raises(ValidationError):
            ProgressConfig(good_threshold=50, caution_threshold=60)

    def test_equal_thresholds_allowed(self):
        pc = ProgressConfig(good_threshold=70, caution_threshold=70)
        assert pc.good_threshold == pc.caution_threshold

    def test_threshold_above_100_raises(self):
        with pytest.raises(ValidationError):
            ProgressConfig(good_threshold=120)

    def test_window_days_range(self):
        """Fallback-Fenster: 1 bis 7 Tage."""
        with pytest.raises(ValidationError):
            PlanningConfig(fallback_window_days=0)
        with pytest.raises(ValidationError):
            PlanningConfig(fallback_window_days=8)
        assert PlanningConfig(fallback_window_days=7).fallback_window_days == 7

    def test_soft_timeout_minimum(self):
        with pytest.raises(ValidationError):
            PlanningConfig(scheme_load_soft_timeout_seconds=0.5)

    def test_request_timeout_positive(self):
        with pytest.raises(ValidationError):
            ApiConfig(request_timeout_seconds=0)

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            LoggingConfig(level="VERBOSE")

    def test_nested_dict_validation(self):
        """Verschachtelte Dicts (wie aus YAML) werden korrekt validiert."""
        config = EngineConfig.model_validate({
            "api": {"base_url": "https://example.test/exec", "teacher_email": "a@b.c"},
            "progress": {"good_threshold": 90, "caution_threshold": 40},
        })
        assert config.api.teacher_email == "a@b.c"
        assert config.progress.good_threshold == 90
        assert config.planning.fallback_window_days == 5


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Config speichern, laden und validieren — vollständiger Roundtrip."""
        config = default_engine_config()
        config = config.model_copy(update={"api": ApiConfig(
            base_url="https://example.test/exec",
            teacher_email="lehrer@schule.example",
            teacher_name="Eva Weber",
        )})
        mgr = ConfigManager(tmp_path / "engine_config.yaml")

        written = mgr.save(config)
        assert written == mgr.path
        assert mgr.path.exists()

        loaded = mgr.load()
        assert loaded.api.base_url == "https://example.test/exec"
        assert loaded.api.teacher_name == "Eva Weber"
        assert loaded.progress.good_threshold == 80

    def test_saved_file_has_section_comments(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "engine_config.yaml")
        mgr.save(default_engine_config())
        text = mgr.path.read_text(encoding="utf-8")
        assert "Engine-Konfiguration" in text
        assert "─── Fortschritt ───" in text
        assert "# Weiches Lade-Timeout (Sekunden)" in text

    def test_first_run_check_no_file(self, tmp_path: Path):
        """first_run_check gibt True zurück wenn keine Config existiert."""
        mgr = ConfigManager(tmp_path / "nonexistent.yaml")
        assert mgr.first_run_check() is True

    def test_first_run_check_with_file(self, tmp_path: Path):
        """first_run_check gibt False zurück wenn Config existiert."""
        mgr = ConfigManager(tmp_path / "engine_config.yaml")
        mgr.save(default_engine_config())
        assert mgr.first_run_check() is False

    def test_load_nonexistent_raises(self, tmp_path: Path):
        """Laden einer nicht-existenten Datei → FileNotFoundError."""
        mgr = ConfigManager()
        with pytest.raises(FileNotFoundError):
            mgr.load(tmp_path / "not_there.yaml")

    def test_load_invalid_raises_value_error(self, tmp_path: Path):
        """Ungültige Werte → ValueError mit Pydantic-Details."""
        path = tmp_path / "bad.yaml"
        path.write_text(
            "progress:\n  good_threshold: 40\n  caution_threshold: 60\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="ungültig"):
            ConfigManager().load(path)

    def test_load_or_default_without_file(self, tmp_path: Path):
        mgr = ConfigManager(tmp_path / "missing.yaml")
        config = mgr.load_or_default()
        assert config.school_name == "Muster-Schule"
