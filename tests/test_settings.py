"""Tests for application settings."""

from __future__ import annotations

from pathlib import Path

from mealgen.config.settings import Settings, get_settings, reload_settings


class TestSettings:
    """Tests for Settings load/save."""

    def test_defaults_when_missing(self, tmp_path):
        settings = Settings.load(tmp_path / "config.yaml")
        assert settings.generation.locale == "nl"
        assert settings.generation.enforce_guardrails is True
        assert settings.logging.level == "WARNING"
        assert settings.defaults.output_format == "table"
        assert settings.sources.config_path.name == "generator.yaml"

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.yaml"
        settings = Settings()
        settings.sources.config_path = tmp_path / "snap.yaml"
        settings.generation.locale = "en"
        settings.generation.sanity_check = False
        settings.generation.default_seed = 12
        settings.logging.level = "info"
        settings.defaults.output_format = "json"
        settings.save(path)

        loaded = Settings.load(path)
        assert loaded.sources.config_path == tmp_path / "snap.yaml"
        assert loaded.generation.locale == "en"
        assert loaded.generation.sanity_check is False
        assert loaded.generation.default_seed == 12
        assert loaded.logging.level == "INFO"
        assert loaded.defaults.output_format == "json"

    def test_partial_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("generation:\n  enforce_guardrails: false\nlogging:\n")
        settings = Settings.load(path)
        assert settings.generation.enforce_guardrails is False
        assert settings.generation.locale == "nl"
        assert settings.logging.level == "WARNING"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Settings.load(path).to_dict() == Settings().to_dict()

    def test_config_path_expanduser(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("sources:\n  config_path: ~/snapshots/gen.yaml\n")
        assert Settings.load(path).sources.config_path == Path.home() / "snapshots" / "gen.yaml"

    def test_reload_settings(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("defaults:\n  output_format: markdown\n")
        settings = reload_settings(path)
        assert settings.defaults.output_format == "markdown"
        assert get_settings() is settings
        reload_settings(tmp_path / "missing.yaml")
