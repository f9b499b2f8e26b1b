"""Tests for factlens.config.settings."""
from __future__ import annotations

import json

import pytest

from factlens.config import settings as settings_module
from factlens.config.settings import DEFAULT_CONFIG, load_settings


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "factlens_config.json"
    monkeypatch.setattr(settings_module, "CONFIG_FILE", path)
    return path


class TestLoadSettings:
    def test_defaults(self, config_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc123")
        settings = load_settings()
        assert settings.gemini_api_key == "abc123"
        assert settings.standard_model == DEFAULT_CONFIG["standard_model"]
        assert settings.max_pdf_pages == 10
        assert settings.history_capacity == 10
        assert settings.request_timeout_seconds == 120.0
        assert settings.cors_origins == ["http://localhost:8000"]
        assert settings.log_file == "factlens.log"
        assert settings.log_level == "INFO"

    def test_config_file_overrides_defaults(self, config_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "abc123")
        config_path.write_text(json.dumps({"deep_model": "gemini-custom", "port": "6000"}), encoding="utf-8")
        settings = load_settings()
        assert settings.deep_model == "gemini-custom"
        assert settings.port == 6000
        assert settings.standard_model == DEFAULT_CONFIG["standard_model"]

    def test_missing_api_key(self, config_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError) as excinfo:
            load_settings()
        assert "GEMINI_API_KEY" in str(excinfo.value)
