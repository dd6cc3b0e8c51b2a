# (c) Copyright Datacraft, 2026
"""Tests for settings loading."""
import pytest
from pydantic import ValidationError

from docscan.config import settings as settings_module
from docscan.config.settings import Settings, get_settings
from docscan.scanner.backends import Backend


def test_defaults(monkeypatch):
	for name in ("DOCSCAN_BACKEND", "DOCSCAN_DEFAULT_RESOLUTION", "DOCSCAN_EVENT_TIMEOUT_SECONDS"):
		monkeypatch.delenv(name, raising=False)
	settings = Settings(_env_file=None)

	assert settings.backend == Backend.SANE
	assert settings.default_resolution == 200
	assert settings.event_timeout_seconds is None
	assert settings.size_tolerance_mm == 2.0


def test_environment_prefix(monkeypatch):
	monkeypatch.setenv("DOCSCAN_BACKEND", "escl")
	monkeypatch.setenv("DOCSCAN_DEFAULT_RESOLUTION", "300")
	monkeypatch.setenv("DOCSCAN_MEMORY_DEVICES", '["Canon1", "Epson2"]')
	settings = Settings(_env_file=None)

	assert settings.backend == Backend.ESCL
	assert settings.default_resolution == 300
	assert settings.memory_devices == ["Canon1", "Epson2"]


def test_rejects_invalid_values(monkeypatch):
	monkeypatch.setenv("DOCSCAN_DEFAULT_RESOLUTION", "0")
	with pytest.raises(ValidationError):
		Settings(_env_file=None)


def test_get_settings_is_cached(monkeypatch):
	monkeypatch.setattr(settings_module, "_settings", None)
	assert get_settings() is get_settings()
