# (c) Copyright Datacraft, 2026
"""Application settings configuration."""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from docscan.scanner.backends import Backend


class Settings(BaseSettings):
	backend: Backend = Backend.SANE
	log_config: Path | None = None
	log_level: str = 'warning'

	# Discovery
	discovery_settle_seconds: float = Field(ge=0, default=1.0)
	sane_local_only: bool = False
	memory_devices: list[str] = ['Memory Scanner']
	# Fail instead of falling back to the first device when -d matches nothing
	strict_device_match: bool = False

	# Scan defaults
	default_resolution: int = Field(gt=0, default=200)
	default_color_mode: str = 'color'
	document_name: str = 'scan'
	document_format: str = 'jpeg'
	size_tolerance_mm: float = Field(ge=0, default=2.0)

	# None waits for device notifications forever
	event_timeout_seconds: float | None = Field(gt=0, default=None)

	# eSCL
	escl_timeout_seconds: float = Field(gt=0, default=30.0)
	escl_verify_ssl: bool = True

	model_config = SettingsConfigDict(
		env_prefix='docscan_',
		env_file='.env',
		env_file_encoding='utf-8',
		extra='ignore',
	)


_settings: Settings | None = None


def get_settings() -> Settings:
	global _settings
	if _settings is None:
		_settings = Settings()
	return _settings
