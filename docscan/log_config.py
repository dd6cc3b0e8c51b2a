# (c) Copyright Datacraft, 2026
"""Logging setup."""
import logging
import os
from logging.config import dictConfig
from pathlib import Path

import yaml

LOGGING_CFG_ENV = 'DOCSCAN_LOGGING_CFG'


def default_logging_config(level: str = 'warning') -> dict:
	return {
		'version': 1,
		'disable_existing_loggers': False,
		'formatters': {
			'default': {
				'format': '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
				'datefmt': '%H:%M:%S',
			},
		},
		'handlers': {
			'console': {
				'class': 'logging.StreamHandler',
				'formatter': 'default',
				'stream': 'ext://sys.stderr',
			},
		},
		'root': {
			'handlers': ['console'],
			'level': level.upper(),
		},
		'loggers': {
			# Chatty third-party loggers
			'httpx': {'level': 'WARNING'},
			'zeroconf': {'level': 'WARNING'},
		},
	}


def setup_logging(log_config: Path | None = None, level: str = 'warning'):
	"""
	Configure logging.

	A YAML dictConfig file (from `log_config` or the DOCSCAN_LOGGING_CFG
	environment variable) wins over the built-in console configuration.
	"""
	if log_config is None and os.environ.get(LOGGING_CFG_ENV):
		log_config = Path(os.environ[LOGGING_CFG_ENV])

	if log_config is not None and log_config.is_file():
		with open(log_config, "r") as stream:
			config = yaml.safe_load(stream)
		dictConfig(config)
		return

	dictConfig(default_logging_config(level))
	if log_config is not None:
		logging.getLogger(__name__).warning(f"Logging config {log_config} not found, using defaults")
