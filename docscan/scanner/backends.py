# (c) Copyright Datacraft, 2026
"""Backend selection."""
from enum import Enum
from typing import TYPE_CHECKING

from .base import DeviceCatalog, ScanSession

if TYPE_CHECKING:
	from docscan.config.settings import Settings


class Backend(str, Enum):
	"""Device access services."""
	SANE = 'sane'
	ESCL = 'escl'
	MEMORY = 'memory'


def create_catalog(settings: "Settings") -> DeviceCatalog:
	if settings.backend == Backend.SANE:
		from .sane import SaneCatalog
		return SaneCatalog(local_only=settings.sane_local_only)

	if settings.backend == Backend.ESCL:
		from .escl import EsclCatalog
		return EsclCatalog(
			timeout=settings.escl_timeout_seconds,
			verify_ssl=settings.escl_verify_ssl,
		)

	from .memory import InMemoryCatalog, make_device
	return InMemoryCatalog([make_device(name) for name in settings.memory_devices])


def create_session(settings: "Settings") -> ScanSession:
	if settings.backend == Backend.SANE:
		from .sane import SaneScanSession
		return SaneScanSession()

	if settings.backend == Backend.ESCL:
		from .escl import EsclScanSession
		return EsclScanSession(
			timeout=settings.escl_timeout_seconds,
			verify_ssl=settings.escl_verify_ssl,
		)

	from .memory import InMemoryScanSession
	return InMemoryScanSession()
