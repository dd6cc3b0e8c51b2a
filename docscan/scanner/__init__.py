# (c) Copyright Datacraft, 2026
"""Scanner discovery, capability resolution and scan sessions."""
from .base import (
	Device,
	DeviceCatalog,
	FileTransferred,
	Geometry,
	OpenCompleted,
	ResolvedConfiguration,
	ScanArea,
	ScanCompleted,
	ScanRequest,
	ScanSession,
)
from .capabilities import (
	ColorMode,
	DeviceCapabilities,
	PixelDataType,
	resolve_color_mode,
	resolve_resolution,
)
from .document_size import DocumentCategory, classify
from .errors import (
	CapabilityError,
	ConfigurationError,
	DeviceNotFoundError,
	DiscoveryEmptyError,
	ScanError,
	ScannerError,
	SessionOpenError,
	TransferError,
)
from .registry import DeviceRegistry
from .session import ScanOutcome, ScanStateMachine, SessionState, resolve_configuration

__all__ = [
	'Device',
	'DeviceCatalog',
	'FileTransferred',
	'Geometry',
	'OpenCompleted',
	'ResolvedConfiguration',
	'ScanArea',
	'ScanCompleted',
	'ScanRequest',
	'ScanSession',
	'ColorMode',
	'DeviceCapabilities',
	'PixelDataType',
	'resolve_color_mode',
	'resolve_resolution',
	'DocumentCategory',
	'classify',
	'CapabilityError',
	'ConfigurationError',
	'DeviceNotFoundError',
	'DiscoveryEmptyError',
	'ScanError',
	'ScannerError',
	'SessionOpenError',
	'TransferError',
	'DeviceRegistry',
	'ScanOutcome',
	'ScanStateMachine',
	'SessionState',
	'resolve_configuration',
]
