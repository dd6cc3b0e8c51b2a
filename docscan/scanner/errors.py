# (c) Copyright Datacraft, 2026
"""Scanner error types."""


class ScannerError(Exception):
	"""Base error for scanner discovery and scan sessions."""

	def __init__(self, message: str, cause: Exception | None = None):
		self.cause = cause
		super().__init__(message)


class DiscoveryEmptyError(ScannerError):
	"""Raised when discovery produced no devices at all."""

	def __init__(self, message: str = "No scanners found."):
		super().__init__(message)


class DeviceNotFoundError(ScannerError):
	"""Raised when a named device is not known to the registry."""

	def __init__(self, name: str):
		self.name = name
		super().__init__(f"Scanner not found: {name}")


class SessionOpenError(ScannerError):
	"""Device refused or failed to open a session."""


class CapabilityError(ScannerError):
	"""Device reported an empty or unusable capability set."""


class ConfigurationError(ScannerError):
	"""Session configuration is incomplete, e.g. no destination set."""


class TransferError(ScannerError):
	"""Scanned file could not be relocated to its destination."""


class ScanError(ScannerError):
	"""Device reported a failure while scanning."""
