# (c) Copyright Datacraft, 2026
"""
Scan session state machine.

One `ScanStateMachine` drives exactly one scan against one device:

	IDLE -> OPENING -> CONFIGURING -> SCANNING -> TRANSFERRING -> COMPLETED

Any active state may end in FAILED instead.

Device work happens in a `ScanSession` collaborator which reports back
through typed events. Every event is dispatched through a transition table
keyed by (state, event type); pairs missing from the table are ignored.
"""
import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .base import (
	Device,
	FileTransferred,
	OpenCompleted,
	ResolvedConfiguration,
	ScanArea,
	ScanCompleted,
	ScanRequest,
	ScanSession,
	SessionEvent,
)
from .capabilities import mm_to_units, resolve_color_mode, resolve_resolution
from .document_size import DEFAULT_TOLERANCE_MM, classify
from .errors import (
	ConfigurationError,
	ScanError,
	ScannerError,
	SessionOpenError,
	TransferError,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
	IDLE = 'idle'
	OPENING = 'opening'
	CONFIGURING = 'configuring'
	SCANNING = 'scanning'
	TRANSFERRING = 'transferring'
	COMPLETED = 'completed'
	FAILED = 'failed'

	@property
	def is_terminal(self) -> bool:
		return self in (SessionState.COMPLETED, SessionState.FAILED)


@dataclass
class ScanOutcome:
	"""Terminal result of a scan session."""
	state: SessionState
	path: Path | None = None
	files: list[Path] = field(default_factory=list)
	error: ScannerError | None = None

	@property
	def success(self) -> bool:
		return self.state == SessionState.COMPLETED


def resolve_configuration(
	device: Device,
	request: ScanRequest,
	output_directory: Path,
	tolerance: float = DEFAULT_TOLERANCE_MM,
) -> ResolvedConfiguration:
	"""
	Translate a request into device-native settings.

	Feeder devices get a paper size category, flatbed devices get an explicit
	scan area in the device's geometry unit.

	Raises:
		CapabilityError: the device reports no resolutions
	"""
	caps = device.capabilities
	resolution = resolve_resolution(request.resolution, caps.resolutions)
	pixel_type, bit_depth = resolve_color_mode(request.color_mode)
	geometry = request.geometry

	common = dict(
		resolution=resolution,
		pixel_type=pixel_type,
		bit_depth=bit_depth,
		output_directory=output_directory,
		document_name=request.document_name,
		document_format=request.document_format,
	)

	if caps.has_feeder:
		category = classify(geometry.width, geometry.height, tolerance)
		return ResolvedConfiguration(document_category=category, **common)

	units = caps.units_per_inch
	area = ScanArea(
		left=mm_to_units(geometry.left, units),
		top=mm_to_units(geometry.top, units),
		width=mm_to_units(geometry.width, units),
		height=mm_to_units(geometry.height, units),
	)
	return ResolvedConfiguration(scan_area=area, **common)


class ScanStateMachine:
	"""Orchestrates open, configure, scan and transfer for a single scan."""

	def __init__(
		self,
		session: ScanSession,
		event_timeout: float | None = None,
		size_tolerance: float = DEFAULT_TOLERANCE_MM,
	):
		"""
		Args:
			session: Device session collaborator
			event_timeout: Seconds to wait for each device event, None waits forever
			size_tolerance: Paper size matching tolerance in millimetres
		"""
		self._session = session
		self._event_timeout = event_timeout
		self._size_tolerance = size_tolerance

		self.state = SessionState.IDLE
		self.device: Device | None = None
		self.request: ScanRequest | None = None
		self.config: ResolvedConfiguration | None = None
		self.outcome: ScanOutcome | None = None

		self._files: list[Path] = []
		self._scratch_dir: Path | None = None
		self._session_requested = False

		self._transitions = {
			(SessionState.OPENING, OpenCompleted): self._on_open_completed,
			(SessionState.OPENING, FileTransferred): self._on_transfer_without_destination,
			(SessionState.OPENING, ScanCompleted): self._on_premature_completion,
			(SessionState.CONFIGURING, FileTransferred): self._on_transfer_without_destination,
			(SessionState.CONFIGURING, ScanCompleted): self._on_premature_completion,
			(SessionState.SCANNING, FileTransferred): self._on_file_transferred,
			(SessionState.SCANNING, ScanCompleted): self._on_scan_completed,
			(SessionState.TRANSFERRING, FileTransferred): self._on_file_transferred,
			(SessionState.TRANSFERRING, ScanCompleted): self._on_scan_completed,
		}

	async def start_scan(self, device: Device, request: ScanRequest) -> ScanOutcome:
		"""
		Run the whole session and return its terminal outcome.

		The device session is closed on every exit path.

		Raises:
			RuntimeError: the state machine was already used
		"""
		if self.state != SessionState.IDLE:
			raise RuntimeError(f"Scan session already {self.state.value}")

		self.device = device
		self.request = request
		self._set_state(SessionState.OPENING)

		try:
			self._session_requested = True
			try:
				await self._session.request_open(device)
			except ScannerError:
				raise
			except Exception as e:
				raise SessionOpenError(f"Could not open {device.name}: {e}", cause=e)

			while not self.state.is_terminal:
				try:
					event = await self._session.next_event(self._event_timeout)
				except asyncio.TimeoutError:
					raise ScanError(
						f"Timed out after {self._event_timeout}s while {self.state.value}"
					)
				await self.dispatch(event)

		except ScannerError as e:
			self._fail(e)
		finally:
			await self._release()

		return self.outcome

	async def dispatch(self, event: SessionEvent):
		"""Apply one event. Events after a terminal state are ignored."""
		event_name = type(event).__name__
		if self.state.is_terminal:
			logger.debug(f"Ignoring {event_name} after session {self.state.value}")
			return

		handler = self._transitions.get((self.state, type(event)))
		if handler is None:
			logger.warning(f"Unexpected {event_name} while {self.state.value}")
			return

		try:
			await handler(event)
		except ScannerError as e:
			self._fail(e)
		except Exception as e:
			logger.exception(f"Error handling {event_name}")
			self._fail(ScanError(f"Error handling {event_name}: {e}", cause=e))

	# === Transitions ===

	async def _on_open_completed(self, event: OpenCompleted):
		if event.error is not None:
			raise SessionOpenError(
				f"Could not open {self.device.name}: {event.error}",
				cause=event.error,
			)

		self._set_state(SessionState.CONFIGURING)
		self.config = resolve_configuration(
			self.device,
			self.request,
			self._output_directory(),
			self._size_tolerance,
		)
		layout = (
			f"feeder {self.config.document_category.value}"
			if self.config.uses_feeder
			else "flatbed area"
		)
		logger.info(
			f"Configuring {self.device.name}: {self.config.resolution} dpi, "
			f"{self.config.pixel_type.value}/{int(self.config.bit_depth)}-bit, {layout}"
		)
		await self._session.configure(self.config)

		self._set_state(SessionState.SCANNING)
		await self._session.request_scan()

	async def _on_file_transferred(self, event: FileTransferred):
		self._set_state(SessionState.TRANSFERRING)

		if self.request.destination_is_directory:
			# The device wrote straight into the destination directory
			logger.debug(f"Scanned file in place: {event.path}")
			self._files.append(Path(event.path))
			return

		target = self._next_target()
		try:
			moved = await self._session.relocate(Path(event.path), target)
		except OSError as e:
			raise TransferError(f"Could not move {event.path} to {target}: {e}", cause=e)

		logger.info(f"Scanned file saved to {moved}")
		self._files.append(moved)

	async def _on_transfer_without_destination(self, event: FileTransferred):
		raise ConfigurationError(f"No destination set for scanned file {event.path}")

	async def _on_premature_completion(self, event: ScanCompleted):
		if event.error is not None:
			raise ScanError(str(event.error), cause=event.error)
		logger.warning(f"Ignoring scan completion while {self.state.value}")

	async def _on_scan_completed(self, event: ScanCompleted):
		if event.error is not None:
			raise ScanError(str(event.error), cause=event.error)

		if not self._files:
			logger.warning("Scan completed without delivering any file")
		self._complete(self.request.destination)

	# === Helpers ===

	def _set_state(self, state: SessionState):
		logger.debug(f"Session {self.state.value} -> {state.value}")
		self.state = state

	def _complete(self, path: Path):
		self._set_state(SessionState.COMPLETED)
		self.outcome = ScanOutcome(
			state=SessionState.COMPLETED,
			path=path,
			files=list(self._files),
		)

	def _fail(self, error: ScannerError):
		if self.state.is_terminal:
			return
		logger.error(f"Scan session failed while {self.state.value}: {error}")
		self._set_state(SessionState.FAILED)
		self.outcome = ScanOutcome(
			state=SessionState.FAILED,
			files=list(self._files),
			error=error,
		)

	def _output_directory(self) -> Path:
		"""Where the device should write: the destination directory or a scratch one."""
		if self.request.destination_is_directory:
			directory = self.request.destination
			try:
				directory.mkdir(parents=True, exist_ok=True)
			except OSError as e:
				raise ConfigurationError(f"Cannot use output directory {directory}: {e}", cause=e)
			return directory

		self._scratch_dir = Path(tempfile.mkdtemp(prefix='docscan-'))
		return self._scratch_dir

	def _next_target(self) -> Path:
		"""Destination for the next file; extra feeder pages get the next free numbered name."""
		destination = self.request.destination
		if not self._files:
			return destination
		index = len(self._files) + 1
		while True:
			target = destination.with_name(f"{destination.stem}-{index}{destination.suffix}")
			if not target.exists():
				return target
			index += 1

	async def _release(self):
		if self._session_requested:
			try:
				await self._session.close()
			except Exception as e:
				logger.warning(f"Error closing scan session: {e}")
		if self._scratch_dir is not None:
			shutil.rmtree(self._scratch_dir, ignore_errors=True)
			self._scratch_dir = None
