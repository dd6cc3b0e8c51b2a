# (c) Copyright Datacraft, 2026
"""Base scanner interfaces and data models."""
import asyncio
import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Coroutine, Union

from .capabilities import BitDepth, DeviceCapabilities, PixelDataType
from .document_size import DocumentCategory

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
	'jpeg': 'jpg',
	'png': 'png',
	'tiff': 'tif',
}


@dataclass(frozen=True)
class Device:
	"""A scanner known to the registry."""
	id: str
	name: str
	capabilities: DeviceCapabilities = field(default_factory=DeviceCapabilities)
	manufacturer: str | None = None
	model: str | None = None
	address: str | None = None  # SANE device name or eSCL base URL

	def __str__(self):
		return self.name


@dataclass(frozen=True)
class Geometry:
	"""Requested page geometry in millimetres."""
	left: float = 0.0
	top: float = 0.0
	width: float = 210.0
	height: float = 297.0


@dataclass(frozen=True)
class ScanRequest:
	"""What the caller asked for. Immutable for the lifetime of a session."""
	destination: Path
	resolution: int = 200
	color_mode: str = 'color'
	geometry: Geometry = field(default_factory=Geometry)
	document_name: str = 'scan'
	document_format: str = 'jpeg'
	# None = detect from the destination (existing directory or trailing separator)
	destination_is_directory: bool | None = None

	def __post_init__(self):
		raw = self.destination
		if self.destination_is_directory is None:
			object.__setattr__(self, 'destination_is_directory', is_directory_destination(raw))
		object.__setattr__(self, 'destination', Path(raw).expanduser())


def is_directory_destination(destination: str | Path) -> bool:
	text = str(destination)
	if text.endswith(os.sep) or text.endswith('/'):
		return True
	return Path(text).expanduser().is_dir()


@dataclass(frozen=True)
class ScanArea:
	"""Scan rectangle in the device's native geometry unit."""
	left: float
	top: float
	width: float
	height: float


@dataclass(frozen=True)
class ResolvedConfiguration:
	"""A ScanRequest translated into device-native settings."""
	resolution: int
	pixel_type: PixelDataType
	bit_depth: BitDepth
	output_directory: Path
	document_name: str = 'scan'
	document_format: str = 'jpeg'
	# Exactly one of these is set
	scan_area: ScanArea | None = None
	document_category: DocumentCategory | None = None

	@property
	def uses_feeder(self) -> bool:
		return self.document_category is not None

	def file_name(self, page: int = 1) -> str:
		"""File name for a scanned page; pages after the first are numbered."""
		extension = FORMAT_EXTENSIONS.get(self.document_format, self.document_format)
		if page <= 1:
			return f"{self.document_name}.{extension}"
		return f"{self.document_name}-{page}.{extension}"

	def page_path(self, page: int = 1) -> Path:
		"""First free path for a scanned page, numbering past files already there."""
		index = page
		while True:
			path = self.output_directory / self.file_name(index)
			if not path.exists():
				return path
			index += 1


# === Session events ===

@dataclass(frozen=True)
class OpenCompleted:
	error: Exception | None = None


@dataclass(frozen=True)
class FileTransferred:
	"""A scanned file was written to a temporary location."""
	path: Path


@dataclass(frozen=True)
class ScanCompleted:
	error: Exception | None = None


SessionEvent = Union[OpenCompleted, FileTransferred, ScanCompleted]

DeviceListener = Callable[[Device], None]


class DeviceCatalog(ABC):
	"""
	Discovery provider.

	Implementations call `_notify_added` / `_notify_removed` as devices come
	and go, and set `discovery_complete` once the initial enumeration is done
	(if they can tell).
	"""

	def __init__(self):
		self._added_callbacks: list[DeviceListener] = []
		self._removed_callbacks: list[DeviceListener] = []
		self.discovery_complete = asyncio.Event()

	def subscribe(
		self,
		on_added: DeviceListener,
		on_removed: DeviceListener | None = None,
	):
		"""Register callbacks for device add/remove notifications."""
		self._added_callbacks.append(on_added)
		if on_removed is not None:
			self._removed_callbacks.append(on_removed)

	def _notify_added(self, device: Device):
		logger.info(f"Discovered scanner: {device.name}")
		for callback in self._added_callbacks:
			try:
				callback(device)
			except Exception as e:
				logger.error(f"Callback error: {e}")

	def _notify_removed(self, device: Device):
		logger.info(f"Scanner removed: {device.name}")
		for callback in self._removed_callbacks:
			try:
				callback(device)
			except Exception as e:
				logger.error(f"Callback error: {e}")

	@abstractmethod
	async def start(self):
		"""Start discovery."""
		pass

	@abstractmethod
	async def stop(self):
		"""Stop discovery and release resources."""
		pass

	async def __aenter__(self):
		await self.start()
		return self

	async def __aexit__(self, *args):
		await self.stop()


class ScanSession(ABC):
	"""
	Device session provider.

	Operations return once the request is issued; results arrive as events on
	`events`: `OpenCompleted` after `request_open`, then zero or more
	`FileTransferred` and one `ScanCompleted` after `request_scan`.
	"""

	def __init__(self):
		self.events: asyncio.Queue[SessionEvent] = asyncio.Queue()
		self._tasks: set[asyncio.Task] = set()

	def post(self, event: SessionEvent):
		"""Deliver an event to whoever drives the session."""
		self.events.put_nowait(event)

	async def next_event(self, timeout: float | None = None) -> SessionEvent:
		if timeout is None:
			return await self.events.get()
		return await asyncio.wait_for(self.events.get(), timeout)

	def _spawn(self, coro: Coroutine) -> asyncio.Task:
		"""Run driver work in the background, keeping a reference to the task."""
		task = asyncio.create_task(coro)
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		return task

	async def _cancel_pending(self):
		pending = list(self._tasks)
		for task in pending:
			task.cancel()
		if pending:
			await asyncio.gather(*pending, return_exceptions=True)

	@abstractmethod
	async def request_open(self, device: Device):
		"""Ask the device to open a session. Posts `OpenCompleted`."""
		pass

	@abstractmethod
	async def configure(self, config: ResolvedConfiguration):
		"""Apply device-native settings before scanning."""
		pass

	@abstractmethod
	async def request_scan(self):
		"""Start scanning. Posts `FileTransferred` per file, then `ScanCompleted`."""
		pass

	@abstractmethod
	async def close(self):
		"""Release the device session."""
		pass

	async def relocate(self, source: Path, target: Path) -> Path:
		"""
		Move a scanned file to its final location.

		Raises:
			FileExistsError: `target` already exists
		"""
		if target.exists():
			raise FileExistsError(f"{target} already exists")
		result = await asyncio.to_thread(shutil.move, str(source), str(target))
		return Path(result)
