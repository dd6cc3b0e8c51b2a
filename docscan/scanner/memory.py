# (c) Copyright Datacraft, 2026
"""In-memory scanner backend for development and testing."""
import asyncio
import logging
from pathlib import Path

from .base import (
	Device,
	DeviceCatalog,
	FileTransferred,
	OpenCompleted,
	ResolvedConfiguration,
	ScanCompleted,
	ScanSession,
)
from .capabilities import DeviceCapabilities

logger = logging.getLogger(__name__)

# Smallest valid JPEG-ish payload; content is never decoded.
FAKE_PAGE = b'\xff\xd8\xff\xe0docscan\xff\xd9'


def make_device(
	name: str,
	resolutions: tuple[int, ...] = (75, 150, 300, 600),
	has_feeder: bool = False,
	**kwargs,
) -> Device:
	"""Convenience constructor for fake devices."""
	return Device(
		id=f"memory://{name}",
		name=name,
		capabilities=DeviceCapabilities(
			resolutions=resolutions,
			has_feeder=has_feeder,
			**kwargs,
		),
		manufacturer='docscan',
		model='memory',
	)


class InMemoryCatalog(DeviceCatalog):
	"""Announces a fixed list of devices when started."""

	def __init__(self, devices: list[Device] | None = None):
		super().__init__()
		self._devices = list(devices or [])
		self.started = False

	async def start(self):
		self.started = True
		for device in self._devices:
			self._notify_added(device)
		self.discovery_complete.set()

	async def stop(self):
		self.started = False

	def plug(self, device: Device):
		"""Simulate a device appearing after discovery started."""
		self._devices.append(device)
		if self.started:
			self._notify_added(device)

	def unplug(self, device: Device):
		"""Simulate a device disappearing."""
		self._devices = [d for d in self._devices if d.id != device.id]
		if self.started:
			self._notify_removed(device)


class InMemoryScanSession(ScanSession):
	"""
	Fake device session.

	Writes `pages` small files into the configured output directory and
	reports them the way a real device would. Failures can be injected with
	`open_error` and `scan_error`.
	"""

	def __init__(
		self,
		pages: int = 1,
		open_error: Exception | None = None,
		scan_error: Exception | None = None,
		delay: float = 0.0,
		content: bytes = FAKE_PAGE,
	):
		super().__init__()
		self.pages = pages
		self.open_error = open_error
		self.scan_error = scan_error
		self.delay = delay
		self.content = content

		self.device: Device | None = None
		self.config: ResolvedConfiguration | None = None
		self.opened = False
		self.closed = False
		self.scan_requested = False
		self.written: list[Path] = []

	async def request_open(self, device: Device):
		self.device = device
		self._spawn(self._open())

	async def _open(self):
		await asyncio.sleep(self.delay)
		if self.open_error is None:
			self.opened = True
		self.post(OpenCompleted(error=self.open_error))

	async def configure(self, config: ResolvedConfiguration):
		self.config = config

	async def request_scan(self):
		self.scan_requested = True
		self._spawn(self._scan())

	async def _scan(self):
		await asyncio.sleep(self.delay)
		if self.scan_error is None:
			for page in range(1, self.pages + 1):
				path = self.config.page_path(page)
				await asyncio.to_thread(path.write_bytes, self.content)
				self.written.append(path)
				self.post(FileTransferred(path=path))
		self.post(ScanCompleted(error=self.scan_error))

	async def close(self):
		await self._cancel_pending()
		self.opened = False
		self.closed = True
