# (c) Copyright Datacraft, 2026
"""SANE scanner backend for Linux/macOS."""
import asyncio
import logging
from typing import Any

from .base import (
	Device,
	DeviceCatalog,
	FileTransferred,
	OpenCompleted,
	ResolvedConfiguration,
	ScanCompleted,
	ScanSession,
)
from .capabilities import DeviceCapabilities, PixelDataType
from .errors import ScannerError

logger = logging.getLogger(__name__)

PIL_FORMATS = {
	'jpeg': 'JPEG',
	'png': 'PNG',
	'tiff': 'TIFF',
}

# Candidate SANE mode names per pixel type, in order of preference
MODE_NAMES = {
	PixelDataType.RGB: ('color',),
	PixelDataType.GRAY: ('gray', 'grayscale'),
	PixelDataType.BW: ('lineart', 'binary', 'halftone'),
}

# Driver messages that mean the feeder ran out of paper
_FEEDER_EMPTY_HINTS = ('no more', 'empty', 'no documents', 'out of documents')


def _import_sane():
	try:
		import sane
	except ImportError as e:
		raise ScannerError("python-sane not installed", cause=e)
	return sane


def _option_dicts(raw_options: list[tuple]) -> list[dict[str, Any]]:
	"""Convert python-sane option tuples into name/constraint dicts."""
	# (index, name, title, desc, type, unit, size, cap, constraint)
	return [
		{'name': opt[1], 'constraint': opt[8]}
		for opt in raw_options
		if opt[1]
	]


def _pick(constraint: Any, candidates: tuple[str, ...]) -> str | None:
	"""Find the device's spelling of one of `candidates` in a string list constraint."""
	if not isinstance(constraint, list):
		return None
	lowered = {str(value).lower(): value for value in constraint}
	for candidate in candidates:
		if candidate in lowered:
			return lowered[candidate]
	for value in constraint:
		if any(candidate in str(value).lower() for candidate in candidates):
			return value
	return None


class SaneCatalog(DeviceCatalog):
	"""
	Enumerates local and network SANE devices.

	SANE has no hotplug notifications, so devices are announced once when
	discovery starts.
	"""

	def __init__(self, local_only: bool = False):
		super().__init__()
		self._local_only = local_only
		self._initialized = False

	async def start(self):
		try:
			sane = _import_sane()
		except ScannerError as e:
			logger.warning(f"{e}, SANE discovery disabled")
			self.discovery_complete.set()
			return

		try:
			devices = await asyncio.to_thread(self._enumerate, sane)
		except Exception as e:
			logger.error(f"Error discovering SANE devices: {e}")
			devices = []

		for device in devices:
			self._notify_added(device)
		self.discovery_complete.set()

	def _enumerate(self, sane) -> list[Device]:
		sane.init()
		self._initialized = True

		devices = []
		for device_name, vendor, model, device_type in sane.get_devices(localOnly=self._local_only):
			devices.append(Device(
				id=f"sane://{device_name}",
				name=f"{vendor} {model}",
				capabilities=self._probe(sane, device_name),
				manufacturer=vendor,
				model=model,
				address=device_name,
			))
		return devices

	def _probe(self, sane, device_name: str) -> DeviceCapabilities:
		"""Open the device briefly to read its option constraints."""
		try:
			handle = sane.open(device_name)
		except Exception as e:
			logger.warning(f"Could not probe SANE device {device_name}: {e}")
			return DeviceCapabilities()
		try:
			return DeviceCapabilities.from_sane(_option_dicts(handle.get_options()))
		finally:
			handle.close()

	async def stop(self):
		if not self._initialized:
			return
		sane = _import_sane()
		await asyncio.to_thread(sane.exit)
		self._initialized = False


class SaneScanSession(ScanSession):
	"""Scan session against one SANE device handle."""

	def __init__(self):
		super().__init__()
		self._handle = None
		self._config: ResolvedConfiguration | None = None

	async def request_open(self, device: Device):
		self._spawn(self._open(device))

	async def _open(self, device: Device):
		try:
			sane = _import_sane()
			self._handle = await asyncio.to_thread(sane.open, device.address)
			logger.info(f"SANE device opened: {device.address}")
		except Exception as e:
			self.post(OpenCompleted(error=e))
			return
		self.post(OpenCompleted())

	async def configure(self, config: ResolvedConfiguration):
		self._config = config
		await asyncio.to_thread(self._configure_sync, config)

	def _configure_sync(self, config: ResolvedConfiguration):
		options = {opt['name']: opt['constraint'] for opt in _option_dicts(self._handle.get_options())}

		self._set_option('resolution', config.resolution)

		mode = _pick(options.get('mode'), MODE_NAMES[config.pixel_type])
		if mode is not None:
			self._set_option('mode', mode)
		self._set_option('depth', int(config.bit_depth))

		if config.uses_feeder:
			source = _pick(options.get('source'), ('adf', 'feeder', 'automatic document feeder'))
			category = config.document_category
			left, top = 0.0, 0.0
			width, height = category.short_mm, category.long_mm
		else:
			source = _pick(options.get('source'), ('flatbed', 'normal'))
			area = config.scan_area
			left, top, width, height = area.left, area.top, area.width, area.height

		if source is not None:
			self._set_option('source', source)

		# SANE geometry is in millimetres
		self._set_option('tl_x', left)
		self._set_option('tl_y', top)
		self._set_option('br_x', left + width)
		self._set_option('br_y', top + height)

	def _set_option(self, name: str, value: Any):
		try:
			setattr(self._handle, name, value)
		except Exception as e:
			logger.debug(f"Could not set {name}: {e}")

	async def request_scan(self):
		self._spawn(self._scan())

	async def _scan(self):
		config = self._config
		page = 0
		try:
			while True:
				try:
					image = await asyncio.to_thread(self._snap)
				except Exception as e:
					if page and config.uses_feeder and _is_feeder_empty(e):
						break
					raise

				page += 1
				path = config.page_path(page)
				save_kwargs = {'quality': 95} if config.document_format == 'jpeg' else {}
				await asyncio.to_thread(
					image.save,
					path,
					PIL_FORMATS.get(config.document_format, 'JPEG'),
					**save_kwargs,
				)
				self.post(FileTransferred(path=path))

				if not config.uses_feeder:
					break
		except Exception as e:
			logger.error(f"SANE scan error: {e}")
			self.post(ScanCompleted(error=e))
			return

		self.post(ScanCompleted())

	def _snap(self):
		self._handle.start()
		return self._handle.snap()

	async def close(self):
		await self._cancel_pending()
		if self._handle is not None:
			handle, self._handle = self._handle, None
			await asyncio.to_thread(handle.close)


def _is_feeder_empty(error: Exception) -> bool:
	message = str(error).lower()
	return any(hint in message for hint in _FEEDER_EMPTY_HINTS)
