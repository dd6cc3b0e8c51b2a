# (c) Copyright Datacraft, 2026
"""Registry of currently known scanner devices."""
import asyncio
import logging

from .base import Device, DeviceCatalog
from .errors import DeviceNotFoundError, DiscoveryEmptyError

logger = logging.getLogger(__name__)


class DeviceRegistry:
	"""
	Devices known to this process, in discovery order.

	Populated from a `DeviceCatalog` through add/remove notifications.
	Discovery order depends on the driver, so callers that need a specific
	device should select it by name.
	"""

	def __init__(self):
		self._devices: list[Device] = []
		self._catalog: DeviceCatalog | None = None

	def attach(self, catalog: DeviceCatalog):
		"""Follow add/remove notifications from a catalog."""
		self._catalog = catalog
		catalog.subscribe(self.add, self.remove)

	def add(self, device: Device):
		if any(known.id == device.id for known in self._devices):
			logger.debug(f"Scanner already registered: {device.name}")
			return
		self._devices.append(device)

	def remove(self, device: Device):
		for index, known in enumerate(self._devices):
			if known is device or known.id == device.id:
				del self._devices[index]
				return

	def find_by_name(self, name: str) -> Device | None:
		for device in self._devices:
			if device.name == name:
				return device
		return None

	def select(self, name: str | None = None, strict: bool = False) -> Device:
		"""
		Pick the device to scan with.

		A name that matches nothing falls back to the first device unless
		`strict` is set.

		Raises:
			DiscoveryEmptyError: no devices are known
			DeviceNotFoundError: `strict` and no device has that name
		"""
		if not self._devices:
			raise DiscoveryEmptyError()

		if name:
			device = self.find_by_name(name)
			if device is not None:
				return device
			if strict:
				raise DeviceNotFoundError(name)
			logger.warning(f"Scanner '{name}' not found, using '{self._devices[0].name}'")

		return self._devices[0]

	async def settle(self, timeout: float = 1.0) -> list[Device]:
		"""
		Wait for initial discovery to finish.

		Returns as soon as the attached catalog signals completion, or after
		`timeout` seconds otherwise.
		"""
		if self._catalog is None:
			await asyncio.sleep(timeout)
		else:
			try:
				await asyncio.wait_for(self._catalog.discovery_complete.wait(), timeout)
			except asyncio.TimeoutError:
				logger.debug(f"Discovery did not signal completion within {timeout}s")
		return list(self._devices)

	# Keep last: shadows the builtin `list` for the rest of the class body.
	def list(self) -> list[Device]:
		"""The live device list. Copy it if a stable snapshot is needed."""
		return self._devices
