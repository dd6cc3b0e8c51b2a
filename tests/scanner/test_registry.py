# (c) Copyright Datacraft, 2026
"""Tests for the device registry."""
import pytest

from docscan.scanner.errors import DeviceNotFoundError, DiscoveryEmptyError
from docscan.scanner.memory import InMemoryCatalog, make_device
from docscan.scanner.registry import DeviceRegistry


class TestDeviceRegistry:
	"""Tests for DeviceRegistry."""

	def test_add_and_find(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(feeder_device)

		assert registry.list() == [flatbed_device, feeder_device]
		assert registry.find_by_name("Epson2") is feeder_device
		assert registry.find_by_name("Nope") is None

	def test_add_ignores_duplicates(self, flatbed_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(flatbed_device)
		assert len(registry.list()) == 1

	def test_remove(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(feeder_device)
		registry.remove(flatbed_device)
		assert registry.list() == [feeder_device]

	def test_list_is_live(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		devices = registry.list()
		registry.add(flatbed_device)
		assert devices == [flatbed_device]

	def test_select_by_name(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(feeder_device)
		assert registry.select("Epson2") is feeder_device

	def test_select_defaults_to_first(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(feeder_device)
		assert registry.select() is flatbed_device
		assert registry.select("") is flatbed_device

	def test_select_unknown_name_falls_back(self, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		registry.add(feeder_device)
		assert registry.select("Missing") is flatbed_device

	def test_select_unknown_name_strict(self, flatbed_device):
		registry = DeviceRegistry()
		registry.add(flatbed_device)
		with pytest.raises(DeviceNotFoundError):
			registry.select("Missing", strict=True)

	def test_select_empty(self):
		with pytest.raises(DiscoveryEmptyError):
			DeviceRegistry().select("Canon1")


class TestRegistryDiscovery:
	"""Tests for registry population from a catalog."""

	@pytest.mark.asyncio
	async def test_follows_catalog_notifications(self, catalog, flatbed_device, feeder_device):
		registry = DeviceRegistry()
		registry.attach(catalog)

		await catalog.start()
		devices = await registry.settle(timeout=5.0)
		assert devices == [flatbed_device, feeder_device]

		late = make_device("Brother3")
		catalog.plug(late)
		assert registry.find_by_name("Brother3") is late

		catalog.unplug(flatbed_device)
		assert registry.list() == [feeder_device, late]

	@pytest.mark.asyncio
	async def test_settle_returns_snapshot(self, catalog):
		registry = DeviceRegistry()
		registry.attach(catalog)
		await catalog.start()

		snapshot = await registry.settle(timeout=0.1)
		catalog.plug(make_device("Brother3"))
		assert len(snapshot) == 2
		assert len(registry.list()) == 3

	@pytest.mark.asyncio
	async def test_settle_times_out_without_completion_signal(self, flatbed_device):
		class SilentCatalog(InMemoryCatalog):
			async def start(self):
				for device in self._devices:
					self._notify_added(device)

		catalog = SilentCatalog([flatbed_device])
		registry = DeviceRegistry()
		registry.attach(catalog)
		await catalog.start()

		assert await registry.settle(timeout=0.05) == [flatbed_device]
