# (c) Copyright Datacraft, 2026
"""eSCL (AirScan) network scanner backend."""
import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx
from zeroconf import ServiceStateChange
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from .base import (
	Device,
	DeviceCatalog,
	FileTransferred,
	OpenCompleted,
	ResolvedConfiguration,
	ScanCompleted,
	ScanSession,
)
from .capabilities import DeviceCapabilities, PixelDataType, mm_to_units
from .errors import ScanError, SessionOpenError

logger = logging.getLogger(__name__)


# eSCL XML namespaces
NAMESPACES = {
	'scan': 'http://schemas.hp.com/imaging/escl/2011/05/03',
	'pwg': 'http://www.pwg.org/schemas/2010/12/sm',
}

# mDNS service types for eSCL scanners
SERVICE_TYPES = [
	'_uscan._tcp.local.',  # eSCL over HTTP
	'_uscans._tcp.local.',  # eSCL over HTTPS
]

COLOR_MODES = {
	PixelDataType.RGB: 'RGB24',
	PixelDataType.GRAY: 'Grayscale8',
	PixelDataType.BW: 'BlackAndWhite1',
}

DOCUMENT_FORMATS = {
	'jpeg': 'image/jpeg',
	'png': 'image/png',
	'tiff': 'image/tiff',
}


def parse_capabilities(xml_text: str) -> dict[str, Any]:
	"""Parse eSCL ScannerCapabilities XML into a plain dict."""
	root = ET.fromstring(xml_text)
	data: dict[str, Any] = {}

	make_model = root.find('.//pwg:MakeAndModel', NAMESPACES)
	if make_model is not None:
		data['MakeAndModel'] = make_model.text

	sources = []
	if root.find('.//scan:Platen', NAMESPACES) is not None:
		sources.append('Platen')
	if root.find('.//scan:Adf', NAMESPACES) is not None:
		sources.append('Feeder')
	data['InputSources'] = sources

	resolutions = set()
	for res in root.findall('.//scan:DiscreteResolution', NAMESPACES):
		x_res = res.find('scan:XResolution', NAMESPACES)
		if x_res is not None:
			try:
				resolutions.add(int(x_res.text))
			except (ValueError, TypeError):
				pass
	data['Resolutions'] = sorted(resolutions)

	data['ColorModes'] = sorted({
		mode.text for mode in root.findall('.//scan:ColorMode', NAMESPACES) if mode.text
	})

	platen = root.find('.//scan:Platen/scan:PlatenInputCaps', NAMESPACES)
	if platen is not None:
		platen_caps = {}
		for key in ('MinWidth', 'MaxWidth', 'MinHeight', 'MaxHeight'):
			element = platen.find(f'scan:{key}', NAMESPACES)
			if element is not None and element.text:
				platen_caps[key] = int(element.text)
		data['PlatenInputCaps'] = platen_caps

	return data


def parse_state(xml_text: str) -> str | None:
	"""Scanner state from eSCL ScannerStatus XML (Idle, Processing, ...)."""
	root = ET.fromstring(xml_text)
	state = root.find('.//pwg:State', NAMESPACES)
	return state.text if state is not None else None


def build_scan_settings(config: ResolvedConfiguration) -> str:
	"""Build eSCL ScanSettings XML for a resolved configuration."""
	if config.uses_feeder:
		input_source = 'Feeder'
		category = config.document_category
		x_offset, y_offset = 0, 0
		width = mm_to_units(category.short_mm, 300)
		height = mm_to_units(category.long_mm, 300)
	else:
		input_source = 'Platen'
		area = config.scan_area
		x_offset, y_offset, width, height = area.left, area.top, area.width, area.height

	color_mode = COLOR_MODES[config.pixel_type]
	doc_format = DOCUMENT_FORMATS.get(config.document_format, 'image/jpeg')

	return f'''<?xml version="1.0" encoding="UTF-8"?>
<scan:ScanSettings xmlns:scan="http://schemas.hp.com/imaging/escl/2011/05/03"
                   xmlns:pwg="http://www.pwg.org/schemas/2010/12/sm">
    <pwg:Version>2.6</pwg:Version>
    <pwg:ScanRegions>
        <pwg:ScanRegion>
            <pwg:ContentRegionUnits>escl:ThreeHundredthsOfInches</pwg:ContentRegionUnits>
            <pwg:XOffset>{int(x_offset)}</pwg:XOffset>
            <pwg:YOffset>{int(y_offset)}</pwg:YOffset>
            <pwg:Width>{int(width)}</pwg:Width>
            <pwg:Height>{int(height)}</pwg:Height>
        </pwg:ScanRegion>
    </pwg:ScanRegions>
    <pwg:InputSource>{input_source}</pwg:InputSource>
    <scan:ColorMode>{color_mode}</scan:ColorMode>
    <scan:XResolution>{config.resolution}</scan:XResolution>
    <scan:YResolution>{config.resolution}</scan:YResolution>
    <pwg:DocumentFormat>{doc_format}</pwg:DocumentFormat>
</scan:ScanSettings>'''


class EsclCatalog(DeviceCatalog):
	"""
	Discover eSCL scanners on the network using mDNS/DNS-SD.

	Devices are announced as they answer and withdrawn when their service
	disappears. mDNS has no end-of-enumeration marker, so
	`discovery_complete` is never set and callers rely on the settle timeout.
	"""

	def __init__(self, timeout: float = 10.0, verify_ssl: bool = True):
		super().__init__()
		self._timeout = timeout
		self._verify_ssl = verify_ssl
		self._zeroconf: AsyncZeroconf | None = None
		self._browser: AsyncServiceBrowser | None = None
		self._devices: dict[str, Device] = {}
		self._tasks: set[asyncio.Task] = set()

	async def start(self):
		if self._zeroconf is not None:
			return
		self._zeroconf = AsyncZeroconf()
		self._browser = AsyncServiceBrowser(
			self._zeroconf.zeroconf,
			SERVICE_TYPES,
			handlers=[self._on_service_state_change],
		)
		logger.info("Scanner discovery started")

	def _on_service_state_change(
		self,
		zeroconf,
		service_type: str,
		name: str,
		state_change: ServiceStateChange,
	):
		if state_change is ServiceStateChange.Added:
			task = asyncio.ensure_future(self._on_service_added(service_type, name))
			self._tasks.add(task)
			task.add_done_callback(self._tasks.discard)
		elif state_change is ServiceStateChange.Removed:
			device = self._devices.pop(name, None)
			if device is not None:
				self._notify_removed(device)

	async def _on_service_added(self, service_type: str, name: str):
		try:
			info = AsyncServiceInfo(service_type, name)
			if not await info.async_request(self._zeroconf.zeroconf, 3000):
				return
			device = await self._describe(service_type, name, info)
		except Exception as e:
			logger.error(f"Error processing service {name}: {e}")
			return

		if device is not None and name not in self._devices:
			self._devices[name] = device
			self._notify_added(device)

	async def _describe(self, service_type: str, name: str, info) -> Device | None:
		addresses = info.parsed_addresses()
		if not addresses:
			return None

		txt_records = {}
		for key, value in (info.properties or {}).items():
			if isinstance(key, bytes):
				key = key.decode('utf-8', errors='replace')
			if isinstance(value, bytes):
				value = value.decode('utf-8', errors='replace')
			txt_records[key] = value

		secure = '_uscans' in service_type
		scheme = 'https' if secure else 'http'
		port = info.port or (443 if secure else 80)
		root = '/' + (txt_records.get('rs') or 'eSCL').strip('/')
		base_url = f"{scheme}://{addresses[0]}:{port}{root}"

		async with httpx.AsyncClient(timeout=self._timeout, verify=self._verify_ssl) as client:
			response = await client.get(f"{base_url}/ScannerCapabilities")
			response.raise_for_status()
		data = parse_capabilities(response.text)

		return Device(
			id=f"escl://{addresses[0]}:{port}",
			name=txt_records.get('ty') or data.get('MakeAndModel') or name.split('.')[0],
			capabilities=DeviceCapabilities.from_escl(data),
			manufacturer=txt_records.get('mfg'),
			model=txt_records.get('mdl'),
			address=base_url,
		)

	async def stop(self):
		for task in list(self._tasks):
			task.cancel()
		if self._browser is not None:
			await self._browser.async_cancel()
			self._browser = None
		if self._zeroconf is not None:
			await self._zeroconf.async_close()
			self._zeroconf = None
			logger.info("Scanner discovery stopped")


class EsclScanSession(ScanSession):
	"""Scan session against an eSCL device over HTTP."""

	def __init__(
		self,
		timeout: float = 30.0,
		verify_ssl: bool = True,
		poll_interval: float = 0.5,
		transport: httpx.AsyncBaseTransport | None = None,
	):
		super().__init__()
		self._timeout = timeout
		self._transport = transport
		self._verify_ssl = verify_ssl
		self._poll_interval = poll_interval
		self._client: httpx.AsyncClient | None = None
		self._base_url: str | None = None
		self._config: ResolvedConfiguration | None = None
		self._job_url: str | None = None

	async def request_open(self, device: Device):
		self._base_url = device.address.rstrip('/')
		self._client = httpx.AsyncClient(
			timeout=self._timeout,
			verify=self._verify_ssl,
			follow_redirects=True,
			transport=self._transport,
		)
		self._spawn(self._open())

	async def _open(self):
		try:
			response = await self._client.get(f"{self._base_url}/ScannerStatus")
			response.raise_for_status()
			state = parse_state(response.text)
			if state is not None and state != 'Idle':
				raise SessionOpenError(f"Scanner is {state}")
		except Exception as e:
			self.post(OpenCompleted(error=e))
			return
		self.post(OpenCompleted())

	async def configure(self, config: ResolvedConfiguration):
		self._config = config

	async def request_scan(self):
		self._spawn(self._scan())

	async def _scan(self):
		config = self._config
		page = 0
		try:
			response = await self._client.post(
				f"{self._base_url}/ScanJobs",
				content=build_scan_settings(config),
				headers={'Content-Type': 'application/xml'},
			)
			if response.status_code != 201:
				response.raise_for_status()
				raise ScanError(f"Unexpected response creating scan job: {response.status_code}")
			location = response.headers.get('Location')
			if not location:
				raise ScanError("Scanner did not return a job location")
			self._job_url = str(httpx.URL(f"{self._base_url}/").join(location)).rstrip('/')

			while True:
				content = await self._next_document()
				if content is None:
					if page == 0:
						raise ScanError("Scanner returned no document")
					break

				page += 1
				path = config.page_path(page)
				await asyncio.to_thread(path.write_bytes, content)
				self.post(FileTransferred(path=path))

				if not config.uses_feeder:
					break
		except Exception as e:
			logger.error(f"eSCL scan error: {e}")
			self.post(ScanCompleted(error=e))
			return

		self._job_url = None
		self.post(ScanCompleted())

	async def _next_document(self) -> bytes | None:
		"""Fetch the next page of the current job, None when there are no more."""
		while True:
			response = await self._client.get(f"{self._job_url}/NextDocument")
			if response.status_code == 200:
				return response.content
			if response.status_code == 404:
				return None
			if response.status_code == 503:
				# Page not ready yet
				await asyncio.sleep(self._poll_interval)
				continue
			response.raise_for_status()
			raise ScanError(f"Unexpected response fetching document: {response.status_code}")

	async def close(self):
		await self._cancel_pending()
		if self._client is None:
			return
		if self._job_url:
			try:
				await self._client.delete(self._job_url)
			except httpx.HTTPError as e:
				logger.debug(f"Could not delete scan job: {e}")
			self._job_url = None
		await self._client.aclose()
		self._client = None
