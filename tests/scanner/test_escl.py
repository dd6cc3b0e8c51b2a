# (c) Copyright Datacraft, 2026
"""Tests for the eSCL backend."""
import xml.etree.ElementTree as ET
from unittest.mock import MagicMock, patch

import httpx
import pytest
from zeroconf import ServiceStateChange

from docscan.scanner.base import Device, ResolvedConfiguration, ScanArea, ScanRequest
from docscan.scanner.capabilities import BitDepth, DeviceCapabilities, PixelDataType
from docscan.scanner.document_size import DocumentCategory
from docscan.scanner.errors import ScanError, SessionOpenError
from docscan.scanner.escl import (
	NAMESPACES,
	EsclCatalog,
	EsclScanSession,
	build_scan_settings,
	parse_capabilities,
	parse_state,
)
from docscan.scanner.session import ScanStateMachine, SessionState


CAPABILITIES_XML = """<?xml version="1.0" encoding="UTF-8"?>
<scan:ScannerCapabilities xmlns:scan="http://schemas.hp.com/imaging/escl/2011/05/03"
                          xmlns:pwg="http://www.pwg.org/schemas/2010/12/sm">
  <pwg:Version>2.63</pwg:Version>
  <pwg:MakeAndModel>HP ENVY 6000</pwg:MakeAndModel>
  <scan:Platen>
    <scan:PlatenInputCaps>
      <scan:MinWidth>8</scan:MinWidth>
      <scan:MaxWidth>2550</scan:MaxWidth>
      <scan:MinHeight>8</scan:MinHeight>
      <scan:MaxHeight>3508</scan:MaxHeight>
      <scan:SettingProfiles>
        <scan:SettingProfile>
          <scan:ColorModes>
            <scan:ColorMode>RGB24</scan:ColorMode>
            <scan:ColorMode>Grayscale8</scan:ColorMode>
            <scan:ColorMode>BlackAndWhite1</scan:ColorMode>
          </scan:ColorModes>
          <scan:SupportedResolutions>
            <scan:DiscreteResolutions>
              <scan:DiscreteResolution>
                <scan:XResolution>300</scan:XResolution>
                <scan:YResolution>300</scan:YResolution>
              </scan:DiscreteResolution>
              <scan:DiscreteResolution>
                <scan:XResolution>75</scan:XResolution>
                <scan:YResolution>75</scan:YResolution>
              </scan:DiscreteResolution>
              <scan:DiscreteResolution>
                <scan:XResolution>1200</scan:XResolution>
                <scan:YResolution>1200</scan:YResolution>
              </scan:DiscreteResolution>
            </scan:DiscreteResolutions>
          </scan:SupportedResolutions>
        </scan:SettingProfile>
      </scan:SettingProfiles>
    </scan:PlatenInputCaps>
  </scan:Platen>
  <scan:Adf>
    <scan:AdfSimplexInputCaps/>
  </scan:Adf>
</scan:ScannerCapabilities>
"""

STATUS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<scan:ScannerStatus xmlns:scan="http://schemas.hp.com/imaging/escl/2011/05/03"
                    xmlns:pwg="http://www.pwg.org/schemas/2010/12/sm">
  <pwg:Version>2.63</pwg:Version>
  <pwg:State>{state}</pwg:State>
</scan:ScannerStatus>
"""

BASE_URL = "http://192.168.1.20:80/eSCL"


class FakeScanner:
	"""httpx handler emulating an eSCL device."""

	def __init__(self, pages: int = 1, state: str = "Idle", not_ready: int = 1, job_status: int = 201):
		self.documents = [f"page {n}".encode() for n in range(1, pages + 1)]
		self.state = state
		self.not_ready = not_ready
		self.job_status = job_status
		self.scan_settings: str | None = None
		self.requests: list[tuple[str, str]] = []

	def __call__(self, request: httpx.Request) -> httpx.Response:
		path = request.url.path
		self.requests.append((request.method, path))

		if path.endswith("/ScannerCapabilities"):
			return httpx.Response(200, text=CAPABILITIES_XML)
		if path.endswith("/ScannerStatus"):
			return httpx.Response(200, text=STATUS_XML.format(state=self.state))
		if path.endswith("/ScanJobs") and request.method == "POST":
			self.scan_settings = request.content.decode()
			if self.job_status != 201:
				return httpx.Response(self.job_status)
			return httpx.Response(201, headers={"Location": "/eSCL/ScanJobs/42"})
		if path.endswith("/NextDocument"):
			if self.not_ready:
				self.not_ready -= 1
				return httpx.Response(503)
			if self.documents:
				return httpx.Response(200, content=self.documents.pop(0))
			return httpx.Response(404)
		if request.method == "DELETE":
			return httpx.Response(200)
		return httpx.Response(404)


def escl_device(has_feeder: bool = False) -> Device:
	return Device(
		id="escl://192.168.1.20:80",
		name="HP ENVY 6000",
		capabilities=DeviceCapabilities(
			resolutions=(75, 300, 1200),
			has_feeder=has_feeder,
			units_per_inch=300.0,
		),
		address=BASE_URL,
	)


def make_session(scanner: FakeScanner) -> EsclScanSession:
	return EsclScanSession(poll_interval=0, transport=httpx.MockTransport(scanner))


def settings_value(xml_text: str, tag: str) -> str:
	return ET.fromstring(xml_text).find(f".//{tag}", NAMESPACES).text


class TestParsing:
	"""Tests for the eSCL XML helpers."""

	def test_parse_capabilities(self):
		data = parse_capabilities(CAPABILITIES_XML)

		assert data["MakeAndModel"] == "HP ENVY 6000"
		assert data["InputSources"] == ["Platen", "Feeder"]
		assert data["Resolutions"] == [75, 300, 1200]
		assert data["ColorModes"] == ["BlackAndWhite1", "Grayscale8", "RGB24"]
		assert data["PlatenInputCaps"]["MaxWidth"] == 2550

	def test_capabilities_from_parsed_xml(self):
		caps = DeviceCapabilities.from_escl(parse_capabilities(CAPABILITIES_XML))

		assert caps.resolutions == (75, 300, 1200)
		assert caps.has_feeder
		assert caps.units_per_inch == 300.0
		assert caps.supports_pixel_type(PixelDataType.BW)
		assert caps.max_width == pytest.approx(215.9)

	def test_parse_state(self):
		assert parse_state(STATUS_XML.format(state="Processing")) == "Processing"

	def test_build_flatbed_settings(self, tmp_path):
		config = ResolvedConfiguration(
			resolution=300,
			pixel_type=PixelDataType.BW,
			bit_depth=BitDepth.DEPTH_1,
			output_directory=tmp_path,
			scan_area=ScanArea(left=0, top=0, width=2480.3, height=3507.9),
		)
		xml_text = build_scan_settings(config)

		assert settings_value(xml_text, "pwg:InputSource") == "Platen"
		assert settings_value(xml_text, "scan:ColorMode") == "BlackAndWhite1"
		assert settings_value(xml_text, "scan:XResolution") == "300"
		assert settings_value(xml_text, "pwg:Width") == "2480"
		assert settings_value(xml_text, "pwg:DocumentFormat") == "image/jpeg"

	def test_build_feeder_settings(self, tmp_path):
		config = ResolvedConfiguration(
			resolution=75,
			pixel_type=PixelDataType.RGB,
			bit_depth=BitDepth.DEPTH_8,
			output_directory=tmp_path,
			document_format="png",
			document_category=DocumentCategory.A4,
		)
		xml_text = build_scan_settings(config)

		assert settings_value(xml_text, "pwg:InputSource") == "Feeder"
		assert settings_value(xml_text, "scan:ColorMode") == "RGB24"
		assert settings_value(xml_text, "pwg:Width") == "2480"
		assert settings_value(xml_text, "pwg:Height") == "3507"
		assert settings_value(xml_text, "pwg:DocumentFormat") == "image/png"


class TestEsclScanSession:
	"""Tests for EsclScanSession driven by the state machine."""

	@pytest.mark.asyncio
	async def test_flatbed_scan(self, tmp_path):
		scanner = FakeScanner(pages=1)
		request = ScanRequest(destination=tmp_path / "out.jpg", resolution=250, color_mode="grayscale")

		outcome = await ScanStateMachine(make_session(scanner)).start_scan(escl_device(), request)

		assert outcome.success
		assert request.destination.read_bytes() == b"page 1"
		assert settings_value(scanner.scan_settings, "scan:XResolution") == "300"
		assert settings_value(scanner.scan_settings, "scan:ColorMode") == "Grayscale8"
		assert ("GET", "/eSCL/ScanJobs/42/NextDocument") in scanner.requests

	@pytest.mark.asyncio
	async def test_feeder_scan_fetches_until_404(self, tmp_path):
		scanner = FakeScanner(pages=2, not_ready=0)
		request = ScanRequest(destination=tmp_path / "out.jpg")

		outcome = await ScanStateMachine(make_session(scanner)).start_scan(escl_device(has_feeder=True), request)

		assert outcome.success
		assert [path.name for path in outcome.files] == ["out.jpg", "out-2.jpg"]
		assert (tmp_path / "out-2.jpg").read_bytes() == b"page 2"

	@pytest.mark.asyncio
	async def test_busy_scanner(self, tmp_path):
		scanner = FakeScanner(state="Processing")
		request = ScanRequest(destination=tmp_path / "out.jpg")

		outcome = await ScanStateMachine(make_session(scanner)).start_scan(escl_device(), request)

		assert outcome.state == SessionState.FAILED
		assert isinstance(outcome.error, SessionOpenError)
		assert "Processing" in str(outcome.error)
		assert not any(method == "POST" for method, _ in scanner.requests)

	@pytest.mark.asyncio
	async def test_job_rejected(self, tmp_path):
		scanner = FakeScanner(job_status=409)
		request = ScanRequest(destination=tmp_path / "out.jpg")

		outcome = await ScanStateMachine(make_session(scanner)).start_scan(escl_device(), request)

		assert isinstance(outcome.error, ScanError)
		assert not request.destination.exists()

	@pytest.mark.asyncio
	async def test_empty_job_is_deleted(self, tmp_path):
		scanner = FakeScanner(pages=0, not_ready=0)
		request = ScanRequest(destination=tmp_path / "out.jpg")

		outcome = await ScanStateMachine(make_session(scanner)).start_scan(escl_device(), request)

		assert isinstance(outcome.error, ScanError)
		assert ("DELETE", "/eSCL/ScanJobs/42") in scanner.requests


class TestEsclCatalog:
	"""Tests for EsclCatalog service handling."""

	@pytest.mark.asyncio
	async def test_describe_builds_device(self):
		scanner = FakeScanner()
		real_client = httpx.AsyncClient

		def client_factory(**kwargs):
			return real_client(transport=httpx.MockTransport(scanner), **kwargs)

		info = MagicMock()
		info.parsed_addresses.return_value = ["192.168.1.20"]
		info.port = 80
		info.properties = {b"ty": b"HP ENVY 6000 series", b"rs": b"eSCL", b"mfg": b"HP"}

		catalog = EsclCatalog()
		with patch.object(httpx, "AsyncClient", side_effect=client_factory):
			device = await catalog._describe("_uscan._tcp.local.", "HP ENVY._uscan._tcp.local.", info)

		assert device.id == "escl://192.168.1.20:80"
		assert device.name == "HP ENVY 6000 series"
		assert device.manufacturer == "HP"
		assert device.address == BASE_URL
		assert device.capabilities.resolutions == (75, 300, 1200)

	@pytest.mark.asyncio
	async def test_describe_without_address(self):
		info = MagicMock()
		info.parsed_addresses.return_value = []

		assert await EsclCatalog()._describe("_uscan._tcp.local.", "x", info) is None

	def test_removed_service_notifies(self):
		device = escl_device()
		catalog = EsclCatalog()
		removed = []
		catalog.subscribe(lambda d: None, removed.append)
		catalog._devices["HP ENVY._uscan._tcp.local."] = device

		catalog._on_service_state_change(
			None,
			"_uscan._tcp.local.",
			"HP ENVY._uscan._tcp.local.",
			ServiceStateChange.Removed,
		)

		assert removed == [device]
		assert catalog._devices == {}
