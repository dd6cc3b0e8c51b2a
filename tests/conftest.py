# (c) Copyright Datacraft, 2026
"""Pytest fixtures for scanner tests."""
import pytest

from docscan.scanner.base import Geometry, ScanRequest
from docscan.scanner.memory import InMemoryCatalog, InMemoryScanSession, make_device


@pytest.fixture
def flatbed_device():
	"""Flatbed scanner with a typical discrete resolution set."""
	return make_device("Canon1", resolutions=(75, 150, 300, 600))


@pytest.fixture
def feeder_device():
	"""Scanner with an automatic document feeder."""
	return make_device("Epson2", resolutions=(100, 200, 400, 600), has_feeder=True)


@pytest.fixture
def catalog(flatbed_device, feeder_device):
	return InMemoryCatalog([flatbed_device, feeder_device])


@pytest.fixture
def session():
	return InMemoryScanSession()


@pytest.fixture
def file_request(tmp_path):
	"""Request that saves a single file."""
	return ScanRequest(
		destination=tmp_path / "out.jpg",
		resolution=300,
		color_mode="lineart",
		geometry=Geometry(),
	)


@pytest.fixture
def directory_request(tmp_path):
	"""Request that scans into a directory."""
	scans = tmp_path / "scans"
	scans.mkdir()
	return ScanRequest(destination=scans, resolution=200, color_mode="color")
