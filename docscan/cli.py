# (c) Copyright Datacraft, 2026
"""docscan command line."""
import argparse
import asyncio
import logging
import sys

from docscan.config import Settings, get_settings
from docscan.log_config import setup_logging
from docscan.scanner.backends import Backend, create_catalog, create_session
from docscan.scanner.base import Device, Geometry, ScanRequest
from docscan.scanner.errors import ScannerError
from docscan.scanner.registry import DeviceRegistry
from docscan.scanner.session import ScanOutcome, ScanStateMachine

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class ArgumentParser(argparse.ArgumentParser):
	"""Usage errors exit with EXIT_FAILURE like every other failure."""

	def error(self, message: str):
		self.print_usage(sys.stderr)
		self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def parse_resolution(value: str | int, default: int) -> int:
	"""Desired resolution from the command line, `default` when unusable."""
	try:
		resolution = int(value)
	except (TypeError, ValueError):
		resolution = 0
	if resolution <= 0:
		logger.warning(f"Invalid resolution {value!r}, using {default}")
		return default
	return resolution


def build_parser(settings: Settings) -> argparse.ArgumentParser:
	parser = ArgumentParser(
		prog='docscan',
		description='Scan a document from an attached scanner.',
	)
	parser.add_argument('-L', dest='list_devices', action='store_true', help='List all available scanners')
	parser.add_argument('-d', dest='device', metavar='NAME', help='Specify scanner by name')
	parser.add_argument(
		'-m', '--mode',
		default=settings.default_color_mode,
		help='Color mode: color, grayscale or lineart',
	)
	parser.add_argument(
		'-r', '--resolution',
		default=settings.default_resolution,
		help='Desired resolution (dpi)',
	)
	parser.add_argument('-o', '--output', help='Output file path or directory')
	parser.add_argument('-l', '--left', type=float, default=0.0, help='Left offset (mm)')
	parser.add_argument('-t', '--top', type=float, default=0.0, help='Top offset (mm)')
	parser.add_argument('-x', '--width', type=float, default=210.0, help='Page width (mm)')
	parser.add_argument('-y', '--height', type=float, default=297.0, help='Page height (mm)')
	parser.add_argument(
		'-b', '--backend',
		choices=[backend.value for backend in Backend],
		default=settings.backend.value,
		help='Device access service',
	)
	parser.add_argument(
		'--settle',
		type=float,
		default=settings.discovery_settle_seconds,
		help='Seconds to wait for scanner discovery',
	)
	parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
	return parser


def print_devices(devices: list[Device]):
	if not devices:
		print("No scanners available.")
		return
	print("Available scanners:")
	for index, device in enumerate(devices):
		print(f"{index}: {device.name or 'Unknown Scanner'}")


def print_outcome(outcome: ScanOutcome):
	if outcome.success:
		print(f"Scan successfully saved to: {outcome.path}")
	else:
		print(f"Scan failed: {outcome.error}")


async def run(args: argparse.Namespace, settings: Settings) -> int:
	"""Discover devices, then list them or run one scan."""
	catalog = create_catalog(settings)
	registry = DeviceRegistry()
	registry.attach(catalog)

	try:
		await catalog.start()
		devices = await registry.settle(args.settle)

		if args.list_devices:
			print_devices(devices)
			return EXIT_OK

		try:
			device = registry.select(args.device, strict=settings.strict_device_match)
		except ScannerError as e:
			print(e)
			return EXIT_FAILURE
		print(f"Selected scanner: {device.name}")

		request = ScanRequest(
			destination=args.output,
			resolution=args.resolution,
			color_mode=args.mode,
			geometry=Geometry(
				left=args.left,
				top=args.top,
				width=args.width,
				height=args.height,
			),
			document_name=settings.document_name,
			document_format=settings.document_format,
		)
		machine = ScanStateMachine(
			create_session(settings),
			event_timeout=settings.event_timeout_seconds,
			size_tolerance=settings.size_tolerance_mm,
		)
		outcome = await machine.start_scan(device, request)
	finally:
		await catalog.stop()

	print_outcome(outcome)
	return EXIT_OK if outcome.success else EXIT_FAILURE


def main(argv: list[str] | None = None) -> int:
	settings = get_settings()
	parser = build_parser(settings)
	args = parser.parse_args(argv)

	if not args.list_devices and not args.output:
		parser.print_usage()
		print("Error: -o/--output is required unless -L is given")
		return EXIT_FAILURE

	settings = settings.model_copy(update={'backend': Backend(args.backend)})
	setup_logging(settings.log_config, 'debug' if args.verbose else settings.log_level)
	args.resolution = parse_resolution(args.resolution, settings.default_resolution)
	logger.debug(f"Using {settings.backend.value} backend")

	return asyncio.run(run(args, settings))

