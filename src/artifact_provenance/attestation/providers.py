"""
Attestation Providers Module

Confidential-computing platform detection and attestation report
retrieval. Reports are opaque strings embedded verbatim in a manifest
assertion.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from ..errors import AttestationError
from ..models import CustomAssertion

logger = logging.getLogger(__name__)

TDX_PLATFORM = "tdx-linux"
UNSUPPORTED_PLATFORM = "unsupported"

TDX_GUEST_DEVICE = Path("/dev/tdx_guest")
TSM_REPORT_DIR = Path("/sys/kernel/config/tsm/report")

MEASUREMENT_SIZE = 48
REPORT_DATA_SIZE = 64
# TD quote v4: 48-byte header, then MRTD at offset 136 of the TD report body
MRTD_OFFSET = 48 + 136


def get_platform_name() -> str:
    """Return ``tdx-linux`` inside a TDX guest, ``unsupported`` elsewhere."""
    if TDX_GUEST_DEVICE.exists() or TSM_REPORT_DIR.is_dir():
        return TDX_PLATFORM
    return UNSUPPORTED_PLATFORM


class AttestationProvider(ABC):
    """Source of attestation evidence for the running platform."""

    @abstractmethod
    def get_attestation_report(self) -> str:
        pass

    @abstractmethod
    def get_launch_measurement(self) -> bytes:
        pass


class MockAttestationProvider(AttestationProvider):
    """Simulated evidence for hosts without confidential-computing support."""

    def __init__(self, platform: str):
        self.platform = platform

    def get_attestation_report(self) -> str:
        report = {
            "type": "mock_attestation",
            "platform": self.platform,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "mock_data": {
                "version": "1.0",
                "status": "simulated",
            },
        }
        return json.dumps(report)

    def get_launch_measurement(self) -> bytes:
        return bytes(MEASUREMENT_SIZE)


class LinuxTdxProvider(AttestationProvider):
    """Reads TD quotes through the configfs-tsm report interface."""

    def __init__(self, report_dir: Path = TSM_REPORT_DIR):
        self.report_dir = Path(report_dir)

    def _get_quote(self, report_data: bytes = bytes(REPORT_DATA_SIZE)) -> bytes:
        try:
            entry = Path(tempfile.mkdtemp(prefix="provenance-", dir=self.report_dir))
        except OSError as e:
            raise AttestationError(f"Could not create TSM report entry: {e}") from e

        try:
            (entry / "inblob").write_bytes(report_data)
            quote = (entry / "outblob").read_bytes()
        except OSError as e:
            raise AttestationError(f"Failed to read TD quote: {e}") from e
        finally:
            try:
                os.rmdir(entry)
            except OSError:
                logger.debug("Could not remove TSM report entry %s", entry)

        if not quote:
            raise AttestationError("Empty TD quote returned by configfs-tsm")
        return quote

    def get_attestation_report(self) -> str:
        return self._get_quote().hex()

    def get_launch_measurement(self) -> bytes:
        quote = self._get_quote()
        if len(quote) < MRTD_OFFSET + MEASUREMENT_SIZE:
            raise AttestationError("TD quote too short to contain a launch measurement")
        return quote[MRTD_OFFSET:MRTD_OFFSET + MEASUREMENT_SIZE]


def get_provider(platform: str) -> AttestationProvider:
    if platform == TDX_PLATFORM:
        return LinuxTdxProvider()
    return MockAttestationProvider(platform)


def get_report(show: bool = False) -> str:
    """
    Get an attestation report for the current platform.

    Args:
        show: Log the report once obtained

    Returns:
        Opaque report string
    """
    report = get_provider(get_platform_name()).get_attestation_report()
    if show:
        logger.info("Got report: %s", report)
    return report


def get_launch_measurement() -> bytes:
    return get_provider(get_platform_name()).get_launch_measurement()


def verify_launch_endorsement(host_platform: str) -> bool:
    """Check the launch measurement against the host vendor's endorsement."""
    raise AttestationError(
        f"Launch endorsement verification not supported for platform {host_platform}"
    )


def get_cc_attestation_assertion() -> CustomAssertion:
    """
    Build the assertion carrying this platform's attestation report.

    Returns:
        ``CustomAssertion`` labelled with the platform name
    """
    platform = get_platform_name()
    report = get_report(False)
    return CustomAssertion(label=platform, data=report)
