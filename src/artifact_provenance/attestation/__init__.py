"""
Attestation Module

Confidential-computing attestation evidence for manifest claims.
"""

from .providers import (
    AttestationProvider,
    MockAttestationProvider,
    LinuxTdxProvider,
    get_platform_name,
    get_report,
    get_launch_measurement,
    verify_launch_endorsement,
    get_cc_attestation_assertion,
)

__all__ = [
    'AttestationProvider',
    'MockAttestationProvider',
    'LinuxTdxProvider',
    'get_platform_name',
    'get_report',
    'get_launch_measurement',
    'verify_launch_endorsement',
    'get_cc_attestation_assertion',
]
