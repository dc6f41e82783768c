"""Protocol sentinels and default domain names."""

from __future__ import annotations

NO_EXPIRATION = 0

ZERO_BYTES = b""
ZERO_BYTES32 = "0x" + "00" * 32
ZERO_ADDRESS = "0x" + "00" * 20

EAS_DOMAIN_NAME = "EAS"
OFFCHAIN_DOMAIN_NAME = "EAS Attestation"
PROXY_DOMAIN_NAME = "EIP712Proxy"

OFFCHAIN_ATTESTATION_VERSION = 1
