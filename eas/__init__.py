"""Ethereum Attestation Service SDK.

Delegated, proxy and offchain attestation signing with deterministic UIDs.
"""

__version__ = "1.0.0b0"
