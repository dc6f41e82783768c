"""Exceptions raised by the EAS SDK.

Verification never raises: verifiers return ``False``. Errors from the ledger
collaborator propagate unchanged.
"""

from __future__ import annotations


class EASError(Exception):
    """Base class for SDK errors."""


class ConfigurationError(EASError, ValueError):
    """Required collaborator or setting is missing (e.g. no proxy on this chain)."""


class UnsupportedOperationError(EASError):
    """Requested flow is not supported for the chosen signature type."""


class SignatureMismatchError(EASError):
    """Freshly produced signature does not recover to the expected signer."""

    def __init__(self, signer: str, kind: str) -> None:
        super().__init__(f"Signature for {kind} request does not recover to {signer}")
        self.signer = signer
        self.kind = kind
