"""Key-holder seam for typed-data signing.

Signing is an I/O boundary (hardware wallets, remote signers), so the
protocol is async. ``AccountSigner`` wraps an in-process ``eth_account`` key.
"""

from __future__ import annotations

from typing import Any, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount


class TypedDataSigner(Protocol):
    """Anything that can produce an EIP-712 signature for an address."""

    @property
    def address(self) -> str: ...

    async def sign_typed_data(
        self, domain: dict[str, Any], types: dict[str, list[dict[str, str]]], message: dict[str, Any]
    ) -> bytes: ...


class AccountSigner:
    """Typed-data signer backed by a local private key."""

    def __init__(self, account: LocalAccount):
        if not account:
            raise ValueError("Account is required")
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> AccountSigner:
        """Create signer from a hex private key."""
        try:
            return cls(Account.from_key(private_key))
        except Exception as e:
            raise ValueError(f"Invalid private key: {e}")

    @classmethod
    def generate(cls) -> AccountSigner:
        return cls(Account.create())

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(
        self, domain: dict[str, Any], types: dict[str, list[dict[str, str]]], message: dict[str, Any]
    ) -> bytes:
        signed = self._account.sign_typed_data(domain_data=domain, message_types=types, message_data=message)
        return bytes(signed.signature)
