"""EIP-712 domains, request type schemas, and the shared sign/verify handler.

Field names, types and order below are fixed by the deployed contracts.
Reordering a field changes the struct hash, so signatures silently recover
to a different address.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from eth_abi import encode
from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_utils import keccak

from eas.sdk.hashing import to_bytes
from eas.sdk.models import EIP712Domain, EIP712Response, Signature
from eas.sdk.signer import TypedDataSigner

logger = logging.getLogger(__name__)


class RequestKind(str, Enum):
    """Typed-data request shapes."""
    ATTEST = "attest"
    ATTEST_PROXY = "attest-proxy"
    REVOKE = "revoke"
    REVOKE_PROXY = "revoke-proxy"
    OFFCHAIN_V0 = "offchain-v0"
    OFFCHAIN_V1 = "offchain-v1"


EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

_ATTEST_FIELDS = [
    {"name": "schema", "type": "bytes32"},
    {"name": "recipient", "type": "address"},
    {"name": "expirationTime", "type": "uint64"},
    {"name": "revocable", "type": "bool"},
    {"name": "refUID", "type": "bytes32"},
    {"name": "data", "type": "bytes"},
]

_OFFCHAIN_FIELDS = [
    {"name": "schema", "type": "bytes32"},
    {"name": "recipient", "type": "address"},
    {"name": "time", "type": "uint64"},
    {"name": "expirationTime", "type": "uint64"},
    {"name": "revocable", "type": "bool"},
    {"name": "refUID", "type": "bytes32"},
    {"name": "data", "type": "bytes"},
]

_TYPE_SCHEMAS: dict[RequestKind, tuple[str, list[dict[str, str]]]] = {
    RequestKind.ATTEST: ("Attest", _ATTEST_FIELDS + [{"name": "nonce", "type": "uint256"}]),
    RequestKind.ATTEST_PROXY: ("Attest", _ATTEST_FIELDS + [{"name": "deadline", "type": "uint64"}]),
    RequestKind.REVOKE: ("Revoke", [
        {"name": "schema", "type": "bytes32"},
        {"name": "uid", "type": "bytes32"},
        {"name": "nonce", "type": "uint256"},
    ]),
    RequestKind.REVOKE_PROXY: ("Revoke", [
        {"name": "schema", "type": "bytes32"},
        {"name": "uid", "type": "bytes32"},
        {"name": "deadline", "type": "uint64"},
    ]),
    RequestKind.OFFCHAIN_V0: ("Attestation", _OFFCHAIN_FIELDS),
    RequestKind.OFFCHAIN_V1: ("Attest", [{"name": "version", "type": "uint16"}] + _OFFCHAIN_FIELDS),
}


def build_domain(contract_name: str, protocol_version: str, chain_id: int, verifying_contract: str) -> EIP712Domain:
    """Build the signing domain for a contract deployment."""
    return EIP712Domain(
        name=contract_name,
        version=protocol_version,
        chain_id=chain_id,
        verifying_contract=verifying_contract,
    )


def build_type_schema(kind: RequestKind) -> tuple[str, dict[str, list[dict[str, str]]]]:
    """Return ``(primary_type, types)`` for a request kind.

    A fresh copy is returned each call so callers cannot mutate the table.
    """
    primary_type, fields = _TYPE_SCHEMAS[RequestKind(kind)]
    return primary_type, {primary_type: [dict(field) for field in fields]}


def _typed_values(fields: list[dict[str, str]], message: dict[str, Any]) -> dict[str, Any]:
    """Convert hex byte fields to raw bytes for hashing."""
    values = {}
    for field in fields:
        value = message[field["name"]]
        if field["type"].startswith("bytes"):
            value = to_bytes(value)
        values[field["name"]] = value
    return values


def encode_typed_message(
    domain: EIP712Domain, primary_type: str, types: dict[str, list[dict[str, str]]], message: dict[str, Any]
) -> SignableMessage:
    """Encode a typed-data message into its EIP-191 signable form."""
    return encode_typed_data(
        domain_data=domain.to_typed_data(),
        message_types=types,
        message_data=_typed_values(types[primary_type], message),
    )


def encode_type(kind: RequestKind) -> str:
    """Render the struct signature hashed into the type hash, e.g. ``Revoke(bytes32 schema,...)``."""
    primary_type, types = build_type_schema(kind)
    fields = ",".join(f"{field['type']} {field['name']}" for field in types[primary_type])
    return f"{primary_type}({fields})"


def type_hash(kind: RequestKind) -> bytes:
    """Type hash for ``kind``; compare with the contract's getAttestTypeHash()/getRevokeTypeHash()."""
    return keccak(text=encode_type(kind))


def domain_separator(domain: EIP712Domain) -> bytes:
    """EIP-712 domain separator; compare with the contract's getDomainSeparator()."""
    domain_fields = ",".join(f"{field['type']} {field['name']}" for field in EIP712_DOMAIN_TYPE)
    return keccak(encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            keccak(text=f"EIP712Domain({domain_fields})"),
            keccak(text=domain.name),
            keccak(text=domain.version),
            domain.chain_id,
            domain.verifying_contract,
        ],
    ))


def typed_data_digest(
    domain: EIP712Domain, primary_type: str, types: dict[str, list[dict[str, str]]], message: dict[str, Any]
) -> bytes:
    """Return the 32-byte hash the signature commits to."""
    signable = encode_typed_message(domain, primary_type, types, message)
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def build_full_typed_data(response: EIP712Response) -> dict[str, Any]:
    """Render a response as a JSON typed-data document (``eth_signTypedData_v4`` shape)."""
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **response.types},
        "primaryType": response.primary_type,
        "domain": response.domain.to_typed_data(),
        "message": response.message,
    }


class TypedDataHandler:
    """Signs and verifies typed-data requests against one domain."""

    def __init__(self, domain: EIP712Domain):
        self.domain = domain

    async def sign_typed_data_request(
        self, kind: RequestKind, message: dict[str, Any], signer: TypedDataSigner
    ) -> EIP712Response:
        """Sign ``message`` as a ``kind`` request with the key holder ``signer``."""
        primary_type, types = build_type_schema(kind)
        raw_signature = await signer.sign_typed_data(
            self.domain.to_typed_data(), types, _typed_values(types[primary_type], message)
        )
        return EIP712Response(
            domain=self.domain,
            primary_type=primary_type,
            types=types,
            message=message,
            signature=Signature.from_bytes(raw_signature),
        )

    def recover_signer(self, kind: RequestKind, response: EIP712Response) -> str | None:
        """Recover the signing address, or None if the signature is malformed.

        The type schema for ``kind`` and this handler's domain are used; the
        types and domain embedded in the response are not trusted.
        """
        if response.signature.v not in (27, 28):
            return None
        primary_type, types = build_type_schema(kind)
        try:
            signable = encode_typed_message(self.domain, primary_type, types, response.message)
            return Account.recover_message(signable, vrs=response.signature.to_vrs())
        except Exception as e:
            logger.debug(f"Signature recovery failed: {e}")
            return None

    def verify_typed_data_request_signature(self, kind: RequestKind, attester: str, response: EIP712Response) -> bool:
        """Check that ``response`` was signed by ``attester`` as a ``kind`` request."""
        recovered = self.recover_signer(kind, response)
        if recovered is None:
            return False
        return recovered.lower() == attester.lower()
