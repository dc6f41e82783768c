"""Canonical field packing and attestation UID derivation.

UIDs are keccak-256 over Solidity ``abi.encodePacked`` layouts. The on-chain
layout mirrors the registry contract; offchain layouts are selected by an
explicit version tag. Addresses pack to their 20 raw bytes, so checksum case
does not matter. Hex byte fields are decoded before packing, except the
offchain schema, which is hashed as its hex text; its letter case changes the UID.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Union

from eth_abi.packed import encode_packed
from eth_utils import keccak

from eas.sdk.constants import ZERO_ADDRESS

BytesLike = Union[bytes, str]


class OffchainAttestationVersion(IntEnum):
    """Offchain attestation encodings."""
    LEGACY = 0
    VERSION1 = 1


_ONCHAIN_UID_TYPES = [
    "bytes32", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes", "uint32",
]

_OFFCHAIN_UID_TYPES = {
    OffchainAttestationVersion.LEGACY: [
        "bytes", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes", "uint32",
    ],
    OffchainAttestationVersion.VERSION1: [
        "uint16", "bytes", "address", "address", "uint64", "uint64", "bool", "bytes32", "bytes", "uint32",
    ],
}


def to_bytes(value: BytesLike) -> bytes:
    """Convert raw bytes or ``0x`` hex into bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value.startswith("0x"):
        return bytes.fromhex(value[2:])
    raise ValueError(f"Expected bytes or 0x-prefixed hex, got {value!r}")


def _schema_utf8(schema: BytesLike) -> bytes:
    """UTF-8 bytes of the schema's ``0x`` hex form, as offchain UIDs pack it."""
    if isinstance(schema, (bytes, bytearray)):
        schema = "0x" + bytes(schema).hex()
    return schema.encode("utf-8")


def encode_uid_fields(
    schema: BytesLike,
    recipient: str,
    attester: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: BytesLike,
    data: BytesLike,
    bump: int = 0,
) -> bytes:
    """Pack attestation fields in the registry contract's UID order."""
    return encode_packed(
        _ONCHAIN_UID_TYPES,
        [
            to_bytes(schema),
            recipient,
            attester,
            time,
            expiration_time,
            revocable,
            to_bytes(ref_uid),
            to_bytes(data),
            bump,
        ],
    )


def encode_offchain_uid_fields(
    version: int,
    schema: BytesLike,
    recipient: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: BytesLike,
    data: BytesLike,
    attester: str = ZERO_ADDRESS,
    bump: int = 0,
) -> bytes:
    """Pack offchain attestation fields for the given encoding version.

    Raises:
        ValueError: If ``version`` is not a known offchain version.
    """
    tag = OffchainAttestationVersion(version)
    values: list[object] = [
        _schema_utf8(schema),
        recipient,
        attester,
        time,
        expiration_time,
        revocable,
        to_bytes(ref_uid),
        to_bytes(data),
        bump,
    ]
    if tag is OffchainAttestationVersion.VERSION1:
        values.insert(0, int(tag))
    return encode_packed(_OFFCHAIN_UID_TYPES[tag], values)


def get_uid(
    schema: BytesLike,
    recipient: str,
    attester: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: BytesLike,
    data: BytesLike,
    bump: int = 0,
) -> str:
    """Derive the UID the registry assigns to an on-chain attestation."""
    packed = encode_uid_fields(
        schema, recipient, attester, time, expiration_time, revocable, ref_uid, data, bump
    )
    return "0x" + keccak(packed).hex()


def get_offchain_uid(
    version: int,
    schema: BytesLike,
    recipient: str,
    time: int,
    expiration_time: int,
    revocable: bool,
    ref_uid: BytesLike,
    data: BytesLike,
    attester: str = ZERO_ADDRESS,
    bump: int = 0,
) -> str:
    """Derive the UID of an offchain attestation."""
    packed = encode_offchain_uid_fields(
        version, schema, recipient, time, expiration_time, revocable, ref_uid, data, attester, bump
    )
    return "0x" + keccak(packed).hex()
