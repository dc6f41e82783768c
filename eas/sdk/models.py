"""Pydantic models for EAS data structures.

Provides request envelopes, typed-data parameters, signed responses and the
ledger's attestation record. Byte fields accept ``bytes`` or ``0x`` hex and
serialize back to ``0x`` hex so signed artifacts round-trip through JSON.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from eas.sdk.constants import NO_EXPIRATION, ZERO_BYTES, ZERO_BYTES32


class SignatureType(str, Enum):
    """How a request is authorized."""
    DIRECT = "direct"
    DELEGATED = "delegated"
    DELEGATED_PROXY = "delegated-proxy"
    OFFCHAIN = "offchain"


def to_bytes32_hex(value: Any) -> str:
    """Validate a 32-byte identifier and return it as ``0x`` hex."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError("Expected 32 bytes")
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 66:
        raise ValueError("Expected 0x-prefixed 32-byte hex string")
    bytes.fromhex(value[2:])
    return value


def to_data_bytes(value: Any) -> bytes:
    """Coerce payload input (bytes or ``0x`` hex) to raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith("0x"):
        return bytes.fromhex(value[2:])
    raise ValueError("Data must be bytes or 0x-prefixed hex")


class Signature(BaseModel):
    """ECDSA signature split into recovery id and curve points."""

    model_config = ConfigDict(frozen=True)

    v: int = Field(..., description="Recovery id (27 or 28)")
    r: str = Field(..., description="r as 0x hex")
    s: str = Field(..., description="s as 0x hex")

    @classmethod
    def from_bytes(cls, signature: bytes) -> Signature:
        if len(signature) != 65:
            raise ValueError("Signature must be 65 bytes")
        v = signature[64]
        if v < 27:
            v += 27
        return cls(v=v, r="0x" + signature[:32].hex(), s="0x" + signature[32:64].hex())

    def to_bytes(self) -> bytes:
        r = int(self.r, 16).to_bytes(32, "big")
        s = int(self.s, 16).to_bytes(32, "big")
        return r + s + bytes([self.v])

    def to_vrs(self) -> tuple[int, int, int]:
        return self.v, int(self.r, 16), int(self.s, 16)


class _DataModel(BaseModel):
    """Shared handling for the ``data`` payload field."""

    @field_validator("data", mode="before", check_fields=False)
    @classmethod
    def _coerce_data(cls, v: Any) -> bytes:
        return to_data_bytes(v)

    @field_serializer("data", check_fields=False)
    def _serialize_data(self, v: bytes) -> str:
        return "0x" + v.hex()


class AttestationRequestData(_DataModel):
    """Construction input for a single attestation."""

    recipient: str = Field(..., description="Recipient address")
    data: bytes = Field(default=ZERO_BYTES, description="Encoded payload")
    expiration_time: int = Field(default=NO_EXPIRATION, ge=0, description="0 = never expires")
    revocable: bool = Field(default=True)
    ref_uid: str = Field(default=ZERO_BYTES32, description="Referenced attestation UID")
    value: int = Field(default=0, ge=0, description="Native value sent to the resolver")

    @field_validator("ref_uid", mode="before")
    @classmethod
    def _check_ref_uid(cls, v: Any) -> str:
        return to_bytes32_hex(v)


class RevocationRequestData(BaseModel):
    """Construction input for a single revocation."""

    uid: str = Field(..., description="UID of the attestation to revoke")
    value: int = Field(default=0, ge=0)

    @field_validator("uid", mode="before")
    @classmethod
    def _check_uid(cls, v: Any) -> str:
        return to_bytes32_hex(v)


class _SchemaBound(BaseModel):
    schema_uid: str = Field(..., alias="schema", description="Schema UID")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("schema_uid", mode="before")
    @classmethod
    def _check_schema(cls, v: Any) -> str:
        return to_bytes32_hex(v)


class AttestationRequest(_SchemaBound):
    data: AttestationRequestData


class DelegatedAttestationRequest(AttestationRequest):
    signature: Signature
    attester: str


class DelegatedProxyAttestationRequest(DelegatedAttestationRequest):
    deadline: int = Field(default=NO_EXPIRATION, ge=0)


class MultiAttestationRequest(_SchemaBound):
    data: list[AttestationRequestData]


class MultiDelegatedAttestationRequest(MultiAttestationRequest):
    signatures: list[Signature]
    attester: str


class MultiDelegatedProxyAttestationRequest(MultiDelegatedAttestationRequest):
    deadline: int = Field(default=NO_EXPIRATION, ge=0)


class RevocationRequest(_SchemaBound):
    data: RevocationRequestData


class DelegatedRevocationRequest(RevocationRequest):
    signature: Signature
    revoker: str


class DelegatedProxyRevocationRequest(DelegatedRevocationRequest):
    deadline: int = Field(default=NO_EXPIRATION, ge=0)


class MultiRevocationRequest(_SchemaBound):
    data: list[RevocationRequestData]


class MultiDelegatedRevocationRequest(MultiRevocationRequest):
    signatures: list[Signature]
    revoker: str


class MultiDelegatedProxyRevocationRequest(MultiDelegatedRevocationRequest):
    deadline: int = Field(default=NO_EXPIRATION, ge=0)


class Attestation(_DataModel):
    """Attestation record as held by the ledger."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: str
    schema_uid: str = Field(..., alias="schema")
    ref_uid: str = Field(default=ZERO_BYTES32)
    time: int
    expiration_time: int = Field(default=NO_EXPIRATION)
    revocation_time: int = Field(default=0, description="0 = not revoked")
    recipient: str
    attester: str
    revocable: bool = True
    data: bytes = ZERO_BYTES

    @property
    def is_revoked(self) -> bool:
        return self.revocation_time > 0


# --- Typed-data parameters ---

class EIP712AttestationParams(_DataModel):
    """Fields signed for a nonce-bound delegated attestation."""

    model_config = ConfigDict(populate_by_name=True)

    schema_uid: str = Field(..., alias="schema")
    recipient: str
    expiration_time: int = NO_EXPIRATION
    revocable: bool = True
    ref_uid: str = ZERO_BYTES32
    data: bytes = ZERO_BYTES
    nonce: int = Field(..., ge=0)

    def to_message(self) -> dict[str, Any]:
        return {
            "schema": self.schema_uid,
            "recipient": self.recipient,
            "expirationTime": self.expiration_time,
            "revocable": self.revocable,
            "refUID": self.ref_uid,
            "data": "0x" + self.data.hex(),
            "nonce": self.nonce,
        }


class EIP712AttestationProxyParams(_DataModel):
    """Fields signed for a deadline-bound proxy attestation."""

    model_config = ConfigDict(populate_by_name=True)

    schema_uid: str = Field(..., alias="schema")
    recipient: str
    expiration_time: int = NO_EXPIRATION
    revocable: bool = True
    ref_uid: str = ZERO_BYTES32
    data: bytes = ZERO_BYTES
    deadline: int = Field(default=NO_EXPIRATION, ge=0)

    def to_message(self) -> dict[str, Any]:
        return {
            "schema": self.schema_uid,
            "recipient": self.recipient,
            "expirationTime": self.expiration_time,
            "revocable": self.revocable,
            "refUID": self.ref_uid,
            "data": "0x" + self.data.hex(),
            "deadline": self.deadline,
        }


class EIP712RevocationParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_uid: str = Field(..., alias="schema")
    uid: str
    nonce: int = Field(..., ge=0)

    def to_message(self) -> dict[str, Any]:
        return {"schema": self.schema_uid, "uid": self.uid, "nonce": self.nonce}


class EIP712RevocationProxyParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_uid: str = Field(..., alias="schema")
    uid: str
    deadline: int = Field(default=NO_EXPIRATION, ge=0)

    def to_message(self) -> dict[str, Any]:
        return {"schema": self.schema_uid, "uid": self.uid, "deadline": self.deadline}


class OffchainAttestationParams(_DataModel):
    """Fields of a self-contained offchain attestation."""

    model_config = ConfigDict(populate_by_name=True)

    version: int
    schema_uid: str = Field(..., alias="schema")
    recipient: str
    time: int = Field(..., ge=0)
    expiration_time: int = NO_EXPIRATION
    revocable: bool = True
    ref_uid: str = ZERO_BYTES32
    data: bytes = ZERO_BYTES

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "version": self.version,
            "schema": self.schema_uid,
            "recipient": self.recipient,
            "time": self.time,
            "expirationTime": self.expiration_time,
            "revocable": self.revocable,
            "refUID": self.ref_uid,
            "data": "0x" + self.data.hex(),
        }
        if self.version == 0:
            del message["version"]
        return message


# --- Signed responses ---

class EIP712Domain(BaseModel):
    """Signing domain binding a signature to chain, contract and version."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    chain_id: int = Field(..., gt=0)
    verifying_contract: str

    def to_typed_data(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


class EIP712Response(BaseModel):
    """Signed typed-data request ready to hand to a relayer."""

    domain: EIP712Domain
    primary_type: str
    types: dict[str, list[dict[str, str]]]
    message: dict[str, Any]
    signature: Signature


class SignedOffchainAttestation(EIP712Response):
    """Offchain attestation artifact; retained as the record of the claim."""

    uid: str
    version: int


class SubmissionOutcome(BaseModel):
    """Normalized result of an orchestrated request."""

    signature_type: SignatureType
    uids: list[str] = Field(default_factory=list)
    batch: bool = False
    confirmed: bool | None = Field(default=None, description="Post-submission ledger check, if run")
    offchain: SignedOffchainAttestation | None = None

    @property
    def uid(self) -> str:
        if self.batch or len(self.uids) != 1:
            raise ValueError("Outcome holds a batch; use uids")
        return self.uids[0]
