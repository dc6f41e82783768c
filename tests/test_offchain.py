"""Test offchain attestation signing and verification.

Offchain artifacts are verified purely client-side: UID consistency and
signer recovery must both hold.
"""

from __future__ import annotations

import pytest

from eas.sdk.constants import NO_EXPIRATION, ZERO_BYTES, ZERO_BYTES32
from eas.sdk.hashing import get_offchain_uid
from eas.sdk.models import OffchainAttestationParams, SignedOffchainAttestation
from eas.sdk.offchain import Offchain
from eas.sdk.signer import AccountSigner
from tests.helpers import CHAIN_ID, EAS_VERSION, KEY_1, KEY_2, REGISTRY, SCHEMA

RECIPIENT_1111 = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def offchain() -> Offchain:
    return Offchain.for_registry(EAS_VERSION, CHAIN_ID, REGISTRY)


@pytest.fixture
def signer() -> AccountSigner:
    return AccountSigner.from_key(KEY_1)


def _params(version: int = 1, **overrides) -> OffchainAttestationParams:
    fields = {
        "version": version,
        "schema": SCHEMA,
        "recipient": RECIPIENT_1111,
        "time": 1000,
        "expiration_time": NO_EXPIRATION,
        "revocable": True,
        "ref_uid": ZERO_BYTES32,
        "data": ZERO_BYTES,
    }
    fields.update(overrides)
    return OffchainAttestationParams(**fields)


@pytest.mark.asyncio
async def test_offchain_scenario(offchain: Offchain, signer: AccountSigner) -> None:
    """Test deterministic UID plus sign/verify for the reference scenario."""
    uid_first = get_offchain_uid(1, SCHEMA, RECIPIENT_1111, 1000, NO_EXPIRATION, True, ZERO_BYTES32, ZERO_BYTES)
    uid_second = get_offchain_uid(1, SCHEMA, RECIPIENT_1111, 1000, NO_EXPIRATION, True, ZERO_BYTES32, ZERO_BYTES)

    attestation = await offchain.sign_offchain_attestation(_params(), signer)

    assert uid_first == uid_second
    assert len(bytes.fromhex(uid_first[2:])) == 32
    assert attestation.uid == uid_first
    assert offchain.verify_offchain_attestation_signature(signer.address, attestation) is True
    assert offchain.verify_offchain_attestation_signature(AccountSigner.from_key(KEY_2).address, attestation) is False


@pytest.mark.asyncio
async def test_mutated_uid_fails_even_with_valid_signature(offchain: Offchain, signer: AccountSigner) -> None:
    """Test that the UID check is independent of signature recovery."""
    attestation = await offchain.sign_offchain_attestation(_params(), signer)
    mutated = attestation.model_copy(update={"uid": "0x" + "ff" * 32})

    assert offchain.recover_signer(offchain.kind, mutated) == signer.address
    assert offchain.verify_offchain_attestation_signature(signer.address, mutated) is False


@pytest.mark.asyncio
async def test_mutated_message_fails(offchain: Offchain, signer: AccountSigner) -> None:
    attestation = await offchain.sign_offchain_attestation(_params(), signer)
    mutated = attestation.model_copy(update={"message": {**attestation.message, "time": 1001}})

    assert offchain.verify_offchain_attestation_signature(signer.address, mutated) is False


@pytest.mark.asyncio
async def test_version_mismatch(offchain: Offchain, signer: AccountSigner) -> None:
    """Test that versions must agree between handler, params and artifact."""
    attestation = await offchain.sign_offchain_attestation(_params(), signer)
    legacy = Offchain.for_registry(EAS_VERSION, CHAIN_ID, REGISTRY, offchain_version=0)

    with pytest.raises(ValueError, match="does not match"):
        await offchain.sign_offchain_attestation(_params(version=0), signer)
    assert legacy.verify_offchain_attestation_signature(signer.address, attestation) is False


@pytest.mark.asyncio
async def test_legacy_version_round_trip(signer: AccountSigner) -> None:
    """Test version 0 attestations, which carry no version field."""
    legacy = Offchain.for_registry(EAS_VERSION, CHAIN_ID, REGISTRY, offchain_version=0)

    attestation = await legacy.sign_offchain_attestation(_params(version=0), signer)

    assert attestation.primary_type == "Attestation"
    assert "version" not in attestation.message
    assert legacy.verify_offchain_attestation_signature(signer.address, attestation) is True


@pytest.mark.asyncio
async def test_artifact_survives_json(offchain: Offchain, signer: AccountSigner) -> None:
    """Test that a stored artifact still verifies after serialization."""
    attestation = await offchain.sign_offchain_attestation(
        _params(data=b"\x00\x01payload", expiration_time=5000, revocable=False, ref_uid="0x" + "01" * 32), signer
    )

    restored = SignedOffchainAttestation.model_validate_json(attestation.model_dump_json())

    assert restored == attestation
    assert offchain.verify_offchain_attestation_signature(signer.address, restored) is True


@pytest.mark.asyncio
async def test_malformed_message_returns_false(offchain: Offchain, signer: AccountSigner) -> None:
    attestation = await offchain.sign_offchain_attestation(_params(), signer)
    message = dict(attestation.message)
    del message["refUID"]

    assert offchain.verify_offchain_attestation_signature(
        signer.address, attestation.model_copy(update={"message": message})
    ) is False
