"""Self-contained offchain attestations.

An offchain attestation is never checked by the registry, so verification
here is the only integrity check it gets: the embedded UID must match the
signed fields, and the signature must recover to the claimed attester.
"""

from __future__ import annotations

import logging

from eas.sdk.constants import OFFCHAIN_ATTESTATION_VERSION, OFFCHAIN_DOMAIN_NAME
from eas.sdk.hashing import OffchainAttestationVersion, get_offchain_uid
from eas.sdk.models import EIP712Domain, OffchainAttestationParams, SignedOffchainAttestation
from eas.sdk.signer import TypedDataSigner
from eas.sdk.typed_data import RequestKind, TypedDataHandler, build_domain

logger = logging.getLogger(__name__)

_KIND_BY_VERSION = {
    OffchainAttestationVersion.LEGACY: RequestKind.OFFCHAIN_V0,
    OffchainAttestationVersion.VERSION1: RequestKind.OFFCHAIN_V1,
}


def request_kind_for(version: int) -> RequestKind:
    """Typed-data request kind for an offchain encoding version."""
    return _KIND_BY_VERSION[OffchainAttestationVersion(version)]


def offchain_uid(params: OffchainAttestationParams) -> str:
    """UID over exactly the fields that get signed."""
    return get_offchain_uid(
        params.version,
        params.schema_uid,
        params.recipient,
        params.time,
        params.expiration_time,
        params.revocable,
        params.ref_uid,
        params.data,
    )


class Offchain(TypedDataHandler):
    """Offchain signer/verifier for one registry deployment and encoding version."""

    def __init__(self, domain: EIP712Domain, version: int = OFFCHAIN_ATTESTATION_VERSION):
        super().__init__(domain)
        self.version = OffchainAttestationVersion(version)
        self.kind = request_kind_for(self.version)

    @classmethod
    def for_registry(
        cls, version: str, chain_id: int, address: str, offchain_version: int = OFFCHAIN_ATTESTATION_VERSION
    ) -> Offchain:
        return cls(build_domain(OFFCHAIN_DOMAIN_NAME, version, chain_id, address), offchain_version)

    async def sign_offchain_attestation(
        self, params: OffchainAttestationParams, signer: TypedDataSigner
    ) -> SignedOffchainAttestation:
        """Sign ``params`` and attach the UID derived from the same fields."""
        if params.version != self.version:
            raise ValueError(f"Offchain version {params.version} does not match handler version {int(self.version)}")

        uid = offchain_uid(params)
        response = await self.sign_typed_data_request(self.kind, params.to_message(), signer)
        return SignedOffchainAttestation(
            domain=response.domain,
            primary_type=response.primary_type,
            types=response.types,
            message=response.message,
            signature=response.signature,
            uid=uid,
            version=int(self.version),
        )

    def verify_offchain_attestation_signature(self, attester: str, attestation: SignedOffchainAttestation) -> bool:
        """Verify UID consistency and signer; never raises on bad input."""
        if attestation.version != self.version:
            return False
        params = self.params_from_message(attestation)
        if params is None:
            return False
        try:
            expected_uid = offchain_uid(params)
        except Exception as e:
            logger.debug(f"Cannot derive offchain UID: {e}")
            return False
        if attestation.uid.lower() != expected_uid:
            logger.debug(f"Offchain UID mismatch for {attestation.uid}")
            return False
        return self.verify_typed_data_request_signature(self.kind, attester, attestation)

    def params_from_message(self, attestation: SignedOffchainAttestation) -> OffchainAttestationParams | None:
        """Rebuild signed parameters from a response message."""
        message = attestation.message
        if self.version is OffchainAttestationVersion.VERSION1 and message.get("version") != int(self.version):
            return None
        try:
            return OffchainAttestationParams(
                version=int(self.version),
                schema=message["schema"],
                recipient=message["recipient"],
                time=message["time"],
                expiration_time=message["expirationTime"],
                revocable=message["revocable"],
                ref_uid=message["refUID"],
                data=message["data"],
            )
        except (KeyError, ValueError) as e:
            logger.debug(f"Malformed offchain attestation message: {e}")
            return None
