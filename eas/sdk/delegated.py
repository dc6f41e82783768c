"""Nonce-bound delegated attestation and revocation signatures.

A relayer submits these requests to the registry directly. Each signature
embeds the signer's nonce as the registry will see it at submission time.
"""

from __future__ import annotations

from eas.sdk.constants import EAS_DOMAIN_NAME
from eas.sdk.models import EIP712AttestationParams, EIP712Response, EIP712RevocationParams
from eas.sdk.signer import TypedDataSigner
from eas.sdk.typed_data import RequestKind, TypedDataHandler, build_domain


class Delegated(TypedDataHandler):
    """Signer/verifier bound to the registry's domain."""

    @classmethod
    def for_registry(cls, version: str, chain_id: int, address: str, name: str = EAS_DOMAIN_NAME) -> Delegated:
        return cls(build_domain(name, version, chain_id, address))

    async def sign_delegated_attestation(
        self, params: EIP712AttestationParams, signer: TypedDataSigner
    ) -> EIP712Response:
        return await self.sign_typed_data_request(RequestKind.ATTEST, params.to_message(), signer)

    def verify_delegated_attestation_signature(self, attester: str, response: EIP712Response) -> bool:
        return self.verify_typed_data_request_signature(RequestKind.ATTEST, attester, response)

    async def sign_delegated_revocation(
        self, params: EIP712RevocationParams, signer: TypedDataSigner
    ) -> EIP712Response:
        return await self.sign_typed_data_request(RequestKind.REVOKE, params.to_message(), signer)

    def verify_delegated_revocation_signature(self, revoker: str, response: EIP712Response) -> bool:
        return self.verify_typed_data_request_signature(RequestKind.REVOKE, revoker, response)
