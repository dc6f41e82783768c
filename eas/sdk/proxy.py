"""Deadline-bound signatures for requests routed through the EIP-712 proxy.

The domain is the proxy's, not the registry's. There is no nonce; the proxy
contract rejects signatures whose deadline has passed on-chain.
"""

from __future__ import annotations

from eas.sdk.constants import PROXY_DOMAIN_NAME
from eas.sdk.models import EIP712AttestationProxyParams, EIP712Response, EIP712RevocationProxyParams
from eas.sdk.signer import TypedDataSigner
from eas.sdk.typed_data import RequestKind, TypedDataHandler, build_domain


class DelegatedProxy(TypedDataHandler):
    """Signer/verifier bound to the proxy contract's domain."""

    @classmethod
    def for_proxy(cls, version: str, chain_id: int, proxy_address: str, name: str = PROXY_DOMAIN_NAME) -> DelegatedProxy:
        return cls(build_domain(name, version, chain_id, proxy_address))

    async def sign_delegated_proxy_attestation(
        self, params: EIP712AttestationProxyParams, signer: TypedDataSigner
    ) -> EIP712Response:
        return await self.sign_typed_data_request(RequestKind.ATTEST_PROXY, params.to_message(), signer)

    def verify_delegated_proxy_attestation_signature(self, attester: str, response: EIP712Response) -> bool:
        return self.verify_typed_data_request_signature(RequestKind.ATTEST_PROXY, attester, response)

    async def sign_delegated_proxy_revocation(
        self, params: EIP712RevocationProxyParams, signer: TypedDataSigner
    ) -> EIP712Response:
        return await self.sign_typed_data_request(RequestKind.REVOKE_PROXY, params.to_message(), signer)

    def verify_delegated_proxy_revocation_signature(self, revoker: str, response: EIP712Response) -> bool:
        return self.verify_typed_data_request_signature(RequestKind.REVOKE_PROXY, revoker, response)
