"""Request orchestration for the Ethereum Attestation Service.

Selects a signature style, assembles and signs the matching request, checks
the signature, and forwards the call to the ledger collaborator.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from eas.sdk.constants import NO_EXPIRATION, OFFCHAIN_ATTESTATION_VERSION, OFFCHAIN_DOMAIN_NAME, PROXY_DOMAIN_NAME
from eas.sdk.delegated import Delegated
from eas.sdk.errors import ConfigurationError, SignatureMismatchError, UnsupportedOperationError
from eas.sdk.ledger import Ledger
from eas.sdk.models import (
    AttestationRequest,
    AttestationRequestData,
    DelegatedAttestationRequest,
    DelegatedProxyAttestationRequest,
    DelegatedProxyRevocationRequest,
    DelegatedRevocationRequest,
    EIP712AttestationParams,
    EIP712AttestationProxyParams,
    EIP712RevocationParams,
    EIP712RevocationProxyParams,
    MultiAttestationRequest,
    MultiDelegatedAttestationRequest,
    MultiDelegatedProxyAttestationRequest,
    MultiDelegatedProxyRevocationRequest,
    MultiDelegatedRevocationRequest,
    MultiRevocationRequest,
    OffchainAttestationParams,
    RevocationRequest,
    RevocationRequestData,
    Signature,
    SignatureType,
    SubmissionOutcome,
)
from eas.sdk.offchain import Offchain
from eas.sdk.proxy import DelegatedProxy
from eas.sdk.signer import TypedDataSigner
from eas.sdk.typed_data import build_domain

logger = logging.getLogger(__name__)


class RequestOptions(BaseModel):
    signature_type: SignatureType = SignatureType.DIRECT
    deadline: int = Field(default=NO_EXPIRATION, ge=0, description="Proxy signature expiry")
    max_priority_fee_per_gas: int | None = Field(default=None, ge=0)
    max_fee_per_gas: int | None = Field(default=None, ge=0)


class AttestationOptions(RequestOptions):
    time: int | None = Field(default=None, ge=0, description="Offchain attestation time; ledger time if unset")


class RevocationOptions(RequestOptions):
    pass


def resolve_fee_overrides(options: RequestOptions) -> dict[str, Any] | None:
    """Return both fee overrides, or None unless both are present."""
    priority_fee = options.max_priority_fee_per_gas
    max_fee = options.max_fee_per_gas
    if priority_fee is not None and max_fee is not None:
        return {"maxPriorityFeePerGas": priority_fee, "maxFeePerGas": max_fee}
    if priority_fee is not None or max_fee is not None:
        logger.warning("Ignoring partial fee override; both max_priority_fee_per_gas and max_fee_per_gas are required")
    return None


class EASClient:
    """High-level client dispatching requests by signature type."""

    def __init__(
        self,
        ledger: Ledger,
        signer: TypedDataSigner,
        proxy_name: str = PROXY_DOMAIN_NAME,
        proxy_version: str | None = None,
        offchain_version: int = OFFCHAIN_ATTESTATION_VERSION,
        confirm_submissions: bool = True,
    ):
        """Initialize EAS client.

        Args:
            ledger: Registry collaborator used for nonces, state and submission
            signer: Key holder producing typed-data signatures
            proxy_name: EIP-712 domain name of the proxy contract
            proxy_version: EIP-712 domain version of the proxy contract; the registry version if unset
            offchain_version: Offchain attestation encoding version
            confirm_submissions: Query validity/revocation after submitting
        """
        if not ledger:
            raise ValueError("Ledger is required")
        if not signer:
            raise ValueError("Signer is required")

        self.ledger = ledger
        self.signer = signer
        self.proxy_name = proxy_name
        self.proxy_version = proxy_version
        self.offchain_version = offchain_version
        self.confirm_submissions = confirm_submissions

    async def get_delegated(self) -> Delegated:
        inputs = await self.ledger.get_domain_separator_inputs()
        return Delegated(build_domain(inputs.name, inputs.version, inputs.chain_id, inputs.verifying_contract))

    async def get_delegated_proxy(self) -> DelegatedProxy:
        """Build the proxy signer; fails immediately when no proxy is deployed."""
        proxy_address = await self.ledger.get_proxy_address()
        inputs = await self.ledger.get_domain_separator_inputs()
        if not proxy_address:
            raise ConfigurationError(f"No EIP712 proxy configured for chain {inputs.chain_id}")
        version = self.proxy_version or inputs.version
        return DelegatedProxy.for_proxy(version, inputs.chain_id, proxy_address, self.proxy_name)

    async def get_offchain(self) -> Offchain:
        inputs = await self.ledger.get_domain_separator_inputs()
        domain = build_domain(OFFCHAIN_DOMAIN_NAME, inputs.version, inputs.chain_id, inputs.verifying_contract)
        return Offchain(domain, self.offchain_version)

    # --- Attestations ---

    async def attest(
        self, schema: str, request: AttestationRequestData, options: AttestationOptions | None = None
    ) -> SubmissionOutcome:
        """Create a single attestation using the selected signature type."""
        options = options or AttestationOptions()
        overrides = resolve_fee_overrides(options)

        if options.signature_type is SignatureType.OFFCHAIN:
            return await self._attest_offchain(schema, request, options)
        if options.signature_type is SignatureType.DELEGATED:
            uid = await self._attest_delegated(schema, request, overrides)
        elif options.signature_type is SignatureType.DELEGATED_PROXY:
            uid = await self._attest_delegated_proxy(schema, request, options.deadline, overrides)
        else:
            uid = await self.ledger.submit_attest(AttestationRequest(schema=schema, data=request), overrides)

        logger.info(f"Attestation {uid} submitted ({options.signature_type.value})")
        return SubmissionOutcome(
            signature_type=options.signature_type,
            uids=[uid],
            confirmed=await self._confirm_valid([uid]),
        )

    async def _attest_delegated(
        self, schema: str, request: AttestationRequestData, overrides: dict[str, Any] | None
    ) -> str:
        delegated = await self.get_delegated()
        nonce = await self.ledger.get_nonce(self.signer.address)
        signature = await self._sign_delegated_attestation(delegated, schema, request, nonce)
        return await self.ledger.submit_attest_by_delegation(
            DelegatedAttestationRequest(schema=schema, data=request, signature=signature, attester=self.signer.address),
            overrides,
        )

    async def _attest_delegated_proxy(
        self, schema: str, request: AttestationRequestData, deadline: int, overrides: dict[str, Any] | None
    ) -> str:
        proxy = await self.get_delegated_proxy()
        signature = await self._sign_proxy_attestation(proxy, schema, request, deadline)
        return await self.ledger.submit_attest_by_delegation_proxy(
            DelegatedProxyAttestationRequest(
                schema=schema, data=request, signature=signature, attester=self.signer.address, deadline=deadline
            ),
            overrides,
        )

    async def _attest_offchain(
        self, schema: str, request: AttestationRequestData, options: AttestationOptions
    ) -> SubmissionOutcome:
        offchain = await self.get_offchain()
        time = options.time if options.time is not None else await self.ledger.get_timestamp()
        params = OffchainAttestationParams(
            version=self.offchain_version,
            schema=schema,
            recipient=request.recipient,
            time=time,
            expiration_time=request.expiration_time,
            revocable=request.revocable,
            ref_uid=request.ref_uid,
            data=request.data,
        )
        attestation = await offchain.sign_offchain_attestation(params, self.signer)
        if not offchain.verify_offchain_attestation_signature(self.signer.address, attestation):
            raise SignatureMismatchError(self.signer.address, "offchain attestation")

        logger.info(f"Offchain attestation {attestation.uid} signed")
        return SubmissionOutcome(
            signature_type=SignatureType.OFFCHAIN, uids=[attestation.uid], offchain=attestation
        )

    async def multi_attest(
        self, requests: list[MultiAttestationRequest], options: AttestationOptions | None = None
    ) -> SubmissionOutcome:
        """Create a batch of attestations; offchain batches are rejected up front."""
        options = options or AttestationOptions()
        if options.signature_type is SignatureType.OFFCHAIN:
            raise UnsupportedOperationError("Offchain batch attestations are unsupported")
        overrides = resolve_fee_overrides(options)

        if options.signature_type is SignatureType.DELEGATED:
            uids = await self._multi_attest_delegated(requests, overrides)
        elif options.signature_type is SignatureType.DELEGATED_PROXY:
            uids = await self._multi_attest_delegated_proxy(requests, options.deadline, overrides)
        else:
            uids = await self.ledger.submit_multi_attest(requests, overrides)

        logger.info(f"{len(uids)} attestations submitted ({options.signature_type.value})")
        return SubmissionOutcome(
            signature_type=options.signature_type,
            uids=list(uids),
            batch=True,
            confirmed=await self._confirm_valid(uids),
        )

    async def _multi_attest_delegated(
        self, requests: list[MultiAttestationRequest], overrides: dict[str, Any] | None
    ) -> list[str]:
        delegated = await self.get_delegated()
        # The ledger only advances the nonce on submission, so the batch counts locally.
        nonce = await self.ledger.get_nonce(self.signer.address)
        multi_requests = []
        for multi in requests:
            signatures = []
            for request in multi.data:
                signatures.append(await self._sign_delegated_attestation(delegated, multi.schema_uid, request, nonce))
                nonce += 1
            multi_requests.append(
                MultiDelegatedAttestationRequest(
                    schema=multi.schema_uid, data=multi.data, signatures=signatures, attester=self.signer.address
                )
            )
        return await self.ledger.submit_multi_attest_by_delegation(multi_requests, overrides)

    async def _multi_attest_delegated_proxy(
        self, requests: list[MultiAttestationRequest], deadline: int, overrides: dict[str, Any] | None
    ) -> list[str]:
        proxy = await self.get_delegated_proxy()
        multi_requests = []
        for multi in requests:
            signatures = [
                await self._sign_proxy_attestation(proxy, multi.schema_uid, request, deadline)
                for request in multi.data
            ]
            multi_requests.append(
                MultiDelegatedProxyAttestationRequest(
                    schema=multi.schema_uid,
                    data=multi.data,
                    signatures=signatures,
                    attester=self.signer.address,
                    deadline=deadline,
                )
            )
        return await self.ledger.submit_multi_attest_by_delegation_proxy(multi_requests, overrides)

    # --- Revocations ---

    async def revoke(
        self, schema: str, request: RevocationRequestData, options: RevocationOptions | None = None
    ) -> SubmissionOutcome:
        """Revoke a single attestation using the selected signature type."""
        options = options or RevocationOptions()
        if options.signature_type is SignatureType.OFFCHAIN:
            raise UnsupportedOperationError("Offchain attestations cannot be revoked through the registry")
        overrides = resolve_fee_overrides(options)

        if options.signature_type is SignatureType.DELEGATED:
            delegated = await self.get_delegated()
            nonce = await self.ledger.get_nonce(self.signer.address)
            signature = await self._sign_delegated_revocation(delegated, schema, request, nonce)
            result = await self.ledger.submit_revoke_by_delegation(
                DelegatedRevocationRequest(
                    schema=schema, data=request, signature=signature, revoker=self.signer.address
                ),
                overrides,
            )
        elif options.signature_type is SignatureType.DELEGATED_PROXY:
            proxy = await self.get_delegated_proxy()
            signature = await self._sign_proxy_revocation(proxy, schema, request, options.deadline)
            result = await self.ledger.submit_revoke_by_delegation_proxy(
                DelegatedProxyRevocationRequest(
                    schema=schema,
                    data=request,
                    signature=signature,
                    revoker=self.signer.address,
                    deadline=options.deadline,
                ),
                overrides,
            )
        else:
            result = await self.ledger.submit_revoke(RevocationRequest(schema=schema, data=request), overrides)

        logger.info(f"Revocation of {request.uid} submitted ({options.signature_type.value})")
        return SubmissionOutcome(
            signature_type=options.signature_type,
            uids=[result],
            confirmed=await self._confirm_revoked([request.uid]),
        )

    async def multi_revoke(
        self, requests: list[MultiRevocationRequest], options: RevocationOptions | None = None
    ) -> SubmissionOutcome:
        """Revoke a batch of attestations."""
        options = options or RevocationOptions()
        if options.signature_type is SignatureType.OFFCHAIN:
            raise UnsupportedOperationError("Offchain batch revocations are unsupported")
        overrides = resolve_fee_overrides(options)

        if options.signature_type is SignatureType.DELEGATED:
            results = await self._multi_revoke_delegated(requests, overrides)
        elif options.signature_type is SignatureType.DELEGATED_PROXY:
            results = await self._multi_revoke_delegated_proxy(requests, options.deadline, overrides)
        else:
            results = await self.ledger.submit_multi_revoke(requests, overrides)

        revoked = [item.uid for multi in requests for item in multi.data]
        logger.info(f"{len(revoked)} revocations submitted ({options.signature_type.value})")
        return SubmissionOutcome(
            signature_type=options.signature_type,
            uids=list(results),
            batch=True,
            confirmed=await self._confirm_revoked(revoked),
        )

    async def _multi_revoke_delegated(
        self, requests: list[MultiRevocationRequest], overrides: dict[str, Any] | None
    ) -> list[str]:
        delegated = await self.get_delegated()
        nonce = await self.ledger.get_nonce(self.signer.address)
        multi_requests = []
        for multi in requests:
            signatures = []
            for request in multi.data:
                signatures.append(await self._sign_delegated_revocation(delegated, multi.schema_uid, request, nonce))
                nonce += 1
            multi_requests.append(
                MultiDelegatedRevocationRequest(
                    schema=multi.schema_uid, data=multi.data, signatures=signatures, revoker=self.signer.address
                )
            )
        return await self.ledger.submit_multi_revoke_by_delegation(multi_requests, overrides)

    async def _multi_revoke_delegated_proxy(
        self, requests: list[MultiRevocationRequest], deadline: int, overrides: dict[str, Any] | None
    ) -> list[str]:
        proxy = await self.get_delegated_proxy()
        multi_requests = []
        for multi in requests:
            signatures = [
                await self._sign_proxy_revocation(proxy, multi.schema_uid, request, deadline)
                for request in multi.data
            ]
            multi_requests.append(
                MultiDelegatedProxyRevocationRequest(
                    schema=multi.schema_uid,
                    data=multi.data,
                    signatures=signatures,
                    revoker=self.signer.address,
                    deadline=deadline,
                )
            )
        return await self.ledger.submit_multi_revoke_by_delegation_proxy(multi_requests, overrides)

    # --- Internal helpers ---

    async def _sign_delegated_attestation(
        self, delegated: Delegated, schema: str, request: AttestationRequestData, nonce: int
    ) -> Signature:
        logger.debug(f"Signing delegated attestation for {request.recipient} with nonce {nonce}")
        params = EIP712AttestationParams(
            schema=schema,
            recipient=request.recipient,
            expiration_time=request.expiration_time,
            revocable=request.revocable,
            ref_uid=request.ref_uid,
            data=request.data,
            nonce=nonce,
        )
        response = await delegated.sign_delegated_attestation(params, self.signer)
        if not delegated.verify_delegated_attestation_signature(self.signer.address, response):
            raise SignatureMismatchError(self.signer.address, "delegated attestation")
        return response.signature

    async def _sign_proxy_attestation(
        self, proxy: DelegatedProxy, schema: str, request: AttestationRequestData, deadline: int
    ) -> Signature:
        logger.debug(f"Signing proxy attestation for {request.recipient} with deadline {deadline}")
        params = EIP712AttestationProxyParams(
            schema=schema,
            recipient=request.recipient,
            expiration_time=request.expiration_time,
            revocable=request.revocable,
            ref_uid=request.ref_uid,
            data=request.data,
            deadline=deadline,
        )
        response = await proxy.sign_delegated_proxy_attestation(params, self.signer)
        if not proxy.verify_delegated_proxy_attestation_signature(self.signer.address, response):
            raise SignatureMismatchError(self.signer.address, "proxy attestation")
        return response.signature

    async def _sign_delegated_revocation(
        self, delegated: Delegated, schema: str, request: RevocationRequestData, nonce: int
    ) -> Signature:
        logger.debug(f"Signing delegated revocation of {request.uid} with nonce {nonce}")
        params = EIP712RevocationParams(schema=schema, uid=request.uid, nonce=nonce)
        response = await delegated.sign_delegated_revocation(params, self.signer)
        if not delegated.verify_delegated_revocation_signature(self.signer.address, response):
            raise SignatureMismatchError(self.signer.address, "delegated revocation")
        return response.signature

    async def _sign_proxy_revocation(
        self, proxy: DelegatedProxy, schema: str, request: RevocationRequestData, deadline: int
    ) -> Signature:
        logger.debug(f"Signing proxy revocation of {request.uid} with deadline {deadline}")
        params = EIP712RevocationProxyParams(schema=schema, uid=request.uid, deadline=deadline)
        response = await proxy.sign_delegated_proxy_revocation(params, self.signer)
        if not proxy.verify_delegated_proxy_revocation_signature(self.signer.address, response):
            raise SignatureMismatchError(self.signer.address, "proxy revocation")
        return response.signature

    async def _confirm_valid(self, uids: list[str]) -> bool | None:
        if not self.confirm_submissions:
            return None
        for uid in uids:
            if not await self.ledger.is_attestation_valid(uid):
                return False
        return True

    async def _confirm_revoked(self, uids: list[str]) -> bool | None:
        if not self.confirm_submissions:
            return None
        for uid in uids:
            if not await self.ledger.is_attestation_revoked(uid):
                return False
        return True
