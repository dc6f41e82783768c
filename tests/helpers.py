"""Test helper functions and an in-memory ledger.

FakeLedger checks delegated and proxy signatures the way the registry
contracts do, so orchestrator tests fail if nonces, deadlines or domains
are wrong.
"""

from __future__ import annotations

from typing import Any

from eas.sdk.delegated import Delegated
from eas.sdk.hashing import get_uid
from eas.sdk.ledger import DomainSeparatorInputs
from eas.sdk.models import (
    Attestation,
    AttestationRequest,
    AttestationRequestData,
    DelegatedAttestationRequest,
    DelegatedProxyAttestationRequest,
    DelegatedProxyRevocationRequest,
    DelegatedRevocationRequest,
    EIP712AttestationParams,
    EIP712AttestationProxyParams,
    EIP712Response,
    EIP712RevocationParams,
    EIP712RevocationProxyParams,
    MultiAttestationRequest,
    MultiDelegatedAttestationRequest,
    MultiDelegatedProxyAttestationRequest,
    MultiDelegatedProxyRevocationRequest,
    MultiDelegatedRevocationRequest,
    MultiRevocationRequest,
    RevocationRequest,
    RevocationRequestData,
    Signature,
)
from eas.sdk.proxy import DelegatedProxy
from eas.sdk.signer import AccountSigner
from eas.sdk.typed_data import RequestKind, build_type_schema

KEY_1 = "0x" + "11" * 32
KEY_2 = "0x" + "22" * 32
KEY_SENDER = "0x" + "33" * 32

SCHEMA = "0x" + "aa" * 32
RECIPIENT = "0x1111111111111111111111111111111111111111"
REGISTRY = "0x4200000000000000000000000000000000000021"
PROXY = "0x4200000000000000000000000000000000000022"
CHAIN_ID = 31337
EAS_VERSION = "1.0.0"
NOW = 1_700_000_000


class LedgerRejected(Exception):
    """Raised by FakeLedger where the contract would revert."""


class RecordingSigner:
    """Wraps AccountSigner and records every typed-data message it signs."""

    def __init__(self, inner: AccountSigner):
        self.inner = inner
        self.messages: list[dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self.inner.address

    async def sign_typed_data(self, domain: dict[str, Any], types: dict[str, Any], message: dict[str, Any]) -> bytes:
        self.messages.append(message)
        return await self.inner.sign_typed_data(domain, types, message)


class WrongKeySigner(RecordingSigner):
    """Claims one address but signs with another key."""

    def __init__(self, claimed: AccountSigner, actual: AccountSigner):
        super().__init__(actual)
        self.claimed = claimed

    @property
    def address(self) -> str:
        return self.claimed.address


def response_for(kind: RequestKind, message: dict[str, Any], signature: Signature) -> EIP712Response:
    """Wrap a submitted signature so contract-side verification can reuse SDK verifiers."""
    primary_type, types = build_type_schema(kind)
    return EIP712Response(
        domain=_registry_domain(), primary_type=primary_type, types=types, message=message, signature=signature
    )


def _registry_domain():
    return Delegated.for_registry(EAS_VERSION, CHAIN_ID, REGISTRY).domain


class FakeLedger:
    """In-memory registry with EIP-712 delegation and proxy support."""

    def __init__(
        self, sender: str, proxy_address: str | None = PROXY, now: int = NOW, proxy_version: str = EAS_VERSION
    ):
        self.sender = sender
        self.proxy_address = proxy_address
        self.now = now
        self.nonces: dict[str, int] = {}
        self.attestations: dict[str, Attestation] = {}
        self.overrides: list[dict[str, Any] | None] = []
        self.nonce_queries = 0
        self.submissions = 0
        self.delegated = Delegated.for_registry(EAS_VERSION, CHAIN_ID, REGISTRY)
        self.proxy = DelegatedProxy.for_proxy(proxy_version, CHAIN_ID, proxy_address) if proxy_address else None

    # --- Queries ---

    async def get_nonce(self, address: str) -> int:
        self.nonce_queries += 1
        return self.nonces.get(address.lower(), 0)

    async def get_timestamp(self) -> int:
        return self.now

    async def get_attestation(self, uid: str) -> Attestation | None:
        return self.attestations.get(uid)

    async def is_attestation_valid(self, uid: str) -> bool:
        return uid in self.attestations

    async def is_attestation_revoked(self, uid: str) -> bool:
        attestation = self.attestations.get(uid)
        return attestation is not None and attestation.is_revoked

    async def get_proxy_address(self) -> str | None:
        return self.proxy_address

    async def get_domain_separator_inputs(self) -> DomainSeparatorInputs:
        return DomainSeparatorInputs(chain_id=CHAIN_ID, verifying_contract=REGISTRY, name="EAS", version=EAS_VERSION)

    # --- Attestations ---

    async def submit_attest(self, request: AttestationRequest, overrides: dict[str, Any] | None = None) -> str:
        self._record(overrides)
        return self._store(request.schema_uid, request.data, self.sender)

    async def submit_attest_by_delegation(
        self, request: DelegatedAttestationRequest, overrides: dict[str, Any] | None = None
    ) -> str:
        self._record(overrides)
        self._check_delegated_attestation(request.schema_uid, request.data, request.signature, request.attester)
        return self._store(request.schema_uid, request.data, request.attester)

    async def submit_attest_by_delegation_proxy(
        self, request: DelegatedProxyAttestationRequest, overrides: dict[str, Any] | None = None
    ) -> str:
        self._record(overrides)
        self._check_proxy_attestation(
            request.schema_uid, request.data, request.signature, request.attester, request.deadline
        )
        return self._store(request.schema_uid, request.data, request.attester)

    async def submit_multi_attest(
        self, requests: list[MultiAttestationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        return [self._store(multi.schema_uid, data, self.sender) for multi in requests for data in multi.data]

    async def submit_multi_attest_by_delegation(
        self, requests: list[MultiDelegatedAttestationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        uids = []
        for multi in requests:
            for data, signature in zip(multi.data, multi.signatures, strict=True):
                self._check_delegated_attestation(multi.schema_uid, data, signature, multi.attester)
                uids.append(self._store(multi.schema_uid, data, multi.attester))
        return uids

    async def submit_multi_attest_by_delegation_proxy(
        self, requests: list[MultiDelegatedProxyAttestationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        uids = []
        for multi in requests:
            for data, signature in zip(multi.data, multi.signatures, strict=True):
                self._check_proxy_attestation(multi.schema_uid, data, signature, multi.attester, multi.deadline)
                uids.append(self._store(multi.schema_uid, data, multi.attester))
        return uids

    # --- Revocations ---

    async def submit_revoke(self, request: RevocationRequest, overrides: dict[str, Any] | None = None) -> str:
        self._record(overrides)
        return self._revoke(request.data, self.sender)

    async def submit_revoke_by_delegation(
        self, request: DelegatedRevocationRequest, overrides: dict[str, Any] | None = None
    ) -> str:
        self._record(overrides)
        self._check_delegated_revocation(request.schema_uid, request.data, request.signature, request.revoker)
        return self._revoke(request.data, request.revoker)

    async def submit_revoke_by_delegation_proxy(
        self, request: DelegatedProxyRevocationRequest, overrides: dict[str, Any] | None = None
    ) -> str:
        self._record(overrides)
        self._check_proxy_revocation(
            request.schema_uid, request.data, request.signature, request.revoker, request.deadline
        )
        return self._revoke(request.data, request.revoker)

    async def submit_multi_revoke(
        self, requests: list[MultiRevocationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        return [self._revoke(data, self.sender) for multi in requests for data in multi.data]

    async def submit_multi_revoke_by_delegation(
        self, requests: list[MultiDelegatedRevocationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        results = []
        for multi in requests:
            for data, signature in zip(multi.data, multi.signatures, strict=True):
                self._check_delegated_revocation(multi.schema_uid, data, signature, multi.revoker)
                results.append(self._revoke(data, multi.revoker))
        return results

    async def submit_multi_revoke_by_delegation_proxy(
        self, requests: list[MultiDelegatedProxyRevocationRequest], overrides: dict[str, Any] | None = None
    ) -> list[str]:
        self._record(overrides)
        results = []
        for multi in requests:
            for data, signature in zip(multi.data, multi.signatures, strict=True):
                self._check_proxy_revocation(multi.schema_uid, data, signature, multi.revoker, multi.deadline)
                results.append(self._revoke(data, multi.revoker))
        return results

    # --- Contract-side checks ---

    def _record(self, overrides: dict[str, Any] | None) -> None:
        self.submissions += 1
        self.overrides.append(overrides)

    def _consume_nonce(self, address: str) -> int:
        nonce = self.nonces.get(address.lower(), 0)
        self.nonces[address.lower()] = nonce + 1
        return nonce

    def _check_delegated_attestation(
        self, schema: str, data: AttestationRequestData, signature: Signature, attester: str
    ) -> None:
        params = EIP712AttestationParams(
            schema=schema, recipient=data.recipient, expiration_time=data.expiration_time,
            revocable=data.revocable, ref_uid=data.ref_uid, data=data.data, nonce=self._consume_nonce(attester),
        )
        response = response_for(RequestKind.ATTEST, params.to_message(), signature)
        if not self.delegated.verify_delegated_attestation_signature(attester, response):
            raise LedgerRejected("InvalidSignature")

    def _check_proxy_attestation(
        self, schema: str, data: AttestationRequestData, signature: Signature, attester: str, deadline: int
    ) -> None:
        self._check_deadline(deadline)
        params = EIP712AttestationProxyParams(
            schema=schema, recipient=data.recipient, expiration_time=data.expiration_time,
            revocable=data.revocable, ref_uid=data.ref_uid, data=data.data, deadline=deadline,
        )
        response = response_for(RequestKind.ATTEST_PROXY, params.to_message(), signature)
        if self.proxy is None or not self.proxy.verify_delegated_proxy_attestation_signature(attester, response):
            raise LedgerRejected("InvalidSignature")

    def _check_delegated_revocation(
        self, schema: str, data: RevocationRequestData, signature: Signature, revoker: str
    ) -> None:
        params = EIP712RevocationParams(schema=schema, uid=data.uid, nonce=self._consume_nonce(revoker))
        response = response_for(RequestKind.REVOKE, params.to_message(), signature)
        if not self.delegated.verify_delegated_revocation_signature(revoker, response):
            raise LedgerRejected("InvalidSignature")

    def _check_proxy_revocation(
        self, schema: str, data: RevocationRequestData, signature: Signature, revoker: str, deadline: int
    ) -> None:
        self._check_deadline(deadline)
        params = EIP712RevocationProxyParams(schema=schema, uid=data.uid, deadline=deadline)
        response = response_for(RequestKind.REVOKE_PROXY, params.to_message(), signature)
        if self.proxy is None or not self.proxy.verify_delegated_proxy_revocation_signature(revoker, response):
            raise LedgerRejected("InvalidSignature")

    def _check_deadline(self, deadline: int) -> None:
        if deadline != 0 and deadline < self.now:
            raise LedgerRejected("DeadlineExpired")

    def _store(self, schema: str, data: AttestationRequestData, attester: str) -> str:
        bump = 0
        while True:
            uid = get_uid(
                schema, data.recipient, attester, self.now, data.expiration_time,
                data.revocable, data.ref_uid, data.data, bump,
            )
            if uid not in self.attestations:
                break
            bump += 1
        self.attestations[uid] = Attestation(
            uid=uid, schema=schema, ref_uid=data.ref_uid, time=self.now, expiration_time=data.expiration_time,
            recipient=data.recipient, attester=attester, revocable=data.revocable, data=data.data,
        )
        return uid

    def _revoke(self, data: RevocationRequestData, revoker: str) -> str:
        attestation = self.attestations.get(data.uid)
        if attestation is None:
            raise LedgerRejected("NotFound")
        if attestation.attester.lower() != revoker.lower():
            raise LedgerRejected("AccessDenied")
        if attestation.is_revoked:
            raise LedgerRejected("AlreadyRevoked")
        self.attestations[data.uid] = attestation.model_copy(update={"revocation_time": self.now})
        return data.uid
