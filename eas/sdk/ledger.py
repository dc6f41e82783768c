"""Interface of the ledger collaborator consumed by the orchestrator.

Transport, broadcasting and confirmation waiting live behind this protocol.
Every method is an I/O suspension point.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from eas.sdk.models import (
    Attestation,
    AttestationRequest,
    DelegatedAttestationRequest,
    DelegatedProxyAttestationRequest,
    DelegatedProxyRevocationRequest,
    DelegatedRevocationRequest,
    MultiAttestationRequest,
    MultiDelegatedAttestationRequest,
    MultiDelegatedProxyAttestationRequest,
    MultiDelegatedProxyRevocationRequest,
    MultiDelegatedRevocationRequest,
    MultiRevocationRequest,
    RevocationRequest,
)

Overrides = dict[str, Any]


class DomainSeparatorInputs(BaseModel):
    """Registry deployment parameters that make up its EIP-712 domain."""

    model_config = ConfigDict(frozen=True)

    chain_id: int
    verifying_contract: str
    name: str
    version: str


class Ledger(Protocol):
    """Registry access used by :class:`eas.sdk.eas.EASClient`."""

    async def get_nonce(self, address: str) -> int: ...

    async def get_timestamp(self) -> int: ...

    async def get_attestation(self, uid: str) -> Attestation | None: ...

    async def is_attestation_valid(self, uid: str) -> bool: ...

    async def is_attestation_revoked(self, uid: str) -> bool: ...

    async def get_proxy_address(self) -> str | None: ...

    async def get_domain_separator_inputs(self) -> DomainSeparatorInputs: ...

    async def submit_attest(self, request: AttestationRequest, overrides: Overrides | None = None) -> str: ...

    async def submit_attest_by_delegation(
        self, request: DelegatedAttestationRequest, overrides: Overrides | None = None
    ) -> str: ...

    async def submit_attest_by_delegation_proxy(
        self, request: DelegatedProxyAttestationRequest, overrides: Overrides | None = None
    ) -> str: ...

    async def submit_multi_attest(
        self, requests: list[MultiAttestationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...

    async def submit_multi_attest_by_delegation(
        self, requests: list[MultiDelegatedAttestationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...

    async def submit_multi_attest_by_delegation_proxy(
        self, requests: list[MultiDelegatedProxyAttestationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...

    async def submit_revoke(self, request: RevocationRequest, overrides: Overrides | None = None) -> str: ...

    async def submit_revoke_by_delegation(
        self, request: DelegatedRevocationRequest, overrides: Overrides | None = None
    ) -> str: ...

    async def submit_revoke_by_delegation_proxy(
        self, request: DelegatedProxyRevocationRequest, overrides: Overrides | None = None
    ) -> str: ...

    async def submit_multi_revoke(
        self, requests: list[MultiRevocationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...

    async def submit_multi_revoke_by_delegation(
        self, requests: list[MultiDelegatedRevocationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...

    async def submit_multi_revoke_by_delegation_proxy(
        self, requests: list[MultiDelegatedProxyRevocationRequest], overrides: Overrides | None = None
    ) -> list[str]: ...
