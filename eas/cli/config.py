"""CLI configuration management for EAS using pydantic-settings.

Handles registry domain parameters, signer key loading, and environment
configuration via BaseSettings.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from eas.sdk.constants import OFFCHAIN_ATTESTATION_VERSION, PROXY_DOMAIN_NAME
from eas.sdk.errors import ConfigurationError
from eas.sdk.hashing import OffchainAttestationVersion
from eas.sdk.offchain import Offchain
from eas.sdk.proxy import DelegatedProxy
from eas.sdk.signer import AccountSigner


class EASConfig(BaseSettings):
    """EAS CLI configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix='EAS_',
        env_file='.env',
        env_file_encoding='utf-8',
        secrets_dir='/run/secrets'
    )

    chain_id: int = Field(
        default=1,
        description="Chain ID the registry is deployed on"
    )
    eas_address: str | None = Field(
        default=None,
        description="Registry contract address"
    )
    eas_version: str = Field(
        default="1.0.0",
        description="Registry EIP-712 domain version"
    )
    proxy_address: str | None = Field(
        default=None,
        description="EIP-712 proxy contract address, if deployed"
    )
    proxy_name: str = Field(
        default=PROXY_DOMAIN_NAME,
        description="EIP-712 proxy domain name"
    )
    proxy_version: str | None = Field(
        default=None,
        description="EIP-712 proxy domain version; the registry version if unset"
    )
    private_key: str | None = Field(
        default=None,
        description="Hex private key used for signing"
    )
    offchain_version: int = Field(
        default=OFFCHAIN_ATTESTATION_VERSION,
        description="Offchain attestation encoding version"
    )
    share_url: str = Field(
        default="https://easscan.org",
        description="Base URL for shareable offchain attestation links"
    )

    @field_validator('chain_id')
    @classmethod
    def validate_chain_id(cls, v: int) -> int:
        """Validate chain ID is positive."""
        if v <= 0:
            raise ValueError("Chain ID must be positive")
        return v

    @field_validator('offchain_version')
    @classmethod
    def validate_offchain_version(cls, v: int) -> int:
        """Validate offchain version is a known encoding."""
        return int(OffchainAttestationVersion(v))


def create_signer(config: EASConfig) -> AccountSigner:
    """Create typed-data signer from the configured private key."""
    if not config.private_key:
        raise ConfigurationError("Private key required. Set EAS_PRIVATE_KEY environment variable.")
    return AccountSigner.from_key(config.private_key)


def create_offchain(config: EASConfig) -> Offchain:
    """Create offchain signer/verifier for the configured registry."""
    if not config.eas_address:
        raise ConfigurationError("Registry address required. Set EAS_EAS_ADDRESS environment variable.")
    return Offchain.for_registry(config.eas_version, config.chain_id, config.eas_address, config.offchain_version)


def create_proxy(config: EASConfig) -> DelegatedProxy:
    """Create proxy signer/verifier; fails when no proxy is configured."""
    if not config.proxy_address:
        raise ConfigurationError(f"No EIP712 proxy configured for chain {config.chain_id}. Set EAS_PROXY_ADDRESS.")
    version = config.proxy_version or config.eas_version
    return DelegatedProxy.for_proxy(version, config.chain_id, config.proxy_address, config.proxy_name)


def validate_config(config: EASConfig) -> None:
    """Validate configuration completeness for signing commands."""
    if not config.eas_address:
        raise ConfigurationError("Registry address required. Set EAS_EAS_ADDRESS environment variable.")
    if not config.private_key:
        raise ConfigurationError("Private key required. Set EAS_PRIVATE_KEY environment variable.")
