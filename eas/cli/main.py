"""Typer CLI for the Ethereum Attestation Service SDK.

Provides commands: uid, sign-offchain, verify-offchain, share, sign-proxy-attestation.
None of them need network access; registry parameters come from EASConfig.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from eas import __version__
from eas.cli.config import EASConfig, create_offchain, create_proxy, create_signer, validate_config
from eas.sdk.constants import NO_EXPIRATION, OFFCHAIN_ATTESTATION_VERSION, ZERO_BYTES32
from eas.sdk.hashing import get_offchain_uid, get_uid
from eas.sdk.models import EIP712AttestationProxyParams, OffchainAttestationParams, SignedOffchainAttestation
from eas.sdk.offchain_utils import AttestationShareablePackage, create_offchain_url


app = typer.Typer(
    name="eas",
    help="Ethereum Attestation Service - delegated, proxy and offchain attestation signing",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"EAS SDK version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    )
) -> None:
    """Ethereum Attestation Service CLI."""
    pass


@app.command()
def uid(
    schema: str = typer.Argument(..., help="Schema UID (0x-prefixed, 32 bytes)"),
    recipient: str = typer.Argument(..., help="Recipient address"),
    timestamp: int = typer.Option(..., "--time", "-t", help="Attestation time (unix seconds)"),
    data: str = typer.Option("0x", "--data", "-d", help="Encoded payload as 0x hex"),
    expiration_time: int = typer.Option(NO_EXPIRATION, "--expiration", "-e", help="Expiration time, 0 = never"),
    revocable: bool = typer.Option(True, "--revocable/--irrevocable", help="Whether the attestation is revocable"),
    ref_uid: str = typer.Option(ZERO_BYTES32, "--ref-uid", help="Referenced attestation UID"),
    attester: Optional[str] = typer.Option(None, "--attester", "-a", help="Derive the on-chain UID for this attester"),
    bump: int = typer.Option(0, "--bump", help="On-chain UID disambiguator"),
    offchain_version: int = typer.Option(OFFCHAIN_ATTESTATION_VERSION, "--offchain-version", help="Offchain encoding version"),
) -> None:
    """Derive the UID of an attestation from its fields."""
    try:
        _validate_hex(data, "Data")
        if attester:
            result = get_uid(schema, recipient, attester, timestamp, expiration_time, revocable, ref_uid, data, bump)
        else:
            result = get_offchain_uid(
                offchain_version, schema, recipient, timestamp, expiration_time, revocable, ref_uid, data
            )
    except Exception as e:
        console.print(f"❌ Error deriving UID: {e}")
        raise typer.Exit(1)

    console.print(f"UID: [bold]{result}[/bold]")


def _validate_hex(value: str, label: str) -> None:
    """Validate 0x-prefixed hex input."""
    if not value.startswith("0x"):
        raise ValueError(f"{label} must be 0x-prefixed hex")
    try:
        bytes.fromhex(value[2:])
    except ValueError:
        raise ValueError(f"{label} must be valid hex")


@app.command()
def sign_offchain(
    schema: str = typer.Argument(..., help="Schema UID (0x-prefixed, 32 bytes)"),
    recipient: str = typer.Argument(..., help="Recipient address"),
    data: str = typer.Option("0x", "--data", "-d", help="Encoded payload as 0x hex"),
    expiration_time: int = typer.Option(NO_EXPIRATION, "--expiration", "-e", help="Expiration time, 0 = never"),
    revocable: bool = typer.Option(True, "--revocable/--irrevocable", help="Whether the attestation is revocable"),
    ref_uid: str = typer.Option(ZERO_BYTES32, "--ref-uid", help="Referenced attestation UID"),
    timestamp: Optional[int] = typer.Option(None, "--time", "-t", help="Attestation time, defaults to now"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the signed attestation to this file"),
) -> None:
    """Sign an offchain attestation with the configured key."""
    try:
        config = EASConfig()
        validate_config(config)

        signer = create_signer(config)
        offchain = create_offchain(config)
        params = OffchainAttestationParams(
            version=config.offchain_version,
            schema=schema,
            recipient=recipient,
            time=timestamp if timestamp is not None else int(time.time()),
            expiration_time=expiration_time,
            revocable=revocable,
            ref_uid=ref_uid,
            data=data,
        )
        attestation = asyncio.run(offchain.sign_offchain_attestation(params, signer))
        document = attestation.model_dump_json(indent=2)
        if out:
            out.write_text(document)
    except Exception as e:
        console.print(f"❌ Error signing attestation: {e}")
        raise typer.Exit(1)

    console.print("✅ Offchain attestation signed!")
    console.print(f"UID: [bold]{attestation.uid}[/bold]")
    console.print(f"Attester: {signer.address}")
    if not out:
        console.print_json(document)


def _load_attestation_file(attestation_file: Path) -> SignedOffchainAttestation:
    """Load and validate a signed offchain attestation JSON file."""
    if not attestation_file.exists():
        raise ValueError(f"Attestation file not found: {attestation_file}")

    try:
        return SignedOffchainAttestation.model_validate_json(attestation_file.read_text())
    except ValidationError as e:
        raise ValueError(f"Invalid attestation file: {e}")


@app.command()
def verify_offchain(
    attestation_file: Path = typer.Argument(..., help="Path to signed attestation JSON"),
    attester: str = typer.Argument(..., help="Address expected to have signed it")
) -> None:
    """Verify an offchain attestation's UID and signature."""
    try:
        config = EASConfig()
        offchain = create_offchain(config)
        attestation = _load_attestation_file(attestation_file)
        is_valid = offchain.verify_offchain_attestation_signature(attester, attestation)
    except Exception as e:
        console.print(f"❌ Error verifying attestation: {e}")
        raise typer.Exit(1)

    if not is_valid:
        console.print("❌ Attestation is NOT valid for this attester")
        raise typer.Exit(1)
    console.print("✅ Attestation is valid!")
    console.print(f"UID: [bold]{attestation.uid}[/bold]")
    console.print(f"Attester: {attester}")


@app.command()
def share(
    attestation_file: Path = typer.Argument(..., help="Path to signed attestation JSON"),
    signer_addr: str = typer.Argument(..., help="Address that signed the attestation")
) -> None:
    """Print a shareable URL embedding the attestation."""
    try:
        config = EASConfig()
        attestation = _load_attestation_file(attestation_file)
        url = create_offchain_url(AttestationShareablePackage(sig=attestation, signer=signer_addr), config.share_url)
    except Exception as e:
        console.print(f"❌ Error creating share URL: {e}")
        raise typer.Exit(1)

    console.print(url, soft_wrap=True)


@app.command()
def sign_proxy_attestation(
    schema: str = typer.Argument(..., help="Schema UID (0x-prefixed, 32 bytes)"),
    recipient: str = typer.Argument(..., help="Recipient address"),
    deadline: int = typer.Option(NO_EXPIRATION, "--deadline", help="Signature expiry, 0 = never"),
    data: str = typer.Option("0x", "--data", "-d", help="Encoded payload as 0x hex"),
    expiration_time: int = typer.Option(NO_EXPIRATION, "--expiration", "-e", help="Expiration time, 0 = never"),
    revocable: bool = typer.Option(True, "--revocable/--irrevocable", help="Whether the attestation is revocable"),
    ref_uid: str = typer.Option(ZERO_BYTES32, "--ref-uid", help="Referenced attestation UID"),
) -> None:
    """Sign a deadline-bound attestation request for relaying through the proxy."""
    try:
        config = EASConfig()
        proxy = create_proxy(config)
        signer = create_signer(config)
        params = EIP712AttestationProxyParams(
            schema=schema,
            recipient=recipient,
            expiration_time=expiration_time,
            revocable=revocable,
            ref_uid=ref_uid,
            data=data,
            deadline=deadline,
        )
        response = asyncio.run(proxy.sign_delegated_proxy_attestation(params, signer))
    except Exception as e:
        console.print(f"❌ Error signing proxy attestation: {e}")
        raise typer.Exit(1)

    console.print("✅ Proxy attestation request signed!")
    console.print(f"Attester: {signer.address}")
    console.print_json(json.dumps(response.signature.model_dump()))


if __name__ == "__main__":
    app()
