"""Shareable packaging for offchain attestations.

A signed attestation and its signer are compacted to a positional JSON
array, zlib-deflated and base64 encoded so the artifact fits in a URL
fragment.
"""

from __future__ import annotations

import base64
import binascii
import json
import zlib
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from pydantic import BaseModel

from eas.sdk.constants import OFFCHAIN_DOMAIN_NAME, ZERO_ADDRESS, ZERO_BYTES32
from eas.sdk.hashing import OffchainAttestationVersion
from eas.sdk.models import OffchainAttestationParams, Signature, SignedOffchainAttestation
from eas.sdk.offchain import request_kind_for
from eas.sdk.typed_data import build_domain, build_type_schema

URL_FRAGMENT_KEY = "attestation"


class AttestationShareablePackage(BaseModel):
    sig: SignedOffchainAttestation
    signer: str


def compact_offchain_attestation_package(pkg: AttestationShareablePackage) -> list[Any]:
    """Flatten a package into the positional form used for sharing."""
    sig = pkg.sig
    message = sig.message
    return [
        sig.domain.version,
        sig.domain.chain_id,
        sig.domain.verifying_contract,
        sig.signature.r,
        sig.signature.s,
        sig.signature.v,
        pkg.signer,
        sig.uid,
        message["schema"],
        "0" if message["recipient"] == ZERO_ADDRESS else message["recipient"],
        message["time"],
        message["expirationTime"],
        "0" if message["refUID"] == ZERO_BYTES32 else message["refUID"],
        message["revocable"],
        message["data"],
        0,
        sig.version,
    ]


def uncompact_offchain_attestation_package(compacted: list[Any]) -> AttestationShareablePackage:
    """Rebuild a package from its positional form."""
    if len(compacted) != 17:
        raise ValueError(f"Compacted package must have 17 entries, got {len(compacted)}")

    (domain_version, chain_id, verifying_contract, r, s, v, signer, uid, schema,
     recipient, time, expiration_time, ref_uid, revocable, data, _nonce, version) = compacted

    tag = OffchainAttestationVersion(version)
    params = OffchainAttestationParams(
        version=int(tag),
        schema=schema,
        recipient=ZERO_ADDRESS if recipient == "0" else recipient,
        time=time,
        expiration_time=expiration_time,
        revocable=revocable,
        ref_uid=ZERO_BYTES32 if ref_uid == "0" else ref_uid,
        data=data,
    )
    primary_type, types = build_type_schema(request_kind_for(tag))
    sig = SignedOffchainAttestation(
        domain=build_domain(OFFCHAIN_DOMAIN_NAME, domain_version, int(chain_id), verifying_contract),
        primary_type=primary_type,
        types=types,
        message=params.to_message(),
        signature=Signature(v=v, r=r, s=s),
        uid=uid,
        version=int(tag),
    )
    return AttestationShareablePackage(sig=sig, signer=signer)


def zip_and_encode_to_base64(pkg: AttestationShareablePackage) -> str:
    compacted = compact_offchain_attestation_package(pkg)
    raw = json.dumps(compacted, separators=(',', ':')).encode('utf-8')
    return base64.b64encode(zlib.compress(raw)).decode('ascii')


def decode_base64_zipped_base64(encoded: str) -> AttestationShareablePackage:
    """Inverse of :func:`zip_and_encode_to_base64`."""
    try:
        raw = zlib.decompress(base64.b64decode(encoded, validate=True))
        compacted = json.loads(raw.decode('utf-8'))
    except (binascii.Error, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid encoded attestation package: {e}")
    if not isinstance(compacted, list):
        raise ValueError("Encoded attestation package must be a JSON array")
    return uncompact_offchain_attestation_package(compacted)


def create_offchain_url(pkg: AttestationShareablePackage, base_url: str) -> str:
    """Build a viewer URL carrying the package in its fragment."""
    encoded = zip_and_encode_to_base64(pkg)
    return f"{base_url.rstrip('/')}/offchain/url/#{URL_FRAGMENT_KEY}={quote(encoded, safe='')}"


def parse_offchain_url(url: str) -> AttestationShareablePackage:
    fragment = urlsplit(url).fragment
    prefix = f"{URL_FRAGMENT_KEY}="
    if not fragment.startswith(prefix):
        raise ValueError("URL does not carry an offchain attestation")
    return decode_base64_zipped_base64(unquote(fragment[len(prefix):]))
