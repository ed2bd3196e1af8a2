"""
HUMANLINK Commitments

Commitment hashing for stealth meta-addresses and the mapping from
(derived address, commitment) to the public inputs of the derivation proof.

The commitment is keccak256 over the raw 66-byte meta-address, matching what
an EVM contract computes with keccak256(metaAddress). Public inputs are the
derived address read as uint160 followed by the commitment read as uint256.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import Any, Dict, List

from eth_hash.auto import keccak

from humanlink.hardening import (
    META_ADDRESS_LENGTH,
    AddressLike,
    Validators,
    normalize_address,
    normalize_commitment_hash,
)


def has_valid_length(meta_address: bytes) -> bool:
    return len(meta_address) == META_ADDRESS_LENGTH


def commitment_of(meta_address: bytes) -> str:
    """
    Compute the commitment hash of a meta-address blob.

    The blob length is not checked here; callers gate on has_valid_length.
    """
    result = Validators.validate_meta_address(meta_address)
    result.raise_if_invalid()
    return "0x" + keccak(result.sanitized_value).hex()


def to_public_inputs(derived_address: AddressLike, commitment_hash: AddressLike) -> List[int]:
    """Public inputs for the derivation proof: [address, commitment]."""
    address = normalize_address(derived_address, "derived_address")
    commitment = normalize_commitment_hash(commitment_hash)
    return [int(address, 16), int(commitment, 16)]


def split_meta_address(meta_address: bytes) -> Dict[str, Any]:
    """
    Split a well-formed meta-address into its spend and view public keys.

    Display helper for the CLI. The registry itself never looks inside a blob.
    """
    half = META_ADDRESS_LENGTH // 2
    return {
        "spend_public_key": "0x" + meta_address[:half].hex(),
        "view_public_key": "0x" + meta_address[half:].hex(),
    }
