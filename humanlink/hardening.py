"""
HUMANLINK Validation and Hardening Module

Input validation and normalization for the values that cross the registry
boundary: EVM addresses, commitment hashes and stealth meta-addresses.

Security Model:
    - All inputs are untrusted until validated
    - Addresses and hashes are normalized to one canonical form before they
      touch any state table, so equal values always compare equal
    - Digest comparisons use constant-time comparison

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hmac
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union


# =============================================================================
# VALIDATION ERROR TYPES
# =============================================================================

class ValidationError(Exception):
    """Base exception for validation failures."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the first error."""
        if not self.is_valid:
            raise self.errors[0]

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# CONSTANTS
# =============================================================================

ADDRESS_BYTES = 20
COMMITMENT_BYTES = 32

# Two compressed secp256k1 public keys: spend (33) || view (33)
META_ADDRESS_LENGTH = 66

NULL_ADDRESS = "0x" + "00" * ADDRESS_BYTES


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    HEX_PATTERN = re.compile(r'^[0-9a-f]*$')
    ADDRESS_PATTERN = re.compile(r'^0x[0-9a-f]{40}$')
    COMMITMENT_PATTERN = re.compile(r'^0x[0-9a-f]{64}$')

    @classmethod
    def _strip_hex(cls, value: str) -> Optional[str]:
        text = value.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        if not cls.HEX_PATTERN.match(text):
            return None
        return text

    @classmethod
    def _validate_word(
        cls,
        value: Any,
        field_name: str,
        width: int,
    ) -> ValidationResult:
        """
        Normalize an unsigned integer of `width` bytes to 0x-prefixed hex.

        Accepts int, bytes (at most `width` long, big-endian) or a hex string
        of at most 2*width digits. Shorter inputs are left-padded with zeros.
        """
        bits = width * 8
        if isinstance(value, bool):
            return ValidationResult.failure([
                ValidationError(field_name, "Expected int, bytes or hex string, got bool", value)
            ])

        if isinstance(value, int):
            if value < 0 or value >= (1 << bits):
                return ValidationResult.failure([
                    ValidationError(field_name, f"Out of range for uint{bits}", value)
                ])
            number = value
        elif isinstance(value, (bytes, bytearray)):
            if len(value) > width:
                return ValidationResult.failure([
                    ValidationError(field_name, f"Too long (max {width} bytes)", value)
                ])
            number = int.from_bytes(bytes(value), "big")
        elif isinstance(value, str):
            digits = cls._strip_hex(value)
            if digits is None or not digits:
                return ValidationResult.failure([
                    ValidationError(field_name, "Invalid hex string", value)
                ])
            if len(digits) > width * 2:
                return ValidationResult.failure([
                    ValidationError(field_name, f"Too long (max {width * 2} hex digits)", value)
                ])
            number = int(digits, 16)
        else:
            return ValidationResult.failure([
                ValidationError(
                    field_name,
                    f"Expected int, bytes or hex string, got {type(value).__name__}",
                    value,
                )
            ])

        return ValidationResult.success("0x" + format(number, f"0{width * 2}x"))

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        """Validate and normalize a 20-byte EVM address."""
        return cls._validate_word(value, field_name, ADDRESS_BYTES)

    @classmethod
    def validate_commitment_hash(
        cls,
        value: Any,
        field_name: str = "commitment_hash",
    ) -> ValidationResult:
        """Validate and normalize a 32-byte commitment hash."""
        return cls._validate_word(value, field_name, COMMITMENT_BYTES)

    @classmethod
    def validate_meta_address(
        cls,
        value: Any,
        field_name: str = "meta_address",
    ) -> ValidationResult:
        """
        Validate the type of a stealth meta-address blob.

        Only the type is checked here. The 66-byte length rule is a registry
        guard with its own error kind, so a wrong length still validates.
        """
        return cls._validate_bytes(value, field_name)

    @classmethod
    def validate_proof(cls, value: Any, field_name: str = "proof") -> ValidationResult:
        """Validate the type of an opaque proof blob."""
        return cls._validate_bytes(value, field_name)

    @classmethod
    def _validate_bytes(cls, value: Any, field_name: str) -> ValidationResult:
        if isinstance(value, bytearray):
            value = bytes(value)
        if not isinstance(value, bytes):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected bytes, got {type(value).__name__}", value)
            ])
        return ValidationResult.success(value)


# =============================================================================
# NORMALIZERS
# =============================================================================

AddressLike = Union[str, int, bytes]


def normalize_address(value: AddressLike, field_name: str = "address") -> str:
    """Return the canonical 0x-prefixed lowercase address or raise ValidationError."""
    result = Validators.validate_address(value, field_name)
    result.raise_if_invalid()
    return result.sanitized_value


def normalize_commitment_hash(value: AddressLike, field_name: str = "commitment_hash") -> str:
    """Return the canonical 0x-prefixed commitment hash or raise ValidationError."""
    result = Validators.validate_commitment_hash(value, field_name)
    result.raise_if_invalid()
    return result.sanitized_value


def parse_meta_address(value: Union[str, bytes]) -> bytes:
    """Parse a meta-address given as raw bytes or as a (0x-prefixed) hex string."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    digits = Validators._strip_hex(value) if isinstance(value, str) else None
    if digits is None or len(digits) % 2:
        raise ValidationError("meta_address", "Invalid hex string", value)
    return bytes.fromhex(digits)


def is_blank_word(value: Any) -> bool:
    """True for empty input: b"", "" or a bare "0x" prefix."""
    if isinstance(value, (bytes, bytearray)):
        return len(value) == 0
    if isinstance(value, str):
        text = value.strip().lower()
        return text in ("", "0x")
    return False


def is_null_address(address: str) -> bool:
    """Check a normalized address against the zero address."""
    return hmac.compare_digest(address.encode(), NULL_ADDRESS.encode())
