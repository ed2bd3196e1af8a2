"""
HUMANLINK Credential Oracle

Interface to the non-transferable "human" credential contract on the home
network, plus an in-memory soulbound token used by tests and local runs.

The registry only ever asks one question of the oracle: how many credential
tokens does an address hold. A count above zero means "verified human".

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
from typing import Dict, List, Protocol

from humanlink.hardening import AddressLike, ValidationError, normalize_address


class CredentialOracle(Protocol):
    """Protocol for the credential ownership query (ERC-721 balanceOf)."""

    def balance_of(self, address: str) -> int:
        """Return the number of credential tokens held by address."""
        ...


class CredentialTransferError(Exception):
    """Raised when a soulbound credential is moved between holders."""
    pass


class InMemoryCredentialOracle:
    """
    Soulbound credential registry held in memory.

    Tokens can be minted and burned but never transferred.
    """

    def __init__(self, holders: Dict[AddressLike, int] = None):
        self._balances: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._queries: List[str] = []
        for holder, count in (holders or {}).items():
            self.mint(holder, count)

    def balance_of(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            self._queries.append(address)
            return self._balances.get(address, 0)

    def mint(self, address: AddressLike, count: int = 1) -> int:
        """Mint count tokens to address and return the new balance."""
        if count <= 0:
            raise ValidationError("count", "Mint count must be positive", count)
        address = normalize_address(address)
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + count
            return self._balances[address]

    def burn(self, address: AddressLike, count: int = 1) -> int:
        """Burn count tokens from address and return the new balance."""
        address = normalize_address(address)
        with self._lock:
            held = self._balances.get(address, 0)
            if count <= 0 or count > held:
                raise ValidationError("count", f"Cannot burn {count} of {held} tokens", count)
            self._balances[address] = held - count
            return self._balances[address]

    def transfer(self, sender: AddressLike, recipient: AddressLike, count: int = 1) -> None:
        raise CredentialTransferError("Credential tokens are non-transferable")

    @property
    def queries(self) -> List[str]:
        """Addresses queried so far, in call order."""
        with self._lock:
            return list(self._queries)


class UnavailableCredentialOracle:
    """Oracle whose backing contract cannot be reached. Every query raises."""

    def __init__(self, error: Exception = None):
        self._error = error or ConnectionError("credential contract unreachable")

    def balance_of(self, address: str) -> int:
        raise self._error
