"""
HUMANLINK Network Definitions

Known EVM networks and the explicit execution context that every mutating
registry call receives. The registry never reads a global "current chain";
the chain id and the calling identity always arrive in an ExecutionContext.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from humanlink.hardening import AddressLike, ValidationError, normalize_address


# =============================================================================
# CHAIN DEFINITIONS
# =============================================================================

class Chain(Enum):
    """Well-known networks a registry instance may be deployed on."""
    ETHEREUM = "ethereum"
    SEPOLIA = "sepolia"
    OPTIMISM = "optimism"
    ARBITRUM = "arbitrum"
    BASE = "base"
    POLYGON = "polygon"
    SCROLL = "scroll"
    GNOSIS = "gnosis"

    @property
    def chain_id(self) -> int:
        """Return the chain ID."""
        return _CHAIN_IDS[self]

    @property
    def is_testnet(self) -> bool:
        return self == Chain.SEPOLIA

    @property
    def is_l2(self) -> bool:
        """Check if this is an L2 chain."""
        return self in {Chain.OPTIMISM, Chain.ARBITRUM, Chain.BASE, Chain.SCROLL}

    @classmethod
    def from_chain_id(cls, chain_id: int) -> Optional['Chain']:
        """Look up a known chain by id; unknown ids return None."""
        for chain, known_id in _CHAIN_IDS.items():
            if known_id == chain_id:
                return chain
        return None

    @classmethod
    def from_name(cls, name: str) -> 'Chain':
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValidationError("chain", f"Unknown network name: {name}", name) from None


_CHAIN_IDS: Dict[Chain, int] = {
    Chain.ETHEREUM: 1,
    Chain.SEPOLIA: 11155111,
    Chain.OPTIMISM: 10,
    Chain.ARBITRUM: 42161,
    Chain.BASE: 8453,
    Chain.POLYGON: 137,
    Chain.SCROLL: 534352,
    Chain.GNOSIS: 100,
}


def resolve_chain_id(value: Any) -> int:
    """
    Resolve a chain reference to an integer chain id.

    Accepts a Chain, a positive int, a decimal string, or a known network name.
    """
    if isinstance(value, Chain):
        return value.chain_id
    if isinstance(value, bool):
        raise ValidationError("chain_id", "Expected chain id, got bool", value)
    if isinstance(value, int):
        chain_id = value
    elif isinstance(value, str) and value.strip().isdigit():
        chain_id = int(value.strip())
    elif isinstance(value, str):
        return Chain.from_name(value).chain_id
    else:
        raise ValidationError("chain_id", f"Cannot resolve {type(value).__name__} to a chain id", value)

    if chain_id <= 0:
        raise ValidationError("chain_id", "Chain id must be positive", value)
    return chain_id


def describe_chain(chain_id: int) -> str:
    chain = Chain.from_chain_id(chain_id)
    return chain.value if chain else f"chain-{chain_id}"


def list_chains() -> List[Dict[str, Any]]:
    """Known networks, ordered by chain id."""
    rows = [
        {
            "name": chain.value,
            "chain_id": chain.chain_id,
            "is_l2": chain.is_l2,
            "is_testnet": chain.is_testnet,
        }
        for chain in Chain
    ]
    rows.sort(key=lambda r: r["chain_id"])
    return rows


# =============================================================================
# EXECUTION CONTEXT
# =============================================================================

@dataclass(frozen=True)
class ExecutionContext:
    """
    Context for a registry call.

    chain_id is the network the call executes on; sender is the calling
    identity (normalized address).
    """
    chain_id: int
    sender: str

    @classmethod
    def create(cls, chain: Any, sender: AddressLike) -> 'ExecutionContext':
        """Build a context from loose inputs, normalizing both fields."""
        return cls(
            chain_id=resolve_chain_id(chain),
            sender=normalize_address(sender, "sender"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "network": describe_chain(self.chain_id),
            "sender": self.sender,
        }
