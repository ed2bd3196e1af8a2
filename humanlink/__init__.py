"""
HUMANLINK — Cross-Network Human Identity Registry

An address that holds a non-transferable human credential on the home
network links a commitment to its stealth meta-address. Anyone, on any
network instance that has learned the commitment, can later redeem a
zero-knowledge proof that a one-time address was derived from it, and the
instance records that address as human-verified.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                        REGISTRY INSTANCE (per network)                   │
    │                                                                          │
    │    registry.py      link / claim / relay_commitment, guards, views      │
    │    state.py         append-only flag tables, JSON snapshots             │
    │    schema.py        JSON Schema validation of snapshots                 │
    │    events.py        CommitmentLinked, HumanStatusClaimed, event bus     │
    │                                                                          │
    │  CAPABILITIES (injected)                                                │
    │    credentials.py   credential balance oracle (home only)               │
    │    zkp.py           derivation proof verifier                           │
    │                                                                          │
    │  SUPPORT                                                                │
    │    commitment.py    keccak256 commitments, verifier public inputs       │
    │    hardening.py     input validation and normalization                  │
    │    network.py       known chains, ExecutionContext                      │
    │    config.py        YAML / environment configuration                    │
    │    observability.py structured JSON logging                             │
    │    cli.py           command-line interface                              │
    └─────────────────────────────────────────────────────────────────────────┘

Copyright © 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy import of the public API on first access."""

    if name in ("Registry", "RegistryError", "InvalidConfiguration", "WrongNetwork",
                "InvalidMetaAddressLength", "AlreadyLinked", "NotVerifiedHuman",
                "NullAddress", "InvalidProof", "UnauthorizedRelayer"):
        from humanlink import registry
        return getattr(registry, name)

    if name in ("Chain", "ExecutionContext", "resolve_chain_id"):
        from humanlink import network
        return getattr(network, name)

    if name in ("commitment_of", "to_public_inputs"):
        from humanlink import commitment
        return getattr(commitment, name)

    if name in ("CredentialOracle", "InMemoryCredentialOracle"):
        from humanlink import credentials
        return getattr(credentials, name)

    if name in ("ProofVerifier", "StaticProofVerifier", "AllowlistProofVerifier"):
        from humanlink import zkp
        return getattr(zkp, name)

    if name in ("Event", "EventBus", "CommitmentLinked", "HumanStatusClaimed",
                "CommitmentRelayed"):
        from humanlink import events
        return getattr(events, name)

    if name in ("AppendOnlyTable", "RegistryState"):
        from humanlink import state
        return getattr(state, name)

    if name in ("ValidationError", "META_ADDRESS_LENGTH", "NULL_ADDRESS"):
        from humanlink import hardening
        return getattr(hardening, name)

    raise AttributeError(f"module 'humanlink' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Registry
    "Registry",
    "RegistryError",
    "InvalidConfiguration",
    "WrongNetwork",
    "InvalidMetaAddressLength",
    "AlreadyLinked",
    "NotVerifiedHuman",
    "NullAddress",
    "InvalidProof",
    "UnauthorizedRelayer",
    # Network
    "Chain",
    "ExecutionContext",
    # Commitments
    "commitment_of",
    "to_public_inputs",
    # Capabilities
    "CredentialOracle",
    "InMemoryCredentialOracle",
    "ProofVerifier",
    "StaticProofVerifier",
    "AllowlistProofVerifier",
    # Events
    "EventBus",
    "CommitmentLinked",
    "HumanStatusClaimed",
    "CommitmentRelayed",
    # State
    "RegistryState",
]
