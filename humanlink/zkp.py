"""
HUMANLINK Zero-Knowledge Proof Verification

The registry consumes proof verification as a capability with a fixed
contract: verify(proof, public_inputs) -> bool, deterministic and free of side
effects. Circuit design, trusted setup and proving live outside this package.

Public inputs are always two integers, in order:
    [0] derived address as uint160
    [1] commitment hash as uint256

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import List, Protocol, Sequence, Set, Tuple

PUBLIC_INPUT_COUNT = 2


class ProofVerifier(Protocol):
    """Protocol for ZK proof verification."""

    def verify(self, proof: bytes, public_inputs: Sequence[int]) -> bool:
        """Verify a proof against the public inputs."""
        ...


@dataclass(frozen=True)
class VerifierCall:
    """A recorded verify() invocation."""
    proof: bytes
    public_inputs: Tuple[int, ...]


class _RecordingVerifier:
    """Call recording shared by the test verifiers."""

    def __init__(self):
        self._calls: List[VerifierCall] = []
        self._lock = threading.Lock()

    def _record(self, proof: bytes, public_inputs: Sequence[int]) -> VerifierCall:
        call = VerifierCall(proof=bytes(proof), public_inputs=tuple(public_inputs))
        with self._lock:
            self._calls.append(call)
        return call

    @property
    def calls(self) -> List[VerifierCall]:
        with self._lock:
            return list(self._calls)

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self._calls)


# =============================================================================
# MOCK IMPLEMENTATIONS (for testing without actual ZK backend)
# =============================================================================

class StaticProofVerifier(_RecordingVerifier):
    """
    Mock verifier returning a fixed answer for every proof.

    NOT CRYPTOGRAPHICALLY SECURE - for testing only.
    """

    def __init__(self, result: bool = True):
        super().__init__()
        self.result = result

    def verify(self, proof: bytes, public_inputs: Sequence[int]) -> bool:
        self._record(proof, public_inputs)
        return self.result


class AllowlistProofVerifier(_RecordingVerifier):
    """
    Mock verifier accepting exactly the registered (proof, inputs) pairs.

    A proof registered for one pair of inputs fails for any other pair,
    which mirrors how a real verifier binds a proof to its public inputs.
    NOT CRYPTOGRAPHICALLY SECURE - for testing only.
    """

    def __init__(self):
        super().__init__()
        self._accepted: Set[Tuple[bytes, Tuple[int, ...]]] = set()

    def accept(self, proof: bytes, public_inputs: Sequence[int]) -> None:
        """Register a proof as valid for the given public inputs."""
        if len(public_inputs) != PUBLIC_INPUT_COUNT:
            raise ValueError(
                f"Expected {PUBLIC_INPUT_COUNT} public inputs, got {len(public_inputs)}"
            )
        with self._lock:
            self._accepted.add((bytes(proof), tuple(public_inputs)))

    def verify(self, proof: bytes, public_inputs: Sequence[int]) -> bool:
        call = self._record(proof, public_inputs)
        if len(call.public_inputs) != PUBLIC_INPUT_COUNT:
            return False
        with self._lock:
            return (call.proof, call.public_inputs) in self._accepted


class UnavailableProofVerifier:
    """Verifier whose backing contract cannot be reached. Every call raises."""

    def __init__(self, error: Exception = None):
        self._error = error or ConnectionError("proof verifier unreachable")

    def verify(self, proof: bytes, public_inputs: Sequence[int]) -> bool:
        raise self._error
