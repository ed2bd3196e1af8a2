"""
HUMANLINK Registry

The per-network registry state machine.

An identity holding a human credential on the home network links a
commitment to its stealth meta-address exactly once. Anyone, on any network
instance that knows the commitment, can then claim human status for a
derived address by presenting a proof that the address was derived from the
committed meta-address.

State Machine:

    identity     Unlinked ──link (home only)──► Linked        (terminal)
    commitment   Unknown  ──link | relay─────► Linked        (terminal)
    address      Unclaimed ─claim (any)──────► Verified      (terminal)

Guards run in a fixed order against the state as of the start of the call,
under the instance lock, and every effect is applied only after all guards
pass. A failed call leaves the instance unchanged.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
import uuid
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from humanlink.commitment import commitment_of, has_valid_length, to_public_inputs
from humanlink.credentials import CredentialOracle
from humanlink.events import (
    CommitmentLinked,
    CommitmentRelayed,
    Event,
    EventBus,
    HumanStatusClaimed,
)
from humanlink.hardening import (
    META_ADDRESS_LENGTH,
    NULL_ADDRESS,
    AddressLike,
    ValidationError,
    Validators,
    is_blank_word,
    is_null_address,
    normalize_address,
    normalize_commitment_hash,
)
from humanlink.config import ConfigError
from humanlink.network import ExecutionContext, describe_chain, resolve_chain_id
from humanlink.observability import Layer, get_logger, timed_operation
from humanlink.state import AppendOnlyTable, RegistryState
from humanlink.zkp import ProofVerifier

logger = get_logger("core", Layer.REGISTRY)


# =============================================================================
# ERRORS
# =============================================================================

class RegistryError(Exception):
    """Base class for registry failures. code is stable across releases."""
    code = "REGISTRY_ERROR"


class InvalidConfiguration(RegistryError):
    code = "INVALID_CONFIGURATION"


class WrongNetwork(RegistryError):
    code = "WRONG_NETWORK"


class InvalidMetaAddressLength(RegistryError):
    code = "INVALID_META_ADDRESS_LENGTH"


class AlreadyLinked(RegistryError):
    code = "ALREADY_LINKED"


class NotVerifiedHuman(RegistryError):
    code = "NOT_VERIFIED_HUMAN"


class NullAddress(RegistryError):
    code = "NULL_ADDRESS"


class InvalidProof(RegistryError):
    """
    The commitment is unknown on this instance, or the proof did not verify.

    Both causes share this error on purpose; callers cannot tell them apart.
    """
    code = "INVALID_PROOF"


class UnauthorizedRelayer(RegistryError):
    code = "UNAUTHORIZED_RELAYER"


# =============================================================================
# REGISTRY
# =============================================================================

class Registry:
    """
    One registry instance, deployed on one network.

    Args:
        home_chain_id: Chain id of the network where linking is allowed
        credential_oracle: Answers credential balances on home
        proof_verifier: Verifies derivation proofs
        trusted_relayers: Senders allowed to deliver home commitments to
            this instance when it is not home
        event_bus: Bus to publish notifications on (a private one by default)
        instance_id: Stable name of this instance, recorded in snapshots.
            Give the same id when rebuilding an instance from its snapshot.
    """

    def __init__(
        self,
        home_chain_id: int,
        credential_oracle: Optional[CredentialOracle],
        proof_verifier: Optional[ProofVerifier],
        trusted_relayers: Iterable[AddressLike] = (),
        event_bus: Optional[EventBus] = None,
        instance_id: Optional[str] = None,
    ):
        if credential_oracle is None:
            raise InvalidConfiguration("credential oracle must not be null")
        if proof_verifier is None:
            raise InvalidConfiguration("proof verifier must not be null")
        try:
            self._home = resolve_chain_id(home_chain_id)
            relayers = frozenset(normalize_address(r, "trusted_relayers") for r in trusted_relayers)
        except ValidationError as e:
            raise InvalidConfiguration(str(e)) from e

        self._credentials = credential_oracle
        self._verifier = proof_verifier
        self._relayers = relayers
        self._bus = event_bus or EventBus()
        self._instance_id = instance_id or f"inst-{uuid.uuid4().hex[:12]}"

        self._linked_commitments = AppendOnlyTable("linked_commitments", normalize_commitment_hash)
        self._has_linked = AppendOnlyTable("has_linked", normalize_address)
        self._verified_addresses = AppendOnlyTable("verified_addresses", normalize_address)
        self._event_log: List[Event] = []
        self._pending: Deque[Event] = deque()
        self._lock = threading.RLock()
        self._publish_lock = threading.Lock()
        self._publishing_thread: Optional[int] = None

    @classmethod
    def from_config(
        cls,
        config: Any,
        credential_oracle: Optional[CredentialOracle],
        proof_verifier: Optional[ProofVerifier],
        event_bus: Optional[EventBus] = None,
    ) -> 'Registry':
        """
        Build a registry from a HumanlinkConfig.

        Both capability contracts must be configured and non-zero.
        """
        try:
            config.require_contracts()
        except ConfigError as e:
            raise InvalidConfiguration(str(e)) from e
        settings = config.registry
        return cls(
            home_chain_id=settings.home_chain_id.get(),
            credential_oracle=credential_oracle,
            proof_verifier=proof_verifier,
            trusted_relayers=settings.trusted_relayers.get(),
            event_bus=event_bus,
            instance_id=settings.instance_id.get() or None,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def home(self) -> int:
        return self._home

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def credential_oracle(self) -> CredentialOracle:
        return self._credentials

    @property
    def verifier(self) -> ProofVerifier:
        return self._verifier

    @property
    def trusted_relayers(self) -> frozenset:
        return self._relayers

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def event_log(self) -> List[Event]:
        """Notifications emitted by this instance, oldest first."""
        with self._lock:
            return list(self._event_log)

    # -------------------------------------------------------------------------
    # Mutating operations
    # -------------------------------------------------------------------------

    @timed_operation(logger, "link")
    def link(self, ctx: ExecutionContext, meta_address: bytes) -> str:
        """
        Link the caller's stealth meta-address commitment on home.

        Returns the commitment hash.

        Raises:
            WrongNetwork: ctx.chain_id is not the home chain
            InvalidMetaAddressLength: blob is not exactly 66 bytes
            AlreadyLinked: the caller linked before
            NotVerifiedHuman: the caller holds no credential
        """
        result = Validators.validate_meta_address(meta_address)
        result.raise_if_invalid()
        meta_address = result.sanitized_value
        sender = normalize_address(ctx.sender, "sender")

        with self._lock:
            if ctx.chain_id != self._home:
                self._reject(WrongNetwork(
                    f"link is only allowed on {describe_chain(self._home)}, "
                    f"called on {describe_chain(ctx.chain_id)}"
                ), "link", ctx)
            if not has_valid_length(meta_address):
                self._reject(InvalidMetaAddressLength(
                    f"meta-address must be {META_ADDRESS_LENGTH} bytes, got {len(meta_address)}"
                ), "link", ctx)
            if self._has_linked.get(sender):
                self._reject(AlreadyLinked(f"{sender} has already linked"), "link", ctx)
            if self._credentials.balance_of(sender) <= 0:
                self._reject(NotVerifiedHuman(f"{sender} holds no credential"), "link", ctx)

            commitment = commitment_of(meta_address)
            self._linked_commitments.mark(commitment)
            self._has_linked.mark(sender)
            event = CommitmentLinked(
                chain_id=ctx.chain_id,
                commitment_hash=commitment,
                identity=sender,
                meta_address="0x" + meta_address.hex(),
            )
            self._event_log.append(event)
            self._pending.append(event)

        logger.info(
            "Commitment linked",
            operation="link",
            commitment_hash=commitment,
            identity=sender,
            chain_id=ctx.chain_id,
        )
        self._flush_events()
        return commitment

    @timed_operation(logger, "claim")
    def claim(
        self,
        ctx: ExecutionContext,
        derived_address: AddressLike,
        commitment_hash: AddressLike,
        proof: bytes,
    ) -> None:
        """
        Record derived_address as human-verified on this instance.

        Any caller may submit a claim; the proof is the authorization.

        Raises:
            NullAddress: derived_address is the zero address
            InvalidProof: the commitment is not linked here, or the proof fails
        """
        if is_blank_word(derived_address):
            address = NULL_ADDRESS
        else:
            address = normalize_address(derived_address, "derived_address")
        if is_null_address(address):
            self._reject(NullAddress("derived address must not be zero"), "claim", ctx)
        commitment = normalize_commitment_hash(commitment_hash)
        result = Validators.validate_proof(proof)
        result.raise_if_invalid()
        proof = result.sanitized_value

        with self._lock:
            if not self._linked_commitments.get(commitment):
                self._reject(InvalidProof("invalid proof"), "claim", ctx, reason="unknown_commitment")
            if not self._verifier.verify(proof, to_public_inputs(address, commitment)):
                self._reject(InvalidProof("invalid proof"), "claim", ctx, reason="verification_failed")

            newly_verified = self._verified_addresses.mark(address)
            event = HumanStatusClaimed(
                chain_id=ctx.chain_id,
                derived_address=address,
                commitment_hash=commitment,
            )
            self._event_log.append(event)
            self._pending.append(event)

        logger.info(
            "Human status claimed",
            operation="claim",
            derived_address=address,
            commitment_hash=commitment,
            chain_id=ctx.chain_id,
            first_claim=newly_verified,
        )
        self._flush_events()

    @timed_operation(logger, "relay_commitment")
    def relay_commitment(self, ctx: ExecutionContext, commitment_hash: AddressLike) -> bool:
        """
        Record a commitment linked on home, delivered by a trusted relayer.

        Returns True if the commitment was new on this instance.

        Raises:
            WrongNetwork: called on the home chain
            UnauthorizedRelayer: ctx.sender is not a trusted relayer
        """
        relayer = normalize_address(ctx.sender, "sender")

        with self._lock:
            if ctx.chain_id == self._home:
                self._reject(WrongNetwork(
                    "home learns commitments only through link"
                ), "relay_commitment", ctx)
            if relayer not in self._relayers:
                self._reject(
                    UnauthorizedRelayer(f"{relayer} is not a trusted relayer"),
                    "relay_commitment",
                    ctx,
                )
            commitment = normalize_commitment_hash(commitment_hash)

            is_new = self._linked_commitments.mark(commitment)
            event = CommitmentRelayed(
                chain_id=ctx.chain_id,
                commitment_hash=commitment,
                relayer=relayer,
            )
            self._event_log.append(event)
            self._pending.append(event)

        logger.info(
            "Commitment relayed",
            operation="relay_commitment",
            commitment_hash=commitment,
            relayer=relayer,
            chain_id=ctx.chain_id,
            is_new=is_new,
        )
        self._flush_events()
        return is_new

    def _flush_events(self) -> None:
        """
        Deliver queued events to the bus in event_log order.

        One thread delivers at a time. Events queued by a handler on the
        delivering thread are picked up by the loop already running there.
        """
        if self._publishing_thread == threading.get_ident():
            return
        with self._publish_lock:
            self._publishing_thread = threading.get_ident()
            try:
                while True:
                    with self._lock:
                        if not self._pending:
                            break
                        event = self._pending.popleft()
                    self._bus.publish(event)
            finally:
                self._publishing_thread = None

    def _reject(self, error: RegistryError, operation: str, ctx: ExecutionContext, **context: Any) -> None:
        logger.warning(
            f"{operation} rejected: {error}",
            operation=operation,
            error_code=error.code,
            chain_id=ctx.chain_id,
            sender=ctx.sender,
            **context,
        )
        raise error

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def is_linked_on_chain(self, meta_address: bytes) -> bool:
        """True if the blob's commitment is linked here. Wrong length is False."""
        if not isinstance(meta_address, (bytes, bytearray)) or not has_valid_length(meta_address):
            return False
        return self._linked_commitments.get(commitment_of(bytes(meta_address)))

    def is_human_on_chain(self, address: AddressLike) -> bool:
        return self._verified_addresses.get(normalize_address(address))

    def is_commitment_linked(self, commitment_hash: AddressLike) -> bool:
        return self._linked_commitments.get(normalize_commitment_hash(commitment_hash))

    def has_identity_linked(self, address: AddressLike) -> bool:
        return self._has_linked.get(normalize_address(address))

    def get_statistics(self) -> Dict[str, Any]:
        """Counts per table and bus metrics."""
        with self._lock:
            return {
                "home_chain_id": self._home,
                "instance_id": self._instance_id,
                "home_network": describe_chain(self._home),
                "linked_commitments": len(self._linked_commitments),
                "linked_identities": len(self._has_linked),
                "verified_addresses": len(self._verified_addresses),
                "trusted_relayers": len(self._relayers),
                "events_emitted": len(self._event_log),
                "event_bus": self._bus.metrics,
            }

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def export_state(self) -> RegistryState:
        with self._lock:
            return RegistryState(
                home_chain_id=self._home,
                instance_id=self._instance_id,
                linked_commitments=self._linked_commitments.snapshot(),
                has_linked=self._has_linked.snapshot(),
                verified_addresses=self._verified_addresses.snapshot(),
            )

    def restore_state(self, state: RegistryState) -> Dict[str, int]:
        """
        Merge a snapshot into this instance.

        Merging is a union of flags, so it can only add entries. Linked
        commitments are public and merge from any snapshot with the same
        home. Identity and verification flags merge only from a snapshot
        this instance exported itself; from any other instance they are
        skipped. Returns how many entries were new per table.
        """
        if state.home_chain_id != self._home:
            raise InvalidConfiguration(
                f"snapshot home {state.home_chain_id} does not match registry home {self._home}"
            )
        own = state.instance_id == self._instance_id
        with self._lock:
            added = {
                "linked_commitments": self._linked_commitments.merge(state.linked_commitments),
                "has_linked": self._has_linked.merge(state.has_linked) if own else 0,
                "verified_addresses": (
                    self._verified_addresses.merge(state.verified_addresses) if own else 0
                ),
            }
        if not own and (state.has_linked or state.verified_addresses):
            logger.warning(
                "Skipped flags from a foreign snapshot",
                operation="restore_state",
                source_instance=state.instance_id,
                skipped_has_linked=len(state.has_linked),
                skipped_verified_addresses=len(state.verified_addresses),
            )
        logger.info("State restored", operation="restore_state", **added)
        return added
