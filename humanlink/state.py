"""
HUMANLINK Registry State

Append-only flag tables and the per-instance state snapshot.

Every table maps a key to a boolean that can only ever move from False to
True. A table therefore stores the set of keys whose flag is True: absence
means False, and there is no operation that removes a key.

Snapshot format (JSON):

    {
      "version": 1,
      "home_chain_id": 1,
      "instance_id": "inst-…",
      "linked_commitments": ["0x…", ...],
      "has_linked": ["0x…", ...],
      "verified_addresses": ["0x…", ...]
    }

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Set, Union

from humanlink.hardening import (
    ValidationError,
    normalize_address,
    normalize_commitment_hash,
)
from humanlink.schema import REGISTRY_STATE_SCHEMA, validate_with_schema

SNAPSHOT_VERSION = 1


class AppendOnlyTable:
    """
    Thread-safe monotonic key -> bool table.

    Keys are normalized with the table's normalizer before storage, so the
    same value in different spellings maps to one entry.
    """

    def __init__(self, name: str, normalizer: Callable[[Any], str]):
        self.name = name
        self._normalize = normalizer
        self._keys: Set[str] = set()
        self._lock = threading.RLock()

    def mark(self, key: Any) -> bool:
        """Set the flag for key. Returns True if it was not already set."""
        key = self._normalize(key)
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def get(self, key: Any) -> bool:
        key = self._normalize(key)
        with self._lock:
            return key in self._keys

    def __contains__(self, key: object) -> bool:
        try:
            return self.get(key)
        except ValidationError:
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(sorted(self._keys))

    def merge(self, keys: Iterable[Any]) -> int:
        """Mark every key; returns how many were new."""
        return sum(1 for key in keys if self.mark(key))

    def snapshot(self) -> List[str]:
        return list(self)


@dataclass
class RegistryState:
    """
    Point-in-time copy of one instance's three tables.

    instance_id names the instance the snapshot was taken from. Only that
    instance may restore identity and verification flags from it.
    """
    home_chain_id: int
    instance_id: str = ""
    linked_commitments: List[str] = field(default_factory=list)
    has_linked: List[str] = field(default_factory=list)
    verified_addresses: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "home_chain_id": self.home_chain_id,
            "instance_id": self.instance_id,
            "linked_commitments": sorted(self.linked_commitments),
            "has_linked": sorted(self.has_linked),
            "verified_addresses": sorted(self.verified_addresses),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistryState':
        """Validate against the snapshot schema, then normalize every entry."""
        if not isinstance(data, dict):
            raise ValidationError("snapshot", f"Expected an object, got {type(data).__name__}")
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise ValidationError("version", f"Unsupported snapshot version {version}", version)
        errors = validate_with_schema(data, REGISTRY_STATE_SCHEMA)
        if errors:
            raise ValidationError("snapshot", "; ".join(errors))
        return cls(
            home_chain_id=int(data["home_chain_id"]),
            instance_id=data.get("instance_id", ""),
            linked_commitments=[
                normalize_commitment_hash(h) for h in data.get("linked_commitments", [])
            ],
            has_linked=[normalize_address(a, "has_linked") for a in data.get("has_linked", [])],
            verified_addresses=[
                normalize_address(a, "verified_addresses")
                for a in data.get("verified_addresses", [])
            ],
        )

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'RegistryState':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"State snapshot not found: {path}")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValidationError("snapshot", f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)
