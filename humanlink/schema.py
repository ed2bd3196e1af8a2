"""JSON Schema validation for registry snapshots.

Schemas ship inside the package under humanlink/schemas/ and are loaded
once per process.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"
REGISTRY_STATE_SCHEMA = "registry-state.schema.json"


@lru_cache(maxsize=None)
def schema_validator(name: str) -> Draft202012Validator:
    """Create a validator for a packaged schema file."""
    schema = json.loads((SCHEMAS_DIR / name).read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def validate_with_schema(obj: Any, name: str) -> List[str]:
    """Return error messages for obj, sorted by path. Empty means valid."""
    validator = schema_validator(name)
    errors = []
    for e in sorted(validator.iter_errors(obj), key=lambda e: e.json_path):
        errors.append(f"{e.json_path}: {e.message}")
    return errors
