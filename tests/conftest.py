import logging
import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import humanlink`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from humanlink.config import ConfigManager
from humanlink.credentials import InMemoryCredentialOracle
from humanlink.events import EventBus
from humanlink.network import Chain, ExecutionContext
from humanlink.registry import Registry
from humanlink.zkp import AllowlistProofVerifier, StaticProofVerifier


HOME_CHAIN_ID = Chain.ETHEREUM.chain_id
OTHER_CHAIN_ID = Chain.BASE.chain_id

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20
RELAYER = "0x" + "5e" * 20
DERIVED = "0x" + "0" * 37 + "abc"

# spend key (33 bytes) || view key (33 bytes)
META_ADDRESS = bytes([0x02]) + bytes(range(1, 33)) + bytes([0x03]) + bytes(range(101, 133))
OTHER_META_ADDRESS = bytes([0x03]) + bytes(32 * [0x11]) + bytes([0x02]) + bytes(32 * [0x22])
PROOF = b"\x01" * 256


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Each test gets fresh configuration and an untouched package logger."""
    ConfigManager.reset()
    root = logging.getLogger("humanlink")
    handlers, propagate, level = list(root.handlers), root.propagate, root.level
    env = {k: v for k, v in os.environ.items() if k.startswith("HUMANLINK_")}
    for key in env:
        del os.environ[key]
    yield
    ConfigManager.reset()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.propagate = propagate
    root.setLevel(level)
    os.environ.update(env)


@pytest.fixture
def oracle() -> InMemoryCredentialOracle:
    """Alice and Carol hold a credential; Bob does not."""
    return InMemoryCredentialOracle({ALICE: 1, CAROL: 2})


@pytest.fixture
def verifier() -> AllowlistProofVerifier:
    return AllowlistProofVerifier()


@pytest.fixture
def accept_all() -> StaticProofVerifier:
    return StaticProofVerifier(True)


@pytest.fixture
def home_registry(oracle, verifier) -> Registry:
    return Registry(HOME_CHAIN_ID, oracle, verifier, trusted_relayers=[RELAYER])


@pytest.fixture
def other_registry(oracle, verifier) -> Registry:
    """An independent instance deployed on a non-home network."""
    return Registry(HOME_CHAIN_ID, oracle, verifier, trusted_relayers=[RELAYER], event_bus=EventBus())


def home_ctx(sender: str = ALICE) -> ExecutionContext:
    return ExecutionContext(chain_id=HOME_CHAIN_ID, sender=sender)


def other_ctx(sender: str = ALICE) -> ExecutionContext:
    return ExecutionContext(chain_id=OTHER_CHAIN_ID, sender=sender)
