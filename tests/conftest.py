"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
from typing import Any, Dict, List, Optional

import base58
import pytest

from oracle_runner.config import RunnerConfig
from oracle_runner.core.result import ResponseOptions
from oracle_runner.ledger.interface import (
    ConfirmationTimeout,
    GasCoinRef,
    LedgerInterface,
    LedgerObject,
    SubmissionRejected,
)
from oracle_runner.tx.signer import Keypair


# Standard BIP-39 test phrase
TEST_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])

ORACLE_PACKAGE_ID = "0x" + "a1" * 32
DEMO_APP_PACKAGE_ID = "0x" + "b2" * 32

CREDENTIAL_ENV_VARS = (
    "ADMIN_PHRASE",
    "FULLNODE",
    "MYSTENLABS_ORACLE_PACKAGE_ID",
    "DEMO_APP_PACKAGE_ID",
)


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_object_id(index: int = 0) -> str:
    """Generate a deterministic normalized object id."""
    return "0x" + f"{index:064x}"


def generate_digest(index: int = 0) -> str:
    """Generate a deterministic base58 digest of 32 bytes."""
    return base58.b58encode(bytes([index % 256]) * 32).decode("ascii")


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep credentials from the developer's shell out of the tests."""
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config() -> RunnerConfig:
    """Create a test configuration."""
    return RunnerConfig(
        _env_file=None,
        admin_phrase=TEST_MNEMONIC,
        fullnode="http://127.0.0.1:9000",
        oracle_package_id=ORACLE_PACKAGE_ID,
        demo_app_package_id=DEMO_APP_PACKAGE_ID,
        confirmation_timeout_seconds=5,
        poll_interval_seconds=0.01,
        log_level="DEBUG",
    )


@pytest.fixture
def keypair() -> Keypair:
    """Keypair derived from the test phrase."""
    return Keypair.from_mnemonic(TEST_MNEMONIC)


# ============================================================================
# Mock Ledger
# ============================================================================

class MockLedger(LedgerInterface):
    """
    Mock ledger for testing.

    Accepts submissions immediately and finishes executing them after
    ``execution_delay`` seconds. ``abort_command`` makes execution abort
    in that command; ``reject`` makes the node refuse the block.
    """

    def __init__(
        self,
        execution_delay: float = 0.0,
        abort_command: Optional[int] = None,
        reject: Optional[str] = None,
    ):
        self.execution_delay = execution_delay
        self.abort_command = abort_command
        self.reject = reject

        self.gas_price = 1000
        self.gas_coins: List[GasCoinRef] = [
            GasCoinRef(
                object_id=generate_object_id(900),
                version=10,
                digest=generate_digest(90),
                balance=5_000_000_000,
            ),
        ]
        self.objects: Dict[str, LedgerObject] = {}

        self.calls: List[str] = []
        self.submitted: List[Dict[str, Any]] = []
        self.execution_complete = False
        self._responses: Dict[str, Dict[str, Any]] = {}
        self._events: Dict[str, asyncio.Event] = {}
        self._tasks: List[asyncio.Task] = []
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        await self.drain()
        self._connected = False

    async def get_chain_identifier(self) -> str:
        self.calls.append("get_chain_identifier")
        return "4c78adac"

    async def get_reference_gas_price(self) -> int:
        self.calls.append("get_reference_gas_price")
        return self.gas_price

    async def get_gas_coins(self, owner: str) -> List[GasCoinRef]:
        self.calls.append("get_gas_coins")
        return list(self.gas_coins)

    async def get_objects(self, object_ids: List[str]) -> Dict[str, LedgerObject]:
        self.calls.append("get_objects")
        return {i: self.objects[i] for i in object_ids if i in self.objects}

    async def submit_transaction_block(
        self,
        tx_bytes: str,
        signatures: List[str],
        options: ResponseOptions,
    ) -> Dict[str, Any]:
        self.calls.append("submit_transaction_block")
        if self.reject:
            raise SubmissionRejected(self.reject, error_code=-32002)

        digest = generate_digest(len(self.submitted) + 1)
        self.submitted.append({
            "tx_bytes": tx_bytes,
            "signatures": signatures,
            "options": options,
            "digest": digest,
        })
        self._events[digest] = asyncio.Event()
        self._tasks.append(asyncio.ensure_future(self._execute(digest)))
        return {"digest": digest}

    async def wait_for_transaction_block(
        self,
        digest: str,
        options: ResponseOptions,
        timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 1.0,
    ) -> Dict[str, Any]:
        self.calls.append("wait_for_transaction_block")
        try:
            await asyncio.wait_for(self._events[digest].wait(), timeout_seconds)
        except asyncio.TimeoutError:
            raise ConfirmationTimeout(
                f"Transaction {digest} not executed within {timeout_seconds}s",
                digest=digest,
            )
        return self._responses[digest]

    async def drain(self) -> None:
        """Wait for scheduled executions to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks)
            self._tasks = []

    async def _execute(self, digest: str) -> None:
        await asyncio.sleep(self.execution_delay)
        self._responses[digest] = self._response(digest)
        self.execution_complete = True
        self._events[digest].set()

    def _response(self, digest: str) -> Dict[str, Any]:
        gas_coin = self.gas_coins[0]
        object_changes = [
            {
                "type": "mutated",
                "sender": "0x" + "0" * 64,
                "objectId": gas_coin.object_id,
                "objectType": "0x2::coin::Coin<0x2::sui::SUI>",
                "version": str(gas_coin.version + 1),
                "previousVersion": str(gas_coin.version),
                "digest": generate_digest(91),
            },
        ]

        if self.abort_command is None:
            status = {"status": "success"}
            object_changes.append({
                "type": "created",
                "sender": "0x" + "0" * 64,
                "objectId": generate_object_id(777),
                "objectType": f"{DEMO_APP_PACKAGE_ID}::interact::Receipt",
                "version": str(gas_coin.version + 1),
                "digest": generate_digest(92),
            })
        else:
            status = {
                "status": "failure",
                "error": (
                    "MoveAbort(MoveLocation { module: ModuleId { address: "
                    f"{ORACLE_PACKAGE_ID[2:]}, name: Identifier(\"mystenlabs_oracle\") }}, "
                    "function: 0, instruction: 4, function_name: Some(\"authorize\") }, 1) "
                    f"in command {self.abort_command}"
                ),
            }

        return {
            "digest": digest,
            "effects": {
                "messageVersion": "v1",
                "status": status,
                "gasUsed": {
                    "computationCost": "1000000",
                    "storageCost": "2964000",
                    "storageRebate": "978120",
                    "nonRefundableStorageFee": "9880",
                },
            },
            "objectChanges": object_changes,
        }


@pytest.fixture
def mock_ledger() -> MockLedger:
    """Create a mock ledger that executes blocks successfully."""
    return MockLedger()
