"""
Oracle interaction workflow.

Authorizes with the oracle and passes the authorization to the consumer
application in a single transaction block.
"""

from typing import Optional

import structlog

from oracle_runner.config import RunnerConfig
from oracle_runner.core.block import TransactionBlock
from oracle_runner.core.result import ResponseOptions, SubmissionResult
from oracle_runner.ledger.interface import LedgerInterface
from oracle_runner.ledger.jsonrpc import JsonRpcLedger
from oracle_runner.report import ResultReporter
from oracle_runner.tx.signer import Keypair
from oracle_runner.tx.submitter import TransactionSubmitter

logger = structlog.get_logger(__name__)


def build_authorize_and_interact_block(config: RunnerConfig) -> TransactionBlock:
    """
    Build the two-step block: ``authorize()`` then ``interact(authorization)``.

    Args:
        config: Runner configuration with the package ids and gas budget

    Returns:
        Unsubmitted transaction block
    """
    block = TransactionBlock()
    authorization = block.move_call(config.authorize_target)
    block.move_call(config.interact_target, [authorization])
    block.set_budget(config.gas_budget)
    return block


class OracleInteraction:
    """
    Runs the authorize-and-interact workflow against a ledger.

    Usage:
        ```python
        config = load_config()
        async with OracleInteraction(config) as interaction:
            result = await interaction.run()
        ```
    """

    def __init__(
        self,
        config: RunnerConfig,
        ledger: Optional[LedgerInterface] = None,
        keypair: Optional[Keypair] = None,
        reporter: Optional[ResultReporter] = None,
    ):
        """
        Initialize the workflow.

        Args:
            config: Runner configuration
            ledger: Custom ledger interface (JSON-RPC from config if not provided)
            keypair: Custom keypair (derived from the admin phrase if not provided)
            reporter: Custom result reporter
        """
        self.config = config
        self.ledger = ledger or JsonRpcLedger.from_config(config)
        self.keypair = keypair
        self.reporter = reporter or ResultReporter()
        self._initialized = False

    async def initialize(self) -> None:
        """Derive the signing key and connect to the ledger."""
        if self._initialized:
            return

        if self.keypair is None:
            self.keypair = Keypair.from_config(self.config)

        await self.ledger.connect()
        self._initialized = True
        logger.info("oracle_interaction_initialized", sender=self.keypair.address[:10] + "...")

    async def shutdown(self) -> None:
        """Disconnect from the ledger."""
        await self.ledger.disconnect()
        self._initialized = False

    async def __aenter__(self) -> "OracleInteraction":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    def build_block(self) -> TransactionBlock:
        return build_authorize_and_interact_block(self.config)

    async def run(self) -> SubmissionResult:
        """
        Build, sign and submit the block, then report the result.

        Returns:
            Submission result (aborted executions are returned, not raised)
        """
        if not self._initialized:
            await self.initialize()

        block = self.build_block()
        logger.info(
            "oracle_interaction_starting",
            authorize=self.config.authorize_target,
            interact=self.config.interact_target,
            budget=self.config.gas_budget,
        )

        submitter = TransactionSubmitter(
            self.ledger,
            confirmation_timeout_seconds=self.config.confirmation_timeout_seconds,
            poll_interval_seconds=self.config.poll_interval_seconds,
        )
        result = await submitter.sign_and_submit(
            block,
            self.keypair,
            wait_level=self.config.wait_level,
            options=ResponseOptions(
                show_object_changes=self.config.show_object_changes,
                show_effects=self.config.show_effects,
            ),
        )

        self.reporter.report(result)
        return result
