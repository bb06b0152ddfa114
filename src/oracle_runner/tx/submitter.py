"""
Transaction Submitter - signs, submits and resolves transaction blocks.

A submission moves through BUILT -> SIGNED -> SUBMITTED -> CONFIRMED or
ABORTED. Only the final result is returned to the caller.
"""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import structlog

from oracle_runner.core.block import TransactionBlock
from oracle_runner.core.result import (
    ExecutionStatus,
    ResponseOptions,
    SubmissionResult,
    WaitLevel,
)
from oracle_runner.ledger.interface import LedgerInterface, SubmissionRejected
from oracle_runner.tx.builder import TransactionDataBuilder
from oracle_runner.tx.signer import Keypair

logger = structlog.get_logger(__name__)


class SubmissionState(str, Enum):
    """Lifecycle of a submission."""
    BUILT = "built"            # Transaction data serialized
    SIGNED = "signed"          # Signature attached
    SUBMITTED = "submitted"    # Accepted by the node
    CONFIRMED = "confirmed"    # Executed successfully
    ABORTED = "aborted"        # Executed and aborted


_TRANSITIONS = {
    SubmissionState.BUILT: {SubmissionState.SIGNED},
    SubmissionState.SIGNED: {SubmissionState.SUBMITTED},
    SubmissionState.SUBMITTED: {SubmissionState.CONFIRMED, SubmissionState.ABORTED},
    SubmissionState.CONFIRMED: set(),
    SubmissionState.ABORTED: set(),
}


class InvalidTransition(RuntimeError):
    """Raised when a submission skips or repeats a lifecycle state."""
    pass


@dataclass
class Submission:
    """
    Tracks one block through signing, submission and execution.

    Attributes:
        block_id: Identifier of the submitted block
        state: Current lifecycle state
        digest: Transaction digest, known once submitted
        error: Abort reason, if execution aborted
    """

    block_id: str
    state: SubmissionState = SubmissionState.BUILT
    digest: Optional[str] = None
    error: Optional[str] = None

    created_at: datetime = field(default_factory=datetime.utcnow)
    signed_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    def _transition(self, state: SubmissionState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Cannot move submission from {self.state.value} to {state.value}"
            )
        logger.debug(
            "submission_transition",
            block_id=self.block_id[:8] + "...",
            previous=self.state.value,
            state=state.value,
        )
        self.state = state

    def mark_signed(self) -> None:
        self._transition(SubmissionState.SIGNED)
        self.signed_at = datetime.utcnow()

    def mark_submitted(self, digest: str) -> None:
        self._transition(SubmissionState.SUBMITTED)
        self.digest = digest
        self.submitted_at = datetime.utcnow()

    def mark_confirmed(self) -> None:
        self._transition(SubmissionState.CONFIRMED)
        self.resolved_at = datetime.utcnow()

    def mark_aborted(self, error: str) -> None:
        self._transition(SubmissionState.ABORTED)
        self.error = error
        self.resolved_at = datetime.utcnow()

    @property
    def is_resolved(self) -> bool:
        return self.state in (SubmissionState.CONFIRMED, SubmissionState.ABORTED)


class TransactionSubmitter:
    """
    Signs and submits transaction blocks.

    Coordinates between the transaction data builder, the keypair and the
    ledger to turn a block into a SubmissionResult.
    """

    def __init__(
        self,
        ledger: LedgerInterface,
        confirmation_timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 1.0,
    ):
        """
        Initialize the submitter.

        Args:
            ledger: Ledger used to resolve inputs and submit
            confirmation_timeout_seconds: Maximum wait for local execution
            poll_interval_seconds: Delay between execution status checks
        """
        self.ledger = ledger
        self.confirmation_timeout_seconds = confirmation_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._data_builder = TransactionDataBuilder(ledger)

    async def sign_and_submit(
        self,
        block: TransactionBlock,
        keypair: Keypair,
        wait_level: WaitLevel = WaitLevel.WAIT_FOR_LOCAL_EXECUTION,
        options: Optional[ResponseOptions] = None,
    ) -> SubmissionResult:
        """
        Sign a block with the keypair, submit it and resolve the outcome.

        The block is consumed and cannot be submitted again.

        Args:
            block: Block to submit
            keypair: Signing keypair, also the sender and gas owner
            wait_level: Whether to wait for local execution
            options: Optional result fields to populate

        Returns:
            Submission result; an aborted execution is reported in-band

        Raises:
            InvalidBudget: If the block has no budget (no ledger call is made)
            BlockReuseError: If the block was already submitted
            TransactionBuildError: If inputs or gas cannot be resolved
            SigningFailure: If the block cannot be signed
            SubmissionRejected: If the node rejects the block
        """
        options = options or ResponseOptions()
        built = block.consume()
        submission = Submission(block_id=built.block_id)

        logger.info(
            "submitting_transaction_block",
            block_id=built.block_id[:8] + "...",
            steps=built.size,
            budget=built.budget,
            wait_level=wait_level.value,
        )

        tx_bytes = await self._data_builder.build(built, keypair.address)

        signature = keypair.sign_transaction(tx_bytes)
        submission.mark_signed()

        response = await self.ledger.submit_transaction_block(
            base64.b64encode(tx_bytes).decode("ascii"),
            [signature],
            options,
        )
        digest = response.get("digest")
        if not digest:
            raise SubmissionRejected("Node accepted the block but returned no digest")
        submission.mark_submitted(digest)

        if wait_level == WaitLevel.WAIT_FOR_LOCAL_EXECUTION:
            response = await self.ledger.wait_for_transaction_block(
                submission.digest,
                options,
                timeout_seconds=self.confirmation_timeout_seconds,
                poll_interval_seconds=self.poll_interval_seconds,
            )

        result = SubmissionResult.from_response(response, built.steps, options, wait_level)

        if result.status == ExecutionStatus.CONFIRMED:
            submission.mark_confirmed()
        elif result.status == ExecutionStatus.ABORTED:
            submission.mark_aborted(result.error)

        logger.info(
            "transaction_block_resolved",
            block_id=built.block_id[:8] + "...",
            digest=submission.digest,
            state=submission.state.value,
        )
        return result


async def sign_and_submit(
    block: TransactionBlock,
    keypair: Keypair,
    ledger: LedgerInterface,
    wait_level: WaitLevel = WaitLevel.WAIT_FOR_LOCAL_EXECUTION,
    options: Optional[ResponseOptions] = None,
    **submitter_options,
) -> SubmissionResult:
    """
    Sign and submit a block with a one-off submitter.

    See TransactionSubmitter.sign_and_submit.
    """
    submitter = TransactionSubmitter(ledger, **submitter_options)
    return await submitter.sign_and_submit(block, keypair, wait_level, options)
