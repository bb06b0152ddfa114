"""
Submission result model.

Interprets the ledger's response to an executed transaction block:
execution status, per-step effects and object changes.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from oracle_runner.core.block import TransactionStep

_COMMAND_INDEX_RE = re.compile(r"in command (\d+)")


class WaitLevel(str, Enum):
    """How long a submission waits before returning."""
    FIRE_AND_FORGET = "FireAndForget"
    WAIT_FOR_LOCAL_EXECUTION = "WaitForLocalExecution"


class ExecutionStatus(str, Enum):
    """Resolved state of a submitted block."""
    SUBMITTED = "submitted"    # Accepted by the node, execution not observed
    CONFIRMED = "confirmed"    # Executed successfully
    ABORTED = "aborted"        # Executed and aborted; nothing was applied


class StepOutcome(str, Enum):
    """What happened to an individual step."""
    EXECUTED = "executed"
    FAILED = "failed"          # The step that aborted the block
    REVERTED = "reverted"      # Ran before the failure, rolled back
    SKIPPED = "skipped"        # Never ran


@dataclass(frozen=True)
class ResponseOptions:
    """
    Which optional fields to populate on the returned result.

    Pure reporting toggles; they do not change what is executed.
    """
    show_object_changes: bool = False
    show_effects: bool = False

    def to_rpc(self) -> Dict[str, bool]:
        """Options sent to the node. Effects are always needed for the status."""
        return {
            "showInput": False,
            "showRawInput": False,
            "showEffects": True,
            "showEvents": False,
            "showObjectChanges": self.show_object_changes,
            "showBalanceChanges": False,
        }


@dataclass(frozen=True)
class StepEffect:
    """Effect of one step of the block."""
    index: int
    target: str
    outcome: StepOutcome

    @property
    def has_effect(self) -> bool:
        return self.outcome == StepOutcome.EXECUTED


@dataclass(frozen=True)
class ObjectChange:
    """An object created, mutated, deleted, ... by the block."""
    change_type: str
    object_id: Optional[str] = None
    object_type: Optional[str] = None
    version: Optional[str] = None
    digest: Optional[str] = None
    owner: Optional[Any] = None
    sender: Optional[str] = None

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> "ObjectChange":
        return cls(
            change_type=data.get("type", "unknown"),
            object_id=data.get("objectId") or data.get("packageId"),
            object_type=data.get("objectType"),
            version=str(data["version"]) if data.get("version") is not None else None,
            digest=data.get("digest"),
            owner=data.get("owner"),
            sender=data.get("sender"),
        )


@dataclass(frozen=True)
class SubmissionResult:
    """
    Outcome of a signed and submitted transaction block.

    Attributes:
        digest: Transaction digest assigned by the ledger
        status: Resolved execution status
        wait_level: Confirmation level the submission waited for
        error: Abort reason when status is ABORTED
        object_changes: Object changes, when requested
        effects: Per-step effects, when requested
        gas_used: Net gas charged, when reported
        raw: Unmodified ledger response
    """
    digest: str
    status: ExecutionStatus
    wait_level: WaitLevel
    error: Optional[str] = None
    object_changes: Optional[List[ObjectChange]] = None
    effects: Optional[List[StepEffect]] = None
    gas_used: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def is_confirmed(self) -> bool:
        return self.status == ExecutionStatus.CONFIRMED

    @property
    def is_aborted(self) -> bool:
        return self.status == ExecutionStatus.ABORTED

    @property
    def failed_step(self) -> Optional[int]:
        """Index of the step that aborted the block, if known."""
        if not self.is_aborted:
            return None
        return _failed_command(self.error)

    @classmethod
    def from_response(
        cls,
        response: Dict[str, Any],
        steps: Sequence[TransactionStep],
        options: ResponseOptions,
        wait_level: WaitLevel,
    ) -> "SubmissionResult":
        """
        Build a result from a ledger transaction response.

        Args:
            response: Ledger response (``digest``, ``effects``, ``objectChanges``)
            steps: Steps of the submitted block, in order
            options: Which optional fields to populate
            wait_level: Confirmation level used for the submission
        """
        effects_data = response.get("effects") or {}
        status_data = effects_data.get("status") or {}

        if not status_data:
            status = ExecutionStatus.SUBMITTED
            error = None
        elif status_data.get("status") == "success":
            status = ExecutionStatus.CONFIRMED
            error = None
        else:
            status = ExecutionStatus.ABORTED
            error = status_data.get("error") or "execution failed"

        object_changes = None
        if options.show_object_changes and "objectChanges" in response:
            object_changes = [
                ObjectChange.from_rpc(c) for c in response.get("objectChanges") or []
            ]

        effects = None
        if options.show_effects and status != ExecutionStatus.SUBMITTED:
            effects = _step_effects(steps, status, _failed_command(error))

        return cls(
            digest=response.get("digest", ""),
            status=status,
            wait_level=wait_level,
            error=error,
            object_changes=object_changes,
            effects=effects,
            gas_used=_net_gas(effects_data.get("gasUsed")),
            raw=response,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "digest": self.digest,
            "status": self.status.value,
            "wait_level": self.wait_level.value,
            "error": self.error,
            "gas_used": self.gas_used,
            "effects": [
                {"index": e.index, "target": e.target, "outcome": e.outcome.value}
                for e in self.effects
            ] if self.effects is not None else None,
            "object_changes": [
                {
                    "type": c.change_type,
                    "object_id": c.object_id,
                    "object_type": c.object_type,
                    "version": c.version,
                    "digest": c.digest,
                }
                for c in self.object_changes
            ] if self.object_changes is not None else None,
        }


def _failed_command(error: Optional[str]) -> Optional[int]:
    """Extract the failing command index from an abort message."""
    if not error:
        return None
    match = _COMMAND_INDEX_RE.search(error)
    return int(match.group(1)) if match else None


def _step_effects(
    steps: Sequence[TransactionStep],
    status: ExecutionStatus,
    failed_step: Optional[int],
) -> List[StepEffect]:
    """Attribute the block outcome to its steps."""
    effects = []
    for step in steps:
        if status == ExecutionStatus.CONFIRMED:
            outcome = StepOutcome.EXECUTED
        elif failed_step is None or step.index < failed_step:
            outcome = StepOutcome.REVERTED
        elif step.index == failed_step:
            outcome = StepOutcome.FAILED
        else:
            outcome = StepOutcome.SKIPPED
        effects.append(StepEffect(index=step.index, target=str(step.target), outcome=outcome))
    return effects


def _net_gas(gas_used: Optional[Dict[str, Any]]) -> Optional[int]:
    if not gas_used:
        return None
    try:
        return (
            int(gas_used.get("computationCost", 0))
            + int(gas_used.get("storageCost", 0))
            - int(gas_used.get("storageRebate", 0))
        )
    except (TypeError, ValueError):
        return None
