"""
Core components of the Oracle Runner.
"""

from oracle_runner.core.block import (
    BlockReuseError,
    BuiltBlock,
    DanglingReference,
    InvalidArgument,
    InvalidBudget,
    InvalidTarget,
    TransactionBlock,
    TransactionBuildError,
    TransactionStep,
    StepResult,
)
from oracle_runner.core.result import (
    ExecutionStatus,
    ResponseOptions,
    StepOutcome,
    SubmissionResult,
    WaitLevel,
)

__all__ = [
    "BlockReuseError",
    "BuiltBlock",
    "DanglingReference",
    "InvalidArgument",
    "InvalidBudget",
    "InvalidTarget",
    "TransactionBlock",
    "TransactionBuildError",
    "TransactionStep",
    "StepResult",
    "ExecutionStatus",
    "ResponseOptions",
    "StepOutcome",
    "SubmissionResult",
    "WaitLevel",
]
