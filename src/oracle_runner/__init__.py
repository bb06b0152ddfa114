"""
Oracle Runner

Authorizes with an on-chain oracle and hands the authorization to a
consumer application, both calls composed into one atomic transaction
block signed by the administrative key.
"""

__version__ = "0.1.0"

from oracle_runner.core.block import TransactionBlock
from oracle_runner.core.result import ExecutionStatus, ResponseOptions, SubmissionResult, WaitLevel
from oracle_runner.tx.submitter import sign_and_submit
from oracle_runner.workflow import OracleInteraction, build_authorize_and_interact_block

__all__ = [
    "TransactionBlock",
    "ExecutionStatus",
    "ResponseOptions",
    "SubmissionResult",
    "WaitLevel",
    "sign_and_submit",
    "OracleInteraction",
    "build_authorize_and_interact_block",
]
