"""
Ledger Integration Layer.

Provides abstracted access to a ledger full node for object resolution,
gas selection, transaction submission and execution tracking.
"""

from oracle_runner.ledger.interface import (
    ConfirmationTimeout,
    LedgerConnectionError,
    LedgerInterface,
    LedgerRequestError,
    SubmissionRejected,
)
from oracle_runner.ledger.jsonrpc import JsonRpcLedger

__all__ = [
    "ConfirmationTimeout",
    "LedgerConnectionError",
    "LedgerInterface",
    "LedgerRequestError",
    "SubmissionRejected",
    "JsonRpcLedger",
]
