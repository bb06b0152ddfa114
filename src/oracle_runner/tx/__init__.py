"""
Transaction module.

Handles transaction serialization, signing, and submission.
"""

from oracle_runner.tx.builder import InsufficientGas, TransactionDataBuilder
from oracle_runner.tx.signer import Keypair, SigningFailure
from oracle_runner.tx.submitter import TransactionSubmitter, sign_and_submit

__all__ = [
    "InsufficientGas",
    "TransactionDataBuilder",
    "Keypair",
    "SigningFailure",
    "TransactionSubmitter",
    "sign_and_submit",
]
