"""
Abstract interface for ledger node integration.

Defines the contract for ledger access that all node adapters must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from oracle_runner.core.result import ResponseOptions


@dataclass
class GasCoinRef:
    """A gas coin owned by the sender."""
    object_id: str
    version: int
    digest: str
    balance: int


@dataclass
class LedgerObject:
    """Current reference and ownership of an on-chain object."""
    object_id: str
    version: int
    digest: str
    owner_kind: str                               # AddressOwner, ObjectOwner, Shared, Immutable
    initial_shared_version: Optional[int] = None  # Set for shared objects

    @property
    def is_shared(self) -> bool:
        return self.owner_kind == "Shared"


class LedgerInterface(ABC):
    """
    Abstract interface for ledger node access.

    This interface defines the operations needed to submit a block:
    - Gas price and gas coin queries
    - Object resolution for call inputs
    - Transaction submission
    - Waiting for execution
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the node.

        Raises:
            LedgerConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def get_chain_identifier(self) -> str:
        """Get the identifier of the chain the node follows."""
        pass

    @abstractmethod
    async def get_reference_gas_price(self) -> int:
        """Get the reference gas price for the current epoch."""
        pass

    @abstractmethod
    async def get_gas_coins(self, owner: str) -> List[GasCoinRef]:
        """
        Get all gas coins owned by an address.

        Args:
            owner: Owner address

        Returns:
            Gas coins of the owner
        """
        pass

    @abstractmethod
    async def get_objects(self, object_ids: List[str]) -> Dict[str, LedgerObject]:
        """
        Resolve objects by id.

        Args:
            object_ids: Normalized object ids

        Returns:
            Mapping of object id to its current reference; missing
            objects are absent from the mapping
        """
        pass

    @abstractmethod
    async def submit_transaction_block(
        self,
        tx_bytes: str,
        signatures: List[str],
        options: ResponseOptions,
    ) -> Dict[str, Any]:
        """
        Submit a signed transaction block.

        Returns as soon as the node has accepted the block.

        Args:
            tx_bytes: Base64 BCS-encoded transaction data
            signatures: Base64 serialized signatures
            options: Response options

        Returns:
            Node response, containing at least ``digest``

        Raises:
            SubmissionRejected: If the node rejects the block
        """
        pass

    @abstractmethod
    async def wait_for_transaction_block(
        self,
        digest: str,
        options: ResponseOptions,
        timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 1.0,
    ) -> Dict[str, Any]:
        """
        Wait until the node has executed a transaction.

        Args:
            digest: Transaction digest
            options: Response options
            timeout_seconds: Maximum time to wait
            poll_interval_seconds: Delay between status checks

        Returns:
            Transaction response with execution effects

        Raises:
            ConfirmationTimeout: If execution is not observed in time
        """
        pass


class LedgerConnectionError(Exception):
    """Raised when communication with the node fails."""
    pass


class LedgerRequestError(LedgerConnectionError):
    """Raised when the node answers a request with a JSON-RPC error."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code


class ConfirmationTimeout(LedgerConnectionError):
    """Raised when execution of a submitted block is not observed in time."""

    def __init__(self, message: str, digest: str):
        super().__init__(message)
        self.digest = digest


class SubmissionRejected(Exception):
    """Raised when the node rejects a block before executing it."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code
