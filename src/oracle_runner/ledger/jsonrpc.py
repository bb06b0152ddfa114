"""
JSON-RPC adapter for ledger integration.

Provides ledger access via a Sui full node's JSON-RPC API.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import httpx
import structlog

from oracle_runner.config import RunnerConfig
from oracle_runner.core.block import normalize_address
from oracle_runner.core.result import ResponseOptions
from oracle_runner.ledger.interface import (
    ConfirmationTimeout,
    GasCoinRef,
    LedgerConnectionError,
    LedgerInterface,
    LedgerObject,
    LedgerRequestError,
    SubmissionRejected,
)

logger = structlog.get_logger(__name__)

SUI_COIN_TYPE = "0x2::sui::SUI"
COIN_PAGE_SIZE = 50


class JsonRpcLedger(LedgerInterface):
    """
    Full node JSON-RPC adapter.

    Implements the LedgerInterface on top of the ``sui_`` / ``suix_``
    JSON-RPC methods.
    """

    def __init__(
        self,
        url: str,
        request_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            url: Full node JSON-RPC URL
            request_timeout: Timeout for a single request in seconds
            transport: Custom httpx transport (used by tests)
        """
        self.url = url
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)
        self.chain_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "JsonRpcLedger":
        return cls(config.fullnode, request_timeout=config.request_timeout_seconds)

    @property
    def headers(self) -> dict:
        return {"Content-Type": "application/json"}

    async def connect(self) -> None:
        """Establish connection (create HTTP client) and check the node answers."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            headers=self.headers,
            timeout=self.request_timeout,
            transport=self._transport,
        )

        try:
            self.chain_id = await self.get_chain_identifier()
        except LedgerConnectionError:
            await self.disconnect()
            raise

        logger.info("ledger_connected", url=self.url, chain_id=self.chain_id)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("ledger_disconnected")

    async def _request(self, method: str, params: List[Any]) -> Any:
        """Make a JSON-RPC call and return its result."""
        if not self._client:
            await self.connect()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.RequestError as e:
            logger.error("rpc_request_error", method=method, error=str(e))
            raise LedgerConnectionError(f"JSON-RPC request failed: {e}")

        if response.status_code != 200:
            logger.error(
                "rpc_request_failed",
                method=method,
                status=response.status_code,
                error=response.text,
            )
            raise LedgerConnectionError(
                f"JSON-RPC HTTP error {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError:
            raise LedgerConnectionError(f"Invalid JSON-RPC response for {method}")

        if body.get("error"):
            error = body["error"]
            raise LedgerRequestError(
                error.get("message", "unknown error"),
                error_code=error.get("code"),
            )

        return body.get("result")

    async def get_chain_identifier(self) -> str:
        return await self._request("sui_getChainIdentifier", [])

    async def get_reference_gas_price(self) -> int:
        return int(await self._request("suix_getReferenceGasPrice", []))

    async def get_gas_coins(self, owner: str) -> List[GasCoinRef]:
        """Get all SUI coins of an owner, following pagination."""
        coins = []
        cursor = None

        while True:
            data = await self._request(
                "suix_getCoins",
                [owner, SUI_COIN_TYPE, cursor, COIN_PAGE_SIZE],
            )

            for item in data.get("data", []):
                coins.append(GasCoinRef(
                    object_id=item["coinObjectId"],
                    version=int(item["version"]),
                    digest=item["digest"],
                    balance=int(item["balance"]),
                ))

            if not data.get("hasNextPage"):
                break
            cursor = data.get("nextCursor")

        logger.debug("gas_coins_fetched", owner=owner[:10] + "...", count=len(coins))
        return coins

    async def get_objects(self, object_ids: List[str]) -> Dict[str, LedgerObject]:
        """Resolve object references and ownership."""
        if not object_ids:
            return {}

        data = await self._request(
            "sui_multiGetObjects",
            [object_ids, {"showOwner": True}],
        )

        objects = {}
        for item in data or []:
            obj = item.get("data")
            if not obj:
                logger.warning("object_not_found", error=item.get("error"))
                continue
            parsed = self._parse_object(obj)
            objects[parsed.object_id] = parsed

        return objects

    def _parse_object(self, data: dict) -> LedgerObject:
        owner = data.get("owner")
        initial_shared_version = None

        if isinstance(owner, dict):
            owner_kind = next(iter(owner), "Unknown")
            if owner_kind == "Shared":
                initial_shared_version = int(owner["Shared"]["initial_shared_version"])
        else:
            owner_kind = str(owner)

        return LedgerObject(
            object_id=normalize_address(data["objectId"]),
            version=int(data["version"]),
            digest=data["digest"],
            owner_kind=owner_kind,
            initial_shared_version=initial_shared_version,
        )

    async def submit_transaction_block(
        self,
        tx_bytes: str,
        signatures: List[str],
        options: ResponseOptions,
    ) -> Dict[str, Any]:
        """Submit a signed block and return once the node has certified it."""
        try:
            result = await self._request(
                "sui_executeTransactionBlock",
                [tx_bytes, signatures, options.to_rpc(), "WaitForEffectsCert"],
            )
        except LedgerRequestError as e:
            logger.error("tx_submit_rejected", error=str(e), code=e.error_code)
            raise SubmissionRejected(f"Transaction rejected: {e}", error_code=e.error_code)

        logger.info("tx_submitted", digest=result.get("digest"))
        return result

    async def wait_for_transaction_block(
        self,
        digest: str,
        options: ResponseOptions,
        timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 1.0,
    ) -> Dict[str, Any]:
        """Poll the node until it reports the transaction as executed."""
        loop = asyncio.get_running_loop()
        start_time = loop.time()

        while True:
            try:
                result = await self._request(
                    "sui_getTransactionBlock",
                    [digest, options.to_rpc()],
                )
                if result and result.get("effects"):
                    logger.info("tx_executed", digest=digest)
                    return result
            except LedgerRequestError as e:
                # The node answers "not found" until it has executed the block
                logger.debug("tx_not_yet_available", digest=digest, error=str(e))

            if loop.time() - start_time > timeout_seconds:
                logger.warning("tx_execution_timeout", digest=digest)
                raise ConfirmationTimeout(
                    f"Transaction {digest} not executed within {timeout_seconds}s",
                    digest=digest,
                )

            await asyncio.sleep(poll_interval_seconds)
