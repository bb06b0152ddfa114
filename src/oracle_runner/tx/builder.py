"""
Transaction Builder - serializes transaction blocks.

Resolves the on-chain inputs of a block (objects, gas coins, gas price)
and assembles the pysui BCS ``TransactionData`` ready to be signed.
"""

from typing import Dict, List

import structlog
from pysui.sui.sui_bcs import bcs

from oracle_runner.core.block import (
    BuiltBlock,
    GasCoin,
    ObjectInput,
    Pure,
    StepResult,
    TransactionBuildError,
    TransactionStep,
    normalize_address,
)
from oracle_runner.ledger.interface import GasCoinRef, LedgerInterface, LedgerObject

logger = structlog.get_logger(__name__)

MAX_GAS_OBJECTS = 256


class InsufficientGas(TransactionBuildError):
    """Raised when the sender's gas coins cannot cover the budget."""
    pass


def object_reference(object_id: str, version: int, digest: str) -> bcs.ObjectReference:
    """Reference to a specific version of an object."""
    try:
        return bcs.ObjectReference(
            bcs.Address.from_str(normalize_address(object_id)),
            version,
            bcs.Digest.from_str(digest),
        )
    except (TypeError, ValueError) as e:
        raise TransactionBuildError(f"Invalid reference to object {object_id}: {e}")


def move_call(step: TransactionStep, arguments: List[bcs.Argument]) -> bcs.Command:
    return bcs.Command(
        "MoveCall",
        bcs.ProgrammableMoveCall(
            bcs.Address.from_str(step.target.package),
            step.target.module,
            step.target.function,
            [],
            arguments,
        ),
    )


def transaction_data(
    inputs: List[bcs.CallArg],
    commands: List[bcs.Command],
    sender: str,
    gas: bcs.GasData,
) -> bcs.TransactionData:
    """
    Assemble ``TransactionData::V1`` for a programmable transaction.

    Args:
        inputs: Resolved call inputs, in input-index order
        commands: Commands, in execution order
        sender: Sender address
        gas: Gas payment, owner, price and budget
    """
    return bcs.TransactionData(
        "V1",
        bcs.TransactionDataV1(
            bcs.TransactionKind(
                "ProgrammableTransaction",
                bcs.ProgrammableTransaction(inputs, commands),
            ),
            bcs.Address.from_str(sender),
            gas,
            bcs.TransactionExpiration("None"),
        ),
    )


class TransactionDataBuilder:
    """
    Builds transaction data for a consumed block.

    Coordinates between the block, the ledger (for object references,
    gas price and gas coins) and the pysui BCS types.
    """

    def __init__(self, ledger: LedgerInterface):
        """
        Initialize the transaction builder.

        Args:
            ledger: Ledger interface used to resolve inputs and gas
        """
        self.ledger = ledger

    async def build(self, block: BuiltBlock, sender: str) -> bytes:
        """
        Build transaction data for a block.

        Args:
            block: Consumed block
            sender: Address of the signer, also paying for gas

        Returns:
            BCS-encoded transaction data

        Raises:
            TransactionBuildError: If an input cannot be resolved or gas
                cannot be paid
        """
        try:
            sender = normalize_address(sender)
        except ValueError as e:
            raise TransactionBuildError(f"Invalid sender address: {e}")

        objects = await self._resolve_objects(block)

        inputs: List[bcs.CallArg] = []
        object_inputs: Dict[str, int] = {}
        commands = []

        for step in block.steps:
            arguments = []
            for arg in step.arguments:
                if isinstance(arg, StepResult):
                    if arg.result_index is None:
                        arguments.append(bcs.Argument("Result", arg.index))
                    else:
                        arguments.append(bcs.Argument("NestedResult", (arg.index, arg.result_index)))
                elif isinstance(arg, GasCoin):
                    arguments.append(bcs.Argument("GasCoin"))
                elif isinstance(arg, ObjectInput):
                    if arg.object_id not in object_inputs:
                        object_inputs[arg.object_id] = len(inputs)
                        inputs.append(bcs.CallArg("Object", objects[arg.object_id]))
                    arguments.append(bcs.Argument("Input", object_inputs[arg.object_id]))
                elif isinstance(arg, Pure):
                    arguments.append(bcs.Argument("Input", len(inputs)))
                    inputs.append(bcs.CallArg("Pure", list(arg.data)))
                else:
                    raise TransactionBuildError(f"Unsupported argument: {arg!r}")
            commands.append(move_call(step, arguments))

        gas = await self._select_gas(sender, block.budget, set(object_inputs))

        tx_bytes = transaction_data(inputs, commands, sender, gas).serialize()

        logger.info(
            "transaction_data_built",
            block_id=block.block_id[:8] + "...",
            steps=block.size,
            inputs=len(inputs),
            gas_coins=len(gas.Payment),
            gas_price=gas.Price,
            budget=gas.Budget,
            size=len(tx_bytes),
        )
        return tx_bytes

    async def _resolve_objects(self, block: BuiltBlock) -> Dict[str, bcs.ObjectArg]:
        """Look up every object input and decide how it is passed."""
        mutable: Dict[str, bool] = {}
        for step in block.steps:
            for arg in step.arguments:
                if isinstance(arg, ObjectInput):
                    mutable[arg.object_id] = mutable.get(arg.object_id, False) or arg.mutable

        if not mutable:
            return {}

        found = await self.ledger.get_objects(list(mutable))

        resolved: Dict[str, bcs.ObjectArg] = {}
        for object_id, is_mutable in mutable.items():
            obj = found.get(object_id)
            if obj is None:
                raise TransactionBuildError(f"Object not found: {object_id}")
            resolved[object_id] = self._object_arg(obj, is_mutable)
        return resolved

    def _object_arg(self, obj: LedgerObject, mutable: bool) -> bcs.ObjectArg:
        if obj.is_shared:
            return bcs.ObjectArg(
                "SharedObject",
                bcs.SharedObjectReference(
                    bcs.Address.from_str(normalize_address(obj.object_id)),
                    obj.initial_shared_version,
                    mutable,
                ),
            )
        return bcs.ObjectArg(
            "ImmOrOwnedObject",
            object_reference(obj.object_id, obj.version, obj.digest),
        )

    async def _select_gas(self, sender: str, budget: int, excluded: set) -> bcs.GasData:
        """Pick gas coins until their balance covers the budget."""
        price = await self.ledger.get_reference_gas_price()
        coins: List[GasCoinRef] = await self.ledger.get_gas_coins(sender)

        payment = []
        total = 0
        for coin in sorted(coins, key=lambda c: c.balance, reverse=True):
            if normalize_address(coin.object_id) in excluded:
                continue
            payment.append(object_reference(coin.object_id, coin.version, coin.digest))
            total += coin.balance
            if total >= budget or len(payment) >= MAX_GAS_OBJECTS:
                break

        if not payment or total < budget:
            raise InsufficientGas(
                f"Gas coins of {sender[:10]}... hold {total}, budget is {budget}"
            )

        return bcs.GasData(payment, bcs.Address.from_str(sender), price, budget)
