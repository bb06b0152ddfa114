"""
Transaction block model.

A transaction block is an ordered list of Move calls executed atomically,
plus a gas budget. Steps can consume the results of earlier steps through
the handle returned when a step is added.
"""

import re
import uuid
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

import structlog
from canoser import ArrayT, BoolT, StrT, Uint8
from pysui.sui.sui_bcs import bcs

logger = structlog.get_logger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ADDRESS_HEX_LENGTH = 64

# Canoser types of the literal Move values a block can carry
_PURE_ENCODERS = {
    "u8": bcs.U8,
    "u16": bcs.U16,
    "u32": bcs.U32,
    "u64": bcs.U64,
    "u128": bcs.U128,
    "u256": bcs.U256,
    "bool": BoolT,
    "string": StrT,
    "vector<u8>": ArrayT(Uint8),
}

PURE_TYPES = frozenset(list(_PURE_ENCODERS) + ["address"])


def normalize_address(value: str) -> str:
    """
    Normalize a hex address or object id to ``0x`` + 64 lowercase hex chars.

    Short forms such as ``0x2`` are left-padded with zeros.

    Raises:
        ValueError: If the value is not a hex address of at most 32 bytes
    """
    if not isinstance(value, str):
        raise ValueError(f"expected hex string address, got {type(value).__name__}")
    raw = value.strip().lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    if not raw or len(raw) > ADDRESS_HEX_LENGTH:
        raise ValueError(f"invalid address length: {value!r}")
    try:
        return bcs.Address.from_str("0x" + raw.rjust(ADDRESS_HEX_LENGTH, "0")).to_address_str()
    except (TypeError, ValueError):
        raise ValueError(f"invalid hex address: {value!r}")


def encode_pure(value: Any, type_name: str) -> bytes:
    """
    BCS-encode a literal Move value.

    Raises:
        TypeError: If the value does not fit the type
        ValueError: If an address literal is malformed
    """
    if type_name == "address":
        return bcs.Address.from_str(normalize_address(value)).serialize()

    encoder = _PURE_ENCODERS[type_name]
    if type_name == "vector<u8>":
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"expected bytes, got {type(value).__name__}")
        value = list(value)
    encoder.check_value(value)
    return encoder.encode(value)


class TransactionBuildError(Exception):
    """Raised when a transaction block cannot be constructed."""
    pass


class InvalidTarget(TransactionBuildError):
    """Raised for a call target that is not ``package::module::function``."""
    pass


class InvalidArgument(TransactionBuildError):
    """Raised for an argument that cannot be passed to a Move call."""
    pass


class DanglingReference(TransactionBuildError):
    """Raised when a step references a result that is not in the block yet."""
    pass


class InvalidBudget(TransactionBuildError):
    """Raised when the gas budget is missing or not a positive integer."""
    pass


class BlockReuseError(TransactionBuildError):
    """Raised when a block is used after it has been handed to the submitter."""
    pass


@dataclass(frozen=True)
class MoveTarget:
    """Fully qualified Move function: ``package::module::function``."""
    package: str
    module: str
    function: str

    @classmethod
    def parse(cls, target: str) -> "MoveTarget":
        """
        Parse and validate a call target.

        Raises:
            InvalidTarget: If the target is not three non-empty components
        """
        if not isinstance(target, str):
            raise InvalidTarget(f"Target must be a string, got {type(target).__name__}")

        parts = target.split("::")
        if len(parts) != 3 or not all(parts):
            raise InvalidTarget(f"Target must be 'package::module::function': {target!r}")

        package, module, function = parts
        try:
            package = normalize_address(package)
        except ValueError as e:
            raise InvalidTarget(f"Invalid package id in target {target!r}: {e}")

        for name in (module, function):
            if not _IDENTIFIER_RE.match(name):
                raise InvalidTarget(f"Invalid Move identifier {name!r} in target {target!r}")

        return cls(package=package, module=module, function=function)

    def __str__(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"


@dataclass(frozen=True)
class Pure:
    """A literal argument, BCS-encoded at construction time."""
    value: Any
    type: str
    data: bytes = b""

    def __post_init__(self):
        if self.type not in PURE_TYPES:
            raise InvalidArgument(f"Unsupported pure type: {self.type}")
        try:
            encoded = encode_pure(self.value, self.type)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(f"Cannot encode {self.value!r} as {self.type}: {e}")
        object.__setattr__(self, "data", encoded)

    @classmethod
    def infer(cls, value: Any) -> "Pure":
        """Wrap a plain Python literal using its natural Move type."""
        if isinstance(value, bool):
            return cls(value, "bool")
        if isinstance(value, int):
            return cls(value, "u64")
        if isinstance(value, str):
            return cls(value, "string")
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value), "vector<u8>")
        raise InvalidArgument(f"Cannot infer a Move type for {type(value).__name__}")


@dataclass(frozen=True)
class ObjectInput:
    """An on-chain object passed by id; resolved when the block is serialized."""
    object_id: str
    mutable: bool = True

    def __post_init__(self):
        try:
            normalized = normalize_address(self.object_id)
        except ValueError as e:
            raise InvalidArgument(f"Invalid object id: {e}")
        object.__setattr__(self, "object_id", normalized)


@dataclass(frozen=True)
class GasCoin:
    """The coin paying for gas, usable as a call argument."""
    pass


GAS_COIN = GasCoin()


@dataclass(frozen=True)
class StepResult:
    """
    Handle to the output of a step in a specific block.

    ``result[i]`` addresses the i-th value of a step returning a tuple.
    """
    block_id: str
    index: int
    result_index: Optional[int] = None

    def __getitem__(self, result_index: int) -> "StepResult":
        if self.result_index is not None:
            raise InvalidArgument("Cannot index a nested step result")
        if isinstance(result_index, bool) or not isinstance(result_index, int) or result_index < 0:
            raise InvalidArgument(f"Result index must be a non-negative int: {result_index!r}")
        return StepResult(self.block_id, self.index, result_index)


Argument = Union[Pure, ObjectInput, GasCoin, StepResult]


@dataclass(frozen=True)
class TransactionStep:
    """One Move call within a block."""
    index: int
    target: MoveTarget
    arguments: Tuple[Argument, ...] = ()

    @property
    def dependencies(self) -> Tuple[int, ...]:
        """Indices of the earlier steps whose results this step consumes."""
        return tuple(sorted({a.index for a in self.arguments if isinstance(a, StepResult)}))


@dataclass(frozen=True)
class BuiltBlock:
    """Immutable snapshot of a block, produced when ownership is transferred."""
    block_id: str
    steps: Tuple[TransactionStep, ...]
    budget: int

    @property
    def size(self) -> int:
        return len(self.steps)


class TransactionBlock:
    """
    Accumulates Move calls and a gas budget for atomic submission.

    Usage:
        ```python
        block = TransactionBlock()
        authorization = block.add_step(f"{oracle}::mystenlabs_oracle::authorize")
        block.add_step(f"{app}::interact::interact", [authorization])
        block.set_budget(10_000_000)
        ```
    """

    def __init__(self):
        self.block_id = str(uuid.uuid4())
        self._steps: List[TransactionStep] = []
        self._budget: Optional[int] = None
        self._consumed = False

    def add_step(
        self,
        target: str,
        args: Optional[Sequence[Any]] = None,
    ) -> StepResult:
        """
        Append a Move call.

        Args:
            target: ``package::module::function``
            args: Literals, object inputs, the gas coin, or results of
                earlier steps of this block

        Returns:
            Handle to this step's output

        Raises:
            InvalidTarget: If the target is malformed
            DanglingReference: If an argument references a step not yet added
            InvalidArgument: If a literal cannot be encoded
        """
        self._ensure_open()
        move_target = MoveTarget.parse(target)
        arguments = tuple(
            self._coerce_argument(arg, position)
            for position, arg in enumerate(args or [])
        )

        step = TransactionStep(
            index=len(self._steps),
            target=move_target,
            arguments=arguments,
        )
        self._steps.append(step)

        logger.debug(
            "step_added",
            block_id=self.block_id[:8] + "...",
            index=step.index,
            target=f"{move_target.module}::{move_target.function}",
            dependencies=list(step.dependencies),
        )
        return StepResult(self.block_id, step.index)

    def move_call(
        self,
        target: str,
        arguments: Optional[Sequence[Any]] = None,
    ) -> StepResult:
        """Alias of add_step using the ledger SDK's naming."""
        return self.add_step(target, arguments)

    def set_budget(self, budget: int) -> None:
        """
        Set the gas budget. A later call replaces the earlier value.

        Raises:
            InvalidBudget: If budget is not a positive integer
        """
        self._ensure_open()
        if isinstance(budget, bool) or not isinstance(budget, int) or budget <= 0:
            raise InvalidBudget(f"Gas budget must be a positive integer, got {budget!r}")
        if budget >= 1 << 64:
            raise InvalidBudget(f"Gas budget exceeds u64: {budget}")
        self._budget = budget

    def pure(self, value: Any, type: Optional[str] = None) -> Pure:
        """Create a literal argument, inferring the Move type when omitted."""
        if type is None:
            return Pure.infer(value)
        return Pure(value, type)

    def object(self, object_id: str, mutable: bool = True) -> ObjectInput:
        """Create an object argument."""
        return ObjectInput(object_id, mutable)

    @property
    def gas(self) -> GasCoin:
        return GAS_COIN

    @property
    def steps(self) -> Tuple[TransactionStep, ...]:
        return tuple(self._steps)

    @property
    def budget(self) -> Optional[int]:
        return self._budget

    @property
    def size(self) -> int:
        return len(self._steps)

    @property
    def is_consumed(self) -> bool:
        return self._consumed

    def consume(self) -> BuiltBlock:
        """
        Transfer ownership of the block contents.

        The block cannot be modified or consumed again afterwards. A block
        without a budget is rejected and stays usable.

        Raises:
            BlockReuseError: If the block was already consumed
            InvalidBudget: If no budget was set
            TransactionBuildError: If the block has no steps
        """
        self._ensure_open()
        if self._budget is None:
            raise InvalidBudget("Gas budget not set")
        if not self._steps:
            raise TransactionBuildError("Cannot submit an empty transaction block")

        self._consumed = True
        return BuiltBlock(
            block_id=self.block_id,
            steps=tuple(self._steps),
            budget=self._budget,
        )

    def _ensure_open(self) -> None:
        if self._consumed:
            raise BlockReuseError(
                f"Transaction block {self.block_id[:8]}... was already submitted"
            )

    def _coerce_argument(self, arg: Any, position: int) -> Argument:
        """Validate an argument and wrap plain literals."""
        if isinstance(arg, StepResult):
            if arg.block_id != self.block_id:
                raise DanglingReference(
                    f"Argument {position} references a step of another block"
                )
            if arg.index < 0 or arg.index >= len(self._steps):
                raise DanglingReference(
                    f"Argument {position} references step {arg.index}, "
                    f"but only {len(self._steps)} step(s) have been added"
                )
            return arg

        if isinstance(arg, (Pure, ObjectInput, GasCoin)):
            return arg

        return Pure.infer(arg)

    def __repr__(self) -> str:
        return (
            f"TransactionBlock(id={self.block_id[:8]}..., steps={len(self._steps)}, "
            f"budget={self._budget}, consumed={self._consumed})"
        )
