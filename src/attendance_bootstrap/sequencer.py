"""Strictly sequential, confirmation-gated contract writes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from hexbytes import HexBytes
from web3.contract import Contract

from .client import ChainGateway, Operator, receipt_succeeded
from .errors import RevertError

LOGGER = logging.getLogger(__name__)


class OperationState(str, Enum):
    SUBMITTED = "submitted"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED_SUCCESS = "confirmed_success"
    CONFIRMED_FAILURE = "confirmed_failure"
    REJECTED = "rejected"


_TRANSITIONS: Dict[OperationState, Tuple[OperationState, ...]] = {
    OperationState.SUBMITTED: (OperationState.AWAITING_CONFIRMATION,),
    OperationState.AWAITING_CONFIRMATION: (
        OperationState.CONFIRMED_SUCCESS,
        OperationState.CONFIRMED_FAILURE,
    ),
    OperationState.CONFIRMED_SUCCESS: (),
    OperationState.CONFIRMED_FAILURE: (),
    OperationState.REJECTED: (),
}


@dataclass(frozen=True, slots=True)
class Operation:
    label: str
    method: str
    args: Tuple[Any, ...]
    operator: Operator
    gas: Optional[int] = None


@dataclass(slots=True)
class OperationOutcome:
    operation: Operation
    tx_hash: Optional[HexBytes]
    state: OperationState = OperationState.SUBMITTED
    receipt: Optional[Mapping[str, Any]] = None
    error: Optional[str] = None
    history: List[OperationState] = field(default_factory=lambda: [OperationState.SUBMITTED])

    def advance(self, target: OperationState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"{self.operation.label}: illegal transition {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)

    @property
    def succeeded(self) -> bool:
        return self.state is OperationState.CONFIRMED_SUCCESS

    @property
    def final(self) -> bool:
        return not _TRANSITIONS[self.state]

    def as_dict(self) -> Dict[str, Any]:
        receipt = self.receipt or {}
        return {
            "label": self.operation.label,
            "method": self.operation.method,
            "tx_hash": self.tx_hash.to_0x_hex() if self.tx_hash is not None else None,
            "state": self.state.value,
            "block_number": receipt.get("blockNumber"),
            "gas_used": receipt.get("gasUsed"),
            "error": self.error,
        }


OutcomeCallback = Callable[[OperationOutcome], None]


class TransactionSequencer:
    """Run operations one at a time: submit, wait for the receipt, inspect it.

    A failed receipt is reported and the next operation still runs. So is a
    contract rejection caught while estimating gas (``RevertError``): no
    transaction exists, and the outcome is recorded as ``REJECTED``. Any other
    ``SubmissionError`` (encoding, funds, node refusal) propagates and stops
    the sequence. Nothing is retried.
    """

    def __init__(self, gateway: ChainGateway, contract: Contract, *, on_outcome: Optional[OutcomeCallback] = None) -> None:
        self._gateway = gateway
        self._contract = contract
        self._on_outcome = on_outcome

    def execute(self, operations: Sequence[Operation]) -> List[OperationOutcome]:
        outcomes: List[OperationOutcome] = []
        for operation in operations:
            outcome = self._execute_one(operation)
            outcomes.append(outcome)
            if self._on_outcome is not None:
                self._on_outcome(outcome)
        return outcomes

    def _execute_one(self, operation: Operation) -> OperationOutcome:
        try:
            tx_hash = self._gateway.submit(
                self._contract,
                operation.method,
                operation.args,
                operation.operator,
                gas=operation.gas,
                label=operation.label,
            )
        except RevertError as exc:
            outcome = OperationOutcome(
                operation=operation,
                tx_hash=None,
                state=OperationState.REJECTED,
                history=[OperationState.REJECTED],
                error=str(exc),
            )
            LOGGER.warning(
                "Operation rejected by contract before submission",
                extra={"event": "tx_rejected", "data": outcome.as_dict()},
            )
            return outcome
        outcome = OperationOutcome(operation=operation, tx_hash=HexBytes(tx_hash))
        outcome.advance(OperationState.AWAITING_CONFIRMATION)
        outcome.receipt = self._gateway.wait_for_receipt(outcome.tx_hash)
        if receipt_succeeded(outcome.receipt):
            outcome.advance(OperationState.CONFIRMED_SUCCESS)
            LOGGER.info(
                "Operation confirmed",
                extra={"event": "tx_confirmed", "data": outcome.as_dict()},
            )
        else:
            outcome.advance(OperationState.CONFIRMED_FAILURE)
            LOGGER.warning(
                "Operation failed on-chain",
                extra={"event": "tx_failed", "data": outcome.as_dict()},
            )
        return outcome


__all__ = ["Operation", "OperationOutcome", "OperationState", "TransactionSequencer"]
