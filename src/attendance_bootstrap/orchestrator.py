"""Deploy, verify, register participants and open the first session."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from hexbytes import HexBytes
from rich.console import Console

from .client import ChainGateway, Operator
from .config import BootstrapConfig
from .deployer import ContractDeployer, DeploymentDescriptor, DeploymentResult
from .errors import VerificationError
from .hashing import secret_commitment
from .sequencer import Operation, OperationOutcome, TransactionSequencer
from .verifier import ContractVerifier, UnavailableVerifier, VerificationResult, VerificationStatus

LOGGER = logging.getLogger(__name__)

UINT256_MAX = 2**256 - 1


@dataclass(frozen=True, slots=True)
class BootstrapPlan:
    """Everything a run needs, resolved up front. Holds the commitment, never the secret."""

    descriptor: DeploymentDescriptor
    operator: Operator
    participants: Tuple[str, ...]
    commitment: HexBytes
    duration: int
    register_method: str = "registrarAlumno"
    session_method: str = "crearSesion"
    gas: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0 <= self.duration <= UINT256_MAX:
            raise ValueError("session duration must fit in a uint256")
        if len(self.commitment) != 32:
            raise ValueError("commitment must be 32 bytes")

    @classmethod
    def from_config(cls, config: BootstrapConfig, operator: Operator) -> "BootstrapPlan":
        secret = config.session.resolved_secret()
        return cls(
            descriptor=DeploymentDescriptor(
                contract_name=config.contract.name,
                constructor_args=config.contract.resolved_args(operator.address),
            ),
            operator=operator,
            participants=tuple(config.participants),
            commitment=secret_commitment(secret.get_secret_value()),
            duration=config.session.duration,
            register_method=config.methods.register_participant,
            session_method=config.methods.create_session,
            gas=config.transactions.write_gas,
        )

    def operations(self) -> List[Operation]:
        operations = [
            Operation(
                label=f"Participant {index} registered",
                method=self.register_method,
                args=(address,),
                operator=self.operator,
                gas=self.gas,
            )
            for index, address in enumerate(self.participants, start=1)
        ]
        operations.append(
            Operation(
                label="Session created",
                method=self.session_method,
                args=(bytes(self.commitment), int(self.duration)),
                operator=self.operator,
                gas=self.gas,
            )
        )
        return operations


@dataclass
class BootstrapReport:
    address: str
    deployment_tx: HexBytes
    verification: VerificationResult
    outcomes: List[OperationOutcome] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(outcome.succeeded for outcome in self.outcomes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "deployment_tx": self.deployment_tx.to_0x_hex(),
            "verification": self.verification.as_dict(),
            "operations": [outcome.as_dict() for outcome in self.outcomes],
            "all_succeeded": self.all_succeeded,
        }


class BootstrapOrchestrator:
    def __init__(
        self,
        gateway: ChainGateway,
        deployer: ContractDeployer,
        verifier: Optional[Union[ContractVerifier, UnavailableVerifier]],
        console: Optional[Console] = None,
    ) -> None:
        self._gateway = gateway
        self._deployer = deployer
        self._verifier = verifier
        self._console = console or Console()

    def run(self, plan: BootstrapPlan) -> BootstrapReport:
        deployment = self._deployer.deploy(plan.descriptor, plan.operator)
        self._console.print(f"Contract deployed at {deployment.address}")

        verification = self._verify(deployment, plan.descriptor)

        sequencer = TransactionSequencer(self._gateway, deployment.contract, on_outcome=self._report_outcome)
        outcomes = sequencer.execute(plan.operations())
        return BootstrapReport(
            address=deployment.address,
            deployment_tx=deployment.tx_hash,
            verification=verification,
            outcomes=outcomes,
        )

    def _verify(self, deployment: DeploymentResult, descriptor: DeploymentDescriptor) -> VerificationResult:
        if self._verifier is None:
            self._console.print("Verification skipped")
            return VerificationResult(VerificationStatus.SKIPPED, "verification disabled")
        try:
            result = self._verifier.verify(
                deployment.address, descriptor.constructor_args, artifact=deployment.artifact
            )
        except VerificationError as exc:
            return self._verification_failed(str(exc))
        except Exception as exc:  # explorer problems never abort the run
            LOGGER.exception("Unexpected verification failure", extra={"event": "verify_error"})
            return self._verification_failed(str(exc))

        messages = {
            VerificationStatus.VERIFIED: "Contract verified",
            VerificationStatus.ALREADY_VERIFIED: "Contract already verified",
            VerificationStatus.PENDING: "Verification submitted, still pending",
        }
        self._console.print(messages.get(result.status, f"Verification: {result.status.value}"))
        LOGGER.info("Verification finished", extra={"event": "verify_done", "data": result.as_dict()})
        return result

    def _verification_failed(self, detail: str) -> VerificationResult:
        LOGGER.warning("Verification failed: %s", detail, extra={"event": "verify_failed"})
        self._console.print(f"Error verifying contract: {detail}", markup=False)
        return VerificationResult(VerificationStatus.FAILED, detail)

    def _report_outcome(self, outcome: OperationOutcome) -> None:
        self._console.print(f"{outcome.operation.label}: {'OK' if outcome.succeeded else 'Failed'}")


__all__ = ["BootstrapOrchestrator", "BootstrapPlan", "BootstrapReport"]
