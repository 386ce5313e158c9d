"""One-shot deployment and bootstrap of the attendance contract.

The run deploys the contract, submits it for explorer verification on a
best-effort basis, registers the configured participants and opens the first
session keyed by the keccak-256 commitment of a secret. Each transaction is
confirmed before the next one is sent.
"""

from .config import BootstrapConfig
from .deployer import ContractDeployer, DeploymentDescriptor, DeploymentResult
from .errors import (
    BootstrapError,
    DeploymentError,
    RevertError,
    SubmissionError,
    VerificationError,
)
from .hashing import commitment_hex, secret_commitment
from .orchestrator import BootstrapOrchestrator, BootstrapPlan, BootstrapReport
from .sequencer import Operation, OperationOutcome, OperationState, TransactionSequencer

__all__ = [
    "BootstrapConfig",
    "BootstrapError",
    "BootstrapOrchestrator",
    "BootstrapPlan",
    "BootstrapReport",
    "ContractDeployer",
    "DeploymentDescriptor",
    "DeploymentError",
    "DeploymentResult",
    "Operation",
    "OperationOutcome",
    "OperationState",
    "RevertError",
    "SubmissionError",
    "TransactionSequencer",
    "VerificationError",
    "commitment_hex",
    "secret_commitment",
]
