"""Error taxonomy for the bootstrap run."""

from __future__ import annotations

from typing import Optional


class BootstrapError(RuntimeError):
    """Base class for failures raised while bootstrapping the contract."""


class ConfigurationError(BootstrapError):
    """Raised when the bootstrap configuration is missing or invalid."""


class ChainConnectionError(BootstrapError):
    """Raised when the RPC endpoint is unreachable or on the wrong chain."""


class ArtifactError(BootstrapError):
    """Raised when a compiled contract artifact cannot be loaded."""


class DeploymentError(BootstrapError):
    """Contract creation failed. Always fatal to the run."""


class VerificationError(BootstrapError):
    """Explorer verification failed. Advisory only."""


class SubmissionError(BootstrapError):
    """A state-changing call was rejected before a transaction hash existed."""

    def __init__(self, message: str, *, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation


class RevertError(SubmissionError):
    """The node rejected the call because the contract reverted."""


__all__ = [
    "ArtifactError",
    "BootstrapError",
    "ChainConnectionError",
    "ConfigurationError",
    "DeploymentError",
    "RevertError",
    "SubmissionError",
    "VerificationError",
]
