"""Configuration models and helpers for the bootstrap run."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr, SecretStr, ValidationError, field_validator
from web3 import Web3

from .errors import ConfigurationError

DEFAULT_CONFIG_PATH = "config/bootstrap.yml"
CONFIG_ENV_VAR = "ATTENDANCE_BOOTSTRAP_CONFIG"
OPERATOR_PLACEHOLDER = "{operator}"


def _checksum(value: str) -> str:
    if not Web3.is_address(value):
        raise ValueError(f"{value!r} is not a valid 0x-prefixed 20-byte address")
    return Web3.to_checksum_address(value)


class NetworkConfig(BaseModel):
    rpc_url: str = Field("http://127.0.0.1:8545", description="JSON-RPC endpoint")
    chain_id: int = Field(31337, ge=1)
    enable_poa: bool = False
    request_timeout: float = Field(30.0, gt=0)


class OperatorConfig(BaseModel):
    """Where the signing identity comes from.

    When the environment variable named by ``private_key_env`` is set, the key
    signs locally. Otherwise the node's unlocked account at ``account_index``
    is used, the way a local development node exposes its wallets.
    """

    private_key_env: str = "OPERATOR_PRIVATE_KEY"
    account_index: int = Field(0, ge=0)

    def private_key(self) -> Optional[str]:
        return os.environ.get(self.private_key_env) or None


class ArtifactsConfig(BaseModel):
    root: str = Field("artifacts", description="Directory holding compiled contract artifacts")


class ContractConfig(BaseModel):
    name: str = Field("Asistencia", min_length=1)
    constructor_args: List[Any] = Field(
        default_factory=lambda: ["AsistenciaToken", "AST", OPERATOR_PLACEHOLDER]
    )

    def resolved_args(self, operator_address: str) -> tuple:
        return tuple(
            operator_address if arg == OPERATOR_PLACEHOLDER else arg for arg in self.constructor_args
        )


class MethodsConfig(BaseModel):
    register_participant: str = "registrarAlumno"
    create_session: str = "crearSesion"


class SessionConfig(BaseModel):
    secret: Optional[SecretStr] = None
    secret_env: Optional[str] = "SESSION_SECRET"
    duration: int = Field(3, ge=0)

    @field_validator("duration")
    @classmethod
    def fits_uint256(cls, value: int) -> int:
        if value >= 2**256:
            raise ValueError("duration must fit in a uint256")
        return value

    def resolved_secret(self) -> SecretStr:
        if self.secret_env and os.environ.get(self.secret_env):
            return SecretStr(os.environ[self.secret_env])
        if self.secret is None:
            raise ConfigurationError(
                f"No session secret configured (set session.secret or ${self.secret_env})"
            )
        return self.secret


class TransactionConfig(BaseModel):
    receipt_wait_slice: float = Field(120.0, gt=0, description="Seconds per receipt wait before logging progress")
    poll_latency: float = Field(0.5, gt=0)
    deploy_gas: Optional[int] = Field(None, gt=0, description="Gas limit for contract creation; estimated when unset")
    write_gas: Optional[int] = Field(
        None, gt=0, description="Gas limit for each registration and session write; skips estimation when set"
    )


class VerificationConfig(BaseModel):
    enabled: bool = True
    delay_seconds: float = Field(5.0, ge=0)
    api_url: str = "https://api.etherscan.io/v2/api"
    api_key_env: str = "ETHERSCAN_API_KEY"
    source_input: Optional[str] = Field(None, description="Solidity standard-JSON input file")
    contract_path: Optional[str] = Field(None, description="Source path of the contract, e.g. contracts/Asistencia.sol")
    compiler_version: Optional[str] = None
    status_checks: int = Field(3, ge=0)
    status_interval_seconds: float = Field(5.0, ge=0)
    request_timeout: float = Field(30.0, gt=0)

    def api_key(self) -> Optional[str]:
        return os.environ.get(self.api_key_env) or None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_file: Optional[str] = None


class BootstrapConfig(BaseModel):
    network: NetworkConfig = NetworkConfig()
    operator: OperatorConfig = OperatorConfig()
    artifacts: ArtifactsConfig = ArtifactsConfig()
    contract: ContractConfig = ContractConfig()
    participants: List[str] = Field(..., min_length=1)
    methods: MethodsConfig = MethodsConfig()
    session: SessionConfig = SessionConfig()
    transactions: TransactionConfig = TransactionConfig()
    verification: VerificationConfig = VerificationConfig()
    logging: LoggingConfig = LoggingConfig()
    _base_path: Path = PrivateAttr(default=Path("."))

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, value: List[str]) -> List[str]:
        checksummed = [_checksum(address) for address in value]
        if len(set(checksummed)) != len(checksummed):
            raise ValueError("participants must be distinct addresses")
        return checksummed

    @classmethod
    def load(cls, path: Path | str | None = None) -> "BootstrapConfig":
        file_path = Path(path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file '{file_path}' not found. Copy config/bootstrap.example.yml and edit it."
            )
        try:
            with file_path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Unable to parse {file_path}: {exc}") from exc
        try:
            instance = cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {file_path}: {exc}") from exc
        instance._base_path = file_path.parent.resolve()
        return instance

    def resolve_path(self, relative: str) -> Path:
        return (self._base_path / relative).resolve()

    def resolved_log_file(self) -> Optional[Path]:
        if not self.logging.log_file:
            return None
        return self.resolve_path(self.logging.log_file)


__all__ = [
    "ArtifactsConfig",
    "BootstrapConfig",
    "ContractConfig",
    "LoggingConfig",
    "MethodsConfig",
    "NetworkConfig",
    "OPERATOR_PLACEHOLDER",
    "OperatorConfig",
    "SessionConfig",
    "TransactionConfig",
    "VerificationConfig",
]
