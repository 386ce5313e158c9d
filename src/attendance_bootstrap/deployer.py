"""Contract creation."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract

from .artifacts import ArtifactStore, ContractArtifact
from .client import ChainGateway, Operator, receipt_succeeded
from .errors import ArtifactError, DeploymentError, SubmissionError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeploymentDescriptor:
    """What gets deployed. Shared verbatim by the deployer and the verifier."""

    contract_name: str
    constructor_args: Tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class DeploymentResult:
    address: str
    contract: Contract
    artifact: ContractArtifact
    tx_hash: HexBytes
    receipt: Mapping[str, Any]


class ContractDeployer:
    def __init__(self, gateway: ChainGateway, artifacts: ArtifactStore, *, gas: Optional[int] = None) -> None:
        self._gateway = gateway
        self._artifacts = artifacts
        self._gas = gas

    def deploy(self, descriptor: DeploymentDescriptor, operator: Operator) -> DeploymentResult:
        try:
            artifact = self._artifacts.load(descriptor.contract_name)
        except ArtifactError as exc:
            raise DeploymentError(str(exc)) from exc

        LOGGER.info(
            "Deploying contract",
            extra={
                "event": "deploy_start",
                "data": {"contract": descriptor.contract_name, "operator": operator.address},
            },
        )
        try:
            tx_hash = self._gateway.deploy(
                artifact.abi, artifact.bytecode, descriptor.constructor_args, operator, gas=self._gas
            )
        except SubmissionError as exc:
            raise DeploymentError(f"Deployment of {descriptor.contract_name} rejected: {exc}") from exc

        receipt = self._gateway.wait_for_receipt(tx_hash)
        if not receipt_succeeded(receipt):
            raise DeploymentError(
                f"Deployment transaction {tx_hash.to_0x_hex()} for {descriptor.contract_name} failed on-chain"
            )
        address = receipt.get("contractAddress")
        if not address:
            raise DeploymentError(f"Receipt for {tx_hash.to_0x_hex()} carries no contract address")

        address = Web3.to_checksum_address(address)
        LOGGER.info(
            "Contract deployed",
            extra={"event": "deploy_confirmed", "data": {"address": address, "tx": tx_hash.to_0x_hex()}},
        )
        return DeploymentResult(
            address=address,
            contract=self._gateway.contract(address, artifact.abi),
            artifact=artifact,
            tx_hash=tx_hash,
            receipt=receipt,
        )


__all__ = ["ContractDeployer", "DeploymentDescriptor", "DeploymentResult"]
