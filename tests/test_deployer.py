from pathlib import Path

import pytest

from attendance_bootstrap.artifacts import ArtifactStore
from attendance_bootstrap.deployer import ContractDeployer, DeploymentDescriptor
from attendance_bootstrap.errors import DeploymentError, SubmissionError

OPERATOR = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


def _descriptor(name: str = "Asistencia") -> DeploymentDescriptor:
    return DeploymentDescriptor(contract_name=name, constructor_args=("AsistenciaToken", "AST", OPERATOR))


def test_deploy_returns_checksummed_address_and_handle(gateway, operator, artifact_root: Path) -> None:
    result = ContractDeployer(gateway, ArtifactStore(artifact_root)).deploy(_descriptor(), operator)
    assert result.address == CONTRACT_ADDRESS
    assert result.contract.address == CONTRACT_ADDRESS
    assert result.artifact.contract_name == "Asistencia"
    assert gateway.deployed_args == ("AsistenciaToken", "AST", OPERATOR)
    assert gateway.events == [("submit", "deploy"), ("wait", "deploy")]


def test_descriptor_is_immutable() -> None:
    descriptor = _descriptor()
    with pytest.raises(AttributeError):
        descriptor.contract_name = "Other"  # type: ignore[misc]


def test_rejected_submission_is_fatal(make_gateway, operator, artifact_root: Path) -> None:
    gateway = make_gateway(reject={"deploy": SubmissionError("deploy: insufficient funds", operation="deploy")})
    with pytest.raises(DeploymentError, match="insufficient funds"):
        ContractDeployer(gateway, ArtifactStore(artifact_root)).deploy(_descriptor(), operator)


def test_failed_receipt_is_fatal(make_gateway, operator, artifact_root: Path) -> None:
    gateway = make_gateway(deploy_status=0)
    with pytest.raises(DeploymentError, match="failed on-chain"):
        ContractDeployer(gateway, ArtifactStore(artifact_root)).deploy(_descriptor(), operator)


def test_missing_artifact_is_fatal(gateway, operator, artifact_root: Path) -> None:
    with pytest.raises(DeploymentError, match="No artifact"):
        ContractDeployer(gateway, ArtifactStore(artifact_root)).deploy(_descriptor("Tesoreria"), operator)
    assert gateway.events == []
