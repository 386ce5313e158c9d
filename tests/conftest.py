"""Shared fixtures: an in-memory chain gateway and compiled artifacts on disk."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pytest
from hexbytes import HexBytes
from web3 import Web3

os.environ.setdefault("PYTEST_DISABLE_PLUGIN_AUTOLOAD", "1")

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from attendance_bootstrap.client import Operator  # noqa: E402

OPERATOR = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
STUDENT_ONE = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
STUDENT_TWO = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"

ASISTENCIA_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "name_", "type": "string"},
            {"name": "symbol_", "type": "string"},
            {"name": "profesor", "type": "address"},
        ],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "registrarAlumno",
        "inputs": [{"name": "alumno", "type": "address"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "crearSesion",
        "inputs": [
            {"name": "hashPalabra", "type": "bytes32"},
            {"name": "duracion", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]


class FakeGateway:
    """In-memory stand-in for ``ChainGateway``.

    Models the contract rules the bootstrap relies on: only the owner passed
    to the constructor may write, and an address can be registered once.
    """

    def __init__(
        self,
        *,
        registered: Sequence[str] = (),
        reject: Optional[Mapping[str, Exception]] = None,
        deploy_status: int = 1,
        code: bytes = b"\x60\x80\x60\x40",
    ) -> None:
        self.owner: Optional[str] = None
        self.registered = set(registered)
        self.sessions: List[Tuple[Any, ...]] = []
        self.reject = dict(reject or {})
        self.deploy_status = deploy_status
        self.code = code
        self.deployed_args: Optional[Tuple[Any, ...]] = None
        self.deploy_gas: Optional[int] = None
        self.write_gas: List[Optional[int]] = []
        self.events: List[Tuple[str, str]] = []
        self._receipts: Dict[bytes, Dict[str, Any]] = {}
        self._labels: Dict[bytes, str] = {}
        self._counter = 0

    def _next_hash(self, label: str) -> HexBytes:
        self._counter += 1
        tx_hash = HexBytes(Web3.keccak(text=f"tx-{self._counter}"))
        self._labels[bytes(tx_hash)] = label
        return tx_hash

    def deploy(self, abi, bytecode, args, operator, *, gas=None) -> HexBytes:
        if "deploy" in self.reject:
            raise self.reject["deploy"]
        self.deployed_args = tuple(args)
        self.deploy_gas = gas
        self.owner = args[-1]
        tx_hash = self._next_hash("deploy")
        self.events.append(("submit", "deploy"))
        self._receipts[bytes(tx_hash)] = {
            "status": self.deploy_status,
            "contractAddress": CONTRACT_ADDRESS.lower() if self.deploy_status else None,
            "blockNumber": self._counter,
            "gasUsed": 1_200_000,
        }
        return tx_hash

    def contract(self, address: str, abi):
        return SimpleNamespace(address=address, abi=abi)

    def code_at(self, address: str) -> bytes:
        return self.code

    def submit(self, contract, method, args, operator, *, gas=None, label=None) -> HexBytes:
        label = label or method
        self.write_gas.append(gas)
        if label in self.reject:
            raise self.reject[label]
        tx_hash = self._next_hash(label)
        self.events.append(("submit", label))
        ok = operator.address == self.owner
        if method == "registrarAlumno":
            ok = ok and args[0] not in self.registered
            if ok:
                self.registered.add(args[0])
        elif method == "crearSesion":
            if ok:
                self.sessions.append(tuple(args))
        else:
            ok = False
        self._receipts[bytes(tx_hash)] = {"status": 1 if ok else 0, "blockNumber": self._counter, "gasUsed": 50_000}
        return tx_hash

    def wait_for_receipt(self, tx_hash) -> Dict[str, Any]:
        key = bytes(tx_hash)
        self.events.append(("wait", self._labels[key]))
        return self._receipts[key]


@pytest.fixture
def operator() -> Operator:
    return Operator(address=OPERATOR)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_gateway():
    return FakeGateway


def write_artifact(root: Path, name: str = "Asistencia", *, abi=None, bytecode: Any = "0x60806040") -> Path:
    folder = root / "contracts" / f"{name}.sol"
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{name}.json"
    path.write_text(
        json.dumps(
            {
                "_format": "hh-sol-artifact-1",
                "contractName": name,
                "sourceName": f"contracts/{name}.sol",
                "abi": ASISTENCIA_ABI if abi is None else abi,
                "bytecode": bytecode,
            }
        ),
        encoding="utf-8",
    )
    (folder / f"{name}.dbg.json").write_text(json.dumps({"buildInfo": "../../build-info/x.json"}), encoding="utf-8")
    return path


@pytest.fixture
def artifact_root(tmp_path: Path) -> Path:
    root = tmp_path / "artifacts"
    write_artifact(root)
    return root


@pytest.fixture
def artifact_writer():
    return write_artifact
