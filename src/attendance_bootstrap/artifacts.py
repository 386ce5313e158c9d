"""Lookup of compiled contract artifacts (ABI and creation bytecode)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ArtifactError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContractArtifact:
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    source_name: Optional[str] = None

    @property
    def constructor_inputs(self) -> List[Dict[str, Any]]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []

    @property
    def fully_qualified_name(self) -> str:
        if self.source_name:
            return f"{self.source_name}:{self.contract_name}"
        return self.contract_name


class ArtifactStore:
    """Resolve ``<Name>.json`` artifacts below a Hardhat-style ``artifacts/`` root.

    Debug files (``*.dbg.json``) and build-info blobs are ignored. A name that
    matches more than one artifact is ambiguous and rejected.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _candidates(self, contract_name: str) -> List[Path]:
        if not self.root.is_dir():
            raise ArtifactError(f"Artifacts directory {self.root} does not exist; compile the contracts first")
        return sorted(
            path
            for path in self.root.rglob(f"{contract_name}.json")
            if "build-info" not in path.parts
        )

    def load(self, contract_name: str) -> ContractArtifact:
        matches = self._candidates(contract_name)
        if not matches:
            raise ArtifactError(f"No artifact named {contract_name!r} under {self.root}")
        if len(matches) > 1:
            listing = ", ".join(str(path.relative_to(self.root)) for path in matches)
            raise ArtifactError(f"Artifact name {contract_name!r} is ambiguous: {listing}")

        path = matches[0]
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ArtifactError(f"Unable to read artifact {path}: {exc}") from exc

        bytecode = data.get("bytecode")
        if isinstance(bytecode, dict):
            # solc/foundry layout: {"bytecode": {"object": "0x..."}}
            bytecode = bytecode.get("object")
        abi = data.get("abi")
        if not isinstance(abi, list):
            raise ArtifactError(f"Artifact {path} has no ABI")
        if not bytecode or bytecode in {"0x", "0x0"}:
            raise ArtifactError(f"Artifact {path} has no creation bytecode (abstract contract or interface?)")
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        LOGGER.debug("Loaded artifact", extra={"event": "artifact_loaded", "data": {"path": str(path)}})
        return ContractArtifact(
            contract_name=data.get("contractName", contract_name),
            abi=abi,
            bytecode=bytecode,
            source_name=data.get("sourceName"),
        )


__all__ = ["ArtifactStore", "ContractArtifact"]
