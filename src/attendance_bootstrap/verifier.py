"""Best-effort source verification against an Etherscan-compatible explorer."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence

import httpx
from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError

from .artifacts import ContractArtifact
from .client import ChainGateway
from .config import VerificationConfig
from .errors import VerificationError

LOGGER = logging.getLogger(__name__)

_ALREADY_VERIFIED_MARKERS = ("already verified",)
_PENDING_MARKERS = ("pending", "in queue")


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"
    PENDING = "pending"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    status: VerificationStatus
    detail: str = ""
    guid: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "detail": self.detail, "guid": self.guid}


def encode_constructor_args(artifact: ContractArtifact, args: Sequence[Any]) -> str:
    """ABI-encode ``args`` against the artifact's constructor, hex without 0x."""

    inputs = artifact.constructor_inputs
    if len(inputs) != len(args):
        raise VerificationError(
            f"{artifact.contract_name} constructor takes {len(inputs)} argument(s), got {len(args)}"
        )
    types = [entry["type"] for entry in inputs]
    try:
        return abi_encode(types, list(args)).hex()
    except (EncodingError, TypeError, ValueError) as exc:
        raise VerificationError(f"Unable to encode constructor arguments {types}: {exc}") from exc


class ExplorerClient:
    """Minimal client for the explorer's ``module=contract`` endpoints.

    Without an injected ``http`` client each request opens and closes its own
    ``httpx.Client``. An injected client belongs to the caller.
    """

    def __init__(self, api_url: str, api_key: str, chain_id: int, *, http: Optional[httpx.Client] = None,
                 timeout: float = 30.0) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._chain_id = chain_id
        self._http = http
        self._timeout = timeout

    def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._http is not None:
                return self._http.request(method, self._api_url, **kwargs)
            with httpx.Client(timeout=self._timeout) as client:
                return client.request(method, self._api_url, **kwargs)
        except httpx.HTTPError as exc:
            raise VerificationError(f"Explorer unreachable: {exc}") from exc

    def _decode(self, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code >= 400:
            raise VerificationError(f"Explorer responded with HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise VerificationError("Explorer returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise VerificationError("Explorer returned an unexpected payload")
        return data

    def submit(self, form: Dict[str, str]) -> Dict[str, Any]:
        payload = {"apikey": self._api_key, "module": "contract", "action": "verifysourcecode", **form}
        response = self._request("POST", params={"chainid": self._chain_id}, data=payload)
        return self._decode(response)

    def check_status(self, guid: str) -> Dict[str, Any]:
        params = {
            "chainid": self._chain_id,
            "apikey": self._api_key,
            "module": "contract",
            "action": "checkverifystatus",
            "guid": guid,
        }
        return self._decode(self._request("GET", params=params))


class ContractVerifier:
    """Submit one verification request for a freshly deployed contract.

    The request is sent once after a fixed settle window and a check that the
    runtime code is visible to the node. The settle window is a heuristic; the
    explorer may still lag behind the node. The GUID returned by the explorer
    is polled ``status_checks`` times; the request itself is never resent.
    """

    def __init__(
        self,
        gateway: ChainGateway,
        explorer: ExplorerClient,
        settings: VerificationConfig,
        *,
        source_input: str,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._gateway = gateway
        self._explorer = explorer
        self._settings = settings
        self._source_input = source_input
        self._sleep = sleep

    def verify(self, address: str, constructor_args: Sequence[Any], *, artifact: ContractArtifact) -> VerificationResult:
        if self._settings.delay_seconds:
            LOGGER.debug("Waiting before verification", extra={"event": "verify_wait",
                                                                 "data": {"seconds": self._settings.delay_seconds}})
            self._sleep(self._settings.delay_seconds)

        if not self._gateway.code_at(address):
            raise VerificationError(f"No contract code visible at {address} yet")

        form = {
            "contractaddress": address,
            "sourceCode": self._source_input,
            "codeformat": "solidity-standard-json-input",
            "contractname": self._contract_name(artifact),
            "compilerversion": self._settings.compiler_version or "",
            # Explorer API field name is misspelled upstream.
            "constructorArguements": encode_constructor_args(artifact, constructor_args),
        }
        LOGGER.info("Submitting source verification", extra={"event": "verify_submit", "data": {"address": address}})
        data = self._explorer.submit(form)
        result = str(data.get("result", ""))
        if str(data.get("status")) != "1":
            if any(marker in result.lower() for marker in _ALREADY_VERIFIED_MARKERS):
                return VerificationResult(VerificationStatus.ALREADY_VERIFIED, result)
            raise VerificationError(f"Explorer rejected verification: {result or data.get('message')}")
        return self._await_status(result)

    def _contract_name(self, artifact: ContractArtifact) -> str:
        if self._settings.contract_path:
            return f"{self._settings.contract_path}:{artifact.contract_name}"
        return artifact.fully_qualified_name

    def _await_status(self, guid: str) -> VerificationResult:
        message = "submitted"
        for attempt in range(self._settings.status_checks):
            if attempt:
                self._sleep(self._settings.status_interval_seconds)
            data = self._explorer.check_status(guid)
            message = str(data.get("result", ""))
            lowered = message.lower()
            if any(marker in lowered for marker in _ALREADY_VERIFIED_MARKERS):
                return VerificationResult(VerificationStatus.ALREADY_VERIFIED, message, guid)
            if lowered.startswith("pass"):
                return VerificationResult(VerificationStatus.VERIFIED, message, guid)
            if any(marker in lowered for marker in _PENDING_MARKERS):
                continue
            raise VerificationError(f"Verification failed: {message}")
        return VerificationResult(VerificationStatus.PENDING, message, guid)


class UnavailableVerifier:
    """Stands in when the verifier cannot be built; every attempt fails with the same reason."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def verify(self, address: str, constructor_args: Sequence[Any], *, artifact: ContractArtifact) -> VerificationResult:
        raise VerificationError(self.reason)


def build_verifier(gateway: ChainGateway, settings: VerificationConfig, *, chain_id: int, base_path: Path,
                   http: Optional[httpx.Client] = None) -> ContractVerifier:
    """Build a verifier from configuration; raises when required settings are missing."""

    api_key = settings.api_key()
    if not api_key:
        raise VerificationError(f"Explorer API key missing (set ${settings.api_key_env})")
    if not settings.source_input or not settings.compiler_version:
        raise VerificationError("verification.source_input and verification.compiler_version are required")
    source_path = (base_path / settings.source_input).resolve()
    try:
        source_input = source_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise VerificationError(f"Unable to read standard-JSON input {source_path}: {exc}") from exc
    explorer = ExplorerClient(settings.api_url, api_key, chain_id, http=http, timeout=settings.request_timeout)
    return ContractVerifier(gateway, explorer, settings, source_input=source_input)


__all__ = [
    "ContractVerifier",
    "ExplorerClient",
    "UnavailableVerifier",
    "VerificationResult",
    "VerificationStatus",
    "build_verifier",
    "encode_constructor_args",
]
