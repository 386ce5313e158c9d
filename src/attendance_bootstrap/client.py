"""Web3 client factory, operator resolution and transaction gateway."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from web3 import HTTPProvider, Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from .config import NetworkConfig, OperatorConfig
from .errors import ChainConnectionError, RevertError, SubmissionError

LOGGER = logging.getLogger(__name__)


def get_web3(config: NetworkConfig) -> Web3:
    LOGGER.debug(
        "Initialising Web3 client",
        extra={"event": "web3_init", "data": {"rpc_url": config.rpc_url, "chain_id": config.chain_id}},
    )
    provider = HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.request_timeout})
    web3 = Web3(provider)
    if config.enable_poa:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    if not web3.is_connected():
        raise ChainConnectionError(f"Failed to connect to RPC endpoint: {config.rpc_url}")
    chain_id = web3.eth.chain_id
    if chain_id != config.chain_id:
        raise ChainConnectionError(f"Chain ID mismatch: expected {config.chain_id} got {chain_id}")
    return web3


@dataclass(frozen=True, slots=True)
class Operator:
    """The identity that signs every state-changing call of a run."""

    address: str
    account: Optional[LocalAccount] = field(default=None, repr=False)

    @property
    def signs_locally(self) -> bool:
        return self.account is not None


def resolve_operator(web3: Web3, config: OperatorConfig) -> Operator:
    private_key = config.private_key()
    if private_key:
        account: LocalAccount = Account.from_key(private_key)
        LOGGER.info("Using local signing key", extra={"event": "operator", "data": {"address": account.address}})
        return Operator(address=account.address, account=account)

    accounts = list(web3.eth.accounts)
    if config.account_index >= len(accounts):
        raise ChainConnectionError(
            f"Node exposes {len(accounts)} unlocked account(s); cannot use index {config.account_index}. "
            f"Set ${config.private_key_env} to sign locally."
        )
    address = Web3.to_checksum_address(accounts[config.account_index])
    LOGGER.info("Using node account", extra={"event": "operator", "data": {"address": address}})
    return Operator(address=address)


def receipt_succeeded(receipt: Mapping[str, Any]) -> bool:
    return int(receipt.get("status", 0)) == 1


class ChainGateway:
    """Submit transactions for an operator and block on their receipts.

    Receipt waits have no overall deadline. The gateway waits in slices of
    ``wait_slice`` seconds and logs between slices until the node returns a
    receipt.
    """

    def __init__(self, web3: Web3, *, wait_slice: float = 120.0, poll_latency: float = 0.5) -> None:
        self.web3 = web3
        self.wait_slice = wait_slice
        self.poll_latency = poll_latency

    def contract(self, address: str, abi: List[Dict[str, Any]]) -> Contract:
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def code_at(self, address: str) -> bytes:
        return bytes(self.web3.eth.get_code(Web3.to_checksum_address(address)))

    def deploy(
        self,
        abi: List[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any],
        operator: Operator,
        *,
        gas: Optional[int] = None,
    ) -> HexBytes:
        factory = self.web3.eth.contract(abi=abi, bytecode=bytecode)
        return self._send(factory.constructor(*args), operator, gas=gas, label="deploy")

    def submit(
        self,
        contract: Contract,
        method: str,
        args: Sequence[Any],
        operator: Operator,
        *,
        gas: Optional[int] = None,
        label: Optional[str] = None,
    ) -> HexBytes:
        label = label or method
        try:
            function = getattr(contract.functions, method)(*args)
        except (AttributeError, TypeError, ValueError, Web3Exception) as exc:
            raise SubmissionError(f"{label}: cannot encode call {method}: {exc}", operation=label) from exc
        return self._send(function, operator, gas=gas, label=label)

    def _send(self, call: Any, operator: Operator, *, gas: Optional[int], label: str) -> HexBytes:
        tx_params: Dict[str, Any] = {"from": operator.address}
        if gas is not None:
            tx_params["gas"] = gas
        try:
            if operator.signs_locally:
                tx_params["nonce"] = self.web3.eth.get_transaction_count(operator.address, "pending")
                tx_params["chainId"] = self.web3.eth.chain_id
                transaction = call.build_transaction(tx_params)
                signed = operator.account.sign_transaction(transaction)
                tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = call.transact(tx_params)
        except ContractLogicError as exc:
            raise RevertError(f"{label}: rejected by contract: {exc}", operation=label) from exc
        except (ValueError, Web3Exception) as exc:
            raise SubmissionError(f"{label}: submission rejected: {exc}", operation=label) from exc
        tx_hash = HexBytes(tx_hash)
        LOGGER.info(
            "Transaction submitted",
            extra={"event": "tx_submitted", "data": {"label": label, "tx": tx_hash.to_0x_hex()}},
        )
        return tx_hash

    def wait_for_receipt(self, tx_hash: HexBytes) -> Mapping[str, Any]:
        while True:
            try:
                receipt = self.web3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.wait_slice, poll_latency=self.poll_latency
                )
            except TimeExhausted:
                LOGGER.warning(
                    "Still waiting for receipt",
                    extra={"event": "tx_waiting", "data": {"tx": HexBytes(tx_hash).to_0x_hex()}},
                )
                continue
            return receipt


__all__ = [
    "ChainGateway",
    "Operator",
    "get_web3",
    "receipt_succeeded",
    "resolve_operator",
]
