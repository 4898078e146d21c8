from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Tuple

from airdrop_ledger.rpc import RpcClient, RpcError, rpc_with_retries
from airdrop_ledger.utils import abi_encode_address_uint_arrays, keccak_selector, normalize_address, parse_uint

LOAD_CLAIMS_SIG = "loadClaims(address[],uint256[])"
TOTAL_LOADED_SIG = "totalLoaded()"
TOTAL_USERS_SIG = "totalUsers()"


class RpcClaimSink:
    """Claim contract driven over JSON-RPC.

    Transactions go through `eth_sendTransaction`, so `sender` must be an account
    the node can sign for (a local dev node, or a signer-backed endpoint).
    """

    def __init__(
        self,
        client: RpcClient,
        contract: str,
        sender: str,
        *,
        load_sig: str = LOAD_CLAIMS_SIG,
        total_loaded_sig: str = TOTAL_LOADED_SIG,
        total_users_sig: str = TOTAL_USERS_SIG,
        gas: Optional[int] = None,
        receipt_timeout_s: float = 300.0,
        receipt_poll_s: float = 2.0,
    ) -> None:
        self.client = client
        self.contract = normalize_address(contract)
        self.sender = normalize_address(sender)
        self.load_selector = keccak_selector(load_sig)
        self.total_loaded_selector = keccak_selector(total_loaded_sig)
        self.total_users_selector = keccak_selector(total_users_sig)
        self.gas = gas
        self.receipt_timeout_s = receipt_timeout_s
        self.receipt_poll_s = receipt_poll_s

    def _call_uint(self, selector: str) -> int:
        res = rpc_with_retries(self.client, "eth_call", [{"to": self.contract, "data": "0x" + selector}, "latest"])
        if not isinstance(res, str) or not res.startswith("0x") or len(res) < 3:
            raise RpcError(f"unexpected eth_call result: {res!r}")
        return int(res, 16)

    def get_total_loaded(self) -> int:
        return self._call_uint(self.total_loaded_selector)

    def get_total_users(self) -> int:
        return self._call_uint(self.total_users_selector)

    def _wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        deadline = time.time() + self.receipt_timeout_s
        while True:
            receipt = rpc_with_retries(self.client, "eth_getTransactionReceipt", [tx_hash])
            if isinstance(receipt, dict):
                return receipt
            if time.time() >= deadline:
                raise RpcError(f"no receipt for {tx_hash} after {self.receipt_timeout_s:.0f}s")
            time.sleep(self.receipt_poll_s)

    def submit_batch(self, addresses: List[str], amounts: List[str]) -> str:
        if len(addresses) != len(amounts):
            raise ValueError(f"length mismatch: {len(addresses)} addresses vs {len(amounts)} amounts")
        data = "0x" + self.load_selector + abi_encode_address_uint_arrays(addresses, [parse_uint(a) for a in amounts])
        tx: Dict[str, Any] = {"from": self.sender, "to": self.contract, "data": data}
        if self.gas is not None:
            tx["gas"] = hex(int(self.gas))

        # Not retried: a resend could load the same chunk twice.
        tx_hash = self.client.call("eth_sendTransaction", [tx])
        if not isinstance(tx_hash, str):
            raise RpcError(f"unexpected eth_sendTransaction result: {tx_hash!r}")

        receipt = self._wait_for_receipt(tx_hash)
        status = str(receipt.get("status") or "").lower()
        if status != "0x1":
            raise RpcError(f"loadClaims reverted: tx {tx_hash} status {status or 'missing'}")
        return tx_hash


class RecordingSink:
    """In-memory sink for dry runs: records every batch and keeps its own totals."""

    def __init__(self, *, fail_on_batch: Optional[int] = None) -> None:
        self.batches: List[Tuple[List[str], List[str]]] = []
        self.loaded: Dict[str, int] = {}
        self.fail_on_batch = fail_on_batch

    def submit_batch(self, addresses: List[str], amounts: List[str]) -> str:
        if len(addresses) != len(amounts):
            raise ValueError(f"length mismatch: {len(addresses)} addresses vs {len(amounts)} amounts")
        if self.fail_on_batch is not None and len(self.batches) == self.fail_on_batch:
            raise RpcError(f"batch {self.fail_on_batch} rejected")
        self.batches.append((list(addresses), list(amounts)))
        for address, amount in zip(addresses, amounts):
            self.loaded[normalize_address(address)] = parse_uint(amount)
        return f"dry-run-{len(self.batches)}"

    def get_total_loaded(self) -> int:
        return sum(self.loaded.values())

    def get_total_users(self) -> int:
        return len(self.loaded)
