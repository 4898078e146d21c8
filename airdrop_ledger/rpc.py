from __future__ import annotations

import random
import time
from typing import Any

import requests


class RpcError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retry_after_s: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retry_after_s = retry_after_s


class RpcClient:
    def __init__(self, rpc_url: str, *, timeout_s: int = 45, user_agent: str = "airdrop-ledger/1.0") -> None:
        self.rpc_url = rpc_url
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self._id = 0
        self._session = requests.Session()

    def call(self, method: str, params: list) -> Any:
        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params}
        try:
            resp = self._session.post(
                self.rpc_url,
                json=payload,
                timeout=self.timeout_s,
                headers={"user-agent": self.user_agent},
            )
        except requests.Timeout as e:
            raise RpcError(f"timeout calling {method}: {e}") from e
        except requests.RequestException as e:
            raise RpcError(f"RPC transport error: {e}") from e

        if resp.status_code >= 400:
            retry_after_s: int | None = None
            ra = resp.headers.get("Retry-After")
            if isinstance(ra, str) and ra.strip().isdigit():
                retry_after_s = int(ra.strip())
            raise RpcError(
                f"HTTP {resp.status_code}: {resp.reason}",
                status_code=resp.status_code,
                retry_after_s=retry_after_s,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(f"invalid JSON-RPC response: {resp.content[:200]!r}") from e

        if not isinstance(data, dict):
            raise RpcError("bad JSON-RPC response (not dict)")
        if data.get("error") is not None:
            err = data.get("error")
            msg = str(err.get("message") or err) if isinstance(err, dict) else str(err)
            raise RpcError(msg)
        return data.get("result")


RETRYABLE_MESSAGES = (
    "timeout",
    "timed out",
    "too many requests",
    "rate limit",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "connection reset",
    "internal error",
)


def is_retryable(e: RpcError) -> bool:
    if getattr(e, "status_code", None) in (429, 502, 503, 504):
        return True
    msg = str(e).lower()
    return any(s in msg for s in RETRYABLE_MESSAGES)


def rpc_with_retries(client: RpcClient, method: str, params: list, *, max_tries: int = 8) -> Any:
    for attempt in range(1, max_tries + 1):
        try:
            return client.call(method, params)
        except RpcError as e:
            if not is_retryable(e) or attempt == max_tries:
                raise

            sleep_s = min(2 ** (attempt - 1), 30.0)
            sleep_s = sleep_s * (1 + random.uniform(-0.15, 0.15))
            retry_after_s = getattr(e, "retry_after_s", None)
            if isinstance(retry_after_s, int) and retry_after_s > 0:
                # never earlier than the server asked
                sleep_s = max(sleep_s, float(retry_after_s))
            time.sleep(max(0.5, sleep_s))
    raise RuntimeError("unreachable")
