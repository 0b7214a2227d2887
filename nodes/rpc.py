# ==================================================
# 🔗 SOLANA JSON-RPC CLIENT
# requests.Session bound to an EndpointPool
# Bounded timeout per call, retry with rotation
# ==================================================

import itertools
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

import requests
from loguru import logger

from nodes.config import RPC_RETRIES, RPC_RETRY_SLEEP, RPC_TIMEOUT_SEC
from nodes.pool import EndpointPool, redact

T = TypeVar("T")


class RPCError(RuntimeError):
    pass


class RPCRetryError(RPCError):
    def __init__(self, method: str, attempts: int, last_error: Exception):
        super().__init__(f"RPC failed after {attempts} attempts: {method} :: {last_error}")
        self.method = method
        self.attempts = attempts
        self.last_error = last_error


def retry_with_rotation(
    pool: EndpointPool,
    op: Callable[[], T],
    retries: int = RPC_RETRIES,
    delay: float = RPC_RETRY_SLEEP,
    label: str = "rpc",
    retry_on: Tuple[Type[BaseException], ...] = (RPCError,),
) -> T:
    """
    Run op up to `retries` times, rotating the pool and sleeping `delay`
    between attempts. Raises RPCRetryError once every attempt has failed.
    """
    if retries < 1:
        raise ValueError("retries must be >= 1")

    last_err: Optional[Exception] = None
    for i in range(retries):
        try:
            return op()
        except retry_on as e:
            last_err = e
            logger.warning(f"[RPC] {label} attempt {i + 1}/{retries} failed: {e}")
            if i < retries - 1:
                pool.rotate()
                time.sleep(delay)
    raise RPCRetryError(label, retries, last_err)


class SolanaRPC:

    def __init__(
        self,
        pool: EndpointPool,
        timeout: float = RPC_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
        commitment: str = "confirmed",
    ):
        self.pool = pool
        self.timeout = timeout
        self.session = session or requests.Session()
        self.commitment = commitment
        self._ids = itertools.count(1)

    def info(self) -> str:
        return f"{self.pool.name}@{redact(self.pool.current())}"

    def call(self, method: str, params: Optional[list] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            r = self.session.post(self.pool.current(), json=payload, timeout=self.timeout)
            r.raise_for_status()
            j = r.json()
        except (requests.RequestException, ValueError) as e:
            raise RPCError(f"{method}: {e}") from e

        if not isinstance(j, dict):
            raise RPCError(f"{method}: malformed JSON-RPC response ({type(j).__name__})")
        if j.get("error"):
            raise RPCError(f"RPC error: {j['error']}")
        return j.get("result")

    def call_with_retry(
        self,
        method: str,
        params: Optional[list] = None,
        retries: int = RPC_RETRIES,
        delay: float = RPC_RETRY_SLEEP,
    ) -> Any:
        return retry_with_rotation(
            self.pool,
            lambda: self.call(method, params),
            retries=retries,
            delay=delay,
            label=method,
        )

    # ----------------------------
    # Typed wrappers
    # ----------------------------

    def get_signatures_for_address(self, address: str, limit: int = 100, **kw) -> List[Dict[str, Any]]:
        opts = {"limit": limit, "commitment": self.commitment}
        return self.call_with_retry("getSignaturesForAddress", [address, opts], **kw) or []

    def get_transaction(self, signature: str, **kw) -> Optional[Dict[str, Any]]:
        opts = {
            "encoding": "jsonParsed",
            "commitment": self.commitment,
            "maxSupportedTransactionVersion": 0,
        }
        return self.call_with_retry("getTransaction", [signature, opts], **kw)

    def get_account_info(self, address: str, encoding: str = "base64", **kw) -> Optional[Dict[str, Any]]:
        res = self.call_with_retry(
            "getAccountInfo", [address, {"encoding": encoding, "commitment": self.commitment}], **kw
        )
        return (res or {}).get("value")

    def get_token_supply(self, mint: str, **kw) -> Dict[str, Any]:
        res = self.call_with_retry("getTokenSupply", [mint, {"commitment": self.commitment}], **kw)
        return (res or {}).get("value") or {}

    def get_token_accounts_by_owner(self, owner: str, mint: str, **kw) -> List[Dict[str, Any]]:
        res = self.call_with_retry(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
            **kw,
        )
        return (res or {}).get("value") or []

    def get_version(self, **kw) -> Dict[str, Any]:
        return self.call_with_retry("getVersion", [], **kw) or {}

    def get_latest_blockhash(self, **kw) -> str:
        res = self.call_with_retry("getLatestBlockhash", [{"commitment": self.commitment}], **kw)
        return res["value"]["blockhash"]

    def get_fee_for_message(self, message_b64: str, **kw) -> Optional[int]:
        res = self.call_with_retry(
            "getFeeForMessage", [message_b64, {"commitment": self.commitment}], **kw
        )
        return (res or {}).get("value")
