# ==================================================
# 🔍 TOKEN VERIFIER
# Mint existence / supply checks + RPC endpoint health
# Own public endpoint pool, 3 attempts, 1s between
# ==================================================

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from loguru import logger

from nodes.config import NODE_CONFIG, TOKEN_MINT
from nodes.pool import EndpointPool, redact
from nodes.rpc import RPCError, RPCRetryError, SolanaRPC, retry_with_rotation

SERVICE_RETRIES = 3
SERVICE_RETRY_SLEEP = 1.0

# Response-shape surprises are retried like transport errors
RETRY_ON = (RPCError, KeyError, TypeError, ValueError, IndexError)

# ============================================
# RPC Bind
# ============================================

POOL = EndpointPool(NODE_CONFIG["public"]["endpoints"], name="public")
RPC = SolanaRPC(POOL, timeout=NODE_CONFIG["public"]["timeout"])


def error_text(e: RPCRetryError) -> str:
    return str(e.last_error or e)


# ============================================
# Results
# ============================================

@dataclass
class TokenVerification:
    exists: bool
    mint: Optional[str] = None
    supply_total: Optional[Decimal] = None
    decimals: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.exists:
            return {"exists": False, "error": self.error}
        return {
            "exists": True,
            "mint": self.mint,
            "supply": {"total": self.supply_total, "decimals": self.decimals},
            "verified": True,
        }


@dataclass
class TokenBalance:
    success: bool
    balance: Decimal = Decimal(0)
    has_account: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error}
        return {"success": True, "balance": self.balance, "hasAccount": self.has_account}


@dataclass
class EndpointHealth:
    endpoint: str
    status: str
    latency_ms: Optional[int] = None
    version: Optional[str] = None
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> Dict[str, Any]:
        if self.healthy:
            return {
                "endpoint": self.endpoint,
                "status": self.status,
                "latency": self.latency_ms,
                "version": self.version,
            }
        return {"endpoint": self.endpoint, "status": self.status, "error": self.error}


# ============================================
# Operations
# ============================================

def verify_token(retries: int = SERVICE_RETRIES, rpc: Optional[SolanaRPC] = None,
                 delay: float = SERVICE_RETRY_SLEEP) -> TokenVerification:
    rpc = rpc or RPC

    def attempt() -> TokenVerification:
        logger.info(f"[TOKEN VERIFY] 🔍 Verifying token {TOKEN_MINT}...")

        account = rpc.get_account_info(TOKEN_MINT, retries=1)
        if not account:
            logger.error("[TOKEN VERIFY] ❌ Token account not found")
            return TokenVerification(exists=False, error="Token account not found on mainnet")

        supply = rpc.get_token_supply(TOKEN_MINT, retries=1)
        ui_amount = supply.get("uiAmountString") or supply["uiAmount"]

        logger.info("[TOKEN VERIFY] ✅ Token verified successfully")
        return TokenVerification(
            exists=True,
            mint=TOKEN_MINT,
            supply_total=Decimal(str(ui_amount)),
            decimals=int(supply["decimals"]),
        )

    try:
        return retry_with_rotation(rpc.pool, attempt, retries=retries, delay=delay,
                                   label="verify_token", retry_on=RETRY_ON)
    except RPCRetryError as e:
        return TokenVerification(exists=False, error=error_text(e))


def get_token_balance(wallet_address: str, retries: int = SERVICE_RETRIES,
                      rpc: Optional[SolanaRPC] = None, delay: float = SERVICE_RETRY_SLEEP) -> TokenBalance:
    rpc = rpc or RPC

    def attempt() -> TokenBalance:
        accounts = rpc.get_token_accounts_by_owner(wallet_address, TOKEN_MINT, retries=1)
        if not accounts:
            return TokenBalance(success=True, balance=Decimal(0), has_account=False)

        ui_amount = accounts[0]["account"]["data"]["parsed"]["info"]["tokenAmount"]["uiAmount"]
        return TokenBalance(success=True, balance=Decimal(str(ui_amount or 0)), has_account=True)

    try:
        return retry_with_rotation(rpc.pool, attempt, retries=retries, delay=delay,
                                   label="get_token_balance", retry_on=RETRY_ON)
    except RPCRetryError as e:
        return TokenBalance(success=False, error=error_text(e))


def test_rpc_endpoints(endpoints: Optional[List[str]] = None, timeout: Optional[float] = None,
                       rpc_factory=SolanaRPC) -> List[EndpointHealth]:
    endpoints = endpoints or POOL.endpoints
    timeout = timeout or NODE_CONFIG["public"]["timeout"]

    results = []
    for endpoint in endpoints:
        rpc = rpc_factory(EndpointPool([endpoint], name="probe"), timeout=timeout)
        start = time.monotonic()
        try:
            version = rpc.get_version(retries=1)
            latency = int((time.monotonic() - start) * 1000)
            results.append(EndpointHealth(
                endpoint=redact(endpoint),
                status="healthy",
                latency_ms=latency,
                version=version.get("solana-core"),
            ))
            logger.info(f"[TOKEN VERIFY] ✅ {redact(endpoint)} - {latency}ms")
        except RPCRetryError as e:
            results.append(EndpointHealth(endpoint=redact(endpoint), status="unhealthy", error=error_text(e)))
            logger.warning(f"[TOKEN VERIFY] ❌ {redact(endpoint)} - {e}")

    return results
