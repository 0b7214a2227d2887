# ==================================================
# 🌐 BURN TRACKER API
# FastAPI routes over the burn ledger read API
# Envelope: {"success": bool, "data"?: ..., "error"?: str}
# ==================================================

import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from core.burn_stats import (
    get_history,
    get_leaderboard,
    get_recent,
    get_stats,
    get_user_burns,
)
from nodes.config import CORS_ORIGINS, INITIAL_SUPPLY, TOKEN_MINT
from services.token_verifier import test_rpc_endpoints, verify_token
from services.wallet_service import estimate_transaction_fee, get_wallet_balance
from utils.solana_address import is_valid_solana_address

SERVICE_NAME = "Burn Tracker"
API_VERSION = "1.0.0"

ENDPOINTS = [
    "/api/token/verify",
    "/api/wallet/balance/:address",
    "/api/burns/stats",
    "/api/burns/history",
    "/api/burns/user/:address",
    "/api/burns/leaderboard",
    "/api/burns/recent",
    "/api/rpc/test",
    "/api/transaction/fee",
    "/api/health",
]


def ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(jsonable_encoder({"success": True, "data": data}), status_code=status_code)


def fail(error: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


def int_param(value: Optional[str], default: int) -> int:
    # non-numeric or zero falls back to the default
    try:
        parsed = int(value) if value is not None else 0
    except (TypeError, ValueError):
        return default
    return parsed or default


def burn_rate(total_burned: Decimal, initial_supply: int = INITIAL_SUPPLY) -> str:
    return f"{(Decimal(total_burned) / Decimal(initial_supply) * 100):.2f}"


def create_app(tracker=None, start_tracking: bool = True) -> FastAPI:
    """
    Build the API around a BurnTracker. Tracking (backfill, then the live
    monitor) starts on the first burn request when start_tracking is set.
    """
    if tracker is None:
        from workers.burns.burns_update_worker import BurnTracker
        tracker = BurnTracker()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        logger.info("[BURN API] Shutting down, stopping burn tracking")
        tracker.stop()

    app = FastAPI(title="Burn Tracker API", version=API_VERSION, lifespan=lifespan)
    app.state.tracker = tracker
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def ensure_tracking():
        if start_tracking:
            tracker.start()
        return tracker.ledger

    # ============================================
    # Burns
    # ============================================

    @app.get("/api/burns/stats")
    def burns_stats():
        try:
            stats = get_stats(ensure_tracking())
            return ok({
                "totalBurned": stats["totalBurned"],
                "totalBurns": stats["totalBurns"],
                "burned24h": stats["burned24h"],
                "avgBurnSize": stats["avgBurnSize"],
                "topBurner": stats["topBurner"],
                "currentSupply": Decimal(INITIAL_SUPPLY) - stats["totalBurned"],
                "burnRate": burn_rate(stats["totalBurned"]),
            })
        except Exception:
            logger.exception("[BURN API] Error fetching stats")
            return fail("Failed to fetch burn statistics")

    @app.get("/api/burns/history")
    def burns_history(limit: Optional[str] = None, offset: Optional[str] = None):
        try:
            ledger = ensure_tracking()
            return ok(get_history(ledger, int_param(limit, 10), max(0, int_param(offset, 0))))
        except Exception:
            logger.exception("[BURN API] Error fetching history")
            return fail("Failed to fetch burn history")

    @app.get("/api/burns/user/{address}")
    def burns_user(address: str):
        if not is_valid_solana_address(address):
            return fail("Invalid Solana wallet address", 400)
        try:
            return ok(get_user_burns(ensure_tracking(), address))
        except Exception:
            logger.exception("[BURN API] Error fetching user burns")
            return fail("Failed to fetch user burn data")

    @app.get("/api/burns/leaderboard")
    def burns_leaderboard(limit: Optional[str] = None):
        try:
            return ok(get_leaderboard(ensure_tracking(), int_param(limit, 10)))
        except Exception:
            logger.exception("[BURN API] Error fetching leaderboard")
            return fail("Failed to fetch leaderboard")

    @app.get("/api/burns/recent")
    def burns_recent(limit: Optional[str] = None):
        try:
            return ok(get_recent(ensure_tracking(), int_param(limit, 5)))
        except Exception:
            logger.exception("[BURN API] Error fetching recent burns")
            return fail("Failed to fetch recent burns")

    # ============================================
    # Token / wallet / RPC
    # ============================================

    @app.get("/api/token/verify")
    def token_verify():
        try:
            result = verify_token()
            return JSONResponse(jsonable_encoder({"success": result.exists, "data": result.to_dict()}))
        except Exception:
            logger.exception("[BURN API] Error verifying token")
            return fail("Failed to verify token")

    @app.get("/api/wallet/balance/{address}")
    def wallet_balance(address: str):
        if not is_valid_solana_address(address):
            return fail("Invalid Solana wallet address", 400)
        try:
            result = get_wallet_balance(address)
            if not result.success:
                return fail(result.error or "Failed to fetch wallet balance")
            return ok({"address": address, "balance": result.balance, "token": TOKEN_MINT})
        except Exception:
            logger.exception("[BURN API] Error fetching wallet balance")
            return fail("Failed to fetch wallet balance")

    @app.get("/api/rpc/test")
    def rpc_test():
        try:
            results = test_rpc_endpoints()
            return ok({
                "total": len(results),
                "healthy": sum(1 for r in results if r.healthy),
                "endpoints": [r.to_dict() for r in results],
            })
        except Exception:
            logger.exception("[BURN API] Error testing RPC endpoints")
            return fail("Failed to test RPC endpoints")

    @app.get("/api/transaction/fee")
    def transaction_fee():
        try:
            result = estimate_transaction_fee()
            return JSONResponse(jsonable_encoder({
                "success": result.success,
                "data": {"fee": result.fee} if result.success else None,
                "error": result.error,
            }))
        except Exception:
            logger.exception("[BURN API] Error estimating fee")
            return fail("Failed to estimate transaction fee")

    # ============================================
    # Meta
    # ============================================

    @app.get("/api/health")
    def health():
        return {
            "success": True,
            "service": SERVICE_NAME,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": time.monotonic() - app.state.started_at,
            "environment": os.getenv("ENVIRONMENT", "development"),
        }

    @app.get("/")
    def root():
        return {
            "name": f"{SERVICE_NAME} API",
            "version": API_VERSION,
            "status": "operational",
            "endpoints": ENDPOINTS,
        }

    return app
