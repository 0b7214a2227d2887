#!/usr/bin/env python3
# ==================================================
# 🚀 BURN API PROCESS WRAPPER
# Startup checks (RPC health, token) → uvicorn
# ==================================================

import os
import sys

# ============================================
# 🔧 Project Root
# ============================================

PROJECT_ROOT = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "../")
)

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import uvicorn
from loguru import logger

import core.logging_config  # noqa: F401
import services.token_verifier as token_verifier
from api.burn_api import create_app
from nodes.config import PORT


def startup_checks() -> bool:
    logger.info("📡 Testing RPC endpoints...")
    results = token_verifier.test_rpc_endpoints()
    healthy = [r for r in results if r.healthy]

    if not healthy:
        logger.error("❌ No healthy RPC endpoints found!")
        logger.error("Please check your internet connection or try again later.")
        return False

    logger.info(f"✅ {len(healthy)}/{len(results)} RPC endpoints healthy")

    logger.info("🔍 Verifying token on Solana mainnet...")
    token = token_verifier.verify_token()

    if not token.exists:
        logger.error(f"❌ Token verification failed: {token.error}")
        logger.error("Please verify: mint address is correct, token exists on mainnet, RPC endpoints are accessible")
        return False

    logger.info("✅ Token verified successfully")
    logger.info(f"   Mint: {token.mint}")
    logger.info(f"   Supply: {token.supply_total:,} tokens")
    logger.info(f"   Decimals: {token.decimals}")
    return True


def main():
    logger.info("🔥 Burn Tracker Starting...")

    if not startup_checks():
        sys.exit(1)

    logger.info("🚀 Starting API server...")
    logger.info(f"🔥 Burn Tracker API on port {PORT}")
    logger.info(f"📊 Stats: http://localhost:{PORT}/api/burns/stats")
    logger.info(f"📜 History: http://localhost:{PORT}/api/burns/history")
    logger.info(f"🏆 Leaderboard: http://localhost:{PORT}/api/burns/leaderboard")

    uvicorn.run(create_app(), host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    main()
