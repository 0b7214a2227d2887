#!/usr/bin/env python3
# ==================================================
# 🚀 BURN TRACKER PROCESS WRAPPER
# systemd Entrypoint → Backfill, then Live Monitor
# ==================================================

import os
import sys
import time

# ============================================
# 🔧 Projekt-Root setzen
# ============================================

PROJECT_ROOT = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "../../")
)

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# ============================================
# 🔗 Worker Import
# ============================================

from loguru import logger

import core.logging_config  # noqa: F401
from core.burn_stats import get_stats
from nodes.config import BACKFILL_LIMIT, BURN_ADDRESS, TOKEN_MINT
from workers.burns.burns_update_worker import BurnTracker, MonitorState

# ============================================
# ▶️ Entrypoint
# ============================================


def main():
    logger.info("🚀 Burn Tracker Started")
    logger.info("═══════════════════════════════════")
    logger.info(f"Token: {TOKEN_MINT}")
    logger.info(f"Burn Address: {BURN_ADDRESS}")
    logger.info("═══════════════════════════════════")

    tracker = BurnTracker()

    try:
        tracker.start(BACKFILL_LIMIT)

        stats = get_stats(tracker.ledger)
        logger.info(f"✅ Processed {stats['totalBurns']} burns")
        logger.info(f"🔥 Total burned: {stats['totalBurned']:,}")

        while tracker.monitor.running:
            time.sleep(1.0)

    except KeyboardInterrupt:
        logger.info("[BURN TRACKER PROCESS] stopped by Ctrl+C")

    finally:
        tracker.stop()

    if tracker.monitor.state == MonitorState.TERMINATED and tracker.monitor.failures > tracker.monitor.max_reconnects:
        sys.exit(1)


if __name__ == "__main__":
    main()
