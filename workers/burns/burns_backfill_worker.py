#!/usr/bin/env python3
# ==================================================
# 🔥 BURN BACKFILL WORKER
# One-shot historical fetch of burns to the incinerator
#
# ✅ Newest signatures first (as returned by the node)
# ✅ Per-transaction failures isolated: logged + skipped
# ✅ Missing / failed metadata skipped silently
# ==================================================

from dataclasses import dataclass
from typing import List

from loguru import logger

from core.burn_ledger import SOURCE_BACKFILL, BurnEvent, BurnLedger
from nodes.config import BACKFILL_LIMIT, RPC_RETRIES, RPC_RETRY_SLEEP, TOKEN_DECIMALS
from nodes.rpc import RPCError, SolanaRPC
from workers.burns.helper.burn_tx_helper import block_time, iter_burn_transfers


@dataclass
class BackfillReport:
    signatures: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    recorded: int = 0


class BurnBackfill:

    def __init__(
        self,
        rpc: SolanaRPC,
        ledger: BurnLedger,
        burn_account: str,
        decimals: int = TOKEN_DECIMALS,
        retries: int = RPC_RETRIES,
        retry_delay: float = RPC_RETRY_SLEEP,
    ):
        self.rpc = rpc
        self.ledger = ledger
        self.burn_account = burn_account
        self.decimals = decimals
        self.retries = retries
        self.retry_delay = retry_delay
        self.last_report = BackfillReport()

    def events_for_transaction(self, signature: str, tx) -> List[BurnEvent]:
        ts = block_time(tx) if tx else None
        return [
            BurnEvent.create(
                signature=signature,
                burner=burner,
                amount=amount,
                timestamp=ts,
                instruction_index=idx,
                source=SOURCE_BACKFILL,
            )
            for idx, burner, amount in iter_burn_transfers(tx, self.burn_account, self.decimals)
        ]

    def fetch_historical_burns(self, limit: int = BACKFILL_LIMIT) -> List[BurnEvent]:
        report = self.last_report = BackfillReport()

        logger.info(f"[BURN BACKFILL] Fetching up to {limit} signatures for {self.burn_account} via {self.rpc.info()}")

        try:
            sigs = self.rpc.get_signatures_for_address(
                self.burn_account, limit=limit,
                retries=self.retries, delay=self.retry_delay,
            )
        except RPCError as e:
            logger.error(f"[BURN BACKFILL] signature fetch failed: {e}")
            return self.ledger.snapshot()

        report.signatures = len(sigs)
        logger.info(f"[BURN BACKFILL] Found {len(sigs)} transactions")

        for entry in sigs:
            signature = entry.get("signature")
            if not signature:
                continue

            try:
                tx = self.rpc.get_transaction(signature, retries=self.retries, delay=self.retry_delay)
            except RPCError as e:
                report.failed += 1
                logger.warning(f"[BURN BACKFILL] skipping {signature}: {e}")
                continue

            if not tx or not tx.get("meta"):
                report.skipped += 1
                logger.debug(f"[BURN BACKFILL] {signature} has no confirmed meta")
                continue

            try:
                events = self.events_for_transaction(signature, tx)
            except Exception as e:
                report.skipped += 1
                logger.warning(f"[BURN BACKFILL] malformed transaction {signature}: {e!r}")
                continue

            report.processed += 1
            report.recorded += self.ledger.extend_historical(events)

        logger.info(
            f"[BURN BACKFILL] processed={report.processed} recorded={report.recorded} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        logger.info(f"[BURN BACKFILL] Total burned: {self.ledger.total_burned:,}")

        return self.ledger.snapshot()
