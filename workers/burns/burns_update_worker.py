#!/usr/bin/env python3
# ==================================================
# 🔥 BURN LIVE UPDATE WORKER
# logsSubscribe on the incinerator token account
# Appends new burns after backfill
#
# ✅ One notification at a time (single writer after backfill)
# ✅ Failed transactions ignored, bad notifications dropped
# ✅ Transport drop → capped exponential backoff + endpoint rotation
# ✅ stop() unsubscribes before the socket closes
# ==================================================

import json
import threading
from enum import Enum
from typing import Any, Callable, List, Optional

from loguru import logger
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from core.burn_ledger import SOURCE_LIVE, BurnEvent, BurnLedger
from core.burn_notifier import BurnNotifier
from nodes.config import (
    BACKFILL_LIMIT,
    MONITOR_BACKOFF_BASE_SEC,
    MONITOR_BACKOFF_MAX_SEC,
    MONITOR_MAX_RECONNECTS,
    NODE_CONFIG,
    RPC_RETRIES,
    RPC_RETRY_SLEEP,
    TOKEN_DECIMALS,
)
from nodes.pool import EndpointPool, redact
from nodes.rpc import SolanaRPC
from utils.solana_address import burn_token_account
from workers.burns.burns_backfill_worker import BurnBackfill
from workers.burns.helper.burn_tx_helper import iter_burn_transfers

SUBSCRIBE_ID = 1
UNSUBSCRIBE_ID = 2
OPEN_TIMEOUT_SEC = 10.0
RECV_TIMEOUT_SEC = 1.0


class MonitorState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class MonitorError(RuntimeError):
    pass


class SubscriptionError(RuntimeError):
    pass


TRANSPORT_ERRORS = (WebSocketException, OSError, SubscriptionError)


def backoff_delay(failures: int, base: float, cap: float) -> float:
    return min(base * (2 ** max(0, failures - 1)), cap)


class BurnMonitor:

    def __init__(
        self,
        pool: EndpointPool,
        rpc: SolanaRPC,
        ledger: BurnLedger,
        burn_account: str,
        notifier: Optional[BurnNotifier] = None,
        decimals: int = TOKEN_DECIMALS,
        connect: Callable[..., Any] = ws_connect,
        max_reconnects: int = MONITOR_MAX_RECONNECTS,
        backoff_base: float = MONITOR_BACKOFF_BASE_SEC,
        backoff_max: float = MONITOR_BACKOFF_MAX_SEC,
        recv_timeout: float = RECV_TIMEOUT_SEC,
        retries: int = RPC_RETRIES,
        retry_delay: float = RPC_RETRY_SLEEP,
    ):
        self.pool = pool
        self.rpc = rpc
        self.ledger = ledger
        self.burn_account = burn_account
        self.notifier = notifier
        self.decimals = decimals
        self._connect = connect
        self.max_reconnects = max_reconnects
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.recv_timeout = recv_timeout
        self.retries = retries
        self.retry_delay = retry_delay

        self.state = MonitorState.IDLE
        self.subscription_id: Optional[int] = None
        self.failures = 0

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ============================================
    # Notification handling
    # ============================================

    def handle_notification(self, message) -> List[BurnEvent]:
        try:
            data = json.loads(message) if isinstance(message, (str, bytes)) else message

            if data.get("method") != "logsNotification":
                return []

            value = data["params"]["result"]["value"]
            signature = value.get("signature")

            if value.get("err") is not None:
                logger.info(f"[BURN MONITOR] Transaction failed, ignoring {signature}")
                return []

            if not signature:
                return []

            logger.info(f"[BURN MONITOR] 🔥 New burn candidate {signature}")

            tx = self.rpc.get_transaction(signature, retries=self.retries, delay=self.retry_delay)

            recorded = []
            for idx, burner, amount in iter_burn_transfers(tx, self.burn_account, self.decimals):
                event = BurnEvent.create(
                    signature=signature,
                    burner=burner,
                    amount=amount,
                    instruction_index=idx,
                    source=SOURCE_LIVE,
                )
                if not self.ledger.record_live(event):
                    continue

                recorded.append(event)
                logger.info(
                    f"[BURN MONITOR] 💎 Amount: {event.amount:,} | "
                    f"Burner: {event.burner} | Reward: {event.reward_tier}"
                )
                self._notify(event)

            return recorded

        except Exception as e:
            logger.warning(f"[BURN MONITOR] notification dropped: {e!r}")
            return []

    def _notify(self, event: BurnEvent) -> None:
        if not self.notifier:
            return
        try:
            self.notifier.notify(event)
        except Exception as e:
            logger.warning(f"[BURN MONITOR] notify hook failed: {e}")

    # ============================================
    # Subscription
    # ============================================

    def _subscribe(self, ws) -> int:
        ws.send(json.dumps({
            "jsonrpc": "2.0",
            "id": SUBSCRIBE_ID,
            "method": "logsSubscribe",
            "params": [
                {"mentions": [self.burn_account]},
                {"commitment": "confirmed"},
            ],
        }))

        while not self._stop.is_set():
            try:
                reply = json.loads(ws.recv(timeout=OPEN_TIMEOUT_SEC))
            except TimeoutError as e:
                raise SubscriptionError("no logsSubscribe reply") from e

            if reply.get("id") != SUBSCRIBE_ID:
                continue
            if reply.get("error"):
                raise SubscriptionError(f"logsSubscribe rejected: {reply['error']}")
            return int(reply["result"])

        raise SubscriptionError("stopped before subscription completed")

    def _unsubscribe(self, ws, subscription_id: int) -> None:
        try:
            ws.send(json.dumps({
                "jsonrpc": "2.0",
                "id": UNSUBSCRIBE_ID,
                "method": "logsUnsubscribe",
                "params": [subscription_id],
            }))
            logger.info(f"[BURN MONITOR] Unsubscribed {subscription_id}")
        except TRANSPORT_ERRORS as e:
            logger.warning(f"[BURN MONITOR] unsubscribe failed: {e}")

    def _run_session(self) -> None:
        url = self.pool.ws_url()
        logger.info(f"[BURN MONITOR] Connecting {redact(url)}")

        ws = self._connect(url, open_timeout=OPEN_TIMEOUT_SEC)
        try:
            sub_id = self._subscribe(ws)
            self.subscription_id = sub_id
            self.state = MonitorState.SUBSCRIBED
            self.failures = 0
            logger.info(f"[BURN MONITOR] ✅ Monitoring subscription ID: {sub_id}")

            while not self._stop.is_set():
                try:
                    message = ws.recv(timeout=self.recv_timeout)
                except TimeoutError:
                    continue

                self.state = MonitorState.PROCESSING
                try:
                    self.handle_notification(message)
                finally:
                    self.state = MonitorState.SUBSCRIBED

            self._unsubscribe(ws, sub_id)
        finally:
            self.subscription_id = None
            ws.close()

    # ============================================
    # 🔄 Main Loop
    # ============================================

    def monitor_burns(self) -> None:
        logger.info(f"[BURN MONITOR] 👀 Starting real-time burn monitoring for {self.burn_account}")

        try:
            while not self._stop.is_set():
                try:
                    self._run_session()
                except TRANSPORT_ERRORS as e:
                    self.failures += 1
                    if self.failures > self.max_reconnects:
                        raise MonitorError(
                            f"giving up after {self.max_reconnects} reconnects: {e}"
                        ) from e

                    delay = backoff_delay(self.failures, self.backoff_base, self.backoff_max)
                    logger.warning(
                        f"[BURN MONITOR] transport error ({e}); "
                        f"reconnect {self.failures}/{self.max_reconnects} in {delay:.1f}s"
                    )
                    self.pool.rotate()
                    self._stop.wait(delay)
        except MonitorError as e:
            logger.error(f"[BURN MONITOR] ❌ {e}")
            raise
        finally:
            self.state = MonitorState.TERMINATED
            logger.info("[BURN MONITOR] 🛑 Stopped")

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_thread, name="burn-monitor", daemon=True)
        self._thread.start()

    def _run_thread(self) -> None:
        try:
            self.monitor_burns()
        except MonitorError:
            # already logged; the thread ends with state TERMINATED
            pass

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.recv_timeout + 5.0)

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())


# ============================================
# Tracker: backfill first, then live monitor
# ============================================

class BurnTracker:

    def __init__(
        self,
        ledger: Optional[BurnLedger] = None,
        pool: Optional[EndpointPool] = None,
        rpc: Optional[SolanaRPC] = None,
        notifier: Optional[BurnNotifier] = None,
        burn_account: Optional[str] = None,
        backfill: Optional[BurnBackfill] = None,
        monitor: Optional[BurnMonitor] = None,
    ):
        cfg = NODE_CONFIG["burns"]

        self.ledger = ledger or BurnLedger()
        self.pool = pool or EndpointPool(cfg["endpoints"], name="burns")
        self.rpc = rpc or SolanaRPC(self.pool, timeout=cfg["timeout"], commitment=cfg["commitment"])
        self.notifier = notifier or BurnNotifier()
        self.burn_account = burn_account or burn_token_account()

        self.backfill = backfill or BurnBackfill(self.rpc, self.ledger, self.burn_account)
        self.monitor = monitor or BurnMonitor(
            self.pool, self.rpc, self.ledger, self.burn_account, notifier=self.notifier
        )

        self._lock = threading.Lock()
        self.started = False

    def start(self, limit: int = BACKFILL_LIMIT) -> None:
        with self._lock:
            if self.started:
                return
            logger.info("[BURN TRACKER] 🔥 Initializing burn tracking...")
            self.backfill.fetch_historical_burns(limit)
            self.monitor.start()
            self.started = True

    def stop(self) -> None:
        logger.info("[BURN TRACKER] 🛑 Stopping burn monitor...")
        self.monitor.stop()
        self.notifier.close()
