# ==================================================
# 🔔 BURN NOTIFIER
# Best-effort, fire-and-forget dispatch of new burns
#
# ✅ bounded queue, drop-on-full (never blocks ingestion)
# ✅ one daemon worker fans out to sinks
# ✅ sink failures are logged, never raised
# ==================================================

import json
import queue
import threading
from typing import Callable, List, Optional, Sequence

import redis
import requests
from loguru import logger

from core.burn_ledger import BurnEvent
from core.redis_keys import (
    BURN_EVENTS_CHANNEL,
    BURN_EVENTS_RECENT_KEY,
    BURN_EVENTS_RECENT_MAX,
)
from nodes.config import BURN_WEBHOOK_URL, NOTIFY_QUEUE_SIZE, REDIS_URL

Sink = Callable[[BurnEvent], None]

_STOP = object()


def event_json(event: BurnEvent) -> str:
    return json.dumps(event.to_dict(), default=str, separators=(",", ":"))


def format_burn_text(event: BurnEvent) -> str:
    return (
        f"🔥 New burn: {event.amount:,} tokens "
        f"by {event.burner[:8]}... ({event.reward_tier})"
    )


# ============================================
# Sinks
# ============================================

def log_sink(event: BurnEvent) -> None:
    logger.info(
        "\n🔔 BURN NOTIFICATION\n"
        "═══════════════════\n"
        f"Amount: {event.amount:,}\n"
        f"Burner: {event.burner[:8]}...\n"
        f"Reward: {event.reward_tier}\n"
        f"Time: {event.timestamp.isoformat()}\n"
        "═══════════════════"
    )


class RedisPublishSink:
    """PUBLISH each burn and keep a capped list of recent ones."""

    def __init__(self, client: redis.Redis, recent_max: int = BURN_EVENTS_RECENT_MAX):
        self.client = client
        self.recent_max = recent_max

    @classmethod
    def from_url(cls, url: str) -> "RedisPublishSink":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def __call__(self, event: BurnEvent) -> None:
        payload = event_json(event)
        pipe = self.client.pipeline()
        pipe.publish(BURN_EVENTS_CHANNEL, payload)
        pipe.lpush(BURN_EVENTS_RECENT_KEY, payload)
        pipe.ltrim(BURN_EVENTS_RECENT_KEY, 0, self.recent_max - 1)
        pipe.execute()


class WebhookSink:
    """POST a chat-style text message (Telegram/Discord bridge)."""

    def __init__(self, url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, event: BurnEvent) -> None:
        r = self.session.post(self.url, json={"text": format_burn_text(event)}, timeout=self.timeout)
        r.raise_for_status()


def default_sinks() -> List[Sink]:
    sinks: List[Sink] = [log_sink]
    if REDIS_URL:
        sinks.append(RedisPublishSink.from_url(REDIS_URL))
    if BURN_WEBHOOK_URL:
        sinks.append(WebhookSink(BURN_WEBHOOK_URL))
    return sinks


# ============================================
# Dispatcher
# ============================================

class BurnNotifier:

    def __init__(self, sinks: Optional[Sequence[Sink]] = None, max_queue: int = NOTIFY_QUEUE_SIZE):
        self.sinks: List[Sink] = list(sinks) if sinks is not None else default_sinks()
        self._queue: "queue.Queue" = queue.Queue(maxsize=max_queue)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.dropped = 0
        self.delivered = 0

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run, name="burn-notifier", daemon=True)
            self._thread.start()

    def notify(self, event: BurnEvent) -> bool:
        self.start()
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.warning(f"[BURN NOTIFY] queue full, dropped {event.signature} (dropped={self.dropped})")
            return False
        return True

    def close(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if not thread:
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("[BURN NOTIFY] queue full on close, worker left to exit with process")
            return
        thread.join(timeout)

    def dispatch(self, event: BurnEvent) -> None:
        for sink in self.sinks:
            try:
                sink(event)
            except Exception as e:
                name = getattr(sink, "__name__", type(sink).__name__)
                logger.warning(f"[BURN NOTIFY] sink {name} failed for {event.signature}: {e}")
        self.delivered += 1

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.dispatch(item)
            finally:
                self._queue.task_done()

    def join(self) -> None:
        """Block until every queued event has been dispatched."""
        self._queue.join()
