# ==================================================
# 🔥 BURN LEDGER
# In-memory store of burn events + running aggregates
#
# ✅ history newest-first (live → left, backfill → right)
# ✅ total_burned maintained incrementally under one lock
# ✅ duplicate (signature, instruction) keys are no-ops
# ✅ bounded retention: oldest events retire with their amounts
# ==================================================

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Deque, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from core.reward_tiers import determine_reward_tier
from nodes.config import BURN_LEDGER_MAX_EVENTS

SOURCE_LIVE = "live"
SOURCE_BACKFILL = "backfill"

EventKey = Tuple[str, int]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BurnEvent:
    signature: str
    burner: str
    amount: Decimal
    timestamp: datetime
    reward_tier: str
    instruction_index: int = 0
    source: str = SOURCE_LIVE

    @classmethod
    def create(
        cls,
        signature: str,
        burner: str,
        amount: Decimal,
        timestamp: Optional[datetime] = None,
        instruction_index: int = 0,
        source: str = SOURCE_LIVE,
    ) -> "BurnEvent":
        amount = Decimal(amount)
        return cls(
            signature=signature,
            burner=burner,
            amount=amount,
            timestamp=timestamp or utc_now(),
            reward_tier=determine_reward_tier(amount),
            instruction_index=instruction_index,
            source=source,
        )

    @property
    def key(self) -> EventKey:
        return (self.signature, self.instruction_index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "burner": self.burner,
            "amount": self.amount,
            "timestamp": self.timestamp.isoformat(),
            "reward": self.reward_tier,
            "instructionIndex": self.instruction_index,
            "source": self.source,
        }


@dataclass
class BurnerTotals:
    address: str
    total: Decimal = Decimal(0)
    count: int = 0
    last_burn: Optional[datetime] = None

    def add(self, event: BurnEvent) -> None:
        self.total += event.amount
        self.count += 1
        if self.last_burn is None or event.timestamp > self.last_burn:
            self.last_burn = event.timestamp

    def remove(self, event: BurnEvent) -> None:
        self.total -= event.amount
        self.count -= 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "totalBurned": self.total,
            "burnCount": self.count,
            "lastBurn": self.last_burn.isoformat() if self.last_burn else None,
        }


@dataclass(frozen=True)
class LedgerView:
    """Consistent copy of ledger state taken under the ledger lock."""

    events: List[BurnEvent]
    total_burned: Decimal
    burners: List[BurnerTotals] = field(default_factory=list)

    @property
    def total_burns(self) -> int:
        return len(self.events)


class BurnLedger:

    def __init__(self, max_events: int = BURN_LEDGER_MAX_EVENTS):
        if max_events <= 0:
            raise ValueError("max_events must be > 0")

        self.max_events = max_events

        self._lock = threading.Lock()
        self._history: Deque[BurnEvent] = deque()
        self._seen: Set[EventKey] = set()
        self._burners: Dict[str, BurnerTotals] = {}
        self._total_burned = Decimal(0)
        self._evicted = 0

    # ----------------------------
    # Mutation
    # ----------------------------

    def record_live(self, event: BurnEvent) -> bool:
        with self._lock:
            return self._insert(event, newest=True)

    def record_historical(self, event: BurnEvent) -> bool:
        with self._lock:
            return self._insert(event, newest=False)

    def extend_historical(self, events: Iterable[BurnEvent]) -> int:
        added = 0
        with self._lock:
            for event in events:
                if self._insert(event, newest=False):
                    added += 1
        return added

    def _insert(self, event: BurnEvent, newest: bool) -> bool:
        if event.key in self._seen:
            logger.debug(f"[BURN LEDGER] duplicate {event.signature}#{event.instruction_index} ignored")
            return False

        if newest:
            self._history.appendleft(event)
        else:
            if len(self._history) >= self.max_events:
                # would be retired immediately as the oldest entry
                return False
            self._history.append(event)

        self._seen.add(event.key)
        self._total_burned += event.amount

        totals = self._burners.get(event.burner)
        if totals is None:
            totals = self._burners[event.burner] = BurnerTotals(address=event.burner)
        totals.add(event)

        while len(self._history) > self.max_events:
            self._retire(self._history.pop())

        return True

    def _retire(self, event: BurnEvent) -> None:
        self._seen.discard(event.key)
        self._total_burned -= event.amount
        self._evicted += 1

        totals = self._burners.get(event.burner)
        if totals is not None:
            totals.remove(event)
            if totals.count <= 0:
                del self._burners[event.burner]
            elif totals.last_burn == event.timestamp:
                # lastBurn reflects retained events only
                totals.last_burn = max(
                    e.timestamp for e in self._history if e.burner == event.burner
                )

    # ----------------------------
    # Reads
    # ----------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def __contains__(self, key: EventKey) -> bool:
        with self._lock:
            return key in self._seen

    @property
    def total_burned(self) -> Decimal:
        with self._lock:
            return self._total_burned

    @property
    def evicted(self) -> int:
        with self._lock:
            return self._evicted

    def snapshot(self) -> List[BurnEvent]:
        with self._lock:
            return list(self._history)

    def view(self) -> LedgerView:
        with self._lock:
            return LedgerView(
                events=list(self._history),
                total_burned=self._total_burned,
                burners=[replace(t) for t in self._burners.values()],
            )
