# ==================================================
# 📊 BURN STATS (Read API)
# Pure functions over a ledger view; never mutate
# ==================================================

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from core.burn_ledger import BurnLedger, BurnerTotals, LedgerView, utc_now

WINDOW_24H = timedelta(hours=24)

RECENT_IN_STATS = 10
HISTORY_IN_BURN_DATA = 100
USER_BURNS_LIMIT = 50


def _top_burner(burners: List[BurnerTotals]) -> Optional[BurnerTotals]:
    # strict > keeps the first-seen burner on ties
    top = None
    for totals in burners:
        if top is None or totals.total > top.total:
            top = totals
    return top


def _ranked(burners: List[BurnerTotals]) -> List[BurnerTotals]:
    # sorted() is stable → ties stay in first-seen order
    return sorted(burners, key=lambda t: t.total, reverse=True)


def stats_from_view(view: LedgerView, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utc_now()

    burned_24h = sum(
        (e.amount for e in view.events if now - e.timestamp < WINDOW_24H),
        Decimal(0),
    )

    total_burns = view.total_burns
    avg_burn_size = view.total_burned / total_burns if total_burns else Decimal(0)

    top = _top_burner(view.burners)

    return {
        "totalBurned": view.total_burned,
        "totalBurns": total_burns,
        "burned24h": burned_24h,
        "avgBurnSize": avg_burn_size,
        "topBurner": {"address": top.address, "amount": top.total} if top else None,
        "recentBurns": [e.to_dict() for e in view.events[:RECENT_IN_STATS]],
    }


def get_stats(ledger: BurnLedger, now: Optional[datetime] = None) -> Dict[str, Any]:
    return stats_from_view(ledger.view(), now=now)


def get_burn_data(ledger: BurnLedger, now: Optional[datetime] = None) -> Dict[str, Any]:
    view = ledger.view()
    return {
        "stats": stats_from_view(view, now=now),
        "history": [e.to_dict() for e in view.events[:HISTORY_IN_BURN_DATA]],
    }


def get_history(ledger: BurnLedger, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
    limit = max(0, int(limit))
    offset = max(0, int(offset))

    events = ledger.snapshot()
    return {
        "burns": [e.to_dict() for e in events[offset:offset + limit]],
        "total": len(events),
        "limit": limit,
        "offset": offset,
    }


def get_user_burns(ledger: BurnLedger, address: str, limit: int = USER_BURNS_LIMIT) -> Dict[str, Any]:
    user_burns = [e for e in ledger.snapshot() if e.burner == address]
    return {
        "address": address,
        "totalBurned": sum((e.amount for e in user_burns), Decimal(0)),
        "burnCount": len(user_burns),
        "burns": [e.to_dict() for e in user_burns[:limit]],
    }


def get_leaderboard(ledger: BurnLedger, limit: int = 10) -> Dict[str, Any]:
    burners = ledger.view().burners
    return {
        "leaderboard": [t.to_dict() for t in _ranked(burners)[:max(0, int(limit))]],
        "total": len(burners),
    }


def get_recent(ledger: BurnLedger, limit: int = 5) -> Dict[str, Any]:
    return {
        "burns": [e.to_dict() for e in ledger.snapshot()[:max(0, int(limit))]],
    }
