# ==============================================
# 🔧 Burn Transaction Parsing
# Shared by backfill + live workers
# ==============================================

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Generator, Optional, Tuple

TOKEN_PROGRAMS = ("spl-token", "spl-token-2022")
TRANSFER_TYPES = ("transfer", "transferChecked")


def has_confirmed_meta(tx: Optional[Dict[str, Any]]) -> bool:
    """
    True when the transaction exists, carries meta, and did not fail.
    """
    if not tx:
        return False
    meta = tx.get("meta")
    if not meta:
        return False
    return meta.get("err") is None


def block_time(tx: Dict[str, Any]) -> Optional[datetime]:
    bt = tx.get("blockTime")
    if bt is None:
        return None
    return datetime.fromtimestamp(int(bt), tz=timezone.utc)


def token_amount(info: Dict[str, Any], decimals: int) -> Optional[Decimal]:
    """
    transfer:        info.amount (raw string), scaled by the mint decimals
    transferChecked: info.tokenAmount.{amount, decimals}
    """
    raw = info.get("amount")
    token_amt = info.get("tokenAmount") or {}

    if raw is None and token_amt:
        raw = token_amt.get("amount")
        decimals = int(token_amt.get("decimals", decimals))

    if raw is None:
        return None

    try:
        amount = Decimal(str(raw))
    except InvalidOperation:
        return None

    # NaN / Infinity are not token amounts
    if not amount.is_finite():
        return None
    return amount.scaleb(-decimals)


def instructions(tx: Dict[str, Any]):
    return ((tx.get("transaction") or {}).get("message") or {}).get("instructions") or []


def iter_burn_transfers(
    tx: Optional[Dict[str, Any]],
    burn_account: str,
    decimals: int,
) -> Generator[Tuple[int, str, Decimal], None, None]:
    """
    Yields (instruction_index, burner, amount) for every top-level SPL token
    transfer whose destination is the burn token account.
    """
    if not has_confirmed_meta(tx):
        return

    for idx, ix in enumerate(instructions(tx)):
        if ix.get("program") not in TOKEN_PROGRAMS:
            continue

        parsed = ix.get("parsed")
        if not isinstance(parsed, dict) or parsed.get("type") not in TRANSFER_TYPES:
            continue

        info = parsed.get("info")
        if not isinstance(info, dict) or info.get("destination") != burn_account:
            continue

        burner = info.get("authority") or info.get("multisigAuthority")
        if not burner:
            continue

        amount = token_amount(info, decimals)
        if amount is None or amount < 0:
            continue

        yield (idx, burner, amount)
