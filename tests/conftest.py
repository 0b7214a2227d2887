"""Shared fixtures: ledgers, burn events, parsed transactions, a scripted RPC."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock

import pytest

from core.burn_ledger import BurnEvent, BurnLedger
from nodes.pool import EndpointPool
from nodes.rpc import SolanaRPC

BURN_ACCOUNT = "BurnTokenAcct1111111111111111111111111111111"
ALICE = "A1ice111111111111111111111111111111111111111"
BOB = "B0b11111111111111111111111111111111111111111"

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class Replies(list):
    """Responses handed out one per call, in order."""


class ScriptedRPC(SolanaRPC):
    """SolanaRPC whose transport is a dict of method -> response.

    A response may be a value, an exception instance (raised), a
    ``Replies`` (consumed one item per call), or a callable taking params.
    """

    def __init__(self, responses: dict[str, Any] | None = None,
                 endpoints: tuple[str, ...] = ("https://rpc-a.test", "https://rpc-b.test")):
        super().__init__(EndpointPool(list(endpoints), name="test"), timeout=1.0, session=MagicMock())
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, Any]] = []

    def call(self, method, params=None):
        self.calls.append((method, params))
        resp = self.responses[method]
        if isinstance(resp, Replies):
            resp = resp.pop(0)
        if callable(resp) and not isinstance(resp, Exception):
            resp = resp(params)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]


def transfer_ix(burner: str, raw_amount: int, destination: str = BURN_ACCOUNT,
                program: str = "spl-token", kind: str = "transfer") -> dict:
    info: dict[str, Any] = {"source": "SrcAcct", "destination": destination, "authority": burner}
    if kind == "transferChecked":
        info["tokenAmount"] = {"amount": str(raw_amount), "decimals": 6}
        info["mint"] = "Mint"
    else:
        info["amount"] = str(raw_amount)
    return {"program": program, "programId": "Tokenz", "parsed": {"type": kind, "info": info}}


def make_tx(*instructions: dict, block_time: int | None = 1_760_000_000,
            err: Any = None, meta: bool = True) -> dict:
    tx: dict[str, Any] = {
        "blockTime": block_time,
        "transaction": {"message": {"instructions": list(instructions)}},
    }
    if meta:
        tx["meta"] = {"err": err, "fee": 5000}
    return tx


def log_notification(signature: str, err: Any = None) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": "logsNotification",
        "params": {
            "result": {"context": {"slot": 1}, "value": {"signature": signature, "err": err, "logs": []}},
            "subscription": 7,
        },
    }


@pytest.fixture
def ledger() -> BurnLedger:
    return BurnLedger(max_events=1000)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_event():
    counter = {"n": 0}

    def _make(burner: str = ALICE, amount: Any = 100, age: timedelta = timedelta(0),
              signature: str | None = None, instruction_index: int = 0,
              source: str = "live") -> BurnEvent:
        counter["n"] += 1
        return BurnEvent.create(
            signature=signature or f"sig-{counter['n']}",
            burner=burner,
            amount=Decimal(str(amount)),
            timestamp=NOW - age,
            instruction_index=instruction_index,
            source=source,
        )

    return _make
