"""Token verifier + wallet service against a scripted RPC."""

from __future__ import annotations

import base64
import struct
from decimal import Decimal

import services.token_verifier as token_verifier
from conftest import Replies, ScriptedRPC
from nodes.rpc import RPCError
from services.wallet_service import (
    estimate_transaction_fee,
    fee_probe_message,
    get_wallet_balance,
    raw_token_amount,
)

INCINERATOR = "1nc1nerator11111111111111111111111111111111"
BLOCKHASH = "11111111111111111111111111111111"


def account_data(raw_amount: int) -> str:
    return base64.b64encode(bytes(64) + struct.pack("<Q", raw_amount) + bytes(93)).decode()


def parsed_accounts(ui_amount) -> dict:
    return {"value": [{
        "pubkey": "Ata",
        "account": {"data": {"parsed": {"info": {"tokenAmount": {"uiAmount": ui_amount}}}}},
    }]}


class TestVerifyToken:
    def test_verified(self):
        rpc = ScriptedRPC({
            "getAccountInfo": {"value": {"owner": "Tokenz", "data": ["", "base64"]}},
            "getTokenSupply": {"value": {"amount": "999000000000000", "decimals": 6,
                                         "uiAmount": 999000000.0, "uiAmountString": "999000000"}},
        })

        result = token_verifier.verify_token(rpc=rpc, delay=0)

        assert result.exists is True
        assert result.supply_total == Decimal("999000000")
        assert result.decimals == 6
        assert result.to_dict()["supply"] == {"total": Decimal("999000000"), "decimals": 6}

    def test_mint_not_found(self):
        rpc = ScriptedRPC({"getAccountInfo": {"value": None}})

        result = token_verifier.verify_token(rpc=rpc, delay=0)

        assert result.exists is False
        assert result.error == "Token account not found on mainnet"
        assert rpc.methods() == ["getAccountInfo"]

    def test_rpc_failure_after_retries(self):
        rpc = ScriptedRPC({"getAccountInfo": RPCError("node down")})

        result = token_verifier.verify_token(retries=3, rpc=rpc, delay=0)

        assert result.exists is False
        assert "node down" in result.error
        assert rpc.methods() == ["getAccountInfo"] * 3

    def test_transient_failure_recovers_on_next_endpoint(self):
        rpc = ScriptedRPC({
            "getAccountInfo": Replies([RPCError("503"), {"value": {"data": ["", "base64"]}}]),
            "getTokenSupply": {"value": {"decimals": 6, "uiAmount": 5.0}},
        })

        result = token_verifier.verify_token(rpc=rpc, delay=0)

        assert result.exists is True
        assert result.supply_total == Decimal("5.0")
        assert rpc.pool.current() == "https://rpc-b.test"


class TestTokenBalance:
    def test_no_account(self):
        rpc = ScriptedRPC({"getTokenAccountsByOwner": {"value": []}})
        result = token_verifier.get_token_balance(INCINERATOR, rpc=rpc, delay=0)
        assert result.to_dict() == {"success": True, "balance": Decimal(0), "hasAccount": False}

    def test_with_account(self):
        rpc = ScriptedRPC({"getTokenAccountsByOwner": parsed_accounts(42.5)})
        result = token_verifier.get_token_balance(INCINERATOR, rpc=rpc, delay=0)
        assert result.balance == Decimal("42.5")
        assert result.has_account is True


class TestEndpointHealth:
    def test_mixed_health(self):
        def factory(pool, timeout):
            endpoint = pool.current()
            if "bad" in endpoint:
                return ScriptedRPC({"getVersion": RPCError("timeout")}, endpoints=(endpoint,))
            return ScriptedRPC({"getVersion": {"solana-core": "2.1.0"}}, endpoints=(endpoint,))

        results = token_verifier.test_rpc_endpoints(
            ["https://good.test", "https://bad.test?api-key=secret"], timeout=1.0, rpc_factory=factory,
        )

        assert [r.healthy for r in results] == [True, False]
        assert results[0].version == "2.1.0"
        assert results[0].to_dict()["latency"] >= 0
        assert "secret" not in results[1].endpoint
        assert results[1].to_dict() == {
            "endpoint": results[1].endpoint, "status": "unhealthy", "error": "timeout",
        }


class TestWalletBalance:
    def test_parsed_method(self):
        rpc = ScriptedRPC({"getTokenAccountsByOwner": parsed_accounts(1234.5)})

        result = get_wallet_balance(INCINERATOR, rpc=rpc, delay=0)

        assert result.success is True
        assert result.balance == Decimal("1234.5")
        assert result.method == "parsed"

    def test_falls_back_to_raw_account_data(self):
        rpc = ScriptedRPC({
            "getTokenAccountsByOwner": RPCError("method not supported"),
            "getAccountInfo": {"value": {"data": [account_data(2_500_000), "base64"]}},
        })

        result = get_wallet_balance(INCINERATOR, rpc=rpc, delay=0)

        assert result.success is True
        assert result.balance == Decimal("2.5")
        assert result.method == "raw"
        assert rpc.methods() == ["getTokenAccountsByOwner", "getAccountInfo"]

    def test_raw_missing_account_is_zero(self):
        rpc = ScriptedRPC({
            "getTokenAccountsByOwner": RPCError("nope"),
            "getAccountInfo": {"value": None},
        })
        result = get_wallet_balance(INCINERATOR, rpc=rpc, delay=0)
        assert result.balance == Decimal(0)

    def test_both_methods_fail(self):
        rpc = ScriptedRPC({
            "getTokenAccountsByOwner": RPCError("nope"),
            "getAccountInfo": RPCError("still nope"),
        })

        result = get_wallet_balance(INCINERATOR, retries=2, rpc=rpc, delay=0)

        assert result.success is False
        assert "still nope" in result.error
        assert result.to_dict() == {"success": False, "error": result.error}

    def test_raw_token_amount(self):
        assert raw_token_amount(account_data(123_456_789), decimals=6) == Decimal("123.456789")


class TestFeeEstimate:
    def test_fee_in_sol(self):
        rpc = ScriptedRPC({
            "getLatestBlockhash": {"value": {"blockhash": BLOCKHASH, "lastValidBlockHeight": 1}},
            "getFeeForMessage": {"value": 5000},
        })

        result = estimate_transaction_fee(rpc=rpc, delay=0)

        assert result.success is True
        assert result.fee == Decimal("0.000005")
        method, params = rpc.calls[-1]
        assert method == "getFeeForMessage"
        assert params[0] == fee_probe_message(BLOCKHASH)

    def test_null_fee_is_retried_then_fails(self):
        rpc = ScriptedRPC({
            "getLatestBlockhash": {"value": {"blockhash": BLOCKHASH}},
            "getFeeForMessage": {"value": None},
        })

        result = estimate_transaction_fee(retries=2, rpc=rpc, delay=0)

        assert result.success is False
        assert rpc.methods().count("getFeeForMessage") == 2

    def test_probe_message_is_base64(self):
        assert base64.b64decode(fee_probe_message(BLOCKHASH))
