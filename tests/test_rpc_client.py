"""JSON-RPC client: transport errors, JSON-RPC errors, retry with rotation."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from nodes.pool import EndpointPool
from nodes.rpc import RPCError, RPCRetryError, SolanaRPC, retry_with_rotation


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def rpc(session):
    return SolanaRPC(EndpointPool(["https://a.test", "https://b.test"]), timeout=2.5, session=session)


class TestCall:
    def test_posts_jsonrpc_payload(self, rpc, session):
        session.post.return_value = _response({"jsonrpc": "2.0", "id": 1, "result": 42})

        assert rpc.call("getSlot") == 42

        args, kwargs = session.post.call_args
        assert args[0] == "https://a.test"
        assert kwargs["json"]["method"] == "getSlot"
        assert kwargs["json"]["params"] == []
        assert kwargs["timeout"] == 2.5

    def test_jsonrpc_error_raises(self, rpc, session):
        session.post.return_value = _response({"error": {"code": -32000, "message": "boom"}})
        with pytest.raises(RPCError, match="boom"):
            rpc.call("getSlot")

    def test_http_error_raises(self, rpc, session):
        resp = _response({})
        resp.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")
        session.post.return_value = resp
        with pytest.raises(RPCError, match="429"):
            rpc.call("getSlot")

    def test_timeout_raises(self, rpc, session):
        session.post.side_effect = requests.Timeout("read timed out")
        with pytest.raises(RPCError):
            rpc.call("getSlot")

    @pytest.mark.parametrize("body", [None, [], "rate limited"])
    def test_non_object_body_raises(self, rpc, session, body):
        session.post.return_value = _response(body)
        with pytest.raises(RPCError, match="malformed"):
            rpc.call("getSlot")


class TestRetry:
    def test_rotates_and_succeeds(self, rpc, session):
        session.post.side_effect = [
            requests.ConnectionError("refused"),
            _response({"result": "ok"}),
        ]

        assert rpc.call_with_retry("getHealth", retries=3, delay=0) == "ok"

        urls = [c.args[0] for c in session.post.call_args_list]
        assert urls == ["https://a.test", "https://b.test"]
        assert rpc.pool.current() == "https://b.test"

    def test_malformed_body_rotates_and_retries(self, rpc, session):
        session.post.side_effect = [_response(None), _response({"result": {"slot": 7}})]

        assert rpc.call_with_retry("getTransaction", retries=2, delay=0) == {"slot": 7}
        assert session.post.call_count == 2
        assert rpc.pool.current() == "https://b.test"

    def test_retries_exhausted(self, rpc, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(RPCRetryError) as exc:
            rpc.call_with_retry("getHealth", retries=3, delay=0)

        assert exc.value.attempts == 3
        assert session.post.call_count == 3
        assert isinstance(exc.value.last_error, RPCError)

    def test_no_rotation_after_last_attempt(self):
        pool = EndpointPool(["a", "b", "c"])
        op = MagicMock(side_effect=RPCError("down"))

        with pytest.raises(RPCRetryError):
            retry_with_rotation(pool, op, retries=2, delay=0)

        assert op.call_count == 2
        assert pool.current() == "b"

    def test_zero_retries_rejected(self):
        with pytest.raises(ValueError):
            retry_with_rotation(EndpointPool(["a"]), lambda: None, retries=0)

    def test_unlisted_errors_propagate(self):
        def op():
            raise KeyError("shape")

        with pytest.raises(KeyError):
            retry_with_rotation(EndpointPool(["a"]), op, retries=3, delay=0)


class TestTypedWrappers:
    def test_get_transaction_requests_json_parsed(self, rpc, session):
        session.post.return_value = _response({"result": {"meta": {}}})

        rpc.get_transaction("sig1", retries=1)

        params = session.post.call_args.kwargs["json"]["params"]
        assert params[0] == "sig1"
        assert params[1]["encoding"] == "jsonParsed"
        assert params[1]["maxSupportedTransactionVersion"] == 0

    def test_get_signatures_passes_limit(self, rpc, session):
        session.post.return_value = _response({"result": [{"signature": "s"}]})

        assert rpc.get_signatures_for_address("Acct", limit=25, retries=1) == [{"signature": "s"}]
        assert session.post.call_args.kwargs["json"]["params"][1]["limit"] == 25

    def test_get_signatures_null_result(self, rpc, session):
        session.post.return_value = _response({"result": None})
        assert rpc.get_signatures_for_address("Acct", retries=1) == []

    def test_get_version(self, rpc, session):
        session.post.return_value = _response({"result": {"solana-core": "2.1.0", "feature-set": 1}})
        assert rpc.get_version(retries=1)["solana-core"] == "2.1.0"
        assert session.post.call_args.kwargs["json"]["method"] == "getVersion"


def test_info_redacts_api_key(session):
    rpc = SolanaRPC(EndpointPool(["https://rpc.test/?api-key=secret"], name="burns"), session=session)
    assert rpc.info() == "burns@https://rpc.test/?…"
