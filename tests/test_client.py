"""MEV-Share history client against a mocked HTTP transport."""

from __future__ import annotations

import httpx
import pytest

from mev_share_analysis.errors import DisclosureError
from mev_share_analysis.mevshare.client import MevShareHistoryClient
from mev_share_analysis.models.events import HistoryParams

from tests.factories import make_hash

BASE = "https://mev-share.example/api/v1/history"

INFO = {
    "count": 1234,
    "minBlock": 17_000_000,
    "maxBlock": 17_500_000,
    "minTimestamp": 1_680_000_000,
    "maxTimestamp": 1_690_000_000,
    "maxLimit": 500,
}


def _record(seed: int) -> dict:
    return {
        "block": 17_000_000 + seed,
        "timestamp": 1_680_000_000 + seed,
        "hint": {
            "hash": make_hash(seed).upper().replace("0X", "0x"),
            "txs": [{"to": "0x" + "1" * 40, "callData": "0x", "functionSelector": "0xa9059cbb"}],
            "logs": None,
            "mevGasPrice": "0x3b9aca00",
            "gasUsed": "0x5208",
        },
    }


def _client(handler) -> MevShareHistoryClient:
    return MevShareHistoryClient(BASE, transport=httpx.MockTransport(handler))


async def test_get_info():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=INFO)

    client = _client(handler)
    info = await client.get_info()
    await client.close()

    assert seen == [f"{BASE}/info"]
    assert info.count == 1234
    assert info.min_block == 17_000_000
    assert info.max_block == 17_500_000
    assert info.max_limit == 500
    assert info.max_timestamp == 1_690_000_000


async def test_get_events_sends_window_and_parses():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json=[_record(1), _record(2)])

    client = _client(handler)
    params = HistoryParams(block_start=100, block_end=105, limit=50, offset=3)
    events = await client.get_events(params)
    await client.close()

    assert seen == [{"blockStart": "100", "blockEnd": "105", "limit": "50", "offset": "3"}]
    assert [e.block for e in events] == [17_000_001, 17_000_002]
    assert events[0].hint.hash == make_hash(1)
    assert events[0].hint.gas_used == 21_000
    assert events[0].hint.logs == ()


async def test_empty_page():
    client = _client(lambda request: httpx.Response(200, json=[]))
    assert await client.get_events(HistoryParams(offset=0)) == []
    await client.close()


@pytest.mark.parametrize("status", [429, 500, 503])
async def test_http_error_status(status):
    client = _client(lambda request: httpx.Response(status, text="busy"))
    with pytest.raises(DisclosureError, match=str(status)):
        await client.get_events(HistoryParams(offset=0))
    await client.close()


async def test_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(DisclosureError):
        await client.get_info()
    await client.close()


async def test_invalid_json():
    client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(DisclosureError, match="invalid JSON"):
        await client.get_info()
    await client.close()


async def test_info_missing_field():
    body = {k: v for k, v in INFO.items() if k != "maxLimit"}
    client = _client(lambda request: httpx.Response(200, json=body))
    with pytest.raises(DisclosureError):
        await client.get_info()
    await client.close()


async def test_page_not_a_list():
    client = _client(lambda request: httpx.Response(200, json={"error": "nope"}))
    with pytest.raises(DisclosureError, match="expected list"):
        await client.get_events(HistoryParams(offset=0))
    await client.close()


async def test_malformed_hint_hash():
    bad = _record(1)
    bad["hint"]["hash"] = "0x1234"
    client = _client(lambda request: httpx.Response(200, json=[bad]))
    with pytest.raises(DisclosureError, match="malformed"):
        await client.get_events(HistoryParams(offset=0))
    await client.close()
