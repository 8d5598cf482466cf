import asyncio

import httpx
import pytest

from clients.candle_client import CandleClient
from exceptions import CandleSourceError


def kline(t_ms: int, price: str = "100.5") -> list:
    return [t_ms, price, "101.0", "99.0", "100.0", "12.5", t_ms + 59_999, "0", 10, "0", "0", "0"]


def make_client(handler, **kwargs) -> CandleClient:
    http = httpx.AsyncClient(base_url="https://candles.test", transport=httpx.MockTransport(handler))
    return CandleClient(client=http, **kwargs)


def test_fetch_klines_parses_rows_and_sends_range() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json=[kline(0), kline(60_000)])

    candles = asyncio.run(make_client(handler).fetch_klines("btcusdt", "1m", 0, 120_000))

    assert [c.time for c in candles] == [0, 60_000]
    assert candles[0].open == 100.5
    assert candles[0].volume == 12.5
    assert seen == [{
        "symbol": "BTCUSDT",
        "interval": "1m",
        "startTime": "0",
        "endTime": "120000",
        "limit": "2",
    }]


def test_fetch_candles_pages_large_ranges() -> None:
    pages = [[kline(0), kline(60_000)], [kline(120_000), kline(180_000)], [kline(240_000)]]
    starts = []

    def handler(request: httpx.Request) -> httpx.Response:
        starts.append(int(request.url.params["startTime"]))
        return httpx.Response(200, json=pages[len(starts) - 1])

    candles = asyncio.run(make_client(handler, max_per_request=2).fetch_candles("BTCUSDT", "1m", 0, 300_000))

    assert [c.time for c in candles] == [0, 60_000, 120_000, 180_000, 240_000]
    assert starts == [0, 120_001, 240_002]


def test_fetch_candles_stops_on_short_page() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[kline(0)])

    candles = asyncio.run(make_client(handler, max_per_request=2).fetch_candles("BTCUSDT", "1m", 0, 600_000))

    assert len(candles) == 1
    assert len(calls) == 1


def test_non_200_status_raises_candle_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"msg": "too many requests"})

    with pytest.raises(CandleSourceError) as info:
        asyncio.run(make_client(handler).fetch_candles("BTCUSDT", "1h", 0, 3_600_000))
    assert info.value.status_code == 429


def test_transport_error_raises_candle_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CandleSourceError):
        asyncio.run(make_client(handler).fetch_klines("BTCUSDT", "1h", 0, 3_600_000))


def test_malformed_payload_raises_candle_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": -1121, "msg": "Invalid symbol."})

    with pytest.raises(CandleSourceError):
        asyncio.run(make_client(handler).fetch_klines("NOPE", "1h", 0, 3_600_000))


def test_latest_price() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["symbol"] == "ETHUSDT"
        return httpx.Response(200, json={"symbol": "ETHUSDT", "price": "2500.25"})

    assert asyncio.run(make_client(handler).get_latest_price("eth")) == 2500.25


def test_latest_price_is_none_on_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    assert asyncio.run(make_client(handler).get_latest_price("ETHUSDT")) is None
