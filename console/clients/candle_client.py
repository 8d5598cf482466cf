import httpx
import logging
from typing import Optional, Dict, Any, List
from nicegui import app

from config import settings
from exceptions import CandleSourceError
from schemas.chart import Candle
from utils.intervals import format_symbol, interval_to_ms

logger = logging.getLogger(__name__)


class CandleClient:
    """
    Thin async client for the exchange's public market data API.

    Uses a shared `httpx.AsyncClient` stored in `app.state.candles_httpx`
    unless a client is passed explicitly. Unlike the backtest client, every
    failure is raised as `CandleSourceError` so the chart can keep its
    current window and report the problem.
    """
    KLINES_PATH = "/api/v3/klines"
    TICKER_PRICE_PATH = "/api/v3/ticker/price"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, max_per_request: Optional[int] = None) -> None:
        self.client: httpx.AsyncClient = client if client is not None else app.state.candles_httpx
        self.max_per_request: int = max_per_request or settings.CANDLE_MAX_PER_REQUEST
        logger.info("CandleClient initialized with shared httpx.AsyncClient")

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET `url` and decode the JSON body.

        Raises:
            CandleSourceError: on timeout, transport error, non-200 status
                or an undecodable body.
        """
        try:
            resp = await self.client.get(url, params=params)
        except (httpx.ConnectTimeout, httpx.ReadTimeout) as ex:
            logger.warning(f"Candle source timeout {url}")
            raise CandleSourceError(f"Candle source timeout: {url}") from ex
        except httpx.HTTPError as ex:
            logger.error(f"Candle source HTTP error {url}: {ex!r}")
            raise CandleSourceError(f"Candle source HTTP error: {ex}") from ex

        if resp.status_code != 200:
            logger.error(f"Candle source {url} unexpected status {resp.status_code}: {resp.text}")
            raise CandleSourceError(
                f"Candle source error: {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as ex:
            logger.exception(f"Failed to decode JSON from {url}")
            raise CandleSourceError("Candle source returned invalid JSON") from ex

    async def fetch_klines(self, symbol: str, interval: str, start_ms: int, end_ms: int) -> List[Candle]:
        """
        Fetch one page of klines (at most `max_per_request` candles).

        Args:
            symbol: Pair symbol, e.g. "BTCUSDT".
            interval: Interval code, e.g. "1h".
            start_ms: Range start in epoch milliseconds.
            end_ms: Range end in epoch milliseconds.

        Returns:
            Candles ascending by open time.
        """
        interval_ms = interval_to_ms(interval)
        estimated = -(-(end_ms - start_ms) // interval_ms)
        limit = max(1, min(self.max_per_request, estimated))
        params = {
            "symbol": symbol.upper(),
            "interval": interval,
            "startTime": int(start_ms),
            "endTime": int(end_ms),
            "limit": limit,
        }
        data = await self._get_json(self.KLINES_PATH, params=params)
        if not isinstance(data, list):
            logger.error(f"fetch_klines({symbol}, {interval}): unexpected payload type {type(data)}")
            raise CandleSourceError("Candle source returned an unexpected payload")
        try:
            return [Candle.from_kline(row) for row in data]
        except (IndexError, TypeError, ValueError) as ex:
            logger.exception(f"fetch_klines({symbol}, {interval}): malformed kline row")
            raise CandleSourceError("Candle source returned a malformed kline") from ex

    async def fetch_candles(self, symbol: str, interval: str, start_ms: int, end_ms: int) -> List[Candle]:
        """
        Fetch all candles in [start_ms, end_ms], splitting the range into
        pages of at most `max_per_request` candles.

        Paging stops at the end of the range or at the first short page.
        The next page starts 1 ms after the previous page's end.
        """
        logger.info(f"fetch_candles: symbol={symbol!r} interval={interval!r} range=({start_ms}, {end_ms})")
        max_span = self.max_per_request * interval_to_ms(interval)

        out: List[Candle] = []
        current = int(start_ms)
        while current < end_ms:
            chunk_end = min(current + max_span, int(end_ms))
            candles = await self.fetch_klines(symbol, interval, current, chunk_end)
            out.extend(candles)
            if len(candles) < self.max_per_request or chunk_end >= end_ms:
                break
            current = chunk_end + 1

        logger.info(f"fetch_candles: received {len(out)} candles for {symbol!r}")
        return out

    async def get_latest_price(self, symbol: str) -> Optional[float]:
        """
        Latest traded price for a symbol, or None if it cannot be read.
        """
        try:
            data = await self._get_json(self.TICKER_PRICE_PATH, params={"symbol": format_symbol(symbol)})
            return float(data["price"])
        except CandleSourceError:
            return None
        except (KeyError, TypeError, ValueError):
            logger.exception(f"get_latest_price({symbol}): malformed payload")
            return None
