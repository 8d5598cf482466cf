MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

INTERVAL_MS: dict[str, int] = {
    "1m": MINUTE_MS,
    "3m": 3 * MINUTE_MS,
    "5m": 5 * MINUTE_MS,
    "15m": 15 * MINUTE_MS,
    "30m": 30 * MINUTE_MS,
    "1h": HOUR_MS,
    "2h": 2 * HOUR_MS,
    "4h": 4 * HOUR_MS,
    "6h": 6 * HOUR_MS,
    "8h": 8 * HOUR_MS,
    "12h": 12 * HOUR_MS,
    "1d": DAY_MS,
    "3d": 3 * DAY_MS,
    "1w": 7 * DAY_MS,
    "1M": 30 * DAY_MS,
}

INTERVAL_CHOICES: dict[str, str] = {code: code for code in INTERVAL_MS}

DEFAULT_INTERVAL_MS = MINUTE_MS
QUOTE_ASSET = "USDT"


def interval_to_ms(interval: str) -> int:
    """
    Convert an exchange interval code ("1m" .. "1M") to its duration.

    Unknown codes fall back to one minute, the same way the exchange UI does.

    Args:
        interval: Interval code, case-sensitive ("1m" is a minute, "1M" a month).

    Returns:
        Interval length in milliseconds.
    """
    return INTERVAL_MS.get(interval, DEFAULT_INTERVAL_MS)


def format_symbol(symbol: str, quote: str = QUOTE_ASSET) -> str:
    """
    Normalize a trading symbol for the candle source.

    "btc" -> "BTCUSDT", "ethusdt" -> "ETHUSDT".

    Args:
        symbol: Base asset or full pair.
        quote: Quote asset appended when missing.

    Returns:
        Upper-cased pair symbol.
    """
    s = (symbol or "").strip().upper()
    return s if quote in s else f"{s}{quote}"
