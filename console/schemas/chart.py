from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import StrEnum
from typing import Any, Literal, Optional, Sequence

from utils.dates import ms_to_seconds


class Side(StrEnum):
    LEFT = "L"
    RIGHT = "R"


def _to_float(v):
    if v is None:
        return None
    if isinstance(v, str):
        return float(v.strip())
    return float(v)


class Candle(BaseModel):
    """One kline as returned by the candle source (time in epoch milliseconds)."""
    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @field_validator('open', 'high', 'low', 'close', 'volume', mode='before')
    @classmethod
    def _coerce_price(cls, v):
        return _to_float(v)

    @classmethod
    def from_kline(cls, row: Sequence[Any]) -> "Candle":
        """
        Build a candle from a Binance kline row:
        [open_time, open, high, low, close, volume, close_time, ...].
        """
        return cls(
            time=int(row[0]),
            open=row[1],
            high=row[2],
            low=row[3],
            close=row[4],
            volume=row[5] if len(row) > 5 else None,
        )


class Bar(BaseModel):
    """One chart bar (time in epoch seconds, unique key of the window)."""
    model_config = ConfigDict(frozen=True)

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @classmethod
    def from_candle(cls, candle: Candle) -> "Bar":
        return cls(
            time=ms_to_seconds(candle.time),
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
            volume=candle.volume,
        )


class Trade(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: int
    price: float
    reason: str
    quantity: float
    side: str
    pnl: Optional[float] = None
    position_result: Optional[str] = None
    position_pnl: Optional[float] = None
    balance: Optional[float] = None

    @field_validator('price', 'quantity', 'pnl', 'position_pnl', 'balance', mode='before')
    @classmethod
    def _coerce_amount(cls, v):
        return _to_float(v)

    @field_validator('time', mode='before')
    @classmethod
    def _coerce_time(cls, v):
        return int(float(v))

    @property
    def is_long(self) -> bool:
        return "LONG" in self.side.upper()


class Marker(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: int
    position: Literal["belowBar", "aboveBar"]
    color: str
    shape: Literal["arrowUp", "arrowDown", "circle", "square"]
    text: str
    size: int = 1
    trade: Trade


class LoadRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    bars_to_load: int = Field(ge=1)
    side: Side
