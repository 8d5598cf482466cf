from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional, List

from .chart import Trade


class BacktestResultMetrics(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    total_roi: float = 0.0
    mdd: float = 0.0


class BacktestResultDetail(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    process_id: str
    symbol: Optional[str] = None
    interval: Optional[str] = None
    start_date: int
    end_date: int
    trades: List[Trade] = Field(default_factory=list)
    metrics: BacktestResultMetrics = Field(default_factory=BacktestResultMetrics)
    created_at: Optional[str] = None

    @property
    def sorted_trades(self) -> List[Trade]:
        return sorted(self.trades, key=lambda t: t.time)
