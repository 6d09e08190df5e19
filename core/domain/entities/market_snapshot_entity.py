# core/domain/entities/market_snapshot_entity.py
from typing import Optional

from pydantic import BaseModel


class MarketSnapshot(BaseModel):
    """
    Last traded price plus the 24h high/low/close of one market.
    Prices are None only for a market that never traded.
    """

    market_name: str
    last_price: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    close_24h: Optional[float] = None


class VolumeSnapshot(BaseModel):
    market_name: str
    base_size_24h: float = 0.0
    quote_size_24h: float = 0.0


class TraderVolume(BaseModel):
    owner: str
    ask_size: float = 0.0
    bid_size: float = 0.0

    @property
    def total_size(self) -> float:
        return self.ask_size + self.bid_size
