# core/domain/entities/candle_entity.py
from datetime import datetime
from typing import Tuple

from pydantic import ConfigDict, field_validator

from core.common.utils import ensure_utc

from ..enums.resolution import Resolution
from .base_entity import MongoEntity

class CandleEntity(MongoEntity):
    """
    OHLCV summary of one (market_name, start_time, resolution) bucket.
    `resolution` holds the canonical string key (e.g. "1M").
    """
    market_name: str
    start_time: datetime
    end_time: datetime
    resolution: Resolution
    open: float
    close: float
    high: float
    low: float
    volume: float
    complete: bool = False

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    @field_validator("start_time", "end_time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def key(self) -> Tuple[str, datetime, str]:
        return (self.market_name, self.start_time, str(self.resolution))
