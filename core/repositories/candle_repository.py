from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from core.domain.entities.candle_entity import CandleEntity
from core.domain.enums.resolution import Resolution


class CandleRepository(ABC):
    """
    Repository contract for persisted candle buckets.

    One candle exists per (market_name, start_time, resolution). merge_upsert
    overwrites open/close/high/low/volume/complete unconditionally, so every
    candle handed to it must be the aggregate of the FULL fill set of its
    bucket (CandleAggregationService output). Two writers racing with partial
    fill sets for the same bucket will corrupt open/high/low; nothing here
    locks against that.
    """

    EARLIEST_LIMIT = 2000

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Unique index on (market_name, start_time, resolution) plus read indexes."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_latest_complete(
        self, market_name: str, resolution: Resolution
    ) -> Optional[CandleEntity]:
        """Most recent complete candle by start_time, or None."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_earliest(
        self, market_name: str, resolution: Resolution, limit: int = EARLIEST_LIMIT
    ) -> List[CandleEntity]:
        """
        Oldest candles ascending by start_time, at most `limit` (capped at 2000).
        Page with fetch_range for more.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_range(
        self,
        market_name: str,
        resolution: Resolution,
        start: datetime,
        end: datetime,
    ) -> List[CandleEntity]:
        """Candles with start_time >= start and end_time <= end, ascending."""
        raise NotImplementedError

    @abstractmethod
    async def merge_upsert(self, candles: Sequence[CandleEntity]) -> None:
        """
        Insert-or-overwrite the whole batch atomically. Any failure aborts
        every row of the batch and propagates; retrying with the same input is safe.
        """
        raise NotImplementedError
