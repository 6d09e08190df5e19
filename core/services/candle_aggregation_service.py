# core/services/candle_aggregation_service.py

from datetime import datetime
from typing import Iterable, List, Optional

from core.common.utils import ensure_utc, floor_time, utcnow
from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.fill_entity import FillEntity
from core.domain.enums.resolution import Resolution


class EmptyBucketError(ValueError):
    """Raised when a bucket is aggregated without any maker fill."""


class CandleAggregationService:
    """
    Reduces the fills of one (market, resolution, bucket) to a single candle.

    Rules:
      - Only maker fills count; taker legs of the same trades are dropped so a
        trade is never counted twice.
      - Fills are ordered by (time, seq_num); the first gives `open`, the last `close`.
      - `complete` is True only when end_time is strictly before `now`.

    The caller must pass the complete fill set of the bucket every time. The
    result is written as-is by CandleRepository.merge_upsert, which overwrites
    open/high/low, so a partial fill set would silently corrupt the stored candle.
    """

    @staticmethod
    def bucket_start(ts: datetime, resolution: Resolution) -> datetime:
        return floor_time(ts, Resolution(resolution).duration)

    @classmethod
    def bucket_starts(
        cls, start: datetime, end: datetime, resolution: Resolution
    ) -> List[datetime]:
        """
        Aligned bucket starts covering [start, end).
        """
        step = Resolution(resolution).duration
        cursor = cls.bucket_start(start, resolution)
        end = ensure_utc(end)
        out: List[datetime] = []
        while cursor < end:
            out.append(cursor)
            cursor += step
        return out

    def aggregate(
        self,
        market_name: str,
        resolution: Resolution,
        start_time: datetime,
        fills: Iterable[FillEntity],
        now: Optional[datetime] = None,
    ) -> CandleEntity:
        resolution = Resolution(resolution)
        start_time = ensure_utc(start_time)
        if self.bucket_start(start_time, resolution) != start_time:
            raise ValueError(
                f"start_time {start_time.isoformat()} is not aligned to {resolution.value}"
            )
        end_time = start_time + resolution.duration

        maker_fills = []
        for fill in fills:
            if fill.market_name != market_name:
                raise ValueError(
                    f"fill of market {fill.market_name!r} passed for {market_name!r}"
                )
            if not (start_time <= fill.time < end_time):
                raise ValueError(
                    f"fill at {fill.time.isoformat()} is outside bucket "
                    f"[{start_time.isoformat()}, {end_time.isoformat()})"
                )
            if fill.maker:
                maker_fills.append(fill)

        if not maker_fills:
            raise EmptyBucketError(
                f"no maker fills for {market_name} {resolution.value} @ {start_time.isoformat()}"
            )

        maker_fills.sort(key=lambda f: f.order_key)
        prices = [f.price for f in maker_fills]

        return CandleEntity(
            market_name=market_name,
            start_time=start_time,
            end_time=end_time,
            resolution=resolution,
            open=maker_fills[0].price,
            close=maker_fills[-1].price,
            high=max(prices),
            low=min(prices),
            volume=sum(f.size for f in maker_fills),
            complete=end_time < ensure_utc(now or utcnow()),
        )

    def carry_forward(
        self,
        previous: CandleEntity,
        start_time: datetime,
        now: Optional[datetime] = None,
    ) -> CandleEntity:
        """
        Flat, zero-volume candle at the previous close, for buckets without fills.
        """
        resolution = Resolution(previous.resolution)
        start_time = ensure_utc(start_time)
        if start_time < previous.end_time:
            raise ValueError("carry_forward target must start after the previous candle")
        end_time = start_time + resolution.duration
        return CandleEntity(
            market_name=previous.market_name,
            start_time=start_time,
            end_time=end_time,
            resolution=resolution,
            open=previous.close,
            close=previous.close,
            high=previous.close,
            low=previous.close,
            volume=0.0,
            complete=end_time < ensure_utc(now or utcnow()),
        )
