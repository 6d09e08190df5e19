import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

from core.common.utils import ensure_utc, utcnow
from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.fill_entity import FillEntity
from core.domain.enums.candle_enums import EmptyBucketPolicy
from core.domain.enums.resolution import Resolution
from core.repositories.candle_repository import CandleRepository
from core.repositories.fill_repository import FillRepository
from core.services.candle_aggregation_service import CandleAggregationService


class BuildCandlesUseCase:
    """
    Use case responsible for turning the fill log into stored candles for one
    market and resolution.

    Logic:
      - Resumes at the end of the latest COMPLETE candle. Without one, starts at
        the bucket holding the market's earliest maker fill; a market that never
        traded is skipped.
      - Walks aligned buckets up to (and including) the bucket that contains `now`,
        at most `max_buckets` per run. The still-open bucket is rewritten on every
        run until it completes.
      - Reads all maker fills of the span in one call and hands each bucket its
        full fill set to the aggregator.
      - Buckets without fills follow the EmptyBucketPolicy.
      - Writes everything with a single atomic merge_upsert.
    """

    def __init__(
        self,
        fill_repository: FillRepository,
        candle_repository: CandleRepository,
        aggregation_service: Optional[CandleAggregationService] = None,
        empty_bucket_policy: EmptyBucketPolicy = EmptyBucketPolicy.CARRY_FORWARD,
        max_buckets: int = CandleRepository.EARLIEST_LIMIT,
        logger: Optional[logging.Logger] = None,
    ):
        self._fills = fill_repository
        self._candles = candle_repository
        self._aggregator = aggregation_service or CandleAggregationService()
        self._policy = EmptyBucketPolicy(empty_bucket_policy)
        self._max_buckets = max(1, int(max_buckets))
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute_for_market(
        self,
        market_name: str,
        resolution: Resolution,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Build and persist candles; returns how many candles were written.
        """
        resolution = Resolution(resolution)
        now = ensure_utc(now or utcnow())

        previous: Optional[CandleEntity] = await self._candles.fetch_latest_complete(
            market_name, resolution
        )
        if previous is not None:
            start = previous.end_time
        else:
            first_fill = await self._fills.earliest_fill(market_name, maker_only=True)
            if first_fill is None:
                self._logger.info(
                    "No fills for %s; skipping %s candles.", market_name, resolution.value
                )
                return 0
            start = self._aggregator.bucket_start(first_fill.time, resolution)

        end = self._aggregator.bucket_start(now, resolution) + resolution.duration
        buckets = self._aggregator.bucket_starts(start, end, resolution)[: self._max_buckets]
        if not buckets:
            return 0

        span_end = buckets[-1] + resolution.duration
        fills = await self._fills.fills_in_range(
            market_name, buckets[0], span_end, maker_only=True
        )
        by_bucket: Dict[datetime, List[FillEntity]] = defaultdict(list)
        for fill in fills:
            by_bucket[self._aggregator.bucket_start(fill.time, resolution)].append(fill)

        candles: List[CandleEntity] = []
        for bucket in buckets:
            bucket_fills = by_bucket.get(bucket)
            if bucket_fills:
                candle = self._aggregator.aggregate(
                    market_name, resolution, bucket, bucket_fills, now=now
                )
            elif self._policy is EmptyBucketPolicy.CARRY_FORWARD and previous is not None:
                candle = self._aggregator.carry_forward(previous, bucket, now=now)
            else:
                continue
            candles.append(candle)
            previous = candle

        if not candles:
            return 0

        await self._candles.merge_upsert(candles)
        self._logger.info(
            "Upserted %d %s candles for %s (%s -> %s).",
            len(candles),
            resolution.value,
            market_name,
            candles[0].start_time.isoformat(),
            candles[-1].start_time.isoformat(),
        )
        return len(candles)
