import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from core.common.utils import ensure_utc, utcnow
from core.domain.entities.fill_entity import FillEntity
from core.domain.entities.market_snapshot_entity import MarketSnapshot, VolumeSnapshot
from core.repositories.fill_repository import FillRepository

WINDOW_24H = timedelta(hours=24)


class _WindowStats:
    __slots__ = ("high", "low", "close_fill", "base_size", "quote_size")

    def __init__(self) -> None:
        self.high: Optional[float] = None
        self.low: Optional[float] = None
        self.close_fill: Optional[FillEntity] = None
        self.base_size = 0.0
        self.quote_size = 0.0

    def add(self, fill: FillEntity) -> None:
        self.high = fill.price if self.high is None else max(self.high, fill.price)
        self.low = fill.price if self.low is None else min(self.low, fill.price)
        if self.close_fill is None or fill.order_key >= self.close_fill.order_key:
            self.close_fill = fill
        self.base_size += fill.size
        self.quote_size += fill.size * fill.price


class ComputeMarketSnapshotsUseCase:
    """
    Computes last price, 24h high/low/close and 24h base/quote volume for a
    batch of markets straight from the fill log (candles are not consulted).

    Logic (maker fills only):
      - Both reads are bounded by `now`; fills after it are ignored.
      - last_price: fill with the greatest (time, seq_num) up to `now`.
      - 24h window: fills with now - 24h <= time <= now.
      - high/low: max/min price in the window; close: window fill with the
        greatest (time, seq_num).
      - Empty window: high/low/close fall back to last_price, volumes are 0.

    Exactly one row is returned per requested market, in request order.
    """

    def __init__(
        self,
        fill_repository: FillRepository,
        window: timedelta = WINDOW_24H,
        logger: Optional[logging.Logger] = None,
    ):
        self._fills = fill_repository
        self._window = window
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _unique(market_names: Sequence[str]) -> List[str]:
        seen = set()
        out = []
        for name in market_names:
            if name not in seen:
                seen.add(name)
                out.append(name)
        return out

    async def _window_stats(
        self, markets: List[str], now: datetime
    ) -> Dict[str, _WindowStats]:
        since = now - self._window
        fills = await self._fills.fills_since(markets, since, maker_only=True, until=now)
        stats: Dict[str, _WindowStats] = {m: _WindowStats() for m in markets}
        for fill in fills:
            bucket = stats.get(fill.market_name)
            if bucket is not None:
                bucket.add(fill)
        return stats

    async def execute(
        self, market_names: Sequence[str], now: Optional[datetime] = None
    ) -> List[Tuple[MarketSnapshot, VolumeSnapshot]]:
        markets = self._unique(market_names)
        if not markets:
            return []
        now = ensure_utc(now or utcnow())

        latest = await self._fills.latest_fills(markets, maker_only=True, until=now)
        stats = await self._window_stats(markets, now)

        rows: List[Tuple[MarketSnapshot, VolumeSnapshot]] = []
        for market in markets:
            last_fill = latest.get(market)
            last_price = last_fill.price if last_fill is not None else None
            window = stats[market]

            if window.close_fill is None:
                snapshot = MarketSnapshot(
                    market_name=market,
                    last_price=last_price,
                    high_24h=last_price,
                    low_24h=last_price,
                    close_24h=last_price,
                )
            else:
                snapshot = MarketSnapshot(
                    market_name=market,
                    last_price=last_price,
                    high_24h=window.high,
                    low_24h=window.low,
                    close_24h=window.close_fill.price,
                )
            volume = VolumeSnapshot(
                market_name=market,
                base_size_24h=window.base_size,
                quote_size_24h=window.quote_size,
            )
            rows.append((snapshot, volume))

        self._logger.debug("Computed snapshots for %d markets", len(rows))
        return rows

    async def snapshots(
        self, market_names: Sequence[str], now: Optional[datetime] = None
    ) -> List[MarketSnapshot]:
        return [snap for snap, _ in await self.execute(market_names, now)]

    async def volumes(
        self, market_names: Sequence[str], now: Optional[datetime] = None
    ) -> List[VolumeSnapshot]:
        return [vol for _, vol in await self.execute(market_names, now)]
