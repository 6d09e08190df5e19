"""In-memory stand-ins for the repository ports."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from core.common.utils import ensure_utc
from core.domain.entities.candle_entity import CandleEntity
from core.domain.entities.fill_entity import FillEntity
from core.domain.enums.resolution import Resolution
from core.repositories.candle_repository import CandleRepository
from core.repositories.fill_repository import FillRepository

T0 = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)


def make_fill(
    minute: float,
    price: float,
    size: float = 1.0,
    seq: int = 0,
    maker: bool = True,
    bid: bool = True,
    market: str = "SOL-USDC",
    owner: Optional[str] = None,
    paid: float = 0.0,
    received: float = 0.0,
    base: datetime = T0,
) -> FillEntity:
    return FillEntity(
        time=base + timedelta(minutes=minute),
        market_name=market,
        bid=bid,
        maker=maker,
        price=price,
        size=size,
        seq_num=seq,
        owner=owner,
        native_quantity_paid=paid,
        native_quantity_received=received,
    )


class InMemoryFillRepository(FillRepository):
    def __init__(self, fills: Sequence[FillEntity] = ()):
        self.fills: List[FillEntity] = list(fills)
        self.calls: List[str] = []

    def _select(self, maker_only: bool) -> List[FillEntity]:
        rows = [f for f in self.fills if f.maker or not maker_only]
        return sorted(rows, key=lambda f: f.order_key)

    async def fills_in_range(self, market_name, start, end, maker_only=True):
        self.calls.append("fills_in_range")
        start, end = ensure_utc(start), ensure_utc(end)
        return [
            f for f in self._select(maker_only)
            if f.market_name == market_name and start <= f.time < end
        ]

    async def earliest_fill(self, market_name, maker_only=True):
        self.calls.append("earliest_fill")
        rows = [f for f in self._select(maker_only) if f.market_name == market_name]
        return rows[0] if rows else None

    async def latest_fills(self, market_names, maker_only=True, until=None):
        self.calls.append("latest_fills")
        until = ensure_utc(until) if until is not None else None
        out: Dict[str, FillEntity] = {}
        for f in self._select(maker_only):
            if f.market_name in market_names and (until is None or f.time <= until):
                out[f.market_name] = f
        return out

    async def fills_since(self, market_names, since, maker_only=True, until=None):
        self.calls.append("fills_since")
        since = ensure_utc(since)
        until = ensure_utc(until) if until is not None else None
        return [
            f for f in self._select(maker_only)
            if f.market_name in market_names
            and f.time >= since
            and (until is None or f.time <= until)
        ]


class InMemoryCandleRepository(CandleRepository):
    """
    Mirrors the Mongo merge semantics: the merge fields are overwritten,
    end_time is only set on insert, and a failing batch leaves nothing behind.
    """

    def __init__(self, fail_after: Optional[int] = None):
        self.rows: Dict[Tuple[str, datetime, str], CandleEntity] = {}
        self.batches: List[List[CandleEntity]] = []
        self.fail_after = fail_after

    async def ensure_indexes(self):
        return None

    async def fetch_latest_complete(self, market_name, resolution):
        rows = [
            c for c in self.rows.values()
            if c.market_name == market_name
            and c.resolution == Resolution(resolution).value
            and c.complete
        ]
        return max(rows, key=lambda c: c.start_time) if rows else None

    async def fetch_earliest(self, market_name, resolution, limit=CandleRepository.EARLIEST_LIMIT):
        rows = sorted(
            (
                c for c in self.rows.values()
                if c.market_name == market_name and c.resolution == Resolution(resolution).value
            ),
            key=lambda c: c.start_time,
        )
        return rows[: min(limit, self.EARLIEST_LIMIT)]

    async def fetch_range(self, market_name, resolution, start, end):
        start, end = ensure_utc(start), ensure_utc(end)
        return sorted(
            (
                c for c in self.rows.values()
                if c.market_name == market_name
                and c.resolution == Resolution(resolution).value
                and c.start_time >= start
                and c.end_time <= end
            ),
            key=lambda c: c.start_time,
        )

    async def merge_upsert(self, candles):
        if not candles:
            return
        staged = dict(self.rows)
        for i, candle in enumerate(candles):
            if self.fail_after is not None and i >= self.fail_after:
                raise RuntimeError("simulated store failure")
            existing = staged.get(candle.key)
            if existing is None:
                staged[candle.key] = candle.model_copy()
            else:
                staged[candle.key] = existing.model_copy(
                    update={
                        "open": candle.open,
                        "close": candle.close,
                        "high": candle.high,
                        "low": candle.low,
                        "volume": candle.volume,
                        "complete": candle.complete,
                    }
                )
        self.rows = staged
        self.batches.append(list(candles))
