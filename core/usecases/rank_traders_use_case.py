import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from core.common.utils import ensure_utc
from core.domain.entities.fill_entity import FillEntity
from core.domain.entities.market_snapshot_entity import TraderVolume
from core.domain.enums.candle_enums import VolumeAccountingMode
from core.repositories.fill_repository import FillRepository

MAX_RANKED_TRADERS = 10_000

# mode -> (ask_size contribution, bid_size contribution) of one fill
_Contribution = Callable[[FillEntity], Tuple[float, float]]


def _by_base(fill: FillEntity) -> Tuple[float, float]:
    if fill.bid:
        return 0.0, fill.native_quantity_received
    return fill.native_quantity_paid, 0.0


def _by_quote(fill: FillEntity) -> Tuple[float, float]:
    # same sides as BY_BASE, the other native quantity (the quote leg)
    if fill.bid:
        return 0.0, fill.native_quantity_paid
    return fill.native_quantity_received, 0.0


_CONTRIBUTIONS: Dict[VolumeAccountingMode, _Contribution] = {
    VolumeAccountingMode.BY_BASE: _by_base,
    VolumeAccountingMode.BY_QUOTE: _by_quote,
}


class RankTradersUseCase:
    """
    Ranks the accounts of one market by traded volume over [start, end).

    Every leg counts (maker and taker): each fill belongs to the account that
    owns it, so nothing is double counted per account. Accounts are ordered by
    ask_size + bid_size descending; ties keep first-seen order.

    Accounting modes:
      BY_BASE:  ask_size = sum(paid) on asks,     bid_size = sum(received) on bids
      BY_QUOTE: ask_size = sum(received) on asks, bid_size = sum(paid) on bids
    """

    def __init__(
        self,
        fill_repository: FillRepository,
        logger: Optional[logging.Logger] = None,
    ):
        self._fills = fill_repository
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def execute(
        self,
        market_name: str,
        start: datetime,
        end: datetime,
        mode: VolumeAccountingMode = VolumeAccountingMode.BY_BASE,
        limit: int = MAX_RANKED_TRADERS,
    ) -> List[TraderVolume]:
        start, end = ensure_utc(start), ensure_utc(end)
        if start >= end:
            raise ValueError("start must be before end")
        limit = max(0, min(int(limit), MAX_RANKED_TRADERS))
        contribution = _CONTRIBUTIONS[VolumeAccountingMode(mode)]

        fills = await self._fills.fills_in_range(
            market_name, start, end, maker_only=False
        )

        totals: Dict[str, List[float]] = {}
        for fill in fills:
            if fill.owner is None:
                continue
            ask, bid = contribution(fill)
            acc = totals.setdefault(fill.owner, [0.0, 0.0])
            acc[0] += ask
            acc[1] += bid

        ranked = sorted(
            (TraderVolume(owner=owner, ask_size=a, bid_size=b) for owner, (a, b) in totals.items()),
            key=lambda t: t.total_size,
            reverse=True,
        )

        self._logger.debug(
            "Ranked %d traders for %s (%s), returning %d",
            len(ranked),
            market_name,
            VolumeAccountingMode(mode).value,
            min(limit, len(ranked)),
        )
        return ranked[:limit]
