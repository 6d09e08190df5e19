from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from core.common.utils import utcnow
from core.domain.entities.market_snapshot_entity import TraderVolume
from core.domain.enums.candle_enums import VolumeAccountingMode
from core.repositories.fill_repository import FillRepository
from core.usecases.compute_market_snapshots_use_case import ComputeMarketSnapshotsUseCase
from core.usecases.rank_traders_use_case import MAX_RANKED_TRADERS, RankTradersUseCase

from .deps import get_fill_repository, get_markets

router = APIRouter(prefix="/markets", tags=["markets"])


class MarketSnapshotOutDTO(BaseModel):
    market_name: str
    last_price: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    close_24h: Optional[float] = None
    base_size_24h: float = 0.0
    quote_size_24h: float = 0.0


class TraderOutDTO(BaseModel):
    owner: str
    ask_size: float
    bid_size: float
    total_size: float

    @classmethod
    def from_entity(cls, trader: TraderVolume) -> "TraderOutDTO":
        return cls(
            owner=trader.owner,
            ask_size=trader.ask_size,
            bid_size=trader.bid_size,
            total_size=trader.total_size,
        )


@router.get("/snapshots", response_model=List[MarketSnapshotOutDTO])
async def get_market_snapshots(
    markets: Optional[str] = Query(None, description="Comma-separated market names; defaults to MARKETS."),
    fills: FillRepository = Depends(get_fill_repository),
    configured: List[str] = Depends(get_markets),
):
    names = [m.strip() for m in markets.split(",") if m.strip()] if markets else configured
    if not names:
        raise HTTPException(status_code=400, detail="no markets requested or configured")

    uc = ComputeMarketSnapshotsUseCase(fill_repository=fills)
    rows = await uc.execute(names)
    return [
        MarketSnapshotOutDTO(
            **snap.model_dump(),
            base_size_24h=vol.base_size_24h,
            quote_size_24h=vol.quote_size_24h,
        )
        for snap, vol in rows
    ]


@router.get("/{market_name}/traders", response_model=List[TraderOutDTO])
async def get_top_traders(
    market_name: str,
    mode: str = Query(VolumeAccountingMode.BY_BASE.value, description="'base' or 'quote'"),
    start: Optional[datetime] = Query(None, description="Inclusive; defaults to end - 24h."),
    end: Optional[datetime] = Query(None, description="Exclusive; defaults to now."),
    limit: int = Query(MAX_RANKED_TRADERS, ge=1, le=MAX_RANKED_TRADERS),
    fills: FillRepository = Depends(get_fill_repository),
):
    try:
        accounting = VolumeAccountingMode(mode.strip().lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"unsupported mode: {mode!r}")

    end = end or utcnow()
    start = start or (end - timedelta(hours=24))

    uc = RankTradersUseCase(fill_repository=fills)
    try:
        traders = await uc.execute(market_name, start, end, mode=accounting, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [TraderOutDTO.from_entity(t) for t in traders]
