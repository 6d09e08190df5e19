from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.repositories.fill_repository import FillRepository
from core.usecases.compute_market_snapshots_use_case import ComputeMarketSnapshotsUseCase

from .deps import get_fill_repository, get_markets

router = APIRouter(prefix="/coingecko", tags=["coingecko"])


class CoinGeckoPairDTO(BaseModel):
    ticker_id: str
    base: str
    target: str
    pool_id: str


class CoinGeckoTickerDTO(BaseModel):
    ticker_id: str
    base_currency: str
    target_currency: str
    last_price: str
    base_volume: str
    target_volume: str
    high: str
    low: str


def _split_market(market_name: str) -> Tuple[str, str]:
    # "SOL-USDC" -> ("SOL", "USDC"); a name without "-" has no target currency
    base, _, target = market_name.partition("-")
    return base, target


def _num(value: Optional[float]) -> str:
    # plain notation: 1e-05 -> "0.00001"
    if value is None:
        return "0"
    return format(Decimal(repr(float(value))), "f")


@router.get("/pairs", response_model=List[CoinGeckoPairDTO])
async def get_pairs(markets: List[str] = Depends(get_markets)):
    pairs = []
    for market in markets:
        base, target = _split_market(market)
        pairs.append(
            CoinGeckoPairDTO(
                ticker_id=f"{base}_{target}",
                base=base,
                target=target,
                pool_id=market,
            )
        )
    return pairs


@router.get("/tickers", response_model=List[CoinGeckoTickerDTO])
async def get_tickers(
    markets: List[str] = Depends(get_markets),
    fills: FillRepository = Depends(get_fill_repository),
):
    if not markets:
        return []
    uc = ComputeMarketSnapshotsUseCase(fill_repository=fills)
    tickers = []
    for snap, vol in await uc.execute(markets):
        base, target = _split_market(snap.market_name)
        tickers.append(
            CoinGeckoTickerDTO(
                ticker_id=f"{base}_{target}",
                base_currency=base,
                target_currency=target,
                last_price=_num(snap.last_price),
                base_volume=_num(vol.base_size_24h),
                target_volume=_num(vol.quote_size_24h),
                high=_num(snap.high_24h),
                low=_num(snap.low_24h),
            )
        )
    return tickers
