from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from core.common.utils import ensure_utc
from core.domain.entities.candle_entity import CandleEntity
from core.domain.enums.resolution import Resolution
from core.repositories.candle_repository import CandleRepository

from .deps import get_candle_repository

router = APIRouter(prefix="/candles", tags=["candles"])


class CandleOutDTO(BaseModel):
    market_name: str
    start_time: datetime
    end_time: datetime
    resolution: str
    open: float
    close: float
    high: float
    low: float
    volume: float
    complete: bool

    @classmethod
    def from_entity(cls, candle: CandleEntity) -> "CandleOutDTO":
        return cls(**candle.payload())


def _resolution(raw: str) -> Resolution:
    try:
        return Resolution.parse(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/{market_name}", response_model=List[CandleOutDTO])
async def get_candles(
    market_name: str,
    resolution: str = Query(..., examples=["1M"]),
    start: datetime = Query(..., description="Inclusive lower bound on start_time (ISO-8601)."),
    end: datetime = Query(..., description="Inclusive upper bound on end_time (ISO-8601)."),
    repo: CandleRepository = Depends(get_candle_repository),
):
    """
    Candles whose whole bucket lies in [start, end], ascending by start_time.
    """
    res = _resolution(resolution)
    start, end = ensure_utc(start), ensure_utc(end)
    if start >= end:
        raise HTTPException(status_code=400, detail="start must be before end")
    candles = await repo.fetch_range(market_name, res, start, end)
    return [CandleOutDTO.from_entity(c) for c in candles]


@router.get("/{market_name}/earliest", response_model=List[CandleOutDTO])
async def get_earliest_candles(
    market_name: str,
    resolution: str = Query(..., examples=["1M"]),
    limit: int = Query(CandleRepository.EARLIEST_LIMIT, ge=1, le=CandleRepository.EARLIEST_LIMIT),
    repo: CandleRepository = Depends(get_candle_repository),
):
    candles = await repo.fetch_earliest(market_name, _resolution(resolution), limit=limit)
    return [CandleOutDTO.from_entity(c) for c in candles]


@router.get("/{market_name}/latest", response_model=CandleOutDTO)
async def get_latest_complete_candle(
    market_name: str,
    resolution: str = Query(..., examples=["1M"]),
    repo: CandleRepository = Depends(get_candle_repository),
):
    candle = await repo.fetch_latest_complete(market_name, _resolution(resolution))
    if candle is None:
        raise HTTPException(status_code=404, detail="no complete candle found")
    return CandleOutDTO.from_entity(candle)
