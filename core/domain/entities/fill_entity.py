# core/domain/entities/fill_entity.py
from datetime import datetime
from typing import Optional, Tuple

from pydantic import ConfigDict, field_validator

from core.common.utils import ensure_utc

from .base_entity import MongoEntity

class FillEntity(MongoEntity):
    """
    One executed leg of a trade, as stored in the fill event log.

    `bid` is True for the bid (buy) side and False for the ask (sell) side.
    `seq_num` orders fills that share the same `time`.
    """
    time: datetime
    market_name: str
    bid: bool
    maker: bool
    price: float
    size: float
    seq_num: int = 0

    owner: Optional[str] = None
    native_quantity_paid: float = 0.0
    native_quantity_received: float = 0.0

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def order_key(self) -> Tuple[datetime, int]:
        return (self.time, self.seq_num)
