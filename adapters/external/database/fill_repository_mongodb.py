from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from core.common.utils import ensure_utc
from core.domain.entities.fill_entity import FillEntity
from core.repositories.fill_repository import FillRepository


class FillRepositoryMongoDB(FillRepository):
    """
    Read-only Mongo view over the fill event log written by the ingestion service.
    """

    COLLECTION = "fill_events"
    ORDER = [("time", ASCENDING), ("seq_num", ASCENDING)]

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("market_name", ASCENDING), ("maker", ASCENDING), ("time", ASCENDING), ("seq_num", ASCENDING)],
            name="ix_market_maker_time_seq",
        )
        await self._col.create_index(
            [("market_name", ASCENDING), ("time", ASCENDING)],
            name="ix_market_time",
        )

    @staticmethod
    def _match(market: Any, maker_only: bool, **extra: Any) -> Dict[str, Any]:
        query: Dict[str, Any] = {"market_name": market, **extra}
        if maker_only:
            query["maker"] = True
        return query

    async def fills_in_range(
        self,
        market_name: str,
        start: datetime,
        end: datetime,
        maker_only: bool = True,
    ) -> List[FillEntity]:
        cursor = self._col.find(
            self._match(
                market_name,
                maker_only,
                time={"$gte": ensure_utc(start), "$lt": ensure_utc(end)},
            ),
            sort=self.ORDER,
        )
        docs = await cursor.to_list(length=None)
        return FillEntity.from_mongo_many(docs)

    async def earliest_fill(
        self, market_name: str, maker_only: bool = True
    ) -> Optional[FillEntity]:
        doc = await self._col.find_one(self._match(market_name, maker_only), sort=self.ORDER)
        return FillEntity.from_mongo(doc)

    async def latest_fills(
        self,
        market_names: Sequence[str],
        maker_only: bool = True,
        until: Optional[datetime] = None,
    ) -> Dict[str, FillEntity]:
        if not market_names:
            return {}
        extra = {} if until is None else {"time": {"$lte": ensure_utc(until)}}
        pipeline = [
            {"$match": self._match({"$in": list(market_names)}, maker_only, **extra)},
            {"$sort": {"market_name": 1, "time": -1, "seq_num": -1}},
            {"$group": {"_id": "$market_name", "doc": {"$first": "$$ROOT"}}},
        ]
        cursor = self._col.aggregate(pipeline)
        rows = await cursor.to_list(length=None)
        return {row["_id"]: FillEntity.from_mongo(row["doc"]) for row in rows if row.get("doc")}

    async def fills_since(
        self,
        market_names: Sequence[str],
        since: datetime,
        maker_only: bool = True,
        until: Optional[datetime] = None,
    ) -> List[FillEntity]:
        if not market_names:
            return []
        time_range = {"$gte": ensure_utc(since)}
        if until is not None:
            time_range["$lte"] = ensure_utc(until)
        cursor = self._col.find(
            self._match({"$in": list(market_names)}, maker_only, time=time_range),
            sort=self.ORDER,
        )
        docs = await cursor.to_list(length=None)
        return FillEntity.from_mongo_many(docs)
