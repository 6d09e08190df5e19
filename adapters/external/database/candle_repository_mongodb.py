from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, UpdateOne

from core.common.utils import ensure_utc, now_ms_iso
from core.domain.entities.candle_entity import CandleEntity
from core.domain.enums.resolution import Resolution
from core.repositories.candle_repository import CandleRepository


class CandleRepositoryMongoDB(CandleRepository):
    """
    MongoDB implementation for CandleRepository using Motor.

    Values are sent as BSON documents, never spliced into query text, so any
    character in a market name is stored and matched verbatim.
    """

    COLLECTION_NAME = "candles"
    MERGE_FIELDS = ("open", "close", "high", "low", "volume", "complete")

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        :param db: Motor async database instance.
        """
        self._db = db
        self._collection = self._db[self.COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        """
        Create a unique compound index on (market_name, start_time, resolution) for
        idempotency and a non-unique index for "latest complete" lookups.
        """
        await self._collection.create_index(
            [("market_name", ASCENDING), ("start_time", ASCENDING), ("resolution", ASCENDING)],
            unique=True,
            name="ux_market_start_resolution",
        )
        await self._collection.create_index(
            [
                ("market_name", ASCENDING),
                ("resolution", ASCENDING),
                ("complete", ASCENDING),
                ("start_time", DESCENDING),
            ],
            unique=False,
            name="ix_market_resolution_complete_start",
        )

    @staticmethod
    def _key(candle: CandleEntity) -> Dict[str, Any]:
        return {
            "market_name": candle.market_name,
            "start_time": candle.start_time,
            "resolution": str(candle.resolution),
        }

    @classmethod
    def build_upsert_operations(cls, candles: Sequence[CandleEntity]) -> List[UpdateOne]:
        """
        One UpdateOne per candle: overwrite the merge fields, create the rest on insert.
        Rejects batches that carry the same key twice.
        """
        now_ms, now_iso = now_ms_iso()
        seen = set()
        ops: List[UpdateOne] = []
        for candle in candles:
            if candle.key in seen:
                raise ValueError(
                    "duplicate candle in batch for "
                    f"{candle.market_name} {candle.resolution} {candle.start_time.isoformat()}"
                )
            seen.add(candle.key)

            doc = candle.to_mongo()
            update = {
                "$set": {
                    **{field: doc[field] for field in cls.MERGE_FIELDS},
                    "updated_at": now_ms,
                    "updated_at_iso": now_iso,
                },
                "$setOnInsert": {
                    "end_time": candle.end_time,
                    "created_at": now_ms,
                    "created_at_iso": now_iso,
                },
            }
            ops.append(UpdateOne(cls._key(candle), update, upsert=True))
        return ops

    async def merge_upsert(self, candles: Sequence[CandleEntity]) -> None:
        """
        Apply the whole batch inside one transaction. Any error aborts the
        transaction (no row of the batch is applied) and propagates.
        """
        if not candles:
            return
        ops = self.build_upsert_operations(candles)

        async with await self._db.client.start_session() as session:
            async with session.start_transaction():
                await self._collection.bulk_write(ops, ordered=True, session=session)

    async def fetch_latest_complete(
        self, market_name: str, resolution: Resolution
    ) -> Optional[CandleEntity]:
        doc = await self._collection.find_one(
            {
                "market_name": market_name,
                "resolution": Resolution(resolution).value,
                "complete": True,
            },
            sort=[("start_time", DESCENDING)],
        )
        return CandleEntity.from_mongo(doc)

    async def fetch_earliest(
        self,
        market_name: str,
        resolution: Resolution,
        limit: int = CandleRepository.EARLIEST_LIMIT,
    ) -> List[CandleEntity]:
        limit = max(1, min(int(limit), self.EARLIEST_LIMIT))
        cursor = self._collection.find(
            {"market_name": market_name, "resolution": Resolution(resolution).value},
            sort=[("start_time", ASCENDING)],
            limit=limit,
        )
        docs = await cursor.to_list(length=limit)
        return CandleEntity.from_mongo_many(docs)

    async def fetch_range(
        self,
        market_name: str,
        resolution: Resolution,
        start: datetime,
        end: datetime,
    ) -> List[CandleEntity]:
        cursor = self._collection.find(
            {
                "market_name": market_name,
                "resolution": Resolution(resolution).value,
                "start_time": {"$gte": ensure_utc(start)},
                "end_time": {"$lte": ensure_utc(end)},
            },
            sort=[("start_time", ASCENDING)],
        )
        docs = await cursor.to_list(length=None)
        return CandleEntity.from_mongo_many(docs)
