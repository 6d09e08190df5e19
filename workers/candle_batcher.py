import asyncio
import contextlib
import logging
from typing import List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from adapters.external.database.candle_repository_mongodb import CandleRepositoryMongoDB
from adapters.external.database.fill_repository_mongodb import FillRepositoryMongoDB
from adapters.external.database.mongodb_client import get_database, get_mongo_client
from config.settings import settings
from core.domain.enums.candle_enums import EmptyBucketPolicy
from core.domain.enums.resolution import Resolution
from core.usecases.build_candles_use_case import BuildCandlesUseCase


class CandleBatcher:
    """
    Background loop that keeps stored candles in sync with the fill log.

    Responsibilities:
    - Connect to Mongo (or reuse the app's database), ensure indexes.
    - Every `interval_sec`, run BuildCandlesUseCase for each market x resolution.
    - A failure for one market/resolution is logged and the loop moves on;
      the next pass retries it with the same input.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        markets: Optional[Sequence[str]] = None,
        resolutions: Optional[Sequence[Resolution]] = None,
        interval_sec: Optional[float] = None,
        build_use_case: Optional[BuildCandlesUseCase] = None,
    ):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._db = db
        self._mongo_client: AsyncIOMotorClient | None = None
        self._markets: List[str] = list(markets if markets is not None else settings.MARKETS)
        self._resolutions: List[Resolution] = [
            Resolution.parse(r) for r in (resolutions or settings.CANDLE_RESOLUTIONS or list(Resolution))
        ]
        self._interval_sec = float(
            interval_sec if interval_sec is not None else settings.CANDLE_BATCH_INTERVAL_SEC
        )
        self._build_uc = build_use_case
        self._task: asyncio.Task | None = None

    async def _wire(self) -> None:
        if self._build_uc is not None:
            return
        if self._db is None:
            self._mongo_client = get_mongo_client()
            self._db = get_database(self._mongo_client)

        candle_repo = CandleRepositoryMongoDB(self._db)
        fill_repo = FillRepositoryMongoDB(self._db)
        await candle_repo.ensure_indexes()
        await fill_repo.ensure_indexes()

        self._build_uc = BuildCandlesUseCase(
            fill_repository=fill_repo,
            candle_repository=candle_repo,
            empty_bucket_policy=EmptyBucketPolicy(settings.CANDLE_EMPTY_BUCKET_POLICY),
            max_buckets=settings.CANDLE_MAX_BUCKETS_PER_RUN,
        )

    async def run_once(self) -> int:
        """
        One pass over every market x resolution. Returns the number of candles written.
        """
        await self._wire()
        written = 0
        for market in self._markets:
            for resolution in self._resolutions:
                try:
                    written += await self._build_uc.execute_for_market(market, resolution)
                except Exception as exc:
                    self._logger.exception(
                        "Candle build error for %s@%s: %s", market, resolution.value, exc
                    )
        return written

    async def start(self) -> None:
        """
        Wire repositories and start the background loop.
        """
        if not self._markets:
            self._logger.error("No MARKETS configured. Candle batcher not started.")
            return

        await self._wire()

        async def _loop():
            while True:
                written = await self.run_once()
                self._logger.debug("Candle batch pass wrote %d candles", written)
                await asyncio.sleep(self._interval_sec)

        self._task = asyncio.create_task(_loop())
        self._logger.info(
            "Candle batcher started for markets=%s resolutions=%s every %ss",
            self._markets,
            [r.value for r in self._resolutions],
            self._interval_sec,
        )

    async def stop(self) -> None:
        """
        Stop the loop and close the Mongo client if this batcher opened it.
        """
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        if self._mongo_client:
            self._mongo_client.close()
            self._mongo_client = None
            self._logger.info("MongoDB client closed.")


async def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    batcher = CandleBatcher()
    await batcher.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await batcher.stop()


if __name__ == "__main__":
    asyncio.run(main())
