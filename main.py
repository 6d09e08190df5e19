import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from adapters.entry.http.candles_router import router as candles_router
from adapters.entry.http.coingecko_router import router as coingecko_router
from adapters.entry.http.markets_router import router as markets_router

from adapters.external.database.candle_repository_mongodb import CandleRepositoryMongoDB
from adapters.external.database.mongodb_client import get_database, get_mongo_client
from config.settings import settings
from workers.candle_batcher import CandleBatcher


def _setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Starting %s (lifespan startup)...", settings.APP_NAME)

    mongo_client = get_mongo_client()
    db = get_database(mongo_client)

    app.state.mongo_client = mongo_client
    app.state.mongo_db = db

    try:
        await db.command("ping")
        logger.info("MongoDB ping ok.")
        await CandleRepositoryMongoDB(db).ensure_indexes()
    except Exception:
        logger.exception("MongoDB startup checks failed.")
        raise

    batcher = None
    if settings.ENABLE_CANDLE_BATCHER:
        batcher = CandleBatcher(db=db)
        await batcher.start()
    app.state.candle_batcher = batcher

    try:
        yield
    finally:
        logger.info("Shutting down %s (lifespan shutdown)...", settings.APP_NAME)
        if batcher is not None:
            await batcher.stop()
        mongo_client.close()
        logger.info("MongoDB client closed.")


app = FastAPI(title="api-candles", version="0.1.0", lifespan=lifespan)

# Routers are included outside the lifespan
app.include_router(candles_router)
app.include_router(markets_router)
app.include_router(coingecko_router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
