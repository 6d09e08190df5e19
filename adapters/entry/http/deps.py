from typing import List

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from adapters.external.database.candle_repository_mongodb import CandleRepositoryMongoDB
from adapters.external.database.fill_repository_mongodb import FillRepositoryMongoDB
from config.settings import settings
from core.repositories.candle_repository import CandleRepository
from core.repositories.fill_repository import FillRepository


def get_db(request: Request) -> AsyncIOMotorDatabase:
    db = getattr(request.app.state, "mongo_db", None)
    if db is None:
        raise RuntimeError("MongoDB database not initialized. Check app lifespan startup.")
    return db


def get_candle_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> CandleRepository:
    return CandleRepositoryMongoDB(db)


def get_fill_repository(db: AsyncIOMotorDatabase = Depends(get_db)) -> FillRepository:
    return FillRepositoryMongoDB(db)


def get_markets() -> List[str]:
    return settings.MARKETS
