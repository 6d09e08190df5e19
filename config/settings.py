"""
Application configuration for api-candles.

Centralizes environment variables using python-dotenv.
"""

import os
from typing import List

from dotenv import load_dotenv

# Load variables from .env (if present)
load_dotenv()


class Settings:
    """
    Configuration settings for the api-candles service.
    """

    # MongoDB
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "candles_db")
    MONGODB_MAX_POOL_SIZE: int = int(os.getenv("MONGODB_MAX_POOL_SIZE", "50"))
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "5000")
    )
    MONGODB_CONNECT_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "3000")
    )
    MONGODB_SOCKET_TIMEOUT_MS: int = int(
        os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "10000")
    )

    # Markets
    # Ex: "SOL-USDC,BTC-USDC" (base-target)
    MARKETS_RAW: str = os.getenv("MARKETS", "")

    @property
    def MARKETS(self) -> List[str]:
        return [m.strip() for m in self.MARKETS_RAW.split(",") if m.strip()]

    # Candle batcher
    # Ex: "1M,5M,1H"; empty means every supported resolution
    CANDLE_RESOLUTIONS_RAW: str = os.getenv("CANDLE_RESOLUTIONS", "")

    @property
    def CANDLE_RESOLUTIONS(self) -> List[str]:
        return [
            r.strip().upper()
            for r in self.CANDLE_RESOLUTIONS_RAW.split(",")
            if r.strip()
        ]

    CANDLE_BATCH_INTERVAL_SEC: float = float(
        os.getenv("CANDLE_BATCH_INTERVAL_SEC", "10")
    )
    CANDLE_MAX_BUCKETS_PER_RUN: int = int(
        os.getenv("CANDLE_MAX_BUCKETS_PER_RUN", "2000")
    )
    # "skip" -> no row for buckets without fills
    # "carry_forward" -> flat candle at the previous close
    CANDLE_EMPTY_BUCKET_POLICY: str = os.getenv(
        "CANDLE_EMPTY_BUCKET_POLICY", "carry_forward"
    ).lower()

    ENABLE_CANDLE_BATCHER: bool = (
        os.getenv("ENABLE_CANDLE_BATCHER", "true").lower() == "true"
    )

    # Log / app
    APP_NAME: str = os.getenv("APP_NAME", "api-candles")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
