# core/domain/enums/candle_enums.py
from enum import Enum


class EmptyBucketPolicy(str, Enum):
    """
    What the candle builder writes for a bucket that received no maker fills.
    """

    SKIP = "skip"
    CARRY_FORWARD = "carry_forward"


class VolumeAccountingMode(str, Enum):
    """
    Which native fill quantity feeds each side of a trader ranking.
    """

    BY_BASE = "base"
    BY_QUOTE = "quote"
