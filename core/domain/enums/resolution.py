# core/domain/enums/resolution.py
from datetime import timedelta
from enum import Enum


class Resolution(str, Enum):
    """
    Candle bucket durations. The value is the canonical storage key.
    """

    R1M = "1M"
    R3M = "3M"
    R5M = "5M"
    R10M = "10M"
    R15M = "15M"
    R30M = "30M"
    R1H = "1H"
    R2H = "2H"
    R4H = "4H"
    R1D = "1D"

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=_MINUTES[self.value])

    @property
    def seconds(self) -> int:
        return _MINUTES[self.value] * 60

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> "Resolution":
        """Accept '1m', '1M', ' 1h ' etc."""
        try:
            return cls((raw or "").strip().upper())
        except ValueError:
            raise ValueError(f"unsupported resolution: {raw!r}") from None


_MINUTES = {
    "1M": 1,
    "3M": 3,
    "5M": 5,
    "10M": 10,
    "15M": 15,
    "30M": 30,
    "1H": 60,
    "2H": 120,
    "4H": 240,
    "1D": 1440,
}
