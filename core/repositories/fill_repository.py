from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from core.domain.entities.fill_entity import FillEntity


class FillRepository(ABC):
    """
    Read-only view over the append-only fill event log.

    Every list result is ordered ascending by (time, seq_num).
    """

    @abstractmethod
    async def fills_in_range(
        self,
        market_name: str,
        start: datetime,
        end: datetime,
        maker_only: bool = True,
    ) -> List[FillEntity]:
        """Fills of one market with start <= time < end."""
        raise NotImplementedError

    @abstractmethod
    async def earliest_fill(
        self, market_name: str, maker_only: bool = True
    ) -> Optional[FillEntity]:
        raise NotImplementedError

    @abstractmethod
    async def latest_fills(
        self,
        market_names: Sequence[str],
        maker_only: bool = True,
        until: Optional[datetime] = None,
    ) -> Dict[str, FillEntity]:
        """
        Latest fill per market by (time, seq_num), in one round trip.
        With `until`, only fills with time <= until are considered.
        Markets without fills are absent from the result.
        """
        raise NotImplementedError

    @abstractmethod
    async def fills_since(
        self,
        market_names: Sequence[str],
        since: datetime,
        maker_only: bool = True,
        until: Optional[datetime] = None,
    ) -> List[FillEntity]:
        """Fills of any of the given markets with since <= time (<= until), in one round trip."""
        raise NotImplementedError
