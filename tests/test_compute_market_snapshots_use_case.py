"""Tests for ComputeMarketSnapshotsUseCase"""

from datetime import timedelta

import pytest

from core.usecases.compute_market_snapshots_use_case import ComputeMarketSnapshotsUseCase

from fakes import T0, InMemoryFillRepository, make_fill

NOW = T0 + timedelta(days=2)


def recent(minute_before_now: float, price: float, **kw):
    """Fill `minute_before_now` minutes before NOW."""
    return make_fill(-minute_before_now, price, base=NOW, **kw)


class TestSnapshots:

    @pytest.mark.asyncio
    async def test_window_high_low_close_and_volumes(self):
        repo = InMemoryFillRepository([
            recent(60 * 30, 100, size=9),  # older than 24h
            recent(600, 10, size=1, seq=1),
            recent(300, 14, size=2, seq=2),
            recent(10, 12, size=3, seq=3),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 12
        assert snap.high_24h == 14
        assert snap.low_24h == 10
        assert snap.close_24h == 12
        assert vol.base_size_24h == 6
        assert vol.quote_size_24h == 10 * 1 + 14 * 2 + 12 * 3

    @pytest.mark.asyncio
    async def test_window_boundary_is_inclusive(self):
        repo = InMemoryFillRepository([recent(24 * 60, 7, size=2)])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.high_24h == 7
        assert vol.base_size_24h == 2

    @pytest.mark.asyncio
    async def test_stale_market_falls_back_to_last_price(self):
        repo = InMemoryFillRepository([
            recent(60 * 40, 8, seq=1),
            recent(60 * 30, 9, seq=2),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 9
        assert snap.high_24h == snap.low_24h == snap.close_24h == 9
        assert vol.base_size_24h == 0
        assert vol.quote_size_24h == 0

    @pytest.mark.asyncio
    async def test_same_time_breaks_ties_by_highest_seq_num(self):
        repo = InMemoryFillRepository([
            recent(5, 30, seq=11),
            recent(5, 31, seq=12),
            recent(5, 29, seq=10),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, _)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 31
        assert snap.close_24h == 31

    @pytest.mark.asyncio
    async def test_fills_after_now_are_ignored_by_both_reads(self):
        repo = InMemoryFillRepository([
            recent(60, 10, size=1, seq=1),
            recent(-30, 99, size=5, seq=2),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 10
        assert snap.high_24h == snap.close_24h == 10
        assert vol.base_size_24h == 1

    @pytest.mark.asyncio
    async def test_past_now_with_empty_window_falls_back_to_price_at_now(self):
        repo = InMemoryFillRepository([
            recent(60 * 30, 8, seq=1),
            recent(-5, 50, seq=2),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 8
        assert snap.high_24h == snap.low_24h == snap.close_24h == 8
        assert vol.base_size_24h == 0

    @pytest.mark.asyncio
    async def test_taker_fills_are_ignored(self):
        repo = InMemoryFillRepository([
            recent(30, 10, size=1, seq=1),
            recent(30, 10, size=1, seq=1, maker=False, bid=False),
            recent(1, 500, size=100, seq=2, maker=False),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [(snap, vol)] = await uc.execute(["SOL-USDC"], now=NOW)

        assert snap.last_price == 10
        assert snap.high_24h == 10
        assert vol.base_size_24h == 1


class TestBatching:

    @pytest.mark.asyncio
    async def test_one_row_per_requested_market_in_order(self):
        repo = InMemoryFillRepository([
            recent(5, 10, market="SOL-USDC"),
            recent(5, 20000, market="BTC-USDC"),
        ])
        uc = ComputeMarketSnapshotsUseCase(repo)

        rows = await uc.execute(["BTC-USDC", "NEW-USDC", "SOL-USDC", "BTC-USDC"], now=NOW)

        assert [s.market_name for s, _ in rows] == ["BTC-USDC", "NEW-USDC", "SOL-USDC"]
        never_traded, never_traded_vol = rows[1]
        assert never_traded.last_price is None
        assert never_traded.high_24h is None
        assert never_traded_vol.base_size_24h == 0
        assert never_traded_vol.quote_size_24h == 0

    @pytest.mark.asyncio
    async def test_ledger_is_read_in_batch(self):
        repo = InMemoryFillRepository([recent(5, 10, market=m) for m in ("A-X", "B-X", "C-X")])
        uc = ComputeMarketSnapshotsUseCase(repo)

        await uc.execute(["A-X", "B-X", "C-X"], now=NOW)

        assert sorted(repo.calls) == ["fills_since", "latest_fills"]

    @pytest.mark.asyncio
    async def test_empty_request(self):
        repo = InMemoryFillRepository()

        assert await ComputeMarketSnapshotsUseCase(repo).execute([], now=NOW) == []
        assert repo.calls == []

    @pytest.mark.asyncio
    async def test_snapshots_and_volumes_helpers(self):
        repo = InMemoryFillRepository([recent(5, 10, size=2)])
        uc = ComputeMarketSnapshotsUseCase(repo)

        [snap] = await uc.snapshots(["SOL-USDC"], now=NOW)
        [vol] = await uc.volumes(["SOL-USDC"], now=NOW)

        assert snap.close_24h == 10
        assert vol.quote_size_24h == 20
