"""Tests for FillRepositoryMongoDB query shapes against mocked Motor objects."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import ASCENDING

from adapters.external.database.fill_repository_mongodb import FillRepositoryMongoDB

from fakes import T0, make_fill


def cursor_of(docs):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=docs)
    return cursor


@pytest.fixture
def collection():
    col = MagicMock()
    col.find = MagicMock(return_value=cursor_of([]))
    col.find_one = AsyncMock(return_value=None)
    col.aggregate = MagicMock(return_value=cursor_of([]))
    col.create_index = AsyncMock()
    return col


@pytest.fixture
def repo(collection):
    db = MagicMock()
    db.__getitem__ = MagicMock(return_value=collection)
    return FillRepositoryMongoDB(db)


ORDER = [("time", ASCENDING), ("seq_num", ASCENDING)]


class TestFillsInRange:

    @pytest.mark.asyncio
    async def test_maker_only_half_open_range(self, repo, collection):
        collection.find.return_value = cursor_of([make_fill(1, 10, seq=1).to_mongo()])
        end = T0 + timedelta(minutes=5)

        fills = await repo.fills_in_range("SOL-USDC", T0, end)

        assert [f.price for f in fills] == [10]
        collection.find.assert_called_once_with(
            {"market_name": "SOL-USDC", "time": {"$gte": T0, "$lt": end}, "maker": True},
            sort=ORDER,
        )

    @pytest.mark.asyncio
    async def test_all_legs(self, repo, collection):
        await repo.fills_in_range("SOL-USDC", T0, T0 + timedelta(minutes=1), maker_only=False)

        query = collection.find.call_args[0][0]
        assert "maker" not in query


class TestLatestFills:

    @pytest.mark.asyncio
    async def test_groups_latest_fill_per_market(self, repo, collection):
        sol = make_fill(3, 11, seq=9)
        btc = make_fill(2, 42000, seq=4, market="BTC-USDC")
        collection.aggregate.return_value = cursor_of([
            {"_id": "SOL-USDC", "doc": sol.to_mongo()},
            {"_id": "BTC-USDC", "doc": btc.to_mongo()},
        ])

        latest = await repo.latest_fills(["SOL-USDC", "BTC-USDC"])

        assert latest["SOL-USDC"].price == 11
        assert latest["BTC-USDC"].seq_num == 4
        [pipeline] = collection.aggregate.call_args[0]
        assert pipeline[0] == {"$match": {"market_name": {"$in": ["SOL-USDC", "BTC-USDC"]}, "maker": True}}
        assert pipeline[1] == {"$sort": {"market_name": 1, "time": -1, "seq_num": -1}}

    @pytest.mark.asyncio
    async def test_until_bounds_the_match(self, repo, collection):
        until = T0 + timedelta(hours=1)

        await repo.latest_fills(["SOL-USDC"], until=until)

        [pipeline] = collection.aggregate.call_args[0]
        assert pipeline[0] == {
            "$match": {"market_name": {"$in": ["SOL-USDC"]}, "time": {"$lte": until}, "maker": True}
        }

    @pytest.mark.asyncio
    async def test_empty_request_skips_the_query(self, repo, collection):
        assert await repo.latest_fills([]) == {}
        collection.aggregate.assert_not_called()


class TestFillsSince:

    @pytest.mark.asyncio
    async def test_batch_query(self, repo, collection):
        await repo.fills_since(["A-X", "B-X"], T0)

        collection.find.assert_called_once_with(
            {"market_name": {"$in": ["A-X", "B-X"]}, "time": {"$gte": T0}, "maker": True},
            sort=ORDER,
        )

    @pytest.mark.asyncio
    async def test_until_closes_the_window(self, repo, collection):
        until = T0 + timedelta(hours=24)

        await repo.fills_since(["A-X"], T0, until=until)

        query = collection.find.call_args[0][0]
        assert query["time"] == {"$gte": T0, "$lte": until}

    @pytest.mark.asyncio
    async def test_empty_request_skips_the_query(self, repo, collection):
        assert await repo.fills_since([], T0) == []
        collection.find.assert_not_called()


@pytest.mark.asyncio
async def test_earliest_fill_missing(repo, collection):
    assert await repo.earliest_fill("SOL-USDC") is None
    collection.find_one.assert_awaited_once_with({"market_name": "SOL-USDC", "maker": True}, sort=ORDER)
