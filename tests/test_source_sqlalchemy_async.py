import asyncio

from typing import List

import pytest

from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import create_async_engine

from batchloader import make_async
from batchloader.sources import sqlalchemy_async as sa_async

from .test_source_sqlalchemy import (
    ORDERS,
    USERS,
    metadata,
    order_table,
    user_table,
)


async def setup_db(db_path):
    db_engine = create_async_engine("sqlite+aiosqlite:///{}".format(db_path))
    async with db_engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
        await connection.execute(user_table.insert(), USERS)
        await connection.execute(order_table.insert(), ORDERS)
    return db_engine


@pytest.mark.asyncio
async def test_rows(tmp_path):
    db_engine = await setup_db(tmp_path / "test.db")
    try:
        query = sa_async.RowsQuery(db_engine, user_table)
        loader = make_async(query, query.key, key_type=int, deny_sync=True)

        alice, missing, carol = await asyncio.gather(
            loader(1), loader(5), loader(3)
        )
        assert alice.name == "alice"
        assert missing is None
        assert carol.name == "carol"
    finally:
        await db_engine.dispose()


@pytest.mark.asyncio
async def test_rows_by_foreign_key(tmp_path):
    db_engine = await setup_db(tmp_path / "test.db")
    try:
        query = sa_async.RowsQuery(
            db_engine, order_table, key_column=order_table.c.user_id
        )
        loader = make_async(
            query, query.key, key_type=int, result_type=List[Row]
        )
        orders1, orders2 = await asyncio.gather(loader(1), loader(2))
        assert sorted(row.title for row in orders1) == ["book", "pen"]
        assert orders2 == []
    finally:
        await db_engine.dispose()


@pytest.mark.asyncio
async def test_count(tmp_path, monkeypatch):
    monkeypatch.setattr(sa_async, "FETCH_SIZE", 1)
    db_engine = await setup_db(tmp_path / "test.db")
    try:
        query = sa_async.CountQuery(db_engine, order_table.c.user_id)
        loader = make_async(query, query.key, key_type=int, result_type=int)
        counts = await asyncio.gather(*[loader(i) for i in [1, 2, 3]])
        assert counts == [2, 0, 1]
    finally:
        await db_engine.dispose()


@pytest.mark.asyncio
async def test_empty_keys(tmp_path):
    db_engine = await setup_db(tmp_path / "test.db")
    try:
        assert await sa_async.RowsQuery(db_engine, user_table)([]) == []
    finally:
        await db_engine.dispose()
