from typing import (
    Any,
    List,
)

from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql import Select

from . import sqlalchemy as _sa

# We are limiting fetch size to reduce CPU usage and avoid event-loop blocking
FETCH_SIZE = 100


async def _fetch_all(engine: AsyncEngine, expr: Select) -> List[Row]:
    async with engine.connect() as connection:
        stream = await connection.stream(expr)
        rows = []
        while True:
            bucket = await stream.fetchmany(FETCH_SIZE)
            if bucket:
                rows.extend(bucket)
            else:
                break
    return rows


class RowsQuery(_sa.RowsQuery):
    engine: AsyncEngine

    async def __call__(self, keys: List[Any]) -> List[Row]:
        if not keys:
            return []

        return await _fetch_all(self.engine, self.select_expr(keys))


class CountQuery(_sa.CountQuery):
    engine: AsyncEngine

    async def __call__(self, keys: List[Any]) -> List[Row]:
        if not keys:
            return []

        return await _fetch_all(self.engine, self.select_expr(keys))
