import asyncio

from dataclasses import dataclass
from typing import List, Tuple
from unittest.mock import Mock

import pytest

from batchloader import (
    AsyncThunk,
    Cardinality,
    LoaderError,
    State,
    make_async,
)


@dataclass
class Row:
    id: int
    name: str
    parent_id: int = 0


def make_rows(ids):
    return [Row(id=i, name="ID {}".format(i)) for i in ids]


async def query_rows(ids: List[int]) -> List[Row]:
    await asyncio.sleep(0)
    return make_rows(ids)


def row_id(row: Row) -> int:
    return row.id


def query_mock():
    mock = Mock(side_effect=make_rows)

    async def query(ids: List[int]) -> List[Row]:
        await asyncio.sleep(0)
        return mock(ids)

    return query, mock


@pytest.mark.asyncio
async def test_gather():
    query, mock = query_mock()
    loader = make_async(query, row_id)

    thunks = [loader(i) for i in [1, 2, 3]]
    assert all(isinstance(thunk, AsyncThunk) for thunk in thunks)
    rows = await asyncio.gather(*thunks)

    assert [row.name for row in rows] == ["ID 1", "ID 2", "ID 3"]
    mock.assert_called_once()
    (keys,), _ = mock.call_args
    assert sorted(keys) == [1, 2, 3]


@pytest.mark.asyncio
async def test_same_thunk():
    loader = make_async(query_rows, row_id)
    thunk = loader(5)
    assert loader(5) is thunk
    assert thunk.state is State.PENDING
    assert (await thunk).id == 5
    assert loader(5) is thunk
    assert thunk.done()


@pytest.mark.asyncio
async def test_resolve():
    query, mock = query_mock()
    loader = make_async(query, row_id)
    thunk = loader(7)
    row, error = await thunk.resolve()
    assert row == Row(id=7, name="ID 7")
    assert error is None
    assert await thunk.resolve() == (row, None)
    assert await thunk.exception() is None
    assert await thunk.result() is row
    mock.assert_called_once_with([7])


@pytest.mark.asyncio
async def test_concurrent_batches():
    query, mock = query_mock()
    loader = make_async(query, row_id, max_batch_size=2)

    thunks = [loader(i) for i in range(5)]
    rows = await asyncio.gather(*thunks)

    assert [row.id for row in rows] == list(range(5))
    queried = sorted(k for (ks,), _ in mock.call_args_list for k in ks)
    assert queried == list(range(5))
    assert all(len(ks) <= 2 for (ks,), _ in mock.call_args_list)


@pytest.mark.asyncio
async def test_error():
    error = ConnectionError("no db")

    async def query(ids: List[int]) -> List[Row]:
        raise error

    loader = make_async(query, row_id)
    thunk1 = loader(1)
    thunk2 = loader(2)

    with pytest.raises(ConnectionError):
        await thunk1
    assert await thunk2.resolve() == (None, error)
    assert await thunk2.exception() is error


@pytest.mark.asyncio
async def test_sync_query_func():
    mock = Mock(side_effect=make_rows)
    loader = make_async(mock, row_id, key_type=int, row_type=Row)
    assert (await loader(3)).name == "ID 3"
    mock.assert_called_once_with([3])


@pytest.mark.asyncio
async def test_deny_sync():
    loader = make_async(
        make_rows, row_id, key_type=int, row_type=Row, deny_sync=True
    )
    value, error = await loader(1).resolve()
    assert value is None
    assert isinstance(error, TypeError)
    assert "returned non-awaitable object" in str(error)


@pytest.mark.asyncio
async def test_many():
    async def query(parent_ids: List[int]) -> List[Row]:
        return [
            Row(id=i, name="child", parent_id=parent_id)
            for parent_id in parent_ids
            if parent_id != 3
            for i in range(2)
        ]

    loader = make_async(
        query, lambda row: row.parent_id, result_type=List[Row]
    )
    assert loader.cardinality is Cardinality.MANY
    children1, children3 = await asyncio.gather(loader(1), loader(3))
    assert [c.parent_id for c in children1] == [1, 1]
    assert children3 == []


@pytest.mark.asyncio
async def test_aggregate():
    async def query(ids: List[int]) -> List[Row]:
        return make_rows(i for i in ids if i < 10)

    def name_pair(row: Row) -> Tuple[int, str]:
        return row.id, row.name

    loader = make_async(query, name_pair, result_type=str)
    assert await asyncio.gather(loader(1), loader(11)) == ["ID 1", ""]


@pytest.mark.asyncio
async def test_flush():
    query, mock = query_mock()
    loader = make_async(query, row_id, max_batch_size=2)
    thunks = [loader(i) for i in range(3)]

    await loader.flush()
    assert mock.call_count == 2
    assert loader.pending_keys == ()
    assert all(thunk.done() for thunk in thunks)


@pytest.mark.asyncio
async def test_cancelled_caller():
    started = asyncio.Event()
    release = asyncio.Event()

    async def query(ids: List[int]) -> List[Row]:
        started.set()
        await release.wait()
        return make_rows(ids)

    loader = make_async(query, row_id)
    thunk1 = loader(1)
    thunk2 = loader(2)

    task = asyncio.create_task(thunk1.resolve())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    release.set()
    assert (await thunk2).id == 2
    assert (await thunk1).id == 1


@pytest.mark.asyncio
async def test_repr():
    loader = make_async(query_rows, row_id)
    assert repr(loader) == (
        "<AsyncLoader: query_rows, cardinality=ONE, max_batch_size=100>"
    )
    assert repr(loader(1)) == "<AsyncThunk: key=1, state=PENDING>"


@pytest.mark.asyncio
async def test_nested_loader_call():
    loader = None

    async def query(ids: List[int]) -> List[Row]:
        if 1 in ids:
            # other loader keys can be requested and resolved
            assert (await loader(100)).id == 100
        return make_rows(ids)

    loader = make_async(query, row_id)
    row = await asyncio.wait_for(loader(1), 5)
    assert row.id == 1
    assert loader(100).done()


@pytest.mark.asyncio
async def test_resolve_from_own_batch():
    loader = None

    async def query(ids: List[int]) -> List[Row]:
        await loader(ids[-1]).resolve()
        return make_rows(ids)

    loader = make_async(query, row_id)
    loader(1)
    thunk = loader(2)
    value, error = await asyncio.wait_for(thunk.resolve(), 5)
    assert value is None
    assert isinstance(error, LoaderError)
    assert "already being loaded" in error.message
    assert await loader(1).exception() is error


@pytest.mark.asyncio
async def test_query_cancelled():
    async def query(ids: List[int]) -> List[Row]:
        raise asyncio.CancelledError()

    loader = make_async(query, row_id)
    thunk1 = loader(1)
    thunk2 = loader(2)

    value, error = await thunk1.resolve()
    assert value is None
    assert isinstance(error, asyncio.CancelledError)
    assert await thunk2.resolve() == (None, error)
    assert loader.pending_keys == ()
