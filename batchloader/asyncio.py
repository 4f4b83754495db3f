"""
    batchloader.asyncio
    ~~~~~~~~~~~~~~~~~~~

    Loaders for the asyncio event loop. Keys are requested synchronously,
    while resolution is awaited::

        load_user = make_async(query_users, user_id)

        thunks = [load_user(i) for i in user_ids]
        users = await asyncio.gather(*thunks)  # one query

"""

import time
import inspect

from asyncio import Future, Task, get_running_loop, shield
from contextvars import ContextVar
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Generator,
    Hashable,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from .batch import BaseBatchExecutor, DEFAULT_MAX_BATCH_SIZE
from .error import LoaderError
from .loader import BaseLoader, _check_max_batch_size
from .signature import LoaderSignature, make_signature
from .telemetry.prometheus import LoaderMetrics
from .thunk import BaseThunk, State


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

#: Batches which query functions are running in the current context
_RUNNING: ContextVar[FrozenSet[Future]] = ContextVar(
    "batchloader_running", default=frozenset()
)


class AsyncThunk(BaseThunk[K, V]):
    """Thunk of the :py:class:`AsyncLoader`

    Example::

        thunk = load_user(42)
        user = await thunk  # raises if the batch query failed
        user, error = await thunk.resolve()

    """

    __slots__ = ("_loader",)

    def __init__(self, loader: "AsyncLoader[K, V]", key: K) -> None:
        super().__init__(key)
        self._loader = loader

    async def resolve(self) -> Tuple[V, Optional[BaseException]]:
        if self._state is State.PENDING:
            await self._loader._resolve(self)
        return self._outcome()

    async def exception(self) -> Optional[BaseException]:
        _, error = await self.resolve()
        return error

    async def result(self) -> V:
        value, error = await self.resolve()
        if error is not None:
            raise error
        return value

    def __await__(self) -> Generator[Any, None, V]:
        return self.result().__await__()


class AsyncBatchExecutor(BaseBatchExecutor):
    """Runs batches in the event loop

    By default query function can be either a coroutine function or a plain
    function. To deny plain functions set ``deny_sync`` to True.

    :param deny_sync: deny synchronous query functions -
                      fail the batch with TypeError if result is not
                      awaitable
    """

    def __init__(self, *args: Any, deny_sync: bool = False, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.deny_sync = deny_sync

    async def _query(self, keys: list) -> Any:
        result = self.query_func(keys)
        if inspect.isawaitable(result):
            return await result
        elif self.deny_sync:
            raise TypeError(
                "{!r} returned non-awaitable object {!r}".format(
                    self.query_func, result
                )
            )
        else:
            return result

    async def execute(self, batch: List[BaseThunk]) -> None:
        started = time.perf_counter()
        try:
            rows = await self._query([thunk.key for thunk in batch])
        except Exception as error:
            self.fail(batch, error, started)
        except BaseException as error:
            # cancelled or interrupted batch is resolved as failed
            self.fail(batch, error, started)
            raise
        else:
            self.settle(batch, rows, started)


class AsyncLoader(BaseLoader[K, V, AsyncThunk[K, V]]):
    """Asynchronous loader, see :py:func:`make_async`

    Batches run in separate tasks. Coroutines which force keys of a batch in
    flight wait for this batch, while forcing a still pending key starts a
    new batch. So query functions are able to use their own loader to load
    other keys.
    """

    def __init__(
        self,
        query_func: Callable,
        key_func: Callable,
        signature: LoaderSignature,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        deny_sync: bool = False,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        super().__init__(signature)
        self._executor = AsyncBatchExecutor(
            query_func,
            key_func,
            signature,
            self._registry,
            max_batch_size=max_batch_size,
            metrics=metrics,
            deny_sync=deny_sync,
        )
        self._in_flight: Dict[K, Future] = {}
        self._tasks: Set[Task] = set()

    def _new_thunk(self, key: K) -> AsyncThunk[K, V]:
        return AsyncThunk(self, key)

    def __call__(self, key: K) -> AsyncThunk[K, V]:
        return self._registry.get_or_create(key, self._new_thunk)

    def _dispatch(self, forcing: AsyncThunk[K, V]) -> Future:
        loop = get_running_loop()
        batch = self._executor.select(forcing)
        done = loop.create_future()
        for thunk in batch:
            self._in_flight[thunk.key] = done
        task = loop.create_task(self._run(batch, done))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return done

    async def _run(self, batch: List[BaseThunk], done: Future) -> None:
        # visible to the query function and to the tasks it creates
        _RUNNING.set(_RUNNING.get() | {done})
        try:
            await self._executor.execute(batch)
        finally:
            for thunk in batch:
                del self._in_flight[thunk.key]
            done.set_result(None)

    async def _resolve(self, thunk: AsyncThunk[K, V]) -> None:
        done = self._in_flight.get(thunk.key)
        if done is None:
            done = self._dispatch(thunk)
        elif done in _RUNNING.get():
            raise LoaderError(
                "Key {!r} is already being loaded, it can't be resolved "
                "from the query function of its own batch".format(thunk.key)
            )
        # cancellation of the caller doesn't cancel the batch, it is always
        # completed and all its thunks are resolved
        await shield(done)
        assert thunk.done(), "{!r} should no longer be pending".format(thunk)

    async def flush(self) -> None:
        """Loads all pending keys, in as many batches as needed"""
        while self._registry.pending:
            forcing = next(iter(self._registry.pending.values()))
            await shield(self._dispatch(forcing))


def make_async(
    query_func: Callable,
    key_func: Callable,
    *,
    key_type: Any = None,
    row_type: Any = None,
    result_type: Any = None,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    deny_sync: bool = False,
    metrics: Optional[LoaderMetrics] = None,
) -> AsyncLoader:
    """Makes an asynchronous loader

    Accepts the same arguments as :py:func:`batchloader.loader.make`, query
    function is usually a coroutine function::

        async def query_users(ids: List[int]) -> List[User]:
            ...

        load_user = make_async(query_users, user_id)
        user = await load_user(42)

    :param deny_sync: fail batches of the query function which returned
                      non-awaitable result
    """
    signature = make_signature(
        query_func,
        key_func,
        key_type=key_type,
        row_type=row_type,
        result_type=result_type,
    )
    return AsyncLoader(
        query_func,
        key_func,
        signature,
        max_batch_size=_check_max_batch_size(max_batch_size),
        deny_sync=deny_sync,
        metrics=metrics,
    )
