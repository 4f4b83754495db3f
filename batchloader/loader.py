"""
    batchloader.loader
    ~~~~~~~~~~~~~~~~~~

    Loaders turn requests of single keys into batched queries. Query is
    performed only when some of the requested values is actually needed,
    and then all the keys requested so far are loaded together.

"""

import threading
import contextlib

from typing import (
    Any,
    Callable,
    ContextManager,
    Generic,
    Hashable,
    Optional,
    Tuple,
    TypeVar,
)

from .batch import (
    BaseBatchExecutor,
    BatchExecutor,
    DEFAULT_MAX_BATCH_SIZE,
)
from .error import ConfigurationError
from .mappers import Cardinality
from .registry import Registry
from .signature import LoaderSignature, make_signature
from .telemetry.prometheus import LoaderMetrics
from .thunk import BaseThunk, Thunk


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")
T = TypeVar("T", bound=BaseThunk)


def _check_max_batch_size(max_batch_size: Any) -> int:
    if (
        not isinstance(max_batch_size, int)
        or isinstance(max_batch_size, bool)
        or max_batch_size < 1
    ):
        raise ConfigurationError(
            "max_batch_size should be a positive integer, got: {!r}".format(
                max_batch_size
            )
        )
    return max_batch_size


class BaseLoader(Generic[K, V, T]):
    _executor: BaseBatchExecutor

    def __init__(self, signature: LoaderSignature) -> None:
        self._signature = signature
        self._registry: Registry[K, T] = Registry()

    def __repr__(self) -> str:
        return "<{}: {}, cardinality={}, max_batch_size={}>".format(
            self.__class__.__name__,
            self._executor.name,
            self.cardinality.value,
            self.max_batch_size,
        )

    def __len__(self) -> int:
        return len(self._registry)

    @property
    def cardinality(self) -> Cardinality:
        return self._signature.cardinality

    @property
    def signature(self) -> LoaderSignature:
        return self._signature

    @property
    def max_batch_size(self) -> int:
        return self._executor.max_batch_size

    @property
    def pending_keys(self) -> Tuple[K, ...]:
        return self._registry.pending_keys()


class Loader(BaseLoader[K, V, Thunk[K, V]]):
    """Synchronous loader, see :py:func:`make`"""

    def __init__(
        self,
        query_func: Callable,
        key_func: Callable,
        signature: LoaderSignature,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        threadsafe: bool = False,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        super().__init__(signature)
        self._executor = BatchExecutor(
            query_func,
            key_func,
            signature,
            self._registry,
            max_batch_size=max_batch_size,
            metrics=metrics,
        )
        self._lock: ContextManager
        if threadsafe:
            self._lock = threading.RLock()
        else:
            self._lock = contextlib.nullcontext()

    def _new_thunk(self, key: K) -> Thunk[K, V]:
        return Thunk(self, key)

    def __call__(self, key: K) -> Thunk[K, V]:
        with self._lock:
            return self._registry.get_or_create(key, self._new_thunk)

    def _resolve(self, thunk: Thunk[K, V]) -> None:
        with self._lock:
            if not thunk.done():
                self._executor.run_batch(thunk)
        assert thunk.done(), "{!r} should no longer be pending".format(thunk)

    def flush(self) -> None:
        """Loads all pending keys, in as many batches as needed"""
        with self._lock:
            while self._registry.pending:
                forcing = next(iter(self._registry.pending.values()))
                self._executor.run_batch(forcing)


def make(
    query_func: Callable,
    key_func: Callable,
    *,
    key_type: Any = None,
    row_type: Any = None,
    result_type: Any = None,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    threadsafe: bool = False,
    metrics: Optional[LoaderMetrics] = None,
) -> Loader:
    """Makes a loader from the query function and the key function

    Query function accepts a list of keys and returns a list of rows, in
    any order. Key function accepts a row and returns its key::

        def query_users(ids: List[int]) -> List[User]:
            ...

        def user_id(user: User) -> int:
            return user.id

        load_user = make(query_users, user_id)

        thunk = load_user(42)
        user = thunk()

    Result type of the loader defines how rows are distributed between
    keys:

    - one row per key, when ``result_type`` is omitted or is the row type;
    - list of rows per key, when ``result_type`` is ``List[Row]``, keys
      without rows receive an empty list;
    - a scalar per key in any other case, then key function should
      return both key and value: ``(key, value)``.

    Types are taken from the annotations of the functions, ``key_type``,
    ``row_type`` and ``result_type`` can be used for functions without
    annotations. Inconsistent declarations are reported immediately with
    :py:class:`~batchloader.error.ConfigurationError`.

    :param query_func: function to load rows of the batch of keys
    :param key_func: function to extract key from the row
    :param key_type: type of the keys
    :param row_type: type of the rows, returned by the query function
    :param result_type: type of the value loaded for a single key
    :param max_batch_size: maximum number of keys in one query
    :param threadsafe: allow to use loader from multiple threads
    :param metrics: Prometheus metrics of the loader
    """
    signature = make_signature(
        query_func,
        key_func,
        key_type=key_type,
        row_type=row_type,
        result_type=result_type,
    )
    return Loader(
        query_func,
        key_func,
        signature,
        max_batch_size=_check_max_batch_size(max_batch_size),
        threadsafe=threadsafe,
        metrics=metrics,
    )
