"""
    batchloader.batch
    ~~~~~~~~~~~~~~~~~

    Batch executors select pending keys, call the query function once for
    all of them and distribute returned rows between thunks.

"""

import time

from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Optional,
)

import structlog

from .mappers import get_mapper
from .registry import Registry
from .signature import LoaderSignature
from .telemetry.prometheus import LoaderMetrics
from .thunk import BaseThunk


log = structlog.get_logger(__name__)

#: Maximum number of keys passed to the query function at once
DEFAULT_MAX_BATCH_SIZE = 100


def _func_name(func: Callable) -> str:
    return getattr(func, "__qualname__", None) or type(func).__qualname__


class BaseBatchExecutor:
    def __init__(
        self,
        query_func: Callable,
        key_func: Callable,
        signature: LoaderSignature,
        registry: Registry,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        metrics: Optional[LoaderMetrics] = None,
    ) -> None:
        self.query_func = query_func
        self.key_func = key_func
        self.signature = signature
        self.registry = registry
        self.max_batch_size = max_batch_size
        self.metrics = metrics
        self.name = metrics.name if metrics else _func_name(query_func)
        self._mapper = get_mapper(signature.cardinality)

    def select(self, forcing: BaseThunk) -> List[BaseThunk]:
        batch = self.registry.take(forcing.key, self.max_batch_size)
        log.debug(
            "Dispatching batch",
            loader=self.name,
            size=len(batch),
            pending=len(self.registry.pending),
        )
        return batch

    def fail(
        self, batch: List[BaseThunk], error: BaseException, started: float
    ) -> None:
        log.warning(
            "Batch failed",
            loader=self.name,
            size=len(batch),
            error=repr(error),
        )
        if self.metrics is not None:
            self.metrics.observe_batch(len(batch), time.perf_counter() - started)
            self.metrics.observe_error()
        for thunk in batch:
            thunk._set_result(self.signature.zero(), error)

    def settle(
        self, batch: List[BaseThunk], rows: Iterable, started: float
    ) -> None:
        keys: Dict[Hashable, BaseThunk] = {thunk.key: thunk for thunk in batch}
        try:
            results = self._mapper(self.key_func, rows, keys)
        except Exception as error:
            self.fail(batch, error, started)
            return
        except BaseException as error:
            self.fail(batch, error, started)
            raise

        duration = time.perf_counter() - started
        log.debug(
            "Batch settled",
            loader=self.name,
            size=len(batch),
            found=len(results),
            duration=duration,
        )
        if self.metrics is not None:
            self.metrics.observe_batch(len(batch), duration)
        for key, thunk in keys.items():
            if key in results:
                thunk._set_result(results[key], None)
            else:
                thunk._set_result(self.signature.zero(), None)


class BatchExecutor(BaseBatchExecutor):
    """Runs batches in the calling thread"""

    def run_batch(self, forcing: BaseThunk) -> None:
        batch = self.select(forcing)
        started = time.perf_counter()
        try:
            rows: Any = self.query_func([thunk.key for thunk in batch])
        except Exception as error:
            self.fail(batch, error, started)
        except BaseException as error:
            # interrupted batch is resolved as failed before re-raising
            self.fail(batch, error, started)
            raise
        else:
            self.settle(batch, rows, started)
