from .asyncio import AsyncLoader, AsyncThunk, make_async
from .batch import DEFAULT_MAX_BATCH_SIZE
from .error import ConfigurationError, LoaderError
from .loader import Loader, make
from .mappers import Cardinality
from .thunk import State, Thunk

__version__ = '0.1.0'

__all__ = [
    "AsyncLoader",
    "AsyncThunk",
    "DEFAULT_MAX_BATCH_SIZE",
    "Cardinality",
    "ConfigurationError",
    "Loader",
    "LoaderError",
    "State",
    "Thunk",
    "make",
    "make_async",
]
