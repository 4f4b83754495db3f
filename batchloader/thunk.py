from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    Hashable,
    Optional,
    Tuple,
    TypeVar,
)

if TYPE_CHECKING:
    from .loader import Loader


K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class State(Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"


class BaseThunk(Generic[K, V]):
    """Deferred result of loading one key

    Created by the loader on the first request of the key and resolved at
    most once, together with other keys of the same batch.
    """

    __slots__ = ("key", "_state", "_value", "_error")

    def __init__(self, key: K) -> None:
        self.key = key
        self._state = State.PENDING
        self._value: Any = None
        self._error: Optional[BaseException] = None

    def __repr__(self) -> str:
        return "<{}: key={!r}, state={}>".format(
            self.__class__.__name__, self.key, self._state.value
        )

    @property
    def state(self) -> State:
        return self._state

    def done(self) -> bool:
        return self._state is State.RESOLVED

    def _set_result(self, value: Any, error: Optional[BaseException]) -> None:
        assert self._state is State.PENDING, "{!r} is already resolved".format(
            self
        )
        self._value = value
        self._error = error
        self._state = State.RESOLVED

    def _outcome(self) -> Tuple[Any, Optional[BaseException]]:
        assert self._state is State.RESOLVED, (
            "{!r} should no longer be pending".format(self)
        )
        return self._value, self._error


class Thunk(BaseThunk[K, V]):
    """Thunk of the synchronous :py:class:`~batchloader.loader.Loader`

    Example::

        thunk = load_user(42)
        user = thunk()  # raises if the batch query failed
        user, error = thunk.resolve()

    """

    __slots__ = ("_loader",)

    def __init__(self, loader: "Loader[K, V]", key: K) -> None:
        super().__init__(key)
        self._loader = loader

    def resolve(self) -> Tuple[V, Optional[BaseException]]:
        """Returns ``(value, error)`` pair, loading the key when needed"""
        if self._state is State.PENDING:
            self._loader._resolve(self)
        return self._outcome()

    def exception(self) -> Optional[BaseException]:
        _, error = self.resolve()
        return error

    def __call__(self) -> V:
        value, error = self.resolve()
        if error is not None:
            raise error
        return value
