from itertools import islice
from typing import (
    Callable,
    Dict,
    Generic,
    Hashable,
    List,
    Tuple,
    TypeVar,
)

from .error import LoaderError


K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class Registry(Generic[K, T]):
    """Thunks of the one loader instance

    ``all`` contains every thunk ever requested, ``pending`` only those which
    are not yet included into a dispatched batch. There is no eviction, so
    loaders are expected to be short-lived.
    """

    def __init__(self) -> None:
        self.all: Dict[K, T] = {}
        self.pending: Dict[K, T] = {}

    def __len__(self) -> int:
        return len(self.all)

    def __contains__(self, key: K) -> bool:
        return key in self.all

    def get_or_create(self, key: K, factory: Callable[[K], T]) -> T:
        try:
            return self.all[key]
        except KeyError:
            thunk = self.all[key] = self.pending[key] = factory(key)
            return thunk

    def pending_keys(self) -> Tuple[K, ...]:
        return tuple(self.pending)

    def take(self, forcing_key: K, limit: int) -> List[T]:
        """Removes up to ``limit`` thunks from pending, forcing key first

        Other keys are taken in the pending iteration order, this order is
        not a part of the contract.
        """
        assert limit > 0, limit
        try:
            batch = [self.pending.pop(forcing_key)]
        except KeyError:
            if forcing_key in self.all:
                raise LoaderError(
                    "Key {!r} is already being loaded, it can't be resolved "
                    "from the query function of its own batch".format(
                        forcing_key
                    )
                )
            raise
        keys = list(islice(self.pending, limit - 1))
        batch.extend(self.pending.pop(key) for key in keys)
        return batch
