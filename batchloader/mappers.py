"""
    batchloader.mappers
    ~~~~~~~~~~~~~~~~~~~

    Rules which distribute rows, returned by the query function, between
    keys of the batch.

"""

from enum import Enum
from collections import defaultdict
from typing import (
    Any,
    Callable,
    Collection,
    Dict,
    Iterable,
    List,
)


class Cardinality(Enum):
    #: One row per key, key function returns a key
    ONE = "ONE"
    #: Many rows per key, key function returns a key
    MANY = "MANY"
    #: Precomputed scalar per key, key function returns (key, value)
    AGGREGATE = "AGGREGATE"


Mapper = Callable[[Callable, Iterable, Collection], Dict[Any, Any]]


def _to_one_mapper(
    key_func: Callable, rows: Iterable, keys: Collection
) -> Dict[Any, Any]:
    mapping = {}
    for row in rows:
        key = key_func(row)
        # rows for keys outside of the batch are dropped
        if key in keys:
            mapping[key] = row
    return mapping


def _to_many_mapper(
    key_func: Callable, rows: Iterable, keys: Collection
) -> Dict[Any, Any]:
    mapping: Dict[Any, List] = defaultdict(list)
    for row in rows:
        mapping[key_func(row)].append(row)
    return {key: mapping[key] for key in keys}


def _aggregate_mapper(
    key_func: Callable, rows: Iterable, keys: Collection
) -> Dict[Any, Any]:
    mapping = {}
    for row in rows:
        key, value = key_func(row)
        if key in keys:
            mapping[key] = value
    return mapping


MAPPERS: Dict[Cardinality, Mapper] = {
    Cardinality.ONE: _to_one_mapper,
    Cardinality.MANY: _to_many_mapper,
    Cardinality.AGGREGATE: _aggregate_mapper,
}


def get_mapper(cardinality: Cardinality) -> Mapper:
    try:
        return MAPPERS[cardinality]
    except KeyError:
        raise TypeError(repr(cardinality))
