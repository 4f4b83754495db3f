"""
    batchloader.signature
    ~~~~~~~~~~~~~~~~~~~~~

    Validation of the query function and the key function against the
    declared loader types. Everything here happens once, when a loader is
    made, and reports problems with :py:class:`ConfigurationError`.

"""

import inspect
import functools
import dataclasses

from typing import (
    Any,
    Callable,
    Dict,
    Optional,
    get_type_hints,
)

from .error import ConfigurationError
from .mappers import Cardinality
from .types import (
    is_key_type,
    is_known,
    optional_item,
    pair_items,
    same_type,
    sequence_item,
    type_repr,
    zero_factory,
)


@dataclasses.dataclass(frozen=True)
class LoaderSignature:
    key_type: Any
    row_type: Any
    result_type: Any
    cardinality: Cardinality
    zero: Callable[[], Any]


def _type_hints(func: Callable, name: str) -> Dict[str, Any]:
    if isinstance(func, functools.partial):
        # names of the remaining parameters are the same
        return _type_hints(func.func, name)
    elif inspect.isfunction(func):
        target = func
    elif inspect.ismethod(func):
        target = func.__func__
    elif inspect.isclass(func) or not callable(func):
        return {}
    elif inspect.isfunction(getattr(type(func), "__call__", None)):
        # instances of classes with annotated __call__
        target = type(func).__call__
    else:
        return {}
    try:
        return get_type_hints(target)
    except NameError as exc:
        raise ConfigurationError(
            "Can't resolve annotations of {}: {}".format(name, exc)
        ) from exc
    except TypeError:
        return {}


def _single_parameter(func: Callable, name: str) -> Optional[str]:
    """Checks that function accepts exactly one positional argument

    Returns the name of this argument, when it is known.
    """
    if not callable(func):
        raise ConfigurationError("{} must be callable".format(name))
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # builtins without signature, e.g. operator.attrgetter
        return None
    try:
        bound = sig.bind(object())
    except TypeError:
        raise ConfigurationError(
            "{} must accept exactly one positional argument, "
            "signature: {}".format(name, sig)
        )
    (param_name,) = bound.arguments.keys()
    param = sig.parameters[param_name]
    if param.kind is inspect.Parameter.VAR_POSITIONAL:
        return None
    return param_name


def _agree(name: str, *candidates: Any) -> Any:
    """Returns the only known type among candidates or raises"""
    known = [c for c in candidates if is_known(c)]
    if not known:
        return None
    first = known[0]
    for other in known[1:]:
        if not same_type(first, other):
            raise ConfigurationError(
                "Inconsistent {} types: {} and {}".format(
                    name, type_repr(first), type_repr(other)
                )
            )
    return first


def _cardinality(row_type: Any, result_type: Any) -> Cardinality:
    if not is_known(result_type):
        return Cardinality.ONE
    if same_type(result_type, row_type):
        return Cardinality.ONE
    item_type = optional_item(result_type)
    if item_type is not None and same_type(item_type, row_type):
        return Cardinality.ONE
    item_type = sequence_item(result_type)
    if item_type is not None and same_type(item_type, row_type):
        return Cardinality.MANY
    return Cardinality.AGGREGATE


def make_signature(
    query_func: Callable,
    key_func: Callable,
    *,
    key_type: Any = None,
    row_type: Any = None,
    result_type: Any = None,
) -> LoaderSignature:
    query_param = _single_parameter(query_func, "query_func")
    query_hints = _type_hints(query_func, "query_func")

    query_key_type = None
    if query_param is not None and is_known(query_hints.get(query_param)):
        query_key_type = sequence_item(query_hints[query_param])
        if query_key_type is None:
            raise ConfigurationError(
                "query_func should accept one parameter, a list of keys, "
                "got: {}".format(type_repr(query_hints[query_param]))
            )

    query_row_type = None
    if is_known(query_hints.get("return")):
        query_row_type = sequence_item(query_hints["return"])
        if query_row_type is None:
            raise ConfigurationError(
                "query_func should return a list of rows, got: {}".format(
                    type_repr(query_hints["return"])
                )
            )

    key_param = _single_parameter(key_func, "key_func")
    key_hints = _type_hints(key_func, "key_func")
    key_func_row_type = key_hints.get(key_param) if key_param else None

    key_type = _agree("key", key_type, query_key_type)
    if key_type is None:
        raise ConfigurationError(
            "Key type is not specified, annotate query_func parameter "
            "or provide key_type"
        )
    if not is_key_type(key_type):
        raise ConfigurationError(
            "Key type should be a string, bytes, integer, UUID or a tuple "
            "of them, got: {}".format(type_repr(key_type))
        )

    row_type = _agree("row", row_type, query_row_type, key_func_row_type)
    if row_type is None and is_known(result_type):
        raise ConfigurationError(
            "Row type is not specified, annotate query_func return value "
            "or provide row_type"
        )

    cardinality = _cardinality(row_type, result_type)
    if not is_known(result_type):
        result_type = row_type

    key_func_result = key_hints.get("return")
    if is_known(key_func_result):
        if cardinality is Cardinality.AGGREGATE:
            items = pair_items(key_func_result)
            if items is None or not all(
                not is_known(item) or same_type(item, expected)
                for item, expected in zip(items, (key_type, result_type))
            ):
                raise ConfigurationError(
                    "key_func must return two values: ({}, {}), "
                    "got: {}".format(
                        type_repr(key_type),
                        type_repr(result_type),
                        type_repr(key_func_result),
                    )
                )
        elif not same_type(key_func_result, key_type):
            raise ConfigurationError(
                "key_func must return one value of type {}, got: {}".format(
                    type_repr(key_type), type_repr(key_func_result)
                )
            )

    if cardinality is Cardinality.ONE:
        zero = zero_factory(None)
    else:
        zero = zero_factory(result_type)

    return LoaderSignature(
        key_type=key_type,
        row_type=row_type,
        result_type=result_type,
        cardinality=cardinality,
        zero=zero,
    )
