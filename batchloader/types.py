"""
    batchloader.types
    ~~~~~~~~~~~~~~~~~

    Helpers to inspect Python type annotations, used to validate loaders
    once, at construction time.

"""

import uuid
import collections.abc

from types import UnionType
from typing import (
    Any,
    Callable,
    Literal,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
)


#: Containers accepted as "ordered list of something" in annotations
SEQUENCE_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)

_KEY_CLASSES = (str, bytes, int, uuid.UUID)

_ZERO_CLASSES = (int, float, complex, str, bytes, bool)


def is_known(annotation: Any) -> bool:
    """Missing and ``Any`` annotations do not constrain anything"""
    return annotation is not None and annotation is not Any


def _supertype(annotation: Any) -> Any:
    # typing.NewType
    while hasattr(annotation, "__supertype__"):
        annotation = annotation.__supertype__
    return annotation


def is_union(annotation: Any) -> bool:
    # both Optional[X] and X | None
    return isinstance(annotation, UnionType) or get_origin(annotation) is Union


def optional_item(annotation: Any) -> Optional[Any]:
    """Returns ``T`` if the annotation is ``Optional[T]``, otherwise None"""
    if not is_union(annotation):
        return None
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if len(args) == 1 and len(args) < len(get_args(annotation)):
        return args[0]
    return None


def is_key_type(annotation: Any) -> bool:
    """Tells whether values of this type can be used as loader keys

    Strings, bytes, integers (enums based on them included), UUIDs, literals
    of strings and integers, and fixed-size tuples composed of those.
    """
    annotation = _supertype(annotation)
    if isinstance(annotation, type):
        return issubclass(annotation, _KEY_CLASSES)

    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is tuple:
        # Tuple[int, ...] is not of a fixed size
        if not args or args[-1] is Ellipsis or args == ((),):
            return False
        return all(map(is_key_type, args))
    elif origin is Literal:
        return all(isinstance(arg, _KEY_CLASSES) for arg in args)
    return False


def sequence_item(annotation: Any) -> Optional[Any]:
    """Returns item type of the ``List[T]``-like annotation

    Returns ``Any`` for bare containers and ``None`` when the annotation
    is not a sequence at all.
    """
    if annotation in SEQUENCE_ORIGINS:
        return Any
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin in SEQUENCE_ORIGINS:
        return args[0] if args else Any
    elif origin is tuple and len(args) == 2 and args[1] is Ellipsis:
        return args[0]
    return None


def pair_items(annotation: Any) -> Optional[Tuple[Any, Any]]:
    """Returns item types of the ``Tuple[A, B]`` annotation"""
    if get_origin(annotation) is tuple:
        args = get_args(annotation)
        if len(args) == 2 and args[1] is not Ellipsis:
            return args[0], args[1]
    return None


def same_type(a: Any, b: Any) -> bool:
    """Compares annotations, ``List[int]`` and ``list[int]`` are the same"""
    if a == b:
        return True
    origin_a, origin_b = get_origin(a), get_origin(b)
    if origin_a is None or origin_a is not origin_b:
        return False
    args_a, args_b = get_args(a), get_args(b)
    return len(args_a) == len(args_b) and all(map(same_type, args_a, args_b))


def zero_factory(annotation: Any) -> Callable[[], Any]:
    """Returns a function which makes a "zero value" of the type

    Sequences are always fresh empty lists, builtin scalars are their
    default-constructed values, and everything else is ``None``.
    """
    if sequence_item(annotation) is not None:
        return list
    base = _supertype(annotation)
    if isinstance(base, type) and base in _ZERO_CLASSES:
        return base
    return _none


def _none() -> None:
    return None


def type_repr(annotation: Any) -> str:
    if isinstance(annotation, type) and annotation.__module__ == "builtins":
        return annotation.__qualname__
    elif isinstance(annotation, type):
        return "{}.{}".format(annotation.__module__, annotation.__qualname__)
    return repr(annotation)
