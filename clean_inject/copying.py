"""Structural deep copy of arbitrary object graphs."""

import copy
import datetime
import enum
import types
from collections import deque
from typing import Any, Protocol, TypeVar, runtime_checkable

from .utils import deprecated

T = TypeVar("T")

_MISSING = object()

_INSTANT_TYPES = (
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    datetime.tzinfo,
)

_ATOMIC_TYPES = (
    int,
    float,
    complex,
    str,
    bytes,
    range,
    type(Ellipsis),
    type(NotImplemented),
    type,
    enum.Enum,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.ModuleType,
)


@runtime_checkable
class Copier(Protocol):
    """Implemented by values that know how to copy themselves; the result is used verbatim."""

    def deep_copy(self) -> Any: ...


def deep_copy(value: T) -> T:
    """
    Creates a deep copy of value that shares no mutable state with it.
    Aliasing inside the graph is kept: an object reachable twice is copied once.
    """
    return _copy_recursive(value, {})


@deprecated("iface is kept for older callers, use deep_copy instead")
def iface(value: T) -> T:
    return deep_copy(value)


def _copy_recursive(original: Any, memo: dict[int, Any]) -> Any:
    if original is None:
        return None

    if isinstance(original, _INSTANT_TYPES) or isinstance(original, _ATOMIC_TYPES):
        return original

    if (existing := memo.get(id(original), _MISSING)) is not _MISSING:
        return existing

    if isinstance(original, Copier):
        cpy = original.deep_copy()
        memo[id(original)] = cpy
        return cpy

    if isinstance(original, (list, deque)):
        return _copy_sequence(original, memo)

    if isinstance(original, dict):
        return _copy_mapping(original, memo)

    if isinstance(original, set):
        return _copy_set(original, memo)

    if isinstance(original, (tuple, frozenset)):
        return _copy_immutable_collection(original, memo)

    if isinstance(original, bytearray):
        cpy = bytearray(original)
        memo[id(original)] = cpy
        return cpy

    if hasattr(original, "__dict__") or _slot_names(type(original)):
        return _copy_object(original, memo)

    # no inspectable state (locks, sockets, native handles): share it
    return original


def _copy_sequence(original: list | deque, memo: dict[int, Any]):
    cpy = copy.copy(original)
    cpy.clear()
    memo[id(original)] = cpy
    cpy.extend(_copy_recursive(item, memo) for item in original)
    return cpy


def _copy_mapping(original: dict, memo: dict[int, Any]):
    cpy = copy.copy(original)
    cpy.clear()
    memo[id(original)] = cpy
    for key, value in original.items():
        cpy[_copy_recursive(key, memo)] = _copy_recursive(value, memo)
    return cpy


def _copy_set(original: set, memo: dict[int, Any]):
    cpy = copy.copy(original)
    cpy.clear()
    memo[id(original)] = cpy
    cpy.update(_copy_recursive(item, memo) for item in original)
    return cpy


def _copy_immutable_collection(original: tuple | frozenset, memo: dict[int, Any]):
    items = [_copy_recursive(item, memo) for item in original]
    # a cycle through a mutable member may already have produced the copy
    if (existing := memo.get(id(original), _MISSING)) is not _MISSING:
        return existing

    cls = type(original)
    if isinstance(original, tuple) and hasattr(original, "_make"):
        cpy = cls._make(items)
    else:
        cpy = cls(items)
    memo[id(original)] = cpy
    return cpy


def _slot_names(cls: type) -> list[str]:
    names = []
    for base in cls.__mro__:
        slots = base.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            # private slots are stored under their mangled name
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{base.__name__.lstrip('_')}{name}"
            names.append(name)
    return names


def _copy_object(original: Any, memo: dict[int, Any]):
    """Records and plain objects: a new instance of the same class, every attribute copied, __init__ not run."""
    cls = type(original)
    cpy = cls.__new__(cls)
    memo[id(original)] = cpy

    for name in _slot_names(cls):
        value = getattr(original, name, _MISSING)
        if value is not _MISSING:
            object.__setattr__(cpy, name, _copy_recursive(value, memo))

    for name, value in getattr(original, "__dict__", {}).items():
        object.__setattr__(cpy, name, _copy_recursive(value, memo))

    return cpy
