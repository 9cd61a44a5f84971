import dataclasses
import inspect
import sys
import types
from typing import (  # type: ignore
    Annotated,
    Any,
    Generic,
    Protocol,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

NoneType = type(None)

_ZERO_VALUES: dict[type, Any] = {
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    str: "",
    bytes: b"",
}


def is_record_type(t: Any) -> bool:
    return isinstance(t, type) and dataclasses.is_dataclass(t)


def is_record_instance(value: Any) -> bool:
    return not isinstance(value, type) and dataclasses.is_dataclass(value)


def is_frozen_record_type(t: type) -> bool:
    params = getattr(t, "__dataclass_params__", None)
    return bool(params and params.frozen)


def is_protocol(t: Any) -> bool:
    return isinstance(t, type) and t is not Protocol and getattr(t, "_is_protocol", False)


def is_interface(t: Any) -> bool:
    """An interface is a Protocol or an abstract class; anything else is resolved by exact type."""
    return is_protocol(t) or (isinstance(t, type) and inspect.isabstract(t))


def unwrap_optional(t: Any) -> Any:
    """
    Strips Annotated metadata and a single Optional layer.
    Examples::
        unwrap_optional(Annotated[A, "x"]) == A
        unwrap_optional(A | None) == A
        unwrap_optional(Optional[A]) == A
        unwrap_optional(A | B | None) == A | B | None
    """
    if get_origin(t) is Annotated:
        t = get_args(t)[0]

    if get_origin(t) in (Union, types.UnionType):
        args = [a for a in get_args(t) if a is not NoneType]
        if len(args) == 1:
            return unwrap_optional(args[0])

    return t


def get_protocol_members(proto: type) -> set[str]:
    if members := getattr(proto, "__protocol_attrs__", None):
        return set(members)

    members = set()
    for base in proto.__mro__:
        if base in (object, Protocol, Generic) or not getattr(base, "_is_protocol", False):
            continue
        members.update(name for name in vars(base) if not name.startswith("_"))
        members.update(name for name in getattr(base, "__annotations__", {}) if not name.startswith("_"))
    return members


def _has_member(cls: type, name: str) -> bool:
    if hasattr(cls, name):
        return True
    if dataclasses.is_dataclass(cls) and name in {f.name for f in dataclasses.fields(cls)}:
        return True
    return any(name in getattr(base, "__annotations__", {}) for base in cls.__mro__)


def is_assignable(value_type: type, field_type: Any) -> bool:
    """Tests whether a value of value_type can be placed into a field annotated with field_type."""
    field_type = unwrap_optional(field_type)

    if field_type is Any:
        return True

    if get_origin(field_type) in (Union, types.UnionType):
        return any(is_assignable(value_type, a) for a in get_args(field_type) if a is not NoneType)

    if origin := get_origin(field_type):
        field_type = origin

    if not isinstance(field_type, type):
        return False

    # structural check, protocols with data members refuse issubclass
    if is_protocol(field_type):
        return all(_has_member(value_type, m) for m in get_protocol_members(field_type))

    return issubclass(value_type, field_type)


def zero_value(t: Any) -> Any:
    if get_origin(t) is Annotated:
        t = get_args(t)[0]
    return _ZERO_VALUES.get(t)


def is_nil_or_zero(value: Any, t: Any) -> bool:
    if value is None:
        return True
    zero = zero_value(t)
    return zero is not None and type(value) is type(zero) and value == zero


def _resolve_annotation(annotation: Any, globalns: dict, localns: dict) -> Any:
    def holder(): ...

    holder.__annotations__ = {"annotation": annotation}
    try:
        return get_type_hints(holder, globalns, localns, include_extras=True)["annotation"]
    except (NameError, TypeError):
        return annotation


def get_record_type_hints(record_type: type) -> dict[str, Any]:
    try:
        return get_type_hints(record_type, include_extras=True)
    except NameError:
        pass

    # some annotation names a type we cannot see (TYPE_CHECKING imports); resolve the rest one by one
    hints = {}
    for base in reversed(record_type.__mro__):
        module = sys.modules.get(base.__module__)
        globalns = getattr(module, "__dict__", {})
        for name, annotation in inspect.get_annotations(base).items():
            hints[name] = _resolve_annotation(annotation, globalns, dict(vars(base)))
    return hints


def new_zero_instance(record_type: type) -> Any:
    """
    Allocates a record with every required init argument, InitVars included, set to the zero value of its type.
    Fields with defaults or default factories keep them.
    """
    hints = get_record_type_hints(record_type)
    kwargs = {}
    for param in inspect.signature(record_type).parameters.values():
        if param.default is not param.empty or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        hint = hints.get(param.name, Any)
        if isinstance(hint, dataclasses.InitVar):
            hint = hint.type
        kwargs[param.name] = zero_value(hint)
    return record_type(**kwargs)


def type_name(t: Any) -> str:
    return getattr(t, "__qualname__", None) or repr(t)
