from theutilitybelt.functional.predicate import predicate

from .core import Provider, all_providers
from .typing_utils import is_assignable

__all__ = [
    "all_providers",
    "create_filter",
    "is_assignable_to",
    "is_named",
    "is_not_named",
    "name_ends_with",
    "name_starts_with",
    "with_name",
    "with_value_type",
]


def create_filter(func):
    return predicate(func)


def with_name(name: str | None):
    """
    Filter providers registered under the name
    """

    def _with_name(p: Provider):
        return p.name == name

    return predicate(_with_name)


def name_starts_with(prefix: str):
    def _name_starts_with(p: Provider):
        if p.name is not None:
            return p.name.startswith(prefix)
        return False

    return predicate(_name_starts_with)


def name_ends_with(suffix: str):
    def _name_ends_with(p: Provider):
        if p.name is not None:
            return p.name.endswith(suffix)
        return False

    return predicate(_name_ends_with)


is_not_named = with_name(None)
is_not_named.__doc__ = "Filter for providers keyed by their type"

is_named = ~is_not_named
is_named.__doc__ = "Filter for providers keyed by a name"


def with_value_type(value_type: type):
    """
    Filter providers whose value is exactly of the type
    """

    def _with_value_type(p: Provider):
        return p.value_type is value_type

    return predicate(_with_value_type)


def is_assignable_to(service_type: type):
    """
    Filter providers that could be injected into a field of the type
    """

    def _is_assignable_to(p: Provider):
        return is_assignable(p.value_type, service_type)

    return predicate(_is_assignable_to)
