"""Dependency injection into dataclass object graphs, with shared and isolated instances."""

from .copying import Copier, deep_copy, iface
from .core import Container, ContainerSettings, Injector, InjectScope, Provider, all_providers
from .errors import (
    AccessError,
    AmbiguousAssignableDependency,
    CircularDependencyError,
    InjectError,
    InvalidProviderShape,
    InvalidTargetShape,
    MalformedInjectionMarker,
    MarkerError,
    MissingAssignableDependency,
    MissingNamedDependency,
    ResolutionError,
    ShapeError,
    TypeMismatch,
    UnexportedInjectTarget,
)
from .tags import TagSyntaxError, inject, parse_tag

__all__ = [
    "AccessError",
    "AmbiguousAssignableDependency",
    "CircularDependencyError",
    "Container",
    "ContainerSettings",
    "Copier",
    "InjectError",
    "InjectScope",
    "Injector",
    "InvalidProviderShape",
    "InvalidTargetShape",
    "MalformedInjectionMarker",
    "MarkerError",
    "MissingAssignableDependency",
    "MissingNamedDependency",
    "Provider",
    "ResolutionError",
    "ShapeError",
    "TagSyntaxError",
    "TypeMismatch",
    "UnexportedInjectTarget",
    "all_providers",
    "deep_copy",
    "iface",
    "inject",
    "parse_tag",
]
