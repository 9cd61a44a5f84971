"""Object graph container."""

from __future__ import annotations

import dataclasses
import logging
import random
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from itertools import chain
from typing import Any, Protocol, TypeVar

from theutilitybelt.functional.utils import constant

from .copying import deep_copy
from .errors import (
    AmbiguousAssignableDependency,
    CircularDependencyError,
    InjectError,
    InvalidProviderShape,
    InvalidTargetShape,
    MalformedInjectionMarker,
    MissingAssignableDependency,
    MissingNamedDependency,
    TypeMismatch,
    UnexportedInjectTarget,
)
from .tags import DEFAULT_TAG_KEY, DEFAULT_TAG_METADATA_KEY, EMBEDDED_METADATA_KEY, TagSyntaxError, parse_tag
from .typing_utils import (
    get_record_type_hints,
    is_assignable,
    is_frozen_record_type,
    is_interface,
    is_nil_or_zero,
    is_record_instance,
    is_record_type,
    new_zero_instance,
    type_name,
    unwrap_optional,
)

logger = logging.getLogger(__name__)

TService = TypeVar("TService")


class InjectScope(IntEnum):
    shared = 0
    isolated = 1


class Provider:
    __slots__ = ("embedded", "name", "synthesized", "value", "value_type")

    def __init__(self, value: Any, name: str | None = None, synthesized: bool = False, embedded: bool = False):
        self.value = value
        self.value_type: type = type(value)
        self.name = name or None
        self.synthesized = synthesized
        self.embedded = embedded

    @property
    def is_named(self) -> bool:
        return self.name is not None

    @property
    def key(self) -> str | type:
        return self.name if self.name is not None else self.value_type

    def __repr__(self) -> str:
        key = repr(self.name) if self.name is not None else type_name(self.value_type)
        return f"Provider({key}, synthesized={self.synthesized})"


ProviderFilter = Callable[[Provider], bool]

all_providers = constant(True)


@dataclass(kw_only=True)
class ContainerSettings:
    tag_key: str = DEFAULT_TAG_KEY
    tag_metadata_key: str = DEFAULT_TAG_METADATA_KEY
    random: random.Random = field(default_factory=random.Random)


class _Registry:
    def __init__(self):
        self._by_name: dict[str, Provider] = {}
        self._by_type: dict[type, Provider] = {}

    def add(self, provider: Provider) -> bool:
        """Adds the provider unless its key is taken. First registration wins."""
        index: dict[Any, Provider] = self._by_name if provider.is_named else self._by_type
        if provider.key in index:
            return False
        index[provider.key] = provider
        return True

    def get_by_name(self, name: str) -> Provider | None:
        return self._by_name.get(name)

    def get_by_type(self, service_type: type) -> Provider | None:
        return self._by_type.get(service_type)

    def typed_providers(self) -> Iterator[Provider]:
        return iter(self._by_type.values())

    def __iter__(self) -> Iterator[Provider]:
        return chain(self._by_type.values(), self._by_name.values())

    def __len__(self):
        return len(self._by_type) + len(self._by_name)


class _ResolvingContext:
    """
    State of one resolution pass. Synthesized providers and field assignments are staged here and only
    take effect through commit(), so a failed pass leaves both the registry and the target untouched.
    """

    def __init__(self, registry: _Registry):
        self.registry = registry
        self._staged: dict[type, Provider] = {}
        self._building: list[type] = []
        self._assignments: list[tuple[Any, str, Any]] = []

    def find_by_name(self, name: str) -> Provider | None:
        return self.registry.get_by_name(name)

    def find_by_type(self, service_type: type) -> Provider | None:
        return self.registry.get_by_type(service_type) or self._staged.get(service_type)

    def find_assignable(self, interface_type: type) -> list[Provider]:
        return [
            p
            for p in chain(self.registry.typed_providers(), self._staged.values())
            if is_assignable(p.value_type, interface_type)
        ]

    @contextmanager
    def building(self, record_type: type):
        if record_type in self._building:
            raise CircularDependencyError([*self._building, record_type])
        self._building.append(record_type)
        try:
            yield
        finally:
            self._building.pop()

    def stage(self, provider: Provider):
        self._staged.setdefault(provider.value_type, provider)

    def assign(self, record: Any, field_name: str, value: Any):
        self._assignments.append((record, field_name, value))

    def commit(self):
        for record, field_name, value in self._assignments:
            setattr(record, field_name, value)
        self._assignments.clear()

        for provider in self._staged.values():
            if self.registry.add(provider):
                logger.debug("Registered %r", provider)
        self._staged.clear()


class Injector(Protocol):
    def provide(self, value: Any) -> Injector: ...

    def provide_by_name(self, name: str | None, value: Any) -> Injector: ...

    def instance(self, target: type[TService] | TService, scope: InjectScope = InjectScope.shared) -> TService: ...

    def lookup_by_name(self, name: str) -> Provider | None: ...

    def lookup_by_type(self, service_type: type) -> Provider | None: ...

    def has_provider(self, key: str | type) -> bool: ...

    def objects(self, filter: ProviderFilter = all_providers) -> list[Provider]: ...


class Container(Injector):
    """
    Holds providers and builds object graphs from them.
    A container is meant to be created once and kept for the life of the program.
    Every public method holds the container lock for its whole duration, the private
    methods assume it is held and never take it again.
    """

    def __init__(self, settings: ContainerSettings | None = None):
        self.settings = settings or ContainerSettings()
        self._registry = _Registry()
        self._lock = threading.Lock()

    def provide(self, value: Any) -> Container:
        return self.provide_by_name(None, value)

    def provide_by_name(self, name: str | None, value: Any) -> Container:
        with self._lock:
            self._provide(Provider(value, name=name))
        return self

    def instance(self, target: type[TService] | TService, scope: InjectScope = InjectScope.shared) -> TService:
        """
        Returns the instance registered for the target type, building and registering it first if needed.
        target is either a dataclass type or a dataclass instance whose empty injectable fields get filled.
        """
        with self._lock:
            provider = self._instance(target)
            return self._materialize(provider, scope)

    def lookup_by_name(self, name: str) -> Provider | None:
        with self._lock:
            return self._registry.get_by_name(name)

    def lookup_by_type(self, service_type: type) -> Provider | None:
        with self._lock:
            return self._registry.get_by_type(service_type)

    def has_provider(self, key: str | type) -> bool:
        with self._lock:
            if isinstance(key, str):
                return self._registry.get_by_name(key) is not None
            return self._registry.get_by_type(key) is not None

    def objects(self, filter: ProviderFilter = all_providers) -> list[Provider]:
        """Registered providers excluding synthesized ones. The order is random on purpose, do not rely on it."""
        with self._lock:
            providers = [p for p in self._registry if not p.synthesized and filter(p)]
        self.settings.random.shuffle(providers)
        return providers

    def _provide(self, provider: Provider):
        if not provider.is_named and not is_record_instance(provider.value):
            raise InvalidProviderShape(provider.value)

        if self._registry.add(provider):
            logger.debug("Registered %r", provider)
        else:
            logger.debug("Ignored %r, key %s is already taken", provider, provider.key)

    def _instance(self, target: Any) -> Provider:
        target_type = target if isinstance(target, type) else type(target)
        if provider := self._registry.get_by_type(target_type):
            return provider

        if not is_record_type(target_type):
            raise InvalidTargetShape(target_type)

        value = new_zero_instance(target_type) if isinstance(target, type) else target
        context = _ResolvingContext(self._registry)
        with context.building(target_type):
            self._populate(value, context)

        provider = Provider(value)
        context.stage(provider)
        context.commit()
        return provider

    def _materialize(self, provider: Provider, scope: InjectScope) -> Any:
        if scope == InjectScope.shared:
            return provider.value
        return deep_copy(provider.value)

    def _populate(self, record: Any, context: _ResolvingContext):
        record_type = type(record)
        hints = get_record_type_hints(record_type)

        for record_field in dataclasses.fields(record_type):
            try:
                self._populate_field(record, record_field, hints.get(record_field.name, Any), context)
            except InjectError as ex:
                ex.append(record_type, record_field.name)
                raise

    def _populate_field(
        self,
        record: Any,
        record_field: dataclasses.Field,
        field_type: Any,
        context: _ResolvingContext,
    ):
        record_type = type(record)
        tag = record_field.metadata.get(self.settings.tag_metadata_key, "")
        try:
            present, name = parse_tag(tag, self.settings.tag_key)
        except TagSyntaxError as ex:
            raise MalformedInjectionMarker(tag, record_field.name, record_type) from ex

        if not present:
            return

        if not is_nil_or_zero(getattr(record, record_field.name, None), field_type):
            return

        if record_field.name.startswith("_") or is_frozen_record_type(record_type):
            raise UnexportedInjectTarget(record_field.name, record_type)

        if name:
            provider = context.find_by_name(name)
            if provider is None:
                raise MissingNamedDependency(name, record_field.name, record_type)
            if not is_assignable(provider.value_type, field_type):
                raise TypeMismatch(name, provider.value_type, field_type, record_field.name, record_type)
            context.assign(record, record_field.name, provider.value)
            return

        service_type = unwrap_optional(field_type)

        if is_interface(service_type):
            candidates = context.find_assignable(service_type)
            if not candidates:
                raise MissingAssignableDependency(service_type, record_field.name, record_type)
            if len(candidates) > 1:
                raise AmbiguousAssignableDependency(
                    (candidates[0].value_type, candidates[1].value_type), record_field.name, record_type
                )
            context.assign(record, record_field.name, candidates[0].value)
            return

        provider = context.find_by_type(service_type)
        if provider is None:
            if not is_record_type(service_type):
                raise InvalidTargetShape(service_type, record_field.name, record_type)
            embedded = bool(record_field.metadata.get(EMBEDDED_METADATA_KEY, False))
            provider = self._synthesize(service_type, embedded, context)

        context.assign(record, record_field.name, provider.value)

    def _synthesize(self, service_type: type, embedded: bool, context: _ResolvingContext) -> Provider:
        value = new_zero_instance(service_type)
        with context.building(service_type):
            self._populate(value, context)

        provider = Provider(value, synthesized=True, embedded=embedded)
        context.stage(provider)
        logger.debug("Synthesized %r", provider)
        return provider
