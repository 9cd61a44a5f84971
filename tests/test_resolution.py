import abc
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import InitVar, dataclass, field
from typing import Protocol

from assertive import (
    assert_that,
    has_length,
    is_exact_type,
    is_none,
    is_same_instance_as,
    raises_exception,
)

from clean_inject import (
    AmbiguousAssignableDependency,
    CircularDependencyError,
    Container,
    ContainerSettings,
    InjectScope,
    InvalidTargetShape,
    MalformedInjectionMarker,
    MissingAssignableDependency,
    MissingNamedDependency,
    TypeMismatch,
    UnexportedInjectTarget,
    inject,
)


class Describer(Protocol):
    def describe(self) -> str: ...


@dataclass
class Name:
    first: str = ""
    second: str = ""


@dataclass
class User:
    name: Name | None = inject()


@dataclass
class Product:
    title: str = ""

    def describe(self) -> str:
        return f"product {self.title}"


@dataclass
class Order:
    user: User | None = inject()
    u: User | None = inject("u")
    p: Describer | None = inject()


@dataclass
class Chicken:
    egg: "Egg | None" = inject()


@dataclass
class Egg:
    chicken: Chicken | None = inject()


@dataclass
class LinkedNode:
    next: "LinkedNode | None" = inject()


def _order_container():
    container = Container()
    container.provide(Name(first="f", second="s"))
    container.provide_by_name("u", User(name=Name(first="named", second="user")))
    container.provide(Product(title="p"))
    return container


def test_named_and_interface_fields_alias_registered_providers():
    container = _order_container()
    named_user = container.lookup_by_name("u").value
    product = container.lookup_by_type(Product).value

    order = container.instance(Order)

    assert_that(order).matches(is_exact_type(Order))
    assert_that(order.u).matches(is_same_instance_as(named_user))
    assert_that(order.p).matches(is_same_instance_as(product))


def test_missing_nested_record_is_synthesized_and_registered():
    container = _order_container()
    name = container.lookup_by_type(Name).value

    order = container.instance(Order)

    assert_that(order.user).matches(is_exact_type(User))
    assert_that(order.user.name).matches(is_same_instance_as(name))
    assert_that(container.instance(User)).matches(is_same_instance_as(order.user))
    assert container.lookup_by_type(User).synthesized


def test_shared_scope_returns_the_same_instance():
    container = _order_container()

    first = container.instance(Order)
    second = container.instance(Order, InjectScope.shared)

    assert_that(second).matches(is_same_instance_as(first))


def test_shared_scope_sees_later_mutations():
    container = _order_container()

    container.instance(Order).p.title = "changed"

    assert_that(container.instance(Order).p.title).matches("changed")


def test_isolated_scope_returns_equal_but_independent_copies():
    container = _order_container()
    shared = container.instance(Order)

    first = container.instance(Order, InjectScope.isolated)
    second = container.instance(Order, InjectScope.isolated)

    assert_that(first).matches(shared)
    assert_that(second).matches(shared)
    assert first is not shared
    assert first is not second
    assert first.u is not shared.u

    first.u.name.first = "changed"

    assert_that(shared.u.name.first).matches("named")
    assert_that(second.u.name.first).matches("named")


def test_named_dependency_aliasing_is_visible_from_every_path():
    @dataclass
    class Config:
        level: int = 0

    @dataclass
    class Service:
        config: Config | None = inject("config")

    @dataclass
    class Other:
        config: Config | None = inject("config")

    config = Config(level=1)
    container = Container()
    container.provide_by_name("config", config)

    service = container.instance(Service)
    other = container.instance(Other)
    service.config.level = 5

    assert_that(other.config.level).matches(5)
    assert_that(config.level).matches(5)


def test_named_dependency_can_hold_plain_values():
    @dataclass
    class Settings:
        url: str = inject("url")
        retries: int = inject("retries")

    container = Container()
    container.provide_by_name("url", "http://localhost")
    container.provide_by_name("retries", 3)

    settings = container.instance(Settings)

    assert_that(settings.url).matches("http://localhost")
    assert_that(settings.retries).matches(3)


def test_named_dependency_with_wrong_type_fails():
    @dataclass
    class Service:
        user: User | None = inject("u")

    container = Container()
    container.provide_by_name("u", "not a user")

    with raises_exception(TypeMismatch):
        container.instance(Service)


def test_missing_named_dependency_fails():
    @dataclass
    class Service:
        user: User | None = inject("u")

    container = Container()

    with raises_exception(MissingNamedDependency):
        container.instance(Service)


def test_ambiguous_interface_dependency_fails():
    @dataclass
    class OtherProduct:
        def describe(self) -> str:
            return "other"

    container = Container()
    container.provide(Product())
    container.provide(OtherProduct())
    container.provide_by_name("u", User())

    try:
        container.instance(Order)
    except AmbiguousAssignableDependency as ex:
        assert set(ex.candidate_types) == {Product, OtherProduct}
        assert_that(ex.field_name).matches("p")
        assert_that(ex.owner_type).matches(Order)
    else:
        raise AssertionError("expected AmbiguousAssignableDependency")


def test_missing_interface_dependency_fails():
    container = Container()
    container.provide_by_name("u", User())

    with raises_exception(MissingAssignableDependency):
        container.instance(Order)


def test_abstract_class_fields_are_resolved_as_interfaces():
    class Repository(abc.ABC):
        @abc.abstractmethod
        def get(self): ...

    @dataclass
    class SqlRepository(Repository):
        def get(self):
            return "row"

    @dataclass
    class Handler:
        repository: Repository | None = inject()

    repository = SqlRepository()
    container = Container()
    container.provide(repository)

    handler = container.instance(Handler)

    assert_that(handler.repository).matches(is_same_instance_as(repository))


def test_concrete_fields_are_matched_by_exact_type():
    @dataclass
    class Base:
        pass

    @dataclass
    class Derived(Base):
        pass

    @dataclass
    class Holder:
        base: Base | None = inject()

    derived = Derived()
    container = Container()
    container.provide(derived)

    holder = container.instance(Holder)

    assert_that(holder.base).matches(is_exact_type(Base))
    assert holder.base is not derived


def test_fields_without_marker_are_untouched():
    @dataclass
    class Holder:
        name: Name | None = None
        tagged: Name | None = inject()

    container = Container()
    container.provide(Name(first="x"))

    holder = container.instance(Holder)

    assert_that(holder.name).matches(is_none())
    assert_that(holder.tagged.first).matches("x")


def test_pre_populated_target_keeps_its_values():
    existing = Name(first="mine")
    container = Container()
    container.provide(Name(first="registered"))

    user = container.instance(User(name=existing))

    assert_that(user.name).matches(is_same_instance_as(existing))
    assert_that(container.instance(User)).matches(is_same_instance_as(user))


def test_marker_on_private_field_fails():
    @dataclass
    class Holder:
        _name: Name | None = inject()

    container = Container()
    container.provide(Name())

    with raises_exception(UnexportedInjectTarget):
        container.instance(Holder)


def test_marker_on_frozen_record_fails():
    @dataclass(frozen=True)
    class Holder:
        name: Name | None = inject()

    container = Container()
    container.provide(Name())

    with raises_exception(UnexportedInjectTarget):
        container.instance(Holder)


def test_malformed_marker_fails():
    @dataclass
    class Holder:
        name: Name | None = field(default=None, metadata={"tag": "inject:name"})

    container = Container()

    with raises_exception(MalformedInjectionMarker):
        container.instance(Holder)


def test_non_record_target_fails():
    class NotARecord:
        pass

    container = Container()

    with raises_exception(InvalidTargetShape):
        container.instance(NotARecord)

    with raises_exception(InvalidTargetShape):
        container.instance(int)


def test_unnamed_non_record_field_fails():
    @dataclass
    class Holder:
        count: int = inject()

    container = Container()

    with raises_exception(InvalidTargetShape):
        container.instance(Holder)


def test_failed_resolution_does_not_register_synthesized_providers():
    @dataclass
    class Service:
        user: User | None = inject()
        missing: Name | None = inject("missing")

    container = Container()

    with raises_exception(MissingNamedDependency):
        container.instance(Service)

    assert not container.has_provider(User)
    assert not container.has_provider(Name)
    assert not container.has_provider(Service)


def test_nested_errors_carry_the_field_chain():
    @dataclass
    class Inner:
        missing: Name | None = inject("missing")

    @dataclass
    class Outer:
        inner: Inner | None = inject()

    container = Container()

    try:
        container.instance(Outer)
    except MissingNamedDependency as ex:
        assert_that(ex.fields).matches([(Inner, "missing"), (Outer, "inner")])
        assert_that(ex.field_name).matches("missing")
        assert "Field chain" in str(ex)
    else:
        raise AssertionError("expected MissingNamedDependency")


def test_circular_dependencies_are_detected():
    container = Container()

    with raises_exception(CircularDependencyError):
        container.instance(Chicken)

    with raises_exception(CircularDependencyError):
        container.instance(LinkedNode)


def test_embedded_flag_is_recorded_on_synthesized_providers():
    @dataclass
    class Holder:
        name: Name | None = inject(embedded=True)

    container = Container()
    container.instance(Holder)

    assert container.lookup_by_type(Name).embedded


def test_custom_tag_key():
    @dataclass
    class Holder:
        name: Name | None = inject(key="wire")

    container = Container(ContainerSettings(tag_key="wire"))
    name = Name()
    container.provide(name)

    holder = container.instance(Holder)

    assert_that(holder.name).matches(is_same_instance_as(name))


def test_concurrent_resolution_returns_one_singleton():
    container = _order_container()
    barrier = threading.Barrier(8)

    def resolve(_):
        barrier.wait()
        return container.instance(Order)

    with ThreadPoolExecutor(max_workers=8) as pool:
        orders = list(pool.map(resolve, range(8)))

    assert_that({id(o) for o in orders}).matches(has_length(1))


def test_failed_resolution_leaves_a_pre_populated_target_untouched():
    @dataclass
    class Service:
        user: User | None = inject()
        missing: Name | None = inject("missing")

    container = Container()
    container.provide(Name())
    target = Service()

    with raises_exception(MissingNamedDependency):
        container.instance(target)

    assert_that(target.user).matches(is_none())
    assert_that(target.missing).matches(is_none())
    assert not container.has_provider(User)


def test_records_with_init_only_arguments_are_synthesized():
    @dataclass
    class Seeded:
        seed: InitVar[int]
        doubled: int = -1
        name: Name | None = inject()

        def __post_init__(self, seed):
            self.doubled = seed * 2

    @dataclass
    class Holder:
        seeded: Seeded | None = inject()

    name = Name(first="f")
    container = Container()
    container.provide(name)

    holder = container.instance(Holder)

    assert_that(holder.seeded.doubled).matches(0)
    assert_that(holder.seeded.name).matches(is_same_instance_as(name))
