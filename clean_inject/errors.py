from typing import Any

from .typing_utils import type_name


class InjectError(Exception):
    """
    Base for every error raised by the container.
    While an error unwinds through nested records, each enclosing field is appended to `fields`,
    innermost first.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.fields: list[tuple[type, str]] = []

    def append(self, owner_type: type, field_name: str):
        self.fields.append((owner_type, field_name))

    @property
    def owner_type(self) -> type | None:
        return self.fields[0][0] if self.fields else None

    @property
    def field_name(self) -> str | None:
        return self.fields[0][1] if self.fields else None

    @staticmethod
    def print_field(owner_type: type, field_name: str):
        content = f"type: {type_name(owner_type)}\nfield: {field_name}"
        content_lines = content.split("\n")
        width = max(len(line) for line in content_lines)
        top_border = "┌" + "─" * (width + 2) + "┐"
        bottom_border = "└" + "─" * (width + 2) + "┘"
        padded_content = "\n".join("│ " + line.ljust(width) + " │" for line in content_lines)
        return f"{top_border}\n{padded_content}\n{bottom_border}"

    @property
    def field_chain(self):
        chain = ""
        arrow = "↑\n↑\n↑\n"

        for index, (owner_type, field_name) in enumerate(self.fields):
            printed = InjectError.print_field(owner_type, field_name)
            if index == 0:
                chain += f"{printed}\n"
            else:
                chain += f"{arrow}{printed}\n"

        return chain

    def __str__(self):
        if len(self.fields) < 2:
            return self.message
        return f"\n{self.message}\n\nField chain:\n{self.field_chain}"


class ShapeError(InjectError):
    pass


class ResolutionError(InjectError):
    pass


class AccessError(InjectError):
    pass


class MarkerError(InjectError):
    pass


class InvalidProviderShape(ShapeError):
    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"expected unnamed provider value to be a dataclass instance but got type "
            f"{type_name(type(value))} with value {value!r}"
        )


class InvalidTargetShape(ShapeError):
    def __init__(self, target_type: Any, field_name: str | None = None, owner_type: type | None = None):
        self.target_type = target_type
        location = f" required by field {field_name} in type {type_name(owner_type)}" if field_name else ""
        super().__init__(f"expected a dataclass type{location} but got {type_name(target_type)}")


class MissingNamedDependency(ResolutionError):
    def __init__(self, name: str, field_name: str, owner_type: type):
        self.name = name
        super().__init__(
            f"did not find provider named {name} required by field {field_name} in type {type_name(owner_type)}"
        )


class TypeMismatch(ResolutionError):
    def __init__(self, name: str, provider_type: type, field_type: Any, field_name: str, owner_type: type):
        self.name = name
        self.provider_type = provider_type
        self.field_type = field_type
        super().__init__(
            f"provider named {name} of type {type_name(provider_type)} is not assignable to field "
            f"{field_name} ({type_name(field_type)}) in type {type_name(owner_type)}"
        )


class MissingAssignableDependency(ResolutionError):
    def __init__(self, field_type: Any, field_name: str, owner_type: type):
        self.field_type = field_type
        super().__init__(
            f"no provider assignable to {type_name(field_type)} for field {field_name} in type {type_name(owner_type)}"
        )


class AmbiguousAssignableDependency(ResolutionError):
    def __init__(self, candidate_types: tuple[type, type], field_name: str, owner_type: type):
        self.candidate_types = candidate_types
        first, second = candidate_types
        super().__init__(
            f"found two assignable providers for field {field_name} in type {type_name(owner_type)}: "
            f"{type_name(first)} and {type_name(second)}"
        )


class CircularDependencyError(ResolutionError):
    def __init__(self, path: list[type]):
        self.path = path
        super().__init__("circular dependency: " + " -> ".join(type_name(t) for t in path))


class UnexportedInjectTarget(AccessError):
    def __init__(self, field_name: str, owner_type: type):
        super().__init__(f"inject requested on unassignable field {field_name} in type {type_name(owner_type)}")


class MalformedInjectionMarker(MarkerError):
    def __init__(self, tag: str, field_name: str, owner_type: type):
        self.tag = tag
        super().__init__(f"unexpected tag format `{tag}` for field {field_name} in type {type_name(owner_type)}")
