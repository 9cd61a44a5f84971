"""
Injection markers.

A field is marked for injection by tag text stored in its dataclass metadata,
using the `key:"value"` pairs familiar from struct tags::

    @dataclass
    class Order:
        user: User | None = field(default=None, metadata={"tag": 'inject:""'})
        admin: User | None = inject("admin")

An empty value asks for resolution by type, a non-empty value names the provider.
"""

import dataclasses
import json
from typing import Any

DEFAULT_TAG_KEY = "inject"
DEFAULT_TAG_METADATA_KEY = "tag"
EMBEDDED_METADATA_KEY = "embedded"


class TagSyntaxError(ValueError):
    def __init__(self, tag: str, position: int, reason: str):
        self.tag = tag
        self.position = position
        self.reason = reason

    def __str__(self):
        return f"{self.reason} at position {self.position} in tag `{self.tag}`"


def _scan_key(tag: str, start: int) -> int:
    i = start
    while i < len(tag) and tag[i] > " " and tag[i] not in ':"' and tag[i] != "\x7f":
        i += 1
    return i


def _scan_quoted(tag: str, start: int) -> int:
    i = start + 1
    while i < len(tag) and tag[i] != '"':
        if tag[i] == "\\":
            i += 1
        i += 1
    if i >= len(tag):
        raise TagSyntaxError(tag, start, "unterminated quoted value")
    return i + 1


def iter_tag(tag: str):
    """Yields every (key, value) pair of the tag text, in order."""
    i = 0
    while i < len(tag):
        while i < len(tag) and tag[i] == " ":
            i += 1
        if i >= len(tag):
            return

        key_end = _scan_key(tag, i)
        if key_end == i:
            raise TagSyntaxError(tag, i, "expected a key")
        if key_end + 1 >= len(tag) or tag[key_end] != ":" or tag[key_end + 1] != '"':
            raise TagSyntaxError(tag, key_end, 'expected `:"` after key')

        value_end = _scan_quoted(tag, key_end + 1)
        quoted = tag[key_end + 1 : value_end]
        try:
            value = json.loads(quoted)
        except json.JSONDecodeError as ex:
            raise TagSyntaxError(tag, key_end + 1, f"invalid quoted value {quoted}") from ex

        yield tag[i:key_end], value
        i = value_end


def extract(key: str, tag: str) -> tuple[bool, str]:
    """Looks up key in the tag text. The whole tag is validated, not just the matching pair."""
    found, result = False, ""
    for k, value in iter_tag(tag):
        if k == key and not found:
            found, result = True, value
    return found, result


def parse_tag(tag: str | None, key: str = DEFAULT_TAG_KEY) -> tuple[bool, str]:
    """Returns (present, explicit_name) for the injection marker in the tag text."""
    if not tag:
        return False, ""
    return extract(key, tag)


def inject(
    name: str = "",
    *,
    embedded: bool = False,
    key: str = DEFAULT_TAG_KEY,
    metadata_key: str = DEFAULT_TAG_METADATA_KEY,
    **field_kwargs: Any,
) -> Any:
    """
    Declares a dataclass field as injectable.
    The field defaults to None unless a default or default_factory is passed through.
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[metadata_key] = f"{key}:{json.dumps(name)}"
    if embedded:
        metadata[EMBEDDED_METADATA_KEY] = True

    if "default" not in field_kwargs and "default_factory" not in field_kwargs:
        field_kwargs["default"] = None

    return dataclasses.field(metadata=metadata, **field_kwargs)
