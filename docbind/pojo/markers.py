"""Markers that customise how a class is mapped to a document.

Property markers are attached with ``typing.Annotated``::

    class Person:
        id: Annotated[ObjectId, Id()]
        full_name: Annotated[str, Property("name")]
        cache: Annotated[dict, Ignore()]
        session: Annotated[object, Transient()]

Class-level behaviour uses decorators::

    @discriminator(key="kind")
    class Shape:
        ...

    class Point:
        @creator
        def __init__(self, x: int, y: int):
            ...
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

C = TypeVar("C", bound=type)

DISCRIMINATOR_ATTR = "__docbind_discriminator__"
CREATOR_ATTR = "__docbind_creator__"
PROXY_TARGET_ATTR = "__docbind_proxy_target__"


@dataclass(frozen=True)
class Property:
    """Rename a property in the document.

    Args:
        name: The document key; the attribute name when omitted.
        use_discriminator: Whether a nested value of this property carries
            a discriminator. None keeps the nested class's own setting.
    """

    name: Optional[str] = None
    use_discriminator: Optional[bool] = None


@dataclass(frozen=True)
class Id:
    """Mark the property holding the document id."""


@dataclass(frozen=True)
class Ignore:
    """Exclude a property from the document in both directions."""


@dataclass(frozen=True)
class Transient:
    """Mark a field as transient; it is neither written nor read."""


@dataclass(frozen=True)
class DiscriminatorSpec:
    key: Optional[str] = None
    value: Optional[str] = None


def discriminator(cls: Optional[C] = None, *, key: Optional[str] = None, value: Optional[str] = None):
    """Class decorator that enables the discriminator for a class.

    The setting is inherited, so decorating a base class makes every
    subclass write its own discriminator value.

    Args:
        key: Document key holding the discriminator; ``_t`` when omitted.
        value: Discriminator value; the class's qualified name when omitted.

    Example:
        >>> @discriminator(value="circle")
        ... class Circle(Shape):
        ...     radius: float
    """

    def decorate(target: C) -> C:
        setattr(target, DISCRIMINATOR_ATTR, DiscriminatorSpec(key=key, value=value))
        return target

    if cls is not None:
        return decorate(cls)
    return decorate


def creator(func: Callable) -> Callable:
    """Mark ``__init__`` or a static/class factory method as the creator.

    Decoded values are collected and passed to the creator as arguments.
    Parameter names match property names unless a parameter is annotated
    with :class:`Property` or :class:`Id`. Apply ``@creator`` below
    ``@staticmethod``/``@classmethod``.
    """
    setattr(func, CREATOR_ATTR, True)
    return func


class DocumentNode:
    """Base class for self-describing record types.

    Subclasses only map properties that have both a backing field and at
    least one accessor.
    """


class StringKeyConvertible(ABC):
    """Interface for classes usable as map keys through their string form."""

    @abstractmethod
    def to_string_key(self) -> str:
        pass

    @classmethod
    @abstractmethod
    def from_string_key(cls, key: str) -> "StringKeyConvertible":
        pass
