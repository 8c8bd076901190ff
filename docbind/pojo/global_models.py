"""Process-wide class models and map-key converters.

:class:`GlobalModels` is the entry point for layers that need a class's
property list without going through the codec machinery, e.g. a key
extractor or a change tracker::

    model = GlobalModels.get_class_model(Person)
    [p.read_name for p in model.property_models]

It also owns two registries that must be shared by every codec:

- immutability flags per type, and
- string-key converters used to store ``Dict[K, V]`` properties whose keys
  are not strings.

All caches are populated with compute-if-absent semantics and never shrink.
"""

import inspect
import uuid
from abc import ABC, abstractmethod
from collections.abc import Collection, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bson import Decimal128, Int64, ObjectId

from docbind.codecs.enums import IndexedEnum
from docbind.codecs.registry import type_name
from docbind.exceptions import CodecConfigurationException
from docbind.logging import get_logger
from docbind.pojo.conventions import DEFAULT_CONVENTIONS, Convention
from docbind.pojo.creator import CreatorExecutable, InstanceCreatorFactory
from docbind.pojo.markers import PROXY_TARGET_ATTR, StringKeyConvertible
from docbind.pojo.metadata import collect_property_metadata, is_no_arg_constructible
from docbind.pojo.models import ClassModel, ClassModelBuilder, PropertyModel, PropertyModelBuilder

_logger = get_logger("models")

SIMPLE_TYPES = frozenset(
    [
        str,
        int,
        float,
        bool,
        bytes,
        complex,
        type(None),
        datetime,
        date,
        time,
        Decimal,
        Decimal128,
        Int64,
        ObjectId,
        uuid.UUID,
    ]
)

_IMMUTABLE_CONTAINERS = (tuple, frozenset)


class StringKeyConverter(ABC):
    """Converts map keys of one type to and from strings."""

    @abstractmethod
    def to_string(self, key: Any) -> str:
        pass

    @abstractmethod
    def from_string(self, value: str) -> Any:
        pass


class _StrKeyConverter(StringKeyConverter):
    def to_string(self, key: Any) -> str:
        return key

    def from_string(self, value: str) -> Any:
        return value


class _CallableKeyConverter(StringKeyConverter):
    def __init__(self, parse):
        self._parse = parse

    def to_string(self, key: Any) -> str:
        return str(key)

    def from_string(self, value: str) -> Any:
        return self._parse(value)


#: Keys of untyped maps are written with ``str(key)`` and read back as strings.
ANY_KEY_CONVERTER: StringKeyConverter = _CallableKeyConverter(str)


class EnumKeyConverter(StringKeyConverter):
    """Stores enum keys by member name, or by index for an ``IndexedEnum``."""

    def __init__(self, enum_class: type):
        self._enum_class = enum_class
        self._indexed = issubclass(enum_class, IndexedEnum)

    def to_string(self, key: Any) -> str:
        return str(key.index) if self._indexed else key.name

    def from_string(self, value: str) -> Any:
        if self._indexed:
            return self._enum_class.from_index(int(value))
        return self._enum_class[value]


class StringKeyConvertibleConverter(StringKeyConverter):
    def __init__(self, key_class: type):
        self._key_class = key_class

    def to_string(self, key: Any) -> str:
        return key.to_string_key()

    def from_string(self, value: str) -> Any:
        return self._key_class.from_string_key(value)


def _default_string_key_converters() -> Dict[type, StringKeyConverter]:
    return {
        str: _StrKeyConverter(),
        int: _CallableKeyConverter(int),
        ObjectId: _CallableKeyConverter(ObjectId),
    }


def configure_class_model_builder(builder: ClassModelBuilder) -> ClassModelBuilder:
    """Seed a builder with the discovered properties and the default creator."""
    clazz = builder.type
    for metadata in collect_property_metadata(clazz):
        builder.add_property(PropertyModelBuilder.from_metadata(metadata))
        if metadata.type_parameter_map.has_type_parameters:
            builder.property_name_to_type_parameter_map[metadata.name] = metadata.type_parameter_map
    if inspect.isabstract(clazz):
        builder.instance_creator_factory = InstanceCreatorFactory(CreatorExecutable(clazz, None))
    elif is_no_arg_constructible(clazz):
        builder.instance_creator_factory = InstanceCreatorFactory(CreatorExecutable.no_args(clazz))
    return builder


class GlobalModels:
    """Shared class models, immutability flags and map-key converters."""

    _class_models: Dict[type, ClassModel] = {}
    _immutable_types: Dict[type, bool] = {}
    _string_key_converters: Dict[type, StringKeyConverter] = _default_string_key_converters()

    @classmethod
    def get_class_model(cls, clazz: type) -> ClassModel:
        """Get the cached class model of ``clazz`` built with the default conventions."""
        model = cls._class_models.get(clazz)
        if model is None:
            model = cls._class_models.setdefault(clazz, cls.create_class_model(clazz))
        return model

    @classmethod
    def create_class_model(cls, clazz: type, conventions: Optional[List[Convention]] = None) -> ClassModel:
        """Build a new, uncached class model.

        Args:
            clazz: The class to inspect.
            conventions: Conventions to apply; the defaults when None.

        Raises:
            DefinitionException: If the class cannot be mapped.
        """
        builder = configure_class_model_builder(ClassModel.builder(clazz))
        builder.conventions = list(DEFAULT_CONVENTIONS if conventions is None else conventions)
        return builder.build()

    @classmethod
    def create_property_models(cls, clazz: type) -> Tuple[PropertyModel, ...]:
        return cls.create_class_model(clazz).property_models

    @classmethod
    def is_simple_type(cls, clazz: type) -> bool:
        return clazz in SIMPLE_TYPES or (isinstance(clazz, type) and issubclass(clazz, Enum))

    @classmethod
    def is_immutable_type(cls, clazz: type) -> bool:
        """Return whether instances of ``clazz`` can be treated as values.

        An explicit registration wins. Otherwise simple types and tuples
        are immutable, other containers are not, and a mapped class is
        immutable when none of its properties can be assigned after
        construction.
        """
        registered = cls._immutable_types.get(clazz)
        if registered is not None:
            return registered
        if cls.is_simple_type(clazz) or clazz in _IMMUTABLE_CONTAINERS:
            return True
        if issubclass(clazz, (Collection, Mapping)):
            return False
        model = cls.get_class_model(clazz)
        return not any(
            p.property_metadata is not None and p.property_metadata.is_deserializable
            for p in model.property_models
        )

    @classmethod
    def register_immutable_type(cls, clazz: type, immutable: bool = True) -> None:
        """Override the inferred immutability of ``clazz``.

        Raises:
            CodecConfigurationException: If ``clazz`` was registered before.
        """
        if clazz in cls._immutable_types:
            existing = cls._immutable_types[clazz]
            raise CodecConfigurationException(
                f"Already registered {type_name(clazz)} as {'immutable' if existing else 'mutable'}"
            )
        cls._immutable_types[clazz] = immutable
        _logger.debug("Registered %s as %s", type_name(clazz), "immutable" if immutable else "mutable")

    @classmethod
    def register_string_key_converter(cls, clazz: type, converter: StringKeyConverter) -> None:
        """Teach map properties how to store keys of type ``clazz``.

        Must be called before the first codec using such a map is built.

        Raises:
            CodecConfigurationException: If ``clazz`` is ``str``, is not
                immutable, or already has a converter.
        """
        if clazz is str:
            raise CodecConfigurationException("String map keys do not need a converter")
        if not cls.is_immutable_type(clazz):
            raise CodecConfigurationException(f"Map key type must be immutable: {type_name(clazz)}")
        if clazz in cls._string_key_converters:
            raise CodecConfigurationException(
                f"A string key converter is already registered for {type_name(clazz)}"
            )
        cls._string_key_converters[clazz] = converter

    @classmethod
    def get_string_key_converter(cls, clazz: type) -> StringKeyConverter:
        """Get the converter for map keys of type ``clazz``.

        Raises:
            CodecConfigurationException: If keys of this type cannot be stored.
        """
        converter = cls._string_key_converters.get(clazz)
        if converter is not None:
            return converter
        if isinstance(clazz, type) and issubclass(clazz, Enum):
            converter = EnumKeyConverter(clazz)
        elif isinstance(clazz, type) and issubclass(clazz, StringKeyConvertible):
            converter = StringKeyConvertibleConverter(clazz)
        else:
            raise CodecConfigurationException(
                "Invalid map key type. Map key type must meet one of the conditions: "
                "1. Is String Type, "
                "2. Implements StringKeyConvertible interface, "
                "3. Register a string key converter through GlobalModels.register_string_key_converter. "
                f"key type : {type_name(clazz)}"
            )
        return cls._string_key_converters.setdefault(clazz, converter)

    @classmethod
    def proxy_raw_class(cls, clazz: type) -> type:
        """Return the class a proxy class stands in for, or ``clazz`` itself."""
        return getattr(clazz, PROXY_TARGET_ATTR, None) or clazz
