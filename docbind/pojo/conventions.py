"""Conventions applied to a :class:`ClassModelBuilder` before it is built.

Conventions run in list order. The default list is::

    [DefaultsConvention(), AnnotationConvention(), IdGeneratorsConvention()]

Defaults go first so markers can override them, and id generators go last
so they see the final id property. :data:`SET_PRIVATE_FIELDS_CONVENTION`
and :data:`USE_GETTERS_FOR_SETTERS` are opt-in and belong between the
annotation and id-generator passes.

Example:
    >>> conventions = DEFAULT_CONVENTIONS[:2] + [SET_PRIVATE_FIELDS_CONVENTION] + DEFAULT_CONVENTIONS[2:]
    >>> provider = PojoCodecProvider.builder().conventions(conventions).automatic(True).build()
"""

import inspect
import uuid
from abc import ABC, abstractmethod
from collections.abc import Collection, Mapping, MutableMapping, MutableSequence, MutableSet
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId

from docbind.exceptions import DefinitionException, PropertyAccessException
from docbind.pojo.creator import CreatorExecutable, CreatorParameter, InstanceCreatorFactory
from docbind.pojo.id_generators import OBJECT_ID_GENERATOR, UUID_GENERATOR
from docbind.pojo.markers import (
    CREATOR_ATTR,
    DISCRIMINATOR_ATTR,
    Id,
    Ignore,
    Property,
)
from docbind.pojo.metadata import (
    FieldPropertyAccessor,
    PropertyAccessor,
    PropertyAccessorImpl,
    PropertyMetadata,
    class_hierarchy,
    function_type_hints,
)
from docbind.pojo.models import ClassModelBuilder, PropertyModelBuilder
from docbind.pojo.type_descriptor import TypeDescriptor

DEFAULT_DISCRIMINATOR_KEY = "_t"


def default_discriminator(clazz: type) -> str:
    """The discriminator value used when none is given: the qualified class name."""
    return f"{clazz.__module__}.{clazz.__qualname__}"


class Convention(ABC):
    """A pass that edits a class model builder."""

    @abstractmethod
    def apply(self, builder: ClassModelBuilder) -> None:
        pass


class DefaultsConvention(Convention):
    """Fills in the discriminator key/value and infers the id property.

    The id is the first property named ``_id`` or ``id``, unless one is
    already set.

    Args:
        discriminator_key: Key used when a class does not choose one.
    """

    def __init__(self, discriminator_key: str = DEFAULT_DISCRIMINATOR_KEY):
        self._discriminator_key = discriminator_key

    def apply(self, builder: ClassModelBuilder) -> None:
        if builder.discriminator_key is None:
            builder.discriminator_key = self._discriminator_key
        if builder.discriminator is None:
            builder.discriminator = default_discriminator(builder.type)
        if builder.id_property_name is None:
            for property_builder in builder.property_model_builders:
                if property_builder.name in ("_id", "id"):
                    builder.id_property_name = property_builder.name
                    break


class AnnotationConvention(Convention):
    """Applies markers: ``@discriminator``, ``Property``, ``Id``, ``Ignore`` and ``@creator``.

    Also picks the creator for classes that cannot be built without
    arguments and removes properties left with neither a read nor a write
    name.
    """

    def apply(self, builder: ClassModelBuilder) -> None:
        self._process_class_markers(builder)
        for property_builder in builder.property_model_builders:
            self._process_property_markers(builder, property_builder)
        self._process_creator(builder)
        self._clean_property_builders(builder)

    def _process_class_markers(self, builder: ClassModelBuilder) -> None:
        for current in reversed(class_hierarchy(builder.type)):
            spec = current.__dict__.get(DISCRIMINATOR_ATTR)
            if spec is None:
                continue
            builder.discriminator_enabled = True
            if spec.key:
                builder.discriminator_key = spec.key
            if spec.value and current is builder.type:
                builder.discriminator = spec.value

    def _process_property_markers(self, builder: ClassModelBuilder, property_builder: PropertyModelBuilder) -> None:
        for marker in property_builder.read_markers:
            if isinstance(marker, Property):
                if marker.name:
                    property_builder.read_name = marker.name
                    if builder.id_property_name == property_builder.name:
                        builder.id_property_name = None
                if marker.use_discriminator is not None:
                    property_builder.discriminator_enabled = marker.use_discriminator
            elif isinstance(marker, Id):
                builder.id_property_name = property_builder.name
            elif isinstance(marker, Ignore):
                property_builder.read_name = None

        for marker in property_builder.write_markers:
            if isinstance(marker, Property):
                if marker.name:
                    property_builder.write_name = marker.name
                    if builder.id_property_name == property_builder.name:
                        builder.id_property_name = None
            elif isinstance(marker, Id):
                builder.id_property_name = property_builder.name
            elif isinstance(marker, Ignore):
                property_builder.write_name = None

    def _find_creators(self, clazz: type) -> List[Tuple[str, Callable, Callable, bool, type]]:
        creators = []
        if getattr(clazz.__init__, CREATOR_ATTR, False):
            creators.append(("__init__", clazz, clazz.__init__, True, clazz))
        seen = set()
        for current in class_hierarchy(clazz):
            for name, member in current.__dict__.items():
                if not isinstance(member, (staticmethod, classmethod)) or name in seen:
                    continue
                seen.add(name)
                if getattr(member.__func__, CREATOR_ATTR, False):
                    creators.append(
                        (name, getattr(clazz, name), member.__func__, isinstance(member, classmethod), current)
                    )
        return creators

    def _process_creator(self, builder: ClassModelBuilder) -> None:
        clazz = builder.type
        creators = self._find_creators(clazz)
        if len(creators) > 1:
            names = ", ".join(creator[0] for creator in creators)
            raise DefinitionException(
                f"Found multiple constructors / methods marked with @creator in {clazz.__qualname__}: {names}"
            )
        if creators:
            name, invoker, func, skip_first, declaring = creators[0]
        elif builder.instance_creator_factory is None or _is_frozen_dataclass(clazz):
            if clazz.__init__ is object.__init__:
                return
            name, invoker, func, skip_first, declaring = "__init__", clazz, clazz.__init__, True, clazz
        else:
            return

        hints = function_type_hints(func)
        if name != "__init__" and declaring is clazz and "return" in hints:
            returned = TypeDescriptor.of(hints["return"]).raw_type
            if returned is not object and not issubclass(returned, clazz):
                raise DefinitionException(
                    f"Invalid method marked with @creator. Returns '{returned.__qualname__}', "
                    f"expected {clazz.__qualname__}"
                )

        parameters = list(inspect.signature(func).parameters.values())
        if skip_first:
            parameters = parameters[1:]
        creator_parameters = [
            CreatorParameter(parameter, hints.get(parameter.name))
            for parameter in parameters
            if parameter.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        ]
        executable = CreatorExecutable(clazz, invoker, creator_parameters, description=name)
        for parameter in creator_parameters:
            self._map_creator_parameter(builder, executable, parameter)
        builder.instance_creator_factory = InstanceCreatorFactory(executable)

    def _map_creator_parameter(
        self, builder: ClassModelBuilder, executable: CreatorExecutable, parameter: CreatorParameter
    ) -> None:
        is_id = any(isinstance(marker, Id) for marker in parameter.markers)
        property_marker = next((m for m in parameter.markers if isinstance(m, Property)), None)
        document_name = property_marker.name if property_marker and property_marker.name else parameter.name

        property_builder = None
        if is_id and builder.id_property_name is not None:
            property_builder = builder.get_property(builder.id_property_name)
        if property_builder is None:
            property_builder = _find_property_builder(builder, document_name)

        if property_builder is None:
            property_builder = _creator_property_builder(builder.type, parameter, document_name)
            builder.add_property(property_builder)
        else:
            if property_marker is not None and property_marker.name:
                property_builder.write_name = property_marker.name
            elif property_builder.write_name is None:
                property_builder.write_name = property_builder.read_name or property_builder.name
            _try_to_expand_to_generic_type(parameter, property_builder)

        if is_id:
            builder.id_property_name = property_builder.name

        if parameter.annotation is not None:
            parameter_type = TypeDescriptor.of(parameter.annotation)
            declared = property_builder.type_data
            if not (declared.is_assignable_from(parameter_type) or parameter_type.is_assignable_from(declared)):
                raise executable.error(
                    f"Invalid Property type for '{document_name}'. Expected {declared}, found {parameter_type}."
                )
        parameter.property_name = property_builder.name

    def _clean_property_builders(self, builder: ClassModelBuilder) -> None:
        for property_builder in builder.property_model_builders:
            if not property_builder.is_readable and not property_builder.is_writable:
                builder.remove_property(property_builder.name)


def _is_frozen_dataclass(clazz: type) -> bool:
    params = getattr(clazz, "__dataclass_params__", None)
    return params is not None and params.frozen


def _find_property_builder(builder: ClassModelBuilder, document_name: str) -> Optional[PropertyModelBuilder]:
    candidates = builder.property_model_builders
    for attribute in ("write_name", "read_name", "name"):
        for property_builder in candidates:
            if getattr(property_builder, attribute) == document_name:
                return property_builder
    return None


def _creator_property_builder(clazz: type, parameter: CreatorParameter, document_name: str) -> PropertyModelBuilder:
    type_data = TypeDescriptor.of(parameter.annotation) if parameter.annotation is not None else TypeDescriptor(object)
    metadata = PropertyMetadata(parameter.name, clazz.__qualname__)
    metadata.merge_type(parameter.annotation if parameter.annotation is not None else object, ())
    property_builder = PropertyModelBuilder()
    property_builder.name = parameter.name
    property_builder.read_name = None
    property_builder.write_name = document_name
    property_builder.type_data = type_data
    property_builder.property_metadata = metadata
    property_builder.property_accessor = PropertyAccessorImpl(metadata)
    return property_builder


def _try_to_expand_to_generic_type(parameter: CreatorParameter, property_builder: PropertyModelBuilder) -> None:
    if parameter.annotation is None:
        return
    parameter_type = TypeDescriptor.of(parameter.annotation)
    declared = property_builder.type_data
    if (
        parameter_type.raw_type is declared.raw_type
        and parameter_type.has_type_parameters
        and not declared.has_type_parameters
    ):
        property_builder.type_data = parameter_type


class SetPrivateFieldsConvention(Convention):
    """Decodes read-only properties by writing their private backing field."""

    def apply(self, builder: ClassModelBuilder) -> None:
        for property_builder in builder.property_model_builders:
            metadata = property_builder.property_metadata
            if metadata is None or metadata.is_deserializable:
                continue
            if metadata.field_name is not None and not metadata.is_field_public and metadata.getter is not None:
                property_builder.property_accessor = FieldPropertyAccessor(
                    property_builder.property_accessor, metadata
                )
                if property_builder.write_name is None:
                    property_builder.write_name = property_builder.read_name or property_builder.name


class GetterAsSetterAccessor(PropertyAccessor):
    """Fills the empty container returned by a getter instead of replacing it."""

    def __init__(self, wrapped: PropertyAccessor, metadata: PropertyMetadata):
        self._wrapped = wrapped
        self._metadata = metadata

    def get(self, instance: Any) -> Any:
        return self._wrapped.get(instance)

    def set(self, instance: Any, value: Any) -> None:
        existing = self._wrapped.get(instance)
        if existing is None:
            raise self._error("The getter returned None.")
        if isinstance(existing, Mapping):
            if len(existing) > 0:
                raise self._error("The getter returned a non empty map.")
            if not isinstance(existing, MutableMapping):
                raise self._error("The getter returned an immutable map.")
            if value is not None:
                existing.update(value)
            return
        if len(existing) > 0:
            raise self._error("The getter returned a non empty collection.")
        if value is None:
            return
        if isinstance(existing, MutableSequence):
            existing.extend(value)
        elif isinstance(existing, MutableSet):
            existing |= set(value)
        else:
            raise self._error("The getter returned an immutable collection.")

    def _error(self, message: str) -> PropertyAccessException:
        return PropertyAccessException(
            f"Cannot use getter in '{self._metadata.declaring_class_name}' "
            f"to set '{self._metadata.name}'. {message}"
        )


def _is_container(type_data: TypeDescriptor) -> bool:
    raw = type_data.raw_type
    if not isinstance(raw, type) or issubclass(raw, (str, bytes, bytearray)):
        return False
    return issubclass(raw, (Collection, Mapping))


class UseGettersAsSettersConvention(Convention):
    """Decodes read-only container properties into the container their getter returns."""

    def apply(self, builder: ClassModelBuilder) -> None:
        for property_builder in builder.property_model_builders:
            metadata = property_builder.property_metadata
            if metadata is None or metadata.is_deserializable or not metadata.is_serializable:
                continue
            if metadata.getter is None or not _is_container(property_builder.type_data):
                continue
            property_builder.property_accessor = GetterAsSetterAccessor(
                property_builder.property_accessor, metadata
            )
            if property_builder.write_name is None:
                property_builder.write_name = property_builder.read_name or property_builder.name


class IdGeneratorsConvention(Convention):
    """Wires a generator for ``ObjectId`` and ``UUID`` id properties."""

    _GENERATORS = {ObjectId: OBJECT_ID_GENERATOR, uuid.UUID: UUID_GENERATOR}

    def apply(self, builder: ClassModelBuilder) -> None:
        if builder.id_generator is not None or builder.id_property_name is None:
            return
        id_property = builder.get_property(builder.id_property_name)
        if id_property is None:
            return
        builder.id_generator = self._GENERATORS.get(id_property.type_data.raw_type)


CLASS_AND_PROPERTY_CONVENTION = DefaultsConvention()
ANNOTATION_CONVENTION = AnnotationConvention()
SET_PRIVATE_FIELDS_CONVENTION = SetPrivateFieldsConvention()
USE_GETTERS_FOR_SETTERS = UseGettersAsSettersConvention()
ID_GENERATORS_CONVENTION = IdGeneratorsConvention()

DEFAULT_CONVENTIONS: List[Convention] = [
    CLASS_AND_PROPERTY_CONVENTION,
    ANNOTATION_CONVENTION,
    ID_GENERATORS_CONVENTION,
]

NO_CONVENTIONS: List[Convention] = []

CONVENTION_NAMES: Dict[str, Convention] = {
    "defaults": CLASS_AND_PROPERTY_CONVENTION,
    "annotations": ANNOTATION_CONVENTION,
    "set_private_fields": SET_PRIVATE_FIELDS_CONVENTION,
    "use_getters_as_setters": USE_GETTERS_FOR_SETTERS,
    "id_generators": ID_GENERATORS_CONVENTION,
}
