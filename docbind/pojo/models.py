"""Property and class models.

Builders are mutable and are what conventions operate on. ``build()``
freezes them into :class:`PropertyModel` and :class:`ClassModel`, which
are shared by every codec of a class and never mutated afterwards, except
for the per-property cached codec slot filled in by the pojo codec.

A class model specialised for concrete type arguments is derived with
:meth:`ClassModel.specialize` and cached on the original model, so the
same arguments always yield the same model object.
"""

from typing import Any, Dict, List, Optional, Tuple

from docbind.codecs.api import Codec
from docbind.exceptions import CodecConfigurationException, DefinitionException
from docbind.logging import get_logger
from docbind.pojo.creator import InstanceCreator, InstanceCreatorFactory
from docbind.pojo.id_generators import IdGenerator
from docbind.pojo.metadata import PropertyAccessor, PropertyMetadata, PropertyAccessorImpl
from docbind.pojo.type_descriptor import TypeDescriptor, TypeParameterMap, class_type_parameters

_logger = get_logger("models")

ID_PROPERTY_NAME = "_id"


class PropertySerialization:
    """Decides whether a property value is written to the document.

    The default skips None values.
    """

    def should_serialize(self, value: Any) -> bool:
        return value is not None


class PropertyModelBuilder:
    """Mutable description of a property, edited by conventions.

    Attributes:
        name: The property name.
        read_name: Document key the property is written under, or None.
        write_name: Document key the property is read from, or None.
        type_data: The declared type.
        codec: An explicit codec overriding registry lookup.
        discriminator_enabled: Override for nested values' discriminator use.
    """

    def __init__(self):
        self.name: Optional[str] = None
        self.read_name: Optional[str] = None
        self.write_name: Optional[str] = None
        self.type_data: Optional[TypeDescriptor] = None
        self.codec: Optional[Codec] = None
        self.property_serialization: PropertySerialization = PropertySerialization()
        self.property_metadata: Optional[PropertyMetadata] = None
        self.property_accessor: Optional[PropertyAccessor] = None
        self.read_markers: List[Any] = []
        self.write_markers: List[Any] = []
        self.discriminator_enabled: Optional[bool] = None
        self.error: Optional[str] = None

    @classmethod
    def from_metadata(cls, metadata: PropertyMetadata) -> "PropertyModelBuilder":
        builder = cls()
        builder.name = metadata.name
        builder.read_name = metadata.name if metadata.is_serializable else None
        builder.write_name = metadata.name if metadata.is_deserializable else None
        builder.type_data = metadata.type_data
        builder.read_markers = metadata.read_markers
        builder.write_markers = metadata.write_markers
        builder.property_metadata = metadata
        builder.property_accessor = PropertyAccessorImpl(metadata)
        builder.error = metadata.error
        return builder

    @property
    def is_readable(self) -> bool:
        return self.read_name is not None

    @property
    def is_writable(self) -> bool:
        return self.write_name is not None

    def build(self) -> "PropertyModel":
        if not self.is_readable and not self.is_writable:
            raise DefinitionException(
                f"Invalid PropertyModel '{self.name}', neither readable or writable."
            )
        for attribute in ("name", "type_data", "property_accessor"):
            if getattr(self, attribute) is None:
                raise DefinitionException(f"PropertyModelBuilder is missing {attribute} for '{self.name}'")
        return PropertyModel(
            name=self.name,
            read_name=self.read_name,
            write_name=self.write_name,
            type_data=self.type_data,
            codec=self.codec,
            property_serialization=self.property_serialization,
            discriminator_enabled=self.discriminator_enabled,
            property_metadata=self.property_metadata,
            property_accessor=self.property_accessor,
            error=self.error,
        )

    def __repr__(self) -> str:
        return f"PropertyModelBuilder(name={self.name!r}, type_data={self.type_data})"


class PropertyModel:
    """Frozen description of one property of a class model."""

    def __init__(
        self,
        name: str,
        read_name: Optional[str],
        write_name: Optional[str],
        type_data: TypeDescriptor,
        codec: Optional[Codec],
        property_serialization: PropertySerialization,
        discriminator_enabled: Optional[bool],
        property_metadata: Optional[PropertyMetadata],
        property_accessor: PropertyAccessor,
        error: Optional[str] = None,
    ):
        self._name = name
        self._read_name = read_name
        self._write_name = write_name
        self._type_data = type_data
        self._codec = codec
        self._cached_codec = codec
        self._property_serialization = property_serialization
        self._discriminator_enabled = discriminator_enabled
        self._property_metadata = property_metadata
        self._property_accessor = property_accessor
        self._error = error

    @property
    def name(self) -> str:
        return self._name

    @property
    def read_name(self) -> Optional[str]:
        return self._read_name

    @property
    def write_name(self) -> Optional[str]:
        return self._write_name

    @property
    def is_readable(self) -> bool:
        return self._read_name is not None

    @property
    def is_writable(self) -> bool:
        return self._write_name is not None

    @property
    def type_data(self) -> TypeDescriptor:
        return self._type_data

    @property
    def codec(self) -> Optional[Codec]:
        """The explicit codec, if one was configured."""
        return self._codec

    @property
    def cached_codec(self) -> Optional[Codec]:
        return self._cached_codec

    @cached_codec.setter
    def cached_codec(self, codec: Codec) -> None:
        self._cached_codec = codec

    @property
    def use_discriminator(self) -> Optional[bool]:
        return self._discriminator_enabled

    @property
    def property_metadata(self) -> Optional[PropertyMetadata]:
        return self._property_metadata

    @property
    def property_accessor(self) -> PropertyAccessor:
        return self._property_accessor

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    def should_serialize(self, value: Any) -> bool:
        return self._property_serialization.should_serialize(value)

    def with_type_data(self, type_data: TypeDescriptor) -> "PropertyModel":
        """Copy of this model for a specialised type, with an empty codec slot."""
        return PropertyModel(
            name=self._name,
            read_name=self._read_name,
            write_name=self._write_name,
            type_data=type_data,
            codec=self._codec,
            property_serialization=self._property_serialization,
            discriminator_enabled=self._discriminator_enabled,
            property_metadata=self._property_metadata,
            property_accessor=self._property_accessor,
            error=self._error,
        )

    def __repr__(self) -> str:
        return (
            f"PropertyModel(name={self._name!r}, read_name={self._read_name!r}, "
            f"write_name={self._write_name!r}, type_data={self._type_data})"
        )


class IdPropertyModelHolder:
    """Pairs the id property with its optional generator."""

    def __init__(self, property_model: Optional[PropertyModel], id_generator: Optional[IdGenerator]):
        self._property_model = property_model
        self._id_generator = id_generator

    @classmethod
    def create(
        cls, clazz: type, property_model: Optional[PropertyModel], id_generator: Optional[IdGenerator]
    ) -> "IdPropertyModelHolder":
        if property_model is None and id_generator is not None:
            raise CodecConfigurationException(
                f"Invalid IdGenerator. There is no IdProperty set for: {clazz.__qualname__}"
            )
        if id_generator is not None:
            expected = TypeDescriptor(id_generator.id_type)
            if not property_model.type_data.is_assignable_from(expected):
                raise CodecConfigurationException(
                    f"Invalid IdGenerator. Mismatching types, the IdProperty type: "
                    f"{property_model.type_data} the IdGenerator type: {expected}"
                )
        return cls(property_model, id_generator)

    @property
    def property_model(self) -> Optional[PropertyModel]:
        return self._property_model

    @property
    def id_generator(self) -> Optional[IdGenerator]:
        return self._id_generator


class ClassModelBuilder:
    """Mutable description of a class, edited by conventions.

    Args:
        clazz: The class being described.
    """

    def __init__(self, clazz: type):
        self.type = clazz
        self.conventions: List[Any] = []
        self.instance_creator_factory: Optional[InstanceCreatorFactory] = None
        self.discriminator_enabled = False
        self.discriminator_key: Optional[str] = None
        self.discriminator: Optional[str] = None
        self.id_property_name: Optional[str] = None
        self.id_generator: Optional[IdGenerator] = None
        self.property_name_to_type_parameter_map: Dict[str, TypeParameterMap] = {}
        self._property_model_builders: List[PropertyModelBuilder] = []

    @property
    def property_model_builders(self) -> List[PropertyModelBuilder]:
        return list(self._property_model_builders)

    def get_property(self, name: str) -> Optional[PropertyModelBuilder]:
        for builder in self._property_model_builders:
            if builder.name == name:
                return builder
        return None

    def add_property(self, builder: PropertyModelBuilder) -> "ClassModelBuilder":
        self._property_model_builders.append(builder)
        return self

    def remove_property(self, name: str) -> bool:
        builder = self.get_property(name)
        if builder is None:
            return False
        self._property_model_builders.remove(builder)
        if self.id_property_name == name:
            self.id_property_name = None
        return True

    def build(self) -> "ClassModel":
        for convention in self.conventions:
            convention.apply(self)

        if self.instance_creator_factory is None:
            raise DefinitionException(
                f"Cannot find a no-argument constructor or a creator for {self.type.__qualname__}"
            )
        if self.discriminator_enabled and (not self.discriminator_key or self.discriminator is None):
            raise DefinitionException(
                f"{self.type.__qualname__} enables the discriminator without a key and value"
            )

        property_models = []
        id_property_model = None
        errors = []
        for builder in self._property_model_builders:
            is_id = builder.name == self.id_property_name
            if is_id:
                if builder.is_readable:
                    builder.read_name = ID_PROPERTY_NAME
                if builder.is_writable:
                    builder.write_name = ID_PROPERTY_NAME
            if builder.error is not None:
                errors.append(builder.error)
                continue
            model = builder.build()
            property_models.append(model)
            if is_id:
                id_property_model = model

        if errors:
            raise DefinitionException(" ".join(errors))
        _validate_property_models(self.type.__qualname__, property_models)

        model = ClassModel(
            clazz=self.type,
            property_name_to_type_parameter_map=self.property_name_to_type_parameter_map,
            instance_creator_factory=self.instance_creator_factory,
            discriminator_enabled=self.discriminator_enabled,
            discriminator_key=self.discriminator_key,
            discriminator=self.discriminator,
            id_property_model_holder=IdPropertyModelHolder.create(
                self.type, id_property_model, self.id_generator
            ),
            property_models=property_models,
        )
        _logger.debug("Built class model for %s with properties %s",
                      self.type.__qualname__, [p.name for p in property_models])
        return model


def _validate_property_models(declaring_class: str, property_models: List[PropertyModel]) -> None:
    seen: Dict[Tuple[str, str], bool] = {}

    def check(kind: str, name: str) -> None:
        if (kind, name) in seen:
            raise DefinitionException(
                f"Duplicate {kind} named '{name}' found in {declaring_class}."
            )
        seen[(kind, name)] = True

    for model in property_models:
        check("property", model.name)
        if model.is_readable:
            check("read property", model.read_name)
        if model.is_writable:
            check("write property", model.write_name)


class ClassModel:
    """Immutable schema of a mapped class."""

    def __init__(
        self,
        clazz: type,
        property_name_to_type_parameter_map: Dict[str, TypeParameterMap],
        instance_creator_factory: InstanceCreatorFactory,
        discriminator_enabled: bool,
        discriminator_key: Optional[str],
        discriminator: Optional[str],
        id_property_model_holder: IdPropertyModelHolder,
        property_models: List[PropertyModel],
    ):
        self._type = clazz
        self._name = clazz.__qualname__
        self._has_type_parameters = bool(class_type_parameters(clazz))
        self._property_name_to_type_parameter_map = dict(property_name_to_type_parameter_map)
        self._instance_creator_factory = instance_creator_factory
        self._discriminator_enabled = discriminator_enabled
        self._discriminator_key = discriminator_key
        self._discriminator = discriminator
        self._id_property_model_holder = id_property_model_holder
        self._property_models = tuple(property_models)
        self._specializations: Dict[Tuple[Tuple[TypeDescriptor, ...], bool], "ClassModel"] = {}

    @classmethod
    def builder(cls, clazz: type) -> ClassModelBuilder:
        return ClassModelBuilder(clazz)

    @property
    def type(self) -> type:
        return self._type

    @property
    def name(self) -> str:
        return self._name

    @property
    def has_type_parameters(self) -> bool:
        return self._has_type_parameters

    @property
    def use_discriminator(self) -> bool:
        return self._discriminator_enabled

    @property
    def discriminator_key(self) -> Optional[str]:
        return self._discriminator_key

    @property
    def discriminator(self) -> Optional[str]:
        return self._discriminator

    @property
    def property_models(self) -> Tuple[PropertyModel, ...]:
        return self._property_models

    def get_property_model(self, name: str) -> Optional[PropertyModel]:
        for model in self._property_models:
            if model.name == name:
                return model
        return None

    @property
    def id_property_model(self) -> Optional[PropertyModel]:
        return self._id_property_model_holder.property_model

    @property
    def id_property_model_holder(self) -> IdPropertyModelHolder:
        return self._id_property_model_holder

    @property
    def property_name_to_type_parameter_map(self) -> Dict[str, TypeParameterMap]:
        return dict(self._property_name_to_type_parameter_map)

    @property
    def instance_creator_factory(self) -> InstanceCreatorFactory:
        return self._instance_creator_factory

    def instance_creator(self) -> InstanceCreator:
        return self._instance_creator_factory.create()

    def specialize(self, type_parameters: Tuple[TypeDescriptor, ...], discriminator_enabled: bool) -> "ClassModel":
        """Derive the model for concrete type arguments.

        The result is cached, so equal arguments return the same object.
        When nothing changes this model itself is returned.
        """
        key = (tuple(type_parameters), discriminator_enabled)
        specialized = self._specializations.get(key)
        if specialized is None:
            specialized = self._specializations.setdefault(key, self._create_specialized(*key))
        return specialized

    def _create_specialized(self, type_parameters: Tuple[TypeDescriptor, ...], discriminator_enabled: bool) -> "ClassModel":
        changed = discriminator_enabled != self._discriminator_enabled
        property_models = []
        id_model = None
        for model in self._property_models:
            specialized = self._specialized_property_model(model, type_parameters)
            changed = changed or specialized is not model
            property_models.append(specialized)
            if model is self.id_property_model:
                id_model = specialized
        if not changed:
            return self
        _logger.debug("Specialized %s for %s", self._name, [str(t) for t in type_parameters])
        return ClassModel(
            clazz=self._type,
            property_name_to_type_parameter_map=self._property_name_to_type_parameter_map,
            instance_creator_factory=self._instance_creator_factory,
            discriminator_enabled=discriminator_enabled,
            discriminator_key=self._discriminator_key,
            discriminator=self._discriminator,
            id_property_model_holder=IdPropertyModelHolder(
                id_model, self._id_property_model_holder.id_generator
            ),
            property_models=property_models,
        )

    def _specialized_property_model(
        self, model: PropertyModel, type_parameters: Tuple[TypeDescriptor, ...]
    ) -> PropertyModel:
        parameter_map = self._property_name_to_type_parameter_map.get(model.name)
        if parameter_map is None or not parameter_map.has_type_parameters:
            return model
        mapping = parameter_map.property_to_class_param_index

        def actual(index: int) -> TypeDescriptor:
            if index >= len(type_parameters):
                raise DefinitionException(
                    f"{self._name} expects more type arguments than the "
                    f"{len(type_parameters)} given for property '{model.name}'"
                )
            return type_parameters[index]

        whole = mapping.get(TypeParameterMap.WHOLE_PROPERTY)
        if whole is not None:
            type_data = actual(whole)
        else:
            arguments = list(model.type_data.type_parameters)
            for position, class_index in mapping.items():
                if position < len(arguments):
                    arguments[position] = actual(class_index)
            type_data = TypeDescriptor(model.type_data.raw_type, tuple(arguments))
        if type_data == model.type_data:
            return model
        return model.with_type_data(type_data)

    def __repr__(self) -> str:
        return f"ClassModel(type={self._name})"
