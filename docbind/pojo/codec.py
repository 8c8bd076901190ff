"""The pojo codec: encodes and decodes instances described by a class model.

A :class:`PojoCodecImpl` is bound to one class model. When it is created
for a fully specialised model it resolves a codec for every property and
stores it in the property's cached codec slot. Nested pojo properties get
the codec of their specialised model from a cache shared by every codec
created from the same root, or a :class:`LazyPojoCodec` when that model is
still being specialised, which is what lets self-referential classes
resolve.

Decoding a class with the discriminator enabled is two-pass: the document
is scanned for the discriminator key, the reader is reset to the mark
taken before the scan, and the document is decoded again by the codec of
the class the discriminator names.
"""

import threading
from abc import abstractmethod
from collections.abc import Collection, Mapping
from typing import Any, Dict, List, Optional

from docbind.codecs.api import (
    Codec,
    CodecRegistry,
    DecoderContext,
    DocumentReader,
    DocumentType,
    DocumentWriter,
    EncoderContext,
    DEFAULT_DECODER_CONTEXT,
    DEFAULT_ENCODER_CONTEXT,
)
from docbind.codecs.registry import from_codecs, from_registries
from docbind.exceptions import CodecConfigurationException, DocumentDataException, PropertyAccessException
from docbind.logging import get_logger
from docbind.pojo.creator import InstanceCreator
from docbind.pojo.discriminator import DiscriminatorLookup
from docbind.pojo.global_models import GlobalModels
from docbind.pojo.models import ClassModel, IdPropertyModelHolder, PropertyModel
from docbind.pojo.property_codecs import (
    PropertyCodecProvider,
    PropertyCodecRegistry,
    PropertyCodecRegistryImpl,
)

_logger = get_logger("codec")

_CHECKED_DISCRIMINATOR_CONTEXT = DecoderContext(checked_discriminator=True)


class PojoCodec(Codec):
    """A codec driven by a :class:`ClassModel`."""

    @property
    @abstractmethod
    def class_model(self) -> ClassModel:
        pass

    @property
    def encoder_class(self) -> type:
        return self.class_model.type


def _is_collection(clazz: type) -> bool:
    return issubclass(clazz, Collection) and not issubclass(clazz, (str, bytes, bytearray, Mapping))


def are_equivalent_types(first: type, second: type) -> bool:
    """Return True if values of ``first`` can be handled by a codec for ``second``.

    Proxy classes count as their raw class, and any two collection types,
    or any two mapping types, are equivalent.
    """
    first = GlobalModels.proxy_raw_class(first)
    second = GlobalModels.proxy_raw_class(second)
    if first is second:
        return True
    if _is_collection(first) and _is_collection(second):
        return True
    return issubclass(first, Mapping) and issubclass(second, Mapping)


def should_specialize(class_model: ClassModel) -> bool:
    """Return True if every generic property of the model has a concrete codec."""
    if not class_model.has_type_parameters:
        return True
    for name, type_parameter_map in class_model.property_name_to_type_parameter_map.items():
        property_model = class_model.get_property_model(name)
        if type_parameter_map.has_type_parameters and (property_model is None or property_model.codec is None):
            return False
    return True


def get_specialized_class_model(class_model: ClassModel, property_model: PropertyModel) -> ClassModel:
    """Derive the model a nested pojo property is encoded with."""
    use_discriminator = (
        class_model.use_discriminator
        if property_model.use_discriminator is None
        else property_model.use_discriminator
    )
    valid_discriminator = class_model.discriminator_key is not None and class_model.discriminator is not None
    change_discriminator = use_discriminator != class_model.use_discriminator and valid_discriminator
    type_parameters = property_model.type_data.type_parameters
    if not type_parameters and not change_discriminator:
        return class_model
    return class_model.specialize(
        type_parameters, use_discriminator if change_discriminator else class_model.use_discriminator
    )


class PojoCodecImpl(PojoCodec):
    """Codec for one class model.

    Args:
        class_model: The model to encode and decode with.
        registry: Registry for classes outside the model.
        property_codec_providers: Providers consulted before the built-in ones.
        discriminator_lookup: Resolves discriminator values.
    """

    def __init__(
        self,
        class_model: ClassModel,
        registry: CodecRegistry,
        property_codec_providers: Optional[List[PropertyCodecProvider]],
        discriminator_lookup: DiscriminatorLookup,
        codec_cache: Optional[Dict[ClassModel, Codec]] = None,
        property_codec_registry: Optional[PropertyCodecRegistry] = None,
        specialized: Optional[bool] = None,
    ):
        self._class_model = class_model
        if property_codec_registry is None:
            self._registry = from_registries(from_codecs(self), registry)
            self._property_codec_registry = PropertyCodecRegistryImpl(
                self, self._registry, property_codec_providers
            )
        else:
            self._registry = registry
            self._property_codec_registry = property_codec_registry
        self._discriminator_lookup = discriminator_lookup
        self._codec_cache = {} if codec_cache is None else codec_cache
        self._specialized = should_specialize(class_model) if specialized is None else specialized
        self._specialize()

    @property
    def class_model(self) -> ClassModel:
        return self._class_model

    @property
    def is_specialized(self) -> bool:
        return self._specialized

    def _specialize(self) -> None:
        if not self._specialized:
            return
        self._codec_cache.setdefault(self._class_model, self)
        for property_model in self._class_model.property_models:
            try:
                self._add_to_cache(property_model)
            except CodecConfigurationException as e:
                raise CodecConfigurationException(
                    f"Could not create a PojoCodec for '{self._class_model.name}'. "
                    f"Property '{property_model.name}' errored with: {e}",
                    e,
                ) from e

    def _add_to_cache(self, property_model: PropertyModel) -> None:
        if property_model.cached_codec is None:
            property_model.cached_codec = self._specialize_property(property_model)

    def _specialize_property(self, property_model: PropertyModel) -> Codec:
        codec = self._codec_from_property_registry(property_model)
        if isinstance(codec, PojoCodec):
            specialized = get_specialized_class_model(codec.class_model, property_model)
            cached = self._codec_cache.get(specialized)
            if cached is not None:
                return cached
            return LazyPojoCodec(
                specialized,
                self._registry,
                self._property_codec_registry,
                self._discriminator_lookup,
                self._codec_cache,
            )
        return codec

    def _codec_from_property_registry(self, property_model: PropertyModel) -> Codec:
        try:
            return self._property_codec_registry.get(property_model.type_data)
        except CodecConfigurationException as e:
            return LazyMissingCodec(property_model.type_data.raw_type, e)

    def _check_specialized(self) -> None:
        if not self._specialized:
            raise CodecConfigurationException(
                f"{self._class_model.name} contains generic types that have not been specialised. "
                f"Top level classes with generic types are not supported by the PojoCodec."
            )

    def encode(self, writer: DocumentWriter, value: Any, context: EncoderContext = None) -> None:
        self._check_specialized()
        context = context or DEFAULT_ENCODER_CONTEXT
        if not are_equivalent_types(type(value), self._class_model.type):
            self._registry.get(type(value)).encode(writer, value, context)
            return
        writer.write_start_document()
        id_holder = self._class_model.id_property_model_holder
        self._encode_id_property(writer, value, context, id_holder)
        if self._class_model.use_discriminator:
            writer.write_name(self._class_model.discriminator_key)
            writer.write_string(self._class_model.discriminator)
        for property_model in self._class_model.property_models:
            if property_model is id_holder.property_model:
                continue
            self._encode_property(writer, value, property_model)
        writer.write_end_document()

    def _encode_id_property(
        self, writer: DocumentWriter, instance: Any, context: EncoderContext, holder: IdPropertyModelHolder
    ) -> None:
        property_model = holder.property_model
        if property_model is None:
            return
        if holder.id_generator is None:
            self._encode_property(writer, instance, property_model)
            return
        id_value = property_model.property_accessor.get(instance)
        if id_value is None and context.is_encoding_collectible_document:
            id_value = holder.id_generator.generate()
            try:
                property_model.property_accessor.set(instance, id_value)
            except PropertyAccessException as e:
                _logger.debug("Generated id for %s could not be set on the instance: %s", self._class_model.name, e)
        self._encode_value(writer, property_model, id_value)

    def _encode_property(self, writer: DocumentWriter, instance: Any, property_model: PropertyModel) -> None:
        if property_model.is_readable:
            self._encode_value(writer, property_model, property_model.property_accessor.get(instance))

    def _encode_value(self, writer: DocumentWriter, property_model: PropertyModel, value: Any) -> None:
        if not property_model.should_serialize(value):
            return
        writer.write_name(property_model.read_name)
        if value is None:
            writer.write_null()
            return
        try:
            DEFAULT_ENCODER_CONTEXT.encode_with_child_context(property_model.cached_codec, writer, value)
        except CodecConfigurationException as e:
            raise CodecConfigurationException(
                f"Failed to encode '{self._class_model.name}'. "
                f"Encoding '{property_model.read_name}' errored with: {e}",
                e,
            ) from e

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        if context is not None and context.has_checked_discriminator:
            self._check_specialized()
            instance_creator = self._class_model.instance_creator()
            self._decode_properties(reader, instance_creator)
            return instance_creator.get_instance()
        return self._codec_from_document(reader).decode(reader, _CHECKED_DISCRIMINATOR_CONTEXT)

    def _decode_properties(self, reader: DocumentReader, instance_creator: InstanceCreator) -> None:
        reader.read_start_document()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            name = reader.read_name()
            if self._class_model.use_discriminator and self._class_model.discriminator_key == name:
                reader.read_string()
                continue
            property_model = self._property_model_by_write_name(name)
            if property_model is None:
                _logger.debug("Skipping unknown key %r while decoding %s", name, self._class_model.name)
                reader.skip_value()
                continue
            self._decode_property_model(reader, instance_creator, name, property_model)
        reader.read_end_document()

    def _decode_property_model(
        self, reader: DocumentReader, instance_creator: InstanceCreator, name: str, property_model: PropertyModel
    ) -> None:
        try:
            value = None
            if reader.current_type == DocumentType.NULL:
                reader.read_null()
            else:
                codec = property_model.cached_codec
                if codec is None:
                    raise CodecConfigurationException(
                        f"Missing codec in '{self._class_model.name}' for '{property_model.name}'"
                    )
                value = DEFAULT_DECODER_CONTEXT.decode_with_child_context(codec, reader)
            if property_model.is_writable:
                instance_creator.set(value, property_model)
        except DocumentDataException as e:
            raise DocumentDataException(self._decode_error(name, e), e) from e
        except CodecConfigurationException as e:
            raise CodecConfigurationException(self._decode_error(name, e), e) from e

    def _decode_error(self, name: str, error: Exception) -> str:
        return f"Failed to decode '{self._class_model.name}'. Decoding '{name}' errored with: {error}"

    def _property_model_by_write_name(self, name: str) -> Optional[PropertyModel]:
        for property_model in self._class_model.property_models:
            if property_model.is_writable and property_model.write_name == name:
                return property_model
        return None

    def _codec_from_document(self, reader: DocumentReader) -> Codec:
        codec: Codec = self
        if not self._class_model.use_discriminator:
            return codec
        key = self._class_model.discriminator_key
        mark = reader.mark()
        reader.read_start_document()
        found = False
        while not found and reader.read_type() != DocumentType.END_OF_DOCUMENT:
            name = reader.read_name()
            if name == key:
                found = True
                try:
                    clazz = self._discriminator_lookup.lookup(reader.read_string(), self._class_model.type)
                    if codec.encoder_class is not clazz:
                        codec = self._registry.get(clazz)
                except (CodecConfigurationException, DocumentDataException) as e:
                    raise CodecConfigurationException(
                        f"Failed to decode '{self._class_model.name}'. Decoding errored with: {e}", e
                    ) from e
            else:
                reader.skip_value()
        mark.reset()
        return codec

    def __repr__(self) -> str:
        return f"PojoCodecImpl(class_model={self._class_model.name}, specialized={self._specialized})"


class LazyPojoCodec(PojoCodec):
    """Pojo codec for a specialised model, created on first use.

    Handed out while the model's own specialisation may still be running.
    """

    def __init__(
        self,
        class_model: ClassModel,
        registry: CodecRegistry,
        property_codec_registry: PropertyCodecRegistry,
        discriminator_lookup: DiscriminatorLookup,
        codec_cache: Dict[ClassModel, Codec],
    ):
        self._class_model = class_model
        self._registry = registry
        self._property_codec_registry = property_codec_registry
        self._discriminator_lookup = discriminator_lookup
        self._codec_cache = codec_cache
        self._pojo_codec: Optional[PojoCodecImpl] = None
        self._lock = threading.Lock()

    @property
    def class_model(self) -> ClassModel:
        return self._class_model

    def _get_pojo_codec(self) -> Codec:
        codec = self._pojo_codec
        if codec is None:
            with self._lock:
                if self._pojo_codec is None:
                    self._pojo_codec = PojoCodecImpl(
                        self._class_model,
                        self._registry,
                        None,
                        self._discriminator_lookup,
                        codec_cache=self._codec_cache,
                        property_codec_registry=self._property_codec_registry,
                        specialized=True,
                    )
                codec = self._pojo_codec
        return codec

    def encode(self, writer: DocumentWriter, value: Any, context: EncoderContext = None) -> None:
        self._get_pojo_codec().encode(writer, value, context)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        return self._get_pojo_codec().decode(reader, context)


class AutomaticPojoCodec(PojoCodec):
    """Wraps a pojo codec created without explicit registration.

    Configuration errors are re-raised with a hint that the class may need
    an explicitly registered codec.
    """

    def __init__(self, pojo_codec: PojoCodec):
        self._pojo_codec = pojo_codec

    @property
    def class_model(self) -> ClassModel:
        return self._pojo_codec.class_model

    def encode(self, writer: DocumentWriter, value: Any, context: EncoderContext = None) -> None:
        try:
            self._pojo_codec.encode(writer, value, context)
        except CodecConfigurationException as e:
            raise CodecConfigurationException(
                f"An exception occurred when encoding using the AutomaticPojoCodec. "
                f"Encoding a {type(value).__qualname__}: '{value!r}' failed with the following exception: {e} "
                f"A custom Codec or PojoCodec may need to be explicitly configured and registered to handle this type.",
                e,
            ) from e

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        try:
            return self._pojo_codec.decode(reader, context)
        except CodecConfigurationException as e:
            raise CodecConfigurationException(
                f"An exception occurred when decoding using the AutomaticPojoCodec. "
                f"Decoding into a '{self.class_model.name}' failed with the following exception: {e} "
                f"A custom Codec or PojoCodec may need to be explicitly configured and registered to handle this type.",
                e,
            ) from e


class LazyMissingCodec(Codec):
    """Stands in for a property codec that could not be found.

    The original error is raised when the property is first encoded or
    decoded, so a class with one unsupported property can still be used
    while that property is unset.
    """

    def __init__(self, clazz: type, error: CodecConfigurationException):
        self._clazz = clazz
        self._error = error

    @property
    def encoder_class(self) -> type:
        return self._clazz

    def encode(self, writer: DocumentWriter, value: Any, context: EncoderContext = None) -> None:
        raise CodecConfigurationException(str(self._error), self._error)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        raise CodecConfigurationException(str(self._error), self._error)
