"""Codec resolution for typed properties.

A property's :class:`TypeDescriptor` is resolved by asking providers in
order; the first non-None codec wins:

1. providers registered by the user,
2. collections (``List[T]``, ``Set[T]``, ``Tuple[T, ...]``, ...),
3. maps (``Dict[K, V]``),
4. enums,
5. the fallback, which returns the owning pojo codec for its own class and
   otherwise asks the codec registry.

Providers receive the property codec registry so they can resolve the
codecs of type arguments recursively.
"""

from abc import ABC, abstractmethod
from collections import abc as collections_abc
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

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
from docbind.codecs.enums import EnumCodec
from docbind.exceptions import CodecConfigurationException, DefinitionException
from docbind.pojo.global_models import ANY_KEY_CONVERTER, GlobalModels, StringKeyConverter
from docbind.pojo.type_descriptor import OBJECT, TypeDescriptor

_COLLECTION_DEFAULTS = {
    collections_abc.Iterable: list,
    collections_abc.Collection: list,
    collections_abc.Sequence: list,
    collections_abc.MutableSequence: list,
    collections_abc.Set: set,
    collections_abc.MutableSet: set,
}

_MAP_DEFAULTS = {
    collections_abc.Mapping: dict,
    collections_abc.MutableMapping: dict,
}


class PropertyCodecRegistry(ABC):
    """Resolves codecs for property types."""

    @abstractmethod
    def get(self, type_data: TypeDescriptor) -> Codec:
        """Get the codec for ``type_data``.

        Raises:
            CodecConfigurationException: If no provider can supply one.
        """
        pass


class PropertyCodecProvider(ABC):
    """Supplies codecs for property types, or None when not applicable."""

    @abstractmethod
    def get(self, type_data: TypeDescriptor, registry: PropertyCodecRegistry) -> Optional[Codec]:
        pass


def _is_string_like(clazz: type) -> bool:
    return issubclass(clazz, (str, bytes, bytearray))


def _is_collection_type(clazz: Any) -> bool:
    return (
        isinstance(clazz, type)
        and issubclass(clazz, collections_abc.Iterable)
        and not issubclass(clazz, collections_abc.Mapping)
        and not _is_string_like(clazz)
        and not issubclass(clazz, Enum)
    )


def _is_map_type(clazz: Any) -> bool:
    return isinstance(clazz, type) and issubclass(clazz, collections_abc.Mapping)


def _concrete_class(clazz: type, defaults: Dict[type, type], kind: str) -> type:
    if clazz in defaults:
        return defaults[clazz]
    if getattr(clazz, "__abstractmethods__", None):
        raise DefinitionException(f"Unsupported {kind} interface of {clazz.__qualname__}!")
    return clazz


def _element_type(type_data: TypeDescriptor, position: int) -> TypeDescriptor:
    if len(type_data.type_parameters) > position:
        return type_data.type_parameters[position]
    return OBJECT


class CollectionCodec(Codec):
    """Codec writing a collection as an array of encoded elements.

    Args:
        encoder_class: The concrete class built when decoding.
        codec: Codec for the elements.
    """

    def __init__(self, encoder_class: type, codec: Codec):
        self._encoder_class = encoder_class
        self._codec = codec

    @property
    def encoder_class(self) -> type:
        return self._encoder_class

    def encode(self, writer: DocumentWriter, value: Iterable[Any], context: EncoderContext = None) -> None:
        writer.write_start_array()
        for item in value:
            if item is None:
                writer.write_null()
            else:
                DEFAULT_ENCODER_CONTEXT.encode_with_child_context(self._codec, writer, item)
        writer.write_end_array()

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        items = []
        reader.read_start_array()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            if reader.current_type == DocumentType.NULL:
                reader.read_null()
                items.append(None)
            else:
                items.append(DEFAULT_DECODER_CONTEXT.decode_with_child_context(self._codec, reader))
        reader.read_end_array()
        return items if self._encoder_class is list else self._encoder_class(items)


class MapCodec(Codec):
    """Codec writing a mapping as a document keyed by converted keys.

    Args:
        encoder_class: The concrete class built when decoding.
        key_converter: Converts keys to and from document field names.
        codec: Codec for the values.
    """

    def __init__(self, encoder_class: type, key_converter: StringKeyConverter, codec: Codec):
        self._encoder_class = encoder_class
        self._key_converter = key_converter
        self._codec = codec

    @property
    def encoder_class(self) -> type:
        return self._encoder_class

    def encode(self, writer: DocumentWriter, value: Dict[Any, Any], context: EncoderContext = None) -> None:
        writer.write_start_document()
        for key, item in value.items():
            writer.write_name(self._key_converter.to_string(key))
            if item is None:
                writer.write_null()
            else:
                DEFAULT_ENCODER_CONTEXT.encode_with_child_context(self._codec, writer, item)
        writer.write_end_document()

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        result = {}
        reader.read_start_document()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            key = self._key_converter.from_string(reader.read_name())
            if reader.current_type == DocumentType.NULL:
                reader.read_null()
                result[key] = None
            else:
                result[key] = DEFAULT_DECODER_CONTEXT.decode_with_child_context(self._codec, reader)
        reader.read_end_document()
        return result if self._encoder_class is dict else self._encoder_class(result)


class CollectionPropertyCodecProvider(PropertyCodecProvider):
    """Codecs for sequences and sets.

    Abstract ``collections.abc`` types decode into ``list`` or ``set``.
    """

    def get(self, type_data: TypeDescriptor, registry: PropertyCodecRegistry) -> Optional[Codec]:
        raw = type_data.raw_type
        if not _is_collection_type(raw) or len(type_data.type_parameters) > 1:
            return None
        concrete = _concrete_class(raw, _COLLECTION_DEFAULTS, "Collection")
        return CollectionCodec(concrete, registry.get(_element_type(type_data, 0)))


class MapPropertyCodecProvider(PropertyCodecProvider):
    """Codecs for mappings.

    Keys go through the string-key converter of the key type. Keys of an
    untyped map (``dict`` or ``Dict[Any, V]``) are written with ``str(key)``
    and come back as strings. A value type with no codec of its own falls
    back to the registry's ``dict`` codec when the value type is ``object``.
    """

    def __init__(self, codec_registry: CodecRegistry):
        self._codec_registry = codec_registry

    def get(self, type_data: TypeDescriptor, registry: PropertyCodecRegistry) -> Optional[Codec]:
        raw = type_data.raw_type
        if not _is_map_type(raw):
            return None
        concrete = _concrete_class(raw, _MAP_DEFAULTS, "Map")
        key_type = _element_type(type_data, 0)
        value_type = _element_type(type_data, 1)
        if key_type.raw_type is object:
            key_converter = ANY_KEY_CONVERTER
        else:
            key_converter = GlobalModels.get_string_key_converter(key_type.raw_type)
        try:
            value_codec = registry.get(value_type)
        except CodecConfigurationException:
            if value_type.raw_type is not object:
                raise
            value_codec = self._codec_registry.get(dict)
        return MapCodec(concrete, key_converter, value_codec)


class EnumPropertyCodecProvider(PropertyCodecProvider):
    """Codecs for enums: a registered codec if there is one, else :class:`EnumCodec`."""

    def __init__(self, codec_registry: CodecRegistry):
        self._codec_registry = codec_registry

    def get(self, type_data: TypeDescriptor, registry: PropertyCodecRegistry) -> Optional[Codec]:
        raw = type_data.raw_type
        if not (isinstance(raw, type) and issubclass(raw, Enum)):
            return None
        try:
            return self._codec_registry.get(raw)
        except CodecConfigurationException:
            return EnumCodec(raw)


class FallbackPropertyCodecProvider(PropertyCodecProvider):
    """Last provider: the owning pojo codec for its own class, else the codec registry."""

    def __init__(self, pojo_codec: Codec, codec_registry: CodecRegistry):
        self._pojo_codec = pojo_codec
        self._codec_registry = codec_registry

    def get(self, type_data: TypeDescriptor, registry: PropertyCodecRegistry) -> Optional[Codec]:
        raw = type_data.raw_type
        if raw is self._pojo_codec.encoder_class:
            return self._pojo_codec
        return self._codec_registry.get(raw)


class PropertyCodecRegistryImpl(PropertyCodecRegistry):
    """Provider chain with a per-type cache.

    Args:
        pojo_codec: The pojo codec the chain is built for.
        codec_registry: Registry for nested classes.
        property_codec_providers: User providers, consulted first.
    """

    def __init__(
        self,
        pojo_codec: Codec,
        codec_registry: CodecRegistry,
        property_codec_providers: Optional[List[PropertyCodecProvider]] = None,
    ):
        self._providers: List[PropertyCodecProvider] = list(property_codec_providers or [])
        self._providers.extend(
            [
                CollectionPropertyCodecProvider(),
                MapPropertyCodecProvider(codec_registry),
                EnumPropertyCodecProvider(codec_registry),
                FallbackPropertyCodecProvider(pojo_codec, codec_registry),
            ]
        )
        self._cache: Dict[TypeDescriptor, Codec] = {}

    def get(self, type_data: TypeDescriptor) -> Codec:
        codec = self._cache.get(type_data)
        if codec is not None:
            return codec
        for provider in self._providers:
            codec = provider.get(type_data, self)
            if codec is not None:
                return self._cache.setdefault(type_data, codec)
        raise CodecConfigurationException(f"Can't find a codec for {type_data}.")
