"""The document mapper: the entry point for encoding and decoding objects."""

from typing import Any, Dict, Optional, Sequence, Type, TypeVar

from docbind.codecs.api import Codec, CodecRegistry, DecoderContext, EncoderContext
from docbind.codecs.builtin import ValueCodecProvider
from docbind.codecs.document import TreeDocumentReader, TreeDocumentWriter, from_bson, to_bson
from docbind.codecs.enums import EnumCodecProvider
from docbind.codecs.registry import from_codecs, from_providers, from_registries
from docbind.config import MapperConfig
from docbind.logging import get_logger
from docbind.pojo.models import ClassModel
from docbind.pojo.provider import PojoCodecProvider

_logger = get_logger("mapper")

T = TypeVar("T")


class DocumentMapper:
    """Converts objects to and from documents.

    Documents are plain ``dict`` trees holding ``bson`` scalar types, which
    is what ``pymongo`` reads and writes. :meth:`to_bson` and
    :meth:`from_bson` go one step further to raw BSON bytes.

    Args:
        config: Mapper configuration; the defaults when None.
        codecs: Extra codecs that take precedence over the built-in ones.

    Example:
        >>> mapper = DocumentMapper()
        >>> document = mapper.encode(Person(name="Ada", age=36))
        >>> mapper.decode(document, Person)
        Person(name='Ada', age=36)
    """

    def __init__(self, config: Optional[MapperConfig] = None, codecs: Sequence[Codec] = ()):
        self._config = config if config is not None else MapperConfig()
        self._pojo_codec_provider = (
            PojoCodecProvider.builder()
            .automatic(self._config.automatic)
            .conventions(self._config.resolve_conventions())
            .register(*self._config.resolve_registered_classes())
            .register_namespaces(*self._config.namespaces)
            .build()
        )
        registry = from_providers(ValueCodecProvider(), EnumCodecProvider(), self._pojo_codec_provider)
        if codecs:
            registry = from_registries(from_codecs(list(codecs)), registry)
        self._codec_registry = registry
        _logger.debug("Created document mapper with %s", self._config)

    @property
    def config(self) -> MapperConfig:
        return self._config

    @property
    def codec_registry(self) -> CodecRegistry:
        return self._codec_registry

    @property
    def pojo_codec_provider(self) -> PojoCodecProvider:
        return self._pojo_codec_provider

    def get_codec(self, clazz: type) -> Codec:
        """Get the codec for ``clazz``.

        Raises:
            CodecConfigurationException: If no codec is available.
        """
        return self._codec_registry.get(clazz)

    def get_class_model(self, clazz: type) -> ClassModel:
        return self._pojo_codec_provider.get_class_model(clazz)

    def encode(self, value: Any, collectible: bool = True) -> Dict[str, Any]:
        """Encode ``value`` into a document.

        Args:
            value: The object to encode.
            collectible: True when the document is stored on its own, in
                which case a missing generated id is filled in.

        Returns:
            The document as a dict.
        """
        writer = TreeDocumentWriter()
        codec = self.get_codec(type(value))
        codec.encode(writer, value, EncoderContext(encoding_collectible_document=collectible))
        return writer.document

    def decode(self, document: Dict[str, Any], clazz: Type[T]) -> T:
        """Decode a document into an instance of ``clazz``.

        Keys without a matching property are ignored.
        """
        reader = TreeDocumentReader(document)
        return self.get_codec(clazz).decode(reader, DecoderContext())

    def to_bson(self, value: Any, collectible: bool = True) -> bytes:
        """Encode ``value`` straight to BSON bytes."""
        return to_bson(self.encode(value, collectible))

    def from_bson(self, data: bytes, clazz: Type[T]) -> T:
        """Decode BSON bytes into an instance of ``clazz``."""
        return self.decode(from_bson(data), clazz)

    def __repr__(self) -> str:
        return f"DocumentMapper(config={self._config!r})"
