"""Codec API interfaces.

This module defines the core interfaces of the docbind codec layer:
a type-tagged cursor for writing and reading documents, the codec
contract every converter implements, and the provider/registry
interfaces that locate codecs for a class.

Codecs never see raw bytes. They talk to a :class:`DocumentWriter` or a
:class:`DocumentReader`, which model a document as a stream of
document-start/end, array-start/end, named fields and typed scalars.

Example:
    Implementing a custom codec::

        from docbind.codecs.api import Codec, DocumentReader, DocumentWriter

        class PointCodec(Codec[Point]):
            @property
            def encoder_class(self) -> type:
                return Point

            def encode(self, writer, point, context=None) -> None:
                writer.write_start_document()
                writer.write_name("x")
                writer.write_int32(point.x)
                writer.write_name("y")
                writer.write_int32(point.y)
                writer.write_end_document()

            def decode(self, reader, context=None) -> Point:
                reader.read_start_document()
                values = {}
                while reader.read_type() != DocumentType.END_OF_DOCUMENT:
                    values[reader.read_name()] = reader.read_int32()
                reader.read_end_document()
                return Point(values["x"], values["y"])
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any, Generic, Optional, TypeVar

from bson import Binary, ObjectId

T = TypeVar("T")


class DocumentType(IntEnum):
    """Element type tags, numbered as in the BSON specification."""

    END_OF_DOCUMENT = 0
    DOUBLE = 1
    STRING = 2
    DOCUMENT = 3
    ARRAY = 4
    BINARY = 5
    OBJECT_ID = 7
    BOOLEAN = 8
    DATE_TIME = 9
    NULL = 10
    INT32 = 16
    TIMESTAMP = 17
    INT64 = 18
    DECIMAL128 = 19


class Mark(ABC):
    """A saved reader position that can be returned to."""

    @abstractmethod
    def reset(self) -> None:
        """Move the reader back to the position at which the mark was taken."""
        pass


class DocumentWriter(ABC):
    """Interface for writing a document as a sequence of tagged elements.

    Inside a document every value must be preceded by :meth:`write_name`.
    Inside an array values are written without names.
    """

    @abstractmethod
    def write_start_document(self) -> None:
        pass

    @abstractmethod
    def write_end_document(self) -> None:
        pass

    @abstractmethod
    def write_start_array(self) -> None:
        pass

    @abstractmethod
    def write_end_array(self) -> None:
        pass

    @abstractmethod
    def write_name(self, name: str) -> None:
        """Write the name of the next element of the current document.

        Args:
            name: The element name.
        """
        pass

    @abstractmethod
    def write_string(self, value: str) -> None:
        pass

    @abstractmethod
    def write_int32(self, value: int) -> None:
        pass

    @abstractmethod
    def write_int64(self, value: int) -> None:
        pass

    @abstractmethod
    def write_double(self, value: float) -> None:
        pass

    @abstractmethod
    def write_boolean(self, value: bool) -> None:
        pass

    @abstractmethod
    def write_binary(self, value: Binary) -> None:
        pass

    @abstractmethod
    def write_datetime(self, value: datetime) -> None:
        pass

    @abstractmethod
    def write_decimal128(self, value: Decimal) -> None:
        pass

    @abstractmethod
    def write_object_id(self, value: ObjectId) -> None:
        pass

    @abstractmethod
    def write_null(self) -> None:
        pass


class DocumentReader(ABC):
    """Interface for reading a document as a sequence of tagged elements.

    Reading a document follows the pattern::

        reader.read_start_document()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            name = reader.read_name()
            ...  # read or skip the value
        reader.read_end_document()
    """

    @property
    @abstractmethod
    def current_type(self) -> DocumentType:
        """The type of the element the reader is positioned on."""
        pass

    @abstractmethod
    def read_type(self) -> DocumentType:
        """Advance to the next element of the current document or array.

        Returns:
            The type of the next element, or ``END_OF_DOCUMENT`` when the
            current document or array has no more elements.
        """
        pass

    @abstractmethod
    def read_name(self) -> str:
        """Read the name of the current element.

        Returns:
            The element name.
        """
        pass

    @abstractmethod
    def read_start_document(self) -> None:
        pass

    @abstractmethod
    def read_end_document(self) -> None:
        pass

    @abstractmethod
    def read_start_array(self) -> None:
        pass

    @abstractmethod
    def read_end_array(self) -> None:
        pass

    @abstractmethod
    def read_string(self) -> str:
        pass

    @abstractmethod
    def read_int32(self) -> int:
        pass

    @abstractmethod
    def read_int64(self) -> int:
        pass

    @abstractmethod
    def read_double(self) -> float:
        pass

    @abstractmethod
    def read_boolean(self) -> bool:
        pass

    @abstractmethod
    def read_binary(self) -> Binary:
        pass

    @abstractmethod
    def read_datetime(self) -> datetime:
        pass

    @abstractmethod
    def read_decimal128(self) -> Decimal:
        pass

    @abstractmethod
    def read_object_id(self) -> ObjectId:
        pass

    @abstractmethod
    def read_null(self) -> None:
        pass

    @abstractmethod
    def skip_value(self) -> None:
        """Skip the value of the current element, including nested content."""
        pass

    @abstractmethod
    def mark(self) -> Mark:
        """Remember the current position.

        Returns:
            A :class:`Mark` whose ``reset()`` returns the reader here.
        """
        pass


class EncoderContext:
    """Per-call options passed down the codec tree while encoding.

    Args:
        encoding_collectible_document: True when the value being encoded is
            a top-level document that will be stored on its own, which
            enables id generation.
    """

    def __init__(self, encoding_collectible_document: bool = False):
        self._encoding_collectible_document = encoding_collectible_document

    @property
    def is_encoding_collectible_document(self) -> bool:
        return self._encoding_collectible_document

    def encode_with_child_context(
        self, codec: "Codec", writer: DocumentWriter, value: Any
    ) -> None:
        """Encode a nested value with a fresh, non-collectible context."""
        codec.encode(writer, value, DEFAULT_ENCODER_CONTEXT)


class DecoderContext:
    """Per-call options passed down the codec tree while decoding.

    Args:
        checked_discriminator: True once the concrete codec for the current
            document has been chosen from its discriminator.
    """

    def __init__(self, checked_discriminator: bool = False):
        self._checked_discriminator = checked_discriminator

    @property
    def has_checked_discriminator(self) -> bool:
        return self._checked_discriminator

    def decode_with_child_context(self, codec: "Codec", reader: DocumentReader) -> Any:
        """Decode a nested value with a fresh context."""
        return codec.decode(reader, DEFAULT_DECODER_CONTEXT)


DEFAULT_ENCODER_CONTEXT = EncoderContext()
DEFAULT_DECODER_CONTEXT = DecoderContext()


class Codec(ABC, Generic[T]):
    """Interface for converting one class to and from a document value.

    A codec declares the class it encodes through :attr:`encoder_class`
    and must be able to decode what it encodes.
    """

    @property
    @abstractmethod
    def encoder_class(self) -> type:
        """The class this codec encodes and decodes."""
        pass

    @abstractmethod
    def encode(
        self, writer: DocumentWriter, value: T, context: Optional[EncoderContext] = None
    ) -> None:
        """Write a value.

        Args:
            writer: The cursor to write to.
            value: The value to encode.
            context: Encoding options; the default context when omitted.
        """
        pass

    @abstractmethod
    def decode(self, reader: DocumentReader, context: Optional[DecoderContext] = None) -> T:
        """Read a value.

        Args:
            reader: The cursor positioned on the value.
            context: Decoding options; the default context when omitted.

        Returns:
            The decoded value.
        """
        pass


class CodecProvider(ABC):
    """Interface for objects that can create codecs for some classes."""

    @abstractmethod
    def get(self, clazz: type, registry: "CodecRegistry") -> Optional[Codec]:
        """Get a codec for a class.

        Args:
            clazz: The class to get a codec for.
            registry: The registry to use for resolving nested codecs.

        Returns:
            A codec, or None if this provider does not handle the class.
        """
        pass


class CodecRegistry(CodecProvider):
    """Interface for locating the codec of a class.

    A registry is also a provider, so registries can be composed.
    """

    @abstractmethod
    def get(self, clazz: type, registry: Optional["CodecRegistry"] = None) -> Optional[Codec]:
        """Get the codec for a class.

        Args:
            clazz: The class to get a codec for.
            registry: When given, the registry acts as a provider inside
                another registry and returns None for unknown classes.

        Returns:
            The codec for the class.

        Raises:
            CodecConfigurationException: If no codec can be found and no
                outer registry was given.
        """
        pass
