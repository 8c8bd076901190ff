"""Enum codecs.

Plain enums are stored by member name. Members of an
:class:`IndexedEnum` are stored by their integer index, and either form is
accepted when decoding them, so a field can move between the two
representations without breaking stored documents.
"""

from enum import Enum
from typing import Optional

from docbind.codecs.api import (
    Codec,
    CodecProvider,
    CodecRegistry,
    DecoderContext,
    DocumentReader,
    DocumentType,
    DocumentWriter,
    EncoderContext,
)
from docbind.exceptions import DocumentDataException


class IndexedEnum(Enum):
    """Enum whose members are stored by a stable integer index.

    The member value is the index unless ``index`` is overridden::

        class Color(IndexedEnum):
            RED = 1
            GREEN = 2
    """

    @property
    def index(self) -> int:
        return self.value

    @classmethod
    def from_index(cls, index: int) -> "IndexedEnum":
        for member in cls:
            if member.index == index:
                return member
        raise ValueError(f"{index} is not a valid index for {cls.__name__}")


class EnumCodec(Codec[Enum]):
    """Codec for one enum class.

    Args:
        enum_class: The enum class to encode and decode.
    """

    def __init__(self, enum_class: type):
        self._enum_class = enum_class
        self._indexed = issubclass(enum_class, IndexedEnum)

    @property
    def encoder_class(self) -> type:
        return self._enum_class

    def encode(self, writer: DocumentWriter, value: Enum, context: EncoderContext = None) -> None:
        if self._indexed:
            writer.write_int32(value.index)
        else:
            writer.write_string(value.name)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Enum:
        current = reader.current_type
        try:
            if current == DocumentType.STRING:
                return self._enum_class[reader.read_string()]
            if self._indexed and current in (DocumentType.INT32, DocumentType.INT64):
                return self._enum_class.from_index(reader.read_int64())
        except (KeyError, ValueError) as e:
            raise DocumentDataException(
                f"Invalid value for enum {self._enum_class.__qualname__}: {e}", e
            ) from e
        raise DocumentDataException(
            f"Cannot decode enum {self._enum_class.__qualname__} from a value of type {current.name}"
        )


class EnumCodecProvider(CodecProvider):
    """Provider of an :class:`EnumCodec` for every enum class."""

    def get(self, clazz: type, registry: CodecRegistry) -> Optional[Codec]:
        if isinstance(clazz, type) and issubclass(clazz, Enum):
            return EnumCodec(clazz)
        return None
