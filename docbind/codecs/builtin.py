"""Built-in codecs for Python value types.

This module provides codecs for the scalar types every document store
understands, plus untyped ``dict``/``list`` codecs and the dynamic
:class:`ObjectCodec` used for properties declared as ``object`` or ``Any``.

Supported Types:
    - Scalars: str, int, float, bool, bytes, None
    - Date/Time: datetime
    - Numbers: Decimal (stored as Decimal128), bson Int64
    - Identifiers: UUID (binary subtype 4), ObjectId
    - Untyped containers: dict (string keys), list, tuple

These codecs are served by :class:`ValueCodecProvider`, which matches
exact classes only, so ``bool`` never falls into the ``int`` codec and
``IntEnum`` members are left to the enum codecs.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from bson import Binary, Decimal128, Int64, ObjectId
from bson.binary import UUID_SUBTYPE

from docbind.codecs.api import (
    Codec,
    CodecProvider,
    CodecRegistry,
    DecoderContext,
    DocumentReader,
    DocumentType,
    DocumentWriter,
    EncoderContext,
    DEFAULT_DECODER_CONTEXT,
    DEFAULT_ENCODER_CONTEXT,
)
from docbind.codecs.document import INT32_MAX, INT32_MIN
from docbind.exceptions import DocumentDataException


class StringCodec(Codec[str]):
    """Codec for str values."""

    @property
    def encoder_class(self) -> type:
        return str

    def encode(self, writer: DocumentWriter, value: str, context: EncoderContext = None) -> None:
        writer.write_string(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> str:
        return reader.read_string()


class IntCodec(Codec[int]):
    """Codec for int values.

    Values in the signed 32-bit range are written as int32, larger values
    as int64. Both are accepted when decoding.
    """

    @property
    def encoder_class(self) -> type:
        return int

    def encode(self, writer: DocumentWriter, value: int, context: EncoderContext = None) -> None:
        if INT32_MIN <= value <= INT32_MAX:
            writer.write_int32(value)
        else:
            writer.write_int64(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> int:
        current = reader.current_type
        if current == DocumentType.INT32:
            return reader.read_int32()
        if current == DocumentType.INT64:
            return reader.read_int64()
        raise DocumentDataException(f"Invalid numeric type, found: {current.name}")


class Int64Codec(Codec[Int64]):
    """Codec for bson Int64 values, always written as int64."""

    @property
    def encoder_class(self) -> type:
        return Int64

    def encode(self, writer: DocumentWriter, value: Int64, context: EncoderContext = None) -> None:
        writer.write_int64(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Int64:
        return Int64(reader.read_int64())


class FloatCodec(Codec[float]):
    """Codec for float values.

    Integer document values are widened when decoding.
    """

    @property
    def encoder_class(self) -> type:
        return float

    def encode(self, writer: DocumentWriter, value: float, context: EncoderContext = None) -> None:
        writer.write_double(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> float:
        current = reader.current_type
        if current == DocumentType.INT32:
            return float(reader.read_int32())
        if current == DocumentType.INT64:
            return float(reader.read_int64())
        return reader.read_double()


class BoolCodec(Codec[bool]):
    """Codec for bool values."""

    @property
    def encoder_class(self) -> type:
        return bool

    def encode(self, writer: DocumentWriter, value: bool, context: EncoderContext = None) -> None:
        writer.write_boolean(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> bool:
        return reader.read_boolean()


class BytesCodec(Codec[bytes]):
    """Codec for bytes values, written as generic binary."""

    @property
    def encoder_class(self) -> type:
        return bytes

    def encode(self, writer: DocumentWriter, value: bytes, context: EncoderContext = None) -> None:
        writer.write_binary(Binary(bytes(value)))

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> bytes:
        return bytes(reader.read_binary())


class DatetimeCodec(Codec[datetime]):
    """Codec for datetime values.

    Note:
        The binary format keeps millisecond precision only.
    """

    @property
    def encoder_class(self) -> type:
        return datetime

    def encode(self, writer: DocumentWriter, value: datetime, context: EncoderContext = None) -> None:
        writer.write_datetime(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> datetime:
        return reader.read_datetime()


class DecimalCodec(Codec[Decimal]):
    """Codec for Decimal values, stored as Decimal128."""

    @property
    def encoder_class(self) -> type:
        return Decimal

    def encode(self, writer: DocumentWriter, value: Decimal, context: EncoderContext = None) -> None:
        writer.write_decimal128(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Decimal:
        return reader.read_decimal128()


class Decimal128Codec(Codec[Decimal128]):
    @property
    def encoder_class(self) -> type:
        return Decimal128

    def encode(self, writer: DocumentWriter, value: Decimal128, context: EncoderContext = None) -> None:
        writer.write_decimal128(value.to_decimal())

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Decimal128:
        return Decimal128(reader.read_decimal128())


class UUIDCodec(Codec[uuid.UUID]):
    """Codec for UUID values, stored as binary subtype 4."""

    @property
    def encoder_class(self) -> type:
        return uuid.UUID

    def encode(self, writer: DocumentWriter, value: uuid.UUID, context: EncoderContext = None) -> None:
        writer.write_binary(Binary(value.bytes, UUID_SUBTYPE))

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> uuid.UUID:
        current = reader.current_type
        if current == DocumentType.STRING:
            return uuid.UUID(reader.read_string())
        binary = reader.read_binary()
        if len(binary) != 16:
            raise DocumentDataException(f"Expected length to be 16, not {len(binary)}.")
        return uuid.UUID(bytes=bytes(binary))


class ObjectIdCodec(Codec[ObjectId]):
    """Codec for ObjectId values."""

    @property
    def encoder_class(self) -> type:
        return ObjectId

    def encode(self, writer: DocumentWriter, value: ObjectId, context: EncoderContext = None) -> None:
        writer.write_object_id(value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> ObjectId:
        return reader.read_object_id()


class NoneCodec(Codec[None]):
    @property
    def encoder_class(self) -> type:
        return type(None)

    def encode(self, writer: DocumentWriter, value: None, context: EncoderContext = None) -> None:
        writer.write_null()

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> None:
        reader.read_null()
        return None


class ObjectCodec(Codec[object]):
    """Dynamic codec for values whose declared type is ``object`` or ``Any``.

    Encoding looks the codec up by the value's runtime class; a bare
    ``object()`` is written as an empty document. Decoding picks a Python
    type from the element tag: documents become dicts, arrays become lists.

    Args:
        registry: Registry used to resolve the runtime class codecs.
    """

    def __init__(self, registry: CodecRegistry):
        self._registry = registry

    @property
    def encoder_class(self) -> type:
        return object

    def encode(self, writer: DocumentWriter, value: Any, context: EncoderContext = None) -> None:
        if value is None:
            writer.write_null()
        elif type(value) is object:
            writer.write_start_document()
            writer.write_end_document()
        else:
            codec = self._registry.get(type(value))
            (context or DEFAULT_ENCODER_CONTEXT).encode_with_child_context(codec, writer, value)

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Any:
        current = reader.current_type
        if current == DocumentType.NULL:
            reader.read_null()
            return None
        if current == DocumentType.BINARY:
            binary = reader.read_binary()
            if binary.subtype == UUID_SUBTYPE and len(binary) == 16:
                return uuid.UUID(bytes=bytes(binary))
            return bytes(binary)
        clazz = _DECODE_CLASSES.get(current)
        if clazz is None:
            raise DocumentDataException(f"Cannot decode a value of type {current.name}")
        codec = self._registry.get(clazz)
        return (context or DEFAULT_DECODER_CONTEXT).decode_with_child_context(codec, reader)


_DECODE_CLASSES: Dict[DocumentType, type] = {
    DocumentType.DOUBLE: float,
    DocumentType.STRING: str,
    DocumentType.DOCUMENT: dict,
    DocumentType.ARRAY: list,
    DocumentType.OBJECT_ID: ObjectId,
    DocumentType.BOOLEAN: bool,
    DocumentType.DATE_TIME: datetime,
    DocumentType.INT32: int,
    DocumentType.INT64: int,
    DocumentType.DECIMAL128: Decimal,
}


class DictCodec(Codec[dict]):
    """Codec for untyped dicts with string keys."""

    def __init__(self, registry: CodecRegistry, encoder_class: type = dict):
        self._encoder_class = encoder_class
        self._value_codec = ObjectCodec(registry)

    @property
    def encoder_class(self) -> type:
        return self._encoder_class

    def encode(self, writer: DocumentWriter, value: Dict[str, Any], context: EncoderContext = None) -> None:
        writer.write_start_document()
        for key, item in value.items():
            if not isinstance(key, str):
                raise DocumentDataException(
                    f"Document keys must be strings, found {type(key).__name__} key {key!r}"
                )
            writer.write_name(key)
            self._value_codec.encode(writer, item, DEFAULT_ENCODER_CONTEXT)
        writer.write_end_document()

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> Dict[str, Any]:
        result = {}
        reader.read_start_document()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            name = reader.read_name()
            result[name] = self._value_codec.decode(reader, DEFAULT_DECODER_CONTEXT)
        reader.read_end_document()
        return result if self._encoder_class is dict else self._encoder_class(result)


class ListCodec(Codec[list]):
    """Codec for untyped lists and tuples."""

    def __init__(self, registry: CodecRegistry, encoder_class: type = list):
        self._encoder_class = encoder_class
        self._value_codec = ObjectCodec(registry)

    @property
    def encoder_class(self) -> type:
        return self._encoder_class

    def encode(self, writer: DocumentWriter, value: List[Any], context: EncoderContext = None) -> None:
        writer.write_start_array()
        for item in value:
            self._value_codec.encode(writer, item, DEFAULT_ENCODER_CONTEXT)
        writer.write_end_array()

    def decode(self, reader: DocumentReader, context: DecoderContext = None) -> List[Any]:
        result = []
        reader.read_start_array()
        while reader.read_type() != DocumentType.END_OF_DOCUMENT:
            result.append(self._value_codec.decode(reader, DEFAULT_DECODER_CONTEXT))
        reader.read_end_array()
        return result if self._encoder_class is list else self._encoder_class(result)


def get_builtin_codecs() -> List[Codec]:
    """Get the codecs that need no registry."""
    return [
        StringCodec(),
        IntCodec(),
        Int64Codec(),
        FloatCodec(),
        BoolCodec(),
        BytesCodec(),
        DatetimeCodec(),
        DecimalCodec(),
        Decimal128Codec(),
        UUIDCodec(),
        ObjectIdCodec(),
        NoneCodec(),
    ]


class ValueCodecProvider(CodecProvider):
    """Provider for the built-in value codecs.

    Classes are matched exactly. ``object``, ``dict``, ``list`` and
    ``tuple`` get registry-aware codecs built on demand.
    """

    def __init__(self):
        self._codecs: Dict[type, Codec] = {codec.encoder_class: codec for codec in get_builtin_codecs()}

    def get(self, clazz: type, registry: CodecRegistry) -> Optional[Codec]:
        codec = self._codecs.get(clazz)
        if codec is not None:
            return codec
        if clazz is object:
            return ObjectCodec(registry)
        if clazz is dict:
            return DictCodec(registry)
        if clazz in (list, tuple):
            return ListCodec(registry, clazz)
        return None
