"""Unit tests for the docbind value codecs and codec registries."""

import pytest
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from bson import Binary, Int64, ObjectId
from bson.binary import UUID_SUBTYPE

from docbind.codecs import (
    Codec,
    CodecProvider,
    EnumCodec,
    IndexedEnum,
    LazyCodec,
    TreeDocumentReader,
    TreeDocumentWriter,
    from_codecs,
    from_providers,
    from_registries,
)
from docbind.codecs.api import DocumentType
from docbind.exceptions import CodecConfigurationException, DocumentDataException


def encode_value(codec, value):
    writer = TreeDocumentWriter()
    writer.write_start_document()
    writer.write_name("v")
    codec.encode(writer, value)
    writer.write_end_document()
    return writer.document["v"]


def decode_value(codec, raw):
    reader = TreeDocumentReader({"v": raw})
    reader.read_start_document()
    reader.read_type()
    return codec.decode(reader)


class Color(Enum):
    RED = "r"
    GREEN = "g"


class Priority(IndexedEnum):
    LOW = 1
    HIGH = 2


class TestValueCodecs:
    """Tests for the built-in value codecs."""

    @pytest.mark.parametrize(
        "clazz,value",
        [
            (str, "text"),
            (int, 42),
            (int, 2 ** 40),
            (float, 2.5),
            (bool, True),
            (bytes, b"\x01\x02"),
            (datetime, datetime(2024, 5, 6, 7, 8, 9)),
            (Decimal, Decimal("12.50")),
            (uuid.UUID, uuid.UUID("12345678-1234-5678-1234-567812345678")),
            (ObjectId, ObjectId("64b7f1e2a1b2c3d4e5f60718")),
        ],
    )
    def test_round_trip(self, value_registry, clazz, value):
        codec = value_registry.get(clazz)
        assert codec.encoder_class is clazz
        assert decode_value(codec, encode_value(codec, value)) == value

    def test_large_int_written_as_int64(self, value_registry):
        raw = encode_value(value_registry.get(int), 2 ** 40)
        assert isinstance(raw, Int64)

    def test_small_int_written_as_int32(self, value_registry):
        raw = encode_value(value_registry.get(int), 7)
        assert not isinstance(raw, Int64)

    def test_float_accepts_integer_document_value(self, value_registry):
        assert decode_value(value_registry.get(float), 3) == 3.0

    def test_int_rejects_string(self, value_registry):
        with pytest.raises(DocumentDataException) as exc_info:
            decode_value(value_registry.get(int), "3")
        assert "STRING" in str(exc_info.value)

    def test_uuid_written_as_standard_binary(self, value_registry):
        value = uuid.uuid4()
        raw = encode_value(value_registry.get(uuid.UUID), value)
        assert isinstance(raw, Binary)
        assert raw.subtype == UUID_SUBTYPE

    def test_uuid_wrong_length(self, value_registry):
        with pytest.raises(DocumentDataException):
            decode_value(value_registry.get(uuid.UUID), Binary(b"\x00" * 4))


class TestContainerCodecs:
    """Tests for ObjectCodec, DictCodec and ListCodec."""

    def test_dict_round_trip(self, value_registry):
        codec = value_registry.get(dict)
        value = {"a": 1, "b": ["x", None], "c": {"d": 2.5}}
        assert decode_value(codec, encode_value(codec, value)) == value

    def test_dict_non_string_key(self, value_registry):
        with pytest.raises(DocumentDataException) as exc_info:
            encode_value(value_registry.get(dict), {1: "a"})
        assert "Document keys must be strings" in str(exc_info.value)

    def test_tuple_round_trip(self, value_registry):
        codec = value_registry.get(tuple)
        assert decode_value(codec, encode_value(codec, (1, "a"))) == (1, "a")

    def test_object_codec_dispatches_on_runtime_class(self, value_registry):
        codec = value_registry.get(object)
        assert encode_value(codec, "a") == "a"
        assert encode_value(codec, Color.GREEN) == "GREEN"

    def test_object_codec_decodes_by_type_tag(self, value_registry):
        codec = value_registry.get(object)
        assert decode_value(codec, {"n": [1, 2]}) == {"n": [1, 2]}
        assert decode_value(codec, None) is None
        value = uuid.uuid4()
        assert decode_value(codec, Binary(value.bytes, UUID_SUBTYPE)) == value

    def test_bare_object_encoded_as_empty_document(self, value_registry):
        assert encode_value(value_registry.get(object), object()) == {}


class TestEnumCodec:
    """Tests for EnumCodec and IndexedEnum."""

    def test_encode_by_name(self):
        assert encode_value(EnumCodec(Color), Color.RED) == "RED"

    def test_decode_by_name(self):
        assert decode_value(EnumCodec(Color), "GREEN") is Color.GREEN

    def test_indexed_enum_encoded_by_index(self):
        assert encode_value(EnumCodec(Priority), Priority.HIGH) == 2

    def test_indexed_enum_decoded_by_index_or_name(self):
        codec = EnumCodec(Priority)
        assert decode_value(codec, 1) is Priority.LOW
        assert decode_value(codec, "HIGH") is Priority.HIGH

    def test_unknown_name(self):
        with pytest.raises(DocumentDataException) as exc_info:
            decode_value(EnumCodec(Color), "BLUE")
        assert "Color" in str(exc_info.value)

    def test_unknown_index(self):
        with pytest.raises(DocumentDataException):
            decode_value(EnumCodec(Priority), 9)

    def test_plain_enum_rejects_int(self):
        with pytest.raises(DocumentDataException):
            decode_value(EnumCodec(Color), 1)

    def test_from_index(self):
        assert Priority.from_index(2) is Priority.HIGH
        assert Priority.LOW.index == 1

    def test_provider_serves_any_enum(self, value_registry):
        codec = value_registry.get(Priority)
        assert isinstance(codec, EnumCodec)
        assert codec.encoder_class is Priority


class UpperStringCodec(Codec):
    @property
    def encoder_class(self):
        return str

    def encode(self, writer, value, context=None):
        writer.write_string(value.upper())

    def decode(self, reader, context=None):
        return reader.read_string().lower()


class Left:
    pass


class Right:
    pass


class PairCodec(Codec):
    def __init__(self, clazz, inner):
        self._clazz = clazz
        self.inner = inner

    @property
    def encoder_class(self):
        return self._clazz

    def encode(self, writer, value, context=None):
        writer.write_null()

    def decode(self, reader, context=None):
        reader.read_null()


class CyclicProvider(CodecProvider):
    def get(self, clazz, registry):
        if clazz is Left:
            return PairCodec(Left, registry.get(Right))
        if clazz is Right:
            return PairCodec(Right, registry.get(Left))
        return None


class TestCodecRegistries:
    """Tests for from_providers, from_codecs and from_registries."""

    def test_missing_codec(self, value_registry):
        with pytest.raises(CodecConfigurationException) as exc_info:
            value_registry.get(Left)
        assert "Can't find a codec for" in str(exc_info.value)
        assert "Left" in str(exc_info.value)

    def test_codecs_are_cached(self, value_registry):
        assert value_registry.get(dict) is value_registry.get(dict)

    def test_earlier_registry_wins(self, value_registry):
        registry = from_registries(from_codecs(UpperStringCodec()), value_registry)
        codec = registry.get(str)
        assert isinstance(codec, UpperStringCodec)
        assert registry.get(int).encoder_class is int

    def test_from_codecs_accepts_list(self):
        registry = from_codecs([UpperStringCodec()])
        assert isinstance(registry.get(str), UpperStringCodec)

    def test_from_providers_requires_providers(self):
        with pytest.raises(ValueError):
            from_providers()

    def test_provider_answers_none_for_unknown(self, value_registry):
        registry = from_registries(from_codecs(UpperStringCodec()), value_registry)
        assert registry.get(Left, registry) is None

    def test_cycle_returns_lazy_codec(self):
        registry = from_providers(CyclicProvider())
        left = registry.get(Left)
        right = left.inner
        assert right.encoder_class is Right
        assert isinstance(right.inner, LazyCodec)
        assert right.inner.encoder_class is Left

    def test_lazy_codec_resolves_on_first_use(self):
        registry = from_providers(CyclicProvider())
        left = registry.get(Left)
        lazy = left.inner.inner
        reader = TreeDocumentReader({"v": None})
        reader.read_start_document()
        assert reader.read_type() == DocumentType.NULL
        lazy.decode(reader)
        assert lazy._get_wrapped() is registry.get(Left)
