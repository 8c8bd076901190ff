"""Unit tests for docbind.mapper module."""

import pytest
from dataclasses import dataclass, field
from typing import List, Optional

import bson

from docbind.codecs import Codec
from docbind.config import MapperConfig
from docbind.exceptions import CodecConfigurationException, DefinitionException
from docbind.mapper import DocumentMapper
from docbind.pojo.markers import creator, discriminator
from docbind.pojo.models import ClassModel


class Celsius:
    def __init__(self, degrees):
        self.degrees = degrees


class CelsiusCodec(Codec):
    @property
    def encoder_class(self):
        return Celsius

    def encode(self, writer, value, context=None):
        writer.write_double(value.degrees)

    def decode(self, reader, context=None):
        return Celsius(reader.read_double())


@dataclass
class Reading:
    station: str = ""
    temperature: Optional[Celsius] = None


@dataclass
class Address:
    street: str = ""
    city: str = ""


@dataclass
class Person:
    name: str = ""
    address: Optional[Address] = None


@discriminator(key="kind")
@dataclass
class Pet:
    name: str = ""


@discriminator(value="dog")
@dataclass
class Dog(Pet):
    good: bool = True


@dataclass
class Kennel:
    pets: List[Pet] = field(default_factory=list)


class BrokenCreator:
    a: int

    @creator
    def __init__(self, a: int):
        self.a = a

    @staticmethod
    @creator
    def of(a: int) -> "BrokenCreator":
        return BrokenCreator(a)


@discriminator
@dataclass
class Fruit:
    name: str = ""


@discriminator(value="apple")
@dataclass
class Apple(Fruit):
    crisp: bool = True


class TestDocumentMapper:
    """Tests for the DocumentMapper entry point."""

    def test_defaults(self, mapper):
        assert mapper.config.automatic is True
        assert mapper.pojo_codec_provider.automatic is True

    def test_get_class_model(self, mapper):
        model = mapper.get_class_model(Person)
        assert isinstance(model, ClassModel)
        assert model.type is Person
        assert [p.name for p in model.property_models] == ["name", "address"]

    def test_codec_is_cached(self, mapper):
        assert mapper.get_codec(Person) is mapper.get_codec(Person)

    def test_encode_plain_dict(self, mapper):
        assert mapper.encode({"a": [1, "b"]}) == {"a": [1, "b"]}

    def test_bson_round_trip(self, mapper):
        person = Person("Ada", Address("1 Main St", "London"))
        data = mapper.to_bson(person)
        assert isinstance(data, bytes)
        assert bson.decode(data) == {"name": "Ada", "address": {"street": "1 Main St", "city": "London"}}
        assert mapper.from_bson(data, Person) == person

    def test_repr(self, mapper):
        assert repr(mapper).startswith("DocumentMapper(config=MapperConfig(")


class TestCustomCodecs:
    """Tests for codecs passed to the mapper."""

    def test_custom_codec_used_for_properties(self):
        mapper = DocumentMapper(codecs=[CelsiusCodec()])
        document = mapper.encode(Reading("north", Celsius(21.5)))
        assert document == {"station": "north", "temperature": 21.5}
        decoded = mapper.decode(document, Reading)
        assert decoded.temperature.degrees == 21.5

    def test_custom_codec_used_at_top_level(self):
        mapper = DocumentMapper(codecs=[CelsiusCodec()])
        assert isinstance(mapper.get_codec(Celsius), CelsiusCodec)

    def test_without_custom_codec(self, mapper):
        with pytest.raises(CodecConfigurationException):
            mapper.encode(Reading("north", Celsius(21.5)))


class TestRegistration:
    """Tests for mappers with automatic mode turned off."""

    def test_unregistered_class(self):
        mapper = DocumentMapper(MapperConfig(automatic=False))
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.encode(Address("1 Main St", "London"))
        assert "Can't find a codec for" in str(exc_info.value)

    def test_registered_classes(self):
        mapper = DocumentMapper(MapperConfig(automatic=False, registered_classes=[Person, Address]))
        person = Person("Ada", Address("1 Main St", "London"))
        assert mapper.decode(mapper.encode(person), Person) == person

    def test_registered_class_by_name(self):
        config = MapperConfig(automatic=False, registered_classes=[f"{__name__}.Address"])
        mapper = DocumentMapper(config)
        assert mapper.encode(Address("1 Main St")) == {"street": "1 Main St", "city": ""}

    def test_namespace(self):
        mapper = DocumentMapper(MapperConfig(automatic=False, namespaces=[__name__]))
        person = Person("Ada", Address("1 Main St", "London"))
        assert mapper.decode(mapper.encode(person), Person) == person

    def test_invalid_registered_class(self):
        with pytest.raises(DefinitionException):
            DocumentMapper(MapperConfig(automatic=False, registered_classes=[BrokenCreator]))


class TestDiscriminatorKey:
    """Tests for custom discriminator keys."""

    def test_key_from_marker(self, mapper):
        document = mapper.encode(Kennel([Dog("rex")]))
        assert document == {"pets": [{"kind": "dog", "name": "rex", "good": True}]}
        decoded = mapper.decode(document, Kennel)
        assert isinstance(decoded.pets[0], Dog)

    def test_key_from_config(self, mapper_factory):
        mapper = mapper_factory(discriminator_key="type")
        document = mapper.encode(Apple("granny"))
        assert document == {"type": "apple", "name": "granny", "crisp": True}
        assert mapper.decode(document, Fruit) == Apple("granny")

    def test_marker_key_wins_over_config(self, mapper_factory):
        mapper = mapper_factory(discriminator_key="type")
        assert mapper.encode(Dog("rex"))["kind"] == "dog"
