"""Unit tests for encoding and decoding mapped classes with the pojo codec."""

import pytest
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, Generic, List, Optional, TypeVar

from bson import ObjectId

from docbind.exceptions import CodecConfigurationException, DocumentDataException
from docbind.pojo.markers import Property, StringKeyConvertible, creator, discriminator

T = TypeVar("T")


class Status(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class Address:
    street: str = ""
    city: str = ""


@dataclass
class Person:
    name: str = ""
    age: int = 0
    address: Optional[Address] = None
    tags: List[str] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)
    status: Status = Status.ACTIVE
    nickname: Optional[str] = None


@dataclass
class Profile:
    full_name: Annotated[str, Property("name")] = ""


@dataclass(frozen=True)
class Point:
    x: int
    y: int
    label: str = "origin"


class Account:
    id: ObjectId
    owner: str
    balance: int
    note: Optional[str] = None

    @creator
    def __init__(self, owner: str, balance: int, id: Optional[ObjectId] = None):
        self.id = id
        self.owner = owner
        self.balance = balance


class Token:
    @creator
    def __init__(self, secret: str):
        self._secret = secret

    def reveal(self):
        return self._secret


@dataclass
class Order:
    id: Optional[ObjectId] = None
    total: int = 0


@dataclass(frozen=True)
class Event:
    name: str
    id: Optional[ObjectId] = None


@dataclass
class TreeNode:
    name: str = ""
    children: List["TreeNode"] = field(default_factory=list)


@dataclass
class Team:
    name: str = ""
    members: List["Member"] = field(default_factory=list)


@dataclass
class Member:
    name: str = ""
    mentor: Optional["Member"] = None
    team: Optional[Team] = None


@discriminator
@dataclass
class Shape(ABC):
    name: str = ""

    @abstractmethod
    def area(self) -> float:
        pass


@dataclass
class Circle(Shape):
    radius: float = 0.0

    def area(self) -> float:
        return 3.14159 * self.radius ** 2


@discriminator(value="square")
@dataclass
class Square(Shape):
    side: float = 0.0

    def area(self) -> float:
        return self.side ** 2


@dataclass
class Drawing:
    shapes: List[Shape] = field(default_factory=list)
    main: Optional[Shape] = None


@dataclass
class Invoice:
    secret: str = ""


@dataclass
class Canvas:
    plain: Annotated[Optional[Circle], Property(use_discriminator=False)] = None


@dataclass
class Vehicle:
    wheels: int = 4


@dataclass
class Truck(Vehicle):
    load: int = 0


@dataclass
class Garage:
    vehicle: Optional[Vehicle] = None


@dataclass
class Box(Generic[T]):
    value: T = None


@dataclass
class Shelf:
    ints: Optional[Box[int]] = None
    names: Optional[Box[str]] = None


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass
class Atlas:
    places: Dict[GeoPoint, str] = field(default_factory=dict)


class Suit(Enum):
    HEARTS = "h"
    SPADES = "s"


class Region(StringKeyConvertible):
    def __init__(self, code):
        self.code = code

    def __eq__(self, other):
        return isinstance(other, Region) and other.code == self.code

    def __hash__(self):
        return hash(self.code)

    def to_string_key(self):
        return self.code.lower()

    @classmethod
    def from_string_key(cls, key):
        return cls(key.upper())


@dataclass
class Inventory:
    by_suit: Dict[Suit, int] = field(default_factory=dict)
    by_number: Dict[int, str] = field(default_factory=dict)
    by_region: Dict[Region, List[str]] = field(default_factory=dict)


@dataclass
class Tally:
    counts: Dict[Any, int] = field(default_factory=dict)
    extras: dict = field(default_factory=dict)


class Roster:
    def __init__(self):
        self._players = []

    @property
    def players(self) -> List[str]:
        return self._players


class PrefilledRoster:
    def __init__(self):
        self._players = ["coach"]

    @property
    def players(self) -> List[str]:
        return self._players


class Vault:
    _secret: str

    def __init__(self):
        self._secret = None

    @property
    def secret(self) -> str:
        return self._secret


class Twice:
    a: int

    @creator
    def __init__(self, a: int):
        self.a = a

    @staticmethod
    @creator
    def of(a: int) -> "Twice":
        return Twice(a)


class TestRoundTrip:
    """Tests for encoding and decoding plain mapped classes."""

    @pytest.fixture
    def person(self):
        return Person(
            name="Ada",
            age=36,
            address=Address("1 Main St", "London"),
            tags=["math", "engines"],
            scores={"logic": 9.5},
            status=Status.INACTIVE,
        )

    def test_encode(self, mapper, person):
        document = mapper.encode(person)
        assert document == {
            "name": "Ada",
            "age": 36,
            "address": {"street": "1 Main St", "city": "London"},
            "tags": ["math", "engines"],
            "scores": {"logic": 9.5},
            "status": "INACTIVE",
        }

    def test_keys_follow_declaration_order(self, mapper, person):
        assert list(mapper.encode(person)) == ["name", "age", "address", "tags", "scores", "status"]

    def test_none_values_are_omitted(self, mapper):
        assert "nickname" not in mapper.encode(Person(name="Bob"))

    def test_round_trip(self, mapper, person):
        assert mapper.decode(mapper.encode(person), Person) == person

    def test_null_values_decode_as_none(self, mapper):
        decoded = mapper.decode({"name": "Bob", "address": None, "nickname": None}, Person)
        assert decoded.address is None
        assert decoded.nickname is None

    def test_renamed_property(self, mapper):
        assert mapper.encode(Profile("Ada Lovelace")) == {"name": "Ada Lovelace"}
        assert mapper.decode({"name": "Ada"}, Profile) == Profile("Ada")

    def test_unknown_keys_are_ignored(self, mapper):
        decoded = mapper.decode({"name": "Ada", "legacy": {"nested": [1, 2]}, "age": 3}, Person)
        assert decoded == Person(name="Ada", age=3)

    def test_type_mismatch(self, mapper):
        with pytest.raises(DocumentDataException) as exc_info:
            mapper.decode({"name": "Ada", "age": "old"}, Person)
        message = str(exc_info.value)
        assert "Failed to decode 'Person'. Decoding 'age' errored with:" in message
        assert "STRING" in message


class TestCreators:
    """Tests for decoding through constructors and factory methods."""

    def test_frozen_dataclass(self, mapper):
        assert mapper.encode(Point(1, 2)) == {"x": 1, "y": 2, "label": "origin"}
        assert mapper.decode({"y": 2, "x": 1}, Point) == Point(1, 2)

    def test_missing_argument_with_default(self, mapper):
        assert mapper.decode({"x": 1, "y": 2}, Point).label == "origin"

    def test_id_arrives_last(self, mapper):
        oid = ObjectId()
        account = mapper.decode({"owner": "ada", "balance": 5, "_id": oid}, Account)
        assert account.id == oid
        assert account.owner == "ada"
        assert account.balance == 5

    def test_values_before_construction_are_replayed(self, mapper):
        oid = ObjectId()
        account = mapper.decode({"note": "vip", "owner": "ada", "_id": oid, "balance": 5}, Account)
        assert account.note == "vip"
        assert account.id == oid

    def test_missing_argument_without_default(self, mapper):
        account = mapper.decode({"owner": "ada"}, Account)
        assert account.balance is None
        assert account.id is None

    def test_creator_only_parameter(self, mapper):
        assert mapper.decode({"secret": "s3cret"}, Token).reveal() == "s3cret"
        assert mapper.encode(Token("s3cret")) == {}


class TestIdGeneration:
    """Tests for the id property and its generator."""

    def test_id_written_first(self, mapper):
        account = Account("ada", 5, ObjectId())
        assert list(mapper.encode(account))[0] == "_id"

    def test_generated_for_collectible_documents(self, mapper):
        order = Order(total=3)
        document = mapper.encode(order)
        assert isinstance(document["_id"], ObjectId)
        assert order.id == document["_id"]

    def test_not_generated_for_embedded_documents(self, mapper):
        order = Order(total=3)
        assert mapper.encode(order, collectible=False) == {"total": 3}
        assert order.id is None

    def test_existing_id_kept(self, mapper):
        oid = ObjectId()
        assert mapper.encode(Order(id=oid))["_id"] == oid

    def test_generated_id_on_read_only_instance(self, mapper):
        event = Event("launch")
        document = mapper.encode(event)
        assert isinstance(document["_id"], ObjectId)
        assert event.id is None


class TestRecursiveModels:
    """Tests for self-referencing and mutually referencing classes."""

    def test_three_level_tree(self, mapper):
        tree = TreeNode("root", [TreeNode("child", [TreeNode("grandchild")]), TreeNode("leaf")])
        document = mapper.encode(tree)
        assert document == {
            "name": "root",
            "children": [
                {"name": "child", "children": [{"name": "grandchild", "children": []}]},
                {"name": "leaf", "children": []},
            ],
        }
        assert mapper.decode(document, TreeNode) == tree

    def test_mutual_references(self, mapper):
        mentor = Member("grace")
        member = Member("ada", mentor=mentor, team=Team("engines", [Member("babbage")]))
        document = mapper.encode(member)
        assert document["team"] == {"name": "engines", "members": [{"name": "babbage"}]}
        assert document["mentor"] == {"name": "grace"}
        assert mapper.decode(document, Member) == member

    def test_team_first(self, mapper):
        team = Team("engines", [Member("ada", team=Team("analytical"))])
        assert mapper.decode(mapper.encode(team), Team) == team


class TestDiscriminators:
    """Tests for polymorphic properties."""

    @pytest.fixture
    def drawing(self):
        return Drawing(shapes=[Circle("c", 1.0), Square("s", 2.0)], main=Circle("m", 3.0))

    def test_encode_writes_discriminator(self, mapper, drawing):
        document = mapper.encode(drawing)
        circle, square = document["shapes"]
        assert circle == {"_t": f"{Circle.__module__}.Circle", "name": "c", "radius": 1.0}
        assert square == {"_t": "square", "name": "s", "side": 2.0}
        assert list(circle)[0] == "_t"

    def test_round_trip(self, mapper, drawing):
        decoded = mapper.decode(mapper.encode(drawing), Drawing)
        assert decoded == drawing
        assert isinstance(decoded.main, Circle)
        assert isinstance(decoded.shapes[1], Square)

    def test_discriminator_not_first(self, mapper):
        decoded = mapper.decode({"side": 4.0, "name": "s", "_t": "square"}, Shape)
        assert decoded == Square("s", 4.0)

    def test_decode_abstract_base(self, mapper):
        decoded = mapper.decode({"_t": f"{Circle.__module__}.Circle", "radius": 2.0}, Shape)
        assert isinstance(decoded, Circle)
        assert decoded.radius == 2.0

    def test_unknown_discriminator(self, mapper):
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.decode({"_t": "hexagon"}, Shape)
        assert "A class could not be found for the discriminator: 'hexagon'." in str(exc_info.value)

    def test_missing_discriminator_for_abstract_class(self, mapper):
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.decode({"name": "?"}, Shape)
        assert "Cannot find a public constructor for 'Shape'." in str(exc_info.value)

    def test_discriminator_of_unrelated_class(self, mapper):
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.decode({"main": {"_t": f"{__name__}.Invoice", "secret": "x"}}, Drawing)
        assert "which is not a subclass of Shape" in str(exc_info.value)

    def test_unrelated_class_is_not_cached(self, mapper):
        with pytest.raises(CodecConfigurationException):
            mapper.decode({"_t": f"{__name__}.Invoice"}, Shape)
        lookup = mapper.pojo_codec_provider.discriminator_lookup
        assert lookup.lookup(f"{__name__}.Invoice") is Invoice
        with pytest.raises(CodecConfigurationException):
            lookup.lookup(f"{__name__}.Invoice", Shape)

    def test_namespace_lookup(self, mapper_factory):
        mapper = mapper_factory(namespaces=[__name__])
        decoded = mapper.decode({"_t": "Circle", "radius": 1.0}, Shape)
        assert isinstance(decoded, Circle)

    def test_property_disables_discriminator(self, mapper):
        document = mapper.encode(Canvas(Circle("c", 1.0)))
        assert document == {"plain": {"name": "c", "radius": 1.0}}
        assert mapper.decode(document, Canvas) == Canvas(Circle("c", 1.0))

    def test_subclass_without_discriminator(self, mapper):
        document = mapper.encode(Garage(Truck(wheels=6, load=10)))
        assert document == {"vehicle": {"wheels": 6, "load": 10}}
        assert mapper.decode(document, Garage) == Garage(Vehicle(wheels=6))


class TestGenerics:
    """Tests for generic classes used through concrete type arguments."""

    def test_specialized_properties(self, mapper):
        shelf = Shelf(ints=Box(1), names=Box("a"))
        document = mapper.encode(shelf)
        assert document == {"ints": {"value": 1}, "names": {"value": "a"}}
        assert mapper.decode(document, Shelf) == shelf

    def test_specialized_type_is_enforced(self, mapper):
        with pytest.raises(DocumentDataException) as exc_info:
            mapper.decode({"ints": {"value": "one"}}, Shelf)
        assert "Decoding 'value' errored with" in str(exc_info.value)

    def test_top_level_generic_class(self, mapper):
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.encode(Box(1))
        assert "generic types that have not been specialised" in str(exc_info.value)


class TestMaps:
    """Tests for map properties and their key converters."""

    def test_converted_keys(self, mapper):
        inventory = Inventory(
            by_suit={Suit.HEARTS: 2},
            by_number={1: "one"},
            by_region={Region("EU"): ["fr", "de"]},
        )
        document = mapper.encode(inventory)
        assert document == {
            "by_suit": {"HEARTS": 2},
            "by_number": {"1": "one"},
            "by_region": {"eu": ["fr", "de"]},
        }
        assert mapper.decode(document, Inventory) == inventory

    def test_untyped_keys_are_stringified(self, mapper):
        document = mapper.encode(Tally(counts={1: 2, "b": 3}, extras={7: "seven"}))
        assert document == {"counts": {"1": 2, "b": 3}, "extras": {"7": "seven"}}
        assert mapper.decode(document, Tally) == Tally(counts={"1": 2, "b": 3}, extras={"7": "seven"})

    def test_unsupported_key_type(self, mapper):
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.encode(Atlas({GeoPoint(1.0, 2.0): "home"}))
        message = str(exc_info.value)
        assert "Invalid map key type" in message
        assert "1. Is String Type" in message
        assert "2. Implements StringKeyConvertible interface" in message
        assert "3. Register a string key converter" in message

    def test_unsupported_key_type_unused(self, mapper):
        assert mapper.encode(Atlas(places=None)) == {}


class TestAccessConventions:
    """Tests for the optional property access conventions."""

    def test_getter_only_container_skipped_by_default(self, mapper):
        assert mapper.decode({"players": ["ada"]}, Roster).players == []

    def test_getters_as_setters(self, mapper_factory):
        mapper = mapper_factory("defaults", "annotations", "use_getters_as_setters", "id_generators")
        roster = Roster()
        roster.players.append("ada")
        document = mapper.encode(roster)
        assert document == {"players": ["ada"]}
        assert mapper.decode(document, Roster).players == ["ada"]

    def test_getters_as_setters_non_empty(self, mapper_factory):
        mapper = mapper_factory("defaults", "annotations", "use_getters_as_setters")
        with pytest.raises(CodecConfigurationException) as exc_info:
            mapper.decode({"players": ["ada"]}, PrefilledRoster)
        assert "The getter returned a non empty collection." in str(exc_info.value)

    def test_private_field_skipped_by_default(self, mapper):
        assert mapper.decode({"secret": "x"}, Vault).secret is None

    def test_set_private_fields(self, mapper_factory):
        mapper = mapper_factory("defaults", "annotations", "set_private_fields")
        assert mapper.decode({"secret": "x"}, Vault).secret == "x"


class TestAutomaticMode:
    """Tests for classes mapped without registration."""

    def test_invalid_class_is_not_mapped(self, mapper, caplog):
        with caplog.at_level(logging.WARNING, logger="docbind"):
            with pytest.raises(CodecConfigurationException) as exc_info:
                mapper.encode(Twice(1))
        assert "Can't find a codec for" in str(exc_info.value)
        assert any("Found multiple constructors" in record.getMessage() for record in caplog.records)

    def test_class_without_properties_is_not_mapped(self, mapper):
        class Empty:
            pass

        with pytest.raises(CodecConfigurationException):
            mapper.encode(Empty())
