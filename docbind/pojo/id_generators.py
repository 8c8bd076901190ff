"""Generators for document ids assigned on first save."""

import uuid
from abc import ABC, abstractmethod
from typing import Any

from bson import ObjectId


class IdGenerator(ABC):
    """Creates new id values of one type."""

    @property
    @abstractmethod
    def id_type(self) -> type:
        """The type of the generated ids."""
        pass

    @abstractmethod
    def generate(self) -> Any:
        pass


class ObjectIdGenerator(IdGenerator):
    @property
    def id_type(self) -> type:
        return ObjectId

    def generate(self) -> ObjectId:
        return ObjectId()


class UuidGenerator(IdGenerator):
    """Generates random (version 4) UUIDs."""

    @property
    def id_type(self) -> type:
        return uuid.UUID

    def generate(self) -> uuid.UUID:
        return uuid.uuid4()


OBJECT_ID_GENERATOR = ObjectIdGenerator()
UUID_GENERATOR = UuidGenerator()
