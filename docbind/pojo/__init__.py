"""docbind class models and the pojo codec."""

from docbind.pojo.codec import AutomaticPojoCodec, PojoCodec, PojoCodecImpl
from docbind.pojo.conventions import (
    ANNOTATION_CONVENTION,
    CLASS_AND_PROPERTY_CONVENTION,
    DEFAULT_CONVENTIONS,
    ID_GENERATORS_CONVENTION,
    NO_CONVENTIONS,
    SET_PRIVATE_FIELDS_CONVENTION,
    USE_GETTERS_FOR_SETTERS,
    Convention,
)
from docbind.pojo.global_models import GlobalModels, StringKeyConverter
from docbind.pojo.id_generators import IdGenerator, ObjectIdGenerator, UuidGenerator
from docbind.pojo.markers import (
    DocumentNode,
    Id,
    Ignore,
    Property,
    StringKeyConvertible,
    Transient,
    creator,
    discriminator,
)
from docbind.pojo.models import ClassModel, ClassModelBuilder, PropertyModel, PropertyModelBuilder
from docbind.pojo.property_codecs import PropertyCodecProvider, PropertyCodecRegistry
from docbind.pojo.provider import PojoCodecProvider
from docbind.pojo.type_descriptor import TypeDescriptor, TypeParameterMap

__all__ = [
    "AutomaticPojoCodec",
    "PojoCodec",
    "PojoCodecImpl",
    "ANNOTATION_CONVENTION",
    "CLASS_AND_PROPERTY_CONVENTION",
    "DEFAULT_CONVENTIONS",
    "ID_GENERATORS_CONVENTION",
    "NO_CONVENTIONS",
    "SET_PRIVATE_FIELDS_CONVENTION",
    "USE_GETTERS_FOR_SETTERS",
    "Convention",
    "GlobalModels",
    "StringKeyConverter",
    "IdGenerator",
    "ObjectIdGenerator",
    "UuidGenerator",
    "DocumentNode",
    "Id",
    "Ignore",
    "Property",
    "StringKeyConvertible",
    "Transient",
    "creator",
    "discriminator",
    "ClassModel",
    "ClassModelBuilder",
    "PropertyModel",
    "PropertyModelBuilder",
    "PropertyCodecProvider",
    "PropertyCodecRegistry",
    "PojoCodecProvider",
    "TypeDescriptor",
    "TypeParameterMap",
]
