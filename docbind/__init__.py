"""docbind: map Python objects to and from BSON documents."""

from docbind.config import MapperConfig
from docbind.exceptions import (
    DocbindException,
    DefinitionException,
    CodecConfigurationException,
    DocumentDataException,
    ConfigurationException,
    PropertyAccessException,
)
from docbind.codecs import (
    Codec,
    CodecProvider,
    CodecRegistry,
    DocumentReader,
    DocumentWriter,
    IndexedEnum,
    from_codecs,
    from_providers,
    from_registries,
)
from docbind.logging import configure_logging, get_logger, set_level
from docbind.mapper import DocumentMapper
from docbind.pojo import (
    ClassModel,
    DocumentNode,
    GlobalModels,
    Id,
    Ignore,
    PojoCodecProvider,
    Property,
    StringKeyConvertible,
    StringKeyConverter,
    Transient,
    creator,
    discriminator,
)

__all__ = [
    "DocumentMapper",
    "MapperConfig",
    # Exceptions
    "DocbindException",
    "DefinitionException",
    "CodecConfigurationException",
    "DocumentDataException",
    "ConfigurationException",
    "PropertyAccessException",
    # Codecs
    "Codec",
    "CodecProvider",
    "CodecRegistry",
    "DocumentReader",
    "DocumentWriter",
    "IndexedEnum",
    "from_codecs",
    "from_providers",
    "from_registries",
    # Models
    "ClassModel",
    "GlobalModels",
    "PojoCodecProvider",
    "StringKeyConverter",
    # Markers
    "DocumentNode",
    "Id",
    "Ignore",
    "Property",
    "StringKeyConvertible",
    "Transient",
    "creator",
    "discriminator",
    # Logging
    "configure_logging",
    "get_logger",
    "set_level",
]

__version__ = "0.1.0"
