"""docbind codec layer: cursors, value codecs and registries."""

from docbind.codecs.api import (
    Codec,
    CodecProvider,
    CodecRegistry,
    DecoderContext,
    DocumentReader,
    DocumentType,
    DocumentWriter,
    EncoderContext,
    Mark,
)
from docbind.codecs.builtin import ObjectCodec, ValueCodecProvider, get_builtin_codecs
from docbind.codecs.document import TreeDocumentReader, TreeDocumentWriter, from_bson, to_bson
from docbind.codecs.enums import EnumCodec, EnumCodecProvider, IndexedEnum
from docbind.codecs.registry import LazyCodec, from_codecs, from_providers, from_registries

__all__ = [
    "Codec",
    "CodecProvider",
    "CodecRegistry",
    "DecoderContext",
    "DocumentReader",
    "DocumentType",
    "DocumentWriter",
    "EncoderContext",
    "Mark",
    "ObjectCodec",
    "ValueCodecProvider",
    "get_builtin_codecs",
    "TreeDocumentReader",
    "TreeDocumentWriter",
    "from_bson",
    "to_bson",
    "EnumCodec",
    "EnumCodecProvider",
    "IndexedEnum",
    "LazyCodec",
    "from_codecs",
    "from_providers",
    "from_registries",
]
