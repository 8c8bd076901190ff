"""In-memory document cursors and the binary bridge.

:class:`TreeDocumentWriter` builds a nested ``dict``/``list`` tree whose
scalars use the ``bson`` wrapper types, and :class:`TreeDocumentReader`
walks such a tree. The tree is exactly what ``bson.encode`` accepts and
``bson.decode`` returns, so :func:`to_bson` and :func:`from_bson` only
have to hand it over.
"""

import uuid
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import bson
from bson import Binary, Decimal128, Int64, ObjectId
from bson.binary import UUID_SUBTYPE
from bson.codec_options import CodecOptions
from bson.timestamp import Timestamp

from docbind.codecs.api import DocumentReader, DocumentType, DocumentWriter, Mark
from docbind.exceptions import DocumentDataException

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

_BSON_CODEC_OPTIONS = CodecOptions(document_class=dict, tz_aware=False)


def document_type_of(value: Any) -> DocumentType:
    """Return the element type tag of a tree value."""
    if value is None:
        return DocumentType.NULL
    if isinstance(value, bool):
        return DocumentType.BOOLEAN
    if isinstance(value, Int64):
        return DocumentType.INT64
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return DocumentType.INT32
        return DocumentType.INT64
    if isinstance(value, float):
        return DocumentType.DOUBLE
    if isinstance(value, str):
        return DocumentType.STRING
    if isinstance(value, Mapping):
        return DocumentType.DOCUMENT
    if isinstance(value, (list, tuple)):
        return DocumentType.ARRAY
    if isinstance(value, (bytes, bytearray, uuid.UUID)):
        return DocumentType.BINARY
    if isinstance(value, datetime):
        return DocumentType.DATE_TIME
    if isinstance(value, (Decimal128, Decimal)):
        return DocumentType.DECIMAL128
    if isinstance(value, ObjectId):
        return DocumentType.OBJECT_ID
    if isinstance(value, Timestamp):
        return DocumentType.TIMESTAMP
    raise DocumentDataException(f"Unsupported document value of type {type(value).__name__}")


class TreeDocumentWriter(DocumentWriter):
    """Writer that builds a tree of dicts and lists.

    Example:
        >>> writer = TreeDocumentWriter()
        >>> writer.write_start_document()
        >>> writer.write_name("a")
        >>> writer.write_int32(1)
        >>> writer.write_end_document()
        >>> writer.document
        {'a': 1}
    """

    def __init__(self):
        self._stack: List[Any] = []
        self._names: List[Optional[str]] = []
        self._root: Any = None
        self._has_root = False

    @property
    def document(self) -> Any:
        """The finished top-level value."""
        if self._stack:
            raise DocumentDataException("The document has not been completed")
        return self._root

    def _append(self, value: Any) -> None:
        if not self._stack:
            if self._has_root:
                raise DocumentDataException("A top-level value has already been written")
            self._root = value
            self._has_root = True
            return
        container = self._stack[-1]
        if isinstance(container, dict):
            name = self._names[-1]
            if name is None:
                raise DocumentDataException("write_name must be called before writing a value")
            container[name] = value
            self._names[-1] = None
        else:
            container.append(value)

    def _start(self, container: Any) -> None:
        self._append(container)
        self._stack.append(container)
        self._names.append(None)

    def _end(self, kind: type) -> None:
        if not self._stack or not isinstance(self._stack[-1], kind):
            raise DocumentDataException(f"Cannot end a {kind.__name__} that was not started")
        self._stack.pop()
        self._names.pop()

    def write_start_document(self) -> None:
        self._start({})

    def write_end_document(self) -> None:
        self._end(dict)

    def write_start_array(self) -> None:
        self._start([])

    def write_end_array(self) -> None:
        self._end(list)

    def write_name(self, name: str) -> None:
        if not self._stack or not isinstance(self._stack[-1], dict):
            raise DocumentDataException("write_name can only be called inside a document")
        self._names[-1] = name

    def write_string(self, value: str) -> None:
        self._append(value)

    def write_int32(self, value: int) -> None:
        self._append(int(value))

    def write_int64(self, value: int) -> None:
        self._append(Int64(value))

    def write_double(self, value: float) -> None:
        self._append(float(value))

    def write_boolean(self, value: bool) -> None:
        self._append(bool(value))

    def write_binary(self, value: Binary) -> None:
        self._append(value if isinstance(value, Binary) else Binary(bytes(value)))

    def write_datetime(self, value: datetime) -> None:
        self._append(value)

    def write_decimal128(self, value: Decimal) -> None:
        self._append(value if isinstance(value, Decimal128) else Decimal128(value))

    def write_object_id(self, value: ObjectId) -> None:
        self._append(value)

    def write_null(self) -> None:
        self._append(None)


class _Frame:
    """One open document or array of a :class:`TreeDocumentReader`."""

    __slots__ = ("items", "is_document", "index")

    def __init__(self, value: Any):
        self.is_document = isinstance(value, Mapping)
        self.items = list(value.items()) if self.is_document else list(value)
        self.index = -1


class _TreeMark(Mark):
    def __init__(self, reader: "TreeDocumentReader"):
        self._reader = reader
        self._frames = [(frame, frame.index) for frame in reader._frames]
        self._current = reader._current
        self._current_name = reader._current_name

    def reset(self) -> None:
        frames = []
        for frame, index in self._frames:
            frame.index = index
            frames.append(frame)
        self._reader._frames = frames
        self._reader._current = self._current
        self._reader._current_name = self._current_name


class TreeDocumentReader(DocumentReader):
    """Reader over a tree of dicts and lists.

    Args:
        document: The top-level value, usually a dict.
    """

    def __init__(self, document: Any):
        self._frames: List[_Frame] = []
        self._current: Any = document
        self._current_name: Optional[str] = None

    @property
    def current_type(self) -> DocumentType:
        if self._frames and self._frames[-1].index >= len(self._frames[-1].items):
            return DocumentType.END_OF_DOCUMENT
        return document_type_of(self._current)

    def read_type(self) -> DocumentType:
        if not self._frames:
            return document_type_of(self._current)
        frame = self._frames[-1]
        frame.index += 1
        if frame.index >= len(frame.items):
            self._current = None
            self._current_name = None
            return DocumentType.END_OF_DOCUMENT
        item = frame.items[frame.index]
        if frame.is_document:
            self._current_name, self._current = item
        else:
            self._current_name, self._current = None, item
        return document_type_of(self._current)

    def read_name(self) -> str:
        if self._current_name is None:
            raise DocumentDataException("read_name can only be called on an element of a document")
        return self._current_name

    def _expect(self, method: str, *expected: DocumentType) -> Any:
        actual = self.current_type
        if actual not in expected:
            names = " or ".join(t.name for t in expected)
            raise DocumentDataException(
                f"{method} can only be called when current_type is {names}, "
                f"not when current_type is {actual.name}."
            )
        return self._current

    def read_start_document(self) -> None:
        value = self._expect("read_start_document", DocumentType.DOCUMENT)
        self._frames.append(_Frame(value))

    def read_end_document(self) -> None:
        if not self._frames or not self._frames[-1].is_document:
            raise DocumentDataException("read_end_document called outside of a document")
        self._frames.pop()

    def read_start_array(self) -> None:
        value = self._expect("read_start_array", DocumentType.ARRAY)
        self._frames.append(_Frame(value))

    def read_end_array(self) -> None:
        if not self._frames or self._frames[-1].is_document:
            raise DocumentDataException("read_end_array called outside of an array")
        self._frames.pop()

    def read_string(self) -> str:
        return self._expect("read_string", DocumentType.STRING)

    def read_int32(self) -> int:
        return int(self._expect("read_int32", DocumentType.INT32))

    def read_int64(self) -> int:
        return int(self._expect("read_int64", DocumentType.INT64, DocumentType.INT32))

    def read_double(self) -> float:
        return float(self._expect("read_double", DocumentType.DOUBLE))

    def read_boolean(self) -> bool:
        return self._expect("read_boolean", DocumentType.BOOLEAN)

    def read_binary(self) -> Binary:
        value = self._expect("read_binary", DocumentType.BINARY)
        if isinstance(value, uuid.UUID):
            return Binary(value.bytes, UUID_SUBTYPE)
        return value if isinstance(value, Binary) else Binary(bytes(value))

    def read_datetime(self) -> datetime:
        return self._expect("read_datetime", DocumentType.DATE_TIME)

    def read_decimal128(self) -> Decimal:
        value = self._expect("read_decimal128", DocumentType.DECIMAL128)
        return value.to_decimal() if isinstance(value, Decimal128) else value

    def read_object_id(self) -> ObjectId:
        return self._expect("read_object_id", DocumentType.OBJECT_ID)

    def read_null(self) -> None:
        self._expect("read_null", DocumentType.NULL)

    def skip_value(self) -> None:
        # the next read_type() moves past the whole element
        pass

    def mark(self) -> Mark:
        return _TreeMark(self)


def to_bson(document: Dict[str, Any]) -> bytes:
    """Serialize a document tree with the ``bson`` package."""
    return bson.encode(document)


def from_bson(data: bytes) -> Dict[str, Any]:
    """Parse BSON bytes into a document tree."""
    return bson.decode(data, codec_options=_BSON_CODEC_OPTIONS)
