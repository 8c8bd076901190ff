"""docbind exceptions.

This module defines the exception hierarchy for docbind.
All exceptions inherit from :class:`DocbindException`.

Errors fall into three families:

- :class:`DefinitionException`: a class cannot be described as a document
  (for example, two creators are marked on one class).
- :class:`CodecConfigurationException`: the class is valid but the codec
  registry in use cannot serve one of its properties.
- :class:`DocumentDataException`: the document being decoded does not match
  the class model.

Example:
    Handling docbind exceptions::

        from docbind.exceptions import (
            DocbindException,
            CodecConfigurationException,
            DocumentDataException,
        )

        try:
            person = mapper.decode(document, Person)
        except DocumentDataException as e:
            print(f"Bad document: {e}")
        except CodecConfigurationException as e:
            print(f"Registry is missing a codec: {e}")
        except DocbindException as e:
            print(f"docbind error: {e}")
"""


class DocbindException(Exception):
    """Base class for all docbind exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.

    Example:
        >>> try:
        ...     mapper.encode(value)
        ... except DocbindException as e:
        ...     print(f"Error: {e}")
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class DefinitionException(DocbindException):
    """Raised when a class cannot be turned into a class model.

    Definition errors are raised once, when the class model is built or
    first specialized, never per encode/decode call.

    Example:
        - Two constructors or factory methods marked with ``@creator``
        - A property with neither a read name nor a write name
        - A getter and setter whose types are unrelated
        - An abstract collection type with no known default implementation
    """
    pass


class CodecConfigurationException(DocbindException):
    """Raised when the codec registry cannot serve a type.

    The class itself is valid, but something it depends on is missing from
    the registry in use. Raised at first use of the offending property.

    Example:
        - No codec registered for a nested type
        - No string key converter for a map key type
        - An id generator whose type differs from the id property type
        - Encoding a generic class that was never specialized
    """
    pass


class DocumentDataException(DocbindException):
    """Raised when a document does not match the class being decoded.

    The message names the declaring class and the property being decoded.

    Example:
        - A string value where the property expects an integer
        - An array where the property expects a sub-document
    """
    pass


class ConfigurationException(DocbindException):
    """Raised when a :class:`~docbind.config.MapperConfig` is invalid.

    Example:
        - Unknown convention names
        - An empty discriminator key
        - A registered class path that cannot be imported
    """
    pass


class PropertyAccessException(CodecConfigurationException):
    """Raised when a property value cannot be read from or written to an instance.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.
    """
    pass
