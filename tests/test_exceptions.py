"""Unit tests for docbind.exceptions module."""

import pytest

from docbind.exceptions import (
    DocbindException,
    DefinitionException,
    CodecConfigurationException,
    DocumentDataException,
    ConfigurationException,
    PropertyAccessException,
)


class TestDocbindException:
    """Tests for DocbindException base class."""

    def test_create_with_message(self):
        ex = DocbindException("test message")
        assert str(ex) == "test message"
        assert ex.cause is None

    def test_create_with_message_and_cause(self):
        cause = ValueError("original error")
        ex = DocbindException("wrapper message", cause=cause)
        assert str(ex) == "wrapper message"
        assert ex.cause is cause

    def test_create_empty(self):
        ex = DocbindException()
        assert str(ex) == ""
        assert ex.cause is None

    def test_inheritance(self):
        assert isinstance(DocbindException("test"), Exception)


class TestExceptionHierarchy:
    """Tests for the docbind exception subclasses."""

    @pytest.mark.parametrize(
        "exception_class",
        [
            DefinitionException,
            CodecConfigurationException,
            DocumentDataException,
            ConfigurationException,
            PropertyAccessException,
        ],
    )
    def test_subclasses_docbind_exception(self, exception_class):
        ex = exception_class("failure")
        assert isinstance(ex, DocbindException)
        assert str(ex) == "failure"

    def test_property_access_is_codec_configuration(self):
        ex = PropertyAccessException("Unable to set value")
        assert isinstance(ex, CodecConfigurationException)

    def test_definition_is_not_codec_configuration(self):
        assert not issubclass(DefinitionException, CodecConfigurationException)
        assert not issubclass(DocumentDataException, CodecConfigurationException)

    def test_catch_as_base(self):
        with pytest.raises(DocbindException):
            raise DocumentDataException("bad document")

    def test_cause_is_kept(self):
        cause = KeyError("name")
        ex = CodecConfigurationException("Can't find a codec", cause)
        assert ex.cause is cause
