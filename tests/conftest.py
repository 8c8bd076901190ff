"""Shared pytest fixtures for docbind tests."""

import logging

import pytest

from docbind.codecs import EnumCodecProvider, ValueCodecProvider, from_providers
from docbind.config import MapperConfig
from docbind.logging import DOCBIND_ROOT_LOGGER
from docbind.mapper import DocumentMapper


@pytest.fixture
def default_config():
    """Create a default MapperConfig."""
    return MapperConfig()


@pytest.fixture
def mapper():
    """Create a DocumentMapper with the default configuration."""
    return DocumentMapper()


@pytest.fixture
def mapper_factory():
    """Create DocumentMappers configured with the given convention names."""

    def create(*conventions, **kwargs):
        if conventions:
            kwargs["conventions"] = list(conventions)
        return DocumentMapper(MapperConfig(**kwargs))

    return create


@pytest.fixture
def value_registry():
    """Create a registry serving only the built-in value and enum codecs."""
    return from_providers(ValueCodecProvider(), EnumCodecProvider())


@pytest.fixture
def restore_logging():
    """Restore the docbind root logger after a test reconfigures it."""
    logger = logging.getLogger(DOCBIND_ROOT_LOGGER)
    level = logger.level
    handlers = list(logger.handlers)
    disabled = logger.disabled
    yield logger
    logger.setLevel(level)
    logger.handlers = handlers
    logger.disabled = disabled
