"""Codec provider for mapped classes.

Example:
    >>> provider = (
    ...     PojoCodecProvider.builder()
    ...     .register(Person, Address)
    ...     .register_namespaces("myapp.models")
    ...     .build()
    ... )
    >>> registry = from_providers(ValueCodecProvider(), EnumCodecProvider(), provider)
    >>> registry.get(Person)
"""

import inspect
from collections.abc import Collection, Mapping
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from docbind.codecs.api import Codec, CodecProvider, CodecRegistry
from docbind.exceptions import DefinitionException
from docbind.logging import get_logger
from docbind.pojo.codec import AutomaticPojoCodec, PojoCodecImpl
from docbind.pojo.conventions import DEFAULT_CONVENTIONS, Convention
from docbind.pojo.discriminator import DiscriminatorLookup
from docbind.pojo.global_models import GlobalModels
from docbind.pojo.models import ClassModel
from docbind.pojo.property_codecs import PropertyCodecProvider

_logger = get_logger("provider")


def _is_claimable(clazz: type) -> bool:
    if not isinstance(clazz, type) or GlobalModels.is_simple_type(clazz):
        return False
    return not issubclass(clazz, (Enum, Collection, Mapping, type))


class PojoCodecProvider(CodecProvider):
    """Provides pojo codecs for registered classes.

    Registered classes always get a codec. Classes defined in a registered
    namespace, or any class in automatic mode, get one when they have at
    least one property or are abstract. Use :meth:`builder` to create one.
    """

    def __init__(
        self,
        automatic: bool,
        class_models: Dict[type, ClassModel],
        namespaces: List[str],
        conventions: List[Convention],
        property_codec_providers: List[PropertyCodecProvider],
    ):
        self._automatic = automatic
        self._class_models = class_models
        self._namespaces = namespaces
        self._conventions = conventions
        self._property_codec_providers = property_codec_providers
        self._automatic_models: Dict[type, ClassModel] = {}
        self._discriminator_lookup = DiscriminatorLookup(class_models.values(), namespaces)

    @classmethod
    def builder(cls) -> "PojoCodecProviderBuilder":
        return PojoCodecProviderBuilder()

    @property
    def automatic(self) -> bool:
        return self._automatic

    @property
    def discriminator_lookup(self) -> DiscriminatorLookup:
        return self._discriminator_lookup

    def get_class_model(self, clazz: type) -> ClassModel:
        """Return the model this provider maps ``clazz`` with."""
        model = self._class_models.get(clazz) or self._automatic_models.get(clazz)
        if model is None:
            model = self._automatic_models.setdefault(
                clazz, GlobalModels.create_class_model(clazz, self._conventions)
            )
        return model

    def get(self, clazz: type, registry: CodecRegistry) -> Optional[Codec]:
        class_model = self._class_models.get(clazz)
        if class_model is not None:
            return PojoCodecImpl(
                class_model, registry, self._property_codec_providers, self._discriminator_lookup
            )
        if not _is_claimable(clazz):
            return None
        if not self._automatic and clazz.__module__ not in self._namespaces:
            return None
        class_model = self._automatic_models.get(clazz)
        if class_model is None:
            try:
                class_model = GlobalModels.create_class_model(clazz, self._conventions)
            except DefinitionException as e:
                _logger.warning("Cannot use '%s' with the PojoCodec: %s", clazz.__qualname__, e)
                return None
            class_model = self._automatic_models.setdefault(clazz, class_model)
        if not inspect.isabstract(clazz) and not class_model.property_models:
            return None
        self._discriminator_lookup.add_class_model(class_model)
        _logger.debug("Created automatic codec for %s", clazz.__qualname__)
        return AutomaticPojoCodec(
            PojoCodecImpl(class_model, registry, self._property_codec_providers, self._discriminator_lookup)
        )


class PojoCodecProviderBuilder:
    """Builder for :class:`PojoCodecProvider`."""

    def __init__(self):
        self._automatic = False
        self._classes: List[type] = []
        self._class_models: List[ClassModel] = []
        self._namespaces: List[str] = []
        self._conventions: Optional[List[Convention]] = None
        self._property_codec_providers: List[PropertyCodecProvider] = []

    def automatic(self, automatic: bool) -> "PojoCodecProviderBuilder":
        """Create codecs for any class with properties, not only registered ones."""
        self._automatic = automatic
        return self

    def register(self, *classes: Union[type, ClassModel]) -> "PojoCodecProviderBuilder":
        """Register classes, or prebuilt class models."""
        for item in classes:
            if isinstance(item, ClassModel):
                self._class_models.append(item)
            else:
                self._classes.append(item)
        return self

    def register_namespaces(self, *namespaces: str) -> "PojoCodecProviderBuilder":
        """Register modules whose classes are mapped and searched for discriminators."""
        self._namespaces.extend(namespaces)
        return self

    def conventions(self, conventions: Sequence[Convention]) -> "PojoCodecProviderBuilder":
        self._conventions = list(conventions)
        return self

    def register_property_codec_provider(self, provider: PropertyCodecProvider) -> "PojoCodecProviderBuilder":
        self._property_codec_providers.append(provider)
        return self

    def build(self) -> PojoCodecProvider:
        """Build the provider, creating the models of all registered classes.

        Raises:
            DefinitionException: If a registered class cannot be mapped.
        """
        conventions = list(DEFAULT_CONVENTIONS if self._conventions is None else self._conventions)
        class_models: Dict[type, ClassModel] = {model.type: model for model in self._class_models}
        for clazz in self._classes:
            if clazz not in class_models:
                class_models[clazz] = GlobalModels.create_class_model(clazz, conventions)
        return PojoCodecProvider(
            self._automatic,
            class_models,
            list(self._namespaces),
            conventions,
            list(self._property_codec_providers),
        )
