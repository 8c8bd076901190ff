"""Codec registries.

Registries are built from providers and may be nested: every registry is
also a provider. Lookups are cached per class. While a codec is being
built, the classes on the current resolution chain are tracked, and a
lookup that would re-enter one of them gets a :class:`LazyCodec` instead,
so self-referential classes resolve without unbounded recursion.

Example:
    >>> registry = from_registries(
    ...     from_codecs(PointCodec()),
    ...     from_providers(ValueCodecProvider()),
    ... )
    >>> registry.get(str)
    <docbind.codecs.builtin.StringCodec object at ...>
"""

import threading
from typing import Dict, Iterable, List, Optional

from docbind.codecs.api import (
    Codec,
    CodecProvider,
    CodecRegistry,
    DecoderContext,
    DocumentReader,
    DocumentWriter,
    EncoderContext,
)
from docbind.exceptions import CodecConfigurationException
from docbind.logging import get_logger

_logger = get_logger("registry")


def type_name(clazz: type) -> str:
    """Return the dotted name used in error messages."""
    module = getattr(clazz, "__module__", None)
    qualname = getattr(clazz, "__qualname__", None) or repr(clazz)
    if module in (None, "builtins"):
        return qualname
    return f"{module}.{qualname}"


class LazyCodec(Codec):
    """Codec that looks up its delegate on first use.

    Args:
        registry: Registry to resolve the delegate from.
        clazz: The class of the delegate.
    """

    def __init__(self, registry: CodecRegistry, clazz: type):
        self._registry = registry
        self._clazz = clazz
        self._wrapped: Optional[Codec] = None
        self._lock = threading.Lock()

    @property
    def encoder_class(self) -> type:
        return self._clazz

    def _get_wrapped(self) -> Codec:
        wrapped = self._wrapped
        if wrapped is None:
            with self._lock:
                if self._wrapped is None:
                    self._wrapped = self._registry.get(self._clazz)
                wrapped = self._wrapped
        return wrapped

    def encode(self, writer: DocumentWriter, value, context: EncoderContext = None) -> None:
        self._get_wrapped().encode(writer, value, context)

    def decode(self, reader: DocumentReader, context: DecoderContext = None):
        return self._get_wrapped().decode(reader, context)


class MapOfCodecsProvider(CodecProvider):
    """Provider serving a fixed set of codecs by their encoder class."""

    def __init__(self, codecs: Iterable[Codec]):
        self._codecs: Dict[type, Codec] = {}
        for codec in codecs:
            self._codecs[codec.encoder_class] = codec

    def get(self, clazz: type, registry: CodecRegistry) -> Optional[Codec]:
        return self._codecs.get(clazz)


class ProvidersCodecRegistry(CodecRegistry):
    """Registry that asks its providers in order and caches the answers.

    Args:
        providers: Providers (or registries) consulted in order.
    """

    def __init__(self, providers: Iterable[CodecProvider]):
        self._providers: List[CodecProvider] = list(providers)
        if not self._providers:
            raise ValueError("providers must not be empty")
        self._codec_cache: Dict[type, Codec] = {}

    def get(self, clazz: type, registry: Optional[CodecRegistry] = None) -> Optional[Codec]:
        if registry is None:
            return self._get(ChildCodecRegistry(self, clazz))
        for provider in self._providers:
            codec = provider.get(clazz, registry)
            if codec is not None:
                return codec
        return None

    def _find(self, context: "ChildCodecRegistry") -> Optional[Codec]:
        clazz = context.codec_class
        codec = self._codec_cache.get(clazz)
        if codec is not None:
            return codec
        for provider in self._providers:
            codec = provider.get(clazz, context)
            if codec is not None:
                # concurrent first lookups converge on the first stored codec
                return self._codec_cache.setdefault(clazz, codec)
        return None

    def _get(self, context: "ChildCodecRegistry") -> Codec:
        codec = self._find(context)
        if codec is None:
            raise CodecConfigurationException(f"Can't find a codec for {type_name(context.codec_class)}.")
        return codec


class ChildCodecRegistry(CodecRegistry):
    """Registry view that remembers the chain of classes being resolved."""

    def __init__(
        self,
        registry: ProvidersCodecRegistry,
        codec_class: type,
        parent: Optional["ChildCodecRegistry"] = None,
    ):
        self._registry = registry
        self._codec_class = codec_class
        self._parent = parent

    @property
    def codec_class(self) -> type:
        return self._codec_class

    def _has_cycles(self, clazz: type) -> bool:
        current = self
        while current is not None:
            if current._codec_class == clazz:
                return True
            current = current._parent
        return False

    def get(self, clazz: type, registry: Optional[CodecRegistry] = None) -> Optional[Codec]:
        if self._has_cycles(clazz):
            _logger.debug("Deferring codec lookup for %s, it is already being resolved", type_name(clazz))
            return LazyCodec(self._registry, clazz)
        child = ChildCodecRegistry(self._registry, clazz, self)
        if registry is None:
            return self._registry._get(child)
        return self._registry._find(child)


def from_providers(*providers: CodecProvider) -> CodecRegistry:
    """Create a registry from providers.

    Accepts providers as positional arguments or as a single list.
    """
    if len(providers) == 1 and isinstance(providers[0], (list, tuple)):
        providers = tuple(providers[0])
    return ProvidersCodecRegistry(providers)


def from_codecs(*codecs: Codec) -> CodecRegistry:
    """Create a registry serving exactly the given codecs."""
    if len(codecs) == 1 and isinstance(codecs[0], (list, tuple)):
        codecs = tuple(codecs[0])
    return ProvidersCodecRegistry([MapOfCodecsProvider(codecs)])


def from_registries(*registries: CodecRegistry) -> CodecRegistry:
    """Combine registries; earlier registries win."""
    if len(registries) == 1 and isinstance(registries[0], (list, tuple)):
        registries = tuple(registries[0])
    return ProvidersCodecRegistry(registries)
