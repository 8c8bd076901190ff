"""Resolution of discriminator values to classes."""

import importlib
from typing import Dict, Iterable, List, Optional

from docbind.exceptions import CodecConfigurationException
from docbind.logging import get_logger
from docbind.pojo.conventions import default_discriminator
from docbind.pojo.markers import DISCRIMINATOR_ATTR
from docbind.pojo.models import ClassModel

_logger = get_logger("discriminator")


def class_for_name(name: str) -> Optional[type]:
    """Import a class from its dotted ``module.QualName`` path, or return None."""
    parts = name.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            target = importlib.import_module(module_name)
        except ImportError:
            continue
        for attribute in parts[split:]:
            target = getattr(target, attribute, None)
            if target is None:
                break
        if isinstance(target, type):
            return target
    return None


def _declared_discriminator(clazz: type) -> str:
    spec = clazz.__dict__.get(DISCRIMINATOR_ATTR)
    if spec is not None and spec.value:
        return spec.value
    return default_discriminator(clazz)


class DiscriminatorLookup:
    """Maps discriminator values to classes.

    Values are looked up, in order, among the known class models, among the
    subclasses of the class being decoded, as a dotted class path, and as a
    class path under each configured namespace. Hits are cached for the
    life of the lookup.

    Args:
        class_models: Models whose discriminators are known up front.
        namespaces: Module names searched for unqualified values.
    """

    def __init__(self, class_models: Iterable[ClassModel] = (), namespaces: Iterable[str] = ()):
        self._discriminator_classes: Dict[str, type] = {}
        self._namespaces: List[str] = list(namespaces)
        for model in class_models:
            self.add_class_model(model)

    @property
    def namespaces(self) -> List[str]:
        return list(self._namespaces)

    def add_class_model(self, class_model: ClassModel) -> None:
        if class_model.discriminator is not None:
            self._discriminator_classes.setdefault(class_model.discriminator, class_model.type)

    def lookup(self, discriminator: str, base: Optional[type] = None) -> type:
        """Find the class for ``discriminator``.

        Args:
            discriminator: The value read from the document.
            base: The class being decoded; its subclasses are searched and
                the class found must be one of them.

        Raises:
            CodecConfigurationException: If no class matches, or the match
                is not a subclass of ``base``.
        """
        clazz = self._discriminator_classes.get(discriminator)
        if clazz is not None:
            return self._checked(discriminator, clazz, base)
        clazz = self._search_subclasses(discriminator, base)
        if clazz is None:
            clazz = class_for_name(discriminator)
        if clazz is None:
            clazz = self._search_namespaces(discriminator)
        if clazz is None:
            raise CodecConfigurationException(
                f"A class could not be found for the discriminator: '{discriminator}'."
            )
        self._checked(discriminator, clazz, base)
        _logger.debug("Resolved discriminator %r to %s", discriminator, clazz.__qualname__)
        return self._discriminator_classes.setdefault(discriminator, clazz)

    @staticmethod
    def _checked(discriminator: str, clazz: type, base: Optional[type]) -> type:
        if base is not None and not issubclass(clazz, base):
            raise CodecConfigurationException(
                f"The discriminator '{discriminator}' resolves to {clazz.__qualname__}, "
                f"which is not a subclass of {base.__qualname__}."
            )
        return clazz

    def _search_subclasses(self, discriminator: str, base: Optional[type]) -> Optional[type]:
        if base is None:
            return None
        pending = [base]
        seen = set()
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            if _declared_discriminator(current) == discriminator:
                return current
            pending.extend(current.__subclasses__())
        return None

    def _search_namespaces(self, discriminator: str) -> Optional[type]:
        for namespace in self._namespaces:
            clazz = class_for_name(f"{namespace}.{discriminator}")
            if clazz is not None:
                return clazz
        return None
