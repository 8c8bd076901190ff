"""Configuration classes for the document mapper."""

import os
from typing import List, Optional, Union

import yaml

from docbind.exceptions import ConfigurationException
from docbind.pojo.conventions import (
    CONVENTION_NAMES,
    DEFAULT_DISCRIMINATOR_KEY,
    Convention,
    DefaultsConvention,
)
from docbind.pojo.discriminator import class_for_name

DEFAULT_CONVENTION_NAMES = ["defaults", "annotations", "id_generators"]


class MapperConfig:
    """Configuration for a :class:`~docbind.mapper.DocumentMapper`.

    Args:
        automatic: Map any class with properties, not only registered ones.
        discriminator_key: Default document key of the discriminator.
        namespaces: Modules whose classes are mapped and searched when
            resolving discriminator values.
        conventions: Names of the conventions to apply, in order.
        registered_classes: Classes, or dotted class paths, mapped eagerly.

    Example:
        >>> config = MapperConfig.from_yaml_string('''
        ... docbind:
        ...   discriminator_key: kind
        ...   conventions: [defaults, annotations, set_private_fields, id_generators]
        ... ''')
        >>> config.discriminator_key
        'kind'
    """

    def __init__(
        self,
        automatic: bool = True,
        discriminator_key: str = DEFAULT_DISCRIMINATOR_KEY,
        namespaces: Optional[List[str]] = None,
        conventions: Optional[List[str]] = None,
        registered_classes: Optional[List[Union[str, type]]] = None,
    ):
        self._automatic = automatic
        self._discriminator_key = discriminator_key
        self._namespaces = list(namespaces) if namespaces is not None else []
        self._conventions = list(conventions) if conventions is not None else list(DEFAULT_CONVENTION_NAMES)
        self._registered_classes = list(registered_classes) if registered_classes is not None else []
        self._validate()

    def _validate(self) -> None:
        if not isinstance(self._automatic, bool):
            raise ConfigurationException("automatic must be a boolean")
        if not isinstance(self._discriminator_key, str) or not self._discriminator_key:
            raise ConfigurationException("discriminator_key must be a non-empty string")
        for namespace in self._namespaces:
            if not isinstance(namespace, str) or not namespace:
                raise ConfigurationException(f"Invalid namespace: {namespace!r}")
        seen = set()
        for name in self._conventions:
            if name not in CONVENTION_NAMES:
                raise ConfigurationException(
                    f"Unknown convention '{name}'. Valid conventions: {', '.join(CONVENTION_NAMES)}"
                )
            if name in seen:
                raise ConfigurationException(f"Convention '{name}' is listed more than once")
            seen.add(name)
        for entry in self._registered_classes:
            if not isinstance(entry, (str, type)):
                raise ConfigurationException(f"Invalid registered class: {entry!r}")

    @property
    def automatic(self) -> bool:
        """Get whether unregistered classes are mapped automatically."""
        return self._automatic

    @automatic.setter
    def automatic(self, value: bool) -> None:
        self._automatic = value
        self._validate()

    @property
    def discriminator_key(self) -> str:
        """Get the default discriminator key."""
        return self._discriminator_key

    @discriminator_key.setter
    def discriminator_key(self, value: str) -> None:
        self._discriminator_key = value
        self._validate()

    @property
    def namespaces(self) -> List[str]:
        return self._namespaces

    @namespaces.setter
    def namespaces(self, value: List[str]) -> None:
        self._namespaces = list(value)
        self._validate()

    @property
    def conventions(self) -> List[str]:
        """Get the convention names, in the order they are applied."""
        return self._conventions

    @conventions.setter
    def conventions(self, value: List[str]) -> None:
        self._conventions = list(value)
        self._validate()

    @property
    def registered_classes(self) -> List[Union[str, type]]:
        return self._registered_classes

    @registered_classes.setter
    def registered_classes(self, value: List[Union[str, type]]) -> None:
        self._registered_classes = list(value)
        self._validate()

    def add_namespace(self, namespace: str) -> "MapperConfig":
        self._namespaces.append(namespace)
        self._validate()
        return self

    def register_class(self, clazz: Union[str, type]) -> "MapperConfig":
        """Register a class, or a dotted class path, to be mapped eagerly."""
        self._registered_classes.append(clazz)
        self._validate()
        return self

    def resolve_conventions(self) -> List[Convention]:
        """Build the convention list, honouring ``discriminator_key``."""
        conventions = []
        for name in self._conventions:
            if name == "defaults" and self._discriminator_key != DEFAULT_DISCRIMINATOR_KEY:
                conventions.append(DefaultsConvention(self._discriminator_key))
            else:
                conventions.append(CONVENTION_NAMES[name])
        return conventions

    def resolve_registered_classes(self) -> List[type]:
        """Import the registered classes.

        Raises:
            ConfigurationException: If a class path cannot be imported.
        """
        classes = []
        for entry in self._registered_classes:
            if isinstance(entry, type):
                classes.append(entry)
                continue
            clazz = class_for_name(entry)
            if clazz is None:
                raise ConfigurationException(f"Cannot import registered class '{entry}'")
            classes.append(clazz)
        return classes

    @classmethod
    def from_dict(cls, data: dict) -> "MapperConfig":
        """Create MapperConfig from a dictionary."""
        return cls(
            automatic=data.get("automatic", True),
            discriminator_key=data.get("discriminator_key", DEFAULT_DISCRIMINATOR_KEY),
            namespaces=data.get("namespaces"),
            conventions=data.get("conventions"),
            registered_classes=data.get("registered_classes"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "MapperConfig":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            MapperConfig instance.

        Raises:
            ConfigurationException: If the file cannot be read or parsed.
        """
        if not os.path.exists(yaml_path):
            raise ConfigurationException(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", e) from e
        except OSError as e:
            raise ConfigurationException(f"Failed to read configuration file: {e}", e) from e

        return cls._from_yaml_data(data)

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "MapperConfig":
        """Load configuration from a YAML string.

        Raises:
            ConfigurationException: If the YAML cannot be parsed.
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", e) from e

        return cls._from_yaml_data(data)

    @classmethod
    def _from_yaml_data(cls, data) -> "MapperConfig":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationException("YAML configuration must be a mapping")
        if "docbind" in data:
            data = data["docbind"] or {}
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return (
            f"MapperConfig(automatic={self._automatic}, discriminator_key={self._discriminator_key!r}, "
            f"namespaces={self._namespaces}, conventions={self._conventions})"
        )
