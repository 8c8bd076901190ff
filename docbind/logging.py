"""Logging for docbind.

Every docbind module logs through a component logger below the ``docbind``
root logger. Nothing is printed until :func:`configure_logging` installs a
handler, so applications keep control of their own logging setup.

Class-model builds, specialisations, discriminator resolution and
automatic codec creation are logged at DEBUG. Classes the automatic
provider has to skip are logged at WARNING.

Example:
    >>> import logging
    >>> from docbind.logging import configure_logging
    >>> configure_logging(level=logging.WARNING, component_levels={"models": logging.DEBUG})
"""

import logging
from typing import Dict, Optional


DOCBIND_ROOT_LOGGER = "docbind"

#: Components that emit log records.
COMPONENTS = ("mapper", "provider", "models", "codec", "registry", "discriminator")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class DocbindLoggerFactory:
    """Factory for docbind component loggers.

    Component loggers are children of the ``docbind`` root, so the level of
    one component (``models`` while debugging a class definition, say) can
    be raised without flooding the output with codec records.
    """

    _configured: bool = False

    @classmethod
    def get_logger(cls, name: str = "") -> logging.Logger:
        """Get a logger for a docbind component.

        Args:
            name: Component name (e.g., 'models', 'codec').
                  If empty, returns the root docbind logger.
        """
        if name:
            return logging.getLogger(f"{DOCBIND_ROOT_LOGGER}.{name}")
        return logging.getLogger(DOCBIND_ROOT_LOGGER)

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = DEFAULT_FORMAT,
        handler: Optional[logging.Handler] = None,
        component_levels: Optional[Dict[str, int]] = None,
    ) -> logging.Logger:
        """Configure the docbind logging system.

        Args:
            level: Level of the root docbind logger.
            format_string: Format string for log messages.
            handler: Optional custom handler. If None, a StreamHandler is used.
                A handler is only added when the root logger has none.
            component_levels: Levels for individual components, applied
                after the root level.

        Returns:
            The configured root logger.
        """
        logger = cls.get_logger()
        logger.setLevel(level)

        if not logger.handlers:
            if handler is None:
                handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(handler)

        for component, component_level in (component_levels or {}).items():
            cls.set_level(component_level, component)

        cls._configured = True
        return logger

    @classmethod
    def set_level(cls, level: int, component: str = "") -> None:
        """Set logging level for a specific component or the root logger."""
        cls.get_logger(component).setLevel(level)

    @classmethod
    def reset_levels(cls) -> None:
        """Let every known component inherit the root level again."""
        for component in COMPONENTS:
            cls.get_logger(component).setLevel(logging.NOTSET)

    @classmethod
    def disable(cls, component: str = "") -> None:
        """Disable docbind logging, or one component's."""
        cls.get_logger(component).disabled = True

    @classmethod
    def enable(cls, component: str = "") -> None:
        cls.get_logger(component).disabled = False

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured


def get_logger(name: str = "") -> logging.Logger:
    """Get a docbind logger for a component."""
    return DocbindLoggerFactory.get_logger(name)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    handler: Optional[logging.Handler] = None,
    component_levels: Optional[Dict[str, int]] = None,
) -> logging.Logger:
    """Configure the docbind logging system.

    See :meth:`DocbindLoggerFactory.configure`.
    """
    return DocbindLoggerFactory.configure(level, format_string, handler, component_levels)


def set_level(level: int, component: str = "") -> None:
    """Set logging level for a component, or the root logger when empty."""
    DocbindLoggerFactory.set_level(level, component)
