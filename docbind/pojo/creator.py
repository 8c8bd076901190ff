"""Instance creation for decoded documents.

Two strategies exist:

- A no-argument constructor: the instance is created up front and each
  decoded property is written through its accessor as it arrives.
- A creator (``__init__`` or a factory method) with parameters: decoded
  values are buffered until every parameter is known, then the creator is
  called exactly once. Properties decoded after that go through their
  accessors.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional

from docbind.exceptions import CodecConfigurationException, DefinitionException
from docbind.pojo.type_descriptor import annotation_markers

_MISSING = object()


class CreatorParameter:
    """One parameter of a creator.

    Attributes:
        name: The Python parameter name.
        annotation: The resolved annotation, or None.
        markers: ``Annotated`` metadata found on the annotation.
        property_name: Name of the property the parameter is fed from;
            assigned when the class model is built.
    """

    def __init__(self, parameter: inspect.Parameter, annotation: Any):
        self.name = parameter.name
        self.kind = parameter.kind
        self.default = parameter.default
        self.annotation = annotation
        self.markers = annotation_markers(annotation) if annotation is not None else ()
        self.property_name: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    def __repr__(self) -> str:
        return f"CreatorParameter(name={self.name!r}, property_name={self.property_name!r})"


class CreatorExecutable:
    """A callable that produces instances of a class.

    Args:
        clazz: The class being created.
        invoker: The callable to invoke, or None if there is none.
        parameters: The parameters the invoker takes, in order.
        description: Name of the creator used in error messages.
    """

    def __init__(
        self,
        clazz: type,
        invoker: Optional[Callable],
        parameters: Optional[List[CreatorParameter]] = None,
        description: str = "__init__",
    ):
        self._clazz = clazz
        self._invoker = invoker
        self._parameters = list(parameters or [])
        self._description = description

    @classmethod
    def no_args(cls, clazz: type) -> "CreatorExecutable":
        return cls(clazz, clazz)

    @property
    def type(self) -> type:
        return self._clazz

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> List[CreatorParameter]:
        return self._parameters

    @property
    def property_names(self) -> List[str]:
        return [parameter.property_name for parameter in self._parameters]

    def get_instance(self, values: Optional[List[Any]] = None) -> Any:
        """Invoke the creator.

        Args:
            values: One value per parameter; ``_MISSING`` entries fall back
                to the parameter default, or None without one.
        """
        if self._invoker is None:
            raise CodecConfigurationException(
                f"Cannot find a public constructor for '{self._clazz.__qualname__}'."
            )
        args = []
        kwargs = {}
        for parameter, value in zip(self._parameters, values or []):
            if value is _MISSING:
                if parameter.has_default:
                    if parameter.kind == inspect.Parameter.POSITIONAL_ONLY:
                        args.append(parameter.default)
                    continue
                value = None
            if parameter.kind == inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value
        try:
            return self._invoker(*args, **kwargs)
        except Exception as e:
            raise CodecConfigurationException(str(e), e) from e

    def error(self, message: str) -> DefinitionException:
        return DefinitionException(
            f"Invalid creator {self._description} in {self._clazz.__qualname__}. {message}"
        )

    def __repr__(self) -> str:
        return f"CreatorExecutable({self._clazz.__qualname__}.{self._description})"


class InstanceCreator:
    """Single-use accumulator that produces one decoded instance.

    Not thread-safe; a new one is created for every decode call.
    """

    def __init__(self, executable: CreatorExecutable):
        self._executable = executable
        self._instance: Any = None
        self._constructed = False
        self._pending: Dict[str, int] = {}
        self._params: List[Any] = []
        self._cached_values: Dict[Any, Any] = {}
        if not executable.parameters:
            self._instance = executable.get_instance()
            self._constructed = True
        else:
            for index, property_name in enumerate(executable.property_names):
                self._pending[property_name] = index
            self._params = [_MISSING] * len(executable.parameters)

    def set(self, value: Any, property_model: Any) -> None:
        """Record a decoded property value."""
        if self._constructed:
            property_model.property_accessor.set(self._instance, value)
            return
        index = self._pending.pop(property_model.name, None)
        if index is not None:
            self._params[index] = value
        else:
            self._cached_values[property_model] = value
        if not self._pending:
            self._construct()

    def get_instance(self) -> Any:
        """Return the instance, invoking the creator now if it has not run yet."""
        if not self._constructed:
            missing = sorted(self._pending)
            try:
                self._construct()
            except CodecConfigurationException as e:
                raise CodecConfigurationException(
                    f"Could not construct new instance of: {self._executable.type.__qualname__}. "
                    f"Missing the following properties: {missing}",
                    e,
                ) from e
        return self._instance

    def _construct(self) -> None:
        self._instance = self._executable.get_instance(self._params)
        self._constructed = True
        cached, self._cached_values = self._cached_values, {}
        for property_model, value in cached.items():
            property_model.property_accessor.set(self._instance, value)


class InstanceCreatorFactory:
    """Creates a fresh :class:`InstanceCreator` per decode."""

    def __init__(self, executable: CreatorExecutable):
        self._executable = executable

    @property
    def executable(self) -> CreatorExecutable:
        return self._executable

    def create(self) -> InstanceCreator:
        return InstanceCreator(self._executable)
