"""Base classes for action plugins and their typed configuration.

An action plugin is a NodeAction with a registered name and a pydantic
options model. YAML chain definitions refer to actions by name; the
plugin manager instantiates them with the node's options.

Example:
    class ScaleConfig(ActionConfig):
        factor: float = 1.0

    class Scale(BaseAction):
        name = "scale"

        def __init__(self, options):
            super().__init__(options)
            self._factor = ScaleConfig.from_dict(self.options).factor

        def execute(self, inputs):
            return sum(r.output for r in inputs.values()) * self._factor
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ValidationError

from chainedgraphs.contracts.actions import ActionInputs


class PluginConfigError(Exception):
    """Raised when action options are invalid."""

    pass


class ActionFailedError(Exception):
    """Raised by actions that fail on purpose (e.g. the 'fail' action)."""

    pass


class ActionConfig(BaseModel):
    """Base class for typed action options.

    Rejects unknown fields so that typos in YAML fail at load time.
    """

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            PluginConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise PluginConfigError(f"Invalid configuration for {cls.__name__}: options must be a dict, got {type(config).__name__}.")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise PluginConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e


class BaseAction(ABC):
    """Base class for registered node actions.

    Subclasses set ``name``, parse their options with their own
    ActionConfig subclass in __init__, and implement execute().
    Instances are created once per node and may be called from a worker
    thread, so execute() must not mutate shared state.
    """

    name: ClassVar[str]

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        self.options: dict[str, Any] = dict(options or {})

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.options!r})"

    @abstractmethod
    def execute(self, inputs: ActionInputs) -> Any:
        """Produce the node's output from its dependencies' results."""
        ...
