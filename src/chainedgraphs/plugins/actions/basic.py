"""Basic actions: constant values, passthrough, delays, and forced failures.

Useful for wiring chains, testing failure policies, and demos.
"""

import time
from typing import Any

from pydantic import Field

from chainedgraphs.contracts.actions import ActionInputs
from chainedgraphs.plugins.base import ActionConfig, ActionFailedError, BaseAction


def collect_outputs(inputs: ActionInputs) -> Any:
    """Combine dependency outputs into one value.

    No inputs -> None; one input -> its output; several -> dict keyed by
    'graph.node' in sorted order.
    """
    if not inputs:
        return None
    if len(inputs) == 1:
        return next(iter(inputs.values())).output
    return {str(ref): inputs[ref].output for ref in sorted(inputs)}


class ConstantConfig(ActionConfig):
    value: Any = Field(default=None, description="Value to return")


class Constant(BaseAction):
    """Return a configured value, ignoring inputs."""

    name = "constant"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        self._value = ConstantConfig.from_dict(self.options).value

    def execute(self, inputs: ActionInputs) -> Any:
        return self._value


class Passthrough(BaseAction):
    """Forward dependency outputs unchanged (see collect_outputs)."""

    name = "passthrough"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        ActionConfig.from_dict(self.options)

    def execute(self, inputs: ActionInputs) -> Any:
        return collect_outputs(inputs)


class SleepConfig(ActionConfig):
    seconds: float = Field(ge=0, description="How long to block")


class Sleep(BaseAction):
    """Block for a while, then forward dependency outputs."""

    name = "sleep"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        self._seconds = SleepConfig.from_dict(self.options).seconds

    def execute(self, inputs: ActionInputs) -> Any:
        time.sleep(self._seconds)
        return collect_outputs(inputs)


class FailConfig(ActionConfig):
    message: str = Field(default="forced failure", description="Error message")


class Fail(BaseAction):
    """Always raise ActionFailedError."""

    name = "fail"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        self._message = FailConfig.from_dict(self.options).message

    def execute(self, inputs: ActionInputs) -> Any:
        raise ActionFailedError(self._message)
