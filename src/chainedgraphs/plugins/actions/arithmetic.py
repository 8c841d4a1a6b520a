"""Numeric actions over dependency outputs."""

from typing import Any

from pydantic import Field

from chainedgraphs.contracts.actions import ActionInputs
from chainedgraphs.plugins.base import ActionConfig, BaseAction


def _numeric_outputs(inputs: ActionInputs) -> list[float]:
    values: list[float] = []
    for ref in sorted(inputs):
        output = inputs[ref].output
        # bool is an int subclass but never a meaningful operand here
        if isinstance(output, bool) or not isinstance(output, int | float):
            raise TypeError(f"Input '{ref}' is not numeric: {type(output).__name__}")
        values.append(output)
    return values


class SumConfig(ActionConfig):
    start: float = Field(default=0, description="Value added to the sum of inputs")


class Sum(BaseAction):
    """Sum numeric dependency outputs."""

    name = "sum"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        self._start = SumConfig.from_dict(self.options).start

    def execute(self, inputs: ActionInputs) -> Any:
        return self._start + sum(_numeric_outputs(inputs))


class MultiplyConfig(ActionConfig):
    factor: float = Field(description="Multiplier applied to the sum of inputs")


class Multiply(BaseAction):
    """Multiply the sum of numeric dependency outputs by a factor."""

    name = "multiply"

    def __init__(self, options: dict[str, Any] | None = None) -> None:
        super().__init__(options)
        self._factor = MultiplyConfig.from_dict(self.options).factor

    def execute(self, inputs: ActionInputs) -> Any:
        return sum(_numeric_outputs(inputs)) * self._factor
