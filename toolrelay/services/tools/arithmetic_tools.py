"""Arithmetic tools."""
from __future__ import annotations

from toolrelay.core.errors import INVALID_PARAMS, ToolError
from toolrelay.services.tools.registry import registry


def _fmt(value: float) -> str:
    """Render a number without a trailing ``.0`` for integral values."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@registry.tool(
    name="add",
    description="Adds two numbers together and returns their sum.",
    module="arithmetic",
)
async def add(a: float, b: float) -> str:
    """
    a: The first number to add.
    b: The second number to add.
    """
    return _fmt(a + b)


@registry.tool(
    name="subtract",
    description="Subtracts the second number from the first.",
    module="arithmetic",
)
async def subtract(a: float, b: float) -> str:
    """
    a: The number to subtract from.
    b: The number to subtract.
    """
    return _fmt(a - b)


@registry.tool(
    name="multiply",
    description="Multiplies two numbers.",
    module="arithmetic",
)
async def multiply(a: float, b: float) -> str:
    """
    a: The first factor.
    b: The second factor.
    """
    return _fmt(a * b)


@registry.tool(
    name="divide",
    description="Divides the first number by the second.",
    module="arithmetic",
)
async def divide(a: float, b: float) -> str:
    """
    a: The dividend.
    b: The divisor (must not be zero).
    """
    if b == 0:
        raise ToolError(INVALID_PARAMS, "Division by zero.")
    return _fmt(a / b)


@registry.tool(
    name="add_two_numbers",
    description=(
        "Adds two numbers together. This tool accepts any two numeric values "
        "(integers or decimals) and returns a sentence stating their sum."
    ),
    module="arithmetic",
)
async def add_two_numbers(firstNumber: float, secondNumber: float) -> str:
    """
    firstNumber: The first number to add.
    secondNumber: The second number to add.
    """
    total = firstNumber + secondNumber
    return f"The sum of {_fmt(firstNumber)} and {_fmt(secondNumber)} is {_fmt(total)}"
