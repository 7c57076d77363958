# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Best-effort static evaluation of argument nodes.

Eager functions use `evaluate_argument` to turn argument nodes into plain Python
values without touching the chain beyond read calls made by helpers. Numbers
follow the evmcl literal rules: `1e18` is an integer, `12.5e18` is scaled before
truncation and time units (`s m h d w mo y`) are converted to seconds.
"""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from evmcl.ast import (
    AddressLiteral,
    ArgumentNode,
    ArrayExpression,
    AsExpression,
    BoolLiteral,
    HelperFunction,
    Identifier,
    NumberLiteral,
    OptionNode,
    StringLiteral,
    VariableIdentifier,
)
from evmcl.bindings import BindingsManager, BindingsSpace
from evmcl.module import EagerEnvironment

TIME_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
    "w": 60 * 60 * 24 * 7,
    "mo": 60 * 60 * 24 * 30,
    "y": 60 * 60 * 24 * 365,
}

NUMBER_PARTS_RE = re.compile(r"^(-?\d+(?:\.\d+)?)(?:e(\d+))?(mo|[smhdwy])?$")


def parse_number(raw: str) -> int | Decimal:
    """Parse an evmcl numeric literal such as `1200e18`, `0.5e18` or `7d`."""
    match = NUMBER_PARTS_RE.match(raw)
    if not match:
        raise ValueError(f"Invalid number literal: {raw!r}")
    mantissa, exponent, unit = match.groups()
    try:
        value = Decimal(mantissa)
    except InvalidOperation as error:
        raise ValueError(f"Invalid number literal: {raw!r}") from error
    if exponent:
        value *= Decimal(10) ** int(exponent)
    if unit:
        value *= TIME_UNITS[unit]
    if value == value.to_integral_value():
        return int(value)
    return value


async def evaluate_argument(
    node: ArgumentNode, bindings: BindingsManager, environment: EagerEnvironment
) -> Any:
    """
    Evaluate an argument node to a value.

    Unknown variables and helpers evaluate to `None`. Helper failures propagate
    so that callers can decide whether a missing value drops their binding.
    """
    if isinstance(node, (StringLiteral, AddressLiteral, BoolLiteral)):
        return node.value
    if isinstance(node, NumberLiteral):
        return parse_number(node.raw)
    if isinstance(node, Identifier):
        return node.value
    if isinstance(node, VariableIdentifier):
        return bindings.get(BindingsSpace.USER, node.name)
    if isinstance(node, ArrayExpression):
        return [await evaluate_argument(element, bindings, environment) for element in node.elements]
    if isinstance(node, AsExpression):
        return await evaluate_argument(node.left, bindings, environment)
    if isinstance(node, OptionNode):
        if node.value is None:
            return True
        return await evaluate_argument(node.value, bindings, environment)
    if isinstance(node, HelperFunction):
        helper = environment.get_helper(node.name)
        if helper is None:
            return None
        values = [await evaluate_argument(arg, bindings, environment) for arg in node.args]
        return await helper.call(values, environment)
    return None


def identifier_value(node: ArgumentNode | None) -> str | None:
    """Return the raw text of an identifier-like node, if it has one."""
    if isinstance(node, Identifier):
        return node.value
    if isinstance(node, (StringLiteral, AddressLiteral)):
        return node.value
    if isinstance(node, VariableIdentifier):
        return node.name
    return None
