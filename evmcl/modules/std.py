# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
The `std` module, implicitly loaded in every script.

Commands:
- load: Load a module, optionally under an alias (`load aragonos as ar`).
  Resolved by the engine before eager evaluation, so it has no eager function.
- set: Bind a user variable (`set $amount 1200e18`).
- exec: Encode a contract call.
- switch: Switch the target chain.
- print: Print values while the script runs.

Helpers expose the usual std helpers. Only `@me` and `@date` can be computed
during eager evaluation; the others evaluate to `None`.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from evmcl.ast import ArgumentNode, VariableIdentifier
from evmcl.bindings import Binding, BindingsManager, BindingsSpace
from evmcl.evaluation import evaluate_argument
from evmcl.exceptions import ExternalCallError
from evmcl.logger import logger
from evmcl.module import (
    CommandDescriptor,
    EagerEnvironment,
    HelperDescriptor,
    ModuleDescriptor,
)

CHAINS = [
    "mainnet",
    "goerli",
    "sepolia",
    "gnosis",
    "polygon",
    "optimism",
    "arbitrum",
]


async def set_eager(
    args: list[ArgumentNode], bindings: BindingsManager, environment: EagerEnvironment
) -> list[Binding] | None:
    if not args or not isinstance(args[0], VariableIdentifier):
        return None
    name = args[0].name
    value = None
    if len(args) > 1:
        try:
            value = await evaluate_argument(args[1], bindings, environment)
        except Exception as error:
            logger.debug("[std:set] Could not evaluate value of %s: %s", name, error)
    return [Binding(space=BindingsSpace.USER, name=name, value=value)]


def switch_arg_completions(index: int, args: list[ArgumentNode], bindings: BindingsManager) -> list[str]:
    return CHAINS if index == 0 else []


async def me_helper(values: list[Any], environment: EagerEnvironment) -> str | None:
    if environment.provider is None:
        raise ExternalCallError("No provider available to resolve @me")
    accounts = await environment.provider.request("eth_accounts", [])
    return accounts[0] if accounts else None


def date_helper(values: list[Any], environment: EagerEnvironment) -> int:
    """`@date(2024-01-01)`, `@date(now)` or `@date(now, 7d)` as a unix timestamp."""
    text = str(values[0]) if values and values[0] is not None else "now"
    if text == "now":
        moment = datetime.now(timezone.utc)
    else:
        moment = datetime.fromisoformat(text)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
    offset = int(values[1]) if len(values) > 1 and values[1] is not None else 0
    return int(moment.timestamp()) + offset


def build_std_module() -> ModuleDescriptor:
    return ModuleDescriptor.build(
        "std",
        commands=[
            CommandDescriptor(name="load", description="Load a module, optionally under an alias"),
            CommandDescriptor(name="set", description="Bind a user variable", eager_fn=set_eager),
            CommandDescriptor(name="exec", description="Encode a contract call"),
            CommandDescriptor(
                name="switch",
                description="Switch the target chain",
                arg_completions_fn=switch_arg_completions,
            ),
            CommandDescriptor(name="print", description="Print values while the script runs"),
        ],
        helpers=[
            HelperDescriptor(name="me", description="Connected account", run=me_helper),
            HelperDescriptor(name="date", description="Unix timestamp of a date", nargs=1, run=date_helper),
            HelperDescriptor(name="token", description="Token address by symbol", nargs=1),
            HelperDescriptor(name="token.balance", description="Token balance of a holder", nargs=2),
            HelperDescriptor(name="get", description="Read a contract value", nargs=2),
            HelperDescriptor(name="id", description="Keccak-256 of a string", nargs=1),
            HelperDescriptor(name="namehash", description="ENS namehash of a name", nargs=1),
            HelperDescriptor(name="ipfs", description="Upload text to IPFS", nargs=1),
        ],
        description="Standard commands and helpers",
    )
