# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
The `aragonos` module.

`connect` opens a block whose commands act on a DAO:

    load aragonos as ar
    ar:connect my-dao (
      install vault:new
      grant @me vault TRANSFER_ROLE
    )

During eager evaluation `connect` resolves the DAO name through the provider and
binds `$dao` inside the block scope.
"""
from __future__ import annotations

from typing import Any

from evmcl.ast import AddressLiteral, ArgumentNode
from evmcl.bindings import Binding, BindingsManager, BindingsSpace
from evmcl.evaluation import identifier_value
from evmcl.exceptions import ExternalCallError
from evmcl.module import (
    CommandDescriptor,
    EagerEnvironment,
    HelperDescriptor,
    ModuleDescriptor,
)

APP_REPOS = ["agent", "finance", "token-manager", "vault", "voting"]

ROLES = [
    "TRANSFER_ROLE",
    "EXECUTE_ROLE",
    "RUN_SCRIPT_ROLE",
    "CREATE_VOTES_ROLE",
    "MODIFY_QUORUM_ROLE",
    "MODIFY_SUPPORT_ROLE",
    "MINT_ROLE",
    "BURN_ROLE",
    "ISSUE_ROLE",
    "ASSIGN_ROLE",
    "REVOKE_VESTINGS_ROLE",
    "CREATE_PAYMENTS_ROLE",
    "MANAGE_PAYMENTS_ROLE",
]


async def connect_eager(
    args: list[ArgumentNode], bindings: BindingsManager, environment: EagerEnvironment
) -> list[Binding]:
    dao = args[0] if args else None
    if isinstance(dao, AddressLiteral):
        return [Binding(space=BindingsSpace.USER, name="$dao", value=dao.value)]

    name = identifier_value(dao)
    if not name:
        raise ExternalCallError("connect requires a DAO name or address")
    if environment.provider is None:
        raise ExternalCallError(f"No provider available to resolve DAO {name}")
    address = await environment.provider.resolve_name(f"{name}.aragonid.eth")
    if not address:
        raise ExternalCallError(f"DAO {name} not found")
    return [Binding(space=BindingsSpace.USER, name="$dao", value=address)]


def install_arg_completions(index: int, args: list[ArgumentNode], bindings: BindingsManager) -> list[str]:
    if index != 0:
        return []
    return [f"{repo}:new" for repo in APP_REPOS]


def permission_arg_completions(
    index: int, args: list[ArgumentNode], bindings: BindingsManager
) -> list[str]:
    if index in (0, 1):
        return APP_REPOS
    if index == 2:
        return ROLES
    return []


async def aragon_ens_helper(values: list[Any], environment: EagerEnvironment) -> str | None:
    if not values or environment.provider is None:
        return None
    return await environment.provider.resolve_name(f"{values[0]}.aragonpm.eth")


def build_aragonos_module() -> ModuleDescriptor:
    return ModuleDescriptor.build(
        "aragonos",
        commands=[
            CommandDescriptor(
                name="connect",
                description="Open a block acting on a DAO",
                eager_fn=connect_eager,
            ),
            CommandDescriptor(
                name="install",
                description="Install a new app instance",
                arg_completions_fn=install_arg_completions,
            ),
            CommandDescriptor(name="upgrade", description="Upgrade an app to a new version"),
            CommandDescriptor(
                name="grant",
                description="Grant a permission",
                arg_completions_fn=permission_arg_completions,
            ),
            CommandDescriptor(
                name="revoke",
                description="Revoke a permission",
                arg_completions_fn=permission_arg_completions,
            ),
            CommandDescriptor(name="act", description="Execute a call through an agent"),
            CommandDescriptor(name="new-dao", description="Create a new DAO"),
        ],
        helpers=[
            HelperDescriptor(
                name="aragonEns",
                description="Resolve an aragonPM repository name",
                nargs=1,
                run=aragon_ens_helper,
            ),
        ],
        description="Aragon OS DAO management",
    )
