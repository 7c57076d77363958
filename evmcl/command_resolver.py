# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Resolves command nodes to the module and command descriptor they refer to.

A prefixed command (`ar:connect`) is resolved through the ALIAS space first and
then through the MODULE space, so both `load aragonos as ar` followed by
`ar:connect` and a plain `aragonos:connect` work. An unprefixed command is looked
up in the module of the enclosing block command and then in `std`.

Every failure raises a `ResolutionError` subclass; callers skip the node.
"""
from __future__ import annotations

from typing import NamedTuple

from evmcl.ast import CommandNode
from evmcl.bindings import BindingsManager, BindingsSpace
from evmcl.exceptions import (
    ResolutionError,
    UnknownAliasError,
    UnknownCommandError,
    UnknownModuleError,
)
from evmcl.module import CommandDescriptor, ModuleDescriptor

STD_MODULE = "std"


class ResolvedCommand(NamedTuple):
    module: ModuleDescriptor
    command: CommandDescriptor

    @property
    def qualified_name(self) -> str:
        return f"{self.module.name}:{self.command.name}"


def resolve_module(prefix: str, bindings: BindingsManager) -> ModuleDescriptor:
    """
    Resolve a command prefix to a loaded module.

    Raises:
        UnknownAliasError: If `prefix` is an alias of a module that is not loaded.
        UnknownModuleError: If `prefix` is neither an alias nor a module name.
    """
    module_name = bindings.get(BindingsSpace.ALIAS, prefix)
    if module_name is not None:
        module = bindings.get(BindingsSpace.MODULE, module_name)
        if module is None:
            raise UnknownAliasError(prefix, module_name)
        return module
    module = bindings.get(BindingsSpace.MODULE, prefix)
    if module is None:
        raise UnknownModuleError(prefix)
    return module


def resolve_command(
    node: CommandNode,
    bindings: BindingsManager,
    default_module: ModuleDescriptor | None = None,
) -> ResolvedCommand:
    """
    Resolve `node` against the modules bound in `bindings`.

    Args:
        node (CommandNode): The command to resolve.
        bindings (BindingsManager): Store holding MODULE and ALIAS bindings.
        default_module (ModuleDescriptor | None): Module of the innermost
            enclosing block command, used for unprefixed commands.

    Raises:
        UnknownModuleError: Unknown prefix, or no module to resolve against.
        UnknownAliasError: Alias of a module that is not loaded.
        UnknownCommandError: The module does not define the command.
    """
    if node.module:
        module = resolve_module(node.module, bindings)
        command = module.get_command(node.name) if node.name else None
        if command is None:
            raise UnknownCommandError(module.name, node.name)
        return ResolvedCommand(module, command)

    candidates: list[ModuleDescriptor] = []
    if default_module is not None:
        candidates.append(default_module)
    std = bindings.get(BindingsSpace.MODULE, STD_MODULE)
    if std is not None and all(candidate.name != std.name for candidate in candidates):
        candidates.append(std)
    if not candidates:
        raise UnknownModuleError(STD_MODULE)

    for module in candidates:
        command = module.get_command(node.name) if node.name else None
        if command is not None:
            return ResolvedCommand(module, command)
    raise UnknownCommandError(candidates[0].name, node.name)


def is_resolvable(
    node: CommandNode,
    bindings: BindingsManager,
    default_module: ModuleDescriptor | None = None,
) -> bool:
    try:
        resolve_command(node, bindings, default_module)
    except ResolutionError:
        return False
    return True
