# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Speculative (eager) execution of the commands preceding the cursor.

The executor walks the command nodes in source order and, for each command
whose descriptor exposes an eager function, awaits it to learn which bindings
the command would create if the script ran. Nothing is submitted anywhere:
eager functions only read through the provider and the content resolver.

Traversal rules:
- Commands starting on or after the cursor line are not evaluated.
- A block that contains the cursor line is entered: a scope is pushed, the head
  command's bindings go into it and the children before the cursor are processed
  with the head's module as default module. The scope is left open so that the
  completion assembler sees it.
- A block that does not contain the cursor is skipped as a whole, so nothing
  defined inside it leaks to its siblings.

Failures never stop the walk. Each evaluation is wrapped in an `EvalContext`
and run through the `HookManager` lifecycle; failed contexts are collected in
`EagerResult.failures`.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

from evmcl.ast import CommandNode, Position
from evmcl.bindings import Binding, BindingsManager
from evmcl.command_resolver import ResolvedCommand, resolve_command
from evmcl.context import EvalContext
from evmcl.exceptions import ExternalCallError, ResolutionError, StructuralError
from evmcl.hook_manager import HookManager, HookType
from evmcl.logger import logger
from evmcl.module import EagerEnvironment, ModuleDescriptor


@dataclass
class EagerResult:
    """
    Environment produced by an eager run.

    Attributes:
        bindings (BindingsManager): The store, with the scopes of the blocks
            enclosing the cursor still open.
        module_context (ModuleDescriptor | None): Module of the innermost block
            command enclosing the cursor, if any.
        failures (list[EvalContext]): Evaluations that were dropped.
    """

    bindings: BindingsManager
    module_context: ModuleDescriptor | None = None
    failures: list[EvalContext] = field(default_factory=list)


class EagerExecutor:
    """
    Runs eager functions of the commands preceding a cursor position.

    Args:
        environment (EagerEnvironment | None): Provider, resolver and loaded
            modules handed to eager functions.
        hooks (HookManager | None): Lifecycle hooks triggered around each evaluation.
        timeout (float | None): Upper bound of one eager evaluation in seconds.
        excluded (Sequence[str]): Unprefixed command names never evaluated.
    """

    def __init__(
        self,
        environment: EagerEnvironment | None = None,
        *,
        hooks: HookManager | None = None,
        timeout: float | None = 2.0,
        excluded: Sequence[str] = ("load",),
    ) -> None:
        self.environment = environment or EagerEnvironment()
        self.hooks = hooks or HookManager()
        self.timeout = timeout
        self.excluded = tuple(excluded)

    async def run(
        self,
        nodes: Sequence[CommandNode],
        bindings: BindingsManager,
        position: Position,
    ) -> EagerResult:
        result = EagerResult(bindings=bindings)
        result.module_context = await self._process(nodes, bindings, position, None, result)
        return result

    async def _process(
        self,
        nodes: Sequence[CommandNode],
        bindings: BindingsManager,
        position: Position,
        default_module: ModuleDescriptor | None,
        result: EagerResult,
    ) -> ModuleDescriptor | None:
        for node in nodes:
            if not node.module and node.name in self.excluded:
                continue
            if node.loc is not None and node.loc.start.line >= position.line:
                continue
            enters_block = node.block is not None and node.block.contains_line(position.line)
            if node.block is not None and not enters_block:
                continue

            try:
                resolved: ResolvedCommand | None = resolve_command(node, bindings, default_module)
            except ResolutionError as error:
                logger.debug("[EagerExecutor] Skipping %s: %s", node.qualified_name, error)
                resolved = None

            if enters_block and node.block is not None:
                bindings.enter_scope()
                if resolved is not None:
                    bindings.merge(await self._evaluate(resolved, node, bindings, result))
                block_module = resolved.module if resolved is not None else default_module
                # Later siblings start after the cursor line.
                return await self._process(
                    node.block.commands, bindings, position, block_module, result
                )

            if resolved is not None:
                bindings.merge(await self._evaluate(resolved, node, bindings, result))
        return default_module

    async def _evaluate(
        self,
        resolved: ResolvedCommand,
        node: CommandNode,
        bindings: BindingsManager,
        result: EagerResult,
    ) -> list[Binding]:
        command = resolved.command
        if not command.has_eager:
            return []

        context = EvalContext(
            name=resolved.qualified_name,
            kind="eager",
            line=node.loc.start.line if node.loc else None,
            args=tuple(node.args),
            target=node,
        )
        context.start_timer()
        try:
            await self.hooks.trigger(HookType.BEFORE, context)
            environment = self.environment.for_module(resolved.module)
            produced = await asyncio.wait_for(
                command.eager_execute(node.args, bindings, environment),
                timeout=self.timeout,
            )
            context.result = produced
            await self.hooks.trigger(HookType.ON_SUCCESS, context)
            return produced
        except StructuralError as error:
            context.exception = error
            await self.hooks.trigger(HookType.ON_ERROR, context)
            raise
        except asyncio.TimeoutError:
            context.exception = ExternalCallError(
                f"Eager evaluation of {context.name} timed out after {self.timeout}s"
            )
            return await self._drop(context, result)
        except Exception as error:
            context.exception = error
            return await self._drop(context, result)
        finally:
            context.stop_timer()
            await self.hooks.trigger(HookType.AFTER, context)

    async def _drop(self, context: EvalContext, result: EagerResult) -> list[Binding]:
        logger.debug("[EagerExecutor] %s", context.to_log_line())
        result.failures.append(context)
        await self.hooks.trigger(HookType.ON_ERROR, context)
        return []
