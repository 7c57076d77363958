# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines `CompletionEngine`, the entry point of the evmcl completion engine.

One analysis pass per request:

1. Parse the script text into a syntax tree.
2. Resolve the modules loaded before the cursor (through the `SessionCache`)
   and bind them in the MODULE and ALIAS spaces.
3. Eagerly evaluate the commands preceding the cursor to learn the USER
   bindings visible at the cursor.
4. Assemble the ordered completion list.

Every pass gets a monotonic request id. A pass that is no longer the latest
when it completes is superseded: it returns no items and leaves the cache
untouched. No exception ever escapes a pass; failures are logged and reported
to the engine's `HookManager`.

Example:
    engine = CompletionEngine(provider=provider)
    items = await engine.provide_completion_items(script, Position(line=3, col=0))
"""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import Any, Sequence

from evmcl.ast import CommandNode, Position
from evmcl.bindings import Binding, BindingsManager, BindingsSpace
from evmcl.cache import SessionCache, load_entry
from evmcl.completion import CompletionItem, assemble_completion_items
from evmcl.config import EngineConfig
from evmcl.context import EvalContext
from evmcl.debug import register_debug_hooks
from evmcl.eager import EagerExecutor
from evmcl.exceptions import (
    AliasAlreadyUsedError,
    ExternalCallError,
    ModuleAlreadyLoadedError,
    ResolutionError,
)
from evmcl.hook_manager import HookManager, HookType
from evmcl.logger import logger
from evmcl.module import EagerEnvironment, ModuleDescriptor
from evmcl.parser import parse_script
from evmcl.protocols import ContentResolver, Provider, ScriptParser
from evmcl.registry import ModuleRegistry


@dataclass
class AnalysisResult:
    """
    Outcome of one analysis pass.

    Attributes:
        request_id (int): Monotonic id of the pass.
        items (list[CompletionItem]): Ordered completion items.
        bindings (BindingsManager | None): Environment at the cursor.
        parse_errors (list): Errors reported by the parser.
        failures (list[EvalContext]): Dropped module loads and eager evaluations.
        superseded (bool): True if a newer pass started before this one completed.
    """

    request_id: int
    items: list[CompletionItem] = field(default_factory=list)
    bindings: BindingsManager | None = None
    parse_errors: list[Any] = field(default_factory=list)
    failures: list[EvalContext] = field(default_factory=list)
    superseded: bool = False


@dataclass
class _LoadedModule:
    name: str
    alias: str | None
    module: ModuleDescriptor | None


class CompletionEngine:
    """
    Computes completion items for an evmcl script and a cursor position.

    Args:
        registry (ModuleRegistry | None): Resolves module names. Defaults to the
            registry described by `config`.
        provider (Provider | None): Blockchain read handle passed to eager functions.
        resolver (ContentResolver | None): Content resolver used for remote modules.
        cache (SessionCache | None): Cache shared across passes.
        config (EngineConfig | None): Timeouts and defaults.
        parser (ScriptParser): Turns script text into `(SyntaxTree, errors)`.
        hooks (HookManager | None): Hooks triggered around module loads and eager
            evaluations.
    """

    def __init__(
        self,
        registry: ModuleRegistry | None = None,
        *,
        provider: Provider | None = None,
        resolver: ContentResolver | None = None,
        cache: SessionCache | None = None,
        config: EngineConfig | None = None,
        parser: ScriptParser = parse_script,
        hooks: HookManager | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.registry = registry if registry is not None else self.config.build_registry()
        self.provider = provider
        self.resolver = resolver
        self.cache = cache if cache is not None else SessionCache()
        self.parser = parser
        self.hooks = hooks or HookManager()
        if self.config.logging_hooks:
            register_debug_hooks(self.hooks)
        self._request_ids = itertools.count(1)
        self._latest_request = 0

    def is_latest(self, request_id: int) -> bool:
        return request_id == self._latest_request

    def invalidate_cache(self) -> None:
        logger.debug("[CompletionEngine] Session cache invalidated")
        self.cache.invalidate()

    async def provide_completion_items(
        self, text: str, position: Position | tuple[int, int]
    ) -> list[CompletionItem]:
        """Return the ordered completion items for `position`. Never raises."""
        result = await self.analyze(text, position)
        return result.items

    async def analyze(self, text: str, position: Position | tuple[int, int]) -> AnalysisResult:
        """Run one analysis pass and return everything it computed. Never raises."""
        request_id = next(self._request_ids)
        self._latest_request = request_id
        result = AnalysisResult(request_id=request_id)
        try:
            if not isinstance(position, Position):
                position = Position(*position)
            await self._analyze(text, position, result)
        except Exception as error:
            logger.error(
                "[CompletionEngine] Analysis pass %d failed: %s",
                request_id,
                error,
                exc_info=True,
            )
            result.items = []

        if not self.is_latest(request_id):
            logger.debug("[CompletionEngine] Pass %d superseded", request_id)
            result.superseded = True
            result.items = []
        return result

    async def _analyze(self, text: str, position: Position, result: AnalysisResult) -> None:
        tree, parse_errors = self.parser(text)
        result.parse_errors = list(parse_errors)

        lines = text.split("\n")
        line_text = lines[position.line - 1] if 0 < position.line <= len(lines) else ""

        # Cache key: every top-level load, independent of the cursor.
        signature = self.cache.signature_for(tree.get_load_commands())
        load_nodes = tree.get_load_commands(position.line)
        self.cache.sync(signature)

        loaded = await self.load_modules(load_nodes, result)
        bindings = BindingsManager()
        cache_bindings = self._bind_modules(loaded, bindings, result)
        result.bindings = bindings

        modules = [
            binding.value for binding in bindings.get_all_bindings(BindingsSpace.MODULE)
        ]
        executor = EagerExecutor(
            EagerEnvironment(provider=self.provider, resolver=self.resolver, modules=modules),
            hooks=self.hooks,
            timeout=self.config.eager_timeout,
            excluded=self.config.excluded_commands,
        )
        nodes = tree.get_commands_until_line(
            position.line, exclude=self.config.excluded_commands
        )
        eager = await executor.run(nodes, bindings, position)
        result.failures.extend(eager.failures)

        node: CommandNode | None = tree.get_command_at_line(position.line)
        result.items = await assemble_completion_items(
            line_text, position, node, bindings, eager.module_context
        )

        if self.is_latest(result.request_id):
            self.cache.update(signature, cache_bindings)

    async def load_modules(
        self, load_nodes: Sequence[CommandNode], result: AnalysisResult
    ) -> list[_LoadedModule]:
        """
        Resolve the default module and every loaded module concurrently.

        Results keep the order of the `load` commands.
        """
        entries: list[tuple[str, str | None]] = [(self.config.default_module, None)]
        for node in load_nodes:
            entry = load_entry(node)
            if entry is None:
                logger.debug("[CompletionEngine] Ignoring load without a module name")
                continue
            entries.append(entry)

        unique_names = list(dict.fromkeys(name for name, _ in entries))
        modules = await asyncio.gather(
            *(self._resolve_module(name, result) for name in unique_names)
        )
        by_name = dict(zip(unique_names, modules))
        return [_LoadedModule(name, alias, by_name[name]) for name, alias in entries]

    async def _resolve_module(self, name: str, result: AnalysisResult) -> ModuleDescriptor | None:
        cached = self.cache.get(BindingsSpace.MODULE, name)
        if cached is not None:
            return cached.value

        context = EvalContext(name=name, kind="module", target=name)
        context.start_timer()
        try:
            await self.hooks.trigger(HookType.BEFORE, context)
            module = await asyncio.wait_for(
                self.registry.resolve(name, provider=self.provider, resolver=self.resolver),
                timeout=self.config.module_timeout,
            )
            context.result = module
            await self.hooks.trigger(HookType.ON_SUCCESS, context)
            return module
        except asyncio.TimeoutError:
            context.exception = ExternalCallError(
                f"Loading module {name} timed out after {self.config.module_timeout}s"
            )
            return await self._drop(context, result)
        except (ResolutionError, ExternalCallError) as error:
            context.exception = error
            return await self._drop(context, result)
        except Exception as error:
            context.exception = ExternalCallError(f"Loading module {name} failed: {error}")
            return await self._drop(context, result)
        finally:
            context.stop_timer()
            await self.hooks.trigger(HookType.AFTER, context)

    def _bind_modules(
        self,
        loaded: list[_LoadedModule],
        bindings: BindingsManager,
        result: AnalysisResult,
    ) -> list[Binding]:
        """
        Bind resolved modules in load order.

        Returns:
            list[Binding]: Bindings for the session cache, keyed by load name.
        """
        cache_bindings: list[Binding] = []
        for entry in loaded:
            if entry.module is None:
                continue
            module = entry.module
            try:
                if bindings.has_binding(BindingsSpace.MODULE, module.name):
                    raise ModuleAlreadyLoadedError(module.name)
                if entry.alias and bindings.has_binding(BindingsSpace.ALIAS, entry.alias):
                    raise AliasAlreadyUsedError(entry.alias)
            except ResolutionError as error:
                logger.warning("[CompletionEngine] Skipping load of %s: %s", entry.name, error)
                result.failures.append(
                    EvalContext(name=entry.name, kind="module", target=entry.name, exception=error)
                )
                continue

            bindings.bind(BindingsSpace.MODULE, module.name, module)
            cache_bindings.append(
                Binding(space=BindingsSpace.MODULE, name=entry.name, value=module)
            )
            if entry.alias:
                alias_binding = bindings.bind(BindingsSpace.ALIAS, entry.alias, module.name)
                cache_bindings.append(alias_binding)
        return cache_bindings

    async def _drop(self, context: EvalContext, result: AnalysisResult) -> None:
        logger.info("[CompletionEngine] %s", context.to_log_line())
        result.failures.append(context)
        await self.hooks.trigger(HookType.ON_ERROR, context)
        return None

    def __str__(self) -> str:
        return (
            f"CompletionEngine(modules={self.registry.names}, cache={self.cache}, "
            f"latest_request={self._latest_request})"
        )
