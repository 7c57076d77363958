# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Module, command and helper descriptors.

A `ModuleDescriptor` is what a `load` command brings into a script: an ordered
set of commands and helpers. Commands optionally carry two capabilities, each
checked for presence before use:

- `eager_fn`: a side-effect-free function returning the bindings the command
  would create if it ran. It receives the command's argument nodes, the current
  bindings store and an `EagerEnvironment` with the external collaborators.
- `arg_completions_fn`: a function returning completion candidates for the
  argument being typed. It receives the argument index, the argument nodes typed
  so far and the bindings store.

Both may be sync or async. Eager functions may return `None`, an iterable of
`Binding` or a `BindingsManager` built as a sub-environment.
"""
from __future__ import annotations

from typing import Any, Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from evmcl.ast import ArgumentNode
from evmcl.bindings import Binding, BindingsManager
from evmcl.exceptions import StructuralError
from evmcl.utils import ensure_async

EagerFunction = Callable[..., Any]
ArgCompletionFunction = Callable[..., Any]
HelperRunFunction = Callable[..., Any]


class CommandDescriptor(BaseModel):
    """Metadata of a single module command."""

    name: str
    description: str = ""
    eager_fn: EagerFunction | None = None
    arg_completions_fn: ArgCompletionFunction | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def has_eager(self) -> bool:
        return self.eager_fn is not None

    @property
    def has_arg_completions(self) -> bool:
        return self.arg_completions_fn is not None

    async def eager_execute(
        self,
        args: list[ArgumentNode],
        bindings: BindingsManager,
        environment: EagerEnvironment,
    ) -> list[Binding]:
        """Run the eager function and normalize its result to a list of bindings."""
        if self.eager_fn is None:
            return []
        result = await ensure_async(self.eager_fn)(args, bindings, environment)
        if result is None:
            return []
        if isinstance(result, BindingsManager):
            sub_environment = BindingsManager()
            sub_environment.merge(result)
            return sub_environment.get_all_bindings()
        bindings_list = list(result)
        for binding in bindings_list:
            if not isinstance(binding, Binding):
                raise StructuralError(
                    f"Eager function of '{self.name}' returned a non-binding value: {binding!r}"
                )
        return bindings_list

    async def complete_arg(
        self, index: int, args: list[ArgumentNode], bindings: BindingsManager
    ) -> list[str]:
        if self.arg_completions_fn is None:
            return []
        candidates = await ensure_async(self.arg_completions_fn)(index, args, bindings)
        return [str(candidate) for candidate in candidates or []]


class HelperDescriptor(BaseModel):
    """Metadata of a helper function such as `@token` or `@me`."""

    name: str
    description: str = ""
    nargs: int = 0
    run: HelperRunFunction | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def label(self) -> str:
        return f"@{self.name}"

    @property
    def insert_text(self) -> str:
        return f"{self.label}(" if self.nargs else self.label

    async def call(self, values: list[Any], environment: EagerEnvironment) -> Any:
        if self.run is None:
            return None
        return await ensure_async(self.run)(values, environment)


class ModuleDescriptor(BaseModel):
    """A loadable module: an ordered set of commands and helpers."""

    name: str
    description: str = ""
    commands: dict[str, CommandDescriptor] = Field(default_factory=dict)
    helpers: dict[str, HelperDescriptor] = Field(default_factory=dict)
    source: str | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def build(
        cls,
        name: str,
        commands: Iterable[CommandDescriptor] = (),
        helpers: Iterable[HelperDescriptor] = (),
        **kwargs: Any,
    ) -> ModuleDescriptor:
        return cls(
            name=name,
            commands={command.name: command for command in commands},
            helpers={helper.name: helper for helper in helpers},
            **kwargs,
        )

    def get_command(self, name: str) -> CommandDescriptor | None:
        return self.commands.get(name)

    def get_helper(self, name: str) -> HelperDescriptor | None:
        return self.helpers.get(name)

    def __str__(self) -> str:
        return (
            f"ModuleDescriptor(name={self.name!r}, commands={list(self.commands)}, "
            f"helpers={list(self.helpers)})"
        )


class EagerEnvironment(BaseModel):
    """
    External collaborators and module context handed to eager functions.

    Attributes:
        provider (Any): Opaque blockchain read handle (see `evmcl.protocols.Provider`).
        resolver (Any): Opaque content resolver (see `evmcl.protocols.ContentResolver`).
        module (ModuleDescriptor | None): Module of the command being evaluated.
        modules (list[ModuleDescriptor]): Every module loaded in the script.
    """

    provider: Any = None
    resolver: Any = None
    module: ModuleDescriptor | None = None
    modules: list[ModuleDescriptor] = Field(default_factory=list)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def get_helper(self, name: str) -> HelperDescriptor | None:
        for module in self.modules:
            helper = module.get_helper(name)
            if helper is not None:
                return helper
        return None

    def for_module(self, module: ModuleDescriptor) -> EagerEnvironment:
        return self.model_copy(update={"module": module})
