# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines the `BindingsManager` and `BindingsSpace` used to hold the environment an
evmcl script would have at a given point.

The store is a stack of scopes. The root scope lives for a whole analysis pass;
each command block that contains the cursor pushes a child scope whose lookups
fall back to its parents. Every scope is partitioned into binding spaces so that
a module named `token` and a variable named `$token` never collide.

Key Components:
- BindingsSpace: Closed set of binding spaces (module, alias, user)
- Binding: Immutable (space, name, value) record
- BindingsManager: Stack-of-scopes environment with bind/lookup/merge

Usage:
    bindings = BindingsManager()
    bindings.bind(BindingsSpace.MODULE, "std", std_module)
    bindings.enter_scope()
    bindings.bind(BindingsSpace.USER, "$amount", 10**18)
    bindings.lookup(BindingsSpace.USER, "$amount")
    bindings.exit_scope()
"""
from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterable, Iterator

from pydantic import BaseModel, ConfigDict
from rich.markup import escape
from rich.tree import Tree

from evmcl.console import console
from evmcl.exceptions import BindingNotFoundError, StructuralError


class BindingsSpace(Enum):
    """
    Enum for the binding spaces of an evmcl environment.

    Members:
        MODULE: A loaded module, keyed by its module name.
        ALIAS: An alternate name resolving to a loaded module name.
        USER: A script-defined variable such as `$amount`.

    Example:
        BindingsSpace("user") → BindingsSpace.USER
    """

    MODULE = "module"
    ALIAS = "alias"
    USER = "user"

    @classmethod
    def _missing_(cls, value: object) -> BindingsSpace:
        if not isinstance(value, str):
            raise ValueError(f"Invalid {cls.__name__}: {value!r}")
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Invalid {cls.__name__}: '{value}'. Must be one of: {valid}")

    def __str__(self) -> str:
        return self.value


class Binding(BaseModel):
    """A named value living in one binding space of one scope."""

    space: BindingsSpace
    name: str
    value: Any = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def __str__(self) -> str:
        return f"{self.space}:{self.name}"


Scope = dict[BindingsSpace, dict[str, Binding]]


def _new_scope() -> Scope:
    return {space: {} for space in BindingsSpace}


class BindingsManager:
    """
    Stack-of-scopes environment partitioned into binding spaces.

    The manager never decides whether a name may be rebound; callers enforce
    their own policy (module loads are append-only, `set` overwrites).

    Methods:
        enter_scope(): Push an empty scope.
        exit_scope(): Pop the innermost scope.
        scope(): Context manager pairing enter_scope and exit_scope.
        bind(space, name, value): Bind into the innermost scope.
        merge(other): Copy bindings from another manager or an iterable.
        lookup(space, name): Innermost-first lookup, raising on a miss.
        get_all_bindings(space): Visible bindings with shadowing applied.
    """

    def __init__(self, bindings: Iterable[Binding] | None = None) -> None:
        self._scopes: list[Scope] = [_new_scope()]
        if bindings:
            self.merge(bindings)

    @property
    def scope_depth(self) -> int:
        """Number of scopes above the root scope."""
        return len(self._scopes) - 1

    def enter_scope(self) -> None:
        self._scopes.append(_new_scope())

    def exit_scope(self) -> None:
        if len(self._scopes) == 1:
            raise StructuralError("Cannot exit the root scope")
        self._scopes.pop()

    @contextmanager
    def scope(self) -> Iterator[BindingsManager]:
        """Enter a child scope for the duration of the `with` block."""
        self.enter_scope()
        depth = len(self._scopes)
        try:
            yield self
        finally:
            if len(self._scopes) != depth:
                raise StructuralError(
                    f"Scope stack changed inside a scoped block ({depth} → {len(self._scopes)})"
                )
            self.exit_scope()

    def bind(self, space: BindingsSpace | str, name: str, value: Any = None) -> Binding:
        binding = Binding(space=BindingsSpace(space), name=name, value=value)
        self.set_binding(binding)
        return binding

    def set_binding(self, binding: Binding) -> None:
        self._scopes[-1][binding.space][binding.name] = binding

    def merge(self, other: BindingsManager | Iterable[Binding]) -> None:
        """
        Copy bindings into the innermost scope.

        A `BindingsManager` is copied outermost scope first, so the bindings that
        shadow others in the source keep shadowing them here.
        """
        if isinstance(other, BindingsManager):
            bindings: Iterable[Binding] = (
                binding
                for scope in other._scopes
                for space_bindings in scope.values()
                for binding in space_bindings.values()
            )
        else:
            bindings = other
        for binding in bindings:
            if not isinstance(binding, Binding):
                raise StructuralError(f"Cannot merge non-binding value: {binding!r}")
            self.set_binding(binding)

    def lookup_binding(self, space: BindingsSpace | str, name: str) -> Binding:
        space = BindingsSpace(space)
        for scope in reversed(self._scopes):
            binding = scope[space].get(name)
            if binding is not None:
                return binding
        raise BindingNotFoundError(space, name)

    def lookup(self, space: BindingsSpace | str, name: str) -> Any:
        """Return the value bound to `name`, searching innermost scope first."""
        return self.lookup_binding(space, name).value

    def get(self, space: BindingsSpace | str, name: str, default: Any = None) -> Any:
        try:
            return self.lookup(space, name)
        except BindingNotFoundError:
            return default

    def has_binding(self, space: BindingsSpace | str, name: str) -> bool:
        try:
            self.lookup_binding(space, name)
        except BindingNotFoundError:
            return False
        return True

    def get_all_bindings(self, space: BindingsSpace | str | None = None) -> list[Binding]:
        """
        Return every visible binding, inner scopes shadowing outer ones.

        Order follows the first time each name was bound, outermost scope first.
        """
        spaces = [BindingsSpace(space)] if space is not None else list(BindingsSpace)
        visible: dict[tuple[BindingsSpace, str], Binding] = {}
        for scope in self._scopes:
            for current_space in spaces:
                for name, binding in scope[current_space].items():
                    visible[(current_space, name)] = binding
        return list(visible.values())

    def preview(self, parent: Tree | None = None) -> Tree:
        tree = parent or Tree("[bold]Bindings[/]")
        for depth, scope in enumerate(self._scopes):
            branch = tree.add("root scope" if depth == 0 else f"scope {depth}")
            for space, space_bindings in scope.items():
                for name, binding in space_bindings.items():
                    branch.add(f"[muted]{space}[/] {escape(name)} = {escape(_describe(binding.value))}")
        if parent is None:
            console.print(tree)
        return tree

    def __iter__(self) -> Iterator[Binding]:
        return iter(self.get_all_bindings())

    def __len__(self) -> int:
        return len(self.get_all_bindings())

    def __str__(self) -> str:
        lines = ["<BindingsManager>"]
        for depth, scope in enumerate(self._scopes):
            names = [str(b) for space_bindings in scope.values() for b in space_bindings.values()]
            lines.append(f"  scope {depth}: {', '.join(names) if names else '—'}")
        return "\n".join(lines)


def _describe(value: Any) -> str:
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return f"<{type(value).__name__} {name}>"
    return repr(value)
