# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Completion assembler.

Turns the environment computed by an analysis pass into an ordered list of
`CompletionItem`. The cursor context decides what is offered:

- Typing a command name: command items of every module in scope. `std`
  commands are unqualified, the others are rendered `prefix:name` where the
  prefix is the load alias when there is one.
- Anywhere else: argument items of the command on the cursor line, then
  helper items, then variable items.

Every item replaces the word under the cursor.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from evmcl.ast import CommandNode, Position
from evmcl.bindings import BindingsManager, BindingsSpace
from evmcl.command_resolver import STD_MODULE, resolve_command
from evmcl.exceptions import ResolutionError
from evmcl.logger import logger
from evmcl.module import ModuleDescriptor

WORD_CHAR_RE = re.compile(r"[A-Za-z0-9_$@:.\-]")


class CompletionKind(Enum):
    """Kind of a completion item."""

    COMMAND = "command"
    HELPER = "helper"
    VARIABLE = "variable"
    ARGUMENT = "argument"

    def __str__(self) -> str:
        return self.value


class Range(BaseModel):
    """Replace range on one line; `end_col` is exclusive."""

    line: int
    start_col: int
    end_col: int

    model_config = ConfigDict(frozen=True)


class CompletionItem(BaseModel):
    label: str
    insert_text: str
    range: Range
    kind: CompletionKind
    detail: str | None = None

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.kind}:{self.label}"


def get_word_range(line_text: str, line: int, col: int) -> Range:
    """Return the range of the word around `col` on `line_text`."""
    col = max(0, min(col, len(line_text)))
    start = col
    while start > 0 and WORD_CHAR_RE.match(line_text[start - 1]):
        start -= 1
    end = col
    while end < len(line_text) and WORD_CHAR_RE.match(line_text[end]):
        end += 1
    return Range(line=line, start_col=start, end_col=end)


def modules_in_scope(
    bindings: BindingsManager,
) -> tuple[list[ModuleDescriptor], dict[str, str]]:
    """
    Return the loaded modules in load order and the alias of each aliased module.

    Returns:
        tuple: `(modules, aliases)` where `aliases` maps module name to alias.
    """
    modules = [
        binding.value
        for binding in bindings.get_all_bindings(BindingsSpace.MODULE)
        if isinstance(binding.value, ModuleDescriptor)
    ]
    aliases: dict[str, str] = {}
    for binding in bindings.get_all_bindings(BindingsSpace.ALIAS):
        aliases.setdefault(binding.value, binding.name)
    return modules, aliases


def build_module_completion_items(
    modules: Sequence[ModuleDescriptor],
    aliases: dict[str, str],
    replace_range: Range,
) -> tuple[list[CompletionItem], list[CompletionItem]]:
    """Build `(command items, helper items)` for the given modules."""
    command_items: list[CompletionItem] = []
    helper_items: list[CompletionItem] = []
    seen_helpers: set[str] = set()
    for module in modules:
        prefix = None if module.name == STD_MODULE else aliases.get(module.name, module.name)
        for command in module.commands.values():
            label = f"{prefix}:{command.name}" if prefix else command.name
            command_items.append(
                CompletionItem(
                    label=label,
                    insert_text=label,
                    range=replace_range,
                    kind=CompletionKind.COMMAND,
                    detail=command.description or module.name,
                )
            )
        for helper in module.helpers.values():
            if helper.label in seen_helpers:
                continue
            seen_helpers.add(helper.label)
            helper_items.append(
                CompletionItem(
                    label=helper.label,
                    insert_text=helper.insert_text,
                    range=replace_range,
                    kind=CompletionKind.HELPER,
                    detail=helper.description or module.name,
                )
            )
    return command_items, helper_items


def build_var_completion_items(
    bindings: BindingsManager, replace_range: Range
) -> list[CompletionItem]:
    return [
        CompletionItem(
            label=binding.name,
            insert_text=binding.name,
            range=replace_range,
            kind=CompletionKind.VARIABLE,
            detail=None if binding.value is None else _short(binding.value),
        )
        for binding in bindings.get_all_bindings(BindingsSpace.USER)
    ]


def is_typing_command(line_text: str, node: CommandNode | None, col: int) -> bool:
    """
    True when the cursor is on a command name.

    The upper bound is the length of the qualified command name, not its end
    column, so on an indented line the check is approximate.
    """
    if not line_text.strip():
        return True
    if node is None or node.loc is None:
        return True
    return node.loc.start.col <= col <= len(node.qualified_name)


def argument_index(node: CommandNode, col: int) -> int:
    """Index of the argument being typed: arguments ending strictly before `col`."""
    return sum(1 for arg in node.args if arg.loc is not None and arg.loc.end.col < col)


async def build_argument_completion_items(
    node: CommandNode,
    col: int,
    bindings: BindingsManager,
    module_context: ModuleDescriptor | None,
    replace_range: Range,
) -> list[CompletionItem]:
    try:
        resolved = resolve_command(node, bindings, module_context)
    except ResolutionError as error:
        logger.debug("[completion] No argument completions for %s: %s", node.qualified_name, error)
        return []
    if not resolved.command.has_arg_completions:
        return []

    index = argument_index(node, col)
    try:
        candidates = await resolved.command.complete_arg(index, node.args, bindings)
    except Exception as error:
        logger.warning(
            "[completion] Argument completion of %s failed: %s", resolved.qualified_name, error
        )
        return []
    return [
        CompletionItem(
            label=candidate,
            insert_text=candidate,
            range=replace_range,
            kind=CompletionKind.ARGUMENT,
            detail=f"{resolved.command.name} argument {index + 1}",
        )
        for candidate in candidates
    ]


async def assemble_completion_items(
    line_text: str,
    position: Position,
    node: CommandNode | None,
    bindings: BindingsManager,
    module_context: ModuleDescriptor | None = None,
) -> list[CompletionItem]:
    """
    Build the ordered completion list for the cursor at `position`.

    Args:
        line_text (str): Text of the cursor line.
        position (Position): Cursor position.
        node (CommandNode | None): Command starting on the cursor line, if any.
        bindings (BindingsManager): Environment at the cursor, block scopes open.
        module_context (ModuleDescriptor | None): Module of the innermost
            enclosing block command.
    """
    replace_range = get_word_range(line_text, position.line, position.col)
    modules, aliases = modules_in_scope(bindings)
    command_items, helper_items = build_module_completion_items(modules, aliases, replace_range)

    if is_typing_command(line_text, node, position.col):
        return command_items

    argument_items: list[CompletionItem] = []
    if node is not None:
        argument_items = await build_argument_completion_items(
            node, position.col, bindings, module_context, replace_range
        )
    variable_items = build_var_completion_items(bindings, replace_range)
    return argument_items + helper_items + variable_items


def _short(value: object, limit: int = 40) -> str:
    text = str(value)
    return text if len(text) <= limit else f"{text[: limit - 3]}..."
