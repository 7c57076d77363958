# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Syntax tree for evmcl scripts.

Positions use 1-based lines and 0-based columns. A `Location` end column is
exclusive, so a command `set $x 1` written at the start of line 3 spans
`(3, 0)` to `(3, 8)`.

The tree is produced by `evmcl.parser.parse_script` and is only ever read by
the completion engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence, Union


@dataclass(frozen=True, order=True)
class Position:
    line: int
    col: int

    def __str__(self) -> str:
        return f"{self.line}:{self.col}"


@dataclass(frozen=True)
class Location:
    start: Position
    end: Position

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass
class StringLiteral:
    value: str
    loc: Location | None = None


@dataclass
class NumberLiteral:
    """Numeric literal as written, e.g. `1e18`, `12.5e18` or `7d`."""

    raw: str
    loc: Location | None = None


@dataclass
class AddressLiteral:
    value: str
    loc: Location | None = None


@dataclass
class BoolLiteral:
    value: bool
    loc: Location | None = None


@dataclass
class VariableIdentifier:
    name: str
    loc: Location | None = None


@dataclass
class Identifier:
    value: str
    loc: Location | None = None


@dataclass
class HelperFunction:
    name: str
    args: list[ArgumentNode] = field(default_factory=list)
    loc: Location | None = None


@dataclass
class ArrayExpression:
    elements: list[ArgumentNode] = field(default_factory=list)
    loc: Location | None = None


@dataclass
class AsExpression:
    left: ArgumentNode
    right: ArgumentNode
    loc: Location | None = None


@dataclass
class OptionNode:
    name: str
    value: ArgumentNode | None = None
    loc: Location | None = None


ArgumentNode = Union[
    StringLiteral,
    NumberLiteral,
    AddressLiteral,
    BoolLiteral,
    VariableIdentifier,
    Identifier,
    HelperFunction,
    ArrayExpression,
    AsExpression,
    OptionNode,
]


@dataclass
class BlockNode:
    commands: list[CommandNode] = field(default_factory=list)
    loc: Location | None = None
    closed: bool = True

    def contains_line(self, line: int) -> bool:
        """True if `line` lies between the opening and closing parenthesis."""
        if self.loc is None:
            return False
        if line <= self.loc.start.line:
            return False
        if self.closed:
            return line < self.loc.end.line
        return line <= self.loc.end.line


@dataclass
class CommandNode:
    name: str
    module: str | None = None
    args: list[ArgumentNode] = field(default_factory=list)
    loc: Location | None = None
    block: BlockNode | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.module}:{self.name}" if self.module else self.name

    def has_block(self) -> bool:
        return self.block is not None

    def __str__(self) -> str:
        return f"CommandNode({self.qualified_name!r}, args={len(self.args)}, loc={self.loc})"


@dataclass
class SyntaxTree:
    body: list[CommandNode] = field(default_factory=list)

    def get_commands_until_line(
        self, line: int, exclude: Sequence[str] = ()
    ) -> list[CommandNode]:
        """
        Return top-level command nodes starting at or before `line`.

        Nodes without a location are treated as preceding every line. Block
        commands are returned whole; callers descend into `node.block`.
        """
        return [
            node
            for node in self.body
            if node.name not in exclude and (node.loc is None or node.loc.start.line <= line)
        ]

    def get_load_commands(self, line: int | None = None) -> list[CommandNode]:
        """Return top-level `load` commands, only those strictly before `line` if given."""
        return [
            node
            for node in self.body
            if node.name == "load"
            and not node.module
            and node.loc
            and (line is None or node.loc.start.line < line)
        ]

    def get_command_at_line(self, line: int) -> CommandNode | None:
        """Return the innermost command that starts on `line`, if any."""
        return _find_command_at_line(self.body, line)

    def get_enclosing_commands(self, line: int) -> list[CommandNode]:
        """Return the block commands whose block contains `line`, outermost first."""
        chain: list[CommandNode] = []
        commands = self.body
        while True:
            parent = next(
                (c for c in commands if c.block is not None and c.block.contains_line(line)),
                None,
            )
            if parent is None or parent.block is None:
                return chain
            chain.append(parent)
            commands = parent.block.commands

    def walk(self) -> Iterator[CommandNode]:
        """Yield every command depth-first in source order."""
        yield from _walk(self.body)

    def __len__(self) -> int:
        return len(self.body)


def _find_command_at_line(commands: list[CommandNode], line: int) -> CommandNode | None:
    for command in commands:
        if command.loc is None:
            continue
        if command.loc.start.line == line:
            return command
        if command.block is not None and command.block.contains_line(line):
            return _find_command_at_line(command.block.commands, line)
    return None


def _walk(commands: list[CommandNode]) -> Iterator[CommandNode]:
    for command in commands:
        yield command
        if command.block is not None:
            yield from _walk(command.block.commands)
