# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Tolerant parser for evmcl scripts.

The grammar is line oriented:

    load aragonos as ar          # one command per line
    set $amount 1200e18
    ar:connect my-dao (          # a trailing "(" opens a block
      grant @me vault TRANSFER_ROLE
    )                            # a line starting with ")" closes it

The parser never raises. Anything it cannot make sense of is reported as a
`ParseError` and skipped, and the returned tree keeps every node that could
still be built. A block that is never closed ends on the last line of the text,
which is the normal state of a script while its block is being typed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from evmcl.ast import (
    AddressLiteral,
    ArgumentNode,
    ArrayExpression,
    AsExpression,
    BlockNode,
    BoolLiteral,
    CommandNode,
    HelperFunction,
    Identifier,
    Location,
    NumberLiteral,
    OptionNode,
    Position,
    StringLiteral,
    SyntaxTree,
    VariableIdentifier,
)
from evmcl.logger import logger

COMMAND_NAME_RE = re.compile(r"^(?:([A-Za-z][\w\-]*):)?([A-Za-z][\w\-]*)?$")
NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?(?:e\d+)?(?:mo|[smhdwy])?$")
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
WORD_DELIMITERS = frozenset("()[],\"'")


@dataclass(frozen=True)
class ParseError:
    message: str
    position: Position

    def __str__(self) -> str:
        return f"{self.position}: {self.message}"


class _LineScanner:
    """Scans a single line into a command node."""

    def __init__(self, text: str, line: int, errors: list[ParseError]):
        self.text = text
        self.line = line
        self.pos = 0
        self.last_end = 0
        self.errors = errors

    def error(self, message: str, col: int | None = None) -> None:
        self.errors.append(
            ParseError(message, Position(self.line, self.pos if col is None else col))
        )

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def location(self, start: int) -> Location:
        return Location(Position(self.line, start), Position(self.line, self.pos))

    def read_word(self) -> str:
        start = self.pos
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch.isspace() or ch in WORD_DELIMITERS:
                break
            self.pos += 1
        return self.text[start : self.pos]

    def rest_is_blank(self) -> bool:
        rest = self.text[self.pos :].strip()
        return not rest or rest.startswith("#")

    def parse_command(self) -> tuple[CommandNode | None, int | None]:
        """
        Parse the line into a command.

        Returns the command (or None for blank, comment and invalid lines) and
        the column of the block-opening parenthesis when the line opens a block.
        """
        self.skip_whitespace()
        if self.at_end() or self.peek() == "#":
            return None, None

        start = self.pos
        word = self.read_word()
        match = COMMAND_NAME_RE.match(word) if word else None
        if not match or not word:
            self.error(f"Invalid command name '{word or self.peek()}'", start)
            return None, None
        module, name = match.group(1), match.group(2) or ""
        self.last_end = self.pos

        args: list[ArgumentNode] = []
        block_col: int | None = None
        while True:
            self.skip_whitespace()
            if self.at_end() or self.peek() == "#":
                break
            ch = self.peek()
            if ch == "(":
                paren = self.pos
                self.pos += 1
                if self.rest_is_blank():
                    block_col = paren
                    break
                self.error("Unexpected '('", paren)
                continue
            if ch in ")],":
                self.error(f"Unexpected '{ch}'")
                self.pos += 1
                continue
            arg = self.parse_argument()
            if arg is not None:
                args.append(arg)
                self.last_end = self.pos

        command = CommandNode(
            name=name,
            module=module,
            args=_fold_arguments(args),
            loc=Location(Position(self.line, start), Position(self.line, self.last_end)),
        )
        return command, block_col

    def parse_argument(self) -> ArgumentNode | None:
        ch = self.peek()
        if ch in "\"'":
            return self.parse_string()
        if ch == "[":
            return self.parse_array()

        start = self.pos
        word = self.read_word()
        if not word:
            self.error(f"Unexpected '{ch}'")
            self.pos += 1
            return None
        if word.startswith("@"):
            helper = HelperFunction(name=word[1:])
            if self.peek() == "(":
                helper.args = self.parse_sequence("(", ")")
            helper.loc = self.location(start)
            return helper
        loc = self.location(start)
        if word.startswith("$"):
            return VariableIdentifier(name=word, loc=loc)
        if ADDRESS_RE.match(word):
            return AddressLiteral(value=word, loc=loc)
        if NUMBER_RE.match(word):
            return NumberLiteral(raw=word, loc=loc)
        if word in ("true", "false"):
            return BoolLiteral(value=word == "true", loc=loc)
        return Identifier(value=word, loc=loc)

    def parse_string(self) -> StringLiteral:
        quote = self.peek()
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if ch == quote:
                self.pos += 1
                return StringLiteral(value="".join(chars), loc=self.location(start))
            chars.append(ch)
            self.pos += 1
        self.error("Unterminated string", start)
        return StringLiteral(value="".join(chars), loc=self.location(start))

    def parse_array(self) -> ArrayExpression:
        start = self.pos
        elements = self.parse_sequence("[", "]")
        return ArrayExpression(elements=elements, loc=self.location(start))

    def parse_sequence(self, opening: str, closing: str) -> list[ArgumentNode]:
        """Parse `opening arg, arg, ... closing`, starting on the opening char."""
        start = self.pos
        self.pos += 1
        items: list[ArgumentNode] = []
        while True:
            self.skip_whitespace()
            if self.at_end():
                self.error(f"Missing '{closing}'", start)
                return items
            ch = self.peek()
            if ch == closing:
                self.pos += 1
                return items
            if ch == ",":
                self.pos += 1
                continue
            if ch in ")]":
                self.error(f"Unexpected '{ch}'")
                self.pos += 1
                continue
            item = self.parse_argument()
            if item is not None:
                items.append(item)


def _fold_arguments(args: list[ArgumentNode]) -> list[ArgumentNode]:
    """Turn `X as Y` into `AsExpression` and `--name value` into `OptionNode`."""
    folded: list[ArgumentNode] = []
    i = 0
    while i < len(args):
        arg = args[i]
        if isinstance(arg, Identifier) and arg.value.startswith("--") and len(arg.value) > 2:
            value = args[i + 1] if i + 1 < len(args) else None
            if isinstance(value, Identifier) and value.value.startswith("--"):
                value = None
            end = value.loc if value is not None and value.loc else arg.loc
            loc = Location(arg.loc.start, end.end) if arg.loc and end else None
            folded.append(OptionNode(name=arg.value[2:], value=value, loc=loc))
            i += 2 if value is not None else 1
            continue
        if (
            isinstance(arg, Identifier)
            and arg.value == "as"
            and folded
            and i + 1 < len(args)
        ):
            left = folded.pop()
            right = args[i + 1]
            loc = None
            if left.loc and right.loc:
                loc = Location(left.loc.start, right.loc.end)
            folded.append(AsExpression(left=left, right=right, loc=loc))
            i += 2
            continue
        folded.append(arg)
        i += 1
    return folded


def parse_script(text: str) -> tuple[SyntaxTree, list[ParseError]]:
    """
    Parse a whole script.

    Returns the syntax tree and the list of parse errors. The tree is usable even
    when errors were found.
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    errors: list[ParseError] = []
    tree = SyntaxTree()
    open_blocks: list[CommandNode] = []
    current = tree.body

    for line_no, raw in enumerate(lines, start=1):
        stripped = raw.strip()
        if stripped.startswith(")"):
            col = raw.index(")")
            trailing = stripped[1:].strip()
            if trailing and not trailing.startswith("#"):
                errors.append(ParseError("Unexpected content after ')'", Position(line_no, col + 1)))
            if not open_blocks:
                errors.append(ParseError("Unmatched ')'", Position(line_no, col)))
                continue
            command = open_blocks.pop()
            end = Position(line_no, col + 1)
            if command.block is not None and command.block.loc is not None:
                command.block.loc = Location(command.block.loc.start, end)
                command.block.closed = True
            if command.loc is not None:
                command.loc = Location(command.loc.start, end)
            current = open_blocks[-1].block.commands if open_blocks and open_blocks[-1].block else tree.body
            continue

        scanner = _LineScanner(raw, line_no, errors)
        command, block_col = scanner.parse_command()
        if command is None:
            continue
        current.append(command)
        if block_col is not None:
            opening = Position(line_no, block_col)
            command.block = BlockNode(loc=Location(opening, Position(line_no, block_col + 1)), closed=False)
            open_blocks.append(command)
            current = command.block.commands

    if open_blocks:
        end = Position(len(lines), len(lines[-1]))
        for command in open_blocks:
            if command.block is not None and command.block.loc is not None:
                errors.append(
                    ParseError(f"Unclosed block for '{command.qualified_name}'", command.block.loc.start)
                )
                command.block.loc = Location(command.block.loc.start, end)
            if command.loc is not None:
                command.loc = Location(command.loc.start, end)

    if errors:
        logger.debug("[parser] %d parse error(s): %s", len(errors), "; ".join(map(str, errors)))
    return tree, errors
