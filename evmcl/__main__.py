"""
evmcl Completion Engine

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

import asyncio
import json
import logging
import os
import sys
from argparse import ArgumentParser, Namespace, _SubParsersAction
from pathlib import Path
from typing import Any

from prompt_toolkit import PromptSession
from rich.markup import escape
from rich.table import Table

from evmcl.ast import Position
from evmcl.completer import EvmclCompleter
from evmcl.completion import CompletionItem
from evmcl.config import EngineConfig, loader
from evmcl.console import console
from evmcl.engine import CompletionEngine
from evmcl.logger import logger
from evmcl.resolvers import IPFSResolver
from evmcl.utils import setup_logging


def find_evmcl_config() -> Path | None:
    candidates = [
        Path.cwd() / "evmcl.yaml",
        Path.cwd() / "evmcl.toml",
        Path.cwd() / ".evmcl.yaml",
        Path.cwd() / ".evmcl.toml",
        Path(os.environ.get("EVMCL_CONFIG", "evmcl.yaml")),
        Path.home() / ".config" / "evmcl" / "evmcl.yaml",
        Path.home() / ".config" / "evmcl" / "evmcl.toml",
    ]
    return next((p for p in candidates if p.is_file()), None)


def bootstrap(config_path: Path | None = None) -> Path | None:
    """Locate the config file and make modules next to it importable."""
    config_path = config_path or find_evmcl_config()
    if config_path and str(config_path.parent) not in sys.path:
        sys.path.insert(0, str(config_path.parent))
    return config_path


def get_root_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="evmcl",
        description="evmcl completion engine - complete and edit evmcl scripts.",
        epilog="Tip: Use 'evmcl complete script.evmcl --line 3 --col 0' to list completions.",
    )
    parser.add_argument("--config", type=Path, help="Path to an evmcl YAML or TOML config file.")
    parser.add_argument(
        "--log-mode",
        choices=["cli", "json"],
        default=None,
        help="Console log format. Defaults to $EVMCL_LOG_MODE.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to a file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def get_parsers() -> tuple[ArgumentParser, _SubParsersAction]:
    root_parser = get_root_parser()
    subparsers = root_parser.add_subparsers(dest="command")

    complete_parser = subparsers.add_parser(
        "complete",
        help="List completions at a position of a script",
        description="Print the completion items for a cursor position.",
        epilog="Lines are 1-based, columns are 0-based.",
    )
    complete_parser.add_argument("file", type=Path, help="Script file, '-' for stdin.")
    complete_parser.add_argument("--line", type=int, required=True, help="1-based cursor line.")
    complete_parser.add_argument("--col", type=int, default=0, help="0-based cursor column.")
    complete_parser.add_argument(
        "--bindings", action="store_true", help="Also print the bindings at the cursor."
    )
    complete_parser.add_argument("--json", action="store_true", help="Print items as JSON.")

    edit_parser = subparsers.add_parser(
        "edit",
        help="Edit a script with completions",
        description="Open a multi-line prompt with evmcl completions. Submit with Esc+Enter.",
    )
    edit_parser.add_argument("file", type=Path, nargs="?", help="Script to start from.")
    return root_parser, subparsers


def load_config(args: Namespace) -> EngineConfig:
    config_path = bootstrap(args.config)
    if config_path is None:
        return EngineConfig()
    return loader(config_path)


def build_engine(config: EngineConfig) -> CompletionEngine:
    return CompletionEngine(config=config, resolver=IPFSResolver(config.ipfs_gateway))


def read_script(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    return path.read_text(encoding="UTF-8")


def render_items(items: list[CompletionItem]) -> Table:
    table = Table(title="Completions", show_lines=False)
    table.add_column("Label", no_wrap=True)
    table.add_column("Insert", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Range", style="muted")
    table.add_column("Detail", style="muted")
    for item in items:
        table.add_row(
            f"[{item.kind}]{escape(item.label)}[/]",
            escape(item.insert_text),
            str(item.kind),
            f"{item.range.line}:{item.range.start_col}-{item.range.end_col}",
            escape(item.detail or ""),
        )
    return table


async def run_complete(engine: CompletionEngine, args: Namespace) -> int:
    if args.line < 1 or args.col < 0:
        console.print("[error]Line must be >= 1 and column >= 0.[/]")
        return 2
    text = read_script(args.file)
    result = await engine.analyze(text, Position(line=args.line, col=args.col))

    if args.json:
        data = [item.model_dump(mode="json") for item in result.items]
        console.out(json.dumps(data, indent=2), highlight=False)
    else:
        console.print(render_items(result.items))
        for error in result.parse_errors:
            console.print(f"[error]Parse error[/] {error.position}: {escape(error.message)}")
        for failure in result.failures:
            console.print(f"[muted]{escape(failure.to_log_line())}[/]")
    if args.bindings and result.bindings is not None:
        result.bindings.preview()
    return 0


async def run_edit(engine: CompletionEngine, args: Namespace) -> int:
    initial_text = read_script(args.file) if args.file else ""
    session: PromptSession = PromptSession(
        multiline=True,
        completer=EvmclCompleter(engine),
        complete_while_typing=True,
    )
    try:
        text = await session.prompt_async("evmcl> ", default=initial_text)
    except (EOFError, KeyboardInterrupt):
        return 0

    lines = text.split("\n")
    result = await engine.analyze(text, Position(line=len(lines) + 1, col=0))
    for error in result.parse_errors:
        console.print(f"[error]Parse error[/] {error.position}: {escape(error.message)}")
    if result.bindings is not None:
        result.bindings.preview()
    return 0


def main(argv: list[str] | None = None) -> Any:
    root_parser, _ = get_parsers()
    args = root_parser.parse_args(argv)
    if not args.command:
        root_parser.print_help()
        return 1

    setup_logging(
        mode=args.log_mode,
        log_filename=str(args.log_file) if args.log_file else None,
        console_log_level=logging.DEBUG if args.verbose else logging.WARNING,
    )
    try:
        engine = build_engine(load_config(args))
    except (FileNotFoundError, ValueError) as error:
        logger.error("Invalid configuration: %s", error)
        console.print(f"[error]Invalid configuration:[/] {error}")
        return 1

    run = run_complete if args.command == "complete" else run_edit
    try:
        return asyncio.run(run(engine, args))
    except OSError as error:
        console.print(f"[error]Cannot read script:[/] {error}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
