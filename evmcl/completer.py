# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Provides `EvmclCompleter`, a Prompt Toolkit completer backed by a
`CompletionEngine`.

The completer works on multi-line buffers: the whole buffer is the script and
the document cursor is converted to an engine `Position` (1-based line, 0-based
column). Items are filtered by the part of the word already typed before the
cursor, and each `Completion` shows the item kind as display meta.

Prompt Toolkit calls `get_completions_async` from its event loop. The
synchronous `get_completions` runs the engine on a fresh event loop, which is
what `ThreadedCompleter` and plain callers get. Called from inside a running
loop it yields nothing, since the engine cannot be awaited there.
"""
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, AsyncGenerator, Iterable, Iterator, Sequence

from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document

from evmcl.ast import Position
from evmcl.completion import CompletionItem
from evmcl.logger import logger

if TYPE_CHECKING:
    from evmcl.engine import CompletionEngine


class EvmclCompleter(Completer):
    """
    Prompt Toolkit completer for evmcl scripts.

    Args:
        engine (CompletionEngine): Engine computing the completion items.
    """

    def __init__(self, engine: "CompletionEngine"):
        self.engine = engine

    @staticmethod
    def position_for(document: Document) -> Position:
        return Position(line=document.cursor_position_row + 1, col=document.cursor_position_col)

    def get_completions(
        self, document: Document, complete_event: CompleteEvent
    ) -> Iterable[Completion]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            position = self.position_for(document)
            items = asyncio.run(self.engine.provide_completion_items(document.text, position))
            return list(self._to_completions(items, document, position))
        logger.debug("[EvmclCompleter] Sync completion requested inside an event loop")
        return []

    async def get_completions_async(
        self, document: Document, complete_event: CompleteEvent
    ) -> AsyncGenerator[Completion, None]:
        """
        Compute completions for the whole buffer at the document cursor.

        Yields:
            Completion: Items whose label starts with the word typed so far.
        """
        position = self.position_for(document)
        items = await self.engine.provide_completion_items(document.text, position)
        for completion in self._to_completions(items, document, position):
            yield completion

    @staticmethod
    def _to_completions(
        items: Sequence[CompletionItem], document: Document, position: Position
    ) -> Iterator[Completion]:
        line_text = document.current_line
        for item in items:
            start_col = min(item.range.start_col, position.col)
            stub = line_text[start_col : position.col]
            if stub and not item.label.lower().startswith(stub.lower()):
                continue
            yield Completion(
                item.insert_text,
                start_position=-len(stub),
                display=item.label,
                display_meta=str(item.kind),
            )
