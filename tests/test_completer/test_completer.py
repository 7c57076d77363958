from types import SimpleNamespace

import pytest
from prompt_toolkit.completion import CompleteEvent, Completion
from prompt_toolkit.document import Document

from evmcl.ast import Position
from evmcl.completer import EvmclCompleter
from evmcl.completion import CompletionItem, CompletionKind, Range
from evmcl.engine import CompletionEngine


def item(label, kind=CompletionKind.COMMAND, insert_text=None, start_col=0, end_col=0, line=1):
    return CompletionItem(
        label=label,
        insert_text=insert_text or label,
        range=Range(line=line, start_col=start_col, end_col=end_col),
        kind=kind,
    )


class FakeEngine:
    def __init__(self, items):
        self.items = items
        self.requests = []

    async def provide_completion_items(self, text, position):
        self.requests.append((text, position))
        return self.items


async def collect(completer, document):
    return [c async for c in completer.get_completions_async(document, CompleteEvent())]


def test_position_for_multiline_document():
    document = Document("load aragonos\nset $a", cursor_position=len("load aragonos\nset"))
    assert EvmclCompleter.position_for(document) == Position(line=2, col=3)


def test_sync_completions_run_the_engine():
    engine = FakeEngine([item("set", end_col=2), item("switch", end_col=2)])
    completions = list(EvmclCompleter(engine).get_completions(Document("se"), CompleteEvent()))
    assert [c.text for c in completions] == ["set"]
    assert engine.requests == [("se", Position(1, 2))]


@pytest.mark.asyncio
async def test_sync_completions_inside_event_loop_are_empty():
    completer = EvmclCompleter(SimpleNamespace())
    assert list(completer.get_completions(Document("se"), CompleteEvent())) == []


@pytest.mark.asyncio
async def test_filters_by_typed_word():
    engine = FakeEngine([item("set", end_col=2), item("switch", end_col=2), item("print", end_col=2)])
    completer = EvmclCompleter(engine)
    completions = await collect(completer, Document("se"))
    assert [c.text for c in completions] == ["set"]
    assert all(isinstance(c, Completion) for c in completions)
    assert completions[0].start_position == -2
    assert engine.requests == [("se", Position(1, 2))]


@pytest.mark.asyncio
async def test_no_typed_word_yields_everything():
    engine = FakeEngine([item("set"), item("$a", kind=CompletionKind.VARIABLE)])
    completions = await collect(EvmclCompleter(engine), Document(""))
    assert [c.text for c in completions] == ["set", "$a"]
    assert completions[1].display_meta_text == "variable"


@pytest.mark.asyncio
async def test_helper_insert_text_and_display():
    engine = FakeEngine(
        [item("@token", kind=CompletionKind.HELPER, insert_text="@token(", start_col=4, end_col=6)]
    )
    completions = await collect(EvmclCompleter(engine), Document("set @t"))
    assert completions[0].text == "@token("
    assert completions[0].display_text == "@token"
    assert completions[0].start_position == -2


@pytest.mark.asyncio
async def test_with_real_engine():
    completer = EvmclCompleter(CompletionEngine())
    text = "load aragonos as ar\nar:gr"
    completions = await collect(completer, Document(text, cursor_position=len(text)))
    assert [c.text for c in completions] == ["ar:grant"]
