# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines structural protocols for the external collaborators of the engine.

The engine never calls these itself. It threads them through to module
resolution, eager evaluations and helper functions.

Protocols:
- Provider: Read access to a blockchain node (EIP-1193 style requests and name resolution).
- ContentResolver: Content-addressed lookup, e.g. an IPFS gateway.
- ScriptParser: Callable turning script text into a syntax tree and parse errors.
"""
from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from evmcl.ast import SyntaxTree


@runtime_checkable
class Provider(Protocol):
    async def request(self, method: str, params: Sequence[Any] = ()) -> Any: ...

    async def resolve_name(self, name: str) -> str | None: ...


@runtime_checkable
class ContentResolver(Protocol):
    async def fetch(self, cid: str) -> str: ...


@runtime_checkable
class ScriptParser(Protocol):
    def __call__(self, text: str) -> tuple[SyntaxTree, Sequence[Any]]: ...
