"""
evmcl Completion Engine

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

from .ast import Position
from .bindings import Binding, BindingsManager, BindingsSpace
from .cache import SessionCache
from .completion import CompletionItem, CompletionKind, Range
from .config import EngineConfig
from .engine import AnalysisResult, CompletionEngine
from .registry import ModuleRegistry, default_registry


__all__ = [
    "AnalysisResult",
    "Binding",
    "BindingsManager",
    "BindingsSpace",
    "CompletionEngine",
    "CompletionItem",
    "CompletionKind",
    "EngineConfig",
    "ModuleRegistry",
    "Position",
    "Range",
    "SessionCache",
    "default_registry",
]
