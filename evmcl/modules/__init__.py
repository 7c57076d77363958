"""
evmcl Completion Engine

Copyright (c) 2025 rtj.dev LLC.
Licensed under the MIT License. See LICENSE file for details.
"""

from .aragonos import build_aragonos_module
from .std import build_std_module

__all__ = [
    "build_std_module",
    "build_aragonos_module",
]
