# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Defines the `HookManager` and `HookType` used to observe speculative work.

The eager executor and the module loader wrap every evaluation in an
`EvalContext` and trigger hooks at each lifecycle stage. A hook registered on
`ON_ERROR` sees every eager evaluation or module resolution dropped from a pass.
Hooks may be restricted to one context kind ("eager" or "module").

Usage:
    hooks = HookManager()
    hooks.register(HookType.ON_ERROR, report_failure, kind="module")
"""
from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, NamedTuple, Union

from evmcl.context import EvalContext
from evmcl.logger import logger
from evmcl.utils import ensure_async

Hook = Union[Callable[[EvalContext], None], Callable[[EvalContext], Awaitable[None]]]

HOOK_ALIASES = {"success": "on_success", "error": "on_error"}


class HookType(Enum):
    """
    Lifecycle stages of an eager evaluation or module resolution.

    Members:
        BEFORE: Before the evaluation starts.
        ON_SUCCESS: After the evaluation produced its result.
        ON_ERROR: When the evaluation failed or timed out.
        AFTER: After success or failure (always runs).

    "success" and "error" are accepted as short names.
    """

    BEFORE = "before"
    ON_SUCCESS = "on_success"
    ON_ERROR = "on_error"
    AFTER = "after"

    @classmethod
    def _missing_(cls, value: object) -> HookType:
        if isinstance(value, str):
            normalized = value.strip().lower()
            normalized = HOOK_ALIASES.get(normalized, normalized)
            for member in cls:
                if member.value == normalized:
                    return member
        valid = ", ".join(member.value for member in cls)
        raise ValueError(f"Invalid {cls.__name__}: {value!r}. Must be one of: {valid}")

    def __str__(self) -> str:
        return self.value


class _Registration(NamedTuple):
    hook: Hook
    kind: str | None

    def applies_to(self, context: EvalContext) -> bool:
        return self.kind is None or self.kind == context.kind

    @property
    def label(self) -> str:
        name = getattr(self.hook, "__name__", repr(self.hook))
        return f"{name}[{self.kind}]" if self.kind else name


class HookManager:
    """
    Lifecycle hooks of an analysis pass.

    Hook failures are logged and skipped. They never interrupt an analysis pass.
    """

    def __init__(self) -> None:
        self._hooks: dict[HookType, list[_Registration]] = {
            hook_type: [] for hook_type in HookType
        }

    def register(self, hook_type: HookType | str, hook: Hook, kind: str | None = None):
        """
        Register a hook for a lifecycle stage.

        Args:
            hook_type (HookType | str): Stage, e.g. `HookType.ON_ERROR` or "error".
            hook (Hook): Sync or async callable receiving the `EvalContext`.
            kind (str | None): Only run for contexts of this kind.

        Raises:
            ValueError: If the hook type is invalid.
            TypeError: If the hook is not callable.
        """
        hook_type = HookType(hook_type)
        if not callable(hook):
            raise TypeError(f"Hook for '{hook_type}' must be callable, got {hook!r}")
        self._hooks[hook_type].append(_Registration(hook, kind))

    def clear(self, hook_type: HookType | None = None):
        for stage in [hook_type] if hook_type else list(HookType):
            self._hooks[stage] = []

    def get(self, hook_type: HookType) -> list[Hook]:
        return [registration.hook for registration in self._hooks[hook_type]]

    async def trigger(self, hook_type: HookType, context: EvalContext):
        for registration in self._hooks[hook_type]:
            if not registration.applies_to(context):
                continue
            try:
                await ensure_async(registration.hook)(context)
            except Exception as hook_error:
                logger.warning(
                    "[Hook:%s] failed during '%s' for '%s': %s",
                    registration.label,
                    hook_type,
                    context.name,
                    hook_error,
                )

    def __str__(self) -> str:
        lines = ["<HookManager>"]
        for hook_type, registrations in self._hooks.items():
            labels = ", ".join(registration.label for registration in registrations)
            lines.append(f"  {hook_type.value}: {labels or '—'}")
        return "\n".join(lines)
