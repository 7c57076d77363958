# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Evaluation context for speculative evmcl work.

`EvalContext` records one eager evaluation or one module resolution: what was
evaluated, on which script line, the bindings or module it produced or the
exception it raised, and how long it took. Contexts are handed to the hooks of
a `HookManager`, and the failed ones are returned with the analysis result.
"""
from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

EvalKind = Literal["eager", "module"]


class EvalContext(BaseModel):
    """
    Runtime record of a single eager evaluation or module resolution.

    Attributes:
        name (str): Qualified command name (`std:set`) or module name.
        kind (EvalKind): "eager" for command evaluations, "module" for module loads.
        line (int | None): Script line of the evaluated command.
        args (tuple): Argument nodes passed to an eager evaluation.
        target (Any): The command node or module name being evaluated.
        result (Any | None): Produced bindings or the resolved module.
        exception (Exception | None): Why the evaluation was dropped.
    """

    name: str
    kind: EvalKind = "eager"
    line: int | None = None
    args: tuple = ()
    target: Any = None
    result: Any | None = None
    exception: Exception | None = None

    start_time: float | None = None
    end_time: float | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def start_timer(self):
        self.start_time = time.perf_counter()

    def stop_timer(self):
        self.end_time = time.perf_counter()

    @property
    def duration(self) -> float | None:
        if self.start_time is None:
            return None
        return (self.end_time or time.perf_counter()) - self.start_time

    @property
    def success(self) -> bool:
        return self.exception is None

    @property
    def status(self) -> str:
        return "OK" if self.success else "ERROR"

    @property
    def produced(self) -> list[str]:
        """Names of the bindings produced by a successful eager evaluation."""
        if self.kind != "eager" or not isinstance(self.result, list):
            return []
        return [getattr(binding, "name", repr(binding)) for binding in self.result]

    def describe_exception(self) -> str:
        if self.exception is None:
            return "None"
        return f"{type(self.exception).__name__}: {self.exception}"

    def to_log_line(self) -> str:
        duration = f"{self.duration:.3f}s" if self.duration is not None else "n/a"
        where = f" line={self.line}" if self.line is not None else ""
        return (
            f"[{self.name}] kind={self.kind}{where} status={self.status} "
            f"duration={duration} exception={self.describe_exception()}"
        )

    def __str__(self) -> str:
        outcome = f"produced={self.produced}" if self.success else self.describe_exception()
        return f"<EvalContext {self.kind} '{self.name}' | {self.status} | {outcome}>"
