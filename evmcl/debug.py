# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""debug.py"""
from evmcl.context import EvalContext
from evmcl.hook_manager import HookManager, HookType
from evmcl.logger import logger


def log_before(context: EvalContext):
    if context.kind == "module":
        logger.debug("[%s] Resolving module", context.name)
    else:
        logger.debug(
            "[%s] Starting eager evaluation on line %s with %d arg(s)",
            context.name,
            context.line,
            len(context.args),
        )


def log_success(context: EvalContext):
    if context.kind == "module":
        logger.debug("[%s] Success -> module resolved", context.name)
    else:
        logger.debug("[%s] Success -> bound %s", context.name, context.produced or "nothing")


def log_after(context: EvalContext):
    logger.debug("[%s] Finished in %.3fs", context.name, context.duration or 0.0)


def log_error(context: EvalContext):
    """Dropped work is expected while typing, so it is not logged as an error."""
    logger.info("[%s] Dropped %s", context.name, context.describe_exception())


def register_debug_hooks(hooks: HookManager):
    hooks.register(HookType.BEFORE, log_before)
    hooks.register(HookType.AFTER, log_after)
    hooks.register(HookType.ON_SUCCESS, log_success)
    hooks.register(HookType.ON_ERROR, log_error)
