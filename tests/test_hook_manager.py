import pytest

from evmcl.context import EvalContext
from evmcl.debug import register_debug_hooks
from evmcl.hook_manager import HookManager, HookType


def test_hook_type_aliases():
    assert HookType("error") is HookType.ON_ERROR
    assert HookType("SUCCESS") is HookType.ON_SUCCESS
    with pytest.raises(ValueError):
        HookType("teardown")


def test_register_requires_callable():
    hooks = HookManager()
    with pytest.raises(TypeError):
        hooks.register(HookType.BEFORE, "not callable")


@pytest.mark.asyncio
async def test_trigger_sync_and_async_hooks():
    seen = []

    async def async_hook(context):
        seen.append(("async", context.name))

    hooks = HookManager()
    hooks.register("before", lambda context: seen.append(("sync", context.name)))
    hooks.register(HookType.BEFORE, async_hook)
    await hooks.trigger(HookType.BEFORE, EvalContext(name="std:set"))
    assert seen == [("sync", "std:set"), ("async", "std:set")]


@pytest.mark.asyncio
async def test_failing_hook_is_logged_not_raised(caplog):
    def broken(context):
        raise RuntimeError("hook failed")

    hooks = HookManager()
    hooks.register(HookType.ON_ERROR, broken)
    await hooks.trigger(HookType.ON_ERROR, EvalContext(name="aragonos:connect"))
    assert "hook failed" in caplog.text


def test_clear_hooks():
    hooks = HookManager()
    register_debug_hooks(hooks)
    assert all(hooks.get(hook_type) for hook_type in HookType)
    hooks.clear(HookType.BEFORE)
    assert hooks.get(HookType.BEFORE) == []
    hooks.clear()
    assert "—" in str(hooks)


@pytest.mark.asyncio
async def test_debug_hooks_log_lifecycle(caplog):
    caplog.set_level("DEBUG", logger="evmcl")
    hooks = HookManager()
    register_debug_hooks(hooks)
    context = EvalContext(name="std:set", args=(1,))
    context.start_timer()
    await hooks.trigger(HookType.BEFORE, context)
    context.result = ["$x"]
    context.stop_timer()
    await hooks.trigger(HookType.ON_SUCCESS, context)
    await hooks.trigger(HookType.AFTER, context)
    assert "Starting eager evaluation" in caplog.text
    assert "Success" in caplog.text
    assert "Finished in" in caplog.text


def test_eval_context_status():
    context = EvalContext(name="aragonos:connect")
    assert context.success
    assert context.duration is None
    context.start_timer()
    context.exception = ValueError("boom")
    context.stop_timer()
    assert context.status == "ERROR"
    assert "ValueError: boom" in context.to_log_line()
    assert "aragonos:connect" in str(context)


@pytest.mark.asyncio
async def test_hooks_filtered_by_kind():
    seen = []
    hooks = HookManager()
    hooks.register(HookType.ON_ERROR, lambda context: seen.append(context.name), kind="module")
    await hooks.trigger(HookType.ON_ERROR, EvalContext(name="std:set"))
    await hooks.trigger(HookType.ON_ERROR, EvalContext(name="ipfs:Qm", kind="module"))
    assert seen == ["ipfs:Qm"]
    assert "[module]" in str(hooks)


def test_eval_context_lists_produced_bindings():
    from evmcl.bindings import Binding, BindingsSpace

    context = EvalContext(
        name="std:set",
        line=2,
        result=[Binding(space=BindingsSpace.USER, name="$x", value=1)],
    )
    assert context.produced == ["$x"]
    assert "line=2" in context.to_log_line()
    assert EvalContext(name="std", kind="module", result=object()).produced == []
