import logging

import pytest

from evmcl.utils import ensure_async, resolve_log_mode, setup_logging


@pytest.mark.asyncio
async def test_ensure_async_wraps_plain_and_awaitable_results():
    async def fetch():
        return "async"

    assert await ensure_async(lambda: "sync")() == "sync"
    assert await ensure_async(lambda: fetch())() == "async"
    assert ensure_async(fetch) is fetch
    with pytest.raises(TypeError):
        ensure_async("not callable")


def test_resolve_log_mode(monkeypatch):
    monkeypatch.setenv("EVMCL_LOG_MODE", "json")
    assert resolve_log_mode() == "json"
    assert resolve_log_mode("cli") == "cli"
    with pytest.raises(ValueError):
        resolve_log_mode("xml")


def test_setup_logging_writes_json_file(tmp_path):
    log_file = tmp_path / "evmcl.log"
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        setup_logging(mode="json", log_filename=str(log_file), json_log_to_file=True)
        logging.getLogger("evmcl").warning("module %s dropped", "ipfs:Qm")
        for handler in root.handlers:
            handler.flush()
        assert '"message": "module ipfs:Qm dropped"' in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved
