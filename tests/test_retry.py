import pytest

from evmcl.retry import RetryHandler, RetryPolicy


class Flaky:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    async def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls}")
        return value


def test_policy_defaults_inactive():
    policy = RetryPolicy()
    assert not policy.is_active()
    policy.enable_policy()
    assert policy.is_active()
    assert not RetryPolicy(max_retries=0, enabled=True).is_active()


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(backoff=0.5)


@pytest.mark.asyncio
async def test_inactive_policy_runs_once():
    flaky = Flaky(failures=1)
    with pytest.raises(ConnectionError):
        await RetryHandler().call("fetch", flaky, "content")
    assert flaky.calls == 1


@pytest.mark.asyncio
async def test_retries_until_success():
    flaky = Flaky(failures=2)
    handler = RetryHandler(RetryPolicy(max_retries=3, delay=0.0, jitter=0.01, enabled=True))
    assert await handler.call("fetch", flaky, "content") == "content"
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_last_error_is_raised():
    flaky = Flaky(failures=5)
    handler = RetryHandler(RetryPolicy(max_retries=2, delay=0.0, enabled=True))
    with pytest.raises(ConnectionError, match="attempt 3"):
        await handler.call("fetch", flaky, "content")
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_errors_outside_retry_on_are_not_retried():
    flaky = Flaky(failures=5)
    handler = RetryHandler(
        RetryPolicy(max_retries=3, delay=0.0, enabled=True), retry_on=(TimeoutError,)
    )
    with pytest.raises(ConnectionError, match="attempt 1"):
        await handler.call("fetch", flaky, "content")
    assert flaky.calls == 1


def test_policy_delays_back_off():
    policy = RetryPolicy(max_retries=3, delay=0.5, backoff=2.0, enabled=True)
    assert list(policy.delays()) == [0.5, 1.0, 2.0]
