import pytest

from convoflow.utils import retry
from convoflow.utils.retry import compute_backoff


def test_compute_backoff_growth():
    first = compute_backoff(1, base=2, jitter=0)
    second = compute_backoff(2, base=2, jitter=0)
    assert second > first


@pytest.mark.asyncio
async def test_schedule_retry_is_immediate_when_disabled(monkeypatch):
    delays = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(retry.asyncio, "sleep", fake_sleep)
    await retry.schedule_retry(3, enabled=False)
    await retry.schedule_retry(1, enabled=True)
    assert delays[0] == 0
    assert delays[1] >= 1.5
