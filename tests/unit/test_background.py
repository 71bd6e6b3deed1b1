import asyncio
import logging

import pytest

from landing_api.core.background import BackgroundTasks


@pytest.mark.asyncio
async def test_task_runs_detached():
    tasks = BackgroundTasks()
    done = asyncio.Event()

    async def job():
        done.set()

    tasks.spawn(job(), name="job")
    assert len(tasks) == 1

    await asyncio.wait_for(done.wait(), timeout=1)
    await asyncio.sleep(0)
    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_failure_is_logged_with_context(caplog):
    caplog.set_level(logging.ERROR, logger="landing_api.core.background")
    tasks = BackgroundTasks()

    async def job():
        raise RuntimeError("mailbox full")

    task = tasks.spawn(job(), name="confirmation", context={"request_id": "req-1"})
    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    record = caplog.records[-1]
    assert record.event_type == "background_task_failed"
    assert record.request_id == "req-1"
    assert "mailbox full" in record.getMessage()


@pytest.mark.asyncio
async def test_shutdown_cancels_stragglers(caplog):
    caplog.set_level(logging.INFO, logger="landing_api.core.background")
    tasks = BackgroundTasks()

    async def slow():
        await asyncio.sleep(10)

    task = tasks.spawn(slow(), name="slow")
    await tasks.shutdown(timeout=0.01)

    assert task.cancelled()
    assert len(tasks) == 0
    assert any(getattr(r, "event_type", None) == "background_task_cancelled" for r in caplog.records)


@pytest.mark.asyncio
async def test_shutdown_waits_for_quick_tasks():
    tasks = BackgroundTasks()
    results = []

    async def quick():
        await asyncio.sleep(0.01)
        results.append("done")

    tasks.spawn(quick(), name="quick")
    await tasks.shutdown(timeout=1)

    assert results == ["done"]


@pytest.mark.asyncio
async def test_shutdown_with_nothing_pending():
    await BackgroundTasks().shutdown()
