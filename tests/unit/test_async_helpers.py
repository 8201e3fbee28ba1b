"""Tests for safely_schedule_coroutine."""

import asyncio
import logging

import pytest

from opencode_bridge import async_helpers
from opencode_bridge.async_helpers import safely_schedule_coroutine


@pytest.mark.asyncio
async def test_schedules_coroutine_on_running_loop():
    done = asyncio.Event()

    async def work():
        done.set()

    task = safely_schedule_coroutine(work(), name="work")

    assert task is not None
    assert task.get_name() == "work"
    await asyncio.wait_for(done.wait(), timeout=1)


@pytest.mark.asyncio
async def test_accepts_factory_and_keeps_reference_until_done():
    async def work():
        await asyncio.sleep(0)

    task = safely_schedule_coroutine(work)

    assert task in async_helpers._BACKGROUND_TASKS
    await task
    await asyncio.sleep(0)
    assert task not in async_helpers._BACKGROUND_TASKS


@pytest.mark.asyncio
async def test_logs_task_failure(caplog):
    async def broken():
        raise RuntimeError("background failure")

    with caplog.at_level(logging.ERROR, logger="opencode_bridge.async_helpers"):
        task = safely_schedule_coroutine(broken(), name="broken")
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

    assert "Background task broken failed" in caplog.text


def test_runs_to_completion_without_loop():
    results = []

    async def work():
        results.append("ran")

    assert safely_schedule_coroutine(work()) is None
    assert results == ["ran"]


def test_rejects_non_coroutine_factory():
    with pytest.raises(TypeError):
        safely_schedule_coroutine(lambda: 42)

    with pytest.raises(TypeError):
        safely_schedule_coroutine(42)
