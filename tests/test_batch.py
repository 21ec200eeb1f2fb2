import asyncio

import pytest

from artbot.services.batch import BatchAlreadyRunning, BatchRunner

from conftest import FakeLLM, USER_ID


async def test_batch_produces_requested_count_with_numbered_prompts():
    llm = FakeLLM()
    delivered = []

    async def deliver(url):
        delivered.append(url)

    report = await BatchRunner(size=3, delay=0).run(USER_ID, "a cat", llm.generate_image, deliver)

    assert report.produced == 3 and not report.failed and not report.cancelled
    assert llm.prompts == [f"a cat (image {i} improving each time)" for i in (1, 2, 3)]
    assert len(delivered) == 3


async def test_batch_stops_at_first_failure():
    llm = FakeLLM(images=["https://img/1.png", None, "https://img/3.png"])
    delivered = []

    async def deliver(url):
        delivered.append(url)

    report = await BatchRunner(size=3, delay=0).run(USER_ID, "a cat", llm.generate_image, deliver)

    assert report.failed
    assert report.produced == 1
    assert delivered == ["https://img/1.png"]
    assert len(llm.prompts) == 2


async def test_cancel_interrupts_the_delay():
    runner = BatchRunner(size=5, delay=30)
    llm = FakeLLM()

    async def deliver(url):
        runner.cancel(USER_ID)

    report = await asyncio.wait_for(runner.run(USER_ID, "x", llm.generate_image, deliver), timeout=2)

    assert report.cancelled
    assert report.produced == 1
    assert not runner.is_running(USER_ID)


async def test_second_batch_for_same_user_is_rejected():
    runner = BatchRunner(size=2, delay=30)
    started = asyncio.Event()

    async def deliver(url):
        started.set()

    task = asyncio.create_task(runner.run(USER_ID, "x", FakeLLM().generate_image, deliver))
    await started.wait()

    assert runner.is_running(USER_ID)
    with pytest.raises(BatchAlreadyRunning):
        await runner.run(USER_ID, "y", FakeLLM().generate_image, deliver)

    assert runner.cancel(USER_ID)
    await task
    assert not runner.cancel(USER_ID)


async def test_on_start_runs_after_registration_and_not_for_rejected_batch():
    runner = BatchRunner(size=2, delay=30)
    started = asyncio.Event()
    announced = []

    async def announce():
        announced.append(runner.is_running(USER_ID))

    async def deliver(url):
        started.set()

    task = asyncio.create_task(runner.run(USER_ID, "x", FakeLLM().generate_image, deliver, on_start=announce))
    await started.wait()

    with pytest.raises(BatchAlreadyRunning):
        await runner.run(USER_ID, "y", FakeLLM().generate_image, deliver, on_start=announce)

    assert announced == [True]
    runner.cancel(USER_ID)
    await task
