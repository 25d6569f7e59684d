import asyncio

import pytest

from kontroller._core.engines.controlling import Controller


@pytest.fixture()
async def controller(settings, source, pods):
    controller = Controller(pods, source=source, settings=settings)
    yield controller
    await controller.stop()
    if controller._queue is not None:
        controller.queue.actor.cancel()
        await asyncio.wait([controller.queue.actor])


async def wait_until(condition, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise TimeoutError("The condition is not met in time.")
        await asyncio.sleep(0.01)


@pytest.fixture()
def until():
    return wait_until
