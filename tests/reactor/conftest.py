import asyncio

import pytest

from kontroller._core.reactor.queueing import ReconcileQueue


@pytest.fixture()
async def queue(settings):
    queue = ReconcileQueue(settings=settings, name='test queue')
    yield queue
    queue.actor.cancel()
    await asyncio.wait([queue.actor])
