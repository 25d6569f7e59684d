import asyncio

import pytest

from kontroller._cogs.structs.notifications import Added, Deleted, Error, Modified
from kontroller._cogs.structs.references import ListParams


async def collect(stream):
    return [notification async for notification in stream]


async def test_calls_are_remembered(source, pods, params):
    source(resource=pods, params=params)
    assert source.calls == [(pods, params)]


async def test_fed_notifications_are_streamed_in_order(source, pods, params, make_obj):
    obj1, obj2 = make_obj('name1'), make_obj('name2')
    source.feed(pods, Added(obj1), Modified(obj1), Deleted(obj2))
    source.close(pods)
    notifications = await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1)
    assert notifications == [Added(obj1), Modified(obj1), Deleted(obj2)]


async def test_iterables_are_fed_item_by_item(source, pods, params, make_obj):
    obj1, obj2 = make_obj('name1'), make_obj('name2')
    source.feed(pods, [Added(obj1), Added(obj2)], Modified(obj1))
    source.close(pods)
    notifications = await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1)
    assert notifications == [Added(obj1), Added(obj2), Modified(obj1)]


async def test_resources_have_separate_backlogs(source, pods, replicasets, params, make_obj):
    obj1, obj2 = make_obj('name1'), make_obj('name2')
    source.feed(pods, Added(obj1))
    source.feed(replicasets, Added(obj2))
    source.close(pods)
    notifications = await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1)
    assert notifications == [Added(obj1)]


async def test_restarted_stream_continues_the_backlog(source, pods, params, make_obj):
    obj1, obj2 = make_obj('name1'), make_obj('name2')
    error = ValueError('boo!')
    source.feed(pods, Added(obj1), Error(error), Added(obj2))
    source.close(pods)

    stream = source(resource=pods, params=params)
    assert await stream.__anext__() == Added(obj1)
    assert await stream.__anext__() == Error(error)
    await stream.aclose()

    notifications = await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1)
    assert notifications == [Added(obj2)]


async def test_closed_and_depleted_streams_end_immediately(source, pods, params):
    source.close(pods)
    assert await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1) == []
    assert await asyncio.wait_for(collect(source(resource=pods, params=params)), timeout=1) == []


async def test_open_streams_wait_for_more(source, pods, make_obj):
    obj = make_obj('name1')
    stream = source(resource=pods, params=ListParams())
    task = asyncio.ensure_future(stream.__anext__())
    await asyncio.sleep(0.01)
    assert not task.done()

    source.feed(pods, Added(obj))
    notification = await asyncio.wait_for(task, timeout=1)
    assert notification == Added(obj)
    await stream.aclose()


async def test_feeding_a_closed_resource_fails(source, pods, make_obj):
    source.close(pods)
    with pytest.raises(RuntimeError, match=r"closed"):
        source.feed(pods, Added(make_obj('name1')))
