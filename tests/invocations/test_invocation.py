import asyncio
import contextvars
import functools
import threading
import warnings

import pytest

from kontroller._core.actions.invocation import invoke, is_async_fn

var = contextvars.ContextVar('var', default=None)


def sync_fn(**kwargs):
    return ('sync', kwargs, threading.current_thread())


async def async_fn(**kwargs):
    return ('async', kwargs, threading.current_thread())


def test_detection_of_functions():
    assert is_async_fn(async_fn)
    assert not is_async_fn(sync_fn)
    assert not is_async_fn(None)


def test_detection_emits_no_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter('error', DeprecationWarning)
        assert is_async_fn(async_fn)
        assert not is_async_fn(sync_fn)


def test_detection_of_partials():
    assert is_async_fn(functools.partial(async_fn, x=1))
    assert not is_async_fn(functools.partial(sync_fn, x=1))


def test_detection_of_wrapped_functions():
    @functools.wraps(async_fn)
    def wrapper(**kwargs):
        return async_fn(**kwargs)
    assert is_async_fn(wrapper)


async def test_async_functions_run_in_the_loop(settings):
    kind, kwargs, thread = await invoke(async_fn, settings=settings, kwargs=dict(name='name1'))
    assert kind == 'async'
    assert kwargs == dict(name='name1')
    assert thread is threading.current_thread()


async def test_sync_functions_run_in_the_executor(settings):
    kind, kwargs, thread = await invoke(sync_fn, settings=settings, kwargs=dict(name='name1'))
    assert kind == 'sync'
    assert kwargs == dict(name='name1')
    assert thread is not threading.current_thread()


async def test_sync_functions_without_settings():
    kind, _, thread = await invoke(sync_fn)
    assert kind == 'sync'
    assert thread is not threading.current_thread()


async def test_context_is_copied_into_threads(settings):

    def fn(**kwargs):
        return var.get()

    var.set('value')
    assert await invoke(fn, settings=settings) == 'value'


async def test_errors_are_propagated(settings):

    def fn(**kwargs):
        raise ValueError('boo!')

    with pytest.raises(ValueError, match=r"boo!"):
        await invoke(fn, settings=settings)


async def test_cancellation_waits_for_the_sync_functions(settings):
    started = threading.Event()
    release = threading.Event()
    finished = []

    def fn(**kwargs):
        started.set()
        release.wait(timeout=1)
        finished.append(True)

    task = asyncio.create_task(invoke(fn, settings=settings))
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, started.wait, 1)
    task.cancel()
    await asyncio.sleep(0.01)
    assert not task.done()

    release.set()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert finished == [True]
