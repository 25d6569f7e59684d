"""
Invoking the reconcilers, including the kwargs preparation.

Both sync & async functions are supported, so as their partials.
Also, decorated wrappers and lambdas are recognized.
All of this goes via the same invocation logic and protocol.
"""
import asyncio
import contextvars
import functools
import inspect
from collections.abc import Callable, Coroutine, Mapping
from typing import Any, TypeVar

from kontroller._cogs.configs import configuration

# A reconciler can be a sync fn with the result, or an async fn
# which returns a coroutine which, in turn, returns the result.
_R = TypeVar('_R')
SyncOrAsync = _R | Coroutine[None, None, _R]

# A generic sync-or-async callable with no args/kwargs checks (unlike in protocols).
Invokable = Callable[..., SyncOrAsync[object | None]]


async def invoke(
        fn: Invokable,
        *,
        settings: configuration.ControllerSettings | None = None,
        kwargs: Mapping[str, Any] | None = None,
) -> Any:
    """
    Invoke a single function, but safely for the main asyncio process.

    The function is expected to accept ``**kwargs`` for the args
    that it does not use -- for forward compatibility with the new features.

    The synchronous functions are executed in the executor (threads or processes),
    thus making it non-blocking for the main event loop of the controllers.
    See: https://pymotw.com/3/asyncio/executors.html
    """
    kwargs = {} if kwargs is None else kwargs
    if is_async_fn(fn):
        result = await fn(**kwargs)  # type: ignore
    else:
        # For executors' kwargs, it is officially recommended:
        # https://docs.python.org/3/library/asyncio-eventloop.html#asyncio.loop.run_in_executor
        real_fn = functools.partial(fn, **kwargs)

        # Copy the asyncio context from the current thread to the reconciler's thread.
        context = contextvars.copy_context()
        real_fn = functools.partial(context.run, real_fn)

        # Prevent orphaned threads during the reconciliation's cancellation. It is better to be stuck
        # in the task than to have orphan threads which deplete the executor's pool capacity.
        # Cancellation is postponed until the thread exits, but it happens anyway.
        loop = asyncio.get_running_loop()
        executor = settings.reconciling.executor if settings is not None else None
        future = loop.run_in_executor(executor, real_fn)
        cancellation: asyncio.CancelledError | None = None
        while not future.done():
            try:
                await asyncio.shield(future)  # slightly expensive: creates tasks
            except asyncio.CancelledError as e:
                cancellation = e
        if cancellation is not None:
            raise cancellation
        result = future.result()

    return result


def is_async_fn(
        fn: Invokable | None,
) -> bool:
    if fn is None:
        return False
    elif isinstance(fn, functools.partial):
        return is_async_fn(fn.func)
    elif hasattr(fn, '__wrapped__'):  # @functools.wraps()
        return is_async_fn(fn.__wrapped__)
    else:
        return inspect.iscoroutinefunction(fn)
