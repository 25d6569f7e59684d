"""
Driving a controller with a reconciler: the consuming side of the pipeline.

The controller only produces the requests; the caller decides what to do
with them. The driver is the default caller: it runs the reconciler for every
request, one at a time, in the order of the queue, while the error stream
of the same controller is watched in parallel.

The retries are not the driver's concern: a reconciler that wants to be
retried later can put its request back via ``controller.enqueue(request)``.
"""
import asyncio
import logging

from kontroller._cogs.aiokits import aiotasks
from kontroller._cogs.structs import notifications
from kontroller._core.actions import invocation, loggers
from kontroller._core.engines import controlling
from kontroller._core.intents import registries
from kontroller._core.reactor import errors

logger = logging.getLogger(__name__)


async def drive(
        controller: controlling.Controller,
        fn: registries.ReconcilerFn,
) -> None:
    """
    Run the controller and reconcile its requests until it is stopped.

    The controller is started if not yet; it is always stopped on exit.
    The first fatal error of the pipeline or the first failure
    of the reconciler is raised; the non-fatal errors are only logged.
    """
    if controller.state is controlling.ControllerState.CONFIGURED:
        await controller.start()

    errors_task = aiotasks.create_task(
        name=f"error watcher of {controller.resource}",
        coro=error_watcher(controller=controller))
    reconciling_task = aiotasks.create_task(
        name=f"reconciler of {controller.resource}",
        coro=reconciler_loop(controller=controller, fn=fn))
    tasks = {errors_task, reconciling_task}
    try:
        done, _ = await aiotasks.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    finally:
        await controller.stop()
        await aiotasks.stop(tasks, title="driver", quiet=True, logger=logger)
    await aiotasks.reraise(done)


async def reconciler_loop(
        *,
        controller: controlling.Controller,
        fn: registries.ReconcilerFn,
) -> None:
    async for request in controller:
        await reconcile(controller=controller, fn=fn, request=request)


async def reconcile(
        *,
        controller: controlling.Controller,
        fn: registries.ReconcilerFn,
        request: notifications.ReconcileRequest,
) -> None:
    request_logger = loggers.RequestLogger(request=request, resource=controller.resource)
    fn_name = getattr(fn, '__qualname__', repr(fn))
    try:
        await invocation.invoke(fn, settings=controller.settings, kwargs=dict(
            request=request,
            name=request.name,
            namespace=request.namespace,
            resource=controller.resource,
            controller=controller,
            logger=request_logger,
        ))
    except Exception:
        request_logger.exception(f"Reconciler {fn_name!r} has failed.")
        raise
    else:
        request_logger.debug(f"Reconciler {fn_name!r} succeeded.")


async def error_watcher(
        *,
        controller: controlling.Controller,
) -> None:
    """
    Watch the controller's error stream until it is closed.

    The non-fatal errors are already handled by the pipeline (e.g. the failed
    listeners are restarted as configured). The fatal ones are raised.
    """
    while True:
        try:
            error = await controller.get_error()
        except errors.QueueClosed:
            return
        if error.fatal:
            raise error
        times = getattr(error, 'occurrences', 1)
        suffix = f" (repeated {times} times)" if times > 1 else ""
        logger.warning(f"Reconciling of {controller.resource} continues despite an error: {error}{suffix}")
