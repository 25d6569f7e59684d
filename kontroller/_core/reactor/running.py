import asyncio
import logging
import signal
import threading
from collections.abc import Collection

from kontroller._cogs.aiokits import aioflags, aiotasks
from kontroller._core.engines import driving
from kontroller._core.intents import registries

logger = logging.getLogger(__name__)


def run(
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        registry: registries.ControllerRegistry | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> None:
    """
    Run all the registered controllers synchronously.

    This function should be used to run the controllers in normal sync mode.
    """
    coro = operator(
        registry=registry,
        stop_flag=stop_flag,
        ready_flag=ready_flag,
    )
    try:
        if loop is not None:
            loop.run_until_complete(coro)
        else:
            asyncio.run(coro)
    except asyncio.CancelledError:
        pass


async def operator(
        *,
        registry: registries.ControllerRegistry | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> None:
    """
    Run all the registered controllers asynchronously.

    This function should be used to run the controllers in an asyncio event-loop
    if the application is orchestrated explicitly and manually.

    It is efficiently `spawn_tasks` + `run_tasks` with some safety.
    """
    existing_tasks = await aiotasks.all_tasks()
    operator_tasks = await spawn_tasks(
        registry=registry,
        stop_flag=stop_flag,
        ready_flag=ready_flag,
    )
    await run_tasks(operator_tasks, ignored=existing_tasks)


async def spawn_tasks(
        *,
        registry: registries.ControllerRegistry | None = None,
        stop_flag: aioflags.Flag | None = None,
        ready_flag: aioflags.Flag | None = None,
) -> Collection[aiotasks.Task]:
    """
    Spawn all the tasks needed to run the controllers: one driver per controller.
    """
    loop = asyncio.get_running_loop()
    registry = registry if registry is not None else registries.get_default_registry()
    signal_flag: aiotasks.Future = loop.create_future()
    tasks: list[aiotasks.Task] = []

    if not len(registry):
        logger.warning("No controllers are registered; waiting for the stop-flag or a signal.")

    tasks.append(aiotasks.create_task(
        name="stop-flag checker",
        coro=_stop_flag_checker(
            signal_flag=signal_flag,
            stop_flag=stop_flag)))

    # A controller that stops on its own is a misbehaviour: stop the whole operator then.
    for registration in registry.get_registrations():
        tasks.append(aiotasks.create_guarded_task(
            name=f"driver of {registration.controller.resource}", logger=logger,
            coro=driving.drive(registration.controller, registration.fn)))

    # Ensure that all guarded tasks got control for a moment to enter the guard.
    await asyncio.sleep(0)

    # On Ctrl+C or pod termination, cancel all tasks gracefully.
    if threading.current_thread() is threading.main_thread():
        # Handle NotImplementedError when ran on Windows since asyncio only supports Unix signals.
        try:
            loop.add_signal_handler(signal.SIGINT, _set_once, signal_flag, signal.SIGINT)
            loop.add_signal_handler(signal.SIGTERM, _set_once, signal_flag, signal.SIGTERM)
        except NotImplementedError:
            logger.warning("OS signals are ignored: can't add signal handler in Windows.")
    else:
        logger.warning("OS signals are ignored: running not in the main thread.")

    await aioflags.raise_flag(ready_flag)
    return tasks


async def run_tasks(
        root_tasks: Collection[aiotasks.Task],
        *,
        ignored: Collection[aiotasks.Task] = frozenset(),
) -> None:
    """
    Orchestrate the tasks and terminate them gracefully when needed.

    The root tasks are expected to run forever. Once any of them exits,
    the whole operator and all other root tasks should exit.

    The hung tasks are those that were spawned during the operator's runtime,
    and were not cancelled/exited on the root tasks' termination (e.g. the tasks
    spawned by the reconcilers). They are given some extra time to finish,
    after which they are forcedly terminated too.
    """

    # Run the infinite tasks until one of them fails/exits (they never exit normally).
    # If the operator is cancelled, propagate the cancellation to all the sub-tasks.
    try:
        root_done, root_pending = await aiotasks.wait(root_tasks, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        await aiotasks.stop(root_tasks, title="root", logger=logger, cancelled=True, interval=10)
        hung_tasks = await aiotasks.all_tasks(ignored=ignored)
        await aiotasks.stop(hung_tasks, title="hung", logger=logger, cancelled=True, interval=1)
        raise

    # If the operator is intact, but one of the root tasks has exited (successfully or not),
    # cancel all the remaining root tasks, and gracefully exit other spawned sub-tasks.
    root_cancelled, _ = await aiotasks.stop(root_pending, title="root", logger=logger)

    # After the root tasks are all gone, cancel any spawned sub-tasks.
    hung_tasks = await aiotasks.all_tasks(ignored=ignored)
    try:
        hung_done, hung_pending = await aiotasks.wait(hung_tasks, timeout=5)
    except asyncio.CancelledError:
        await aiotasks.stop(hung_tasks, title="hung", logger=logger, cancelled=True, interval=1)
        raise

    # If the operator is intact, but the timeout is reached, forcedly cancel the sub-tasks.
    hung_cancelled, _ = await aiotasks.stop(hung_pending, title="hung", logger=logger, interval=1)

    # If succeeded or if cancellation is silenced, re-raise from failed tasks (if any).
    await aiotasks.reraise(root_done | root_cancelled | hung_done | hung_cancelled)


def _set_once(flag: aiotasks.Future, value: signal.Signals) -> None:
    # The second Ctrl+C must not fail in the signal handler.
    if not flag.done():
        flag.set_result(value)


async def _stop_flag_checker(
        signal_flag: aiotasks.Future,
        stop_flag: aioflags.Flag | None,
) -> None:
    """
    A top-level task for external stopping by setting a stop-flag. Once set,
    this task will exit, and thus all other top-level tasks will be cancelled.
    """

    # Selects the flags to be awaited (if set).
    flags: list[aiotasks.Future] = [signal_flag]
    if stop_flag is not None:
        flags.append(aiotasks.create_task(aioflags.wait_flag(stop_flag),
                                          name="stop-flag waiter"))

    # Wait until one of the stoppers is set/raised.
    try:
        done, pending = await asyncio.wait(flags, return_when=asyncio.FIRST_COMPLETED)
        future = done.pop()
        result = await future
    except asyncio.CancelledError:
        pass  # the operator is stopping for any other reason
    else:
        if result is None:
            logger.info("Stop-flag is raised. Operator is stopping.")
        elif isinstance(result, signal.Signals):
            logger.info("Signal %s is received. Operator is stopping.", result.name)
        else:
            logger.info("Stop-flag is set to %r. Operator is stopping.", result)
