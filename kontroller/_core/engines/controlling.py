"""
The controller: watched resources, their listeners, and the reconcile queue.

A controller is configured first: the primary resource is given at creation,
the owned resources are added before the start. Once started, it runs
one listener per resource (see :mod:`kontroller._core.reactor.multiplexing`)
and exposes the reconcile queue (see :mod:`kontroller._core.reactor.queueing`)
to the caller's reconciling loop.

The lifecycle is one-way::

    CONFIGURED --start()--> RUNNING --stop() or a fatal error--> STOPPED

A stopped controller cannot be restarted; a new one must be created instead.
When stopped, the listeners are cancelled, but the requests already queued
remain available for depletion by the reconciling loop.
"""
import asyncio
import enum
import logging
from collections.abc import AsyncIterator
from types import TracebackType

from kontroller._cogs.aiokits import aiotasks
from kontroller._cogs.clients import watching
from kontroller._cogs.configs import configuration
from kontroller._cogs.structs import notifications, references
from kontroller._core.reactor import errors, multiplexing, queueing

logger = logging.getLogger(__name__)


class ControllerState(enum.Enum):
    CONFIGURED = 'configured'
    RUNNING = 'running'
    STOPPED = 'stopped'


class Controller:
    """
    A controller of one primary resource, and optionally of the owned resources.

    The changes of all the watched resources trigger the reconciliation
    of the changed objects by their identities (name & namespace).
    The same watch-source is used for all resources unless overridden
    for a specific owned resource.
    """

    def __init__(
            self,
            resource: references.Resource,
            *,
            source: watching.WatchSource,
            params: references.ListParams | None = None,
            settings: configuration.ControllerSettings | None = None,
    ) -> None:
        super().__init__()
        self.resource = resource
        self.settings = settings if settings is not None else configuration.ControllerSettings()
        self._source = source
        self._watches: list[multiplexing.Watch] = []
        self._state = ControllerState.CONFIGURED
        self._queue: queueing.ReconcileQueue | None = None
        self._listeners: dict[multiplexing.Watch, aiotasks.Task] = {}
        self._watchdog: aiotasks.Task | None = None
        self._add_watch(resource, params=params, source=source)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} for {self.resource}: {self._state.value}>'

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def resources(self) -> list[references.Resource]:
        """ All the watched resources: the primary one first, then the owned ones. """
        return [watch.resource for watch in self._watches]

    @property
    def queue(self) -> queueing.ReconcileQueue:
        if self._queue is None:
            raise errors.ControllerStateError(f"The controller is not started yet: {self!r}")
        return self._queue

    def owns(
            self,
            resource: references.Resource,
            *,
            params: references.ListParams | None = None,
            source: watching.WatchSource | None = None,
    ) -> "Controller":
        """
        Also watch an owned resource: its changes trigger the reconciliation too.

        Returns the controller itself, so that the calls can be chained.
        """
        if self._state is not ControllerState.CONFIGURED:
            raise errors.ControllerStateError(
                f"Owned resources can be added only before the start: {self!r}")
        self._add_watch(resource, params=params, source=source)
        return self

    def _add_watch(
            self,
            resource: references.Resource,
            *,
            params: references.ListParams | None,
            source: watching.WatchSource | None,
    ) -> None:
        if resource in self.resources:
            raise ValueError(f"The resource {resource} is already watched by {self!r}.")
        self._watches.append(multiplexing.Watch(
            resource=resource,
            params=params if params is not None else references.ListParams(),
            source=source if source is not None else self._source,
        ))

    async def start(self) -> None:
        if self._state is not ControllerState.CONFIGURED:
            raise errors.ControllerStateError(f"The controller can be started only once: {self!r}")

        logger.info(f"Starting the controller for {self.resource}.")
        self._state = ControllerState.RUNNING
        self._queue = queueing.ReconcileQueue(settings=self.settings, name=f"queue of {self.resource}")
        self._listeners = multiplexing.spawn_listeners(
            watches=self._watches,
            channel=self._queue.channel,
            settings=self.settings,
        )
        self._watchdog = aiotasks.create_guarded_task(
            name=f"watchdog of {self.resource}", logger=logger,
            cancellable=True, finishable=True,
            coro=self._watch_dog())

        # Ensure that all guarded tasks got control for a moment to enter the guard.
        await asyncio.sleep(0)

    async def stop(self) -> None:
        """
        Stop producing new requests; keep the queued ones for depletion.

        It is safe to stop the controller several times, and from any state.
        """
        if self._state is not ControllerState.RUNNING:
            self._state = ControllerState.STOPPED
            return

        logger.info(f"Stopping the controller for {self.resource}.")
        self._state = ControllerState.STOPPED

        # The queue is closed even if the stopping is interrupted: a repeated stop() is a no-op.
        try:
            if self._watchdog is not None and self._watchdog is not asyncio.current_task():
                await aiotasks.stop([self._watchdog], title="watchdog", quiet=True, logger=logger)
            await aiotasks.stop(self._listeners.values(), title="listener", logger=logger,
                                interval=self.settings.process.stopping_interval)
        finally:
            self.queue.close()

    async def __aenter__(self) -> "Controller":
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc_val: BaseException | None,
            exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    def __aiter__(self) -> AsyncIterator[notifications.ReconcileRequest]:
        return self.queue.__aiter__()

    async def get(self) -> notifications.ReconcileRequest:
        return await self.queue.get()

    async def get_error(self) -> errors.PipelineError:
        return await self.queue.get_error()

    def enqueue(self, request: notifications.ReconcileRequest) -> None:
        self.queue.enqueue(request)

    async def _watch_dog(self) -> None:
        """
        Stop the controller if it cannot produce the requests anymore.

        This happens either when all the listeners are gone (e.g. not restarted
        after failures as configured), or when the queue has failed internally.
        The reason is reported to the error stream once, the queue reports its
        own failures itself.
        """
        actor = self.queue.actor
        remaining = set(self._listeners.values())
        while remaining and not actor.done():
            await aiotasks.wait(remaining | {actor}, return_when=asyncio.FIRST_COMPLETED)
            remaining = {task for task in remaining if not task.done()}

        if not actor.done():
            resources = ', '.join(str(resource) for resource in self.resources)
            self.queue.channel.put_nowait(errors.ListenersExhausted(
                f"All listeners have exited for {resources}; no more requests will come."))
            logger.error(f"All listeners have exited for {resources}.")
        await self.stop()
