"""
The reconcile queue: debouncing and ordering of the reconcile requests.

The listeners of all watched resources put the requests (and the errors)
into one shared unbounded channel. They never wait for the consumer:
a slow reconciler must not slow down the watch-streams, otherwise
the resource versions get too old and the watches need to be re-listed.

The bounding happens here instead: the requests are collapsed per object,
so there is at most one pending request per object at any time, regardless
of how many changes have happened to that object while it was pending.
As such, the queue's size is limited by the number of distinct objects,
not by the rate of the changes.

The pending requests are handed out in the order of their first arrival.
An object that changes again while its request is pending does not move
to the back of the queue, so the latency of reconciliation is bounded
even under the event storms (e.g. frequent status updates of a few objects).
Once handed out, the next change of the object opens a new pending request
at the back of the queue -- the reconciler will re-read the object anyway.

All the queue's state is owned by one single task: the actor. The channel
is its inbox. Everything else communicates with the actor by messages:
the listeners send the requests and the errors, the consumers send
their demands (futures to be resolved with the next request), and so on.
There are no locks, so there is nothing to be held across the awaits.
"""
import asyncio
import collections
import enum
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, NamedTuple, Protocol

from kontroller._cogs.aiokits import aiotasks
from kontroller._cogs.configs import configuration
from kontroller._cogs.structs import notifications
from kontroller._core.reactor import errors

logger = logging.getLogger(__name__)


class Channel(Protocol):
    """ The producers' side of the queue: as seen by the listeners. """
    def put_nowait(self, item: notifications.ReconcileRequest | errors.PipelineError) -> None:
        ...


class Command(enum.Enum):
    TICK = enum.auto()  # the head of the queue may be ripe now.
    CLOSE = enum.auto()  # no more requests are expected from the listeners.


if TYPE_CHECKING:
    Demand = asyncio.Future[notifications.ReconcileRequest]
else:
    Demand = asyncio.Future


class Putback(NamedTuple):
    """ A request handed out to a consumer which was cancelled before getting it. """
    request: notifications.ReconcileRequest


class Demanding(NamedTuple):
    """ A consumer waiting for the next available request. """
    demand: Demand


Message = notifications.ReconcileRequest | errors.PipelineError | Putback | Demanding | Command


class ReconcileQueue:
    """
    A debounced per-object queue of reconcile requests, plus the error stream.

    It must be created in a running event loop: the actor starts immediately.
    The actor exits on its own after the queue is closed and fully depleted.
    """

    def __init__(
            self,
            *,
            settings: configuration.ControllerSettings,
            name: str = 'reconcile queue',
    ) -> None:
        super().__init__()
        self._settings = settings
        self._name = name
        self._inbox: asyncio.Queue[Message] = asyncio.Queue()
        self._errors: collections.OrderedDict[object, errors.PipelineError] = collections.OrderedDict()
        self._errors_changed = asyncio.Event()
        self._errors_ended = False

        # Owned by the actor only. Read-only for everyone else.
        self._pending: collections.OrderedDict[notifications.ReconcileRequest, float] = collections.OrderedDict()
        self._demands: collections.deque[Demand] = collections.deque()
        self._timer: asyncio.TimerHandle | None = None
        self._closing = False

        # Owned by the queue's public methods (the actor only reads them).
        self._closed = False
        self._depleted = False
        self._actor_task = aiotasks.create_task(self._actor(), name=f"actor of {name}")

    def __repr__(self) -> str:
        state = 'depleted' if self._depleted else 'closed' if self._closed else 'open'
        return f'<{self.__class__.__name__}: {self._name}: {state}, {len(self._pending)} pending>'

    def __aiter__(self) -> AsyncIterator[notifications.ReconcileRequest]:
        return self

    async def __anext__(self) -> notifications.ReconcileRequest:
        try:
            return await self.get()
        except errors.QueueClosed:
            raise StopAsyncIteration from None

    @property
    def channel(self) -> Channel:
        return self._inbox

    @property
    def actor(self) -> aiotasks.Task:
        return self._actor_task

    def closed(self) -> bool:
        return self._closed

    def pending(self) -> list[notifications.ReconcileRequest]:
        """
        A snapshot of the pending requests in the order of their handing out.

        The requests still in transit in the channel are not included.
        """
        return list(self._pending)

    def qsize(self) -> int:
        return len(self._pending)

    def enqueue(self, request: notifications.ReconcileRequest) -> None:
        """
        Request a reconciliation from the consumers' side, e.g. to retry it.

        The request is collapsed with the already pending one (if any).
        """
        if self._closed:
            raise errors.QueueClosed(f"Cannot enqueue {request} into a closed {self._name}.")
        self._inbox.put_nowait(request)

    def close(self) -> None:
        """
        Stop accepting new requests, but keep the pending ones for depletion.

        The closing goes through the channel, so everything that was sent there
        before (e.g. by the listeners) is accepted and stays available too.
        The debounce window does not apply to the remaining requests anymore.
        """
        if not self._closed:
            self._closed = True
            self._inbox.put_nowait(Command.CLOSE)

    async def get(self) -> notifications.ReconcileRequest:
        """
        Wait for the next available request. Fail if closed and depleted.
        """
        if self._depleted:
            raise errors.QueueClosed(f"The {self._name} is closed and depleted.")

        demand: Demand = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(Demanding(demand))
        try:
            return await demand
        except asyncio.CancelledError:
            # The actor could have handed out a request right before the cancellation. Keep it.
            if demand.done() and not demand.cancelled() and demand.exception() is None:
                self._put_back(demand.result())
            raise

    async def get_error(self) -> errors.PipelineError:
        """
        Wait for the next error of the pipeline. Fail if closed and depleted.

        The errors not taken yet are collapsed per failed source: the latest one
        stays in the position of the first one, and counts all their occurrences.
        """
        while not self._errors:
            if self._errors_ended:
                raise errors.QueueClosed(f"The {self._name} is closed and has no errors left.")
            self._errors_changed.clear()
            await self._errors_changed.wait()
        _, error = self._errors.popitem(last=False)
        return error

    def _put_back(self, request: notifications.ReconcileRequest) -> None:
        if not self._depleted:
            self._inbox.put_nowait(Putback(request))
        else:
            # The actor is gone, so nobody else owns the state now. Revive it with that request.
            self._pending[request] = asyncio.get_running_loop().time()
            self._depleted = False
            self._actor_task = aiotasks.create_task(self._actor(), name=f"actor of {self._name}")

    async def _actor(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            while not (self._closing and not self._pending and self._inbox.empty()):
                message = await self._inbox.get()
                self._accept(message, now=loop.time())
                self._serve(now=loop.time())
        except Exception as e:
            logger.exception(f"The {self._name} has failed: {e}")
            self._report(errors.QueueFailure(f"The {self._name} has failed: {e!r}"))
            raise
        finally:
            # IMPORTANT: There MUST be NO async/await-code in here, so that the inbox
            # is not populated again between the last check and the depletion mark.
            self._depleted = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

            # Only on failures or cancellations: nothing will ever serve the messages in transit.
            while not self._inbox.empty():
                message = self._inbox.get_nowait()
                if isinstance(message, Demanding):
                    self._demands.append(message.demand)
                elif isinstance(message, errors.PipelineError):
                    self._report(message)

            while self._demands:
                demand = self._demands.popleft()
                if not demand.done():
                    demand.set_exception(errors.QueueClosed(f"The {self._name} is depleted."))
            self._errors_ended = True
            self._errors_changed.set()

    def _accept(self, message: Message, *, now: float) -> None:
        window = self._settings.queueing.debounce_window
        if isinstance(message, notifications.ReconcileRequest):
            # Collapse into the existing slot: it keeps both its position & its ripening time.
            if message not in self._pending:
                self._pending[message] = now if self._closing else now + window
        elif isinstance(message, errors.PipelineError):
            self._report(message)
        elif isinstance(message, Demanding):
            self._demands.append(message.demand)
        elif isinstance(message, Putback):
            self._pending[message.request] = now
            self._pending.move_to_end(message.request, last=False)
        elif message is Command.CLOSE:
            self._closing = True
            for request, ripe_time in self._pending.items():
                self._pending[request] = min(ripe_time, now)
        elif message is Command.TICK:
            pass  # only to wake up and serve.
        else:
            raise TypeError(f"Unsupported message in the {self._name}: {message!r}")

    def _report(self, error: errors.PipelineError) -> None:
        # A failing source is restarted again and again: keep only its latest error, but count all.
        key: object = error
        if isinstance(error, errors.SourceError):
            key = (errors.SourceError, error.resource)
            previous = self._errors.get(key)
            if isinstance(previous, errors.SourceError):
                error.occurrences += previous.occurrences
        self._errors[key] = error
        self._errors_changed.set()

    def _serve(self, *, now: float) -> None:
        # Forget the consumers who are not waiting anymore (e.g. cancelled).
        while self._demands and self._demands[0].done():
            self._demands.popleft()

        # The requests ripen in the order of their arrival, so only the head is checked.
        while self._demands and self._pending:
            request, ripe_time = next(iter(self._pending.items()))
            if ripe_time > now:
                self._wake_up_at(ripe_time)
                break
            demand = self._demands.popleft()
            if not demand.done():
                del self._pending[request]
                demand.set_result(request)

    def _wake_up_at(self, when: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_at(when, self._inbox.put_nowait, Command.TICK)
