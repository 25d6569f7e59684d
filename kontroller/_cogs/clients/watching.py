"""
The contract of the watch-sources, plus a few stock ones.

A watch-source is whatever produces the change notifications of one resource:
usually, a client library's watch-stream with the initial listing, the resource
version tracking, and the reconnections on disconnects (an "informer").
The framework does not implement the HTTP transport itself: it only consumes
the notifications via :class:`WatchSource`, a callable that starts a new stream
for a resource every time it is called (e.g. when the controller re-establishes
a failed watch, it calls the source again).

The stock helpers are:

* :func:`adapt_raw_events` converts the raw JSON-decoded watch-events
  (as K8s API sends them) into the change notifications.
* :class:`MemorySource` is fed programmatically, e.g. in tests, or when
  the notifications come from an event producer other than K8s API.
"""
import asyncio
import enum
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import Protocol

from kontroller._cogs.clients import errors
from kontroller._cogs.structs import bodies, notifications, references

logger = logging.getLogger(__name__)


class WatchSource(Protocol):
    def __call__(
            self,
            *,
            resource: references.Resource,
            params: references.ListParams,
    ) -> AsyncIterator[notifications.ChangeNotification]:
        ...


async def adapt_raw_events(
        raw_events: AsyncIterable[bodies.RawEvent],
) -> AsyncIterator[notifications.ChangeNotification]:
    """
    Convert the raw watch-events of K8s API into the change notifications.

    The bookmarks are skipped: they only carry the resource version, which is
    of interest to the watch-streams, but not to the pipeline. The unknown
    event types are skipped too, but with a warning.
    """
    async for raw_event in raw_events:
        raw_type = raw_event['type']
        raw_object = raw_event['object']
        if raw_type == 'ADDED':
            yield notifications.Added(bodies.Body(raw_object))  # type: ignore[arg-type]
        elif raw_type == 'MODIFIED':
            yield notifications.Modified(bodies.Body(raw_object))  # type: ignore[arg-type]
        elif raw_type == 'DELETED':
            yield notifications.Deleted(bodies.Body(raw_object))  # type: ignore[arg-type]
        elif raw_type == 'ERROR':
            yield notifications.Error(errors.make_api_error(raw_object))  # type: ignore[arg-type]
        elif raw_type == 'BOOKMARK':
            continue
        else:
            logger.warning(f"Ignoring an unsupported event type: {raw_event!r}")


# An end-of-stream marker sent from the feeder to the streams.
class EOS(enum.Enum):
    token = enum.auto()


class MemorySource:
    """
    An in-memory watch-source fed with the notifications programmatically.

    Every resource has its own backlog of notifications. The streams consume
    the backlog of their resource, so if a stream is restarted (e.g. after
    a fed ``Error``), the new stream continues from where the old one stopped.
    A closed resource's streams end once the backlog is depleted.

    The calls are remembered for inspection (e.g. in tests).
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[references.Resource, references.ListParams]] = []
        self._backlogs: dict[references.Resource, asyncio.Queue[notifications.ChangeNotification | EOS]] = {}
        self._closed: set[references.Resource] = set()

    def __call__(
            self,
            *,
            resource: references.Resource,
            params: references.ListParams,
    ) -> AsyncIterator[notifications.ChangeNotification]:
        self.calls.append((resource, params))
        return self._stream(resource)

    async def _stream(
            self,
            resource: references.Resource,
    ) -> AsyncIterator[notifications.ChangeNotification]:
        backlog = self._get_backlog(resource)
        while not (resource in self._closed and backlog.empty()):
            item = await backlog.get()
            if isinstance(item, EOS):
                break
            yield item

    def _get_backlog(
            self,
            resource: references.Resource,
    ) -> asyncio.Queue[notifications.ChangeNotification | EOS]:
        try:
            return self._backlogs[resource]
        except KeyError:
            return self._backlogs.setdefault(resource, asyncio.Queue())

    def feed(
            self,
            resource: references.Resource,
            *items: notifications.ChangeNotification | Iterable[notifications.ChangeNotification],
    ) -> None:
        if resource in self._closed:
            raise RuntimeError(f"Cannot feed a closed source of {resource}.")
        backlog = self._get_backlog(resource)
        for item in items:
            if isinstance(item, (notifications.Added, notifications.Modified,
                                 notifications.Deleted, notifications.Error)):
                backlog.put_nowait(item)
            else:
                for subitem in item:
                    backlog.put_nowait(subitem)

    def close(self, resource: references.Resource) -> None:
        self._closed.add(resource)
        self._get_backlog(resource).put_nowait(EOS.token)
