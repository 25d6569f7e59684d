"""
Fan-in of the watch-streams of several resources into one reconcile queue.

Every watched resource (the controller's primary one and the owned ones)
is listened to in a separate asyncio task in the never-ending loop.
The listeners normalize the change notifications into the reconcile requests
and forward them into the shared channel of the reconcile queue.

The listeners run in parallel; there is no ordering across the resources.
Within one resource, the order of the watch-stream is preserved as is.

A listener exits when its watch-stream fails or ends. The failure is forwarded
to the channel as the resource's source error. Whether the listener is then
re-established from scratch or not is decided by the restart policy
of the controller (as configured in its settings); see :func:`supervisor`.
A failed listener never affects the listeners of other resources.
"""
import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator, Iterable

from kontroller._cogs.aiokits import aiotasks
from kontroller._cogs.clients import watching
from kontroller._cogs.configs import configuration
from kontroller._cogs.structs import notifications, references
from kontroller._core.reactor import errors, normalization, queueing

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Watch:
    """ A registered watch: what to watch, how to filter, and where from. """
    resource: references.Resource
    params: references.ListParams
    source: watching.WatchSource


async def listener(
        *,
        watch: Watch,
        channel: queueing.Channel,
) -> errors.PipelineError | None:
    """
    Listen to one resource's watch-stream and forward the requests to the channel.

    The listener is cancelled only between the notifications, never in the middle
    of one: the normalization & forwarding have no awaits. Once a notification
    is forwarded, it is in the queue, and survives the listener's cancellation.

    Returns the source error that has ended the listening, or ``None``
    if the watch-stream has ended on its own.
    """
    resource = watch.resource
    stream: AsyncIterator[notifications.ChangeNotification] | None = None
    logger.debug(f"Starting the listener for {resource}.")
    try:
        # A source can fail when called, not only when iterated.
        stream = watch.source(resource=resource, params=watch.params)
        async for notification in stream:
            try:
                request = normalization.normalize(notification, resource=resource)
            except errors.NormalizationError as e:
                logger.error(f"Skipping a notification of {resource}: {e}")
                channel.put_nowait(e)
            else:
                channel.put_nowait(request)

    except errors.SourceError as e:
        logger.warning(f"The watch-stream has failed for {resource}: {e.error!r}")
        channel.put_nowait(e)
        return e

    # Whatever escapes from the watch-source is its failure, not the listener's one.
    except Exception as e:
        error = errors.SourceError(resource, e)
        logger.warning(f"The watch-source has failed for {resource}: {e!r}")
        channel.put_nowait(error)
        return error

    finally:
        aclose = getattr(stream, 'aclose', None)
        if aclose is not None:
            await aclose()
        logger.debug(f"Stopping the listener for {resource}.")

    return None


async def supervisor(
        *,
        watch: Watch,
        channel: queueing.Channel,
        settings: configuration.ControllerSettings,
) -> None:
    """
    Keep the resource's listener running as long as the restart policy allows.

    Every restart is a new watch from scratch: the watch-source is called again,
    so it lists the objects again, and they all come as added ones.
    """
    while True:
        error = await listener(watch=watch, channel=channel)
        restart = (settings.listening.restart_on_error if error is not None else
                   settings.listening.restart_on_exhaustion)
        why = 'has failed' if error is not None else 'has ended'
        if not restart:
            logger.warning(f"The listener for {watch.resource} {why}; not restarting.")
            return

        delay = settings.listening.restart_delay
        logger.info(f"The listener for {watch.resource} {why}; restarting in {delay}s.")
        await asyncio.sleep(delay)


def spawn_listeners(
        *,
        watches: Iterable[Watch],
        channel: queueing.Channel,
        settings: configuration.ControllerSettings,
) -> dict[Watch, aiotasks.Task]:
    """
    Start one supervised listener task per watch, all in parallel.
    """
    return {
        watch: aiotasks.create_guarded_task(
            name=f"listener for {watch.resource}", logger=logger,
            cancellable=True, finishable=True,
            coro=supervisor(
                watch=watch,
                channel=channel,
                settings=settings))
        for watch in watches
    }
