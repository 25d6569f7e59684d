"""
All configuration flags, options, settings to fine-tune a controller.

All settings are grouped semantically just for convenience
(instead of a flat mega-object with all the values in it).

In this framework, they are called *"settings"* (plural).
Combined, they form a *"configuration"* (singular).

Some of the settings are flags, some are scalars, some are optional,
some are not (but all of them have reasonable defaults).

The settings are passed to every :class:`kontroller.Controller` explicitly;
if they are not passed, the defaults are used. Controllers of the same process
can share the same settings object or have their own ones.
"""
import concurrent.futures
import dataclasses


@dataclasses.dataclass
class QueueingSettings:
    """
    Settings for the reconcile queue: how the requests are collapsed and ordered.
    """

    debounce_window: float = 0.0
    """
    For how long (in seconds) a newly pending request is held in the queue
    before it is handed out to the reconciling loop.

    All requests for the same object arriving within this window collapse
    into the same pending request, so that the bursts of status updates
    result in a single reconciliation.

    The window starts at the first arrival and is never extended
    by the following arrivals, so that the latency stays bounded
    even under the event storms.

    ``0`` means no holding: the requests are available immediately,
    and only those arriving while the reconciling loop is busy are collapsed.
    """


@dataclasses.dataclass
class ListeningSettings:
    """
    Settings for the listeners of the watch-streams, one per watched resource.
    """

    restart_on_error: bool = True
    """
    Should a listener be re-established after its watch-source has failed?

    If ``True``, the watch is started from scratch (with the initial listing).
    If ``False``, the listening of that resource stops, and when all listeners
    of a controller are gone, the controller stops with a fatal error.

    The error is reported to the error stream of the controller in both cases.
    """

    restart_on_exhaustion: bool = True
    """
    Should a listener be re-established after its watch-stream has ended?

    Watch-sources are expected to be unending. If one ends nevertheless,
    it is treated the same way as a failure, but with no error to report.
    """

    restart_delay: float = 0.1
    """
    How long should a pause be between the re-established watches
    (to prevent API flooding). It is a fixed pause, not a backoff:
    the backoff of reconnections belongs to the watch-sources.
    """


@dataclasses.dataclass
class ReconcilingSettings:
    """
    Settings for how the reconcilers are invoked.
    """

    executor: concurrent.futures.Executor = dataclasses.field(
        default_factory=concurrent.futures.ThreadPoolExecutor)
    """
    The executor for the sync reconcilers. Async reconcilers run in the loop.

    Note that the executor is not shut down on the controller's stopping:
    it can be shared across several controllers and outlive them.
    """


@dataclasses.dataclass
class ProcessSettings:
    """
    Settings for the process-level orchestration of controllers' tasks.
    """

    stopping_interval: float = 10
    """
    How often (in seconds) to report the tasks stuck at stopping.

    The stopping itself is never time-limited: the tasks are cancelled
    and awaited until they exit, and this interval affects only the logs.
    """


@dataclasses.dataclass
class ControllerSettings:
    queueing: QueueingSettings = dataclasses.field(default_factory=QueueingSettings)
    listening: ListeningSettings = dataclasses.field(default_factory=ListeningSettings)
    reconciling: ReconcilingSettings = dataclasses.field(default_factory=ReconcilingSettings)
    process: ProcessSettings = dataclasses.field(default_factory=ProcessSettings)
