"""
The errors of the event pipeline, as delivered to the error stream.

The pipeline errors are not raised into the reconcilers: they are values
put into a separate error stream of a controller, next to the stream
of reconcile requests. The caller decides what to do with them:
the non-fatal ones are already handled by the controller's restart policy
and are reported for information; the fatal ones mean that the controller
has stopped (or is stopping) and cannot produce the requests anymore.
"""
from typing import ClassVar

from kontroller._cogs.structs import notifications, references


class PipelineError(Exception):
    fatal: ClassVar[bool] = False


class SourceError(PipelineError):
    """
    A watch-source of a resource has failed; its listener has exited.

    If the same source fails several times before the error is taken from
    the error stream, only the latest error is kept there, with all of its
    failures counted in ``occurrences``.
    """

    def __init__(self, resource: references.Resource, error: BaseException) -> None:
        super().__init__(f"Watching has failed for {resource}: {error!r}")
        self.resource = resource
        self.error = error
        self.occurrences = 1


class NormalizationError(PipelineError):
    """ A change notification does not satisfy the identity contract; it is skipped. """

    def __init__(
            self,
            resource: references.Resource,
            notification: notifications.ChangeNotification,
            reason: str,
    ) -> None:
        super().__init__(f"Cannot identify an object of {resource}: {reason}")
        self.resource = resource
        self.notification = notification


class ListenersExhausted(PipelineError):
    """ All listeners have exited, so no requests can be produced anymore. """
    fatal = True


class QueueFailure(PipelineError):
    """ The queue has failed internally; the requests cannot be delivered anymore. """
    fatal = True


class QueueClosed(Exception):
    """ The queue is closed and depleted: no more requests or errors will come. """


class ControllerStateError(RuntimeError):
    """ An operation is not allowed in the controller's current state. """
