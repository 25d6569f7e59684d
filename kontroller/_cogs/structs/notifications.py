"""
The change notifications (inputs) and the reconcile requests (outputs).

A change notification is what a watch-source yields for every change
of the watched objects, or for a failure of the watch-stream itself.
It is a closed sum type of exactly 4 variants; the consumers are expected
to match them exhaustively, so that a new variant (if ever added) fails
the type-checking everywhere it is not handled.

A reconcile request is what the controller yields to the reconcilers.
It carries no payload except the object's identity: the reconcilers
are expected to fetch the current state of the object themselves
rather than to trust a possibly stale copy from the watch-stream.
"""
import dataclasses
from typing import NamedTuple

from kontroller._cogs.structs import bodies


@dataclasses.dataclass(frozen=True)
class Added:
    """ The object is seen for the first time (including the initial listing). """
    obj: bodies.Meta


@dataclasses.dataclass(frozen=True)
class Modified:
    """ The object's state has changed. """
    obj: bodies.Meta


@dataclasses.dataclass(frozen=True)
class Deleted:
    """ The object is removed from the cluster. """
    obj: bodies.Meta


@dataclasses.dataclass(frozen=True)
class Error:
    """ The watch-stream has failed: e.g. the resource version is too old. """
    error: Exception


ChangeNotification = Added | Modified | Deleted | Error


class ReconcileRequest(NamedTuple):
    """
    A unit of pending reconciliation work for one object.

    Hashable and comparable by value, so it is also used as the object's key
    when the requests are collapsed in the queue.
    """
    name: str
    namespace: str | None = None

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}' if self.namespace else self.name
