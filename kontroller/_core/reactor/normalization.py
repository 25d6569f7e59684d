"""
Conversion of the change notifications into the reconcile requests.

The watch-streams of different resources bring the objects of different kinds:
e.g. replica sets and pods for the same controller. The normalization makes
them uniform: only the identity of an object survives the conversion.
This is what lets the multiplexer treat all resources the same way.

The conversion is pure: no side effects, no I/O, no awaiting.
"""
from typing_extensions import assert_never

from kontroller._cogs.structs import bodies, notifications, references
from kontroller._core.reactor import errors


def normalize(
        notification: notifications.ChangeNotification,
        *,
        resource: references.Resource,
) -> notifications.ReconcileRequest:
    """
    Extract the identity of the notification's object as a reconcile request.

    An ``Error`` notification produces no request; it is raised as a source error
    of the resource instead. An object that cannot be identified is a violation
    of the watch-source's contract; it is raised as a normalization error.
    """
    match notification:
        case notifications.Added(obj) | notifications.Modified(obj) | notifications.Deleted(obj):
            return identify(obj, notification=notification, resource=resource)
        case notifications.Error(error):
            raise errors.SourceError(resource, error)
        case _:
            assert_never(notification)


def identify(
        obj: bodies.Meta,
        *,
        notification: notifications.ChangeNotification,
        resource: references.Resource,
) -> notifications.ReconcileRequest:
    try:
        name = obj.name
        namespace = obj.namespace
    except (AttributeError, LookupError, TypeError) as e:
        raise errors.NormalizationError(resource, notification, f"no identity: {e!r}") from e

    if not isinstance(name, str) or not name:
        raise errors.NormalizationError(resource, notification, f"invalid name: {name!r}")
    if namespace is not None and not isinstance(namespace, str):
        raise errors.NormalizationError(resource, notification, f"invalid namespace: {namespace!r}")

    # Empty namespaces are what some client libraries give for cluster-scoped objects.
    return notifications.ReconcileRequest(name=name, namespace=namespace or None)
