"""
K8s API errors, as reported by the watch-sources.

The watch-sources are external to the framework and can be built on any
client library (``aiohttp``, ``kubernetes_asyncio``, ``httpx``, etc).
We cannot rely on their exceptions all over the code in the framework.
Hence, we have our own hierarchy of exceptions for K8s API errors,
which the watch-sources can put into the ``Error`` change notifications.

The errors contain the information about the reasons as provided by K8s API
in its ``Status`` payloads (e.g. the ``ERROR`` events in the watch-streams),
not guessed only by HTTP statuses alone.

Some selected reasons of K8s API errors are made into their own classes,
so that they could be intercepted and handled in other places of the framework
or in the controllers. All other reasons are raised as the base error class.
The watch-sources can also report any other exceptions as is: e.g. the network
connectivity issues, which are not related to the domain of K8s API.
"""
from collections.abc import Collection

from typing_extensions import Literal, TypedDict

from kontroller._cogs.structs import bodies

HTTP_GONE_CODE = 410


class RawStatusCause(TypedDict):
    field: str
    reason: str
    message: str


class RawStatusDetails(TypedDict, total=False):
    name: str
    uid: str
    retryAfterSeconds: int
    kind: str
    group: str
    causes: Collection[RawStatusCause]


# https://kubernetes.io/docs/reference/generated/kubernetes-api/v1.19/#status-v1-meta
class RawStatus(TypedDict, total=False):
    apiVersion: str
    kind: Literal["Status"]
    code: int
    status: Literal["Success", "Failure"]
    reason: str
    message: str
    details: RawStatusDetails


class APIError(Exception):

    def __init__(
            self,
            payload: RawStatus | None,
            *,
            status: int | None = None,
    ) -> None:
        message = payload.get('message') if payload else None
        super().__init__(message, payload)
        self._payload = payload
        self._status = status if status is not None else self.code

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def code(self) -> int | None:
        return self._payload.get('code') if self._payload else None

    @property
    def reason(self) -> str | None:
        return self._payload.get('reason') if self._payload else None

    @property
    def message(self) -> str | None:
        return self._payload.get('message') if self._payload else None

    @property
    def details(self) -> RawStatusDetails | None:
        return self._payload.get('details') if self._payload else None


class APIGoneError(APIError):
    """ The resource version is too old (expired); the watch must be re-listed. """


def make_api_error(raw_error: bodies.RawError | RawStatus) -> APIError:
    """
    Build a framework-specific error from an ``ERROR`` event's Status payload.
    """
    # "410 Gone" is for the "resource version too old" error; K8s forgets them in a few minutes.
    payload: RawStatus = raw_error  # type: ignore[assignment]
    cls = APIGoneError if payload.get('code') == HTTP_GONE_CODE else APIError
    return cls(payload)
