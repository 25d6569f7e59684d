"""
All the structures of the watched objects, as seen by the pipeline.

The pipeline is agnostic of the objects' kinds: pods, replica sets,
custom resources -- all of them are the same for it. The only thing it needs
from an object is its identity: the name and the namespace (if namespaced).
This is the :class:`Meta` capability, a structural protocol: any object
with these two properties can be watched, be it a typed model of an API
client library, or a dataclass, or the stock :class:`Body` below.

The objects coming from the Kubernetes API as plain JSON-decoded dicts
(e.g. in the raw watch-events) are wrapped into :class:`Body`, which
implements the capability on top of the dict's ``metadata`` field.
"""
from collections.abc import Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from typing_extensions import Literal, TypedDict

#
# Everything marked "raw" is a plain unwrapped unprocessed data as JSON-decoded
# from Kubernetes API, usually as retrieved in watching or fetching API calls.
# All non-used payload falls into `Any`, and is not type-checked.
#

RawEventType = Literal['ADDED', 'MODIFIED', 'DELETED', 'ERROR', 'BOOKMARK']


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    resourceVersion: str


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# A special payload for type==ERROR (this is not a connection or client error).
class RawError(TypedDict, total=False):
    apiVersion: str     # usually: Literal['v1']
    kind: str           # usually: Literal['Status']
    code: int
    reason: str
    status: str
    message: str


class RawEvent(TypedDict, total=True):
    type: RawEventType
    object: RawBody | RawError


@runtime_checkable
class Meta(Protocol):
    """
    The identity capability of all watched objects: a name and a namespace.

    The namespace is ``None`` for cluster-scoped objects.
    """

    @property
    def name(self) -> str: ...

    @property
    def namespace(self) -> str | None: ...


class Body(Mapping[str, Any]):
    """
    A read-only wrapper of a raw object as it comes from the Kubernetes API.

    It behaves as the original dict for reading, and also implements
    the :class:`Meta` capability on top of the object's metadata.
    """

    def __init__(self, __src: RawBody) -> None:
        super().__init__()
        self._src = __src

    def __repr__(self) -> str:
        clsname = self.__class__.__name__
        return f'{clsname}({self._src!r})'

    def __len__(self) -> int:
        return len(self._src)

    def __iter__(self) -> Iterator[str]:
        return iter(self._src)

    def __getitem__(self, key: str) -> Any:
        return self._src[key]  # type: ignore[literal-required]

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._src.get('metadata', {})

    @property
    def name(self) -> str:
        # No default: an object with no name breaks the identity contract; let it fail loudly.
        return self.metadata['name']

    @property
    def namespace(self) -> str | None:
        return self.metadata.get('namespace')
