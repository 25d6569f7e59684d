import dataclasses
from typing import NewType

# A specific really existing addressable namespace (at least, the one assumed to be so).
NamespaceName = NewType('NamespaceName', str)

# A namespace reference usable in the watch-sources. `None` means cluster-wide.
Namespace = NamespaceName | None


@dataclasses.dataclass(frozen=True)
class Resource:
    """
    A reference to a very specific custom or built-in resource kind.

    It scopes a watch-source: which objects are watched and in which namespace
    (or cluster-wide if ``None``). Once a watch is established for a resource,
    the resource cannot change (the dataclass is frozen and hashable),
    so it is used as a key of the controller's listeners.
    """

    group: str
    """
    The resource's API group; e.g. ``"kontroller.dev"``, ``"apps"``, ``"batch"``.
    For Core v1 API resources, an empty string: ``""``.
    """

    version: str
    """
    The resource's API version; e.g. ``"v1"``, ``"v1beta1"``, etc.
    """

    kind: str
    """
    The resource's kind (as in YAML files); e.g. ``"Pod"``, ``"ReplicaSet"``.
    """

    plural: str | None = None
    """
    The resource's plural name; e.g. ``"pods"``, ``"replicasets"``.
    Used by the watch-sources to build the URLs, ignored by the pipeline.
    """

    namespace: Namespace = None
    """
    The namespace to watch in; ``None`` for cluster-wide watching.
    """

    def __str__(self) -> str:
        # Similar to `kubectl`'s fully-qualified kinds: `replicasets.v1.apps`.
        name = (self.plural or self.kind).lower()
        fqn = f'{name}.{self.version}.{self.group}' if self.group else f'{name}.{self.version}'
        return fqn if self.namespace is None else f'{fqn}@{self.namespace}'

    @property
    def api_version(self) -> str:
        # Strictly as per K8s API's `apiVersion` field: core v1 has no group, i.e. only "v1".
        return f'{self.group}/{self.version}' if self.group else self.version


@dataclasses.dataclass(frozen=True)
class ListParams:
    """
    The listing & filtering parameters for a watch-source of one resource.

    The pipeline does not interpret them; they are passed to the watch-source
    as is, together with the resource. The selectors follow the syntax
    of the K8s API (e.g. ``"app=web,tier!=db"``).
    """
    label_selector: str | None = None
    field_selector: str | None = None
    timeout: float | None = None
