"""
The main kontroller module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the framework's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from kontroller import (
    on,  # as a separate name on the public namespace
)
from kontroller._cogs.aiokits.aioflags import (
    Flag,
)
from kontroller._cogs.configs.configuration import (
    ControllerSettings,
    QueueingSettings,
    ListeningSettings,
    ReconcilingSettings,
    ProcessSettings,
)
from kontroller._cogs.helpers.typedefs import (
    Logger,
)
from kontroller._cogs.helpers.versions import (
    version as __version__,
)
from kontroller._cogs.clients.errors import (
    APIError,
    APIGoneError,
)
from kontroller._cogs.clients.watching import (
    WatchSource,
    MemorySource,
    adapt_raw_events,
)
from kontroller._cogs.structs.bodies import (
    RawEventType,
    RawEvent,
    RawBody,
    Meta,
    Body,
)
from kontroller._cogs.structs.notifications import (
    Added,
    Modified,
    Deleted,
    Error,
    ChangeNotification,
    ReconcileRequest,
)
from kontroller._cogs.structs.references import (
    Resource,
    ListParams,
)
from kontroller._core.actions.loggers import (
    configure,
    LogFormat,
    RequestLogger,
)
from kontroller._core.engines.controlling import (
    Controller,
    ControllerState,
)
from kontroller._core.engines.driving import (
    drive,
)
from kontroller._core.intents.registries import (
    ControllerRegistry,
    ReconcilerFn,
    get_default_registry,
    set_default_registry,
)
from kontroller._core.reactor.errors import (
    PipelineError,
    SourceError,
    NormalizationError,
    ListenersExhausted,
    QueueFailure,
    QueueClosed,
    ControllerStateError,
)
from kontroller._core.reactor.queueing import (
    ReconcileQueue,
)
from kontroller._core.reactor.running import (
    spawn_tasks,
    run_tasks,
    operator,
    run,
)

__all__ = [
    'on',
    'Flag',
    'ControllerSettings',
    'QueueingSettings',
    'ListeningSettings',
    'ReconcilingSettings',
    'ProcessSettings',
    'Logger',
    'APIError',
    'APIGoneError',
    'WatchSource',
    'MemorySource',
    'adapt_raw_events',
    'RawEventType',
    'RawEvent',
    'RawBody',
    'Meta',
    'Body',
    'Added',
    'Modified',
    'Deleted',
    'Error',
    'ChangeNotification',
    'ReconcileRequest',
    'Resource',
    'ListParams',
    'configure',
    'LogFormat',
    'RequestLogger',
    'Controller',
    'ControllerState',
    'drive',
    'ControllerRegistry',
    'ReconcilerFn',
    'get_default_registry',
    'set_default_registry',
    'PipelineError',
    'SourceError',
    'NormalizationError',
    'ListenersExhausted',
    'QueueFailure',
    'QueueClosed',
    'ControllerStateError',
    'ReconcileQueue',
    'spawn_tasks',
    'run_tasks',
    'operator',
    'run',
]
