"""
The decorators for the reconcilers. Usually used as::

    import kontroller

    pods = kontroller.Controller(kontroller.Resource('', 'v1', 'Pod'), source=...)

    @kontroller.on.reconcile(pods)
    async def reconcile_pod(name, namespace, logger, **kwargs):
        pass

This module is a part of the framework's public interface.
"""
from collections.abc import Callable

from kontroller._core.engines import controlling
from kontroller._core.intents import registries

ReconcilerDecorator = Callable[[registries.ReconcilerFn], registries.ReconcilerFn]


def reconcile(
        controller: controlling.Controller,
        *,
        id: str | None = None,
        registry: registries.ControllerRegistry | None = None,
) -> ReconcilerDecorator:
    def decorator(
            fn: registries.ReconcilerFn,
    ) -> registries.ReconcilerFn:
        real_registry = registry if registry is not None else registries.get_default_registry()
        real_registry.register(controller, fn, id=id)
        return fn
    return decorator
