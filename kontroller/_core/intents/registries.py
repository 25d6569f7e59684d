"""
A registry of the reconcilers, attached to the controllers.

The global registry is populated by the `kontroller.on` decorators,
and is used by `kontroller.run` / `kontroller.operator` to know
which controllers to start and which reconcilers to drive them with.

One controller has exactly one reconciler: all the changes of all its
watched resources end up in the same reconciliation of the same object.
"""
import dataclasses
import functools
from collections.abc import Callable, Iterator, Sequence
from types import FunctionType, MethodType
from typing import Any, Protocol

from kontroller._core.actions import invocation
from kontroller._core.engines import controlling


class ReconcilerFn(Protocol):
    """
    A reconciler as invoked by the framework: only with the keyword arguments.

    Both sync & async functions are accepted; they must accept ``**kwargs``
    for the arguments they do not use.
    """
    def __call__(self, **kwargs: Any) -> invocation.SyncOrAsync[object | None]: ...


@dataclasses.dataclass(frozen=True)
class Registration:
    controller: controlling.Controller
    fn: ReconcilerFn
    id: str


class ControllerRegistry:
    """
    The controllers with their reconcilers, in the order of registration.
    """

    def __init__(self) -> None:
        super().__init__()
        self._registrations: list[Registration] = []

    def __len__(self) -> int:
        return len(self._registrations)

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations))

    def register(
            self,
            controller: controlling.Controller,
            fn: ReconcilerFn,
            *,
            id: str | None = None,
    ) -> Registration:
        if any(registration.controller is controller for registration in self._registrations):
            raise ValueError(f"A reconciler is already registered for {controller!r}.")
        registration = Registration(
            controller=controller,
            fn=fn,
            id=id if id is not None else get_callable_id(fn),
        )
        self._registrations.append(registration)
        return registration

    def get_registrations(self) -> Sequence[Registration]:
        return list(self._registrations)

    def get_reconciler(self, controller: controlling.Controller) -> ReconcilerFn | None:
        for registration in self._registrations:
            if registration.controller is controller:
                return registration.fn
        return None


def get_callable_id(c: Callable[..., Any]) -> str:
    """ Get a reasonably good id of any commonly used callable. """
    if c is None:
        raise ValueError("Cannot build an id of None.")
    elif isinstance(c, functools.partial):
        return get_callable_id(c.func)
    elif hasattr(c, '__wrapped__'):  # @functools.wraps()
        return get_callable_id(getattr(c, '__wrapped__'))
    elif isinstance(c, FunctionType) and c.__name__ == '<lambda>':
        line = c.__code__.co_firstlineno
        path = c.__code__.co_filename
        return f'lambda:{path}:{line}'
    elif isinstance(c, (FunctionType, MethodType)):
        return str(getattr(c, '__qualname__', getattr(c, '__name__', repr(c))))
    else:
        raise ValueError(f"Cannot get id of {c!r}.")


_default_registry: ControllerRegistry | None = None


def get_default_registry() -> ControllerRegistry:
    """
    Get the default registry to be used by the decorators and the operator
    unless the explicit registry is provided to them.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = ControllerRegistry()
    return _default_registry


def set_default_registry(registry: ControllerRegistry) -> None:
    """
    Set the default registry to be used by the decorators and the operator
    unless the explicit registry is provided to them.
    """
    global _default_registry
    _default_registry = registry
