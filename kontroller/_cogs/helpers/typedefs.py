"""
Rudimentary type [re-]definitions shared across the codebase.

Some StdLib types are generics in the type-sheds, but are not subscriptable
at runtime (e.g. ``logging.LoggerAdapter``). They are defined here once
in a way suitable both for the runtime and for the type-checkers.
"""
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]
