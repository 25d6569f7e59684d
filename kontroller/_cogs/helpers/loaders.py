"""
Module- and file-loading to trigger the reconcilers to be registered.

The controllers and their reconcilers are declared in the user's code and
registered via the decorators (see :mod:`kontroller.on`), so the files/modules
with these declarations should be loaded first, thus executing the decorators.

Two loading modes are supported, both are equivalent to Python CLI:

* Plain files (`kontroller run file.py`).
* Importable modules (`kontroller run -m pkg.mod`).

Multiple files/modules can be specified. They will be loaded in the order:
all the files first, then all the modules.
"""
import importlib
import importlib.abc
import importlib.util
import os.path
import sys
import types
from collections.abc import Iterable, Sequence
from typing import cast


def preload(
        paths: Iterable[str],
        modules: Iterable[str],
) -> Sequence[types.ModuleType]:
    """
    Ensure the reconcilers are registered by loading/importing the files/modules.

    Returns the loaded modules, in the order of loading.
    """
    loaded = [load_file(path, idx=idx) for idx, path in enumerate(paths)]
    loaded += [importlib.import_module(name) for name in modules]
    return loaded


def load_file(path: str, *, idx: int = 0) -> types.ModuleType:
    # Let the script import its neighbours, as if it was started as `python file.py`.
    sys.path.insert(0, os.path.abspath(os.path.dirname(path)))
    name = f'__kontroller_script_{idx}__{path}'  # same pseudo-name as '__main__'
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed loading {path}: no module or loader.")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    cast(importlib.abc.Loader, spec.loader).exec_module(module)
    return module
