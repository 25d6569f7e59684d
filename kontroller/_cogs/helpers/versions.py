"""
Detecting the framework's own version.

The codebase does not contain the version directly: it is derived from
the git tags at packaging time (via ``setuptools_scm``) and read back
from the installed distribution's metadata at runtime.

The version is determined only once at startup when the code is loaded.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "kontroller", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass  # running from a source tree, not installed.
