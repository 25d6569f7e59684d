import functools
import logging
import sys

import click.testing
import pytest

from kontroller._core.actions.loggers import ObjectFormatter
from kontroller.cli import main

SCRIPT1 = """
import kontroller

pods = kontroller.Controller(kontroller.Resource('', 'v1', 'Pod'), source=kontroller.MemorySource())

@kontroller.on.reconcile(pods)
def reconcile_pods(name, **_):
    print(f'Hello from reconcile_pods: {name}!')
"""

SCRIPT2 = """
import kontroller

rs = kontroller.Controller(kontroller.Resource('apps', 'v1', 'ReplicaSet'), source=kontroller.MemorySource())

@kontroller.on.reconcile(rs)
async def reconcile_rs(name, **_):
    print(f'Hello from reconcile_rs: {name}!')
"""


@pytest.fixture(autouse=True)
def srcdir(tmpdir):
    tmpdir.join('handler1.py').write(SCRIPT1)
    tmpdir.join('handler2.py').write(SCRIPT2)
    pkgdir = tmpdir.mkdir('package')
    pkgdir.join('__init__.py').write('')
    pkgdir.join('module_1.py').write(SCRIPT1)
    pkgdir.join('module_2.py').write(SCRIPT2)

    sys.path.insert(0, str(tmpdir))
    try:
        with tmpdir.as_cwd():
            yield tmpdir
    finally:
        sys.path.remove(str(tmpdir))


@pytest.fixture(autouse=True)
def clean_modules_cache():
    # Otherwise, the first loaded test-modules remain there forever,
    # preventing 2nd and further tests from passing.
    for key in list(sys.modules.keys()):
        if key.startswith('package'):
            del sys.modules[key]


@pytest.fixture(autouse=True)
def clean_own_handlers():
    # The handlers stream into the CLI runner's stderr, which is closed after the invocation.
    logger = logging.getLogger()
    original_level = logger.level
    yield
    logger.handlers[:] = [
        handler for handler in logger.handlers
        if not isinstance(handler, logging.StreamHandler) or
           not isinstance(handler.formatter, ObjectFormatter)
    ]
    logger.setLevel(original_level)


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def preload(mocker):
    return mocker.patch('kontroller._cogs.helpers.loaders.preload')


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('kontroller._core.reactor.running.run')
