import logging
import re

import pytest

import kontroller
from kontroller._cogs.configs.configuration import ControllerSettings
from kontroller._cogs.structs.references import ListParams, Resource
from kontroller._core.intents.registries import ControllerRegistry


def pytest_configure(config):
    config.addinivalue_line('markers', "e2e: end-to-end tests with the full pipeline.")


@pytest.fixture()
def pods():
    return Resource('', 'v1', 'Pod', plural='pods')


@pytest.fixture()
def replicasets():
    return Resource('apps', 'v1', 'ReplicaSet', plural='replicasets')


@pytest.fixture()
def params():
    return ListParams()


@pytest.fixture()
def settings():
    settings = ControllerSettings()
    settings.listening.restart_delay = 0
    settings.process.stopping_interval = 1
    return settings


@pytest.fixture()
def source():
    return kontroller.MemorySource()


@pytest.fixture()
def registry():
    return ControllerRegistry()


@pytest.fixture(autouse=True)
def clear_default_registry():
    registry = ControllerRegistry()
    kontroller.set_default_registry(registry)
    yield registry
    kontroller.set_default_registry(ControllerRegistry())


class FakeObj:
    """ Any object with the identity properties, not necessarily a dict. """

    def __init__(self, name, namespace=None):
        super().__init__()
        self.name = name
        self.namespace = namespace

    def __repr__(self):
        return f'FakeObj({self.name!r}, {self.namespace!r})'


@pytest.fixture()
def make_obj():
    return FakeObj


@pytest.fixture()
def assert_logs(caplog):
    """
    A function to assert the logs are present (by pattern).

    The listed message patterns MUST be present, in the order specified.
    Some other log messages can also be present, but they are ignored.
    """
    def assert_logs_fn(patterns, prohibited=[], strict=False):
        __traceback_hide__ = True
        remaining_patterns = list(patterns)
        for message in caplog.messages:
            # The expected pattern is at position 0.
            # Looking-ahead: if one of the following patterns matches, while the
            # 0th does not, then the log message is missing, and we fail the test.
            for idx, pattern in enumerate(remaining_patterns):
                m = re.search(pattern, message)
                if m:
                    if idx == 0:
                        remaining_patterns[:1] = []
                        break  # out of `remaining_patterns` cycle
                    else:
                        skipped_patterns = remaining_patterns[:idx]
                        raise AssertionError(f"Few patterns were skipped: {skipped_patterns!r}")
                elif strict:
                    raise AssertionError(f"Unexpected log message: {message!r}")

            # Check that the prohibited patterns do not appear in any message.
            for pattern in prohibited:
                m = re.search(pattern, message)
                if m:
                    raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {pattern!r}")

        # If all patterns have been matched in order, we are done.
        # if some are left, but the messages are over, then we fail.
        if remaining_patterns:
            raise AssertionError(f"Few patterns were missed: {remaining_patterns!r}")

    return assert_logs_fn


@pytest.fixture()
def debug_logs(caplog):
    caplog.set_level(logging.DEBUG)
    return caplog

