import asyncio

import pytest

from kontroller._core.intents.registries import ControllerRegistry, get_default_registry
from kontroller.cli import CLIControls


@pytest.mark.parametrize('kwarg, value, options, envvars', [
    ('paths', (), [], {}),
    ('paths', ('path1', 'path2'), ['path1', 'path2'], {}),

    ('modules', (), [], {}),
    ('modules', ('mod1', 'mod2'), ['-m', 'mod1', '-m', 'mod2'], {}),
    ('modules', ('mod1', 'mod2'), ['--module', 'mod1', '--module', 'mod2'], {}),
    ('modules', ('mod1', 'mod2'), [], {'KONTROLLER_RUN_MODULES': 'mod1 mod2'}),
], ids=[
    'default-paths', 'arg-paths',
    'default-modules', 'opt-short-m', 'opt-long-modules', 'env-modules',
])
def test_options_passed_to_preload(invoke, options, envvars, kwarg, value, preload, real_run):
    result = invoke(['run'] + options, env=envvars)
    assert result.exit_code == 0
    assert preload.called
    assert tuple(preload.call_args[1][kwarg]) == value


def test_defaults_passed_to_run(invoke, preload, real_run):
    result = invoke(['run'])
    assert result.exit_code == 0
    assert real_run.called
    assert real_run.call_args[1]['registry'] is None
    assert real_run.call_args[1]['stop_flag'] is None
    assert real_run.call_args[1]['ready_flag'] is None


def test_controls_passed_to_run(invoke, preload, real_run):
    registry = ControllerRegistry()
    stop_flag = asyncio.Event()
    ready_flag = asyncio.Event()
    controls = CLIControls(registry=registry, stop_flag=stop_flag, ready_flag=ready_flag)
    result = invoke(['run'], obj=controls)
    assert result.exit_code == 0
    assert real_run.call_args[1]['registry'] is registry
    assert real_run.call_args[1]['stop_flag'] is stop_flag
    assert real_run.call_args[1]['ready_flag'] is ready_flag

    # The preloaded modules must register into the same registry.
    assert get_default_registry() is registry


def test_failures_are_reported(invoke, preload, real_run):
    real_run.side_effect = RuntimeError('boo!')
    result = invoke(['run'])
    assert result.exit_code == 1
    assert isinstance(result.exception, RuntimeError)
