import dataclasses
import functools
from collections.abc import Callable
from typing import Any

import click

from kontroller._cogs.aiokits import aioflags
from kontroller._cogs.helpers import loaders, versions
from kontroller._core.actions import loggers
from kontroller._core.intents import registries
from kontroller._core.reactor import running


@dataclasses.dataclass()
class CLIControls:
    """ The controls of the embedded runs, which are impossible to pass via CLI. """
    ready_flag: aioflags.Flag | None = None
    stop_flag: aioflags.Flag | None = None
    registry: registries.ControllerRegistry | None = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: bool | None = False,
                log_refkey: str | None = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


@click.version_option(version=versions.version, prog_name='kontroller')
@click.group(name='kontroller', context_settings=dict(
    auto_envvar_prefix='KONTROLLER',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('-m', '--module', 'modules', multiple=True)
@click.argument('paths', nargs=-1)
@click.make_pass_decorator(CLIControls, ensure=True)
def run(
        __controls: CLIControls,
        paths: list[str],
        modules: list[str],
) -> None:
    """ Start the controllers and reconcile their objects until stopped. """
    if __controls.registry is not None:
        registries.set_default_registry(__controls.registry)
    loaders.preload(
        paths=paths,
        modules=modules,
    )
    return running.run(
        registry=__controls.registry,
        stop_flag=__controls.stop_flag,
        ready_flag=__controls.ready_flag,
    )
