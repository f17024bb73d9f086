import dataclasses
import logging
import pathlib
import sys

from typing_extensions import Annotated

import typer.core

typer.core.rich = None

import typer  # noqa: E402

from ..config import Settings, load_settings  # noqa: E402


app = typer.Typer(add_completion=False)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option('--verbose', '-v')] = False,
    debug: Annotated[bool, typer.Option('--debug', '-d')] = False,
) -> None:
    """
    CloudStackCluster controller.
    """
    setattr(ctx, 'obj', {})

    logging.basicConfig(
        level=logging.ERROR,
        format='%(levelname)s: %(module)s: %(message)s',
        stream=sys.stderr,
    )
    log = logging.getLogger('capcs')
    log_level = logging.ERROR
    if verbose:
        log_level = logging.INFO
    elif debug:
        log_level = logging.DEBUG
    log.setLevel(log_level)
    ctx.obj['log_level'] = log_level
    ctx.obj['debug'] = debug
    ctx.obj['log'] = log


@app.command(name='run', short_help='Run the CloudStackCluster controller')
def run(
    ctx: typer.Context,
    config: Annotated[
        pathlib.Path,
        typer.Option('--config', envvar='CAPCS_CONFIG', help='YAML settings file.'),
    ] = None,
    namespace: Annotated[
        str,
        typer.Option('--namespace', help='Watch the given namespace instead of all namespaces.'),
    ] = None,
    concurrency: Annotated[
        int,
        typer.Option('--concurrency', help='Number of concurrent reconciles.'),
    ] = None,
) -> None:
    try:
        settings = load_settings(config) if config is not None else Settings()
        if namespace is not None:
            settings.namespace = namespace
        if concurrency is not None:
            settings = dataclasses.replace(settings, concurrent_reconciles=concurrency)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(str(e), param_hint='--config') from e

    from ..manager import Manager
    from ..reconciler import setup_with_manager
    from ..store import KubeStore

    debug = ctx.obj.get('debug', False) if ctx.obj else False
    manager = Manager(KubeStore(), settings, debug=debug)
    manager.run(setup=setup_with_manager)


if __name__ == '__main__':
    app()
